"""EPUB container and navigation parsing (EPUB3 nav documents and EPUB2 NCX)."""

import io
import logging
import posixpath
import warnings
import zipfile
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import unquote

from bs4 import BeautifulSoup, XMLParsedAsHTMLWarning

from book_to_chapters.errors import MalformedContainerError, NoNavigationDataError
from book_to_chapters.models import UNTITLED, EpubChapter

warnings.filterwarnings("ignore", category=XMLParsedAsHTMLWarning)

logger = logging.getLogger(__name__)

CONTAINER_PATH = "META-INF/container.xml"
NCX_MEDIA_TYPE = "application/x-dtbncx+xml"


class EpubArchive:
    """In-memory file table of an unzipped EPUB."""

    def __init__(self, files: dict[str, bytes]):
        self.files = files

    @classmethod
    def from_source(cls, source: bytes | str | Path) -> "EpubArchive":
        """Unzip an EPUB given as raw bytes or a path."""
        try:
            if isinstance(source, (bytes, bytearray)):
                zf = zipfile.ZipFile(io.BytesIO(source))
            else:
                zf = zipfile.ZipFile(source)
            with zf:
                files = {info.filename: zf.read(info) for info in zf.infolist() if not info.is_dir()}
        except zipfile.BadZipFile as e:
            raise MalformedContainerError(f"Invalid EPUB file: not a ZIP archive ({e})") from e
        return cls(files)

    def read_bytes(self, path: str) -> bytes | None:
        return self.files.get(path)

    def read_text(self, path: str) -> str | None:
        data = self.files.get(path)
        if data is None:
            return None
        return data.decode("utf-8", errors="replace")


@dataclass(frozen=True)
class PackageInfo:
    """What the content.opf tells us about navigation."""
    opf_path: str
    title: str = ""
    nav_path: str | None = None
    ncx_path: str | None = None


def resolve_href(base_dir: str, href: str) -> str:
    """Resolve an href relative to base_dir into a normalized archive path."""
    path = unquote(href)
    if base_dir:
        path = posixpath.join(base_dir, path)
    return posixpath.normpath(path)


def split_target(target: str, document_path: str) -> tuple[str, str | None]:
    """Split a navigation target into (archive path, anchor) on the first '#'."""
    href, sep, anchor = target.partition("#")
    path = resolve_href(posixpath.dirname(document_path), href) if href else document_path
    return path, (anchor if sep and anchor else None)


def parse_container(archive: EpubArchive) -> str:
    """Return the path of the package document (content.opf) named in container.xml."""
    data = archive.read_bytes(CONTAINER_PATH)
    if data is None:
        raise MalformedContainerError("Invalid EPUB file: missing META-INF/container.xml")

    soup = BeautifulSoup(data, features="lxml-xml")
    rootfile = soup.find("rootfile")
    if rootfile is None:
        raise MalformedContainerError("Invalid EPUB file: no rootfile in container.xml")

    full_path = rootfile.get("full-path")
    if not full_path:
        raise MalformedContainerError("Invalid EPUB file: rootfile has no content.opf path")
    return full_path


def parse_content_opf(archive: EpubArchive, opf_path: str) -> PackageInfo:
    """Locate the nav document and NCX through the package manifest."""
    data = archive.read_bytes(opf_path)
    if data is None:
        raise MalformedContainerError(f"Invalid EPUB file: cannot find {opf_path}")

    soup = BeautifulSoup(data, features="lxml-xml")
    base_dir = posixpath.dirname(opf_path)

    title_tag = soup.find("title")
    title = title_tag.get_text(strip=True) if title_tag is not None else ""

    nav_path = ncx_path = None
    manifest = soup.find("manifest")
    if manifest is not None:
        for item in manifest.find_all("item"):
            href = item.get("href")
            if not href:
                continue
            if nav_path is None and "nav" in (item.get("properties") or "").split():
                nav_path = resolve_href(base_dir, href)
            elif ncx_path is None and item.get("media-type") == NCX_MEDIA_TYPE:
                ncx_path = resolve_href(base_dir, href)

    return PackageInfo(opf_path=opf_path, title=title, nav_path=nav_path, ncx_path=ncx_path)


def _find_toc_link(li):
    link = li.find("a", href=True, recursive=False)
    if link is None:
        span = li.find("span", recursive=False)
        if span is not None:
            link = span.find("a", href=True, recursive=False)
    return link


def parse_nav_list(list_tag, id_prefix: str, level: int, nav_path: str) -> list[EpubChapter]:
    """Recursively parse an <ol>/<ul> of a nav document."""
    chapters = []
    for index, li in enumerate(list_tag.find_all("li", recursive=False)):
        link = _find_toc_link(li)
        if link is None:
            continue

        chapter_id = f"{id_prefix}-{index}"
        href, anchor = split_target(link["href"], nav_path)

        children: list[EpubChapter] = []
        sub_list = li.find(["ol", "ul"], recursive=False)
        if sub_list is not None:
            children = parse_nav_list(sub_list, chapter_id, level + 1, nav_path)

        chapters.append(EpubChapter(
            id=chapter_id,
            title=link.get_text(" ", strip=True) or UNTITLED,
            level=level,
            href=href,
            anchor=anchor,
            children=tuple(children),
        ))
    return chapters


def parse_nav(archive: EpubArchive, nav_path: str) -> list[EpubChapter]:
    """Parse an EPUB 3 navigation document; returns [] when it holds no TOC list."""
    data = archive.read_bytes(nav_path)
    if data is None:
        logger.warning("Nav document %s listed in manifest but missing from archive", nav_path)
        return []

    soup = BeautifulSoup(data, features="lxml-xml")
    navs = soup.find_all("nav")
    toc_nav = next(
        (nav for nav in navs if "toc" in (nav.get("epub:type") or nav.get("type") or "").split()),
        navs[0] if navs else None,
    )
    if toc_nav is None:
        return []

    toc_list = toc_nav.find(["ol", "ul"])
    if toc_list is None:
        return []
    return parse_nav_list(toc_list, "chapter", 0, nav_path)


def parse_nav_point(nav_point, chapter_id: str, level: int, ncx_path: str) -> EpubChapter | None:
    """Recursively parse an NCX navPoint; None when it lacks a label or target."""
    label = nav_point.find("navLabel", recursive=False)
    text = label.find("text") if label is not None else None
    content = nav_point.find("content", recursive=False)
    if text is None or content is None:
        return None

    href, anchor = split_target(content.get("src") or "", ncx_path)

    children = []
    for index, child_point in enumerate(nav_point.find_all("navPoint", recursive=False)):
        child = parse_nav_point(child_point, f"{chapter_id}-{index}", level + 1, ncx_path)
        if child is not None:
            children.append(child)

    return EpubChapter(
        id=chapter_id,
        title=text.get_text(strip=True) or UNTITLED,
        level=level,
        href=href,
        anchor=anchor,
        children=tuple(children),
    )


def parse_ncx(archive: EpubArchive, ncx_path: str) -> list[EpubChapter]:
    """Parse an EPUB 2 NCX navMap; returns [] when it is missing or empty."""
    data = archive.read_bytes(ncx_path)
    if data is None:
        logger.warning("NCX %s listed in manifest but missing from archive", ncx_path)
        return []

    soup = BeautifulSoup(data, features="lxml-xml")
    nav_map = soup.find("navMap")
    if nav_map is None:
        return []

    chapters = []
    for index, nav_point in enumerate(nav_map.find_all("navPoint", recursive=False)):
        chapter = parse_nav_point(nav_point, f"chapter-{index}", 0, ncx_path)
        if chapter is not None:
            chapters.append(chapter)
    return chapters


def parse_epub_navigation(archive: EpubArchive) -> tuple[PackageInfo, list[EpubChapter]]:
    """
    Build the raw chapter tree of an EPUB.

    Prefers the EPUB 3 nav document and falls back to the EPUB 2 NCX when the
    nav document yields nothing.

    Raises:
        MalformedContainerError: container.xml or content.opf is missing/invalid.
        NoNavigationDataError: neither navigation source yields any entries.
    """
    opf_path = parse_container(archive)
    package = parse_content_opf(archive, opf_path)

    chapters: list[EpubChapter] = []
    if package.nav_path:
        chapters = parse_nav(archive, package.nav_path)
    if not chapters and package.ncx_path:
        logger.debug("Nav document empty or absent, falling back to NCX %s", package.ncx_path)
        chapters = parse_ncx(archive, package.ncx_path)

    if not chapters:
        raise NoNavigationDataError(
            "This EPUB has no table of contents (nav document or NCX); chapters cannot be detected"
        )
    return package, chapters
