"""PDF extraction and manipulation utilities."""

import logging
import warnings
from pathlib import Path
from typing import Iterable

import fitz  # PyMuPDF

from book_to_chapters.errors import NoNavigationDataError, ParseError, UnresolvableDestinationWarning
from book_to_chapters.models import UNTITLED, ChapterTree, PdfChapter, ProgressCallback
from book_to_chapters.progress import DEFAULT_INTERVAL, ProgressThrottle
from book_to_chapters.ranges import resolve_page_ranges

logger = logging.getLogger(__name__)

PDF_MAGIC_BYTES = b"%PDF"


def open_pdf(source: bytes | str | Path) -> fitz.Document:
    """Open a PDF from raw bytes or a path, raising ParseError on failure."""
    try:
        if isinstance(source, (bytes, bytearray)):
            doc = fitz.open(stream=bytes(source), filetype="pdf")
        else:
            doc = fitz.open(str(source), filetype="pdf")
    except Exception as e:
        raise ParseError(f"Failed to read PDF: {e}") from e

    if doc.page_count == 0:
        doc.close()
        raise ParseError("PDF contains no pages")
    return doc


def resolve_start_page(title: str, page: int | None, page_count: int) -> int:
    """Resolve an outline entry's 1-based page, falling back to page 1."""
    if page is None or page < 1 or page > page_count:
        message = f"Could not resolve page for outline entry '{title}', using page 1"
        logger.debug(message)
        warnings.warn(message, UnresolvableDestinationWarning, stacklevel=2)
        return 1
    return page


def group_toc_entries(toc: list[list]) -> list[dict]:
    """
    Nest flat get_toc() rows into {"title", "page", "children"} nodes.

    Each row attaches to the nearest preceding row with a lower level, so a
    skipped level still nests under the closest ancestor.
    """
    roots = []
    stack = []  # (toc level, node)
    for row in toc:
        level, title, page = row[0], row[1], row[2]
        while stack and stack[-1][0] >= level:
            stack.pop()
        node = {"title": title, "page": page, "children": []}
        (stack[-1][1]["children"] if stack else roots).append(node)
        stack.append((level, node))
    return roots


def build_chapter(node: dict, level: int, chapter_id: str, page_count: int) -> PdfChapter:
    """Recursively convert a grouped outline node and its children into a PdfChapter."""
    title = (node["title"] or "").strip() or UNTITLED
    start_page = resolve_start_page(title, node["page"], page_count)

    children = tuple(
        build_chapter(child, level + 1, f"{chapter_id}-{i}", page_count)
        for i, child in enumerate(node["children"])
    )
    return PdfChapter(
        id=chapter_id,
        title=title,
        level=level,
        start_page=start_page,
        end_page=start_page,
        children=children,
    )


def extract_pdf_chapters(
    source: bytes | str | Path,
    on_progress: ProgressCallback | None = None,
    progress_interval: float = DEFAULT_INTERVAL,
) -> ChapterTree:
    """Extract the outline of a PDF as a chapter tree with resolved page ranges."""
    with open_pdf(source) as doc:
        # Rows are [level, title, page, dest]; page is 1-based, -1 when unresolved
        toc = doc.get_toc(simple=False)
        if not toc:
            raise NoNavigationDataError(
                "This PDF has no table of contents (outline/bookmarks); chapters cannot be detected"
            )

        total_pages = doc.page_count
        title = ((doc.metadata or {}).get("title") or "").strip()

    top_level = group_toc_entries(toc)
    throttle = ProgressThrottle(on_progress, progress_interval)
    chapters = []
    for i, node in enumerate(top_level):
        throttle.report(i + 1, len(top_level), (node["title"] or "").strip(), force=i == len(top_level) - 1)
        chapters.append(build_chapter(node, 0, f"chapter-{i}", total_pages))

    resolved = resolve_page_ranges(chapters, total_pages)
    logger.info("Extracted %d top-level chapters from %d pages", len(resolved), total_pages)
    return ChapterTree(format="pdf", chapters=resolved, title=title, total_pages=total_pages)


def merge_page_ranges(source: bytes | str | Path, ranges: Iterable[tuple[int, int]]) -> bytes:
    """Copy one or more 1-based inclusive page ranges into a new PDF, in the given order."""
    with open_pdf(source) as doc, fitz.open() as new_doc:
        for start_page, end_page in ranges:
            # PyMuPDF uses 0-indexed pages
            new_doc.insert_pdf(doc, from_page=start_page - 1, to_page=end_page - 1)
        return new_doc.tobytes(garbage=3, deflate=True)


def copy_page_range(source: bytes | str | Path, start_page: int, end_page: int) -> bytes:
    """Create a new PDF holding pages start_page..end_page (1-based, inclusive)."""
    return merge_page_ranges(source, [(start_page, end_page)])
