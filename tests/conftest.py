"""Pytest fixtures and shared test configuration.

Fixtures build real books in memory:
    - make_pdf: PDF bytes with a given page count and outline (PyMuPDF set_toc)
    - make_epub: EPUB bytes from a mapping of archive paths to text
    - outline_pdf: the 30-page A(A1, A2) / B reference book
    - epub3_bytes / epub2_bytes: small books with nav document or NCX only
"""

import io
import zipfile
from collections.abc import Callable

import fitz  # PyMuPDF
import pytest

from tests.samples import (
    CH3_XHTML,
    CONTAINER_XML,
    NAV_XHTML,
    OPF_EPUB2,
    OPF_EPUB3,
    PART_XHTML,
    TEXT_XHTML,
    TOC_NCX,
)


@pytest.fixture
def make_pdf() -> Callable[..., bytes]:
    """Return a factory building PDF bytes with page_count pages and an outline.

    The outline uses PyMuPDF's set_toc format: [level, title, page], level 1 at the top.
    """

    def _make(page_count: int, toc: list[list] | None = None) -> bytes:
        doc = fitz.open()
        for i in range(page_count):
            page = doc.new_page()
            page.insert_text((72, 72), f"Page {i + 1}")
        if toc:
            doc.set_toc(toc)
        data = doc.tobytes()
        doc.close()
        return data

    return _make


@pytest.fixture
def outline_pdf(make_pdf) -> bytes:
    """30 pages: A (p1) with A1 (p1) and A2 (p10), then B (p20)."""
    return make_pdf(30, [[1, "A", 1], [2, "A1", 1], [2, "A2", 10], [1, "B", 20]])


@pytest.fixture
def make_epub() -> Callable[[dict[str, str]], bytes]:
    """Return a factory zipping {archive path: text} into EPUB bytes."""

    def _make(files: dict[str, str]) -> bytes:
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w") as zf:
            zf.writestr("mimetype", "application/epub+zip", compress_type=zipfile.ZIP_STORED)
            for path, text in files.items():
                zf.writestr(path, text)
        return buffer.getvalue()

    return _make


@pytest.fixture
def epub3_files() -> dict[str, str]:
    return {
        "META-INF/container.xml": CONTAINER_XML,
        "OEBPS/content.opf": OPF_EPUB3,
        "OEBPS/nav.xhtml": NAV_XHTML,
        "OEBPS/part.xhtml": PART_XHTML,
        "OEBPS/text.xhtml": TEXT_XHTML,
        "OEBPS/ch3.xhtml": CH3_XHTML,
    }


@pytest.fixture
def epub3_bytes(make_epub, epub3_files) -> bytes:
    return make_epub(epub3_files)


@pytest.fixture
def epub2_bytes(make_epub) -> bytes:
    return make_epub({
        "META-INF/container.xml": CONTAINER_XML,
        "OEBPS/content.opf": OPF_EPUB2,
        "OEBPS/toc.ncx": TOC_NCX,
        "OEBPS/text.xhtml": TEXT_XHTML,
        "OEBPS/ch3.xhtml": CH3_XHTML,
    })
