"""Render planned export tasks into PDF files and package them."""

import io
import logging
import warnings
import zipfile
from pathlib import Path
from typing import Sequence

import fitz  # PyMuPDF
from bs4 import BeautifulSoup

from book_to_chapters.config import Settings
from book_to_chapters.errors import BookError, EmptyContentSkipped, ExportError
from book_to_chapters.models import (
    ChapterTree,
    EpubChapter,
    ExportResult,
    ExportTask,
    PdfChapter,
    Progress,
    ProgressCallback,
)
from book_to_chapters.pdf_utils import copy_page_range, merge_page_ranges
from book_to_chapters.planner import assign_filenames

logger = logging.getLogger(__name__)

PAGE_BREAK = '<div style="page-break-before: always;"></div>'
PAGE_MARGIN = 36  # points
BODY_CSS = "body { font-family: sans-serif; font-size: 11pt; }"


def render_html_to_pdf(html: str, page_format: str = "a4") -> bytes:
    """Lay out HTML onto as many pages of the given paper format as it needs."""
    mediabox = fitz.paper_rect(page_format)
    where = mediabox + (PAGE_MARGIN, PAGE_MARGIN, -PAGE_MARGIN, -PAGE_MARGIN)
    story = fitz.Story(html=html, user_css=BODY_CSS)

    buffer = io.BytesIO()
    writer = fitz.DocumentWriter(buffer)
    try:
        more = True
        while more:
            device = writer.begin_page(mediabox)
            more, _ = story.place(where)
            story.draw(device)
            writer.end_page()
    finally:
        writer.close()
    return buffer.getvalue()


def _body_html(content: str) -> str:
    """Return the inner HTML of a document's body, or the content itself if it has none."""
    soup = BeautifulSoup(content, features="lxml")
    if soup.body is None:
        return content
    return soup.body.decode_contents()


def render_pdf_task(task: ExportTask, source: bytes | str | Path) -> bytes | None:
    units = [u for u in task.units if isinstance(u, PdfChapter)]
    if not units:
        return None
    if len(units) == 1:
        return copy_page_range(source, units[0].start_page, units[0].end_page)
    units.sort(key=lambda u: u.start_page)
    return merge_page_ranges(source, [(u.start_page, u.end_page) for u in units])


def render_epub_task(task: ExportTask, page_format: str) -> bytes | None:
    units = [u for u in task.units if isinstance(u, EpubChapter) and u.content]
    if not units:
        return None
    if len(units) == 1:
        return render_html_to_pdf(units[0].content, page_format)
    merged = PAGE_BREAK.join(_body_html(u.content) for u in units)
    return render_html_to_pdf(f"<html><body>{merged}</body></html>", page_format)


def zip_files(entries: Sequence[tuple[str, bytes]]) -> bytes:
    """Package (filename, data) entries into a DEFLATE-compressed ZIP archive."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED, compresslevel=9) as zf:
        for filename, data in entries:
            zf.writestr(filename, data)
    return buffer.getvalue()


def export_tasks(
    tree: ChapterTree,
    tasks: Sequence[ExportTask],
    source: bytes | str | Path,
    source_name: str = "book",
    on_progress: ProgressCallback | None = None,
    settings: Settings | None = None,
) -> ExportResult:
    """
    Render export tasks into a single PDF or a ZIP of PDFs.

    A single task with a single content unit becomes one PDF; anything else is
    zipped as "<source stem>_chapters.zip". Tasks without renderable content
    are skipped with an EmptyContentSkipped warning.

    Raises:
        ExportError: nothing to export, or rendering/packaging failed
    """
    settings = settings or Settings()
    if not tasks:
        raise ExportError("No chapters selected for export")

    named_tasks = assign_filenames(tasks, ".pdf", settings.max_filename_length)
    stem = Path(source_name).stem or "book"

    try:
        entries = []
        for i, (filename, task) in enumerate(named_tasks):
            if on_progress:
                on_progress(Progress(i + 1, len(named_tasks), f"Processing: {task.name}"))

            if tree.format == "pdf":
                data = render_pdf_task(task, source)
            else:
                data = render_epub_task(task, settings.page_format)

            if data is None:
                warnings.warn(f"Chapter '{task.name}' has no content, skipped", EmptyContentSkipped, stacklevel=2)
                continue
            logger.info("Rendered %s (%d bytes)", filename, len(data))
            entries.append((filename, data))
    except BookError:
        raise
    except Exception as e:
        raise ExportError(f"Export failed: {e}") from e

    if not entries:
        raise ExportError("None of the selected chapters has content to export")

    if len(tasks) == 1 and len(tasks[0].units) == 1:
        filename, data = entries[0]
        return ExportResult(filename=filename, data=data)

    if on_progress:
        on_progress(Progress(len(named_tasks), len(named_tasks), "Packaging files..."))
    try:
        archive = zip_files(entries)
    except Exception as e:
        raise ExportError(f"Packaging failed: {e}") from e
    return ExportResult(filename=f"{stem}_chapters.zip", data=archive, media_type="application/zip")
