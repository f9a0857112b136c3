"""
Book to Chapters - Export chapters of PDF and EPUB books as standalone PDFs.
"""

from book_to_chapters.errors import (
    BookError,
    ExportError,
    MalformedContainerError,
    NoNavigationDataError,
    ParseError,
)
from book_to_chapters.exporter import export_tasks, render_html_to_pdf
from book_to_chapters.extract import extract_chapters
from book_to_chapters.models import ChapterTree, EpubChapter, ExportResult, ExportTask, PdfChapter, Progress
from book_to_chapters.planner import assign_filenames, plan_export
from book_to_chapters.ranges import resolve_page_ranges
from book_to_chapters.utils import build_hierarchical_filename, sanitize_filename

__version__ = "0.1.0"
__all__ = [
    "extract_chapters",
    "plan_export",
    "assign_filenames",
    "export_tasks",
    "render_html_to_pdf",
    "resolve_page_ranges",
    "build_hierarchical_filename",
    "sanitize_filename",
    "ChapterTree",
    "PdfChapter",
    "EpubChapter",
    "ExportTask",
    "ExportResult",
    "Progress",
    "BookError",
    "ParseError",
    "MalformedContainerError",
    "NoNavigationDataError",
    "ExportError",
]
