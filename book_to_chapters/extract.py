"""Format dispatch for chapter extraction."""

import asyncio
import logging
from pathlib import Path

from book_to_chapters.config import Settings
from book_to_chapters.content_loader import load_epub_contents
from book_to_chapters.epub_utils import EpubArchive, parse_epub_navigation
from book_to_chapters.errors import BookError, ParseError
from book_to_chapters.models import ChapterTree, ProgressCallback
from book_to_chapters.pdf_utils import PDF_MAGIC_BYTES, extract_pdf_chapters

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = {".pdf", ".epub"}
ZIP_MAGIC_BYTES = b"PK\x03\x04"


def detect_format(source: bytes | str | Path) -> str:
    """Return "pdf" or "epub" from the file extension or, for raw bytes, the magic bytes."""
    if isinstance(source, (bytes, bytearray)):
        head = bytes(source[:1024]).lstrip()
        if head.startswith(PDF_MAGIC_BYTES):
            return "pdf"
        if head.startswith(ZIP_MAGIC_BYTES):
            return "epub"
        raise ParseError("Unsupported file: neither a PDF nor an EPUB")

    suffix = Path(source).suffix.lower()
    if suffix not in SUPPORTED_EXTENSIONS:
        raise ParseError(
            f"Unsupported file format: '{suffix}'. "
            f"Supported: {', '.join(sorted(SUPPORTED_EXTENSIONS))}"
        )
    return suffix.lstrip(".")


async def extract_epub_chapters(
    source: bytes | str | Path,
    on_progress: ProgressCallback | None = None,
    settings: Settings | None = None,
) -> ChapterTree:
    """Extract the navigation tree of an EPUB and load every leaf chapter's content."""
    settings = settings or Settings()
    archive = EpubArchive.from_source(source)
    package, raw_chapters = parse_epub_navigation(archive)

    chapters = await load_epub_contents(
        raw_chapters,
        archive,
        on_progress=on_progress,
        batch_size=settings.batch_size,
        batch_delay=settings.batch_delay,
        progress_interval=settings.progress_interval,
    )
    return ChapterTree(format="epub", chapters=chapters, title=package.title)


async def extract_chapters(
    source: bytes | str | Path,
    on_progress: ProgressCallback | None = None,
    settings: Settings | None = None,
) -> ChapterTree:
    """
    Extract the chapter tree of a PDF or EPUB.

    Args:
        source: Path to the book or its raw bytes
        on_progress: Optional callback receiving Progress(current, total, label)
        settings: Batch and progress tuning; defaults apply when omitted

    Raises:
        NoNavigationDataError: the book has no outline, nav document or NCX
        ParseError: the file could not be read
    """
    settings = settings or Settings()
    fmt = detect_format(source)
    logger.info("Extracting %s chapters", fmt)

    try:
        if fmt == "pdf":
            return await asyncio.to_thread(extract_pdf_chapters, source, on_progress, settings.progress_interval)
        return await extract_epub_chapters(source, on_progress, settings)
    except BookError:
        raise
    except Exception as e:
        raise ParseError(f"Failed to extract chapters: {e}") from e
