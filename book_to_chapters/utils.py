"""Shared utility functions."""

import re
from typing import Sequence

from book_to_chapters.models import Chapter, PdfChapter

MAX_FILENAME_LENGTH = 200


def sanitize_filename(name: str, max_length: int = MAX_FILENAME_LENGTH) -> str:
    """Sanitize a string to be used as a filename on Windows, macOS and Linux."""
    sanitized = re.sub(r'[/\\]', '_', name)
    sanitized = re.sub(r'[<>:"|?*]', '_', sanitized)
    sanitized = re.sub(r'[\x00-\x1f]', '_', sanitized)
    # Windows rejects leading/trailing dots
    sanitized = sanitized.strip().strip('.')
    return sanitized[:max_length]


def build_hierarchical_filename(
    index: int,
    parent_titles: Sequence[str],
    title: str,
    extension: str = ".pdf",
    max_length: int = MAX_FILENAME_LENGTH,
) -> str:
    """
    Build an ordered filename from the task index and its title chain.

    Example: (0, ["Part One"], "Chapter 1") -> "01_Part One_Chapter 1.pdf"
    """
    prefix = f"{index + 1:02d}"
    parts = [sanitize_filename(t, max_length) for t in (*parent_titles, title)]
    stem = "_".join([prefix, *parts])

    budget = max(len(prefix), max_length - len(extension))
    if len(stem) > budget:
        stem = stem[:budget].rstrip(" ._")
    return f"{stem}{extension}"


def format_chapter_tree(chapters: Sequence[Chapter]) -> str:
    """Format a chapter tree as an indented listing."""
    lines = []

    def _walk(items: Sequence[Chapter]) -> None:
        for ch in items:
            indent = "  " * ch.level
            if isinstance(ch, PdfChapter):
                pages = ch.end_page - ch.start_page + 1
                lines.append(f"{indent}[{ch.id}] {ch.title} (pages {ch.start_page}-{ch.end_page}, {pages}p)")
            else:
                target = f"{ch.href}#{ch.anchor}" if ch.anchor else ch.href
                marker = "" if ch.children else (" ok" if ch.content else " no content")
                lines.append(f"{indent}[{ch.id}] {ch.title} -> {target}{marker}")
            _walk(ch.children)

    _walk(chapters)
    return "\n".join(lines)
