"""Shared data types for chapter trees and export tasks."""

from dataclasses import dataclass, field
from typing import Callable, Literal, NamedTuple, Union

UNTITLED = "Untitled"

MergeMode = Literal["separate", "merge"]


@dataclass(frozen=True)
class PdfChapter:
    id: str
    title: str
    level: int
    start_page: int          # 1-based, inclusive
    end_page: int            # 1-based, inclusive; equals start_page until resolved
    children: tuple["PdfChapter", ...] = ()

    @property
    def is_leaf(self) -> bool:
        return not self.children


@dataclass(frozen=True)
class EpubChapter:
    id: str
    title: str
    level: int
    href: str                # archive path of the XHTML resource
    anchor: str | None = None
    content: str | None = None
    children: tuple["EpubChapter", ...] = ()

    @property
    def is_leaf(self) -> bool:
        return not self.children


Chapter = Union[PdfChapter, EpubChapter]


@dataclass(frozen=True)
class ChapterTree:
    """Extracted chapter forest of one book."""
    format: Literal["pdf", "epub"]
    chapters: tuple[Chapter, ...]
    title: str = ""
    total_pages: int | None = None


class Progress(NamedTuple):
    current: int
    total: int
    label: str


ProgressCallback = Callable[[Progress], None]


@dataclass(frozen=True)
class ExportTask:
    """One output artifact: a name, its ancestor titles and ordered content units."""
    name: str
    parent_titles: tuple[str, ...]
    units: tuple[Chapter, ...]
    chapter_id: str = ""


@dataclass(frozen=True)
class ExportResult:
    filename: str
    data: bytes = field(repr=False)
    media_type: str = "application/pdf"
