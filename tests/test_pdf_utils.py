"""Unit tests for the PDF outline parser and page copying."""

import fitz  # PyMuPDF
import pytest

from book_to_chapters.errors import NoNavigationDataError, ParseError, UnresolvableDestinationWarning
from book_to_chapters.pdf_utils import (
    build_chapter,
    copy_page_range,
    extract_pdf_chapters,
    group_toc_entries,
    merge_page_ranges,
)
from book_to_chapters.tree import iter_chapters


def page_texts(pdf_bytes: bytes) -> list[str]:
    with fitz.open(stream=pdf_bytes, filetype="pdf") as doc:
        return [page.get_text().strip() for page in doc]


def chapters_from_rows(rows: list[list], page_count: int = 10) -> list:
    return [build_chapter(node, 0, f"chapter-{i}", page_count) for i, node in enumerate(group_toc_entries(rows))]


class TestExtractPdfChapters:
    """Tests for outline extraction on real PDFs."""

    def test_reference_outline(self, outline_pdf: bytes) -> None:
        """Outline ids, levels and resolved ranges match the document."""
        tree = extract_pdf_chapters(outline_pdf)
        nodes = {c.id: c for c in iter_chapters(tree.chapters)}

        assert tree.format == "pdf"
        assert tree.total_pages == 30
        assert list(nodes) == ["chapter-0", "chapter-0-0", "chapter-0-1", "chapter-1"]
        assert [nodes[i].title for i in nodes] == ["A", "A1", "A2", "B"]
        assert nodes["chapter-0-1"].level == 1
        assert (nodes["chapter-0-0"].start_page, nodes["chapter-0-0"].end_page) == (1, 9)
        assert (nodes["chapter-0-1"].start_page, nodes["chapter-0-1"].end_page) == (10, 19)
        assert (nodes["chapter-0"].start_page, nodes["chapter-0"].end_page) == (1, 19)
        assert (nodes["chapter-1"].start_page, nodes["chapter-1"].end_page) == (20, 30)

    def test_no_outline_raises(self, make_pdf) -> None:
        """A PDF without bookmarks is reported as having no table of contents."""
        with pytest.raises(NoNavigationDataError, match="no table of contents"):
            extract_pdf_chapters(make_pdf(3))

    def test_cleared_outline_raises(self, outline_pdf: bytes) -> None:
        """Bookmarks removed after the fact count as no table of contents too."""
        with fitz.open(stream=outline_pdf, filetype="pdf") as doc:
            doc.set_toc([])
            data = doc.tobytes()

        with pytest.raises(NoNavigationDataError):
            extract_pdf_chapters(data)

    def test_invalid_bytes_raise_parse_error(self) -> None:
        with pytest.raises(ParseError):
            extract_pdf_chapters(b"not a pdf at all")

    def test_progress_reports_final_entry(self, outline_pdf: bytes) -> None:
        """The last top-level entry is always reported."""
        events = []
        extract_pdf_chapters(outline_pdf, on_progress=events.append, progress_interval=60)

        assert events[-1].current == events[-1].total == 2
        assert events[-1].label == "B"


class TestOutlineRows:
    """Tests for nesting outline rows and resolving their pages."""

    def test_unresolvable_destination_defaults_to_first_page(self) -> None:
        """An entry without a destination (page -1) falls back to page 1 with a warning."""
        with pytest.warns(UnresolvableDestinationWarning, match="Lost"):
            (chapter,) = chapters_from_rows([[1, "Lost", -1]])

        assert chapter.start_page == 1

    def test_out_of_range_destination_defaults_to_first_page(self) -> None:
        with pytest.warns(UnresolvableDestinationWarning):
            (chapter,) = chapters_from_rows([[1, "Far", 99]])

        assert chapter.start_page == 1

    def test_children_ids_and_blank_titles(self) -> None:
        """Children get parentId-index ids in sibling order; blank titles get a placeholder."""
        (root,) = chapters_from_rows([[1, "Root", 1], [2, "   ", 3], [2, "Second", 6]])

        assert [c.id for c in root.children] == ["chapter-0-0", "chapter-0-1"]
        assert [c.title for c in root.children] == ["Untitled", "Second"]
        assert [c.start_page for c in root.children] == [3, 6]
        assert root.children[0].level == 1

    def test_rows_nest_under_nearest_shallower_entry(self) -> None:
        """A deeper row attaches to the closest preceding row with a lower level."""
        first, second = chapters_from_rows([[1, "A", 1], [2, "A1", 2], [3, "A1a", 3], [2, "A2", 4], [1, "B", 5]])

        assert [c.title for c in first.children] == ["A1", "A2"]
        assert first.children[0].children[0].id == "chapter-0-0-0"
        assert first.children[0].children[0].level == 2
        assert second.id == "chapter-1" and not second.children


class TestCopyPages:
    """Tests for page-range copying."""

    def test_copy_page_range(self, outline_pdf: bytes) -> None:
        texts = page_texts(copy_page_range(outline_pdf, 10, 12))

        assert texts == ["Page 10", "Page 11", "Page 12"]

    def test_merge_page_ranges_in_order(self, outline_pdf: bytes) -> None:
        texts = page_texts(merge_page_ranges(outline_pdf, [(1, 2), (29, 30)]))

        assert texts == ["Page 1", "Page 2", "Page 29", "Page 30"]
