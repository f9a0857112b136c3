"""Unit tests for EPUB content loading and anchor slicing."""

import pytest

from book_to_chapters.content_loader import extract_fragment, load_epub_contents
from book_to_chapters.epub_utils import EpubArchive
from book_to_chapters.errors import MissingAnchorWarning
from book_to_chapters.models import EpubChapter
from tests.samples import CH3_XHTML, TEXT_XHTML


class CountingArchive(EpubArchive):
    """Archive that records every resource read."""

    def __init__(self, files: dict[str, bytes]):
        super().__init__(files)
        self.reads: list[str] = []

    def read_text(self, path: str) -> str | None:
        self.reads.append(path)
        return super().read_text(path)


def leaf(chapter_id: str, href: str, anchor: str | None = None) -> EpubChapter:
    return EpubChapter(id=chapter_id, title=chapter_id, level=0, href=href, anchor=anchor)


class TestExtractFragment:
    """Tests for anchor-addressed fragment extraction."""

    def test_heading_runs_to_next_heading_of_same_rank(self) -> None:
        """An h2 anchor keeps lower-ranked headings and stops at the next h2."""
        fragment = extract_fragment(TEXT_XHTML, "s1")

        assert "First body." in fragment
        assert "Still first." in fragment
        assert "Second body." not in fragment
        assert "<title>Text</title>" in fragment

    def test_last_heading_runs_to_end(self) -> None:
        fragment = extract_fragment(TEXT_XHTML, "s2")

        assert "Second body." in fragment
        assert "First body." not in fragment

    def test_sectioning_element_taken_whole(self) -> None:
        fragment = extract_fragment(CH3_XHTML, "c3")

        assert '<section id="c3">' in fragment
        assert "Third body." in fragment

    def test_missing_anchor_returns_whole_resource(self) -> None:
        with pytest.warns(MissingAnchorWarning, match="#nowhere"):
            fragment = extract_fragment(TEXT_XHTML, "nowhere")

        assert fragment == TEXT_XHTML


class TestLoadEpubContents:
    """Tests for batched, deduplicated loading."""

    async def test_shared_resource_read_once(self) -> None:
        """Two anchors in one file: one read, two distinct fragments."""
        archive = CountingArchive({"OEBPS/text.xhtml": TEXT_XHTML.encode()})
        chapters = (leaf("a", "OEBPS/text.xhtml", "s1"), leaf("b", "OEBPS/text.xhtml", "s2"))

        loaded = await load_epub_contents(chapters, archive, batch_delay=0)

        assert archive.reads == ["OEBPS/text.xhtml"]
        first, second = (ch.content for ch in loaded)
        assert "First body." in first and "Second body." not in first
        assert "Second body." in second and "First body." not in second

    async def test_shared_resource_across_batches_read_once(self) -> None:
        archive = CountingArchive({"OEBPS/text.xhtml": TEXT_XHTML.encode()})
        chapters = tuple(leaf(f"c{i}", "OEBPS/text.xhtml", "s1") for i in range(5))

        await load_epub_contents(chapters, archive, batch_size=2, batch_delay=0)

        assert archive.reads == ["OEBPS/text.xhtml"]

    async def test_only_leaves_get_content(self) -> None:
        """Parents keep no content; leaves without an anchor get the whole resource."""
        archive = EpubArchive({"a.xhtml": b"<p>A</p>", "p.xhtml": b"<p>P</p>"})
        parent = EpubChapter(id="p", title="P", level=0, href="p.xhtml", children=(leaf("p-0", "a.xhtml"),))

        (loaded,) = await load_epub_contents((parent,), archive, batch_delay=0)

        assert loaded.content is None
        assert loaded.children[0].content == "<p>A</p>"
        assert parent.children[0].content is None

    async def test_missing_resource_leaves_content_empty(self) -> None:
        (loaded,) = await load_epub_contents((leaf("x", "missing.xhtml"),), EpubArchive({}), batch_delay=0)

        assert loaded.content is None

    async def test_progress_once_per_batch_when_throttled(self) -> None:
        """With a long interval only the mandatory end-of-batch events arrive."""
        archive = EpubArchive({"a.xhtml": b"<p>A</p>"})
        chapters = tuple(leaf(f"c{i}", "a.xhtml") for i in range(5))
        events = []

        await load_epub_contents(
            chapters, archive, on_progress=events.append,
            batch_size=2, batch_delay=0, progress_interval=60,
        )

        assert [(e.current, e.total, e.label) for e in events] == [(2, 5, "c1"), (4, 5, "c3"), (5, 5, "c4")]

    async def test_progress_unthrottled_reports_every_leaf(self) -> None:
        archive = EpubArchive({"a.xhtml": b"<p>A</p>"})
        chapters = tuple(leaf(f"c{i}", "a.xhtml") for i in range(3))
        events = []

        await load_epub_contents(chapters, archive, on_progress=events.append, batch_size=3,
                                 batch_delay=0, progress_interval=0)

        assert len(events) == 4
        assert events[-1].current == events[-1].total == 3
