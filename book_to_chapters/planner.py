"""Turn a chapter selection and merge flags into an ordered list of export tasks."""

import logging
from dataclasses import replace
from typing import Iterable, Sequence

from book_to_chapters.models import Chapter, ChapterTree, ExportTask, MergeMode, PdfChapter
from book_to_chapters.tree import collect_leaves, get_descendants, iter_chapters
from book_to_chapters.utils import MAX_FILENAME_LENGTH, build_hierarchical_filename

logger = logging.getLogger(__name__)

MERGED_TASK_NAME = "Merged chapters"
INTRO_SUFFIX = "_intro"


def _sort_units(units: list[Chapter], is_pdf: bool) -> list[Chapter]:
    # EPUB units keep traversal order
    if is_pdf:
        return sorted(units, key=lambda ch: ch.start_page)
    return units


def independent_content(chapter: Chapter, selected_descendants: Sequence[Chapter]) -> Chapter | None:
    """
    Return a synthetic leaf for the part of a parent not covered by its selected descendants.

    PDF: the pages from the parent's start up to the earliest selected
    descendant, if the parent starts before it. EPUB: the parent's own
    content, if it has any.
    """
    if isinstance(chapter, PdfChapter):
        if not selected_descendants:
            return None
        first_start = min(ch.start_page for ch in selected_descendants)
        if chapter.start_page >= first_start:
            return None
        return replace(chapter, id=f"{chapter.id}{INTRO_SUFFIX}", end_page=first_start - 1, children=())

    if chapter.content:
        return replace(chapter, id=f"{chapter.id}{INTRO_SUFFIX}", children=())
    return None


def _merge_units(chapter: Chapter, selected: set[str], is_pdf: bool) -> tuple[list[Chapter], list[Chapter]]:
    """Return (content units, merged descendants) for a merge-flagged parent."""
    merged = [ch for ch in get_descendants(chapter) if ch.id in selected]
    if not merged:
        return [], []

    units = []
    for ch in merged:
        if ch.children:
            # A selected sub-parent contributes only its own independent span
            intro = independent_content(ch, [d for d in get_descendants(ch) if d.id in selected])
            if intro is not None:
                units.append(intro)
        else:
            units.append(ch)
    units = _sort_units(units, is_pdf)

    intro = independent_content(chapter, merged)
    if intro is not None:
        units.insert(0, intro)
    return units, merged


def plan_export(
    tree: ChapterTree,
    selected_ids: Iterable[str],
    merge_ids: Iterable[str] = (),
    mode: MergeMode = "separate",
) -> list[ExportTask]:
    """
    Plan the export of a chapter selection.

    Args:
        tree: The extracted chapter tree
        selected_ids: Ids of the selected chapters
        merge_ids: Ids of parents whose selected descendants merge into one file
        mode: "merge" combines everything into one task, but only when the
            whole tree is selected; otherwise it behaves like "separate"

    Returns:
        Export tasks in document order
    """
    if mode not in ("separate", "merge"):
        raise ValueError(f"Unknown merge mode: {mode!r}")

    is_pdf = tree.format == "pdf"
    selected = set(selected_ids)
    merge_flags = set(merge_ids)
    all_ids = {ch.id for ch in iter_chapters(tree.chapters)}

    if mode == "merge" and all_ids and selected == all_ids:
        leaves = _sort_units(collect_leaves(tree.chapters), is_pdf)
        return [ExportTask(name=MERGED_TASK_NAME, parent_titles=(), units=tuple(leaves), chapter_id="merged")]

    tasks: list[ExportTask] = []
    processed: set[str] = set()

    def _visit(chapter: Chapter, parent_titles: tuple[str, ...]) -> None:
        if chapter.id in processed:
            return

        if chapter.id in merge_flags and chapter.children:
            units, merged = _merge_units(chapter, selected, is_pdf)
            if merged:
                if units:
                    tasks.append(ExportTask(chapter.title, parent_titles, tuple(units), chapter.id))
                processed.add(chapter.id)
                processed.update(ch.id for ch in merged)
        elif chapter.id in selected:
            if chapter.children:
                selected_descendants = [ch for ch in get_descendants(chapter) if ch.id in selected]
                intro = independent_content(chapter, selected_descendants)
                if intro is not None:
                    tasks.append(ExportTask(chapter.title, parent_titles, (intro,), chapter.id))
                    processed.add(chapter.id)
                # otherwise children are evaluated on their own
            else:
                tasks.append(ExportTask(chapter.title, parent_titles, (chapter,), chapter.id))
                processed.add(chapter.id)

    def _traverse(chapters: Sequence[Chapter], parent_titles: tuple[str, ...]) -> None:
        for chapter in chapters:
            _visit(chapter, parent_titles)
            _traverse(chapter.children, (*parent_titles, chapter.title))

    _traverse(tree.chapters, ())
    logger.debug("Planned %d export tasks from %d selected chapters", len(tasks), len(selected))
    return tasks


def assign_filenames(
    tasks: Sequence[ExportTask],
    extension: str = ".pdf",
    max_length: int = MAX_FILENAME_LENGTH,
) -> list[tuple[str, ExportTask]]:
    """Pair each task with its ordered hierarchical filename."""
    return [
        (build_hierarchical_filename(i, task.parent_titles, task.name, extension, max_length), task)
        for i, task in enumerate(tasks)
    ]
