"""Page range resolution for PDF chapter trees."""

from dataclasses import replace
from typing import Sequence

from book_to_chapters.models import PdfChapter
from book_to_chapters.tree import collect_leaves, last_descendant_leaf, rebuild_tree


def compute_leaf_end_pages(chapters: Sequence[PdfChapter], total_pages: int) -> dict[str, int]:
    """
    Compute the end page of every leaf, keyed by chapter id.

    Leaves are ordered by start page (stable, so equal starts keep outline
    order). Each leaf ends the page before the next leaf starts; the last one
    ends at total_pages. An end never falls below its own start page.
    """
    leaves = sorted(collect_leaves(chapters), key=lambda ch: ch.start_page)

    end_pages = {}
    for i, leaf in enumerate(leaves):
        if i + 1 < len(leaves):
            end = leaves[i + 1].start_page - 1
        else:
            end = total_pages
        end_pages[leaf.id] = max(end, leaf.start_page)
    return end_pages


def resolve_page_ranges(chapters: Sequence[PdfChapter], total_pages: int) -> tuple[PdfChapter, ...]:
    """
    Return a new tree with end pages resolved for every chapter.

    Parents end where their last descendant leaf ends; their start page is
    kept as declared by the outline, so a parent may span pages before its
    first child.
    """
    end_pages = compute_leaf_end_pages(chapters, total_pages)

    return rebuild_tree(
        chapters,
        annotate_leaf=lambda leaf: replace(leaf, end_page=end_pages[leaf.id]),
        annotate_parent=lambda parent: replace(parent, end_page=last_descendant_leaf(parent).end_page),
    )
