"""Small pure traversals over immutable chapter trees."""

from dataclasses import replace
from typing import Callable, Iterator, Sequence, TypeVar

from book_to_chapters.models import Chapter

C = TypeVar("C", bound=Chapter)


def iter_chapters(chapters: Sequence[C]) -> Iterator[C]:
    """Yield every node in pre-order (a parent before its children)."""
    for ch in chapters:
        yield ch
        yield from iter_chapters(ch.children)


def collect_leaves(chapters: Sequence[C]) -> list[C]:
    """Return all leaf chapters in document order."""
    return [ch for ch in iter_chapters(chapters) if not ch.children]


def get_descendants(chapter: C) -> list[C]:
    """Return all descendants of a chapter in pre-order, excluding itself."""
    return list(iter_chapters(chapter.children))


def last_descendant_leaf(chapter: C) -> C:
    """Follow the last child down until a leaf is reached."""
    while chapter.children:
        chapter = chapter.children[-1]
    return chapter


def find_parent_titles(chapters: Sequence[Chapter], target_id: str) -> list[str] | None:
    """Return the titles of all ancestors of target_id, or None if it is not in the tree."""
    for ch in chapters:
        if ch.id == target_id:
            return []
        found = find_parent_titles(ch.children, target_id)
        if found is not None:
            return [ch.title, *found]
    return None


def rebuild_tree(
    chapters: Sequence[C],
    annotate_leaf: Callable[[C], C],
    annotate_parent: Callable[[C], C] | None = None,
) -> tuple[C, ...]:
    """
    Rebuild a tree bottom-up, returning new nodes.

    Leaves are passed through annotate_leaf. Parents are rebuilt after their
    children (post-order) and, with their new children attached, passed
    through annotate_parent.
    """
    rebuilt = []
    for ch in chapters:
        if not ch.children:
            rebuilt.append(annotate_leaf(ch))
            continue
        parent = replace(ch, children=rebuild_tree(ch.children, annotate_leaf, annotate_parent))
        rebuilt.append(annotate_parent(parent) if annotate_parent else parent)
    return tuple(rebuilt)
