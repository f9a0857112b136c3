"""Load leaf chapter content out of an EPUB archive."""

import asyncio
import logging
import re
import warnings
from dataclasses import replace
from typing import Sequence

from bs4 import BeautifulSoup, Tag

from book_to_chapters.epub_utils import EpubArchive
from book_to_chapters.errors import MissingAnchorWarning
from book_to_chapters.models import EpubChapter, ProgressCallback
from book_to_chapters.progress import DEFAULT_INTERVAL, ProgressThrottle
from book_to_chapters.tree import collect_leaves, rebuild_tree

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 10
DEFAULT_BATCH_DELAY = 0.1  # seconds, yields to the event loop between batches

SECTIONING_TAGS = {"section", "div", "article"}
HEADING_PATTERN = re.compile(r"^h([1-6])$")
# A non-heading anchor ends at the first heading of any level
LOWEST_RANK = 999

DOCUMENT_TEMPLATE = """<!DOCTYPE html>
<html>
{head}
<body>
{body}
</body>
</html>
"""


def heading_rank(tag_name: str) -> int | None:
    match = HEADING_PATTERN.match(tag_name or "")
    return int(match.group(1)) if match else None


def extract_fragment(html: str, anchor: str) -> str:
    """
    Slice the section addressed by anchor out of an XHTML document.

    A sectioning element (section/div/article) is taken whole. Any other
    element, typically a heading, is taken together with its following
    siblings up to the next heading of equal or higher rank. If the anchor
    is not found the whole document is returned.
    """
    soup = BeautifulSoup(html, features="lxml")
    target = soup.find(id=anchor)
    if target is None:
        message = f"Anchor #{anchor} not found, using the whole resource"
        logger.debug(message)
        warnings.warn(message, MissingAnchorWarning, stacklevel=2)
        return html

    parts = [str(target)]
    if target.name not in SECTIONING_TAGS:
        rank = heading_rank(target.name) or LOWEST_RANK
        for sibling in target.next_siblings:
            if isinstance(sibling, Tag):
                sibling_rank = heading_rank(sibling.name)
                if sibling_rank is not None and sibling_rank <= rank:
                    break
            parts.append(str(sibling))

    head = soup.head
    return DOCUMENT_TEMPLATE.format(
        head=str(head) if head is not None else "<head></head>",
        body="".join(parts),
    )


async def load_epub_contents(
    chapters: Sequence[EpubChapter],
    archive: EpubArchive,
    on_progress: ProgressCallback | None = None,
    batch_size: int = DEFAULT_BATCH_SIZE,
    batch_delay: float = DEFAULT_BATCH_DELAY,
    progress_interval: float = DEFAULT_INTERVAL,
) -> tuple[EpubChapter, ...]:
    """
    Return a new tree with content filled in on every leaf.

    Leaves load in sequential batches of batch_size, the leaves of one batch
    concurrently. Each distinct resource path is read from the archive once,
    even when leaves in the same batch share it. Progress is reported at most
    once per progress_interval and always at the end of a batch.
    """
    leaves = collect_leaves(chapters)
    total = len(leaves)
    resources: dict[str, asyncio.Future] = {}
    contents: dict[str, str | None] = {}
    throttle = ProgressThrottle(on_progress, progress_interval)

    def _resource(path: str) -> asyncio.Future:
        if path not in resources:
            resources[path] = asyncio.ensure_future(asyncio.to_thread(archive.read_text, path))
        return resources[path]

    async def _load_leaf(leaf: EpubChapter, index: int) -> None:
        text = await _resource(leaf.href)
        if text is None:
            logger.warning("Resource %s for chapter '%s' not found in archive", leaf.href, leaf.title)
            contents[leaf.id] = None
            return
        contents[leaf.id] = extract_fragment(text, leaf.anchor) if leaf.anchor else text
        throttle.report(index + 1, total, leaf.title)

    for start in range(0, total, batch_size):
        batch = leaves[start:start + batch_size]
        await asyncio.gather(*(_load_leaf(leaf, start + i) for i, leaf in enumerate(batch)))

        throttle.report(min(start + batch_size, total), total, batch[-1].title, force=True)
        if start + batch_size < total and batch_delay > 0:
            await asyncio.sleep(batch_delay)

    logger.info("Loaded %d chapters from %d resources", total, len(resources))
    return rebuild_tree(chapters, annotate_leaf=lambda leaf: replace(leaf, content=contents.get(leaf.id)))
