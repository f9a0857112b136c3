"""Command-line interface for Book to Chapters."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from book_to_chapters.config import load_settings
from book_to_chapters.errors import BookError
from book_to_chapters.exporter import export_tasks
from book_to_chapters.extract import SUPPORTED_EXTENSIONS, extract_chapters
from book_to_chapters.logging_config import setup_logging
from book_to_chapters.models import ChapterTree, Progress
from book_to_chapters.planner import plan_export
from book_to_chapters.tree import get_descendants, iter_chapters
from book_to_chapters.utils import format_chapter_tree, sanitize_filename


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Export chapters of a PDF or EPUB as standalone PDF files",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s -i textbook.pdf --list
  %(prog)s -i textbook.pdf --all -o ./output
  %(prog)s -i novel.epub --select chapter-2,chapter-3
  %(prog)s -i textbook.pdf --select chapter-0 --merge-children chapter-0
  %(prog)s -i textbook.pdf --all --merge-mode merge
        """
    )
    parser.add_argument(
        "--input", "-i",
        required=True,
        help="Path to the input PDF or EPUB file"
    )
    parser.add_argument(
        "--output-dir", "-o",
        help="Output directory (default: same location as the input)"
    )
    parser.add_argument(
        "--list", "-l",
        action="store_true",
        dest="list_only",
        help="Just list the chapter tree with ids and exit"
    )
    selection = parser.add_mutually_exclusive_group()
    selection.add_argument(
        "--select", "-s",
        help="Comma-separated chapter ids to export; a parent id selects its sub-chapters too"
    )
    selection.add_argument(
        "--all", "-a",
        action="store_true",
        help="Export every chapter"
    )
    parser.add_argument(
        "--merge-children", "-m",
        default="",
        help="Comma-separated parent ids whose selected sub-chapters are combined into one file"
    )
    parser.add_argument(
        "--merge-mode",
        choices=["separate", "merge"],
        default="separate",
        help="With --all, 'merge' writes everything into a single PDF (default: separate)"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Show progress and informational log messages"
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        help="Also write log messages to this file"
    )

    return parser.parse_args(argv)


def split_ids(value: str | None) -> list[str]:
    return [part.strip() for part in (value or "").split(",") if part.strip()]


def check_ids(tree: ChapterTree, ids: list[str]) -> dict:
    """Map ids to their chapters, raising BookError for ids not in the tree."""
    by_id = {ch.id: ch for ch in iter_chapters(tree.chapters)}
    unknown = [i for i in ids if i not in by_id]
    if unknown:
        raise BookError(f"Unknown chapter id(s): {', '.join(unknown)}")
    return by_id


def expand_selection(tree: ChapterTree, ids: list[str]) -> set[str]:
    """Select each id together with all of its descendants, as ticking a parent does."""
    by_id = check_ids(tree, ids)

    selected = set()
    for chapter_id in ids:
        selected.add(chapter_id)
        selected.update(ch.id for ch in get_descendants(by_id[chapter_id]))
    return selected


def print_progress(progress: Progress) -> None:
    print(f"  [{progress.current}/{progress.total}] {progress.label}")


def main(argv: list[str] | None = None):
    """Main entry point."""
    args = parse_args(argv)
    try:
        settings = load_settings()
    except ValueError as e:
        print(f"Error: {e}")
        sys.exit(1)
    setup_logging(logging.INFO if args.verbose else settings.log_level, args.log_file)

    # Validate input file
    book_path = Path(args.input)
    if not book_path.exists():
        print(f"Error: File not found: {book_path}")
        sys.exit(1)

    if book_path.suffix.lower() not in SUPPORTED_EXTENSIONS:
        print(f"Error: File must be a PDF or EPUB: {book_path}")
        sys.exit(1)

    on_progress = print_progress if args.verbose else None

    print(f"Extracting chapters from: {book_path.name}")
    try:
        tree = asyncio.run(extract_chapters(book_path, on_progress, settings))
    except BookError as e:
        print(f"Error: {e}")
        sys.exit(1)

    if args.list_only:
        print("\nChapter structure:")
        print(format_chapter_tree(tree.chapters))
        sys.exit(0)

    if not args.all and not args.select:
        print("Error: Nothing selected. Use --select IDS or --all (see --list for ids)")
        sys.exit(1)

    try:
        if args.all:
            selected = {ch.id for ch in iter_chapters(tree.chapters)}
        else:
            selected = expand_selection(tree, split_ids(args.select))
        merge_ids = split_ids(args.merge_children)
        check_ids(tree, merge_ids)

        tasks = plan_export(tree, selected, merge_ids, args.merge_mode)
        if not tasks:
            print("Error: The selection produced no exportable chapters")
            sys.exit(1)

        print(f"\nExporting {len(tasks)} file(s)...")
        result = export_tasks(tree, tasks, book_path, book_path.name, on_progress, settings)
    except BookError as e:
        print(f"Error: {e}")
        sys.exit(1)

    output_dir = Path(args.output_dir) if args.output_dir else book_path.parent
    output_dir.mkdir(parents=True, exist_ok=True)
    output_path = output_dir / sanitize_filename(result.filename)
    output_path.write_bytes(result.data)

    print(f"\nDone! Created: {output_path}")


if __name__ == "__main__":
    main()
