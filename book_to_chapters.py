#!/usr/bin/env python3
"""
Book to Chapters - Export chapters of PDF and EPUB books as standalone PDFs.

This is a thin wrapper that calls the main CLI module.
"""

from book_to_chapters.cli import main

if __name__ == "__main__":
    main()
