"""
DocShelf CLI — Configuration and content inspection commands.

Commands:
- docshelf config   — Load and validate docshelf.yaml, print the effective config
- docshelf check    — Upload validation report for one or more files
- docshelf search   — Find a keyword in a text file split into pages on form feeds

Exit codes: 0 success, 1 validation failure or no matches, 2 usage error.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional

logger = logging.getLogger("docshelf.cli")

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_USAGE = 2


def main(argv: Optional[list] = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="docshelf",
        description="DocShelf — document management core",
    )
    parser.add_argument(
        "--config", default=None, help="Path to docshelf.yaml (default: search from project root)"
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # docshelf config
    subparsers.add_parser("config", help="Print the effective configuration as JSON")

    # docshelf check
    check_parser = subparsers.add_parser("check", help="Validate files for upload")
    check_parser.add_argument("files", nargs="+", help="Files to validate")

    # docshelf search
    search_parser = subparsers.add_parser("search", help="Search a text file page by page")
    search_parser.add_argument("file", help="Text file; pages are separated by form feeds")
    search_parser.add_argument("keyword", help="Keyword to look for (case-insensitive)")

    try:
        args = parser.parse_args(argv)
    except SystemExit as e:
        return EXIT_USAGE if e.code else EXIT_OK

    if args.command is None:
        parser.print_help()
        return EXIT_USAGE

    from docshelf.engine.errors import DocShelfConfigError

    try:
        if args.command == "config":
            return cmd_config(args)
        elif args.command == "check":
            return cmd_check(args)
        elif args.command == "search":
            return cmd_search(args)
    except DocShelfConfigError as e:
        print(f"[ERROR] {e.message}")
        for err in e.context.get("validation_errors") or []:
            print(f"  - {err.get('field')}: {err.get('error')}")
        return EXIT_FAILED

    parser.print_help()
    return EXIT_USAGE


def cmd_config(args: argparse.Namespace) -> int:
    """Load config (defaults when no file exists) and dump it."""
    from docshelf.engine.config import load_config

    config = load_config(args.config)
    print(json.dumps(config.model_dump(mode="json"), indent=2))
    return EXIT_OK


def cmd_check(args: argparse.Namespace) -> int:
    """Run every file through the upload validator."""
    from docshelf.documents.validation import (
        UploadValidator,
        detect_mime_type,
        format_file_size,
    )
    from docshelf.engine.config import load_config

    validator = UploadValidator.from_config(load_config(args.config))

    errors = 0
    for file_arg in args.files:
        path = Path(file_arg)
        if not path.is_file():
            print(f"[ERROR] {file_arg}: file not found")
            errors += 1
            continue
        size = path.stat().st_size
        valid, message = validator.validate(path.name, size, detect_mime_type(path.name))
        if valid:
            print(f"[OK] {file_arg}: {detect_mime_type(path.name)}, {format_file_size(size)}")
        else:
            print(f"[ERROR] {file_arg}: {message}")
            errors += 1

    print(f"\n{'All files valid!' if errors == 0 else f'{errors} file(s) rejected.'}")
    return EXIT_FAILED if errors else EXIT_OK


def cmd_search(args: argparse.Namespace) -> int:
    """Report matching pages and highlight each matching line."""
    from docshelf.app import split_pages
    from docshelf.engine.config import load_config
    from docshelf.viewer.text_search import TextSearchSession

    path = Path(args.file)
    if not path.is_file():
        print(f"[ERROR] File not found: {args.file}")
        return EXIT_USAGE
    if not args.keyword.strip():
        print("[ERROR] Keyword must not be empty")
        return EXIT_USAGE

    config = load_config(args.config)
    pages = split_pages(path.read_text(encoding="utf-8", errors="replace"))
    session = TextSearchSession(pages, css_class=config.search.highlight_class)
    matches = session.search(args.keyword)

    if not matches:
        print(f"No matches for '{args.keyword}' in {len(pages)} page(s)")
        return EXIT_FAILED

    print(f"'{args.keyword}' found on {len(matches)} of {len(pages)} page(s): {', '.join(map(str, matches))}")
    for page in matches:
        print(f"\n--- Page {page} ({session.page_status()}) ---")
        for line in session.render_page(page).splitlines():
            if f'class="{config.search.highlight_class}"' in line:
                print(f"  {line}")
        session.next()
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
