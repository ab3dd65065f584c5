#!/usr/bin/env python3
"""Convert a markdown file in the document dialect to a branded PDF."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from docgen.config import load_render_config
from docgen.errors import DocumentError
from docgen.pdf_service import markdown_to_pdf


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Render a markdown document to PDF.")
    parser.add_argument("input", help="Markdown source file (UTF-8).")
    parser.add_argument("output", nargs="?", default="", help="Output PDF path; defaults to the input with .pdf.")
    parser.add_argument("--title", default="", help="PDF title metadata; defaults to the file stem.")
    parser.add_argument(
        "--pagination",
        choices=["manual", "auto"],
        default=None,
        help="Override markdown pagination (manual breaks only, or automatic reflow).",
    )
    parser.add_argument("--page-size", choices=["Letter", "A4"], default=None)
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s - %(message)s")
    args = parse_args(argv)

    source = Path(args.input)
    output = Path(args.output) if args.output else source.with_suffix(".pdf")
    try:
        text = source.read_text(encoding="utf-8")
    except OSError as e:
        print(f"error: cannot read {source}: {e}", file=sys.stderr)
        return 1

    overrides = {}
    if args.pagination:
        overrides["markdown_pagination"] = args.pagination
    if args.page_size:
        overrides["page_size"] = args.page_size
    config = load_render_config().model_copy(update=overrides)

    try:
        result = markdown_to_pdf(text, title=args.title or source.stem, config=config, use_cache=False)
    except DocumentError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    output.write_bytes(result.pdf)
    print(f"saved_pdf={output} pages={result.page_count} clipped_writes={result.clipped_writes}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
