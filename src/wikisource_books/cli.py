"""Command line entry point: ``wikisource-books`` / ``python -m wikisource_books``."""
from __future__ import annotations

import argparse
import asyncio
import logging
import shutil
import sys
from typing import List, Optional

from .api import export_page, fetch_document
from .builder import load_builder
from .config import PAGE_SOURCES, Settings
from .converter import FORMATS
from .exceptions import WikisourceError


def _build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Export Wikisource pages as e-books")
    ap.add_argument("-v", "--verbose", action="store_true", help="Debug logging (HTTP requests, converter calls)")
    sub = ap.add_subparsers(dest="command", required=True)

    sub.add_parser("formats", help="List output formats handled by ebook-convert")

    page = sub.add_parser("page", help="Fetch a page and write its XHTML")
    page.add_argument("lang", help="Wiki language code, e.g. fr, en, www, wl, enwikibooks")
    page.add_argument("title", help="Page title")
    page.add_argument("--source", choices=PAGE_SOURCES, help="Page retrieval strategy (default: WSEXPORT_PAGE_SOURCE or api)")
    page.add_argument("-o", "--output", help="Write to this file instead of stdout")

    conv = sub.add_parser("convert", help="Export a page to an e-book format")
    conv.add_argument("lang", help="Wiki language code")
    conv.add_argument("title", help="Page title")
    conv.add_argument("format", help="Format key, see `formats`")
    conv.add_argument("--builder", required=True, help="EPUB builder as module:attribute")
    conv.add_argument("-o", "--output", help="Destination file (default: temp file path is printed)")
    conv.add_argument("--source", choices=PAGE_SOURCES, help="Page retrieval strategy")
    conv.add_argument("--timeout", type=float, help="Converter timeout in seconds (default 120)")
    conv.add_argument("--tool", help="Path to ebook-convert")
    return ap


def _settings(args: argparse.Namespace) -> Settings:
    settings = Settings.from_env()
    if getattr(args, "source", None):
        settings.page_source = args.source
    if getattr(args, "timeout", None):
        settings.exec_timeout = max(1.0, args.timeout)
    if getattr(args, "tool", None):
        settings.ebook_convert = args.tool
    return settings


def main(argv: Optional[List[str]] = None) -> int:  # pragma: no cover
    args = _build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        if args.command == "formats":
            for key, cfg in FORMATS.items():
                print(f"{key:<12} .{cfg.extension:<6} {cfg.mime_type}")
            return 0

        settings = _settings(args)
        if args.command == "page":
            doc = asyncio.run(fetch_document(args.title, args.lang, page_source=settings.page_source))
            if args.output:
                with open(args.output, "w", encoding="utf-8") as fh:
                    fh.write(doc.content)
                print(f"[✓] Wrote {args.output}")
            else:
                sys.stdout.write(doc.content + "\n")
            return 0

        def on_event(ev: dict) -> None:
            t = ev.get("type")
            if t == "page_fetch_start":
                print(f"[ .. ] fetching {ev.get('title')} …", end="", flush=True)
            elif t == "page_fetch_done":
                print(" ok")
            elif t == "convert_start":
                print(f"[ .. ] converting to {ev.get('format')} …", end="", flush=True)
            elif t == "convert_done":
                print(" ok")

        out_path = asyncio.run(export_page(
            args.title,
            args.format,
            lang=args.lang,
            builder=load_builder(args.builder),
            settings=settings,
            on_event=on_event,
        ))
        if args.output:
            shutil.move(out_path, args.output)
            out_path = args.output
        print(f"[✓] Done: {out_path}")
        return 0
    except WikisourceError as e:
        print(f"\n[!] {e}", file=sys.stderr)
        return 2
    except Exception as e:  # noqa: BLE001
        print(f"\n[!] Error: {e}", file=sys.stderr)
        return 2
