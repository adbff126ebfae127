"""Command-line interface for mixmark."""

from __future__ import annotations

import argparse
import dataclasses
import json
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from .version import __version__

if TYPE_CHECKING:
    from .core import SegmenterConfig

EXIT_INVALID_ARGS = 6
EXIT_OUTPUT = 7

MODES = ("segment", "flatten", "marked-text", "to-html", "render")


def _get_usage() -> str:
    return (
        f"mixmark {__version__}\n"
        "Usage:\n"
        "  mixmark [--help] [--version|--ver]\n"
        "  mixmark --input PATH|- [options]\n\n"
        "Options:\n"
        "  --output PATH                Write the result to PATH instead of stdout\n"
        "  --mode MODE                  segment (default), flatten, marked-text, to-html, render\n"
        "  --plain-text                 Never classify residual text as Markdown\n"
        "  --no-inline-tags             Treat <latex-inline> as an ordinary tag\n"
        "  --verbose                    Verbose progress logs\n"
        "  --debug                      Debug logs"
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(add_help=False)
    parser.add_argument("--help", action="store_true")
    parser.add_argument("--version", action="store_true")
    parser.add_argument("--ver", action="store_true")
    parser.add_argument("--input", help="Source file with mixed Markdown/LaTeX/HTML content, or - for stdin")
    parser.add_argument("--output", help="Output file (default: stdout)")
    parser.add_argument("--mode", default="segment", help="Operation to run on the input")
    parser.add_argument("--plain-text", action="store_true", help="Tag residual spans as text, never markdown")
    parser.add_argument("--no-inline-tags", action="store_true", help="Do not recognize <latex-inline> tags")
    parser.add_argument("--verbose", action="store_true", help="Verbose progress logs")
    parser.add_argument("--debug", action="store_true", help="Debug logs")
    return parser


def _read_source(value: str) -> str:
    if value == "-":
        return sys.stdin.read()
    path = Path(value).expanduser().resolve()
    if not path.exists() or not path.is_file():
        raise ValueError(f"Input file not found: {path}")
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ValueError(f"Unable to read input file {path}: {exc}") from exc


def _run_mode(mode: str, source: str, config: SegmenterConfig) -> str:
    from mixmark import core, markup, render, roundtrip

    if mode == "segment":
        document = core.parse_content(source, config)
        return json.dumps(document.to_dicts(), ensure_ascii=False, indent=2) + "\n"
    if mode == "flatten":
        return markup.flatten_html(source, recognize_inline_tags=config.recognize_inline_tags)
    if mode == "marked-text":
        return roundtrip.to_marked_text(source, recognize_inline_tags=config.recognize_inline_tags)
    if mode == "to-html":
        return roundtrip.to_restricted_html(source)
    return render.render_document(core.parse_content(source, config))


def main(argv: list[str] | None = None) -> int:
    if argv is None:
        argv = sys.argv[1:]

    parser = _build_parser()
    args, unknown = parser.parse_known_args(argv)
    if unknown:
        print(_get_usage())
        return 2

    if not argv or args.help:
        print(_get_usage())
        return 0

    if args.version or args.ver:
        print(__version__)
        return 0

    if args.mode not in MODES:
        print(f"Invalid value for --mode: {args.mode} (expected one of {', '.join(MODES)})", file=sys.stderr)
        return EXIT_INVALID_ARGS

    if not args.input:
        print(_get_usage())
        print("Option --input is required unless --help or --version/--ver is used", file=sys.stderr)
        return EXIT_INVALID_ARGS

    try:
        from mixmark import core
    except Exception as exc:
        print(f"Unable to import mixmark core: {exc}", file=sys.stderr)
        return EXIT_INVALID_ARGS

    core.setup_logging(args.verbose, args.debug)

    config = core.SegmenterConfig.from_env()
    if args.plain_text:
        config = dataclasses.replace(config, classify_markdown=False)
    if args.no_inline_tags:
        config = dataclasses.replace(config, recognize_inline_tags=False)

    try:
        source = _read_source(args.input)
    except ValueError as exc:
        print(str(exc), file=sys.stderr)
        return EXIT_INVALID_ARGS

    try:
        result = _run_mode(args.mode, source, config)
    except RuntimeError as exc:
        print(str(exc), file=sys.stderr)
        return EXIT_INVALID_ARGS

    core.LOG.info("Mode %s produced %d char(s)", args.mode, len(result))

    if not args.output:
        sys.stdout.write(result)
        return 0

    out_path = Path(args.output).expanduser().resolve()
    if out_path.exists() and out_path.is_dir():
        print(f"Output path is a directory: {out_path}", file=sys.stderr)
        return EXIT_OUTPUT
    try:
        out_path.parent.mkdir(parents=True, exist_ok=True)
        out_path.write_text(result, encoding="utf-8", newline="\n")
    except OSError as exc:
        print(f"Unable to write output file {out_path}: {exc}", file=sys.stderr)
        return EXIT_OUTPUT
    if args.verbose:
        print(f"Output written to {out_path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
