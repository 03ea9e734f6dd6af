"""Command line entry point for gamedata detection."""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import Optional, Sequence

from .exceptions import ReaderError, UnknownFormat
from .gamedata import GameDataFinder
from .image import ByteImage
from .logging_config import DiagnosticSink, LoggerSink, close_debug_logger, configure_debug_file_logger, discard
from .models import CompressionHint
from .pe import find_upx_hint

DIAGNOSTICS_LOGGER = "gmfind.diagnostics"
LOG_FILE_ENV = "GMFIND_LOG_FILE"


def _u32(text: str) -> int:
    try:
        value = int(text, 0)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not an integer: {text!r}") from None
    if not 0 <= value <= 0xFFFFFFFF:
        raise argparse.ArgumentTypeError(f"{text} does not fit in 32 bits")
    return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gmfind",
        description="Identify GameMaker 8.x runners and strip antidec protection",
    )
    parser.add_argument("exe", help="Executable to inspect")
    parser.add_argument(
        "--upx",
        choices=("auto", "off"),
        default="auto",
        help="Detect UPX from the PE section table (default) or never unpack",
    )
    parser.add_argument("--upx-max-size", type=_u32, default=None, help="Explicit unpacked size limit")
    parser.add_argument("--upx-offset", type=_u32, default=None, help="Explicit file offset of the UPX payload")
    parser.add_argument("--verbose", "-v", action="store_true", help="Print diagnostics to stderr")
    parser.add_argument(
        "--log-file",
        default=os.environ.get(LOG_FILE_ENV),
        help=f"Write diagnostics to this file (default: ${LOG_FILE_ENV})",
    )
    parser.add_argument("--output", "-o", default=None, help="Optional JSON output path")
    return parser


def _resolve_hint(args: argparse.Namespace, image: ByteImage) -> Optional[CompressionHint]:
    if args.upx_max_size is not None:
        return CompressionHint(args.upx_max_size, args.upx_offset)
    if args.upx == "off":
        return None
    return find_upx_hint(image)


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    if (args.upx_max_size is None) != (args.upx_offset is None):
        parser.error("--upx-max-size and --upx-offset must be given together")

    diagnostics = logging.getLogger(DIAGNOSTICS_LOGGER)
    stream_handler: logging.Handler | None = None
    if args.log_file:
        configure_debug_file_logger(DIAGNOSTICS_LOGGER, Path(args.log_file))
    if args.verbose:
        stream_handler = logging.StreamHandler(sys.stderr)
        stream_handler.setFormatter(logging.Formatter("%(message)s"))
        diagnostics.addHandler(stream_handler)
        diagnostics.setLevel(logging.DEBUG)
        diagnostics.propagate = False
    sink: DiagnosticSink = LoggerSink(diagnostics) if (args.log_file or args.verbose) else discard

    try:
        try:
            image = ByteImage.from_path(args.exe)
        except OSError as exc:
            print(f"gmfind: cannot read {args.exe}: {exc}", file=sys.stderr)
            return 2

        report: dict = {"path": Path(args.exe).as_posix()}
        hint = _resolve_hint(args, image)
        if hint is not None:
            report["upx"] = {"max_size": hint.max_size, "disk_offset": hint.disk_offset}

        try:
            result = GameDataFinder().locate(image, sink, hint)
        except UnknownFormat as exc:
            report.update({"version": None, "error": str(exc)})
            status = 1
        except ReaderError as exc:
            report.update({"version": None, "error": str(exc)})
            status = 2
        else:
            report.update(result.to_json())
            status = 0

        text = json.dumps(report, indent=2)
        print(text)
        if args.output:
            Path(args.output).write_text(text, encoding="utf-8")
        return status
    finally:
        close_debug_logger(diagnostics)
        if stream_handler is not None:
            diagnostics.removeHandler(stream_handler)


if __name__ == "__main__":  # pragma: no cover - CLI wrapper
    raise SystemExit(main())


__all__ = ["build_parser", "main"]
