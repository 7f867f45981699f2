from __future__ import annotations

import argparse
import logging
import os
from dataclasses import dataclass
from pathlib import Path

from hnbrowse.comments import DEFAULT_INDENT_SIZE
from hnbrowse.sources import DEFAULT_API_BASE

VALID_SOURCES = ("hackerweb", "rss", "mock")
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@dataclass
class AppConfig:
    source: str
    api_base: str
    comment_width: int
    indent_size: int
    status_seconds: float
    timeout_seconds: int
    compact: bool
    debug: bool
    shuffle: bool
    log_file: str
    thread_id: int | None
    once: bool


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got '{raw}'") from exc


def parse_args(argv: list[str]) -> AppConfig:
    parser = argparse.ArgumentParser(
        description="Browse Hacker News stories and comment threads in the terminal."
    )
    parser.add_argument(
        "--source",
        choices=VALID_SOURCES,
        default=os.getenv("HNBROWSE_SOURCE", "hackerweb"),
    )
    parser.add_argument("--api-base", default=os.getenv("HNBROWSE_API_BASE", DEFAULT_API_BASE))
    parser.add_argument(
        "--comment-width",
        type=int,
        default=_env_int("CLX_COMMENT_WIDTH", 0),
        help="Maximum comment text width; 0 uses the terminal width.",
    )
    parser.add_argument(
        "--indent-size",
        type=int,
        default=_env_int("CLX_INDENT_SIZE", DEFAULT_INDENT_SIZE),
    )
    parser.add_argument("--status-seconds", type=float, default=1.0)
    parser.add_argument("--timeout-seconds", type=int, default=20)
    parser.add_argument("--compact", action="store_true", help="One row per story.")
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Use offline mock data and shuffle freshly loaded categories.",
    )
    parser.add_argument("--shuffle", action="store_true")
    parser.add_argument("--log-file", default=os.getenv("HNBROWSE_LOG_FILE", ""))
    parser.add_argument("--thread", type=int, default=None, help="Print one thread and exit.")
    parser.add_argument("--once", action="store_true", help="Print the front page and exit.")

    args = parser.parse_args(argv)

    if args.source not in VALID_SOURCES:
        raise ValueError(f"Unknown source '{args.source}'. Valid sources: {', '.join(VALID_SOURCES)}")
    if args.comment_width < 0:
        raise ValueError("--comment-width must be >= 0")
    if args.indent_size < 0:
        raise ValueError("--indent-size must be >= 0")
    if args.status_seconds < 0:
        raise ValueError("--status-seconds must be >= 0")
    if args.timeout_seconds < 1:
        raise ValueError("--timeout-seconds must be >= 1")

    return AppConfig(
        source="mock" if args.debug else args.source,
        api_base=args.api_base,
        comment_width=args.comment_width,
        indent_size=args.indent_size,
        status_seconds=args.status_seconds,
        timeout_seconds=args.timeout_seconds,
        compact=args.compact,
        debug=args.debug,
        shuffle=args.shuffle or args.debug,
        log_file=args.log_file,
        thread_id=args.thread,
        once=args.once,
    )


def configure_logging(log_file: str, debug: bool = False) -> None:
    """Send log records to ``log_file``; without one, the screen stays clean."""
    if log_file:
        handler: logging.Handler = logging.FileHandler(Path(log_file), encoding="utf-8")
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
    else:
        handler = logging.NullHandler()

    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        handlers=[handler],
        force=True,
    )
    logging.getLogger("urllib3").setLevel(logging.WARNING)
