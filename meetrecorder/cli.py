"""Command-line entry point: version reporting and offline transcript segmentation."""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import Callable, Sequence, TextIO

from meetrecorder.batch import print_boundaries, run_batch
from meetrecorder.transcript import parse

VERSION = "dev"

_USAGE = "usage: recorder <segment|version>\n"
_SEGMENT_USAGE = "usage: recorder segment <transcript> [--boundaries] [--write]\n"

logger = logging.getLogger(__name__)

_installed: list[logging.Handler] = []


def _level_name(levelno: int) -> str:
    if levelno >= logging.ERROR:
        return "ERROR"
    if levelno >= logging.WARNING:
        return "WARN"
    if levelno >= logging.INFO:
        return "INFO"
    return "DEBUG"


def _quote(value: str) -> str:
    if value and value.isprintable() and not any(c in value for c in ' ="\\'):
        return value
    return json.dumps(value, ensure_ascii=False)


class _ConsoleFormatter(logging.Formatter):
    """key=value lines with a short clock time; the INFO level is left out."""

    def format(self, record: logging.LogRecord) -> str:
        parts = [f"time={datetime.fromtimestamp(record.created).strftime('%H:%M:%S')}"]
        if record.levelno != logging.INFO:
            parts.append(f"level={_level_name(record.levelno)}")
        parts.append(f"msg={_quote(record.getMessage())}")
        if record.exc_info:
            lines = self.formatException(record.exc_info).splitlines()
            if lines:
                parts.append(f"err={_quote(lines[-1])}")
        return " ".join(parts)


class _JSONFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "time": datetime.fromtimestamp(record.created).astimezone().isoformat(),
            "level": _level_name(record.levelno),
            "msg": record.getMessage(),
        }
        if record.exc_info:
            lines = self.formatException(record.exc_info).splitlines()
            if lines:
                entry["err"] = lines[-1]
        return json.dumps(entry, ensure_ascii=False)


def configure_logging(
    console: TextIO, log_file: str | os.PathLike[str] | None = None
) -> Callable[[], None]:
    """Send INFO and above to console, and as JSON lines to log_file when given.

    Replaces handlers installed by an earlier call. Returns a function that
    closes the log file. Raises OSError when the log file cannot be opened.
    """
    root = logging.getLogger()
    for handler in _installed:
        root.removeHandler(handler)
        handler.close()
    _installed.clear()

    console_handler = logging.StreamHandler(console)
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(_ConsoleFormatter())
    handlers: list[logging.Handler] = [console_handler]

    file_handler: logging.FileHandler | None = None
    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, mode="a", encoding="utf-8")
        file_handler.setLevel(logging.INFO)
        file_handler.setFormatter(_JSONFormatter())
        handlers.append(file_handler)

    for handler in handlers:
        root.addHandler(handler)
        _installed.append(handler)
    root.setLevel(logging.INFO)

    def close() -> None:
        if file_handler is None:
            return
        root.removeHandler(file_handler)
        if file_handler in _installed:
            _installed.remove(file_handler)
        file_handler.close()

    return close


def run_segment(args: Sequence[str]) -> int:
    """List the segments of a transcript file, or only its boundaries with --boundaries.

    Returns the exit status. Raises OSError when the file cannot be read and
    ValueError when it cannot be parsed or writing is requested.
    """
    if not args:
        sys.stderr.write(_SEGMENT_USAGE)
        return 1

    path = os.path.normpath(args[0])
    boundaries_only = "--boundaries" in args[1:]
    write = "--write" in args[1:]

    transcript = parse(Path(path).read_bytes())

    if boundaries_only:
        print_boundaries(transcript.events)
        return 0

    if write:
        raise ValueError("writing segments needs a configured summarizer")

    close = configure_logging(sys.stderr)
    try:
        run_batch(transcript.events, False)
    finally:
        close()
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Run the command named by the first argument and return the exit status."""
    args = list(sys.argv[1:] if argv is None else argv)
    configure_logging(sys.stderr)

    if not args:
        sys.stderr.write(_USAGE)
        return 1

    command = args[0]
    if command == "version":
        print(VERSION)
        return 0
    if command == "segment":
        try:
            return run_segment(args[1:])
        except Exception as exc:  # noqa: BLE001 - reported and turned into an exit status
            logger.error("segment failed: %s", exc)
            return 1

    logger.error("unknown command: %s", command)
    return 1


if __name__ == "__main__":
    sys.exit(main())