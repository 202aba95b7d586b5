"""Offline segmentation of a parsed transcript."""

from __future__ import annotations

import logging
import sys
import threading
from datetime import datetime
from typing import TextIO

from meetrecorder.segment import detect_boundaries, split_at_boundaries
from meetrecorder.segmenter import Handler
from meetrecorder.transcript import Event

logger = logging.getLogger(__name__)


def print_boundaries(events: list[Event], out: TextIO | None = None, now: datetime | None = None) -> None:
    """Write the detected segment boundaries, one per line."""
    out = out if out is not None else sys.stdout
    for b in detect_boundaries(events, now if now is not None else datetime.now()):
        out.write(f"[{b.time.strftime('%H:%M:%S')}] {b.reason}\n")


def run_batch(
    events: list[Event],
    write: bool,
    handler: Handler | None = None,
    out: TextIO | None = None,
    stop: threading.Event | None = None,
) -> None:
    """List detected segments and, when write is set, summarize and write each one.

    Raises InterruptedError when stop is set before all segments are handled.
    """
    out = out if out is not None else sys.stdout
    segments = split_at_boundaries(events, detect_boundaries(events, datetime.now()))

    for seg in segments:
        speech_count = sum(1 for e in seg.events if e.is_speech())
        out.write(
            f"segment {seg.id}: {seg.start.strftime('%H:%M')}–{seg.end.strftime('%H:%M')} "
            f"({speech_count} speech events)\n"
        )

    if not write:
        return
    if handler is None:
        raise ValueError("a handler is required to write segments")

    date = datetime.now().strftime("%Y-%m-%d")
    for seg in segments:
        if stop is not None and stop.is_set():
            raise InterruptedError("batch cancelled")
        try:
            title, summary, skip = handler.summarize(seg, date)
        except Exception:
            logger.exception("summarize failed: segment %s", seg.id)
            continue
        if skip:
            out.write(f"  {seg.id}: skipped\n")
            continue
        try:
            filename = handler.write_segment(title, summary, seg, date)
        except Exception:
            logger.exception("write segment failed: segment %s", seg.id)
            continue
        out.write(f"  {seg.id}: wrote {filename}\n")