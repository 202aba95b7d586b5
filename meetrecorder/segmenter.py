"""Online segmentation of a live transcript with background summarization."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Protocol

from meetrecorder.segment import SILENCE_THRESHOLD, Boundary, Segment, slugify, snap_pin
from meetrecorder.transcript import Event, EventType

logger = logging.getLogger(__name__)


class Handler(Protocol):
    """Summarizes and writes completed segments."""

    def summarize(self, seg: Segment, date: str) -> tuple[str, str, bool]:
        """Return (title, summary, skip); raise on failure."""
        ...

    def write_segment(self, title: str, summary: str, seg: Segment, date: str) -> str:
        """Write the segment and return the file name; raise on failure."""
        ...


@dataclass
class FuncHandler:
    """Handler built from two plain callables."""

    summarize_fn: Callable[[Segment, str], tuple[str, str, bool]]
    write_segment_fn: Callable[[str, str, Segment, str], str]

    def summarize(self, seg: Segment, date: str) -> tuple[str, str, bool]:
        """Delegate to summarize_fn."""
        return self.summarize_fn(seg, date)

    def write_segment(self, title: str, summary: str, seg: Segment, date: str) -> str:
        """Delegate to write_segment_fn."""
        return self.write_segment_fn(title, summary, seg, date)


def _after(events: list[Event], at: datetime) -> list[Event]:
    return [e for e in events if e.time > at]


class IncrementalSegmenter:
    """Detects segment boundaries as events arrive and summarizes finished segments."""

    def __init__(self, handler: Handler, append_segment: Callable[[Event], None]) -> None:
        self._handler = handler
        self._append_segment = append_segment
        self._events: list[Event] = []
        self._speech_events: list[Event] = []
        self._last_speech: datetime | None = None
        self._pending: Boundary | None = None
        self._workers: list[threading.Thread] = []

    def on_speech(self, event: Event) -> None:
        """Record speech; a pending boundary is finalized when speech resumes."""
        self._events.append(event)
        self._speech_events.append(event)
        if self._pending is not None and self._last_speech is not None:
            self._finalize()
        self._last_speech = event.time

    def on_event(self, event: Event) -> None:
        """Record a non-speech event."""
        self._events.append(event)

    def on_silence(self, duration_secs: int) -> None:
        """Mark a boundary once silence reaches the threshold."""
        if duration_secs >= SILENCE_THRESHOLD and self._pending is None and self._last_speech is not None:
            self._pending = Boundary(self._last_speech, f"silence {duration_secs // 60}m")
            logger.info("boundary detected: silence, %d min", duration_secs // 60)

    def on_meeting_change(self, new_title: str, at: datetime) -> None:
        """Mark a boundary when the active meeting changes."""
        if self._last_speech is not None and self._events and self._pending is None:
            self._pending = Boundary(at, "meeting change → " + new_title)
            logger.info("boundary detected: meeting change, title=%s", new_title)

    def on_pin(self, at: datetime) -> None:
        """Mark a user-placed boundary, snapped to a nearby speech gap."""
        self._pending = Boundary(snap_pin(at, self._speech_events), "pin")
        logger.info("boundary detected: pin")

    def flush(self) -> None:
        """Finalize any remaining segment and wait for all summarization to finish."""
        if self._speech_events:
            if self._pending is None:
                self._pending = Boundary(self._speech_events[-1].time, "shutdown")
            self._finalize()
        workers, self._workers = self._workers, []
        for worker in workers:
            worker.join()

    def _finalize(self) -> None:
        if not self._speech_events or self._pending is None:
            self._pending = None
            return

        boundary_time = self._pending.time
        seg_events = [e for e in self._events if e.time <= boundary_time]
        seg_speech = [e for e in seg_events if e.is_speech()]

        self._events = _after(self._events, boundary_time)
        self._speech_events = _after(self._speech_events, boundary_time)
        self._pending = None

        if not seg_speech:
            return

        start = seg_speech[0].time
        seg = Segment(start=start, end=seg_speech[-1].time, events=seg_events, id=start.strftime("%H%M"))
        worker = threading.Thread(target=self._summarize_and_write, args=(seg,), daemon=True)
        self._workers.append(worker)
        worker.start()

    def _summarize_and_write(self, seg: Segment) -> None:
        date = seg.start.strftime("%Y-%m-%d")
        try:
            title, summary, skip = self._handler.summarize(seg, date)
        except Exception:
            logger.exception("segmenter summarize failed: segment %s", seg.id)
            return

        if skip or not summary:
            self._append_segment(Event(time=datetime.now(), type=EventType.SEGMENT, text=f"| {seg.id} skip"))
            logger.info("segment skipped: %s", seg.id)
            return

        try:
            filename = self._handler.write_segment(title, summary, seg, date)
        except Exception:
            logger.exception("segmenter write failed: segment %s", seg.id)
            return

        self._append_segment(
            Event(time=datetime.now(), type=EventType.SEGMENT, text=f"| {seg.id} {slugify(title)}")
        )
        logger.info("segment written: %s -> %s", seg.id, filename)