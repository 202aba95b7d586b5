"""Segment boundary detection and transcript splitting."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import NamedTuple

from meetrecorder.transcript import Event

SILENCE_THRESHOLD = 300  # seconds of speech gap that form a boundary
PIN_LOOKBACK = 90  # seconds to search backwards for a snap target
PIN_SNAP_GAP = 3  # minimum gap that qualifies as a snap target
DEDUP_WINDOW = 120  # boundaries closer than this are merged

_BARE_MEETING_TITLES = frozenset({"Meet", "Google Meet", "meet.google.com_/"})

_HALLUCINATION_PATTERNS = (
    "thank you for watching",
    "you're welcome",
    "obrigado",
    "obrigada",
    "takk for at du så med",
    "takk for at du så på",
    "gracias",
    "undertexter av",
    "undertekster av",
    "nothing meaningful was detected",
    "no meaningful speech was detected",
    "no content to clean",
    "[empty output]",
    "empty output",
    "no substantive speech content",
)

_SLUG_RE = re.compile(r"[^a-z0-9\t\n\f\r -]")
_SLUG_SPACE_RE = re.compile(r"[\t\n\f\r ]+")


@dataclass(frozen=True)
class Boundary:
    """A segment split point with a human-readable reason."""

    time: datetime
    reason: str


@dataclass
class Segment:
    """A contiguous slice of transcript events between boundaries."""

    start: datetime
    end: datetime
    events: list[Event] = field(default_factory=list)
    id: str = ""


class _MeetingEvent(NamedTuple):
    time: datetime
    title: str


def _segment_id(start: datetime) -> str:
    return start.strftime("%H%M")


def snap_pin(pin_time: datetime, speech_events: list[Event]) -> datetime:
    """Move a pin to the nearest preceding speech gap, if one lies within reach."""
    before = [e for e in speech_events if e.time <= pin_time]
    if len(before) < 2:
        return pin_time

    for prev, curr in reversed(list(zip(before, before[1:]))):
        gap = (curr.time - prev.time).total_seconds()
        lookback = (pin_time - prev.time).total_seconds()
        if lookback > PIN_LOOKBACK:
            break
        if gap >= PIN_SNAP_GAP:
            return prev.time
    return pin_time


def _meeting_events(events: list[Event]) -> list[_MeetingEvent]:
    return [
        _MeetingEvent(e.time, e.title)
        for e in events
        if e.is_meeting() and e.title and e.title not in _BARE_MEETING_TITLES
    ]


def detect_boundaries(events: list[Event], now: datetime) -> list[Boundary]:
    """Find segment split points from silence, meeting changes and pins."""
    boundaries: list[Boundary] = []
    speech = [e for e in events if e.is_speech()]

    for prev, curr in zip(speech, speech[1:]):
        gap = (curr.time - prev.time).total_seconds()
        if gap >= SILENCE_THRESHOLD:
            boundaries.append(Boundary(prev.time, f"silence {gap / 60:.0f}m"))

    if speech:
        last = speech[-1].time
        trailing = (now - last).total_seconds()
        if trailing >= SILENCE_THRESHOLD:
            boundaries.append(Boundary(last, f"trailing silence {trailing / 60:.0f}m"))

    last_title = ""
    for meeting in _meeting_events(events):
        if last_title and meeting.title != last_title:
            boundaries.append(Boundary(meeting.time, "meeting change → " + meeting.title))
        last_title = meeting.title

    for e in events:
        if e.is_pin():
            boundaries.append(Boundary(snap_pin(e.time, speech), "pin"))

    boundaries.sort(key=lambda b: b.time)
    return dedupe(boundaries)


def dedupe(boundaries: list[Boundary] | None) -> list[Boundary]:
    """Drop boundaries that fall within DEDUP_WINDOW of the previous kept one."""
    if not boundaries:
        return []
    result = [boundaries[0]]
    for b in boundaries[1:]:
        if (b.time - result[-1].time).total_seconds() >= DEDUP_WINDOW:
            result.append(b)
    return result


def split_at_boundaries(events: list[Event] | None, boundaries: list[Boundary] | None) -> list[Segment]:
    """Partition events into segments that each contain speech."""
    if not events:
        return []
    speech = [e for e in events if e.is_speech()]
    if not speech:
        return []

    starts = [speech[0].time]
    for boundary in boundaries or []:
        cut = boundary.time
        starts.append(next((e.time for e in speech if e.time > cut), cut))

    ends = starts[1:] + [speech[-1].time]
    segments = []
    for start, end in zip(starts, ends):
        seg_events = [e for e in events if start <= e.time <= end]
        if any(e.is_speech() for e in seg_events):
            segments.append(Segment(start=start, end=end, events=seg_events, id=_segment_id(start)))
    return segments


def slugify(title: str) -> str:
    """Turn a title into a filesystem-safe slug of at most 50 characters."""
    s = title.strip().lower()
    s = _SLUG_RE.sub("", s)
    s = _SLUG_SPACE_RE.sub("-", s)
    return s[:50]


def format_transcript(seg: Segment) -> str:
    """Format a segment's speech events as lines for summarization."""
    lines = []
    for e in seg.events:
        if not e.is_speech() or is_hallucination(e.text):
            continue
        speaker, text = extract_speaker_and_text(e)
        lines.append(f"[{e.time.strftime('%H:%M')}] {speaker}: {text}")
    return "\n".join(lines)


def extract_speaker_and_text(event: Event) -> tuple[str, str]:
    """The speaker name (or the audio source when unknown) and the text of an event."""
    if event.speaker:
        return event.speaker, event.text
    return event.source, event.text


def is_hallucination(text: str) -> bool:
    """Whether text is too short or a known speech recognition hallucination."""
    lower = text.strip().lower()
    if len(lower.encode("utf-8")) < 3:
        return True
    return any(pattern in lower for pattern in _HALLUCINATION_PATTERNS)