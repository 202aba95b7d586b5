"""Transcript events and the markdown line format they are stored in."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import IntEnum

_TIME_FORMAT = "%H:%M:%S"
_MAX_LINE_BYTES = 64 * 1024 - 1

_LINE_RE = re.compile(r"^\[(\d{2}:\d{2}:\d{2})\] (.+?) \*\*(\w+)\*\*(.*)$", re.ASCII)


class EventType(IntEnum):
    """Category of a transcript log entry."""

    SPEECH = 0
    MEETING = 1
    PARTICIPANTS = 2
    PIN = 3
    IDLE = 4
    RECORDER = 5
    SEGMENT = 6
    NOTE = 7


_TAGS = {
    EventType.MEETING: "mtg",
    EventType.PARTICIPANTS: "ppl",
    EventType.PIN: "pin",
    EventType.IDLE: "idl",
    EventType.RECORDER: "rec",
    EventType.SEGMENT: "seg",
    EventType.NOTE: "nfo",
}

_EMOJI = {
    EventType.MEETING: "🪟",
    EventType.PARTICIPANTS: "👥",
    EventType.PIN: "📍",
    EventType.IDLE: "💤",
    EventType.RECORDER: "🟢",
    EventType.SEGMENT: "✂️",
    EventType.NOTE: "📝",
}

_TAG_TYPES = {tag: kind for kind, tag in _TAGS.items()}
_TAG_TYPES["win"] = EventType.MEETING


@dataclass
class Event:
    """A single append-only transcript log entry."""

    time: datetime = datetime.min
    type: EventType = EventType.SPEECH
    source: str = ""
    text: str = ""
    speaker: str = ""
    title: str = ""
    people: list[str] = field(default_factory=list)

    def is_speech(self) -> bool:
        """Whether the event is a mic or system transcription."""
        return self.type == EventType.SPEECH

    def is_meeting(self) -> bool:
        """Whether the event is a meeting join or end signal."""
        return self.type == EventType.MEETING

    def is_pin(self) -> bool:
        """Whether the event is a user segment boundary hint."""
        return self.type == EventType.PIN

    def tag(self) -> str:
        """Short markdown tag for this event type."""
        if self.type == EventType.SPEECH:
            return self.source
        return _TAGS.get(self.type, "?")

    def emoji(self) -> str:
        """Display emoji for this event type."""
        if self.type == EventType.SPEECH:
            return "🎤" if self.source == "mic" else "🔊"
        return _EMOJI.get(self.type, "❓")

    def __str__(self) -> str:
        parts = [f"[{self.time.strftime(_TIME_FORMAT)}] {self.emoji()} **{self.tag()}**"]
        if self.is_speech() and self.speaker:
            parts.append(f" [{self.speaker}]")

        if self.type == EventType.MEETING:
            parts.append(f" joined: {self.title}" if self.title else " ended")
        elif self.type == EventType.PARTICIPANTS:
            if self.people:
                parts.append(" " + ", ".join(self.people))
        elif self.text:
            parts.append(" " + self.text)
        return "".join(parts)


@dataclass
class Transcript:
    """A parsed daily event log."""

    events: list[Event] = field(default_factory=list)


def parse(data: bytes | str) -> Transcript:
    """Parse transcript markdown into events, skipping lines that are not events.

    Raises ValueError when a line is too long to be read.
    """
    text = data.decode("utf-8", errors="replace") if isinstance(data, bytes) else data
    lines = text.split("\n")
    if lines and lines[-1] == "":
        lines.pop()

    events = []
    for raw in lines:
        line = raw.removesuffix("\r")
        if len(line.encode("utf-8")) > _MAX_LINE_BYTES:
            raise ValueError("transcript line too long")
        event = parse_line(line)
        if event is not None:
            events.append(event)
    return Transcript(events=events)


def parse_line(line: str) -> Event | None:
    """Parse one transcript line, or return None if it is not an event."""
    match = _LINE_RE.match(line)
    if match is None:
        return None
    try:
        ts = datetime.strptime(match.group(1), _TIME_FORMAT)
    except ValueError:
        return None

    tag = match.group(3)
    text = match.group(4).strip()
    event = Event(time=ts, text=text)

    if tag in ("sys", "mic"):
        event.type = EventType.SPEECH
        event.source = tag
        if text.startswith("["):
            idx = text.find("]")
            if idx != -1:
                event.speaker = text[1:idx].strip()
                event.text = text[idx + 1 :].strip()
    elif tag in ("mtg", "win"):
        event.type = EventType.MEETING
        event.title = _parse_meeting_title(text)
        event.text = ""
    elif tag == "ppl":
        event.type = EventType.PARTICIPANTS
        event.people = _parse_participants(text)
        event.text = ""
    elif tag in _TAG_TYPES:
        event.type = _TAG_TYPES[tag]
    else:
        return None
    return event


def _parse_meeting_title(text: str) -> str:
    if text.startswith("joined: "):
        return text.removeprefix("joined: ")
    if text == "ended":
        return ""
    return text


def _parse_participants(text: str) -> list[str]:
    return [name.strip() for name in text.split(",") if name.strip()]