"""Thread-safe state about meetings, speakers and participants."""

from __future__ import annotations

import threading
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta


class MeetingState:
    """Current meeting title with one-shot change notification."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._current = ""
        self._changed = False
        self._changed_at = datetime.min

    def set(self, title: str) -> None:
        """Update the title and mark the state as changed if it differs."""
        with self._lock:
            if title != self._current:
                self._current = title
                self._changed = True
                self._changed_at = datetime.now()

    def consume(self) -> tuple[str, datetime] | None:
        """Return (title, changed_at) once after a change, otherwise None."""
        with self._lock:
            if not self._changed:
                return None
            self._changed = False
            return self._current, self._changed_at


@dataclass(frozen=True)
class SpeakerChange:
    """A speaker transition; an empty name means speakers stopped."""

    time: datetime
    name: str


@dataclass(frozen=True)
class SpeakerDuration:
    """A speaker name with total speaking time."""

    name: str
    duration: timedelta


class SpeakerTimeline:
    """Time-ordered log of speaker start/stop changes with age-based eviction."""

    def __init__(self, max_age_secs: float) -> None:
        self._lock = threading.Lock()
        self._changes: list[SpeakerChange] = []
        self._max_age = float(max_age_secs)

    def append(self, ts: datetime, name: str) -> None:
        """Record a speaker change at ts."""
        with self._lock:
            self._changes.append(SpeakerChange(ts, name))
            self._evict()

    def speakers_in_with_durations(self, start: datetime, end: datetime) -> list[SpeakerDuration]:
        """Speakers active during [start, end], longest total speaking time first."""
        with self._lock:
            active: dict[str, datetime] = {}
            durations: dict[str, timedelta] = {}

            def close_all(at: datetime) -> None:
                for name, span_start in active.items():
                    durations[name] = durations.get(name, timedelta()) + (at - span_start)

            for change in self._changes:
                if change.time > end:
                    break
                if change.time <= start:
                    if change.name:
                        active[change.name] = start
                    else:
                        active = {}
                elif change.name:
                    active[change.name] = change.time
                else:
                    close_all(change.time)
                    active = {}
            close_all(end)

        entries = [SpeakerDuration(name, dur) for name, dur in durations.items()]
        entries.sort(key=lambda entry: entry.duration, reverse=True)
        return entries

    def speakers_in(self, start: datetime, end: datetime) -> list[str]:
        """Names of speakers active during [start, end], dominant speaker first."""
        return [entry.name for entry in self.speakers_in_with_durations(start, end)]

    def _evict(self) -> None:
        if not self._changes:
            return
        cutoff = self._changes[-1].time
        drop = 0
        for change in self._changes:
            if (cutoff - change.time).total_seconds() > self._max_age:
                drop += 1
            else:
                break
        if drop:
            del self._changes[:drop]


class ParticipantSet:
    """Set of known participant names with change detection."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._names: set[str] = set()

    def update(self, names: Iterable[str]) -> set[str]:
        """Add names and return those that were not known before."""
        with self._lock:
            new_names = set(names) - self._names
            self._names |= new_names
            return new_names

    def get_all(self) -> set[str]:
        """A copy of all known participant names."""
        with self._lock:
            return set(self._names)

    def reset(self) -> None:
        """Forget all participants."""
        with self._lock:
            self._names = set()