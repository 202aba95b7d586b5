"""Silence tracking and collection of speaker signals from a meeting poller."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from meetrecorder.timeline import MeetingState, ParticipantSet, SpeakerTimeline

logger = logging.getLogger(__name__)

# A speaker must be seen speaking for this many consecutive polls before
# being recorded in the timeline.
FLICKER_FILTER_TICKS = 2


class SilenceMonitor:
    """Signals once when consecutive silent seconds cross a threshold."""

    def __init__(self, threshold_secs: int) -> None:
        self._threshold = threshold_secs
        self._notified = False

    def tick(self, consecutive_silent_secs: int) -> bool:
        """Whether the threshold was just crossed."""
        if consecutive_silent_secs >= self._threshold and not self._notified:
            self._notified = True
            return True
        return False

    def reset(self) -> None:
        """Clear the notified state after speech resumes."""
        self._notified = False


@dataclass(frozen=True)
class ParticipantState:
    """A meeting participant and whether they are speaking."""

    name: str
    speaking: bool = False


@dataclass(frozen=True)
class MeetingChange:
    """The active meeting changed; an empty title means the meeting ended."""

    title: str


@dataclass
class PollResult:
    """Outcome of a single speaker-detection poll.

    participants is None when nothing could be read, which differs from an
    empty list of participants.
    """

    participants: list[ParticipantState] | None = None
    meeting_change: MeetingChange | None = None


class SpeakerPoller(Protocol):
    """Polls for active speakers and meeting state."""

    def poll(self) -> PollResult:
        """Return the current state; raise on failure."""
        ...


class SpeakerCollector:
    """Feeds poll results into the speaker timeline, participant set and meeting state."""

    def __init__(
        self,
        speaker_timeline: SpeakerTimeline,
        participant_set: ParticipantSet,
        meeting_state: MeetingState,
    ) -> None:
        self._timeline = speaker_timeline
        self._participants = participant_set
        self._meeting = meeting_state
        self._active: dict[str, None] = {}
        self._ticks: dict[str, int] = {}

    def process(self, result: PollResult, now: datetime | None = None) -> None:
        """Apply one poll result observed at now."""
        if result.meeting_change is not None:
            title = result.meeting_change.title
            self._meeting.set(title)
            if title:
                logger.info("meeting joined: %s", title)
            else:
                logger.info("meeting ended")
            self._participants.reset()
            self._active = {}
            self._ticks = {}

        if result.participants is None:
            return

        at = now if now is not None else datetime.now()
        self._participants.update(p.name for p in result.participants)

        current: dict[str, None] = {}
        for p in result.participants:
            if p.speaking:
                self._ticks[p.name] = self._ticks.get(p.name, 0) + 1
                if self._ticks[p.name] >= FLICKER_FILTER_TICKS:
                    current[p.name] = None
            else:
                self._ticks[p.name] = 0

        for name in current:
            if name not in self._active:
                logger.info("speaker started: %s", name)
                self._timeline.append(at, name)
        for name in self._active:
            if name not in current:
                logger.info("speaker stopped: %s", name)
                self._timeline.append(at, "")
        self._active = current


def run_speaker_collector(
    stop: threading.Event,
    detector: SpeakerPoller,
    speaker_timeline: SpeakerTimeline,
    participant_set: ParticipantSet,
    meeting_state: MeetingState,
    interval: float = 1.0,
) -> None:
    """Poll the detector every interval seconds until stop is set."""
    collector = SpeakerCollector(speaker_timeline, participant_set, meeting_state)
    while not stop.wait(interval):
        try:
            result = detector.poll()
        except Exception:
            logger.exception("speaker poll failed")
            continue
        collector.process(result, datetime.now())