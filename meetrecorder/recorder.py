"""Transcript writing and the processing of transcribed audio chunks."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Protocol, Sequence

from meetrecorder.dedup import texts_overlap
from meetrecorder.segmenter import IncrementalSegmenter
from meetrecorder.timeline import MeetingState, ParticipantSet, SpeakerDuration, SpeakerTimeline
from meetrecorder.transcript import Event, EventType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AudioChunk:
    """WAV audio for both channels with wall-clock timestamps."""

    sys_wav: bytes
    mic_wav: bytes
    start_time: datetime
    end_time: datetime


class Transcriber(Protocol):
    """Turns WAV audio into text."""

    def transcribe(self, wav_data: bytes, filename: str) -> str:
        """Return the transcribed text; raise on failure."""
        ...


class _TextCleaner(Protocol):
    def cleanup(self, text: str, participants: Sequence[str] | None = None) -> str: ...


class TranscriptWriter:
    """Appends events to the daily transcript file."""

    def __init__(self, output_dir: str | Path) -> None:
        self._output_dir = Path(output_dir)
        self._path: Path | None = None
        self._date = ""

    def path(self) -> Path:
        """Today's transcript path; the file is created with a header if missing."""
        today = datetime.now().strftime("%Y-%m-%d")
        if self._date != today or self._path is None:
            self._date = today
            self._path = self._output_dir / f"{today}-recorder.md"
            if not self._path.exists():
                self._init_file()
        return self._path

    def append_event(self, event: Event) -> None:
        """Append the event's line to the transcript; failures are logged."""
        try:
            with self.path().open("a", encoding="utf-8") as f:
                f.write(f"{event}\n")
        except OSError:
            logger.exception("transcript write failed")

    def _init_file(self) -> None:
        try:
            self._output_dir.mkdir(parents=True, exist_ok=True)
            header = f"---\ndate: {self._date}\ntype: recorder-transcript\n---\n\n"
            self._path.write_text(header, encoding="utf-8")
        except OSError:
            logger.exception("transcript init failed")


def attribute_speaker(speakers: Sequence[SpeakerDuration], ambiguity_ratio: float) -> str:
    """Name the speaker of a chunk, or the top two with shares when ambiguous."""
    if not speakers:
        return ""
    if len(speakers) == 1:
        return speakers[0].name
    first, second = speakers[0], speakers[1]
    d0 = first.duration.total_seconds()
    d1 = second.duration.total_seconds()
    if d1 >= d0 * ambiguity_ratio:
        total = d0 + d1
        pct0 = int(d0 * 100 / total) if total > 0 else 50
        return f"{first.name}({pct0}%),{second.name}({100 - pct0}%)"
    return first.name


def truncate(s: str, n: int) -> str:
    """The first n characters of s."""
    return s[:n]


class ChunkProcessor:
    """Transcribes audio chunks and records the resulting events."""

    def __init__(
        self,
        transcriber: Transcriber,
        cleaner: _TextCleaner,
        writer: TranscriptWriter,
        segmenter: IncrementalSegmenter,
        speaker_timeline: SpeakerTimeline,
        participant_set: ParticipantSet,
        meeting_state: MeetingState,
        ambiguity_ratio: float,
        dedup_threshold: float,
    ) -> None:
        self._transcriber = transcriber
        self._cleaner = cleaner
        self._writer = writer
        self._segmenter = segmenter
        self._speaker_timeline = speaker_timeline
        self._participant_set = participant_set
        self._meeting_state = meeting_state
        self._ambiguity_ratio = ambiguity_ratio
        self._dedup_threshold = dedup_threshold
        self._last_system_text = ""
        self._last_participants: set[str] = set()
        self.last_flushed_time: datetime | None = None

    def process(self, chunk: AudioChunk) -> None:
        """Transcribe both channels, deduplicate them and record speech events."""
        sys_text = self._transcribe(chunk.sys_wav, "sys.wav")
        mic_text = self._transcribe(chunk.mic_wav, "mic.wav")

        self.flush_signal_events(chunk.start_time, chunk.end_time)

        speakers = self._speaker_timeline.speakers_in_with_durations(chunk.start_time, chunk.end_time)
        speaker = attribute_speaker(speakers, self._ambiguity_ratio)
        participants = self.current_participants()

        if sys_text:
            cleaned = self._clean(sys_text, participants, "sys")
            if cleaned:
                self._record_speech(chunk.start_time, "sys", cleaned, speaker)
                self._last_system_text = cleaned
                if mic_text and not texts_overlap(cleaned, mic_text, self._dedup_threshold):
                    mic_cleaned = self._clean(mic_text, participants, "mic")
                    if mic_cleaned:
                        self._record_speech(chunk.start_time, "mic", mic_cleaned, speaker)
        elif mic_text:
            if self._last_system_text and texts_overlap(
                self._last_system_text, mic_text, self._dedup_threshold
            ):
                logger.info("mic deduped: %s", truncate(mic_text, 60))
            else:
                cleaned = self._clean(mic_text, participants, "mic")
                if cleaned:
                    self._record_speech(chunk.start_time, "mic", cleaned, speaker)
        else:
            logger.info("no speech detected")
        logger.info("listening")

    def current_participants(self) -> list[str]:
        """Known participant names, sorted."""
        return sorted(self._participant_set.get_all())

    def flush_signal_events(self, start: datetime, end: datetime) -> None:
        """Record pending meeting and participant changes as transcript events."""
        self.last_flushed_time = end

        change = self._meeting_state.consume()
        if change is not None:
            title, changed_at = change
            event = Event(time=changed_at, type=EventType.MEETING, title=title)
            self._append(event)
            self._segmenter.on_event(event)
            if title:
                self._segmenter.on_meeting_change(title, changed_at)

        everyone = self._participant_set.get_all()
        if everyone and everyone != self._last_participants:
            self._last_participants = everyone
            event = Event(time=start, type=EventType.PARTICIPANTS, people=sorted(everyone))
            self._append(event)
            self._segmenter.on_event(event)

    def _transcribe(self, wav_data: bytes, filename: str) -> str:
        try:
            return self._transcriber.transcribe(wav_data, filename)
        except Exception:  # noqa: BLE001 - a failed channel is treated as silent
            logger.exception("transcribe %s failed", filename.removesuffix(".wav"))
            return ""

    def _clean(self, text: str, participants: list[str], channel: str) -> str:
        try:
            cleaned = self._cleaner.cleanup(text, participants)
        except Exception:  # noqa: BLE001 - fall back to the raw text
            logger.exception("cleanup %s failed", channel)
            cleaned = ""
        return cleaned or text

    def _record_speech(self, at: datetime, source: str, text: str, speaker: str) -> None:
        event = Event(time=at, type=EventType.SPEECH, source=source, text=text, speaker=speaker)
        self._append(event)
        self._segmenter.on_speech(event)

    def _append(self, event: Event) -> None:
        self._writer.append_event(event)
        logger.info("transcript event: %s", event)