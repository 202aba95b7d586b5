from datetime import datetime, timedelta

import pytest

from meetrecorder.recorder import (
    AudioChunk,
    ChunkProcessor,
    TranscriptWriter,
    attribute_speaker,
    truncate,
)
from meetrecorder.segmenter import FuncHandler, IncrementalSegmenter
from meetrecorder.timeline import MeetingState, ParticipantSet, SpeakerDuration, SpeakerTimeline
from meetrecorder.transcript import Event, EventType, parse


@pytest.mark.parametrize(
    "speakers, want",
    [
        ([], ""),
        ([SpeakerDuration("Alice", timedelta(seconds=10))], "Alice"),
        (
            [SpeakerDuration("Alice", timedelta(seconds=20)), SpeakerDuration("Bob", timedelta(milliseconds=500))],
            "Alice",
        ),
        (
            [SpeakerDuration("Alice", timedelta(seconds=15)), SpeakerDuration("Bob", timedelta(milliseconds=1500))],
            "Alice(90%),Bob(10%)",
        ),
        (
            [SpeakerDuration("Alice", timedelta(seconds=8)), SpeakerDuration("Bob", timedelta(seconds=7))],
            "Alice(53%),Bob(47%)",
        ),
        (
            [SpeakerDuration("Alice", timedelta(seconds=10)), SpeakerDuration("Bob", timedelta(seconds=10))],
            "Alice(50%),Bob(50%)",
        ),
        (
            [
                SpeakerDuration("Alice", timedelta(seconds=10)),
                SpeakerDuration("Bob", timedelta(seconds=8)),
                SpeakerDuration("Carol", timedelta(seconds=2)),
            ],
            "Alice(55%),Bob(45%)",
        ),
    ],
)
def test_attribute_speaker(speakers, want):
    assert attribute_speaker(speakers, 0.05) == want


def test_truncate():
    assert truncate("hello", 3) == "hel"
    assert truncate("hi", 5) == "hi"


def test_writer_creates_file_with_header(tmp_path):
    writer = TranscriptWriter(tmp_path / "out")
    path = writer.path()
    today = datetime.now().strftime("%Y-%m-%d")
    assert path.name == f"{today}-recorder.md"
    assert path.read_text(encoding="utf-8") == f"---\ndate: {today}\ntype: recorder-transcript\n---\n\n"


def test_writer_appends_event_lines(tmp_path):
    writer = TranscriptWriter(tmp_path)
    event = Event(time=datetime(1900, 1, 1, 8, 0), type=EventType.RECORDER, text="started")
    writer.append_event(event)
    writer.append_event(event)
    content = writer.path().read_text(encoding="utf-8")
    assert content.endswith("[08:00:00] 🟢 **rec** started\n[08:00:00] 🟢 **rec** started\n")


class FakeTranscriber:
    def __init__(self, texts):
        self.texts = texts

    def transcribe(self, wav_data, filename):
        value = self.texts.get(filename, "")
        if isinstance(value, Exception):
            raise value
        return value


class FakeCleaner:
    def __init__(self, func=None):
        self.func = func or (lambda text: text.upper())
        self.calls = []

    def cleanup(self, text, participants=None):
        self.calls.append((text, list(participants or [])))
        result = self.func(text)
        if isinstance(result, Exception):
            raise result
        return result


START = datetime(2026, 1, 1, 9, 0, 0)


def make_chunk(start=START):
    return AudioChunk(sys_wav=b"s", mic_wav=b"m", start_time=start, end_time=start + timedelta(seconds=5))


@pytest.fixture
def state(tmp_path):
    writer = TranscriptWriter(tmp_path)
    handler = FuncHandler(lambda seg, date: ("", "", True), lambda t, s, seg, d: "")
    segmenter = IncrementalSegmenter(handler, writer.append_event)
    return {
        "writer": writer,
        "segmenter": segmenter,
        "timeline": SpeakerTimeline(600),
        "participants": ParticipantSet(),
        "meeting": MeetingState(),
    }


def make_processor(state, texts, cleaner=None):
    cleaner = cleaner or FakeCleaner()
    processor = ChunkProcessor(
        FakeTranscriber(texts),
        cleaner,
        state["writer"],
        state["segmenter"],
        state["timeline"],
        state["participants"],
        state["meeting"],
        0.05,
        0.6,
    )
    return processor, cleaner


def events_of(state, kind=None):
    events = parse(state["writer"].path().read_text(encoding="utf-8")).events
    return [e for e in events if kind is None or e.type == kind]


def test_sys_speech_is_cleaned_and_recorded(state):
    processor, cleaner = make_processor(state, {"sys.wav": "hello team"})
    processor.process(make_chunk())
    speech = events_of(state, EventType.SPEECH)
    assert [(e.source, e.text) for e in speech] == [("sys", "HELLO TEAM")]
    assert cleaner.calls == [("hello team", [])]


def test_overlapping_mic_is_dropped(state):
    texts = {"sys.wav": "we should migrate the database", "mic.wav": "we should migrate the database"}
    processor, _ = make_processor(state, texts, FakeCleaner(lambda t: t))
    processor.process(make_chunk())
    assert [e.source for e in events_of(state, EventType.SPEECH)] == ["sys"]


def test_distinct_mic_is_recorded_after_sys(state):
    texts = {"sys.wav": "we should migrate the database", "mic.wav": "the weather is nice today outside"}
    processor, _ = make_processor(state, texts, FakeCleaner(lambda t: t))
    processor.process(make_chunk())
    speech = events_of(state, EventType.SPEECH)
    assert [(e.source, e.text) for e in speech] == [
        ("sys", "we should migrate the database"),
        ("mic", "the weather is nice today outside"),
    ]


def test_mic_only_deduped_against_last_system_text(state):
    processor, _ = make_processor(state, {"sys.wav": "we should migrate the database"}, FakeCleaner(lambda t: t))
    processor.process(make_chunk())
    processor._transcriber = FakeTranscriber({"mic.wav": "we should migrate the database now"})
    processor.process(make_chunk(START + timedelta(seconds=10)))
    assert [e.source for e in events_of(state, EventType.SPEECH)] == ["sys"]


def test_empty_cleanup_and_errors_fall_back_to_raw_text(state):
    texts = {"sys.wav": RuntimeError("down"), "mic.wav": "raw mic words"}
    processor, _ = make_processor(state, texts, FakeCleaner(lambda t: ValueError("llm down")))
    processor.process(make_chunk())
    speech = events_of(state, EventType.SPEECH)
    assert [(e.source, e.text) for e in speech] == [("mic", "raw mic words")]


def test_no_speech_records_nothing(state):
    processor, cleaner = make_processor(state, {})
    processor.process(make_chunk())
    assert events_of(state, EventType.SPEECH) == []
    assert cleaner.calls == []


def test_speaker_attributed_from_timeline(state):
    state["timeline"].append(START - timedelta(seconds=1), "Alice")
    processor, _ = make_processor(state, {"sys.wav": "status update please"})
    processor.process(make_chunk())
    assert [e.speaker for e in events_of(state, EventType.SPEECH)] == ["Alice"]


def test_meeting_and_participant_events_flushed_once(state):
    state["meeting"].set("Standup")
    state["participants"].update(["Bob", "Alice"])
    processor, cleaner = make_processor(state, {"sys.wav": "good morning all"})
    processor.process(make_chunk())
    processor.process(make_chunk(START + timedelta(seconds=10)))

    meetings = events_of(state, EventType.MEETING)
    people = events_of(state, EventType.PARTICIPANTS)
    assert [m.title for m in meetings] == ["Standup"]
    assert [p.people for p in people] == [["Alice", "Bob"]]
    assert cleaner.calls[0][1] == ["Alice", "Bob"]
    assert processor.current_participants() == ["Alice", "Bob"]
    assert processor.last_flushed_time == START + timedelta(seconds=15)


def test_participant_change_is_flushed_again(state):
    processor, _ = make_processor(state, {})
    state["participants"].update(["Alice"])
    processor.flush_signal_events(START, START)
    state["participants"].update(["Bob"])
    processor.flush_signal_events(START, START)
    assert [p.people for p in events_of(state, EventType.PARTICIPANTS)] == [["Alice"], ["Alice", "Bob"]]