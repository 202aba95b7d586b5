# meetrecorder

Building blocks for keeping a daily, append-only meeting transcript, attributing
speech to speakers, and splitting the transcript into topic segments that can be
summarised by a chat model.

The transcript is a plain Markdown file, one event per line:

```
[09:30:00] 🪟 **mtg** joined: Sprint Planning
[09:31:00] 👥 **ppl** Alice, Bob
[09:31:12] 🔊 **sys** [Alice] Let's start with the database migration.
[09:31:40] 🎤 **mic** Sounds good.
[09:45:00] 📍 **pin**
```

Each line carries a time, an emoji, a short tag (`sys`, `mic`, `mtg`, `ppl`,
`pin`, `idl`, `rec`, `seg`, `nfo`) and the event's text. Lines that do not match
this shape, such as the front matter at the top of the file, are skipped when the
file is read back with `meetrecorder.transcript.parse`.

## Installation

```
pip install .
```

The package has no runtime dependencies beyond the standard library.

## Command line

Show the detected segment boundaries of a transcript:

```
meetrecorder segment 2026-01-01-recorder.md --boundaries
```

Each boundary is printed as its time and reason, for example
`[09:01:00] silence 9m`.

List the segments a transcript splits into, with their time ranges and the
number of speech events in each:

```
meetrecorder segment 2026-01-01-recorder.md
```

This prints lines such as `segment 0900: 09:00–09:10 (4 speech events)`.

Print the version:

```
meetrecorder version
```

The exit status is 0 on success and 1 on a usage error, an unknown command, or a
file that cannot be read or parsed. Log messages go to standard error.

Boundaries come from three sources:

- silence: five minutes or more between two speech events, or between the last
  speech event and the current time;
- meeting changes: the meeting title switches to a different meeting (bare
  titles such as `Meet` or `Google Meet` are ignored);
- pins: a user-placed marker, snapped back to the speech event before the
  nearest pause of at least three seconds, looking back at most ninety seconds.

A boundary less than two minutes after the previous kept boundary is dropped.

## Library use

Reading a transcript and splitting it into segments:

```python
from datetime import datetime
from pathlib import Path

from meetrecorder.transcript import parse
from meetrecorder.segment import detect_boundaries, split_at_boundaries, format_transcript

transcript = parse(Path("2026-01-01-recorder.md").read_text())
boundaries = detect_boundaries(transcript.events, datetime.now())
for seg in split_at_boundaries(transcript.events, boundaries):
    print(seg.id, seg.start, seg.end)
    print(format_transcript(seg))
```

Other building blocks:

- `meetrecorder.transcript.Event` formats itself as a transcript line with
  `str(event)`; `EventType` names the kinds of event.
- `meetrecorder.dedup.texts_overlap` decides whether microphone text merely
  echoes what was already heard on the system channel.
- `meetrecorder.cleanup.Cleaner` sends raw recognised text to a chat model for
  cleanup and drops replies that look like hallucinations.
- `meetrecorder.timeline.SpeakerTimeline` records who was speaking when, and
  `speakers_in_with_durations` ranks speakers over a time window.
  `ParticipantSet` and `MeetingState` track participants and the current meeting.
- `meetrecorder.signals.SpeakerCollector` turns poll results into timeline
  entries, ignoring speakers seen for only a single poll;
  `run_speaker_collector` polls on an interval until a stop event is set.
  `SilenceMonitor` signals once when silence crosses a threshold.
- `meetrecorder.detector.Detector` watches a conferencing tab in a browser and
  learns which CSS class marks the active speaker by diffing snapshots.
- `meetrecorder.recorder.attribute_speaker` names the dominant speaker of a
  chunk, or both top speakers with their shares when it is ambiguous.
  `ChunkProcessor` takes transcribed audio chunks, deduplicates the two
  channels and appends the events through a `TranscriptWriter`, which writes
  the daily `YYYY-MM-DD-recorder.md` file.
- `meetrecorder.segmenter.IncrementalSegmenter` detects boundaries while events
  arrive and hands finished segments, in background threads, to a handler for
  summarising and writing. `FuncHandler` builds such a handler from two
  callables.
- `meetrecorder.batch.run_batch` lists the segments of a parsed transcript and,
  given a handler, summarises and writes each one.
- `meetrecorder.summarize.Summarizer` asks a chat model for a JSON title and
  summary of a segment, splitting long transcripts into chunks; and
  `write_segment_file` stores the result as a Markdown note with front matter.

The chat model, speech recogniser, browser tab listing and script evaluation are
supplied by you as objects with the methods described by the protocols
`cleanup.ChatCompleter`, `recorder.Transcriber`, `detector.TabLister`,
`detector.Evaluator` and `detector.Provider`.

## What it does not do

- It does not capture audio. There is no command that records; `ChunkProcessor`
  expects audio chunks and a transcriber to be provided by the caller.
- It ships no clients for a speech recognition server, a chat model or a
  browser debugging port, and no conferencing providers; these must be supplied
  as objects implementing the protocols above.
- It reads no configuration file. The `segment` command only lists segments or
  boundaries; `--write` is refused, since writing summaries needs a chat model.

## Running the tests

```
pip install ".[test]"
pytest
```