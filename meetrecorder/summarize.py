"""Structured summaries of transcript segments and the files they are written to."""

from __future__ import annotations

import json
import os
import re
from pathlib import Path
from typing import Any

from meetrecorder.cleanup import ChatCompleter, Message
from meetrecorder.segment import Segment, format_transcript, slugify
from meetrecorder.transcript import EventType

CHUNK_CHARS = 35000
MAX_RETRIES = 2

_JSON_RE = re.compile(r"\{[\s\S]*\}")
_TIME_RE = re.compile(r"^\[(\d{2}):(\d{2})\]", re.ASCII)


def _byte_len(text: str) -> int:
    return len(text.encode("utf-8"))


class Summarizer:
    """Produces titles and markdown summaries of transcript segments via an LLM backend."""

    def __init__(self, chat: ChatCompleter, summarize: str, combine: str) -> None:
        self._chat = chat
        self._summarize_prompt = summarize
        self._combine_prompt = combine

    def summarize_segment(self, seg: Segment, date: str) -> tuple[str, str, bool]:
        """Return (title, summary, skip) for a segment.

        Raises RuntimeError when the backend gives no usable JSON after all retries.
        """
        del date  # summaries do not depend on the date
        text = format_transcript(seg)
        if not text.strip():
            return "", "", True

        if _byte_len(text) <= CHUNK_CHARS:
            response = self._complete_json(self._summarize_prompt, text)
        else:
            response = self._summarize_chunked(text)

        if response is None or "skip" in response:
            return "", "", True

        title = response.get("title")
        summary = response.get("summary")
        title = title if isinstance(title, str) and title else "Untitled"
        summary = summary if isinstance(summary, str) else ""
        return title, summary, False

    def _summarize_chunked(self, text: str) -> dict[str, Any] | None:
        summaries = []
        for chunk in split_into_chunks(text, CHUNK_CHARS):
            try:
                result = self._complete_json(self._summarize_prompt, chunk)
            except RuntimeError:
                continue
            if "skip" not in result:
                summaries.append(result)

        if not summaries:
            return None
        if len(summaries) == 1:
            return summaries[0]

        combined = "\n\n---\n\n".join(
            json.dumps(summary, indent=2, sort_keys=True, ensure_ascii=False) for summary in summaries
        )
        return self._complete_json(self._combine_prompt, combined)

    def _complete_json(self, system: str, user: str) -> dict[str, Any]:
        attempts = 1 + MAX_RETRIES
        last_error: Exception | None = None
        for _ in range(attempts):
            try:
                content = self._chat.complete(
                    [Message(role="system", content=system), Message(role="user", content=user)]
                )
            except Exception as exc:  # noqa: BLE001 - any backend failure is retried
                last_error = exc
                continue
            match = _JSON_RE.search(content or "")
            if match is None:
                last_error = ValueError("no JSON in response")
                continue
            try:
                parsed = json.loads(match.group(0))
            except json.JSONDecodeError as exc:
                last_error = exc
                continue
            if not isinstance(parsed, dict):
                last_error = ValueError("JSON response is not an object")
                continue
            return parsed
        raise RuntimeError(f"llm failed after {attempts} attempts: {last_error}") from last_error


def split_into_chunks(text: str, max_chars: int) -> list[str]:
    """Split text at line boundaries into chunks of at most max_chars bytes.

    Chunk ends are moved to the largest time gap in the second half of each
    chunk. A single line longer than max_chars becomes a chunk of its own.
    """
    lines = text.split("\n")
    chunks = []
    start = 0
    while start < len(lines):
        end = start
        total = 0
        while end < len(lines) and total + _byte_len(lines[end]) + 1 <= max_chars:
            total += _byte_len(lines[end]) + 1
            end += 1

        if end >= len(lines):
            chunks.append("\n".join(lines[start:]))
            break

        split_at = max(find_best_split(lines, start, end), start + 1)
        chunks.append("\n".join(lines[start:split_at]))
        start = split_at
    return chunks


def _minutes(match: re.Match[str]) -> int:
    return int(match.group(1)) * 60 + int(match.group(2))


def find_best_split(lines: list[str], start: int, end: int) -> int:
    """Index in the second half of lines[start:end] that follows the largest time gap, else end."""
    best_gap = 0
    best_idx = end
    for i in range(start + (end - start) // 2, end - 1):
        first = _TIME_RE.match(lines[i])
        second = _TIME_RE.match(lines[i + 1])
        if first and second:
            gap = _minutes(second) - _minutes(first)
            if gap > best_gap:
                best_gap = gap
                best_idx = i + 1
    return best_idx


def extract_participants(seg: Segment) -> list[str]:
    """Sorted unique participant names from a segment's events."""
    return sorted(
        {name for e in seg.events if e.type == EventType.PARTICIPANTS for name in e.people}
    )


def _quote(text: str) -> str:
    return json.dumps(text, ensure_ascii=False)


def write_segment_file(title: str, summary: str, seg: Segment, date: str, output_dir: str | os.PathLike[str]) -> str:
    """Write a segment's summary and transcript to a markdown file and return its name."""
    duration_min = int((seg.end - seg.start).total_seconds() / 60)
    time_range = f"{seg.start.strftime('%H:%M')}–{seg.end.strftime('%H:%M')}"
    participants = extract_participants(seg)

    lines = [
        "---",
        f"title: {_quote(title)}",
        f"date: {date}",
        f"time: {_quote(time_range)}",
        f"duration: {duration_min}m",
        "type: segment",
        f'source: "[[raw/transcripts/{date}-recorder.md]]"',
    ]
    if participants:
        lines.append(f"participants: {json.dumps(participants, separators=(',', ':'), ensure_ascii=False)}")
    lines.append("---")
    content = (
        "\n".join(lines)
        + "\n\n"
        + summary
        + "\n\n---\n\n## Transcript\n\n"
        + format_transcript(seg)
        + "\n"
    )

    filename = f"{date}-{seg.id}-{slugify(title)}.md"
    directory = Path(output_dir)
    path = directory / filename
    tmp_path = directory / (filename + ".tmp")

    directory.mkdir(parents=True, exist_ok=True)
    tmp_path.write_text(content, encoding="utf-8")
    os.replace(tmp_path, path)
    return filename