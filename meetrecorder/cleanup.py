"""LLM post-processing of raw speech recognition text."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, Sequence

_HALLUCINATION_PREFIXES = (
    "no meaningful",
    "no speech",
    "nothing meaningful",
    "the input",
    "[empty",
    "i cannot",
    "i can't",
    "this appears",
    "this input",
    "the text",
    "there is no",
    "there's no",
    "empty",
)


@dataclass(frozen=True)
class Message:
    """A role and content pair sent to the chat backend."""

    role: str
    content: str


class ChatCompleter(Protocol):
    """Sends chat completion requests to an LLM backend."""

    def complete(self, messages: Sequence[Message]) -> str:
        """Return the content of the backend's reply."""
        ...


class Cleaner:
    """Removes fillers, fixes grammar and filters recognition hallucinations."""

    def __init__(self, chat: ChatCompleter, prompt: str) -> None:
        self._chat = chat
        self._prompt = prompt

    def cleanup(self, text: str, participants: Sequence[str] | None = None) -> str:
        """Return cleaned text, or an empty string when the reply is empty or a hallucination.

        Participant names, when given, are added to the system prompt so that
        misspelled names get corrected. Errors from the backend propagate.
        """
        system_prompt = self._prompt
        if participants:
            system_prompt += (
                "\n\n## Meeting participants\n\nThe following people are in this meeting: "
                + ", ".join(participants)
                + ". Use these exact spellings when correcting names in the transcript."
            )
        content = self._chat.complete(
            [Message(role="system", content=system_prompt), Message(role="user", content=text)]
        )
        if not content:
            return ""
        if content.lower().startswith(_HALLUCINATION_PREFIXES):
            return ""
        return content