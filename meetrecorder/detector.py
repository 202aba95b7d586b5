"""Detection of speaking participants in browser meeting tabs."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Protocol, Sequence

from meetrecorder.signals import MeetingChange, ParticipantState, PollResult

logger = logging.getLogger(__name__)

# On/off transitions a candidate class must show before it is confirmed as
# the speaking indicator.
TOGGLES_REQUIRED = 3


@dataclass(frozen=True)
class Tab:
    """A debuggable browser tab."""

    title: str = ""
    url: str = ""
    type: str = "page"
    websocket_debugger_url: str = ""


@dataclass(frozen=True)
class ParticipantSnapshot:
    """A participant tile and the CSS classes it carries."""

    name: str
    classes: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class Participant:
    """A participant and whether they are speaking."""

    name: str
    speaking: bool = False


class Provider(Protocol):
    """A conferencing service whose tabs can be inspected."""

    def matches_url(self, url: str) -> bool:
        """Whether the tab URL belongs to this service."""
        ...

    def snapshot_expression(self) -> str:
        """Script that returns participant class snapshots."""
        ...

    def parse_snapshot(self, value: str) -> list[ParticipantSnapshot]:
        """Parse the result of the snapshot script."""
        ...

    def poll_expression(self, speaking_class: str) -> str:
        """Script that reports speaking state using the given class; raise if invalid."""
        ...

    def parse_poll(self, value: str) -> list[Participant]:
        """Parse the result of the poll script."""
        ...


class TabLister(Protocol):
    """Lists debuggable browser tabs."""

    def list_tabs(self, port: int) -> list[Tab]:
        """Return the tabs on the given debugging port; raise on failure."""
        ...


class Evaluator(Protocol):
    """Evaluates script expressions in browser tabs."""

    def evaluate(self, websocket_url: str, expression: str) -> str:
        """Return the expression's value as a string; raise on failure."""
        ...


def _class_present(snapshot: dict[str, set[str]], cls: str) -> bool:
    return any(cls in classes for classes in snapshot.values())


class Detector:
    """Polls meeting tabs for participant speaking state.

    The CSS class that marks a speaker is first discovered by diffing
    snapshots: the shortest changed class becomes a candidate and is
    confirmed after toggling TOGGLES_REQUIRED times. Later polls then use
    the provider's cheaper poll script with that class.
    """

    def __init__(
        self,
        tabs: TabLister,
        evaluator: Evaluator,
        ports: Sequence[int],
        providers: Sequence[Provider],
    ) -> None:
        self._tabs = tabs
        self._evaluator = evaluator
        self._ports = list(ports)
        self._providers = list(providers)
        self._active_ws_url = ""
        self._active_title = ""
        self._active_provider: Provider | None = None
        self._speaking_class = ""
        self._prev_snapshot: dict[str, set[str]] | None = None
        self._candidate_class = ""
        self._candidate_toggles = 0
        self._candidate_present = False

    def poll(self) -> PollResult:
        """Return current participant state and any meeting change.

        Errors from evaluating scripts or parsing their results propagate.
        """
        ws_url, tab, provider = self._find_meeting_tab()
        result = PollResult()

        if ws_url != self._active_ws_url:
            if not ws_url and self._active_ws_url:
                result.meeting_change = MeetingChange("")
            elif ws_url:
                result.meeting_change = MeetingChange(tab.title or tab.url)
            self._active_ws_url = ws_url
            self._active_title = ""
            self._active_provider = provider
            self._speaking_class = ""
            self._prev_snapshot = None
            self._candidate_class = ""
            self._candidate_toggles = 0

        if not ws_url:
            return result

        if tab.title != self._active_title and self._active_title:
            result.meeting_change = MeetingChange(tab.title)
        self._active_title = tab.title

        if self._speaking_class:
            result.participants = self._poll_cached(ws_url)
        else:
            result.participants = self._poll_discovery(ws_url)
        return result

    def _find_meeting_tab(self) -> tuple[str, Tab, Provider | None]:
        for port in self._ports:
            try:
                tabs = self._tabs.list_tabs(port)
            except Exception:
                continue
            for tab in tabs:
                if tab.type != "page":
                    continue
                for provider in self._providers:
                    if provider.matches_url(tab.url) and tab.websocket_debugger_url:
                        return tab.websocket_debugger_url, tab, provider
        return "", Tab(), None

    def _poll_cached(self, ws_url: str) -> list[ParticipantState] | None:
        provider = self._active_provider
        try:
            expression = provider.poll_expression(self._speaking_class)
        except Exception:
            # An unusable class sends the detector back to discovery.
            self._speaking_class = ""
            return None
        value = self._evaluator.evaluate(ws_url, expression)
        if not value:
            return None
        return [ParticipantState(p.name, p.speaking) for p in provider.parse_poll(value)]

    def _poll_discovery(self, ws_url: str) -> list[ParticipantState] | None:
        provider = self._active_provider
        value = self._evaluator.evaluate(ws_url, provider.snapshot_expression())
        if not value:
            return None
        snapshots = provider.parse_snapshot(value)

        current: dict[str, set[str]] = {}
        names: list[str] = []
        for snap in snapshots:
            current[snap.name] = set(snap.classes)
            names.append(snap.name)

        if self._prev_snapshot is not None:
            changed: set[str] = set()
            for name, classes in current.items():
                changed |= classes ^ self._prev_snapshot.get(name, set())

            if changed:
                shortest = min(changed, key=lambda c: (len(c.encode("utf-8")), c))
                if self._candidate_class != shortest:
                    self._candidate_class = shortest
                    self._candidate_toggles = 0
                    self._candidate_present = _class_present(current, shortest)
                else:
                    now_present = _class_present(current, shortest)
                    if now_present != self._candidate_present:
                        self._candidate_toggles += 1
                        self._candidate_present = now_present

                if self._candidate_toggles >= TOGGLES_REQUIRED:
                    logger.info(
                        "speaking class confirmed: %s after %d toggles",
                        self._candidate_class,
                        self._candidate_toggles,
                    )
                    self._speaking_class = self._candidate_class
                    self._candidate_class = ""
                    self._candidate_toggles = 0
                    self._prev_snapshot = current
                    return [
                        ParticipantState(name, self._speaking_class in current[name])
                        for name in names
                    ]

        self._prev_snapshot = current
        return [ParticipantState(name, False) for name in names]