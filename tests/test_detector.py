import dataclasses
from dataclasses import dataclass, field

import pytest

from meetrecorder.detector import Detector, Participant, ParticipantSnapshot, Tab

MEETING_TAB = Tab(
    title="Meeting",
    url="https://meet.example.com/abc",
    type="page",
    websocket_debugger_url="ws://localhost:9222/page/1",
)


@dataclass
class MockTabLister:
    tabs: list = field(default_factory=list)
    err: Exception | None = None

    def list_tabs(self, port):
        if self.err is not None:
            raise self.err
        return list(self.tabs)


@dataclass
class MockEvaluator:
    value: str = ""
    err: Exception | None = None
    calls: list = field(default_factory=list)

    def evaluate(self, websocket_url, expression):
        self.calls.append(expression)
        if self.err is not None:
            raise self.err
        return self.value


@dataclass
class MockProvider:
    name: str = "test"
    matches: bool = False
    snapshot_js: str = ""
    snapshots: list = field(default_factory=list)
    snapshot_err: Exception | None = None
    poll_js: str = ""
    poll_err: Exception | None = None
    participants: list = field(default_factory=list)
    parse_poll_err: Exception | None = None

    def matches_url(self, url):
        return self.matches

    def snapshot_expression(self):
        return self.snapshot_js

    def parse_snapshot(self, value):
        if self.snapshot_err is not None:
            raise self.snapshot_err
        return self.snapshots

    def poll_expression(self, speaking_class):
        if self.poll_err is not None:
            raise self.poll_err
        return self.poll_js

    def parse_poll(self, value):
        if self.parse_poll_err is not None:
            raise self.parse_poll_err
        return self.participants


def make(tabs, evaluator, provider):
    return Detector(tabs, evaluator, [9222], [provider])


def test_poll_no_meeting():
    tabs = MockTabLister(
        tabs=[Tab("Google", "https://google.com", "page", "ws://localhost:9222/page/1")]
    )
    d = make(tabs, MockEvaluator(), MockProvider(matches=False))
    result = d.poll()
    assert result.meeting_change is None
    assert result.participants is None


def test_poll_meeting_joined():
    tabs = MockTabLister(tabs=[dataclasses.replace(MEETING_TAB, title="Team Standup")])
    ev = MockEvaluator(value='[{"name":"Alice","classes":["cls-a"]}]')
    provider = MockProvider(
        matches=True,
        snapshot_js="snapshot()",
        snapshots=[ParticipantSnapshot("Alice", ["cls-a"])],
    )
    result = make(tabs, ev, provider).poll()
    assert result.meeting_change is not None
    assert result.meeting_change.title == "Team Standup"
    assert ev.calls == ["snapshot()"]


def test_poll_meeting_joined_uses_url_without_title():
    tabs = MockTabLister(tabs=[dataclasses.replace(MEETING_TAB, title="")])
    provider = MockProvider(matches=True, snapshot_js="snapshot()")
    result = make(tabs, MockEvaluator(value="[]"), provider).poll()
    assert result.meeting_change.title == "https://meet.example.com/abc"


def test_poll_meeting_ended():
    tabs = MockTabLister(tabs=[MEETING_TAB])
    provider = MockProvider(matches=True, snapshot_js="snapshot()", snapshots=[])
    d = make(tabs, MockEvaluator(value="[]"), provider)
    d.poll()
    provider.matches = False
    result = d.poll()
    assert result.meeting_change is not None
    assert result.meeting_change.title == ""


def test_poll_ignores_non_page_tabs():
    tabs = MockTabLister(tabs=[dataclasses.replace(MEETING_TAB, type="iframe")])
    result = make(tabs, MockEvaluator(), MockProvider(matches=True)).poll()
    assert result.meeting_change is None


def test_poll_discovery_to_cache():
    tabs = MockTabLister(tabs=[MEETING_TAB])
    ev = MockEvaluator()
    provider = MockProvider(matches=True, snapshot_js="snapshot()")
    d = make(tabs, ev, provider)

    provider.snapshots = [
        ParticipantSnapshot("Alice", ["cls-a", "cls-b"]),
        ParticipantSnapshot("Bob", ["cls-a"]),
    ]
    ev.value = "snapshot1"
    result = d.poll()
    assert len(result.participants) == 2
    assert not any(p.speaking for p in result.participants)

    with_x = [
        ParticipantSnapshot("Alice", ["cls-a", "cls-b", "x"]),
        ParticipantSnapshot("Bob", ["cls-a"]),
    ]
    without_x = [
        ParticipantSnapshot("Alice", ["cls-a", "cls-b"]),
        ParticipantSnapshot("Bob", ["cls-a"]),
    ]

    ev.value = "s"
    for snaps in (with_x, without_x, with_x):
        provider.snapshots = snaps
        result = d.poll()
        assert len(result.participants) == 2
        assert not any(p.speaking for p in result.participants)

    provider.snapshots = without_x
    result = d.poll()
    assert [p.name for p in result.participants] == ["Alice", "Bob"]
    assert result.participants[0].speaking is False
    assert result.participants[1].speaking is False

    provider.poll_js = "poll()"
    provider.participants = [Participant("Alice", False), Participant("Bob", True)]
    ev.value = "poll-result"
    result = d.poll()
    assert ev.calls[-1] == "poll()"
    assert len(result.participants) == 2
    assert result.participants[0].speaking is False
    assert result.participants[1].speaking is True


def test_poll_expression_error_resets_to_discovery():
    tabs = MockTabLister(tabs=[MEETING_TAB])
    ev = MockEvaluator(value="result")
    provider = MockProvider(matches=True, snapshot_js="snapshot()")
    d = make(tabs, ev, provider)

    base = [ParticipantSnapshot("Alice", ["base-class"])]
    with_x = [ParticipantSnapshot("Alice", ["base-class", "x"])]
    for snaps in (base, with_x, base, with_x, base):
        provider.snapshots = snaps
        d.poll()

    provider.poll_err = ValueError("invalid CSS class")
    result = d.poll()
    assert result.participants is None

    provider.poll_err = None
    provider.snapshots = [ParticipantSnapshot("Alice", ["new-class"])]
    ev.value = "snap"
    result = d.poll()
    assert ev.calls[-1] == "snapshot()"
    assert len(result.participants) == 1
    assert result.participants[0].speaking is False


def test_poll_title_change():
    tabs = MockTabLister(tabs=[dataclasses.replace(MEETING_TAB, title="Meeting 1")])
    provider = MockProvider(matches=True, snapshot_js="snapshot()", snapshots=[])
    d = make(tabs, MockEvaluator(value="[]"), provider)
    d.poll()
    tabs.tabs[0] = dataclasses.replace(tabs.tabs[0], title="Meeting 2")
    result = d.poll()
    assert result.meeting_change is not None
    assert result.meeting_change.title == "Meeting 2"


def test_poll_same_title_no_change():
    tabs = MockTabLister(tabs=[MEETING_TAB])
    provider = MockProvider(matches=True, snapshot_js="snapshot()", snapshots=[])
    d = make(tabs, MockEvaluator(value="[]"), provider)
    d.poll()
    result = d.poll()
    assert result.meeting_change is None
    assert result.participants == []


def test_poll_list_tabs_error_ignored():
    tabs = MockTabLister(err=ConnectionRefusedError("connection refused"))
    result = make(tabs, MockEvaluator(), MockProvider(matches=True)).poll()
    assert result.meeting_change is None
    assert result.participants is None


def test_poll_evaluate_error():
    tabs = MockTabLister(tabs=[MEETING_TAB])
    ev = MockEvaluator(err=ConnectionError("websocket closed"))
    provider = MockProvider(matches=True, snapshot_js="snapshot()")
    with pytest.raises(ConnectionError, match="websocket closed"):
        make(tabs, ev, provider).poll()


def test_poll_parse_snapshot_error():
    tabs = MockTabLister(tabs=[MEETING_TAB])
    provider = MockProvider(matches=True, snapshot_js="snapshot()", snapshot_err=ValueError("bad json"))
    with pytest.raises(ValueError, match="bad json"):
        make(tabs, MockEvaluator(value="x"), provider).poll()


def test_poll_empty_evaluate_response():
    tabs = MockTabLister(tabs=[MEETING_TAB])
    provider = MockProvider(matches=True, snapshot_js="snapshot()")
    result = make(tabs, MockEvaluator(value=""), provider).poll()
    assert result.participants is None