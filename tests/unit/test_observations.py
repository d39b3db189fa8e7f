"""Unit tests for partial-observability helpers and the event log."""

from __future__ import annotations

import pytest

from multiagent.core.observations import observe_others, within_view
from multiagent.metrics.definitions import EVENT_SCHEMAS, EventType
from multiagent.metrics.events import EventLog


POSITIONS = {"me": (5, 5), "near": (6, 4), "edge": (7, 7), "far": (0, 0)}


class TestWithinView:
    def test_square_window(self) -> None:
        assert within_view((5, 5), (7, 3), 2)
        assert not within_view((5, 5), (8, 5), 2)

    def test_zero_radius_sees_only_own_cell(self) -> None:
        assert within_view((1, 1), (1, 1), 0)
        assert not within_view((1, 1), (1, 2), 0)


class TestObserveOthers:
    def test_observer_excluded(self) -> None:
        others = observe_others("me", POSITIONS, 2)
        assert "me" not in others
        assert set(others) == {"near", "edge", "far"}

    def test_visible_agents_carry_position_and_distance(self) -> None:
        others = observe_others("me", POSITIONS, 2)
        assert others["near"]["visible"] is True
        assert others["near"]["position"] == (6, 4)
        assert others["near"]["distance"] == pytest.approx(2 ** 0.5)
        assert others["edge"]["visible"] is True

    def test_hidden_agents_leak_nothing(self) -> None:
        others = observe_others("me", POSITIONS, 2)
        assert others["far"] == {"id": "far", "visible": False}

    def test_info_only_for_visible(self) -> None:
        info = {aid: {"score": 1} for aid in POSITIONS}
        others = observe_others("me", POSITIONS, 2, info=info)
        assert others["near"]["info"] == {"score": 1}
        assert "info" not in others["far"]


class TestEventLog:
    def test_record_and_poll_by_cursor(self) -> None:
        log = EventLog()
        log.record(EventType.AGENT_CREATED, agent_id="a", team_id=None)
        new, cursor = log.since(0)
        assert new == [{"event": "agent_created", "agent_id": "a", "team_id": None}]
        assert cursor == 1

        log.record(EventType.TEAM_CREATED, team_id="red", members=["a"])
        new, cursor = log.since(cursor)
        assert [e["event"] for e in new] == ["team_created"]
        assert cursor == 2
        assert log.since(cursor) == ([], 2)

    def test_of_type(self) -> None:
        log = EventLog()
        log.record(EventType.AGENT_CREATED, agent_id="a", team_id=None)
        log.record(EventType.AGENT_REMOVED, agent_id="a", source="coordinator")
        assert len(log.of_type(EventType.AGENT_REMOVED)) == 1
        assert len(log) == 2

    def test_every_event_type_has_schema(self) -> None:
        assert set(EVENT_SCHEMAS) == {e.value for e in EventType}
