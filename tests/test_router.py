"""
Tests for the control-event router.

Every accepted event must be followed by one persisted snapshot and one
published view; rejected events must change nothing.
"""

import json

import pytest

from scoreboard.errors import MalformedMessage, UnauthorizedEvent, UnknownEvent
from scoreboard.models import Elapsed
from scoreboard.router import CONTROL_EVENTS, ControlRouter, parse_message


@pytest.fixture
def router(state, writer, channel):
    return ControlRouter(state, writer, channel, require_admin=True)


class TestParseMessage:
    def test_event_with_payload(self):
        assert parse_message('{"event": "addIncident", "data": "leak"}') == ("addIncident", "leak")

    def test_payload_optional(self):
        assert parse_message('{"event": "start"}') == ("start", None)

    @pytest.mark.parametrize("text", ["nope", "[]", '{"data": 1}', '{"event": 5}'])
    def test_malformed(self, text):
        with pytest.raises(MalformedMessage):
            parse_message(text)


class TestDispatch:
    def test_control_event_names(self):
        assert CONTROL_EVENTS == {"start", "stop", "reset", "addIncident", "deleteIncident"}

    def test_start_commits(self, router, state, writer, channel):
        router.dispatch("start", is_admin=True)
        assert state.running is True
        assert len(writer.snapshots) == 1
        assert json.loads(writer.snapshots[0])["running"] is True
        assert channel.published[-1]["running"] is True

    def test_stop(self, router, state):
        state.running = True
        router.dispatch("stop", is_admin=True)
        assert state.running is False

    def test_reset(self, router, state, channel):
        state.running = True
        state.elapsed = Elapsed(days=2, hours=1)
        router.dispatch("reset", is_admin=True)
        view = channel.published[-1]
        assert view["running"] is False
        assert (view["days"], view["hours"], view["minutes"], view["seconds"]) == (0, 0, 0, 0)

    def test_add_and_delete_incident(self, router, state, channel, capsys):
        state.elapsed = Elapsed(days=4)
        incident = router.dispatch("addIncident", "forklift", is_admin=True)
        assert channel.published[-1]["bestDays"] == 4
        assert channel.published[-1]["incidentsCount"] == 1
        assert "INCIDENT LOGGED" in capsys.readouterr().out

        assert router.dispatch("deleteIncident", incident.id, is_admin=True) is True
        assert state.incidents == []
        assert channel.published[-1]["incidentsCount"] == 0

    def test_delete_unknown_id_still_commits(self, router, writer, channel):
        assert router.dispatch("deleteIncident", 42, is_admin=True) is False
        assert len(writer.snapshots) == 1
        assert len(channel.published) == 1

    def test_unknown_event(self, router, writer, channel):
        with pytest.raises(UnknownEvent):
            router.dispatch("explode", is_admin=True)
        assert writer.snapshots == []
        assert channel.published == []

    @pytest.mark.parametrize("event", sorted(CONTROL_EVENTS))
    def test_non_admin_rejected(self, router, state, writer, channel, event):
        with pytest.raises(UnauthorizedEvent):
            router.dispatch(event, None, is_admin=False)
        assert state.running is False
        assert state.incidents == []
        assert writer.snapshots == []
        assert channel.published == []

    def test_trusted_viewers_mode(self, state, writer, channel):
        router = ControlRouter(state, writer, channel, require_admin=False)
        router.dispatch("start", is_admin=False)
        assert state.running is True


class TestCommit:
    def test_full_view_published(self, router, state, channel):
        router.commit()
        assert set(channel.published[0]) == {
            "days", "hours", "minutes", "seconds", "running",
            "incidents", "incidentsCount", "bestDays", "startDate",
        }

    def test_mutation_order_preserved(self, router, writer):
        router.dispatch("start", is_admin=True)
        router.dispatch("addIncident", "a", is_admin=True)
        router.dispatch("stop", is_admin=True)
        running = [json.loads(s)["running"] for s in writer.snapshots]
        counts = [len(json.loads(s)["incidents"]) for s in writer.snapshots]
        assert running == [True, True, False]
        assert counts == [0, 1, 1]
