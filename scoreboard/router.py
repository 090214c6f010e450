"""
Control-Event Router.

Turns named client events into state transitions. Every accepted event,
like every timer fire, ends in ``commit``: the full record is queued for
persistence and the full public view goes out to all clients. Handlers
run to completion on the event loop, so no locking is needed around the
record.
"""

from __future__ import annotations

import json
from typing import Any, Callable, Dict, Tuple

from scoreboard import state as transitions
from scoreboard.broadcast import BroadcastChannel
from scoreboard.errors import MalformedMessage, UnauthorizedEvent, UnknownEvent
from scoreboard.models import ScoreboardState
from scoreboard.store import StateWriter
from scoreboard import notifier

# event name -> transition(state, payload)
_HANDLERS: Dict[str, Callable[[ScoreboardState, Any], Any]] = {
    "start": lambda state, _payload: transitions.start(state),
    "stop": lambda state, _payload: transitions.stop(state),
    "reset": lambda state, _payload: transitions.reset(state),
    "addIncident": lambda state, note: transitions.add_incident(state, note),
    "deleteIncident": lambda state, incident_id: transitions.delete_incident(state, incident_id),
}

CONTROL_EVENTS = frozenset(_HANDLERS)


def parse_message(text: str) -> Tuple[str, Any]:
    """
    Decode a client frame of the form ``{"event": name, "data": payload}``.

    Raises:
        MalformedMessage: if the frame is not such an object.
    """
    try:
        message = json.loads(text)
    except ValueError as exc:
        raise MalformedMessage("message is not valid JSON") from exc
    if not isinstance(message, dict) or not isinstance(message.get("event"), str):
        raise MalformedMessage("message must be an object with an 'event' name")
    return message["event"], message.get("data")


class ControlRouter:
    """
    Applies control events to the shared record.

    Attributes:
        state: The single state record.
        writer: Write-behind persistence for the record.
        channel: Fan-out to connected clients.
        require_admin: Reject control events from connections that did not
            log in as admin before connecting.
    """

    def __init__(
        self,
        state: ScoreboardState,
        writer: StateWriter,
        channel: BroadcastChannel,
        require_admin: bool = True,
    ) -> None:
        self.state = state
        self.writer = writer
        self.channel = channel
        self.require_admin = require_admin

    def dispatch(self, event: str, payload: Any = None, *, is_admin: bool = False) -> Any:
        """
        Apply ``event`` and commit the result.

        Returns whatever the transition returned (the new incident for
        ``addIncident``, a removed flag for ``deleteIncident``).

        Raises:
            UnknownEvent: if ``event`` is not a control event.
            UnauthorizedEvent: if admin is required and ``is_admin`` is False.
        """
        handler = _HANDLERS.get(event)
        if handler is None:
            raise UnknownEvent(f"unknown event {event!r}")
        if self.require_admin and not is_admin:
            raise UnauthorizedEvent(f"{event!r} requires admin login")

        result = handler(self.state, payload)
        if event == "addIncident":
            notifier.print_incident(result, self.state.best_days)
        self.commit()
        return result

    def commit(self) -> None:
        """Persist the full record and push the full public view to everyone."""
        self.writer.schedule(self.state)
        self.channel.publish(transitions.public_view(self.state))
