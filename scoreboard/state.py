"""
State record transitions.

Every control event and every timer fire maps onto one of the functions
below. They mutate the record they are given and do nothing else: no file
writes, no network. Persisting and broadcasting the result is the caller's
job (see ``scoreboard.router``).
"""

from __future__ import annotations

import copy
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from scoreboard.models import Elapsed, Incident, ScoreboardState

# Odometer limits
_SECONDS_PER_MINUTE = 60
_MINUTES_PER_HOUR = 60
_HOURS_PER_DAY = 24


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def isoformat(value: datetime) -> str:
    """Render a datetime as an ISO-8601 string, naive values taken as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


def default_state(now: Optional[datetime] = None) -> ScoreboardState:
    """A zeroed, stopped record with tracking starting ``now``."""
    return ScoreboardState(start_date=now or _utcnow())


# ─── Transitions ──────────────────────────────────────────────


def start(state: ScoreboardState) -> None:
    state.running = True


def stop(state: ScoreboardState) -> None:
    state.running = False


def reset(state: ScoreboardState) -> None:
    """Zero the counter and stop it. Incidents, best streak and start date stay."""
    state.elapsed = Elapsed()
    state.running = False


def add_incident(
    state: ScoreboardState,
    note: Any,
    now: Optional[datetime] = None,
) -> Incident:
    """
    Log an incident and restart the streak.

    The best streak is raised to the current day count before the counter
    is zeroed. ``running`` is left as it was, so a running board keeps
    counting from zero.
    """
    now = now or _utcnow()
    incident_id = int(now.timestamp() * 1000)
    if state.incidents:
        # Two incidents inside the same millisecond still get distinct ids
        incident_id = max(incident_id, max(inc.id for inc in state.incidents) + 1)

    incident = Incident(id=incident_id, date=now, note=note)
    state.incidents.append(incident)
    state.best_days = max(state.best_days, state.elapsed.days)
    state.elapsed = Elapsed()
    return incident


def delete_incident(state: ScoreboardState, incident_id: Any) -> bool:
    """Remove the incident with ``incident_id``. Returns False if none matched."""
    remaining = [inc for inc in state.incidents if inc.id != incident_id]
    removed = len(remaining) != len(state.incidents)
    state.incidents = remaining
    return removed


def tick(state: ScoreboardState) -> bool:
    """
    Advance the counter by one second if running.

    Carries seconds into minutes, minutes into hours and hours into days.
    Days are unbounded. Returns whether the counter moved.
    """
    if not state.running:
        return False

    elapsed = state.elapsed
    elapsed.seconds += 1
    if elapsed.seconds >= _SECONDS_PER_MINUTE:
        elapsed.seconds = 0
        elapsed.minutes += 1
    if elapsed.minutes >= _MINUTES_PER_HOUR:
        elapsed.minutes = 0
        elapsed.hours += 1
    if elapsed.hours >= _HOURS_PER_DAY:
        elapsed.hours = 0
        elapsed.days += 1
    return True


# ─── Public projection ────────────────────────────────────────


def incident_to_dict(incident: Incident) -> Dict[str, Any]:
    return {
        "id": incident.id,
        "date": isoformat(incident.date),
        "note": copy.deepcopy(incident.note),
    }


def public_view(state: ScoreboardState) -> Dict[str, Any]:
    """
    Build the read-only view sent to clients in ``update`` events.

    Returns a fresh JSON-ready dict; nothing in it aliases the record.
    """
    return {
        "days": state.elapsed.days,
        "hours": state.elapsed.hours,
        "minutes": state.elapsed.minutes,
        "seconds": state.elapsed.seconds,
        "running": state.running,
        "incidents": [incident_to_dict(inc) for inc in state.incidents],
        "incidentsCount": len(state.incidents),
        "bestDays": state.best_days,
        "startDate": isoformat(state.start_date),
    }
