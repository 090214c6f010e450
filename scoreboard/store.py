"""
Persistence Adapter — the flat JSON state file.

The file holds the whole state record in the same shape clients see:

    {"days": 3, "hours": 4, "minutes": 5, "seconds": 6, "running": true,
     "incidents": [{"id": 1718000000000, "date": "...", "note": "leak"}],
     "startDate": "...", "bestDays": 12}

It uses:
  - Fail-soft loading: a missing or broken file yields default state
  - Atomic replace on save (write a sibling, then ``os.replace``)
  - A write-behind task so the event loop never blocks on disk I/O
  - Content hashing (SHA-256) to skip rewriting an unchanged snapshot
  - Exponential backoff with jitter when a write fails
"""

from __future__ import annotations

import asyncio
import hashlib
import json
import os
import random
import tempfile
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from dateutil import parser as dateutil_parser

from scoreboard import notifier
from scoreboard.errors import PersistenceError
from scoreboard.models import Elapsed, Incident, ScoreboardState, ServerSettings
from scoreboard.state import default_state, incident_to_dict, isoformat


# ─── Codec ────────────────────────────────────────────────────


def state_to_dict(state: ScoreboardState) -> Dict[str, Any]:
    """Serialize the full record into the on-disk layout."""
    return {
        "days": state.elapsed.days,
        "hours": state.elapsed.hours,
        "minutes": state.elapsed.minutes,
        "seconds": state.elapsed.seconds,
        "running": state.running,
        "incidents": [incident_to_dict(inc) for inc in state.incidents],
        "startDate": isoformat(state.start_date),
        "bestDays": state.best_days,
    }


def _int_field(raw: Dict[str, Any], key: str) -> int:
    value = raw.get(key, 0)
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValueError(f"{key!r} must be a non-negative integer, got {value!r}")
    return value


def _parse_datetime(value: Any, key: str) -> datetime:
    if not isinstance(value, str):
        raise ValueError(f"{key!r} must be a timestamp string, got {value!r}")
    parsed = dateutil_parser.parse(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _parse_incident(raw: Any) -> Incident:
    if not isinstance(raw, dict):
        raise ValueError(f"incident must be an object, got {raw!r}")
    incident_id = raw.get("id")
    if isinstance(incident_id, bool) or not isinstance(incident_id, int):
        raise ValueError(f"incident id must be an integer, got {incident_id!r}")
    return Incident(
        id=incident_id,
        date=_parse_datetime(raw.get("date"), "date"),
        note=raw.get("note"),
    )


def state_from_dict(raw: Any) -> ScoreboardState:
    """
    Rebuild a record from the on-disk layout.

    Missing keys fall back to defaults. Counter fields are re-normalized,
    so a hand-edited ``"seconds": 90`` becomes one minute thirty.

    Raises:
        ValueError: if the content does not describe a valid record.
    """
    if not isinstance(raw, dict):
        raise ValueError("state file does not contain a JSON object")

    total = Elapsed(
        days=_int_field(raw, "days"),
        hours=_int_field(raw, "hours"),
        minutes=_int_field(raw, "minutes"),
        seconds=_int_field(raw, "seconds"),
    ).total_seconds
    minutes, seconds = divmod(total, 60)
    hours, minutes = divmod(minutes, 60)
    days, hours = divmod(hours, 24)

    running = raw.get("running", False)
    if not isinstance(running, bool):
        raise ValueError(f"'running' must be a boolean, got {running!r}")

    raw_incidents = raw.get("incidents", [])
    if not isinstance(raw_incidents, list):
        raise ValueError("'incidents' must be a list")

    state = default_state()
    if "startDate" in raw:
        state.start_date = _parse_datetime(raw["startDate"], "startDate")
    state.elapsed = Elapsed(days=days, hours=hours, minutes=minutes, seconds=seconds)
    state.running = running
    state.incidents = [_parse_incident(item) for item in raw_incidents]
    state.best_days = _int_field(raw, "bestDays")
    return state


# ─── File store ───────────────────────────────────────────────


class StateStore:
    """
    Reads and writes the state file.

    Attributes:
        path: Location of the JSON state file.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def load(self) -> ScoreboardState:
        """
        Load the persisted record.

        Never raises: a missing file silently yields defaults, a broken one
        yields defaults with a warning.
        """
        if not self.path.exists():
            return default_state()

        try:
            with open(self.path, "r", encoding="utf-8") as fh:
                raw = json.load(fh)
            return state_from_dict(raw)
        except (OSError, ValueError, TypeError, OverflowError, RecursionError) as exc:
            notifier.print_warning(
                f"Could not read state file {self.path} ({exc}), starting from defaults."
            )
            return default_state()

    @staticmethod
    def serialize(state: ScoreboardState) -> str:
        return json.dumps(state_to_dict(state), indent=2)

    def save(self, state: ScoreboardState) -> None:
        """Write the full record synchronously."""
        self.write_text(self.serialize(state))

    def write_text(self, payload: str) -> None:
        """
        Atomically replace the state file with ``payload``.

        Raises:
            PersistenceError: if the file could not be written.
        """
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                dir=self.path.parent, prefix=self.path.name + ".", suffix=".tmp"
            )
        except OSError as exc:
            raise PersistenceError(f"failed to write {self.path}: {exc}") from exc

        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(payload)
            os.replace(tmp_path, self.path)
        except OSError as exc:
            try:
                os.unlink(tmp_path)
            except FileNotFoundError:
                pass
            raise PersistenceError(f"failed to write {self.path}: {exc}") from exc


# ─── Write-behind ─────────────────────────────────────────────


class StateWriter:
    """
    Persists snapshots in the background.

    ``schedule`` serializes the record immediately, so the file always
    reflects some point in the mutation order, and the background task
    writes only the newest snapshot. While a write keeps failing the
    in-memory record stays authoritative and the write is retried.
    """

    def __init__(self, store: StateStore, settings: ServerSettings) -> None:
        self.store = store
        self.settings = settings

        # (sequence number, payload) of the newest unwritten snapshot
        self._pending: Optional[Tuple[int, str]] = None
        self._seq = 0
        self._wakeup = asyncio.Event()

        # Guarded by _io_lock; worker threads outlive a cancelled run()
        self._io_lock = threading.Lock()
        self._written_seq = 0
        self._last_hash: Optional[str] = None

        # Backoff state
        self._consecutive_errors = 0

    @property
    def pending(self) -> bool:
        return self._pending is not None

    def schedule(self, state: ScoreboardState) -> None:
        """Queue a snapshot of ``state`` for writing."""
        self._seq += 1
        self._pending = (self._seq, self.store.serialize(state))
        self._wakeup.set()

    async def run(self) -> None:
        """Write queued snapshots until cancelled."""
        while True:
            try:
                await self._wakeup.wait()
                self._wakeup.clear()
                await self._write_pending()
                self._consecutive_errors = 0
            except asyncio.CancelledError:
                break
            except PersistenceError as exc:
                self._consecutive_errors += 1
                wait = self._backoff_delay()
                notifier.print_error("persistence", str(exc))
                notifier.print_retry("persistence", self._consecutive_errors, wait)
                await asyncio.sleep(wait)
                self._wakeup.set()

    async def _write_pending(self) -> None:
        pending = self._pending
        if pending is None:
            return

        await asyncio.to_thread(self._write, *pending)

        # A newer snapshot may have been queued while writing
        if self._pending is pending:
            self._pending = None

    def flush(self) -> None:
        """
        Synchronously write whatever is still queued (used at shutdown).

        Waits for a write still running in a worker thread, so an older
        snapshot can never land on top of the one written here.
        """
        pending = self._pending
        if pending is None:
            return
        try:
            self._write(*pending)
        except PersistenceError as exc:
            notifier.print_error("persistence", str(exc))
            return
        if self._pending is pending:
            self._pending = None

    def _write(self, seq: int, payload: str) -> None:
        """Write snapshot ``seq`` unless a newer one is already on disk."""
        digest = hashlib.sha256(payload.encode()).hexdigest()
        with self._io_lock:
            if seq <= self._written_seq:
                return
            if digest != self._last_hash:
                self.store.write_text(payload)
                self._last_hash = digest
            self._written_seq = seq

    def _backoff_delay(self) -> float:
        """
        Calculate exponential backoff with jitter.

        delay = base * 2^(attempts-1) + random jitter
        Capped at 5 minutes.
        """
        exp = min(self._consecutive_errors, self.settings.max_retries)
        base_delay = self.settings.base_backoff * (2 ** (exp - 1))
        jitter = random.uniform(0, base_delay * 0.5)
        return min(base_delay + jitter, 300.0)
