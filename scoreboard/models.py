"""
Data models for the safety scoreboard.

Defines the single state record (elapsed counter, incident log, run flag,
best streak) and the server settings, keeping the codebase type-safe and
clean.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, List, Optional


@dataclass
class Elapsed:
    """Time since the last reset or incident, split odometer-style."""

    days: int = 0
    hours: int = 0  # 0..23
    minutes: int = 0  # 0..59
    seconds: int = 0  # 0..59

    @property
    def total_seconds(self) -> int:
        """Total elapsed duration in seconds."""
        return ((self.days * 24 + self.hours) * 60 + self.minutes) * 60 + self.seconds


@dataclass(frozen=True)
class Incident:
    """
    A logged safety incident.

    Attributes:
        id: Unique identifier, milliseconds since the epoch at creation.
        date: When the incident was logged (UTC).
        note: Free-text note exactly as the client sent it.
    """

    id: int
    date: datetime
    note: Any = None


@dataclass
class ScoreboardState:
    """
    The one mutable record shared by every client.

    Attributes:
        elapsed: Running duration since the last reset or incident.
        running: Whether the timer loop advances ``elapsed``.
        incidents: Logged incidents in insertion order.
        best_days: Best streak, the highest ``elapsed.days`` seen when an
            incident was logged.
        start_date: When tracking began. Not touched by reset.
    """

    start_date: datetime
    elapsed: Elapsed = field(default_factory=Elapsed)
    running: bool = False
    incidents: List[Incident] = field(default_factory=list)
    best_days: int = 0


@dataclass
class ServerSettings:
    """Runtime configuration for the scoreboard server."""

    host: str = "0.0.0.0"
    port: int = 3000
    admin_password: Optional[str] = None
    session_secret: str = "default_secret"
    session_max_age: int = 60 * 60 * 6  # seconds
    state_file: str = "state.json"
    static_dir: Optional[str] = None
    tick_interval: float = 1.0  # seconds
    require_admin: bool = True
    log_level: str = "INFO"
    max_retries: int = 5
    base_backoff: float = 2.0
