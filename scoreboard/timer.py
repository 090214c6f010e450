"""
Timer Loop — advances the counter once per interval.

Fires are scheduled against the event loop clock rather than by sleeping a
fixed amount after each fire, so time spent handling a fire does not
accumulate as drift.
"""

from __future__ import annotations

import asyncio
from typing import Callable

from scoreboard import notifier
from scoreboard.models import ScoreboardState, ServerSettings
from scoreboard.state import tick


class TimerLoop:
    """
    Ticks the shared record for the lifetime of the process.

    Attributes:
        state: The single state record.
        on_change: Persist + broadcast callback, invoked after every fire
            whether or not the counter moved.
        settings: Provides the tick interval and log level.
    """

    def __init__(
        self,
        state: ScoreboardState,
        on_change: Callable[[], None],
        settings: ServerSettings,
    ) -> None:
        self.state = state
        self.on_change = on_change
        self.settings = settings
        self.fires = 0

    async def run(self) -> None:
        """Fire every ``tick_interval`` seconds until cancelled."""
        loop = asyncio.get_running_loop()
        interval = self.settings.tick_interval
        deadline = loop.time() + interval

        while True:
            try:
                await asyncio.sleep(max(0.0, deadline - loop.time()))
                deadline += interval
                self.fire()
            except asyncio.CancelledError:
                break
            except Exception as exc:
                notifier.print_error("timer", str(exc))

    def fire(self) -> None:
        """Apply one tick and commit."""
        self.fires += 1
        tick(self.state)
        self.on_change()
        if self.settings.log_level == "DEBUG":
            e = self.state.elapsed
            notifier.print_tick(e.days, e.hours, e.minutes, e.seconds)
