"""
Main entry point — runs the scoreboard server.

Loads configuration, restores the persisted state, serves the viewer,
admin and WebSocket endpoints in a single asyncio event loop, and handles
graceful shutdown on Ctrl+C.

Usage:
    python -m scoreboard
    scoreboard
"""

from __future__ import annotations

import asyncio
import signal
import sys

from aiohttp import web

from scoreboard.app import STATE_KEY, create_app
from scoreboard.config import load_config
from scoreboard.models import ServerSettings
from scoreboard import notifier


def _handle_signals(stop: asyncio.Event, loop: asyncio.AbstractEventLoop) -> None:
    """Register signal handlers for graceful shutdown."""
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except NotImplementedError:
            # Windows doesn't support add_signal_handler
            pass


def _startup_warnings(settings: ServerSettings) -> None:
    if not settings.admin_password:
        notifier.print_warning("ADMIN_PASS is not set; admin login is disabled.")
    if settings.session_secret == ServerSettings.session_secret:
        notifier.print_warning("SESSION_SECRET is not set; using the built-in default.")
    if not settings.require_admin:
        notifier.print_warning("require_admin is off; any viewer can send control events.")


async def async_main() -> None:
    """Async entry point."""
    settings = load_config()
    notifier.print_banner()
    _startup_warnings(settings)

    app = create_app(settings)
    state = app[STATE_KEY]
    notifier.print_state_loaded(
        settings.state_file,
        state.elapsed.days,
        len(state.incidents),
        state.running,
    )

    stop = asyncio.Event()
    _handle_signals(stop, asyncio.get_running_loop())

    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, settings.host, settings.port)
    await site.start()
    notifier.print_listening(settings.host, settings.port)

    try:
        await stop.wait()
    finally:
        notifier.print_shutdown()
        await runner.cleanup()


def main() -> None:
    """Sync entry point."""
    try:
        asyncio.run(async_main())
    except KeyboardInterrupt:
        # Signal handler already printed shutdown message
        sys.exit(0)


if __name__ == "__main__":
    main()
