"""
HTTP surface and real-time channel.

Wires the state record, persistence, broadcast channel, router and timer
into one aiohttp application:

    GET  /              viewer page
    GET  /admin         admin page
    POST /admin/login   {password} -> {success}
    POST /admin/logout  -> {success}
    GET  /admin/check   -> {loggedIn}
    GET  /health        -> {status, running, incidentsCount}
    GET  /ws            WebSocket: server sends "update", admin sends controls
    GET  /static/...    page assets
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Optional

from aiohttp import WSMsgType, web
from aiohttp_session import setup as setup_session

from scoreboard import auth, notifier
from scoreboard.auth import SETTINGS_KEY
from scoreboard.broadcast import BroadcastChannel
from scoreboard.errors import ControlError
from scoreboard.models import ScoreboardState, ServerSettings
from scoreboard.router import ControlRouter, parse_message
from scoreboard.state import public_view
from scoreboard.store import StateStore, StateWriter
from scoreboard.timer import TimerLoop

_STATIC_DIR = Path(__file__).resolve().parent / "static"

STATE_KEY = web.AppKey("state", ScoreboardState)
WRITER_KEY = web.AppKey("writer", StateWriter)
CHANNEL_KEY = web.AppKey("channel", BroadcastChannel)
ROUTER_KEY = web.AppKey("router", ControlRouter)
TIMER_KEY = web.AppKey("timer", TimerLoop)
TASKS_KEY = web.AppKey("tasks", list)


def _static_dir(settings: ServerSettings) -> Path:
    return Path(settings.static_dir) if settings.static_dir else _STATIC_DIR


def _peer(request: web.Request) -> str:
    return request.remote or "unknown"


# ─── Handlers ─────────────────────────────────────────────────


async def viewer_page(request: web.Request) -> web.FileResponse:
    return web.FileResponse(_static_dir(request.app[SETTINGS_KEY]) / "viewer.html")


async def admin_page(request: web.Request) -> web.FileResponse:
    return web.FileResponse(_static_dir(request.app[SETTINGS_KEY]) / "admin.html")


async def health(request: web.Request) -> web.Response:
    state = request.app[STATE_KEY]
    return web.json_response({
        "status": "healthy",
        "running": state.running,
        "incidentsCount": len(state.incidents),
    })


async def websocket_handler(request: web.Request) -> web.WebSocketResponse:
    """
    One client connection.

    Admin privilege is read from the session once, at connect time, and
    applies to every control event on this socket.
    """
    app = request.app
    channel = app[CHANNEL_KEY]
    router = app[ROUTER_KEY]
    peer = _peer(request)

    admin = await auth.is_admin(request)
    ws = web.WebSocketResponse(heartbeat=30.0)
    await ws.prepare(request)

    channel.add(ws, peer)
    channel.send_to(ws, public_view(app[STATE_KEY]))
    notifier.print_client_connected(peer, admin, len(channel))

    try:
        async for msg in ws:
            if msg.type != WSMsgType.TEXT:
                continue
            event = "?"
            try:
                event, payload = parse_message(msg.data)
                router.dispatch(event, payload, is_admin=admin)
            except ControlError as exc:
                notifier.print_rejected(event, peer, str(exc))
                channel.send_error(ws, str(exc))
            else:
                notifier.print_control_event(event, peer)
    finally:
        await channel.remove(ws)
        notifier.print_client_disconnected(peer, len(channel))

    return ws


# ─── Lifecycle ────────────────────────────────────────────────


async def _start_background(app: web.Application) -> None:
    app[TASKS_KEY] = [
        asyncio.create_task(app[WRITER_KEY].run(), name="state-writer"),
        asyncio.create_task(app[TIMER_KEY].run(), name="timer-loop"),
    ]


async def _close_clients(app: web.Application) -> None:
    await app[CHANNEL_KEY].close()


async def _stop_background(app: web.Application) -> None:
    for task in app[TASKS_KEY]:
        task.cancel()
    await asyncio.gather(*app[TASKS_KEY], return_exceptions=True)
    app[WRITER_KEY].flush()


def create_app(
    settings: ServerSettings,
    state: Optional[ScoreboardState] = None,
    store: Optional[StateStore] = None,
) -> web.Application:
    """
    Build the application.

    Args:
        settings: Server settings.
        state: Record to serve; loaded from ``store`` when omitted.
        store: State file adapter; defaults to ``settings.state_file``.
    """
    store = store or StateStore(settings.state_file)
    if state is None:
        state = store.load()

    app = web.Application()
    setup_session(app, auth.session_storage(settings))

    writer = StateWriter(store, settings)
    channel = BroadcastChannel()
    router = ControlRouter(state, writer, channel, require_admin=settings.require_admin)
    timer = TimerLoop(state, router.commit, settings)

    app[SETTINGS_KEY] = settings
    app[STATE_KEY] = state
    app[WRITER_KEY] = writer
    app[CHANNEL_KEY] = channel
    app[ROUTER_KEY] = router
    app[TIMER_KEY] = timer

    app.router.add_get("/", viewer_page)
    app.router.add_get("/admin", admin_page)
    app.router.add_post("/admin/login", auth.login)
    app.router.add_post("/admin/logout", auth.logout)
    app.router.add_get("/admin/check", auth.check)
    app.router.add_get("/health", health)
    app.router.add_get("/ws", websocket_handler)
    app.router.add_static("/static", _static_dir(settings))

    app.on_startup.append(_start_background)
    app.on_shutdown.append(_close_clients)
    app.on_cleanup.append(_stop_background)
    return app
