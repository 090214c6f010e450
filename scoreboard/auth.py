"""
Admin Gate — shared-password login backed by an encrypted session cookie.

A successful login marks the session as admin. WebSocket connections read
that mark once, when they connect, to decide whether their control events
are accepted.
"""

from __future__ import annotations

import hashlib
import hmac

from aiohttp import web
from aiohttp_session import get_session, new_session
from aiohttp_session.cookie_storage import EncryptedCookieStorage

from scoreboard.models import ServerSettings

SESSION_COOKIE = "scoreboard_session"
_ADMIN_KEY = "is_admin"

SETTINGS_KEY = web.AppKey("settings", ServerSettings)


def session_storage(settings: ServerSettings) -> EncryptedCookieStorage:
    """Cookie storage keyed by a 32-byte digest of the session secret."""
    key = hashlib.sha256(settings.session_secret.encode()).digest()
    return EncryptedCookieStorage(
        key,
        cookie_name=SESSION_COOKIE,
        max_age=settings.session_max_age,
        httponly=True,
    )


def _password_matches(candidate: object, expected: str | None) -> bool:
    if not expected or not isinstance(candidate, str):
        return False
    return hmac.compare_digest(candidate.encode(), expected.encode())


async def is_admin(request: web.Request) -> bool:
    session = await get_session(request)
    return bool(session.get(_ADMIN_KEY))


async def login(request: web.Request) -> web.Response:
    settings = request.app[SETTINGS_KEY]
    try:
        body = await request.json()
    except ValueError:
        body = None
    password = body.get("password") if isinstance(body, dict) else None

    if not _password_matches(password, settings.admin_password):
        return web.json_response(
            {"success": False, "message": "Wrong password!"},
            status=401,
        )

    session = await new_session(request)
    session[_ADMIN_KEY] = True
    return web.json_response({"success": True})


async def logout(request: web.Request) -> web.Response:
    session = await get_session(request)
    session.invalidate()
    return web.json_response({"success": True})


async def check(request: web.Request) -> web.Response:
    return web.json_response({"loggedIn": await is_admin(request)})
