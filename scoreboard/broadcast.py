"""
Broadcast Channel — fan-out of the public state to connected clients.

Each connected WebSocket gets its own outbound queue drained by a small
pump task. Publishing only enqueues, so every client receives updates in
exactly the order the server produced them, and one slow client never
holds up the others.
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, Optional, Set

from aiohttp import web

from scoreboard import notifier

UPDATE_EVENT = "update"
ERROR_EVENT = "error"


class _Subscriber:
    def __init__(self, ws: web.WebSocketResponse, peer: str, max_backlog: int) -> None:
        self.ws = ws
        self.peer = peer
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=max_backlog)
        self.task: Optional[asyncio.Task] = None


class BroadcastChannel:
    """
    Registry of connected clients.

    Attributes:
        max_backlog: Messages a client may fall behind before it is dropped.
    """

    def __init__(self, max_backlog: int = 256) -> None:
        self.max_backlog = max_backlog
        self._subscribers: Dict[web.WebSocketResponse, _Subscriber] = {}
        # close() calls for dropped laggards, held until they finish
        self._closing: Set[asyncio.Task] = set()

    def __len__(self) -> int:
        return len(self._subscribers)

    def __contains__(self, ws: object) -> bool:
        return ws in self._subscribers

    def add(self, ws: web.WebSocketResponse, peer: str = "?") -> None:
        """Register a freshly opened connection."""
        sub = _Subscriber(ws, peer, self.max_backlog)
        sub.task = asyncio.create_task(self._pump(sub), name=f"ws-pump-{peer}")
        self._subscribers[ws] = sub

    async def remove(self, ws: web.WebSocketResponse) -> None:
        """Unregister a connection and stop its pump."""
        sub = self._subscribers.pop(ws, None)
        if sub is None or sub.task is None:
            return
        if sub.task is not asyncio.current_task():
            sub.task.cancel()
            try:
                await sub.task
            except asyncio.CancelledError:
                pass

    def send_to(self, ws: web.WebSocketResponse, view: Dict[str, Any]) -> None:
        """Send the public view to one client only."""
        sub = self._subscribers.get(ws)
        if sub is not None:
            self._enqueue(sub, {"event": UPDATE_EVENT, "data": view})

    def send_error(self, ws: web.WebSocketResponse, message: str) -> None:
        sub = self._subscribers.get(ws)
        if sub is not None:
            self._enqueue(sub, {"event": ERROR_EVENT, "data": {"message": message}})

    def publish(self, view: Dict[str, Any]) -> None:
        """Send the public view to every connected client."""
        message = {"event": UPDATE_EVENT, "data": view}
        for sub in list(self._subscribers.values()):
            self._enqueue(sub, message)

    async def close(self) -> None:
        """Drop every client (used at shutdown)."""
        for ws in list(self._subscribers):
            await self.remove(ws)
            await ws.close()
        if self._closing:
            await asyncio.gather(*self._closing, return_exceptions=True)

    def _enqueue(self, sub: _Subscriber, message: Dict[str, Any]) -> None:
        try:
            sub.queue.put_nowait(message)
        except asyncio.QueueFull:
            notifier.print_warning(f"Client {sub.peer} fell too far behind, disconnecting.")
            self._subscribers.pop(sub.ws, None)
            if sub.task is not None:
                sub.task.cancel()
            task = asyncio.create_task(sub.ws.close(), name=f"ws-close-{sub.peer}")
            self._closing.add(task)
            task.add_done_callback(self._closing.discard)

    async def _pump(self, sub: _Subscriber) -> None:
        while True:
            message = await sub.queue.get()
            try:
                await sub.ws.send_json(message)
            except (ConnectionResetError, RuntimeError) as exc:
                # Peer went away mid-send; the others carry on
                notifier.print_error(f"client {sub.peer}", str(exc))
                self._subscribers.pop(sub.ws, None)
                return
