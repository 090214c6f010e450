"""
Tests for the broadcast channel.

Uses in-memory sockets so slow and broken peers can be simulated
without a server.
"""

import asyncio

import pytest

from scoreboard.broadcast import BroadcastChannel


class FakeSocket:
    """Stands in for a WebSocketResponse."""

    def __init__(self, stuck=False, broken=False):
        self.sent = []
        self.closed = False
        self._stuck = stuck
        self._broken = broken

    async def send_json(self, message):
        if self._broken:
            raise ConnectionResetError("peer went away")
        if self._stuck:
            await asyncio.Event().wait()
        self.sent.append(message)

    async def close(self):
        self.closed = True


async def _settle(rounds=5):
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
async def broadcast():
    hub = BroadcastChannel(max_backlog=1)
    yield hub
    await hub.close()


class TestPublish:
    async def test_delivers_in_order(self, broadcast):
        ws = FakeSocket()
        broadcast.add(ws, "viewer")
        for n in range(3):
            broadcast.publish({"seconds": n})
            await _settle()
        assert [m["data"]["seconds"] for m in ws.sent] == [0, 1, 2]
        assert all(m["event"] == "update" for m in ws.sent)

    async def test_error_goes_to_one_client(self, broadcast):
        sender, other = FakeSocket(), FakeSocket()
        broadcast.add(sender, "a")
        broadcast.add(other, "b")
        broadcast.send_error(sender, "nope")
        await _settle()
        assert sender.sent == [{"event": "error", "data": {"message": "nope"}}]
        assert other.sent == []


class TestDroppedClients:
    async def test_lagging_client_is_closed(self, broadcast, capsys):
        slow, healthy = FakeSocket(stuck=True), FakeSocket()
        broadcast.add(slow, "slow")
        broadcast.add(healthy, "healthy")

        for n in range(4):
            broadcast.publish({"seconds": n})
            await _settle()

        assert slow.closed
        assert slow not in broadcast
        assert healthy in broadcast
        assert len(broadcast) == 1
        assert [m["data"]["seconds"] for m in healthy.sent] == [0, 1, 2, 3]
        assert "fell too far behind" in capsys.readouterr().out

    async def test_broken_client_is_removed(self, broadcast, capsys):
        ws = FakeSocket(broken=True)
        broadcast.add(ws, "gone")
        broadcast.publish({"seconds": 1})
        await _settle()
        assert ws not in broadcast
        assert "peer went away" in capsys.readouterr().out

    async def test_close_drops_everyone(self, broadcast):
        sockets = [FakeSocket(), FakeSocket()]
        for ws in sockets:
            broadcast.add(ws)
        await broadcast.close()
        assert len(broadcast) == 0
        assert all(ws.closed for ws in sockets)
