"""
Tests for the TCP listener, the peer connector and session bookkeeping.
"""

import asyncio

import pytest

from lan_rendezvous.networking.connector import PeerConnector
from lan_rendezvous.networking.events import (
    ConnectDone, ConnectionAccepted, DataReceived, PeerClosed
)
from lan_rendezvous.networking.listener import RendezvousListener
from lan_rendezvous.networking.session import Session, SessionSet

from helpers import FakeSession, free_port, wait_until


def _of_type(events, event_type):
    return [e for e in events if isinstance(e, event_type)]


class _FailingReader:
    def __init__(self, error):
        self.error = error

    async def read(self, n):
        raise self.error


class _StubWriter:
    def get_extra_info(self, name):
        return ("10.0.0.2", 40001)

    def is_closing(self):
        return False


class TestRendezvousListener:
    """Test inbound session handling"""

    @pytest.mark.asyncio
    async def test_accepts_session_and_forwards_data(self):
        events = []
        listener = RendezvousListener(events.append, host="127.0.0.1")
        port = free_port()
        await listener.start(port)
        try:
            reader, writer = await asyncio.open_connection("127.0.0.1", port)
            writer.write(b"hello there")
            await writer.drain()

            assert await wait_until(lambda: _of_type(events, DataReceived))
            accepted = _of_type(events, ConnectionAccepted)
            assert len(accepted) == 1
            assert accepted[0].session.address == "127.0.0.1"
            assert accepted[0].session.inbound
            assert _of_type(events, DataReceived)[0].data == b"hello there"
            assert events.index(accepted[0]) < events.index(_of_type(events, DataReceived)[0])

            writer.close()
            assert await wait_until(lambda: _of_type(events, PeerClosed))
            assert _of_type(events, PeerClosed)[0].session is accepted[0].session
        finally:
            await listener.stop()

    @pytest.mark.asyncio
    async def test_start_twice_is_a_noop_and_stop_is_idempotent(self):
        listener = RendezvousListener(lambda event: None, host="127.0.0.1")
        port = free_port()
        await listener.start(port)
        server = listener.server

        await listener.start(port)
        assert listener.server is server

        await listener.stop()
        await listener.stop()
        assert not listener.running

    @pytest.mark.asyncio
    async def test_stop_before_start_is_safe(self):
        listener = RendezvousListener(lambda event: None)
        await listener.stop()
        assert not listener.running

    @pytest.mark.asyncio
    async def test_stopped_listener_refuses_connections(self):
        listener = RendezvousListener(lambda event: None, host="127.0.0.1")
        port = free_port()
        await listener.start(port)
        await listener.stop()

        with pytest.raises(OSError):
            await asyncio.open_connection("127.0.0.1", port)


class TestPeerConnector:
    """Test outbound dialing"""

    @pytest.mark.asyncio
    async def test_successful_connect_publishes_session_and_data(self):
        async def serve(reader, writer):
            writer.write(b"welcome")
            await writer.drain()

        server = await asyncio.start_server(serve, "127.0.0.1", 0)
        port = server.sockets[0].getsockname()[1]
        events = []
        connector = PeerConnector(events.append)
        try:
            session = await connector.connect("127.0.0.1", port)

            assert session is not None
            assert not session.inbound
            done = _of_type(events, ConnectDone)
            assert done == [ConnectDone("127.0.0.1", port, session=session)]

            assert await wait_until(lambda: _of_type(events, DataReceived))
            assert _of_type(events, DataReceived)[0].data == b"welcome"
        finally:
            connector.cancel()
            server.close()

    @pytest.mark.asyncio
    async def test_failed_connect_publishes_error(self):
        events = []
        connector = PeerConnector(events.append, connect_timeout=1.0)
        port = free_port()

        session = await connector.connect("127.0.0.1", port)

        assert session is None
        done = _of_type(events, ConnectDone)
        assert len(done) == 1
        assert done[0].session is None
        assert done[0].error


class TestSessionSet:
    """Test the set of sessions messages are relayed to"""

    def test_add_and_discard(self):
        sessions = SessionSet()
        session = FakeSession("10.0.0.2")

        assert sessions.add(session)
        assert not sessions.add(session)
        assert len(sessions) == 1
        assert session in sessions

        assert sessions.discard(session)
        assert not sessions.discard(session)
        assert len(sessions) == 0

    @pytest.mark.asyncio
    async def test_broadcast_prunes_failed_sessions(self):
        sessions = SessionSet()
        good = FakeSession("10.0.0.2")
        bad = FakeSession("10.0.0.3", healthy=False)
        sessions.add(bad)
        sessions.add(good)

        delivered = await sessions.broadcast(b"hi")

        assert delivered == 1
        assert good.sent == [b"hi"]
        assert bad not in sessions
        assert bad.closed
        assert good in sessions

    def test_close_all(self):
        sessions = SessionSet()
        first, second = FakeSession("10.0.0.2"), FakeSession("10.0.0.3")
        sessions.add(first)
        sessions.add(second)

        sessions.close_all()

        assert len(sessions) == 0
        assert first.closed and second.closed


class TestSession:
    """Test the read pump of a single session"""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [
        ConnectionResetError("reset by peer"),
        TimeoutError("timed out"),
        OSError(110, "Connection timed out"),
    ])
    async def test_read_errors_end_the_pump_with_peer_closed(self, error):
        events = []
        session = Session(_FailingReader(error), _StubWriter(), inbound=True)

        await session.pump(events.append)

        assert events == [PeerClosed(session)]
        assert session.address == "10.0.0.2"
