"""
TCP rendezvous listener accepting inbound peer sessions.
"""

import asyncio
import logging
from typing import Callable, Optional

from ..config import LISTEN_HOST
from .events import ConnectionAccepted
from .session import Session

logger = logging.getLogger(__name__)


class RendezvousListener:
    """Listening socket that turns inbound connections into sessions.

    Every accepted connection is published as a ConnectionAccepted event,
    followed by DataReceived events and a final PeerClosed event.
    """

    def __init__(self, publish: Callable[[object], None], host: str = LISTEN_HOST):
        """Initialize the listener.

        Args:
            publish: Callback that queues events for the state machine
            host: The host IP address to bind to
        """
        self.host = host
        self.port: Optional[int] = None
        self.server: Optional[asyncio.AbstractServer] = None
        self._publish = publish

    @property
    def running(self) -> bool:
        return self.server is not None

    async def start(self, port: int) -> None:
        """Bind the listening socket. Does nothing if already listening.

        Raises:
            OSError: If the port cannot be bound
        """
        if self.server is not None:
            logger.debug(f"Listener already running on {self.host}:{self.port}")
            return

        self.server = await asyncio.start_server(
            self._handle_connection, self.host, port
        )
        self.port = port
        logger.info(f"Listening on {self.host}:{port}")

    async def stop(self) -> None:
        """Close the listening socket; established sessions are left open."""
        if self.server is None:
            return

        server = self.server
        self.server = None
        # Accepted sessions outlive the server, so wait_closed() is not awaited
        server.close()
        await asyncio.sleep(0)
        logger.info(f"Listener on port {self.port} closed")

    async def _handle_connection(self, reader: asyncio.StreamReader,
                                 writer: asyncio.StreamWriter) -> None:
        """Handle an incoming connection from a peer.

        Args:
            reader: Stream reader for the connection
            writer: Stream writer for the connection
        """
        session = Session(reader, writer, inbound=True)
        logger.info(f"Incoming connection from {session.address}:{session.port}")
        self._publish(ConnectionAccepted(session))

        await session.pump(self._publish)
