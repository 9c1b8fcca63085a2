"""
Outbound dialer used once a peer has been discovered.
"""

import asyncio
import logging
from typing import Callable, Optional, Set

from ..config import CONNECT_TIMEOUT
from .events import ConnectDone
from .session import Session

logger = logging.getLogger(__name__)


class PeerConnector:
    """Opens a single outbound session to a discovered peer."""

    def __init__(self, publish: Callable[[object], None],
                 connect_timeout: float = CONNECT_TIMEOUT):
        """Initialize the connector.

        Args:
            publish: Callback that queues events for the state machine
            connect_timeout: Seconds to wait for the TCP handshake
        """
        self.connect_timeout = connect_timeout
        self._publish = publish
        self._pumps: Set[asyncio.Task] = set()

    async def connect(self, address: str, port: int) -> Optional[Session]:
        """Connect to a peer at the specified address and port.

        Publishes ConnectDone with either the new session or the error.
        There is no retry on failure.

        Args:
            address: The peer's IP address
            port: The peer's listening port

        Returns:
            The new session, or None if the connection failed
        """
        logger.info(f"Attempting to connect to peer at {address}:{port}")

        try:
            reader, writer = await asyncio.wait_for(
                asyncio.open_connection(address, port), timeout=self.connect_timeout
            )
        except (OSError, asyncio.TimeoutError) as e:
            error = str(e) or type(e).__name__
            logger.error(f"Failed to connect to peer at {address}:{port}: {error}")
            self._publish(ConnectDone(address, port, error=error))
            return None

        session = Session(reader, writer, inbound=False)
        logger.info(f"Connected to {address}:{port}")
        self._publish(ConnectDone(address, port, session=session))

        task = asyncio.create_task(session.pump(self._publish))
        self._pumps.add(task)
        task.add_done_callback(self._pumps.discard)
        return session

    def cancel(self) -> None:
        """Stop reading from every session this connector opened."""
        for task in list(self._pumps):
            task.cancel()
