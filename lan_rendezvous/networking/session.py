"""
Established TCP sessions and the set of sessions messages are relayed to.
"""

import asyncio
import logging
from typing import Callable, Iterator, List

from ..config import READ_CHUNK_SIZE
from .events import DataReceived, PeerClosed

logger = logging.getLogger(__name__)


class Session:
    """One bidirectional byte stream to a peer."""

    def __init__(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter,
                 inbound: bool):
        """Wrap an open connection.

        Args:
            reader: Stream reader for the connection
            writer: Stream writer for the connection
            inbound: True if the peer dialed us, False if we dialed the peer
        """
        self.reader = reader
        self.writer = writer
        self.inbound = inbound
        peername = writer.get_extra_info('peername') or ("unknown", 0)
        self.address = peername[0]
        self.port = peername[1]

    def __repr__(self) -> str:
        direction = "inbound" if self.inbound else "outbound"
        return f"<Session {direction} {self.address}:{self.port}>"

    @property
    def is_closing(self) -> bool:
        return self.writer.is_closing()

    async def pump(self, publish: Callable[[object], None]) -> None:
        """Publish every received buffer until the peer closes the stream.

        Each buffer returned by a read is treated as one message. A PeerClosed
        event is always published when the loop ends.

        Args:
            publish: Callback that queues events for the state machine
        """
        try:
            while True:
                data = await self.reader.read(READ_CHUNK_SIZE)
                if not data:
                    logger.info(f"Connection closed by peer {self.address}:{self.port}")
                    break
                publish(DataReceived(self, data))
        except OSError as e:
            logger.error(f"Connection error with {self.address}:{self.port}: {e}")
        finally:
            publish(PeerClosed(self))

    async def send(self, data: bytes) -> bool:
        """Write one message to the peer.

        Returns:
            True if the data was written, False if the session is unusable
        """
        if self.is_closing:
            return False
        try:
            self.writer.write(data)
            await self.writer.drain()
            return True
        except (ConnectionError, OSError) as e:
            logger.error(f"Failed to send to {self.address}:{self.port}: {e}")
            return False

    def close(self) -> None:
        if not self.writer.is_closing():
            self.writer.close()


class SessionSet:
    """Sessions that outgoing chat messages are written to."""

    def __init__(self):
        self._sessions: List[Session] = []

    def __len__(self) -> int:
        return len(self._sessions)

    def __iter__(self) -> Iterator[Session]:
        return iter(list(self._sessions))

    def __contains__(self, session: Session) -> bool:
        return session in self._sessions

    def add(self, session: Session) -> bool:
        if session in self._sessions:
            return False
        self._sessions.append(session)
        logger.debug(f"Registered {session}, {len(self._sessions)} open")
        return True

    def discard(self, session: Session) -> bool:
        if session not in self._sessions:
            return False
        self._sessions.remove(session)
        logger.debug(f"Removed {session}, {len(self._sessions)} open")
        return True

    async def broadcast(self, data: bytes) -> int:
        """Write data to every session, pruning the ones that fail.

        Args:
            data: The message to send

        Returns:
            Number of sessions the data was written to
        """
        delivered = 0
        for session in list(self._sessions):
            if await session.send(data):
                delivered += 1
            else:
                logger.warning(f"Pruning unusable {session}")
                self.discard(session)
                session.close()
        return delivered

    def close_all(self) -> None:
        for session in list(self._sessions):
            session.close()
        self._sessions.clear()
