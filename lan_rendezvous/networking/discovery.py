"""
Peer discovery over UDP broadcast.
"""

import asyncio
import logging
import socket
from typing import Callable, List, Optional, Tuple

from ..config import RendezvousConfig
from .announcement import encode_announcement, parse_announcement
from .events import TimerFired, TimerKind
from .identity import Identity

logger = logging.getLogger(__name__)


class DiscoveryBroadcaster:
    """Announces our listening port and watches for other peers' announcements.

    One discovery round runs three timers: the periodic announcement, the
    countdown tick and the overall search timeout. Timer expiries are
    published as TimerFired events tagged with the round's generation, so
    events from a stopped round can be told apart from the current one.
    The first foreign announcement ends the round and is handed to the
    ``on_discovered`` callback given to start().
    """

    def __init__(self, identity: Identity, publish: Callable[[object], None],
                 config: Optional[RendezvousConfig] = None):
        """Initialize a new discovery broadcaster.

        Args:
            identity: Our own address, used to recognise self-echoes
            publish: Callback that queues events for the state machine
            config: Ports, broadcast address and timings
        """
        self.identity = identity
        self.config = config or RendezvousConfig()
        self.generation = 0
        self.countdown = self.config.countdown_start
        self.self_port: Optional[int] = None
        self.transport: Optional[asyncio.DatagramTransport] = None
        self._publish = publish
        self._on_discovered: Optional[Callable[[str, int], None]] = None
        self._tasks: List[asyncio.Task] = []
        self._active = False

    @property
    def running(self) -> bool:
        return self._active

    @property
    def timers_active(self) -> int:
        """Number of timers belonging to the current round."""
        return len(self._tasks)

    async def start(self, self_port: int,
                    on_discovered: Callable[[str, int], None]) -> None:
        """Start a new discovery round.

        Args:
            self_port: Our TCP listening port, advertised in announcements
            on_discovered: Called once with (address, port) of the first peer found

        Raises:
            OSError: If the discovery port cannot be bound
        """
        # Define the protocol
        class DiscoveryProtocol(asyncio.DatagramProtocol):
            def __init__(self, parent):
                self.parent = parent

            def datagram_received(self, data, addr):
                self.parent._handle_datagram(data, addr)

            def error_received(self, exc):
                logger.error(f"Discovery protocol error: {exc}")

        # Cancel whatever is left of the previous round
        self.stop()
        self.generation += 1
        self.self_port = self_port
        self._on_discovered = on_discovered
        self.countdown = self.config.countdown_start

        # Create a UDP socket
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            # Allow other peers on this host to share the discovery port
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

            # Enable broadcasting (needed for announcements)
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)

            # Bind to the discovery port
            sock.bind(('0.0.0.0', self.config.discovery_port))

            # Set socket to non-blocking mode (needed for asyncio)
            sock.setblocking(False)

            # Create the transport and protocol
            loop = asyncio.get_running_loop()
            self.transport, _ = await loop.create_datagram_endpoint(
                lambda: DiscoveryProtocol(self),
                sock=sock
            )
        except OSError as e:
            sock.close()
            logger.error(f"Failed to start discovery on port {self.config.discovery_port}: {e}")
            raise

        self._active = True
        generation = self.generation

        # Announcement, countdown and timeout timers for this round
        self._tasks = [
            asyncio.create_task(self._broadcast_loop()),
            asyncio.create_task(self._countdown_loop(generation)),
            asyncio.create_task(self._timeout(generation)),
        ]

        # Report the full countdown once the round is live
        self._publish(TimerFired(TimerKind.COUNTDOWN, generation, self.countdown))
        logger.info(f"Discovery round {generation} started on UDP port "
                    f"{self.config.discovery_port}, advertising TCP port {self_port}")

    def stop(self) -> None:
        """Cancel all three timers and close the broadcast endpoint.

        Safe to call repeatedly and from inside datagram_received.
        """
        was_active = self._active
        self._active = False

        tasks, self._tasks = self._tasks, []
        for task in tasks:
            task.cancel()

        if self.transport is not None:
            self.transport.close()
            self.transport = None

        if was_active:
            logger.info(f"Discovery round {self.generation} stopped")

    def is_self_echo(self, address: str, port: int) -> bool:
        """Both the sender address and the advertised port must match ours."""
        return address == self.identity.address and port == self.self_port

    def _handle_datagram(self, data: bytes, addr: Tuple[str, int]) -> None:
        """Handle an incoming discovery datagram.

        Args:
            data: The raw datagram
            addr: The address (host, port) the datagram came from
        """
        if not self._active:
            return

        port = parse_announcement(data)
        if port is None:
            logger.debug(f"Ignoring non-announcement datagram from {addr}")
            return

        address = addr[0]
        if self.is_self_echo(address, port):
            return

        logger.info(f"Discovered peer {address}:{port}")
        on_discovered = self._on_discovered
        self.stop()
        if on_discovered is not None:
            on_discovered(address, port)

    def _send_announcement(self) -> None:
        """Broadcast our announcement on the discovery port."""
        if self.transport is None:
            return

        try:
            self.transport.sendto(
                encode_announcement(self.self_port),
                (self.config.broadcast_address, self.config.discovery_port)
            )
            logger.debug("Sent announcement via broadcast")
        except OSError as e:
            logger.error(f"Failed to send broadcast: {e}")

    async def _broadcast_loop(self) -> None:
        while True:
            await asyncio.sleep(self.config.broadcast_interval)
            self._send_announcement()

    async def _countdown_loop(self, generation: int) -> None:
        while True:
            await asyncio.sleep(self.config.countdown_interval)
            self.countdown -= 1
            self._publish(TimerFired(TimerKind.COUNTDOWN, generation, self.countdown))

    async def _timeout(self, generation: int) -> None:
        await asyncio.sleep(self.config.search_timeout)
        logger.info(f"Discovery round {generation} timed out")
        self._publish(TimerFired(TimerKind.TIMEOUT, generation))
