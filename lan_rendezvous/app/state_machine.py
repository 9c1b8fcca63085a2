"""
Connection state machine orchestrating discovery and rendezvous.
"""

import asyncio
import logging
from enum import Enum
from typing import Any, Awaitable, Optional, Set

from ..config import RendezvousConfig
from ..networking import (
    DiscoveryBroadcaster, Identity, PeerConnector, RendezvousListener, SessionSet
)
from ..networking.events import (
    ConnectDone, ConnectionAccepted, DataReceived, DiscoveryReceived, PeerClosed,
    RetryDecided, SendRequested, StartRequested, TimerFired, TimerKind
)
from .messaging import format_chat_message
from .notifier import SessionNotifier

logger = logging.getLogger(__name__)


class Phase(Enum):
    IDLE = "idle"
    SEARCHING = "searching"
    CONNECTED = "connected"
    TIMED_OUT = "timed_out"


class ConnectionStateMachine:
    """Owns the phase, the transports and the session set.

    The listener, broadcaster, connector and their timers never change
    state themselves: they publish events onto one queue, and a single
    dispatch task applies them in order. The Searching -> Connected
    transition is claimed by whichever of listener-accept and
    connector-success is dispatched first; the other becomes a no-op apart
    from its session joining the session set.
    """

    def __init__(self, notifier: Optional[SessionNotifier] = None,
                 config: Optional[RendezvousConfig] = None,
                 identity: Optional[Identity] = None):
        """Initialize the state machine.

        Args:
            notifier: Receiver of status, connection and message events
            config: Ports, timings and the disconnect policy
            identity: Our address and listening port, resolved if None
        """
        self.config = config or RendezvousConfig()
        self.notifier = notifier or SessionNotifier()
        self.identity = identity or Identity.create(self.config)
        self.phase = Phase.IDLE
        self.peer_address: Optional[str] = None
        self.sessions = SessionSet()

        self.listener = RendezvousListener(self.publish, self.config.listen_host)
        self.broadcaster = DiscoveryBroadcaster(self.identity, self.publish, self.config)
        self.connector = PeerConnector(self.publish, self.config.connect_timeout)

        self._events: Optional[asyncio.Queue] = None
        self._dispatcher: Optional[asyncio.Task] = None
        self._background: Set[asyncio.Task] = set()
        self._handlers = {
            DiscoveryReceived: self._on_discovery_received,
            ConnectionAccepted: self._on_connection_accepted,
            ConnectDone: self._on_connect_done,
            TimerFired: self._on_timer_fired,
            DataReceived: self._on_data_received,
            PeerClosed: self._on_peer_closed,
            RetryDecided: self._on_retry_decided,
            SendRequested: self._on_send_requested,
            StartRequested: self._on_start_requested,
        }

    # ----- public interface -----

    async def start(self) -> None:
        """Start the dispatch task and begin searching for a peer."""
        if self._dispatcher is None:
            self._events = asyncio.Queue()
            self._dispatcher = asyncio.create_task(self._run())

        # The first round is set up by the dispatch task like every other transition
        done = asyncio.get_running_loop().create_future()
        self.publish(StartRequested(done))
        await asyncio.wait({done, self._dispatcher}, return_when=asyncio.FIRST_COMPLETED)

    async def stop(self) -> None:
        """Tear down discovery, the listener, every session and the dispatch task."""
        self.broadcaster.stop()
        self.connector.cancel()
        self.sessions.close_all()
        await self.listener.stop()

        for task in list(self._background):
            task.cancel()

        dispatcher, self._dispatcher = self._dispatcher, None
        if dispatcher is not None and dispatcher is not asyncio.current_task():
            dispatcher.cancel()
            await asyncio.gather(dispatcher, return_exceptions=True)

        self._events = None
        self.phase = Phase.IDLE
        logger.info("Rendezvous stopped")

    def send_message(self, text: str) -> None:
        """Queue a chat message for every open session and the local echo."""
        self.publish(SendRequested(text))

    def publish(self, event: Any) -> None:
        """Queue an event for the dispatch task."""
        if self._events is None:
            logger.debug(f"Dropping {type(event).__name__}, state machine not running")
            return
        self._events.put_nowait(event)

    async def dispatch(self, event: Any) -> None:
        """Apply one event to the state machine."""
        handler = self._handlers.get(type(event))
        if handler is None:
            logger.warning(f"No handler for event {type(event).__name__}")
            return
        await handler(event)

    # ----- dispatch loop -----

    async def _run(self) -> None:
        while True:
            event = await self._events.get()
            try:
                await self.dispatch(event)
            except Exception as e:
                logger.error(f"Error handling {type(event).__name__}: {e}", exc_info=True)

    def _spawn(self, coro: Awaitable) -> None:
        task = asyncio.ensure_future(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    # ----- transitions -----

    async def _begin_round(self) -> None:
        """Enter Searching: make sure the listener runs and start a discovery round."""
        self.phase = Phase.SEARCHING
        self.peer_address = None

        try:
            await self.listener.start(self.identity.port)
        except OSError as e:
            logger.error(f"Failed to start listener on port {self.identity.port}: {e}")
            self._notify_status(f"Listener unavailable: {e}")

        try:
            await self.broadcaster.start(self.identity.port, self._on_peer_discovered)
        except OSError as e:
            # Without discovery there is no timeout either, so offer the retry now
            await self._give_up_round(f"Discovery unavailable: {e}")

    def _claim_connected(self, address: str) -> bool:
        """Atomically move Searching -> Connected; False if another path already did."""
        if self.phase is not Phase.SEARCHING:
            return False
        self.phase = Phase.CONNECTED
        self.peer_address = address
        return True

    def _enter_connected(self, address: str) -> None:
        self.broadcaster.stop()
        logger.info(f"Connected to peer {address}")
        self._notify_status("Connected")
        self._notify_peer_connected(address)

    async def _give_up_round(self, status: str) -> None:
        """Stop searching and ask the user whether to retry."""
        self.broadcaster.stop()
        await self.listener.stop()
        self.phase = Phase.TIMED_OUT
        self._notify_status(status)
        self._spawn(self._prompt_retry())

    async def _prompt_retry(self) -> None:
        try:
            retry = await self.notifier.ask_retry()
        except Exception as e:
            logger.error(f"Error asking whether to retry: {e}")
            retry = False
        self.publish(RetryDecided(bool(retry)))

    def _on_peer_discovered(self, address: str, port: int) -> None:
        self.publish(DiscoveryReceived(address, port, self.broadcaster.generation))

    # ----- event handlers -----

    async def _on_start_requested(self, event: StartRequested) -> None:
        try:
            if self.phase in (Phase.SEARCHING, Phase.CONNECTED):
                logger.debug(f"Start ignored while {self.phase.name}")
                return
            await self._begin_round()
        finally:
            if not event.done.done():
                event.done.set_result(None)

    async def _on_discovery_received(self, event: DiscoveryReceived) -> None:
        if event.generation != self.broadcaster.generation or self.phase is not Phase.SEARCHING:
            logger.debug(f"Ignoring discovery of {event.address}:{event.port} while {self.phase.name}")
            return

        self.broadcaster.stop()
        self._spawn(self.connector.connect(event.address, event.port))

    async def _on_connection_accepted(self, event: ConnectionAccepted) -> None:
        session = event.session
        self.sessions.add(session)
        if self._claim_connected(session.address):
            self._enter_connected(session.address)
        else:
            logger.info(f"Accepted additional session {session} while {self.phase.name}")

    async def _on_connect_done(self, event: ConnectDone) -> None:
        if event.session is None:
            if self.phase is Phase.SEARCHING:
                await self._give_up_round("Connection failed")
            else:
                logger.info(f"Ignoring failed dial to {event.address}:{event.port} "
                            f"while {self.phase.name}")
            return

        self.sessions.add(event.session)
        if self._claim_connected(event.address):
            self._enter_connected(event.address)
        else:
            logger.info(f"Outbound session {event.session} completed after "
                        f"{self.phase.name}, keeping it")

    async def _on_timer_fired(self, event: TimerFired) -> None:
        # Timers of a stopped round may still be queued
        if event.generation != self.broadcaster.generation or not self.broadcaster.running:
            return
        if self.phase is not Phase.SEARCHING:
            return

        if event.kind is TimerKind.COUNTDOWN:
            if event.remaining > 0:
                self._notify_status(f"Searching ({event.remaining}s)")
        elif event.kind is TimerKind.TIMEOUT:
            await self._give_up_round("Timeout")

    async def _on_retry_decided(self, event: RetryDecided) -> None:
        if self.phase is not Phase.TIMED_OUT:
            return

        if event.retry:
            logger.info("Retrying discovery")
            await self._begin_round()
        else:
            self.phase = Phase.IDLE
            self._notify_status("Idle")

    async def _on_data_received(self, event: DataReceived) -> None:
        self._notify_message(event.data.decode("utf-8", errors="replace"))

    async def _on_peer_closed(self, event: PeerClosed) -> None:
        if not self.sessions.discard(event.session):
            return
        event.session.close()

        if len(self.sessions) or self.phase is not Phase.CONNECTED:
            return

        self._notify_status("Peer disconnected")
        if self.config.resume_search_on_disconnect:
            await self._begin_round()
        else:
            self.phase = Phase.IDLE

    async def _on_send_requested(self, event: SendRequested) -> None:
        message = format_chat_message(self.identity.address, event.text)
        delivered = await self.sessions.broadcast(message.encode("utf-8"))
        logger.debug(f"Sent message to {delivered} session(s)")
        self._notify_message(message)

    # ----- notifier calls -----

    def _notify_status(self, text: str) -> None:
        try:
            self.notifier.on_status_update(text)
        except Exception as e:
            logger.error(f"Error in status handler: {e}")

    def _notify_peer_connected(self, address: str) -> None:
        try:
            self.notifier.on_peer_connected(address)
        except Exception as e:
            logger.error(f"Error in connection handler for peer {address}: {e}")

    def _notify_message(self, text: str) -> None:
        try:
            self.notifier.on_message(text)
        except Exception as e:
            logger.error(f"Error in message handler: {e}")
