"""
Typed events published by the transports and timers.

Every socket callback and timer publishes one of these onto the state
machine's queue instead of touching shared state directly.
"""

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .session import Session


class TimerKind(Enum):
    COUNTDOWN = "countdown"
    TIMEOUT = "timeout"


@dataclass(frozen=True)
class DiscoveryReceived:
    """A foreign announcement was received during discovery round ``generation``."""
    address: str
    port: int
    generation: int


@dataclass(frozen=True)
class ConnectionAccepted:
    """The listener accepted an inbound session."""
    session: 'Session'


@dataclass(frozen=True)
class ConnectDone:
    """An outbound dial finished; exactly one of session/error is set."""
    address: str
    port: int
    session: Optional['Session'] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class TimerFired:
    kind: TimerKind
    generation: int
    remaining: int = 0


@dataclass(frozen=True)
class DataReceived:
    session: 'Session'
    data: bytes


@dataclass(frozen=True)
class PeerClosed:
    session: 'Session'


@dataclass(frozen=True)
class RetryDecided:
    """The user answered the retry prompt."""
    retry: bool


@dataclass(frozen=True)
class SendRequested:
    text: str


@dataclass(frozen=True, eq=False)
class StartRequested:
    """Begin a search round; ``done`` is resolved once the round is set up."""
    done: 'asyncio.Future'
