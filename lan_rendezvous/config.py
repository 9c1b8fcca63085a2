"""Application-wide configuration constants."""

from dataclasses import dataclass
from typing import Tuple

# --- Discovery ---
DISCOVERY_PORT = 41234  # UDP
BROADCAST_ADDRESS = "255.255.255.255"
BROADCAST_INTERVAL = 2.0  # seconds between announcements
COUNTDOWN_INTERVAL = 1.0  # seconds between countdown ticks
SEARCH_TIMEOUT = 11.0  # seconds before a search round gives up
COUNTDOWN_START = 11

# --- Sessions ---
LISTEN_HOST = "0.0.0.0"
LISTEN_PORT_RANGE = (40000, 41000)  # TCP, upper bound exclusive
CONNECT_TIMEOUT = 5.0  # seconds
READ_CHUNK_SIZE = 65536

LOOPBACK_ADDRESS = "127.0.0.1"


@dataclass
class RendezvousConfig:
    """Tunable settings for one rendezvous node.

    The defaults are the protocol constants above; tests shrink the timings
    and point the broadcast address at loopback.
    """

    discovery_port: int = DISCOVERY_PORT
    broadcast_address: str = BROADCAST_ADDRESS
    broadcast_interval: float = BROADCAST_INTERVAL
    countdown_interval: float = COUNTDOWN_INTERVAL
    search_timeout: float = SEARCH_TIMEOUT
    countdown_start: int = COUNTDOWN_START
    listen_host: str = LISTEN_HOST
    listen_port_range: Tuple[int, int] = LISTEN_PORT_RANGE
    connect_timeout: float = CONNECT_TIMEOUT
    # When the last session closes: search again, or drop back to idle
    resume_search_on_disconnect: bool = False
