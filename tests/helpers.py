"""
Shared helpers for the rendezvous tests.
"""

import asyncio
import socket
import time
from typing import Callable, List

from lan_rendezvous.app import SessionNotifier
from lan_rendezvous.config import RendezvousConfig


class RecordingNotifier(SessionNotifier):
    """Notifier that records every call and answers retry prompts from a script."""

    def __init__(self, retry_answers: List[bool] = None):
        self.statuses: List[str] = []
        self.connected: List[str] = []
        self.messages: List[str] = []
        self.retry_answers = list(retry_answers or [])
        self.retry_prompts = 0

    def on_status_update(self, text):
        self.statuses.append(text)

    def on_peer_connected(self, address):
        self.connected.append(address)

    def on_message(self, text):
        self.messages.append(text)

    async def ask_retry(self):
        self.retry_prompts += 1
        if self.retry_answers:
            return self.retry_answers.pop(0)
        return False


class FakeSession:
    """Stand-in for a TCP session that records what is written to it."""

    def __init__(self, address: str, port: int = 40001, healthy: bool = True):
        self.address = address
        self.port = port
        self.healthy = healthy
        self.sent: List[bytes] = []
        self.closed = False

    async def send(self, data):
        if not self.healthy:
            return False
        self.sent.append(data)
        return True

    def close(self):
        self.closed = True


def free_port(kind=socket.SOCK_STREAM) -> int:
    """Ask the OS for a currently unused loopback port."""
    with socket.socket(socket.AF_INET, kind) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


def fast_config(**overrides) -> RendezvousConfig:
    """Protocol settings with short timings and loopback-only traffic."""
    settings = dict(
        discovery_port=free_port(socket.SOCK_DGRAM),
        broadcast_address="127.0.0.1",
        broadcast_interval=0.05,
        countdown_interval=0.05,
        search_timeout=0.4,
        countdown_start=3,
        listen_host="127.0.0.1",
        connect_timeout=1.0,
    )
    settings.update(overrides)
    return RendezvousConfig(**settings)


async def wait_until(predicate: Callable[[], bool], timeout: float = 3.0) -> bool:
    """Poll predicate until it holds or the timeout expires."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        await asyncio.sleep(0.01)
    return predicate()
