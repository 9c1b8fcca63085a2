"""
Upward notification interface between the rendezvous core and the UI.
"""

import logging

logger = logging.getLogger(__name__)


class SessionNotifier:
    """Receives status, connection and message events from the core.

    The default implementation only logs; the UI subclasses it. Retry
    prompts are declined by default.
    """

    def on_status_update(self, text: str) -> None:
        logger.debug(f"Status: {text}")

    def on_peer_connected(self, address: str) -> None:
        logger.debug(f"Peer connected: {address}")

    def on_message(self, text: str) -> None:
        logger.debug(f"Message: {text}")

    async def ask_retry(self) -> bool:
        """Ask whether to search again after a failed round.

        Returns:
            True to retry, False to stay idle
        """
        return False
