"""
Chat message formatting.
"""

from datetime import datetime
from typing import Optional


def format_chat_message(address: str, text: str, when: Optional[datetime] = None) -> str:
    """Prefix a chat line with the sender's address and local time.

    Args:
        address: The sender's IP address
        text: The message text typed by the user
        when: Timestamp to use, defaults to now

    Returns:
        The line as sent to peers, e.g. ``[192.168.1.5][14:03:27] hi``
    """
    when = when or datetime.now()
    return f"[{address}][{when.strftime('%H:%M:%S')}] {text}"
