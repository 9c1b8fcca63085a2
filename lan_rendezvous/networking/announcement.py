"""
Wire format of discovery announcements: ASCII ``HELLO:<tcp_port>``.
"""

from typing import Optional

ANNOUNCEMENT_KIND = "HELLO"


def encode_announcement(port: int) -> bytes:
    """Encode an announcement advertising our listening port."""
    return f"{ANNOUNCEMENT_KIND}:{port}".encode("ascii")


def parse_announcement(data: bytes) -> Optional[int]:
    """Parse a datagram as an announcement.

    Args:
        data: The raw datagram

    Returns:
        The advertised port, or None if the datagram is not a valid announcement
    """
    try:
        text = data.decode("ascii").strip()
    except UnicodeDecodeError:
        return None

    kind, sep, port_text = text.partition(":")
    if not sep or kind != ANNOUNCEMENT_KIND or not port_text.isdigit():
        return None

    port = int(port_text)
    if not 0 < port < 65536:
        return None
    return port
