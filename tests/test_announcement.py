"""
Tests for the discovery announcement wire format.
"""

import pytest

from lan_rendezvous.networking.announcement import encode_announcement, parse_announcement


def test_encode_announcement():
    assert encode_announcement(40123) == b"HELLO:40123"


def test_parse_valid_announcement():
    assert parse_announcement(b"HELLO:40456") == 40456


def test_parse_tolerates_trailing_newline():
    assert parse_announcement(b"HELLO:40456\n") == 40456


@pytest.mark.parametrize("datagram", [
    b"BYE:40456",
    b"hello:40456",
    b"HELLO",
    b"HELLO:",
    b"HELLO:abc",
    b"HELLO:-5",
    b"HELLO:0",
    b"HELLO:70000",
    b"HELLO:40456:extra",
    b"\xff\xfe\x00",
    b"",
])
def test_malformed_datagrams_are_rejected(datagram):
    assert parse_announcement(datagram) is None
