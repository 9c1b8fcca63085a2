"""
Networking layer for LAN rendezvous.

This package provides local identity resolution, UDP broadcast discovery,
the TCP rendezvous listener and the outbound peer connector.
"""

from .identity import Identity, IdentityResolver, choose_listen_port
from .discovery import DiscoveryBroadcaster
from .listener import RendezvousListener
from .connector import PeerConnector
from .session import Session, SessionSet

__all__ = [
    'Identity',
    'IdentityResolver',
    'choose_listen_port',
    'DiscoveryBroadcaster',
    'RendezvousListener',
    'PeerConnector',
    'Session',
    'SessionSet',
]
