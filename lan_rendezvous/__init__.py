"""
LAN Rendezvous Chat.

This package lets two peers on the same local network discover each other
over UDP broadcast, agree on a TCP connection and exchange chat messages.
"""

# Package version
__version__ = "0.1.0"
