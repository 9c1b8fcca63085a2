"""
Local identity resolution: the address peers see us at and our listening port.
"""

import ipaddress
import logging
import random
import socket
from dataclasses import dataclass
from typing import Optional, Tuple

import psutil

from ..config import LISTEN_PORT_RANGE, LOOPBACK_ADDRESS, RendezvousConfig

logger = logging.getLogger(__name__)


class IdentityResolver:
    """Determines this host's non-loopback IPv4 address."""

    def resolve(self) -> str:
        """Get the first IPv4 address of an active, non-loopback interface.

        Returns:
            The address as a string, or 127.0.0.1 if no interface qualifies
        """
        try:
            interfaces = psutil.net_if_addrs()
            stats = psutil.net_if_stats()
        except (OSError, psutil.Error) as e:
            logger.warning(f"Failed to enumerate network interfaces: {e}")
            return LOOPBACK_ADDRESS

        for name, addresses in interfaces.items():
            iface_stats = stats.get(name)
            if iface_stats is not None and not iface_stats.isup:
                continue
            for addr in addresses:
                if addr.family != socket.AF_INET:
                    continue
                try:
                    if ipaddress.ip_address(addr.address).is_loopback:
                        continue
                except ValueError:
                    continue
                logger.debug(f"Resolved local address {addr.address} on {name}")
                return addr.address

        logger.warning("No non-loopback IPv4 interface found, using loopback")
        return LOOPBACK_ADDRESS


def choose_listen_port(port_range: Tuple[int, int] = LISTEN_PORT_RANGE,
                       rng: Optional[random.Random] = None) -> int:
    """Pick the TCP listening port from a half-open range."""
    low, high = port_range
    return (rng or random).randrange(low, high)


@dataclass(frozen=True)
class Identity:
    """Address and listening port of this node, fixed for the process lifetime."""

    address: str
    port: int

    @classmethod
    def create(cls, config: Optional[RendezvousConfig] = None,
               resolver: Optional[IdentityResolver] = None) -> 'Identity':
        """Resolve the local address and choose a listening port.

        Args:
            config: Settings providing the port range
            resolver: Address resolver, defaults to IdentityResolver()

        Returns:
            A new Identity
        """
        config = config or RendezvousConfig()
        address = (resolver or IdentityResolver()).resolve()
        port = choose_listen_port(config.listen_port_range)
        logger.info(f"Local identity is {address}:{port}")
        return cls(address, port)
