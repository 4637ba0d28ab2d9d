"""Local address resolution for the control-plane advertise address."""
import ipaddress
import logging
import socket
from typing import Optional

import psutil

from edgectl.errors import NoRouteFound

logger = logging.getLogger("edgectl.network")

# Any port works: connecting a UDP socket sends no packet
PROBE_PORT = 9


def route_source_address(target: str) -> Optional[str]:
    """Return the local source address the kernel would use to reach ``target``."""
    try:
        s = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            s.connect((target, PROBE_PORT))
            return s.getsockname()[0]
        finally:
            s.close()
    except OSError as e:
        logger.debug(f"Route lookup towards {target} failed: {e}")
        return None


def first_non_loopback_address() -> Optional[str]:
    """Return the first IPv4 address not on a loopback interface."""
    for name, addresses in psutil.net_if_addrs().items():
        for addr in addresses:
            if addr.family != socket.AF_INET:
                continue
            if _usable(addr.address):
                logger.debug(f"Using address {addr.address} of interface {name}")
                return addr.address
    return None


def _usable(address: Optional[str]) -> bool:
    if not address:
        return False
    try:
        ip = ipaddress.ip_address(address)
    except ValueError:
        return False
    return not (ip.is_loopback or ip.is_unspecified)


def resolve_advertise_address(target: str) -> str:
    """Determine which local address can reach ``target``.

    Args:
        target: Address of the remote host

    Returns:
        str: The local IPv4 address to advertise

    Raises:
        NoRouteFound: If neither the route lookup nor the interface scan yields an address
    """
    address = route_source_address(target)
    if not _usable(address):
        address = first_non_loopback_address()

    if not _usable(address):
        raise NoRouteFound(f"Could not determine a local address that reaches {target}")

    logger.info(f"🌐 Local address detected: {address}")
    return address
