"""Connectivity checks run before anything changes on the target host."""
import logging
import subprocess
from enum import Enum

from edgectl.errors import EdgectlError
from edgectl.modules.ssh import RemoteChannel

logger = logging.getLogger("edgectl.probe")

PING_COUNT = 3
SSH_MARKER = "SSH OK"


class ProbeResult(str, Enum):
    OK = "ok"
    UNREACHABLE = "unreachable"
    AUTH_FAILED = "auth_failed"


class Prober:
    """Coarse liveness (ping) followed by one authenticated no-op command."""

    def __init__(self, channel: RemoteChannel, ping_count: int = PING_COUNT, ping_timeout: float = 15):
        self.channel = channel
        self.ping_count = ping_count
        self.ping_timeout = ping_timeout

    def ping(self, address: str) -> bool:
        cmd = ["ping", "-c", str(self.ping_count), address]
        logger.debug(f"💻 Running: {' '.join(cmd)}")
        try:
            result = subprocess.run(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                timeout=self.ping_timeout,
            )
        except subprocess.TimeoutExpired:
            logger.debug(f"ping {address} timed out after {self.ping_timeout}s")
            return False
        return result.returncode == 0

    def authenticate(self, timeout: float = 10) -> bool:
        try:
            result = self.channel.execute(f"echo '{SSH_MARKER}'", timeout=timeout)
        except EdgectlError as e:
            logger.debug(f"SSH check failed: {e}")
            return False
        return result.ok and SSH_MARKER in result.stdout

    def probe(self, address: str) -> ProbeResult:
        """Check reachability, then credential validity.

        Args:
            address: Target host address

        Returns:
            ProbeResult.OK only if both checks pass
        """
        logger.info(f"📡 Testing ping to {address}...")
        if not self.ping(address):
            return ProbeResult.UNREACHABLE

        logger.info("🔐 Testing SSH connectivity...")
        if not self.authenticate():
            return ProbeResult.AUTH_FAILED

        logger.info(f"✅ Connectivity to {address} verified")
        return ProbeResult.OK
