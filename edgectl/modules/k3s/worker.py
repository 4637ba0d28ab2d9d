"""Joining the target host to a control plane as a k3s agent."""
import logging
import shlex
import time
from typing import Callable, Optional

from edgectl.config import RetryPolicy
from edgectl.errors import InstallFailure, TransportError
from edgectl.logging import redact
from edgectl.modules.k3s.control_plane import API_PORT, INSTALL_SCRIPT_URL
from edgectl.modules.k3s.models import NodeIdentity
from edgectl.modules.kube import ClusterClient
from edgectl.modules.poller import require_condition
from edgectl.modules.ssh import RemoteChannel

logger = logging.getLogger("edgectl.k3s.worker")


def remote_hostname(channel: RemoteChannel, timeout: float = 10) -> Optional[str]:
    result = channel.execute("hostname", timeout=timeout)
    name = result.stdout.strip()
    return name if result.ok and name else None


def discover_node(
    cluster: ClusterClient,
    address: str,
    hostname: Optional[str],
    policy: RetryPolicy,
    sleep: Callable[[float], None] = time.sleep,
) -> NodeIdentity:
    """Poll the node list until the host registers.

    A node matches when its InternalIP equals ``address`` or its name equals
    ``hostname``.

    Raises:
        ConvergenceTimeout: If no matching node shows up within ``policy``
    """
    found = {}

    def registered(timeout: float) -> bool:
        identity = cluster.find_node(address=address, hostname=hostname, timeout=timeout)
        if identity:
            found["node"] = identity
        return identity is not None

    require_condition(registered, policy, f"node {hostname or address} to register", sleep=sleep)
    identity = found["node"]
    logger.info(f"✅ Node registered as {identity.name}")
    return identity


def agent_install_command(control_plane_address: str, join_token: str, version: str) -> str:
    return (
        f"curl -sfL {INSTALL_SCRIPT_URL} | "
        f"K3S_URL=https://{control_plane_address}:{API_PORT} "
        f"K3S_TOKEN={shlex.quote(join_token)} "
        f"INSTALL_K3S_VERSION={shlex.quote(version)} sh -"
    )


def join_worker(
    channel: RemoteChannel,
    cluster: ClusterClient,
    target: str,
    control_plane_address: str,
    join_token: str,
    version: str,
    policy: RetryPolicy,
    install_timeout: float = 300,
    command_timeout: float = 30,
    sleep: Callable[[float], None] = time.sleep,
) -> NodeIdentity:
    """Install the k3s agent on ``target`` and wait for the node to register.

    Args:
        channel: Remote channel to the target host
        cluster: API client of the control plane being joined
        target: Address of the target host
        control_plane_address: Address the agent uses to reach the server
        join_token: Shared cluster secret
        version: k3s release to install
        policy: Retry policy for node registration
        install_timeout: Timeout of the agent installer
        command_timeout: Timeout of the short checks
        sleep: Sleep function, replaceable in tests

    Returns:
        NodeIdentity of the registered node

    Raises:
        TransportError: If the target cannot reach the control plane
        InstallFailure: If the agent installer exits non-zero
        ConvergenceTimeout: If the node never registers
    """
    logger.info(f"🔗 Checking that {target} can reach the control plane at {control_plane_address}...")
    check = channel.execute(
        f"curl -k -s -m 10 https://{control_plane_address}:{API_PORT}/ping", timeout=command_timeout
    )
    if not check.ok:
        raise TransportError(
            f"{target} cannot reach the control plane at {control_plane_address}:{API_PORT}"
        )

    logger.info(f"📦 Installing k3s agent {version} on {target}...")
    result = channel.execute(
        agent_install_command(control_plane_address, join_token, version),
        timeout=install_timeout,
        sudo=True,
    )
    if not result.ok:
        detail = redact(result.stderr.strip() or result.stdout.strip(), [join_token])
        raise InstallFailure(f"k3s agent installer exited with status {result.exit_code}: {detail}")
    logger.info("✅ k3s agent installed")

    hostname = remote_hostname(channel, timeout=command_timeout)
    return discover_node(cluster, target, hostname, policy, sleep=sleep)
