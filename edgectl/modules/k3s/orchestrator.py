"""End-to-end k3s bootstrap.

One code path serves both topologies; the topology only decides which
control-plane variant is used and whether the target joins as an agent or
is itself the server node.
"""
import logging
import time
from typing import Callable, Optional

import requests

from edgectl.config import ClusterBootstrapConfig, Topology
from edgectl.errors import EdgectlError, TransportError
from edgectl.modules.addons import AddonContext, install_addons, label_node
from edgectl.modules.doctor import check_dependencies
from edgectl.modules.k3s.control_plane import ControlPlane, build_control_plane
from edgectl.modules.k3s.kubeconfig import install_credential
from edgectl.modules.k3s.models import BootstrapPhase, BootstrapState, KubeAccessCredential, NodeIdentity
from edgectl.modules.k3s.worker import discover_node, join_worker, remote_hostname
from edgectl.modules.kube import ClusterClient
from edgectl.modules.network import resolve_advertise_address
from edgectl.modules.poller import require_condition
from edgectl.modules.probe import Prober, ProbeResult
from edgectl.modules.ssh import RemoteChannel
from edgectl.modules.summary import ClusterSummary, report

logger = logging.getLogger("edgectl.k3s.orchestrator")


class Bootstrapper:
    """Runs a bootstrap for one ``ClusterBootstrapConfig``.

    Collaborators default to the real implementations and can be replaced
    for testing.
    """

    def __init__(
        self,
        config: ClusterBootstrapConfig,
        channel: Optional[RemoteChannel] = None,
        prober: Optional[Prober] = None,
        control_plane: Optional[ControlPlane] = None,
        cluster_factory: Callable[[str], ClusterClient] = ClusterClient,
        resolver: Callable[[str], str] = resolve_advertise_address,
        preflight: Callable[[Topology], None] = check_dependencies,
        sleep: Callable[[float], None] = time.sleep,
        session=requests,
    ):
        self.config = config
        self.channel = channel or RemoteChannel(
            config.target_host,
            config.credential,
            port=config.ssh.port,
            connect_timeout=config.ssh.connect_timeout,
            secrets=config.secrets,
        )
        self.prober = prober or Prober(self.channel)
        self._control_plane = control_plane
        self.cluster_factory = cluster_factory
        self.resolver = resolver
        self.preflight = preflight
        self.sleep = sleep
        self.session = session
        self.state = BootstrapState()

    def _enter(self, phase: BootstrapPhase) -> None:
        self.state.update_phase(phase)
        logger.debug(f"Entering phase {phase.value}")

    def run(self) -> ClusterSummary:
        """Execute every phase in order.

        Returns:
            ClusterSummary of the resulting cluster

        Raises:
            EdgectlError: On the first fatal failure; nothing is rolled back
        """
        try:
            return self._run()
        except EdgectlError:
            logger.error(f"❌ Bootstrap failed during phase {self.state.phase.value}")
            self.state.fail()
            raise

    def _run(self) -> ClusterSummary:
        config = self.config
        target = config.target_host
        logger.info(f"🚀 Bootstrapping k3s {config.version} on {target} ({config.topology.value})")

        self._enter(BootstrapPhase.PREFLIGHT)
        self.preflight(config.topology)

        self._enter(BootstrapPhase.PROBE)
        result = self.prober.probe(target)
        if result == ProbeResult.UNREACHABLE:
            raise TransportError(f"{target} is not reachable")
        if result == ProbeResult.AUTH_FAILED:
            raise TransportError(f"SSH login to {config.credential.username}@{target} failed")

        self._enter(BootstrapPhase.RESOLVE_ADDRESS)
        if config.topology == Topology.LOCAL_CONTROL_PLANE:
            advertise_address = self.resolver(target)
        else:
            advertise_address = target

        self._enter(BootstrapPhase.CONTROL_PLANE)
        control_plane = self._control_plane or build_control_plane(config, self.channel, advertise_address)
        control_plane.install()

        self._enter(BootstrapPhase.CONTROL_PLANE_READY)
        require_condition(
            control_plane.healthy, config.retry.control_plane, "k3s API server", sleep=self.sleep
        )

        self._enter(BootstrapPhase.CREDENTIAL)
        credential, cluster = self._install_credential(control_plane)

        identity = self._register_node(cluster, control_plane)

        self._enter(BootstrapPhase.LABEL_NODE)
        self.state.add_warnings(label_node(cluster, identity, config.node_labels))

        self._enter(BootstrapPhase.ADDONS)
        ctx = AddonContext(
            cluster=cluster,
            target_host=target,
            kubeconfig=str(credential.path),
            ready_policy=config.retry.addon_ready,
            sleep=self.sleep,
            session=self.session,
        )
        self.state.add_warnings(install_addons(config.addons, ctx))

        self._enter(BootstrapPhase.REPORT)
        summary = report(cluster, str(credential.path), target, config.addons, identity)
        self.state.add_warnings(summary.warnings)

        self._enter(BootstrapPhase.COMPLETED)
        if self.state.warnings:
            logger.warning(f"⚠️ Finished with {len(self.state.warnings)} warning(s)")
        logger.info("✅ Bootstrap complete")
        return summary

    def _install_credential(self, control_plane: ControlPlane):
        config = self.config
        require_condition(
            control_plane.credential_ready, config.retry.credential, "kubeconfig", sleep=self.sleep
        )
        credential: KubeAccessCredential = install_credential(
            control_plane.fetch_credential(),
            control_plane.endpoint_address,
            config.kube_dir,
            config.cluster_name,
        )
        cluster = self.cluster_factory(str(credential.path))

        def api_reachable(timeout: float) -> bool:
            cluster.list_nodes(timeout=timeout)
            return True

        require_condition(api_reachable, config.retry.credential, f"API at {credential.server}", sleep=self.sleep)
        return credential, cluster

    def _register_node(self, cluster: ClusterClient, control_plane: ControlPlane) -> NodeIdentity:
        config = self.config
        if config.topology == Topology.LOCAL_CONTROL_PLANE:
            self._enter(BootstrapPhase.JOIN_WORKER)
            return join_worker(
                self.channel,
                cluster,
                config.target_host,
                control_plane.endpoint_address,
                config.token,
                config.version,
                config.retry.node_join,
                install_timeout=config.ssh.install_timeout,
                command_timeout=config.ssh.command_timeout,
                sleep=self.sleep,
            )

        self._enter(BootstrapPhase.DISCOVER_NODE)
        hostname = remote_hostname(self.channel, timeout=config.ssh.command_timeout)
        return discover_node(cluster, config.target_host, hostname, config.retry.node_join, sleep=self.sleep)
