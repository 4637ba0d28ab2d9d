"""k3s control-plane installers.

Two variants exist, selected by topology:

* ``LocalContainerControlPlane`` runs the k3s server as a Docker container on
  this machine and advertises the locally resolved address.
* ``RemoteServiceControlPlane`` installs k3s as a systemd service on the target
  host through the upstream install script.

Both expose the same small surface so the orchestrator can treat them alike:
``install()``, ``healthy(timeout)``, ``credential_ready(timeout)`` and
``fetch_credential()``.
"""
import logging
import shlex
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

import docker
import requests
import urllib3
from docker.errors import APIError, DockerException, ImageNotFound, NotFound

from edgectl.config import ClusterBootstrapConfig, Topology
from edgectl.errors import CredentialError, InstallFailure
from edgectl.logging import redact
from edgectl.modules.ssh import RemoteChannel

logger = logging.getLogger("edgectl.k3s.control_plane")

# The server certificate is self-signed until the kubeconfig is installed
urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

API_PORT = 6443
INSTALL_SCRIPT_URL = "https://get.k3s.io"
CONTAINER_NAME = "k3s-master"
DATA_VOLUME = "k3s-master"
IMAGE_REPOSITORY = "rancher/k3s"
CONTAINER_KUBECONFIG = "kubeconfig.yaml"
REMOTE_KUBECONFIG = "/etc/rancher/k3s/k3s.yaml"


def image_for(version: str) -> str:
    """Map a k3s release (``v1.30.0+k3s1``) to its image reference.

    Image tags cannot contain ``+``; the published tags use ``-`` instead.
    """
    return f"{IMAGE_REPOSITORY}:{version.replace('+', '-')}"


class ControlPlane(ABC):
    """A k3s server the worker (or the operator) can reach."""

    def __init__(self, config: ClusterBootstrapConfig, endpoint_address: str):
        self.config = config
        self.endpoint_address = endpoint_address

    @property
    def api_url(self) -> str:
        return f"https://{self.endpoint_address}:{API_PORT}"

    @abstractmethod
    def install(self) -> None:
        """Start the server. Raises InstallFailure."""

    @abstractmethod
    def healthy(self, timeout: float = 10) -> bool:
        """One health check attempt."""

    @abstractmethod
    def credential_ready(self, timeout: float = 10) -> bool:
        """Whether the server has written its admin kubeconfig."""

    @abstractmethod
    def fetch_credential(self) -> str:
        """Return the raw admin kubeconfig. Raises CredentialError."""


class LocalContainerControlPlane(ControlPlane):
    """k3s server in a local Docker container."""

    def __init__(
        self,
        config: ClusterBootstrapConfig,
        advertise_address: str,
        docker_client: Optional[docker.DockerClient] = None,
        http: Optional[requests.Session] = None,
    ):
        super().__init__(config, advertise_address)
        self._docker = docker_client
        self.http = http or requests.Session()

    @property
    def docker(self) -> docker.DockerClient:
        if self._docker is None:
            try:
                self._docker = docker.from_env()
            except DockerException as e:
                raise InstallFailure(f"Cannot talk to the Docker daemon: {e}") from e
        return self._docker

    @property
    def credential_path(self) -> Path:
        return self.config.kube_dir / CONTAINER_KUBECONFIG

    def remove_existing(self) -> None:
        """Stop and remove a previous ``k3s-master`` container, if any."""
        try:
            container = self.docker.containers.get(CONTAINER_NAME)
        except NotFound:
            logger.debug(f"No existing {CONTAINER_NAME} container")
            return
        except (DockerException, requests.RequestException) as e:
            raise InstallFailure(f"Failed to look up container {CONTAINER_NAME}: {e}") from e

        logger.info(f"🧹 Removing existing {CONTAINER_NAME} container")
        try:
            container.stop()
        except (DockerException, requests.RequestException) as e:
            # A container that is already stopped or dying is fine
            logger.debug(f"Stopping {CONTAINER_NAME} failed: {e}")
        try:
            container.remove(force=True)
        except NotFound:
            pass
        except (DockerException, requests.RequestException) as e:
            raise InstallFailure(f"Failed to remove container {CONTAINER_NAME}: {e}") from e

    def install(self) -> None:
        image = image_for(self.config.version)
        self.remove_existing()

        # A stale kubeconfig would satisfy the credential poll before the new server writes one
        if self.credential_path.exists():
            self.credential_path.unlink()
        self.config.kube_dir.mkdir(parents=True, exist_ok=True)

        logger.info(f"🐳 Starting {CONTAINER_NAME} from {image}")
        try:
            self.docker.containers.run(
                image,
                command=[
                    "server",
                    "--bind-address=0.0.0.0",
                    f"--advertise-address={self.endpoint_address}",
                ],
                name=CONTAINER_NAME,
                hostname=CONTAINER_NAME,
                detach=True,
                privileged=True,
                restart_policy={"Name": "unless-stopped"},
                ports={f"{API_PORT}/tcp": API_PORT, "80/tcp": 8080, "443/tcp": 8443},
                environment={
                    "K3S_TOKEN": self.config.token,
                    "K3S_KUBECONFIG_OUTPUT": f"/output/{CONTAINER_KUBECONFIG}",
                    "K3S_KUBECONFIG_MODE": "666",
                },
                volumes={
                    DATA_VOLUME: {"bind": "/var/lib/rancher/k3s", "mode": "rw"},
                    str(self.config.kube_dir): {"bind": "/output", "mode": "rw"},
                },
            )
        except ImageNotFound as e:
            raise InstallFailure(f"Image {image} not found: {e}") from e
        except (DockerException, requests.RequestException) as e:
            raise InstallFailure(
                f"Docker refused to start {CONTAINER_NAME}: {redact(str(e), self.config.secrets)}"
            ) from e
        logger.info(f"✅ {CONTAINER_NAME} started")

    def healthy(self, timeout: float = 10) -> bool:
        try:
            response = self.http.get(f"{self.api_url}/ping", verify=False, timeout=timeout)
        except requests.RequestException as e:
            logger.debug(f"Control plane ping failed: {e}")
            return False
        return response.status_code == 200

    def credential_ready(self, timeout: float = 10) -> bool:
        path = self.credential_path
        return path.exists() and path.stat().st_size > 0

    def fetch_credential(self) -> str:
        try:
            return self.credential_path.read_text()
        except OSError as e:
            raise CredentialError(f"Cannot read {self.credential_path}: {e}") from e


class RemoteServiceControlPlane(ControlPlane):
    """k3s server installed as a service on the target host."""

    def __init__(self, config: ClusterBootstrapConfig, channel: RemoteChannel):
        super().__init__(config, config.target_host)
        self.channel = channel

    def install_command(self) -> str:
        address = self.config.target_host
        return (
            f"curl -sfL {INSTALL_SCRIPT_URL} | "
            f"K3S_TOKEN={shlex.quote(self.config.token)} "
            f"INSTALL_K3S_VERSION={shlex.quote(self.config.version)} "
            f"sh -s - --write-kubeconfig-mode 644 "
            f"--bind-address {address} --advertise-address {address} --disable traefik"
        )

    def install(self) -> None:
        logger.info(f"📦 Installing k3s {self.config.version} on {self.config.target_host}...")
        result = self.channel.execute(
            self.install_command(), timeout=self.config.ssh.install_timeout, sudo=True
        )
        if not result.ok:
            detail = redact(result.stderr.strip() or result.stdout.strip(), self.config.secrets)
            raise InstallFailure(
                f"k3s installer exited with status {result.exit_code} on "
                f"{self.config.target_host}: {detail}"
            )
        logger.info("✅ k3s service installed")

    def healthy(self, timeout: float = 10) -> bool:
        return self.channel.execute("k3s kubectl get --raw=/readyz", timeout=timeout, sudo=True).ok

    def credential_ready(self, timeout: float = 10) -> bool:
        return self.channel.execute(f"test -s {REMOTE_KUBECONFIG}", timeout=timeout, sudo=True).ok

    def fetch_credential(self) -> str:
        result = self.channel.execute(
            f"cat {REMOTE_KUBECONFIG}", timeout=self.config.ssh.command_timeout, sudo=True
        )
        if not result.ok or not result.stdout.strip():
            raise CredentialError(f"Could not read {REMOTE_KUBECONFIG} from {self.config.target_host}")
        return result.stdout


def build_control_plane(
    config: ClusterBootstrapConfig,
    channel: RemoteChannel,
    advertise_address: str,
    docker_client: Optional[docker.DockerClient] = None,
) -> ControlPlane:
    """Pick the installer variant for ``config.topology``."""
    if config.topology == Topology.LOCAL_CONTROL_PLANE:
        return LocalContainerControlPlane(config, advertise_address, docker_client=docker_client)
    return RemoteServiceControlPlane(config, channel)
