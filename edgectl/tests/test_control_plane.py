from unittest.mock import MagicMock

import pytest
import requests
from docker.errors import APIError, DockerException, NotFound

from edgectl.config import Topology
from edgectl.errors import CredentialError, InstallFailure
from edgectl.modules.k3s.control_plane import (
    CONTAINER_NAME,
    LocalContainerControlPlane,
    RemoteServiceControlPlane,
    build_control_plane,
    image_for,
)
from edgectl.modules.ssh import CommandResult
from edgectl.tests.fakes import LOCAL, TARGET, FakeChannel


class FakeContainer:
    def __init__(self, containers, name, kwargs, fail_stop=False):
        self.containers = containers
        self.name = name
        self.kwargs = kwargs
        self.fail_stop = fail_stop

    def stop(self):
        if self.fail_stop:
            raise APIError("container is not running")

    def remove(self, force=False):
        del self.containers.running[self.name]


class FakeContainers:
    def __init__(self):
        self.running = {}

    def get(self, name):
        if name not in self.running:
            raise NotFound(f"No such container: {name}")
        return self.running[name]

    def run(self, image, **kwargs):
        name = kwargs["name"]
        if name in self.running:
            raise APIError(f"Conflict. The container name {name} is already in use")
        self.running[name] = FakeContainer(self, name, dict(kwargs, image=image))
        return self.running[name]


@pytest.fixture
def fake_docker():
    return MagicMock(containers=FakeContainers())


def test_image_tag_uses_dash():
    assert image_for("v1.30.0+k3s1") == "rancher/k3s:v1.30.0-k3s1"


def test_install_starts_container(make_config, fake_docker):
    config = make_config()
    cp = LocalContainerControlPlane(config, LOCAL, docker_client=fake_docker)

    cp.install()

    container = fake_docker.containers.running[CONTAINER_NAME]
    assert container.kwargs["image"] == "rancher/k3s:v1.30.0-k3s1"
    assert container.kwargs["command"] == ["server", "--bind-address=0.0.0.0", f"--advertise-address={LOCAL}"]
    assert container.kwargs["privileged"] is True
    assert container.kwargs["environment"]["K3S_TOKEN"] == "k3s-nintendo-switch-token"
    assert container.kwargs["ports"]["6443/tcp"] == 6443
    assert container.kwargs["volumes"][str(config.kube_dir)]["bind"] == "/output"


def test_reinstall_leaves_exactly_one_instance(make_config, fake_docker):
    cp = LocalContainerControlPlane(make_config(), LOCAL, docker_client=fake_docker)

    cp.install()
    fake_docker.containers.running[CONTAINER_NAME].fail_stop = True
    cp.install()

    assert list(fake_docker.containers.running) == [CONTAINER_NAME]


def test_docker_refusal_is_install_failure(make_config):
    docker_client = MagicMock()
    docker_client.containers.get.side_effect = NotFound("missing")
    docker_client.containers.run.side_effect = APIError("port is already allocated")
    cp = LocalContainerControlPlane(make_config(), LOCAL, docker_client=docker_client)

    with pytest.raises(InstallFailure, match="port is already allocated"):
        cp.install()


@pytest.mark.parametrize(
    "error", [DockerException("socket closed"), requests.ConnectionError("daemon went away")]
)
def test_docker_transport_error_is_install_failure(make_config, error):
    docker_client = MagicMock()
    docker_client.containers.get.side_effect = NotFound("missing")
    docker_client.containers.run.side_effect = error
    cp = LocalContainerControlPlane(make_config(), LOCAL, docker_client=docker_client)

    with pytest.raises(InstallFailure, match=str(error)):
        cp.install()


def test_container_lookup_error_is_install_failure(make_config):
    docker_client = MagicMock()
    docker_client.containers.get.side_effect = requests.ConnectionError("daemon went away")
    cp = LocalContainerControlPlane(make_config(), LOCAL, docker_client=docker_client)

    with pytest.raises(InstallFailure, match="daemon went away"):
        cp.install()
    docker_client.containers.run.assert_not_called()


def test_install_removes_stale_kubeconfig(make_config, fake_docker):
    config = make_config()
    config.kube_dir.mkdir(parents=True)
    (config.kube_dir / "kubeconfig.yaml").write_text("stale")
    cp = LocalContainerControlPlane(config, LOCAL, docker_client=fake_docker)

    cp.install()

    assert not cp.credential_ready()


def test_local_health_check(make_config, fake_docker):
    http = MagicMock()
    http.get.return_value.status_code = 200
    cp = LocalContainerControlPlane(make_config(), LOCAL, docker_client=fake_docker, http=http)

    assert cp.healthy(timeout=5)
    http.get.assert_called_once_with(f"https://{LOCAL}:6443/ping", verify=False, timeout=5)

    http.get.side_effect = requests.ConnectionError("refused")
    assert not cp.healthy()


def test_remote_install_command(make_config):
    config = make_config(Topology.STANDALONE)
    channel = FakeChannel()
    cp = RemoteServiceControlPlane(config, channel)

    cp.install()

    command, sudo = channel.commands[0]
    assert sudo
    assert "K3S_TOKEN=nintendo-switch-cluster-token" in command
    assert "INSTALL_K3S_VERSION=v1.30.0+k3s1" in command
    assert f"--advertise-address {TARGET}" in command
    assert "--disable traefik" in command


def test_remote_install_failure_hides_token(make_config):
    config = make_config(Topology.STANDALONE)
    channel = FakeChannel(default=CommandResult(1, "", "bad token nintendo-switch-cluster-token"))
    cp = RemoteServiceControlPlane(config, channel)

    with pytest.raises(InstallFailure) as excinfo:
        cp.install()
    assert "nintendo-switch-cluster-token" not in str(excinfo.value)


def test_remote_credential_fetch(make_config):
    channel = FakeChannel({"cat /etc/rancher/k3s/k3s.yaml": CommandResult(0, "kind: Config\n", "")})
    cp = RemoteServiceControlPlane(make_config(Topology.STANDALONE), channel)

    assert cp.fetch_credential() == "kind: Config\n"

    channel.responses = {"cat": CommandResult(1, "", "No such file")}
    with pytest.raises(CredentialError):
        cp.fetch_credential()


def test_build_control_plane_picks_variant(make_config):
    channel = FakeChannel()

    local = build_control_plane(make_config(Topology.LOCAL_CONTROL_PLANE), channel, LOCAL, docker_client=MagicMock())
    remote = build_control_plane(make_config(Topology.STANDALONE), channel, LOCAL)

    assert isinstance(local, LocalContainerControlPlane)
    assert local.endpoint_address == LOCAL
    assert isinstance(remote, RemoteServiceControlPlane)
    assert remote.endpoint_address == TARGET
