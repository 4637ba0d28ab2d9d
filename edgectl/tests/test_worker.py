import pytest

from edgectl.config import RetryPolicy
from edgectl.errors import ConvergenceTimeout, InstallFailure, TransportError
from edgectl.modules.k3s.worker import join_worker
from edgectl.modules.ssh import CommandResult
from edgectl.tests.fakes import LOCAL, TARGET, FakeChannel, FakeCluster, make_node, no_sleep

POLICY = RetryPolicy(max_attempts=3, interval=0, per_attempt_timeout=1)


def _join(channel, cluster):
    return join_worker(channel, cluster, TARGET, LOCAL, "s3cret", "v1.30.0+k3s1", POLICY, sleep=no_sleep)


def test_join_returns_registered_node():
    channel = FakeChannel({"hostname": CommandResult(0, "switch\n", "")})
    cluster = FakeCluster(nodes=[make_node("k3s-master", LOCAL), make_node("switch", TARGET)])

    identity = _join(channel, cluster)

    assert identity.name == "switch"
    install, sudo = channel.commands[1]
    assert sudo
    assert f"K3S_URL=https://{LOCAL}:6443" in install
    assert "K3S_TOKEN=s3cret" in install


def test_node_found_by_hostname_when_ip_differs():
    channel = FakeChannel({"hostname": CommandResult(0, "switch\n", "")})
    cluster = FakeCluster(nodes=[make_node("switch", "172.16.0.9")])

    assert _join(channel, cluster).name == "switch"


def test_unreachable_control_plane_stops_before_install():
    channel = FakeChannel({"/ping": CommandResult(7, "", "Failed to connect")})

    with pytest.raises(TransportError):
        _join(channel, FakeCluster())
    assert len(channel.commands) == 1


def test_installer_failure():
    channel = FakeChannel({"get.k3s.io": CommandResult(1, "", "token s3cret rejected")})

    with pytest.raises(InstallFailure) as excinfo:
        _join(channel, FakeCluster())
    assert "s3cret" not in str(excinfo.value)


def test_node_never_registers():
    channel = FakeChannel({"hostname": CommandResult(0, "switch\n", "")})

    with pytest.raises(ConvergenceTimeout):
        _join(channel, FakeCluster(nodes=[make_node("k3s-master", LOCAL)]))
