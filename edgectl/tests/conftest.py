import pytest

from edgectl.config import ClusterBootstrapConfig, Credential, RetryConfig, RetryPolicy, Settings, Topology
from edgectl.tests.fakes import TARGET


@pytest.fixture
def fast_retry():
    policy = RetryPolicy(max_attempts=3, interval=0, per_attempt_timeout=1)
    return RetryConfig(control_plane=policy, credential=policy, node_join=policy, addon_ready=policy)


@pytest.fixture
def settings(tmp_path, fast_retry):
    return Settings(kube_dir=str(tmp_path / "kube"), retry=fast_retry)


@pytest.fixture
def credential():
    return Credential(username="pi", password="hunter2")


@pytest.fixture
def make_config(settings, credential):
    def _make(topology=Topology.LOCAL_CONTROL_PLANE, **overrides):
        return ClusterBootstrapConfig.build(
            settings, target_host=TARGET, credential=credential, topology=topology, **overrides
        )
    return _make
