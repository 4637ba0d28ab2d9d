import pytest
from pydantic import ValidationError

from edgectl.config import ClusterBootstrapConfig, Credential, Settings, Topology


def test_credential_needs_password_or_key():
    with pytest.raises(ValidationError):
        Credential(username="pi")
    assert Credential(username="pi", key_path="~/.ssh/id_ed25519").key_path.endswith(".ssh/id_ed25519")


def test_topology_defaults(settings, credential):
    local = ClusterBootstrapConfig.build(
        settings, target_host="10.0.0.5", credential=credential, topology=Topology.LOCAL_CONTROL_PLANE
    )
    standalone = ClusterBootstrapConfig.build(
        settings, target_host="10.0.0.5", credential=credential, topology=Topology.STANDALONE
    )

    assert local.token == "k3s-nintendo-switch-token"
    assert local.addons == ("tekton", "tekton-sample")
    assert local.cluster_name == "k3s-nintendo"
    assert standalone.token == "nintendo-switch-cluster-token"
    assert standalone.addons == ("dashboard", "sample-app")
    assert standalone.version == "v1.30.0+k3s1"


def test_explicit_empty_addons_are_kept(settings, credential):
    config = ClusterBootstrapConfig.build(
        settings, target_host="10.0.0.5", credential=credential, topology=Topology.STANDALONE, addons=[]
    )

    assert config.addons == ()


def test_unknown_addon_rejected(settings, credential):
    with pytest.raises(ValidationError, match="unknown add-on"):
        ClusterBootstrapConfig.build(
            settings, target_host="10.0.0.5", credential=credential, topology=Topology.STANDALONE, addons=["argo"]
        )


def test_secrets_are_hidden(make_config):
    config = make_config(join_token="s3cret")

    assert "s3cret" not in repr(config)
    assert "hunter2" not in repr(config)
    assert set(config.secrets) == {"s3cret", "hunter2"}


def test_config_is_frozen(make_config):
    config = make_config()

    with pytest.raises(ValidationError):
        config.target_host = "10.0.0.6"


def test_settings_from_yaml(tmp_path):
    path = tmp_path / "edgectl.yaml"
    path.write_text(
        "kube_dir: /srv/kube\n"
        "ssh:\n  port: 2222\n"
        "retry:\n  node_join:\n    max_attempts: 90\n    interval: 1\n"
    )

    settings = Settings.load(path)

    assert settings.kube_dir == "/srv/kube"
    assert settings.ssh.port == 2222
    assert settings.retry.node_join.max_attempts == 90
    assert settings.retry.control_plane.max_attempts == 60


def test_missing_settings_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        Settings.load(tmp_path / "nope.yaml")
