import os
import stat

import pytest

from edgectl.errors import CredentialError
from edgectl.modules.k3s.kubeconfig import backup_path_for, install_credential, rewrite_endpoint, server_of
from edgectl.tests.fakes import KUBECONFIG


def test_rewrite_replaces_loopback_everywhere():
    text = KUBECONFIG + "# https://127.0.0.1:6443\n"

    rewritten = rewrite_endpoint(text, "10.0.0.5")

    assert "127.0.0.1" not in rewritten
    assert rewritten.count("10.0.0.5") == 2
    assert server_of(rewritten) == "https://10.0.0.5:6443"


@pytest.mark.parametrize("text", ["", "kind: Config\nclusters: []\n", "{not: [valid"])
def test_malformed_kubeconfig(text):
    with pytest.raises(CredentialError):
        rewrite_endpoint(text, "10.0.0.5")


def test_install_without_existing_default(tmp_path):
    kube_dir = tmp_path / "kube"

    cred = install_credential(KUBECONFIG, "10.0.0.5", kube_dir, "nintendo-switch")

    assert cred.path == kube_dir / "nintendo-switch-config"
    assert cred.backup_path is None
    assert cred.server == "https://10.0.0.5:6443"
    assert cred.default_path.read_text() == cred.path.read_text()
    assert stat.S_IMODE(os.stat(cred.path).st_mode) == 0o600


def test_install_backs_up_previous_default(tmp_path):
    kube_dir = tmp_path / "kube"
    kube_dir.mkdir()
    (kube_dir / "config").write_text("previous")

    cred = install_credential(KUBECONFIG, "10.0.0.5", kube_dir, "nintendo-switch", clock=lambda: 1700000000)

    assert cred.backup_path == kube_dir / "config.backup.1700000000"
    assert cred.backup_path.read_text() == "previous"
    assert "10.0.0.5" in cred.default_path.read_text()
    assert "127.0.0.1" not in cred.default_path.read_text()


def test_backup_name_is_unique(tmp_path):
    (tmp_path / "config.backup.42").write_text("a")
    (tmp_path / "config.backup.42.1").write_text("b")

    assert backup_path_for(tmp_path, 42) == tmp_path / "config.backup.42.2"


def test_second_install_keeps_both_backups(tmp_path):
    kube_dir = tmp_path / "kube"
    kube_dir.mkdir()
    (kube_dir / "config").write_text("previous")

    first = install_credential(KUBECONFIG, "10.0.0.5", kube_dir, "a", clock=lambda: 1)
    second = install_credential(KUBECONFIG, "10.0.0.6", kube_dir, "b", clock=lambda: 1)

    assert first.backup_path != second.backup_path
    assert first.backup_path.read_text() == "previous"
    assert "10.0.0.5" in second.backup_path.read_text()
