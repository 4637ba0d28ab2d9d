"""Kubeconfig handling: endpoint rewrite and installation as the default config."""
import logging
import os
import shutil
import time
from pathlib import Path
from typing import Callable, Optional

import yaml

from edgectl.errors import CredentialError
from edgectl.modules.k3s.models import KubeAccessCredential

logger = logging.getLogger("edgectl.k3s.kubeconfig")

LOOPBACK = "127.0.0.1"
DEFAULT_NAME = "config"


def server_of(text: str) -> str:
    """Return the API server URL of the first cluster in a kubeconfig.

    Raises:
        CredentialError: If the text is not a kubeconfig with at least one cluster
    """
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise CredentialError(f"Kubeconfig is not valid YAML: {e}") from e

    clusters = data.get("clusters") if isinstance(data, dict) else None
    if not clusters:
        raise CredentialError("Kubeconfig defines no clusters")
    try:
        return clusters[0]["cluster"]["server"]
    except (KeyError, TypeError) as e:
        raise CredentialError("Kubeconfig cluster entry has no server") from e


def rewrite_endpoint(text: str, address: str, loopback: str = LOOPBACK) -> str:
    """Replace every occurrence of ``loopback`` with ``address``."""
    server_of(text)
    rewritten = text.replace(loopback, address)
    logger.debug(f"Rewrote kubeconfig endpoint {loopback} -> {address}")
    return rewritten


def backup_path_for(kube_dir: Path, timestamp: int) -> Path:
    """``config.backup.<timestamp>``, suffixed with a counter if already taken."""
    candidate = kube_dir / f"{DEFAULT_NAME}.backup.{timestamp}"
    counter = 1
    while candidate.exists():
        candidate = kube_dir / f"{DEFAULT_NAME}.backup.{timestamp}.{counter}"
        counter += 1
    return candidate


def _write_private(path: Path, text: str) -> None:
    path.write_text(text)
    os.chmod(path, 0o600)


def install_credential(
    text: str,
    address: str,
    kube_dir: Path,
    cluster_name: str,
    clock: Callable[[], float] = time.time,
) -> KubeAccessCredential:
    """Rewrite a raw kubeconfig and make it the default.

    Args:
        text: Kubeconfig as written by the k3s server
        address: Externally reachable address of the API server
        kube_dir: Directory holding kubeconfig files
        cluster_name: Name of the per-cluster kubeconfig file (``<name>-config``)
        clock: Time source for the backup name

    Returns:
        KubeAccessCredential describing the installed files
    """
    rewritten = rewrite_endpoint(text, address)
    server = server_of(rewritten)

    kube_dir = Path(kube_dir).expanduser()
    kube_dir.mkdir(parents=True, exist_ok=True)

    path = kube_dir / f"{cluster_name}-config"
    _write_private(path, rewritten)
    logger.info(f"💾 Kubeconfig saved to {path}")

    default_path = kube_dir / DEFAULT_NAME
    backup_path: Optional[Path] = None
    if default_path.exists():
        backup_path = backup_path_for(kube_dir, int(clock()))
        shutil.copy2(default_path, backup_path)
        logger.info(f"🗂️ Existing kubeconfig backed up to {backup_path}")

    shutil.copyfile(path, default_path)
    os.chmod(default_path, 0o600)
    logger.info(f"✅ Installed {path.name} as {default_path}")

    return KubeAccessCredential(
        path=path, default_path=default_path, server=server, backup_path=backup_path
    )
