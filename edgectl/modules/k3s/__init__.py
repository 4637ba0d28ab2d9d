"""k3s installation and cluster bootstrap."""
from .models import BootstrapPhase, BootstrapState, KubeAccessCredential, NodeIdentity

__all__ = [
    'BootstrapPhase',
    'BootstrapState',
    'KubeAccessCredential',
    'NodeIdentity',
]
