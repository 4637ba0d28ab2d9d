"""Data models for k3s cluster bootstrapping."""
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional

from edgectl.errors import EdgectlWarning


class BootstrapPhase(str, Enum):
    """Phases of a bootstrap run, in execution order."""
    NOT_STARTED = 'not_started'
    PREFLIGHT = 'preflight'
    PROBE = 'probe'
    RESOLVE_ADDRESS = 'resolve_address'
    CONTROL_PLANE = 'control_plane'
    CONTROL_PLANE_READY = 'control_plane_ready'
    CREDENTIAL = 'credential'
    JOIN_WORKER = 'join_worker'
    DISCOVER_NODE = 'discover_node'
    LABEL_NODE = 'label_node'
    ADDONS = 'addons'
    REPORT = 'report'
    COMPLETED = 'completed'
    FAILED = 'failed'


@dataclass(frozen=True)
class NodeIdentity:
    """The name under which a host registered with the control plane."""
    name: str
    internal_ip: Optional[str] = None

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class KubeAccessCredential:
    """An installed kubeconfig."""
    path: Path
    default_path: Path
    server: str
    backup_path: Optional[Path] = None


@dataclass
class BootstrapState:
    """Tracks the progress of a bootstrap run."""
    phase: BootstrapPhase = BootstrapPhase.NOT_STARTED
    completed: List[BootstrapPhase] = field(default_factory=list)
    warnings: List[EdgectlWarning] = field(default_factory=list)
    failed_phase: Optional[BootstrapPhase] = None

    def update_phase(self, phase: BootstrapPhase) -> None:
        """Finish the current phase and enter ``phase``."""
        if self.phase != BootstrapPhase.NOT_STARTED:
            self.completed.append(self.phase)
        self.phase = phase

    def fail(self) -> None:
        """Mark the current phase as the one that aborted the run."""
        self.failed_phase = self.phase
        self.phase = BootstrapPhase.FAILED

    def add_warnings(self, warnings: List[EdgectlWarning]) -> None:
        self.warnings.extend(warnings)
