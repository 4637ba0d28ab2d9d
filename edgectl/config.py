"""Configuration management for edgectl.

Values are resolved with the following precedence:
1. Explicit command line flags
2. Environment variables (handled by the CLI layer)
3. The YAML settings file
4. Default values

The resulting ``ClusterBootstrapConfig`` is built once at startup and passed
explicitly to every component. It is frozen.
"""
import logging
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator, model_validator

logger = logging.getLogger("edgectl.config")

# Load environment variables from .env file if it exists
load_dotenv()

DEFAULT_CONFIG_PATHS = [
    Path("/etc/edgectl/config.yaml"),
    Path("~/.config/edgectl/config.yaml").expanduser(),
    Path("edgectl.yaml").absolute(),
]

DEFAULT_K3S_VERSION = "v1.30.0+k3s1"
DEFAULT_NODE_LABELS = {"hardware": "nintendo-switch", "arch": "arm64"}
ADDON_NAMES = ("tekton", "tekton-sample", "dashboard", "sample-app")


class Topology(str, Enum):
    """Which machines host the control plane and the workloads."""
    LOCAL_CONTROL_PLANE = "remote-worker-joins-local-control-plane"
    STANDALONE = "remote-host-is-self-contained-cluster"


DEFAULT_JOIN_TOKENS = {
    Topology.LOCAL_CONTROL_PLANE: "k3s-nintendo-switch-token",
    Topology.STANDALONE: "nintendo-switch-cluster-token",
}

DEFAULT_CLUSTER_NAMES = {
    Topology.LOCAL_CONTROL_PLANE: "k3s-nintendo",
    Topology.STANDALONE: "nintendo-switch",
}

DEFAULT_ADDONS = {
    Topology.LOCAL_CONTROL_PLANE: ("tekton", "tekton-sample"),
    Topology.STANDALONE: ("dashboard", "sample-app"),
}


class RetryPolicy(BaseModel):
    """Bounded polling policy.

    ``max_attempts * interval`` is the hard wall-clock ceiling of a poll,
    not counting the time spent inside each attempt.
    """
    model_config = ConfigDict(frozen=True)

    max_attempts: int = Field(default=30, ge=1, description="Number of predicate evaluations")
    interval: float = Field(default=2.0, ge=0, description="Seconds slept between attempts")
    per_attempt_timeout: float = Field(default=10.0, gt=0, description="Timeout of one attempt")

    @property
    def ceiling(self) -> float:
        return self.max_attempts * self.interval


class RetryConfig(BaseModel):
    """Retry policies for each convergence point of a run."""
    model_config = ConfigDict(frozen=True)

    control_plane: RetryPolicy = Field(
        default_factory=lambda: RetryPolicy(max_attempts=60, interval=2.0, per_attempt_timeout=10.0)
    )
    credential: RetryPolicy = Field(
        default_factory=lambda: RetryPolicy(max_attempts=30, interval=2.0, per_attempt_timeout=10.0)
    )
    node_join: RetryPolicy = Field(
        default_factory=lambda: RetryPolicy(max_attempts=30, interval=2.0, per_attempt_timeout=10.0)
    )
    addon_ready: RetryPolicy = Field(
        default_factory=lambda: RetryPolicy(max_attempts=60, interval=5.0, per_attempt_timeout=10.0)
    )


class SSHConfig(BaseModel):
    """SSH connection configuration."""
    model_config = ConfigDict(frozen=True)

    port: int = Field(default=22, description="SSH port number")
    connect_timeout: float = Field(default=10, description="SSH connection timeout in seconds")
    command_timeout: float = Field(default=30, description="Default remote command timeout in seconds")
    install_timeout: float = Field(default=300, description="Timeout of installer commands in seconds")


class LoggingConfig(BaseModel):
    """Logging configuration."""
    model_config = ConfigDict(frozen=True)

    level: str = Field(default="INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR)")
    file: Optional[str] = Field(default=None, description="Path to a rotating log file")
    max_size_mb: int = Field(default=10, description="Maximum log file size in MB before rotation")
    backup_count: int = Field(default=3, description="Number of backup log files to keep")


class Settings(BaseModel):
    """Tunables read from the YAML settings file."""
    model_config = ConfigDict(frozen=True, extra="ignore")

    ssh: SSHConfig = Field(default_factory=SSHConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    kube_dir: str = Field(default="~/.kube", description="Directory holding kubeconfig files")

    @classmethod
    def load(cls, config_path: Optional[Union[str, Path]] = None) -> 'Settings':
        """Load settings from an explicit path or the first default path that exists."""
        config_data: Dict[str, Any] = {}

        if config_path:
            path = Path(config_path).expanduser().absolute()
            if not path.exists():
                raise FileNotFoundError(f"Settings file not found: {path}")
            config_data = cls._load_config_file(path)
        else:
            for path in DEFAULT_CONFIG_PATHS:
                path = path.expanduser().absolute()
                if path.exists():
                    config_data = cls._load_config_file(path)
                    break

        return cls(**config_data)

    @classmethod
    def _load_config_file(cls, path: Path) -> Dict[str, Any]:
        """Load configuration from a YAML file."""
        logger.debug(f"Loading settings from {path}")
        with open(path, 'r') as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Settings file {path} must contain a mapping")
        return data


class Credential(BaseModel):
    """Remote login: a username plus a password, a private key, or both."""
    model_config = ConfigDict(frozen=True)

    username: str
    password: Optional[SecretStr] = None
    key_path: Optional[str] = None

    @field_validator('key_path')
    @classmethod
    def expand_key_path(cls, v: Optional[str]) -> Optional[str]:
        """Expand the user home directory in the key path."""
        return str(Path(v).expanduser()) if v else None

    @model_validator(mode='after')
    def check_secret(self) -> 'Credential':
        if not self.username:
            raise ValueError("username is required")
        if self.password is None and not self.key_path:
            raise ValueError("either a password or a private key path is required")
        return self

    @property
    def secret(self) -> Optional[str]:
        return self.password.get_secret_value() if self.password else None


class ClusterBootstrapConfig(BaseModel):
    """Everything a bootstrap run needs, resolved once."""
    model_config = ConfigDict(frozen=True)

    target_host: str
    credential: Credential
    topology: Topology
    version: str = DEFAULT_K3S_VERSION
    join_token: SecretStr
    cluster_name: str
    node_labels: Dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_NODE_LABELS))
    addons: Tuple[str, ...] = ()
    kube_dir: Path = Path("~/.kube").expanduser()
    ssh: SSHConfig = Field(default_factory=SSHConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)

    @field_validator('target_host', 'version')
    @classmethod
    def not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be empty")
        return v

    @field_validator('addons')
    @classmethod
    def known_addons(cls, v: Tuple[str, ...]) -> Tuple[str, ...]:
        unknown = [name for name in v if name not in ADDON_NAMES]
        if unknown:
            raise ValueError(f"unknown add-on(s): {', '.join(unknown)}; choose from {', '.join(ADDON_NAMES)}")
        return v

    @field_validator('kube_dir')
    @classmethod
    def expand_kube_dir(cls, v: Path) -> Path:
        return Path(v).expanduser()

    @property
    def token(self) -> str:
        return self.join_token.get_secret_value()

    @property
    def secrets(self) -> List[str]:
        """Values that must never reach a log line."""
        return [s for s in (self.token, self.credential.secret) if s]

    @classmethod
    def build(
        cls,
        settings: Settings,
        *,
        target_host: str,
        credential: Credential,
        topology: Topology,
        version: Optional[str] = None,
        join_token: Optional[str] = None,
        cluster_name: Optional[str] = None,
        addons: Optional[Iterable[str]] = None,
        node_labels: Optional[Dict[str, str]] = None,
    ) -> 'ClusterBootstrapConfig':
        """Combine settings, topology defaults and explicit overrides."""
        return cls(
            target_host=target_host,
            credential=credential,
            topology=topology,
            version=version or DEFAULT_K3S_VERSION,
            join_token=SecretStr(join_token or DEFAULT_JOIN_TOKENS[topology]),
            cluster_name=cluster_name or DEFAULT_CLUSTER_NAMES[topology],
            addons=tuple(addons) if addons is not None else DEFAULT_ADDONS[topology],
            node_labels=dict(node_labels) if node_labels is not None else dict(DEFAULT_NODE_LABELS),
            kube_dir=Path(settings.kube_dir),
            ssh=settings.ssh,
            retry=settings.retry,
        )
