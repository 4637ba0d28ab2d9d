"""Pre-flight checks for local tooling."""
import logging
import shutil
from typing import Callable, Dict, List, Optional, Tuple

from edgectl.config import Topology
from edgectl.errors import PrerequisiteMissing

logger = logging.getLogger("edgectl.doctor")

REQUIRED_TOOLS: Dict[Topology, Tuple[str, ...]] = {
    Topology.LOCAL_CONTROL_PLANE: ("ping", "docker"),
    Topology.STANDALONE: ("ping",),
}


def missing_tools(topology: Topology, which: Callable[[str], Optional[str]] = shutil.which) -> List[str]:
    return [tool for tool in REQUIRED_TOOLS[topology] if not which(tool)]


def check_dependencies(topology: Topology, which: Callable[[str], Optional[str]] = shutil.which) -> None:
    """Fail fast if a local tool needed by ``topology`` is absent.

    Raises:
        PrerequisiteMissing: naming every missing tool
    """
    logger.info("🩺 Checking dependencies")
    missing = missing_tools(topology, which)
    if missing:
        raise PrerequisiteMissing(f"Required tool(s) not installed: {', '.join(missing)}")
    logger.info("✅ All dependencies satisfied")
