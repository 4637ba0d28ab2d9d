import pytest

from edgectl.config import Topology
from edgectl.errors import PrerequisiteMissing
from edgectl.modules.doctor import check_dependencies, missing_tools


def test_docker_only_needed_for_local_control_plane():
    which = lambda tool: None if tool == "docker" else f"/usr/bin/{tool}"

    assert missing_tools(Topology.LOCAL_CONTROL_PLANE, which) == ["docker"]
    assert missing_tools(Topology.STANDALONE, which) == []


def test_missing_tool_is_fatal():
    with pytest.raises(PrerequisiteMissing, match="ping"):
        check_dependencies(Topology.STANDALONE, which=lambda tool: None)
