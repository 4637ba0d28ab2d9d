"""Thin wrapper over the Kubernetes API for the calls a bootstrap run makes.

The client is always built from an explicit kubeconfig file, never from the
ambient KUBECONFIG, so a run only ever talks to the cluster it created.
"""
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from kubernetes import client, config
from kubernetes.client.rest import ApiException
from kubernetes.config.config_exception import ConfigException
from kubernetes.dynamic import DynamicClient
from kubernetes.dynamic.exceptions import ResourceNotFoundError

from edgectl.errors import CredentialError
from edgectl.modules.k3s.models import NodeIdentity

logger = logging.getLogger("edgectl.kube")

MERGE_PATCH = "application/merge-patch+json"


def node_internal_ip(node: client.V1Node) -> Optional[str]:
    for addr in (node.status.addresses or []) if node.status else []:
        if addr.type == "InternalIP":
            return addr.address
    return None


def node_ready(node: client.V1Node) -> bool:
    for condition in (node.status.conditions or []) if node.status else []:
        if condition.type == "Ready":
            return condition.status == "True"
    return False


def pod_ready(pod: client.V1Pod) -> bool:
    """A pod counts as ready when it completed or all its containers are ready."""
    status = pod.status
    if status is None:
        return False
    if status.phase == "Succeeded":
        return True
    if status.phase != "Running":
        return False
    for condition in status.conditions or []:
        if condition.type == "Ready":
            return condition.status == "True"
    return False


class ClusterClient:
    """Kubernetes API access bound to one kubeconfig file."""

    def __init__(self, kubeconfig: Union[str, Path], api_client: Optional[client.ApiClient] = None):
        self.kubeconfig = str(Path(kubeconfig).expanduser())
        if api_client is None:
            if not Path(self.kubeconfig).exists():
                raise FileNotFoundError(f"❌ Kubeconfig not found: {self.kubeconfig}")
            try:
                api_client = config.new_client_from_config(config_file=self.kubeconfig)
            except ConfigException as e:
                raise CredentialError(f"Invalid kubeconfig {self.kubeconfig}: {e}") from e
        self.api_client = api_client
        self.core = client.CoreV1Api(self.api_client)
        self._dynamic: Optional[DynamicClient] = None

    @property
    def server(self) -> str:
        return self.api_client.configuration.host

    @property
    def dynamic(self) -> DynamicClient:
        # Discovery talks to the API server, so only do it when first needed
        if self._dynamic is None:
            self._dynamic = DynamicClient(self.api_client)
        return self._dynamic

    def list_nodes(self, timeout: Optional[float] = None) -> List[client.V1Node]:
        return self.core.list_node(_request_timeout=timeout).items

    def find_node(
        self,
        address: Optional[str] = None,
        hostname: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> Optional[NodeIdentity]:
        """Find the node registered with InternalIP ``address`` or named ``hostname``."""
        for node in self.list_nodes(timeout=timeout):
            internal_ip = node_internal_ip(node)
            name = node.metadata.name
            if (address and internal_ip == address) or (hostname and name == hostname):
                return NodeIdentity(name=name, internal_ip=internal_ip)
        return None

    def label_node(self, name: str, labels: Dict[str, str]) -> Dict[str, str]:
        """Upsert ``labels`` on a node and return its resulting label set."""
        node = self.core.patch_node(name, {"metadata": {"labels": labels}})
        return dict(node.metadata.labels or {})

    def list_pods(self, namespace: Optional[str] = None, timeout: Optional[float] = None) -> List[client.V1Pod]:
        if namespace:
            return self.core.list_namespaced_pod(namespace, _request_timeout=timeout).items
        return self.core.list_pod_for_all_namespaces(_request_timeout=timeout).items

    def pods_ready(self, namespace: str, timeout: Optional[float] = None) -> bool:
        pods = self.list_pods(namespace, timeout=timeout)
        return bool(pods) and all(pod_ready(pod) for pod in pods)

    def patch_service(self, name: str, namespace: str, body: Dict[str, Any]) -> None:
        self.core.patch_namespaced_service(name, namespace, body)

    def _resource(self, api_version: str, kind: str):
        try:
            return self.dynamic.resources.get(api_version=api_version, kind=kind)
        except ResourceNotFoundError:
            # Kinds defined by CRDs applied earlier in this run are not cached yet
            self.dynamic.resources.invalidate_cache()
            return self.dynamic.resources.get(api_version=api_version, kind=kind)

    def apply(self, doc: Dict[str, Any]) -> str:
        """Create ``doc`` or, if it already exists, merge-patch it.

        Returns:
            str: "created" or "configured"
        """
        kind = doc["kind"]
        name = doc["metadata"]["name"]
        resource = self._resource(doc["apiVersion"], kind)
        namespace = None
        if resource.namespaced:
            namespace = doc["metadata"].get("namespace", "default")

        try:
            resource.create(body=doc, namespace=namespace)
            logger.debug(f"📄 Created {kind}/{name}")
            return "created"
        except ApiException as e:
            if e.status != 409:
                raise
        logger.debug(f"↪️ {kind}/{name} exists. Patching...")
        resource.patch(body=doc, name=name, namespace=namespace, content_type=MERGE_PATCH)
        return "configured"
