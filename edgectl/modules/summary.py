"""Cluster state reporting."""
import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from kubernetes.client.rest import ApiException
from urllib3.exceptions import HTTPError

from edgectl.errors import ReportingWarning
from edgectl.modules import manifests
from edgectl.modules.k3s.models import NodeIdentity
from edgectl.modules.kube import ClusterClient, node_internal_ip, node_ready

logger = logging.getLogger("edgectl.summary")


@dataclass(frozen=True)
class NodeSummary:
    name: str
    ready: bool
    kubelet_version: str
    arch: str
    internal_ip: Optional[str]


@dataclass
class ClusterSummary:
    server: str
    kubeconfig: str
    node: Optional[NodeIdentity] = None
    nodes: List[NodeSummary] = field(default_factory=list)
    pods: Dict[str, Dict[str, int]] = field(default_factory=dict)
    urls: List[str] = field(default_factory=list)
    hints: List[str] = field(default_factory=list)
    warnings: List[ReportingWarning] = field(default_factory=list)

    def render(self) -> str:
        lines = ["🎉 Cluster ready", f"  API server: {self.server}", f"  Kubeconfig: {self.kubeconfig}"]
        if self.node:
            lines.append(f"  Target node: {self.node.name}")

        lines.append("")
        lines.append("Nodes:")
        if not self.nodes:
            lines.append("  (unavailable)")
        for node in self.nodes:
            status = "Ready" if node.ready else "NotReady"
            lines.append(
                f"  {node.name:<24} {status:<9} {node.kubelet_version:<16} {node.arch:<8} {node.internal_ip or '-'}"
            )

        if self.pods:
            lines.append("")
            lines.append("Pods:")
            for namespace in sorted(self.pods):
                phases = ", ".join(f"{phase}={count}" for phase, count in sorted(self.pods[namespace].items()))
                lines.append(f"  {namespace}: {phases}")

        if self.urls:
            lines.append("")
            lines.append("🌐 Web access:")
            lines.extend(f"  {url}" for url in self.urls)

        if self.hints:
            lines.append("")
            lines.append("Next steps:")
            lines.extend(f"  {hint}" for hint in self.hints)
        return "\n".join(lines)


def access_hints(addons: Iterable[str], target_host: str, kubeconfig: str):
    """Dashboard URLs and follow-up commands for the installed add-ons."""
    urls: List[str] = []
    hints = [f"export KUBECONFIG={kubeconfig}", "kubectl get nodes -o wide"]
    addons = list(addons)
    if "sample-app" in addons:
        urls.append(f"Info page: http://{target_host}:{manifests.SAMPLE_APP_NODE_PORT}")
    if "dashboard" in addons:
        urls.append(f"Kubernetes Dashboard: https://{target_host}:{manifests.DASHBOARD_NODE_PORT}")
        hints.append("kubectl -n kubernetes-dashboard create token admin-user")
    if "tekton" in addons:
        hints.append("kubectl port-forward -n tekton-pipelines svc/tekton-dashboard 9097:9097")
        urls.append("Tekton Dashboard: http://localhost:9097 (after port-forward)")
    if "tekton-sample" in addons:
        hints.append(
            "kubectl logs -f $(kubectl get pods "
            f"-l tekton.dev/pipelineRun={manifests.SAMPLE_PIPELINE_RUN} -o name)"
        )
    return urls, hints


def report(
    cluster: ClusterClient,
    kubeconfig: str,
    target_host: str,
    addons: Iterable[str] = (),
    identity: Optional[NodeIdentity] = None,
) -> ClusterSummary:
    """Collect nodes, pod counts and access hints. Read only; never raises on API errors."""
    summary = ClusterSummary(server=cluster.server, kubeconfig=kubeconfig, node=identity)
    summary.urls, summary.hints = access_hints(addons, target_host, kubeconfig)

    try:
        for node in cluster.list_nodes():
            info = node.status.node_info if node.status else None
            summary.nodes.append(NodeSummary(
                name=node.metadata.name,
                ready=node_ready(node),
                kubelet_version=info.kubelet_version if info else "unknown",
                arch=info.architecture if info else "unknown",
                internal_ip=node_internal_ip(node),
            ))
    except (ApiException, HTTPError) as e:
        summary.warnings.append(ReportingWarning(f"Could not list nodes: {e}"))

    try:
        counts: Dict[str, Counter] = {}
        for pod in cluster.list_pods():
            phase = pod.status.phase if pod.status else "Unknown"
            counts.setdefault(pod.metadata.namespace, Counter())[phase or "Unknown"] += 1
        summary.pods = {ns: dict(c) for ns, c in counts.items()}
    except (ApiException, HTTPError) as e:
        summary.warnings.append(ReportingWarning(f"Could not list pods: {e}"))

    for warning in summary.warnings:
        logger.warning(f"⚠️ {warning}")
    return summary
