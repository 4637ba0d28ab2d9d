"""Node labeling and add-on manifest application.

Everything in here is best effort: failures are logged and returned as
warnings so the bootstrap run can finish and report what it did.
"""
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

import requests
import yaml
from jsonschema import ValidationError, validate
from kubernetes.client.rest import ApiException
from urllib3.exceptions import HTTPError

from edgectl.config import RetryPolicy
from edgectl.errors import AddonWarning, LabelingWarning
from edgectl.modules import manifests
from edgectl.modules.k3s.models import NodeIdentity
from edgectl.modules.kube import ClusterClient
from edgectl.modules.poller import await_condition

logger = logging.getLogger("edgectl.addons")

MANIFEST_SCHEMA = {
    "type": "object",
    "required": ["apiVersion", "kind", "metadata"],
    "properties": {
        "apiVersion": {"type": "string", "minLength": 1},
        "kind": {"type": "string", "minLength": 1},
        "metadata": {
            "type": "object",
            "required": ["name"],
            "properties": {
                "name": {"type": "string", "minLength": 1},
                "namespace": {"type": "string"},
            },
        },
    },
}


def _reason(e: Exception) -> str:
    if isinstance(e, ApiException):
        return f"{e.status} {e.reason}"
    return str(e)


def label_node(cluster: ClusterClient, identity: NodeIdentity, labels: Dict[str, str]) -> List[LabelingWarning]:
    """Upsert ``labels`` on the node. Never raises on API failure."""
    if not labels:
        return []
    pairs = ", ".join(f"{k}={v}" for k, v in labels.items())
    logger.info(f"🏷️ Labeling node {identity.name}: {pairs}")
    try:
        cluster.label_node(identity.name, labels)
    except (ApiException, HTTPError) as e:
        warning = LabelingWarning(f"Failed to label node {identity.name}: {_reason(e)}")
        logger.warning(f"⚠️ {warning}")
        return [warning]
    return []


@dataclass(frozen=True)
class ManifestSource:
    """Manifest text given inline or fetched from a URL."""
    name: str
    url: Optional[str] = None
    text: Optional[str] = None


@dataclass
class ApplyReport:
    applied: List[str] = field(default_factory=list)
    failed: List[Tuple[str, str]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed

    def warnings(self) -> List[AddonWarning]:
        return [AddonWarning(f"{item}: {reason}") for item, reason in self.failed]


def fetch_manifest(url: str, timeout: float = 60, session: Any = requests) -> str:
    logger.info(f"⬇️ Fetching {url}")
    response = session.get(url, timeout=timeout)
    response.raise_for_status()
    return response.text


def load_documents(text: str) -> List[Dict[str, Any]]:
    """Split a multi-document manifest, dropping empty documents and List wrappers."""
    docs: List[Dict[str, Any]] = []
    for doc in yaml.safe_load_all(text):
        if not doc:
            continue
        if isinstance(doc, dict) and str(doc.get("kind") or "").endswith("List") and "items" in doc:
            docs.extend(item for item in doc["items"] if item)
        else:
            docs.append(doc)
    return docs


def describe(doc: Any) -> str:
    if isinstance(doc, dict):
        name = (doc.get("metadata") or {}).get("name", "?")
        return f"{doc.get('kind', '?')}/{name}"
    return repr(doc)[:40]


def apply_manifests(
    cluster: ClusterClient,
    sources: Iterable[ManifestSource],
    session: Any = requests,
) -> ApplyReport:
    """Apply every document of every source, continuing past failures.

    Args:
        cluster: API client to apply with
        sources: Manifest sources, applied in order
        session: HTTP client for URL sources

    Returns:
        ApplyReport listing what was applied and what failed
    """
    report = ApplyReport()
    for source in sources:
        try:
            text = source.text if source.text is not None else fetch_manifest(source.url, session=session)
            docs = load_documents(text)
        except (requests.RequestException, yaml.YAMLError) as e:
            logger.warning(f"⚠️ Could not load {source.name}: {e}")
            report.failed.append((source.name, str(e)))
            continue

        for doc in docs:
            item = describe(doc)
            try:
                validate(instance=doc, schema=MANIFEST_SCHEMA)
                outcome = cluster.apply(doc)
            except ValidationError as e:
                logger.warning(f"⚠️ Skipping invalid document {item} in {source.name}: {e.message}")
                report.failed.append((item, e.message))
                continue
            except Exception as e:
                logger.warning(f"⚠️ Failed to apply {item}: {e}")
                report.failed.append((item, str(e)))
                continue
            logger.debug(f"{item} {outcome}")
            report.applied.append(item)

        logger.info(f"📄 Applied {source.name}")
    return report


@dataclass
class AddonContext:
    """What an add-on installer needs from the run."""
    cluster: ClusterClient
    target_host: str
    kubeconfig: str
    ready_policy: RetryPolicy
    sleep: Callable[[float], None] = time.sleep
    session: Any = requests


def wait_for_pods(ctx: AddonContext, namespace: str) -> List[AddonWarning]:
    """Wait for pods in ``namespace``; running out of attempts is only a warning."""
    result = await_condition(
        lambda timeout: ctx.cluster.pods_ready(namespace, timeout=timeout),
        ctx.ready_policy,
        f"pods in {namespace}",
        sleep=ctx.sleep,
    )
    if result.ok:
        return []
    warning = AddonWarning(f"Pods in {namespace} not ready after {result.attempts} attempts")
    logger.warning(f"⚠️ {warning}")
    return [warning]


def install_tekton(ctx: AddonContext) -> List[AddonWarning]:
    warnings: List[AddonWarning] = []
    for name, url in (
        ("tekton-pipelines", manifests.TEKTON_PIPELINES_URL),
        ("tekton-dashboard", manifests.TEKTON_DASHBOARD_URL),
    ):
        report = apply_manifests(ctx.cluster, [ManifestSource(name, url=url)], session=ctx.session)
        warnings.extend(report.warnings())
        warnings.extend(wait_for_pods(ctx, manifests.TEKTON_NAMESPACE))
    return warnings


def install_tekton_sample(ctx: AddonContext) -> List[AddonWarning]:
    report = apply_manifests(ctx.cluster, [ManifestSource("tekton-sample", text=manifests.TEKTON_SAMPLE)])
    return report.warnings()


def install_dashboard(ctx: AddonContext) -> List[AddonWarning]:
    report = apply_manifests(
        ctx.cluster,
        [
            ManifestSource("kubernetes-dashboard", url=manifests.DASHBOARD_URL),
            ManifestSource("dashboard-admin", text=manifests.DASHBOARD_ADMIN),
        ],
        session=ctx.session,
    )
    warnings = report.warnings()

    logger.info(f"🔓 Exposing the dashboard on node port {manifests.DASHBOARD_NODE_PORT}")
    try:
        ctx.cluster.patch_service(
            manifests.DASHBOARD_SERVICE, manifests.DASHBOARD_NAMESPACE, manifests.DASHBOARD_SERVICE_PATCH
        )
    except (ApiException, HTTPError) as e:
        warning = AddonWarning(f"Failed to expose the dashboard service: {_reason(e)}")
        logger.warning(f"⚠️ {warning}")
        warnings.append(warning)
    return warnings


def install_sample_app(ctx: AddonContext) -> List[AddonWarning]:
    text = manifests.sample_app(ctx.target_host, ctx.kubeconfig)
    return apply_manifests(ctx.cluster, [ManifestSource("sample-app", text=text)]).warnings()


ADDON_INSTALLERS: Dict[str, Callable[[AddonContext], List[AddonWarning]]] = {
    "tekton": install_tekton,
    "tekton-sample": install_tekton_sample,
    "dashboard": install_dashboard,
    "sample-app": install_sample_app,
}


def install_addons(names: Iterable[str], ctx: AddonContext) -> List[AddonWarning]:
    """Install the named add-ons in order and collect their warnings."""
    warnings: List[AddonWarning] = []
    for name in names:
        logger.info(f"🧩 Installing add-on {name}")
        warnings.extend(ADDON_INSTALLERS[name](ctx))
    return warnings
