from kubernetes.client.rest import ApiException

from edgectl.errors import ReportingWarning
from edgectl.modules.k3s.models import NodeIdentity
from edgectl.modules.summary import report
from edgectl.tests.fakes import TARGET, FakeCluster, make_node, make_pod


def test_report_lists_nodes_pods_and_hints():
    cluster = FakeCluster(
        nodes=[make_node("switch", TARGET)],
        pods=[make_pod("kube-system"), make_pod("kube-system"), make_pod("default", phase="Pending")],
    )

    summary = report(cluster, "/home/pi/.kube/nintendo-switch-config", TARGET, ["dashboard", "sample-app"],
                     NodeIdentity("switch", TARGET))

    assert summary.nodes[0].name == "switch"
    assert summary.nodes[0].ready
    assert summary.nodes[0].arch == "arm64"
    assert summary.pods == {"kube-system": {"Running": 2}, "default": {"Pending": 1}}
    assert f"http://{TARGET}:30080" in " ".join(summary.urls)
    assert "kubectl -n kubernetes-dashboard create token admin-user" in summary.hints

    text = summary.render()
    assert "switch" in text
    assert "export KUBECONFIG=/home/pi/.kube/nintendo-switch-config" in text
    assert "127.0.0.1" not in text


def test_tekton_hints():
    summary = report(FakeCluster(), "/k", TARGET, ["tekton", "tekton-sample"])

    assert any("port-forward" in hint for hint in summary.hints)
    assert any("nintendo-hello-pipeline-run" in hint for hint in summary.hints)


def test_api_errors_become_warnings():
    cluster = FakeCluster()

    def broken(namespace=None, timeout=None):
        raise ApiException(status=503, reason="Unavailable")

    cluster.list_pods = broken

    summary = report(cluster, "/k", TARGET)

    assert len(summary.warnings) == 1
    assert isinstance(summary.warnings[0], ReportingWarning)
