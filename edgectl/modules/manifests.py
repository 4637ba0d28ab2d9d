"""Static add-on manifests and the release URLs they come from."""
from string import Template

TEKTON_PIPELINES_URL = "https://storage.googleapis.com/tekton-releases/pipeline/latest/release.yaml"
TEKTON_DASHBOARD_URL = "https://storage.googleapis.com/tekton-releases/dashboard/latest/release.yaml"
TEKTON_NAMESPACE = "tekton-pipelines"

DASHBOARD_URL = (
    "https://raw.githubusercontent.com/kubernetes/dashboard/v2.7.0/aio/deploy/recommended.yaml"
)
DASHBOARD_NAMESPACE = "kubernetes-dashboard"
DASHBOARD_SERVICE = "kubernetes-dashboard"
DASHBOARD_NODE_PORT = 30000

SAMPLE_APP_NODE_PORT = 30080
SAMPLE_PIPELINE_RUN = "nintendo-hello-pipeline-run"

TEKTON_SAMPLE = """\
apiVersion: tekton.dev/v1beta1
kind: Task
metadata:
  name: nintendo-hello-task
  namespace: default
spec:
  steps:
    - name: hello
      image: ubuntu
      command:
        - echo
      args:
        - "Hello from Nintendo Switch K3s Cluster!"
---
apiVersion: tekton.dev/v1beta1
kind: Pipeline
metadata:
  name: nintendo-hello-pipeline
  namespace: default
spec:
  tasks:
    - name: say-hello
      taskRef:
        name: nintendo-hello-task
---
apiVersion: tekton.dev/v1beta1
kind: PipelineRun
metadata:
  name: nintendo-hello-pipeline-run
  namespace: default
spec:
  pipelineRef:
    name: nintendo-hello-pipeline
"""

DASHBOARD_ADMIN = """\
apiVersion: v1
kind: ServiceAccount
metadata:
  name: admin-user
  namespace: kubernetes-dashboard
---
apiVersion: rbac.authorization.k8s.io/v1
kind: ClusterRoleBinding
metadata:
  name: admin-user
roleRef:
  apiGroup: rbac.authorization.k8s.io
  kind: ClusterRole
  name: cluster-admin
subjects:
- kind: ServiceAccount
  name: admin-user
  namespace: kubernetes-dashboard
"""

# JSON patch exposing the dashboard on a fixed node port
DASHBOARD_SERVICE_PATCH = [
    {"op": "replace", "path": "/spec/type", "value": "NodePort"},
    {"op": "replace", "path": "/spec/ports/0/nodePort", "value": DASHBOARD_NODE_PORT},
]

_SAMPLE_APP = Template("""\
apiVersion: apps/v1
kind: Deployment
metadata:
  name: nintendo-info-app
  namespace: default
  labels:
    app: nintendo-info
spec:
  replicas: 1
  selector:
    matchLabels:
      app: nintendo-info
  template:
    metadata:
      labels:
        app: nintendo-info
    spec:
      containers:
      - name: nintendo-info
        image: nginx:alpine
        ports:
        - containerPort: 80
        command: ["/bin/sh"]
        args:
          - -c
          - |
            cat > /usr/share/nginx/html/index.html << 'HTMLEOF'
            <!DOCTYPE html>
            <html>
            <head><title>Nintendo Switch K3s Cluster</title></head>
            <body>
                <h1>Nintendo Switch K3s Cluster</h1>
                <p><strong>Node:</strong> Nintendo Switch (ARM64)</p>
                <p><strong>Kubernetes:</strong> K3s Single-Node Cluster</p>
                <p><strong>IP Address:</strong> $address</p>
                <p><a href="http://$address:$dashboard_port">Kubernetes Dashboard</a></p>
                <pre>
            export KUBECONFIG=$kubeconfig
            kubectl get nodes
            kubectl -n kubernetes-dashboard create token admin-user
                </pre>
            </body>
            </html>
            HTMLEOF
            nginx -g 'daemon off;'
---
apiVersion: v1
kind: Service
metadata:
  name: nintendo-info-service
  namespace: default
spec:
  selector:
    app: nintendo-info
  ports:
  - port: 80
    targetPort: 80
    nodePort: $app_port
  type: NodePort
""")


def sample_app(address: str, kubeconfig: str = "~/.kube/config") -> str:
    """Render the info page workload for the host at ``address``."""
    return _SAMPLE_APP.substitute(
        address=address,
        kubeconfig=kubeconfig,
        dashboard_port=DASHBOARD_NODE_PORT,
        app_port=SAMPLE_APP_NODE_PORT,
    )
