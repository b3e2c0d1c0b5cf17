import subprocess
from types import SimpleNamespace

import pytest

from istio_gke.config import InstallParameters, load_settings


class FakeRunner:
    """Records commands instead of running them."""

    def __init__(self):
        self.calls = []
        self._failures = []
        self._hooks = []

    def fail(self, predicate, times=1, returncode=1):
        self._failures.append({"predicate": predicate, "times": times, "returncode": returncode})

    def on(self, predicate, action):
        self._hooks.append((predicate, action))

    def run(self, args, check=True):
        args = [str(a) for a in args]
        self.calls.append(args)
        for predicate, action in self._hooks:
            if predicate(args):
                action(args)
        for failure in self._failures:
            if failure["times"] > 0 and failure["predicate"](args):
                failure["times"] -= 1
                if check:
                    raise subprocess.CalledProcessError(failure["returncode"], args)
        return subprocess.CompletedProcess(args, 0, "", "")

    def commands(self, program):
        return [c for c in self.calls if c[0] == program]


class FakeK8s:
    """Stands in for K8sClient; hands out queued answers per service."""

    def __init__(self, answers=None):
        self.answers = answers or {}
        self.queries = []

    def load_balancer_ip(self, service_name, namespace):
        self.queries.append((service_name, namespace))
        queue = self.answers.get(service_name)
        if not queue:
            return "203.0.113.10"
        return queue.pop(0)


class FakeCoreV1:
    """Stands in for CoreV1Api; every read returns (or raises) the same result."""

    def __init__(self, result):
        self.result = result
        self.reads = []

    def read_namespaced_service(self, name, namespace):
        self.reads.append((name, namespace))
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


def service(ip=None, hostname=None):
    ingress = [SimpleNamespace(ip=ip, hostname=hostname)] if ip or hostname else None
    return SimpleNamespace(status=SimpleNamespace(load_balancer=SimpleNamespace(ingress=ingress)))


def kubectl_apply_of(path):
    return lambda args: args[:2] == ["kubectl", "apply"] and args[-1] == str(path)


@pytest.fixture
def workspace(tmp_path):
    """An extracted Istio release next to the tutorial descriptors."""
    istio_path = tmp_path / "istio-1.11.4"
    addons = istio_path / "samples" / "addons"
    addons.mkdir(parents=True)
    for name in ("prometheus.yaml", "grafana.yaml", "kiali.yaml"):
        (addons / name).write_text(f"# {name}\n")
    (istio_path / "bin").mkdir()

    descriptors = tmp_path / "kubernetes"
    (descriptors / "grafana").mkdir(parents=True)
    (descriptors / "grafana" / "kustomization.yaml").write_text("resources:\n  - grafana.yaml\n")
    (descriptors / "kiali").mkdir()
    (descriptors / "mesh-expansion").mkdir()
    return SimpleNamespace(root=tmp_path, istio_path=istio_path, descriptors=descriptors)


@pytest.fixture
def environ(workspace):
    return {
        "ISTIO_VERSION": "1.11.4",
        "ISTIO_PATH": str(workspace.istio_path),
        "TUTORIAL_KUBERNETES_DESCRIPTORS_PATH": str(workspace.descriptors),
        "LOAD_BALANCER_POLL_INTERVAL": "0",
    }


@pytest.fixture
def settings(environ, workspace):
    return load_settings(environ, cwd=str(workspace.root))


@pytest.fixture
def params():
    return InstallParameters("my-cluster", "us-central1", "my-project")


@pytest.fixture
def runner():
    return FakeRunner()


@pytest.fixture
def k8s():
    return FakeK8s()


@pytest.fixture
def sleeps():
    return []
