import os
from dataclasses import dataclass
from typing import Optional

from istio_gke.common import InvalidSettingError, check_argument

# ==========================================
# CONFIGURATION
# ==========================================
DEFAULT_ISTIO_VERSION = "1.11.4"
DEFAULT_DESCRIPTORS_PATH = "kubernetes"
DEFAULT_LOAD_BALANCER_POLL_INTERVAL = 10.0
DEFAULT_KIALI_RETRY_DELAY = 5.0

ISTIO_NAMESPACE = "istio-system"
ISTIO_PROFILE = "demo"
EASTWEST_GATEWAY_SERVICE = "istio-eastwestgateway"
INGRESS_GATEWAY_SERVICE = "istio-ingressgateway"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

RELEASE_URL = "https://github.com/istio/istio/releases/download/{version}/{archive}"

GKE_CLUSTER_NAME_DESCRIPTION = "GKE cluster name to deploy workloads to"
GKE_CLUSTER_REGION_DESCRIPTION = "ID of the region of the GKE cluster"
GOOGLE_CLOUD_PROJECT_DESCRIPTION = "ID of the Google Cloud Project where the cluster to deploy to resides"


@dataclass(frozen=True)
class InstallParameters:
    """The three values taken from the command line."""

    cluster_name: str = ""
    cluster_region: str = ""
    google_cloud_project: str = ""

    def validate(self):
        check_argument(self.cluster_name, GKE_CLUSTER_NAME_DESCRIPTION)
        check_argument(self.cluster_region, GKE_CLUSTER_REGION_DESCRIPTION)
        check_argument(self.google_cloud_project, GOOGLE_CLOUD_PROJECT_DESCRIPTION)
        return self


@dataclass(frozen=True)
class Settings:
    """
    Environment driven constants, fixed for the lifetime of a run.
    Manifest and archive locations are derived from them.
    """

    istio_version: str
    istio_path: str
    istio_bin_path: str
    istio_samples_path: str
    descriptors_path: str
    load_balancer_poll_interval: float = DEFAULT_LOAD_BALANCER_POLL_INTERVAL
    load_balancer_wait_timeout: Optional[float] = None
    kiali_retry_delay: float = DEFAULT_KIALI_RETRY_DELAY
    log_level: str = "INFO"

    @property
    def archive_name(self):
        return f"istio-{self.istio_version}-linux-amd64.tar.gz"

    @property
    def download_url(self):
        return RELEASE_URL.format(version=self.istio_version, archive=self.archive_name)

    @property
    def download_dir(self):
        return os.path.dirname(os.path.abspath(self.istio_path))

    @property
    def archive_path(self):
        return os.path.join(self.download_dir, self.archive_name)

    @property
    def istioctl(self):
        return os.path.join(self.istio_bin_path, "istioctl")

    @property
    def istio_operator_manifest(self):
        return os.path.join(self.descriptors_path, "mesh-expansion", "istio-operator.yaml")

    @property
    def gateway_manifest(self):
        return os.path.join(self.descriptors_path, "gateway.yaml")

    @property
    def addons_path(self):
        return os.path.join(self.istio_samples_path, "addons")

    @property
    def prometheus_manifest(self):
        return os.path.join(self.addons_path, "prometheus.yaml")

    @property
    def grafana_manifest(self):
        return os.path.join(self.addons_path, "grafana.yaml")

    @property
    def grafana_kustomization_path(self):
        return os.path.join(self.descriptors_path, "grafana")

    @property
    def kiali_manifest(self):
        return os.path.join(self.addons_path, "kiali.yaml")

    @property
    def kiali_virtual_service_manifest(self):
        return os.path.join(self.descriptors_path, "kiali", "virtual-service.yaml")


def _float_setting(environ, name, default):
    value = environ.get(name)
    if value is None or value == "":
        return default
    try:
        number = float(value)
    except ValueError:
        raise InvalidSettingError(f"[ERROR] {name} must be a number of seconds, got {value!r}") from None
    if number < 0:
        raise InvalidSettingError(f"[ERROR] {name} must not be negative, got {value!r}")
    return number


def load_settings(environ=None, cwd=None):
    """Builds Settings from environment variables, filling in the defaults."""
    if environ is None:
        environ = os.environ
    if cwd is None:
        cwd = os.getcwd()

    version = environ.get("ISTIO_VERSION") or DEFAULT_ISTIO_VERSION
    istio_path = environ.get("ISTIO_PATH") or os.path.join(cwd, f"istio-{version}")

    return Settings(
        istio_version=version,
        istio_path=istio_path,
        istio_bin_path=environ.get("ISTIO_BIN_PATH") or os.path.join(istio_path, "bin"),
        istio_samples_path=environ.get("ISTIO_SAMPLES_PATH") or os.path.join(istio_path, "samples"),
        descriptors_path=environ.get("TUTORIAL_KUBERNETES_DESCRIPTORS_PATH") or DEFAULT_DESCRIPTORS_PATH,
        load_balancer_poll_interval=_float_setting(
            environ, "LOAD_BALANCER_POLL_INTERVAL", DEFAULT_LOAD_BALANCER_POLL_INTERVAL
        ),
        load_balancer_wait_timeout=_float_setting(environ, "LOAD_BALANCER_WAIT_TIMEOUT", None),
        kiali_retry_delay=_float_setting(environ, "KIALI_RETRY_DELAY", DEFAULT_KIALI_RETRY_DELAY),
        log_level=_log_level_setting(environ),
    )


def _log_level_setting(environ):
    level = (environ.get("LOG_LEVEL") or "INFO").upper()
    if level not in LOG_LEVELS:
        raise InvalidSettingError(f"[ERROR] LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}, got {level!r}")
    return level
