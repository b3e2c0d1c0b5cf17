import logging
import os
import shutil
import subprocess
import time

from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_fixed

from istio_gke.common import check_exec_dependency
from istio_gke.config import (
    EASTWEST_GATEWAY_SERVICE,
    INGRESS_GATEWAY_SERVICE,
    ISTIO_NAMESPACE,
    ISTIO_PROFILE,
)
from istio_gke.k8s import K8sClient, wait_for_load_balancer_ip

logger = logging.getLogger(__name__)

REQUIRED_DEPENDENCIES = ("gcloud", "kubectl")
# Only needed when the Istio release has to be fetched.
DOWNLOAD_DEPENDENCIES = ("tar", "wget")

KIALI_APPLY_ATTEMPTS = 2


def required_dependencies(settings):
    if os.path.exists(settings.istio_path):
        return REQUIRED_DEPENDENCIES
    return REQUIRED_DEPENDENCIES + DOWNLOAD_DEPENDENCIES


def check_dependencies(names=REQUIRED_DEPENDENCIES):
    logger.info("Checking if the necessary dependencies are available...")
    for name in names:
        check_exec_dependency(name)


class Installer:
    """
    Runs the installation steps in order. The first failing command stops the
    run; nothing already applied to the cluster is rolled back.
    """

    def __init__(self, settings, params, runner, k8s_factory=K8sClient, sleep=time.sleep):
        self.settings = settings
        self.params = params
        self.runner = runner
        self.k8s_factory = k8s_factory
        self.sleep = sleep

    def run(self):
        self.set_project()
        self.download_istio()
        self.get_cluster_credentials()
        self.install_istio()
        self.wait_for_gateways()
        self.configure_ingress_gateway()
        self.configure_prometheus()
        self.configure_grafana()
        self.configure_kiali()

    # ==========================================
    # STEPS
    # ==========================================

    def set_project(self):
        project = self.params.google_cloud_project
        logger.info(f"Setting the default Google Cloud project to {project}...")
        self.runner.run(["gcloud", "config", "set", "project", project])

    def download_istio(self):
        s = self.settings
        if os.path.exists(s.istio_path):
            logger.info(f"Istio {s.istio_version} found in {s.istio_path}, skip downloading...")
            return

        logger.info(f"Downloading Istio {s.istio_version} to {s.istio_path}")
        self.runner.run(["wget", "-O", s.archive_path, s.download_url])
        self.runner.run(["tar", "-xvzf", s.archive_path, "-C", s.download_dir])
        os.remove(s.archive_path)

    def get_cluster_credentials(self):
        name = self.params.cluster_name
        logger.info(f"Initializing the GKE cluster credentials for {name}...")
        self.runner.run([
            "gcloud", "container", "clusters", "get-credentials", name,
            f"--region={self.params.cluster_region}",
        ])

    def install_istio(self):
        logger.info("Installing Istio...")
        self.runner.run([
            self.settings.istioctl, "install",
            "--filename", self.settings.istio_operator_manifest,
            "--set", f"profile={ISTIO_PROFILE}",
            "--skip-confirmation",
        ])

    def wait_for_gateways(self):
        # Credentials must be in place before the client reads the kubeconfig.
        k8s = self.k8s_factory()
        for service in (EASTWEST_GATEWAY_SERVICE, INGRESS_GATEWAY_SERVICE):
            wait_for_load_balancer_ip(
                k8s,
                service,
                ISTIO_NAMESPACE,
                interval=self.settings.load_balancer_poll_interval,
                timeout=self.settings.load_balancer_wait_timeout,
                sleep=self.sleep,
            )

    def configure_ingress_gateway(self):
        logger.info("Configuring the ingress gateway...")
        self.kubectl_apply("-f", self.settings.gateway_manifest)

    def configure_prometheus(self):
        logger.info("Configuring the Prometheus add-on...")
        self.kubectl_apply("-f", self.settings.prometheus_manifest)

    def configure_grafana(self):
        logger.info("Configuring the Grafana add-on...")
        # The kustomization in the descriptors directory patches the upstream add-on.
        shutil.copy(
            self.settings.grafana_manifest,
            os.path.join(self.settings.grafana_kustomization_path, "grafana.yaml"),
        )
        self.kubectl_apply("-k", self.settings.grafana_kustomization_path)

    def configure_kiali(self):
        logger.info("Configuring the Kiali add-on...")
        # The Kiali CRD isn't always established when the first apply lands.
        retryer = Retrying(
            stop=stop_after_attempt(KIALI_APPLY_ATTEMPTS),
            wait=wait_fixed(self.settings.kiali_retry_delay),
            retry=retry_if_exception_type(subprocess.CalledProcessError),
            before_sleep=lambda _: logger.warning("There were errors installing Kiali. Retrying..."),
            sleep=self.sleep,
            reraise=True,
        )
        retryer(self.kubectl_apply, "-f", self.settings.kiali_manifest)
        self.kubectl_apply("-f", self.settings.kiali_virtual_service_manifest)

    def kubectl_apply(self, flag, path):
        return self.runner.run(["kubectl", "apply", flag, path])
