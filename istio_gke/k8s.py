import logging
import time

import urllib3
from kubernetes import client, config
from kubernetes.client.rest import ApiException
from tenacity import (
    RetryError,
    Retrying,
    retry_if_exception_type,
    retry_if_result,
    stop_after_delay,
    stop_never,
    wait_fixed,
)

from istio_gke.common import InstallerError

logger = logging.getLogger(__name__)

# The API server can be briefly unavailable while the control plane settles
# after istioctl install.
TRANSIENT_ERRORS = (ApiException, urllib3.exceptions.HTTPError)

FATAL_API_STATUSES = (401, 403)


class LoadBalancerTimeoutError(InstallerError):
    pass


class K8sAccessError(InstallerError):
    pass


class K8sClient:
    """
    A wrapper around the official Kubernetes Python Client.
    Only used for reads; everything that changes the cluster goes through kubectl.
    """

    def __init__(self, core_v1=None):
        if core_v1 is None:
            # Tries local ~/.kube/config first (written by get-credentials),
            # then falls back to In-Cluster config.
            try:
                config.load_kube_config()
                logger.debug("Loaded local kubeconfig.")
            except config.ConfigException:
                try:
                    config.load_incluster_config()
                    logger.debug("Loaded in-cluster config.")
                except config.ConfigException:
                    logger.error("Could not load K8s config.")
                    raise
            core_v1 = client.CoreV1Api()
        self.v1 = core_v1

    def load_balancer_ip(self, service_name, namespace):
        """Returns the external load balancer address of a Service, or None if not assigned yet."""
        try:
            svc = self.v1.read_namespaced_service(service_name, namespace)
        except ApiException as e:
            if e.status == 404:
                logger.info(f"Service {service_name} not found in {namespace} yet.")
                return None
            if e.status in FATAL_API_STATUSES:
                raise K8sAccessError(
                    f"Not allowed to read Service {service_name} in {namespace} (HTTP {e.status}): {e.reason}"
                ) from e
            raise

        load_balancer = svc.status.load_balancer if svc.status else None
        if not load_balancer or not load_balancer.ingress:
            return None
        ingress = load_balancer.ingress[0]
        return ingress.ip or ingress.hostname


def _is_empty(result):
    return not result


def _log_poll_error(retry_state):
    if retry_state.outcome.failed:
        logger.warning(f"Error querying service: {retry_state.outcome.exception()}")


def wait_for_load_balancer_ip(k8s, service_name, namespace, interval=10, timeout=None, sleep=time.sleep):
    """
    Polls `service_name` every `interval` seconds until it gets an external IP.
    API and connection errors are logged and polled through; waits forever
    unless `timeout` is set.
    """
    retryer = Retrying(
        stop=stop_after_delay(timeout) if timeout is not None else stop_never,
        wait=wait_fixed(interval),
        retry=retry_if_result(_is_empty) | retry_if_exception_type(TRANSIENT_ERRORS),
        before=lambda _: logger.info(f"Waiting for the load balancer IP of {service_name} in {namespace}..."),
        before_sleep=_log_poll_error,
        sleep=sleep,
    )
    try:
        ip = retryer(k8s.load_balancer_ip, service_name, namespace)
    except RetryError:
        raise LoadBalancerTimeoutError(
            f"Timed out after {timeout} seconds waiting for the load balancer IP of {service_name}."
        )

    logger.info(f"Found external IP for {service_name}: {ip}")
    return ip
