import logging
import os
import subprocess
import sys

from kubernetes.client.rest import ApiException
from kubernetes.config import ConfigException

from istio_gke.common import EXIT_GENERIC_ERR, EXIT_OK, InstallerError, configure_logging
from istio_gke.config import load_settings
from istio_gke.install import Installer, check_dependencies, required_dependencies
from istio_gke.k8s import K8sClient
from istio_gke.options import UsageRequested, parse_options, usage
from istio_gke.runner import CommandRunner

logger = logging.getLogger(__name__)

DEFAULT_PROG = "istio-gke-install"


def run(argv, prog, runner=None, k8s_factory=None):
    """Everything main() does, minus the exit status handling."""
    settings = load_settings()
    logging.getLogger().setLevel(settings.log_level)

    check_dependencies(required_dependencies(settings))

    try:
        params = parse_options(argv)
    except UsageRequested:
        print(usage(prog))
        return EXIT_OK

    logger.info("Checking if the necessary parameters are set...")
    params.validate()

    Installer(settings, params, runner or CommandRunner(), k8s_factory=k8s_factory or K8sClient).run()
    return EXIT_OK


def main(argv=None):
    if argv is None:
        argv = sys.argv[1:]
    prog = os.path.basename(sys.argv[0])
    if not prog or prog == "__main__.py":
        prog = DEFAULT_PROG

    configure_logging()
    try:
        return run(argv, prog)
    except InstallerError as e:
        logger.error(str(e))
        return e.exit_code
    except subprocess.CalledProcessError as e:
        logger.error(f"{e.cmd[0]} exited with status {e.returncode}. Terminating...")
        return e.returncode if e.returncode > 0 else EXIT_GENERIC_ERR
    except ApiException as e:
        logger.error(f"Kubernetes API error (HTTP {e.status}): {e.reason}. Terminating...")
        return EXIT_GENERIC_ERR
    except ConfigException as e:
        logger.error(f"Could not load the Kubernetes configuration: {e}. Terminating...")
        return EXIT_GENERIC_ERR
    except OSError as e:
        logger.error(f"{e}. Terminating...")
        return EXIT_GENERIC_ERR
    except KeyboardInterrupt:
        logger.error("Interrupted.")
        return 130


if __name__ == "__main__":
    sys.exit(main())
