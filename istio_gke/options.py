"""
Command line options.

Two parsing modes are supported, mirroring the two getopt flavours the
installer has always been run with:

* GNU (Linux): short and long options, options may follow positional
  arguments.
* BSD (macOS and everything else): short options only, parsing stops at the
  first positional argument.
"""
import getopt

from istio_gke.common import (
    ERR_ARGUMENT_EVAL_ERROR,
    ERR_MISSING_DEPENDENCY,
    ERR_VARIABLE_NOT_DEFINED,
    EXIT_OK,
    HELP_DESCRIPTION,
    ArgumentEvalError,
    is_linux,
)
from istio_gke.config import (
    GKE_CLUSTER_NAME_DESCRIPTION,
    GKE_CLUSTER_REGION_DESCRIPTION,
    GOOGLE_CLOUD_PROJECT_DESCRIPTION,
    InstallParameters,
)

GNU_MODE = "gnu"
BSD_MODE = "bsd"

# -c, -e and -s are accepted by getopt but only ever lead to the usage text.
SHORT_OPTIONS = "ce:hn:p:r:s"
LONG_OPTIONS = ["cluster-name=", "cluster-region=", "google-cloud-project=", "help"]

_FIELDS = {
    "-n": "cluster_name",
    "--cluster-name": "cluster_name",
    "-r": "cluster_region",
    "--cluster-region": "cluster_region",
    "-p": "google_cloud_project",
    "--google-cloud-project": "google_cloud_project",
}


class UsageRequested(Exception):
    """Raised when the usage text should be shown instead of installing."""


def default_mode():
    return GNU_MODE if is_linux() else BSD_MODE


def usage(prog, mode=None):
    mode = mode or default_mode()

    def flag(short, long):
        return f"{short} | {long}" if mode == GNU_MODE else short

    return "\n".join([
        f"{prog} - This script installs Istio in the target GKE cluster.",
        "",
        "USAGE",
        f"  {prog} [options]",
        "",
        "OPTIONS",
        f"  {flag('-h', '--help')}: {HELP_DESCRIPTION}",
        f"  {flag('-n', '--cluster-name')}: {GKE_CLUSTER_NAME_DESCRIPTION}",
        f"  {flag('-p', '--google-cloud-project')}: {GOOGLE_CLOUD_PROJECT_DESCRIPTION}",
        f"  {flag('-r', '--cluster-region')}: {GKE_CLUSTER_REGION_DESCRIPTION}",
        "",
        "EXIT STATUS",
        "",
        f"  {EXIT_OK} on correct execution.",
        f"  {ERR_VARIABLE_NOT_DEFINED} when a parameter or a variable is not defined, or empty.",
        f"  {ERR_MISSING_DEPENDENCY} when a required dependency is missing.",
        f"  {ERR_ARGUMENT_EVAL_ERROR} when there was an error while evaluating the program options.",
    ])


def _getopt(argv, mode):
    if mode == GNU_MODE:
        return getopt.gnu_getopt(argv, SHORT_OPTIONS, LONG_OPTIONS)
    if mode == BSD_MODE:
        return getopt.getopt(argv, SHORT_OPTIONS)
    raise ValueError(f"Unknown option parsing mode: {mode}")


def parse_options(argv, mode=None):
    """
    Parses `argv` (without the program name) into InstallParameters.

    Raises UsageRequested for -h/--help, unrecognized flags and the flags that
    are accepted but unused. Raises ArgumentEvalError when the invocation
    itself is malformed, e.g. -n without a value.
    """
    mode = mode or default_mode()
    try:
        opts, _ = _getopt(list(argv), mode)
    except getopt.GetoptError as e:
        if "not recognized" in e.msg:
            raise UsageRequested(e.msg)
        raise ArgumentEvalError(f"Error while evaluating command options: {e.msg}. Terminating...")

    values = {}
    for opt, arg in opts:
        field = _FIELDS.get(opt)
        if field is None:
            # -h, --help and every other accepted flag
            raise UsageRequested(opt)
        values[field] = arg

    return InstallParameters(**values)
