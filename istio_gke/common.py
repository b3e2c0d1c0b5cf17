import logging
import platform
import shutil
import sys

logger = logging.getLogger(__name__)

# ==========================================
# EXIT CODES
# ==========================================
EXIT_OK = 0
EXIT_GENERIC_ERR = 1
ERR_VARIABLE_NOT_DEFINED = 2
ERR_MISSING_DEPENDENCY = 3
ERR_ARGUMENT_EVAL_ERROR = 4

HELP_DESCRIPTION = "show this help message and exit"

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


# ==========================================
# ERRORS
# ==========================================

class InstallerError(Exception):
    """An error the entry point turns into a specific exit status."""

    exit_code = EXIT_GENERIC_ERR


class VariableNotDefinedError(InstallerError):
    exit_code = ERR_VARIABLE_NOT_DEFINED


class InvalidSettingError(VariableNotDefinedError):
    pass


class MissingDependencyError(InstallerError):
    exit_code = ERR_MISSING_DEPENDENCY


class ArgumentEvalError(InstallerError):
    exit_code = ERR_ARGUMENT_EVAL_ERROR


# ==========================================
# UTILITIES
# ==========================================

def is_linux():
    return platform.system() == "Linux"


def is_macos():
    return platform.system() == "Darwin"


def check_exec_dependency(name):
    """Raises MissingDependencyError if `name` can't be found on the PATH."""
    path = shutil.which(name)
    if path is None:
        raise MissingDependencyError(
            f"{name} command is not available, but it's needed. Make it available in PATH and try again."
        )
    logger.debug(f"Found {name} at {path}")


def check_argument(value, description):
    """Raises VariableNotDefinedError if `value` is empty."""
    if not value:
        raise VariableNotDefinedError(f"[ERROR] {description} is not defined. Run with -h for help.")


def configure_logging(level=logging.INFO):
    # Only the entry point configures logging; modules just use getLogger.
    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        handlers=[logging.StreamHandler(sys.stdout)],
    )
