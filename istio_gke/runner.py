import logging
import shlex
import subprocess

logger = logging.getLogger(__name__)


class CommandRunner:
    """
    Runs external commands (gcloud, kubectl, istioctl, ...).

    Failures are not handled here: a non-zero exit raises
    subprocess.CalledProcessError and the caller decides what to do.
    """

    def run(self, args, check=True):
        args = [str(a) for a in args]
        logger.info(f"Running command: {shlex.join(args)}")

        try:
            result = subprocess.run(
                args,
                check=check,
                capture_output=True,
                text=True,
            )
        except subprocess.CalledProcessError as e:
            logger.error(f"Command failed with exit code {e.returncode}")
            if e.stdout:
                logger.info(f"STDOUT:\n{e.stdout.strip()}")
            if e.stderr:
                logger.error(f"STDERR:\n{e.stderr.strip()}")
            raise

        if result.stdout:
            logger.info(f"STDOUT:\n{result.stdout.strip()}")
        if result.stderr:
            # Warning: some kubectl commands print info to stderr even on success
            logger.warning(f"STDERR:\n{result.stderr.strip()}")
        return result
