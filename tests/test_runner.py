import logging
import subprocess
import sys

import pytest

from istio_gke.runner import CommandRunner


def test_run_returns_output():
    result = CommandRunner().run([sys.executable, "-c", "print('ok')"])

    assert result.returncode == 0
    assert result.stdout.strip() == "ok"


def test_run_raises_on_failure(caplog):
    caplog.set_level(logging.INFO)

    with pytest.raises(subprocess.CalledProcessError) as excinfo:
        CommandRunner().run([sys.executable, "-c", "import sys; sys.stderr.write('boom'); sys.exit(3)"])

    assert excinfo.value.returncode == 3
    assert "Command failed with exit code 3" in caplog.text
    assert "boom" in caplog.text


def test_run_without_check_returns_failure():
    result = CommandRunner().run([sys.executable, "-c", "import sys; sys.exit(5)"], check=False)

    assert result.returncode == 5


def test_run_logs_command(caplog):
    caplog.set_level(logging.INFO)

    CommandRunner().run([sys.executable, "-c", "pass"])

    assert "Running command:" in caplog.text
