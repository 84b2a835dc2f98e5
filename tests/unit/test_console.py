"""Test the console module.

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""
# built-in modules
import subprocess
from unittest.mock import MagicMock, patch

# third-party modules
import pytest

# project modules
from aksgpu.core import console
from aksgpu.core.errors import CommandError, TimeoutError


def _proc(output=b"", returncode=0):
    proc = MagicMock()
    proc.communicate.return_value = (output, None)
    proc.returncode = returncode
    return proc


class TestConsole:
    """Test the console class."""

    @patch("aksgpu.core.console.subprocess.Popen")
    def test_sh(self, mock_popen):
        mock_popen.return_value = _proc(b"test\n")
        obj = console.Console()

        assert obj.sh(["echo", "test"]) == "test"

    @patch("aksgpu.core.console.subprocess.Popen")
    def test_sh_fail(self, mock_popen):
        mock_popen.return_value = _proc(b"boom", returncode=2)
        obj = console.Console(shellVerbose=False)

        with pytest.raises(CommandError) as exc_info:
            obj.sh(["helm", "list"])

        assert "failed with exit code 2" in str(exc_info.value)
        assert exc_info.value.returncode == 2
        assert exc_info.value.output == "boom"

    @patch("aksgpu.core.console.subprocess.Popen")
    def test_sh_can_fail(self, mock_popen):
        mock_popen.return_value = _proc(b"not found", returncode=1)
        obj = console.Console(shellVerbose=False)

        assert obj.sh(["kubectl", "get", "x"], canFail=True) == "not found"

    @patch("aksgpu.core.console.subprocess.Popen")
    def test_run_returns_result(self, mock_popen):
        mock_popen.return_value = _proc(b"v3.14.0\n", returncode=0)
        obj = console.Console(shellVerbose=False)

        result = obj.run(["helm", "version", "--short"], cwd="/tmp")

        assert result.ok
        assert result.output == "v3.14.0"
        assert result.command == ["helm", "version", "--short"]
        assert mock_popen.call_args.kwargs["cwd"] == "/tmp"

    @patch("aksgpu.core.console.subprocess.Popen")
    def test_secret_hides_command(self, mock_popen, capsys):
        mock_popen.return_value = _proc(b"", returncode=1)
        obj = console.Console()

        with pytest.raises(CommandError) as exc_info:
            obj.sh(["az", "login", "--password", "hunter2"], secret=True)

        assert "hunter2" not in capsys.readouterr().out
        assert "<secret>" in str(exc_info.value)

    @patch("aksgpu.core.console.subprocess.Popen")
    def test_verbose_echoes_command(self, mock_popen, capsys):
        mock_popen.return_value = _proc(b"")
        console.Console().run(["kubectl", "get", "nodes"])

        assert "> kubectl get nodes" in capsys.readouterr().out

    @patch("aksgpu.core.console.subprocess.Popen", side_effect=FileNotFoundError("az"))
    def test_missing_executable(self, mock_popen):
        obj = console.Console(shellVerbose=False)

        with pytest.raises(CommandError, match="Executable not found: az"):
            obj.run(["az", "version"])

    @patch("aksgpu.core.console.subprocess.Popen")
    def test_timeout(self, mock_popen):
        proc = _proc()
        proc.communicate.side_effect = [
            subprocess.TimeoutExpired(cmd="terraform", timeout=5),
            (b"", None),
        ]
        mock_popen.return_value = proc
        obj = console.Console(shellVerbose=False)

        with pytest.raises(TimeoutError, match="timed out after 5s"):
            obj.run(["terraform", "apply"], timeout=5)

        proc.kill.assert_called_once()

    @patch("aksgpu.core.console.subprocess.Popen")
    def test_live_output(self, mock_popen, capsys):
        proc = MagicMock()
        proc.stdout.readline.side_effect = [b"line1\n", b"line2\n", b""]
        proc.returncode = 0
        mock_popen.return_value = proc
        obj = console.Console(shellVerbose=False, live_output=True)

        result = obj.run(["terraform", "apply"], prefix="tf| ")

        assert result.output == "line1\nline2"
        assert "tf| line1" in capsys.readouterr().out
        proc.wait.assert_called_once()

    @patch("aksgpu.core.console.subprocess.Popen")
    def test_live_override_disables_streaming(self, mock_popen):
        mock_popen.return_value = _proc(b"{}")
        obj = console.Console(shellVerbose=False, live_output=True)

        assert obj.run(["terraform", "output", "-json"], live=False).output == "{}"
        mock_popen.return_value.stdout.readline.assert_not_called()

    @patch("aksgpu.core.console.subprocess.Popen")
    def test_separate_stderr(self, mock_popen):
        proc = _proc(b'[{"name": "aks-gpu-rg"}]\n')
        proc.communicate.return_value = (
            b'[{"name": "aks-gpu-rg"}]\n',
            b"WARNING: The behavior of this command has been altered\n",
        )
        mock_popen.return_value = proc
        obj = console.Console(shellVerbose=False, live_output=True)

        result = obj.run(["az", "group", "list"], merge_stderr=False)

        assert result.output == '[{"name": "aks-gpu-rg"}]'
        assert result.stderr == "WARNING: The behavior of this command has been altered"
        assert mock_popen.call_args.kwargs["stderr"] == subprocess.PIPE
        proc.stdout.readline.assert_not_called()

    @patch("aksgpu.core.console.subprocess.Popen")
    def test_sh_failure_includes_stderr(self, mock_popen):
        proc = _proc(b"")
        proc.communicate.return_value = (b"", b"Error: release not found")
        proc.returncode = 1
        mock_popen.return_value = proc
        obj = console.Console(shellVerbose=False)

        with pytest.raises(CommandError) as exc_info:
            obj.sh(["helm", "status", "gpu-operator"], merge_stderr=False)

        assert exc_info.value.output == "Error: release not found"
