"""
Tests for the subprocess-backed installer.
"""

import subprocess
from unittest.mock import MagicMock, patch

from lspinstall.core.services.server_install.execution.installer import SubprocessInstaller

_RUN = "lspinstall.core.services.server_install.execution.installer.subprocess.run"


def _completed(returncode: int = 0) -> MagicMock:
    result = MagicMock()
    result.returncode = returncode
    return result


class TestSubprocessInstaller:
    @patch(_RUN)
    def test_npm_install(self, mock_run):
        mock_run.return_value = _completed()
        result = SubprocessInstaller().install_npm_packages(["a", "b"])

        assert result["ok"] is True
        assert mock_run.call_args[0][0] == ["npm", "install", "-g", "a", "b"]

    @patch(_RUN)
    def test_npm_command_prefix(self, mock_run):
        mock_run.return_value = _completed()
        SubprocessInstaller(npm_command=["pnpm"]).install_npm_packages(["a"])
        assert mock_run.call_args[0][0] == ["pnpm", "install", "-g", "a"]

    @patch(_RUN)
    def test_shell_command(self, mock_run):
        mock_run.return_value = _completed()
        SubprocessInstaller().run_shell_command("pip install 'x[all]'")
        assert mock_run.call_args[0][0] == ["bash", "-c", "pip install 'x[all]'"]

    @patch(_RUN)
    def test_failure(self, mock_run):
        mock_run.return_value = _completed(2)
        result = SubprocessInstaller().run_shell_command("false")
        assert result["ok"] is False
        assert "exit 2" in result["error"]

    @patch(_RUN)
    def test_timeout(self, mock_run):
        mock_run.side_effect = subprocess.TimeoutExpired(cmd="npm", timeout=5)
        result = SubprocessInstaller(timeout=5).install_npm_packages(["a"])
        assert result == {"ok": False, "error": "Command timed out (5s)"}

    @patch(_RUN)
    def test_missing_binary(self, mock_run):
        mock_run.side_effect = FileNotFoundError("npm")
        result = SubprocessInstaller().install_npm_packages(["a"])
        assert result["ok"] is False

    @patch("lspinstall.core.services.server_install.execution.installer.webbrowser.open")
    def test_browse(self, mock_open):
        mock_open.return_value = True
        result = SubprocessInstaller().browse_url("https://example.com")
        mock_open.assert_called_once_with("https://example.com")
        assert result == {"ok": True, "url": "https://example.com"}
