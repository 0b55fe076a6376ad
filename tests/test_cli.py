"""
Tests for CLI commands — global options and the servers group.
"""

import json
from pathlib import Path
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from lspinstall.main import cli

_INSTALLER = "lspinstall.ui.cli.servers.SubprocessInstaller"


@pytest.fixture
def config(lsp_tree: Path) -> Path:
    path = lsp_tree / "lspinstall.yml"
    path.write_text("install_specs:\n  old-ls: [error, old-ls is unmaintained]\n")
    return path


def _invoke(config: Path, *args: str):
    runner = CliRunner()
    return runner.invoke(cli, ["-q", "--config", str(config), "servers", *args])


class TestCLIGlobal:
    """Tests for global CLI behavior."""

    def test_help(self):
        runner = CliRunner()
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "language-server" in result.output

    def test_version(self):
        runner = CliRunner()
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output

    def test_missing_config(self, tmp_path: Path):
        runner = CliRunner()
        result = runner.invoke(cli, ["--config", str(tmp_path / "nope.yml"), "servers", "list"])
        assert result.exit_code == 1
        assert "not found" in result.output

    def test_servers_help(self):
        runner = CliRunner()
        result = runner.invoke(cli, ["servers", "--help"])
        assert result.exit_code == 0
        for command in ("list", "show", "install", "reindex"):
            assert command in result.output


class TestListCommand:
    def test_list(self, config: Path):
        result = _invoke(config, "list")
        assert result.exit_code == 0
        assert "Clients (8)" in result.output
        assert "xls" in result.output

    def test_list_json(self, config: Path):
        result = _invoke(config, "list", "--json")
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert sorted(data) == [
            "bash-ls", "foo-ls", "gopls", "pyls", "rls", "weird-ls", "xls", "yls",
        ]
        assert data["pyls"].endswith("lsp-pyls.el")

    def test_list_empty(self, tmp_path: Path):
        config = tmp_path / "lspinstall.yml"
        config.write_text("modules: []\n")
        result = _invoke(config, "list")
        assert result.exit_code == 0
        assert "No clients found" in result.output

    def test_reindex(self, config: Path):
        result = _invoke(config, "reindex")
        assert result.exit_code == 0
        assert "8 clients indexed" in result.output


class TestShowCommand:
    def test_show_json(self, config: Path):
        result = _invoke(config, "show", "xls", "--json")
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["executable"] == "xls"
        assert data["install_command"] == "npm install -g xls-server"

    def test_show_text(self, config: Path):
        result = _invoke(config, "show", "foo-ls")
        assert result.exit_code == 0
        assert "foo-server" in result.output
        assert "tcp" in result.output


class TestInstallCommand:
    def test_dry_run(self, config: Path):
        with patch(_INSTALLER) as installer_cls:
            result = _invoke(config, "install", "xls", "--dry-run")
        assert result.exit_code == 0
        assert "Would run: npm install -g xls-server" in result.output
        installer_cls.return_value.install_npm_packages.assert_not_called()

    def test_install_yes_json(self, config: Path):
        with patch(_INSTALLER) as installer_cls:
            result = _invoke(config, "install", "xls", "--yes", "--json")
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["status"] == "install_requested"
        assert data["instruction"] == {"kind": "npm", "packages": ["xls-server"]}
        installer_cls.return_value.install_npm_packages.assert_called_once_with(["xls-server"])

    def test_install_declined(self, config: Path):
        with patch(_INSTALLER) as installer_cls:
            runner = CliRunner()
            result = runner.invoke(
                cli, ["-q", "--config", str(config), "servers", "install", "pyls"], input="n\n",
            )
        assert result.exit_code == 0
        assert "Skipped" in result.output
        installer_cls.return_value.run_shell_command.assert_not_called()

    def test_install_confirmed(self, config: Path):
        with patch(_INSTALLER) as installer_cls:
            runner = CliRunner()
            result = runner.invoke(
                cli, ["-q", "--config", str(config), "servers", "install", "pyls"], input="y\n",
            )
        assert result.exit_code == 0
        assert "Started: pip install" in result.output
        installer_cls.return_value.run_shell_command.assert_called_once_with(
            "pip install 'python-language-server[all]'"
        )

    def test_browse(self, config: Path):
        with patch(_INSTALLER) as installer_cls:
            result = _invoke(config, "install", "weird-ls", "-y")
        assert result.exit_code == 0
        assert "Opened https://example.com/weird" in result.output
        installer_cls.return_value.browse_url.assert_called_once_with("https://example.com/weird")

    def test_no_information(self, config: Path):
        result = _invoke(config, "install", "yls", "-y")
        assert result.exit_code == 1
        assert "No information on yls" in result.output

    def test_no_information_json(self, config: Path):
        result = _invoke(config, "install", "old-ls", "--json")
        assert result.exit_code == 1
        data = json.loads(result.output)
        assert data == {"server_id": "old-ls", "error": "old-ls is unmaintained"}
