"""
L4 Execution — Installer collaborator.

The resolution engine hands its final action to an ``Installer``.
``SubprocessInstaller`` is the bundled implementation:

    - npm packages  → ``<npm_command> install -g <packages>``
    - shell command → ``bash -c <command>``
    - URL           → system web browser

Whether the install actually worked is not checked beyond the exit code,
which is logged and returned.
"""

from __future__ import annotations

import logging
import os
import subprocess
import time
import webbrowser
from typing import Any, Protocol

logger = logging.getLogger(__name__)


class Installer(Protocol):
    def install_npm_packages(self, packages: list[str]) -> Any: ...

    def run_shell_command(self, command: str) -> Any: ...

    def browse_url(self, url: str) -> Any: ...


class SubprocessInstaller:
    """Run install actions in child processes attached to the terminal.

    Args:
        npm_command: Command prefix for npm installs.  Swap in e.g.
            ``["pnpm"]`` or ``["bun"]`` to route npm packages elsewhere.
        timeout: Seconds before a command is abandoned.
    """

    def __init__(self, npm_command: list[str] | None = None, timeout: int = 600) -> None:
        self.npm_command = list(npm_command or ["npm"])
        self.timeout = timeout

    def install_npm_packages(self, packages: list[str]) -> dict[str, Any]:
        return self._run(self.npm_command + ["install", "-g"] + list(packages))

    def run_shell_command(self, command: str) -> dict[str, Any]:
        return self._run(["bash", "-c", command])

    def browse_url(self, url: str) -> dict[str, Any]:
        opened = webbrowser.open(url)
        if not opened:
            logger.warning("No browser available to open %s", url)
        return {"ok": opened, "url": url}

    def _run(self, cmd: list[str]) -> dict[str, Any]:
        logger.info("Running: %s", " ".join(cmd))
        start = time.monotonic()
        try:
            result = subprocess.run(cmd, timeout=self.timeout, env=os.environ.copy())
        except subprocess.TimeoutExpired:
            logger.error("Command timed out after %ss: %s", self.timeout, cmd)
            return {"ok": False, "error": f"Command timed out ({self.timeout}s)"}
        except OSError as e:
            logger.error("Cannot run %s: %s", cmd[0], e)
            return {"ok": False, "error": str(e)}

        elapsed_ms = int((time.monotonic() - start) * 1000)
        if result.returncode != 0:
            logger.warning("Command exited with %d: %s", result.returncode, cmd)
            return {
                "ok": False,
                "error": f"Command failed (exit {result.returncode})",
                "elapsed_ms": elapsed_ms,
            }
        return {"ok": True, "elapsed_ms": elapsed_ms}
