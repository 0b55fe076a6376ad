"""
L1 Domain — Install command classification (pure).

Only one shape gets special treatment: a global npm install, so the
installer can route it through another package manager.  Everything
else is run as written.
"""

from __future__ import annotations

import re

from lspinstall.core.models.install import NpmInstall, ShellInstall

_NPM_GLOBAL_RE = re.compile(r"^\s*npm\s+(?:install|i)\s+(?:-g|--global)\s+(.+?)\s*$")


def classify(command_text: str) -> NpmInstall | ShellInstall:
    """Classify an install command taken from the documentation table.

    >>> classify("npm i --global a b")
    NpmInstall(kind='npm', packages=['a', 'b'])
    """
    match = _NPM_GLOBAL_RE.match(command_text)
    if match:
        return NpmInstall(packages=match.group(1).split())
    return ShellInstall(command=command_text)
