"""
Domain models — pydantic types shared by the resolver and the CLI.

    from lspinstall.core.models import NpmInstall, ShellInstall, ResolutionOutcome
"""

from lspinstall.core.models.install import (
    InstallInstruction,
    NpmInstall,
    ResolutionOutcome,
    ShellInstall,
)

__all__ = [
    "InstallInstruction",
    "NpmInstall",
    "ResolutionOutcome",
    "ShellInstall",
]
