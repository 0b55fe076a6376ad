"""
Install instruction and resolution outcome models.

``InstallInstruction`` is the classified action for a missing executable.
``ResolutionOutcome`` is what the engine hands back to its caller once the
flow reaches a terminal state.  Terminal *failures* are exceptions, not
outcomes (see ``server_install.errors``).
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field


class NpmInstall(BaseModel):
    """Global npm install of one or more packages."""

    kind: Literal["npm"] = "npm"
    packages: list[str]

    def describe(self) -> str:
        return "npm install -g " + " ".join(self.packages)


class ShellInstall(BaseModel):
    """An opaque shell command, executed verbatim."""

    kind: Literal["shell"] = "shell"
    command: str

    def describe(self) -> str:
        return self.command


InstallInstruction = Annotated[
    Union[NpmInstall, ShellInstall],
    Field(discriminator="kind"),
]


OutcomeStatus = Literal[
    "from_spec",          # static spec handled it (npm or custom function)
    "already_installed",  # executable found on PATH
    "install_requested",  # instruction handed to the installer
    "browse_requested",   # group documentation link handed to the browser
    "declined",           # user said no at the confirmation prompt
    "planned",            # dry run, nothing was executed
]


class ResolutionOutcome(BaseModel):
    """Terminal state of one resolution request."""

    server_id: str
    status: OutcomeStatus
    executable: str | None = None
    instruction: InstallInstruction | None = None
    url: str | None = None
    message: str = ""

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json")
