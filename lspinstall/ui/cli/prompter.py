"""
Click-backed prompter for the resolution engine.
"""

from __future__ import annotations

import click


class ClickPrompter:
    """Status messages on stderr, confirmations on the terminal.

    Args:
        assume_yes: Answer every confirmation with yes (``--yes``).
        quiet: Drop status messages.
    """

    def __init__(self, assume_yes: bool = False, quiet: bool = False) -> None:
        self.assume_yes = assume_yes
        self.quiet = quiet

    def message(self, text: str) -> None:
        if not self.quiet:
            click.secho(f"ℹ️  {text}", fg="cyan", err=True)

    def confirm(self, question: str) -> bool:
        if self.assume_yes:
            if not self.quiet:
                click.echo(f"{question} [auto-yes]", err=True)
            return True
        return click.confirm(question, default=False, err=True)
