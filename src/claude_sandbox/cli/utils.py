"""CLI utilities for claude-sandbox.

Console setup, error reporting and the services commands depend on.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from typing import NoReturn

from rich.console import Console
from rich.markup import escape

from ..container import CommandExecutor, SubprocessExecutor
from ..credentials import CredentialStore, default_credential_store
from ..errors import SandboxError
from ..logging import get_logger

console = Console(highlight=False)
err_console = Console(stderr=True, highlight=False, soft_wrap=True)
logger = get_logger(__name__)


@dataclass
class Services:
    """External capabilities used by the commands.

    Created by the CLI group unless the caller passes its own (tests do,
    via ``CliRunner.invoke(..., obj=Services(...))``).
    """

    executor: CommandExecutor = field(default_factory=SubprocessExecutor)
    credentials: CredentialStore = field(default_factory=default_credential_store)


def print_error(message: str) -> None:
    """Print a user-facing error; message text is not parsed as markup."""
    err_console.print(f"[red]Error: {escape(message)}[/red]")


def abort(error: SandboxError) -> NoReturn:
    """Report a SandboxError and exit with its exit code."""
    logger.debug("Aborting with %s", type(error).__name__)
    print_error(str(error))
    sys.exit(error.exit_code)
