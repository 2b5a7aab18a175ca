"""Container CLI operations for claude-sandbox.

Every call to the external ``container`` tool goes through a CommandExecutor,
so tests can substitute a recorder and inspect the exact argument vectors.
"""

from __future__ import annotations

import os
import subprocess
import sys
import uuid
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

from .constants import (
    CONTAINER_CLI,
    CONTAINER_COMMAND_TIMEOUT,
    CONTAINER_NAME_PREFIX,
    CONTAINER_PROJECT_DIR,
    IMAGE_NAME,
    TOKEN_ENV_VAR,
)
from .errors import ContainerTimeoutError, ExternalToolUnavailableError
from .logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from .paths import ProjectConfig
    from .run_config import RunSettings

logger = get_logger(__name__)

ERR_CONTAINER_NOT_FOUND = (
    "Apple container CLI not found.\n"
    "Install it from https://github.com/apple/container and run 'container system start'."
)

ERR_SERVICES_NOT_RUNNING = (
    "Apple container services are not running.\n"
    "Start them with 'container system start'."
)


@dataclass(frozen=True)
class CommandResult:
    """Exit status and combined output of a finished command."""

    returncode: int
    output: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class Process(Protocol):
    """The subset of subprocess.Popen used for interactive sessions."""

    def wait(self, timeout: float | None = None) -> int: ...

    def poll(self) -> int | None: ...

    def send_signal(self, sig: int) -> None: ...

    def terminate(self) -> None: ...

    def kill(self) -> None: ...


class CommandExecutor(Protocol):
    """Runs external commands on behalf of the build and run drivers."""

    def run(self, cmd: Sequence[str], *, timeout: int = CONTAINER_COMMAND_TIMEOUT) -> CommandResult:
        """Run to completion with output captured."""
        ...

    def stream(self, cmd: Sequence[str]) -> CommandResult:
        """Run to completion, relaying output to the terminal while capturing it."""
        ...

    def spawn(self, cmd: Sequence[str], *, env: Mapping[str, str] | None = None) -> Process:
        """Start attached to the invoking terminal and return immediately."""
        ...


def describe_command(cmd: Sequence[str]) -> str:
    """Short command description for logs and error messages."""
    return " ".join(cmd[:4]) + (" ..." if len(cmd) > 4 else "")


class SubprocessExecutor:
    """CommandExecutor backed by the subprocess module."""

    def run(self, cmd: Sequence[str], *, timeout: int = CONTAINER_COMMAND_TIMEOUT) -> CommandResult:
        """Run a command with captured output.

        Raises:
            ExternalToolUnavailableError: If the binary is not found.
            ContainerTimeoutError: If the command times out.
        """
        cmd_str = describe_command(cmd)
        logger.debug("Running command: %s", cmd_str)
        try:
            result = subprocess.run(
                list(cmd),
                capture_output=True,
                text=True,
                check=False,
                timeout=timeout,
            )
        except FileNotFoundError as e:
            logger.error("Command not found in PATH: %s", cmd_str)
            raise ExternalToolUnavailableError(f"{cmd[0]} not found in PATH. Command: {cmd_str}") from e
        except subprocess.TimeoutExpired as e:
            logger.error("Command timed out after %ds: %s", timeout, cmd_str)
            raise ContainerTimeoutError(
                f"Command timed out after {timeout}s. Command: {cmd_str}"
            ) from e
        logger.debug("Command completed: exit=%d", result.returncode)
        return CommandResult(result.returncode, (result.stdout or "") + (result.stderr or ""))

    def stream(self, cmd: Sequence[str]) -> CommandResult:
        cmd_str = describe_command(cmd)
        logger.debug("Streaming command: %s", cmd_str)
        try:
            proc = subprocess.Popen(
                list(cmd),
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except FileNotFoundError as e:
            raise ExternalToolUnavailableError(f"{cmd[0]} not found in PATH. Command: {cmd_str}") from e

        lines: list[str] = []
        try:
            assert proc.stdout is not None
            for line in iter(proc.stdout.readline, ""):
                lines.append(line)
                sys.stdout.write(line)
                sys.stdout.flush()
            returncode = proc.wait()
        finally:
            if proc.stdout:
                proc.stdout.close()
        logger.debug("Command completed: exit=%d", returncode)
        return CommandResult(returncode, "".join(lines))

    def spawn(self, cmd: Sequence[str], *, env: Mapping[str, str] | None = None) -> Process:
        cmd_str = describe_command(cmd)
        logger.debug("Spawning command: %s", cmd_str)
        child_env = os.environ.copy()
        if env:
            child_env.update(env)
        try:
            return subprocess.Popen(list(cmd), env=child_env)
        except FileNotFoundError as e:
            raise ExternalToolUnavailableError(f"{cmd[0]} not found in PATH. Command: {cmd_str}") from e


def normalize_exit_status(returncode: int) -> int:
    """Map a signal death (negative Popen status) to the shell convention 128+N."""
    if returncode < 0:
        return 128 - returncode
    return returncode


def check_container_available(executor: CommandExecutor) -> str:
    """Check that the container CLI is installed and its services are running.

    ``--version`` answers without the runtime services, so ``system status``
    is queried as well; a stopped runtime must not be mistaken for a missing
    image.

    Returns:
        The version string reported by the CLI.

    Raises:
        ExternalToolUnavailableError: If the CLI is missing, not responding,
            or its services are stopped.
    """
    logger.debug("Checking container CLI availability")
    try:
        result = executor.run([CONTAINER_CLI, "--version"])
    except ContainerTimeoutError:
        raise
    except ExternalToolUnavailableError as e:
        raise ExternalToolUnavailableError(ERR_CONTAINER_NOT_FOUND) from e
    if not result.ok:
        detail = result.output.strip() or f"exit status {result.returncode}"
        raise ExternalToolUnavailableError(f"Apple container CLI is not working: {detail}")
    version = result.output.strip()

    status = executor.run([CONTAINER_CLI, "system", "status"])
    if not status.ok:
        logger.debug("container system status: %s", status.output.strip())
        raise ExternalToolUnavailableError(ERR_SERVICES_NOT_RUNNING)
    logger.debug("Container CLI available: %s", version)
    return version


def image_exists(executor: CommandExecutor, image: str = IMAGE_NAME) -> bool:
    """Check if the image has been built."""
    result = executor.run([CONTAINER_CLI, "image", "inspect", image])
    return result.ok


def remove_container(executor: CommandExecutor, name: str) -> bool:
    """Force-delete a container.

    Returns:
        True if the runtime removed it, False if it was already gone or the
        runtime could not be reached.
    """
    try:
        result = executor.run([CONTAINER_CLI, "delete", "--force", name])
    except ExternalToolUnavailableError as e:
        logger.warning("Could not remove container %s: %s", name, e)
        return False
    if not result.ok:
        logger.debug("Container %s not removed (already gone?): %s", name, result.output.strip())
    return result.ok


def get_container_name(project: ProjectConfig) -> str:
    """Unique container name derived from the project directory name."""
    safe_name = "".join(c if c.isalnum() or c in "-_" else "-" for c in project.root.name.lower())
    suffix = uuid.uuid4().hex[:6]
    if not safe_name:
        return f"{CONTAINER_NAME_PREFIX}-{suffix}"
    return f"{CONTAINER_NAME_PREFIX}-{safe_name[:48]}-{suffix}"


def get_build_cmd(project: ProjectConfig, image: str = IMAGE_NAME) -> list[str]:
    """Build invocation: the configuration directory is the build context."""
    return [
        CONTAINER_CLI,
        "build",
        "-t",
        image,
        "-f",
        str(project.containerfile),
        str(project.config_dir),
    ]


def get_run_cmd(
    project: ProjectConfig,
    settings: RunSettings,
    container_name: str,
    *,
    tty: bool = True,
    image: str = IMAGE_NAME,
) -> list[str]:
    """Interactive run invocation.

    The token variable is passed by name only (``-e NAME``); the runtime
    copies its value from the spawned process's environment, so the secret
    never appears in the process list.
    """
    return [
        CONTAINER_CLI,
        "run",
        "--rm",  # Remove container on exit
        "-it" if tty else "-i",
        "--name",
        container_name,
        "-e",
        TOKEN_ENV_VAR,
        "-m",
        settings.memory_flag,
        "-c",
        str(settings.cpus),
        "-v",
        f"{project.root}:{CONTAINER_PROJECT_DIR}",
        image,
    ]
