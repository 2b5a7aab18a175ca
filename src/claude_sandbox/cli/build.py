"""Build operations for claude-sandbox.

Builds the sandbox image from the project's configuration directory.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from ..constants import IMAGE_NAME
from ..container import check_container_available, get_build_cmd
from ..errors import BuildFailedError
from ..logging import get_logger
from .utils import console

if TYPE_CHECKING:
    from ..container import CommandExecutor
    from ..paths import ProjectConfig

logger = get_logger(__name__)


def build_image(project: ProjectConfig, executor: CommandExecutor) -> None:
    """Build the sandbox image for ``project``.

    The build tool's output is relayed as-is. A failed build is reported,
    never retried.

    Raises:
        NotInitializedError: If init has not been run.
        ExternalToolUnavailableError: If the container CLI is unavailable.
        BuildFailedError: If the build exits non-zero (carries its output).
    """
    project.require_initialized()
    check_container_available(executor)

    cmd = get_build_cmd(project)
    logger.debug("Building image '%s' from %s", IMAGE_NAME, project.containerfile)
    console.print(f"[bold]Building {IMAGE_NAME}...[/bold]")

    result = executor.stream(cmd)
    if not result.ok:
        raise BuildFailedError(
            f"container build failed (exit status {result.returncode})",
            returncode=result.returncode,
            output=result.output,
        )

    console.print(f"[green]✓ Image '{IMAGE_NAME}' built successfully[/green]")
