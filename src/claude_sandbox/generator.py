"""Configuration directory generation for claude-sandbox.

Renders the image definition, the assistant settings and the orientation
notes, and writes them into ``<project>/.claude-sandbox`` as one set.
"""

from __future__ import annotations

import json
import os
import shutil
from pathlib import Path

from .constants import (
    CONTAINER_CLAUDE_DIR,
    CONTAINER_HOME,
    CONTAINER_PROJECT_DIR,
    CONTAINER_USER,
    CONTAINERFILE,
    ORIENTATION_FILE,
    SANDBOX_DIR,
    SETTINGS_FILE,
)
from .errors import WorkspaceError
from .logging import get_logger
from .paths import ProjectConfig

logger = get_logger(__name__)

# System packages the assistant expects to find
COMMON_TOOLS = """
RUN apt-get update && apt-get install -y --no-install-recommends \\
    git curl ca-certificates bash \\
    python3 python3-pip python3-venv python-is-python3 \\
    ripgrep jq procps openssh-client less file unzip \\
    && rm -rf /var/lib/apt/lists/*
"""

# Claude Code
NODE_TOOLS = """
RUN npm config set fund false && npm config set update-notifier false \\
    && npm install -g @anthropic-ai/claude-code \\
    && npm cache clean --force
"""

# Onboarding state, so the first start goes straight to the prompt
ONBOARDING_STATE = {"hasCompletedOnboarding": True, "bypassPermissionsModeAccepted": True}

SETTINGS = {
    "permissions": {
        "defaultMode": "acceptEdits",
        "allow": [
            "Bash",
            "Edit",
            "MultiEdit",
            "Write",
            "Read",
            "Glob",
            "Grep",
            "WebFetch",
            "WebSearch",
        ],
        "additionalDirectories": [],
    },
    "env": {
        "CLAUDE_CODE_DISABLE_NONESSENTIAL_TRAFFIC": "1",
        "DISABLE_AUTOUPDATER": "1",
    },
}


def generate_containerfile() -> str:
    """Image definition: node base + tools + Claude Code, running as a non-root user."""
    onboarding = json.dumps(ONBOARDING_STATE)
    return f"""# syntax=docker/dockerfile:1
# claude-sandbox - Claude Code in a disposable container VM
# Edit freely, then run 'claude-sandbox build' to apply changes.
FROM node:lts-slim

LABEL org.opencontainers.image.title="claude-sandbox"

ENV DEBIAN_FRONTEND=noninteractive
{COMMON_TOOLS}
{NODE_TOOLS}
RUN useradd --create-home --shell /bin/bash {CONTAINER_USER}

USER {CONTAINER_USER}
ENV HOME={CONTAINER_HOME} TERM=xterm-256color
RUN mkdir -p {CONTAINER_CLAUDE_DIR} {CONTAINER_PROJECT_DIR}

COPY --chown={CONTAINER_USER}:{CONTAINER_USER} {SETTINGS_FILE} {CONTAINER_CLAUDE_DIR}/{SETTINGS_FILE}
COPY --chown={CONTAINER_USER}:{CONTAINER_USER} {ORIENTATION_FILE} {CONTAINER_CLAUDE_DIR}/{ORIENTATION_FILE}
RUN echo '{onboarding}' > {CONTAINER_HOME}/.claude.json

WORKDIR {CONTAINER_PROJECT_DIR}

ENTRYPOINT ["claude"]
"""


def generate_settings() -> str:
    """Default permissions for the in-container assistant."""
    return json.dumps(SETTINGS, indent=2) + "\n"


def generate_orientation() -> str:
    """Orientation notes read by the assistant at startup."""
    return f"""# Sandbox environment

You are running inside a disposable Linux container VM started by claude-sandbox.

- The project is mounted read-write at `{CONTAINER_PROJECT_DIR}`. Changes there
  are written straight to the host.
- Everything outside `{CONTAINER_PROJECT_DIR}` is discarded when the session ends.
- Shell commands run inside the container only; they cannot reach the rest of
  the host filesystem.
- Installed tooling is defined by `{SANDBOX_DIR}/{CONTAINERFILE}` in the project.
  Packages installed at runtime are lost on exit; suggest edits to that file
  instead when something is missing permanently.
"""


def render_artifacts() -> dict[str, str]:
    """All configuration directory artifacts, keyed by file name."""
    return {
        CONTAINERFILE: generate_containerfile(),
        SETTINGS_FILE: generate_settings(),
        ORIENTATION_FILE: generate_orientation(),
    }


def _staging_path(config_dir: Path, name: str) -> Path:
    return config_dir / f".{name}.tmp"


def _backup_path(config_dir: Path, name: str) -> Path:
    return config_dir / f".{name}.bak"


def _roll_back(
    config_dir: Path,
    staged: dict[str, Path],
    backups: dict[str, Path],
    placed: list[str],
) -> None:
    """Put the previous artifacts back after a partial replace."""
    for name in placed:
        if name not in backups:
            (config_dir / name).unlink(missing_ok=True)
    for name, backup in backups.items():
        try:
            os.replace(backup, config_dir / name)
        except OSError as e:
            logger.warning("Could not restore %s from %s: %s", name, backup, e)
    for path in staged.values():
        path.unlink(missing_ok=True)


def _remove_entry(path: Path) -> None:
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    else:
        path.unlink()


def materialize(project: ProjectConfig, force: bool = False) -> list[Path]:
    """Write the configuration directory for ``project``.

    Artifacts are first staged next to their final names, then moved into
    place. A failed write removes everything staged; a directory created by
    this call is removed again. A failed move puts the previous artifacts
    back. With ``force`` the previous content is replaced entirely, including
    files that are not artifacts, once the new artifacts are in place.

    Args:
        project: Project whose configuration directory to write.
        force: Overwrite an existing configuration directory.

    Returns:
        Paths of the written artifacts.

    Raises:
        AlreadyInitializedError: If the directory exists and force is False.
        WorkspaceError: If the directory cannot be written safely.
    """
    project.require_uninitialized(force)
    config_dir = project.config_dir

    if config_dir.is_symlink():
        raise WorkspaceError(
            f"{config_dir} is a symlink; refusing to write outside the project."
        )

    artifacts = render_artifacts()
    created = not config_dir.exists()
    try:
        if config_dir.exists() and not config_dir.is_dir():
            config_dir.unlink()
            created = True
        config_dir.mkdir(exist_ok=True)
    except OSError as e:
        raise WorkspaceError(f"Failed to create {SANDBOX_DIR} directory: {e}") from e

    staged = {name: _staging_path(config_dir, name) for name in artifacts}
    try:
        for name, content in artifacts.items():
            with open(staged[name], "w", encoding="utf-8", newline="\n") as f:
                f.write(content)
    except OSError as e:
        for path in staged.values():
            path.unlink(missing_ok=True)
        if created:
            shutil.rmtree(config_dir, ignore_errors=True)
        raise WorkspaceError(f"Failed to write {SANDBOX_DIR}/{name}: {e}") from e

    # Move the previous artifacts aside, then the staged ones into place.
    # Stale entries are removed only once the new set is complete.
    backups: dict[str, Path] = {}
    placed: list[str] = []
    try:
        for name in artifacts:
            target = config_dir / name
            if target.exists() or target.is_symlink():
                backup = _backup_path(config_dir, name)
                os.replace(target, backup)
                backups[name] = backup
        for name, path in staged.items():
            os.replace(path, config_dir / name)
            placed.append(name)
    except OSError as e:
        _roll_back(config_dir, staged, backups, placed)
        if created:
            shutil.rmtree(config_dir, ignore_errors=True)
        raise WorkspaceError(f"Failed to replace {SANDBOX_DIR} contents: {e}") from e

    keep = set(artifacts)
    try:
        for entry in config_dir.iterdir():
            if entry.name not in keep:
                logger.debug("Removing stale entry: %s", entry)
                _remove_entry(entry)
    except OSError as e:
        raise WorkspaceError(f"Failed to remove stale {SANDBOX_DIR} entry: {e}") from e

    logger.debug("Wrote %s: %s", config_dir, ", ".join(artifacts))
    return [config_dir / name for name in artifacts]
