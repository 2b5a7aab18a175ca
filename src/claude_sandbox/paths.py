"""Project workspace location and state checks.

The project root is the directory the command was invoked from; the
configuration directory lives directly beneath it.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from .constants import CONTAINERFILE, SANDBOX_ARTIFACTS, SANDBOX_DIR
from .errors import AlreadyInitializedError, NotInitializedError


@dataclass(frozen=True)
class ProjectConfig:
    """A project identified by its root, plus its configuration directory."""

    root: Path

    @classmethod
    def locate(cls, cwd: str | Path | None = None) -> ProjectConfig:
        """Return the project for ``cwd`` (default: the current directory).

        Args:
            cwd: Directory the command was invoked from.

        Returns:
            ProjectConfig with an absolute, resolved root.
        """
        base = Path.cwd() if cwd is None else Path(cwd)
        return cls(root=base.resolve())

    @property
    def config_dir(self) -> Path:
        return self.root / SANDBOX_DIR

    @property
    def containerfile(self) -> Path:
        return self.config_dir / CONTAINERFILE

    def artifact_paths(self) -> list[Path]:
        return [self.config_dir / name for name in SANDBOX_ARTIFACTS]

    def exists(self) -> bool:
        """True if the configuration directory exists."""
        return self.config_dir.is_dir()

    def missing_artifacts(self) -> list[str]:
        """Names of expected artifacts absent from the configuration directory."""
        return [name for name in SANDBOX_ARTIFACTS if not (self.config_dir / name).is_file()]

    def is_well_formed(self) -> bool:
        """True if the configuration directory exists and holds every artifact."""
        return self.exists() and not self.missing_artifacts()

    def require_uninitialized(self, force: bool = False) -> None:
        """Raise AlreadyInitializedError if init would clobber existing content."""
        if not force and self.config_dir.exists():
            raise AlreadyInitializedError(
                f"{SANDBOX_DIR} already initialized in {self.root}.\n"
                "Use --force to overwrite."
            )

    def require_initialized(self) -> None:
        """Raise NotInitializedError unless init has produced the image definition.

        The settings and orientation documents are only consumed by the build
        through the image definition, so a missing one is reported as well.
        """
        if not self.exists():
            raise NotInitializedError(
                f"{SANDBOX_DIR} not found in {self.root}.\n"
                "Run 'claude-sandbox init' first to initialize the workspace."
            )
        missing = self.missing_artifacts()
        if missing:
            raise NotInitializedError(
                f"{SANDBOX_DIR} is incomplete (missing: {', '.join(missing)}).\n"
                "Run 'claude-sandbox init --force' to regenerate it."
            )
