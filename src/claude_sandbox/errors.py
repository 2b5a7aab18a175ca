"""Unified exception hierarchy for claude-sandbox.

All custom exceptions inherit from SandboxError for consistent error handling.
The CLI catches these and prints them as user-facing errors.

Dependency direction:
    This module has NO internal dependencies (leaf module).
    It may be imported by: all other claude_sandbox modules.
    It should NOT import from any other claude_sandbox modules.
"""

from __future__ import annotations


class SandboxError(Exception):
    """Base exception for all claude-sandbox errors.

    Every error is terminal for the current command. The exit code reported
    to the shell is taken from ``exit_code``.
    """

    exit_code = 1


class NotInitializedError(SandboxError):
    """Raised when build/run is invoked before init."""


class AlreadyInitializedError(SandboxError):
    """Raised when init finds an existing configuration directory without --force."""


class InvalidResourceParameterError(SandboxError):
    """Raised when a CPU or memory bound is outside its permitted range."""

    def __init__(self, parameter: str, value: int, minimum: int, maximum: int) -> None:
        self.parameter = parameter
        self.value = value
        self.minimum = minimum
        self.maximum = maximum
        super().__init__(
            f"Invalid value for {parameter}: {value} (must be between {minimum} and {maximum})"
        )


class CredentialError(SandboxError):
    """Credential lookup errors.

    Base class for host credential store failures.
    """


class CredentialNotFoundError(CredentialError):
    """Raised when the credential store holds no token."""


class CredentialStoreUnavailableError(CredentialError):
    """Raised when the credential store itself cannot be queried."""


class ContainerError(SandboxError):
    """Container runtime errors.

    Base class for all failures reported by or about the external runtime.
    """


class ExternalToolUnavailableError(ContainerError):
    """Raised when the container CLI is not installed or not responding."""


class ContainerTimeoutError(ExternalToolUnavailableError):
    """Raised when a quick container CLI query times out."""


class ImageNotFoundError(ContainerError):
    """Raised when the sandbox image has not been built."""


class BuildFailedError(ContainerError):
    """Raised when the image build exits non-zero.

    ``output`` is the build tool's own output, unmodified.
    """

    def __init__(self, message: str, *, returncode: int, output: str = "") -> None:
        self.returncode = returncode
        self.output = output
        super().__init__(message)

    @property
    def exit_code(self) -> int:  # type: ignore[override]
        if self.returncode < 0:
            return 128 - self.returncode
        return self.returncode or 1


class WorkspaceError(SandboxError):
    """Raised when the configuration directory cannot be written safely.

    Examples:
        - Permission denied while writing an artifact
        - Configuration directory is a symlink
    """
