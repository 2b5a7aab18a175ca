"""Pytest configuration and fixtures for claude-sandbox tests.

This module ensures the claude_sandbox package is importable during tests
without requiring installation, and provides fakes for the two external
capabilities: the command executor and the credential store.
"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Add src directory to path for development testing
src_path = Path(__file__).parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from claude_sandbox.container import CommandResult  # noqa: E402
from claude_sandbox.errors import CredentialNotFoundError  # noqa: E402
from claude_sandbox.paths import ProjectConfig  # noqa: E402


class FakeProcess:
    """Stand-in for subprocess.Popen of the container runtime."""

    def __init__(self, returncode: int = 0, wait_error: BaseException | None = None) -> None:
        self.returncode = returncode
        self.wait_error = wait_error
        self.alive = True
        self.signals: list[int] = []
        self.terminated = False
        self.killed = False

    def wait(self, timeout: float | None = None) -> int:
        if self.wait_error is not None:
            error, self.wait_error = self.wait_error, None
            raise error
        self.alive = False
        return self.returncode

    def poll(self) -> int | None:
        return None if self.alive else self.returncode

    def send_signal(self, sig: int) -> None:
        self.signals.append(sig)

    def terminate(self) -> None:
        self.terminated = True

    def kill(self) -> None:
        self.killed = True
        self.alive = False


class RecordingExecutor:
    """CommandExecutor that records argument vectors instead of running them.

    Results are looked up by the container subcommand (``cmd[1]``, e.g.
    "--version", "image", "build", "delete"); a missing key succeeds.
    An exception stored as a response is raised instead.
    """

    def __init__(self, process: FakeProcess | None = None) -> None:
        self.responses: dict[str, CommandResult | BaseException] = {}
        self.process = process or FakeProcess()
        self.spawn_error: BaseException | None = None
        self.calls: list[tuple[str, list[str], dict[str, str] | None]] = []

    def _respond(self, cmd: list[str]) -> CommandResult:
        response = self.responses.get(cmd[1], CommandResult(0, ""))
        if isinstance(response, BaseException):
            raise response
        return response

    def run(self, cmd, *, timeout=30):  # type: ignore[no-untyped-def]
        self.calls.append(("run", list(cmd), None))
        return self._respond(list(cmd))

    def stream(self, cmd):  # type: ignore[no-untyped-def]
        self.calls.append(("stream", list(cmd), None))
        return self._respond(list(cmd))

    def spawn(self, cmd, *, env=None):  # type: ignore[no-untyped-def]
        self.calls.append(("spawn", list(cmd), dict(env or {})))
        if self.spawn_error is not None:
            raise self.spawn_error
        return self.process

    def subcommands(self) -> list[str]:
        return [cmd[1] for _, cmd, _ in self.calls]

    @property
    def spawned(self) -> list[tuple[list[str], dict[str, str] | None]]:
        return [(cmd, env) for kind, cmd, env in self.calls if kind == "spawn"]


class FakeCredentialStore:
    """CredentialStore returning a fixed token or raising a fixed error."""

    def __init__(self, token: str | None = "secret-token", error: BaseException | None = None) -> None:
        self.token = token
        self.error = error
        self.fetches = 0

    def fetch_token(self) -> str:
        self.fetches += 1
        if self.error is not None:
            raise self.error
        if self.token is None:
            raise CredentialNotFoundError("No OAuth token found")
        return self.token


@pytest.fixture
def executor() -> RecordingExecutor:
    return RecordingExecutor()


@pytest.fixture
def credentials() -> FakeCredentialStore:
    return FakeCredentialStore()


@pytest.fixture
def project(tmp_path: Path) -> ProjectConfig:
    root = tmp_path / "my-project"
    root.mkdir()
    return ProjectConfig.locate(root)
