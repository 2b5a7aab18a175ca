"""Scoped container session for claude-sandbox.

Usage:
    with ContainerSession(executor, cmd, name=name, env=env) as session:
        returncode = session.wait()

The container is torn down when the context exits:
1. Context exits normally (assistant quit)
2. Context exits via exception (including KeyboardInterrupt)
3. SIGTERM/SIGHUP delivered to this process (forwarded to the runtime,
   which then exits and unwinds the context)

All three paths converge on close(), which runs exactly once.
"""

from __future__ import annotations

import contextlib
import signal
import subprocess
import threading
from typing import TYPE_CHECKING, Any

from .constants import PROCESS_TERM_TIMEOUT
from .container import remove_container
from .logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from .container import CommandExecutor, Process

logger = get_logger(__name__)

FORWARDED_SIGNALS = tuple(
    sig for sig in (getattr(signal, "SIGTERM", None), getattr(signal, "SIGHUP", None)) if sig
)


class ContainerSession:
    """One running container instance, released unconditionally on exit."""

    def __init__(
        self,
        executor: CommandExecutor,
        cmd: Sequence[str],
        *,
        name: str,
        env: Mapping[str, str] | None = None,
    ) -> None:
        self.executor = executor
        self.cmd = list(cmd)
        self.name = name
        self.env = dict(env or {})

        self._process: Process | None = None
        self._previous_handlers: dict[int, Any] = {}
        self._closed = False

    def __enter__(self) -> ContainerSession:
        """Spawn the runtime process and start forwarding signals."""
        self._process = self.executor.spawn(self.cmd, env=self.env)
        try:
            self._install_signal_handlers()
        except BaseException:
            self.close()
            raise
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        self.close()

    @property
    def closed(self) -> bool:
        return self._closed

    def wait(self) -> int:
        """Block until the runtime process exits and return its status."""
        if self._process is None:
            raise RuntimeError("session not started")
        return self._process.wait()

    def close(self) -> None:
        """Stop the runtime process if needed and delete the container."""
        if self._closed:
            return
        self._closed = True

        self._restore_signal_handlers()
        self._stop_process()
        logger.debug("Tearing down container %s", self.name)
        remove_container(self.executor, self.name)

    def _forward_signal(self, signum: int, frame: Any) -> None:
        logger.debug("Forwarding signal %d to container runtime", signum)
        if self._process is not None and self._process.poll() is None:
            with contextlib.suppress(ProcessLookupError):
                self._process.send_signal(signum)

    def _install_signal_handlers(self) -> None:
        # signal.signal() only works from the main thread
        if threading.current_thread() is not threading.main_thread():
            return
        for sig in FORWARDED_SIGNALS:
            self._previous_handlers[sig] = signal.signal(sig, self._forward_signal)

    def _restore_signal_handlers(self) -> None:
        for sig, handler in self._previous_handlers.items():
            signal.signal(sig, signal.SIG_DFL if handler is None else handler)
        self._previous_handlers.clear()

    def _stop_process(self) -> None:
        process = self._process
        if process is None or process.poll() is not None:
            return
        logger.debug("Runtime process still alive, terminating")
        process.terminate()
        try:
            process.wait(timeout=PROCESS_TERM_TIMEOUT)
        except subprocess.TimeoutExpired:
            process.kill()
            process.wait()
