"""Run configuration dataclass for claude-sandbox.

Bundles the per-invocation resource bounds of the run command. Nothing here
is persisted; defaults are applied when the user passes nothing.
"""

from __future__ import annotations

from dataclasses import dataclass

from .constants import (
    DEFAULT_CPUS,
    DEFAULT_MEMORY_GB,
    MAX_CPUS,
    MAX_MEMORY_GB,
    MIN_CPUS,
    MIN_MEMORY_GB,
)
from .errors import InvalidResourceParameterError


def _check_range(parameter: str, value: int, minimum: int, maximum: int) -> None:
    # bool is an int subclass; --cpus True makes no sense
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidResourceParameterError(parameter, value, minimum, maximum)
    if not minimum <= value <= maximum:
        raise InvalidResourceParameterError(parameter, value, minimum, maximum)


def validate(cpus: int, memory_gb: int) -> None:
    """Check both resource bounds against their inclusive ranges.

    Pure function: no side effects, no external calls.

    Raises:
        InvalidResourceParameterError: naming the first parameter out of range.
    """
    _check_range("--cpus", cpus, MIN_CPUS, MAX_CPUS)
    _check_range("--memory", memory_gb, MIN_MEMORY_GB, MAX_MEMORY_GB)


@dataclass(frozen=True)
class RunSettings:
    """Resource bounds for one container session.

    Immutable so a validated instance cannot drift before it reaches the
    run invocation.
    """

    cpus: int = DEFAULT_CPUS
    memory_gb: int = DEFAULT_MEMORY_GB

    @classmethod
    def from_cli(cls, *, cpus: int | None = None, memory: int | None = None) -> RunSettings:
        """Create RunSettings from CLI arguments, filling in defaults."""
        return cls(
            cpus=DEFAULT_CPUS if cpus is None else cpus,
            memory_gb=DEFAULT_MEMORY_GB if memory is None else memory,
        )

    def validate(self) -> RunSettings:
        """Validate and return self for chaining."""
        validate(self.cpus, self.memory_gb)
        return self

    @property
    def memory_flag(self) -> str:
        return f"{self.memory_gb}G"
