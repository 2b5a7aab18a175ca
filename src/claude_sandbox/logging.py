"""Logging configuration for claude-sandbox.

User-facing messages go to the rich console; this module covers the
diagnostic side (what was invoked, with which arguments, and what came back).

Usage:
    from claude_sandbox.logging import get_logger
    logger = get_logger(__name__)
    logger.debug("container command: %s", cmd)

Enable verbose logging via:
    - CLI flag: claude-sandbox --debug
    - Environment: CLAUDE_SANDBOX_DEBUG=1
"""

from __future__ import annotations

import logging
import os
import sys

ROOT_LOGGER = "claude_sandbox"
DEBUG_ENV_VAR = "CLAUDE_SANDBOX_DEBUG"

LOG_FORMAT = "%(levelname)s %(message)s"
LOG_FORMAT_DEBUG = "%(asctime)s %(levelname)s %(name)s:%(lineno)d: %(message)s"
DATE_FORMAT = "%H:%M:%S"

_initialized = False


class SecretFilter(logging.Filter):
    """Replace registered secret values in log records with a placeholder.

    The OAuth token is registered for the duration of a run so that no
    accidental debug line can leak it to the terminal.
    """

    def __init__(self) -> None:
        super().__init__()
        self._secrets: set[str] = set()

    def add(self, secret: str) -> None:
        if secret:
            self._secrets.add(secret)

    def discard(self, secret: str) -> None:
        self._secrets.discard(secret)

    def filter(self, record: logging.LogRecord) -> bool:
        if not self._secrets:
            return True
        message = record.getMessage()
        for secret in self._secrets:
            message = message.replace(secret, "***")
        record.msg = message
        record.args = None
        return True


secret_filter = SecretFilter()


def _get_log_level() -> int:
    """Determine log level from environment."""
    if os.environ.get(DEBUG_ENV_VAR, "").lower() in ("1", "true", "yes"):
        return logging.DEBUG
    return logging.WARNING


def _make_formatter(debug: bool) -> logging.Formatter:
    if debug:
        return logging.Formatter(LOG_FORMAT_DEBUG, datefmt=DATE_FORMAT)
    return logging.Formatter(LOG_FORMAT)


def _init_logging() -> None:
    """Attach the stderr handler to the package logger (once)."""
    global _initialized
    if _initialized:
        return

    level = _get_log_level()
    root_logger = logging.getLogger(ROOT_LOGGER)
    root_logger.setLevel(level)

    if not root_logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setLevel(level)
        handler.setFormatter(_make_formatter(level == logging.DEBUG))
        handler.addFilter(secret_filter)
        root_logger.addHandler(handler)

    _initialized = True


def get_logger(name: str) -> logging.Logger:
    """Get a logger in the claude_sandbox namespace.

    Args:
        name: Module name (typically __name__).

    Returns:
        Configured logger instance.
    """
    _init_logging()

    if not name.startswith(ROOT_LOGGER):
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)


def set_debug(enabled: bool = True) -> None:
    """Switch the package logger between DEBUG and WARNING.

    Called by the CLI when --debug is given.
    """
    _init_logging()
    level = logging.DEBUG if enabled else logging.WARNING
    root_logger = logging.getLogger(ROOT_LOGGER)
    root_logger.setLevel(level)

    for handler in root_logger.handlers:
        handler.setLevel(level)
        handler.setFormatter(_make_formatter(enabled))
