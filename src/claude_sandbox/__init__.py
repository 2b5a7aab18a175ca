"""claude-sandbox - Run Claude Code in a disposable container VM."""

__version__ = "0.1.0"
