"""Allow running as ``python -m claude_sandbox``."""

from .cli import cli

if __name__ == "__main__":  # pragma: no cover
    cli()
