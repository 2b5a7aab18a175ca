"""Constants module for claude-sandbox.

All names, paths, bounds and timeout values are defined here (SSOT).
"""

from __future__ import annotations

# === Workspace layout ===
SANDBOX_DIR = ".claude-sandbox"  # Per-project configuration directory
CONTAINERFILE = "Containerfile"  # Image definition
SETTINGS_FILE = "settings.json"  # Assistant permissions/settings
ORIENTATION_FILE = "CLAUDE.md"  # Notes for the in-container assistant
SANDBOX_ARTIFACTS = (CONTAINERFILE, SETTINGS_FILE, ORIENTATION_FILE)

# === Container runtime ===
CONTAINER_CLI = "container"  # Apple container CLI
IMAGE_NAME = "claude-sandbox"  # Image tag used by build and run
CONTAINER_NAME_PREFIX = "claude-sandbox"

# Container paths
CONTAINER_USER = "claude"
CONTAINER_HOME = "/home/claude"
CONTAINER_PROJECT_DIR = "/home/claude/code"  # Project mount point
CONTAINER_CLAUDE_DIR = "/home/claude/.claude"

# === Timeouts (seconds) ===
CONTAINER_COMMAND_TIMEOUT = 30  # Quick container commands (--version, inspect, delete)
KEYCHAIN_TIMEOUT = 10  # Credential store lookup
PROCESS_TERM_TIMEOUT = 3.0  # Runtime process termination timeout before SIGKILL

# === Credentials ===
KEYCHAIN_SERVICE = "Claude Code-credentials"
KEYCHAIN_ITEM_NOT_FOUND = 44  # `security` exit status for errSecItemNotFound
CREDENTIALS_FILE = "~/.claude/.credentials.json"  # Non-macOS credential store
TOKEN_ENV_VAR = "CLAUDE_CODE_OAUTH_TOKEN"

# === Resource limits ===
MIN_CPUS = 2
MAX_CPUS = 8
MIN_MEMORY_GB = 2
MAX_MEMORY_GB = 8
DEFAULT_CPUS = 2
DEFAULT_MEMORY_GB = 4

# === Exit codes ===
EXIT_INTERRUPTED = 130  # Standard Ctrl+C code
