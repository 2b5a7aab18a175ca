"""Host credential lookup for claude-sandbox.

The OAuth token is read fresh from the host's secure store on every run
and handed to the container through its environment only. Nothing here
caches or writes the token.

Stores:
- macOS keychain (``security find-generic-password``)
- ``~/.claude/.credentials.json`` (Linux and other hosts)

Both hold the same JSON document written by ``claude auth login``.
"""

from __future__ import annotations

import json
import os
import subprocess
import sys
from pathlib import Path
from typing import Protocol

from .constants import CREDENTIALS_FILE, KEYCHAIN_ITEM_NOT_FOUND, KEYCHAIN_SERVICE, KEYCHAIN_TIMEOUT
from .errors import CredentialNotFoundError, CredentialStoreUnavailableError
from .logging import get_logger

logger = get_logger(__name__)

LOGIN_HINT = "Please authenticate using the official Claude CLI first:\n  claude auth login"


class CredentialStore(Protocol):
    """Anything that can produce the assistant's OAuth token."""

    def fetch_token(self) -> str:
        """Return the token.

        Raises:
            CredentialNotFoundError: If the store holds no token.
            CredentialStoreUnavailableError: If the store cannot be queried.
        """
        ...


def extract_token(raw: str, source: str) -> str:
    """Pull ``claudeAiOauth.accessToken`` out of a credentials document.

    Args:
        raw: JSON text as stored by the Claude CLI.
        source: Store description for error messages.

    Raises:
        CredentialNotFoundError: If the document holds no token.
        CredentialStoreUnavailableError: If the document is not valid JSON.
    """
    if not raw.strip():
        raise CredentialNotFoundError(f"No OAuth token found in {source}.\n\n{LOGIN_HINT}")
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise CredentialStoreUnavailableError(
            f"Failed to parse credentials from {source} as JSON: {e}"
        ) from e

    oauth = data.get("claudeAiOauth") if isinstance(data, dict) else None
    token = oauth.get("accessToken") if isinstance(oauth, dict) else None
    if not isinstance(token, str) or not token:
        raise CredentialNotFoundError(
            f"No accessToken found in {source} credentials.\n\n{LOGIN_HINT}"
        )
    return token


class KeychainCredentialStore:
    """macOS keychain, queried through the ``security`` tool."""

    def __init__(self, service: str = KEYCHAIN_SERVICE, timeout: int = KEYCHAIN_TIMEOUT) -> None:
        self.service = service
        self.timeout = timeout

    def fetch_token(self) -> str:
        logger.debug("Reading keychain service: %s", self.service)
        try:
            result = subprocess.run(
                ["security", "find-generic-password", "-s", self.service, "-w"],
                capture_output=True,
                check=False,
                timeout=self.timeout,
            )
        except FileNotFoundError as e:
            raise CredentialStoreUnavailableError(
                "macOS 'security' tool not found; cannot read the keychain."
            ) from e
        except subprocess.TimeoutExpired as e:
            raise CredentialStoreUnavailableError(
                f"Keychain lookup timed out after {self.timeout}s."
            ) from e

        if result.returncode == KEYCHAIN_ITEM_NOT_FOUND:
            raise CredentialNotFoundError(f"No OAuth token found in keychain.\n\n{LOGIN_HINT}")
        if result.returncode != 0:
            detail = result.stderr.decode("utf-8", errors="replace").strip()
            detail = detail or f"exit status {result.returncode}"
            raise CredentialStoreUnavailableError(f"Keychain lookup failed: {detail}")

        try:
            raw = result.stdout.decode("utf-8")
        except UnicodeDecodeError as e:
            raise CredentialStoreUnavailableError(f"Keychain entry is not valid UTF-8: {e}") from e
        return extract_token(raw, "keychain")


class CredentialsFileStore:
    """Plain credentials file written by the Claude CLI on non-macOS hosts."""

    def __init__(self, path: str | Path = CREDENTIALS_FILE) -> None:
        self.path = Path(os.path.expanduser(str(path)))

    def fetch_token(self) -> str:
        logger.debug("Reading credentials file: %s", self.path)
        if not self.path.exists():
            raise CredentialNotFoundError(f"No credentials file at {self.path}.\n\n{LOGIN_HINT}")
        try:
            raw = self.path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise CredentialStoreUnavailableError(f"Cannot read {self.path}: {e}") from e
        return extract_token(raw, str(self.path))


def default_credential_store() -> CredentialStore:
    """Pick the secure store native to this host."""
    if sys.platform == "darwin":
        return KeychainCredentialStore()
    return CredentialsFileStore()
