"""
Credential Store for the OAuth token generator.

This module provides a standardized interface for credential storage and retrieval,
using a human-editable key=value file for persistence.
"""

import logging
import os
import tempfile
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from typing import Dict, Iterable, List, Optional

from ..utils.constants import COMMENT_PREFIXES
from ..utils.errors import CredentialParseError, PersistenceError

logger = logging.getLogger(__name__)

# File key -> record attribute, in the order keys are written.
CREDENTIAL_KEYS: Dict[str, str] = {
    "OAuthBaseUrl": "base_url",
    "OAuthClientId": "client_id",
    "OAuthClientSecret": "client_secret",
    "LocalPort": "local_port",
    "Scopes": "scopes",
    "AccessToken": "access_token",
    "RefreshToken": "refresh_token",
}


@dataclass
class CredentialRecord:
    """OAuth client configuration plus the current token pair."""

    base_url: str
    client_id: str
    client_secret: str
    local_port: int
    scopes: str
    access_token: str
    refresh_token: str

    def with_tokens(self, access_token: str, refresh_token: str) -> "CredentialRecord":
        """Return a copy with only the token fields replaced."""
        return replace(self, access_token=access_token, refresh_token=refresh_token)


def parse_credential_lines(
    lines: Iterable[str], path: Optional[str] = None
) -> CredentialRecord:
    """
    Parse key=value lines into a CredentialRecord.

    Blank lines, lines starting with '#' or '//', lines without '=' and
    unknown keys are ignored. Keys and values are trimmed; the value is
    everything after the first '='.

    Raises:
        CredentialParseError: If a required key is missing or LocalPort is not
            an integer.
    """
    values: Dict[str, str] = {}
    for line in lines:
        if not line.strip() or line.startswith(COMMENT_PREFIXES):
            continue
        key, sep, val = line.partition("=")
        if not sep:
            continue
        key = key.strip()
        if key in CREDENTIAL_KEYS:
            values[CREDENTIAL_KEYS[key]] = val.strip()

    missing = [key for key, attr in CREDENTIAL_KEYS.items() if attr not in values]
    if missing:
        raise CredentialParseError(f"Missing required keys: {', '.join(missing)}", path)

    try:
        local_port = int(values["local_port"])
    except ValueError:
        raise CredentialParseError(
            f"LocalPort must be an integer, got {values['local_port']!r}", path
        )

    return CredentialRecord(
        base_url=values["base_url"],
        client_id=values["client_id"],
        client_secret=values["client_secret"],
        local_port=local_port,
        scopes=values["scopes"],
        access_token=values["access_token"],
        refresh_token=values["refresh_token"],
    )


def credential_to_lines(record: CredentialRecord) -> List[str]:
    """
    Serialize a record to key=value lines in canonical key order.

    Raises:
        ValueError: If a value has a line break or surrounding whitespace,
            which parse_credential_lines could not read back unchanged.
    """
    lines = []
    for key, attr in CREDENTIAL_KEYS.items():
        value = str(getattr(record, attr))
        if value and value.splitlines() != [value]:
            raise ValueError(f"{key} contains a line break")
        if value != value.strip():
            raise ValueError(f"{key} has leading or trailing whitespace")
        lines.append(f"{key}={value}")
    return lines


class CredentialStore(ABC):
    """Abstract base class for credential storage."""

    @abstractmethod
    def load(self) -> Optional[CredentialRecord]:
        """Load the stored record, or None if nothing has been stored yet."""
        pass

    @abstractmethod
    def save(self, record: CredentialRecord) -> None:
        """Persist a record, replacing whatever was stored before."""
        pass


class FileCredentialStore(CredentialStore):
    """Credential store backed by a single key=value file."""

    def __init__(self, path: str) -> None:
        self.path = path

    def exists(self) -> bool:
        return os.path.exists(self.path)

    def load(self) -> Optional[CredentialRecord]:
        """Read and parse the credential file; None if it does not exist."""
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                lines = f.read().splitlines()
        except FileNotFoundError:
            logger.debug(f"No credential file found at {self.path}")
            return None

        record = parse_credential_lines(lines, self.path)
        logger.info(f"Loaded credentials from {self.path}")
        return record

    def save(self, record: CredentialRecord) -> None:
        """
        Rewrite the whole credential file.

        The new content goes to a temporary file in the same directory which
        then replaces the target, so a failed write leaves the old file intact.

        Raises:
            PersistenceError: If the file cannot be written.
        """
        try:
            content = "\n".join(credential_to_lines(record)) + "\n"
        except ValueError as e:
            logger.error(f"Refusing to store credentials to {self.path}: {e}")
            raise PersistenceError(self.path, str(e)) from e

        directory = os.path.dirname(os.path.abspath(self.path))
        tmp_path = None
        try:
            fd, tmp_path = tempfile.mkstemp(prefix=".oauth-", dir=directory)
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
            os.replace(tmp_path, self.path)
        except OSError as e:
            logger.error(f"Error storing credentials to {self.path}: {e}")
            if tmp_path and os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise PersistenceError(self.path, e.strerror or str(e)) from e
        logger.info(f"Stored credentials to {self.path}")
