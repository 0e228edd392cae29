"""
Configuration for the OAuth token generator.

Values come from environment variables (optionally loaded from a .env file)
and are carried around as an explicit OAuthConfig object rather than module
globals.
"""

import logging
import os
from typing import Any, Dict, Optional

from dotenv import load_dotenv

from ..utils.constants import DEFAULT_CALLBACK_PATH, DEFAULT_DATA_FILE, DEFAULT_TOKEN_TIMEOUT
from ..utils.errors import ConfigurationError

logger = logging.getLogger(__name__)

ENV_PREFIX = "OAUTH_TOKEN_GENERATOR_"


def parse_seconds(name: str, raw: Optional[str]) -> Optional[float]:
    """Parse a positive number of seconds; blank means unset."""
    if raw is None or not raw.strip():
        return None
    try:
        value = float(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number of seconds, got {raw!r}")
    if value <= 0:
        raise ConfigurationError(f"{name} must be greater than zero, got {raw!r}")
    return value


class OAuthConfig:
    """
    Settings for one run of the token generator.

    Attributes:
        data_file: Path of the key=value credential file.
        callback_path: Path component the redirect must hit exactly.
        callback_timeout: Seconds to wait for the redirect, None to wait forever.
        token_timeout: Seconds allowed for each token endpoint request.
        log_level: Name of the logging level for the CLI.
    """

    def __init__(
        self,
        data_file: str = DEFAULT_DATA_FILE,
        callback_path: str = DEFAULT_CALLBACK_PATH,
        callback_timeout: Optional[float] = None,
        token_timeout: float = DEFAULT_TOKEN_TIMEOUT,
        log_level: str = "WARNING",
    ) -> None:
        if not callback_path.startswith("/"):
            raise ConfigurationError(
                f"Callback path must start with '/', got {callback_path!r}"
            )
        self.data_file = data_file
        self.callback_path = callback_path
        self.callback_timeout = callback_timeout
        self.token_timeout = token_timeout
        self.log_level = log_level.upper()

    @classmethod
    def from_env(cls, dotenv: bool = True) -> "OAuthConfig":
        """Build a config from OAUTH_TOKEN_GENERATOR_* environment variables."""
        if dotenv:
            load_dotenv()

        token_timeout = parse_seconds(
            f"{ENV_PREFIX}TOKEN_TIMEOUT", os.getenv(f"{ENV_PREFIX}TOKEN_TIMEOUT")
        )
        return cls(
            data_file=os.getenv(f"{ENV_PREFIX}DATA_FILE", DEFAULT_DATA_FILE),
            callback_path=os.getenv(f"{ENV_PREFIX}CALLBACK_PATH", DEFAULT_CALLBACK_PATH),
            callback_timeout=parse_seconds(
                f"{ENV_PREFIX}CALLBACK_TIMEOUT",
                os.getenv(f"{ENV_PREFIX}CALLBACK_TIMEOUT"),
            ),
            token_timeout=token_timeout or DEFAULT_TOKEN_TIMEOUT,
            log_level=os.getenv(f"{ENV_PREFIX}LOG_LEVEL", "WARNING"),
        )

    def get_environment_summary(self) -> Dict[str, Any]:
        """Get a summary of the effective configuration."""
        return {
            "data_file": os.path.abspath(self.data_file),
            "callback_path": self.callback_path,
            "callback_timeout": self.callback_timeout,
            "token_timeout": self.token_timeout,
            "log_level": self.log_level,
        }


def configure_logging(level: str) -> None:
    """Configure root logging for command-line use."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
