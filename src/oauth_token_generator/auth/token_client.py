"""
Token endpoint client for the OAuth token generator.

Exchanges an authorization code or a refresh token for a new token pair by
POSTing a form-encoded body to <baseUrl>/token.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests

from ..utils.constants import (
    DEFAULT_TOKEN_TIMEOUT,
    GRANT_AUTHORIZATION_CODE,
    GRANT_REFRESH_TOKEN,
)
from ..utils.errors import TokenExchangeError

logger = logging.getLogger(__name__)


@dataclass
class TokenResult:
    """Token pair returned by the provider."""

    access_token: str
    refresh_token: str
    expires_in: int


def normalize_base_url(base_url: str) -> str:
    """Ensure the base URL ends with a single trailing slash."""
    if not base_url.endswith("/"):
        base_url += "/"
    return base_url


def build_token_url(base_url: str) -> str:
    """Get the token endpoint for a provider base URL."""
    return f"{normalize_base_url(base_url)}token"


def _describe_error_body(response: requests.Response) -> str:
    """Pull an OAuth error/error_description out of a failed response, if any."""
    try:
        payload = response.json()
    except ValueError:
        return ""
    if not isinstance(payload, dict) or "error" not in payload:
        return ""
    description = payload.get("error_description")
    if description:
        return f": {payload['error']} ({description})"
    return f": {payload['error']}"


def parse_token_response(payload: Any) -> TokenResult:
    """
    Validate a decoded token response body.

    Raises:
        TokenExchangeError: If the body is not the expected JSON object.
    """
    if not isinstance(payload, dict):
        raise TokenExchangeError("Token response is not a JSON object")

    for field in ("access_token", "refresh_token"):
        value = payload.get(field)
        if not isinstance(value, str) or not value.strip():
            raise TokenExchangeError(f"Token response is missing '{field}'")

    try:
        expires_in = int(payload["expires_in"])
    except KeyError:
        raise TokenExchangeError("Token response is missing 'expires_in'")
    except (TypeError, ValueError):
        raise TokenExchangeError(
            f"Token response has a non-numeric 'expires_in': {payload['expires_in']!r}"
        )

    return TokenResult(
        access_token=payload["access_token"],
        refresh_token=payload["refresh_token"],
        expires_in=expires_in,
    )


class TokenClient:
    """Performs the code and refresh-token exchanges against a provider."""

    def __init__(self, timeout: float = DEFAULT_TOKEN_TIMEOUT) -> None:
        self.timeout = timeout

    def _request_token(self, base_url: str, form: Dict[str, str]) -> TokenResult:
        url = build_token_url(base_url)
        grant_type = form["grant_type"]
        logger.info(f"Requesting token ({grant_type}) from {url}")

        try:
            response = requests.post(url, data=form, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"Token request to {url} failed: {e}")
            raise TokenExchangeError(f"Request to {url} failed: {e}") from e

        if not response.ok:
            detail = _describe_error_body(response)
            logger.error(f"Token endpoint returned HTTP {response.status_code}{detail}")
            raise TokenExchangeError(
                f"Token endpoint returned HTTP {response.status_code}{detail}",
                status_code=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise TokenExchangeError(f"Token response is not valid JSON: {e}") from e

        result = parse_token_response(payload)
        logger.info(f"Token received ({grant_type}), expires in {result.expires_in}s")
        return result

    def exchange_code(
        self,
        base_url: str,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        code: str,
    ) -> TokenResult:
        """Exchange an authorization code for a token pair."""
        return self._request_token(
            base_url,
            {
                "grant_type": GRANT_AUTHORIZATION_CODE,
                "client_id": client_id,
                "client_secret": client_secret,
                "redirect_uri": redirect_uri,
                "code": code,
            },
        )

    def exchange_refresh_token(
        self,
        base_url: str,
        client_id: str,
        client_secret: str,
        refresh_token: str,
        scope: Optional[str],
    ) -> TokenResult:
        """Exchange a stored refresh token for a fresh token pair."""
        form = {
            "grant_type": GRANT_REFRESH_TOKEN,
            "client_id": client_id,
            "client_secret": client_secret,
            "refresh_token": refresh_token,
        }
        if scope is not None:
            form["scope"] = scope
        return self._request_token(base_url, form)
