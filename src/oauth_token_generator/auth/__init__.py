"""
OAuth Authentication Package for the OAuth token generator.

This package provides:
- A one-shot local callback listener that validates the redirect state
- A token endpoint client for code and refresh-token exchanges
- A key=value credential store
- The flow that ties them together
"""

from .browser import BrowserOpener, default_openers, open_url
from .credential_store import (
    CredentialRecord,
    CredentialStore,
    FileCredentialStore,
    credential_to_lines,
    parse_credential_lines,
)
from .oauth_callback_server import CallbackListener, validate_callback_request
from .oauth_flow import (
    NewAuthorization,
    OAuthFlow,
    build_authorization_url,
    build_callback_url,
    generate_state,
)
from .token_client import TokenClient, TokenResult

__all__ = [
    # Browser
    "BrowserOpener",
    "default_openers",
    "open_url",
    # Credential Store
    "CredentialRecord",
    "CredentialStore",
    "FileCredentialStore",
    "credential_to_lines",
    "parse_credential_lines",
    # Callback Listener
    "CallbackListener",
    "validate_callback_request",
    # Flow
    "NewAuthorization",
    "OAuthFlow",
    "build_authorization_url",
    "build_callback_url",
    "generate_state",
    # Token Client
    "TokenClient",
    "TokenResult",
]
