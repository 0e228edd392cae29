"""OAuth Token Generator.

Obtains an OAuth 2.0 access token through the authorization code grant using
a local callback listener, and refreshes it on later runs.
"""
from .auth import OAuthFlow, CallbackListener, TokenClient, FileCredentialStore
from .core import OAuthConfig

__version__ = "0.1.0"
__all__ = [
    "OAuthFlow",
    "CallbackListener",
    "TokenClient",
    "FileCredentialStore",
    "OAuthConfig",
]
