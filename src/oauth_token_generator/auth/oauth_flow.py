"""
Authorization flow for the OAuth token generator.

Decides between a fresh authorization and a token refresh, drives the
callback listener and token client, and writes the resulting credentials.
Nothing is persisted unless the whole flow succeeds.
"""

import logging
import secrets
from dataclasses import dataclass
from typing import Callable, Optional
from urllib.parse import quote

from ..core.config import OAuthConfig
from ..utils.constants import REDIRECT_HOST
from ..utils.errors import BrowserLaunchError
from .browser import open_url
from .credential_store import CredentialRecord, CredentialStore, FileCredentialStore
from .oauth_callback_server import CallbackListener
from .token_client import TokenClient, normalize_base_url

logger = logging.getLogger(__name__)


@dataclass
class NewAuthorization:
    """Client settings collected from the user for a first authorization."""

    base_url: str
    client_id: str
    client_secret: str
    scopes: str
    local_port: int


def generate_state() -> str:
    """Generate an unguessable state value for one authorization attempt."""
    return secrets.token_urlsafe(32)


def _encode(value: str) -> str:
    return quote(value, safe="")


def build_callback_url(port: int, callback_path: str) -> str:
    """Get the redirect URI the provider must send the browser back to."""
    if port == 80:
        return f"http://{REDIRECT_HOST}{callback_path}"
    return f"http://{REDIRECT_HOST}:{port}{callback_path}"


def build_authorization_url(
    base_url: str, client_id: str, redirect_uri: str, scopes: str, state: str
) -> str:
    """
    Build the provider's authorization URL.

    All values are percent-encoded with no safe characters, so a space in
    the scope list becomes %20.
    """
    return (
        f"{normalize_base_url(base_url)}authorize"
        f"?client_id={_encode(client_id)}"
        f"&redirect_uri={_encode(redirect_uri)}"
        f"&response_type=code"
        f"&scope={_encode(scopes)}"
        f"&state={_encode(state)}"
    )


class OAuthFlow:
    """
    Runs either the new-authorization or the refresh flow.

    Collaborators are injected so the browser, the listener and the token
    endpoint can be replaced.
    """

    def __init__(
        self,
        config: OAuthConfig,
        token_client: Optional[TokenClient] = None,
        store: Optional[CredentialStore] = None,
        open_browser: Callable[[str], object] = open_url,
        listener_factory: Callable[[int, str, str], CallbackListener] = CallbackListener,
        state_factory: Callable[[], str] = generate_state,
        notify: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.config = config
        self.token_client = token_client or TokenClient(timeout=config.token_timeout)
        self.store = store or FileCredentialStore(config.data_file)
        self.open_browser = open_browser
        self.listener_factory = listener_factory
        self.state_factory = state_factory
        self.notify = notify or logger.info

    def run(
        self, collect_new_authorization: Callable[[], NewAuthorization]
    ) -> CredentialRecord:
        """
        Refresh stored credentials if there are any, otherwise authorize anew.

        Args:
            collect_new_authorization: Called only when nothing is stored, to
                obtain the client settings for a new authorization.
        """
        record = self.store.load()
        if record is not None:
            return self.run_refresh(record)
        return self.run_new(collect_new_authorization())

    def run_new(self, request: NewAuthorization) -> CredentialRecord:
        """
        Perform the authorization code flow and store the new credentials.

        Raises:
            BindError: If the callback port is unavailable.
            CallbackTimeoutError: If the configured callback timeout elapses.
            TokenExchangeError: If the code cannot be exchanged.
            PersistenceError: If the credentials cannot be written.
        """
        state = self.state_factory()
        listener = self.listener_factory(
            request.local_port, self.config.callback_path, state
        )

        with listener:
            callback_url = build_callback_url(listener.port, self.config.callback_path)
            auth_url = build_authorization_url(
                request.base_url, request.client_id, callback_url, request.scopes, state
            )
            logger.info(f"Waiting for authorization callback on {callback_url}")

            self.notify(
                "Opening a browser window; follow the steps there until it says "
                "you can close the page, then come back here."
            )
            try:
                self.open_browser(auth_url)
            except BrowserLaunchError as e:
                logger.warning(e.message)
                self.notify(f"Could not open a browser. Open this URL manually:\n{auth_url}")

            self.notify("Waiting for valid response...")
            code = listener.wait_for_code(timeout=self.config.callback_timeout)

        self.notify("OAuth response received, exchanging it for an access token...")
        token = self.token_client.exchange_code(
            request.base_url,
            request.client_id,
            request.client_secret,
            callback_url,
            code,
        )

        record = CredentialRecord(
            base_url=request.base_url,
            client_id=request.client_id,
            client_secret=request.client_secret,
            local_port=listener.port,
            scopes=request.scopes,
            access_token=token.access_token,
            refresh_token=token.refresh_token,
        )
        self.notify("Access token received, saving to disk...")
        self.store.save(record)
        return record

    def run_refresh(self, record: CredentialRecord) -> CredentialRecord:
        """
        Exchange the stored refresh token and store the new token pair.

        Only the token fields change; on failure the stored record is untouched.
        """
        self.notify("Refreshing OAuth token...")
        token = self.token_client.exchange_refresh_token(
            record.base_url,
            record.client_id,
            record.client_secret,
            record.refresh_token,
            record.scopes,
        )
        updated = record.with_tokens(token.access_token, token.refresh_token)
        self.store.save(updated)
        return updated
