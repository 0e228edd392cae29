"""Centralized constants for the OAuth token generator."""

# Callback listener
DEFAULT_CALLBACK_PATH = "/oauth-cb"
LISTEN_HOST = "127.0.0.1"
REDIRECT_HOST = "localhost"
SERVER_START_TIMEOUT = 3.0
SERVER_STOP_TIMEOUT = 3.0

# Callback response bodies
BODY_NOT_FOUND = "NOPE"
BODY_MISSING_ARGS = "missing query args"
BODY_WRONG_STATE = "wrong state"
BODY_SUCCESS = "Success! You can close this page now"

# Token endpoint
GRANT_AUTHORIZATION_CODE = "authorization_code"
GRANT_REFRESH_TOKEN = "refresh_token"
DEFAULT_TOKEN_TIMEOUT = 30.0

# Credential file
DEFAULT_DATA_FILE = "data.ini"
COMMENT_PREFIXES = ("#", "//")
