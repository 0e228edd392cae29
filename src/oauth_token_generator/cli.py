"""Interactive command for obtaining or refreshing an OAuth access token."""
import argparse
import logging
import sys
from typing import List, Optional

from .auth import FileCredentialStore, NewAuthorization, OAuthFlow
from .auth.oauth_flow import build_callback_url
from .core import OAuthConfig, configure_logging
from .core.config import parse_seconds
from .utils.errors import OAuthTokenGeneratorError, format_error
from .utils.network import find_free_port

logger = logging.getLogger(__name__)


# ANSI Colors
class Colors:
    HEADER = '\033[95m'
    CYAN = '\033[96m'
    GREEN = '\033[92m'
    WARNING = '\033[93m'
    FAIL = '\033[91m'
    ENDC = '\033[0m'
    BOLD = '\033[1m'


def print_header(text: str):
    print(f"\n{Colors.HEADER}{Colors.BOLD}=== {text} ==={Colors.ENDC}")


def print_success(text: str):
    print(f"{Colors.GREEN}✔ {text}{Colors.ENDC}")


def print_error(text: str):
    print(f"{Colors.FAIL}✖ {text}{Colors.ENDC}", file=sys.stderr)


def print_info(text: str):
    print(f"{Colors.CYAN}ℹ {text}{Colors.ENDC}")


def get_input(prompt: str, default: str = None) -> str:
    """Get user input with optional default."""
    if default:
        user_input = input(f"{Colors.BOLD}{prompt}{Colors.ENDC} [{default}]: ")
        return user_input.strip() or default
    return input(f"{Colors.BOLD}{prompt}{Colors.ENDC}: ").strip()


def get_required_input(prompt: str) -> str:
    """Keep asking until a non-empty answer is given."""
    while True:
        value = get_input(prompt)
        if value:
            return value
        print_error(f"{prompt} is required")


def prompt_port() -> int:
    """Ask for a local port; blank picks a free one."""
    while True:
        raw = get_input("Local free port (leave empty to pick at random)")
        if not raw:
            return find_free_port()
        try:
            port = int(raw)
        except ValueError:
            print_error(f"'{raw}' is not a port number")
            continue
        if 0 < port < 65536:
            return port
        print_error(f"{port} is outside the valid port range")


def collect_new_authorization(config: OAuthConfig) -> NewAuthorization:
    """Prompt for everything a first authorization needs."""
    print_header("New OAuth Authorization")
    port = prompt_port()
    callback_url = build_callback_url(port, config.callback_path)
    print_info(
        "Create a new OAuth application with the following callback/redirect url: "
        f"{callback_url}"
    )
    return NewAuthorization(
        base_url=get_required_input("OAuth Base Url"),
        client_id=get_required_input("OAuth Client ID"),
        client_secret=get_required_input("OAuth Client Secret"),
        scopes=get_input("OAuth scopes"),
        local_port=port,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="oauth-token-generator",
        description=(
            "Obtain an OAuth access token through the browser, or refresh the one "
            "stored in the credential file."
        ),
    )
    parser.add_argument("--data-file", help="Credential file to read and write")
    parser.add_argument(
        "--timeout",
        help="Seconds to wait for the browser redirect (default: wait forever)",
    )
    parser.add_argument("--log-level", help="Logging level, e.g. INFO or DEBUG")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point for the oauth-token-generator command."""
    args = build_parser().parse_args(argv)

    try:
        config = OAuthConfig.from_env()
        if args.timeout is not None:
            config.callback_timeout = parse_seconds("--timeout", args.timeout)
    except OAuthTokenGeneratorError as e:
        print_error(format_error("Configuration", e))
        return 1

    if args.data_file:
        config.data_file = args.data_file
    if args.log_level:
        config.log_level = args.log_level.upper()
    configure_logging(config.log_level)
    logger.debug(f"Effective configuration: {config.get_environment_summary()}")

    store = FileCredentialStore(config.data_file)
    flow = OAuthFlow(config, store=store, notify=print_info)
    action = "Refresh" if store.exists() else "Authorization"

    try:
        flow.run(lambda: collect_new_authorization(config))
    except KeyboardInterrupt:
        print("\n\nCancelled by user.")
        return 130
    except OAuthTokenGeneratorError as e:
        print_error(format_error(action, e))
        return 1

    print_success(f"Done! Credentials saved to {config.data_file}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
