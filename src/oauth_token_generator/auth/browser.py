"""
Browser launch for the authorization URL.

Each opener knows one way of showing a URL to the user. open_url() walks a
list of openers in order and only fails if none of them worked.
"""

import logging
import subprocess
import sys
import webbrowser
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

from ..utils.errors import BrowserLaunchError

logger = logging.getLogger(__name__)


class BrowserOpener(ABC):
    """Abstract base class for a way of opening a URL in the user's browser."""

    name = "browser"

    @abstractmethod
    def open(self, url: str) -> None:
        """Open the URL, raising on failure."""
        pass


class WebbrowserOpener(BrowserOpener):
    """Python's webbrowser module, which picks a registered browser."""

    name = "webbrowser"

    def open(self, url: str) -> None:
        if not webbrowser.open(url):
            raise OSError("webbrowser.open returned False")


class CommandOpener(BrowserOpener):
    """Opens a URL by running an OS command."""

    command: List[str] = []

    def build_command(self, url: str) -> List[str]:
        return self.command + [url]

    def open(self, url: str) -> None:
        subprocess.Popen(
            self.build_command(url),
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        )


class WindowsStartOpener(CommandOpener):
    name = "cmd start"
    command = ["cmd", "/c", "start"]

    def build_command(self, url: str) -> List[str]:
        # cmd treats a bare & as a command separator
        return self.command + [url.replace("&", "^&")]


class XdgOpenOpener(CommandOpener):
    name = "xdg-open"
    command = ["xdg-open"]


class MacOpenOpener(CommandOpener):
    name = "open"
    command = ["open"]


def default_openers(platform: Optional[str] = None) -> List[BrowserOpener]:
    """
    Get the openers to try, generic first, then the one for this platform.

    Args:
        platform: sys.platform value to select for (defaults to the current one).
    """
    platform = platform or sys.platform
    openers: List[BrowserOpener] = [WebbrowserOpener()]
    if platform.startswith("win"):
        openers.append(WindowsStartOpener())
    elif platform == "darwin":
        openers.append(MacOpenOpener())
    elif platform.startswith("linux") or "bsd" in platform:
        openers.append(XdgOpenOpener())
    return openers


def open_url(url: str, openers: Optional[Sequence[BrowserOpener]] = None) -> str:
    """
    Open a URL with the first opener that succeeds.

    Returns:
        Name of the opener that worked.

    Raises:
        BrowserLaunchError: If every opener failed.
    """
    if openers is None:
        openers = default_openers()

    attempts = []
    for opener in openers:
        attempts.append(opener.name)
        try:
            opener.open(url)
        except (OSError, webbrowser.Error) as e:
            logger.debug(f"Opener '{opener.name}' failed: {e}")
            continue
        logger.info(f"Opened authorization URL with '{opener.name}'")
        return opener.name

    raise BrowserLaunchError(url, attempts)
