"""Unit tests for browser launching."""

import os
import sys
from unittest.mock import patch

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "../src"))

from oauth_token_generator.auth.browser import (
    BrowserOpener,
    MacOpenOpener,
    WebbrowserOpener,
    WindowsStartOpener,
    XdgOpenOpener,
    default_openers,
    open_url,
)
from oauth_token_generator.utils.errors import BrowserLaunchError


class RecordingOpener(BrowserOpener):
    def __init__(self, name, fail=False):
        self.name = name
        self.fail = fail
        self.urls = []

    def open(self, url):
        self.urls.append(url)
        if self.fail:
            raise OSError(f"{self.name} not available")


class TestOpenUrl:
    def test_falls_through_in_order(self):
        first = RecordingOpener("first", fail=True)
        second = RecordingOpener("second")
        third = RecordingOpener("third")

        assert open_url("https://x", [first, second, third]) == "second"
        assert first.urls == ["https://x"]
        assert second.urls == ["https://x"]
        assert third.urls == []

    def test_all_failing_raises(self):
        openers = [RecordingOpener("a", fail=True), RecordingOpener("b", fail=True)]
        with pytest.raises(BrowserLaunchError) as exc_info:
            open_url("https://x", openers)
        assert exc_info.value.attempts == ["a", "b"]

    def test_webbrowser_false_counts_as_failure(self):
        with patch("oauth_token_generator.auth.browser.webbrowser.open", return_value=False):
            with pytest.raises(BrowserLaunchError):
                open_url("https://x", [WebbrowserOpener()])


class TestOpeners:
    @pytest.mark.parametrize(
        "platform, expected",
        [("win32", WindowsStartOpener), ("darwin", MacOpenOpener), ("linux", XdgOpenOpener)],
    )
    def test_default_openers_per_platform(self, platform, expected):
        openers = default_openers(platform)
        assert isinstance(openers[0], WebbrowserOpener)
        assert isinstance(openers[1], expected)

    def test_windows_escapes_ampersands(self):
        command = WindowsStartOpener().build_command("https://x/authorize?a=1&b=2")
        assert command == ["cmd", "/c", "start", "https://x/authorize?a=1^&b=2"]

    def test_command_opener_runs_process(self):
        with patch("oauth_token_generator.auth.browser.subprocess.Popen") as mock_popen:
            XdgOpenOpener().open("https://x")
        assert mock_popen.call_args[0][0] == ["xdg-open", "https://x"]

    def test_missing_command_is_failure(self):
        with patch(
            "oauth_token_generator.auth.browser.subprocess.Popen",
            side_effect=FileNotFoundError("xdg-open"),
        ):
            with pytest.raises(BrowserLaunchError):
                open_url("https://x", [XdgOpenOpener()])


class TestBrowserOpenerBase:
    def test_base_class_is_abstract(self):
        with pytest.raises(TypeError):
            BrowserOpener()
