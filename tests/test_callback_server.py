"""Unit tests for the OAuth callback listener."""

import os
import socket
import sys
import threading

import pytest
import requests
from fastapi.testclient import TestClient

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "../src"))

from oauth_token_generator.auth.oauth_callback_server import (
    CallbackListener,
    validate_callback_request,
)
from oauth_token_generator.utils.errors import (
    BindError,
    CallbackTimeoutError,
    CallbackValidationError,
    ListenerCancelledError,
)

CALLBACK_PATH = "/oauth-cb"
STATE = "expected-state"


class TestValidateCallbackRequest:
    """Tests for the request screening rules."""

    def _reject(self, method, path, query):
        with pytest.raises(CallbackValidationError) as exc_info:
            validate_callback_request(method, path, query, CALLBACK_PATH, STATE)
        return exc_info.value

    def test_valid_request_returns_code(self):
        code = validate_callback_request(
            "GET", CALLBACK_PATH, f"state={STATE}&code=abc123", CALLBACK_PATH, STATE
        )
        assert code == "abc123"

    def test_wrong_path_is_nope(self):
        err = self._reject("GET", "/favicon.ico", f"state={STATE}&code=x")
        assert err.status_code == 404
        assert err.body == "NOPE"

    def test_path_match_is_exact(self):
        assert self._reject("GET", "/oauth-cb/", f"state={STATE}&code=x").body == "NOPE"
        assert self._reject("GET", "/OAUTH-CB", f"state={STATE}&code=x").body == "NOPE"

    def test_non_get_is_nope(self):
        assert self._reject("POST", CALLBACK_PATH, f"state={STATE}&code=x").body == "NOPE"

    def test_missing_code(self):
        err = self._reject("GET", CALLBACK_PATH, f"state={STATE}")
        assert err.body == "missing query args"

    def test_blank_state(self):
        err = self._reject("GET", CALLBACK_PATH, "state=%20&code=x")
        assert err.body == "missing query args"

    def test_wrong_state(self):
        err = self._reject("GET", CALLBACK_PATH, "state=forged&code=x")
        assert err.status_code == 404
        assert err.body == "wrong state"

    def test_first_value_wins(self):
        code = validate_callback_request(
            "GET",
            CALLBACK_PATH,
            f"state={STATE}&code=first&code=second",
            CALLBACK_PATH,
            STATE,
        )
        assert code == "first"

    def test_url_encoded_values_are_decoded(self):
        code = validate_callback_request(
            "GET", CALLBACK_PATH, "state=a%2Fb&code=c%3Dd", CALLBACK_PATH, "a/b"
        )
        assert code == "c=d"


class TestCallbackApp:
    """Tests for the listener's HTTP replies, without a real socket."""

    def setup_method(self):
        self.listener = CallbackListener(0, CALLBACK_PATH, STATE)
        self.client = TestClient(self.listener.app)

    def test_other_paths_keep_listening(self):
        for path in ["/", "/favicon.ico", "/docs", "/oauth-cb/"]:
            response = self.client.get(path)
            assert response.status_code == 404
            assert response.text == "NOPE"

        with pytest.raises(CallbackTimeoutError):
            self.listener.wait_for_code(timeout=0.05)

    def test_wrong_state_does_not_satisfy_wait(self):
        response = self.client.get(CALLBACK_PATH, params={"state": "nope", "code": "c"})
        assert response.status_code == 404
        assert response.text == "wrong state"

        with pytest.raises(CallbackTimeoutError):
            self.listener.wait_for_code(timeout=0.05)

    def test_valid_callback_delivers_code_once(self):
        response = self.client.get(CALLBACK_PATH, params={"state": STATE, "code": "the-code"})
        assert response.status_code == 200
        assert response.text == "Success! You can close this page now"
        assert self.listener.wait_for_code(timeout=1) == "the-code"

        again = self.client.get(CALLBACK_PATH, params={"state": STATE, "code": "other"})
        assert again.status_code == 404
        assert again.text == "NOPE"
        with pytest.raises(CallbackTimeoutError):
            self.listener.wait_for_code(timeout=0.05)

    @pytest.mark.parametrize("method", ["PROPFIND", "TRACE", "POST"])
    def test_unlisted_methods_are_nope(self, method):
        response = self.client.request(
            method, CALLBACK_PATH, params={"state": STATE, "code": "c"}
        )
        assert response.status_code == 404
        assert response.text == "NOPE"

        with pytest.raises(CallbackTimeoutError):
            self.listener.wait_for_code(timeout=0.05)

    def test_missing_code_then_valid(self):
        first = self.client.get(CALLBACK_PATH, params={"state": STATE})
        assert first.status_code == 404
        assert first.text == "missing query args"

        second = self.client.get(CALLBACK_PATH, params={"state": STATE, "code": "second"})
        assert second.status_code == 200
        assert self.listener.wait_for_code(timeout=1) == "second"


class TestCallbackListenerLifecycle:
    """Tests for the listener running on a real local port."""

    def setup_method(self):
        self.listener = CallbackListener(0, CALLBACK_PATH, STATE)

    def teardown_method(self):
        self.listener.stop()

    def _url(self, path):
        return f"http://127.0.0.1:{self.listener.port}{path}"

    def test_start_binds_ephemeral_port(self):
        self.listener.start()
        assert self.listener.is_running
        assert self.listener.port > 0

    def test_end_to_end_over_socket(self):
        self.listener.start()

        rejected = requests.get(self._url("/favicon.ico"), timeout=5)
        assert rejected.status_code == 404
        assert rejected.text == "NOPE"

        ok = requests.get(
            self._url(CALLBACK_PATH), params={"state": STATE, "code": "xyz"}, timeout=5
        )
        assert ok.status_code == 200
        assert ok.text == "Success! You can close this page now"
        assert self.listener.wait_for_code(timeout=5) == "xyz"

    def test_port_in_use_raises_bind_error(self):
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as blocker:
            blocker.bind(("127.0.0.1", 0))
            blocker.listen(1)
            port = blocker.getsockname()[1]

            listener = CallbackListener(port, CALLBACK_PATH, STATE)
            with pytest.raises(BindError) as exc_info:
                listener.start()
            assert exc_info.value.port == port
            assert not listener.is_running

    def test_unlisted_method_over_socket_is_nope(self):
        self.listener.start()
        response = requests.request("PROPFIND", self._url(CALLBACK_PATH), timeout=5)
        assert response.status_code == 404
        assert response.text == "NOPE"

    def test_stop_cancels_pending_wait(self):
        self.listener.start()
        timer = threading.Timer(0.2, self.listener.stop)
        timer.start()
        try:
            with pytest.raises(ListenerCancelledError):
                self.listener.wait_for_code(timeout=5)
        finally:
            timer.cancel()

    def test_context_manager_releases_port(self):
        with CallbackListener(0, CALLBACK_PATH, STATE) as listener:
            port = listener.port
            assert listener.is_running
        assert not listener.is_running

        # The port can be bound again once the listener is gone
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
            s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            s.bind(("127.0.0.1", port))
