"""Tests for client.py — orchestration of the full handshake."""

import dataclasses
from unittest.mock import MagicMock

import pytest

from cas_duo.client import CASDuoClient
from cas_duo.exceptions import (
    AuthenticationTimeout,
    ConfigurationError,
    ExtractionError,
    NotAuthenticatedError,
    ProtocolRejection,
    TransportError,
)
from helpers import APP_SIGNATURE, CAS_URL, prompt, status


@pytest.fixture(autouse=True)
def no_sleep(monkeypatch):
    monkeypatch.setattr("cas_duo.duo.time.sleep", lambda seconds: None)


@pytest.fixture
def client(config, session):
    return CASDuoClient(config, session=session)


def script_happy_path(session, cas_login_html, cas_duo_html, duo_frame_html, cookie="C1"):
    session.fetch_html.side_effect = [cas_login_html, cas_duo_html, duo_frame_html]
    session.fetch_json.side_effect = [prompt(), status("pushed"), status("allow", cookie=cookie)]


class TestLogin:
    def test_happy_path(self, client, session, config, cas_login_html, cas_duo_html, duo_frame_html):
        script_happy_path(session, cas_login_html, cas_duo_html, duo_frame_html)

        assert client.login() is True
        assert client.is_authenticated
        assert client.last_error is None

        session.submit_request.assert_called_once_with(
            CAS_URL,
            params={
                "lt": "LT-2-def456-cas",
                "execution": "e1s2",
                "_eventId": "submit",
                "signedDuoResponse": f"C1:{APP_SIGNATURE}",
            },
        )
        config.listener.on_pushed.assert_called_once()
        config.listener.on_allowed.assert_called_once()

    def test_assertion_uses_allow_cookie(self, client, session, cas_login_html, cas_duo_html, duo_frame_html):
        session.fetch_html.side_effect = [
            cas_login_html,
            cas_duo_html.replace(APP_SIGNATURE, "APP1"),
            duo_frame_html,
        ]
        session.fetch_json.side_effect = [prompt(), status("allow", cookie="C1")]

        assert client.login()
        params = session.submit_request.call_args.kwargs["params"]
        assert params["signedDuoResponse"] == "C1:APP1"

    def test_extraction_failure(self, client, session):
        session.fetch_html.side_effect = ["<html>CAS is down for maintenance</html>"]

        assert client.login() is False
        assert isinstance(client.last_error, ExtractionError)
        assert not client.is_authenticated
        session.fetch_json.assert_not_called()
        session.submit_request.assert_not_called()

    def test_challenge_rejected(self, client, session, cas_login_html, cas_duo_html, duo_frame_html):
        session.fetch_html.side_effect = [cas_login_html, cas_duo_html, duo_frame_html]
        session.fetch_json.side_effect = [prompt(stat="FAIL")]

        assert client.login() is False
        assert isinstance(client.last_error, ProtocolRejection)
        assert session.fetch_json.call_count == 1
        session.submit_request.assert_not_called()

    def test_poll_exhausted(self, session, config, cas_login_html, cas_duo_html, duo_frame_html):
        client = CASDuoClient(dataclasses.replace(config, max_retries=3), session=session)
        session.fetch_html.side_effect = [cas_login_html, cas_duo_html, duo_frame_html]
        session.fetch_json.side_effect = [prompt()] + [status("pushed")] * 3

        assert client.login() is False
        assert isinstance(client.last_error, AuthenticationTimeout)
        assert config.listener.on_pushed.call_count == 3
        config.listener.on_allowed.assert_not_called()
        session.submit_request.assert_not_called()

    def test_final_submission_failure(self, client, session, cas_login_html, cas_duo_html, duo_frame_html):
        script_happy_path(session, cas_login_html, cas_duo_html, duo_frame_html)
        session.submit_request.side_effect = TransportError("HTTP 502: POST failed")

        assert client.login() is False
        assert isinstance(client.last_error, TransportError)
        assert not client.is_authenticated

    def test_missing_configuration(self, session, config):
        client = CASDuoClient(dataclasses.replace(config, password=""), session=session)

        assert client.login() is False
        assert isinstance(client.last_error, ConfigurationError)
        session.fetch_html.assert_not_called()

    def test_authenticate_raises(self, client, session):
        session.fetch_html.side_effect = TransportError("HTTP 503: GET failed")
        with pytest.raises(TransportError):
            client.authenticate()


class TestProtectedResources:
    def test_requires_login(self, client, session):
        with pytest.raises(NotAuthenticatedError):
            client.get("https://portal.example.edu/me")
        session.submit_request.assert_not_called()

    def test_get_after_login(self, client, session, cas_login_html, cas_duo_html, duo_frame_html):
        script_happy_path(session, cas_login_html, cas_duo_html, duo_frame_html)
        assert client.login()

        session.submit_request.reset_mock()
        client.get("https://portal.example.edu/me", params={"format": "json"})

        session.submit_request.assert_called_once_with(
            "https://portal.example.edu/me",
            method="GET",
            params={"format": "json"},
            content_type="multipart/form-data",
        )

    def test_post_defaults_to_multipart(self, client, session, cas_login_html, cas_duo_html, duo_frame_html):
        script_happy_path(session, cas_login_html, cas_duo_html, duo_frame_html)
        assert client.login()

        client.post("https://portal.example.edu/report", params={"term": "202610"})
        kwargs = session.submit_request.call_args.kwargs
        assert kwargs["method"] == "POST"
        assert kwargs["content_type"] == "multipart/form-data"

    def test_post_urlencoded_on_request(self, client, session, cas_login_html, cas_duo_html, duo_frame_html):
        script_happy_path(session, cas_login_html, cas_duo_html, duo_frame_html)
        assert client.login()

        client.post(
            "https://portal.example.edu/report",
            params={"term": "202610"},
            content_type="application/x-www-form-urlencoded",
        )
        kwargs = session.submit_request.call_args.kwargs
        assert kwargs["content_type"] == "application/x-www-form-urlencoded"

    def test_context_manager_closes_session(self, config):
        session = MagicMock()
        with CASDuoClient(config, session=session):
            pass
        session.close.assert_called_once()
