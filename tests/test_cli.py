"""Tests for cli.py."""

import os
from unittest.mock import MagicMock, patch

import pytest
from typer.testing import CliRunner

from cas_duo.cli import ConsoleListener, app, load_env
from cas_duo.exceptions import AuthenticationTimeout
from helpers import CAS_URL

runner = CliRunner()


@pytest.fixture(autouse=True)
def env(monkeypatch, tmp_path):
    # load_env() writes to os.environ directly
    monkeypatch.setattr(os, "environ", dict(os.environ))
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("CAS_URL", CAS_URL)
    monkeypatch.setenv("CAS_USER", "AzureDiamond")
    monkeypatch.setenv("CAS_PASSWORD", "hunter2")
    for name in ("CAS_DUO_RETRIES", "CAS_DUO_POLL_INTERVAL", "CAS_DUO_STOP_ON", "CAS_DUO_FACTOR", "CAS_DUO_DEVICE"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def client_cls():
    with patch("cas_duo.cli.CASDuoClient") as mock_client_cls:
        mock_client = MagicMock()
        mock_client.login.return_value = True
        mock_client.cookies = []
        mock_client.__enter__.return_value = mock_client
        mock_client_cls.return_value = mock_client
        yield mock_client_cls


class TestLoginCommand:
    def test_success(self, client_cls):
        result = runner.invoke(app, ["login", "--retries", "4"])

        assert result.exit_code == 0
        assert "Authentication successful" in result.output
        config = client_cls.call_args.args[0]
        assert config.max_retries == 4
        assert isinstance(config.listener, ConsoleListener)

    def test_failure(self, client_cls):
        client = client_cls.return_value
        client.login.return_value = False
        client.last_error = AuthenticationTimeout("Duo approval not received after 10 status checks")

        result = runner.invoke(app, ["login"])

        assert result.exit_code == 1
        assert "Authentication failed" in result.output

    def test_missing_configuration(self, client_cls, monkeypatch):
        monkeypatch.delenv("CAS_URL")

        result = runner.invoke(app, ["login"])

        assert result.exit_code == 1
        assert "Missing configuration" in result.output
        client_cls.assert_not_called()

    def test_reads_local_env(self, client_cls, monkeypatch, tmp_path):
        monkeypatch.delenv("CAS_DUO_RETRIES", raising=False)
        (tmp_path / "local.env").write_text('# test\nCAS_DUO_RETRIES="7"\n')

        result = runner.invoke(app, ["login"])

        assert result.exit_code == 0
        assert client_cls.call_args.args[0].max_retries == 7


class TestFetchCommand:
    def test_prints_body(self, client_cls):
        client_cls.return_value.submit_request.return_value = MagicMock(text="<h1>Grades</h1>")

        result = runner.invoke(app, ["fetch", "https://portal.example.edu/grades"])

        assert result.exit_code == 0
        assert "<h1>Grades</h1>" in result.output
        client_cls.return_value.submit_request.assert_called_once_with(
            "https://portal.example.edu/grades", method="GET", params=None
        )

    def test_post_data_to_file(self, client_cls, tmp_path):
        client_cls.return_value.submit_request.return_value = MagicMock(content=b"report")
        out = tmp_path / "report.html"

        result = runner.invoke(
            app, ["fetch", "https://portal.example.edu/report", "-X", "POST", "-d", "term=202610", "-o", str(out)]
        )

        assert result.exit_code == 0
        assert out.read_bytes() == b"report"
        client_cls.return_value.submit_request.assert_called_once_with(
            "https://portal.example.edu/report", method="POST", params={"term": "202610"}
        )

    def test_bad_data_value(self, client_cls):
        result = runner.invoke(app, ["fetch", "https://portal.example.edu/", "-d", "novalue"])
        assert result.exit_code == 1
        client_cls.assert_not_called()


class TestLoadEnv:
    def test_environment_wins_over_file(self, tmp_path):
        (tmp_path / "local.env").write_text("CAS_USER=from-file\nexport CAS_DUO_FACTOR='Phone Call'\n\nnot a setting\n")

        assert load_env() == tmp_path / "local.env"
        assert os.environ["CAS_USER"] == "AzureDiamond"
        assert os.environ["CAS_DUO_FACTOR"] == "Phone Call"

    def test_searches_parent_directories(self, monkeypatch, tmp_path):
        (tmp_path / "site.env").write_text("CAS_DUO_DEVICE=phone2\n")
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)
        monkeypatch.chdir(nested)

        assert load_env("site.env") == tmp_path / "site.env"
        assert os.environ["CAS_DUO_DEVICE"] == "phone2"

    def test_depth_limits_search(self, monkeypatch, tmp_path):
        (tmp_path / "site.env").write_text("CAS_DUO_DEVICE=phone2\n")
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)
        monkeypatch.chdir(nested)

        assert load_env("site.env", depth=1) is None
