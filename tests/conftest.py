"""Pytest fixtures for CAS/Duo tests."""

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from cas_duo.config import CASDuoConfig
from cas_duo.listeners import DuoStatusListener
from cas_duo.models import ChallengeFormContext, Transaction
from cas_duo.session import Session
from helpers import CAS_URL

FIXTURES_DIR = Path(__file__).parent / "fixtures"


@pytest.fixture
def fixtures_dir() -> Path:
    """Return path to HTML fixtures directory."""
    return FIXTURES_DIR


@pytest.fixture
def load_fixture():
    """Factory fixture to load HTML fixtures as text."""

    def _load(name: str) -> str:
        return (FIXTURES_DIR / name).read_text()

    return _load


@pytest.fixture
def cas_login_html(load_fixture):
    """CAS login page."""
    return load_fixture("cas_login.html")


@pytest.fixture
def cas_duo_html(load_fixture):
    """CAS page returned after credentials, hosting the Duo widget."""
    return load_fixture("cas_duo.html")


@pytest.fixture
def duo_frame_html(load_fixture):
    """Duo /frame/web/v1/auth page."""
    return load_fixture("duo_frame.html")


@pytest.fixture
def listener():
    """Listener double recording hook calls."""
    return MagicMock(spec=DuoStatusListener)


@pytest.fixture
def config(listener):
    return CASDuoConfig(
        cas_url=CAS_URL,
        username="AzureDiamond",
        password="hunter2",
        listener=listener,
    )


@pytest.fixture
def session():
    """Session double; script fetch_html/fetch_json with side_effect lists."""
    return MagicMock(spec=Session)


@pytest.fixture
def challenge_context():
    return ChallengeFormContext(
        sid="sid-0f1e2d3c4b5a",
        preferred_factor="Duo Push",
        preferred_device="phone1",
        lt="LT-2-def456-cas",
        execution="e1s2",
        event_id="submit",
    )


@pytest.fixture
def transaction():
    return Transaction(status="OK", txid="tx-42")
