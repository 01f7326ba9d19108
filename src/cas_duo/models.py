"""Data passed between the handshake stages."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .exceptions import MalformedResponse
from .selectors import DUO_STAT_OK, STATUS_ALLOW, STATUS_PUSHED


@dataclass(frozen=True)
class LoginFormContext:
    """Flow tokens scraped from the CAS login page."""

    lt: str
    execution: str
    event_id: str = ""


@dataclass(frozen=True)
class WidgetBootstrapParams:
    """Parameters of the Duo widget embedded in the CAS page."""

    host: str
    duo_signature: str
    app_signature: str
    post_argument: str = ""


@dataclass(frozen=True)
class DuoFormContext:
    """CAS tokens from the Duo page, needed to submit the assertion."""

    lt: str
    execution: str
    event_id: str = ""


@dataclass(frozen=True)
class ChallengeFormContext:
    """Duo session handle plus the CAS tokens for final resubmission."""

    sid: str
    preferred_factor: str
    preferred_device: str
    lt: str
    execution: str
    event_id: str = ""


@dataclass(frozen=True)
class Transaction:
    """Result of issuing the asynchronous push challenge."""

    status: str
    txid: str = ""

    @property
    def ok(self) -> bool:
        return self.status == DUO_STAT_OK

    @classmethod
    def from_response(cls, data: dict[str, Any]) -> "Transaction":
        """Create from a /frame/prompt JSON body ({stat, response: {txid}})."""
        if not isinstance(data, dict):
            raise MalformedResponse(f"Expected JSON object from prompt endpoint, got {type(data).__name__}")
        status = str(data.get("stat", ""))
        response = data.get("response")
        txid = ""
        if isinstance(response, dict):
            txid = str(response.get("txid") or "")
        return cls(status=status, txid=txid)


@dataclass(frozen=True)
class PollResult:
    """One answer from the Duo status endpoint.

    ``cookie`` is only present (and then required) when the status is ``allow``.
    """

    status_code: str
    cookie: str = ""
    message: str = ""
    raw: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @property
    def allowed(self) -> bool:
        return self.status_code == STATUS_ALLOW

    @property
    def pushed(self) -> bool:
        return self.status_code == STATUS_PUSHED

    @classmethod
    def from_response(cls, data: dict[str, Any]) -> "PollResult":
        """Create from a /frame/status JSON body ({response: {status_code, cookie?}}).

        The status code is lowercased. A body without a response object
        (e.g. ``{"stat": "FAIL", "message": ...}``) yields an empty status,
        which the poller treats like any other transient status.

        Raises:
            MalformedResponse: If an ``allow`` status arrives without a cookie.
        """
        raw = data if isinstance(data, dict) else {}
        response = raw.get("response")
        if not isinstance(response, dict):
            return cls(status_code="", message=str(raw.get("message") or ""), raw=raw)

        status_code = str(response.get("status_code") or "").strip().lower()
        cookie = str(response.get("cookie") or "")
        if status_code == STATUS_ALLOW and not cookie:
            raise MalformedResponse("Duo reported 'allow' without a signed cookie")

        return cls(
            status_code=status_code,
            cookie=cookie,
            message=str(response.get("status") or ""),
            raw=raw,
        )


@dataclass(frozen=True)
class SignedAssertion:
    """Duo-signed cookie joined with the application signature."""

    cookie: str
    app_signature: str

    @property
    def value(self) -> str:
        return f"{self.cookie}:{self.app_signature}"

    def __str__(self) -> str:
        return self.value


class PollState(Enum):
    """States of the push challenge while it is being polled."""

    PENDING = "pending"
    PUSHED = "pushed"
    ALLOWED = "allowed"
    DENIED = "denied"
    EXHAUSTED = "exhausted"

    @property
    def terminal(self) -> bool:
        return self in (PollState.ALLOWED, PollState.DENIED, PollState.EXHAUSTED)
