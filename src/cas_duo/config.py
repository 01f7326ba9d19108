"""Configuration handling for the CAS/Duo client."""

import os
from dataclasses import dataclass, field

from .listeners import DuoStatusListener

DEFAULT_MAX_RETRIES = 10
DEFAULT_POLL_INTERVAL = 3.0
DEFAULT_TIMEOUT = 30


def _split_statuses(value: str) -> frozenset[str]:
    return frozenset(s.strip().lower() for s in value.split(",") if s.strip())


def _optional_float(value: str | None) -> float | None:
    if value is None or not value.strip():
        return None
    return float(value)


@dataclass(frozen=True)
class CASDuoConfig:
    """Immutable input to the CAS/Duo handshake.

    Configuration can be loaded from:
    1. Environment variables (CAS_URL, CAS_USER, CAS_PASSWORD, ...)
    2. Explicit parameters

    ``stop_on`` lists Duo poll statuses that end polling at once. It is empty
    by default, so every status other than ``allow`` keeps the loop going
    until ``max_retries`` is used up. Add ``deny`` and ``timeout`` to fail
    fast when the user rejects the push.

    ``poll_timeout`` is an optional overall deadline in seconds for the poll
    loop, on top of the retry budget.
    """

    cas_url: str = ""
    username: str = ""
    password: str = field(default="", repr=False)
    listener: DuoStatusListener | None = None
    max_retries: int = DEFAULT_MAX_RETRIES
    poll_interval: float = DEFAULT_POLL_INTERVAL
    poll_timeout: float | None = None
    stop_on: frozenset[str] = frozenset()
    factor: str | None = None
    device: str | None = None
    verify_ssl: bool = True
    timeout: int = DEFAULT_TIMEOUT

    @classmethod
    def from_env(cls, listener: DuoStatusListener | None = None) -> "CASDuoConfig":
        """Load configuration from environment variables.

        Environment variables:
            CAS_URL: CAS login URL (e.g., https://sso.example.edu/cas/login)
            CAS_USER: Username
            CAS_PASSWORD: Password
            CAS_DUO_RETRIES: Status polls before giving up (default 10)
            CAS_DUO_POLL_INTERVAL: Seconds between status polls (default 3)
            CAS_DUO_POLL_TIMEOUT: Overall poll deadline in seconds (optional)
            CAS_DUO_STOP_ON: Comma-separated statuses that end polling (e.g. "deny,timeout")
            CAS_DUO_FACTOR: Override the user's preferred factor (e.g. "Duo Push")
            CAS_DUO_DEVICE: Override the user's preferred device (e.g. "phone1")
            CAS_VERIFY_SSL: Set to "false" to disable certificate verification
            CAS_TIMEOUT: Request timeout in seconds

        Returns:
            CASDuoConfig instance
        """
        return cls(
            cas_url=os.environ.get("CAS_URL", ""),
            username=os.environ.get("CAS_USER", ""),
            password=os.environ.get("CAS_PASSWORD", ""),
            listener=listener,
            max_retries=int(os.environ.get("CAS_DUO_RETRIES", str(DEFAULT_MAX_RETRIES))),
            poll_interval=float(os.environ.get("CAS_DUO_POLL_INTERVAL", str(DEFAULT_POLL_INTERVAL))),
            poll_timeout=_optional_float(os.environ.get("CAS_DUO_POLL_TIMEOUT")),
            stop_on=_split_statuses(os.environ.get("CAS_DUO_STOP_ON", "")),
            factor=os.environ.get("CAS_DUO_FACTOR") or None,
            device=os.environ.get("CAS_DUO_DEVICE") or None,
            verify_ssl=os.environ.get("CAS_VERIFY_SSL", "true").lower() != "false",
            timeout=int(os.environ.get("CAS_TIMEOUT", str(DEFAULT_TIMEOUT))),
        )

    def validate(self) -> list[str]:
        """Validate configuration, returning list of problems.

        Returns:
            List of missing or invalid field names.
        """
        missing = []
        if not self.cas_url:
            missing.append("cas_url (CAS_URL)")
        if not self.username:
            missing.append("username (CAS_USER)")
        if not self.password:
            missing.append("password (CAS_PASSWORD)")
        if self.max_retries < 1:
            missing.append("max_retries (CAS_DUO_RETRIES must be >= 1)")
        return missing
