"""CAS + Duo two-factor login client.

Completes a CAS login form followed by a Duo push challenge so automated
clients can obtain an authenticated session and fetch protected resources.
"""

from .client import CASDuoClient
from .config import CASDuoConfig
from .exceptions import (
    AuthenticationTimeout,
    CASDuoError,
    ConfigurationError,
    DuoDenied,
    ExtractionError,
    LoginCancelled,
    MalformedResponse,
    NotAuthenticatedError,
    ProtocolRejection,
    TransportError,
)
from .listeners import CallbackListener, DuoStatusListener, LoggingListener
from .models import PollResult, PollState
from .session import Session

__all__ = [
    "CASDuoClient",
    "CASDuoConfig",
    "Session",
    "DuoStatusListener",
    "CallbackListener",
    "LoggingListener",
    "PollResult",
    "PollState",
    "CASDuoError",
    "ConfigurationError",
    "ExtractionError",
    "TransportError",
    "MalformedResponse",
    "ProtocolRejection",
    "DuoDenied",
    "AuthenticationTimeout",
    "LoginCancelled",
    "NotAuthenticatedError",
]
