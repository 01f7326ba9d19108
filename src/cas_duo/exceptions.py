"""Custom exceptions for the CAS/Duo handshake."""


class CASDuoError(Exception):
    """Base exception for CAS/Duo errors."""

    pass


class ExtractionError(CASDuoError):
    """A required form field or embedded object was not found or not parseable."""

    pass


class TransportError(CASDuoError):
    """Network failure or HTTP error status from the transport."""

    pass


class MalformedResponse(CASDuoError):
    """JSON response could not be decoded or lacks required members."""

    pass


class ProtocolRejection(CASDuoError):
    """Duo refused to issue the second-factor challenge."""

    pass


class DuoDenied(ProtocolRejection):
    """Polling hit a status configured as terminal (deny, timeout, ...)."""

    def __init__(self, message: str, status_code: str = ""):
        super().__init__(message)
        self.status_code = status_code


class AuthenticationTimeout(CASDuoError):
    """No approval was received within the retry budget or deadline."""

    pass


class LoginCancelled(CASDuoError):
    """The caller cancelled the login while waiting for approval."""

    pass


class NotAuthenticatedError(CASDuoError):
    """A protected resource was requested before a successful login."""

    pass


class ConfigurationError(CASDuoError):
    """Required configuration is missing or invalid."""

    pass
