"""CAS/Duo client: run the two-factor login, then fetch protected resources."""

import logging
import threading
from typing import Any

import requests

from .cas import identity_provider_login, submit_assertion
from .config import CASDuoConfig
from .duo import duo_login
from .exceptions import CASDuoError, ConfigurationError, NotAuthenticatedError
from .models import SignedAssertion
from .selectors import FORM_DATA
from .session import Session

logger = logging.getLogger(__name__)


class CASDuoClient:
    """HTTP client for resources behind CAS single sign-on with Duo push.

    Usage::

        config = CASDuoConfig(
            cas_url="https://sso.example.edu/cas/login",
            username="AzureDiamond",
            password="hunter2",
            listener=CallbackListener(on_pushed=lambda r: print("Approve the push...")),
        )
        with CASDuoClient(config) as client:
            if not client.login():
                raise SystemExit(f"Login failed: {client.last_error}")
            page = client.get("https://that.thing.you.wanted/to/access")

    The stages run strictly in order on the calling thread; the only wait is
    the pause between Duo status polls.
    """

    def __init__(self, config: CASDuoConfig, session: Session | None = None):
        """Initialize client.

        Args:
            config: Login configuration
            session: Transport to use. If None, one is created from config.
        """
        self.config = config
        self.session = session or Session(verify_ssl=config.verify_ssl, timeout=config.timeout)
        self.last_error: CASDuoError | None = None
        self._authenticated = False

    @property
    def is_authenticated(self) -> bool:
        """True once the handshake has completed."""
        return self._authenticated

    @property
    def cookies(self) -> requests.cookies.RequestsCookieJar:
        return self.session.cookies

    def authenticate(self, cancel: threading.Event | None = None) -> None:
        """Perform the full CAS + Duo handshake.

        Args:
            cancel: Optional event; setting it aborts the wait for approval.

        Raises:
            ConfigurationError: If required configuration is missing.
            CASDuoError: The first stage failure (ExtractionError,
                TransportError, MalformedResponse, ProtocolRejection,
                AuthenticationTimeout, LoginCancelled).
        """
        self._authenticated = False
        self.last_error = None

        missing = self.config.validate()
        if missing:
            raise ConfigurationError(f"Missing configuration: {', '.join(missing)}")

        widget, duo_form = identity_provider_login(self.session, self.config)
        _, result = duo_login(self.session, self.config, widget, duo_form, cancel=cancel)
        submit_assertion(
            self.session,
            self.config,
            duo_form,
            SignedAssertion(cookie=result.cookie, app_signature=widget.app_signature),
        )

        self._authenticated = True
        logger.info("Authenticated to %s as %s", self.config.cas_url, self.config.username)

    def login(self, cancel: threading.Event | None = None) -> bool:
        """Authenticate, reporting failure as False instead of raising.

        The reason for a failure is logged and kept in ``last_error``.
        """
        try:
            self.authenticate(cancel=cancel)
        except CASDuoError as e:
            self.last_error = e
            logger.error("CAS/Duo login failed (%s): %s", type(e).__name__, e)
            return False
        return True

    def submit_request(
        self,
        url: str,
        method: str = "GET",
        params: dict[str, Any] | None = None,
        content_type: str = FORM_DATA,
    ) -> requests.Response:
        """Request a protected resource with the authenticated session.

        POST bodies are sent as multipart form data unless ``content_type``
        asks for ``application/x-www-form-urlencoded``.

        Raises:
            NotAuthenticatedError: If login has not succeeded.
            TransportError: On network failure or an HTTP error status.
        """
        if not self._authenticated:
            raise NotAuthenticatedError("Not authenticated - call login() first")
        return self.session.submit_request(url, method=method, params=params, content_type=content_type)

    def get(self, url: str, params: dict[str, Any] | None = None) -> requests.Response:
        """Make authenticated GET request."""
        return self.submit_request(url, method="GET", params=params)

    def post(
        self, url: str, params: dict[str, Any] | None = None, content_type: str = FORM_DATA
    ) -> requests.Response:
        """Make authenticated POST request."""
        return self.submit_request(url, method="POST", params=params, content_type=content_type)

    def close(self) -> None:
        """Close the HTTP session."""
        self.session.close()

    def __enter__(self) -> "CASDuoClient":
        return self

    def __exit__(self, *args) -> None:
        self.close()
