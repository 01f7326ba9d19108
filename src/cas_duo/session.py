"""HTTP session owning the cookie store shared by every handshake stage."""

import logging
from typing import Any

import requests
import urllib3

from .config import DEFAULT_TIMEOUT
from .exceptions import MalformedResponse, TransportError
from .selectors import FORM_DATA, FORM_URLENCODED

logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {
    "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:145.0) Gecko/20100101 Firefox/145.0",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
}


class Session:
    """Cookie-persisting HTTP transport for one logical user.

    Wraps a ``requests.Session`` so cookies set by CAS and Duo are sent on
    every later request, including requests for protected resources after
    login. Redirects are followed for every method.
    """

    def __init__(
        self,
        verify_ssl: bool = True,
        timeout: float = DEFAULT_TIMEOUT,
        headers: dict[str, str] | None = None,
    ):
        """Initialize the session.

        Args:
            verify_ssl: Verify TLS certificates. When False the urllib3
                InsecureRequestWarning is silenced.
            timeout: Per-request timeout in seconds
            headers: Extra default headers
        """
        self.timeout = timeout
        self._http = requests.Session()
        self._http.verify = verify_ssl
        self._http.headers.update(DEFAULT_HEADERS)
        if headers:
            self._http.headers.update(headers)

        if not verify_ssl:
            urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

    @property
    def cookies(self) -> requests.cookies.RequestsCookieJar:
        """The session cookie store."""
        return self._http.cookies

    def submit_request(
        self,
        url: str,
        method: str = "POST",
        params: dict[str, Any] | None = None,
        content_type: str = FORM_URLENCODED,
    ) -> requests.Response:
        """Submit a request and return the validated response.

        Args:
            url: Absolute URL
            method: HTTP method. GET sends ``params`` as a query string,
                other methods send them as a form body.
            params: Query or form parameters
            content_type: FORM_URLENCODED or FORM_DATA (multipart) for form bodies

        Returns:
            Response with a status below 400

        Raises:
            TransportError: On network failure or an HTTP error status.
        """
        method = method.upper()
        kwargs: dict[str, Any] = {"timeout": self.timeout, "allow_redirects": True}
        if method == "GET":
            kwargs["params"] = params
        elif params is not None:
            if content_type == FORM_DATA:
                # (None, value) tuples make requests send plain multipart fields
                kwargs["files"] = {name: (None, "" if value is None else str(value)) for name, value in params.items()}
            else:
                kwargs["data"] = params

        logger.debug("%s %s", method, url)
        try:
            response = self._http.request(method, url, **kwargs)
        except requests.RequestException as e:
            raise TransportError(f"{method} {url} failed: {e}") from e

        if response.status_code >= 400:
            raise TransportError(f"HTTP {response.status_code}: {method} {url} failed")

        return response

    def fetch_html(self, url: str, method: str = "POST", params: dict[str, Any] | None = None) -> str:
        """Submit a request and return the response body as text."""
        return self.submit_request(url, method=method, params=params).text

    def fetch_json(self, url: str, method: str = "POST", params: dict[str, Any] | None = None) -> Any:
        """Submit a request and decode the JSON response body.

        Raises:
            TransportError: On network failure or an HTTP error status.
            MalformedResponse: If the body is not valid JSON.
        """
        response = self.submit_request(url, method=method, params=params)
        try:
            return response.json()
        except ValueError as e:
            raise MalformedResponse(f"Invalid JSON from {url}: {response.text[:200]}") from e

    def close(self) -> None:
        """Close the underlying HTTP session."""
        self._http.close()

    def __enter__(self) -> "Session":
        return self

    def __exit__(self, *args) -> None:
        self.close()
