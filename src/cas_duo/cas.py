"""CAS side of the handshake: credential login and final assertion."""

import logging

import requests

from .config import CASDuoConfig
from .forms import extract_widget_params, parse_form, require_fields
from .models import DuoFormContext, LoginFormContext, SignedAssertion, WidgetBootstrapParams
from .selectors import (
    CAS_EVENT_ID,
    CAS_EVENT_ID_SUBMIT,
    CAS_EXECUTION,
    CAS_LT,
    CAS_PASSWORD,
    CAS_SIGNED_RESPONSE,
    CAS_USERNAME,
    SELECTORS,
)
from .session import Session

logger = logging.getLogger(__name__)


def fetch_login_form(session: Session, config: CASDuoConfig) -> LoginFormContext:
    """Load the CAS login page and scrape its flow tokens.

    Raises:
        TransportError: If the page cannot be fetched.
        ExtractionError: If ``lt`` or ``execution`` is missing.
    """
    html = session.fetch_html(config.cas_url, method="GET")
    form = parse_form(html, SELECTORS["cas_login_form"])
    require_fields(form, (CAS_LT, CAS_EXECUTION), "CAS login page")
    return LoginFormContext(
        lt=form[CAS_LT],
        execution=form[CAS_EXECUTION],
        event_id=form.get(CAS_EVENT_ID_SUBMIT, ""),
    )


def submit_credentials(session: Session, config: CASDuoConfig, form: LoginFormContext) -> str:
    """Post username and password with the login page tokens.

    Returns:
        HTML of the page that hosts the Duo widget.
    """
    return session.fetch_html(
        config.cas_url,
        params={
            CAS_USERNAME: config.username,
            CAS_PASSWORD: config.password,
            CAS_LT: form.lt,
            CAS_EXECUTION: form.execution,
            CAS_EVENT_ID_SUBMIT: form.event_id,
        },
    )


def parse_duo_page(html: str) -> tuple[WidgetBootstrapParams, DuoFormContext]:
    """Extract the widget parameters and the CAS tokens of the Duo form.

    Raises:
        ExtractionError: If the widget call or the form tokens are missing.
    """
    widget = extract_widget_params(html)

    form = parse_form(html, SELECTORS["duo_form"])
    require_fields(form, (CAS_LT, CAS_EXECUTION), "CAS Duo page")
    duo_form = DuoFormContext(
        lt=form[CAS_LT],
        execution=form[CAS_EXECUTION],
        event_id=form.get(CAS_EVENT_ID, ""),
    )
    return widget, duo_form


def identity_provider_login(session: Session, config: CASDuoConfig) -> tuple[WidgetBootstrapParams, DuoFormContext]:
    """Run the CAS credential step up to the Duo page.

    Returns:
        Duo widget parameters and the CAS tokens for the final submission.

    Raises:
        TransportError: If a CAS request fails.
        ExtractionError: If a form token or the widget parameters are missing.
    """
    logger.info("Loading CAS login page %s", config.cas_url)
    form = fetch_login_form(session, config)

    logger.info("Submitting credentials for %s", config.username)
    html = submit_credentials(session, config, form)

    widget, duo_form = parse_duo_page(html)
    logger.debug("Duo host: %s", widget.host)
    return widget, duo_form


def submit_assertion(
    session: Session,
    config: CASDuoConfig,
    duo_form: DuoFormContext,
    assertion: SignedAssertion,
) -> requests.Response:
    """Post the signed Duo response back to CAS to finish single sign-on.

    The response body is not inspected; completing without a transport
    error is success.
    """
    logger.info("Submitting signed Duo response to CAS")
    return session.submit_request(
        config.cas_url,
        params={
            CAS_LT: duo_form.lt,
            CAS_EXECUTION: duo_form.execution,
            CAS_EVENT_ID: duo_form.event_id,
            CAS_SIGNED_RESPONSE: assertion.value,
        },
    )
