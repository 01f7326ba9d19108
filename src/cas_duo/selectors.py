"""Centralized CSS selectors, Duo endpoints and wire field names.

Field names are part of the contract with CAS and Duo and must be sent
verbatim.
"""

# CSS selectors
SELECTORS = {
    "cas_login_form": "#fm1 .row input",
    "duo_form": "#duo_form .row input",
    "duo_login_form": "#login-form input",
}

# Name of the inline script call that carries the widget parameters
WIDGET_INITIALIZER = "Duo.init"

# Duo endpoint paths (relative to https://<duo host>)
DUO_URL_PATTERNS = {
    "auth": "/frame/web/v1/auth",
    "prompt": "/frame/prompt",
    "status": "/frame/status",
}

DUO_PROTOCOL_VERSION = "2.6"

FORM_URLENCODED = "application/x-www-form-urlencoded"
FORM_DATA = "multipart/form-data"

# CAS form fields
CAS_USERNAME = "username"
CAS_PASSWORD = "password"
CAS_LT = "lt"
CAS_EXECUTION = "execution"
CAS_EVENT_ID_SUBMIT = "_eventId_submit"
CAS_EVENT_ID = "_eventId"
CAS_SIGNED_RESPONSE = "signedDuoResponse"

# Widget parameters embedded in the CAS page
WIDGET_HOST = "host"
WIDGET_SIG_REQUEST = "sig_request"
WIDGET_POST_ARGUMENT = "post_argument"

# Duo frame fields
DUO_TX = "tx"
DUO_PARENT = "parent"
DUO_VERSION = "v"
DUO_SID = "sid"
DUO_PREFERRED_FACTOR = "preferred_factor"
DUO_PREFERRED_DEVICE = "preferred_device"
DUO_FACTOR = "factor"
DUO_DEVICE = "device"
DUO_OUT_OF_DATE = "out_of_date"
DUO_DAYS_OUT_OF_DATE = "days_out_of_date"
DUO_DAYS_TO_BLOCK = "days_to_block"
DUO_DAYS_TO_BLOCK_VALUE = "None"
DUO_TXID = "txid"

# Duo JSON responses
DUO_STAT_OK = "OK"
STATUS_ALLOW = "allow"
STATUS_PUSHED = "pushed"


def duo_url(host: str, endpoint: str) -> str:
    """Build an absolute Duo frame URL.

    Args:
        host: Duo API host (e.g., api-1234abcd.duosecurity.com)
        endpoint: Key of DUO_URL_PATTERNS

    Returns:
        HTTPS URL for the endpoint on that host.
    """
    return f"https://{host}{DUO_URL_PATTERNS[endpoint]}"
