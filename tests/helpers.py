"""Shared test constants and builders."""

CAS_URL = "https://sso.example.edu/cas/login"
DUO_HOST = "api-1234abcd.duosecurity.com"
APP_SIGNATURE = "APP|dXNlcnxhcHB8MTYwOTQ2Mjgw|fedcba9876543210"
DUO_SIGNATURE = "TX|dXNlcnx0eHwxNjA5NDU5MjAw|0123456789abcdef"


def status(code, cookie=None, message=""):
    """Build a /frame/status JSON body."""
    response = {"status_code": code, "status": message}
    if cookie is not None:
        response["cookie"] = cookie
    return {"stat": "OK", "response": response}


def prompt(stat="OK", txid="tx-42"):
    """Build a /frame/prompt JSON body."""
    if stat != "OK":
        return {"stat": stat, "message": "Unable to send push", "code": 40002}
    return {"stat": stat, "response": {"txid": txid}}
