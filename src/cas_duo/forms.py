"""Parsing utilities for CAS and Duo HTML pages."""

import json
import re
from collections.abc import Iterable

from bs4 import BeautifulSoup, Tag

from .exceptions import ExtractionError
from .models import WidgetBootstrapParams
from .selectors import WIDGET_HOST, WIDGET_INITIALIZER, WIDGET_POST_ARGUMENT, WIDGET_SIG_REQUEST


def parse_form(html: str | BeautifulSoup | Tag, selector: str) -> dict[str, str]:
    """Collect name/value pairs of the inputs matched by a selector.

    Args:
        html: Page HTML, or an already parsed BeautifulSoup/Tag
        selector: CSS selector for the input elements

    Returns:
        Dict of input name to value. The first input with a given name
        wins; inputs without a name are skipped and a missing value
        attribute reads as "".
    """
    soup = html if isinstance(html, Tag) else BeautifulSoup(html, "lxml")

    form: dict[str, str] = {}
    for element in soup.select(selector):
        name = element.get("name")
        if not name or name in form:
            continue
        value = element.get("value")
        form[name] = value if isinstance(value, str) else ""
    return form


def require_fields(form: dict[str, str], names: Iterable[str], context: str) -> None:
    """Raise ExtractionError unless every named field is present and non-empty."""
    missing = [name for name in names if not form.get(name)]
    if missing:
        raise ExtractionError(f"{context}: missing form field(s) {', '.join(missing)}")


def split_signature(sig_request: str) -> tuple[str, str]:
    """Split a combined "<duo signature>:<app signature>" string.

    Only the first colon separates the two halves.

    Raises:
        ExtractionError: If there is no colon or either half is empty.
    """
    duo_signature, sep, app_signature = sig_request.partition(":")
    if not sep or not duo_signature or not app_signature:
        raise ExtractionError("Duo sig_request is not of the form '<duo signature>:<app signature>'")
    return duo_signature, app_signature


def _object_span(text: str, start: int) -> str | None:
    """Return the balanced {...} literal starting at text[start], string aware."""
    depth = 0
    quote = None
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if quote:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == quote:
                quote = None
            continue
        if ch in "'\"":
            quote = ch
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start : i + 1]
    return None


def _normalize_quotes(literal: str) -> str:
    """Rewrite single-quoted JavaScript strings as JSON double-quoted strings."""
    out = []
    quote = None
    escaped = False
    for ch in literal:
        if quote == "'":
            if escaped:
                # \' is not a JSON escape
                out.append(ch if ch == "'" else "\\" + ch)
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == "'":
                out.append('"')
                quote = None
            elif ch == '"':
                out.append('\\"')
            else:
                out.append(ch)
        elif quote == '"':
            out.append(ch)
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                quote = None
        elif ch == "'":
            out.append('"')
            quote = "'"
        else:
            if ch == '"':
                quote = '"'
            out.append(ch)
    return "".join(out)


def extract_initializer_object(html: str, initializer: str = WIDGET_INITIALIZER) -> dict:
    """Decode the object literal passed to an inline initializer call.

    Finds ``<initializer>({...})`` in the page, isolates the argument object,
    converts its quoting to JSON and decodes it. Calls are tried in page
    order and the first one that decodes wins.

    Raises:
        ExtractionError: If the call is absent or its argument does not decode.
    """
    pattern = re.compile(re.escape(initializer) + r"\s*\(\s*")
    decode_error = None

    for match in pattern.finditer(html):
        if not html.startswith("{", match.end()):
            continue
        literal = _object_span(html, match.end())
        if literal is None:
            continue
        try:
            value = json.loads(_normalize_quotes(literal))
        except json.JSONDecodeError as e:
            decode_error = e
            continue
        if isinstance(value, dict):
            return value

    if decode_error is not None:
        raise ExtractionError(f"Could not decode {initializer}() argument: {decode_error}") from decode_error
    raise ExtractionError(f"Could not find {initializer}() call in page")


def extract_widget_params(html: str) -> WidgetBootstrapParams:
    """Extract the Duo widget parameters embedded in the CAS page.

    Raises:
        ExtractionError: If the initializer, host or sig_request is missing,
            or sig_request cannot be split.
    """
    params = extract_initializer_object(html)

    host = params.get(WIDGET_HOST)
    sig_request = params.get(WIDGET_SIG_REQUEST)
    if not host or not isinstance(host, str):
        raise ExtractionError(f"{WIDGET_INITIALIZER}() argument has no '{WIDGET_HOST}'")
    if not sig_request or not isinstance(sig_request, str):
        raise ExtractionError(f"{WIDGET_INITIALIZER}() argument has no '{WIDGET_SIG_REQUEST}'")

    duo_signature, app_signature = split_signature(sig_request)
    return WidgetBootstrapParams(
        host=host,
        duo_signature=duo_signature,
        app_signature=app_signature,
        post_argument=str(params.get(WIDGET_POST_ARGUMENT) or ""),
    )
