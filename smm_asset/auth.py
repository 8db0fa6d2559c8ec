"""Login form helpers for the SMM account pages."""

from __future__ import annotations

from enum import Enum
from typing import Final
from urllib.parse import urlencode

from bs4 import BeautifulSoup, Tag

LOGIN_PATH: Final = "/accounts/login/"
LOGIN_REDIRECT_MARKER: Final = "accounts/login"
CSRF_FIELD: Final = "csrfmiddlewaretoken"


class LoginStage(Enum):
    """Steps of the login procedure, used for diagnostics."""

    FETCHING_FORM = "fetching_form"
    TOKEN_EXTRACTED = "token_extracted"
    AUTHENTICATED = "authenticated"
    FAILED = "failed"


def extract_csrf_token(html: str | bytes) -> str | None:
    """Return the value of the first csrfmiddlewaretoken input, in document order.

    Inputs named csrfmiddlewaretoken without a value attribute are skipped.
    The parser repairs malformed markup, so unclosed forms and stray tags
    still yield the token.
    """
    soup = BeautifulSoup(html, "html.parser")
    for node in soup.descendants:
        if not isinstance(node, Tag) or node.name != "input":
            continue
        value = node.get("value")
        if node.get("name") == CSRF_FIELD and isinstance(value, str):
            return value
    return None


def build_login_form(token: str, username: str, password: str) -> str:
    """URL-encode the login POST body."""
    return urlencode(
        [
            (CSRF_FIELD, token),
            ("username", username),
            ("password", password),
        ]
    )
