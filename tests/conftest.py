"""Pytest configuration and fixtures for smm_asset tests."""

from __future__ import annotations

import json
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from smm_asset import SmmConnection

HOST = "https://smm.example.org"

LOGIN_PAGE = """<!DOCTYPE html>
<html>
<head><title>Log in</title></head>
<body>
<form method="post" action="/accounts/login/">
  <input type="hidden" name="next" value="/">
  <input type="hidden" name="csrfmiddlewaretoken" value="tok-abc123">
  <p><label>Username</label><input type="text" name="username"></p>
  <p><label>Password</label><input type="password" name="password"></p>
  <input type="submit" value="Log in">
</form>
</body>
</html>
"""


@pytest.fixture
def mock_session() -> MagicMock:
    """Create a mock aiohttp ClientSession."""
    import aiohttp

    return MagicMock(spec=aiohttp.ClientSession)


@pytest.fixture
def connection(mock_session: MagicMock) -> SmmConnection:
    """Connection over HTTPS that borrows the mock session."""
    return SmmConnection(HOST, "operator", "s3cret pass", session=mock_session)


def create_mock_response(
    status: int = 200,
    body: bytes | str | None = None,
    json_data: Any = None,
    content_type: str = "text/html",
    location: str | None = None,
) -> AsyncMock:
    """Create a configured mock response.

    Args:
        status: HTTP status code
        body: Raw body returned from read()
        json_data: Serialized to the body; sets the JSON content type
        content_type: Response MIME type
        location: Location header for redirects

    Returns:
        Configured AsyncMock response usable with ``async with``
    """
    response = AsyncMock()
    response.status = status

    if json_data is not None:
        body = json.dumps(json_data)
        content_type = "application/json"
    if isinstance(body, str):
        body = body.encode()

    response.read.return_value = body or b""
    response.content_type = content_type
    response.headers = {"Location": location} if location else {}

    response.__aenter__.return_value = response
    response.__aexit__.return_value = None

    return response


def login_page_response() -> AsyncMock:
    return create_mock_response(status=200, body=LOGIN_PAGE)


def redirect_response(location: str, status: int = 302) -> AsyncMock:
    return create_mock_response(status=status, location=location)
