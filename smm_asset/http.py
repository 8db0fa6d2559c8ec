"""HTTP transport for Search Management Map server endpoints."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Final
from urllib.parse import urljoin

import aiohttp

from .errors import SmmConnectionError, SmmTimeout

HTTP_OK: Final = 200
HTTP_FOUND: Final = 302
REDIRECT_STATUSES: Final = frozenset({301, 302, 303})

FORM_CONTENT_TYPE: Final = "application/x-www-form-urlencoded"
JSON_CONTENT_TYPE: Final = "application/json"


def build_url(host: str, path: str) -> str:
    """Join host and path, requesting plain http for scheme-less hosts."""
    if "://" not in host:
        host = f"http://{host}"
    return f"{host}{path}"


@dataclass(frozen=True, slots=True)
class HttpResult:
    """Outcome of a single request/response exchange.

    Attributes:
        success: Transport-level success. False for status >= 400.
        status: HTTP status code.
        url: Absolute URL that was requested.
        redirect_url: Resolved Location target, only for 301/302/303.
        content_type: Response MIME type, only for 200.
        body: Response body, empty when the body was discarded.
    """

    success: bool
    status: int
    url: str
    redirect_url: str | None = None
    content_type: str | None = None
    body: bytes = b""

    @property
    def ok(self) -> bool:
        """Return True for a successful 200 response."""
        return self.success and self.status == HTTP_OK

    @property
    def is_json(self) -> bool:
        return self.content_type == JSON_CONTENT_TYPE

    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")

    def json(self) -> Any:
        """Decode the body as JSON, raising ValueError when malformed."""
        return json.loads(self.body)


class SmmHttpTransport:
    """Single-exchange HTTP wrapper around a cookie-keeping aiohttp session."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        *,
        timeout: float = 30.0,
    ) -> None:
        self._session = session
        self._timeout = timeout

    @property
    def session(self) -> aiohttp.ClientSession:
        return self._session

    async def exchange(
        self,
        host: str,
        path: str,
        post_body: str | None = None,
        *,
        read_body: bool = True,
    ) -> HttpResult:
        """Perform one GET (or POST when post_body is given) without following redirects.

        Raises:
            SmmTimeout: If the request times out
            SmmConnectionError: If no response could be obtained
        """
        url = build_url(host, path)
        try:
            async with self._request(url, post_body) as resp:
                status = resp.status
                redirect_url = None
                content_type = None
                if status in REDIRECT_STATUSES:
                    location = resp.headers.get("Location")
                    if location:
                        redirect_url = urljoin(url, location)
                elif status == HTTP_OK:
                    content_type = resp.content_type
                body = await resp.read() if read_body else b""
        except TimeoutError as err:
            raise SmmTimeout(f"Request to {url} timed out") from err
        except aiohttp.ClientError as err:
            raise SmmConnectionError(f"Request to {url} failed") from err

        return HttpResult(
            success=status < 400,
            status=status,
            url=url,
            redirect_url=redirect_url,
            content_type=content_type,
            body=body,
        )

    def _request(self, url: str, post_body: str | None) -> Any:
        timeout = aiohttp.ClientTimeout(total=self._timeout)
        if post_body is not None:
            return self._session.post(
                url,
                data=post_body,
                headers={"Referer": url, "Content-Type": FORM_CONTENT_TYPE},
                allow_redirects=False,
                timeout=timeout,
            )
        return self._session.get(
            url,
            allow_redirects=False,
            timeout=timeout,
        )
