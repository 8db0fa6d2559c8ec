"""Authenticated session with a Search Management Map server.

The connection owns one aiohttp session so that the server's session and
CSRF cookies persist across calls. It handles:
- Login via the account form (CSRF token + credentials)
- Redirect handling: HTTP to HTTPS upgrade and re-login on session expiry
- Bounded retries (at most MAX_ATTEMPTS exchanges per call)
- Advisory connection state for callers

All exchanges on one connection are serialized behind a lock, held for the
whole call including any login a redirect triggers.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Any, Final
from urllib.parse import urlsplit

import aiohttp

from .asset import SmmAsset
from .auth import (
    LOGIN_PATH,
    LOGIN_REDIRECT_MARKER,
    LoginStage,
    build_login_form,
    extract_csrf_token,
)
from .config import SmmConfig
from .errors import SmmClientError
from .http import HTTP_FOUND, HttpResult, SmmHttpTransport, build_url
from .protocol import ASSETS_PATH, parse_assets

_LOGGER = logging.getLogger(__name__)

MAX_ATTEMPTS: Final = 3

_HTTPS: Final = "https://"


class ConnectionState(Enum):
    """Advisory connection state."""

    UNKNOWN = "unknown"
    CONNECTED = "connected"
    HOST_INVALID = "host_invalid"
    NO_HOST_CONNECTION = "no_host_connection"
    AUTHENTICATION_FAILURE = "authentication_failure"
    FAILURE = "failure"


def upgrade_host(host: str) -> str:
    """Return host rewritten to the https scheme."""
    scheme, sep, rest = host.partition("://")
    if sep and scheme.lower() == "http":
        return _HTTPS + rest
    return _HTTPS + host


def _is_https(url: str) -> bool:
    return urlsplit(url).scheme == "https"


def _debug_logger(host: str) -> logging.Logger:
    """Return a DEBUG-level logger scoped to one host."""
    name = (urlsplit(build_url(host, "")).hostname or "host").replace(".", "_")
    logger = _LOGGER.getChild(name)
    logger.setLevel(logging.DEBUG)
    return logger


def _is_login_redirect(redirect_url: str) -> bool:
    return LOGIN_REDIRECT_MARKER in urlsplit(redirect_url).path


def is_valid_host(host: str) -> bool:
    """Check for an http(s) URL with a hostname (bare hosts count as http)."""
    try:
        parts = urlsplit(build_url(host, ""))
    except ValueError:
        return False
    return parts.scheme in ("http", "https") and bool(parts.hostname)


class SmmConnection:
    """Session with an SMM server for one asset operator.

    Usage:
        conn = await SmmConnection.connect("https://smm.example.org", "user", "pass")
        if conn.state is ConnectionState.CONNECTED:
            assets = await conn.get_assets()
        await conn.close()
    """

    def __init__(
        self,
        host: str,
        username: str,
        password: str,
        *,
        session: aiohttp.ClientSession | None = None,
        verify_ssl: bool = True,
        timeout: float = 30.0,
        logger: logging.Logger | None = None,
    ) -> None:
        """Initialize connection without touching the network.

        Args:
            host: Server base URL, e.g. "https://smm.example.org"
            username: Account username
            password: Account password
            session: Optional caller-owned aiohttp session; it is not closed
                by close()
            verify_ssl: Verify server TLS certificates. Only applies to the
                session the connection creates; a borrowed session keeps its
                own connector settings
            timeout: Per-request timeout (seconds)
            logger: Logger for this connection; defaults to the module logger
        """
        self._logger = logger or _LOGGER
        self._host = host
        self._username = username
        self._password = password
        self._csrf_token: str | None = None
        self._state = ConnectionState.UNKNOWN
        self._lock = asyncio.Lock()
        self._closed = False

        self._verify_ssl = verify_ssl
        self._timeout = timeout
        self._session = session
        self._owns_session = session is None
        self._transport: SmmHttpTransport | None = None
        if session is not None:
            self._transport = SmmHttpTransport(session, timeout=timeout)

        if not verify_ssl and session is None:
            self._logger.warning(
                "[%s] TLS certificate verification is disabled", self._host
            )

    @classmethod
    async def connect(
        cls, host: str, username: str, password: str, **kwargs: Any
    ) -> SmmConnection:
        """Create a connection and log in; check state for the outcome."""
        connection = cls(host, username, password, **kwargs)
        await connection.login()
        return connection

    @classmethod
    async def from_config(
        cls, config: SmmConfig, *, session: aiohttp.ClientSession | None = None
    ) -> SmmConnection:
        """Create and log in a connection from loaded configuration.

        With config.debug set, only this connection logs at DEBUG level.
        """
        return await cls.connect(
            config.host,
            config.username,
            config.password,
            session=session,
            verify_ssl=config.verify_ssl,
            timeout=config.timeout,
            logger=_debug_logger(config.host) if config.debug else None,
        )

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def host(self) -> str:
        """Server base URL; rewritten in place on HTTPS upgrade."""
        return self._host

    @property
    def state(self) -> ConnectionState:
        """Outcome of the most recent call.

        FAILURE after a server error clears on the next successful response.
        """
        return self._state

    @property
    def logger(self) -> logging.Logger:
        return self._logger

    @property
    def csrf_token(self) -> str | None:
        return self._csrf_token

    @property
    def is_connected(self) -> bool:
        return self._state is ConnectionState.CONNECTED

    @property
    def is_closed(self) -> bool:
        return self._closed

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def close(self) -> None:
        """Release the transport and forget credentials."""
        if self._closed:
            return
        self._closed = True
        self._logger.debug("[%s] Closing connection", self._host)

        # Wait for any in-flight exchange before tearing down the session
        async with self._lock:
            if self._owns_session and self._session is not None:
                await self._session.close()
            self._session = None
            self._transport = None

        self._username = ""
        self._password = ""
        self._csrf_token = None
        self._state = ConnectionState.UNKNOWN

    async def __aenter__(self) -> SmmConnection:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    async def login(self) -> bool:
        """Authenticate with the server's account form.

        Returns:
            True if the server accepted the credentials
        """
        if not self._check_usable():
            return False
        async with self._lock:
            return await self._login()

    async def retrieve(
        self,
        path: str,
        post_body: str | None = None,
        *,
        read_body: bool = True,
    ) -> HttpResult | None:
        """Fetch path relative to host, resolving redirects the client understands.

        Args:
            path: Absolute path on the server, including any query string
            post_body: URL-encoded form body; sends a POST when given
            read_body: Keep the response body; False discards it

        Returns:
            Result of the last exchange, or None if no response was obtained
        """
        if not self._check_usable():
            return None
        async with self._lock:
            return await self._retrieve(
                path, post_body, read_body=read_body, allow_login=True
            )

    async def get_assets(self) -> list[SmmAsset] | None:
        """List the assets visible to this account.

        Returns:
            Assets in server order, or None if the listing could not be fetched
        """
        result = await self.retrieve(ASSETS_PATH)
        if result is None or not result.ok:
            return None

        try:
            payload = result.json()
        except ValueError as err:
            self._logger.warning(
                "[%s] Malformed asset listing: %s", self._host, err
            )
            return []

        return [SmmAsset(self, record) for record in parse_assets(payload)]

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _check_usable(self) -> bool:
        if self._closed:
            self._logger.debug("Connection used after close")
            return False
        if self._state is ConnectionState.HOST_INVALID:
            return False
        if not is_valid_host(self._host):
            self._logger.error("[%s] Host is not a valid http(s) URL", self._host)
            self._set_state(ConnectionState.HOST_INVALID)
            return False
        return True

    def _set_state(self, state: ConnectionState) -> None:
        if state is not self._state:
            self._logger.debug(
                "[%s] State %s -> %s", self._host, self._state.value, state.value
            )
        self._state = state

    def _ensure_transport(self) -> SmmHttpTransport:
        if self._transport is None:
            self._session = aiohttp.ClientSession(
                connector=aiohttp.TCPConnector(ssl=self._verify_ssl),
                cookie_jar=aiohttp.CookieJar(unsafe=True),
            )
            self._transport = SmmHttpTransport(self._session, timeout=self._timeout)
        return self._transport

    async def _exchange(
        self, path: str, post_body: str | None, read_body: bool
    ) -> HttpResult | None:
        try:
            result = await self._ensure_transport().exchange(
                self._host, path, post_body, read_body=read_body
            )
        except SmmClientError as err:
            self._logger.warning("[%s] %s", self._host, err)
            return None
        self._logger.debug("[%s] %s -> %d", self._host, path, result.status)
        return result

    async def _retrieve(
        self,
        path: str,
        post_body: str | None,
        *,
        read_body: bool,
        allow_login: bool,
    ) -> HttpResult | None:
        result = await self._exchange(path, post_body, read_body)
        attempts = 1
        while result is not None and attempts < MAX_ATTEMPTS:
            if not (
                result.success
                and result.status == HTTP_FOUND
                and result.redirect_url
            ):
                break
            self._logger.debug(
                "[%s] Redirected to %s accessing %s",
                self._host,
                result.redirect_url,
                path,
            )
            if not await self._resolve_redirect(result.redirect_url, allow_login):
                break
            attempts += 1
            result = await self._exchange(path, post_body, read_body)

        if result is not None:
            if result.status >= 500:
                self._set_state(ConnectionState.FAILURE)
            elif result.ok and self._state is ConnectionState.FAILURE:
                self._set_state(ConnectionState.CONNECTED)
        return result

    async def _resolve_redirect(self, redirect_url: str, allow_login: bool) -> bool:
        """Apply a corrective action for a redirect; True means retry."""
        if not _is_https(self._host) and _is_https(redirect_url):
            self._host = upgrade_host(self._host)
            self._logger.info("[%s] Upgraded to https", self._host)
            return True

        if _is_login_redirect(redirect_url):
            if not allow_login:
                self._logger.debug("[%s] Login redirect during login", self._host)
                return False
            self._logger.info("[%s] Session expired, logging in again", self._host)
            return await self._login()

        return False

    async def _login(self) -> bool:
        self._logger.debug("[%s] Login: %s", self._host, LoginStage.FETCHING_FORM.value)
        form = await self._retrieve(
            LOGIN_PATH, None, read_body=True, allow_login=False
        )
        if form is None or not form.ok:
            self._logger.warning(
                "[%s] Could not fetch login form (status %s)",
                self._host,
                form.status if form is not None else None,
            )
            self._set_state(ConnectionState.NO_HOST_CONNECTION)
            self._logger.debug("[%s] Login: %s", self._host, LoginStage.FAILED.value)
            return False

        token = extract_csrf_token(form.body)
        if token is not None:
            self._csrf_token = token
        if self._csrf_token is None:
            self._logger.warning("[%s] Login form has no CSRF token", self._host)
            self._logger.debug("[%s] Login: %s", self._host, LoginStage.FAILED.value)
            return False
        self._logger.debug(
            "[%s] Login: %s", self._host, LoginStage.TOKEN_EXTRACTED.value
        )

        body = build_login_form(self._csrf_token, self._username, self._password)
        result = await self._retrieve(
            LOGIN_PATH, body, read_body=False, allow_login=False
        )
        if result is not None and result.success and result.status == HTTP_FOUND:
            self._set_state(ConnectionState.CONNECTED)
            self._logger.debug(
                "[%s] Login: %s", self._host, LoginStage.AUTHENTICATED.value
            )
            return True

        self._logger.warning("[%s] Authentication failed", self._host)
        self._set_state(ConnectionState.AUTHENTICATION_FAILURE)
        self._logger.debug("[%s] Login: %s", self._host, LoginStage.FAILED.value)
        return False
