"""Test SmmHttpTransport single-exchange behaviour."""

from __future__ import annotations

from unittest.mock import MagicMock

import aiohttp
import pytest

from smm_asset.errors import SmmConnectionError, SmmTimeout
from smm_asset.http import HttpResult, SmmHttpTransport, build_url

from .conftest import create_mock_response, redirect_response


class TestBuildUrl:
    """Tests for host + path joining."""

    def test_joins_host_and_path(self) -> None:
        assert build_url("https://smm.example.org", "/accounts/login/") == (
            "https://smm.example.org/accounts/login/"
        )

    def test_bare_host_uses_http(self) -> None:
        assert build_url("smm.example.org", "/x/") == "http://smm.example.org/x/"


class TestExchange:
    """Tests for SmmHttpTransport.exchange()."""

    async def test_get_success(self, mock_session: MagicMock) -> None:
        """Test a 200 GET carries body and content type."""
        transport = SmmHttpTransport(mock_session)
        mock_session.get.return_value = create_mock_response(
            status=200, json_data={"assets": []}
        )

        result = await transport.exchange("https://smm.example.org", "/assets/mine/json/")

        assert result.success is True
        assert result.status == 200
        assert result.ok
        assert result.url == "https://smm.example.org/assets/mine/json/"
        assert result.content_type == "application/json"
        assert result.redirect_url is None
        assert result.json() == {"assets": []}

        call_args = mock_session.get.call_args
        assert call_args.args[0] == "https://smm.example.org/assets/mine/json/"
        assert call_args.kwargs["allow_redirects"] is False
        mock_session.post.assert_not_called()

    async def test_post_sets_referer_and_form_type(
        self, mock_session: MagicMock
    ) -> None:
        """Test POST sends the body with a referer of the request URL."""
        transport = SmmHttpTransport(mock_session)
        mock_session.post.return_value = redirect_response("/")

        await transport.exchange(
            "https://smm.example.org", "/accounts/login/", "a=1&b=2"
        )

        call_args = mock_session.post.call_args
        assert call_args.args[0] == "https://smm.example.org/accounts/login/"
        assert call_args.kwargs["data"] == "a=1&b=2"
        headers = call_args.kwargs["headers"]
        assert headers["Referer"] == "https://smm.example.org/accounts/login/"
        assert headers["Content-Type"] == "application/x-www-form-urlencoded"
        assert call_args.kwargs["allow_redirects"] is False
        mock_session.get.assert_not_called()

    async def test_get_sends_no_referer(self, mock_session: MagicMock) -> None:
        transport = SmmHttpTransport(mock_session)
        mock_session.get.return_value = create_mock_response(status=200)

        await transport.exchange("https://smm.example.org", "/")

        assert "headers" not in mock_session.get.call_args.kwargs

    @pytest.mark.parametrize("status", [301, 302, 303])
    async def test_redirect_target_resolved(
        self, mock_session: MagicMock, status: int
    ) -> None:
        """Test relative Location headers resolve against the request URL."""
        transport = SmmHttpTransport(mock_session)
        mock_session.get.return_value = redirect_response(
            "/accounts/login/?next=/assets/mine/json/", status=status
        )

        result = await transport.exchange("https://smm.example.org", "/assets/mine/json/")

        assert result.success is True
        assert result.status == status
        assert result.redirect_url == (
            "https://smm.example.org/accounts/login/?next=/assets/mine/json/"
        )
        assert result.content_type is None

    async def test_absolute_redirect_kept(self, mock_session: MagicMock) -> None:
        transport = SmmHttpTransport(mock_session)
        mock_session.get.return_value = redirect_response("https://smm.example.org/x/")

        result = await transport.exchange("http://smm.example.org", "/x/")

        assert result.redirect_url == "https://smm.example.org/x/"

    async def test_redirect_without_location(self, mock_session: MagicMock) -> None:
        transport = SmmHttpTransport(mock_session)
        mock_session.get.return_value = create_mock_response(status=302)

        result = await transport.exchange("https://smm.example.org", "/x/")

        assert result.status == 302
        assert result.redirect_url is None

    async def test_error_status_is_not_success(self, mock_session: MagicMock) -> None:
        """Test status >= 400 reports transport failure with the status kept."""
        transport = SmmHttpTransport(mock_session)
        mock_session.get.return_value = create_mock_response(status=404)

        result = await transport.exchange("https://smm.example.org", "/missing/")

        assert result.success is False
        assert result.status == 404
        assert not result.ok
        assert result.content_type is None

    async def test_discarded_body(self, mock_session: MagicMock) -> None:
        transport = SmmHttpTransport(mock_session)
        response = create_mock_response(status=200, body="ignored")
        mock_session.get.return_value = response

        result = await transport.exchange(
            "https://smm.example.org", "/x/", read_body=False
        )

        assert result.body == b""
        response.read.assert_not_called()

    async def test_timeout_raises_smm_timeout(self, mock_session: MagicMock) -> None:
        transport = SmmHttpTransport(mock_session)
        mock_session.get.side_effect = TimeoutError("Request timed out")

        with pytest.raises(SmmTimeout, match="timed out"):
            await transport.exchange("https://smm.example.org", "/x/")

    async def test_client_error_raises_connection_error(
        self, mock_session: MagicMock
    ) -> None:
        transport = SmmHttpTransport(mock_session)
        mock_session.get.side_effect = aiohttp.ClientError("Connection refused")

        with pytest.raises(SmmConnectionError, match="failed"):
            await transport.exchange("https://smm.example.org", "/x/")

    async def test_uses_configured_timeout(self, mock_session: MagicMock) -> None:
        transport = SmmHttpTransport(mock_session, timeout=7.5)
        mock_session.get.return_value = create_mock_response(status=200)

        await transport.exchange("https://smm.example.org", "/x/")

        timeout = mock_session.get.call_args.kwargs.get("timeout")
        assert timeout is not None
        assert timeout.total == 7.5


class TestHttpResult:
    """Tests for HttpResult helpers."""

    def test_text_decodes_body(self) -> None:
        result = HttpResult(success=True, status=200, url="u", body=b"Continue")
        assert result.text() == "Continue"

    def test_json_raises_on_malformed(self) -> None:
        result = HttpResult(success=True, status=200, url="u", body=b"{nope")
        with pytest.raises(ValueError):
            result.json()

    def test_is_frozen(self) -> None:
        result = HttpResult(success=True, status=200, url="u")
        with pytest.raises(AttributeError):
            result.status = 500  # type: ignore[misc]
