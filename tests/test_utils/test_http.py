from __future__ import annotations

import time
import httpx
import pytest
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

from depbound.utils.http import HTTPClient, _registry_detail, _retry_after
from depbound.exceptions import NetworkError, RegistryError

URL = "https://crates.io/api/v1/crates/serde"


def _response(status_code: int = 200, **attrs: Any) -> MagicMock:
    response = MagicMock(spec=httpx.Response)
    response.status_code = status_code
    response.headers = attrs.pop("headers", {})
    for key, value in attrs.items():
        setattr(response, key, value)
    return response


def _error_response(status_code: int, body: Any = None) -> MagicMock:
    response = _response(status_code, text=f"Error {status_code}")
    if body is None:
        response.json.side_effect = ValueError("no json")
    else:
        response.json.return_value = body
    return response


@pytest.mark.unit
class TestHTTPClientInit:
    """Tests for HTTPClient initialization and configuration."""

    def test_default_values(self) -> None:
        """Test defaults follow the crates.io crawler policy."""
        client = HTTPClient()

        assert client.timeout == 30
        assert client.max_retries == 3
        assert client.rate_limit_delay == 1.0
        assert client.verify_ssl is True
        assert client.max_concurrency == 10
        assert client.user_agent.startswith("depbound/")
        assert client._client is None

    def test_custom_user_agent(self) -> None:
        assert HTTPClient(user_agent="custom/1.0").user_agent == "custom/1.0"


@pytest.mark.unit
class TestHTTPClientLifecycle:
    @pytest.mark.asyncio
    async def test_context_manager_opens_and_closes(self) -> None:
        client = HTTPClient(rate_limit_delay=0)

        async with client:
            assert isinstance(client._client, httpx.AsyncClient)
            assert client._client.headers["Accept"] == "application/json"
            assert client._client.headers["User-Agent"] == client.user_agent

        assert client._client is None

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self) -> None:
        client = HTTPClient()

        await client.close()
        await client.close()

        assert client._client is None


@pytest.mark.unit
class TestRateLimit:
    @pytest.mark.asyncio
    async def test_disabled(self) -> None:
        client = HTTPClient(rate_limit_delay=0)

        with patch("asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            await client._rate_limit()
            await client._rate_limit()

        mock_sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_second_request_waits(self) -> None:
        client = HTTPClient(rate_limit_delay=1.0)
        client._last_request_time = time.time()

        with patch("asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            await client._rate_limit()

        mock_sleep.assert_awaited_once()
        assert 0 < mock_sleep.await_args[0][0] <= 1.0


@pytest.mark.unit
class TestGet:
    """Tests for HTTPClient.get retry logic."""

    @pytest.mark.asyncio
    async def test_success(self) -> None:
        client = HTTPClient(rate_limit_delay=0)

        with patch.object(httpx.AsyncClient, "request", new_callable=AsyncMock) as mock_request:
            mock_request.return_value = _response(200)

            async with client:
                response = await client.get(URL)

        assert response.status_code == 200
        mock_request.assert_awaited_once_with("GET", URL)

    @pytest.mark.asyncio
    async def test_404_raises_registry_error(self) -> None:
        client = HTTPClient(rate_limit_delay=0)

        with patch.object(httpx.AsyncClient, "request", new_callable=AsyncMock) as mock_request:
            mock_request.return_value = _error_response(
                404, {"errors": [{"detail": "crate `nope` does not exist"}]}
            )

            async with client:
                with pytest.raises(RegistryError) as exc_info:
                    await client.get(URL)

        assert exc_info.value.status_code == 404
        assert "crate `nope` does not exist" in exc_info.value.message
        assert mock_request.await_count == 1

    @pytest.mark.asyncio
    async def test_429_honors_retry_after(self) -> None:
        client = HTTPClient(rate_limit_delay=0, max_retries=1)

        with patch.object(
            httpx.AsyncClient, "request", new_callable=AsyncMock
        ) as mock_request, patch("asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            mock_request.side_effect = [
                _response(429, headers={"Retry-After": "7"}),
                _response(200),
            ]

            async with client:
                response = await client.get(URL)

        assert response.status_code == 200
        mock_sleep.assert_awaited_once_with(7)

    @pytest.mark.asyncio
    async def test_429_gives_up(self) -> None:
        client = HTTPClient(rate_limit_delay=0)
        client._max_429_retries = 2

        with patch.object(
            httpx.AsyncClient, "request", new_callable=AsyncMock
        ) as mock_request, patch("asyncio.sleep", new_callable=AsyncMock):
            mock_request.return_value = _response(429, headers={"Retry-After": "0"})

            async with client:
                with pytest.raises(NetworkError, match="Rate limit exceeded") as exc_info:
                    await client.get(URL)

        assert exc_info.value.status_code == 429
        assert mock_request.await_count == 3

    @pytest.mark.asyncio
    async def test_timeout_retries_then_succeeds(self) -> None:
        client = HTTPClient(rate_limit_delay=0, max_retries=2)

        with patch.object(
            httpx.AsyncClient, "request", new_callable=AsyncMock
        ) as mock_request, patch("asyncio.sleep", new_callable=AsyncMock):
            mock_request.side_effect = [httpx.TimeoutException("slow"), _response(200)]

            async with client:
                response = await client.get(URL)

        assert response.status_code == 200
        assert mock_request.await_count == 2

    @pytest.mark.asyncio
    async def test_network_errors_exhaust_retries(self) -> None:
        client = HTTPClient(rate_limit_delay=0, max_retries=1)

        with patch.object(
            httpx.AsyncClient, "request", new_callable=AsyncMock
        ) as mock_request, patch("asyncio.sleep", new_callable=AsyncMock):
            mock_request.side_effect = httpx.ConnectError("refused")

            async with client:
                with pytest.raises(NetworkError, match="after 2 attempts") as exc_info:
                    await client.get(URL)

        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)
        assert mock_request.await_count == 2

    @pytest.mark.asyncio
    async def test_4xx_not_retried(self) -> None:
        client = HTTPClient(rate_limit_delay=0)

        with patch.object(httpx.AsyncClient, "request", new_callable=AsyncMock) as mock_request:
            mock_request.return_value = _error_response(403)

            async with client:
                with pytest.raises(NetworkError) as exc_info:
                    await client.get(URL)

        assert exc_info.value.status_code == 403
        assert mock_request.await_count == 1

    @pytest.mark.asyncio
    async def test_5xx_retried(self) -> None:
        client = HTTPClient(rate_limit_delay=0, max_retries=1)

        with patch.object(
            httpx.AsyncClient, "request", new_callable=AsyncMock
        ) as mock_request, patch("asyncio.sleep", new_callable=AsyncMock):
            mock_request.side_effect = [_error_response(503), _response(200)]

            async with client:
                response = await client.get(URL)

        assert response.status_code == 200


@pytest.mark.unit
class TestGetJson:
    """Tests for HTTPClient.get_json."""

    @pytest.mark.asyncio
    async def test_returns_object(self) -> None:
        client = HTTPClient(rate_limit_delay=0)
        response = _response(200)
        response.json.return_value = {"crate": {"id": "serde"}}

        with patch.object(httpx.AsyncClient, "request", new_callable=AsyncMock) as mock_request:
            mock_request.return_value = response

            async with client:
                data = await client.get_json(URL)

        assert data == {"crate": {"id": "serde"}}

    @pytest.mark.asyncio
    async def test_invalid_json(self) -> None:
        client = HTTPClient(rate_limit_delay=0)
        response = _response(200, text="<html>")
        response.json.side_effect = ValueError("no json")

        with patch.object(httpx.AsyncClient, "request", new_callable=AsyncMock) as mock_request:
            mock_request.return_value = response

            async with client:
                with pytest.raises(NetworkError, match="Invalid JSON"):
                    await client.get_json(URL)

    @pytest.mark.asyncio
    async def test_non_object_json(self) -> None:
        client = HTTPClient(rate_limit_delay=0)
        response = _response(200, text="[]")
        response.json.return_value = []

        with patch.object(httpx.AsyncClient, "request", new_callable=AsyncMock) as mock_request:
            mock_request.return_value = response

            async with client:
                with pytest.raises(NetworkError, match="Expected JSON object"):
                    await client.get_json(URL)


@pytest.mark.unit
class TestResponseHelpers:
    """Tests for the crates.io response helpers."""

    def test_registry_detail(self) -> None:
        response = _error_response(
            403, {"errors": [{"detail": "first"}, {"detail": "second"}, {"code": 1}]}
        )

        assert _registry_detail(response) == "first; second"

    @pytest.mark.parametrize("body", [None, [], {"errors": "x"}, {"errors": []}])
    def test_registry_detail_missing(self, body: Any) -> None:
        assert _registry_detail(_error_response(403, body)) is None

    @pytest.mark.parametrize(
        "headers, expected",
        [
            ({}, 1),
            ({"Retry-After": "30"}, 30),
            ({"Retry-After": "-5"}, 0),
            ({"Retry-After": "Wed, 21 Oct 2026 07:28:00 GMT"}, 1),
        ],
    )
    def test_retry_after(self, headers: Any, expected: int) -> None:
        assert _retry_after(_response(429, headers=headers)) == expected

    @pytest.mark.asyncio
    async def test_4xx_uses_registry_detail(self) -> None:
        client = HTTPClient(rate_limit_delay=0)
        response = _error_response(403, {"errors": [{"detail": "missing user agent"}]})

        with patch.object(httpx.AsyncClient, "request", new_callable=AsyncMock) as mock_request:
            mock_request.return_value = response

            async with client:
                with pytest.raises(NetworkError, match="missing user agent"):
                    await client.get(URL)
