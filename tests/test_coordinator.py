"""
Tests for the request coordinator.

Uses respx for mocking HTTP requests. Covers the two failure classes, the
separate body-completion wait, and the async context manager contract.
"""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, patch

import httpx
import pytest
import respx
from httpx import Response

from conftest import LEDGER_URL, form_fields
from playvested.config import ClientConfig
from playvested.coordinator import RequestCoordinator
from playvested.errors import Failure, Success


class SlowStream(httpx.AsyncByteStream):
    """Response body that trickles in, optionally breaking halfway."""

    def __init__(self, chunks: list[bytes], delay: float, fail: bool = False) -> None:
        self._chunks = chunks
        self._delay = delay
        self._fail = fail

    async def __aiter__(self):
        for chunk in self._chunks:
            await asyncio.sleep(self._delay)
            yield chunk
        if self._fail:
            raise httpx.ReadError("connection reset while reading body")


# =============================================================================
# LIFECYCLE
# =============================================================================


class TestCoordinatorLifecycle:
    def test_requires_context_manager(self, config: ClientConfig):
        coordinator = RequestCoordinator(config)

        with pytest.raises(RuntimeError, match="async context manager"):
            _ = coordinator.http_client

    @pytest.mark.asyncio
    async def test_context_manager_opens_and_closes(self, config: ClientConfig):
        async with RequestCoordinator(config) as coordinator:
            assert coordinator.is_open is True
            assert str(coordinator.http_client.base_url).startswith(LEDGER_URL)

        assert coordinator.is_open is False

    @pytest.mark.asyncio
    async def test_no_timeout_by_default(self, coordinator: RequestCoordinator):
        timeout = coordinator.http_client.timeout

        assert timeout.connect is None
        assert timeout.read is None


# =============================================================================
# SUCCESS
# =============================================================================


class TestCoordinatorSuccess:
    @pytest.mark.asyncio
    @respx.mock
    async def test_get_returns_body(self, coordinator: RequestCoordinator):
        respx.get(f"{LEDGER_URL}/players/p1/is-linked").mock(
            return_value=Response(200, text="true")
        )

        outcome = await coordinator.execute("GET", "/players/p1/is-linked")

        assert outcome == Success("true")

    @pytest.mark.asyncio
    @respx.mock
    async def test_post_sends_form_fields(self, coordinator: RequestCoordinator):
        route = respx.post(f"{LEDGER_URL}/players").mock(return_value=Response(201, text="pid-1"))

        outcome = await coordinator.execute(
            "POST", "/players", {"charityName": "Red Cross", "gameID": "g1"}
        )

        assert outcome == Success("pid-1")
        request = route.calls.last.request
        assert request.headers["content-type"] == "application/x-www-form-urlencoded"
        assert form_fields(request) == {"charityName": "Red Cross", "gameID": "g1"}

    @pytest.mark.asyncio
    @respx.mock
    async def test_query_string_is_kept(self, coordinator: RequestCoordinator):
        route = respx.get(f"{LEDGER_URL}/records/total").mock(
            return_value=Response(200, json={"lifetime": 1, "filtered": 0})
        )

        await coordinator.execute("GET", "/records/total?gameID=g1&previousWeeks=3")

        assert str(route.calls.last.request.url) == (
            f"{LEDGER_URL}/records/total?gameID=g1&previousWeeks=3"
        )

    @pytest.mark.asyncio
    @respx.mock
    async def test_waits_for_slow_body_without_blocking(self, coordinator: RequestCoordinator):
        respx.get(f"{LEDGER_URL}/slow").mock(
            return_value=Response(200, stream=SlowStream([b"pid-", b"slow"], delay=0.02))
        )
        ticks = 0

        async def ticker() -> None:
            nonlocal ticks
            for _ in range(5):
                await asyncio.sleep(0.005)
                ticks += 1

        outcome, _ = await asyncio.gather(coordinator.execute("GET", "/slow"), ticker())

        assert outcome == Success("pid-slow")
        assert ticks == 5


# =============================================================================
# TRANSPORT FAILURES
# =============================================================================


class TestCoordinatorFailures:
    @pytest.mark.parametrize("status", [301, 400, 404, 500, 503])
    @pytest.mark.asyncio
    @respx.mock
    async def test_non_2xx_is_transport_failure(self, coordinator: RequestCoordinator, status):
        respx.post(f"{LEDGER_URL}/records").mock(
            return_value=Response(status, text="ledger says no")
        )

        with patch.object(
            RequestCoordinator, "_wait_for_body", AsyncMock(side_effect=AssertionError)
        ) as wait:
            outcome = await coordinator.execute("POST", "/records", {"amountEarned": "1"})

        assert isinstance(outcome, Failure)
        assert outcome.error.status_code == status
        wait.assert_not_called()

    @pytest.mark.parametrize(
        "exc", [httpx.ConnectError, httpx.TimeoutException, httpx.RemoteProtocolError]
    )
    @pytest.mark.asyncio
    @respx.mock
    async def test_network_errors_become_failures(self, coordinator: RequestCoordinator, exc):
        respx.get(f"{LEDGER_URL}/players/p1/is-linked").mock(side_effect=exc)

        outcome = await coordinator.execute("GET", "/players/p1/is-linked")

        assert isinstance(outcome, Failure)
        assert outcome.error.status_code == 0
        assert "Cannot reach ledger" in outcome.error.detail

    @pytest.mark.asyncio
    @respx.mock
    async def test_broken_body_is_transport_failure(self, coordinator: RequestCoordinator):
        respx.get(f"{LEDGER_URL}/broken").mock(
            return_value=Response(200, stream=SlowStream([b"par"], delay=0.001, fail=True))
        )

        outcome = await coordinator.execute("GET", "/broken")

        assert isinstance(outcome, Failure)
        assert outcome.error.status_code == 200
        assert "Body download failed" in outcome.error.detail

    @pytest.mark.asyncio
    @respx.mock
    async def test_failure_is_logged(self, coordinator: RequestCoordinator, caplog):
        respx.get(f"{LEDGER_URL}/down").mock(return_value=Response(502))

        with caplog.at_level("WARNING", logger="playvested.coordinator"):
            await coordinator.execute("GET", "/down")

        assert "Ledger transport failure" in caplog.text

    @pytest.mark.asyncio
    @respx.mock
    async def test_unbuildable_url_is_transport_failure(self, coordinator: RequestCoordinator):
        outcome = await coordinator.execute("GET", "/players/p\n1/is-linked")

        assert isinstance(outcome, Failure)
        assert outcome.error.status_code == 0
        assert "Invalid request URL" in outcome.error.detail
        assert respx.calls.call_count == 0

    @pytest.mark.asyncio
    async def test_closed_coordinator_is_transport_failure(self, config: ClientConfig):
        async with RequestCoordinator(config) as coordinator:
            pass

        outcome = await coordinator.execute("POST", "/records", {"amountEarned": "1"})

        assert isinstance(outcome, Failure)
        assert outcome.error.detail == "Coordinator is closed"

    @pytest.mark.asyncio
    async def test_never_opened_coordinator_is_transport_failure(self, config: ClientConfig):
        outcome = await RequestCoordinator(config).execute("GET", "/records/total")

        assert isinstance(outcome, Failure)
        assert outcome.error.status_code == 0
