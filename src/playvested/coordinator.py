"""
Request coordination for the PlayVested ledger.

This module provides the one place where the client waits on the network.
``RequestCoordinator.execute`` performs exactly one HTTP exchange and returns
an outcome instead of raising:

    Success(body)    - 2xx response, body fully downloaded
    Failure(error)   - connection/protocol error, non-2xx status, a URL that
                       cannot be built, or a closed coordinator

The exchange completes in two steps that are signalled separately:

    1. the call itself (status line and headers) finishes
    2. the body finishes downloading

The response is opened in streaming mode so step 1 can be judged before any
body is read. On a transport failure the body is never read. Otherwise the
download runs as its own task and the coordinator checks it on a short fixed
interval, suspending only the calling coroutine in between.

The coordinator does not retry and, unless ``ClientConfig.timeout`` is set,
does not time out: an exchange that never completes keeps its caller waiting.

The coordinator is an async context manager so the underlying connection
pool is always closed:

    async with RequestCoordinator(config) as coordinator:
        outcome = await coordinator.execute("GET", "/players/p1/is-linked")
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

import httpx

from playvested.config import ClientConfig
from playvested.errors import Failure, Outcome, Success, TransportFailure

logger = logging.getLogger(__name__)


@dataclass
class RequestCoordinator:
    """
    Async executor for single ledger exchanges.

    Attributes:
        config: Endpoint, timeout and poll interval settings.

    Example:
        async with RequestCoordinator(ClientConfig()) as coordinator:
            outcome = await coordinator.execute(
                "POST", "/players", {"charityName": "RedCross", "gameID": "g1"}
            )
            if isinstance(outcome, Success):
                print(outcome.body)
    """

    config: ClientConfig

    # Private attributes for the HTTP client
    _http_client: httpx.AsyncClient | None = field(default=None, repr=False)

    # -------------------------------------------------------------------------
    # Context Manager Protocol
    # -------------------------------------------------------------------------

    async def __aenter__(self) -> RequestCoordinator:
        """
        Enter the async context manager.

        Creates the underlying httpx.AsyncClient for the configured ledger.
        """
        self._http_client = httpx.AsyncClient(
            base_url=self.config.base_url,
            timeout=self.config.timeout,
        )
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Close the underlying HTTP client connection pool."""
        await self.aclose()

    async def aclose(self) -> None:
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    @property
    def is_open(self) -> bool:
        return self._http_client is not None

    @property
    def http_client(self) -> httpx.AsyncClient:
        """
        Get the HTTP client, ensuring it's been initialized.

        Raises:
            RuntimeError: If accessed outside of async context manager.
        """
        if self._http_client is None:
            raise RuntimeError(
                "RequestCoordinator must be used as an async context manager. "
                "Use 'async with RequestCoordinator(config) as coordinator:'"
            )
        return self._http_client

    # -------------------------------------------------------------------------
    # Exchange
    # -------------------------------------------------------------------------

    async def execute(
        self,
        method: str,
        path: str,
        data: Mapping[str, str] | None = None,
    ) -> Outcome:
        """
        Perform one exchange with the ledger.

        Args:
            method: HTTP method ("GET" or "POST").
            path: Path relative to the base URL, query string included.
            data: Form fields for the request body, if any.

        Returns:
            Success with the response text, or Failure with a TransportFailure.
        """
        logger.debug("%s %s", method, path)
        if self._http_client is None:
            return self._fail(
                TransportFailure(
                    message=f"{method} {path} failed",
                    status_code=0,
                    detail="Coordinator is closed",
                )
            )
        try:
            request = self._http_client.build_request(
                method, path, data=dict(data) if data is not None else None
            )
        except httpx.InvalidURL as e:
            return self._fail(
                TransportFailure(
                    message=f"{method} {path} failed",
                    status_code=0,
                    detail=f"Invalid request URL: {e}",
                )
            )
        try:
            response = await self._http_client.send(request, stream=True)
        except httpx.HTTPError as e:
            return self._fail(
                TransportFailure(
                    message=f"{method} {path} failed",
                    status_code=0,
                    detail=f"Cannot reach ledger at {self.config.base_url}: {e}",
                )
            )

        try:
            if not response.is_success:
                return self._fail(
                    TransportFailure(
                        message=f"{method} {path} failed",
                        status_code=response.status_code,
                        detail=response.reason_phrase or f"HTTP {response.status_code}",
                    )
                )
            try:
                body = await self._wait_for_body(response)
            except (httpx.HTTPError, httpx.StreamError) as e:
                return self._fail(
                    TransportFailure(
                        message=f"{method} {path} failed",
                        status_code=response.status_code,
                        detail=f"Body download failed: {e}",
                    )
                )
        finally:
            await response.aclose()

        logger.debug("%s %s -> %d (%d chars)", method, path, response.status_code, len(body))
        return Success(body)

    async def _wait_for_body(self, response: httpx.Response) -> str:
        """Download the body in the background and poll until it is complete."""
        download = asyncio.ensure_future(response.aread())
        while not download.done():
            await asyncio.sleep(self.config.poll_interval)
        download.result()
        return response.text

    @staticmethod
    def _fail(error: TransportFailure) -> Failure:
        logger.warning("Ledger transport failure: %s", error)
        return Failure(error)
