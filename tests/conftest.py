"""
Shared pytest fixtures for the PlayVested client test suite.

This module provides fixtures that are automatically available to all test files:
- A ClientConfig pointing at a fake ledger with fast polling
- RequestCoordinator / SessionController instances inside their async context
- A RecordingView that captures every UI signal
- Callback recorders that remember every invocation

HTTP is mocked per test with respx; the fixtures never open real sockets.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from typing import Any
from urllib.parse import parse_qs

import httpx
import pytest

from playvested.config import ClientConfig
from playvested.controller import SessionController
from playvested.coordinator import RequestCoordinator
from playvested.panels import MessageTone, Panel, TotalField

LEDGER_URL = "http://test-ledger"

# ============================================================================
# RECORDERS
# ============================================================================


class RecordingView:
    """SessionView that records every signal in order."""

    def __init__(self, journal: list[tuple[Any, ...]] | None = None) -> None:
        self.events: list[tuple[Any, ...]] = journal if journal is not None else []
        self.panels: dict[Panel, bool] = {}
        self.totals: dict[TotalField, str | None] = {}
        self.link_message: tuple[str, MessageTone] | None = None
        self.credential_resets = 0

    def set_panel_visible(self, panel: Panel, visible: bool) -> None:
        self.events.append(("panel", panel, visible))
        self.panels[panel] = visible

    def set_total(self, field: TotalField, text: str | None) -> None:
        self.events.append(("total", field, text))
        self.totals[field] = text

    def set_link_message(self, text: str, tone: MessageTone) -> None:
        self.events.append(("link_message", text, tone))
        self.link_message = (text, tone)

    def reset_credentials(self) -> None:
        self.events.append(("reset_credentials",))
        self.credential_resets += 1

    def is_shown(self, panel: Panel) -> bool:
        return self.panels.get(panel, False)


class CallbackRecorder:
    """Callable that remembers its calls and logs them to a shared journal."""

    def __init__(self, name: str, journal: list[tuple[Any, ...]]) -> None:
        self.name = name
        self.calls: list[tuple[Any, ...]] = []
        self._journal = journal

    def __call__(self, *args: Any) -> None:
        self.calls.append(args)
        self._journal.append(("callback", self.name, *args))

    @property
    def call_count(self) -> int:
        return len(self.calls)


def form_fields(request: httpx.Request) -> dict[str, str]:
    """Decode a form-encoded request body into a flat dict."""
    parsed = parse_qs(request.content.decode(), keep_blank_values=True)
    return {key: values[0] for key, values in parsed.items()}


# ============================================================================
# FIXTURES
# ============================================================================


@pytest.fixture
def journal() -> list[tuple[Any, ...]]:
    """Ordered log shared by the view and callback recorders."""
    return []


@pytest.fixture
def view(journal: list[tuple[Any, ...]]) -> RecordingView:
    return RecordingView(journal)


@pytest.fixture
def recorder(journal: list[tuple[Any, ...]]):
    """Factory for named callback recorders."""

    def make(name: str) -> CallbackRecorder:
        return CallbackRecorder(name, journal)

    return make


@pytest.fixture
def config() -> ClientConfig:
    """Create a test configuration with near-instant polling and auto-close."""
    return ClientConfig(base_url=LEDGER_URL, poll_interval=0.001, link_close_delay=0.0)


@pytest.fixture
async def coordinator(config: ClientConfig) -> AsyncGenerator[RequestCoordinator, None]:
    async with RequestCoordinator(config) as coordinator:
        yield coordinator


@pytest.fixture
async def controller(
    coordinator: RequestCoordinator, view: RecordingView
) -> AsyncGenerator[SessionController, None]:
    """Controller with a recording view; not yet initialized."""
    controller = SessionController(coordinator, view=view)
    yield controller
    await controller.wait_idle()


@pytest.fixture
async def ready_controller(controller: SessionController) -> SessionController:
    """Controller initialized with publisher and application but no player."""
    controller.init("pub-1", "app-1")
    return controller
