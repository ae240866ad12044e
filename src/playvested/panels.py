"""
Panel visibility and the outward UI signals.

The controller never touches widgets. It talks to a ``SessionView``, which
the host implements (the Textual demo in ``playvested.tui`` is one). The
signals are:

    set_panel_visible(panel, visible)  - show/hide create, link, summary
    set_total(field, text)             - lifetime/filtered display; None hides
    set_link_message(text, tone)       - link status line with colour tag
    reset_credentials()                - blank the username/password inputs

``PanelVisibility`` keeps the authoritative shown/hidden state for each panel
and forwards every change to the view.
"""

from __future__ import annotations

from enum import Enum
from typing import Protocol


class Panel(str, Enum):
    CREATE = "create"
    LINK = "link"
    SUMMARY = "summary"


class TotalField(str, Enum):
    LIFETIME = "lifetime"
    FILTERED = "filtered"


class MessageTone(str, Enum):
    SUCCESS = "success"
    ERROR = "error"


# Placeholder written to both totals while a query is in flight.
NO_DATA = -1.0


def format_currency(value: float) -> str | None:
    """Render a total as currency, or None when it should be hidden."""
    if value < 0:
        return None
    return f"${value:.2f}"


class SessionView(Protocol):
    """UI surface driven by the SessionController."""

    def set_panel_visible(self, panel: Panel, visible: bool) -> None: ...

    def set_total(self, field: TotalField, text: str | None) -> None: ...

    def set_link_message(self, text: str, tone: MessageTone) -> None: ...

    def reset_credentials(self) -> None: ...


class NullView:
    """View that ignores every signal; used when the host has no UI."""

    def set_panel_visible(self, panel: Panel, visible: bool) -> None:
        pass

    def set_total(self, field: TotalField, text: str | None) -> None:
        pass

    def set_link_message(self, text: str, tone: MessageTone) -> None:
        pass

    def reset_credentials(self) -> None:
        pass


class PanelVisibility:
    """
    Independent shown/hidden flags for the three panels.

    Each panel is its own two-state machine. No shared flag ties them
    together; the controller enforces the one cross-panel rule (opening Link
    hides Summary first).
    """

    def __init__(self, view: SessionView) -> None:
        self._view = view
        self._shown: dict[Panel, bool] = {panel: False for panel in Panel}

    def show(self, panel: Panel) -> None:
        self._set(panel, True)

    def hide(self, panel: Panel) -> None:
        self._set(panel, False)

    def hide_all(self) -> None:
        for panel in Panel:
            self.hide(panel)

    def is_shown(self, panel: Panel) -> bool:
        return self._shown[panel]

    def shown(self) -> set[Panel]:
        return {panel for panel, visible in self._shown.items() if visible}

    def _set(self, panel: Panel, visible: bool) -> None:
        self._shown[panel] = visible
        self._view.set_panel_visible(panel, visible)
