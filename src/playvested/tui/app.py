"""
Main application module for the PlayVested demo host.

This module defines the PlayVestedApp class, a Textual application that acts
as the host for a SessionController. It:
- Implements the SessionView signals on top of three panel containers
- Owns the RequestCoordinator lifecycle
- Logs every host callback to a status line

Entry Point:
    The main() function serves as the CLI entry point, configured in
    pyproject.toml as the "playvested-demo" console script.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Sequence

from textual import on
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.widgets import Button, Footer, Header, Input, Label, Static

from playvested.config import ClientConfig
from playvested.controller import SessionController
from playvested.coordinator import RequestCoordinator
from playvested.models import TotalsResult
from playvested.panels import MessageTone, Panel, TotalField

logger = logging.getLogger(__name__)

DEFAULT_CHARITIES = ("RedCross", "UNICEF", "WWF")

# Amount reported by the "Report earning" button.
DEMO_EARNING = 1.0


class PlayVestedApp(App):
    """
    Textual host for a PlayVested session.

    Attributes:
        config: Client configuration (ledger URL, identifiers).
        controller: Session controller. Created on mount.
        charities: Charity names offered in the create panel.

    Lifecycle:
        1. on_mount: Opens the coordinator, creates the controller, calls init
        2. Buttons drive controller operations; the controller drives panels
        3. on_unmount: Shuts the controller down (closing the coordinator)
    """

    TITLE = "PlayVested"
    SUB_TITLE = "Play for a cause"

    BINDINGS = [
        Binding("ctrl+c", "quit", "Quit", priority=True, show=False),
        Binding("ctrl+q", "quit", "Quit", priority=True, show=False),
    ]

    CSS = """
    Screen {
        background: $surface;
    }

    .actions {
        height: 3;
        padding: 0 1;
    }

    .panel {
        border: solid $primary;
        padding: 1 2;
        height: auto;
    }

    .panel-title {
        text-style: bold;
        color: $accent;
        padding-bottom: 1;
    }

    .charities {
        height: 3;
    }

    #link-message.success {
        color: $success;
    }

    #link-message.error {
        color: $error;
    }

    #status {
        color: $text-muted;
        padding: 1 1;
    }
    """

    def __init__(self, config: ClientConfig, charities: Sequence[str] = DEFAULT_CHARITIES) -> None:
        super().__init__()
        self.config = config
        self.charities = tuple(charities)
        self.controller: SessionController | None = None

    def compose(self) -> ComposeResult:
        yield Header()
        with Horizontal(classes="actions"):
            yield Button("Create player", id="create-player")
            yield Button("Report earning", id="report-earning")
            yield Button("Summary", id="show-summary")
            yield Button("Link account", id="open-link")

        with Vertical(id="create-panel", classes="panel"):
            yield Static("Pick a charity to support", classes="panel-title")
            with Horizontal(classes="charities"):
                for charity in self.charities:
                    yield Button(charity, name=charity, classes="charity")
            yield Button("Cancel", id="create-cancel")

        with Vertical(id="link-panel", classes="panel"):
            yield Static("Link your PlayVested account", classes="panel-title")
            yield Label("Username:")
            yield Input(placeholder="Enter username", id="username")
            yield Label("Password:")
            yield Input(placeholder="Enter password", password=True, id="password")
            with Horizontal(classes="actions"):
                yield Button("Link", variant="primary", id="link-submit")
                yield Button("Close", id="link-close")
            yield Static("", id="link-message")

        with Vertical(id="summary-panel", classes="panel"):
            yield Static("Your giving", classes="panel-title")
            yield Label("Lifetime:")
            yield Static("", id="lifetime")
            yield Label("This period:")
            yield Static("", id="filtered")
            with Horizontal(classes="actions"):
                yield Button("Close", id="summary-close")
                yield Button("Link account", id="summary-link")

        yield Static("", id="status")
        yield Footer()

    async def on_mount(self) -> None:
        for panel in Panel:
            self.set_panel_visible(panel, False)

        coordinator = RequestCoordinator(self.config)
        await coordinator.__aenter__()
        self.controller = SessionController(coordinator, view=self)
        self.controller.init(
            self.config.publisher_id,
            self.config.application_id,
            self.config.player_id,
        )

    async def on_unmount(self) -> None:
        """Shut the session down through the controller."""
        if self.controller:
            await self.controller.shutdown()
            self.controller = None

    @property
    def session(self) -> SessionController:
        if self.controller is None:
            raise RuntimeError("Session controller not initialized")
        return self.controller

    # -------------------------------------------------------------------------
    # SessionView
    # -------------------------------------------------------------------------

    def set_panel_visible(self, panel: Panel, visible: bool) -> None:
        # Widgets may already be removed while the app shuts down.
        self.query(f"#{panel.value}-panel").set(display=visible)

    def set_total(self, field: TotalField, text: str | None) -> None:
        for widget in self.query(f"#{field.value}").results(Static):
            widget.update(text or "")
            widget.display = text is not None

    def set_link_message(self, text: str, tone: MessageTone) -> None:
        widget = self.query_one("#link-message", Static)
        widget.update(text)
        widget.set_class(tone is MessageTone.SUCCESS, "success")
        widget.set_class(tone is MessageTone.ERROR, "error")

    def reset_credentials(self) -> None:
        self.query_one("#username", Input).value = ""
        self.query_one("#password", Input).value = ""

    # -------------------------------------------------------------------------
    # Host callbacks
    # -------------------------------------------------------------------------

    def show_status(self, text: str) -> None:
        for widget in self.query("#status").results(Static):
            widget.update(text)

    def _player_recorded(self, player_id: str | None, charity_name: str, message: str) -> None:
        if player_id is None:
            self.show_status("Could not create a player.")
        else:
            self.show_status(f"{message} (player {player_id})")

    def _earning_recorded(self, amount: float) -> None:
        self.show_status(f"Recorded ${amount:.2f}")

    def _totals_received(self, result: TotalsResult) -> None:
        self.show_status(f"Totals loaded: {result.lifetime:.2f} lifetime")

    # -------------------------------------------------------------------------
    # Buttons
    # -------------------------------------------------------------------------

    @on(Button.Pressed, "#create-player")
    def _create_player(self) -> None:
        if not self.session.create_player(on_recorded=self._player_recorded):
            self.show_status("Start the demo with --application to create players.")

    @on(Button.Pressed, ".charity")
    def _pick_charity(self, event: Button.Pressed) -> None:
        if event.button.name:
            self.session.pick_charity(event.button.name)

    @on(Button.Pressed, "#create-cancel")
    def _cancel_create(self) -> None:
        self.session.cancel_create()

    @on(Button.Pressed, "#report-earning")
    def _report_earning(self) -> None:
        self.session.report_earning(
            DEMO_EARNING,
            on_recorded=self._earning_recorded,
            on_cleanup=lambda: logger.debug("Earning report finished"),
        )

    @on(Button.Pressed, "#show-summary")
    def _show_summary(self) -> None:
        self.session.show_summary(on_results=self._totals_received)

    @on(Button.Pressed, "#summary-close")
    def _close_summary(self) -> None:
        self.session.close_summary()

    @on(Button.Pressed, "#open-link")
    def _open_link(self) -> None:
        self.session.open_link_panel()

    @on(Button.Pressed, "#summary-link")
    def _summary_link(self) -> None:
        self.session.open_link_panel()

    @on(Button.Pressed, "#link-close")
    def _close_link(self) -> None:
        self.session.close_link_panel()

    @on(Button.Pressed, "#link-submit")
    def _submit_link(self) -> None:
        username = self.query_one("#username", Input).value
        password = self.query_one("#password", Input).value
        self.session.link_account(username, password)


def main(args: Sequence[str] | None = None) -> int:
    """
    Main entry point for the demo host.

    Args:
        args: Command-line arguments. If None, uses sys.argv[1:].

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    try:
        config = ClientConfig.from_args(args)
        logging.basicConfig(
            level=config.log_level,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )

        app = PlayVestedApp(config)
        app.run()

        return 0

    except KeyboardInterrupt:
        return 130

    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
