"""
Session controller for the PlayVested ledger.

The SessionController is the host application's single entry point. It owns
the session identity, decides which operations may run, drives the request
coordinator, and turns every outcome into panel-visibility changes and host
callbacks.

Operation lifecycle:
    1. Host calls an operation (create_player, pick_charity, report_earning,
       show_summary, link_account, ...). The call returns immediately.
    2. Preconditions are checked against the session identity. A failed
       check is logged and no request is made.
    3. Network operations run as asyncio tasks. Each task awaits exactly one
       RequestCoordinator exchange and decodes the body.
    4. The session and panels are updated, then the host's callbacks are
       invoked, each exactly once.

Concurrency:
    Different operation kinds may overlap. A second invocation of a kind
    that is still in flight is rejected (OperationInFlightError is logged).
    Requests are never cancelled; ``shutdown`` waits for them.

Nothing raised inside the controller reaches the host: failures are logged
and reported through the normal completion path of each operation.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Coroutine
from dataclasses import dataclass, field
from functools import partial
from typing import Any

from playvested.callbacks import OneShot
from playvested.coordinator import RequestCoordinator
from playvested.decoder import decode_earning, decode_identifier, decode_is_linked, decode_totals
from playvested.errors import (
    DecodeFailure,
    Failure,
    OperationInFlightError,
    Outcome,
    PreconditionError,
    TransportFailure,
)
from playvested.identity import IdentityStore
from playvested.models import (
    EarningResult,
    LinkStatus,
    OperationKind,
    PlayerState,
    TotalsQuery,
    TotalsResult,
)
from playvested.panels import (
    NO_DATA,
    MessageTone,
    NullView,
    Panel,
    PanelVisibility,
    SessionView,
    TotalField,
    format_currency,
)

logger = logging.getLogger(__name__)

# Host callback signatures
RecordPlayer = Callable[[str | None, str, str], Any]
RecordEarning = Callable[[float], Any]
ReceiveTotals = Callable[[TotalsResult], Any]
Cleanup = Callable[[], Any]

LINK_SUCCESS_MESSAGE = "Account linked"
LINK_PANEL_SUCCESS_TEXT = "Your PlayVested account is linked!"


def thank_you_message(charity_name: str) -> str:
    return f"Thank you for supporting {charity_name}"


# =============================================================================
# SESSION STATE
# =============================================================================


@dataclass
class Session:
    """
    Everything the controller knows about the current player.

    Attributes:
        identity: Publisher/application/player identifiers and charity label.
        player: Player identity lifecycle (unset, pending, bound).
        link: Whether the player has a linked ledger account.
    """

    identity: IdentityStore = field(default_factory=IdentityStore)
    player: PlayerState = PlayerState.UNSET
    link: LinkStatus = LinkStatus.UNKNOWN

    @property
    def is_linked(self) -> bool:
        return self.link is LinkStatus.LINKED


@dataclass
class PendingOperation:
    """One in-flight request. Its host callbacks are held by the task itself."""

    kind: OperationKind
    task: asyncio.Task[None]


@dataclass
class CreateCallbacks:
    """Callbacks registered by create_player, consumed by pick/link/cancel."""

    on_recorded: OneShot
    on_cleanup: OneShot

    @classmethod
    def wrap(cls, on_recorded: RecordPlayer | None, on_cleanup: Cleanup | None) -> CreateCallbacks:
        return cls(
            on_recorded=OneShot(on_recorded, name="create_player.on_recorded"),
            on_cleanup=OneShot(on_cleanup, name="create_player.on_cleanup"),
        )

    def complete(self, player_id: str | None, charity_name: str, message: str) -> None:
        self.on_recorded(player_id, charity_name, message)
        self.on_cleanup()


# =============================================================================
# CONTROLLER
# =============================================================================


class SessionController:
    """
    Orchestrates ledger requests for one player session.

    Attributes:
        coordinator: Executes the HTTP exchanges.
        view: Receives panel, totals and link-status signals.
        session: Identity and state for this session.
        panels: Authoritative visibility of the three panels.

    Example:
        async with SessionController(RequestCoordinator(config), view=view) as ctl:
            ctl.init("pub-1", "game-1")
            ctl.create_player(on_recorded=save_player_id)
            ctl.pick_charity("RedCross")
            await ctl.wait_idle()
    """

    def __init__(
        self,
        coordinator: RequestCoordinator,
        view: SessionView | None = None,
        *,
        link_close_delay: float | None = None,
    ) -> None:
        self.coordinator = coordinator
        self.view: SessionView = view if view is not None else NullView()
        self.session = Session()
        self.panels = PanelVisibility(self.view)
        if link_close_delay is None:
            link_close_delay = coordinator.config.link_close_delay
        self.link_close_delay = link_close_delay

        self._pending: dict[OperationKind, PendingOperation] = {}
        self._tasks: set[asyncio.Task[None]] = set()
        self._create_callbacks: CreateCallbacks | None = None
        self._summary_cleanup: OneShot | None = None

    async def __aenter__(self) -> SessionController:
        if not self.coordinator.is_open:
            await self.coordinator.__aenter__()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.shutdown()

    # -------------------------------------------------------------------------
    # Convenience accessors
    # -------------------------------------------------------------------------

    @property
    def identity(self) -> IdentityStore:
        return self.session.identity

    @property
    def player_id(self) -> str | None:
        return self.session.identity.player_id

    @property
    def is_linked(self) -> bool:
        return self.session.is_linked

    def in_flight(self, kind: OperationKind) -> bool:
        pending = self._pending.get(kind)
        return pending is not None and not pending.task.done()

    # -------------------------------------------------------------------------
    # Task bookkeeping
    # -------------------------------------------------------------------------

    def _reject_if_in_flight(self, kind: OperationKind) -> bool:
        if not self.in_flight(kind):
            return False
        logger.warning("Rejected request: %s", OperationInFlightError(kind.value))
        return True

    def _launch(
        self,
        kind: OperationKind,
        factory: Callable[[], Coroutine[Any, Any, None]],
    ) -> asyncio.Task[None]:
        task = self._spawn(factory(), name=f"playvested.{kind.value}")
        self._pending[kind] = PendingOperation(kind=kind, task=task)
        task.add_done_callback(partial(self._forget, kind))
        return task

    def _spawn(self, coro: Coroutine[Any, Any, None], *, name: str) -> asyncio.Task[None]:
        task = asyncio.get_running_loop().create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._reap)
        return task

    def _release(self, kind: OperationKind) -> None:
        """Free the slot for ``kind`` before host callbacks run, so they may re-issue it."""
        self._pending.pop(kind, None)

    async def _exchange(
        self,
        kind: OperationKind,
        method: str,
        path: str,
        data: dict[str, str] | None = None,
    ) -> Outcome:
        """
        Run the single exchange for ``kind`` and release its slot.

        Anything the coordinator raises comes back as a Failure so the
        operation still completes through its normal failure path.
        """
        try:
            return await self.coordinator.execute(method, path, data)
        except Exception as e:
            logger.exception("%s exchange raised", kind.value)
            return Failure(TransportFailure(message=f"{method} {path} failed", detail=str(e)))
        finally:
            self._release(kind)

    def _forget(self, kind: OperationKind, task: asyncio.Task[None]) -> None:
        pending = self._pending.get(kind)
        if pending is not None and pending.task is task:
            del self._pending[kind]

    def _reap(self, task: asyncio.Task[None]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("%s ended with an unexpected error", task.get_name(), exc_info=exc)

    async def wait_idle(self) -> None:
        """Wait until every outstanding request and delayed action has finished."""
        while True:
            pending = [task for task in self._tasks if not task.done()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    async def shutdown(self) -> None:
        """
        End the session.

        Waits for in-flight requests (there is no cancellation), completes any
        callbacks still held for an open panel, hides every panel and closes
        the coordinator.
        """
        await self.wait_idle()
        if self._create_callbacks is not None:
            self.cancel_create()
        if self._summary_cleanup is not None:
            self.close_summary()
        self.panels.hide_all()
        await self.coordinator.aclose()
        logger.info("Session shut down")

    # -------------------------------------------------------------------------
    # Initialization
    # -------------------------------------------------------------------------

    def init(
        self,
        publisher_id: str | None,
        application_id: str | None,
        player_id: str | None = None,
    ) -> asyncio.Task[None] | None:
        """
        Establish the session identity.

        Invalid identifiers are ignored rather than overwriting valid ones.
        When a valid player is supplied, its link status is checked in the
        background.

        Returns:
            The link-status task, or None if no check was scheduled.
        """
        logger.info(
            "Init called with publisher=%s application=%s player=%s",
            publisher_id,
            application_id,
            player_id,
        )
        identity = self.session.identity
        identity.set_if_valid("publisher_id", publisher_id)
        identity.set_if_valid("application_id", application_id)
        if not identity.set_if_valid("player_id", player_id):
            return None
        self.session.player = PlayerState.BOUND

        if self._reject_if_in_flight(OperationKind.CHECK_LINKED):
            return None
        bound_id = identity.player_id
        return self._launch(OperationKind.CHECK_LINKED, lambda: self._check_linked(bound_id))

    async def _check_linked(self, player_id: str | None) -> None:
        outcome = await self._exchange(
            OperationKind.CHECK_LINKED, "GET", f"/players/{player_id}/is-linked"
        )
        if isinstance(outcome, Failure):
            logger.warning("Link status for %s unknown: %s", player_id, outcome.error)
            return
        linked = decode_is_linked(outcome.body)
        self.session.link = LinkStatus.LINKED if linked else LinkStatus.NOT_LINKED
        logger.debug("Player %s linked=%s", player_id, linked)

    # -------------------------------------------------------------------------
    # Player creation
    # -------------------------------------------------------------------------

    def create_player(
        self,
        on_recorded: RecordPlayer | None = None,
        on_cleanup: Cleanup | None = None,
    ) -> bool:
        """
        Open the create-player panel.

        Args:
            on_recorded: Called once with ``(player_id, charity_name, message)``
                when the player is created (or the create fails).
            on_cleanup: Called once after ``on_recorded``, or alone if the
                panel is cancelled.

        Returns:
            True if the panel was opened, False if a precondition failed.
        """
        if not self.session.identity.has_application:
            logger.error(
                "Precondition failed: %s",
                PreconditionError("call init with an application ID before create_player"),
            )
            return False
        if self._reject_if_in_flight(OperationKind.CREATE_PLAYER):
            return False

        self._create_callbacks = CreateCallbacks.wrap(on_recorded, on_cleanup)
        if self.session.player is PlayerState.UNSET:
            self.session.player = PlayerState.PENDING
        self.panels.show(Panel.CREATE)
        return True

    def pick_charity(self, charity_name: str) -> asyncio.Task[None] | None:
        """
        Create the player for the chosen charity.

        Silently ignored when the player is already bound, the application
        is unknown, or a create request is already running.
        """
        logger.info("Charity picked: %s", charity_name)
        identity = self.session.identity
        if self.session.player is PlayerState.BOUND or not identity.has_application:
            logger.debug("Ignoring charity pick: player already bound or no application")
            return None
        if self.in_flight(OperationKind.CREATE_PLAYER):
            logger.debug("Ignoring charity pick: create already in flight")
            return None

        callbacks = self._create_callbacks or CreateCallbacks.wrap(None, None)
        self._create_callbacks = None
        self.session.player = PlayerState.PENDING
        identity.charity_name = charity_name
        return self._launch(
            OperationKind.CREATE_PLAYER,
            lambda: self._create_player_request(charity_name, callbacks),
        )

    async def _create_player_request(self, charity_name: str, callbacks: CreateCallbacks) -> None:
        player_id: str | None = None
        try:
            outcome = await self._exchange(
                OperationKind.CREATE_PLAYER,
                "POST",
                "/players",
                {
                    "charityName": charity_name,
                    "gameID": self.session.identity.application_id or "",
                },
            )
            if isinstance(outcome, Failure):
                logger.warning("Player creation failed: %s", outcome.error)
            else:
                try:
                    player_id = decode_identifier(outcome.body)
                except DecodeFailure as e:
                    logger.warning("Player creation returned an unusable body: %s", e)
        finally:
            self._finish_create(player_id, callbacks)

    def _finish_create(self, player_id: str | None, callbacks: CreateCallbacks) -> None:
        identity = self.session.identity
        if player_id is None:
            identity.clear_charity()
            if self.session.player is not PlayerState.BOUND:
                identity.clear_player()
                self.session.player = PlayerState.UNSET
            charity, message = "", ""
        else:
            if self.session.player is PlayerState.BOUND:
                logger.warning(
                    "Player already bound to %s; ignoring created %s", identity.player_id, player_id
                )
                player_id = identity.player_id
            else:
                identity.bind_player(player_id)
                self.session.player = PlayerState.BOUND
            charity, message = identity.charity_name, thank_you_message(identity.charity_name)
            logger.info("Player %s created for %s", player_id, charity)

        self.panels.hide(Panel.CREATE)
        callbacks.complete(player_id, charity, message)

    def cancel_create(self) -> None:
        """Close the create panel without creating a player."""
        self.panels.hide(Panel.CREATE)
        if self.in_flight(OperationKind.CREATE_PLAYER):
            # The running request reports through its own callbacks.
            return
        if self.session.player is PlayerState.PENDING and not self.in_flight(
            OperationKind.LINK_ACCOUNT
        ):
            self.session.player = PlayerState.UNSET
        callbacks, self._create_callbacks = self._create_callbacks, None
        if callbacks is not None:
            callbacks.on_cleanup()

    # -------------------------------------------------------------------------
    # Earnings
    # -------------------------------------------------------------------------

    def report_earning(
        self,
        amount: float,
        on_recorded: RecordEarning | None = None,
        on_cleanup: Cleanup | None = None,
    ) -> asyncio.Task[None] | None:
        """
        Record an earning for the bound player.

        Without a bound player (or with a report already running) only
        ``on_cleanup`` fires and nothing is sent.
        """
        recorded = OneShot(on_recorded, name="report_earning.on_recorded")
        cleanup = OneShot(on_cleanup, name="report_earning.on_cleanup")

        if self.session.player is not PlayerState.BOUND:
            logger.warning(
                "Precondition failed: %s",
                PreconditionError("report_earning needs a bound player"),
            )
            cleanup()
            return None
        if self._reject_if_in_flight(OperationKind.REPORT_EARNING):
            cleanup()
            return None

        return self._launch(
            OperationKind.REPORT_EARNING,
            lambda: self._report_earning_request(amount, recorded, cleanup),
        )

    async def _report_earning_request(
        self, amount: float, recorded: OneShot, cleanup: OneShot
    ) -> None:
        identity = self.session.identity
        result: EarningResult | None = None
        try:
            outcome = await self._exchange(
                OperationKind.REPORT_EARNING,
                "POST",
                "/records",
                {
                    "devID": identity.publisher_id or "",
                    "gameID": identity.application_id or "",
                    "playerID": identity.player_id or "",
                    "amountEarned": str(amount),
                },
            )
            if isinstance(outcome, Failure):
                logger.error("Earning of %s not recorded: %s", amount, outcome.error)
            else:
                try:
                    result = decode_earning(outcome.body)
                except DecodeFailure as e:
                    logger.error("Earning of %s not confirmed: %s", amount, e)
        finally:
            if result is not None:
                logger.info("Recorded %s (%s)", result.amount_recorded, result.status)
                recorded(result.amount_recorded)
            cleanup()

    # -------------------------------------------------------------------------
    # Summary
    # -------------------------------------------------------------------------

    def default_totals_query(self) -> TotalsQuery:
        identity = self.session.identity
        return TotalsQuery(
            publisher_id=identity.publisher_id,
            application_id=identity.application_id,
            player_id=identity.player_id,
        )

    def show_summary(
        self,
        query: TotalsQuery | None = None,
        on_results: ReceiveTotals | None = None,
        on_cleanup: Cleanup | None = None,
    ) -> asyncio.Task[None] | None:
        """
        Show the summary panel and load totals into it.

        The panel opens at once with both totals hidden. ``on_cleanup`` is
        held until ``close_summary``; if the query fails the panel closes
        and ``on_cleanup`` fires straight away.

        Args:
            query: Totals filter. Defaults to the session's own identifiers.
            on_results: Called once with the decoded TotalsResult.
            on_cleanup: Called once when the summary is done with.
        """
        results = OneShot(on_results, name="show_summary.on_results")
        cleanup = OneShot(on_cleanup, name="show_summary.on_cleanup")

        if self._reject_if_in_flight(OperationKind.QUERY_TOTALS):
            cleanup()
            return None
        if query is None:
            query = self.default_totals_query()

        # A summary left open by an earlier call is finished now.
        previous, self._summary_cleanup = self._summary_cleanup, cleanup
        if previous is not None and not previous.consumed:
            previous()

        self.panels.show(Panel.SUMMARY)
        self._display_totals(NO_DATA, NO_DATA)
        return self._launch(
            OperationKind.QUERY_TOTALS,
            lambda: self._query_totals_request(query, results, cleanup),
        )

    async def _query_totals_request(
        self, query: TotalsQuery, results: OneShot, cleanup: OneShot
    ) -> None:
        path = "/records/total"
        query_string = query.to_query_string()
        if query_string:
            path = f"{path}?{query_string}"
        result: TotalsResult | None = None
        try:
            outcome = await self._exchange(OperationKind.QUERY_TOTALS, "GET", path)
            if isinstance(outcome, Failure):
                logger.warning("Totals query failed: %s", outcome.error)
            else:
                try:
                    result = decode_totals(outcome.body)
                except DecodeFailure as e:
                    logger.warning("Totals query returned an unusable body: %s", e)
        finally:
            if result is None:
                self._abort_summary(cleanup)

        if result is not None:
            results(result)
            self._display_totals(result.lifetime, result.filtered)

    def _abort_summary(self, cleanup: OneShot) -> None:
        self.panels.hide(Panel.SUMMARY)
        if self._summary_cleanup is cleanup:
            self._summary_cleanup = None
        if not cleanup.consumed:
            cleanup()

    def _display_totals(self, lifetime: float, filtered: float) -> None:
        self.view.set_total(TotalField.LIFETIME, format_currency(lifetime))
        self.view.set_total(TotalField.FILTERED, format_currency(filtered))

    def close_summary(self) -> None:
        """Hide the summary panel and finish the call that opened it."""
        self.panels.hide(Panel.SUMMARY)
        cleanup, self._summary_cleanup = self._summary_cleanup, None
        if cleanup is not None and not cleanup.consumed:
            cleanup()

    # -------------------------------------------------------------------------
    # Account linking
    # -------------------------------------------------------------------------

    def open_link_panel(self) -> None:
        self.close_summary()
        self.panels.show(Panel.LINK)

    def close_link_panel(self) -> None:
        self.view.reset_credentials()
        self.panels.hide(Panel.LINK)

    def link_account(self, username: str, password: str) -> asyncio.Task[None] | None:
        """
        Link the session to an existing PlayVested account.

        Links the bound player if there is one, otherwise links through the
        application and adopts the player identifier the ledger returns. In
        that case the create-player callbacks, if registered, are completed
        with a link message.
        """
        identity = self.session.identity
        if not (identity.has_player or identity.has_application):
            logger.warning(
                "Precondition failed: %s",
                PreconditionError("link_account needs a player or application ID"),
            )
            return None
        if self._reject_if_in_flight(OperationKind.LINK_ACCOUNT):
            return None

        previous = self.session.player
        if previous is PlayerState.BOUND:
            path = f"/players/link/{identity.player_id}"
        else:
            path = f"/players/link/game/{identity.application_id}"
            self.session.player = PlayerState.PENDING
        return self._launch(
            OperationKind.LINK_ACCOUNT,
            lambda: self._link_request(path, username, password, previous),
        )

    async def _link_request(
        self, path: str, username: str, password: str, previous: PlayerState
    ) -> None:
        linked = False
        try:
            linked = await self._link_exchange(path, username, password, previous)
        finally:
            if not linked:
                self._restore_player_state(previous)

    async def _link_exchange(
        self, path: str, username: str, password: str, previous: PlayerState
    ) -> bool:
        outcome = await self._exchange(
            OperationKind.LINK_ACCOUNT, "POST", path, {"username": username, "password": password}
        )
        if isinstance(outcome, Failure):
            self.view.set_link_message(str(outcome.error), MessageTone.ERROR)
            return False

        if previous is not PlayerState.BOUND and self.session.player is not PlayerState.BOUND:
            try:
                player_id = decode_identifier(outcome.body)
            except DecodeFailure as e:
                logger.warning("Link returned an unusable player id: %s", e)
                self.view.set_link_message(str(e), MessageTone.ERROR)
                return False
            self.session.identity.bind_player(player_id)
            self.session.player = PlayerState.BOUND
            logger.info("Player %s adopted through account link", player_id)

            callbacks, self._create_callbacks = self._create_callbacks, None
            self.panels.hide(Panel.CREATE)
            if callbacks is not None:
                callbacks.complete(
                    player_id, self.session.identity.charity_name, LINK_SUCCESS_MESSAGE
                )
        else:
            logger.info("Account linked: %s", outcome.body)

        self.session.link = LinkStatus.LINKED
        self.view.set_link_message(LINK_PANEL_SUCCESS_TEXT, MessageTone.SUCCESS)
        self._spawn(self._close_link_later(), name="playvested.link_autoclose")
        return True

    def _restore_player_state(self, previous: PlayerState) -> None:
        if self.session.player is PlayerState.PENDING:
            self.session.player = previous

    async def _close_link_later(self) -> None:
        await asyncio.sleep(self.link_close_delay)
        self.close_link_panel()
