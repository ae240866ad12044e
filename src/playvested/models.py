"""
Data models for PlayVested requests and responses.

Request side:
    TotalsQuery - filter for the cumulative totals endpoint, serialized to a
                  query string.

Response side (pydantic, decoded from JSON bodies):
    TotalsResult  - lifetime and windowed earning sums.
    EarningResult - acknowledgement of a recorded earning.

Session state enums live here as well so the controller, the view and the
tests share one vocabulary.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from urllib.parse import urlencode

from pydantic import BaseModel, ConfigDict, Field

from playvested.identity import is_valid

# ============================================================================
# SESSION STATE
# ============================================================================


class PlayerState(str, Enum):
    """Lifecycle of the player identifier."""

    UNSET = "unset"
    PENDING = "pending"  # create or link in progress
    BOUND = "bound"


class LinkStatus(str, Enum):
    """Whether the player is linked to a persistent ledger account."""

    UNKNOWN = "unknown"
    NOT_LINKED = "not_linked"
    LINKED = "linked"


class OperationKind(str, Enum):
    """Logical actions that talk to the ledger; one in flight per kind."""

    CREATE_PLAYER = "create_player"
    LINK_ACCOUNT = "link_account"
    REPORT_EARNING = "report_earning"
    QUERY_TOTALS = "query_totals"
    CHECK_LINKED = "check_linked"


# ============================================================================
# REQUEST MODELS (Client → Ledger)
# ============================================================================


@dataclass(frozen=True)
class TotalsQuery:
    """
    Filter for ``GET /records/total``.

    Identifier fields that are unset (or invalid) are left out of the query.
    The time window is one of days, weeks or months; 0 means "not set". If
    more than one is given, days win over weeks and weeks over months.

    Attributes:
        publisher_id: Restrict to one publisher (``devID``).
        application_id: Restrict to one application (``gameID``).
        player_id: Restrict to one player (``playerID``).
        previous_days: Window size in days.
        previous_weeks: Window size in weeks.
        previous_months: Window size in months.

    Example:
        TotalsQuery(application_id="g1", previous_weeks=3).to_query_string()
        # "gameID=g1&previousWeeks=3"
    """

    publisher_id: str | None = None
    application_id: str | None = None
    player_id: str | None = None
    previous_days: int = 0
    previous_weeks: int = 0
    previous_months: int = 0

    def __post_init__(self) -> None:
        """
        Validate the window fields.

        Raises:
            ValueError: If any window is negative.
        """
        for name in ("previous_days", "previous_weeks", "previous_months"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} cannot be negative")

    def window(self) -> tuple[str, int] | None:
        """Return the effective ``(key, value)`` window, if any."""
        if self.previous_days:
            return "previousDays", self.previous_days
        if self.previous_weeks:
            return "previousWeeks", self.previous_weeks
        if self.previous_months:
            return "previousMonths", self.previous_months
        return None

    def to_query_string(self) -> str:
        """Serialize the non-default fields as a URL-encoded query string."""
        pairs: list[tuple[str, object]] = []
        if is_valid(self.publisher_id):
            pairs.append(("devID", self.publisher_id))
        if is_valid(self.application_id):
            pairs.append(("gameID", self.application_id))
        if is_valid(self.player_id):
            pairs.append(("playerID", self.player_id))
        window = self.window()
        if window is not None:
            pairs.append(window)
        return urlencode(pairs)


# ============================================================================
# RESPONSE MODELS (Ledger → Client)
# ============================================================================


class TotalsResult(BaseModel):
    """
    Cumulative earning totals.

    Attributes:
        lifetime: All-time total for the queried identity.
        filtered: Total within the requested time window.
    """

    model_config = ConfigDict(strict=True)

    lifetime: float
    filtered: float


class EarningResult(BaseModel):
    """
    Acknowledgement of a recorded earning.

    Attributes:
        amount_recorded: Amount the ledger actually recorded
            (``amountEarned`` on the wire).
        status: Ledger status text.
    """

    model_config = ConfigDict(strict=True, populate_by_name=True)

    amount_recorded: float = Field(alias="amountEarned")
    status: str
