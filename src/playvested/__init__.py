"""PlayVested client: charitable-giving ledger session controller.

Tracks the publisher / application / player identity chain for a host
application, exchanges it with the PlayVested ledger over HTTP, and reports
earnings and totals back to the host through one-shot callbacks.

Typical usage::

    from playvested import ClientConfig, RequestCoordinator, SessionController

    config = ClientConfig.from_args()
    async with SessionController(RequestCoordinator(config), view=my_view) as ctl:
        ctl.init("publisher-1", "game-1")
        ctl.create_player(on_recorded=remember_player)

Version Management
------------------
``__version__`` is read from the installed package metadata at import time.
The single source of truth is the ``version`` field in ``pyproject.toml``.
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

from playvested.config import ClientConfig
from playvested.controller import SessionController
from playvested.coordinator import RequestCoordinator
from playvested.errors import (
    DecodeFailure,
    Failure,
    PlayVestedError,
    PreconditionError,
    Success,
    TransportFailure,
)
from playvested.models import EarningResult, TotalsQuery, TotalsResult
from playvested.panels import NullView, Panel, SessionView

# ---------------------------------------------------------------------------
# Package version, read from pyproject.toml via importlib.metadata.
#
# Falls back to a literal when the package is imported without being
# installed (running straight from a source checkout).
# ---------------------------------------------------------------------------
try:
    __version__: str = version("playvested")
except PackageNotFoundError:
    __version__ = "0.3.0"

__all__ = [
    "ClientConfig",
    "DecodeFailure",
    "EarningResult",
    "Failure",
    "NullView",
    "Panel",
    "PlayVestedError",
    "PreconditionError",
    "RequestCoordinator",
    "SessionController",
    "SessionView",
    "Success",
    "TotalsQuery",
    "TotalsResult",
    "TransportFailure",
]
