"""Typed failures and request outcomes for the PlayVested client.

This module defines a small, explicit exception hierarchy plus the
``Success``/``Failure`` outcome union returned by the request coordinator.

Design intent:
    - Network problems never raise out of the coordinator; they come back
      as ``Failure(TransportFailure(...))`` so every caller handles them on
      the same code path as a successful body.
    - Decode problems are their own type so tests can tell a bad body apart
      from a bad connection, even though the controller treats both the
      same way.
    - Nothing in this hierarchy crosses the host boundary; the controller
      logs and converts everything into callback/visibility signals.
"""

from __future__ import annotations

from dataclasses import dataclass


class PlayVestedError(Exception):
    """Base exception for client-side failures."""


class PreconditionError(PlayVestedError):
    """Operation invoked while the session identity does not allow it."""


class OperationInFlightError(PreconditionError):
    """The same operation kind already has a request outstanding."""

    def __init__(self, kind: str) -> None:
        super().__init__(f"{kind} already in flight")
        self.kind = kind


class CallbackAlreadyInvokedError(PlayVestedError):
    """A one-shot host callback was invoked a second time."""


@dataclass
class TransportFailure(PlayVestedError):
    """
    Network or protocol level failure, including non-2xx responses.

    Attributes:
        message: Human-readable summary.
        status_code: HTTP status, or 0 when no response was received.
        detail: Underlying error text or response reason.
    """

    message: str
    status_code: int = 0
    detail: str = ""

    def __str__(self) -> str:
        """Return a formatted error message."""
        if self.detail:
            return f"{self.message}: {self.detail}"
        return self.message


@dataclass
class DecodeFailure(PlayVestedError):
    """
    A body that arrived intact but does not match the expected shape.

    Attributes:
        shape: Name of the shape that was expected (``totals``, ``earning``...).
        detail: Parser error text.
    """

    shape: str
    detail: str = ""

    def __str__(self) -> str:
        if self.detail:
            return f"Cannot decode {self.shape} body: {self.detail}"
        return f"Cannot decode {self.shape} body"


# =============================================================================
# OUTCOMES
# =============================================================================


@dataclass(frozen=True, slots=True)
class Success:
    """Completed exchange with a fully downloaded body."""

    body: str


@dataclass(frozen=True, slots=True)
class Failure:
    """Exchange that ended in a transport failure; no body was read."""

    error: TransportFailure


Outcome = Success | Failure
