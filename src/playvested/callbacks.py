"""One-shot wrapper around host callbacks.

Every controller operation promises to inform the host exactly once. The
wrapper turns that promise into a checked invariant: the first call goes
through, a second call raises ``CallbackAlreadyInvokedError``. Exceptions
raised by the host's own function are logged and not propagated, so a
faulty callback cannot break the controller's bookkeeping.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from playvested.errors import CallbackAlreadyInvokedError

logger = logging.getLogger(__name__)


class OneShot:
    """
    Callable that forwards to ``func`` at most once.

    A ``None`` function is allowed and turns every call into a no-op that
    still consumes the shot, which keeps optional callbacks on the same
    code path as provided ones.

    Example:
        done = OneShot(on_cleanup, name="report_earning.on_cleanup")
        done()
        done.consumed  # True
        done()         # raises CallbackAlreadyInvokedError
    """

    __slots__ = ("_func", "_name", "_consumed")

    def __init__(self, func: Callable[..., Any] | None, *, name: str) -> None:
        self._func = func
        self._name = name
        self._consumed = False

    @property
    def consumed(self) -> bool:
        return self._consumed

    @property
    def name(self) -> str:
        return self._name

    def __call__(self, *args: Any) -> None:
        if self._consumed:
            raise CallbackAlreadyInvokedError(f"{self._name} already invoked")
        self._consumed = True
        if self._func is None:
            return
        try:
            self._func(*args)
        except Exception:
            logger.exception("Host callback %s raised", self._name)

    def __repr__(self) -> str:
        state = "consumed" if self._consumed else "armed"
        return f"OneShot({self._name}, {state})"
