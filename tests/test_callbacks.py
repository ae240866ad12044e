"""Tests for the one-shot callback wrapper."""

import logging

import pytest

from playvested.callbacks import OneShot
from playvested.errors import CallbackAlreadyInvokedError


def test_forwards_arguments_once():
    calls = []
    shot = OneShot(lambda *args: calls.append(args), name="cb")

    shot("p1", "RedCross", "thanks")

    assert calls == [("p1", "RedCross", "thanks")]
    assert shot.consumed is True


def test_second_call_raises():
    shot = OneShot(lambda: None, name="report_earning.on_cleanup")
    shot()

    with pytest.raises(CallbackAlreadyInvokedError, match="report_earning.on_cleanup"):
        shot()


def test_none_function_still_consumes():
    shot = OneShot(None, name="optional")

    shot()

    assert shot.consumed is True
    with pytest.raises(CallbackAlreadyInvokedError):
        shot()


def test_host_exception_is_logged_not_raised(caplog):
    def broken():
        raise ValueError("host bug")

    shot = OneShot(broken, name="broken")

    with caplog.at_level(logging.ERROR, logger="playvested.callbacks"):
        shot()

    assert shot.consumed is True
    assert "Host callback broken raised" in caplog.text


def test_repr_shows_state():
    shot = OneShot(None, name="cb")

    assert repr(shot) == "OneShot(cb, armed)"
    shot()
    assert repr(shot) == "OneShot(cb, consumed)"
