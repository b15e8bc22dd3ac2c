"""Tests for autorel.core.errors module."""

from __future__ import annotations

from autorel.core.errors import ErrorCode


def test_exit_code_values_are_stable() -> None:
    assert ErrorCode.OK == 0
    assert ErrorCode.USER_ERROR == 1
    assert ErrorCode.CONFIG_ERROR == 2
    assert ErrorCode.NETWORK_ERROR == 4
    assert ErrorCode.IO_ERROR == 5


def test_str_and_is_error() -> None:
    assert str(ErrorCode.CONFIG_ERROR) == "config error"
    assert ErrorCode.OK.is_error is False
    assert ErrorCode.IO_ERROR.is_error is True
