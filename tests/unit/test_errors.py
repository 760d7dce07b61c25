from __future__ import annotations

import builtins

import pytest

from inventory_ledger.errors import (
    ConnectionError,
    ErrorKind,
    NotFoundError,
    TransactionError,
    ValidationError,
    capture,
    describe_error,
)


async def _value() -> int:
    return 7


async def _not_found() -> int:
    raise NotFoundError(999)


async def _unexpected() -> int:
    raise KeyError("boom")


@pytest.mark.asyncio
async def test_capture_wraps_values_and_tagged_errors() -> None:
    ok = await capture(_value())
    missing = await capture(_not_found())

    assert ok.ok and ok.value == 7 and ok.kind is None
    assert not missing.ok
    assert missing.kind is ErrorKind.NOT_FOUND
    assert missing.error.item_id == 999


@pytest.mark.asyncio
async def test_capture_does_not_swallow_foreign_exceptions() -> None:
    with pytest.raises(KeyError):
        await capture(_unexpected())


def test_error_kinds() -> None:
    assert ValidationError("x").kind is ErrorKind.VALIDATION
    assert NotFoundError(1).kind is ErrorKind.NOT_FOUND
    assert ConnectionError("x").kind is ErrorKind.CONNECTION
    assert TransactionError("x").kind is ErrorKind.TRANSACTION


def test_connection_error_is_a_builtin_connection_error() -> None:
    error = ConnectionError("down", transient=False)

    assert isinstance(error, builtins.ConnectionError)
    assert error.transient is False


def test_describe_error_adds_details_line_for_the_cause() -> None:
    try:
        try:
            raise RuntimeError("disk full")
        except RuntimeError as exc:
            raise TransactionError("create failed and was rolled back.") from exc
    except TransactionError as error:
        lines = describe_error(error)

    assert lines == ["Error: create failed and was rolled back.", "Details: disk full"]
    assert describe_error(NotFoundError(5)) == ["Error: Item with ID 5 not found."]
