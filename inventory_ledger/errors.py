"""
Error taxonomy for the Inventory Ledger.

Every error raised by the store carries an ``ErrorKind`` tag so presentation
code can branch on the kind instead of matching messages. ``capture`` turns an
awaitable into a ``Result`` for callers that prefer values over exceptions.
"""

from __future__ import annotations

import builtins
import enum
from dataclasses import dataclass
from typing import Awaitable, Generic, Optional, TypeVar

T = TypeVar("T")


class ErrorKind(str, enum.Enum):
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    CONNECTION = "connection"
    TRANSACTION = "transaction"


class InventoryError(Exception):
    """Base class for all errors surfaced by the inventory core."""

    kind: ErrorKind

    @property
    def detail(self) -> Optional[str]:
        """Message of the underlying cause, if any."""
        cause = self.__cause__
        if cause is None:
            return None
        return str(cause) or type(cause).__name__


class ValidationError(InventoryError):
    """Caller-supplied data violates a precondition."""

    kind = ErrorKind.VALIDATION


class NotFoundError(InventoryError):
    """The operation targets an item id that does not exist."""

    kind = ErrorKind.NOT_FOUND

    def __init__(self, item_id: int) -> None:
        super().__init__(f"Item with ID {item_id} not found.")
        self.item_id = item_id


class ConnectionError(InventoryError, builtins.ConnectionError):
    """
    The database could not be reached or the connection dropped.

    ``transient`` is False for configuration problems (missing or malformed
    connection string) that a retry cannot fix.
    """

    kind = ErrorKind.CONNECTION

    def __init__(self, message: str, transient: bool = True) -> None:
        super().__init__(message)
        self.transient = transient


class TransactionError(InventoryError):
    """A mutation failed and was rolled back."""

    kind = ErrorKind.TRANSACTION


@dataclass(frozen=True)
class Result(Generic[T]):
    value: Optional[T] = None
    error: Optional[InventoryError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def kind(self) -> Optional[ErrorKind]:
        return self.error.kind if self.error is not None else None


async def capture(awaitable: Awaitable[T]) -> Result[T]:
    """Await ``awaitable`` and wrap its outcome; only InventoryError is captured."""
    try:
        value = await awaitable
    except InventoryError as exc:
        return Result(error=exc)
    return Result(value=value)


def describe_error(error: BaseException) -> list[str]:
    """Render an error as the lines shown to an interactive user."""
    lines = [f"Error: {error}"]
    detail = error.detail if isinstance(error, InventoryError) else None
    if detail is None and error.__cause__ is not None:
        detail = str(error.__cause__)
    if detail:
        lines.append(f"Details: {detail}")
    return lines


__all__ = [
    "ErrorKind",
    "InventoryError",
    "ValidationError",
    "NotFoundError",
    "ConnectionError",
    "TransactionError",
    "Result",
    "capture",
    "describe_error",
]
