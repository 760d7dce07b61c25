"""
Connection management for the Inventory Ledger.

``ConnectionManager`` owns exactly one psycopg ``AsyncConnection`` to
PostgreSQL. It is opened lazily on the first ``acquire()``, reopened when it
has been closed, and released by ``close()`` or by leaving ``async with``.
There is no pooling: the handle is lent to one operation at a time.

The manager never retries. ``acquire_with_retry`` is a separate helper for
callers (the CLI) that want a retry policy around the first connection.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Optional

import psycopg
from psycopg import AsyncConnection
from psycopg.rows import dict_row
from tenacity import AsyncRetrying, retry_if_exception, stop_after_attempt, wait_exponential

from inventory_ledger.config import get_settings
from inventory_ledger.errors import ConnectionError
from inventory_ledger.utils.logging import get_logger

log = get_logger(__name__)

# Server-side rejections that a retry cannot fix.
_CONFIGURATION_MARKERS = (
    "authentication failed",
    "does not exist",
    "no password supplied",
)


def _is_configuration_failure(exc: psycopg.Error) -> bool:
    message = str(exc).lower()
    return any(marker in message for marker in _CONFIGURATION_MARKERS)


def redact_conninfo(conninfo: str) -> str:
    """Hide the password part of a URL-style connection string."""
    scheme, sep, rest = conninfo.partition("://")
    if not sep or "@" not in rest:
        return conninfo
    credentials, _, host = rest.rpartition("@")
    user = credentials.split(":", 1)[0]
    return f"{scheme}://{user}:***@{host}"


class ConnectionManager:
    """
    Lazily opened, explicitly owned connection handle.

    Parameters
    ----------
    conninfo : str, optional
        Connection string. Defaults to the one selected by ``APP_ENV``.
    connect_timeout : int, optional
        Seconds to wait for the server. Defaults to ``DB_CONNECT_TIMEOUT``.
    connect : callable, optional
        Coroutine factory used to open the connection; tests pass a fake.
    """

    def __init__(
        self,
        conninfo: Optional[str] = None,
        connect_timeout: Optional[int] = None,
        connect: Optional[Callable[..., object]] = None,
    ) -> None:
        settings = get_settings()
        self._conninfo = conninfo if conninfo is not None else settings.connection_string()
        self._connect_timeout = (
            connect_timeout if connect_timeout is not None else settings.db_connect_timeout
        )
        self._connect = connect or AsyncConnection.connect
        self._conn: Optional[AsyncConnection] = None
        self._lease_lock = asyncio.Lock()

    @property
    def is_open(self) -> bool:
        return self._conn is not None and not self._conn.closed

    async def acquire(self) -> AsyncConnection:
        """
        Return the open connection, opening or reopening it when needed.

        Raises
        ------
        ConnectionError
            If the connection cannot be opened. ``transient`` tells network
            failures apart from configuration failures.
        """
        if self.is_open:
            return self._conn

        if not self._conninfo:
            raise ConnectionError(
                "No connection string configured for the current environment.",
                transient=False,
            )

        reopening = self._conn is not None
        try:
            self._conn = await self._connect(
                self._conninfo,
                autocommit=True,
                row_factory=dict_row,
                connect_timeout=self._connect_timeout,
            )
        except psycopg.ProgrammingError as exc:
            raise ConnectionError(
                f"Invalid connection string for {redact_conninfo(self._conninfo)}.", transient=False
            ) from exc
        except psycopg.OperationalError as exc:
            raise ConnectionError(
                f"Could not connect to {redact_conninfo(self._conninfo)}.",
                transient=not _is_configuration_failure(exc),
            ) from exc

        log.info(
            "Database connection reopened" if reopening else "Database connection opened",
            extra={"target": redact_conninfo(self._conninfo)},
        )
        return self._conn

    @asynccontextmanager
    async def lease(self) -> AsyncIterator[AsyncConnection]:
        """
        Lend the connection to one operation; other callers wait until it returns.

        Example
        -------
            async with manager.lease() as conn:
                async with conn.transaction():
                    await conn.execute("SELECT 1")
        """
        async with self._lease_lock:
            yield await self.acquire()

    async def close(self) -> None:
        """Close the handle if it is open. Safe to call repeatedly."""
        conn, self._conn = self._conn, None
        if conn is not None and not conn.closed:
            await conn.close()
            log.debug("Database connection closed")

    async def __aenter__(self) -> "ConnectionManager":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()


async def acquire_with_retry(manager: ConnectionManager, attempts: int) -> AsyncConnection:
    """
    Acquire a connection, retrying transient failures with exponential backoff.

    Configuration failures are raised immediately.
    """
    async for attempt in AsyncRetrying(
        stop=stop_after_attempt(max(attempts, 1)),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception(lambda exc: isinstance(exc, ConnectionError) and exc.transient),
        reraise=True,
    ):
        with attempt:
            conn = await manager.acquire()
    return conn


__all__ = ["ConnectionManager", "acquire_with_retry"]
