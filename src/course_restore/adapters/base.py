"""Store interface definitions.

Defines the ``DatabaseClient`` Protocol that adapters implement and the
``UnitOfWork`` Protocol for the transaction-bound handle the restore
engine writes through.  All methods are ``async def``.

Usage:
    from course_restore.adapters.base import DatabaseClient, UnitOfWork

    async def do_work(client: DatabaseClient) -> None:
        async with client.transaction() as uow:
            rows = await uow.select("User", "id", filters={"email": "a@x.com"})
            if not rows:
                await uow.insert("User", {"email": "a@x.com"})
"""

from contextlib import AbstractAsyncContextManager
from typing import Any, Protocol


class UniqueConstraintError(Exception):
    """Raised by an adapter when an insert violates a unique constraint.

    The restore engine treats this as "row already exists" rather than
    as a fatal store error.
    """

    def __init__(self, table: str, detail: str = "") -> None:
        self.table = table
        self.detail = detail
        message = f"Unique constraint violated on {table}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class UnitOfWork(Protocol):
    """Transaction-bound store handle.

    Every call runs inside the same database transaction.  The owning
    ``DatabaseClient.transaction()`` context commits on clean exit and
    rolls back when an exception escapes.
    """

    async def select(
        self,
        table: str,
        columns: str,
        filters: dict[str, Any] | None = None,
    ) -> list[dict]:
        """Select rows from table.

        Args:
            table: Table name.
            columns: Comma-separated column names, or ``"*"``.
            filters: Optional dict of field=value filters (all must match via AND).

        Returns:
            List of dicts, one per row.  Empty list if no matches.
        """
        ...

    async def insert(self, table: str, data: dict) -> dict:
        """Insert a row and return the created row (including its new ``id``).

        Raises:
            UniqueConstraintError: If the row collides with a unique constraint.
                The surrounding transaction stays usable.
        """
        ...

    async def delete(self, table: str, filters: dict[str, Any] | None = None) -> None:
        """Delete rows from table.  ``filters=None`` deletes every row."""
        ...


class DatabaseClient(Protocol):
    """Database client interface that all adapters must implement.

    Reads outside a transaction are allowed for request validation
    (``select``); every write goes through ``transaction()``.
    """

    async def select(
        self,
        table: str,
        columns: str,
        filters: dict[str, Any] | None = None,
    ) -> list[dict]:
        """Select rows from table in an autocommit read.

        Example:
            rows = await client.select("Course", "id", filters={"id": "c-1"})
        """
        ...

    def transaction(self) -> AbstractAsyncContextManager[UnitOfWork]:
        """Open a unit of work.

        Example:
            async with client.transaction() as uow:
                await uow.delete("Grade")
                await uow.insert("Cohort", {"name": "2024"})
        """
        ...

    async def test_connection(self) -> bool:
        """Return True when the database answers a trivial query."""
        ...

    async def close(self) -> None:
        """Close database connection and clean up resources."""
        ...
