"""Shared fixtures: an in-memory store implementing ``DatabaseClient``.

``FakeStore`` keeps rows per table, hands out live ids, enforces unique
constraints (the natural keys from ``ENTITIES`` by default), and rolls
every table back when an exception escapes ``transaction()``.
"""

import copy
import itertools
from contextlib import asynccontextmanager
from typing import Any

import pytest

from course_restore.adapters.base import UniqueConstraintError
from course_restore.restore.entities import ENTITIES


def _default_unique() -> dict[str, list[tuple[str, ...]]]:
    return {e.table: [e.natural_key] for e in ENTITIES if e.natural_key}


class FakeStore:
    """In-memory ``DatabaseClient`` whose unit of work is the store itself."""

    def __init__(self, unique: dict[str, list[tuple[str, ...]]] | None = None) -> None:
        self.tables: dict[str, list[dict]] = {}
        self.unique = _default_unique() if unique is None else unique
        self.fail_on: dict[str, Exception] = {}
        self.writes: list[tuple[str, str]] = []
        self.transactions = 0
        self.closed = False
        self.reachable = True
        self._ids = itertools.count(1)

    # -- helpers ---------------------------------------------------------

    def seed(self, table: str, **row: Any) -> dict:
        """Insert a row directly, bypassing constraints and write tracking."""
        row.setdefault("id", f"{table.lower()}-{next(self._ids)}")
        self.tables.setdefault(table, []).append(row)
        return row

    def rows(self, table: str) -> list[dict]:
        return self.tables.get(table, [])

    @staticmethod
    def _matches(row: dict, filters: dict[str, Any] | None) -> bool:
        return all(row.get(k) == v for k, v in (filters or {}).items())

    # -- UnitOfWork ------------------------------------------------------

    async def select(
        self,
        table: str,
        columns: str,
        filters: dict[str, Any] | None = None,
    ) -> list[dict]:
        rows = [r for r in self.rows(table) if self._matches(r, filters)]
        if columns.strip() == "*":
            return [dict(r) for r in rows]
        names = [c.strip() for c in columns.split(",")]
        return [{c: r.get(c) for c in names} for r in rows]

    async def insert(self, table: str, data: dict) -> dict:
        if table in self.fail_on:
            raise self.fail_on[table]

        for fields in self.unique.get(table, []):
            values = {f: data.get(f) for f in fields}
            if any(v is None for v in values.values()):
                continue
            if any(self._matches(r, values) for r in self.rows(table)):
                raise UniqueConstraintError(table, f"duplicate {values}")

        row = dict(data)
        row["id"] = f"{table.lower()}-{next(self._ids)}"
        self.tables.setdefault(table, []).append(row)
        self.writes.append(("insert", table))
        return dict(row)

    async def delete(self, table: str, filters: dict[str, Any] | None = None) -> None:
        self.tables[table] = [r for r in self.rows(table) if filters and not self._matches(r, filters)]
        self.writes.append(("delete", table))

    # -- DatabaseClient --------------------------------------------------

    @asynccontextmanager
    async def transaction(self):
        self.transactions += 1
        snapshot = copy.deepcopy(self.tables)
        try:
            yield self
        except BaseException:
            self.tables = snapshot
            raise

    async def test_connection(self) -> bool:
        return self.reachable

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


def make_backup(data: dict, version: str = "1.0.0", **metadata: Any) -> dict:
    """Backup document with the given data block."""
    return {
        "metadata": {"version": version, "timestamp": "2024-06-01T00:00:00Z", **metadata},
        "data": data,
    }


@pytest.fixture
def backup_factory():
    return make_backup
