"""Backup-time id to live id translation.

A ``RemapContext`` is created by the orchestrator for one restore and
passed explicitly to every step.  It holds one write-once ``RemapTable``
per entity type that other entities reference.

Usage:
    ctx = RemapContext()
    ctx.table("users").set("old-user-1", "live-42")
    row = ctx.remap_record(get_entity("students"), {"id": "s1", "userId": "old-user-1"})
    # row == {"userId": "live-42"}
"""

import logging
from typing import Any, Iterator

from course_restore.restore.entities import REMAP_KEYS, EntityDef

logger = logging.getLogger(__name__)


class RemapTable:
    """Mapping of backup-time id to live id for one entity type.

    Write-once per key: the first live id recorded for a backup id wins.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._ids: dict[Any, Any] = {}

    def set(self, old_id: Any, new_id: Any) -> Any:
        """Record ``old_id -> new_id`` unless already mapped.

        Returns:
            The live id now mapped for ``old_id``.
        """
        if old_id in self._ids:
            if self._ids[old_id] != new_id:
                logger.debug(
                    f"{self.name}: {old_id} already mapped to {self._ids[old_id]}, "
                    f"ignoring {new_id}"
                )
            return self._ids[old_id]
        self._ids[old_id] = new_id
        return new_id

    def get(self, old_id: Any) -> Any | None:
        return self._ids.get(old_id)

    def __contains__(self, old_id: object) -> bool:
        return old_id in self._ids

    def __len__(self) -> int:
        return len(self._ids)

    def __iter__(self) -> Iterator[Any]:
        return iter(self._ids)

    def as_dict(self) -> dict[Any, Any]:
        return dict(self._ids)


class RemapContext:
    """All remap tables for one restore run."""

    def __init__(self, names: tuple[str, ...] = REMAP_KEYS) -> None:
        self._tables: dict[str, RemapTable] = {name: RemapTable(name) for name in names}

    def table(self, name: str) -> RemapTable:
        """Get the remap table for ``name``.

        Raises:
            KeyError: If no such remap table exists.
        """
        return self._tables[name]

    def seed(self, name: str, old_id: Any, new_id: Any) -> None:
        """Pre-map an id before any step runs (scoped course targeting)."""
        self.table(name).set(old_id, new_id)

    def resolve(self, name: str, old_id: Any) -> Any | None:
        """Translate one backup-time id, or ``None`` if it was never restored."""
        table = self._tables.get(name)
        if table is None:
            return None
        return table.get(old_id)

    def remap_record(
        self,
        entity: EntityDef,
        record: dict,
        resolved: dict[str, Any] | None = None,
    ) -> dict | None:
        """Build an insertable row from a backup record.

        Strips the backup-time ``id`` and rewrites every declared foreign
        key.  Fields in ``resolved`` already hold live ids and are copied
        as-is instead of being looked up.

        Args:
            entity: Definition of the record's entity type.
            record: Backup record (not mutated).
            resolved: Optional ``{field: live_id}`` overrides.

        Returns:
            The remapped row, or ``None`` if a required foreign key could
            not be resolved.
        """
        resolved = resolved or {}
        row = {k: v for k, v in record.items() if k != "id"}

        for fk in entity.required:
            if fk.field in resolved:
                row[fk.field] = resolved[fk.field]
            else:
                row[fk.field] = self.resolve(fk.remap, record.get(fk.field))
            if row[fk.field] is None:
                logger.debug(
                    f"{entity.name}: dropping {record.get('id')} "
                    f"({fk.field}={record.get(fk.field)!r} not restored)"
                )
                return None

        for fk in entity.optional:
            if fk.field in resolved:
                row[fk.field] = resolved[fk.field]
            elif record.get(fk.field) is not None:
                row[fk.field] = self.resolve(fk.remap, record[fk.field])

        return row

    def snapshot(self) -> dict[str, dict[Any, Any]]:
        """Plain-dict copy of every table (for logging and tests)."""
        return {name: table.as_dict() for name, table in self._tables.items()}
