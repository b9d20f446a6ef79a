"""Generic create-or-reuse restorer, driven by ``EntityDef``.

One record at a time:

1. strip the backup-time id and remap foreign keys (drop the record if a
   required one is unresolved),
2. skip it if its backup id was already handled in this run,
3. look for an existing live row by natural key and reuse it,
4. otherwise insert it; a unique-constraint collision is treated as
   "already exists" (re-query the natural key, or skip records whose
   natural key is incomplete).

Any other store error propagates so the orchestrator can abort the
unit of work.
"""

import enum
import logging
from typing import Any

from course_restore.adapters.base import UniqueConstraintError, UnitOfWork
from course_restore.restore.entities import EntityDef
from course_restore.restore.remap import RemapContext

logger = logging.getLogger(__name__)


class RecordOutcome(str, enum.Enum):
    CREATED = "created"
    MATCHED = "matched"
    CONFLICT = "conflict"       # collided without a complete natural key; treated as restored
    DROPPED = "dropped"         # required foreign key unresolved
    DUPLICATE = "duplicate"     # backup id already handled in this run


def natural_key_filters(entity: EntityDef, row: dict) -> dict[str, Any] | None:
    """Filters for the natural-key lookup, or ``None`` if any part is missing."""
    if not entity.natural_key:
        return None
    filters = {field: row.get(field) for field in entity.natural_key}
    if any(value is None for value in filters.values()):
        return None
    return filters


async def find_existing(uow: UnitOfWork, entity: EntityDef, row: dict) -> Any | None:
    """Live id of the row matching ``row``'s natural key, if any."""
    filters = natural_key_filters(entity, row)
    if filters is None:
        return None
    existing = await uow.select(entity.table, "id", filters=filters)
    if existing:
        return existing[0]["id"]
    return None


def _map(ctx: RemapContext, entity: EntityDef, old_id: Any, live_id: Any) -> None:
    if entity.remap and old_id is not None and live_id is not None:
        ctx.table(entity.remap).set(old_id, live_id)


async def restore_record(
    uow: UnitOfWork,
    entity: EntityDef,
    record: dict,
    ctx: RemapContext,
    resolved: dict[str, Any] | None = None,
) -> tuple[RecordOutcome, Any | None]:
    """Restore one backup record.

    Args:
        uow: Open unit of work.
        entity: Definition of the record's entity type.
        record: Backup record (not mutated).
        ctx: Remap tables for this run; updated in place.
        resolved: ``{field: live_id}`` for foreign keys already resolved
            by the caller (nested reconciliation).

    Returns:
        ``(outcome, live_id)``.  ``live_id`` is ``None`` for dropped and
        conflicting records.

    Raises:
        UniqueConstraintError: If a natural-key entity collides and the
            follow-up lookup still finds nothing.
    """
    old_id = record.get("id")

    if entity.remap and old_id is not None and old_id in ctx.table(entity.remap):
        return RecordOutcome.DUPLICATE, ctx.resolve(entity.remap, old_id)

    row = ctx.remap_record(entity, record, resolved=resolved)
    if row is None:
        return RecordOutcome.DROPPED, None

    live_id = await find_existing(uow, entity, row)
    if live_id is not None:
        _map(ctx, entity, old_id, live_id)
        return RecordOutcome.MATCHED, live_id

    try:
        created = await uow.insert(entity.table, row)
    except UniqueConstraintError:
        if natural_key_filters(entity, row) is None:
            logger.debug(f"{entity.name}: {old_id} already present, skipping")
            return RecordOutcome.CONFLICT, None

        live_id = await find_existing(uow, entity, row)
        if live_id is None:
            raise
        _map(ctx, entity, old_id, live_id)
        return RecordOutcome.MATCHED, live_id

    live_id = created.get("id")
    _map(ctx, entity, old_id, live_id)
    return RecordOutcome.CREATED, live_id


async def restore_records(
    uow: UnitOfWork,
    entity: EntityDef,
    records: list[dict],
    ctx: RemapContext,
) -> int:
    """Restore a list of records sequentially.

    Returns:
        Number of rows created (matched and skipped records not counted).
    """
    counts = {outcome: 0 for outcome in RecordOutcome}

    for record in records:
        outcome, _ = await restore_record(uow, entity, record, ctx)
        counts[outcome] += 1

    logger.info(
        f"{entity.name}: {counts[RecordOutcome.CREATED]} created, "
        f"{counts[RecordOutcome.MATCHED]} matched, "
        f"{counts[RecordOutcome.CONFLICT]} already present, "
        f"{counts[RecordOutcome.DROPPED]} dropped"
    )
    return counts[RecordOutcome.CREATED]
