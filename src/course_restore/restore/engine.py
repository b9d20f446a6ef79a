"""Dependency-ordered restore orchestrator.

Turns a validated backup document and ``RestoreOptions`` into an ordered
plan of ``RestoreStep`` descriptors and runs it inside one unit of work.

Strategies:

- **flat**: every entity type from its flat array, in ``ENTITIES`` order.
- **nested**: people and curriculum prerequisites from flat arrays, then
  the ``coursesNested`` tree, then student history from flat arrays.

Scoped restores (``sourceCourseId`` + ``restoreToCourseId``) map the
source course onto the destination and drop people and history steps.

Usage:
    from course_restore.restore.engine import handle_restore_request

    response = await handle_restore_request(adapter, body)
    response.to_dict()
    # {"success": True, "message": "...", "stats": {...}, "restoredFrom": {...}}
"""

import json
import logging
from typing import Any, Awaitable, Callable, NamedTuple

from pydantic import ValidationError

from course_restore.adapters.base import DatabaseClient, UnitOfWork
from course_restore.restore.entities import (
    ENTITIES,
    EntityDef,
    entities_in_group,
    get_entity,
)
from course_restore.restore.errors import (
    BackupFormatError,
    RestoreError,
    RestoreFailedError,
    RestoreValidationError,
)
from course_restore.restore.models import (
    SUPPORTED_BACKUP_VERSION,
    BackupDocument,
    CourseBundle,
    Record,
    RestoreOptions,
    RestoreRequest,
    RestoreResponse,
    RestoreResult,
    resolve_payload,
)
from course_restore.restore.nested import restore_nested
from course_restore.restore.remap import RemapContext
from course_restore.restore.restorers import restore_records
from course_restore.restore.scope import CourseScope

logger = logging.getLogger(__name__)

StepFn = Callable[[UnitOfWork, RemapContext, dict[str, int]], Awaitable[None]]

# Tables left in place by clearExisting when skipUsers is set
PEOPLE_KEPT_WITH_SKIP_USERS = ("users", "students", "instructors", "cohorts")


class RestoreStep(NamedTuple):
    """One entry of the restore plan."""

    entity: str
    dependencies: tuple[str, ...]   # remap tables read
    produces: tuple[str, ...]       # remap tables written
    run: StepFn


# ============================================================================
# Request parsing and validation
# ============================================================================


def parse_restore_request(body: Any) -> RestoreRequest:
    """Parse the admin endpoint's request body.

    ``backupData`` may be an object or a JSON string.

    Raises:
        BackupFormatError: If the body, metadata or data block is missing
            or malformed.
    """
    if not isinstance(body, dict):
        raise BackupFormatError("Request body must be a JSON object")

    backup = body.get("backupData")
    if isinstance(backup, str):
        try:
            backup = json.loads(backup)
        except json.JSONDecodeError as e:
            raise BackupFormatError(f"Invalid JSON format: {e}") from e

    if not isinstance(backup, dict) or backup.get("metadata") is None or backup.get("data") is None:
        raise BackupFormatError("Invalid backup file format: metadata and data are required")

    try:
        return RestoreRequest.model_validate(
            {"backupData": backup, "options": body.get("options") or {}}
        )
    except ValidationError as e:
        raise BackupFormatError(f"Invalid backup file format: {e}") from e


def _backup_course_ids(document: BackupDocument) -> set[Any]:
    ids = {c.get("id") for c in document.data.table("courses")}
    ids.update(b.course.get("id") for b in document.data.courses_nested or [])
    ids.discard(None)
    return ids


def validate_restore_request(document: BackupDocument, options: RestoreOptions) -> None:
    """Check version and course options without touching the store.

    Raises:
        BackupFormatError: If the backup version is not supported.
        RestoreValidationError: If the course options are inconsistent
            with each other or with the backup.
    """
    version = document.metadata.version
    if version != SUPPORTED_BACKUP_VERSION:
        raise BackupFormatError(
            f"Unsupported backup version: {version} (expected {SUPPORTED_BACKUP_VERSION})"
        )

    if options.restore_to_course_id and not options.source_course_id:
        raise RestoreValidationError(
            "restoreToCourseId requires sourceCourseId to select the course to copy"
        )

    if options.source_course_id and options.source_course_id not in _backup_course_ids(document):
        raise RestoreValidationError(
            f"Source course {options.source_course_id} not found in backup"
        )


async def _check_destination(adapter: DatabaseClient, course_id: str) -> None:
    try:
        rows = await adapter.select(
            get_entity("courses").table, "id", filters={"id": course_id}
        )
    except Exception as e:
        logger.error(f"Error looking up destination course {course_id}: {e}")
        raise RestoreFailedError("courses", e) from e
    if not rows:
        raise RestoreValidationError(f"Destination course {course_id} not found")


# ============================================================================
# Plan
# ============================================================================


def _flat_step(entity: EntityDef, records: list[Record]) -> RestoreStep:
    async def run(uow: UnitOfWork, ctx: RemapContext, stats: dict[str, int]) -> None:
        stats[entity.name] = await restore_records(uow, entity, records, ctx)

    produces = (entity.remap,) if entity.remap else ()
    return RestoreStep(entity.name, entity.dependencies, produces, run)


def _nested_step(
    bundles: list[CourseBundle], options: RestoreOptions, scope: CourseScope
) -> RestoreStep:
    async def run(uow: UnitOfWork, ctx: RemapContext, stats: dict[str, int]) -> None:
        nested_stats = await restore_nested(uow, bundles, ctx, options, scope)
        for name, count in nested_stats.items():
            stats[name] = stats.get(name, 0) + count

    return RestoreStep(
        "coursesNested",
        ("unitStandards", "rubrics", "competencyUnits"),
        ("courses", "lessons", "exercises"),
        run,
    )


def check_plan_order(steps: list[RestoreStep]) -> None:
    """Verify no step runs before a step producing a remap table it reads.

    Raises:
        ValueError: On an out-of-order plan.
    """
    produced_at: dict[str, int] = {}
    for i, step in enumerate(steps):
        for name in step.produces:
            produced_at.setdefault(name, i)

    for i, step in enumerate(steps):
        for dep in step.dependencies:
            j = produced_at.get(dep)
            if j is not None and j > i:
                raise ValueError(
                    f"Restore plan out of order: {step.entity} reads {dep} "
                    f"before {steps[j].entity} writes it"
                )


def build_plan(
    document: BackupDocument, options: RestoreOptions, scope: CourseScope
) -> list[RestoreStep]:
    """Build the ordered restore plan for one request."""
    payload = resolve_payload(document.data)
    bundles = scope.filter_bundles(payload.bundles)
    tables = scope.filter_tables(payload.tables, payload.bundles)

    steps: list[RestoreStep] = []

    def add_flat(entity: EntityDef) -> None:
        if scope.excludes(entity) or options.skips(entity.skip_option):
            return
        records = tables.get(entity.name) or []
        if records:
            steps.append(_flat_step(entity, records))

    if bundles:
        for entity in entities_in_group("people", "curriculum"):
            add_flat(entity)
        steps.append(_nested_step(bundles, options, scope))
        for entity in entities_in_group("history"):
            add_flat(entity)
    else:
        for entity in ENTITIES:
            add_flat(entity)

    check_plan_order(steps)
    logger.info(
        f"Restore plan ({payload.kind}, {scope.mode}): "
        f"{', '.join(s.entity for s in steps) or 'nothing to restore'}"
    )
    return steps


# ============================================================================
# Execution
# ============================================================================


async def clear_existing(uow: UnitOfWork, options: RestoreOptions) -> None:
    """Delete every restorable table in reverse dependency order."""
    for entity in reversed(ENTITIES):
        if options.skip_users and entity.name in PEOPLE_KEPT_WITH_SKIP_USERS:
            continue
        await uow.delete(entity.table)
    logger.info("Cleared existing data")


async def restore_backup(
    adapter: DatabaseClient,
    document: BackupDocument,
    options: RestoreOptions | None = None,
) -> RestoreResult:
    """Restore a backup document atomically.

    Args:
        adapter: Store adapter providing ``transaction()``.
        document: Parsed backup document.
        options: Restore options (defaults: full restore, nothing skipped).

    Returns:
        ``RestoreResult`` with per-entity creation counts.

    Raises:
        BackupFormatError: Unsupported version (no store access).
        RestoreValidationError: Bad course options (no store writes).
        RestoreFailedError: The destination lookup or a step failed; the unit
            of work rolled back.
    """
    options = options or RestoreOptions()
    validate_restore_request(document, options)
    if options.restore_to_course_id:
        await _check_destination(adapter, options.restore_to_course_id)

    scope = CourseScope.from_options(options)
    steps = build_plan(document, options, scope)
    stats: dict[str, int] = {}

    current = "transaction"
    try:
        async with adapter.transaction() as uow:
            if options.clear_existing and options.restore_to_course_id:
                logger.warning("clearExisting ignored for a course-targeted restore")
            elif options.clear_existing:
                current = "clearExisting"
                await clear_existing(uow, options)

            ctx = RemapContext()
            scope.seed(ctx)

            for step in steps:
                current = step.entity
                logger.debug(f"Restoring {step.entity}")
                await step.run(uow, ctx, stats)
            current = "commit"
    except RestoreError:
        raise
    except Exception as e:
        logger.error(f"Error restoring {current}: {e}")
        raise RestoreFailedError(current, e) from e

    logger.info(f"Restore complete: {stats}")
    return RestoreResult(stats=stats, restored_from=document.metadata)


async def handle_restore_request(adapter: DatabaseClient, body: Any) -> RestoreResponse:
    """Parse, validate and run a restore request; shape the success response.

    Errors propagate as ``RestoreError`` subclasses; use
    ``RestoreError.to_response()`` to build the failure body.
    """
    request = parse_restore_request(body)
    result = await restore_backup(adapter, request.backup_data, request.options)
    return RestoreResponse(
        stats=result.stats,
        restored_from=result.restored_from.model_dump(by_alias=True, exclude_none=True),
    )
