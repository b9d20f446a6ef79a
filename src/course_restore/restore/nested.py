"""Restore the ``coursesNested`` course tree.

Walks course bundles top to bottom.  Each course resolves to a live id
(scoped mapping, earlier remap, title match, or a new row); each lesson
is matched on ``(courseId, number)`` under that course or created; each
child record gets the live lesson id and its remaining foreign keys
(rubric, competency unit) remapped, then is created with skip-on-conflict.
"""

import logging
from typing import Any

from course_restore.adapters.base import UnitOfWork
from course_restore.restore.entities import LESSON_CHILDREN, EntityDef, get_entity
from course_restore.restore.errors import RestoreFailedError
from course_restore.restore.models import CourseBundle, Record, RestoreOptions
from course_restore.restore.remap import RemapContext
from course_restore.restore.restorers import RecordOutcome, restore_record
from course_restore.restore.scope import CourseScope

logger = logging.getLogger(__name__)


async def _restore_one(
    uow: UnitOfWork,
    entity: EntityDef,
    record: Record,
    ctx: RemapContext,
    resolved: dict[str, Any] | None = None,
) -> tuple[RecordOutcome, Any | None]:
    """``restore_record`` that names the failing entity type on store errors."""
    try:
        return await restore_record(uow, entity, record, ctx, resolved=resolved)
    except Exception as e:
        logger.error(f"Error restoring {entity.name}: {e}")
        raise RestoreFailedError(entity.name, e) from e


async def _resolve_course(
    uow: UnitOfWork,
    bundle: CourseBundle,
    ctx: RemapContext,
    stats: dict[str, int],
) -> Any | None:
    old_id = bundle.course.get("id")
    mapped = ctx.resolve("courses", old_id)
    if mapped is not None:
        # Scoped destination or a course restored by an earlier bundle
        return mapped

    outcome, live_id = await _restore_one(uow, get_entity("courses"), bundle.course, ctx)
    stats.setdefault("courses", 0)
    if outcome is RecordOutcome.CREATED:
        stats["courses"] += 1
    return live_id


async def restore_nested(
    uow: UnitOfWork,
    bundles: list[CourseBundle],
    ctx: RemapContext,
    options: RestoreOptions,
    scope: CourseScope,
) -> dict[str, int]:
    """Restore courses, lessons and lesson content from nested bundles.

    Args:
        uow: Open unit of work.
        bundles: Course bundles, already filtered to the scope.
        ctx: Remap tables; prerequisites (rubrics, competency units, unit
            standards) must already be populated.
        options: Restore options (per-type skip flags).
        scope: Full or scoped restore.

    Returns:
        Creation counts for ``courses``, ``lessons`` and each child type
        that had records.
    """
    stats: dict[str, int] = {}
    lessons_def = get_entity("lessons")
    children = [
        get_entity(name) for name in LESSON_CHILDREN
        if not options.skips(get_entity(name).skip_option)
    ]

    for bundle in bundles:
        course_id = await _resolve_course(uow, bundle, ctx, stats)
        if course_id is None:
            logger.warning(
                f"Course {bundle.course.get('id')!r} could not be resolved, "
                f"skipping {len(bundle.lessons)} lessons"
            )
            continue

        for lesson_bundle in bundle.lessons:
            stats.setdefault("lessons", 0)
            outcome, lesson_id = await _restore_one(
                uow,
                lessons_def,
                lesson_bundle.lesson,
                ctx,
                resolved={"courseId": course_id},
            )
            if outcome is RecordOutcome.CREATED:
                stats["lessons"] += 1
            if lesson_id is None:
                continue

            for child in children:
                records = lesson_bundle.children(child.name)
                if not records:
                    continue
                stats.setdefault(child.name, 0)
                for record in records:
                    outcome, _ = await _restore_one(
                        uow, child, record, ctx, resolved={"lessonId": lesson_id}
                    )
                    if outcome is RecordOutcome.CREATED:
                        stats[child.name] += 1

    logger.info(f"coursesNested ({scope.mode}): {stats}")
    return stats
