"""Full vs course-scoped restore.

A scoped restore copies one course's curriculum (lessons and their
exercises, quiz questions, notes and PDFs) from the backup onto an
existing live course.  It never creates a course row, never touches
people or student history, and only pulls in the rubric and
unit-standard records the scoped exercises reference.
"""

from typing import Any, Literal

from pydantic import BaseModel

from course_restore.restore.entities import LESSON_CHILDREN, EntityDef
from course_restore.restore.models import CourseBundle, Record, RestoreOptions
from course_restore.restore.remap import RemapContext

SCOPED_EXCLUDED_GROUPS = ("people", "history")


class CourseScope(BaseModel):
    """Restore mode resolved from ``RestoreOptions``."""

    mode: Literal["full", "scoped"] = "full"
    source_course_id: str | None = None
    restore_to_course_id: str | None = None

    @classmethod
    def from_options(cls, options: RestoreOptions) -> "CourseScope":
        if options.scoped:
            return cls(
                mode="scoped",
                source_course_id=options.source_course_id,
                restore_to_course_id=options.restore_to_course_id,
            )
        return cls()

    @property
    def scoped(self) -> bool:
        return self.mode == "scoped"

    def seed(self, ctx: RemapContext) -> None:
        """Map the source course straight onto the destination course."""
        if self.scoped:
            ctx.seed("courses", self.source_course_id, self.restore_to_course_id)

    def excludes(self, entity: EntityDef) -> bool:
        """Entity types a scoped restore never writes."""
        if not self.scoped:
            return False
        return entity.group in SCOPED_EXCLUDED_GROUPS or entity.name == "courses"

    # ------------------------------------------------------------------
    # Record filtering
    # ------------------------------------------------------------------

    def filter_bundles(self, bundles: list[CourseBundle]) -> list[CourseBundle]:
        if not self.scoped:
            return bundles
        return [b for b in bundles if b.course.get("id") == self.source_course_id]

    def filter_tables(
        self,
        tables: dict[str, list[Record]],
        bundles: list[CourseBundle] | None = None,
    ) -> dict[str, list[Record]]:
        """Restrict flat arrays to what the scoped course needs.

        Course-tree arrays keep only the source course's lessons and their
        children.  Curriculum arrays keep only the rubrics, criteria,
        levels, mappings, competency units and unit standards referenced
        by the in-scope exercises (flat or nested).  Excluded groups are
        left for ``excludes`` to skip.
        """
        if not self.scoped:
            return tables

        filtered = dict(tables)

        lessons = [
            r for r in tables.get("lessons", [])
            if r.get("courseId") == self.source_course_id
        ]
        lesson_ids = {r.get("id") for r in lessons}
        filtered["lessons"] = lessons
        for name in LESSON_CHILDREN:
            filtered[name] = [
                r for r in tables.get(name, []) if r.get("lessonId") in lesson_ids
            ]

        exercises = list(filtered["exercises"])
        for bundle in self.filter_bundles(bundles or []):
            for lesson in bundle.lessons:
                exercises.extend(lesson.exercises)

        filtered.update(_referenced_curriculum(tables, exercises))
        return filtered


def _ids(records: list[Record], field: str) -> set[Any]:
    return {r.get(field) for r in records if r.get(field) is not None}


def _referenced_curriculum(
    tables: dict[str, list[Record]], exercises: list[Record]
) -> dict[str, list[Record]]:
    rubric_ids = _ids(exercises, "rubricId")
    unit_ids = _ids(exercises, "competencyUnitId")

    criteria_mappings = [
        r for r in tables.get("rubricCriteriaMappings", []) if r.get("rubricId") in rubric_ids
    ]
    level_mappings = [
        r for r in tables.get("rubricLevelMappings", []) if r.get("rubricId") in rubric_ids
    ]
    criteria_ids = _ids(criteria_mappings, "criteriaId")
    level_ids = _ids(level_mappings, "levelId")

    competency_units = [
        r for r in tables.get("competencyUnits", []) if r.get("id") in unit_ids
    ]
    standard_ids = _ids(competency_units, "unitStandardId")

    return {
        "unitStandards": [
            r for r in tables.get("unitStandards", []) if r.get("id") in standard_ids
        ],
        "competencyUnits": competency_units,
        "rubrics": [r for r in tables.get("rubrics", []) if r.get("id") in rubric_ids],
        "rubricCriteria": [
            r for r in tables.get("rubricCriteria", []) if r.get("id") in criteria_ids
        ],
        "rubricLevels": [
            r for r in tables.get("rubricLevels", []) if r.get("id") in level_ids
        ],
        "rubricCriteriaMappings": criteria_mappings,
        "rubricLevelMappings": level_mappings,
    }
