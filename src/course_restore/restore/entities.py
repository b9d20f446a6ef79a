"""Declarative catalogue of restorable entity types.

Each ``EntityDef`` names the backup key, the live table, the remap table
it populates, its natural key, and its foreign keys.  ``ENTITIES`` is
ordered by dependency (parents first); the orchestrator builds its plan
from this order and the clear-existing pass walks it in reverse.

Usage:
    from course_restore.restore.entities import ENTITIES, get_entity

    lessons = get_entity("lessons")
    lessons.table            # "Lesson"
    lessons.natural_key      # ("courseId", "number")
    lessons.dependencies     # ("courses",)
"""

from typing import Literal

from pydantic import BaseModel, Field

Group = Literal["people", "curriculum", "course_tree", "history"]


class ForeignKey(BaseModel):
    """Foreign key column and the remap table that resolves it."""

    field: str          # FK column in this entity
    remap: str          # remap table holding backup id -> live id


class EntityDef(BaseModel):
    """Definition of an entity type for restore operations."""

    name: str                                               # key under backup ``data``
    table: str                                              # live table name
    group: Group
    remap: str | None = None                                # remap table this entity populates
    natural_key: tuple[str, ...] = ()                       # fields identifying an existing row
    required: list[ForeignKey] = Field(default_factory=list)  # drop record if unresolved
    optional: list[ForeignKey] = Field(default_factory=list)  # null if unresolved
    skip_option: str | None = None                          # RestoreOptions flag that skips it

    @property
    def foreign_keys(self) -> list[ForeignKey]:
        return [*self.required, *self.optional]

    @property
    def dependencies(self) -> tuple[str, ...]:
        """Remap tables that must be populated before this entity runs."""
        seen: list[str] = []
        for fk in self.foreign_keys:
            if fk.remap not in seen:
                seen.append(fk.remap)
        return tuple(seen)


def _fk(field: str, remap: str) -> ForeignKey:
    return ForeignKey(field=field, remap=remap)


ENTITIES: list[EntityDef] = [
    EntityDef(
        name="users", table="User", group="people",
        remap="users", natural_key=("email",), skip_option="skip_users",
    ),
    EntityDef(
        name="cohorts", table="Cohort", group="people",
        remap="cohorts", natural_key=("name",),
    ),
    EntityDef(
        name="students", table="Student", group="people",
        remap="students", natural_key=("registrationNumber",),
        optional=[_fk("cohortId", "cohorts"), _fk("userId", "users")],
        skip_option="skip_users",
    ),
    EntityDef(
        name="instructors", table="Instructor", group="people",
        remap="instructors", natural_key=("userId",),
        required=[_fk("userId", "users")],
        skip_option="skip_users",
    ),
    EntityDef(
        name="assessorAccreditations", table="AssessorAccreditation", group="people",
        natural_key=("instructorId", "accreditationNumber"),
        required=[_fk("instructorId", "instructors")],
        skip_option="skip_users",
    ),
    EntityDef(
        name="unitStandards", table="UnitStandard", group="curriculum",
        remap="unitStandards", natural_key=("code",),
    ),
    EntityDef(
        name="competencyUnits", table="CompetencyUnit", group="curriculum",
        remap="competencyUnits", natural_key=("unitStandardId", "code"),
        required=[_fk("unitStandardId", "unitStandards")],
    ),
    EntityDef(
        name="rubrics", table="Rubric", group="curriculum",
        remap="rubrics", natural_key=("name",),
    ),
    EntityDef(
        name="rubricCriteria", table="RubricCriteria", group="curriculum",
        remap="rubricCriteria", natural_key=("name",),
    ),
    EntityDef(
        name="rubricLevels", table="RubricLevel", group="curriculum",
        remap="rubricLevels", natural_key=("name", "points"),
    ),
    EntityDef(
        name="rubricCriteriaMappings", table="RubricCriteriaMapping", group="curriculum",
        natural_key=("rubricId", "criteriaId"),
        required=[_fk("rubricId", "rubrics"), _fk("criteriaId", "rubricCriteria")],
    ),
    EntityDef(
        name="rubricLevelMappings", table="RubricLevelMapping", group="curriculum",
        natural_key=("rubricId", "levelId"),
        required=[_fk("rubricId", "rubrics"), _fk("levelId", "rubricLevels")],
    ),
    EntityDef(
        name="courses", table="Course", group="course_tree",
        remap="courses", natural_key=("title",),
        optional=[_fk("unitStandardId", "unitStandards")],
    ),
    EntityDef(
        name="courseInstructors", table="CourseInstructor", group="history",
        natural_key=("courseId", "instructorId"),
        required=[_fk("courseId", "courses"), _fk("instructorId", "instructors")],
    ),
    EntityDef(
        name="lessons", table="Lesson", group="course_tree",
        remap="lessons", natural_key=("courseId", "number"),
        required=[_fk("courseId", "courses")],
    ),
    EntityDef(
        name="exercises", table="Exercise", group="course_tree",
        remap="exercises", natural_key=("lessonId", "title"),
        required=[_fk("lessonId", "lessons"), _fk("rubricId", "rubrics")],
        optional=[_fk("competencyUnitId", "competencyUnits")],
        skip_option="skip_exercises",
    ),
    EntityDef(
        name="quizQuestions", table="QuizQuestion", group="course_tree",
        natural_key=("lessonId", "question"),
        required=[_fk("lessonId", "lessons")],
        skip_option="skip_quiz_questions",
    ),
    EntityDef(
        name="lessonNotes", table="LessonNote", group="course_tree",
        natural_key=("lessonId", "title"),
        required=[_fk("lessonId", "lessons")],
        skip_option="skip_lesson_notes",
    ),
    EntityDef(
        name="pdfResources", table="PDFResource", group="course_tree",
        natural_key=("lessonId", "fileUrl"),
        required=[_fk("lessonId", "lessons")],
        skip_option="skip_pdf_resources",
    ),
    EntityDef(
        name="courseSubscriptions", table="CourseSubscription", group="history",
        natural_key=("studentId", "courseId"),
        required=[_fk("studentId", "students"), _fk("courseId", "courses")],
        optional=[_fk("userId", "users")],
    ),
    EntityDef(
        name="exerciseSubmissions", table="ExerciseSubmission", group="history",
        natural_key=("studentId", "exerciseId"),
        required=[_fk("studentId", "students"), _fk("exerciseId", "exercises")],
    ),
    EntityDef(
        name="grades", table="Grade", group="history",
        remap="grades", natural_key=("studentId", "exerciseId"),
        required=[
            _fk("studentId", "students"),
            _fk("lessonId", "lessons"),
            _fk("exerciseId", "exercises"),
        ],
        optional=[
            _fk("assessorId", "instructors"),
            _fk("verifiedBy", "instructors"),
            _fk("moderatedBy", "instructors"),
        ],
        skip_option="skip_grades",
    ),
    EntityDef(
        name="gradeCriteria", table="GradeCriteria", group="history",
        natural_key=("gradeId", "criteriaId"),
        required=[
            _fk("gradeId", "grades"),
            _fk("criteriaId", "rubricCriteria"),
            _fk("levelId", "rubricLevels"),
        ],
        skip_option="skip_grades",
    ),
    EntityDef(
        name="quizAttempts", table="QuizAttempt", group="history",
        natural_key=("studentId", "lessonId", "completedAt"),
        required=[_fk("studentId", "students"), _fk("lessonId", "lessons")],
        skip_option="skip_quiz_attempts",
    ),
    EntityDef(
        name="assessmentAuditLogs", table="AssessmentAuditLog", group="history",
        natural_key=("gradeId", "action", "createdAt"),
        required=[_fk("gradeId", "grades")],
        skip_option="skip_grades",
    ),
]

ENTITY_BY_NAME: dict[str, EntityDef] = {e.name: e for e in ENTITIES}

REMAP_KEYS: tuple[str, ...] = tuple(e.remap for e in ENTITIES if e.remap)

# Children carried inside a nested lesson bundle, in restore order
LESSON_CHILDREN: tuple[str, ...] = ("exercises", "quizQuestions", "lessonNotes", "pdfResources")


def get_entity(name: str) -> EntityDef:
    """Look up an ``EntityDef`` by backup key.

    Raises:
        KeyError: If ``name`` is not a restorable entity type.
    """
    try:
        return ENTITY_BY_NAME[name]
    except KeyError:
        raise KeyError(f"Unknown entity type: {name}") from None


def entities_in_group(*groups: Group) -> list[EntityDef]:
    """Entities belonging to any of ``groups``, in dependency order."""
    return [e for e in ENTITIES if e.group in groups]
