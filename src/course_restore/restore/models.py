"""Backup document, restore options, and result models.

The wire format uses camelCase keys (``coursesNested``, ``sourceCourseId``,
``restoredFrom``); the models expose snake_case attributes and accept
either spelling.

Entity records stay plain dicts -- column name to value, exactly as
exported -- so the engine can pass them to the store unchanged apart from
id remapping.

Usage:
    from course_restore.restore.models import BackupDocument, resolve_payload

    document = BackupDocument.model_validate(raw["backupData"])
    payload = resolve_payload(document.data)
    if payload.kind == "flat":
        users = payload.tables.get("users", [])
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

SUPPORTED_BACKUP_VERSION = "1.0.0"

Record = dict[str, Any]


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============================================================================
# Backup Document
# ============================================================================


class BackupMetadata(_CamelModel):
    """Snapshot metadata.  Unknown keys are kept and echoed back."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="allow"
    )

    version: str | None = None
    timestamp: str | None = None
    exported_by: str | None = None
    exported_by_email: str | None = None
    database_version: str | None = None
    record_counts: dict[str, int] = Field(default_factory=dict)


class LessonBundle(_CamelModel):
    """A lesson with its nested content."""

    lesson: Record
    exercises: list[Record] = Field(default_factory=list)
    quiz_questions: list[Record] = Field(default_factory=list)
    lesson_notes: list[Record] = Field(default_factory=list)
    pdf_resources: list[Record] = Field(default_factory=list)

    def children(self, entity_name: str) -> list[Record]:
        """Nested records for one child entity type (``"quizQuestions"``, ...)."""
        return {
            "exercises": self.exercises,
            "quizQuestions": self.quiz_questions,
            "lessonNotes": self.lesson_notes,
            "pdfResources": self.pdf_resources,
        }[entity_name]


class CourseBundle(_CamelModel):
    """A course with its lessons, as exported in ``coursesNested``."""

    course: Record
    lessons: list[LessonBundle] = Field(default_factory=list)


class BackupData(_CamelModel):
    """The ``data`` block: optional nested course tree plus flat arrays.

    Flat arrays are kept as extra fields under their exported keys.
    """

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="allow"
    )

    courses_nested: list[CourseBundle] | None = None

    @model_validator(mode="after")
    def _flat_arrays_are_lists(self) -> "BackupData":
        for key, value in (self.model_extra or {}).items():
            if value is None:
                continue
            if not isinstance(value, list):
                raise ValueError(f"data.{key} must be a list of records")
            for i, row in enumerate(value):
                if not isinstance(row, dict):
                    raise ValueError(f"data.{key}[{i}] must be an object")
        return self

    @property
    def tables(self) -> dict[str, list[Record]]:
        """Flat arrays keyed by entity type (``None`` arrays dropped)."""
        return {
            key: value
            for key, value in (self.model_extra or {}).items()
            if value is not None
        }

    def table(self, name: str) -> list[Record]:
        return self.tables.get(name, [])


class BackupDocument(_CamelModel):
    """A complete snapshot: metadata plus data."""

    metadata: BackupMetadata
    data: BackupData


# ============================================================================
# Payload (resolved once per restore)
# ============================================================================


class NestedPayload(BaseModel):
    """Only the nested course tree is present."""

    kind: Literal["nested"] = "nested"
    bundles: list[CourseBundle]

    @property
    def tables(self) -> dict[str, list[Record]]:
        return {}


class FlatPayload(BaseModel):
    """Only flat per-entity arrays are present."""

    kind: Literal["flat"] = "flat"
    tables: dict[str, list[Record]] = Field(default_factory=dict)

    @property
    def bundles(self) -> list[CourseBundle]:
        return []


class MixedPayload(BaseModel):
    """Nested course tree plus flat arrays for everything outside it."""

    kind: Literal["both"] = "both"
    bundles: list[CourseBundle]
    tables: dict[str, list[Record]] = Field(default_factory=dict)


def resolve_payload(data: BackupData) -> NestedPayload | FlatPayload | MixedPayload:
    """Classify the data block as nested, flat, or both.

    An empty ``coursesNested`` list counts as absent.
    """
    tables = {k: v for k, v in data.tables.items() if v}
    if data.courses_nested:
        if tables:
            return MixedPayload(bundles=data.courses_nested, tables=tables)
        return NestedPayload(bundles=data.courses_nested)
    return FlatPayload(tables=tables)


# ============================================================================
# Options, Request, Result
# ============================================================================


class RestoreOptions(_CamelModel):
    """Caller-supplied restore options."""

    clear_existing: bool = False
    skip_users: bool = False
    skip_grades: bool = False
    skip_quiz_attempts: bool = False
    skip_exercises: bool = False
    skip_quiz_questions: bool = False
    skip_lesson_notes: bool = False
    skip_pdf_resources: bool = False
    source_course_id: str | None = None
    restore_to_course_id: str | None = None

    @property
    def scoped(self) -> bool:
        """Both source and destination course ids are set."""
        return bool(self.source_course_id and self.restore_to_course_id)

    def skips(self, skip_option: str | None) -> bool:
        return bool(skip_option and getattr(self, skip_option))


class RestoreRequest(_CamelModel):
    """Request body accepted by the admin restore endpoint."""

    backup_data: BackupDocument
    options: RestoreOptions = Field(default_factory=RestoreOptions)


class RestoreResult(BaseModel):
    """Engine output: per-entity creation counts and the source metadata."""

    stats: dict[str, int] = Field(default_factory=dict)
    restored_from: BackupMetadata


class RestoreResponse(_CamelModel):
    """Success response body."""

    success: bool = True
    message: str = "Backup restored successfully"
    stats: dict[str, int] = Field(default_factory=dict)
    restored_from: dict[str, Any] = Field(default_factory=dict)

    def to_dict(self) -> dict:
        return self.model_dump(by_alias=True)
