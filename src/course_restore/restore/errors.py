"""Restore error taxonomy.

``BackupFormatError`` and ``RestoreValidationError`` are raised before the
store is written to.  ``RestoreFailedError`` wraps an unexpected store
error and names the entity type that was being restored; by the time it
reaches the caller the unit of work has rolled back.

Natural-key collisions are not errors at this level -- see
``course_restore.adapters.base.UniqueConstraintError``.
"""


class RestoreError(Exception):
    """Base class for restore failures surfaced to the caller."""

    summary = "Failed to restore backup"

    def to_response(self) -> dict:
        """Shape the error the way the admin endpoint reports failures."""
        return {"error": self.summary, "details": str(self)}


class BackupFormatError(RestoreError):
    """Backup document is malformed or uses an unsupported version."""

    summary = "Invalid backup file format"


class RestoreValidationError(RestoreError):
    """Restore options are inconsistent with the backup or the live store."""

    summary = "Invalid restore options"


class RestoreFailedError(RestoreError):
    """An entity restorer hit an unexpected error; the restore rolled back."""

    def __init__(self, entity_type: str, cause: BaseException) -> None:
        self.entity_type = entity_type
        self.cause = cause
        super().__init__(f"Error restoring {entity_type}: {cause}")
