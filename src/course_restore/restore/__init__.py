"""Backup-restore engine.

Restores an exported platform snapshot into a live store: dependency
ordered, with backup-time ids remapped to live ids, natural-key
deduplication, nested or flat encodings, optional course scoping, all
inside one unit of work.

Usage:
    from course_restore.restore import handle_restore_request, validate_backup
"""

from course_restore.restore.engine import (
    build_plan,
    handle_restore_request,
    parse_restore_request,
    restore_backup,
    validate_restore_request,
)
from course_restore.restore.entities import ENTITIES, EntityDef, ForeignKey, get_entity
from course_restore.restore.errors import (
    BackupFormatError,
    RestoreError,
    RestoreFailedError,
    RestoreValidationError,
)
from course_restore.restore.models import (
    SUPPORTED_BACKUP_VERSION,
    BackupDocument,
    RestoreOptions,
    RestoreResponse,
    RestoreResult,
)
from course_restore.restore.remap import RemapContext, RemapTable
from course_restore.restore.validation import validate_backup

__all__ = [
    "ENTITIES",
    "EntityDef",
    "ForeignKey",
    "get_entity",
    "SUPPORTED_BACKUP_VERSION",
    "BackupDocument",
    "RestoreOptions",
    "RestoreResponse",
    "RestoreResult",
    "RemapContext",
    "RemapTable",
    "RestoreError",
    "BackupFormatError",
    "RestoreValidationError",
    "RestoreFailedError",
    "build_plan",
    "handle_restore_request",
    "parse_restore_request",
    "restore_backup",
    "validate_restore_request",
    "validate_backup",
]
