"""course-restore: transactional restore engine for education-platform backups.

Restores exported snapshots (users, cohorts, courses, lessons, exercises,
rubrics, grades, ...) into a live PostgreSQL store with id remapping,
natural-key deduplication and optional single-course scoping.

Usage:
    from course_restore import AsyncPostgresAdapter, handle_restore_request
    from course_restore import RestoreOptions, restore_backup, validate_backup
    from course_restore import get_adapter, load_db_config
"""

__version__ = "0.1.0"

# Adapters
from course_restore.adapters.base import DatabaseClient, UniqueConstraintError, UnitOfWork
from course_restore.adapters.postgres import AsyncPostgresAdapter

# Config
from course_restore.config.loader import load_db_config
from course_restore.config.models import DatabaseConfig, DatabaseProfile

# Factory
from course_restore.factory import ProfileNotFoundError, get_adapter, resolve_url

# Restore engine
from course_restore.restore import (
    BackupDocument,
    BackupFormatError,
    RestoreError,
    RestoreFailedError,
    RestoreOptions,
    RestoreResponse,
    RestoreResult,
    RestoreValidationError,
    handle_restore_request,
    restore_backup,
    validate_backup,
)

__all__ = [
    # Adapters
    "DatabaseClient",
    "UnitOfWork",
    "UniqueConstraintError",
    "AsyncPostgresAdapter",
    # Config
    "load_db_config",
    "DatabaseProfile",
    "DatabaseConfig",
    # Factory
    "get_adapter",
    "ProfileNotFoundError",
    "resolve_url",
    # Restore engine
    "BackupDocument",
    "RestoreOptions",
    "RestoreResult",
    "RestoreResponse",
    "RestoreError",
    "BackupFormatError",
    "RestoreValidationError",
    "RestoreFailedError",
    "handle_restore_request",
    "restore_backup",
    "validate_backup",
]
