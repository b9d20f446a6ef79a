"""Store adapters package.

Provides the ``DatabaseClient``/``UnitOfWork`` Protocols, the
``UniqueConstraintError`` adapters raise on natural-key collisions, and
the async PostgreSQL implementation.

Usage:
    from course_restore.adapters import AsyncPostgresAdapter, DatabaseClient
"""

from course_restore.adapters.base import DatabaseClient, UniqueConstraintError, UnitOfWork
from course_restore.adapters.postgres import AsyncPostgresAdapter

__all__ = [
    "DatabaseClient",
    "UnitOfWork",
    "UniqueConstraintError",
    "AsyncPostgresAdapter",
]
