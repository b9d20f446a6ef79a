"""Configuration management: profiles, TOML loading, and config models.

Usage:
    >>> from course_restore.config import load_db_config, DatabaseProfile, DatabaseConfig
"""

from course_restore.config.loader import load_db_config
from course_restore.config.models import DatabaseConfig, DatabaseProfile, RestoreSettings

__all__ = ["load_db_config", "DatabaseConfig", "DatabaseProfile", "RestoreSettings"]
