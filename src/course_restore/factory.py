"""Database adapter factory.

Supports two configuration modes:
1. Profile mode (db.toml + ``--profile`` or ``DB_PROFILE``): named connection profiles
2. URL mode (``DATABASE_URL`` in the environment): single database connection

All environment lookups honour an optional prefix, e.g. ``env_prefix="ACADEMY_"``
reads ``ACADEMY_DB_PROFILE`` and ``ACADEMY_DATABASE_URL``.
"""

import logging
import os
from pathlib import Path
from urllib.parse import quote

from course_restore.adapters.postgres import AsyncPostgresAdapter
from course_restore.config.loader import load_db_config
from course_restore.config.models import DatabaseConfig, DatabaseProfile, RestoreSettings

logger = logging.getLogger(__name__)


class ProfileNotFoundError(Exception):
    """Raised when no database profile or URL is configured."""

    pass


def resolve_url(profile: DatabaseProfile) -> str:
    """Resolve profile URL with password substitution.

    Args:
        profile: Database profile from config

    Returns:
        Connection URL with password substituted
    """
    url = profile.url
    if profile.db_password and "[YOUR-PASSWORD]" in url:
        url = url.replace("[YOUR-PASSWORD]", quote(profile.db_password, safe=""))
    return url


def get_active_profile_name(env_prefix: str = "") -> str | None:
    """Get active profile name from the ``{prefix}DB_PROFILE`` env var."""
    return os.environ.get(f"{env_prefix}DB_PROFILE") or None


def _try_load_config(config_path: Path | None) -> DatabaseConfig | None:
    try:
        return load_db_config(config_path)
    except FileNotFoundError:
        return None


def get_adapter(
    profile_name: str | None = None,
    env_prefix: str = "",
    config_path: Path | None = None,
) -> AsyncPostgresAdapter:
    """Create an adapter for the configured database.

    Priority:
    1. ``profile_name`` argument
    2. ``{prefix}DB_PROFILE`` env var
    3. ``{prefix}DATABASE_URL`` env var
    4. Raise ProfileNotFoundError

    Args:
        profile_name: Profile name from db.toml.
        env_prefix: Prefix for environment variable lookup.
        config_path: Path to db.toml (default: ``./db.toml``).

    Returns:
        AsyncPostgresAdapter configured with the ``[restore]`` JSONB columns.

    Raises:
        ProfileNotFoundError: If no database configuration found
        KeyError: If the named profile is not in db.toml

    Example:
        >>> adapter = get_adapter("local")
    """
    config = _try_load_config(config_path)
    settings = config.restore if config else RestoreSettings()

    profile_name = profile_name or get_active_profile_name(env_prefix)
    if profile_name:
        if config is None:
            raise ProfileNotFoundError(
                f"Profile '{profile_name}' requested but db.toml was not found"
            )
        if profile_name not in config.profiles:
            raise KeyError(
                f"Profile '{profile_name}' not found in db.toml.\n"
                f"Available profiles: {', '.join(config.profiles.keys())}"
            )
        logger.debug(f"Using database profile {profile_name}")
        return AsyncPostgresAdapter(
            resolve_url(config.profiles[profile_name]),
            jsonb_columns=settings.jsonb_columns,
            datetime_columns=settings.datetime_columns,
        )

    database_url = os.environ.get(f"{env_prefix}DATABASE_URL")
    if database_url:
        logger.debug(f"Using {env_prefix}DATABASE_URL")
        return AsyncPostgresAdapter(
            database_url,
            jsonb_columns=settings.jsonb_columns,
            datetime_columns=settings.datetime_columns,
        )

    raise ProfileNotFoundError(
        "No database configuration found.\n"
        "Either:\n"
        f"  1. Create db.toml and pass --profile <name> (or set {env_prefix}DB_PROFILE)\n"
        f"  2. Set {env_prefix}DATABASE_URL"
    )
