"""Pydantic models for database and restore configuration."""

from pydantic import BaseModel, Field

# JSON columns in the platform schema; inserted with CAST(... AS jsonb)
DEFAULT_JSONB_COLUMNS = (
    "options",               # QuizQuestion
    "questions",             # QuizAttempt
    "codingStandards",       # ExerciseSubmission
    "performanceCriteria",   # CompetencyUnit
    "previousValue",         # AssessmentAuditLog
    "newValue",              # AssessmentAuditLog
)

# timestamp(3) columns holding UTC; ISO strings are bound as datetime
DEFAULT_DATETIME_COLUMNS = (
    "createdAt",
    "updatedAt",
    "verifiedAt",
    "moderatedAt",
    "gradedAt",
    "submittedAt",
    "completedAt",
    "uploadedAt",
    "issueDate",
    "expiryDate",
)


class DatabaseProfile(BaseModel):
    """Database connection profile from db.toml."""

    url: str
    description: str = ""
    db_password: str | None = None  # For [YOUR-PASSWORD] placeholder substitution


class RestoreSettings(BaseModel):
    """``[restore]`` table from db.toml."""

    jsonb_columns: list[str] = Field(default_factory=lambda: list(DEFAULT_JSONB_COLUMNS))
    datetime_columns: list[str] = Field(
        default_factory=lambda: list(DEFAULT_DATETIME_COLUMNS)
    )
    backups_dir: str = "backups"


class DatabaseConfig(BaseModel):
    """Complete configuration from db.toml."""

    profiles: dict[str, DatabaseProfile] = Field(default_factory=dict)
    restore: RestoreSettings = Field(default_factory=RestoreSettings)
