"""CLI for restoring and validating platform backups.

Usage:
    course-restore validate backups/backup-2024-06-01.json
    course-restore --profile local restore backups/backup.json --yes
    course-restore restore backups/backup.json --clear-existing --skip-grades
    course-restore restore backups/backup.json \\
        --source-course c-101 --restore-to-course c-202
    course-restore profiles

Commands:
    restore   - Restore a backup into the configured database
    validate  - Check a backup file without touching any database
    profiles  - List available profiles
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from rich.console import Console
from rich.table import Table

from course_restore.config.loader import load_db_config
from course_restore.config.models import RestoreSettings
from course_restore.factory import ProfileNotFoundError, get_active_profile_name, get_adapter
from course_restore.restore.engine import handle_restore_request
from course_restore.restore.errors import RestoreError
from course_restore.restore.validation import validate_backup

console = Console()

# CLI flag dest -> request option key
_OPTION_FLAGS = {
    "clear_existing": "clearExisting",
    "skip_users": "skipUsers",
    "skip_grades": "skipGrades",
    "skip_quiz_attempts": "skipQuizAttempts",
    "skip_exercises": "skipExercises",
    "skip_quiz_questions": "skipQuizQuestions",
    "skip_lesson_notes": "skipLessonNotes",
    "skip_pdf_resources": "skipPdfResources",
}


def build_request_body(args: argparse.Namespace, backup: dict) -> dict:
    """Assemble the restore request body from parsed arguments."""
    options: dict = {key: True for dest, key in _OPTION_FLAGS.items() if getattr(args, dest, False)}
    if args.source_course:
        options["sourceCourseId"] = args.source_course
    if args.restore_to_course:
        options["restoreToCourseId"] = args.restore_to_course
    return {"backupData": backup, "options": options}


def resolve_backup_path(backup_path: str) -> Path:
    """Locate a backup file, falling back to ``[restore] backups_dir``.

    A relative path that does not exist from the working directory is
    looked up under ``backups_dir`` (from db.toml, default ``backups``).
    """
    path = Path(backup_path)
    if path.exists() or path.is_absolute():
        return path
    try:
        settings = load_db_config().restore
    except FileNotFoundError:
        settings = RestoreSettings()
    candidate = Path(settings.backups_dir) / path
    return candidate if candidate.exists() else path


def _print_report(report: dict) -> None:
    if report["errors"]:
        console.print(f"\n[bold red]x[/bold red] Found {len(report['errors'])} errors:")
        for error in report["errors"]:
            console.print(f"   - {error}")

    if report["warnings"]:
        console.print(f"\n[yellow]Found {len(report['warnings'])} warnings:[/yellow]")
        for warning in report["warnings"]:
            console.print(f"   - {warning}")


def _print_stats(stats: dict[str, int]) -> None:
    table = Table(title="Created Records", show_header=True, header_style="bold")
    table.add_column("Entity")
    table.add_column("Created", justify="right")
    for name, count in stats.items():
        table.add_row(name, str(count))
    console.print(table)


# ============================================================================
# Async command implementations
# ============================================================================


async def _check_connection(adapter) -> bool:
    try:
        connected = await adapter.test_connection()
    except Exception as e:
        console.print(f"[red]Error: cannot connect to database: {e}[/red]")
        return False
    if not connected:
        console.print("[red]Error: database connection check failed[/red]")
    return connected


async def _async_restore(args: argparse.Namespace) -> int:
    """Async implementation for restore command.

    Returns:
        0 on success, 1 on failure.
    """
    backup_path = resolve_backup_path(args.backup_path)
    try:
        with open(backup_path, "r") as f:
            backup = json.load(f)
    except (FileNotFoundError, json.JSONDecodeError) as e:
        console.print(f"[red]Error reading backup: {e}[/red]")
        return 1

    body = build_request_body(args, backup)

    if not args.yes:
        console.print(f"This will restore data from: [cyan]{backup_path}[/cyan]")
        if body["options"].get("clearExisting") and not args.restore_to_course:
            console.print("[bold yellow]WARNING: existing data will be deleted first![/bold yellow]")
        response = console.input("Continue? [y/N] ")
        if response.lower() not in ["y", "yes"]:
            console.print("Cancelled.")
            return 0

    try:
        adapter = get_adapter(args.profile, env_prefix=args.env_prefix)
    except (ProfileNotFoundError, KeyError) as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    try:
        if not await _check_connection(adapter):
            return 1
        result = await handle_restore_request(adapter, body)
    except RestoreError as e:
        console.print(f"\n[bold red]x[/bold red] {e.summary}: {e}")
        return 1
    finally:
        await adapter.close()

    console.print(f"\n[bold green]v[/bold green] {result.message}")
    _print_stats(result.stats)
    return 0


# ============================================================================
# Sync command wrappers
# ============================================================================


def cmd_restore(args: argparse.Namespace) -> int:
    """Restore a backup file.

    Wraps the async implementation with ``asyncio.run()``.
    """
    return asyncio.run(_async_restore(args))


def cmd_validate(args: argparse.Namespace) -> int:
    """Validate a backup file.  Reads only the local file -- no database calls.

    Returns:
        0 if valid (warnings allowed), 1 otherwise.
    """
    backup_path = resolve_backup_path(args.backup_path)
    console.print(f"Validating: [cyan]{backup_path}[/cyan]")
    report = validate_backup(backup_path)
    _print_report(report)

    if report["recordCounts"]:
        table = Table(title="Record Counts", show_header=True, header_style="bold")
        table.add_column("Entity")
        table.add_column("Count", justify="right")
        for name, count in report["recordCounts"].items():
            table.add_row(name, str(count))
        console.print(table)

    if report["valid"]:
        console.print("\n[bold green]v[/bold green] Backup is valid")
        return 0
    console.print("\n[bold red]x[/bold red] Backup is invalid")
    return 1


def cmd_profiles(args: argparse.Namespace) -> int:
    """List available profiles from db.toml.

    Returns:
        0 on success, 1 if db.toml not found.
    """
    try:
        config = load_db_config()
    except FileNotFoundError as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    current = args.profile or get_active_profile_name(args.env_prefix)

    table = Table(title="Database Profiles", show_header=True, header_style="bold")
    table.add_column("", width=2)
    table.add_column("Profile")
    table.add_column("Description")

    for name, profile in config.profiles.items():
        marker = "[bold green]*[/bold green]" if name == current else " "
        table.add_row(marker, name, profile.description or "")

    console.print(table)
    return 0


# ============================================================================
# Main entry point
# ============================================================================


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    parser = argparse.ArgumentParser(
        prog="course-restore",
        description="Restore platform backups into a live database",
    )
    parser.add_argument("--profile", help="Database profile from db.toml")
    parser.add_argument(
        "--env-prefix",
        default="",
        help=(
            "Prefix for environment variable lookup "
            "(e.g., --env-prefix APP_ reads APP_DB_PROFILE)"
        ),
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    # restore command
    p_restore = subparsers.add_parser("restore", help="Restore from backup")
    p_restore.add_argument("backup_path", help="Path to backup JSON file")
    p_restore.add_argument(
        "--clear-existing",
        action="store_true",
        help="Delete existing data before restoring (ignored with --restore-to-course)",
    )
    p_restore.add_argument("--skip-users", action="store_true", help="Skip users, students and instructors")
    p_restore.add_argument("--skip-grades", action="store_true", help="Skip grades, grade criteria and audit logs")
    p_restore.add_argument("--skip-quiz-attempts", action="store_true")
    p_restore.add_argument("--skip-exercises", action="store_true")
    p_restore.add_argument("--skip-quiz-questions", action="store_true")
    p_restore.add_argument("--skip-lesson-notes", action="store_true")
    p_restore.add_argument("--skip-pdf-resources", action="store_true")
    p_restore.add_argument("--source-course", help="Backup course id to copy")
    p_restore.add_argument("--restore-to-course", help="Live course id to copy into")
    p_restore.add_argument("--yes", "-y", action="store_true", help="Skip confirmation prompt")
    p_restore.set_defaults(func=cmd_restore)

    # validate command
    p_validate = subparsers.add_parser("validate", help="Validate backup file")
    p_validate.add_argument("backup_path", help="Path to backup JSON file")
    p_validate.set_defaults(func=cmd_validate)

    # profiles command
    p_profiles = subparsers.add_parser("profiles", help="List available profiles")
    p_profiles.set_defaults(func=cmd_profiles)

    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
