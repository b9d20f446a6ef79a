"""Offline backup validation.

``validate_backup`` inspects a backup without touching any store and
reports what a restore would reject (errors) or silently drop
(warnings).  This function is **sync** -- it only reads a local file or
an in-memory dict.

Usage:
    report = validate_backup("backups/backup-2024-06-01.json")
    if not report["valid"]:
        raise SystemExit("; ".join(report["errors"]))
"""

import json
from pathlib import Path
from typing import Any

from course_restore.restore.entities import ENTITIES, ENTITY_BY_NAME, LESSON_CHILDREN
from course_restore.restore.models import SUPPORTED_BACKUP_VERSION

# Minimum content for a restorable full backup (flat encoding)
REQUIRED_FLAT_KEYS = ("users", "courses", "lessons")


def _load(source: str | Path | dict) -> Any:
    if isinstance(source, dict):
        backup = source.get("backupData", source)
    else:
        with open(source, "r") as f:
            backup = json.load(f)
    if isinstance(backup, str):
        backup = json.loads(backup)
    return backup


def _bundle_errors(path: str, bundle: Any) -> list[str]:
    """Shape errors for one nested course bundle."""
    if not isinstance(bundle, dict):
        return [f"{path} must be an object"]
    errors = []
    if not isinstance(bundle.get("course"), dict):
        errors.append(f"{path}.course must be an object")
    lessons = bundle.get("lessons") or []
    if not isinstance(lessons, list):
        return errors + [f"{path}.lessons must be a list"]
    for j, lesson_bundle in enumerate(lessons):
        lesson_path = f"{path}.lessons[{j}]"
        if not isinstance(lesson_bundle, dict):
            errors.append(f"{lesson_path} must be an object")
            continue
        if not isinstance(lesson_bundle.get("lesson"), dict):
            errors.append(f"{lesson_path}.lesson must be an object")
        for child in LESSON_CHILDREN:
            rows = lesson_bundle.get(child) or []
            if not isinstance(rows, list):
                errors.append(f"{lesson_path}.{child} must be a list")
            elif not all(isinstance(r, dict) for r in rows):
                errors.append(f"{lesson_path}.{child} must hold objects only")
    return errors


def _collect_ids(data: dict) -> dict[str, set]:
    """Backup-time ids per entity type, flat and nested combined."""
    ids: dict[str, set] = {}
    for entity in ENTITIES:
        rows = data.get(entity.name) or []
        ids[entity.name] = {r.get("id") for r in rows if isinstance(r, dict) and r.get("id")}

    for bundle in data.get("coursesNested") or []:
        course = bundle.get("course") or {}
        if course.get("id"):
            ids["courses"].add(course["id"])
        for lesson_bundle in bundle.get("lessons") or []:
            lesson = lesson_bundle.get("lesson") or {}
            if lesson.get("id"):
                ids["lessons"].add(lesson["id"])
            for ex in lesson_bundle.get("exercises") or []:
                if ex.get("id"):
                    ids["exercises"].add(ex["id"])
    return ids


def validate_backup(source: str | Path | dict) -> dict:
    """Validate backup format and referential integrity.

    Args:
        source: Path to a backup JSON file, the backup dict itself, or a
            request body wrapping it under ``backupData``.

    Returns:
        Dict with ``valid`` (bool), ``errors`` (list[str]), ``warnings``
        (list[str]), ``metadata`` and ``recordCounts``.

    Example:
        report = validate_backup(body)
        report["warnings"]
        # ["Orphaned grades 'g1': exerciseId not in backup"]
    """
    errors: list[str] = []
    warnings: list[str] = []
    report: dict[str, Any] = {
        "valid": False,
        "errors": errors,
        "warnings": warnings,
        "metadata": None,
        "recordCounts": {},
    }

    try:
        backup = _load(source)
    except FileNotFoundError:
        errors.append(f"Backup file not found: {source}")
        return report
    except json.JSONDecodeError as e:
        errors.append(f"Invalid JSON: {e}")
        return report

    if not isinstance(backup, dict) or not isinstance(backup.get("metadata"), dict) \
            or not isinstance(backup.get("data"), dict):
        errors.append("Invalid backup file structure: metadata and data are required")
        return report

    metadata = backup["metadata"]
    data = backup["data"]
    report["metadata"] = metadata
    report["recordCounts"] = metadata.get("recordCounts") or {}

    version = metadata.get("version")
    if version != SUPPORTED_BACKUP_VERSION:
        errors.append(
            f"Unsupported backup version: {version} (expected {SUPPORTED_BACKUP_VERSION})"
        )

    nested = data.get("coursesNested")
    if nested is not None and not isinstance(nested, list):
        errors.append("data.coursesNested must be a list of course bundles")
        nested = None

    required = ("users",) if nested else REQUIRED_FLAT_KEYS
    missing = [key for key in required if key not in data]
    if missing:
        errors.append(f"Missing required data: {', '.join(missing)}")

    for key, rows in data.items():
        if key == "coursesNested":
            continue
        if key not in ENTITY_BY_NAME:
            warnings.append(f"Unknown data key ignored: {key}")
            continue
        if rows is not None and not isinstance(rows, list):
            errors.append(f"data.{key} must be a list of records")
            continue
        for i, row in enumerate(rows or []):
            if not isinstance(row, dict):
                errors.append(f"data.{key}[{i}] must be an object")

    for i, bundle in enumerate(nested or []):
        errors.extend(_bundle_errors(f"data.coursesNested[{i}]", bundle))

    if errors:
        return report

    ids = _collect_ids(data)

    for entity in ENTITIES:
        rows = data.get(entity.name) or []
        for row in rows:
            if entity.remap and not row.get("id"):
                warnings.append(
                    f"{entity.name} row without 'id': dependants cannot reference it"
                )
            for fk in entity.required:
                ref = row.get(fk.field)
                if ref is not None and ref not in ids.get(fk.remap, set()):
                    warnings.append(
                        f"Orphaned {entity.name} '{row.get('id', 'unknown')}': "
                        f"{fk.field} not in backup"
                    )
                elif ref is None:
                    warnings.append(
                        f"{entity.name} '{row.get('id', 'unknown')}' missing "
                        f"required {fk.field}: will be skipped"
                    )

        expected = report["recordCounts"].get(entity.name)
        if expected is not None and entity.name in data and expected != len(rows):
            warnings.append(
                f"recordCounts.{entity.name} is {expected} but backup holds {len(rows)}"
            )

    for bundle in nested or []:
        for lesson_bundle in bundle.get("lessons") or []:
            for row in lesson_bundle.get("exercises") or []:
                if row.get("rubricId") not in ids["rubrics"]:
                    warnings.append(
                        f"Orphaned exercises '{row.get('id', 'unknown')}': "
                        f"rubricId not in backup"
                    )

    report["valid"] = True
    return report
