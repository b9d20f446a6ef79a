"""Tests for offline backup validation (sync, no store access)."""

import inspect
import json

from course_restore.restore.validation import validate_backup

from conftest import make_backup


def _minimal() -> dict:
    return make_backup({"users": [], "courses": [], "lessons": []})


class TestValidateBackup:
    def test_is_sync(self):
        assert not inspect.iscoroutinefunction(validate_backup)

    def test_minimal_backup_is_valid(self):
        report = validate_backup(_minimal())
        assert report["valid"] is True
        assert report["errors"] == []
        assert report["metadata"]["version"] == "1.0.0"

    def test_accepts_request_body_wrapper(self):
        assert validate_backup({"backupData": _minimal()})["valid"] is True

    def test_accepts_json_string_in_wrapper(self):
        assert validate_backup({"backupData": json.dumps(_minimal())})["valid"] is True

    def test_reads_file(self, tmp_path):
        path = tmp_path / "backup.json"
        path.write_text(json.dumps(_minimal()))
        assert validate_backup(path)["valid"] is True

    def test_missing_file(self, tmp_path):
        report = validate_backup(tmp_path / "nope.json")
        assert report["valid"] is False
        assert "Backup file not found" in report["errors"][0]

    def test_invalid_json_file(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{")
        report = validate_backup(path)
        assert report["valid"] is False
        assert report["errors"][0].startswith("Invalid JSON")

    def test_missing_structure(self):
        report = validate_backup({"metadata": {"version": "1.0.0"}})
        assert report["valid"] is False
        assert "metadata and data are required" in report["errors"][0]

    def test_wrong_version(self):
        backup = _minimal()
        backup["metadata"]["version"] = "0.9.0"
        report = validate_backup(backup)
        assert report["valid"] is False
        assert "Unsupported backup version: 0.9.0" in report["errors"][0]

    def test_missing_required_keys(self):
        report = validate_backup(make_backup({"users": []}))
        assert report["errors"] == ["Missing required data: courses, lessons"]

    def test_nested_backup_only_needs_users(self):
        backup = make_backup({"users": [], "coursesNested": [{"course": {"id": "C1"}, "lessons": []}]})
        assert validate_backup(backup)["valid"] is True

    def test_non_list_array(self):
        backup = _minimal()
        backup["data"]["grades"] = {"id": "g1"}
        report = validate_backup(backup)
        assert "data.grades must be a list of records" in report["errors"]

    def test_non_object_row(self):
        backup = _minimal()
        backup["data"]["users"] = [{"id": "u1", "email": "a@x.com"}, "oops"]
        report = validate_backup(backup)
        assert report["valid"] is False
        assert report["errors"] == ["data.users[1] must be an object"]

    def test_non_object_course_bundle(self):
        backup = make_backup({"users": [], "coursesNested": ["C1"]})
        report = validate_backup(backup)
        assert report["valid"] is False
        assert report["errors"] == ["data.coursesNested[0] must be an object"]

    def test_malformed_lesson_bundle(self):
        backup = make_backup({
            "users": [],
            "coursesNested": [
                {
                    "course": {"id": "C1"},
                    "lessons": [
                        "L1",
                        {"lesson": None, "exercises": [{"id": "e1"}, 7]},
                    ],
                }
            ],
        })
        report = validate_backup(backup)
        assert report["errors"] == [
            "data.coursesNested[0].lessons[0] must be an object",
            "data.coursesNested[0].lessons[1].lesson must be an object",
            "data.coursesNested[0].lessons[1].exercises must hold objects only",
        ]

    def test_unknown_key_warns(self):
        backup = _minimal()
        backup["data"]["sessions"] = []
        report = validate_backup(backup)
        assert report["valid"] is True
        assert "Unknown data key ignored: sessions" in report["warnings"]

    def test_orphaned_reference_warns(self):
        backup = _minimal()
        backup["data"]["lessons"] = [{"id": "L1", "courseId": "C404", "number": 1}]
        report = validate_backup(backup)
        assert report["valid"] is True
        assert "Orphaned lessons 'L1': courseId not in backup" in report["warnings"]

    def test_nested_ids_satisfy_flat_references(self):
        backup = make_backup({
            "users": [],
            "coursesNested": [
                {"course": {"id": "C1"}, "lessons": [{"lesson": {"id": "L1", "courseId": "C1"}}]}
            ],
            "quizAttempts": [{"id": "qa1", "lessonId": "L1", "studentId": "s1"}],
            "students": [{"id": "s1", "registrationNumber": "R"}],
        })
        assert validate_backup(backup)["warnings"] == []

    def test_record_count_mismatch_warns(self):
        backup = _minimal()
        backup["metadata"]["recordCounts"] = {"users": 3}
        report = validate_backup(backup)
        assert "recordCounts.users is 3 but backup holds 0" in report["warnings"]
        assert report["recordCounts"] == {"users": 3}
