"""Tests for the entity catalogue."""

import pytest

from course_restore.restore.entities import (
    ENTITIES,
    ENTITY_BY_NAME,
    LESSON_CHILDREN,
    entities_in_group,
    get_entity,
)


class TestCatalogue:
    def test_parents_precede_children(self):
        """Every foreign key resolves through a remap table filled earlier."""
        produced: set[str] = set()
        for entity in ENTITIES:
            for dep in entity.dependencies:
                assert dep in produced, f"{entity.name} reads {dep} before it is restored"
            if entity.remap:
                produced.add(entity.remap)

    def test_names_unique(self):
        assert len(ENTITY_BY_NAME) == len(ENTITIES)

    def test_tables_use_model_names(self):
        assert get_entity("users").table == "User"
        assert get_entity("pdfResources").table == "PDFResource"

    def test_lesson_children_are_course_tree(self):
        for name in LESSON_CHILDREN:
            entity = get_entity(name)
            assert entity.group == "course_tree"
            assert [fk.field for fk in entity.required][0] == "lessonId"

    def test_skip_options_name_real_flags(self):
        from course_restore.restore.models import RestoreOptions

        fields = set(RestoreOptions.model_fields)
        for entity in ENTITIES:
            if entity.skip_option:
                assert entity.skip_option in fields

    def test_every_entity_has_natural_key(self):
        """Re-running a restore must be able to find every record it created."""
        for entity in ENTITIES:
            assert entity.natural_key, entity.name

    def test_history_keys(self):
        assert get_entity("grades").natural_key == ("studentId", "exerciseId")
        assert get_entity("courseSubscriptions").natural_key == ("studentId", "courseId")
        assert get_entity("quizAttempts").natural_key == ("studentId", "lessonId", "completedAt")

    def test_unknown_entity(self):
        with pytest.raises(KeyError, match="Unknown entity type: widgets"):
            get_entity("widgets")

    def test_entities_in_group_keeps_order(self):
        history = [e.name for e in entities_in_group("history")]
        assert history.index("grades") < history.index("gradeCriteria")
        assert "users" not in history
