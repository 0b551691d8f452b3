"""
Workout Template Tests
"""

import pytest

from deeprep.engine.templates import MAX_EXERCISES, MAX_NAME_LENGTH, build_template, validate_template
from deeprep.errors import InvalidTemplateError, ValidationError

from factories import NOW


class TestValidateTemplate:

    def test_trims_name(self):
        assert validate_template("  Push Day  ", [1, 2]) == "Push Day"

    def test_name_length_boundary(self):
        assert validate_template("x" * MAX_NAME_LENGTH, [1]) == "x" * MAX_NAME_LENGTH
        with pytest.raises(InvalidTemplateError):
            validate_template("x" * (MAX_NAME_LENGTH + 1), [1])

    @pytest.mark.parametrize("name", ["", "   "])
    def test_blank_name(self, name):
        with pytest.raises(InvalidTemplateError):
            validate_template(name, [1])

    def test_exercise_count_boundary(self):
        validate_template("Full Body", list(range(MAX_EXERCISES)))
        with pytest.raises(InvalidTemplateError):
            validate_template("Full Body", list(range(MAX_EXERCISES + 1)))

    def test_needs_an_exercise(self):
        with pytest.raises(ValidationError):
            validate_template("Empty", [])


class TestBuildTemplate:

    def test_keeps_exercise_order(self):
        template = build_template(" Legs ", [7, 3, 9], [1, 2], NOW)

        assert template.name == "Legs"
        assert [(e.exercise_id, e.order_index) for e in template.exercises] == [(7, 0), (3, 1), (9, 2)]
        assert template.muscle_group_ids == [1, 2]
        assert template.created_at == template.updated_at == NOW
