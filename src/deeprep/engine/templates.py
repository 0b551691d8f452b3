"""
Workout Templates

Internal Codename: SPOTTER
Validation and construction of reusable exercise templates.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List

from deeprep.errors import InvalidTemplateError

MAX_NAME_LENGTH = 60
MAX_EXERCISES = 15


@dataclass
class TemplateExercise:
    exercise_id: int
    order_index: int


@dataclass
class Template:
    name: str
    created_at: datetime
    updated_at: datetime
    muscle_group_ids: List[int] = field(default_factory=list)
    exercises: List[TemplateExercise] = field(default_factory=list)
    id: int = 0


def validate_template(name: str, exercise_ids: List[int]) -> str:
    """
    Validate a template name and exercise list.

    Returns:
        The trimmed name

    Raises:
        InvalidTemplateError: If the name or exercise count is out of bounds
    """
    trimmed = name.strip()
    if not trimmed or len(trimmed) > MAX_NAME_LENGTH:
        raise InvalidTemplateError(f"Template name must be 1-{MAX_NAME_LENGTH} characters")
    if not exercise_ids or len(exercise_ids) > MAX_EXERCISES:
        raise InvalidTemplateError(f"Template must have 1-{MAX_EXERCISES} exercises")
    return trimmed


def build_template(
    name: str,
    exercise_ids: List[int],
    muscle_group_ids: List[int],
    now: datetime,
) -> Template:
    """Validate input and build a template with exercises in the given order."""
    trimmed = validate_template(name, exercise_ids)
    return Template(
        name=trimmed,
        created_at=now,
        updated_at=now,
        muscle_group_ids=list(muscle_group_ids),
        exercises=[TemplateExercise(exercise_id=e, order_index=i) for i, e in enumerate(exercise_ids)],
    )
