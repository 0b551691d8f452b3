"""
Workout Volume and Summary

Internal Codename: SPOTTER
Working-set counts and tonnage over completed working sets.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from deeprep.models import MuscleGroup, SetStatus, SetType, WorkoutSet
from deeprep.stores.base import ExerciseCatalog, WorkoutSessionStore


def _counted(workout_set: WorkoutSet) -> bool:
    return workout_set.type == SetType.WORKING and workout_set.status == SetStatus.COMPLETED


def working_sets(sets: List[WorkoutSet]) -> int:
    return sum(1 for s in sets if _counted(s))


def tonnage(sets: List[WorkoutSet]) -> float:
    """Sum of weight x reps over completed working sets."""
    return sum((s.actual_weight_kg or 0.0) * (s.actual_reps or 0) for s in sets if _counted(s))


@dataclass(frozen=True)
class GroupVolume:
    group_name: str
    working_sets: int
    tonnage_kg: float


@dataclass
class WorkoutSummary:
    session_id: int
    duration_seconds: int
    exercise_count: int
    total_working_sets: int
    total_tonnage_kg: float
    per_group_volume: List[GroupVolume] = field(default_factory=list)


def _group_label(group_id: int) -> Optional[str]:
    try:
        return MuscleGroup(group_id).key.replace("_", " ").title()
    except ValueError:
        return None


class WorkoutSummaryBuilder:
    """Post-workout summary for a session."""

    def __init__(self, session_store: WorkoutSessionStore, catalog: ExerciseCatalog):
        self.session_store = session_store
        self.catalog = catalog

    def build(self, session_id: int) -> Optional[WorkoutSummary]:
        """
        Summarize a session.

        Returns:
            WorkoutSummary, or None if the session does not exist
        """
        session = self.session_store.get_session(session_id)
        if session is None:
            return None

        exercises = self.session_store.get_exercises_for_session(session_id)
        details = {e.id: e for e in self.catalog.get_exercises([we.exercise_id for we in exercises])}

        by_group: Dict[str, List[WorkoutSet]] = {}
        for workout_exercise in exercises:
            exercise = details.get(workout_exercise.exercise_id)
            label = _group_label(exercise.primary_group_id) if exercise else None
            if label is None:
                continue
            by_group.setdefault(label, []).extend(workout_exercise.sets)

        all_sets = [s for we in exercises for s in we.sets]
        return WorkoutSummary(
            session_id=session_id,
            duration_seconds=session.duration_seconds or 0,
            exercise_count=len(exercises),
            total_working_sets=working_sets(all_sets),
            total_tonnage_kg=tonnage(all_sets),
            per_group_volume=sorted(
                (GroupVolume(name, working_sets(sets), tonnage(sets)) for name, sets in by_group.items()),
                key=lambda g: g.group_name,
            ),
        )
