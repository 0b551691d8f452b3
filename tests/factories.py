"""Builders for engine test data."""

from datetime import datetime, timedelta, timezone
from typing import List, Optional, Sequence, Tuple

from deeprep.models import (
    Difficulty,
    Equipment,
    Exercise,
    ExerciseForPlan,
    ExerciseHistory,
    ExercisePlan,
    GeneratedPlan,
    HistoricalSession,
    HistoricalSet,
    MovementType,
    MuscleGroup,
    PlannedSet,
    PlanRequest,
    SetType,
    UserPlanProfile,
)

NOW = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Settable wall clock for components that take `clock=`."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FakeMonotonic:
    """Settable monotonic clock for the rest timer."""

    def __init__(self):
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_exercise(
    exercise_id: int,
    stable_id: Optional[str] = None,
    movement: MovementType = MovementType.COMPOUND,
    group: MuscleGroup = MuscleGroup.CHEST,
    difficulty: Difficulty = Difficulty.INTERMEDIATE,
    equipment: Equipment = Equipment.BARBELL,
    priority: int = 50,
    name: Optional[str] = None,
) -> Exercise:
    return Exercise(
        id=exercise_id,
        stable_id=stable_id or f"exercise_{exercise_id}",
        name=name or f"Exercise {exercise_id}",
        equipment=equipment,
        movement_type=movement,
        difficulty=difficulty,
        primary_group_id=group.value,
        order_priority=priority,
    )


def plan_exercise(
    exercise_id: int = 1,
    stable_id: str = "chest_barbell_bench_press",
    equipment: str = "barbell",
    movement: str = "compound",
    difficulty: str = "intermediate",
    group: str = "chest",
    name: str = "Barbell Bench Press",
) -> ExerciseForPlan:
    return ExerciseForPlan(
        exercise_id=exercise_id,
        stable_id=stable_id,
        name=name,
        equipment=equipment,
        movement_type=movement,
        difficulty=difficulty,
        primary_group=group,
    )


def historical_session(day: int, weight: float, reps: int, sets: int = 3) -> HistoricalSession:
    """`sets` identical working sets, `day` days after a fixed start date."""
    return HistoricalSession(
        date=NOW - timedelta(days=100) + timedelta(days=day),
        sets=[HistoricalSet(weight=weight, reps=reps) for _ in range(sets)],
    )


def history(exercise_id: int, loads: Sequence[Tuple[float, int]], sets: int = 3,
            name: str = "") -> ExerciseHistory:
    """History from (weight, reps) per session, oldest first, two days apart."""
    return ExerciseHistory(
        exercise_id=exercise_id,
        exercise_name=name or f"Exercise {exercise_id}",
        sessions=[historical_session(i * 2, w, r, sets) for i, (w, r) in enumerate(loads)],
    )


def exercise_plan(
    info: ExerciseForPlan,
    weights: Sequence[float] = (100.0, 100.0, 100.0),
    reps: int = 8,
    rest_seconds: int = 120,
    warmups: int = 0,
) -> ExercisePlan:
    sets = [PlannedSet(SetType.WARMUP, 20.0, 10) for _ in range(warmups)]
    sets += [PlannedSet(SetType.WORKING, w, reps, rest_seconds) for w in weights]
    return ExercisePlan(
        exercise_id=info.exercise_id,
        stable_id=info.stable_id,
        exercise_name=info.name,
        sets=sets,
        rest_seconds=rest_seconds,
    )


def plan_of(*plans: ExercisePlan) -> GeneratedPlan:
    return GeneratedPlan(exercises=list(plans))


def plan_request(
    exercises: List[ExerciseForPlan],
    level: int = 2,
    histories: Sequence[ExerciseHistory] = (),
    age: Optional[int] = None,
    body_weight_kg: Optional[float] = None,
    gender: Optional[str] = None,
    deload: bool = False,
) -> PlanRequest:
    return PlanRequest(
        user_profile=UserPlanProfile(
            experience_level=level,
            body_weight_kg=body_weight_kg,
            age=age,
            gender=gender,
        ),
        exercises=list(exercises),
        training_history=list(histories),
        deload_recommended=deload,
    )
