"""
Baseline Plan Generator

Internal Codename: SPOTTER
Offline fallback used when the AI provider is unavailable and no cached plan
exists. Working weights come from body-weight ratio tables, rounded down to
the equipment increment, with deload and age adjustments and a warm-up
protocol per movement class.
"""

from pathlib import Path
from typing import Dict, List, Optional, Tuple

import yaml

from deeprep.engine.progression import round_down
from deeprep.engine.safety import age_intensity_reduction
from deeprep.models import (
    Equipment,
    ExerciseForPlan,
    ExercisePlan,
    GeneratedPlan,
    PlannedSet,
    PlanRequest,
    SetType,
)
from deeprep.stores.base import BaselineGenerator


DEFAULT_RATIOS_PATH = Path(__file__).parent.parent / "data" / "bw_ratios.yaml"

LEVEL_KEYS = {1: "beginner", 2: "intermediate", 3: "advanced"}

WARMUP_REST = 60
DELOAD_INTENSITY_FACTOR = 0.575  # Midpoint of 50-65%
GENDER_UNKNOWN_FACTOR = 0.85
FALLBACK_WEIGHT_KG = 20.0
EMPTY_BAR_KG = 20.0
DELOAD_NOTE = "Deload week: reduced volume and intensity"

HEAVY_COMPOUND_IDS = {
    "legs_barbell_back_squat",
    "legs_barbell_front_squat",
    "lower_back_barbell_conventional_deadlift",
    "lower_back_barbell_sumo_deadlift",
    "lower_back_trap_bar_deadlift",
    "lower_back_barbell_deficit_deadlift",
    "chest_barbell_bench_press",
    "chest_barbell_incline_bench_press",
    "chest_barbell_decline_bench_press",
    "shoulders_barbell_overhead_press",
    "back_barbell_bent_over_row",
}

RatioTable = Dict[str, Dict[str, Tuple[float, float]]]


def load_ratio_tables(path: Optional[Path] = None) -> RatioTable:
    """
    Load body-weight ratio tables from YAML.

    Returns:
        Mapping of level key -> stable id -> (male, female) ratio
    """
    with open(path or DEFAULT_RATIOS_PATH) as f:
        raw = yaml.safe_load(f) or {}
    return {
        level: {stable_id: (float(pair[0]), float(pair[1])) for stable_id, pair in (table or {}).items()}
        for level, table in raw.items()
    }


class BaselinePlanGenerator(BaselineGenerator):
    """Deterministic plan from experience-level defaults."""

    def __init__(self, ratios: Optional[RatioTable] = None):
        """
        Args:
            ratios: Ratio tables; loaded from the packaged YAML if None
        """
        self.ratios = ratios if ratios is not None else load_ratio_tables()

    def generate(self, request: PlanRequest) -> Optional[GeneratedPlan]:
        profile = request.user_profile
        if profile.body_weight_kg is None:
            return None

        level = min(max(profile.experience_level, 1), 3)
        plans = [
            self._exercise_plan(
                exercise, level, profile.body_weight_kg, profile.gender, profile.age,
                request.deload_recommended,
            )
            for exercise in request.exercises
        ]
        return GeneratedPlan(exercises=plans)

    def _exercise_plan(
        self,
        exercise: ExerciseForPlan,
        level: int,
        body_weight_kg: float,
        gender: Optional[str],
        age: Optional[int],
        deload: bool,
    ) -> ExercisePlan:
        equipment = Equipment.parse(exercise.equipment)
        is_bodyweight = equipment == Equipment.BODYWEIGHT

        working_weight = round_down(
            self.baseline_weight(exercise.stable_id, level, body_weight_kg, gender), equipment
        )
        if deload:
            working_weight = round_down(working_weight * DELOAD_INTENSITY_FACTOR, equipment)
        reduction = age_intensity_reduction(age)
        if reduction > 0:
            working_weight = round_down(working_weight * (1.0 - reduction), equipment)

        rest = self.rest_seconds(exercise, level)
        reps = self.target_reps(level, exercise.is_compound)
        working = [
            PlannedSet(SetType.WORKING, 0.0 if is_bodyweight else working_weight, reps, rest)
            for _ in range(self.working_set_count(level, deload))
        ]

        return ExercisePlan(
            exercise_id=exercise.exercise_id,
            stable_id=exercise.stable_id,
            exercise_name=exercise.name,
            sets=self.warmup_sets(working_weight, exercise, age, equipment) + working,
            rest_seconds=rest,
            notes=DELOAD_NOTE if deload else None,
        )

    def baseline_weight(
        self,
        stable_id: str,
        level: int,
        body_weight_kg: float,
        gender: Optional[str],
    ) -> float:
        table = self.ratios.get(LEVEL_KEYS.get(level, "beginner"), {})
        ratios = table.get(stable_id)
        if ratios is None:
            return FALLBACK_WEIGHT_KG

        male, female = ratios
        if gender == "male":
            ratio = male
        elif gender == "female":
            ratio = female
        else:
            ratio = male * GENDER_UNKNOWN_FACTOR
        return ratio * body_weight_kg

    @staticmethod
    def warmup_sets(
        working_weight: float,
        exercise: ExerciseForPlan,
        age: Optional[int],
        equipment: Equipment,
    ) -> List[PlannedSet]:
        """Warm-up ramp: (fraction of working weight, reps) steps per movement class."""
        if equipment == Equipment.BODYWEIGHT:
            if not exercise.is_compound:
                return []
            return [PlannedSet(SetType.WARMUP, 0.0, 10, WARMUP_REST)]

        over_50 = age is not None and age >= 50

        def ramp(steps):
            return [
                PlannedSet(SetType.WARMUP, round_down(working_weight * pct, equipment), reps, WARMUP_REST)
                for pct, reps in steps
            ]

        if exercise.is_compound and exercise.stable_id in HEAVY_COMPOUND_IDS:
            empty_bar = EMPTY_BAR_KG if equipment in (Equipment.BARBELL, Equipment.EZ_BAR) else 0.0
            first = PlannedSet(SetType.WARMUP, round_down(empty_bar, equipment), 12, WARMUP_REST)
            if over_50:
                return [first] + ramp([(0.40, 10), (0.60, 8), (0.80, 4)])
            return [first] + ramp([(0.50, 8), (0.75, 4)])

        if exercise.is_compound:
            if over_50:
                return ramp([(0.50, 10), (0.60, 8), (0.80, 4)])
            return ramp([(0.50, 10), (0.75, 6)])

        if over_50:
            return ramp([(0.40, 12), (0.70, 8)])
        return ramp([(0.50, 12)])

    @staticmethod
    def working_set_count(level: int, deload: bool) -> int:
        base = {1: 3, 2: 4, 3: 5}.get(level, 3)
        return max(int(base * 0.5), 2) if deload else base

    @staticmethod
    def target_reps(level: int, is_compound: bool) -> int:
        compound, other = {1: (10, 12), 2: (8, 10), 3: (5, 10)}.get(level, (10, 10))
        return compound if is_compound else other

    @staticmethod
    def rest_seconds(exercise: ExerciseForPlan, level: int) -> int:
        if exercise.primary_group == "core":
            return 60
        if exercise.is_compound and exercise.stable_id in HEAVY_COMPOUND_IDS:
            return {1: 90, 2: 120, 3: 180}.get(level, 90)
        if exercise.is_compound:
            return {1: 75, 2: 105, 3: 120}.get(level, 75)
        return {1: 60, 2: 75, 3: 75}.get(level, 60)
