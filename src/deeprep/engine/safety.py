"""
Plan Safety Validation

Internal Codename: SPOTTER
Checks a generated plan against hard and soft safety limits. Violations are
advisory; an empty list means the plan is safe.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

from deeprep.models import (
    ExerciseForPlan,
    ExerciseHistory,
    ExercisePlan,
    GeneratedPlan,
    PlanRequest,
)

logger = logging.getLogger(__name__)


class ViolationType(Enum):
    WEIGHT_JUMP_EXCEEDED = "weight_jump_exceeded"
    VOLUME_CEILING_EXCEEDED = "volume_ceiling_exceeded"
    AGE_INTENSITY_EXCEEDED = "age_intensity_exceeded"
    DIFFICULTY_GATING = "difficulty_gating"
    REST_TOO_SHORT = "rest_too_short"


class Severity(Enum):
    WARNING = "warning"
    HIGH = "high"


@dataclass(frozen=True)
class SafetyViolation:
    type: ViolationType
    exercise_stable_id: Optional[str]
    message: str
    severity: Severity


MAX_TOTAL_WORKING_SETS = 30
MAX_EXERCISES_PER_SESSION = 12
MAX_WORKING_SETS_PER_EXERCISE = 6
MAX_WORKING_SETS_PER_GROUP = 16

MRV_CEILING = {1: 12, 2: 16, 3: 20}

FREE_BAR_EQUIPMENT = {"barbell", "ez_bar", "trap_bar"}


def age_intensity_reduction(age: Optional[int]) -> float:
    """Fractional intensity reduction for an age band; 0 when none applies."""
    if age is None:
        return 0.0
    if age < 18:
        return 0.15
    if 41 <= age <= 50:
        return 0.025
    if 51 <= age <= 60:
        return 0.05
    if age > 60:
        return 0.10
    return 0.0


def _age_label(age: int) -> str:
    if age < 18:
        return "under 18"
    if age <= 50:
        return "41-50"
    if age <= 60:
        return "51-60"
    return "60+"


def max_absolute_jump(exercise: ExerciseForPlan) -> float:
    if exercise.is_compound and exercise.equipment in FREE_BAR_EQUIPMENT:
        return 10.0
    if exercise.is_compound and exercise.equipment == "machine":
        return 10.0
    return 5.0


def max_relative_jump(exercise: ExerciseForPlan) -> float:
    if not exercise.is_compound or exercise.equipment == "machine":
        return 0.15
    return 0.10


def minimum_rest_seconds(exercise: ExerciseForPlan, level: int) -> int:
    if exercise.primary_group == "core":
        return 45
    if exercise.is_compound:
        return {1: 60, 2: 75, 3: 90}.get(level, 60)
    return 45


def _planned_max(exercise_plan: ExercisePlan) -> Optional[float]:
    weights = [s.weight for s in exercise_plan.working_sets]
    return max(weights) if weights else None


def _last_max(history: Optional[ExerciseHistory]) -> Optional[float]:
    if history is None or not history.sessions:
        return None
    weights = [s.weight for s in history.sessions[-1].working_sets]
    return max(weights) if weights else None


class PlanSafetyValidator:
    """
    Validates plans against safety limits.

    Each rule is evaluated independently; the result is the union of all
    violations. Validation never raises and has no side effects.
    """

    def validate(self, plan: GeneratedPlan, request: PlanRequest) -> List[SafetyViolation]:
        """
        Validate a plan.

        Args:
            plan: Proposed plan
            request: The request it was generated from (profile, exercises, history)

        Returns:
            List of SafetyViolation, empty when the plan is safe
        """
        level = request.user_profile.experience_level
        exercise_map = {e.stable_id: e for e in request.exercises}
        history_map = {h.exercise_id: h for h in request.training_history}

        violations: List[SafetyViolation] = []
        for exercise_plan in plan.exercises:
            info = exercise_map.get(exercise_plan.stable_id)
            history = history_map.get(exercise_plan.exercise_id)

            if info is not None:
                violations.extend(self._check_weight_jump(exercise_plan, info, history))
                violations.extend(self._check_difficulty(exercise_plan, info, level))
                violations.extend(self._check_rest(exercise_plan, info, level))
            violations.extend(self._check_age_intensity(exercise_plan, request.user_profile.age, history))

        violations.extend(self._check_volume(plan, exercise_map, level))

        for violation in violations:
            logger.debug("Safety violation (%s): %s", violation.severity.value, violation.message)
        return violations

    @staticmethod
    def _check_weight_jump(
        exercise_plan: ExercisePlan,
        info: ExerciseForPlan,
        history: Optional[ExerciseHistory],
    ) -> List[SafetyViolation]:
        last_max = _last_max(history)
        if last_max is None or last_max <= 0:
            return []
        planned_max = _planned_max(exercise_plan)
        if planned_max is None:
            return []

        absolute = planned_max - last_max
        relative = absolute / last_max
        if relative <= max_relative_jump(info) and absolute <= max_absolute_jump(info):
            return []

        return [SafetyViolation(
            type=ViolationType.WEIGHT_JUMP_EXCEEDED,
            exercise_stable_id=exercise_plan.stable_id,
            message=(
                f"{exercise_plan.exercise_name}: weight jump from {last_max}kg to {planned_max}kg "
                f"exceeds safety limits ({relative * 100:.1f}% increase, {absolute:.1f}kg absolute)"
            ),
            severity=Severity.HIGH,
        )]

    @staticmethod
    def _check_volume(
        plan: GeneratedPlan,
        exercise_map: Dict[str, ExerciseForPlan],
        level: int,
    ) -> List[SafetyViolation]:
        violations = []

        total = sum(len(ep.working_sets) for ep in plan.exercises)
        if total > MAX_TOTAL_WORKING_SETS:
            violations.append(SafetyViolation(
                ViolationType.VOLUME_CEILING_EXCEEDED, None,
                f"Total working sets ({total}) exceeds the hard maximum of {MAX_TOTAL_WORKING_SETS}",
                Severity.HIGH,
            ))

        if len(plan.exercises) > MAX_EXERCISES_PER_SESSION:
            violations.append(SafetyViolation(
                ViolationType.VOLUME_CEILING_EXCEEDED, None,
                f"Exercise count ({len(plan.exercises)}) exceeds the hard maximum of "
                f"{MAX_EXERCISES_PER_SESSION}",
                Severity.WARNING,
            ))

        sets_per_group: Dict[str, int] = {}
        for ep in plan.exercises:
            working = len(ep.working_sets)
            if working > MAX_WORKING_SETS_PER_EXERCISE:
                violations.append(SafetyViolation(
                    ViolationType.VOLUME_CEILING_EXCEEDED, ep.stable_id,
                    f"{ep.exercise_name}: {working} working sets exceeds the hard maximum of "
                    f"{MAX_WORKING_SETS_PER_EXERCISE} per exercise",
                    Severity.WARNING,
                ))
            info = exercise_map.get(ep.stable_id)
            if info is not None:
                sets_per_group[info.primary_group] = sets_per_group.get(info.primary_group, 0) + working

        mrv = MRV_CEILING.get(level, 12)
        for group, sets in sets_per_group.items():
            if sets > MAX_WORKING_SETS_PER_GROUP:
                violations.append(SafetyViolation(
                    ViolationType.VOLUME_CEILING_EXCEEDED, None,
                    f"{group}: {sets} working sets exceeds the hard maximum of "
                    f"{MAX_WORKING_SETS_PER_GROUP} per muscle group per session",
                    Severity.HIGH,
                ))
            elif sets > mrv:
                violations.append(SafetyViolation(
                    ViolationType.VOLUME_CEILING_EXCEEDED, None,
                    f"{group}: {sets} working sets exceeds the recommended MRV ceiling of "
                    f"{mrv} for experience level {level}",
                    Severity.WARNING,
                ))

        return violations

    @staticmethod
    def _check_age_intensity(
        exercise_plan: ExercisePlan,
        age: Optional[int],
        history: Optional[ExerciseHistory],
    ) -> List[SafetyViolation]:
        reduction = age_intensity_reduction(age)
        if reduction <= 0:
            return []
        last_max = _last_max(history)
        planned_max = _planned_max(exercise_plan)
        if last_max is None or planned_max is None:
            return []

        max_allowed = last_max * 1.10 * (1.0 - reduction)
        if planned_max <= max_allowed:
            return []

        return [SafetyViolation(
            type=ViolationType.AGE_INTENSITY_EXCEEDED,
            exercise_stable_id=exercise_plan.stable_id,
            message=(
                f"{exercise_plan.exercise_name}: planned weight {planned_max}kg exceeds "
                f"age-adjusted maximum ({max_allowed:.1f}kg) for age group {_age_label(age)}"
            ),
            severity=Severity.WARNING,
        )]

    @staticmethod
    def _check_difficulty(
        exercise_plan: ExercisePlan,
        info: ExerciseForPlan,
        level: int,
    ) -> List[SafetyViolation]:
        if info.difficulty != "advanced" or level >= 2:
            return []
        return [SafetyViolation(
            type=ViolationType.DIFFICULTY_GATING,
            exercise_stable_id=exercise_plan.stable_id,
            message=(
                f"{exercise_plan.exercise_name} is an advanced exercise and should not "
                f"appear in a beginner plan"
            ),
            severity=Severity.HIGH,
        )]

    @staticmethod
    def _check_rest(
        exercise_plan: ExercisePlan,
        info: ExerciseForPlan,
        level: int,
    ) -> List[SafetyViolation]:
        min_rest = minimum_rest_seconds(info, level)
        if exercise_plan.rest_seconds >= min_rest:
            return []
        return [SafetyViolation(
            type=ViolationType.REST_TOO_SHORT,
            exercise_stable_id=exercise_plan.stable_id,
            message=(
                f"{exercise_plan.exercise_name}: rest period {exercise_plan.rest_seconds}s is below "
                f"the minimum recommended {min_rest}s for this exercise type"
            ),
            severity=Severity.WARNING,
        )]
