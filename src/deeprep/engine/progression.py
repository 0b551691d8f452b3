"""
Load Progression Analytics

Internal Codename: SPOTTER
Estimated one-rep maxes, equipment weight steps and per-exercise load
progression from recent sessions.
"""

import math
from dataclasses import dataclass, replace
from enum import Enum
from typing import List, Optional

from deeprep.models import Equipment, HistoricalSession, HistoricalSet


# =============================================================================
# WEIGHT STEPS
# =============================================================================

WEIGHT_INCREMENTS_KG = {
    Equipment.BARBELL: 2.5,
    Equipment.DUMBBELL: 2.5,
    Equipment.CABLE: 5.0,
    Equipment.MACHINE: 5.0,
    Equipment.BODYWEIGHT: 0.0,
    Equipment.KETTLEBELL: 4.0,
    Equipment.BAND: 0.0,
    Equipment.EZ_BAR: 2.5,
    Equipment.TRAP_BAR: 2.5,
}


def weight_increment(equipment: Equipment) -> float:
    """Smallest loadable increment in kg for a piece of equipment."""
    return WEIGHT_INCREMENTS_KG[equipment]


def round_down(weight_kg: float, equipment: Equipment) -> float:
    """
    Round a weight down to the equipment increment.

    Equipment without an increment (bodyweight, band) returns the weight unchanged.
    """
    increment = weight_increment(equipment)
    if increment <= 0:
        return weight_kg
    return math.floor(weight_kg / increment) * increment


# =============================================================================
# ESTIMATED 1RM
# =============================================================================

class Confidence(Enum):
    HIGH = "high"
    MODERATE = "moderate"
    LOW = "low"


def epley(weight: float, reps: int) -> Optional[float]:
    """Epley estimate: weight * (1 + reps/30). Valid for 1-30 reps."""
    if reps < 1 or reps > 30 or weight <= 0:
        return None
    if reps == 1:
        return weight
    return weight * (1 + reps / 30.0)


def brzycki(weight: float, reps: int) -> Optional[float]:
    """Brzycki estimate: weight * 36 / (37 - reps). Valid for 1-36 reps."""
    if reps < 1 or reps > 36 or weight <= 0:
        return None
    if reps == 1:
        return weight
    return weight * 36.0 / (37 - reps)


def estimate_confidence(reps: int) -> Optional[Confidence]:
    """Estimates degrade with rep count; beyond 20 reps they are not trusted."""
    if reps < 1 or reps > 20:
        return None
    if reps <= 5:
        return Confidence.HIGH
    if reps <= 10:
        return Confidence.MODERATE
    return Confidence.LOW


def best_estimated_1rm(sets: List[HistoricalSet]) -> Optional[float]:
    """Best Epley estimate across sets with positive weight and reps."""
    estimates = [epley(s.weight, s.reps) for s in sets if s.weight > 0 and s.reps > 0]
    estimates = [e for e in estimates if e is not None]
    return max(estimates) if estimates else None


# =============================================================================
# PROGRESSION
# =============================================================================

WEIGHT_STEP = 1.25
DECREASE_FACTOR = 0.95
STALL_SESSION_COUNT = 3
STALL_TOLERANCE = 0.01

LOWER_BODY_GROUPS = {"legs", "lower_back"}


@dataclass
class ProgressionResult:
    weight_kg: float
    target_reps: int
    is_stalled: bool = False
    stall_note: Optional[str] = None


def is_lower_body_group(primary_group: str) -> bool:
    return primary_group in LOWER_BODY_GROUPS


def _round_to_step(weight: float) -> float:
    return math.floor(weight / WEIGHT_STEP + 0.5) * WEIGHT_STEP


def _increment_and_cap(is_compound: bool, is_lower_body: bool):
    if is_compound and is_lower_body:
        return 2.5, 10.0
    if is_compound:
        return 1.25, 5.0
    return 1.25, 2.5


def _detect_stall(recent_first: List[HistoricalSession]) -> bool:
    if len(recent_first) < STALL_SESSION_COUNT:
        return False

    weights = []
    for session in recent_first[:STALL_SESSION_COUNT]:
        working = session.working_sets
        if working:
            weights.append(max(s.weight for s in working))

    if len(weights) < STALL_SESSION_COUNT:
        return False
    return all(abs(w - weights[0]) < STALL_TOLERANCE for w in weights)


def compute_progression(
    sessions: List[HistoricalSession],
    rep_range_min: int,
    rep_range_max: int,
    is_compound: bool,
    is_lower_body: bool,
    fallback_weight_kg: float,
) -> ProgressionResult:
    """
    Compute the next load and rep target for one exercise.

    Args:
        sessions: Past sessions for the exercise, in any order
        rep_range_min: Bottom of the target rep range
        rep_range_max: Top of the target rep range
        is_compound: Whether the exercise is a compound movement
        is_lower_body: Whether the exercise trains legs or lower back
        fallback_weight_kg: Load to use when there is no usable history

    Returns:
        ProgressionResult with load, reps and stall flag
    """
    recent_first = sorted(sessions, key=lambda s: s.date, reverse=True)
    working = recent_first[0].working_sets if recent_first else []
    if not working:
        return ProgressionResult(weight_kg=fallback_weight_kg, target_reps=rep_range_min)

    worst_reps = min(s.reps for s in working)
    avg_reps = sum(s.reps for s in working) / len(working)
    last_weight = max(s.weight for s in working)
    stalled = _detect_stall(recent_first)

    if worst_reps >= rep_range_max:
        increment, cap = _increment_and_cap(is_compound, is_lower_body)
        next_weight = min(last_weight + increment, last_weight + cap)
        result = ProgressionResult(_round_to_step(next_weight), rep_range_min, stalled)
    elif avg_reps >= rep_range_min:
        reps = min(math.floor(avg_reps) + 1, rep_range_max)
        result = ProgressionResult(_round_to_step(last_weight), reps, stalled)
    elif worst_reps < rep_range_min - 2:
        result = ProgressionResult(_round_to_step(last_weight * DECREASE_FACTOR), rep_range_min, stalled)
    else:
        reps = min(math.floor(avg_reps) + 1, rep_range_max)
        result = ProgressionResult(_round_to_step(last_weight), reps, stalled)

    if stalled:
        result = replace(
            result,
            stall_note=f"Weight unchanged for {STALL_SESSION_COUNT} sessions. Consider a deload.",
        )
    return result
