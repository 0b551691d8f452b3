"""
Exercise Auto-Ordering

Internal Codename: SPOTTER
Orders a session's exercises by CSCS rules: compounds first, then isolations,
with core work always last.
"""

from typing import List

from deeprep.models import Difficulty, Exercise


DIFFICULTY_RANK = {
    Difficulty.ADVANCED: 1,
    Difficulty.INTERMEDIATE: 2,
    Difficulty.BEGINNER: 3,
}


def difficulty_rank(exercise: Exercise) -> int:
    """Harder movements rank lower so they are scheduled earlier."""
    return DIFFICULTY_RANK.get(exercise.difficulty, 3)


def order_exercises(exercises: List[Exercise]) -> List[Exercise]:
    """
    Order exercises for a session.

    Non-core compounds and isolations are each sorted by
    (order priority, difficulty rank). Core exercises go last, compounds
    before isolations, then by difficulty rank. Sorting is stable, so ties
    keep their input order.

    Args:
        exercises: Exercises in any order

    Returns:
        New list in session order
    """
    core = [e for e in exercises if e.is_core]
    rest = [e for e in exercises if not e.is_core]

    compounds = sorted(
        (e for e in rest if e.is_compound),
        key=lambda e: (e.order_priority, difficulty_rank(e)),
    )
    isolations = sorted(
        (e for e in rest if not e.is_compound),
        key=lambda e: (e.order_priority, difficulty_rank(e)),
    )
    core_sorted = sorted(core, key=lambda e: (0 if e.is_compound else 1, difficulty_rank(e)))

    return compounds + isolations + core_sorted
