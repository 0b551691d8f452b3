"""
Deload Detection

Internal Codename: SPOTTER
Decides whether a deload week is due, either on schedule or because
performance has started to regress.
"""

import logging
from typing import Dict, List, Optional

from deeprep.engine.progression import best_estimated_1rm
from deeprep.models import DeloadStatus, ExerciseHistory, ExperienceLevel

logger = logging.getLogger(__name__)


SCHEDULED_DELOAD_WEEKS: Dict[ExperienceLevel, int] = {
    ExperienceLevel.BEGINNER: 6,
    ExperienceLevel.INTERMEDIATE: 4,
    ExperienceLevel.ADVANCED: 5,
}

STALL_SESSIONS = 3
STALLS_FOR_DELOAD = 2
REGRESSION_DECREASES = 2
MIN_SESSIONS = 3
ADVANCED_REGRESSING_EXERCISES = 2


def count_stalls(history: ExerciseHistory) -> int:
    """
    Count stall streaks in a history.

    A stall is the same top working weight for three sessions in a row. After
    a stall is counted the streak restarts from the counting session, so five
    identical sessions already count as two stalls. Sessions without working
    sets are ignored.
    """
    if len(history.sessions) < MIN_SESSIONS:
        return 0

    stalls = 0
    streak = 1
    last_weight: Optional[float] = None
    for session in history.sessions:
        working = session.working_sets
        if not working:
            continue

        top_weight = max(s.weight for s in working)
        if last_weight is not None and top_weight == last_weight:
            streak += 1
            if streak >= STALL_SESSIONS:
                stalls += 1
                streak = 1
        else:
            streak = 1
        last_weight = top_weight

    return stalls


def has_consecutive_regression(history: ExerciseHistory) -> bool:
    """True when estimated 1RM dropped in two consecutive sessions."""
    if len(history.sessions) < MIN_SESSIONS:
        return False

    estimates = []
    for session in history.sessions:
        working = session.working_sets
        if not working:
            continue
        best = best_estimated_1rm(working)
        if best is not None:
            estimates.append(best)

    if len(estimates) < MIN_SESSIONS:
        return False

    decreases = 0
    for previous, current in zip(estimates, estimates[1:]):
        if current < previous:
            decreases += 1
            if decreases >= REGRESSION_DECREASES:
                return True
        else:
            decreases = 0
    return False


class DeloadDetector:
    """Schedule- and regression-based deload recommendations."""

    def detect(
        self,
        level: ExperienceLevel,
        weeks_since_last_deload: Optional[int],
        histories: List[ExerciseHistory],
        user_requested: bool = False,
    ) -> DeloadStatus:
        """
        Decide whether a deload is due.

        Args:
            level: User experience level
            weeks_since_last_deload: Weeks since the last deload, if known
            histories: Per-exercise histories, sessions oldest first
            user_requested: The user explicitly asked for a deload

        Returns:
            DeloadStatus
        """
        if user_requested:
            return DeloadStatus.USER_REQUESTED

        threshold = SCHEDULED_DELOAD_WEEKS.get(level, 6)
        if weeks_since_last_deload is not None and weeks_since_last_deload >= threshold:
            logger.info("Scheduled deload due: %s weeks since last (threshold %s)",
                        weeks_since_last_deload, threshold)
            return DeloadStatus.PROACTIVE_RECOMMENDED

        if self._has_regression(level, histories):
            logger.info("Performance regression detected for %s lifter", level.name.lower())
            return DeloadStatus.REACTIVE_RECOMMENDED

        return DeloadStatus.NOT_NEEDED

    @staticmethod
    def _has_regression(level: ExperienceLevel, histories: List[ExerciseHistory]) -> bool:
        if not histories:
            return False

        if level == ExperienceLevel.BEGINNER:
            return any(count_stalls(h) >= STALLS_FOR_DELOAD for h in histories)
        if level == ExperienceLevel.INTERMEDIATE:
            return any(has_consecutive_regression(h) for h in histories)

        regressing = sum(1 for h in histories if has_consecutive_regression(h))
        return regressing >= ADVANCED_REGRESSING_EXERCISES
