"""
Periodization Logic Engine

Internal Codename: SPOTTER
Determines the next session's training-day type from recent history:
linear for beginners, daily undulating (DUP) for intermediates and block
periodization for advanced lifters.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple

from deeprep.models import (
    ExerciseHistory,
    ExperienceLevel,
    HistoricalSession,
    SessionDayType,
)


class BlockPhase(Enum):
    """Phases of a training block."""
    ACCUMULATION = "accumulation"      # High reps, high volume
    INTENSIFICATION = "intensification"  # Moderate reps, moderate volume
    REALIZATION = "realization"         # Low reps, low volume


@dataclass(frozen=True)
class PeriodizationResult:
    periodization_model: str
    day_type: SessionDayType
    block_phase: Optional[str] = None
    block_week: Optional[int] = None


DUP_ROTATION = {
    SessionDayType.HYPERTROPHY: SessionDayType.STRENGTH,
    SessionDayType.STRENGTH: SessionDayType.POWER,
    SessionDayType.POWER: SessionDayType.HYPERTROPHY,
}

BLOCK_MIN_SESSIONS = 8
BLOCK_WINDOW = 16
BLOCK_WEEK_TOLERANCE = 0.20
SESSIONS_PER_BLOCK_WEEK = 3
MAX_BLOCK_WEEK = 4


def _working_reps(session: HistoricalSession) -> List[int]:
    return [s.reps for s in session.working_sets if s.reps > 0]


def _mean(values) -> float:
    values = list(values)
    return sum(values) / len(values) if values else 0.0


class PeriodizationEngine:
    """Decides what kind of day the next session should be."""

    def determine_day_type(
        self,
        level: ExperienceLevel,
        histories: List[ExerciseHistory],
    ) -> PeriodizationResult:
        """
        Determine the next session's periodization model and day type.

        Args:
            level: User experience level
            histories: Per-exercise training histories

        Returns:
            PeriodizationResult; block phase and week are set only for block periodization
        """
        if level == ExperienceLevel.INTERMEDIATE:
            last = self._infer_last_dup_day(histories)
            next_day = DUP_ROTATION[last] if last else SessionDayType.HYPERTROPHY
            return PeriodizationResult("dup", next_day)

        if level == ExperienceLevel.ADVANCED:
            return self._determine_block(histories)

        return PeriodizationResult("linear", SessionDayType.HYPERTROPHY)

    def _infer_last_dup_day(self, histories: List[ExerciseHistory]) -> Optional[SessionDayType]:
        sessions = [s for h in histories for s in h.sessions]
        if not sessions:
            return None

        latest = max(sessions, key=lambda s: s.date)
        reps = _working_reps(latest)
        if not reps:
            return None

        avg_reps = _mean(reps)
        if avg_reps >= 8:
            return SessionDayType.HYPERTROPHY
        if avg_reps <= 5:
            return SessionDayType.STRENGTH
        return SessionDayType.POWER

    def _determine_block(self, histories: List[ExerciseHistory]) -> PeriodizationResult:
        sessions = sorted((s for h in histories for s in h.sessions), key=lambda s: s.date)
        if len(sessions) < BLOCK_MIN_SESSIONS:
            return PeriodizationResult(
                "block", SessionDayType.HYPERTROPHY, BlockPhase.ACCUMULATION.value, 1
            )

        window = sessions[-BLOCK_WINDOW:]
        avg_reps = _mean(r for s in window for r in _working_reps(s))
        avg_sets = _mean(len(s.working_sets) for s in window)

        phase, day_type = self._classify_block(avg_reps, avg_sets)
        week = self._estimate_block_week(window, avg_reps)
        return PeriodizationResult("block", day_type, phase.value, week)

    @staticmethod
    def _classify_block(avg_reps: float, avg_sets: float) -> Tuple[BlockPhase, SessionDayType]:
        if avg_reps <= 0:
            return BlockPhase.ACCUMULATION, SessionDayType.HYPERTROPHY
        if avg_reps >= 8 and avg_sets >= 16:
            return BlockPhase.ACCUMULATION, SessionDayType.HYPERTROPHY
        if 4 <= avg_reps <= 7 and 12 <= avg_sets <= 16:
            return BlockPhase.INTENSIFICATION, SessionDayType.STRENGTH
        if avg_reps < 4 and avg_sets < 12:
            return BlockPhase.REALIZATION, SessionDayType.POWER
        return BlockPhase.ACCUMULATION, SessionDayType.HYPERTROPHY

    @staticmethod
    def _estimate_block_week(window: List[HistoricalSession], avg_reps: float) -> int:
        if avg_reps <= 0:
            return 1

        consistent = 0
        for session in reversed(window):
            session_avg = _mean(_working_reps(session))
            if abs(session_avg - avg_reps) / avg_reps <= BLOCK_WEEK_TOLERANCE:
                consistent += 1
            else:
                break

        return min(max(consistent // SESSIONS_PER_BLOCK_WEEK, 1), MAX_BLOCK_WEEK)
