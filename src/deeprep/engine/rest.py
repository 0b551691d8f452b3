"""
Rest Timer Resolution and Countdown

Internal Codename: SPOTTER
Resolves rest duration per exercise and drives the between-set countdown.
"""

import logging
import math
import time
from dataclasses import dataclass
from typing import Callable, Optional

from deeprep.models import Exercise, ExperienceLevel
from deeprep.stores.base import UserProfileStore

logger = logging.getLogger(__name__)


CORE_REST_SECONDS = 60

COMPOUND_REST_SECONDS = {
    ExperienceLevel.BEGINNER: 90,
    ExperienceLevel.INTERMEDIATE: 120,
    ExperienceLevel.ADVANCED: 180,
}

ISOLATION_REST_SECONDS = {
    ExperienceLevel.BEGINNER: 60,
    ExperienceLevel.INTERMEDIATE: 75,
    ExperienceLevel.ADVANCED: 75,
}


def baseline_rest_seconds(exercise: Exercise, level: ExperienceLevel) -> int:
    """CSCS default rest for an exercise at a given experience level."""
    if exercise.is_core:
        return CORE_REST_SECONDS
    if exercise.is_compound:
        return COMPOUND_REST_SECONDS[level]
    return ISOLATION_REST_SECONDS[level]


class RestTimerResolver:
    """
    Picks the rest duration for an exercise.

    Priority: AI plan value, per-exercise user override, user global default,
    CSCS baseline. A candidate is used only if present and positive.
    """

    def __init__(self, profile_store: UserProfileStore):
        """
        Args:
            profile_store: Source of the user's experience level
        """
        self.profile_store = profile_store

    def resolve(
        self,
        exercise: Exercise,
        ai_plan_seconds: Optional[int] = None,
        user_override_seconds: Optional[int] = None,
        user_global_default_seconds: Optional[int] = None,
    ) -> int:
        for candidate in (ai_plan_seconds, user_override_seconds, user_global_default_seconds):
            if candidate is not None and candidate > 0:
                return candidate

        profile = self.profile_store.get()
        level = profile.experience_level if profile else ExperienceLevel.INTERMEDIATE
        return baseline_rest_seconds(exercise, level)


@dataclass(frozen=True)
class RestTimerState:
    remaining_seconds: int
    total_seconds: int
    is_active: bool
    is_paused: bool = False

    @property
    def progress(self) -> float:
        """1.0 when just started, 0.0 when expired."""
        if self.total_seconds <= 0:
            return 0.0
        return self.remaining_seconds / self.total_seconds

    @property
    def is_finished(self) -> bool:
        return not self.is_active and self.total_seconds > 0 and self.remaining_seconds <= 0


IDLE = RestTimerState(remaining_seconds=0, total_seconds=0, is_active=False)


class RestTimer:
    """
    Cancellable countdown between sets.

    The timer is driven by an injected monotonic clock rather than a
    background thread; `state` is computed on read. Pause and resume follow
    the workout session in lock-step.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._total = 0
        self._remaining_at_anchor = 0.0
        self._anchor: Optional[float] = None
        self._active = False
        self._paused = False

    def _remaining(self) -> float:
        if not self._active:
            return 0.0
        if self._paused or self._anchor is None:
            return self._remaining_at_anchor
        elapsed = self._clock() - self._anchor
        return max(self._remaining_at_anchor - elapsed, 0.0)

    @property
    def state(self) -> RestTimerState:
        if not self._active and self._total == 0:
            return IDLE

        remaining = self._remaining()
        if self._active and remaining <= 0:
            self._active = False
            self._remaining_at_anchor = 0.0
            logger.debug("Rest timer finished after %ss", self._total)

        return RestTimerState(
            remaining_seconds=int(math.ceil(remaining)) if self._active else 0,
            total_seconds=self._total,
            is_active=self._active,
            is_paused=self._active and self._paused,
        )

    def start(self, seconds: int) -> None:
        """Start a new countdown, replacing any running one."""
        self.cancel()
        if seconds <= 0:
            return
        self._total = seconds
        self._remaining_at_anchor = float(seconds)
        self._anchor = self._clock()
        self._active = True

    def skip(self) -> None:
        self.cancel()

    def extend(self, seconds: int = 30) -> None:
        """Add time to a running countdown. No-op when idle."""
        if not self.state.is_active:
            return
        self._remaining_at_anchor = self._remaining() + seconds
        if not self._paused:
            self._anchor = self._clock()
        self._total += seconds

    def pause(self) -> None:
        if not self.state.is_active or self._paused:
            return
        self._remaining_at_anchor = self._remaining()
        self._paused = True

    def resume(self) -> None:
        if not self._active or not self._paused:
            return
        self._paused = False
        self._anchor = self._clock()

    def cancel(self) -> None:
        self._total = 0
        self._remaining_at_anchor = 0.0
        self._anchor = None
        self._active = False
        self._paused = False
