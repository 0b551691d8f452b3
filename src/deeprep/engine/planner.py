"""
Plan Generation Orchestrator

Internal Codename: SPOTTER
Runs the plan fallback chain: AI provider, then cached plan, then offline
baseline, then manual entry. Nothing raised by a collaborator escapes
`generate`; failures just move the chain to the next level.
"""

import hashlib
import logging
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Callable, Iterable, Optional

from deeprep.models import ExerciseForPlan, GeneratedPlan, PlanRequest
from deeprep.stores.base import (
    AiPlanProvider,
    BaselineGenerator,
    CachedPlanStore,
    ConnectivityChecker,
)

logger = logging.getLogger(__name__)


class PlanSource(Enum):
    AI_GENERATED = "ai_generated"
    CACHED = "cached"
    BASELINE = "baseline"
    MANUAL = "manual"


@dataclass(frozen=True)
class PlanResult:
    source: PlanSource
    plan: Optional[GeneratedPlan] = None


def compute_exercise_hash(exercises: Iterable[ExerciseForPlan]) -> str:
    """
    Content-addressed cache key for a set of exercises.

    SHA-256 of the lexicographically sorted stable ids joined by commas, so the
    caller's ordering never changes the key.
    """
    joined = ",".join(sorted(e.stable_id for e in exercises))
    return hashlib.sha256(joined.encode("utf-8")).hexdigest()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PlanGenerator:
    """Produces a plan through the AI -> cache -> baseline -> manual chain."""

    def __init__(
        self,
        ai_provider: AiPlanProvider,
        cache: CachedPlanStore,
        baseline: BaselineGenerator,
        connectivity: ConnectivityChecker,
        cache_ttl: timedelta = timedelta(days=7),
        ai_timeout_seconds: float = 30.0,
        clock: Callable[[], datetime] = _utcnow,
    ):
        """
        Args:
            ai_provider: Remote plan generator
            cache: Plan cache keyed by exercise hash and experience level
            baseline: Offline deterministic generator
            connectivity: Online check performed before calling the AI
            cache_ttl: Age after which cached plans are purged
            ai_timeout_seconds: Upper bound on the AI call
            clock: Source of the current time
        """
        self.ai_provider = ai_provider
        self.cache = cache
        self.baseline = baseline
        self.connectivity = connectivity
        self.cache_ttl = cache_ttl
        self.ai_timeout_seconds = ai_timeout_seconds
        self.clock = clock

    def generate(self, request: PlanRequest) -> PlanResult:
        """
        Generate a plan for a request.

        Args:
            request: Profile, exercises and history for the session

        Returns:
            PlanResult naming which level of the chain produced the plan
        """
        exercise_hash = compute_exercise_hash(request.exercises)
        level = request.user_profile.experience_level

        self._purge_expired()

        if self._is_online():
            plan = self._try_ai(request)
            if plan is not None:
                self._save_to_cache(exercise_hash, level, plan)
                logger.info("Plan source: AI (%d exercises)", len(plan.exercises))
                return PlanResult(PlanSource.AI_GENERATED, plan)

        cached = self._lookup_cache(exercise_hash, level)
        if cached is not None:
            logger.info("Plan source: cache (%s)", exercise_hash[:12])
            return PlanResult(PlanSource.CACHED, cached)

        baseline = self._try_baseline(request)
        if baseline is not None:
            logger.info("Plan source: baseline")
            return PlanResult(PlanSource.BASELINE, baseline)

        logger.info("Plan source: manual (no generator could produce a plan)")
        return PlanResult(PlanSource.MANUAL)

    def _purge_expired(self) -> None:
        try:
            removed = self.cache.delete_older_than(self.clock() - self.cache_ttl)
            if removed:
                logger.debug("Purged %d expired cached plans", removed)
        except Exception:
            logger.warning("Cache expiry sweep failed", exc_info=True)

    def _is_online(self) -> bool:
        try:
            return bool(self.connectivity.is_online())
        except Exception:
            logger.warning("Connectivity check failed; treating as offline", exc_info=True)
            return False

    def _try_ai(self, request: PlanRequest) -> Optional[GeneratedPlan]:
        executor = ThreadPoolExecutor(max_workers=1)
        try:
            future = executor.submit(self.ai_provider.generate_plan, request)
            plan = future.result(timeout=self.ai_timeout_seconds)
        except FutureTimeoutError:
            logger.warning("AI plan generation timed out after %ss", self.ai_timeout_seconds)
            return None
        except Exception:
            logger.warning("AI plan generation failed", exc_info=True)
            return None
        finally:
            executor.shutdown(wait=False)

        if plan is None or not plan.exercises:
            logger.warning("AI provider returned an empty plan")
            return None
        return plan

    def _save_to_cache(self, exercise_hash: str, level: int, plan: GeneratedPlan) -> None:
        try:
            self.cache.save(exercise_hash, level, plan, self.clock())
        except Exception:
            logger.warning("Failed to cache AI plan", exc_info=True)

    def _lookup_cache(self, exercise_hash: str, level: int) -> Optional[GeneratedPlan]:
        try:
            return self.cache.get_by_hash(exercise_hash, level)
        except Exception:
            logger.warning("Cache lookup failed", exc_info=True)
            return None

    def _try_baseline(self, request: PlanRequest) -> Optional[GeneratedPlan]:
        try:
            return self.baseline.generate(request)
        except Exception:
            logger.warning("Baseline generation failed", exc_info=True)
            return None
