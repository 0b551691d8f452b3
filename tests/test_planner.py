"""
Plan Generation Fallback Chain Tests

AI -> cache -> baseline -> manual, with every collaborator failure
downgraded to the next level.
"""

import threading
from datetime import timedelta

import pytest

from deeprep.engine.planner import PlanGenerator, PlanSource, compute_exercise_hash
from deeprep.errors import AiPlanError
from deeprep.stores.base import AiPlanProvider, BaselineGenerator, ConnectivityChecker
from deeprep.stores.memory import InMemoryCachedPlanStore

from factories import NOW, exercise_plan, plan_exercise, plan_of, plan_request


# =============================================================================
# FAKES
# =============================================================================

class FakeAi(AiPlanProvider):
    def __init__(self, plan=None, error=None, block=None):
        self.plan = plan
        self.error = error
        self.block = block
        self.calls = 0

    def generate_plan(self, request):
        self.calls += 1
        if self.block is not None:
            self.block.wait(5)
        if self.error is not None:
            raise self.error
        return self.plan


class FakeBaseline(BaselineGenerator):
    def __init__(self, plan=None, error=None):
        self.plan = plan
        self.error = error
        self.calls = 0

    def generate(self, request):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.plan


class FakeConnectivity(ConnectivityChecker):
    def __init__(self, online=True, error=None):
        self.online = online
        self.error = error

    def is_online(self):
        if self.error is not None:
            raise self.error
        return self.online


class BrokenSweepCache(InMemoryCachedPlanStore):
    def delete_older_than(self, cutoff):
        raise RuntimeError("disk full")


class BrokenCache(InMemoryCachedPlanStore):
    def get_by_hash(self, exercise_hash, experience_level):
        raise RuntimeError("corrupt row")

    def save(self, exercise_hash, experience_level, plan, created_at):
        raise RuntimeError("read-only")


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def exercises():
    return [
        plan_exercise(1, "chest_barbell_bench_press"),
        plan_exercise(2, "legs_barbell_back_squat", group="legs", name="Barbell Back Squat"),
    ]


@pytest.fixture
def request_(exercises):
    return plan_request(exercises, level=2)


@pytest.fixture
def ai_plan(exercises):
    return plan_of(exercise_plan(exercises[0], weights=[100.0]), exercise_plan(exercises[1]))


@pytest.fixture
def baseline_plan(exercises):
    return plan_of(exercise_plan(exercises[0], weights=[40.0]))


def _generator(ai, cache, baseline, connectivity, **kwargs):
    return PlanGenerator(ai, cache, baseline, connectivity, clock=lambda: NOW, **kwargs)


# =============================================================================
# TESTS
# =============================================================================

class TestExerciseHash:

    def test_order_invariant(self, exercises):
        assert compute_exercise_hash(exercises) == compute_exercise_hash(list(reversed(exercises)))

    def test_changes_with_exercise_set(self, exercises):
        extra = exercises + [plan_exercise(3, "arms_barbell_curl")]
        assert compute_exercise_hash(exercises) != compute_exercise_hash(extra)

    def test_is_sha256_hex(self, exercises):
        digest = compute_exercise_hash(exercises)
        assert len(digest) == 64
        int(digest, 16)


class TestFallbackChain:
    """Fixed priority: each level is tried only if the previous is unavailable."""

    def test_online_ai_success(self, request_, ai_plan, cache_store):
        ai = FakeAi(plan=ai_plan)
        baseline = FakeBaseline()

        result = _generator(ai, cache_store, baseline, FakeConnectivity()).generate(request_)

        assert result.source == PlanSource.AI_GENERATED
        assert result.plan == ai_plan
        assert baseline.calls == 0

    def test_ai_success_is_cached(self, request_, exercises, ai_plan, cache_store):
        _generator(FakeAi(plan=ai_plan), cache_store, FakeBaseline(), FakeConnectivity()).generate(request_)

        assert cache_store.get_by_hash(compute_exercise_hash(exercises), 2) == ai_plan

    def test_ai_error_falls_back_to_cache(self, request_, exercises, ai_plan, cache_store):
        cache_store.save(compute_exercise_hash(exercises), 2, ai_plan, NOW - timedelta(days=1))

        result = _generator(
            FakeAi(error=AiPlanError("bad json")), cache_store, FakeBaseline(), FakeConnectivity()
        ).generate(request_)

        assert result.source == PlanSource.CACHED
        assert result.plan == ai_plan

    def test_offline_skips_ai(self, request_, exercises, ai_plan, cache_store):
        cache_store.save(compute_exercise_hash(exercises), 2, ai_plan, NOW)
        ai = FakeAi(plan=ai_plan)

        result = _generator(ai, cache_store, FakeBaseline(), FakeConnectivity(online=False)).generate(request_)

        assert result.source == PlanSource.CACHED
        assert ai.calls == 0

    def test_offline_cache_miss_uses_baseline(self, request_, baseline_plan, cache_store):
        result = _generator(
            FakeAi(), cache_store, FakeBaseline(plan=baseline_plan), FakeConnectivity(online=False)
        ).generate(request_)

        assert result.source == PlanSource.BASELINE
        assert result.plan == baseline_plan

    def test_baseline_plans_are_not_cached(self, request_, baseline_plan, cache_store):
        _generator(
            FakeAi(), cache_store, FakeBaseline(plan=baseline_plan), FakeConnectivity(online=False)
        ).generate(request_)

        assert len(cache_store) == 0

    def test_everything_unavailable_is_manual(self, request_, cache_store):
        result = _generator(
            FakeAi(), cache_store, FakeBaseline(plan=None), FakeConnectivity(online=False)
        ).generate(request_)

        assert result.source == PlanSource.MANUAL
        assert result.plan is None

    def test_empty_ai_plan_counts_as_failure(self, request_, baseline_plan, cache_store):
        result = _generator(
            FakeAi(plan=plan_of()), cache_store, FakeBaseline(plan=baseline_plan), FakeConnectivity()
        ).generate(request_)

        assert result.source == PlanSource.BASELINE
        assert len(cache_store) == 0

    def test_cache_is_keyed_by_experience_level(self, exercises, ai_plan, baseline_plan, cache_store):
        cache_store.save(compute_exercise_hash(exercises), 1, ai_plan, NOW)

        result = _generator(
            FakeAi(), cache_store, FakeBaseline(plan=baseline_plan), FakeConnectivity(online=False)
        ).generate(plan_request(exercises, level=2))

        assert result.source == PlanSource.BASELINE


class TestCollaboratorFailures:
    """Nothing raised by a collaborator escapes generate()."""

    def test_connectivity_error_means_offline(self, request_, baseline_plan, cache_store):
        ai = FakeAi()
        result = _generator(
            ai, cache_store, FakeBaseline(plan=baseline_plan), FakeConnectivity(error=OSError("no route"))
        ).generate(request_)

        assert result.source == PlanSource.BASELINE
        assert ai.calls == 0

    def test_expiry_sweep_failure_is_not_fatal(self, request_, ai_plan):
        result = _generator(
            FakeAi(plan=ai_plan), BrokenSweepCache(), FakeBaseline(), FakeConnectivity()
        ).generate(request_)

        assert result.source == PlanSource.AI_GENERATED

    def test_cache_write_failure_still_returns_ai_plan(self, request_, ai_plan):
        result = _generator(
            FakeAi(plan=ai_plan), BrokenCache(), FakeBaseline(), FakeConnectivity()
        ).generate(request_)

        assert result.source == PlanSource.AI_GENERATED

    def test_cache_read_failure_falls_through(self, request_, baseline_plan):
        result = _generator(
            FakeAi(error=RuntimeError("503")), BrokenCache(), FakeBaseline(plan=baseline_plan),
            FakeConnectivity(),
        ).generate(request_)

        assert result.source == PlanSource.BASELINE

    def test_baseline_error_is_manual(self, request_, cache_store):
        result = _generator(
            FakeAi(), cache_store, FakeBaseline(error=KeyError("ratio")), FakeConnectivity(online=False)
        ).generate(request_)

        assert result.source == PlanSource.MANUAL

    def test_ai_timeout_falls_through(self, request_, baseline_plan, ai_plan, cache_store):
        release = threading.Event()
        ai = FakeAi(plan=ai_plan, block=release)
        try:
            result = _generator(
                ai, cache_store, FakeBaseline(plan=baseline_plan), FakeConnectivity(),
                ai_timeout_seconds=0.05,
            ).generate(request_)
        finally:
            release.set()

        assert result.source == PlanSource.BASELINE
        assert len(cache_store) == 0


class TestCacheExpiry:

    def test_expired_entries_are_purged(self, request_, exercises, ai_plan, baseline_plan, cache_store):
        cache_store.save(compute_exercise_hash(exercises), 2, ai_plan, NOW - timedelta(days=8))

        result = _generator(
            FakeAi(), cache_store, FakeBaseline(plan=baseline_plan), FakeConnectivity(online=False)
        ).generate(request_)

        assert result.source == PlanSource.BASELINE
        assert len(cache_store) == 0

    def test_fresh_entries_survive(self, request_, exercises, ai_plan, cache_store):
        cache_store.save(compute_exercise_hash(exercises), 2, ai_plan, NOW - timedelta(days=6))

        result = _generator(
            FakeAi(), cache_store, FakeBaseline(), FakeConnectivity(online=False)
        ).generate(request_)

        assert result.source == PlanSource.CACHED
