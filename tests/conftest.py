"""
Shared fixtures: in-memory stores, fixed clocks and a small exercise catalog.
"""

import pytest

from deeprep.models import Difficulty, Equipment, MovementType, MuscleGroup
from deeprep.stores.memory import (
    InMemoryCachedPlanStore,
    InMemoryExerciseCatalog,
    InMemoryPersonalRecordStore,
    InMemorySessionStore,
    InMemoryUserProfileStore,
)

from factories import FakeClock, FakeMonotonic, make_exercise


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def monotonic():
    return FakeMonotonic()


@pytest.fixture
def session_store():
    return InMemorySessionStore()


@pytest.fixture
def record_store():
    return InMemoryPersonalRecordStore()


@pytest.fixture
def cache_store():
    return InMemoryCachedPlanStore()


@pytest.fixture
def profile_store():
    return InMemoryUserProfileStore()


@pytest.fixture
def bench():
    return make_exercise(1, "chest_barbell_bench_press", name="Barbell Bench Press", priority=10)


@pytest.fixture
def squat():
    return make_exercise(2, "legs_barbell_back_squat", group=MuscleGroup.LEGS,
                         name="Barbell Back Squat", priority=5)


@pytest.fixture
def curl():
    return make_exercise(3, "arms_dumbbell_curl", movement=MovementType.ISOLATION,
                         group=MuscleGroup.ARMS, difficulty=Difficulty.BEGINNER,
                         equipment=Equipment.DUMBBELL, name="Dumbbell Curl")


@pytest.fixture
def plank():
    return make_exercise(4, "core_plank", movement=MovementType.ISOLATION,
                         group=MuscleGroup.CORE, difficulty=Difficulty.BEGINNER,
                         equipment=Equipment.BODYWEIGHT, name="Plank")


@pytest.fixture
def catalog(bench, squat, curl, plank):
    return InMemoryExerciseCatalog([bench, squat, curl, plank])
