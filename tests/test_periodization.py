"""
Periodization Engine Tests
"""

import pytest

from deeprep.engine.periodization import PeriodizationEngine
from deeprep.models import ExerciseHistory, ExperienceLevel, SessionDayType

from factories import history, historical_session


@pytest.fixture
def engine():
    return PeriodizationEngine()


def _block_history(loads, sets):
    return ExerciseHistory(
        exercise_id=1,
        exercise_name="Back Squat",
        sessions=[historical_session(i * 2, 100.0, reps, sets) for i, reps in enumerate(loads)],
    )


class TestLinear:

    def test_beginner_is_always_hypertrophy(self, engine):
        result = engine.determine_day_type(ExperienceLevel.BEGINNER, [history(1, [(60.0, 3)])])

        assert result.periodization_model == "linear"
        assert result.day_type == SessionDayType.HYPERTROPHY
        assert result.block_phase is None
        assert result.block_week is None


class TestDailyUndulating:
    """Next day follows the day inferred from the latest session's reps."""

    def test_no_history_starts_with_hypertrophy(self, engine):
        result = engine.determine_day_type(ExperienceLevel.INTERMEDIATE, [])

        assert result.periodization_model == "dup"
        assert result.day_type == SessionDayType.HYPERTROPHY

    @pytest.mark.parametrize("reps,expected", [
        (10, SessionDayType.STRENGTH),
        (8, SessionDayType.STRENGTH),
        (5, SessionDayType.POWER),
        (3, SessionDayType.POWER),
        (6, SessionDayType.HYPERTROPHY),
        (7, SessionDayType.HYPERTROPHY),
    ])
    def test_rotation(self, engine, reps, expected):
        result = engine.determine_day_type(ExperienceLevel.INTERMEDIATE, [history(1, [(80.0, reps)])])
        assert result.day_type == expected

    def test_uses_most_recent_session_across_exercises(self, engine):
        older = history(1, [(80.0, 10)])
        newer = history(2, [(80.0, 10), (80.0, 10), (90.0, 4)])

        result = engine.determine_day_type(ExperienceLevel.INTERMEDIATE, [older, newer])

        # Latest session was a 4-rep strength day
        assert result.day_type == SessionDayType.POWER


class TestBlock:

    def test_short_history_defaults_to_accumulation(self, engine):
        result = engine.determine_day_type(ExperienceLevel.ADVANCED, [_block_history([5] * 7, 12)])

        assert result.periodization_model == "block"
        assert result.day_type == SessionDayType.HYPERTROPHY
        assert result.block_phase == "accumulation"
        assert result.block_week == 1

    def test_accumulation(self, engine):
        result = engine.determine_day_type(ExperienceLevel.ADVANCED, [_block_history([10] * 20, 16)])

        assert result.block_phase == "accumulation"
        assert result.day_type == SessionDayType.HYPERTROPHY
        # 16 consistent sessions in the window -> week 5, clamped to 4
        assert result.block_week == 4

    def test_intensification(self, engine):
        result = engine.determine_day_type(ExperienceLevel.ADVANCED, [_block_history([5] * 9, 12)])

        assert result.block_phase == "intensification"
        assert result.day_type == SessionDayType.STRENGTH
        assert result.block_week == 3

    def test_realization(self, engine):
        result = engine.determine_day_type(ExperienceLevel.ADVANCED, [_block_history([3] * 10, 5)])

        assert result.block_phase == "realization"
        assert result.day_type == SessionDayType.POWER
        assert result.block_week == 3

    def test_unmatched_pattern_defaults_to_accumulation(self, engine):
        result = engine.determine_day_type(ExperienceLevel.ADVANCED, [_block_history([6] * 9, 5)])

        assert result.block_phase == "accumulation"
        assert result.day_type == SessionDayType.HYPERTROPHY

    def test_block_week_stops_at_first_inconsistent_session(self, engine):
        result = engine.determine_day_type(ExperienceLevel.ADVANCED, [_block_history([5] * 6 + [10] * 3, 12)])

        assert result.block_phase == "intensification"
        assert result.block_week == 1

    def test_sessions_without_working_reps_do_not_crash(self, engine):
        result = engine.determine_day_type(ExperienceLevel.ADVANCED, [_block_history([0] * 9, 12)])

        assert result.block_phase == "accumulation"
        assert result.block_week == 1
