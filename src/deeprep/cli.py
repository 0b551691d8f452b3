#!/usr/bin/env python3
"""
DeepRep CLI

Internal Codename: SPOTTER
Command-line front end for the training engine.

Usage:
    deeprep recover [--discard | --resume]
    deeprep order --catalog FILE --exercise-id ID ...
    deeprep rest --catalog FILE --exercise-id ID [--ai-seconds N] [--override N]
    deeprep plan --catalog FILE --exercise-id ID ... [--history FILE] [--body-weight KG]
    deeprep periodize [--history FILE] [--weeks-since-deload N]

Without POSTGRES_DSN the commands run against in-memory stores; exercises
and histories can then be supplied as YAML files.
"""

import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import List, Optional

import click
import yaml

from deeprep.ai import HttpConnectivityChecker, OpenAIPlanProvider
from deeprep.config import Settings, load_settings
from deeprep.engine import (
    BaselinePlanGenerator,
    DeloadDetector,
    PeriodizationEngine,
    PlanGenerator,
    PlanSafetyValidator,
    RestTimerResolver,
    SessionRecovery,
    order_exercises,
)
from deeprep.errors import AiPlanError
from deeprep.logging_setup import setup_logging
from deeprep.models import (
    DeloadStatus,
    Difficulty,
    Equipment,
    Exercise,
    ExerciseForPlan,
    ExerciseHistory,
    ExperienceLevel,
    Gender,
    GeneratedPlan,
    HistoricalSession,
    HistoricalSet,
    MovementType,
    PlanRequest,
    SetType,
    UserPlanProfile,
    UserProfile,
)
from deeprep.stores.base import AiPlanProvider, ConnectivityChecker
from deeprep.stores.memory import (
    InMemoryCachedPlanStore,
    InMemoryExerciseCatalog,
    InMemorySessionStore,
    InMemoryUserProfileStore,
)

logger = logging.getLogger(__name__)


# =============================================================================
# YAML INPUTS
# =============================================================================

def _as_datetime(value) -> datetime:
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, date):
        return datetime.combine(value, time(), tzinfo=timezone.utc)
    return _as_datetime(datetime.fromisoformat(str(value)))


def load_exercises(path: str) -> List[Exercise]:
    """
    Load catalog exercises from a YAML list.

    Each entry needs id, stable_id, name, equipment, movement_type,
    difficulty and primary_group_id; order_priority defaults to 50.
    """
    with open(path) as f:
        entries = yaml.safe_load(f) or []
    return [
        Exercise(
            id=int(e['id']),
            stable_id=e['stable_id'],
            name=e['name'],
            equipment=Equipment.parse(e['equipment']),
            movement_type=MovementType(e['movement_type']),
            difficulty=Difficulty(e['difficulty']),
            primary_group_id=int(e['primary_group_id']),
            order_priority=int(e.get('order_priority', 50)),
            auto_program_min_level=int(e.get('auto_program_min_level', 1)),
            secondary_muscles=tuple(e.get('secondary_muscles') or ()),
            description=e.get('description') or "",
        )
        for e in entries
    ]


def load_histories(path: Optional[str]) -> List[ExerciseHistory]:
    """
    Load per-exercise histories from YAML.

    Sets are written as [weight, reps] or [weight, reps, warmup].
    """
    if not path:
        return []
    with open(path) as f:
        entries = yaml.safe_load(f) or []

    histories = []
    for entry in entries:
        sessions = []
        for raw in entry.get('sessions') or []:
            sets = [
                HistoricalSet(
                    weight=float(s[0]),
                    reps=int(s[1]),
                    set_type=SetType(s[2]) if len(s) > 2 else SetType.WORKING,
                )
                for s in raw.get('sets') or []
            ]
            sessions.append(HistoricalSession(date=_as_datetime(raw['date']), sets=sets))
        sessions.sort(key=lambda s: s.date)
        histories.append(ExerciseHistory(
            exercise_id=int(entry['exercise_id']),
            exercise_name=entry.get('exercise_name', ''),
            sessions=sessions,
        ))
    return histories


# =============================================================================
# STORE WIRING
# =============================================================================

class Stores:
    """Session, catalog, cache and profile stores for one CLI invocation."""

    def __init__(self, settings: Settings, catalog_path: Optional[str] = None):
        self.db = None
        if settings.postgres_dsn:
            from deeprep.stores.postgres import (
                PostgresCachedPlanStore,
                PostgresConnection,
                PostgresExerciseCatalog,
                PostgresSessionStore,
                PostgresUserProfileStore,
            )
            self.db = PostgresConnection(settings.postgres_dsn)
            self.sessions = PostgresSessionStore(self.db)
            self.catalog = PostgresExerciseCatalog(self.db)
            self.cache = PostgresCachedPlanStore(self.db)
            self.profile = PostgresUserProfileStore(self.db)
        else:
            self.sessions = InMemorySessionStore()
            self.catalog = InMemoryExerciseCatalog()
            self.cache = InMemoryCachedPlanStore()
            self.profile = InMemoryUserProfileStore()

        if catalog_path:
            self.catalog = InMemoryExerciseCatalog(load_exercises(catalog_path))

    def close(self):
        if self.db is not None:
            self.db.close()


def _exercises_or_fail(stores: Stores, exercise_ids: List[int]) -> List[Exercise]:
    exercises = stores.catalog.get_exercises(list(exercise_ids))
    missing = set(exercise_ids) - {e.id for e in exercises}
    if missing:
        raise click.ClickException(f"Unknown exercise id(s): {', '.join(str(i) for i in sorted(missing))}")
    return exercises


class _OfflineChecker(ConnectivityChecker):
    def is_online(self) -> bool:
        return False


class _NoAiProvider(AiPlanProvider):
    def generate_plan(self, request: PlanRequest) -> GeneratedPlan:
        raise AiPlanError("No AI provider configured")


def _profile(stores: Stores, level: Optional[int], body_weight: Optional[float],
             age: Optional[int], gender: Optional[str]) -> UserProfile:
    profile = stores.profile.get() or UserProfile()
    if level is not None:
        profile.experience_level = ExperienceLevel.from_value(level)
    if body_weight is not None:
        profile.body_weight_kg = body_weight
    if age is not None:
        profile.age = age
    if gender is not None:
        profile.gender = Gender(gender)
    return profile


# =============================================================================
# COMMANDS
# =============================================================================

@click.group()
@click.option('--config', 'config_path', type=click.Path(dir_okay=False), help='YAML config file')
@click.pass_context
def cli(ctx, config_path: Optional[str]):
    """
    DeepRep - Personal Training Engine

    SPOTTER: Plans, guards and tracks every session.
    """
    settings = load_settings(config_path)
    setup_logging(settings.log_level)
    ctx.obj = settings


@cli.command()
@click.option('--discard', is_flag=True, help='Discard the recovered session')
@click.option('--resume', 'resume_', is_flag=True, help='Resume the recovered session')
@click.pass_obj
def recover(settings: Settings, discard: bool, resume_: bool):
    """Clean up stale sessions and report a crashed or paused workout."""
    stores = Stores(settings)
    try:
        recovery = SessionRecovery(stores.sessions, stale_after=timedelta(hours=settings.stale_session_hours))
        recoverable = recovery.run()
        if recoverable is None:
            click.echo("No session to recover")
            return

        session = recoverable.session
        kind = "crashed" if recoverable.was_crash else "paused"
        click.echo(f"Session {session.id} ({kind}), started {session.started_at.isoformat()}")

        if discard:
            status = recovery.discard(recoverable)
            click.echo(f"Discarded as {status.value}")
        elif resume_:
            click.echo(f"Resuming session {recovery.resume(recoverable)}")
    finally:
        stores.close()


@cli.command()
@click.option('--catalog', 'catalog_path', type=click.Path(exists=True, dir_okay=False), help='Exercise catalog YAML')
@click.option('--exercise-id', 'exercise_ids', type=int, multiple=True, required=True, help='Exercise id (repeatable)')
@click.pass_obj
def order(settings: Settings, catalog_path: Optional[str], exercise_ids: List[int]):
    """Order exercises compounds-first with core last."""
    stores = Stores(settings, catalog_path)
    try:
        exercises = _exercises_or_fail(stores, exercise_ids)
        for i, exercise in enumerate(order_exercises(exercises), 1):
            kind = "core" if exercise.is_core else exercise.movement_type.value
            click.echo(f"{i:2}. {exercise.name} ({kind}, {exercise.difficulty.value})")
    finally:
        stores.close()


@cli.command()
@click.option('--catalog', 'catalog_path', type=click.Path(exists=True, dir_okay=False), help='Exercise catalog YAML')
@click.option('--exercise-id', type=int, required=True, help='Exercise id')
@click.option('--ai-seconds', type=int, help='Rest from the generated plan')
@click.option('--override', 'override_seconds', type=int, help='Per-exercise user override')
@click.option('--default', 'default_seconds', type=int, help='User global default')
@click.pass_obj
def rest(settings: Settings, catalog_path: Optional[str], exercise_id: int,
         ai_seconds: Optional[int], override_seconds: Optional[int], default_seconds: Optional[int]):
    """Resolve the rest period for an exercise."""
    stores = Stores(settings, catalog_path)
    try:
        exercise = _exercises_or_fail(stores, [exercise_id])[0]
        seconds = RestTimerResolver(stores.profile).resolve(
            exercise,
            ai_plan_seconds=ai_seconds,
            user_override_seconds=override_seconds,
            user_global_default_seconds=default_seconds,
        )
        click.echo(f"{exercise.name}: {seconds}s rest")
    finally:
        stores.close()


@cli.command()
@click.option('--catalog', 'catalog_path', type=click.Path(exists=True, dir_okay=False), help='Exercise catalog YAML')
@click.option('--exercise-id', 'exercise_ids', type=int, multiple=True, required=True, help='Exercise id (repeatable)')
@click.option('--history', 'history_path', type=click.Path(exists=True, dir_okay=False), help='Training history YAML')
@click.option('--level', type=click.IntRange(1, 3), help='Experience level (1-3)')
@click.option('--body-weight', type=float, help='Body weight in kg')
@click.option('--age', type=int, help='Age in years')
@click.option('--gender', type=click.Choice(['male', 'female']), help='Gender')
@click.option('--weeks-since-deload', type=int, help='Weeks since the last deload')
@click.option('--offline', is_flag=True, help='Skip the AI provider')
@click.pass_obj
def plan(settings: Settings, catalog_path: Optional[str], exercise_ids: List[int],
         history_path: Optional[str], level: Optional[int], body_weight: Optional[float],
         age: Optional[int], gender: Optional[str], weeks_since_deload: Optional[int], offline: bool):
    """Generate a session plan through the AI, cache and baseline fallbacks."""
    stores = Stores(settings, catalog_path)
    try:
        profile = _profile(stores, level, body_weight, age, gender)
        exercises = order_exercises(_exercises_or_fail(stores, exercise_ids))
        histories = load_histories(history_path)

        periodization = PeriodizationEngine().determine_day_type(profile.experience_level, histories)
        deload = DeloadDetector().detect(profile.experience_level, weeks_since_deload, histories)

        request = PlanRequest(
            user_profile=UserPlanProfile.from_profile(profile),
            exercises=[ExerciseForPlan.from_exercise(e) for e in exercises],
            training_history=histories,
            periodization_model=periodization.periodization_model,
            weeks_since_deload=weeks_since_deload,
            deload_recommended=deload != DeloadStatus.NOT_NEEDED,
            current_block_phase=periodization.block_phase,
            current_block_week=periodization.block_week,
        )

        if offline or not settings.openai_api_key:
            ai_provider, connectivity = _NoAiProvider(), _OfflineChecker()
        else:
            ai_provider = OpenAIPlanProvider(
                api_key=settings.openai_api_key,
                model=settings.ai_model,
                timeout_seconds=settings.ai_timeout_seconds,
            )
            connectivity = HttpConnectivityChecker(
                settings.connectivity_url, settings.connectivity_timeout_seconds
            )

        generator = PlanGenerator(
            ai_provider=ai_provider,
            cache=stores.cache,
            baseline=BaselinePlanGenerator(),
            connectivity=connectivity,
            cache_ttl=timedelta(days=settings.cache_ttl_days),
            ai_timeout_seconds=settings.ai_timeout_seconds,
        )
        result = generator.generate(request)

        click.echo("=" * 60)
        click.echo(f"PLAN ({result.source.value}) - {periodization.periodization_model}, "
                   f"{periodization.day_type.value} day")
        click.echo("=" * 60)

        if result.plan is None:
            click.echo("No plan could be generated. Enter sets manually.")
            return

        for exercise_plan in result.plan.exercises:
            click.echo(f"\n{exercise_plan.exercise_name} (rest {exercise_plan.rest_seconds}s)")
            for s in exercise_plan.sets:
                click.echo(f"  {s.set_type.value:7} {s.weight:6.1f}kg x {s.reps}")
            if exercise_plan.notes:
                click.echo(f"  Note: {exercise_plan.notes}")

        violations = PlanSafetyValidator().validate(result.plan, request)
        if violations:
            click.echo(f"\n{'─' * 60}")
            click.echo("SAFETY")
            click.echo('─' * 60)
            for v in violations:
                click.secho(f"  ⚠  [{v.severity.value}] {v.message}",
                            fg='red' if v.severity.value == 'high' else 'yellow')
        click.echo("\n" + "=" * 60)
    finally:
        stores.close()


@cli.command()
@click.option('--history', 'history_path', type=click.Path(exists=True, dir_okay=False), help='Training history YAML')
@click.option('--level', type=click.IntRange(1, 3), help='Experience level (1-3)')
@click.option('--weeks-since-deload', type=int, help='Weeks since the last deload')
@click.option('--request-deload', is_flag=True, help='User asks for a deload')
@click.pass_obj
def periodize(settings: Settings, history_path: Optional[str], level: Optional[int],
              weeks_since_deload: Optional[int], request_deload: bool):
    """Show the next day type and whether a deload is due."""
    stores = Stores(settings)
    try:
        profile = _profile(stores, level, None, None, None)
        histories = load_histories(history_path)

        result = PeriodizationEngine().determine_day_type(profile.experience_level, histories)
        deload = DeloadDetector().detect(
            profile.experience_level, weeks_since_deload, histories, user_requested=request_deload
        )

        click.echo(f"Model: {result.periodization_model}")
        click.echo(f"Next day: {result.day_type.value}")
        if result.block_phase:
            click.echo(f"Block: {result.block_phase} (week {result.block_week})")
        click.echo(f"Deload: {deload.value}")
    finally:
        stores.close()


if __name__ == '__main__':
    cli()
