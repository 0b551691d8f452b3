"""Postgres-backed stores for sessions, catalog, records, plan cache and profile.

Schema lives in migrations/001_init.sql. Each write runs in its own
transaction; on failure the transaction is rolled back and StoreError raised.
"""

import os
import logging
from contextlib import contextmanager
from datetime import datetime
from typing import List, Optional

import psycopg2
from psycopg2.extras import Json, RealDictCursor, execute_values
from dotenv import load_dotenv

from deeprep.errors import StoreError
from deeprep.models import (
    Difficulty,
    Equipment,
    Exercise,
    ExperienceLevel,
    Gender,
    GeneratedPlan,
    MovementType,
    PersonalRecord,
    RecordType,
    SessionStatus,
    SetStatus,
    SetType,
    UserProfile,
    WeightUnit,
    WorkoutExercise,
    WorkoutSession,
    WorkoutSet,
)
from deeprep.stores.base import (
    CachedPlanStore,
    ExerciseCatalog,
    PersonalRecordStore,
    UserProfileStore,
    WorkoutSessionStore,
)

load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_DSN = "postgresql://localhost:5432/deeprep"


class PostgresConnection:
    """Lazy psycopg2 connection shared by the stores."""

    def __init__(self, dsn: Optional[str] = None):
        """Initialize Postgres connection settings."""
        self.dsn = dsn or os.environ.get("POSTGRES_DSN", DEFAULT_DSN)
        self._conn = None

    @property
    def conn(self):
        """Lazy connection."""
        if self._conn is None or self._conn.closed:
            self._conn = psycopg2.connect(self.dsn)
        return self._conn

    def close(self):
        """Close connection."""
        if self._conn and not self._conn.closed:
            self._conn.close()

    @contextmanager
    def transaction(self, action: str):
        cursor = self.conn.cursor(cursor_factory=RealDictCursor)
        try:
            yield cursor
            self.conn.commit()
        except psycopg2.Error as e:
            self.conn.rollback()
            logger.error(f"Error {action}: {e}")
            raise StoreError(f"Error {action}: {e}") from e
        finally:
            cursor.close()

    def fetch_all(self, query: str, params=None) -> List[dict]:
        with self.transaction("reading") as cursor:
            cursor.execute(query, params)
            return cursor.fetchall()

    def fetch_one(self, query: str, params=None) -> Optional[dict]:
        with self.transaction("reading") as cursor:
            cursor.execute(query, params)
            return cursor.fetchone()


# =============================================================================
# ROW MAPPING
# =============================================================================

def _session_from_row(row: dict) -> WorkoutSession:
    return WorkoutSession(
        id=row['id'],
        started_at=row['started_at'],
        status=SessionStatus(row['status']),
        completed_at=row['completed_at'],
        duration_seconds=row['duration_seconds'],
        paused_duration_seconds=row['paused_duration_seconds'] or 0,
        notes=row['notes'],
        template_id=row['template_id'],
        paused_at=row['paused_at'],
    )


def _set_from_row(row: dict) -> WorkoutSet:
    return WorkoutSet(
        id=row['id'],
        set_number=row['set_number'],
        type=SetType(row['set_type']),
        status=SetStatus(row['status']),
        planned_weight_kg=row['planned_weight_kg'],
        planned_reps=row['planned_reps'],
        actual_weight_kg=row['actual_weight_kg'],
        actual_reps=row['actual_reps'],
        completed_at=row['completed_at'],
        is_personal_record=row['is_personal_record'],
    )


def _exercise_from_row(row: dict) -> Exercise:
    return Exercise(
        id=row['id'],
        stable_id=row['stable_id'],
        name=row['name'],
        equipment=Equipment(row['equipment']),
        movement_type=MovementType(row['movement_type']),
        difficulty=Difficulty(row['difficulty']),
        primary_group_id=row['primary_group_id'],
        order_priority=row['order_priority'],
        auto_program_min_level=row['auto_program_min_level'],
        secondary_muscles=tuple(row.get('secondary_muscles') or ()),
        description=row.get('description') or "",
    )


SESSION_COLUMNS = """
    id, started_at, completed_at, duration_seconds, paused_duration_seconds,
    status, notes, template_id, paused_at
"""

SET_COLUMNS = """
    id, set_number, set_type, status, planned_weight_kg, planned_reps,
    actual_weight_kg, actual_reps, completed_at, is_personal_record
"""


# =============================================================================
# STORES
# =============================================================================

class PostgresSessionStore(WorkoutSessionStore):
    """Workout sessions, exercises and sets."""

    def __init__(self, db: PostgresConnection):
        super().__init__()
        self.db = db

    def create_session(self, started_at: datetime, template_id: Optional[int] = None) -> WorkoutSession:
        with self.db.transaction("creating session") as cursor:
            cursor.execute(f"""
                INSERT INTO workout_sessions (started_at, status, template_id)
                VALUES (%s, %s, %s)
                RETURNING {SESSION_COLUMNS}
            """, (started_at, SessionStatus.ACTIVE.value, template_id))
            session = _session_from_row(cursor.fetchone())
        self._notify_active_changed()
        return session

    def get_session(self, session_id: int) -> Optional[WorkoutSession]:
        row = self.db.fetch_one(
            f"SELECT {SESSION_COLUMNS} FROM workout_sessions WHERE id = %s", (session_id,)
        )
        return _session_from_row(row) if row else None

    def get_active_session(self) -> Optional[WorkoutSession]:
        row = self.db.fetch_one(f"""
            SELECT {SESSION_COLUMNS} FROM workout_sessions
            WHERE status IN ('active', 'paused')
            ORDER BY started_at DESC
            LIMIT 1
        """)
        return _session_from_row(row) if row else None

    def get_stale_active_sessions(self, cutoff: datetime) -> List[WorkoutSession]:
        rows = self.db.fetch_all(f"""
            SELECT {SESSION_COLUMNS} FROM workout_sessions
            WHERE status = 'active' AND started_at < %s
        """, (cutoff,))
        return [_session_from_row(r) for r in rows]

    def update_status(
        self,
        session_id: int,
        status: SessionStatus,
        completed_at: Optional[datetime] = None,
    ) -> None:
        with self.db.transaction("updating session status") as cursor:
            cursor.execute("""
                UPDATE workout_sessions SET status = %s, completed_at = %s WHERE id = %s
            """, (status.value, completed_at, session_id))
        self._notify_active_changed()

    def update_session(self, session: WorkoutSession) -> None:
        with self.db.transaction("updating session") as cursor:
            cursor.execute("""
                UPDATE workout_sessions SET
                    started_at = %(started_at)s,
                    completed_at = %(completed_at)s,
                    duration_seconds = %(duration_seconds)s,
                    paused_duration_seconds = %(paused_duration_seconds)s,
                    status = %(status)s,
                    notes = %(notes)s,
                    template_id = %(template_id)s,
                    paused_at = %(paused_at)s
                WHERE id = %(id)s
            """, {
                'id': session.id,
                'started_at': session.started_at,
                'completed_at': session.completed_at,
                'duration_seconds': session.duration_seconds,
                'paused_duration_seconds': session.paused_duration_seconds,
                'status': session.status.value,
                'notes': session.notes,
                'template_id': session.template_id,
                'paused_at': session.paused_at,
            })
        self._notify_active_changed()

    def add_exercise(
        self,
        session_id: int,
        exercise_id: int,
        order_index: int,
        rest_timer_seconds: Optional[int] = None,
        superset_group_id: Optional[int] = None,
    ) -> WorkoutExercise:
        with self.db.transaction("adding exercise") as cursor:
            cursor.execute("""
                INSERT INTO workout_exercises
                    (session_id, exercise_id, order_index, rest_timer_seconds, superset_group_id)
                VALUES (%s, %s, %s, %s, %s)
                RETURNING id
            """, (session_id, exercise_id, order_index, rest_timer_seconds, superset_group_id))
            new_id = cursor.fetchone()['id']
        return WorkoutExercise(
            id=new_id,
            session_id=session_id,
            exercise_id=exercise_id,
            order_index=order_index,
            rest_timer_seconds=rest_timer_seconds,
            superset_group_id=superset_group_id,
        )

    def get_exercises_for_session(self, session_id: int) -> List[WorkoutExercise]:
        rows = self.db.fetch_all("""
            SELECT id, session_id, exercise_id, order_index, rest_timer_seconds,
                   superset_group_id, notes
            FROM workout_exercises
            WHERE session_id = %s
            ORDER BY order_index
        """, (session_id,))
        return [
            WorkoutExercise(
                id=r['id'],
                session_id=r['session_id'],
                exercise_id=r['exercise_id'],
                order_index=r['order_index'],
                rest_timer_seconds=r['rest_timer_seconds'],
                superset_group_id=r['superset_group_id'],
                notes=r['notes'],
                sets=self.get_sets_for_exercise(r['id']),
            )
            for r in rows
        ]

    def get_sets_for_exercise(self, workout_exercise_id: int) -> List[WorkoutSet]:
        rows = self.db.fetch_all(f"""
            SELECT {SET_COLUMNS} FROM workout_sets
            WHERE workout_exercise_id = %s
            ORDER BY set_number
        """, (workout_exercise_id,))
        return [_set_from_row(r) for r in rows]

    def insert_set(self, workout_exercise_id: int, workout_set: WorkoutSet) -> WorkoutSet:
        with self.db.transaction("inserting set") as cursor:
            cursor.execute(f"""
                INSERT INTO workout_sets (
                    workout_exercise_id, set_number, set_type, status,
                    planned_weight_kg, planned_reps, actual_weight_kg, actual_reps
                ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
                RETURNING {SET_COLUMNS}
            """, (
                workout_exercise_id,
                workout_set.set_number,
                workout_set.type.value,
                workout_set.status.value,
                workout_set.planned_weight_kg,
                workout_set.planned_reps,
                workout_set.actual_weight_kg,
                workout_set.actual_reps,
            ))
            return _set_from_row(cursor.fetchone())

    def delete_set(self, set_id: int) -> None:
        with self.db.transaction("deleting set") as cursor:
            cursor.execute("DELETE FROM workout_sets WHERE id = %s", (set_id,))

    def complete_set(
        self,
        workout_exercise_id: int,
        set_number: int,
        weight: float,
        reps: int,
        completed_at: datetime,
    ) -> None:
        with self.db.transaction("completing set") as cursor:
            cursor.execute("""
                UPDATE workout_sets SET
                    status = 'completed',
                    actual_weight_kg = %s,
                    actual_reps = %s,
                    completed_at = %s
                WHERE workout_exercise_id = %s AND set_number = %s
            """, (weight, reps, completed_at, workout_exercise_id, set_number))

    def update_set_status(self, set_id: int, status: SetStatus) -> None:
        with self.db.transaction("updating set status") as cursor:
            cursor.execute("UPDATE workout_sets SET status = %s WHERE id = %s", (status.value, set_id))

    def mark_personal_record(self, set_id: int) -> None:
        with self.db.transaction("marking personal record") as cursor:
            cursor.execute("UPDATE workout_sets SET is_personal_record = TRUE WHERE id = %s", (set_id,))

    def update_exercise_notes(self, workout_exercise_id: int, notes: Optional[str]) -> None:
        with self.db.transaction("updating exercise notes") as cursor:
            cursor.execute(
                "UPDATE workout_exercises SET notes = %s WHERE id = %s", (notes, workout_exercise_id)
            )


class PostgresExerciseCatalog(ExerciseCatalog):

    COLUMNS = """
        id, stable_id, name, equipment, movement_type, difficulty, primary_group_id,
        order_priority, auto_program_min_level, secondary_muscles, description
    """

    def __init__(self, db: PostgresConnection):
        self.db = db

    def get_exercise(self, exercise_id: int) -> Optional[Exercise]:
        row = self.db.fetch_one(f"SELECT {self.COLUMNS} FROM exercises WHERE id = %s", (exercise_id,))
        return _exercise_from_row(row) if row else None

    def get_exercises(self, exercise_ids: List[int]) -> List[Exercise]:
        if not exercise_ids:
            return []
        rows = self.db.fetch_all(
            f"SELECT {self.COLUMNS} FROM exercises WHERE id = ANY(%s)", (list(exercise_ids),)
        )
        return [_exercise_from_row(r) for r in rows]

    def get_exercises_by_group(self, group_id: int) -> List[Exercise]:
        rows = self.db.fetch_all(
            f"SELECT {self.COLUMNS} FROM exercises WHERE primary_group_id = %s ORDER BY order_priority",
            (group_id,),
        )
        return [_exercise_from_row(r) for r in rows]


class PostgresPersonalRecordStore(PersonalRecordStore):

    def __init__(self, db: PostgresConnection):
        self.db = db

    def get_best_by_type(self, exercise_id: int, record_type: RecordType) -> Optional[PersonalRecord]:
        row = self.db.fetch_one("""
            SELECT id, exercise_id, record_type, weight_value, reps, estimated_1rm,
                   achieved_at, session_id
            FROM personal_records
            WHERE exercise_id = %s AND record_type = %s
            ORDER BY weight_value DESC NULLS LAST, achieved_at DESC
            LIMIT 1
        """, (exercise_id, record_type.value))
        if row is None:
            return None
        return PersonalRecord(
            id=row['id'],
            exercise_id=row['exercise_id'],
            record_type=RecordType(row['record_type']),
            weight_value=row['weight_value'],
            reps=row['reps'],
            estimated_1rm=row['estimated_1rm'],
            achieved_at=row['achieved_at'],
            session_id=row['session_id'],
        )

    def insert_all(self, records: List[PersonalRecord]) -> None:
        if not records:
            return
        with self.db.transaction("inserting personal records") as cursor:
            execute_values(cursor, """
                INSERT INTO personal_records (
                    exercise_id, record_type, weight_value, reps, estimated_1rm,
                    achieved_at, session_id
                ) VALUES %s
            """, [
                (r.exercise_id, r.record_type.value, r.weight_value, r.reps,
                 r.estimated_1rm, r.achieved_at, r.session_id)
                for r in records
            ])


class PostgresCachedPlanStore(CachedPlanStore):

    def __init__(self, db: PostgresConnection):
        self.db = db

    def get_by_hash(self, exercise_hash: str, experience_level: int) -> Optional[GeneratedPlan]:
        row = self.db.fetch_one("""
            SELECT plan_json FROM cached_plans
            WHERE exercise_hash = %s AND experience_level = %s
        """, (exercise_hash, experience_level))
        return GeneratedPlan.from_dict(row['plan_json']) if row else None

    def save(
        self,
        exercise_hash: str,
        experience_level: int,
        plan: GeneratedPlan,
        created_at: datetime,
    ) -> None:
        with self.db.transaction("caching plan") as cursor:
            cursor.execute("""
                INSERT INTO cached_plans (exercise_hash, experience_level, plan_json, created_at)
                VALUES (%s, %s, %s, %s)
                ON CONFLICT (exercise_hash, experience_level)
                DO UPDATE SET plan_json = EXCLUDED.plan_json, created_at = EXCLUDED.created_at
            """, (exercise_hash, experience_level, Json(plan.to_dict()), created_at))

    def delete_older_than(self, cutoff: datetime) -> int:
        with self.db.transaction("purging cached plans") as cursor:
            cursor.execute("DELETE FROM cached_plans WHERE created_at < %s", (cutoff,))
            return cursor.rowcount


class PostgresUserProfileStore(UserProfileStore):
    """Singleton profile row (id = 1)."""

    def __init__(self, db: PostgresConnection):
        self.db = db

    def get(self) -> Optional[UserProfile]:
        row = self.db.fetch_one("""
            SELECT experience_level, preferred_unit, age, height_cm, gender,
                   body_weight_kg, default_rest_seconds
            FROM user_profile WHERE id = 1
        """)
        if row is None:
            return None
        return UserProfile(
            experience_level=ExperienceLevel.from_value(row['experience_level']),
            preferred_unit=WeightUnit(row['preferred_unit']),
            age=row['age'],
            height_cm=row['height_cm'],
            gender=Gender(row['gender']) if row['gender'] else None,
            body_weight_kg=row['body_weight_kg'],
            default_rest_seconds=row['default_rest_seconds'],
        )

    def save(self, profile: UserProfile) -> None:
        with self.db.transaction("saving profile") as cursor:
            cursor.execute("""
                INSERT INTO user_profile (
                    id, experience_level, preferred_unit, age, height_cm, gender,
                    body_weight_kg, default_rest_seconds
                ) VALUES (1, %(level)s, %(unit)s, %(age)s, %(height)s, %(gender)s, %(bw)s, %(rest)s)
                ON CONFLICT (id) DO UPDATE SET
                    experience_level = EXCLUDED.experience_level,
                    preferred_unit = EXCLUDED.preferred_unit,
                    age = EXCLUDED.age,
                    height_cm = EXCLUDED.height_cm,
                    gender = EXCLUDED.gender,
                    body_weight_kg = EXCLUDED.body_weight_kg,
                    default_rest_seconds = EXCLUDED.default_rest_seconds
            """, {
                'level': profile.experience_level.value,
                'unit': profile.preferred_unit.value,
                'age': profile.age,
                'height': profile.height_cm,
                'gender': profile.gender.value if profile.gender else None,
                'bw': profile.body_weight_kg,
                'rest': profile.default_rest_seconds,
            })
