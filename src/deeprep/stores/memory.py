"""In-memory store implementations, used by tests and when no DSN is configured."""

import copy
import itertools
from dataclasses import replace
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Tuple

from deeprep.errors import StoreError
from deeprep.models import (
    CachedPlan,
    Exercise,
    GeneratedPlan,
    PersonalRecord,
    RecordType,
    SessionStatus,
    SetStatus,
    UserProfile,
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


class InMemorySessionStore(WorkoutSessionStore):

    def __init__(self):
        super().__init__()
        self._sessions: Dict[int, WorkoutSession] = {}
        self._exercises: Dict[int, WorkoutExercise] = {}
        self._sets: Dict[int, WorkoutSet] = {}
        self._set_owner: Dict[int, int] = {}
        self._ids = itertools.count(1)

    def create_session(self, started_at: datetime, template_id: Optional[int] = None) -> WorkoutSession:
        live = self.get_active_session()
        if live is not None:
            raise StoreError(f"Error creating session: live session {live.id} is still {live.status.value}")
        session = WorkoutSession(id=next(self._ids), started_at=started_at, template_id=template_id)
        self._sessions[session.id] = session
        self._notify_active_changed()
        return replace(session)

    def add_session(self, session: WorkoutSession) -> WorkoutSession:
        """Store a pre-built session as-is, keeping its id."""
        self._sessions[session.id] = replace(session)
        return session

    def get_session(self, session_id: int) -> Optional[WorkoutSession]:
        session = self._sessions.get(session_id)
        return replace(session) if session else None

    def get_active_session(self) -> Optional[WorkoutSession]:
        live = (SessionStatus.ACTIVE, SessionStatus.PAUSED)
        for session in sorted(self._sessions.values(), key=lambda s: s.started_at, reverse=True):
            if session.status in live:
                return replace(session)
        return None

    def get_stale_active_sessions(self, cutoff: datetime) -> List[WorkoutSession]:
        return [
            replace(s) for s in self._sessions.values()
            if s.status == SessionStatus.ACTIVE and s.started_at < cutoff
        ]

    def update_status(
        self,
        session_id: int,
        status: SessionStatus,
        completed_at: Optional[datetime] = None,
    ) -> None:
        session = self._sessions.get(session_id)
        if session is None:
            return
        self._sessions[session_id] = replace(session, status=status, completed_at=completed_at)
        self._notify_active_changed()

    def update_session(self, session: WorkoutSession) -> None:
        self._sessions[session.id] = replace(session)
        self._notify_active_changed()

    def add_exercise(
        self,
        session_id: int,
        exercise_id: int,
        order_index: int,
        rest_timer_seconds: Optional[int] = None,
        superset_group_id: Optional[int] = None,
    ) -> WorkoutExercise:
        workout_exercise = WorkoutExercise(
            id=next(self._ids),
            session_id=session_id,
            exercise_id=exercise_id,
            order_index=order_index,
            rest_timer_seconds=rest_timer_seconds,
            superset_group_id=superset_group_id,
        )
        self._exercises[workout_exercise.id] = workout_exercise
        return replace(workout_exercise, sets=[])

    def get_exercises_for_session(self, session_id: int) -> List[WorkoutExercise]:
        exercises = [e for e in self._exercises.values() if e.session_id == session_id]
        exercises.sort(key=lambda e: e.order_index)
        return [replace(e, sets=self.get_sets_for_exercise(e.id)) for e in exercises]

    def get_sets_for_exercise(self, workout_exercise_id: int) -> List[WorkoutSet]:
        sets = [
            replace(s) for set_id, s in self._sets.items()
            if self._set_owner[set_id] == workout_exercise_id
        ]
        return sorted(sets, key=lambda s: s.set_number)

    def insert_set(self, workout_exercise_id: int, workout_set: WorkoutSet) -> WorkoutSet:
        stored = replace(workout_set, id=next(self._ids))
        self._sets[stored.id] = stored
        self._set_owner[stored.id] = workout_exercise_id
        return replace(stored)

    def delete_set(self, set_id: int) -> None:
        self._sets.pop(set_id, None)
        self._set_owner.pop(set_id, None)

    def complete_set(
        self,
        workout_exercise_id: int,
        set_number: int,
        weight: float,
        reps: int,
        completed_at: datetime,
    ) -> None:
        for set_id, workout_set in self._sets.items():
            if self._set_owner[set_id] == workout_exercise_id and workout_set.set_number == set_number:
                self._sets[set_id] = replace(
                    workout_set,
                    status=SetStatus.COMPLETED,
                    actual_weight_kg=weight,
                    actual_reps=reps,
                    completed_at=completed_at,
                )
                return

    def update_set_status(self, set_id: int, status: SetStatus) -> None:
        workout_set = self._sets.get(set_id)
        if workout_set is not None:
            self._sets[set_id] = replace(workout_set, status=status)

    def mark_personal_record(self, set_id: int) -> None:
        workout_set = self._sets.get(set_id)
        if workout_set is not None:
            self._sets[set_id] = replace(workout_set, is_personal_record=True)

    def update_exercise_notes(self, workout_exercise_id: int, notes: Optional[str]) -> None:
        workout_exercise = self._exercises.get(workout_exercise_id)
        if workout_exercise is not None:
            self._exercises[workout_exercise_id] = replace(workout_exercise, notes=notes)


class InMemoryExerciseCatalog(ExerciseCatalog):

    def __init__(self, exercises: Iterable[Exercise] = ()):
        self._exercises = {e.id: e for e in exercises}

    def get_exercise(self, exercise_id: int) -> Optional[Exercise]:
        return self._exercises.get(exercise_id)

    def get_exercises(self, exercise_ids: List[int]) -> List[Exercise]:
        return [self._exercises[i] for i in exercise_ids if i in self._exercises]

    def get_exercises_by_group(self, group_id: int) -> List[Exercise]:
        return [e for e in self._exercises.values() if e.primary_group_id == group_id]


class InMemoryPersonalRecordStore(PersonalRecordStore):

    def __init__(self):
        self.records: List[PersonalRecord] = []
        self.batches: List[List[PersonalRecord]] = []

    def get_best_by_type(self, exercise_id: int, record_type: RecordType) -> Optional[PersonalRecord]:
        matching = [
            r for r in self.records
            if r.exercise_id == exercise_id and r.record_type == record_type
        ]
        if not matching:
            return None
        return max(matching, key=lambda r: (r.weight_value or 0.0, r.achieved_at))

    def insert_all(self, records: List[PersonalRecord]) -> None:
        batch = []
        for record in records:
            stored = replace(record, id=len(self.records) + 1)
            self.records.append(stored)
            batch.append(stored)
        self.batches.append(batch)


class InMemoryCachedPlanStore(CachedPlanStore):

    def __init__(self):
        self._entries: Dict[Tuple[str, int], CachedPlan] = {}

    def get_by_hash(self, exercise_hash: str, experience_level: int) -> Optional[GeneratedPlan]:
        entry = self._entries.get((exercise_hash, experience_level))
        return copy.deepcopy(entry.plan) if entry else None

    def save(
        self,
        exercise_hash: str,
        experience_level: int,
        plan: GeneratedPlan,
        created_at: datetime,
    ) -> None:
        self._entries[(exercise_hash, experience_level)] = CachedPlan(
            exercise_hash=exercise_hash,
            experience_level=experience_level,
            plan=copy.deepcopy(plan),
            created_at=created_at,
        )

    def delete_older_than(self, cutoff: datetime) -> int:
        expired = [key for key, entry in self._entries.items() if entry.created_at < cutoff]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def __len__(self):
        return len(self._entries)


class InMemoryUserProfileStore(UserProfileStore):

    def __init__(self, profile: Optional[UserProfile] = None):
        self._profile = profile

    def get(self) -> Optional[UserProfile]:
        return self._profile

    def save(self, profile: UserProfile) -> None:
        self._profile = profile
