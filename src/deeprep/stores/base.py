"""
Collaborator interfaces the engine depends on.

Internal Codename: LOGBOOK
Lookups by id return None when nothing matches; the caller decides whether
that is fatal.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Callable, List, Optional

from deeprep.models import (
    Exercise,
    GeneratedPlan,
    PersonalRecord,
    PlanRequest,
    RecordType,
    SessionStatus,
    SetStatus,
    UserProfile,
    WorkoutExercise,
    WorkoutSession,
    WorkoutSet,
)


SessionListener = Callable[[Optional[WorkoutSession]], None]


class WorkoutSessionStore(ABC):
    """Persisted sessions, their exercises and their sets."""

    def __init__(self):
        self._listeners: List[SessionListener] = []

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """
        Register a callback fired whenever the active session changes.

        Returns:
            A function that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify_active_changed(self) -> None:
        active = self.get_active_session()
        for listener in list(self._listeners):
            listener(active)

    # Sessions

    @abstractmethod
    def create_session(self, started_at: datetime, template_id: Optional[int] = None) -> WorkoutSession:
        ...

    @abstractmethod
    def get_session(self, session_id: int) -> Optional[WorkoutSession]:
        ...

    @abstractmethod
    def get_active_session(self) -> Optional[WorkoutSession]:
        """Return the session whose status is ACTIVE or PAUSED, if any."""

    @abstractmethod
    def get_stale_active_sessions(self, cutoff: datetime) -> List[WorkoutSession]:
        """Return ACTIVE sessions started strictly before the cutoff."""

    @abstractmethod
    def update_status(
        self,
        session_id: int,
        status: SessionStatus,
        completed_at: Optional[datetime] = None,
    ) -> None:
        ...

    @abstractmethod
    def update_session(self, session: WorkoutSession) -> None:
        ...

    # Exercises and sets

    @abstractmethod
    def add_exercise(
        self,
        session_id: int,
        exercise_id: int,
        order_index: int,
        rest_timer_seconds: Optional[int] = None,
        superset_group_id: Optional[int] = None,
    ) -> WorkoutExercise:
        ...

    @abstractmethod
    def get_exercises_for_session(self, session_id: int) -> List[WorkoutExercise]:
        """Return the session's exercises in order, each with its sets loaded."""

    @abstractmethod
    def get_sets_for_exercise(self, workout_exercise_id: int) -> List[WorkoutSet]:
        ...

    @abstractmethod
    def insert_set(self, workout_exercise_id: int, workout_set: WorkoutSet) -> WorkoutSet:
        """Persist a set and return it with its assigned id."""

    @abstractmethod
    def delete_set(self, set_id: int) -> None:
        ...

    @abstractmethod
    def complete_set(
        self,
        workout_exercise_id: int,
        set_number: int,
        weight: float,
        reps: int,
        completed_at: datetime,
    ) -> None:
        ...

    @abstractmethod
    def update_set_status(self, set_id: int, status: SetStatus) -> None:
        ...

    @abstractmethod
    def mark_personal_record(self, set_id: int) -> None:
        ...

    @abstractmethod
    def update_exercise_notes(self, workout_exercise_id: int, notes: Optional[str]) -> None:
        ...


class ExerciseCatalog(ABC):
    """Read-only exercise reference data."""

    @abstractmethod
    def get_exercise(self, exercise_id: int) -> Optional[Exercise]:
        ...

    @abstractmethod
    def get_exercises(self, exercise_ids: List[int]) -> List[Exercise]:
        ...

    @abstractmethod
    def get_exercises_by_group(self, group_id: int) -> List[Exercise]:
        ...


class PersonalRecordStore(ABC):

    @abstractmethod
    def get_best_by_type(self, exercise_id: int, record_type: RecordType) -> Optional[PersonalRecord]:
        ...

    @abstractmethod
    def insert_all(self, records: List[PersonalRecord]) -> None:
        """Insert every record in a single batch."""


class CachedPlanStore(ABC):

    @abstractmethod
    def get_by_hash(self, exercise_hash: str, experience_level: int) -> Optional[GeneratedPlan]:
        ...

    @abstractmethod
    def save(
        self,
        exercise_hash: str,
        experience_level: int,
        plan: GeneratedPlan,
        created_at: datetime,
    ) -> None:
        ...

    @abstractmethod
    def delete_older_than(self, cutoff: datetime) -> int:
        """Delete entries created before the cutoff and return how many went."""


class UserProfileStore(ABC):

    @abstractmethod
    def get(self) -> Optional[UserProfile]:
        ...

    @abstractmethod
    def save(self, profile: UserProfile) -> None:
        ...


class AiPlanProvider(ABC):

    @abstractmethod
    def generate_plan(self, request: PlanRequest) -> GeneratedPlan:
        """Generate a plan. May raise on any failure."""


class BaselineGenerator(ABC):

    @abstractmethod
    def generate(self, request: PlanRequest) -> Optional[GeneratedPlan]:
        """Deterministic offline plan, or None when one cannot be built."""


class ConnectivityChecker(ABC):

    @abstractmethod
    def is_online(self) -> bool:
        ...
