"""
Session Lifecycle

Internal Codename: SPOTTER
The live-workout state machine, cold-start recovery of stale and crashed
sessions, and the controller that applies set-by-set changes to the store.
"""

import logging
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional, Union

from deeprep.engine.records import PersonalRecordDetector
from deeprep.engine.rest import RestTimer
from deeprep.models import (
    DetectedPr,
    SessionStatus,
    SetStatus,
    SetType,
    WorkoutExercise,
    WorkoutSession,
    WorkoutSet,
)
from deeprep.stores.base import WorkoutSessionStore

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# STATE MACHINE
# =============================================================================

@dataclass(frozen=True)
class Active:
    started_at: datetime
    accumulated_pause_seconds: int = 0


@dataclass(frozen=True)
class Paused:
    paused_at: datetime
    started_at: datetime
    accumulated_pause_seconds: int = 0


@dataclass(frozen=True)
class Completed:
    session_id: int


@dataclass(frozen=True)
class PauseWorkout:
    paused_at: datetime


@dataclass(frozen=True)
class ResumeWorkout:
    resumed_at: datetime


@dataclass(frozen=True)
class FinishWorkout:
    session_id: int


WorkoutPhase = Union[Active, Paused, Completed]
WorkoutEvent = Union[PauseWorkout, ResumeWorkout, FinishWorkout]


class WorkoutStateMachine:
    """
    Active/Paused/Completed transitions for a live session.

    Invalid (phase, event) pairs return None and leave the caller's phase
    untouched. Completed is terminal.
    """

    def transition(self, phase: WorkoutPhase, event: WorkoutEvent) -> Optional[WorkoutPhase]:
        if isinstance(phase, Active) and isinstance(event, PauseWorkout):
            return Paused(
                paused_at=event.paused_at,
                started_at=phase.started_at,
                accumulated_pause_seconds=phase.accumulated_pause_seconds,
            )

        if isinstance(phase, Paused) and isinstance(event, ResumeWorkout):
            paused_for = max(int((event.resumed_at - phase.paused_at).total_seconds()), 0)
            return Active(
                started_at=phase.started_at,
                accumulated_pause_seconds=phase.accumulated_pause_seconds + paused_for,
            )

        if isinstance(phase, Active) and isinstance(event, FinishWorkout):
            return Completed(session_id=event.session_id)

        return None


def mark_in_progress(sets: List[WorkoutSet]) -> List[WorkoutSet]:
    """
    View projection: show the first PLANNED set as IN_PROGRESS.
    Skipped sets are passed over.

    The stored sets are not modified.
    """
    projected = []
    found = False
    for workout_set in sets:
        if not found and workout_set.status == SetStatus.PLANNED:
            found = True
            projected.append(replace(workout_set, status=SetStatus.IN_PROGRESS))
        else:
            projected.append(workout_set)
    return projected


# =============================================================================
# RECOVERY
# =============================================================================

@dataclass(frozen=True)
class RecoverableSession:
    session: WorkoutSession

    @property
    def was_crash(self) -> bool:
        """An ACTIVE session at startup means the process died mid-workout."""
        return self.session.status == SessionStatus.ACTIVE


class SessionRecovery:
    """
    Cold-start recovery.

    Must run before anything else touches session state: stale sessions are
    abandoned first, then the surviving ACTIVE or PAUSED session is offered
    back to the user.
    """

    def __init__(
        self,
        store: WorkoutSessionStore,
        stale_after: timedelta = timedelta(hours=24),
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.store = store
        self.stale_after = stale_after
        self.clock = clock

    def cleanup_stale_sessions(self) -> int:
        """Mark ACTIVE sessions older than the stale window ABANDONED."""
        cutoff = self.clock() - self.stale_after
        stale = self.store.get_stale_active_sessions(cutoff)
        for session in stale:
            self.store.update_status(session.id, SessionStatus.ABANDONED, completed_at=None)
        if stale:
            logger.info("Abandoned %d stale session(s) started before %s", len(stale), cutoff.isoformat())
        return len(stale)

    def find_recoverable(self) -> Optional[RecoverableSession]:
        session = self.store.get_active_session()
        return RecoverableSession(session) if session else None

    def run(self) -> Optional[RecoverableSession]:
        """
        Run stale cleanup, then crash detection.

        Returns:
            The recoverable session, or None when there is nothing to recover
        """
        self.cleanup_stale_sessions()
        recoverable = self.find_recoverable()
        if recoverable is None:
            return None

        if recoverable.was_crash:
            logger.warning("Crash detected: session %s was still active at startup",
                           recoverable.session.id)
        else:
            logger.info("Paused session %s available to resume", recoverable.session.id)
        return recoverable

    def discard(self, recoverable: RecoverableSession) -> SessionStatus:
        """
        Discard a recovered session.

        Sessions interrupted while ACTIVE become CRASHED; voluntarily paused
        ones become DISCARDED.
        """
        status = SessionStatus.CRASHED if recoverable.was_crash else SessionStatus.DISCARDED
        self.store.update_status(recoverable.session.id, status, completed_at=None)
        logger.info("Session %s discarded as %s", recoverable.session.id, status.value)
        return status

    def resume(self, recoverable: RecoverableSession) -> int:
        """Hand the session back to the live workout flow. No status change."""
        return recoverable.session.id


# =============================================================================
# LIVE WORKOUT
# =============================================================================

NOTES_MAX_LENGTH = 1000
DEFAULT_REST_SECONDS = 120
CLOSED_STATUSES = (SessionStatus.ABANDONED, SessionStatus.CRASHED, SessionStatus.DISCARDED)


class WorkoutController:
    """
    Applies live-session actions.

    Every store write completes before the in-memory view changes, so an
    acknowledged action is always persisted.
    """

    def __init__(
        self,
        store: WorkoutSessionStore,
        rest_timer: RestTimer,
        pr_detector: Optional[PersonalRecordDetector] = None,
        state_machine: Optional[WorkoutStateMachine] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.store = store
        self.rest_timer = rest_timer
        self.pr_detector = pr_detector
        self.state_machine = state_machine or WorkoutStateMachine()
        self.clock = clock

        self.session_id: Optional[int] = None
        self.phase: Optional[WorkoutPhase] = None
        self.exercises: List[WorkoutExercise] = []

    def load(self, session_id: Optional[int] = None) -> Optional[WorkoutSession]:
        """
        Load a session (or the active one) and derive the starting phase.

        A COMPLETED session loads in the Completed phase, so no further
        lifecycle action applies to it. ABANDONED, CRASHED and DISCARDED
        sessions are refused.

        Returns:
            The loaded session, or None if it does not exist or is not loadable
        """
        if session_id is None:
            active = self.store.get_active_session()
            if active is None:
                return None
            session_id = active.id

        session = self.store.get_session(session_id)
        if session is None or session.status in CLOSED_STATUSES:
            return None

        self.session_id = session.id
        self.exercises = self.store.get_exercises_for_session(session.id)
        if session.status == SessionStatus.COMPLETED:
            self.phase = Completed(session_id=session.id)
        elif session.status == SessionStatus.PAUSED:
            self.phase = Paused(
                paused_at=session.paused_at or self.clock(),
                started_at=session.started_at,
                accumulated_pause_seconds=session.paused_duration_seconds,
            )
        else:
            self.phase = Active(
                started_at=session.started_at,
                accumulated_pause_seconds=session.paused_duration_seconds,
            )
        return session

    def _find_exercise(self, workout_exercise_id: int) -> Optional[WorkoutExercise]:
        for exercise in self.exercises:
            if exercise.id == workout_exercise_id:
                return exercise
        return None

    def _replace_sets(self, workout_exercise_id: int, sets: List[WorkoutSet]) -> None:
        self.exercises = [
            replace(e, sets=sets) if e.id == workout_exercise_id else e
            for e in self.exercises
        ]

    def visible_sets(self, workout_exercise_id: int) -> List[WorkoutSet]:
        exercise = self._find_exercise(workout_exercise_id)
        return mark_in_progress(exercise.sets) if exercise else []

    @property
    def active_exercise_index(self) -> int:
        """Index of the first exercise with sets still to do, or -1. Skipped sets count as done."""
        for index, exercise in enumerate(self.exercises):
            if any(s.status in (SetStatus.PLANNED, SetStatus.IN_PROGRESS) for s in exercise.sets):
                return index
        return -1

    def complete_set(self, workout_exercise_id: int, set_id: int, weight: float, reps: int) -> bool:
        """
        Record a completed set and start the rest countdown.

        Returns:
            False if the exercise or set is unknown
        """
        exercise = self._find_exercise(workout_exercise_id)
        target = next((s for s in exercise.sets if s.id == set_id), None) if exercise else None
        if target is None:
            return False

        completed_at = self.clock()
        self.store.complete_set(workout_exercise_id, target.set_number, weight, reps, completed_at)

        updated = [
            replace(s, status=SetStatus.COMPLETED, actual_weight_kg=weight,
                    actual_reps=reps, completed_at=completed_at) if s.id == set_id else s
            for s in exercise.sets
        ]
        self._replace_sets(workout_exercise_id, updated)

        has_more = any(s.status in (SetStatus.PLANNED, SetStatus.IN_PROGRESS) for s in updated)
        if has_more:
            self.rest_timer.start(exercise.rest_timer_seconds or DEFAULT_REST_SECONDS)
        else:
            next_index = self.active_exercise_index
            if next_index >= 0:
                next_rest = self.exercises[next_index].rest_timer_seconds
                self.rest_timer.start(next_rest or DEFAULT_REST_SECONDS)
        return True

    def add_set(self, workout_exercise_id: int) -> Optional[WorkoutSet]:
        """Append a working set that copies the previous set's load and reps."""
        exercise = self._find_exercise(workout_exercise_id)
        if exercise is None:
            return None

        last = exercise.sets[-1] if exercise.sets else None
        weight = 0.0
        reps = 0
        if last is not None:
            weight = last.actual_weight_kg if last.actual_weight_kg is not None else (last.planned_weight_kg or 0.0)
            reps = last.actual_reps if last.actual_reps is not None else (last.planned_reps or 0)

        new_set = WorkoutSet(
            id=0,
            set_number=(last.set_number if last else 0) + 1,
            type=SetType.WORKING,
            status=SetStatus.PLANNED,
            planned_weight_kg=weight,
            planned_reps=reps,
        )
        stored = self.store.insert_set(workout_exercise_id, new_set)
        self._replace_sets(workout_exercise_id, self.store.get_sets_for_exercise(workout_exercise_id))
        return stored

    def delete_set(self, workout_exercise_id: int, set_id: int) -> bool:
        """Delete a set that has not been completed."""
        exercise = self._find_exercise(workout_exercise_id)
        target = next((s for s in exercise.sets if s.id == set_id), None) if exercise else None
        if target is None or target.status == SetStatus.COMPLETED:
            return False

        self.store.delete_set(set_id)
        self._replace_sets(workout_exercise_id, [s for s in exercise.sets if s.id != set_id])
        return True

    def skip_set(self, workout_exercise_id: int, set_id: int) -> bool:
        """Mark a set SKIPPED. Completed sets cannot be skipped."""
        exercise = self._find_exercise(workout_exercise_id)
        target = next((s for s in exercise.sets if s.id == set_id), None) if exercise else None
        if target is None or target.status in (SetStatus.COMPLETED, SetStatus.SKIPPED):
            return False

        self.store.update_set_status(set_id, SetStatus.SKIPPED)
        self._replace_sets(workout_exercise_id, [
            replace(s, status=SetStatus.SKIPPED) if s.id == set_id else s
            for s in exercise.sets
        ])
        return True

    def unskip_set(self, workout_exercise_id: int, set_id: int) -> bool:
        """Return a SKIPPED set to PLANNED."""
        exercise = self._find_exercise(workout_exercise_id)
        target = next((s for s in exercise.sets if s.id == set_id), None) if exercise else None
        if target is None or target.status != SetStatus.SKIPPED:
            return False

        self.store.update_set_status(set_id, SetStatus.PLANNED)
        self._replace_sets(workout_exercise_id, [
            replace(s, status=SetStatus.PLANNED) if s.id == set_id else s
            for s in exercise.sets
        ])
        return True

    def pause(self) -> bool:
        paused_at = self.clock()
        new_phase = self.state_machine.transition(self.phase, PauseWorkout(paused_at=paused_at))
        if new_phase is None:
            return False

        session = self.store.get_session(self.session_id)
        if session is not None:
            self.store.update_session(replace(session, status=SessionStatus.PAUSED, paused_at=paused_at))
        self.phase = new_phase
        self.rest_timer.pause()
        return True

    def resume(self) -> bool:
        new_phase = self.state_machine.transition(self.phase, ResumeWorkout(resumed_at=self.clock()))
        if new_phase is None:
            return False

        session = self.store.get_session(self.session_id)
        if session is not None:
            self.store.update_session(replace(
                session,
                status=SessionStatus.ACTIVE,
                paused_duration_seconds=new_phase.accumulated_pause_seconds,
                paused_at=None,
            ))
        self.phase = new_phase
        self.rest_timer.resume()
        return True

    def finish(self) -> Optional[List[DetectedPr]]:
        """
        Complete the session and detect personal records.

        Returns:
            Detected records, or None if the session cannot finish from its current phase
        """
        if not isinstance(self.phase, Active):
            return None
        accumulated = self.phase.accumulated_pause_seconds
        new_phase = self.state_machine.transition(self.phase, FinishWorkout(session_id=self.session_id))
        if new_phase is None:
            return None

        self.rest_timer.cancel()
        session = self.store.get_session(self.session_id)
        if session is not None:
            completed_at = self.clock()
            elapsed = int((completed_at - session.started_at).total_seconds())
            self.store.update_session(replace(
                session,
                status=SessionStatus.COMPLETED,
                completed_at=completed_at,
                duration_seconds=max(elapsed - accumulated, 0),
                paused_duration_seconds=accumulated,
            ))
        self.phase = new_phase

        if self.pr_detector is None:
            return []
        return self.pr_detector.detect(self.session_id)

    def update_notes(self, workout_exercise_id: int, text: str) -> None:
        """Save exercise notes, truncated to 1000 characters. Write failures are logged only."""
        notes = text[:NOTES_MAX_LENGTH] or None
        self.exercises = [
            replace(e, notes=notes) if e.id == workout_exercise_id else e
            for e in self.exercises
        ]
        try:
            self.store.update_exercise_notes(workout_exercise_id, notes)
        except Exception:
            logger.warning("Failed to save notes for exercise %s", workout_exercise_id, exc_info=True)
