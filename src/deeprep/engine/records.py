"""
Personal Record Detection

Internal Codename: SPOTTER
Scans a completed session for new max-weight records and stores them.
"""

import logging
from datetime import datetime, timezone
from typing import Callable, List

from deeprep.models import (
    DetectedPr,
    PersonalRecord,
    RecordType,
    SetStatus,
    SetType,
    WorkoutSet,
)
from deeprep.stores.base import ExerciseCatalog, PersonalRecordStore, WorkoutSessionStore

logger = logging.getLogger(__name__)

UNKNOWN_EXERCISE_NAME = "Unknown Exercise"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _eligible(workout_set: WorkoutSet) -> bool:
    return (
        workout_set.status == SetStatus.COMPLETED
        and workout_set.type == SetType.WORKING
        and workout_set.actual_weight_kg is not None
        and workout_set.actual_reps is not None
    )


class PersonalRecordDetector:
    """
    Detects MAX_WEIGHT records for a session.

    Only a strictly heavier completed working set beats the stored best;
    matching it is not a record.
    """

    def __init__(
        self,
        session_store: WorkoutSessionStore,
        record_store: PersonalRecordStore,
        catalog: ExerciseCatalog,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.session_store = session_store
        self.record_store = record_store
        self.catalog = catalog
        self.clock = clock

    def detect(self, session_id: int) -> List[DetectedPr]:
        """
        Detect and persist new records for a session.

        Args:
            session_id: Completed session to scan

        Returns:
            Records detected, in session exercise order
        """
        achieved_at = self.clock()
        new_records: List[PersonalRecord] = []
        detected: List[DetectedPr] = []
        record_set_ids: List[int] = []

        for workout_exercise in self.session_store.get_exercises_for_session(session_id):
            candidates = [s for s in workout_exercise.sets if _eligible(s)]
            if not candidates:
                continue

            # max() keeps the first set on ties
            best = max(candidates, key=lambda s: s.actual_weight_kg)
            existing = self.record_store.get_best_by_type(
                workout_exercise.exercise_id, RecordType.MAX_WEIGHT
            )
            existing_weight = (existing.weight_value or 0.0) if existing else None
            if existing_weight is not None and best.actual_weight_kg <= existing_weight:
                continue

            exercise = self.catalog.get_exercise(workout_exercise.exercise_id)
            name = exercise.name if exercise else UNKNOWN_EXERCISE_NAME

            new_records.append(PersonalRecord(
                exercise_id=workout_exercise.exercise_id,
                record_type=RecordType.MAX_WEIGHT,
                weight_value=best.actual_weight_kg,
                reps=best.actual_reps,
                achieved_at=achieved_at,
                session_id=session_id,
            ))
            detected.append(DetectedPr(
                exercise_id=workout_exercise.exercise_id,
                exercise_name=name,
                weight_kg=best.actual_weight_kg,
                reps=best.actual_reps,
            ))
            record_set_ids.append(best.id)

        if new_records:
            self.record_store.insert_all(new_records)
            for set_id in record_set_ids:
                self.session_store.mark_personal_record(set_id)
            logger.info("Session %s: %d new personal record(s)", session_id, len(detected))

        return detected
