"""
Domain model for the DeepRep training engine.

Internal Codename: LOGBOOK
Enums and value objects shared by the engine, the stores and the AI provider.
Time values are timezone-aware datetimes; weights are kilograms.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


CORE_GROUP_ID = 7


class SessionStatus(Enum):
    """Lifecycle status of a persisted workout session."""
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"
    DISCARDED = "discarded"
    ABANDONED = "abandoned"
    CRASHED = "crashed"


class SetStatus(Enum):
    PLANNED = "planned"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    SKIPPED = "skipped"


class SetType(Enum):
    WARMUP = "warmup"
    WORKING = "working"


class ExperienceLevel(Enum):
    """User training experience, with CSCS default rep ranges."""
    BEGINNER = 1
    INTERMEDIATE = 2
    ADVANCED = 3

    @property
    def compound_rep_range(self) -> Tuple[int, int]:
        return {1: (8, 12), 2: (6, 10), 3: (4, 8)}[self.value]

    @property
    def isolation_rep_range(self) -> Tuple[int, int]:
        return {1: (12, 15), 2: (10, 15), 3: (8, 15)}[self.value]

    @classmethod
    def from_value(cls, value: int) -> "ExperienceLevel":
        """Map an integer level to an enum member, clamping into 1..3."""
        return cls(min(max(int(value), 1), 3))


class Equipment(Enum):
    BARBELL = "barbell"
    DUMBBELL = "dumbbell"
    CABLE = "cable"
    MACHINE = "machine"
    BODYWEIGHT = "bodyweight"
    KETTLEBELL = "kettlebell"
    BAND = "band"
    EZ_BAR = "ez_bar"
    TRAP_BAR = "trap_bar"

    @classmethod
    def parse(cls, value: str) -> "Equipment":
        """Parse an equipment string, falling back to barbell for unknown values."""
        try:
            return cls(value)
        except ValueError:
            return cls.BARBELL


class MovementType(Enum):
    COMPOUND = "compound"
    ISOLATION = "isolation"


class Difficulty(Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class MuscleGroup(Enum):
    """Primary muscle groups, keyed by catalog id."""
    LEGS = 1
    LOWER_BACK = 2
    CHEST = 3
    BACK = 4
    SHOULDERS = 5
    ARMS = 6
    CORE = 7

    @property
    def key(self) -> str:
        return self.name.lower()

    @classmethod
    def from_key(cls, key: str) -> Optional["MuscleGroup"]:
        for group in cls:
            if group.key == key:
                return group
        return None


class WeightUnit(Enum):
    KG = "kg"
    LBS = "lbs"


class Gender(Enum):
    MALE = "male"
    FEMALE = "female"


class RecordType(Enum):
    MAX_WEIGHT = "weight"
    MAX_REPS = "reps"
    MAX_VOLUME = "volume"
    MAX_ESTIMATED_1RM = "estimated_1rm"


class SessionDayType(Enum):
    HYPERTROPHY = "hypertrophy"
    STRENGTH = "strength"
    POWER = "power"


class DeloadStatus(Enum):
    USER_REQUESTED = "user_requested"
    PROACTIVE_RECOMMENDED = "proactive_recommended"
    REACTIVE_RECOMMENDED = "reactive_recommended"
    NOT_NEEDED = "not_needed"


# =============================================================================
# CATALOG / PROFILE
# =============================================================================

@dataclass(frozen=True)
class Exercise:
    """Read-only catalog entry."""
    id: int
    stable_id: str
    name: str
    equipment: Equipment
    movement_type: MovementType
    difficulty: Difficulty
    primary_group_id: int
    order_priority: int = 50
    auto_program_min_level: int = 1
    secondary_muscles: Tuple[str, ...] = ()
    description: str = ""

    @property
    def is_compound(self) -> bool:
        return self.movement_type == MovementType.COMPOUND

    @property
    def is_core(self) -> bool:
        return self.primary_group_id == CORE_GROUP_ID


@dataclass
class UserProfile:
    experience_level: ExperienceLevel = ExperienceLevel.INTERMEDIATE
    preferred_unit: WeightUnit = WeightUnit.KG
    age: Optional[int] = None
    height_cm: Optional[float] = None
    gender: Optional[Gender] = None
    body_weight_kg: Optional[float] = None
    compound_rep_range: Optional[Tuple[int, int]] = None
    isolation_rep_range: Optional[Tuple[int, int]] = None
    default_rest_seconds: Optional[int] = None


# =============================================================================
# SESSION
# =============================================================================

@dataclass
class WorkoutSession:
    id: int
    started_at: datetime
    status: SessionStatus = SessionStatus.ACTIVE
    completed_at: Optional[datetime] = None
    duration_seconds: Optional[int] = None
    paused_duration_seconds: int = 0
    notes: Optional[str] = None
    template_id: Optional[int] = None
    paused_at: Optional[datetime] = None


@dataclass
class WorkoutSet:
    id: int
    set_number: int
    type: SetType = SetType.WORKING
    status: SetStatus = SetStatus.PLANNED
    planned_weight_kg: Optional[float] = None
    planned_reps: Optional[int] = None
    actual_weight_kg: Optional[float] = None
    actual_reps: Optional[int] = None
    completed_at: Optional[datetime] = None
    is_personal_record: bool = False


@dataclass
class WorkoutExercise:
    id: int
    session_id: int
    exercise_id: int
    order_index: int
    rest_timer_seconds: Optional[int] = None
    superset_group_id: Optional[int] = None
    notes: Optional[str] = None
    sets: List[WorkoutSet] = field(default_factory=list)


@dataclass
class PersonalRecord:
    exercise_id: int
    record_type: RecordType
    weight_value: Optional[float]
    reps: Optional[int]
    achieved_at: datetime
    session_id: Optional[int] = None
    estimated_1rm: Optional[float] = None
    id: int = 0


@dataclass(frozen=True)
class DetectedPr:
    exercise_id: int
    exercise_name: str
    weight_kg: float
    reps: int
    record_type: RecordType = RecordType.MAX_WEIGHT


# =============================================================================
# PLAN REQUEST / HISTORY
# =============================================================================

@dataclass(frozen=True)
class HistoricalSet:
    weight: float
    reps: int
    set_type: SetType = SetType.WORKING


@dataclass
class HistoricalSession:
    date: datetime
    sets: List[HistoricalSet] = field(default_factory=list)

    @property
    def working_sets(self) -> List[HistoricalSet]:
        return [s for s in self.sets if s.set_type == SetType.WORKING]


@dataclass
class ExerciseHistory:
    """Past sessions for one exercise, oldest first."""
    exercise_id: int
    exercise_name: str
    sessions: List[HistoricalSession] = field(default_factory=list)
    trend: Optional[str] = None


@dataclass(frozen=True)
class ExerciseForPlan:
    exercise_id: int
    stable_id: str
    name: str
    equipment: str
    movement_type: str
    difficulty: str
    primary_group: str

    @property
    def is_compound(self) -> bool:
        return self.movement_type == MovementType.COMPOUND.value

    @classmethod
    def from_exercise(cls, exercise: Exercise) -> "ExerciseForPlan":
        group = MuscleGroup(exercise.primary_group_id)
        return cls(
            exercise_id=exercise.id,
            stable_id=exercise.stable_id,
            name=exercise.name,
            equipment=exercise.equipment.value,
            movement_type=exercise.movement_type.value,
            difficulty=exercise.difficulty.value,
            primary_group=group.key,
        )


@dataclass
class UserPlanProfile:
    experience_level: int
    body_weight_kg: Optional[float] = None
    age: Optional[int] = None
    gender: Optional[str] = None
    compound_rep_range: Tuple[int, int] = (6, 10)
    isolation_rep_range: Tuple[int, int] = (10, 15)

    @classmethod
    def from_profile(cls, profile: UserProfile) -> "UserPlanProfile":
        level = profile.experience_level
        return cls(
            experience_level=level.value,
            body_weight_kg=profile.body_weight_kg,
            age=profile.age,
            gender=profile.gender.value if profile.gender else None,
            compound_rep_range=profile.compound_rep_range or level.compound_rep_range,
            isolation_rep_range=profile.isolation_rep_range or level.isolation_rep_range,
        )


@dataclass
class PlanRequest:
    user_profile: UserPlanProfile
    exercises: List[ExerciseForPlan]
    training_history: List[ExerciseHistory] = field(default_factory=list)
    periodization_model: str = "linear"
    performance_trend: Optional[str] = None
    weeks_since_deload: Optional[int] = None
    deload_recommended: bool = False
    current_block_phase: Optional[str] = None
    current_block_week: Optional[int] = None


# =============================================================================
# GENERATED PLAN
# =============================================================================

@dataclass
class PlannedSet:
    set_type: SetType
    weight: float
    reps: int
    rest_seconds: int = 90

    def to_dict(self) -> Dict[str, Any]:
        return {
            "set_type": self.set_type.value,
            "weight": self.weight,
            "reps": self.reps,
            "rest_seconds": self.rest_seconds,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PlannedSet":
        return cls(
            set_type=SetType(data["set_type"]),
            weight=float(data["weight"]),
            reps=int(data["reps"]),
            rest_seconds=int(data.get("rest_seconds", 90)),
        )


@dataclass
class ExercisePlan:
    exercise_id: int
    stable_id: str
    exercise_name: str
    sets: List[PlannedSet] = field(default_factory=list)
    rest_seconds: int = 90
    notes: Optional[str] = None

    @property
    def working_sets(self) -> List[PlannedSet]:
        return [s for s in self.sets if s.set_type == SetType.WORKING]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "exercise_id": self.exercise_id,
            "stable_id": self.stable_id,
            "exercise_name": self.exercise_name,
            "sets": [s.to_dict() for s in self.sets],
            "rest_seconds": self.rest_seconds,
            "notes": self.notes,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ExercisePlan":
        return cls(
            exercise_id=int(data["exercise_id"]),
            stable_id=data["stable_id"],
            exercise_name=data["exercise_name"],
            sets=[PlannedSet.from_dict(s) for s in data.get("sets", [])],
            rest_seconds=int(data.get("rest_seconds", 90)),
            notes=data.get("notes"),
        )


@dataclass
class GeneratedPlan:
    exercises: List[ExercisePlan] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"exercises": [e.to_dict() for e in self.exercises]}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GeneratedPlan":
        return cls(exercises=[ExercisePlan.from_dict(e) for e in data.get("exercises", [])])


@dataclass
class CachedPlan:
    exercise_hash: str
    experience_level: int
    plan: GeneratedPlan
    created_at: datetime

