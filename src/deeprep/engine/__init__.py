"""
SPOTTER: Workout Programming & Session Lifecycle Engine

Internal Codename: SPOTTER
"Spotter: the one who watches every rep."

This package decides and guards the work:
- Plan generation with AI, cache, baseline and manual fallbacks
- Safety validation of generated plans
- Periodization and deload detection
- Exercise ordering and rest resolution
- Cross-group fatigue overlap and weight progression
- Live session state, crash recovery and personal records
"""

from .baseline import BaselinePlanGenerator
from .deload import DeloadDetector
from .ordering import order_exercises
from .overlap import CrossGroupOverlap, CrossGroupOverlapDetector
from .periodization import PeriodizationEngine, PeriodizationResult
from .planner import PlanGenerator, PlanResult, PlanSource, compute_exercise_hash
from .progression import ProgressionResult, compute_progression
from .records import PersonalRecordDetector
from .rest import RestTimer, RestTimerResolver
from .safety import PlanSafetyValidator, SafetyViolation, Severity, ViolationType
from .session import SessionRecovery, WorkoutController, WorkoutStateMachine, mark_in_progress
from .summary import WorkoutSummaryBuilder
from .templates import build_template, validate_template

__all__ = [
    'BaselinePlanGenerator',
    'DeloadDetector',
    'order_exercises',
    'CrossGroupOverlap',
    'CrossGroupOverlapDetector',
    'PeriodizationEngine',
    'PeriodizationResult',
    'PlanGenerator',
    'PlanResult',
    'PlanSource',
    'compute_exercise_hash',
    'ProgressionResult',
    'compute_progression',
    'PersonalRecordDetector',
    'RestTimer',
    'RestTimerResolver',
    'PlanSafetyValidator',
    'SafetyViolation',
    'Severity',
    'ViolationType',
    'SessionRecovery',
    'WorkoutController',
    'WorkoutStateMachine',
    'mark_in_progress',
    'WorkoutSummaryBuilder',
    'build_template',
    'validate_template',
]
