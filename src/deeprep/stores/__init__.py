"""
LOGBOOK: persistence interfaces and their in-memory and PostgreSQL backends.
"""

from .base import (
    AiPlanProvider,
    BaselineGenerator,
    CachedPlanStore,
    ConnectivityChecker,
    ExerciseCatalog,
    PersonalRecordStore,
    UserProfileStore,
    WorkoutSessionStore,
)

__all__ = [
    'AiPlanProvider',
    'BaselineGenerator',
    'CachedPlanStore',
    'ConnectivityChecker',
    'ExerciseCatalog',
    'PersonalRecordStore',
    'UserProfileStore',
    'WorkoutSessionStore',
]
