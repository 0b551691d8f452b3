"""
DeepRep - Strength Training Engine

Plans sessions, guards them against unsafe prescriptions and tracks them
from first warm-up to personal record.
"""

__version__ = "0.1.0"
