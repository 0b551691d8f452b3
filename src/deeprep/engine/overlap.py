"""
Cross-Group Overlap Detection

Internal Codename: SPOTTER
Flags pairs of muscle groups in the same workout that load shared
muscles, so the plan can trim isolation volume for the overlap.
"""

from dataclasses import dataclass
from typing import Dict, FrozenSet, List, Optional, Tuple

from deeprep.models import ExerciseForPlan


@dataclass(frozen=True)
class CrossGroupOverlap:
    primary_group: str
    overlapping_group: str
    shared_muscles: Tuple[str, ...]
    description: str


# Keyed by unordered group pair
OVERLAP_MAP: Dict[FrozenSet[str], Tuple[Tuple[str, ...], str]] = {
    frozenset(("chest", "shoulders")): (
        ("anterior deltoid", "triceps"),
        "Chest + Shoulders: pressing movements share anterior deltoid and triceps load. "
        "Reduce anterior delt isolation volume.",
    ),
    frozenset(("chest", "arms")): (
        ("triceps",),
        "Chest + Arms: bench press variations provide substantial triceps stimulus. "
        "Reduce triceps isolation volume by 1-2 sets.",
    ),
    frozenset(("shoulders", "arms")): (
        ("triceps",),
        "Shoulders + Arms: overhead pressing significantly loads triceps. "
        "Reduce triceps isolation volume.",
    ),
    frozenset(("back", "arms")): (
        ("biceps", "forearms"),
        "Back + Arms: rowing and pulling movements provide significant biceps stimulus. "
        "Reduce biceps isolation volume by 1-2 sets.",
    ),
    frozenset(("back", "shoulders")): (
        ("rear deltoid",),
        "Back + Shoulders: rows and face pulls share posterior deltoid activation. "
        "Reduce rear delt isolation volume.",
    ),
    frozenset(("back", "lower_back")): (
        ("erector spinae", "traps"),
        "Back + Lower Back: rows involve isometric lower back loading; deadlifts heavily load traps. "
        "Moderate total spinal loading volume.",
    ),
    frozenset(("legs", "lower_back")): (
        ("glutes", "hamstrings", "erector spinae"),
        "Legs + Lower Back: squats load erectors; deadlifts load glutes and hamstrings. "
        "Reduce hip hinge isolation volume if both groups trained.",
    ),
    frozenset(("legs", "core")): (
        ("core stabilizers",),
        "Legs + Core: heavy squats and lunges demand significant core bracing. "
        "Direct core volume can be reduced.",
    ),
    frozenset(("lower_back", "core")): (
        ("erector spinae", "core stabilizers"),
        "Lower Back + Core: deadlifts demand heavy core bracing. "
        "Reduce anti-extension core volume.",
    ),
}


class CrossGroupOverlapDetector:
    """Finds known muscle overlaps between the primary groups of a workout."""

    def __init__(self, overlap_map: Optional[Dict[FrozenSet[str], Tuple[Tuple[str, ...], str]]] = None):
        self.overlap_map = overlap_map if overlap_map is not None else OVERLAP_MAP

    def detect(self, exercises: List[ExerciseForPlan]) -> List[CrossGroupOverlap]:
        """
        Check every pair of distinct primary groups against the overlap map.

        Groups keep the order they first appear in, and each overlap names
        the earlier group as primary.
        """
        groups: List[str] = []
        for exercise in exercises:
            if exercise.primary_group not in groups:
                groups.append(exercise.primary_group)
        if len(groups) <= 1:
            return []

        overlaps = []
        for i, first in enumerate(groups):
            for second in groups[i + 1:]:
                entry = self.overlap_map.get(frozenset((first, second)))
                if entry is None:
                    continue
                shared, description = entry
                overlaps.append(CrossGroupOverlap(
                    primary_group=first,
                    overlapping_group=second,
                    shared_muscles=shared,
                    description=description,
                ))
        return overlaps
