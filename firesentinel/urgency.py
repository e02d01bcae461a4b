"""
Canonical evacuation urgency scale.

Both the ML ensemble and the fire-behavior simulator report urgency on the
same ordered scale (none < low < medium < high < critical). The ensemble
produces a bucket index, the simulator produces spread and flame
thresholds; each has an explicit conversion here.
"""

from __future__ import annotations

import math
from typing import Literal

EvacuationUrgency = Literal["none", "low", "medium", "high", "critical"]

URGENCY_LEVELS: tuple[EvacuationUrgency, ...] = ("none", "low", "medium", "high", "critical")

# (spread rate chains/hour, flame length ft) thresholds, most severe first
BEHAVIOR_THRESHOLDS: tuple[tuple[EvacuationUrgency, float, float], ...] = (
    ("critical", 30.0, 8.0),
    ("high", 20.0, 6.0),
    ("medium", 10.0, 4.0),
    ("low", 5.0, 2.0),
)


def urgency_rank(urgency: EvacuationUrgency) -> int:
    """Position of ``urgency`` on the scale (0 = none)."""
    return URGENCY_LEVELS.index(urgency)


def urgency_from_level(level: int) -> EvacuationUrgency:
    """Convert a 0-4 bucket index, clamping out-of-range values."""
    return URGENCY_LEVELS[min(max(int(level), 0), len(URGENCY_LEVELS) - 1)]


def urgency_from_score(score: float) -> EvacuationUrgency:
    """Convert a 0-1 model output via ``floor(score * 5)``."""
    return urgency_from_level(math.floor(score * 5))


def urgency_from_behavior(spread_rate: float, flame_length: float) -> EvacuationUrgency:
    """Classify simulator output by spread rate or flame length."""
    for urgency, spread_limit, flame_limit in BEHAVIOR_THRESHOLDS:
        if spread_rate > spread_limit or flame_length > flame_limit:
            return urgency
    return "none"


def max_urgency(*urgencies: EvacuationUrgency) -> EvacuationUrgency:
    """Most severe of the given urgencies."""
    if not urgencies:
        return "none"
    return max(urgencies, key=urgency_rank)
