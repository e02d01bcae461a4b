"""
Tests for the canonical evacuation urgency scale.
"""

import pytest

from firesentinel.urgency import (
    URGENCY_LEVELS,
    max_urgency,
    urgency_from_behavior,
    urgency_from_level,
    urgency_from_score,
    urgency_rank,
)


class TestScale:
    """Ordering of the scale."""

    def test_order(self):
        assert URGENCY_LEVELS == ("none", "low", "medium", "high", "critical")
        assert urgency_rank("none") < urgency_rank("critical")

    def test_max(self):
        assert max_urgency("low", "critical", "medium") == "critical"
        assert max_urgency("none") == "none"
        assert max_urgency() == "none"


class TestEnsembleConversion:
    """Bucket index conversion used by the ML ensemble."""

    @pytest.mark.parametrize(
        "score, expected",
        [(0.0, "none"), (0.19, "none"), (0.2, "low"), (0.45, "medium"), (0.7, "high"), (0.99, "critical")],
    )
    def test_from_score(self, score, expected):
        assert urgency_from_score(score) == expected

    def test_score_of_one_clamped(self):
        assert urgency_from_score(1.0) == "critical"

    def test_out_of_range_levels_clamped(self):
        assert urgency_from_level(-3) == "none"
        assert urgency_from_level(9) == "critical"


class TestBehaviorConversion:
    """Spread-rate and flame-length thresholds used by the simulator."""

    @pytest.mark.parametrize(
        "spread, flame, expected",
        [
            (31.0, 0.0, "critical"),
            (0.0, 8.5, "critical"),
            (25.0, 0.0, "high"),
            (0.0, 6.5, "high"),
            (15.0, 0.0, "medium"),
            (0.0, 4.5, "medium"),
            (6.0, 0.0, "low"),
            (0.0, 2.5, "low"),
            (5.0, 2.0, "none"),
        ],
    )
    def test_thresholds(self, spread, flame, expected):
        assert urgency_from_behavior(spread, flame) == expected

    def test_boundaries_are_exclusive(self):
        assert urgency_from_behavior(30.0, 0.0) == "high"
        assert urgency_from_behavior(10.0, 0.0) == "low"
