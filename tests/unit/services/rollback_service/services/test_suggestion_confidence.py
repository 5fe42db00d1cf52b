# tests/unit/services/rollback_service/services/test_suggestion_confidence.py
import pytest

from src.services.rollback_service.app.services.suggestion_engine import clamp_confidence, compute_auto_confidence


@pytest.mark.parametrize(
    "version_count, expected",
    [
        (2, 70),
        (3, 75),
        (5, 85),
        (6, 90),
        (10, 90),
        (20, 90),
    ],
)
def test_auto_confidence_grows_with_history_and_caps(version_count, expected):
    assert compute_auto_confidence(version_count) == expected


@pytest.mark.parametrize("raw, expected", [(-5, 0), (0, 0), (80, 80), (100, 100), (150, 100)])
def test_clamp_confidence(raw, expected):
    assert clamp_confidence(raw) == expected
