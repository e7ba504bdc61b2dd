from datetime import datetime, timedelta, timezone

from services.timing_service import (
    elapsed_seconds,
    meets_minimum_requirement,
    remaining_seconds,
)

NOW = datetime(2026, 1, 1, 12, 0, 0)


def test_elapsed_is_floored():
    assert elapsed_seconds(NOW - timedelta(seconds=10, milliseconds=900), NOW) == 10


def test_elapsed_never_negative():
    assert elapsed_seconds(NOW + timedelta(seconds=5), NOW) == 0


def test_elapsed_accepts_aware_timestamps():
    started = (NOW - timedelta(seconds=30)).replace(tzinfo=timezone.utc)
    assert elapsed_seconds(started, NOW) == 30


def test_remaining_when_not_started_is_full_duration():
    assert remaining_seconds(180, None, NOW) == 180


def test_remaining_counts_down_from_start():
    assert remaining_seconds(100, NOW - timedelta(seconds=71), NOW) == 29


def test_remaining_is_clamped_to_zero():
    assert remaining_seconds(100, NOW - timedelta(seconds=500), NOW) == 0


def test_remaining_is_clamped_to_duration():
    assert remaining_seconds(100, NOW + timedelta(seconds=20), NOW) == 100


def test_minimum_requirement_boundary():
    assert meets_minimum_requirement(100, 31, True)
    assert meets_minimum_requirement(100, 30, True)
    assert not meets_minimum_requirement(100, 29, True)


def test_minimum_requirement_ignores_unstarted_rooms():
    assert meets_minimum_requirement(100, 0, False)


def test_minimum_requirement_custom_ratio():
    assert not meets_minimum_requirement(100, 49, True, ratio=0.5)
    assert meets_minimum_requirement(100, 50, True, ratio=0.5)
