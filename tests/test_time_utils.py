"""Tests for time utilities."""

import pytest
from datetime import datetime, timezone, timedelta

from fleetgrid.utils.time import parse_iso_date, to_utc_iso, utc_now_iso


def test_utc_now_iso_always_ends_with_z():
    """Test that utc_now_iso() always ends with Z."""
    result = utc_now_iso()
    assert result.endswith('Z'), f"Expected result to end with 'Z', got: {result}"
    assert '+00:00' not in result


def test_to_utc_iso_raises_on_naive_datetime():
    """Test that to_utc_iso() raises ValueError for naive datetime."""
    with pytest.raises(ValueError, match="Naive datetime not allowed"):
        to_utc_iso(datetime.now())


def test_to_utc_iso_converts_non_utc_timezone():
    """Test that to_utc_iso() converts non-UTC timezone to UTC."""
    est = timezone(timedelta(hours=-5))
    dt_est = datetime(2025, 12, 23, 12, 0, 0, tzinfo=est)

    assert to_utc_iso(dt_est) == '2025-12-23T17:00:00.000000Z'


def test_to_utc_iso_keeps_fixed_width():
    """Whole seconds still carry microseconds, so stored values sort as text."""
    whole = to_utc_iso(datetime(2025, 12, 23, 12, 0, 0, tzinfo=timezone.utc))
    fraction = to_utc_iso(datetime(2025, 12, 23, 12, 0, 0, 1, tzinfo=timezone.utc))

    assert len(whole) == len(fraction)
    assert whole < fraction


def test_parse_iso_date():
    assert parse_iso_date(' 2021-03-04 ') == '2021-03-04'
    with pytest.raises(ValueError):
        parse_iso_date('04/03/2021')
