from datetime import time

import pytest

from medalert.core.errors import InvalidInterval, UnknownFrequency
from medalert.domain.frequency import (
    FixedInterval,
    SpecificTimes,
    is_time_based,
    parse_time_of_day,
    resolve_frequency,
)


@pytest.mark.parametrize(
    "tag, hours",
    [
        ("daily", 24),
        ("twice_daily", 12),
        ("thrice_daily", 8),
        ("every_hour", 1),
        ("weekly", 168),
        ("monthly", 720),
    ],
)
def test_tag_frequencies_resolve_to_fixed_intervals(tag, hours):
    assert resolve_frequency(tag) == FixedInterval(hours=hours)


def test_tags_are_case_and_whitespace_insensitive():
    assert resolve_frequency("  Daily ") == FixedInterval(hours=24)


def test_every_x_hours_uses_supplied_hours():
    assert resolve_frequency("every_x_hours", hours=6) == FixedInterval(hours=6.0)


def test_every_x_hours_without_hours_is_unknown():
    with pytest.raises(UnknownFrequency):
        resolve_frequency("every_x_hours")


@pytest.mark.parametrize("tag, hours", [("every_6_hours", 6), ("every_1_hour", 1), ("every_4", 4)])
def test_legacy_every_n_strings(tag, hours):
    assert resolve_frequency(tag) == FixedInterval(hours=hours)


@pytest.mark.parametrize("tag", ["fortnightly", "", None, "every_x_days"])
def test_unknown_descriptor_raises_instead_of_defaulting_to_daily(tag):
    with pytest.raises(UnknownFrequency):
        resolve_frequency(tag)


def test_specific_times_are_sorted():
    rule = resolve_frequency("specific_times", times=["20:00", "08:00", "13:30"])
    assert rule == SpecificTimes(times=(time(8, 0), time(13, 30), time(20, 0)))


def test_custom_resolves_like_specific_times():
    assert resolve_frequency("custom", times=["09:00"]) == SpecificTimes(times=(time(9, 0),))


def test_duplicate_times_are_kept():
    rule = resolve_frequency("specific_times", times=["08:00", "08:00"])
    assert rule.times == (time(8, 0), time(8, 0))


def test_specific_times_without_times_is_invalid():
    with pytest.raises(InvalidInterval):
        resolve_frequency("specific_times", times=[])


def test_unparseable_time_is_invalid():
    with pytest.raises(InvalidInterval):
        resolve_frequency("specific_times", times=["25:00"])


def test_parse_time_of_day_accepts_seconds_and_time_objects():
    assert parse_time_of_day("07:15:30") == time(7, 15, 30)
    assert parse_time_of_day(time(6, 0, 0, 500)) == time(6, 0)


def test_is_time_based():
    assert is_time_based("specific_times")
    assert is_time_based("CUSTOM")
    assert not is_time_based("daily")
    assert not is_time_based(None)
