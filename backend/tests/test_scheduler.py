from datetime import datetime, time, timedelta

import pytest

from medalert.core.errors import InvalidInterval
from medalert.domain.frequency import FixedInterval, SpecificTimes, resolve_frequency
from medalert.domain.scheduler import (
    NextDose,
    compute_next_reminder,
    first_reminder,
    occurrence_near,
    plan_next_dose,
)

TWICE = SpecificTimes(times=(time(8, 0), time(20, 0)))
THREE = SpecificTimes(times=(time(9, 0), time(13, 0), time(18, 0)))


@pytest.mark.parametrize("hours", [1, 6, 8, 12, 24, 168, 720, 1.5])
@pytest.mark.parametrize(
    "dose_time",
    [datetime(2024, 1, 1, 8, 0), datetime(2024, 2, 28, 23, 59), datetime(2023, 12, 31, 22, 30)],
)
def test_fixed_interval_adds_exactly_the_interval(hours, dose_time):
    assert compute_next_reminder(FixedInterval(hours), dose_time) == dose_time + timedelta(hours=hours)


def test_twice_daily_scenario():
    rule = resolve_frequency("twice_daily")
    assert compute_next_reminder(rule, datetime(2024, 1, 1, 8, 0)) == datetime(2024, 1, 1, 20, 0)


@pytest.mark.parametrize("hours", [0, -4])
def test_non_advancing_interval_is_rejected(hours):
    with pytest.raises(InvalidInterval):
        compute_next_reminder(FixedInterval(hours), datetime(2024, 1, 1, 8, 0))


def test_specific_times_morning_dose_moves_to_evening():
    assert plan_next_dose(TWICE, datetime(2024, 1, 1, 8, 0)) == NextDose(datetime(2024, 1, 1, 20, 0), 1)


def test_specific_times_evening_dose_wraps_to_next_morning():
    assert plan_next_dose(TWICE, datetime(2024, 1, 1, 20, 0)) == NextDose(datetime(2024, 1, 2, 8, 0), 0)


def test_last_slot_of_day_wraps_to_first_slot_next_calendar_day():
    assert compute_next_reminder(THREE, datetime(2024, 1, 1, 18, 0)) == datetime(2024, 1, 2, 9, 0)


def test_wrap_crosses_month_and_year():
    assert compute_next_reminder(TWICE, datetime(2023, 12, 31, 20, 5)) == datetime(2024, 1, 1, 8, 0)


def test_slot_index_overrides_nearest_match():
    # Taken at 14:00 but recorded against the 09:00 slot.
    assert plan_next_dose(THREE, datetime(2024, 1, 1, 14, 0), slot_index=0) == NextDose(datetime(2024, 1, 1, 18, 0), 2)


def test_late_dose_walks_past_successors_already_due():
    dose = plan_next_dose(TWICE, datetime(2024, 1, 1, 21, 0), slot_index=0, scheduled_at=datetime(2024, 1, 1, 8, 0))
    assert dose == NextDose(datetime(2024, 1, 2, 8, 0), 0)


def test_early_dose_keeps_same_day_successor():
    dose = plan_next_dose(TWICE, datetime(2024, 1, 1, 19, 0), slot_index=1, scheduled_at=datetime(2024, 1, 1, 20, 0))
    assert dose == NextDose(datetime(2024, 1, 2, 8, 0), 0)


def test_single_time_rolls_to_next_day():
    rule = SpecificTimes(times=(time(21, 0),))
    assert compute_next_reminder(rule, datetime(2024, 1, 1, 21, 0)) == datetime(2024, 1, 2, 21, 0)


def test_equal_times_are_a_zero_length_interval():
    rule = SpecificTimes(times=(time(8, 0), time(8, 0), time(20, 0)))
    with pytest.raises(InvalidInterval):
        plan_next_dose(rule, datetime(2024, 1, 1, 8, 0), slot_index=0)
    # The second of the pair is followed by 20:00 as usual.
    assert plan_next_dose(rule, datetime(2024, 1, 1, 8, 0), slot_index=1) == NextDose(datetime(2024, 1, 1, 20, 0), 2)


def test_all_equal_times_are_invalid():
    rule = SpecificTimes(times=(time(8, 0), time(8, 0)))
    # Nearest-match ties go to the first slot, whose successor is the same instant.
    with pytest.raises(InvalidInterval):
        compute_next_reminder(rule, datetime(2024, 1, 1, 8, 0))
    # The last slot wraps to the next morning, a full day later.
    assert plan_next_dose(rule, datetime(2024, 1, 1, 8, 0), slot_index=1) == NextDose(datetime(2024, 1, 2, 8, 0), 0)


def test_result_is_always_strictly_later():
    for minute in range(0, 24 * 60, 37):
        dose_time = datetime(2024, 3, 10) + timedelta(minutes=minute)
        assert compute_next_reminder(THREE, dose_time) > dose_time


def test_out_of_range_slot_index_is_invalid():
    with pytest.raises(InvalidInterval):
        plan_next_dose(TWICE, datetime(2024, 1, 1, 8, 0), slot_index=5)


def test_empty_times_are_invalid():
    with pytest.raises(InvalidInterval):
        plan_next_dose(SpecificTimes(times=()), datetime(2024, 1, 1, 8, 0))


def test_occurrence_near_picks_closest_day():
    assert occurrence_near(datetime(2024, 1, 2, 1, 0), time(23, 0)) == datetime(2024, 1, 1, 23, 0)
    assert occurrence_near(datetime(2024, 1, 1, 22, 0), time(1, 0)) == datetime(2024, 1, 2, 1, 0)


def test_first_reminder_for_interval_is_start():
    start = datetime(2024, 1, 1, 7, 30)
    assert first_reminder(FixedInterval(24), start) == NextDose(start, None)


def test_first_reminder_picks_next_time_today_or_tomorrow():
    assert first_reminder(TWICE, datetime(2024, 1, 1, 9, 0)) == NextDose(datetime(2024, 1, 1, 20, 0), 1)
    assert first_reminder(TWICE, datetime(2024, 1, 1, 21, 0)) == NextDose(datetime(2024, 1, 2, 8, 0), 0)
    assert first_reminder(TWICE, datetime(2024, 1, 1, 8, 0)) == NextDose(datetime(2024, 1, 1, 8, 0), 0)
