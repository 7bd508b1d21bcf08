from datetime import date

from src.constants import DEFAULT_PERIOD_DURATION_DAYS, MAX_PERIOD_LENGTH_DAYS
from src.periods import (
    Period,
    add_period_end,
    add_period_start,
    average_period_duration_offset,
    latest_period,
    remove_period,
)


# -- average_period_duration_offset --

class TestAveragePeriodDurationOffset:
    def test_default_without_periods(self):
        assert average_period_duration_offset([]) == DEFAULT_PERIOD_DURATION_DAYS

    def test_ignores_auto_ended_periods(self):
        periods = [Period(date(2024, 1, 1), date(2024, 1, 9), auto_end=True)]
        assert average_period_duration_offset(periods) == DEFAULT_PERIOD_DURATION_DAYS

    def test_ignores_open_periods(self):
        assert average_period_duration_offset([Period(date(2024, 1, 1))]) == DEFAULT_PERIOD_DURATION_DAYS

    def test_averages_user_entered_ends(self):
        periods = [
            Period(date(2024, 1, 1), date(2024, 1, 4)),   # 3
            Period(date(2024, 1, 29), date(2024, 2, 3)),  # 5
        ]
        assert average_period_duration_offset(periods) == 4

    def test_same_day_period_counts_as_zero(self):
        periods = [Period(date(2024, 1, 1), date(2024, 1, 1))]
        assert average_period_duration_offset(periods) == 0

    def test_discards_implausible_durations(self):
        periods = [
            Period(date(2024, 1, 1), date(2024, 1, 3)),
            Period(date(2024, 2, 1), date(2024, 2, 1 + MAX_PERIOD_LENGTH_DAYS + 1)),
        ]
        assert average_period_duration_offset(periods) == 2


# -- add_period_start --

class TestAddPeriodStart:
    def test_first_period_gets_auto_end(self):
        result = add_period_start([], date(2024, 1, 1))
        assert result == [Period(date(2024, 1, 1), date(2024, 1, 5), auto_end=True)]

    def test_same_date_twice_is_idempotent(self):
        once = add_period_start([], date(2024, 1, 1))
        twice = add_period_start(once, date(2024, 1, 1))
        assert twice is once

    def test_date_inside_user_ended_period_rejected(self):
        periods = [Period(date(2024, 1, 1), date(2024, 1, 6))]
        assert add_period_start(periods, date(2024, 1, 3)) is periods

    def test_date_inside_open_period_uses_average_offset(self):
        periods = [Period(date(2024, 1, 10), date(2024, 1, 16)), Period(date(2024, 2, 10))]
        # average offset is 6 -> open period covers Feb 10..16; Feb 15 is past the shift window
        assert add_period_start(periods, date(2024, 2, 15)) is periods

    def test_shift_within_tolerance_moves_editable_period(self):
        periods = add_period_start([], date(2024, 1, 1))
        result = add_period_start(periods, date(2024, 1, 3))
        assert len(result) == 1
        assert result[0] == Period(date(2024, 1, 3), date(2024, 1, 7), auto_end=True)

    def test_shift_of_three_days_still_moves(self):
        periods = add_period_start([], date(2024, 1, 1))
        result = add_period_start(periods, date(2024, 1, 4))
        assert [p.start_date for p in result] == [date(2024, 1, 4)]

    def test_five_days_after_creates_new_period(self):
        periods = add_period_start([], date(2024, 1, 1))
        result = add_period_start(periods, date(2024, 1, 6))
        assert [p.start_date for p in result] == [date(2024, 1, 1), date(2024, 1, 6)]

    def test_no_shift_for_user_ended_period(self):
        periods = [Period(date(2024, 1, 1), date(2024, 1, 5))]
        assert add_period_start(periods, date(2024, 1, 3)) is periods

    def test_no_shift_for_earlier_date(self):
        periods = add_period_start([], date(2024, 1, 10))
        result = add_period_start(periods, date(2024, 1, 2))
        assert [p.start_date for p in result] == [date(2024, 1, 10), date(2024, 1, 2)]

    def test_shift_only_applies_to_latest(self):
        periods = [
            Period(date(2024, 1, 1), date(2024, 1, 5), auto_end=True),
            Period(date(2024, 1, 29), date(2024, 2, 2)),
        ]
        assert add_period_start(periods, date(2024, 1, 3)) is periods

    def test_new_period_uses_average_duration(self):
        periods = [Period(date(2024, 1, 1), date(2024, 1, 7))]
        result = add_period_start(periods, date(2024, 1, 29))
        assert result[-1] == Period(date(2024, 1, 29), date(2024, 2, 4), auto_end=True)

    def test_does_not_mutate_input(self):
        periods = [Period(date(2024, 1, 1), date(2024, 1, 5))]
        add_period_start(periods, date(2024, 1, 29))
        assert len(periods) == 1

    def test_remove_restores_original(self):
        periods = [Period(date(2024, 1, 1), date(2024, 1, 5))]
        added = add_period_start(periods, date(2024, 1, 29))
        assert remove_period(added, date(2024, 1, 29)) == periods


# -- add_period_end --

class TestAddPeriodEnd:
    def test_sets_end_on_latest_matching_period(self):
        periods = add_period_start([], date(2024, 1, 1))
        result = add_period_end(periods, date(2024, 1, 4))
        assert result == [Period(date(2024, 1, 1), date(2024, 1, 4), auto_end=False)]

    def test_picks_most_recent_start_before_date(self):
        periods = [
            Period(date(2024, 1, 1), date(2024, 1, 5)),
            Period(date(2024, 1, 29), date(2024, 2, 2), auto_end=True),
        ]
        result = add_period_end(periods, date(2024, 2, 1))
        assert result[0] == periods[0]
        assert result[1] == Period(date(2024, 1, 29), date(2024, 2, 1), auto_end=False)

    def test_creates_single_day_period_when_none_qualifies(self):
        periods = [Period(date(2024, 2, 1), date(2024, 2, 5))]
        result = add_period_end(periods, date(2024, 1, 10))
        assert result[-1] == Period(date(2024, 1, 10), date(2024, 1, 10), auto_end=False)

    def test_empty_list(self):
        assert add_period_end([], date(2024, 1, 10)) == [Period(date(2024, 1, 10), date(2024, 1, 10))]


# -- remove_period --

class TestRemovePeriod:
    def test_removes_by_start(self):
        periods = [Period(date(2024, 1, 1), date(2024, 1, 5))]
        assert remove_period(periods, date(2024, 1, 1)) == []

    def test_removes_by_end(self):
        periods = [Period(date(2024, 1, 1), date(2024, 1, 5))]
        assert remove_period(periods, date(2024, 1, 5)) == []

    def test_middle_day_is_noop(self):
        periods = [Period(date(2024, 1, 1), date(2024, 1, 5))]
        assert remove_period(periods, date(2024, 1, 3)) is periods

    def test_removes_every_match(self):
        periods = [
            Period(date(2024, 1, 1), date(2024, 1, 5)),
            Period(date(2024, 1, 5), date(2024, 1, 8)),
            Period(date(2024, 2, 1), date(2024, 2, 5)),
        ]
        assert remove_period(periods, date(2024, 1, 5)) == [periods[2]]


class TestPeriodHelpers:
    def test_latest_period(self, three_cycles):
        assert latest_period(three_cycles).start_date == date(2024, 2, 26)

    def test_latest_period_empty(self):
        assert latest_period([]) is None

    def test_editable(self):
        assert Period(date(2024, 1, 1)).is_editable
        assert Period(date(2024, 1, 1), date(2024, 1, 5), auto_end=True).is_editable
        assert not Period(date(2024, 1, 1), date(2024, 1, 5)).is_editable
