from datetime import date, datetime, timedelta

from src.constants import (
    DEFAULT_CYCLE_LENGTH,
    DEFAULT_PERIOD_DURATION_DAYS,
    FORECAST_HORIZON_DAYS,
    LAST_PHASE,
    MAX_CYCLE_LENGTH_DAYS,
    PHASE_BANDS,
    PHASES,
)


# -- Forecast --

def _cycle_gaps(periods) -> list[int]:
    starts = sorted(p.start_date for p in periods)
    gaps = [(b - a).days for a, b in zip(starts, starts[1:])]
    return [g for g in gaps if 0 < g < MAX_CYCLE_LENGTH_DAYS]


def average_cycle_length(periods) -> int:
    """Average start-to-start gap, ignoring implausible gaps."""
    gaps = _cycle_gaps(periods)
    if not gaps:
        return DEFAULT_CYCLE_LENGTH
    return round(sum(gaps) / len(gaps))


def count_cycles_used(periods) -> int:
    """Number of gaps that contributed to average_cycle_length."""
    return len(_cycle_gaps(periods))


def next_expected_start(periods, cycle_length: int) -> date | None:
    if not periods:
        return None
    latest = max(p.start_date for p in periods)
    return latest + timedelta(days=cycle_length)


def days_until(target: date, today: date | None = None) -> int:
    today = today or date.today()
    return (target - today).days


# -- Classification --

def _as_day(value) -> date | None:
    """A calendar date, or None for anything that isn't one."""
    if isinstance(value, datetime):
        return value.date()
    return value if isinstance(value, date) else None


def get_cycle_day(day: date | None, cycle_state, today: date | None = None) -> int | None:
    """Return the 1-based cycle day of `day`, or None if it can't be placed.

    Recorded periods win; dates after today that no recorded period claims
    are placed in forecast cycles walked forward from expected_next_start.
    """
    day = _as_day(day)
    if day is None:
        return None
    cycle_length = cycle_state.cycle_length
    if not cycle_length or cycle_length <= 0:
        return None
    today = today or date.today()

    ordered = sorted(cycle_state.periods, key=lambda p: p.start_date, reverse=True)
    for i, period in enumerate(ordered):
        if period.start_date > day:
            continue
        next_start = ordered[i - 1].start_date if i > 0 else None
        if next_start is None or day < next_start:
            return (day - period.start_date).days + 1
        break

    expected = cycle_state.expected_next_start
    if day > today and expected is not None:
        horizon = today + timedelta(days=FORECAST_HORIZON_DAYS)
        current = expected
        while current <= horizon:
            following = current + timedelta(days=cycle_length)
            if current <= day < following:
                return (day - current).days + 1
            current = following

    return None


def get_phase(cycle_day: int | None, cycle_length: int = DEFAULT_CYCLE_LENGTH) -> str | None:
    """Return the phase key for a cycle day, wrapping days past cycle_length."""
    if not cycle_day or cycle_day < 1 or not cycle_length or cycle_length <= 0:
        return None
    normalized = ((cycle_day - 1) % cycle_length) + 1
    for last_day, phase in PHASE_BANDS:
        if normalized <= last_day:
            return phase
    return LAST_PHASE


def get_phase_info(cycle_day: int | None, cycle_length: int = DEFAULT_CYCLE_LENGTH) -> dict | None:
    phase = get_phase(cycle_day, cycle_length)
    if phase is None:
        return None
    return {
        "cycle_day": cycle_day,
        "phase": phase,
        "name": PHASES[phase]["name"],
        "emoji": PHASES[phase]["emoji"],
    }


def is_in_past_period(day: date | None, periods, period_duration: int | None = None) -> bool:
    """True if `day` falls inside any recorded period, both ends included."""
    day = _as_day(day)
    if day is None or not periods:
        return False
    offset = DEFAULT_PERIOD_DURATION_DAYS if period_duration is None else max(0, period_duration)
    return any(p.contains(day, offset) for p in periods)


def is_in_future_period(
    day: date | None,
    expected_next_start: date | None,
    cycle_length: int,
    period_duration: int | None,
    periods,
    today: date | None = None,
) -> bool:
    """True if `day` lies in the forecast window of a future occurrence.

    Only the occurrence at or before `day` is checked. Recorded periods
    cancel the forecast when they cover `day`, start on the occurrence, or
    start between the occurrence and `day`.
    """
    day = _as_day(day)
    expected_next_start = _as_day(expected_next_start)
    if day is None or expected_next_start is None or not cycle_length or cycle_length <= 0:
        return False
    today = today or date.today()
    duration = DEFAULT_PERIOD_DURATION_DAYS if period_duration is None else max(0, period_duration)

    offset = (day - expected_next_start).days
    if offset < 0:
        return False
    occurrence = expected_next_start + timedelta(days=(offset // cycle_length) * cycle_length)
    if occurrence <= today or occurrence > today + timedelta(days=FORECAST_HORIZON_DAYS):
        return False
    if (day - occurrence).days > duration:
        return False

    if is_in_past_period(day, periods, duration):
        return False
    for period in periods:
        if period.start_date == occurrence:
            return False
        if occurrence < period.start_date <= day:
            return False
    return True


def get_current_cycle_start(cycle_state, day: date, today: date | None = None) -> date | None:
    """Start date of the (recorded or forecast) cycle containing `day`."""
    cycle_day = get_cycle_day(day, cycle_state, today)
    if cycle_day is None:
        return None
    return _as_day(day) - timedelta(days=cycle_day - 1)
