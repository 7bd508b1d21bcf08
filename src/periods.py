import logging
from dataclasses import dataclass, replace
from datetime import date, timedelta

from src.constants import (
    DEFAULT_PERIOD_DURATION_DAYS,
    MAX_PERIOD_LENGTH_DAYS,
    START_SHIFT_TOLERANCE_DAYS,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Period:
    start_date: date
    end_date: date | None = None
    auto_end: bool = False

    @property
    def is_editable(self) -> bool:
        """An auto-computed or missing end can still be moved by a nearby start."""
        return self.end_date is None or self.auto_end

    def effective_end(self, default_offset: int = DEFAULT_PERIOD_DURATION_DAYS) -> date:
        if self.end_date is not None:
            return self.end_date
        return self.start_date + timedelta(days=default_offset)

    def contains(self, day: date, default_offset: int = DEFAULT_PERIOD_DURATION_DAYS) -> bool:
        return self.start_date <= day <= self.effective_end(default_offset)


def average_period_duration_offset(periods) -> int:
    """Average `end - start` in days over periods whose end the user entered."""
    samples = []
    for period in periods:
        if period.end_date is None or period.auto_end:
            continue
        duration = (period.end_date - period.start_date).days
        if 0 <= duration <= MAX_PERIOD_LENGTH_DAYS:
            samples.append(duration)

    if not samples:
        return DEFAULT_PERIOD_DURATION_DAYS
    offset = round(sum(samples) / len(samples))
    return max(0, min(MAX_PERIOD_LENGTH_DAYS, offset))


def latest_period(periods) -> Period | None:
    if not periods:
        return None
    return max(periods, key=lambda p: p.start_date)


def add_period_start(periods: list[Period], day: date) -> list[Period]:
    """Record a period start on `day`.

    Returns the input list unchanged when `day` is already a start or falls
    inside an existing period. A start 1-3 days after the latest, still
    editable period moves that period instead of opening a new one.
    """
    if any(p.start_date == day for p in periods):
        logger.debug(f"Period start {day} already recorded")
        return periods

    offset = average_period_duration_offset(periods)
    latest = latest_period(periods)

    if latest is not None and latest.is_editable:
        shift = (day - latest.start_date).days
        if 1 <= shift <= START_SHIFT_TOLERANCE_DAYS:
            shifted = replace(
                latest,
                start_date=day,
                end_date=day + timedelta(days=offset),
                auto_end=True,
            )
            return [shifted if p is latest else p for p in periods]

    if any(p.contains(day, offset) for p in periods):
        logger.debug(f"Period start {day} overlaps a recorded period")
        return periods

    return [*periods, Period(day, day + timedelta(days=offset), auto_end=True)]


def add_period_end(periods: list[Period], day: date) -> list[Period]:
    """Set the end of the latest period starting on or before `day`."""
    candidates = [p for p in periods if p.start_date <= day]
    if not candidates:
        return [*periods, Period(day, day, auto_end=False)]

    target = max(candidates, key=lambda p: p.start_date)
    ended = replace(target, end_date=day, auto_end=False)
    return [ended if p is target else p for p in periods]


def remove_period(periods: list[Period], day: date) -> list[Period]:
    remaining = [p for p in periods if p.start_date != day and p.end_date != day]
    if len(remaining) == len(periods):
        return periods
    return remaining
