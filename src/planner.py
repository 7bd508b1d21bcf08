"""Ordered planned-date lists for user-scheduled events such as date nights.

Lists are tuples sorted ascending with no duplicates. Every function returns
a new tuple, or the input unchanged when there is nothing to do.
"""
from datetime import date


def add_planned_date(planned: tuple[date, ...], day: date) -> tuple[date, ...]:
    if day in planned:
        return planned
    return tuple(sorted({*planned, day}))


def remove_planned_date(planned: tuple[date, ...], day: date) -> tuple[date, ...]:
    if day not in planned:
        return planned
    return tuple(d for d in planned if d != day)


def next_planned_date(planned: tuple[date, ...], today: date | None = None) -> date | None:
    """First planned date on or after today, else the latest past one."""
    if not planned:
        return None
    today = today or date.today()
    ordered = sorted(planned)
    for day in ordered:
        if day >= today:
            return day
    return ordered[-1]


def prune_planned_dates_after(planned: tuple[date, ...], cutoff: date) -> tuple[date, ...]:
    """Drop every planned date strictly after `cutoff`."""
    kept = tuple(d for d in planned if d <= cutoff)
    return planned if len(kept) == len(planned) else kept


def prune_planned_dates_through(planned: tuple[date, ...], cutoff: date) -> tuple[date, ...]:
    """Drop every planned date on or before `cutoff`."""
    kept = tuple(d for d in planned if d > cutoff)
    return planned if len(kept) == len(planned) else kept
