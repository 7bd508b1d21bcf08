from datetime import date, timedelta

from src.constants import (
    IMPORTANT_DATE_NOTICE_DAYS,
    PERIOD_NOTIFICATION_DAYS_BEFORE,
    ReminderState,
    ReminderType,
    get_policy,
)
from src.reminders import get_days_since, get_status


def anniversary_in_year(original: date, year: int) -> date:
    """The recurrence of `original` in `year`; Feb 29 rolls to Mar 1."""
    try:
        return original.replace(year=year)
    except ValueError:
        return date(year, 3, 1)


def important_date_notice(important_date, today: date) -> int | None:
    """Days until the next anniversary if today is a notice day, else None."""
    anniversary = anniversary_in_year(important_date.date, today.year)
    if anniversary < today:
        anniversary = anniversary_in_year(important_date.date, today.year + 1)
    days = (anniversary - today).days
    return days if days in IMPORTANT_DATE_NOTICE_DAYS else None


def is_reminder_due(reminder, reminder_type, today: date) -> bool:
    """Daily-notification view of a reminder: never done or past its frequency."""
    if reminder is None or not reminder.enabled:
        return False
    status = get_status(reminder, reminder_type, today)
    if status.status in (ReminderState.PLANNED_TODAY, ReminderState.PLANNED_OVERDUE):
        return True
    if status.status == ReminderState.PLANNED:
        return False
    days_since = get_days_since(reminder, today)
    return days_since is None or days_since >= reminder.frequency


def is_pre_period_alert_day(expected_next_start: date | None, today: date) -> bool:
    if expected_next_start is None:
        return False
    return expected_next_start - timedelta(days=PERIOD_NOTIFICATION_DAYS_BEFORE) == today


def due_reminder_types(state, today: date) -> list[ReminderType]:
    return [t for t in ReminderType if is_reminder_due(state.reminders.get(t), t, today)]


def has_notifications(state, today: date | None = None) -> bool:
    today = today or date.today()
    if due_reminder_types(state, today):
        return True
    if any(important_date_notice(d, today) is not None for d in state.important_dates):
        return True
    return is_pre_period_alert_day(state.cycle.expected_next_start, today)


def _notice_text(name: str, days: int) -> str:
    if days == 0:
        return f"\U0001f4c5 {name} is today!"
    if days == 1:
        return f"\U0001f4c5 {name} is tomorrow"
    if days == 7:
        return f"\U0001f4c5 {name} is in 1 week"
    return f"\U0001f4c5 {name} is in 1 month"


def build_digest(state, today: date | None = None) -> list[str]:
    """Lines of the daily notification message, empty when nothing is due."""
    today = today or date.today()
    lines = []
    for reminder_type in due_reminder_types(state, today):
        policy = get_policy(reminder_type)
        status = get_status(state.reminders[reminder_type], reminder_type, today)
        detail = f" ({status.message})" if status.message else ""
        lines.append(f"{policy.emoji} {policy.label}{detail}")

    for important_date in state.important_dates:
        days = important_date_notice(important_date, today)
        if days is not None:
            lines.append(_notice_text(important_date.name, days))

    if is_pre_period_alert_day(state.cycle.expected_next_start, today):
        lines.append(
            f"\U0001f343 Period expected in {PERIOD_NOTIFICATION_DAYS_BEFORE} days "
            f"({state.cycle.expected_next_start:%d %b})"
        )
    return lines
