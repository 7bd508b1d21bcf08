import logging
import uuid
from dataclasses import asdict, dataclass, replace
from datetime import date, datetime, time, timedelta

from src.constants import (
    GENERAL_COOLDOWN_HOURS,
    QUIET_HOURS_END,
    QUIET_HOURS_START,
    ReminderState,
    ReminderType,
    get_policy,
)
from src.planner import (
    add_planned_date,
    next_planned_date,
    prune_planned_dates_after,
    prune_planned_dates_through,
    remove_planned_date,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReminderNote:
    id: str
    type: str
    text: str


@dataclass(frozen=True)
class ReminderRecord:
    enabled: bool = True
    frequency: int = 7
    last_done: datetime | None = None
    events: tuple[date, ...] = ()
    notes: tuple[ReminderNote, ...] = ()
    planned_dates: tuple[date, ...] = ()

    @classmethod
    def default(cls, reminder_type) -> "ReminderRecord":
        return cls(frequency=get_policy(reminder_type).default_frequency)


@dataclass(frozen=True)
class ReminderStatus:
    status: ReminderState
    message: str
    days_since: int | None = None
    days_until: int | None = None
    planned_date: date | None = None
    is_due_today: bool = False
    is_done_today: bool = False

    def as_dict(self) -> dict:
        data = asdict(self)
        data["status"] = self.status.value
        if self.planned_date is not None:
            data["planned_date"] = self.planned_date.isoformat()
        return data


def _plural(count: int, word: str = "day") -> str:
    return f"{count} {word}{'' if count == 1 else 's'}"


def _start_of_day(day: date) -> datetime:
    return datetime.combine(day, time.min)


# -- Queries --

def get_last_event_date(reminder: ReminderRecord | None) -> date | None:
    if reminder is None:
        return None
    if reminder.events:
        return reminder.events[0]
    if reminder.last_done is not None:
        return reminder.last_done.date()
    return None


def get_previous_event_date(reminder: ReminderRecord | None) -> date | None:
    if reminder is None or len(reminder.events) < 2:
        return None
    return reminder.events[1]


def get_days_since(reminder: ReminderRecord | None, today: date | None = None) -> int | None:
    last_event = get_last_event_date(reminder)
    if last_event is None:
        return None
    today = today or date.today()
    return (today - last_event).days


def is_done_today(reminder: ReminderRecord | None, today: date | None = None) -> bool:
    last_event = get_last_event_date(reminder)
    return last_event is not None and last_event == (today or date.today())


def get_status(reminder: ReminderRecord | None, reminder_type, today: date | None = None) -> ReminderStatus:
    """Derive the display status of one reminder.

    Order matters: disabled, then an outstanding date-night plan, then
    never-done, then the frequency comparison. "Show love" reminders are
    never overdue.
    """
    today = today or date.today()
    policy = get_policy(reminder_type)

    if reminder is None:
        return ReminderStatus(ReminderState.PENDING, "Never done")
    if not reminder.enabled:
        return ReminderStatus(ReminderState.DISABLED, "Disabled")

    done_today = is_done_today(reminder, today)

    if policy.supports_planning and reminder.planned_dates:
        planned = next_planned_date(reminder.planned_dates, today)
        delta = (planned - today).days
        if delta > 0:
            return ReminderStatus(
                ReminderState.PLANNED,
                f"Planned in {_plural(delta)}",
                days_until=delta,
                planned_date=planned,
                is_done_today=done_today,
            )
        if delta == 0:
            return ReminderStatus(
                ReminderState.PLANNED_TODAY,
                "Planned for today",
                days_until=0,
                planned_date=planned,
                is_due_today=True,
                is_done_today=done_today,
            )
        return ReminderStatus(
            ReminderState.PLANNED_OVERDUE,
            f"Planned {_plural(-delta)} ago",
            days_until=delta,
            planned_date=planned,
            is_due_today=True,
            is_done_today=done_today,
        )

    days_since = get_days_since(reminder, today)
    if days_since is None:
        return ReminderStatus(ReminderState.PENDING, "Never done")

    if not policy.tracks_overdue:
        return ReminderStatus(ReminderState.OK, "", days_since=days_since, is_done_today=done_today)

    days_until = reminder.frequency - days_since
    is_due_today = days_since == reminder.frequency
    if days_since >= reminder.frequency:
        overdue = days_since - reminder.frequency
        message = "Due today" if overdue == 0 else f"Due {_plural(overdue)} ago"
        return ReminderStatus(
            ReminderState.DUE,
            message,
            days_since=days_since,
            days_until=days_until,
            is_due_today=is_due_today,
            is_done_today=done_today,
        )
    return ReminderStatus(
        ReminderState.OK,
        f"Due in {_plural(days_until)}",
        days_since=days_since,
        days_until=days_until,
        is_done_today=done_today,
    )


def _in_quiet_hours(moment: datetime, start: int, end: int) -> bool:
    return moment.hour >= start or moment.hour < end


def general_due_at(
    last_done: datetime,
    quiet_start: int = QUIET_HOURS_START,
    quiet_end: int = QUIET_HOURS_END,
) -> datetime:
    """When the "show love" cooldown after `last_done` expires.

    An expiry inside quiet hours is pushed to the next quiet_end o'clock.
    """
    expiry = last_done + timedelta(hours=GENERAL_COOLDOWN_HOURS)
    if not _in_quiet_hours(expiry, quiet_start, quiet_end):
        return expiry
    resume_day = expiry.date()
    if expiry.hour >= quiet_start:
        resume_day += timedelta(days=1)
    return datetime.combine(resume_day, time(hour=quiet_end))


def is_due_for_today_banner(
    reminder: ReminderRecord | None,
    reminder_type,
    now: datetime | None = None,
    quiet_start: int = QUIET_HOURS_START,
    quiet_end: int = QUIET_HOURS_END,
) -> bool:
    if reminder is None or not reminder.enabled:
        return False
    now = now or datetime.now()
    policy = get_policy(reminder_type)

    if policy.uses_quiet_hours:
        last_done = reminder.last_done
        if last_done is None:
            last_event = get_last_event_date(reminder)
            if last_event is None:
                return True
            last_done = _start_of_day(last_event)
        return now >= general_due_at(last_done, quiet_start, quiet_end)

    if now.hour < quiet_end:
        return False
    status = get_status(reminder, reminder_type, now.date())
    if status.status == ReminderState.DUE:
        return True
    return policy.supports_planning and status.status in (
        ReminderState.PLANNED_TODAY,
        ReminderState.PLANNED_OVERDUE,
    )


# -- Actions --

def mark_done(reminder: ReminderRecord, reminder_type, when: date | datetime | None = None) -> ReminderRecord:
    """Record completion on `when` (a date or a timestamp, default now)."""
    policy = get_policy(reminder_type)
    when = when or datetime.now()
    if isinstance(when, datetime):
        day, stamp = when.date(), when
    else:
        day, stamp = when, _start_of_day(when)

    already_done = day in reminder.events
    if already_done and not policy.allows_same_day_repeat:
        logger.debug(f"{ReminderType(reminder_type).value} already done on {day}")
        return reminder

    events = reminder.events if already_done else tuple(sorted({*reminder.events, day}, reverse=True))
    last_done = stamp if reminder.last_done is None else max(reminder.last_done, stamp)

    planned = reminder.planned_dates
    if policy.supports_planning:
        planned = prune_planned_dates_through(planned, day)

    return replace(reminder, events=events, last_done=last_done, planned_dates=planned)


def clear_done(reminder: ReminderRecord, day: date | None = None, today: date | None = None) -> ReminderRecord:
    """Remove the completion on `day`; undoing today also rolls back last_done."""
    today = today or date.today()
    day = day or today
    if day not in reminder.events:
        return reminder

    events = tuple(d for d in reminder.events if d != day)
    last_done = reminder.last_done
    if day == today:
        last_done = _start_of_day(events[0]) if events else None
    return replace(reminder, events=events, last_done=last_done)


def toggle_reminder(reminder: ReminderRecord) -> ReminderRecord:
    return replace(reminder, enabled=not reminder.enabled)


def set_frequency(reminder: ReminderRecord, frequency: int) -> ReminderRecord:
    if frequency < 1 or frequency == reminder.frequency:
        return reminder
    return replace(reminder, frequency=frequency)


def plan_date(reminder: ReminderRecord, reminder_type, day: date) -> ReminderRecord:
    if not get_policy(reminder_type).supports_planning:
        return reminder
    planned = add_planned_date(reminder.planned_dates, day)
    return reminder if planned is reminder.planned_dates else replace(reminder, planned_dates=planned)


def unplan_date(reminder: ReminderRecord, day: date) -> ReminderRecord:
    planned = remove_planned_date(reminder.planned_dates, day)
    return reminder if planned is reminder.planned_dates else replace(reminder, planned_dates=planned)


def cancel_plans_after(reminder: ReminderRecord, cutoff: date) -> ReminderRecord:
    planned = prune_planned_dates_after(reminder.planned_dates, cutoff)
    return reminder if planned is reminder.planned_dates else replace(reminder, planned_dates=planned)


def add_note(reminder: ReminderRecord, text: str, note_type: str = "idea") -> ReminderRecord:
    text = text.strip()
    if not text:
        return reminder
    note = ReminderNote(id=f"note-{uuid.uuid4().hex}", type=note_type, text=text)
    return replace(reminder, notes=(*reminder.notes, note))


def remove_note(reminder: ReminderRecord, note_id: str) -> ReminderRecord:
    notes = tuple(n for n in reminder.notes if n.id != note_id)
    return reminder if len(notes) == len(reminder.notes) else replace(reminder, notes=notes)
