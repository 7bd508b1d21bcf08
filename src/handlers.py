import functools
import logging
from datetime import date, datetime

from telegram import Update
from telegram.ext import ContextTypes

from config.settings import QUIET_HOURS_END, QUIET_HOURS_START, TIMEZONE, VERSION
from src.constants import REMINDER_POLICIES, ReminderType
from src.cycle import (
    count_cycles_used,
    days_until,
    get_cycle_day,
    get_phase_info,
    is_in_future_period,
    is_in_past_period,
)
from src.db import Database
from src.notifications import important_date_notice
from src.periods import (
    add_period_end,
    add_period_start,
    average_period_duration_offset,
    remove_period,
)
from src.reminders import (
    cancel_plans_after,
    clear_done,
    get_status,
    is_due_for_today_banner,
    mark_done,
    plan_date,
    set_frequency,
    toggle_reminder,
    unplan_date,
)

logger = logging.getLogger(__name__)

MAX_FREQUENCY_DAYS = 365

TYPE_ALIASES = {
    "flowers": ReminderType.FLOWERS,
    "surprises": ReminderType.SURPRISES,
    "surprise": ReminderType.SURPRISES,
    "date": ReminderType.DATE_NIGHTS,
    "datenight": ReminderType.DATE_NIGHTS,
    "datenights": ReminderType.DATE_NIGHTS,
    "love": ReminderType.GENERAL,
    "general": ReminderType.GENERAL,
}

TYPE_USAGE = "flowers, surprises, date, love"


# ── Auth ────────────────────────────────────────────────────────────

def owner_only(func):
    """Decorator: only the configured owner chat may use the bot."""
    @functools.wraps(func)
    async def wrapper(update: Update, context: ContextTypes.DEFAULT_TYPE):
        if update.effective_chat.id != context.bot_data["chat_id"]:
            if update.message:
                await update.message.reply_text("Sorry, this bot is private \U0001f512")
            return
        return await func(update, context)
    return wrapper


# ── Helpers ─────────────────────────────────────────────────────────

def get_db(context: ContextTypes.DEFAULT_TYPE) -> Database:
    return context.bot_data["db"]


def local_now() -> datetime:
    """Naive wall-clock time in the configured timezone."""
    return datetime.now(TIMEZONE).replace(tzinfo=None)


def local_today() -> date:
    return local_now().date()


def parse_day_arg(args: list[str], index: int = 0) -> date | None:
    """Date argument at `index`; missing means today, bad input means None."""
    if len(args) <= index:
        return local_today()
    value = args[index].lower()
    if value == "today":
        return local_today()
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


def parse_type_arg(args: list[str]) -> ReminderType | None:
    if not args:
        return None
    return TYPE_ALIASES.get(args[0].lower())


def format_cycle_summary(state, today: date) -> str:
    cycle = state.cycle
    if not cycle.periods:
        return "No periods recorded yet. Use /periodstart when one begins."

    lines = []
    info = get_phase_info(get_cycle_day(today, cycle, today), cycle.cycle_length)
    if info:
        lines.append(f"{info['emoji']} Day *{info['cycle_day']}*, {info['name']}")
    offset = average_period_duration_offset(cycle.periods)
    if is_in_past_period(today, cycle.periods, offset):
        lines.append("\U0001fa78 Period in progress")
    elif is_in_future_period(today, cycle.expected_next_start, cycle.cycle_length, offset, cycle.periods, today):
        lines.append("\U0001fa78 Period expected")

    used = count_cycles_used(cycle.periods)
    based_on = f" (from {used} cycle{'s' if used != 1 else ''})" if used else ""
    lines.append(f"\U0001f4cf Average cycle: *{cycle.cycle_length}* days{based_on}")
    if cycle.expected_next_start:
        remaining = days_until(cycle.expected_next_start, today)
        lines.append(f"\U0001f52e Next start: *{cycle.expected_next_start:%d %b %Y}* ({remaining} days)")
    return "\n".join(lines)


def format_reminders(state, today: date) -> str:
    lines = []
    for reminder_type, policy in REMINDER_POLICIES.items():
        status = get_status(state.reminder(reminder_type), reminder_type, today)
        message = status.message or status.status.value
        lines.append(f"{policy.emoji} {policy.label}: {message}")
    return "\n".join(lines)


async def _save_and_reply(update: Update, context, state, text: str):
    get_db(context).save_state(state)
    logger.info(f"State saved after {update.message.text}")
    await update.message.reply_text(text, parse_mode="Markdown")


# ── Commands ────────────────────────────────────────────────────────

@owner_only
async def start_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    await update.message.reply_text(
        "Hi! \U0001f495 I keep track of the cycle and the little things that matter.\n\n"
        "/status: cycle day, phase and reminders\n"
        "/today: what needs attention right now\n"
        "/periodstart, /periodend, /removeperiod `[YYYY-MM-DD]`\n"
        f"/done, /undo, /toggle `<{TYPE_USAGE}>`\n"
        "/frequency `<type> <days>`\n"
        "/plan, /unplan `[YYYY-MM-DD]` for date nights\n\n"
        f"_v{VERSION}_",
        parse_mode="Markdown",
    )


@owner_only
async def status_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    state = get_db(context).load_state()
    today = local_today()
    text = f"{format_cycle_summary(state, today)}\n\n{format_reminders(state, today)}"
    await update.message.reply_text(text, parse_mode="Markdown")


@owner_only
async def today_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    state = get_db(context).load_state()
    now = local_now()
    due = [
        REMINDER_POLICIES[t]
        for t in ReminderType
        if is_due_for_today_banner(state.reminder(t), t, now, QUIET_HOURS_START, QUIET_HOURS_END)
    ]
    lines = [f"{p.emoji} {p.label}" for p in due]
    lines.extend(
        f"\U0001f4c5 {d.name} is today!"
        for d in state.important_dates
        if important_date_notice(d, now.date()) == 0
    )
    if not lines:
        await update.message.reply_text("\U0001f389 All done for today!")
        return
    await update.message.reply_text("✨ *Today*\n\n" + "\n".join(lines), parse_mode="Markdown")


@owner_only
async def periodstart_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    day = parse_day_arg(context.args)
    if day is None:
        await update.message.reply_text("Use YYYY-MM-DD, like `2026-02-15`", parse_mode="Markdown")
        return
    state = get_db(context).load_state()
    periods = list(state.cycle.periods)
    updated = add_period_start(periods, day)
    if updated is periods:
        await update.message.reply_text(f"{day} is already part of a recorded period.")
        return
    state = state.with_periods(updated)
    await _save_and_reply(update, context, state, f"✅ Period start recorded for *{day}*\n\n{format_cycle_summary(state, local_today())}")


@owner_only
async def periodend_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    day = parse_day_arg(context.args)
    if day is None:
        await update.message.reply_text("Use YYYY-MM-DD, like `2026-02-15`", parse_mode="Markdown")
        return
    state = get_db(context).load_state()
    state = state.with_periods(add_period_end(list(state.cycle.periods), day))
    await _save_and_reply(update, context, state, f"✅ Period end recorded for *{day}*")


@owner_only
async def removeperiod_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    day = parse_day_arg(context.args)
    if not context.args or day is None:
        await update.message.reply_text("Usage: `/removeperiod <YYYY-MM-DD>`", parse_mode="Markdown")
        return
    state = get_db(context).load_state()
    periods = list(state.cycle.periods)
    updated = remove_period(periods, day)
    if updated is periods:
        await update.message.reply_text(f"No period starts or ends on {day}.")
        return
    await _save_and_reply(update, context, state.with_periods(updated), f"\U0001f5d1 Removed the period on *{day}*")


async def _apply_reminder_action(update: Update, context, action, verb: str):
    reminder_type = parse_type_arg(context.args)
    if reminder_type is None:
        await update.message.reply_text(f"Which one? Use one of: {TYPE_USAGE}")
        return
    state = get_db(context).load_state()
    reminder = state.reminder(reminder_type)
    updated = action(reminder, reminder_type)
    policy = REMINDER_POLICIES[reminder_type]
    if updated is reminder:
        await update.message.reply_text(f"{policy.emoji} {policy.label}: nothing to change.")
        return
    status = get_status(updated, reminder_type, local_today())
    await _save_and_reply(
        update, context, state.with_reminder(reminder_type, updated),
        f"{policy.emoji} {policy.label} {verb}. {status.message}".rstrip(),
    )


@owner_only
async def done_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    await _apply_reminder_action(update, context, lambda r, t: mark_done(r, t, local_now()), "marked done")


@owner_only
async def undo_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    await _apply_reminder_action(update, context, lambda r, t: clear_done(r, today=local_today()), "undone")


@owner_only
async def toggle_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    await _apply_reminder_action(update, context, lambda r, t: toggle_reminder(r), "toggled")


@owner_only
async def frequency_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    if len(context.args) < 2:
        await update.message.reply_text("Usage: `/frequency <type> <days>`", parse_mode="Markdown")
        return
    try:
        days = int(context.args[1])
    except ValueError:
        await update.message.reply_text("Frequency must be a number of days.")
        return
    if not 1 <= days <= MAX_FREQUENCY_DAYS:
        await update.message.reply_text(f"Frequency should be between 1 and {MAX_FREQUENCY_DAYS} days.")
        return
    await _apply_reminder_action(update, context, lambda r, t: set_frequency(r, days), f"set to every {days} days")


@owner_only
async def plan_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    day = parse_day_arg(context.args)
    if not context.args or day is None:
        await update.message.reply_text("Usage: `/plan <YYYY-MM-DD>`", parse_mode="Markdown")
        return
    if day < local_today():
        await update.message.reply_text("That date is in the past. Plan something ahead!")
        return
    state = get_db(context).load_state()
    reminder = state.reminder(ReminderType.DATE_NIGHTS)
    updated = plan_date(reminder, ReminderType.DATE_NIGHTS, day)
    if updated is reminder:
        await update.message.reply_text(f"A date night is already planned for {day}.")
        return
    state = state.with_reminder(ReminderType.DATE_NIGHTS, updated)
    await _save_and_reply(update, context, state, f"\U0001f491 Date night planned for *{day:%a %d %b}*")


@owner_only
async def unplan_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """`/unplan <date>` drops one plan; bare `/unplan` drops every upcoming plan."""
    state = get_db(context).load_state()
    reminder = state.reminder(ReminderType.DATE_NIGHTS)
    if context.args:
        day = parse_day_arg(context.args)
        if day is None:
            await update.message.reply_text("Use YYYY-MM-DD, like `2026-02-15`", parse_mode="Markdown")
            return
        updated = unplan_date(reminder, day)
    else:
        updated = cancel_plans_after(reminder, local_today())
    if updated is reminder:
        await update.message.reply_text("No matching date night plans.")
        return
    state = state.with_reminder(ReminderType.DATE_NIGHTS, updated)
    await _save_and_reply(update, context, state, "\U0001f5d1 Date night plans updated.")

