from dataclasses import dataclass
from enum import Enum

DEFAULT_CYCLE_LENGTH = 28
DEFAULT_PERIOD_DURATION_DAYS = 4  # offset from start, so 5 days including both ends
MAX_CYCLE_LENGTH_DAYS = 50
MAX_PERIOD_LENGTH_DAYS = 10
PERIOD_NOTIFICATION_DAYS_BEFORE = 8
START_SHIFT_TOLERANCE_DAYS = 3
FORECAST_HORIZON_DAYS = 365

# Fixed absolute bands; they do not scale with cycle length.
PHASE_BANDS = (
    (5, "period"),
    (9, "post-period"),
    (15, "ovulation"),
    (20, "transitional"),
)
LAST_PHASE = "pre-period"

PHASES = {
    "period": {"name": "Moon Days", "emoji": "\U0001f31b"},
    "post-period": {"name": "Fresh Start", "emoji": "\U0001f331"},
    "ovulation": {"name": "Shining Peak", "emoji": "✨"},
    "transitional": {"name": "Steady Days", "emoji": "\U0001f33c"},
    "pre-period": {"name": "Wind Down", "emoji": "\U0001f343"},
}

IMPORTANT_DATE_NOTICE_DAYS = (0, 1, 7, 30)

QUIET_HOURS_START = 21
QUIET_HOURS_END = 6
GENERAL_COOLDOWN_HOURS = 1


class ReminderType(str, Enum):
    FLOWERS = "flowers"
    SURPRISES = "surprises"
    DATE_NIGHTS = "dateNights"
    GENERAL = "general"


class ReminderState(str, Enum):
    DISABLED = "disabled"
    PENDING = "pending"
    DUE = "due"
    OK = "ok"
    PLANNED = "planned"
    PLANNED_TODAY = "planned-today"
    PLANNED_OVERDUE = "planned-overdue"


@dataclass(frozen=True)
class ReminderPolicy:
    label: str
    emoji: str
    default_frequency: int
    tracks_overdue: bool = True
    uses_quiet_hours: bool = False
    supports_planning: bool = False
    allows_same_day_repeat: bool = False


REMINDER_POLICIES = {
    ReminderType.FLOWERS: ReminderPolicy("Flowers", "\U0001f338", 7),
    ReminderType.SURPRISES: ReminderPolicy("Small Surprises", "\U0001f381", 14),
    ReminderType.DATE_NIGHTS: ReminderPolicy(
        "Date Nights", "\U0001f491", 7, supports_planning=True,
    ),
    ReminderType.GENERAL: ReminderPolicy(
        "Show love", "\U0001f495", 1,
        tracks_overdue=False,
        uses_quiet_hours=True,
        allows_same_day_repeat=True,
    ),
}


def get_policy(reminder_type) -> ReminderPolicy:
    return REMINDER_POLICIES[ReminderType(reminder_type)]
