"""Typed application state and the load-time schema upgrade.

Stored documents come in three shapes:

- v1: a single ``cycle.startDate``/``endDate`` pair, reminders with only
  ``lastDone``.
- v2: ``cycle.periods`` plus per-reminder ``events``.
- v3: adds ``plannedDates`` and ``notes`` to reminders and records
  ``schemaVersion``.

``upgrade_state`` walks a raw document up to the current version and then
parses it into frozen records. Nothing in here raises on bad input: broken
dates are dropped and missing fields take their defaults.
"""
import copy
import logging
import uuid
from dataclasses import dataclass, field, replace
from datetime import date, datetime

from src.constants import DEFAULT_CYCLE_LENGTH, PHASES, ReminderType
from src.cycle import average_cycle_length, next_expected_start
from src.periods import Period
from src.reminders import ReminderNote, ReminderRecord

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 3


@dataclass(frozen=True)
class SuggestionItem:
    id: str
    type: str
    text: str


@dataclass(frozen=True)
class PhaseSuggestions:
    name: str
    items: tuple[SuggestionItem, ...] = ()


@dataclass(frozen=True)
class CycleState:
    periods: tuple[Period, ...] = ()
    cycle_length: int = DEFAULT_CYCLE_LENGTH
    expected_next_start: date | None = None
    suggestions: dict = field(default_factory=dict)

    def with_periods(self, periods) -> "CycleState":
        """Replace periods and recompute the derived forecast fields."""
        periods = tuple(periods)
        if not periods:
            return replace(self, periods=periods, expected_next_start=None)
        cycle_length = average_cycle_length(periods)
        return replace(
            self,
            periods=periods,
            cycle_length=cycle_length,
            expected_next_start=next_expected_start(periods, cycle_length),
        )


@dataclass(frozen=True)
class ImportantDate:
    id: str
    name: str
    date: date
    gifts: str = ""


@dataclass(frozen=True)
class AppState:
    cycle: CycleState = field(default_factory=CycleState)
    reminders: dict = field(default_factory=dict)
    important_dates: tuple[ImportantDate, ...] = ()
    schema_version: int = SCHEMA_VERSION

    def reminder(self, reminder_type) -> ReminderRecord:
        reminder_type = ReminderType(reminder_type)
        return self.reminders.get(reminder_type) or ReminderRecord.default(reminder_type)

    def with_reminder(self, reminder_type, reminder: ReminderRecord) -> "AppState":
        reminders = {**self.reminders, ReminderType(reminder_type): reminder}
        return replace(self, reminders=reminders)

    def with_periods(self, periods) -> "AppState":
        return replace(self, cycle=self.cycle.with_periods(periods))


def default_state() -> AppState:
    return AppState(reminders={t: ReminderRecord.default(t) for t in ReminderType})


# -- Lenient parsing --

def parse_date(value) -> date | None:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value:
        return None
    try:
        if "T" in value:
            return parse_timestamp(value).date()
        return date.fromisoformat(value)
    except (ValueError, AttributeError):
        return None


def parse_timestamp(value) -> datetime | None:
    """Parse a stored timestamp into a naive local datetime."""
    if isinstance(value, datetime):
        moment = value
    elif isinstance(value, date):
        return datetime.combine(value, datetime.min.time())
    elif isinstance(value, str) and value:
        try:
            moment = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None
    if moment.tzinfo is not None:
        moment = moment.astimezone().replace(tzinfo=None)
    return moment


def _parse_int(value, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _as_list(value) -> list:
    return value if isinstance(value, list) else []


# -- Upgrade steps --

def _reminder_docs(doc: dict) -> dict:
    reminders = doc.get("reminders")
    return reminders if isinstance(reminders, dict) else {}


def _upgrade_v1(doc: dict) -> dict:
    cycle = doc.get("cycle")
    if not isinstance(cycle, dict):
        cycle = doc["cycle"] = {}
    if "periods" not in cycle:
        start = cycle.pop("startDate", None)
        end = cycle.pop("endDate", None)
        cycle["periods"] = [{"startDate": start, "endDate": end, "autoEnd": end is None}] if start else []
    for reminder in _reminder_docs(doc).values():
        if isinstance(reminder, dict) and "events" not in reminder:
            last = parse_date(reminder.get("lastDone"))
            reminder["events"] = [last.isoformat()] if last else []
    doc["schemaVersion"] = 2
    return doc


def _upgrade_v2(doc: dict) -> dict:
    for reminder in _reminder_docs(doc).values():
        if isinstance(reminder, dict):
            reminder.setdefault("notes", [])
            reminder.setdefault("plannedDates", [])
    doc["schemaVersion"] = 3
    return doc


UPGRADES = {1: _upgrade_v1, 2: _upgrade_v2}


def _detect_version(doc: dict) -> int:
    if "schemaVersion" in doc:
        return max(1, _parse_int(doc["schemaVersion"], 1))
    cycle = doc.get("cycle")
    return 2 if isinstance(cycle, dict) and "periods" in cycle else 1


def upgrade_state(raw: dict | None) -> AppState:
    """Bring a stored document up to SCHEMA_VERSION and parse it."""
    if not isinstance(raw, dict):
        return default_state()
    doc = copy.deepcopy(raw)
    version = _detect_version(doc)
    while version < SCHEMA_VERSION:
        logger.info(f"Upgrading stored state from schema v{version}")
        doc = UPGRADES[version](doc)
        version = doc["schemaVersion"]
    return _parse_state(doc)


def _parse_period(raw) -> Period | None:
    if not isinstance(raw, dict):
        return None
    start = parse_date(raw.get("startDate"))
    if start is None:
        return None
    end = parse_date(raw.get("endDate"))
    if end is not None and end < start:
        end = None
    return Period(start, end, bool(raw.get("autoEnd", False)))


def _parse_suggestions(raw) -> dict:
    suggestions = {}
    if not isinstance(raw, dict):
        return suggestions
    for phase, data in raw.items():
        if phase not in PHASES or not isinstance(data, dict):
            continue
        items = tuple(
            SuggestionItem(str(item.get("id", "")), item.get("type", "do"), item.get("text", ""))
            for item in _as_list(data.get("items"))
            if isinstance(item, dict)
        )
        suggestions[phase] = PhaseSuggestions(data.get("name") or PHASES[phase]["name"], items)
    return suggestions


def _parse_cycle(raw) -> CycleState:
    raw = raw if isinstance(raw, dict) else {}
    periods = tuple(p for p in map(_parse_period, _as_list(raw.get("periods"))) if p is not None)
    stored_length = _parse_int(raw.get("cycleLength"), DEFAULT_CYCLE_LENGTH)
    state = CycleState(
        cycle_length=stored_length if stored_length > 0 else DEFAULT_CYCLE_LENGTH,
        suggestions=_parse_suggestions(raw.get("suggestions")),
    )
    return state.with_periods(periods)


def _parse_reminder(raw, reminder_type: ReminderType) -> ReminderRecord:
    default = ReminderRecord.default(reminder_type)
    if not isinstance(raw, dict):
        return default
    events = {d for d in map(parse_date, _as_list(raw.get("events"))) if d is not None}
    last_done = parse_timestamp(raw.get("lastDone"))
    if events and (last_done is None or last_done.date() < max(events)):
        last_done = datetime.combine(max(events), datetime.min.time())
    notes = tuple(
        ReminderNote(str(n.get("id") or f"note-{uuid.uuid4().hex}"), n.get("type", "idea"), n.get("text", ""))
        for n in _as_list(raw.get("notes"))
        if isinstance(n, dict)
    )
    planned = ()
    if reminder_type == ReminderType.DATE_NIGHTS:
        planned = tuple(sorted({d for d in map(parse_date, _as_list(raw.get("plannedDates"))) if d is not None}))
    frequency = _parse_int(raw.get("frequency"), default.frequency)
    return ReminderRecord(
        enabled=bool(raw.get("enabled", default.enabled)),
        frequency=frequency if frequency > 0 else default.frequency,
        last_done=last_done,
        events=tuple(sorted(events, reverse=True)),
        notes=notes,
        planned_dates=planned,
    )


def _parse_important_date(raw) -> ImportantDate | None:
    if not isinstance(raw, dict):
        return None
    day = parse_date(raw.get("date"))
    if day is None:
        return None
    gifts = raw.get("gifts") or ""
    if isinstance(gifts, list):
        gifts = ", ".join(str(g) for g in gifts)
    return ImportantDate(str(raw.get("id") or uuid.uuid4().hex), raw.get("name") or "", day, gifts)


def _parse_state(doc: dict) -> AppState:
    raw_reminders = _reminder_docs(doc)
    return AppState(
        cycle=_parse_cycle(doc.get("cycle")),
        reminders={t: _parse_reminder(raw_reminders.get(t.value), t) for t in ReminderType},
        important_dates=tuple(
            d for d in map(_parse_important_date, _as_list(doc.get("importantDates"))) if d is not None
        ),
        schema_version=SCHEMA_VERSION,
    )


# -- Serialization --

def _iso(value) -> str | None:
    return value.isoformat() if value is not None else None


def state_to_dict(state: AppState) -> dict:
    cycle = state.cycle
    return {
        "schemaVersion": SCHEMA_VERSION,
        "cycle": {
            "periods": [
                {"startDate": _iso(p.start_date), "endDate": _iso(p.end_date), "autoEnd": p.auto_end}
                for p in cycle.periods
            ],
            "cycleLength": cycle.cycle_length,
            "expectedNextStart": _iso(cycle.expected_next_start),
            "suggestions": {
                phase: {
                    "name": data.name,
                    "items": [{"id": i.id, "type": i.type, "text": i.text} for i in data.items],
                }
                for phase, data in cycle.suggestions.items()
            },
        },
        "reminders": {
            reminder_type.value: {
                "enabled": reminder.enabled,
                "frequency": reminder.frequency,
                "lastDone": _iso(reminder.last_done),
                "events": [d.isoformat() for d in reminder.events],
                "notes": [{"id": n.id, "type": n.type, "text": n.text} for n in reminder.notes],
                "plannedDates": [d.isoformat() for d in reminder.planned_dates],
            }
            for reminder_type, reminder in state.reminders.items()
        },
        "importantDates": [
            {"id": d.id, "name": d.name, "date": d.date.isoformat(), "gifts": d.gifts}
            for d in state.important_dates
        ],
    }


# -- Phase suggestions --

def _phase_suggestions(cycle: CycleState, phase: str) -> PhaseSuggestions:
    return cycle.suggestions.get(phase) or PhaseSuggestions(PHASES[phase]["name"])


def add_suggestion(cycle: CycleState, phase: str, text: str, item_type: str = "do") -> CycleState:
    text = text.strip()
    if phase not in PHASES or not text:
        return cycle
    current = _phase_suggestions(cycle, phase)
    item = SuggestionItem(f"item-{uuid.uuid4().hex}", item_type, text)
    updated = replace(current, items=(*current.items, item))
    return replace(cycle, suggestions={**cycle.suggestions, phase: updated})


def remove_suggestion(cycle: CycleState, phase: str, item_id: str) -> CycleState:
    current = cycle.suggestions.get(phase)
    if current is None:
        return cycle
    items = tuple(i for i in current.items if i.id != item_id)
    if len(items) == len(current.items):
        return cycle
    return replace(cycle, suggestions={**cycle.suggestions, phase: replace(current, items=items)})


def update_suggestion_text(cycle: CycleState, phase: str, item_id: str, text: str) -> CycleState:
    current = cycle.suggestions.get(phase)
    if current is None or not any(i.id == item_id for i in current.items):
        return cycle
    items = tuple(replace(i, text=text) if i.id == item_id else i for i in current.items)
    return replace(cycle, suggestions={**cycle.suggestions, phase: replace(current, items=items)})
