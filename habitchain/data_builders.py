"""Stored-representation helpers for rules, habits and calendar options.

This module is the SINGLE SOURCE OF TRUTH for:
- Stored field defaults
- Validation of stored dicts (voluptuous schemas)
- Building live objects (RecurrenceRule, Habit, CalendarContext) from dicts
- Serializing live objects back to dicts ready for storage

## Key Concepts

### Schemas
Each stored shape has a schema (`RECURRENCE_RULE_SCHEMA`, `HABIT_SCHEMA`,
`CALENDAR_OPTIONS_SCHEMA`). Schemas apply defaults for optional fields and
turn ISO date strings into `datetime.date` values.

### Build Functions
Each shape has a `build_<entity>()` function that:
- Validates the dict against its schema
- Converts schema and model errors into EntityValidationError
- Returns the live object

Streak caches in a stored habit are informational only: `build_habit()`
recomputes them from the completion ledger.

### Serialize Functions
`recurrence_rule_to_dict()` and `habit_to_dict()` write DATA_* keys with ISO
dates and sorted lists, so equal objects always serialize identically.

See Also:
- type_defs.py: TypedDict definitions of the stored shapes
- models.py: the live dataclasses
"""

from __future__ import annotations

from datetime import date
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import voluptuous as vol

from . import const
from .engines.streak_engine import StreakEngine
from .models import (
    CustomSchedule,
    DailySchedule,
    Habit,
    InvalidHabitError,
    InvalidRuleError,
    MonthlySchedule,
    RecurrenceRule,
    Schedule,
    Task,
    WeeklySchedule,
)
from .type_defs import HabitData, RecurrenceRuleData, TaskData
from .utils.dt_utils import CalendarContext, default_calendar, dt_parse_date

# ==============================================================================
# EXCEPTIONS
# ==============================================================================


class EntityValidationError(Exception):
    """Validation error with field-specific information.

    Raised when a stored dict fails schema or business-rule validation. The
    field attribute names the DATA_* / CONF_* key that caused the failure.

    Attributes:
        field: The key identifying the field that failed
        message: Human-readable description of the failure

    Example:
        raise EntityValidationError(
            field=const.DATA_RULE_INTERVAL,
            message="interval must be >= 1",
        )
    """

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        self.message = message
        super().__init__(f"{field}: {message}")


# ==============================================================================
# FIELD VALIDATORS
# ==============================================================================


def _iso_date(value: Any) -> date:
    """Voluptuous validator: ISO date string (or date) to `datetime.date`."""
    parsed = dt_parse_date(value)
    if parsed is None:
        raise vol.Invalid(f"expected an ISO date, got {value!r}")
    return parsed


def _time_zone(value: Any) -> ZoneInfo:
    """Voluptuous validator: IANA timezone name to ZoneInfo."""
    if isinstance(value, ZoneInfo):
        return value
    if not isinstance(value, str) or not value:
        raise vol.Invalid(f"expected a timezone name, got {value!r}")
    try:
        return ZoneInfo(value)
    except (ZoneInfoNotFoundError, ValueError) as err:
        raise vol.Invalid(f"unknown timezone {value!r}") from err


def _strict_int(value: Any) -> int:
    """Voluptuous validator: int that is not a bool."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise vol.Invalid(f"expected an integer, got {value!r}")
    return value


_NON_NEGATIVE_INT = vol.All(_strict_int, vol.Range(min=0))


# ==============================================================================
# SCHEMAS
# ==============================================================================

RECURRENCE_RULE_SCHEMA = vol.Schema(
    {
        vol.Required(const.DATA_RULE_FREQUENCY): vol.In(const.FREQUENCY_OPTIONS),
        vol.Required(const.DATA_RULE_INTERVAL): vol.Any(
            None, vol.All(_strict_int, vol.Range(min=const.MIN_INTERVAL))
        ),
        vol.Optional(const.DATA_RULE_DAYS_OF_WEEK, default=list): [
            vol.All(
                _strict_int, vol.Range(min=const.WEEKDAY_MIN, max=const.WEEKDAY_MAX)
            )
        ],
        vol.Optional(const.DATA_RULE_DAY_OF_MONTH, default=None): vol.Any(
            None,
            vol.All(
                _strict_int,
                vol.Range(min=const.DAY_OF_MONTH_MIN, max=const.DAY_OF_MONTH_MAX),
            ),
        ),
        vol.Optional(const.DATA_RULE_END_DATE, default=None): vol.Any(None, _iso_date),
        vol.Optional(const.DATA_RULE_EXCEPTIONS, default=list): [_iso_date],
        vol.Optional(const.DATA_RULE_ANCHOR_DATE, default=None): vol.Any(
            None, _iso_date
        ),
    },
    extra=vol.REMOVE_EXTRA,
)

TASK_SCHEMA = vol.Schema(
    {
        vol.Required(const.DATA_TASK_TITLE): str,
        vol.Optional(const.DATA_TASK_IS_COMPLETED, default=False): bool,
        vol.Optional(const.DATA_TASK_CATEGORY, default=None): vol.Any(None, str),
        vol.Optional(const.DATA_TASK_METADATA, default=dict): dict,
    },
    extra=vol.REMOVE_EXTRA,
)

HABIT_SCHEMA = vol.Schema(
    {
        vol.Optional(const.DATA_HABIT_ID): vol.All(str, vol.Length(min=1)),
        vol.Required(const.DATA_HABIT_TASK): TASK_SCHEMA,
        vol.Optional(const.DATA_HABIT_COMPLETION_DATES, default=list): [_iso_date],
        vol.Optional(const.DATA_HABIT_CURRENT_STREAK, default=0): _NON_NEGATIVE_INT,
        vol.Optional(const.DATA_HABIT_BEST_STREAK, default=0): _NON_NEGATIVE_INT,
        vol.Optional(
            const.DATA_HABIT_TOTAL_COMPLETIONS, default=0
        ): _NON_NEGATIVE_INT,
        vol.Optional(
            const.DATA_HABIT_PROTECTION_DAYS_USED, default=0
        ): _NON_NEGATIVE_INT,
        vol.Optional(const.DATA_HABIT_LAST_PROTECTION_DATE, default=None): vol.Any(
            None, _iso_date
        ),
        vol.Optional(const.DATA_HABIT_PROTECTION_DATES, default=list): [_iso_date],
        vol.Optional(const.DATA_HABIT_TARGET_COMPLETIONS, default=None): vol.Any(
            None, vol.All(_strict_int, vol.Range(min=1))
        ),
        vol.Optional(const.DATA_HABIT_CREATED_DATE, default=None): vol.Any(
            None, _iso_date
        ),
    },
    extra=vol.REMOVE_EXTRA,
)

CALENDAR_OPTIONS_SCHEMA = vol.Schema(
    {
        vol.Optional(
            const.CONF_TIME_ZONE, default=const.DEFAULT_TIME_ZONE_NAME
        ): _time_zone,
        vol.Optional(const.CONF_FIRST_WEEKDAY, default=const.DEFAULT_FIRST_WEEKDAY): vol.All(
            vol.Coerce(int), vol.Range(min=const.WEEKDAY_MIN, max=const.WEEKDAY_MAX)
        ),
    },
    extra=vol.REMOVE_EXTRA,
)


def _validate(schema: vol.Schema, data: Any, entity: str) -> dict[str, Any]:
    """Run a schema, converting voluptuous errors to EntityValidationError."""
    if not isinstance(data, dict):
        raise EntityValidationError(entity, f"expected a dict, got {type(data).__name__}")
    try:
        return schema(data)
    except vol.Invalid as err:
        field = ".".join(str(part) for part in err.path) or entity
        raise EntityValidationError(field, err.msg) from err


# ==============================================================================
# RECURRENCE RULES
# ==============================================================================


def _build_schedule(validated: dict[str, Any]) -> Schedule:
    frequency = validated[const.DATA_RULE_FREQUENCY]
    interval = validated[const.DATA_RULE_INTERVAL]
    days_of_week = validated[const.DATA_RULE_DAYS_OF_WEEK]
    day_of_month = validated[const.DATA_RULE_DAY_OF_MONTH]

    if days_of_week and frequency != const.FREQUENCY_WEEKLY:
        raise EntityValidationError(
            const.DATA_RULE_DAYS_OF_WEEK, f"not allowed for {frequency} rules"
        )
    if day_of_month is not None and frequency != const.FREQUENCY_MONTHLY:
        raise EntityValidationError(
            const.DATA_RULE_DAY_OF_MONTH, f"not allowed for {frequency} rules"
        )
    if interval is None and frequency != const.FREQUENCY_CUSTOM:
        raise EntityValidationError(
            const.DATA_RULE_INTERVAL, f"required for {frequency} rules"
        )

    if frequency == const.FREQUENCY_DAILY:
        return DailySchedule(interval=interval)
    if frequency == const.FREQUENCY_WEEKLY:
        return WeeklySchedule(interval=interval, days_of_week=frozenset(days_of_week))
    if frequency == const.FREQUENCY_MONTHLY:
        return MonthlySchedule(interval=interval, day_of_month=day_of_month)
    return CustomSchedule(interval=interval)


def build_recurrence_rule(data: dict[str, Any]) -> RecurrenceRule:
    """Build a RecurrenceRule from its stored dict.

    Args:
        data: Dict with DATA_RULE_* keys (see RecurrenceRuleData)

    Returns:
        The validated rule

    Raises:
        EntityValidationError: If the dict does not describe a valid rule
    """
    validated = _validate(RECURRENCE_RULE_SCHEMA, data, "recurrence_rule")
    try:
        return RecurrenceRule(
            schedule=_build_schedule(validated),
            end_date=validated[const.DATA_RULE_END_DATE],
            exceptions=set(validated[const.DATA_RULE_EXCEPTIONS]),
            anchor_date=validated[const.DATA_RULE_ANCHOR_DATE],
        )
    except InvalidRuleError as err:
        raise EntityValidationError(err.field, str(err)) from err


def recurrence_rule_to_dict(rule: RecurrenceRule) -> RecurrenceRuleData:
    """Serialize a RecurrenceRule to its stored dict."""
    data: RecurrenceRuleData = {
        const.DATA_RULE_FREQUENCY: rule.frequency,
        const.DATA_RULE_INTERVAL: rule.interval,
    }
    schedule = rule.schedule
    if isinstance(schedule, WeeklySchedule):
        data[const.DATA_RULE_DAYS_OF_WEEK] = sorted(schedule.days_of_week)
    if isinstance(schedule, MonthlySchedule):
        data[const.DATA_RULE_DAY_OF_MONTH] = schedule.day_of_month
    data[const.DATA_RULE_END_DATE] = (
        rule.end_date.isoformat() if rule.end_date else None
    )
    data[const.DATA_RULE_EXCEPTIONS] = [day.isoformat() for day in sorted(rule.exceptions)]
    data[const.DATA_RULE_ANCHOR_DATE] = (
        rule.anchor_date.isoformat() if rule.anchor_date else None
    )
    return data


# ==============================================================================
# HABITS
# ==============================================================================


def build_habit(
    data: dict[str, Any],
    calendar: CalendarContext | None = None,
    today: date | None = None,
) -> Habit:
    """Build a Habit from its stored dict, recomputing the streak caches.

    Args:
        data: Dict with DATA_HABIT_* keys (see HabitData)
        calendar: Calendar used for the streak recompute
        today: Reference "today" for the streak recompute

    Raises:
        EntityValidationError: If the dict does not describe a valid habit
    """
    calendar = calendar or default_calendar()
    validated = _validate(HABIT_SCHEMA, data, "habit")
    task_data = validated[const.DATA_HABIT_TASK]

    kwargs: dict[str, Any] = {
        "task": Task(
            title=task_data[const.DATA_TASK_TITLE],
            is_completed=task_data[const.DATA_TASK_IS_COMPLETED],
            category=task_data[const.DATA_TASK_CATEGORY],
            metadata=dict(task_data[const.DATA_TASK_METADATA]),
        ),
        "completion_dates": set(validated[const.DATA_HABIT_COMPLETION_DATES]),
        "protection_days_used": validated[const.DATA_HABIT_PROTECTION_DAYS_USED],
        "last_protection_date": validated[const.DATA_HABIT_LAST_PROTECTION_DATE],
        "protection_dates": set(validated[const.DATA_HABIT_PROTECTION_DATES]),
        "target_completions_per_period": validated[const.DATA_HABIT_TARGET_COMPLETIONS],
        "created_date": validated[const.DATA_HABIT_CREATED_DATE] or calendar.today(),
    }
    if const.DATA_HABIT_ID in validated:
        kwargs["habit_id"] = validated[const.DATA_HABIT_ID]

    try:
        habit = Habit(**kwargs)
    except InvalidHabitError as err:
        raise EntityValidationError(err.field, str(err)) from err

    StreakEngine(calendar).recompute_streaks(habit, today=today)

    stored_streaks = (
        validated[const.DATA_HABIT_CURRENT_STREAK],
        validated[const.DATA_HABIT_BEST_STREAK],
    )
    if stored_streaks != (habit.current_streak, habit.best_streak):
        const.LOGGER.debug(
            "build_habit: %s stored streaks %s replaced by recomputed (%s, %s)",
            habit.habit_id,
            stored_streaks,
            habit.current_streak,
            habit.best_streak,
        )
    return habit


def _task_to_dict(task: Task) -> TaskData:
    return {
        const.DATA_TASK_TITLE: task.title,
        const.DATA_TASK_IS_COMPLETED: task.is_completed,
        const.DATA_TASK_CATEGORY: task.category,
        const.DATA_TASK_METADATA: dict(task.metadata),
    }


def habit_to_dict(habit: Habit) -> HabitData:
    """Serialize a Habit to its stored dict."""
    return {
        const.DATA_HABIT_ID: habit.habit_id,
        const.DATA_HABIT_TASK: _task_to_dict(habit.task),
        const.DATA_HABIT_COMPLETION_DATES: [
            day.isoformat() for day in sorted(habit.completion_dates)
        ],
        const.DATA_HABIT_CURRENT_STREAK: habit.current_streak,
        const.DATA_HABIT_BEST_STREAK: habit.best_streak,
        const.DATA_HABIT_TOTAL_COMPLETIONS: habit.total_completions,
        const.DATA_HABIT_PROTECTION_DAYS_USED: habit.protection_days_used,
        const.DATA_HABIT_LAST_PROTECTION_DATE: (
            habit.last_protection_date.isoformat()
            if habit.last_protection_date
            else None
        ),
        const.DATA_HABIT_PROTECTION_DATES: [
            day.isoformat() for day in sorted(habit.protection_dates)
        ],
        const.DATA_HABIT_TARGET_COMPLETIONS: habit.target_completions_per_period,
        const.DATA_HABIT_CREATED_DATE: habit.created_date.isoformat(),
    }


# ==============================================================================
# CALENDAR OPTIONS
# ==============================================================================


def build_calendar_context(options: dict[str, Any] | None = None) -> CalendarContext:
    """Build a CalendarContext from options (timezone name, first weekday).

    Example:
        build_calendar_context({"time_zone": "Europe/Berlin", "first_weekday": 2})
    """
    validated = _validate(CALENDAR_OPTIONS_SCHEMA, options or {}, "calendar")
    return CalendarContext(
        time_zone=validated[const.CONF_TIME_ZONE],
        first_weekday=validated[const.CONF_FIRST_WEEKDAY],
    )
