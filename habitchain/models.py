"""Value types for the recurrence and habit-streak engine.

A RecurrenceRule carries exactly one schedule variant. Each variant holds
only the fields that are meaningful for its frequency, so a monthly rule can
never carry weekdays and a weekly rule can never carry a day-of-month:

    RecurrenceRule(WeeklySchedule(interval=2, days_of_week={2, 4}))
    RecurrenceRule(MonthlySchedule(day_of_month=31), end_date=date(2026, 12, 31))

A Habit owns its Task by value. The engines in `engines/` mutate habits in
place; nothing here knows about storage.

Datetime fields are normalized to calendar days on construction using the
module default timezone (see `dt_utils.set_default_timezone`), not the
calendar an engine is later given. Callers working in another timezone
should pass plain dates, or convert with `CalendarContext.start_of_day` first.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from typing import Any, ClassVar
import uuid

from . import const
from .utils.dt_utils import default_calendar, to_calendar_day

# ==============================================================================
# EXCEPTIONS
# ==============================================================================


class InvalidRuleError(ValueError):
    """Raised when a recurrence rule is constructed with invalid fields.

    Attributes:
        field: Name of the offending rule field (DATA_RULE_* constant)
        value: The rejected value
    """

    def __init__(self, field: str, value: Any, message: str) -> None:
        self.field = field
        self.value = value
        super().__init__(f"Invalid recurrence rule {field}={value!r}: {message}")


class InvalidHabitError(ValueError):
    """Raised when a habit is constructed with invalid fields."""

    def __init__(self, field: str, value: Any, message: str) -> None:
        self.field = field
        self.value = value
        super().__init__(f"Invalid habit {field}={value!r}: {message}")


def _validate_interval(interval: Any) -> None:
    if isinstance(interval, bool) or not isinstance(interval, int):
        raise InvalidRuleError(
            const.DATA_RULE_INTERVAL, interval, "interval must be an integer"
        )
    if interval < const.MIN_INTERVAL:
        raise InvalidRuleError(
            const.DATA_RULE_INTERVAL,
            interval,
            f"interval must be >= {const.MIN_INTERVAL}",
        )


# ==============================================================================
# SCHEDULE VARIANTS
# ==============================================================================


@dataclass(frozen=True)
class DailySchedule:
    """Every `interval` days."""

    frequency: ClassVar[str] = const.FREQUENCY_DAILY

    interval: int = 1

    def __post_init__(self) -> None:
        _validate_interval(self.interval)


@dataclass(frozen=True)
class WeeklySchedule:
    """Every `interval` weeks, optionally on specific weekdays.

    Empty `days_of_week` means "same weekday as the reference day".
    """

    frequency: ClassVar[str] = const.FREQUENCY_WEEKLY

    interval: int = 1
    days_of_week: frozenset[int] = frozenset()

    def __post_init__(self) -> None:
        _validate_interval(self.interval)
        days = frozenset(self.days_of_week)
        for day in days:
            if isinstance(day, bool) or not isinstance(day, int):
                raise InvalidRuleError(
                    const.DATA_RULE_DAYS_OF_WEEK, day, "weekday must be an integer"
                )
            if not const.WEEKDAY_MIN <= day <= const.WEEKDAY_MAX:
                raise InvalidRuleError(
                    const.DATA_RULE_DAYS_OF_WEEK,
                    day,
                    f"weekday must be between {const.WEEKDAY_MIN} and "
                    f"{const.WEEKDAY_MAX}",
                )
        object.__setattr__(self, "days_of_week", days)


@dataclass(frozen=True)
class MonthlySchedule:
    """Every `interval` months on `day_of_month` (clamped to short months).

    Without `day_of_month` the reference day's day-of-month is used.
    """

    frequency: ClassVar[str] = const.FREQUENCY_MONTHLY

    interval: int = 1
    day_of_month: int | None = None

    def __post_init__(self) -> None:
        _validate_interval(self.interval)
        if self.day_of_month is None:
            return
        if isinstance(self.day_of_month, bool) or not isinstance(
            self.day_of_month, int
        ):
            raise InvalidRuleError(
                const.DATA_RULE_DAY_OF_MONTH,
                self.day_of_month,
                "day of month must be an integer",
            )
        if not const.DAY_OF_MONTH_MIN <= self.day_of_month <= const.DAY_OF_MONTH_MAX:
            raise InvalidRuleError(
                const.DATA_RULE_DAY_OF_MONTH,
                self.day_of_month,
                f"day of month must be between {const.DAY_OF_MONTH_MIN} and "
                f"{const.DAY_OF_MONTH_MAX}",
            )


@dataclass(frozen=True)
class CustomSchedule:
    """Stepped like a daily schedule; `interval=None` carries no schedule."""

    frequency: ClassVar[str] = const.FREQUENCY_CUSTOM

    interval: int | None = None

    def __post_init__(self) -> None:
        if self.interval is not None:
            _validate_interval(self.interval)


Schedule = DailySchedule | WeeklySchedule | MonthlySchedule | CustomSchedule

SCHEDULE_TYPES: tuple[type, ...] = (
    DailySchedule,
    WeeklySchedule,
    MonthlySchedule,
    CustomSchedule,
)


# ==============================================================================
# RECURRENCE RULE
# ==============================================================================


def _as_day(value: date | datetime | None) -> date | None:
    """Calendar day of `value` in the default timezone."""
    if value is None:
        return None
    return to_calendar_day(value)


@dataclass
class RecurrenceRule:
    """Declarative repetition rule for a task.

    Attributes:
        schedule: One schedule variant (daily, weekly, monthly, custom).
        end_date: Last day an occurrence may fall on (inclusive).
        exceptions: Days excluded even though they match the pattern.
        anchor_date: Day the rule counts from. Week 0 of an interval-aligned
            weekly schedule is the week containing it; it also fixes the phase
            used by validity checks.

    Aware datetimes passed for any date field are converted in the default
    timezone.
    """

    schedule: Schedule
    end_date: date | None = None
    exceptions: set[date] = field(default_factory=set)
    anchor_date: date | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.schedule, SCHEDULE_TYPES):
            raise InvalidRuleError(
                const.DATA_RULE_FREQUENCY,
                self.schedule,
                "schedule must be a Daily/Weekly/Monthly/Custom schedule",
            )
        self.end_date = _as_day(self.end_date)
        self.anchor_date = _as_day(self.anchor_date)
        self.exceptions = {to_calendar_day(day) for day in self.exceptions}

    @property
    def frequency(self) -> str:
        """FREQUENCY_* tag of the schedule variant."""
        return self.schedule.frequency

    @property
    def interval(self) -> int | None:
        """Step of the schedule (None for a custom rule without schedule)."""
        return self.schedule.interval

    @property
    def has_schedule(self) -> bool:
        """False only for a custom rule that carries no schedule."""
        return self.schedule.interval is not None

    def with_schedule(self, schedule: Schedule) -> RecurrenceRule:
        """Return a copy with a different schedule (frequency/interval change)."""
        return replace(self, schedule=schedule, exceptions=set(self.exceptions))


# ==============================================================================
# TASK & HABIT
# ==============================================================================


@dataclass
class Task:
    """The task a habit owns. Category and metadata are not interpreted."""

    title: str
    is_completed: bool = False
    category: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def mark_completed(self) -> None:
        self.is_completed = True

    def mark_incomplete(self) -> None:
        self.is_completed = False


def _new_habit_id() -> str:
    return str(uuid.uuid4())


def _today() -> date:
    return default_calendar().today()


@dataclass
class Habit:
    """A habit and its completion ledger.

    `current_streak`, `best_streak` and `total_completions` are caches kept
    in sync by the streak engine on every mutation.
    Datetime inputs are normalized in the default timezone.
    """

    task: Task
    completion_dates: set[date] = field(default_factory=set)
    current_streak: int = 0
    best_streak: int = 0
    total_completions: int = 0
    protection_days_used: int = 0
    last_protection_date: date | None = None
    protection_dates: set[date] = field(default_factory=set)
    target_completions_per_period: int | None = None
    created_date: date = field(default_factory=_today)
    habit_id: str = field(default_factory=_new_habit_id)

    def __post_init__(self) -> None:
        target = self.target_completions_per_period
        if target is not None and (
            isinstance(target, bool) or not isinstance(target, int) or target < 1
        ):
            raise InvalidHabitError(
                const.DATA_HABIT_TARGET_COMPLETIONS,
                target,
                "target completions must be at least 1",
            )
        self.completion_dates = {to_calendar_day(day) for day in self.completion_dates}
        self.protection_dates = {to_calendar_day(day) for day in self.protection_dates}
        self.created_date = to_calendar_day(self.created_date)
        self.last_protection_date = _as_day(self.last_protection_date)
        self.total_completions = len(self.completion_dates)

    @classmethod
    def create(
        cls,
        title: str,
        *,
        category: str | None = None,
        target_completions_per_period: int | None = None,
        created_date: date | None = None,
    ) -> Habit:
        """Create a habit together with the task it owns."""
        return cls(
            task=Task(title=title, category=category),
            target_completions_per_period=target_completions_per_period,
            created_date=created_date or _today(),
        )
