# File: const.py
"""Constants for the habitchain engine.

This file centralizes frequency identifiers, period keys, defaults and
safety limits shared by the engines, the data builders and the tests.
"""

import logging
from typing import Final

# ------------------------------------------------------------------------------------------------
# General
# ------------------------------------------------------------------------------------------------

# Logger
LOGGER = logging.getLogger(__package__)

# ------------------------------------------------------------------------------------------------
# Frequencies
# ------------------------------------------------------------------------------------------------
FREQUENCY_DAILY = "daily"
FREQUENCY_WEEKLY = "weekly"
FREQUENCY_MONTHLY = "monthly"
FREQUENCY_CUSTOM = "custom"

FREQUENCY_OPTIONS: Final = (
    FREQUENCY_DAILY,
    FREQUENCY_WEEKLY,
    FREQUENCY_MONTHLY,
    FREQUENCY_CUSTOM,
)

# ------------------------------------------------------------------------------------------------
# Weekdays (1=Sunday ... 7=Saturday)
# ------------------------------------------------------------------------------------------------
WEEKDAY_SUNDAY = 1
WEEKDAY_MONDAY = 2
WEEKDAY_TUESDAY = 3
WEEKDAY_WEDNESDAY = 4
WEEKDAY_THURSDAY = 5
WEEKDAY_FRIDAY = 6
WEEKDAY_SATURDAY = 7

WEEKDAY_MIN = WEEKDAY_SUNDAY
WEEKDAY_MAX = WEEKDAY_SATURDAY

WEEKDAYS_WORKWEEK: Final = frozenset(
    {
        WEEKDAY_MONDAY,
        WEEKDAY_TUESDAY,
        WEEKDAY_WEDNESDAY,
        WEEKDAY_THURSDAY,
        WEEKDAY_FRIDAY,
    }
)

# RFC 5545 two-letter codes, indexed by weekday number
WEEKDAY_RRULE_CODES: Final = {
    WEEKDAY_SUNDAY: "SU",
    WEEKDAY_MONDAY: "MO",
    WEEKDAY_TUESDAY: "TU",
    WEEKDAY_WEDNESDAY: "WE",
    WEEKDAY_THURSDAY: "TH",
    WEEKDAY_FRIDAY: "FR",
    WEEKDAY_SATURDAY: "SA",
}

# Day-of-month bounds
DAY_OF_MONTH_MIN = 1
DAY_OF_MONTH_MAX = 31

# Interval
MIN_INTERVAL = 1

# ------------------------------------------------------------------------------------------------
# Periods (statistics buckets)
# ------------------------------------------------------------------------------------------------
PERIOD_DAILY = "daily"
PERIOD_WEEKLY = "weekly"
PERIOD_MONTHLY = "monthly"
PERIOD_YEARLY = "yearly"

PERIOD_FORMAT_DAILY = "%Y-%m-%d"
PERIOD_FORMAT_WEEKLY = "%G-W%V"
PERIOD_FORMAT_MONTHLY = "%Y-%m"
PERIOD_FORMAT_YEARLY = "%Y"

PERIOD_OPTIONS: Final = (
    PERIOD_DAILY,
    PERIOD_WEEKLY,
    PERIOD_MONTHLY,
    PERIOD_YEARLY,
)

DAYS_PER_WEEK = 7

# ------------------------------------------------------------------------------------------------
# Protection Days
# ------------------------------------------------------------------------------------------------
DEFAULT_PROTECTION_DAYS_PER_MONTH = 2

# ------------------------------------------------------------------------------------------------
# Heatmap / Chain
# ------------------------------------------------------------------------------------------------
# Streak length at which heatmap intensity reaches 1.0
DEFAULT_INTENSITY_SATURATION = 7
DEFAULT_CHAIN_DAYS = 30

# ------------------------------------------------------------------------------------------------
# Grades
# ------------------------------------------------------------------------------------------------
GRADE_EXCELLENT = "excellent"
GRADE_GOOD = "good"
GRADE_FAIR = "fair"
GRADE_NEEDS_WORK = "needs_work"
GRADE_STRUGGLING = "struggling"

# Lower bound of each grade, checked in order
GRADE_THRESHOLDS: Final = (
    (0.9, GRADE_EXCELLENT),
    (0.8, GRADE_GOOD),
    (0.6, GRADE_FAIR),
    (0.4, GRADE_NEEDS_WORK),
)

# ------------------------------------------------------------------------------------------------
# Calendar
# ------------------------------------------------------------------------------------------------
DEFAULT_TIME_ZONE_NAME = "UTC"
DEFAULT_FIRST_WEEKDAY = WEEKDAY_SUNDAY

# Safety limit for date calculations
MAX_DATE_CALCULATION_ITERATIONS = 1000

# ------------------------------------------------------------------------------------------------
# Stored data keys
# ------------------------------------------------------------------------------------------------
DATA_RULE_FREQUENCY = "frequency"
DATA_RULE_INTERVAL = "interval"
DATA_RULE_DAYS_OF_WEEK = "days_of_week"
DATA_RULE_DAY_OF_MONTH = "day_of_month"
DATA_RULE_END_DATE = "end_date"
DATA_RULE_EXCEPTIONS = "exceptions"
DATA_RULE_ANCHOR_DATE = "anchor_date"

DATA_HABIT_ID = "habit_id"
DATA_HABIT_TASK = "task"
DATA_HABIT_COMPLETION_DATES = "completion_dates"
DATA_HABIT_CURRENT_STREAK = "current_streak"
DATA_HABIT_BEST_STREAK = "best_streak"
DATA_HABIT_TOTAL_COMPLETIONS = "total_completions"
DATA_HABIT_PROTECTION_DAYS_USED = "protection_days_used"
DATA_HABIT_LAST_PROTECTION_DATE = "last_protection_date"
DATA_HABIT_PROTECTION_DATES = "protection_dates"
DATA_HABIT_TARGET_COMPLETIONS = "target_completions_per_period"
DATA_HABIT_CREATED_DATE = "created_date"

DATA_TASK_TITLE = "title"
DATA_TASK_IS_COMPLETED = "is_completed"
DATA_TASK_CATEGORY = "category"
DATA_TASK_METADATA = "metadata"

CONF_TIME_ZONE = "time_zone"
CONF_FIRST_WEEKDAY = "first_weekday"
