"""
Recurrence engine for Todo Scheduler

Computes the next due date of a repeating task from its last scheduled date,
the current date and a compact repeat rule:

    ""                  no repetition; the task is finished once done
    "d 7"               every 7 days (1..400)
    "y"                 every year on the same month/day
    "w 1,4"             on Mondays and Thursdays (ISO weekdays, Monday=1)
    "m 1,15,-1"         on the 1st, the 15th and the last day of every month
    "m -2 3,9"          on the second-to-last day of March and September

The engine is pure: ``now`` is always supplied by the caller and nothing is
read from the clock, the filesystem or the configuration.
"""

import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import Enum
from typing import ClassVar, FrozenSet, Optional, Tuple, Union

from .utils.datetime import (
    add_years,
    format_compact_date,
    iso_weekday,
    last_day_of_month,
    parse_compact_date,
)


MAX_DAILY_INTERVAL = 400
WEEKDAY_SEARCH_DAYS = 14
MONTH_DAY_SEARCH_YEARS = 2
LAST_DAY = -1
SECOND_TO_LAST_DAY = -2

# Text form of Terminate, as stored/printed by callers that only deal in strings
DELETE_SENTINEL = "delete"

_INT_RE = re.compile(r"^[+-]?\d+$")


class RecurrenceErrorKind(Enum):
    """Closed set of failures the engine can report"""
    INVALID_DATE_FORMAT = "invalid_date_format"
    INVALID_RULE_FORMAT = "invalid_rule_format"
    NO_MATCHING_WEEKDAY = "no_matching_weekday"
    NO_MATCHING_MONTH_DAY = "no_matching_month_day"


class RecurrenceError(Exception):
    """Base class for recurrence failures.

    Attributes:
        kind: The :class:`RecurrenceErrorKind` of the failure
        value: The offending input (date text, rule text or rule component)
    """

    kind: ClassVar[RecurrenceErrorKind]

    def __init__(self, message: str, value: object = None):
        self.value = value
        super().__init__(message)


class InvalidDateFormat(RecurrenceError):
    kind = RecurrenceErrorKind.INVALID_DATE_FORMAT


class InvalidRuleFormat(RecurrenceError):
    kind = RecurrenceErrorKind.INVALID_RULE_FORMAT


class NoMatchingWeekday(RecurrenceError):
    kind = RecurrenceErrorKind.NO_MATCHING_WEEKDAY


class NoMatchingMonthDay(RecurrenceError):
    kind = RecurrenceErrorKind.NO_MATCHING_MONTH_DAY


@dataclass(frozen=True)
class NoRecurrence:
    """Single-occurrence task"""

    def __str__(self) -> str:
        return ""


@dataclass(frozen=True)
class DailyInterval:
    """Every ``days`` days, anchored at the last scheduled date"""
    days: int

    def __str__(self) -> str:
        return f"d {self.days}"


@dataclass(frozen=True)
class Yearly:
    """Same month/day every year"""

    def __str__(self) -> str:
        return "y"


@dataclass(frozen=True)
class WeekdaySet:
    """Specific ISO weekdays (Monday=1 .. Sunday=7)"""
    days: FrozenSet[int]

    def __str__(self) -> str:
        return "w " + ",".join(str(d) for d in sorted(self.days))


@dataclass(frozen=True)
class MonthDaySet:
    """Specific days of month, optionally restricted to some months.

    ``-1`` is the last day of the month and ``-2`` the day before it.
    An empty ``months`` set means every month.
    """
    days: FrozenSet[int]
    months: FrozenSet[int] = frozenset()

    def __str__(self) -> str:
        text = "m " + ",".join(str(d) for d in sorted(self.days))
        if self.months:
            text += " " + ",".join(str(m) for m in sorted(self.months))
        return text


RecurrenceRule = Union[NoRecurrence, DailyInterval, Yearly, WeekdaySet, MonthDaySet]


@dataclass(frozen=True)
class Scheduled:
    """The task is due again on ``date``"""
    date: date

    def __str__(self) -> str:
        return format_compact_date(self.date)


@dataclass(frozen=True)
class Terminate:
    """The task has no further occurrences and should be removed"""

    def __str__(self) -> str:
        return DELETE_SENTINEL


TERMINATE = Terminate()

NextDateResult = Union[Scheduled, Terminate]


class RecurrenceParser:
    """Parses repeat rule text into a :data:`RecurrenceRule`"""

    @staticmethod
    def _parse_int(text: str, rule_text: str) -> int:
        if not _INT_RE.match(text):
            raise InvalidRuleFormat(f"not a number: {text!r} in rule {rule_text!r}", text)
        return int(text)

    @classmethod
    def _parse_int_list(cls, text: str, rule_text: str, valid, what: str) -> FrozenSet[int]:
        values = []
        for item in text.split(","):
            value = cls._parse_int(item, rule_text)
            if not valid(value):
                raise InvalidRuleFormat(f"invalid {what} {value} in rule {rule_text!r}", value)
            values.append(value)
        return frozenset(values)

    @classmethod
    def parse(cls, rule_text: str) -> RecurrenceRule:
        """Parse a repeat rule.

        Raises:
            InvalidRuleFormat: If the prefix is unknown or a component is
                missing or out of range
        """
        if rule_text is None or rule_text == "":
            return NoRecurrence()

        if rule_text == "y":
            return Yearly()

        if rule_text.startswith("d "):
            days = cls._parse_int(rule_text[2:], rule_text)
            if days <= 0 or days > MAX_DAILY_INTERVAL:
                raise InvalidRuleFormat(
                    f"daily interval must be between 1 and {MAX_DAILY_INTERVAL} days, got {days}",
                    days,
                )
            return DailyInterval(days)

        if rule_text.startswith("w "):
            weekdays = cls._parse_int_list(
                rule_text[2:], rule_text, lambda d: 1 <= d <= 7, "weekday"
            )
            return WeekdaySet(weekdays)

        if rule_text.startswith("m "):
            parts = rule_text[2:].split(" ")
            if len(parts) > 2:
                raise InvalidRuleFormat(f"too many groups in rule {rule_text!r}", rule_text)
            month_days = cls._parse_int_list(
                parts[0],
                rule_text,
                lambda d: d in (LAST_DAY, SECOND_TO_LAST_DAY) or 1 <= d <= 31,
                "day of month",
            )
            months: FrozenSet[int] = frozenset()
            if len(parts) == 2:
                months = cls._parse_int_list(
                    parts[1], rule_text, lambda m: 1 <= m <= 12, "month"
                )
            return MonthDaySet(month_days, months)

        raise InvalidRuleFormat(f"unrecognised repeat rule {rule_text!r}", rule_text)


def parse_rule(rule_text: str) -> RecurrenceRule:
    """Parse a repeat rule (see :class:`RecurrenceParser`)."""
    return RecurrenceParser.parse(rule_text)


def parse_task_date(date_text: str) -> date:
    """Parse a ``YYYYMMDD`` task date, raising :class:`InvalidDateFormat`."""
    try:
        return parse_compact_date(date_text)
    except ValueError as e:
        raise InvalidDateFormat(f"invalid date {date_text!r}: {e}", date_text) from e


def next_daily_occurrence(now: date, last_date: date, days: int) -> date:
    """Next point of the ``days``-step lattice anchored at ``last_date`` after ``now``.

    Jumps straight over any number of missed steps instead of walking them.
    """
    if now <= last_date:
        return last_date + timedelta(days=days)
    steps = (now - last_date).days // days + 1
    return last_date + timedelta(days=steps * days)


def next_yearly_occurrence(now: date, last_date: date) -> date:
    if last_date > now:
        return add_years(last_date, 1)
    years = now.year - last_date.year
    candidate = add_years(last_date, years)
    if candidate <= now:
        candidate = add_years(last_date, years + 1)
    return candidate


def next_weekday_occurrence(now: date, weekdays: FrozenSet[int]) -> date:
    """Earliest day after ``now`` falling on one of ``weekdays``.

    Raises:
        NoMatchingWeekday: If nothing in the two-week window matches
    """
    for offset in range(WEEKDAY_SEARCH_DAYS):
        candidate = now + timedelta(days=offset)
        if candidate > now and iso_weekday(candidate) in weekdays:
            return candidate
    raise NoMatchingWeekday(
        f"no weekday in {sorted(weekdays)} within {WEEKDAY_SEARCH_DAYS} days of {now}",
        sorted(weekdays),
    )


def _resolve_month_day(day: int, last_day: int) -> int:
    if day == LAST_DAY:
        return last_day
    if day == SECOND_TO_LAST_DAY:
        return last_day - 1
    return day


def next_month_day_occurrence(
    now: date,
    last_date: date,
    days: FrozenSet[int],
    months: FrozenSet[int] = frozenset(),
) -> date:
    """Earliest matching day of month that is not before ``last_date`` and after ``now``.

    Only the year of ``last_date`` and the one after it are searched.

    Raises:
        NoMatchingMonthDay: If no candidate survives in that window
    """
    best: Optional[date] = None
    for year in range(last_date.year, last_date.year + MONTH_DAY_SEARCH_YEARS):
        for month in range(1, 13):
            if months and month not in months:
                continue
            last_day = last_day_of_month(year, month)
            for day in days:
                target = _resolve_month_day(day, last_day)
                if target < 1 or target > last_day:
                    continue
                candidate = date(year, month, target)
                if candidate >= last_date and candidate > now:
                    if best is None or candidate < best:
                        best = candidate
    if best is None:
        raise NoMatchingMonthDay(
            f"no day {sorted(days)} of months {sorted(months) or 'any'} "
            f"between {last_date} and the end of {last_date.year + 1} is after {now}",
            (sorted(days), sorted(months)),
        )
    return best


def calculate_next_occurrence(now: date, last_date: date, rule: RecurrenceRule) -> NextDateResult:
    """Apply an already parsed rule."""
    if isinstance(now, datetime):
        now = now.date()

    if isinstance(rule, NoRecurrence):
        return TERMINATE
    elif isinstance(rule, DailyInterval):
        return Scheduled(next_daily_occurrence(now, last_date, rule.days))
    elif isinstance(rule, Yearly):
        return Scheduled(next_yearly_occurrence(now, last_date))
    elif isinstance(rule, WeekdaySet):
        return Scheduled(next_weekday_occurrence(now, rule.days))
    elif isinstance(rule, MonthDaySet):
        return Scheduled(next_month_day_occurrence(now, last_date, rule.days, rule.months))

    raise TypeError(f"unsupported recurrence rule: {rule!r}")


def next_occurrence(now: date, last_date: str, rule: str) -> NextDateResult:
    """Compute when a task is due next.

    Args:
        now: The current date, supplied by the caller
        last_date: The task's last scheduled date as ``YYYYMMDD``
        rule: The repeat rule text

    Returns:
        :class:`Scheduled` with a date strictly after ``now``, or
        :data:`TERMINATE` when the rule is empty

    Raises:
        InvalidDateFormat: ``last_date`` is not a valid ``YYYYMMDD`` date
        InvalidRuleFormat: ``rule`` cannot be parsed
        NoMatchingWeekday: No weekday matched in the search window
        NoMatchingMonthDay: No day of month matched in the search window
    """
    start = parse_task_date(last_date)
    parsed = parse_rule(rule)
    return calculate_next_occurrence(now, start, parsed)


def try_next_occurrence(
    now: date, last_date: str, rule: str
) -> Tuple[Optional[NextDateResult], Optional[RecurrenceError]]:
    """Like :func:`next_occurrence` but returns ``(result, error)``.

    Exactly one of the two is not None.
    """
    try:
        return next_occurrence(now, last_date, rule), None
    except RecurrenceError as e:
        return None, e


def next_date_text(now: date, last_date: str, rule: str) -> str:
    """Next due date as ``YYYYMMDD``, or :data:`DELETE_SENTINEL` if the task ends."""
    return str(next_occurrence(now, last_date, rule))
