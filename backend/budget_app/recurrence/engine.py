"""
Occurrence calculations for recurrence rules.

Everything here is a pure function of a RecurrenceRule and a calendar
reference point; no database access. The generation service, the
upcoming-payments feed and the subscriptions view all go through this module.
"""
import calendar
import logging
from datetime import date, datetime, timedelta
from typing import Optional

from dateutil.relativedelta import relativedelta

from budget_app.recurrence.rules import Frequency, RecurrenceRule

logger = logging.getLogger(__name__)

_DAY_STEPS = {
    Frequency.DAILY: 1,
    Frequency.WEEKLY: 7,
    Frequency.BIWEEKLY: 14,
}


def _first_of_month(value: date) -> date:
    return value.replace(day=1)


def _last_day(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def _clamped(year: int, month: int, day: int) -> date:
    return date(year, month, min(day, _last_day(year, month)))


def _as_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def occurs_in_month(rule: RecurrenceRule, year: int, month: int) -> bool:
    """
    Whether `rule` is eligible to produce an occurrence in (year, month).

    Only period eligibility is decided here, not the day. Daily, weekly and
    biweekly rules are eligible once for every month their active window
    touches.

    Raises:
        ValueError: for a month outside 1-12 or a rule whose frequency is not
            a Frequency member.
    """
    if not 1 <= month <= 12:
        raise ValueError(f"month must be between 1 and 12, got {month}")
    if not rule.is_active:
        return False

    period_start = date(year, month, 1)
    if period_start < _first_of_month(rule.start_date):
        return False
    if rule.end_date is not None and period_start > _first_of_month(rule.end_date):
        return False

    months_since_start = (
        (year - rule.start_date.year) * 12 + (month - rule.start_date.month)
    )

    if rule.frequency == Frequency.YEARLY:
        return months_since_start % 12 == 0
    if rule.frequency == Frequency.MONTHLY or rule.frequency in _DAY_STEPS:
        return months_since_start >= 0
    raise ValueError(f"Unsupported frequency on rule {rule.id}: {rule.frequency!r}")


def compute_occurrence_date(rule: RecurrenceRule, year: int, month: int) -> date:
    """
    Concrete date of the rule's occurrence within (year, month).

    The date depends only on the period and day_of_month. In the start and
    end months it can fall before start_date or after end_date.
    """
    return _clamped(year, month, rule.day_of_month or 1)


def next_occurrence_on_or_after(rule: RecurrenceRule, from_date) -> Optional[date]:
    """
    Next occurrence of `rule` relative to `from_date` (usually today).

    A start date later than `from_date` is returned as is. Otherwise the
    result is the first occurrence strictly after `from_date`, counted from
    the start date in whole frequency steps. Monthly rules with a fixed
    day_of_month land on that day, clamped to the month's length.

    Returns None when the rule is inactive, has lapsed, its next occurrence
    falls after its end date, or its frequency is not supported.
    """
    from_date = _as_date(from_date)
    start = rule.start_date

    if not rule.is_active:
        return None
    if rule.end_date is not None and rule.end_date < from_date:
        return None
    if start > from_date:
        return start

    if rule.frequency in _DAY_STEPS:
        step = _DAY_STEPS[rule.frequency]
        steps = (from_date - start).days // step + 1
        candidate = start + timedelta(days=steps * step)
    elif rule.frequency == Frequency.MONTHLY:
        months = (from_date.year - start.year) * 12 + (from_date.month - start.month)
        if rule.day_of_month:
            anchor = _first_of_month(start) + relativedelta(months=months)
            candidate = _clamped(anchor.year, anchor.month, rule.day_of_month)
            if candidate <= from_date:
                anchor += relativedelta(months=1)
                candidate = _clamped(anchor.year, anchor.month, rule.day_of_month)
        else:
            candidate = start + relativedelta(months=months)
            if candidate <= from_date:
                candidate = start + relativedelta(months=months + 1)
    elif rule.frequency == Frequency.YEARLY:
        years = from_date.year - start.year
        candidate = start + relativedelta(years=years)
        if candidate <= from_date:
            candidate = start + relativedelta(years=years + 1)
    else:
        logger.warning(
            f"[RECURRING] Rule {rule.id} has unsupported frequency {rule.frequency!r}; "
            f"no next occurrence"
        )
        return None

    if rule.end_date is not None and candidate > rule.end_date:
        return None
    return candidate


def days_until(target: date, today) -> int:
    return (target - _as_date(today)).days
