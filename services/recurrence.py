# services/recurrence.py
"""
Recurrence date math for recurring invoices.

Pure functions only; no database or clock access.

Month overflow rule: calendar steps clamp to the last day of the target
month (dateutil.relativedelta), so 2024-01-31 + 1 month is 2024-02-29 and
2024-02-29 + 1 year is 2025-02-28. Day offsets (payment terms) are applied
as exact day counts.
"""
import enum
import logging
import secrets
import time
from datetime import date, datetime, timedelta
from typing import List, Optional, Tuple, Union

from dateutil.relativedelta import relativedelta

logger = logging.getLogger(__name__)

DateLike = Union[date, datetime, str]

DEFAULT_INVOICE_PREFIX = "INV"


class RecurringInterval(str, enum.Enum):
     """Supported billing cycles for recurring invoices."""
     WEEKLY = "weekly"
     MONTHLY = "monthly"
     QUARTERLY = "quarterly"
     YEARLY = "yearly"


INTERVAL_STEPS = {
     RecurringInterval.WEEKLY: relativedelta(weeks=1),
     RecurringInterval.MONTHLY: relativedelta(months=1),
     RecurringInterval.QUARTERLY: relativedelta(months=3),
     RecurringInterval.YEARLY: relativedelta(years=1),
}


def to_date(value: DateLike) -> date:
     """Normalize a date, datetime or ISO `YYYY-MM-DD` string to a date."""
     if isinstance(value, datetime):
          return value.date()
     if isinstance(value, date):
          return value
     return datetime.strptime(value, "%Y-%m-%d").date()


def resolve_interval(interval: Optional[str]) -> RecurringInterval:
     """
     Map an interval tag to a RecurringInterval.

     Unrecognized or missing tags fall back to MONTHLY rather than being
     rejected; a warning is logged so the fallback stays visible.
     """
     try:
          return RecurringInterval(interval)
     except ValueError:
          logger.warning(
               "Unrecognized recurring interval %r, falling back to %s",
               interval,
               RecurringInterval.MONTHLY.value,
          )
          return RecurringInterval.MONTHLY


def compute_next_occurrence_date(current_date: DateLike, interval: Optional[str]) -> date:
     """Advance `current_date` by exactly one step of `interval`."""
     step = INTERVAL_STEPS[resolve_interval(interval)]
     return to_date(current_date) + step


def days_between(start: DateLike, end: DateLike) -> int:
     """Whole days from `start` to `end` (negative when `end` is earlier)."""
     return (to_date(end) - to_date(start)).days


def compute_next_due_date(
     new_issue_date: DateLike,
     previous_due_date: DateLike,
     previous_issue_date: DateLike,
) -> date:
     """
     Carry the previous issue-to-due offset over to a new issue date.

     Keeps a template's payment terms ("net 30") constant across occurrences
     no matter how long the months in between are.
     """
     offset = days_between(previous_issue_date, previous_due_date)
     return to_date(new_issue_date) + timedelta(days=offset)


def default_number_suffix() -> str:
     """Last 6 digits of the epoch in milliseconds plus 3 random digits."""
     millis = str(int(time.time() * 1000))[-6:]
     return f"{millis}-{secrets.randbelow(1000):03d}"


def invoice_number_prefix(invoice_number: Optional[str]) -> str:
     """Text before the first '-' of an invoice number ("INV-2024-001" -> "INV")."""
     prefix = (invoice_number or "").split("-")[0]
     return prefix or DEFAULT_INVOICE_PREFIX


def derive_invoice_number(template_number: Optional[str], suffix: Optional[str] = None) -> str:
     """
     Build the number for a generated occurrence from its template's number.

     Not guaranteed unique; the store's unique constraint on invoice_number
     is the backstop.
     """
     return f"{invoice_number_prefix(template_number)}-{suffix or default_number_suffix()}"


def preview_occurrences(
     start: DateLike,
     interval: Optional[str],
     payment_terms_days: int,
     count: int,
) -> List[Tuple[date, date]]:
     """
     Project the next `count` (issue_date, due_date) pairs of a template.

     The first pair is issued on `start`; each following issue date is one
     interval step after the previous one.
     """
     occurrences = []
     issue = to_date(start)
     for _ in range(count):
          occurrences.append((issue, issue + timedelta(days=payment_terms_days)))
          issue = compute_next_occurrence_date(issue, interval)
     return occurrences
