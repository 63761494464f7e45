"""
Billing period estimation for the subscription status endpoint.

The period shown on the dashboard comes from the first source that has it:
the Stripe subscription itself, its latest invoice, or the local row's
creation date. Everything here is display-only and does no I/O.
"""
import math
from datetime import datetime, timezone
from typing import Any, Optional, Union

from dateutil.parser import isoparse
from dateutil.relativedelta import relativedelta

from models.subscription import PeriodInfo, ReadablePeriod

SECONDS_PER_DAY = 60 * 60 * 24

Timestamp = Union[int, float]


def field(obj: Any, key: str, default: Any = None) -> Any:
    """Item lookup that works for both plain dicts and Stripe objects."""
    if obj is None:
        return default
    try:
        value = obj[key]
    except (KeyError, TypeError, IndexError):
        return default
    return default if value is None else value


def _utcnow(now: Optional[datetime]) -> datetime:
    if now is None:
        return datetime.now(timezone.utc)
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now


def format_display_date(timestamp: Timestamp) -> str:
    moment = datetime.fromtimestamp(timestamp, tz=timezone.utc)
    return f"{moment.year}/{moment.month}/{moment.day}"


def days_until(timestamp: Timestamp, now: Optional[datetime] = None) -> int:
    remaining = timestamp - _utcnow(now).timestamp()
    return math.ceil(remaining / SECONDS_PER_DAY)


def add_one_month(timestamp: Timestamp) -> int:
    start = datetime.fromtimestamp(timestamp, tz=timezone.utc)
    return int((start + relativedelta(months=1)).timestamp())


def parse_created_at(value: Any) -> Optional[datetime]:
    """Supabase returns ISO strings; tolerate datetimes and naive values too."""
    if value is None:
        return None
    if isinstance(value, datetime):
        moment = value
    else:
        try:
            moment = isoparse(str(value))
        except ValueError:
            return None
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment


def build_period_info(
    start: Timestamp,
    end: Timestamp,
    now: Optional[datetime] = None,
    **extra: Any,
) -> PeriodInfo:
    start, end = int(start), int(end)
    return PeriodInfo(
        current_period_start=start,
        current_period_end=end,
        readable=ReadablePeriod(
            period_start=format_display_date(start),
            period_end=format_display_date(end),
            days_until_end=days_until(end, now),
        ),
        **extra,
    )


def period_from_subscription(stripe_subscription: Any, now: Optional[datetime] = None) -> Optional[PeriodInfo]:
    # Newer API versions moved the period fields onto the subscription items
    start = field(stripe_subscription, "current_period_start")
    end = field(stripe_subscription, "current_period_end")
    if not (start and end):
        items = field(field(stripe_subscription, "items"), "data", [])
        first_item = items[0] if items else None
        start = field(first_item, "current_period_start")
        end = field(first_item, "current_period_end")
    if not (start and end):
        return None

    return build_period_info(
        start,
        end,
        now,
        billing_cycle_anchor=field(stripe_subscription, "billing_cycle_anchor"),
        cancel_at_period_end=field(stripe_subscription, "cancel_at_period_end", False),
    )


def period_from_invoice(
    invoice: Any,
    cancel_at_period_end: Optional[bool] = None,
    now: Optional[datetime] = None,
) -> Optional[PeriodInfo]:
    start = field(invoice, "period_start")
    end = field(invoice, "period_end")
    if not (start and end):
        return None

    # A first invoice covers a zero-length window; assume a monthly cycle
    if start == end:
        end = add_one_month(start)

    return build_period_info(
        start,
        end,
        now,
        estimated=True,
        cancel_at_period_end=cancel_at_period_end,
    )


def period_from_created_at(
    created_at: Any,
    cancel_at_period_end: Optional[bool] = None,
    now: Optional[datetime] = None,
) -> Optional[PeriodInfo]:
    created = parse_created_at(created_at)
    if created is None:
        return None

    start = int(created.timestamp())
    return build_period_info(
        start,
        add_one_month(start),
        now,
        estimated=True,
        fallback=True,
        cancel_at_period_end=cancel_at_period_end,
    )
