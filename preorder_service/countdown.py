"""
countdown.py — Payment Deadline and Countdown

Every order must be paid (payment proof submitted) within a fixed window after
it was created. This module derives the deadline, the time left and a coarse
urgency bucket used by the order detail display. Clients poll the order and
re-derive the countdown locally; nothing here is scheduled server-side.

Urgency buckets:
    expired  — remaining <= 0
    danger   — remaining <= 30 minutes
    warning  — remaining <= 60 minutes
    normal   — otherwise
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional

PAYMENT_WINDOW = timedelta(hours=24)
DANGER_THRESHOLD = timedelta(minutes=30)
WARNING_THRESHOLD = timedelta(minutes=60)


class CountdownStatus(str, Enum):
    NORMAL = "normal"
    WARNING = "warning"
    DANGER = "danger"
    EXPIRED = "expired"


@dataclass(frozen=True)
class RemainingTime:
    days: int
    hours: int
    minutes: int
    seconds: int
    total_seconds: int

    @classmethod
    def from_timedelta(cls, delta: timedelta) -> "RemainingTime":
        total = max(int(delta.total_seconds()), 0)
        days, rest = divmod(total, 86400)
        hours, rest = divmod(rest, 3600)
        minutes, seconds = divmod(rest, 60)
        return cls(days=days, hours=hours, minutes=minutes, seconds=seconds, total_seconds=total)


@dataclass(frozen=True)
class PaymentCountdown:
    deadline: datetime
    remaining: RemainingTime
    status: CountdownStatus

    @property
    def is_expired(self) -> bool:
        return self.status is CountdownStatus.EXPIRED

    def to_dict(self) -> dict:
        return {
            "deadline": self.deadline.isoformat(),
            "remaining": {
                "days": self.remaining.days,
                "hours": self.remaining.hours,
                "minutes": self.remaining.minutes,
                "seconds": self.remaining.seconds,
                "total": self.remaining.total_seconds,
            },
            "status": self.status.value,
        }


def as_utc(moment: datetime) -> datetime:
    # SQLite hands back naive datetimes; they are stored in UTC.
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


def payment_deadline(created_at: datetime, window: timedelta = PAYMENT_WINDOW) -> datetime:
    return as_utc(created_at) + window


def countdown_status(remaining: timedelta) -> CountdownStatus:
    if remaining <= timedelta(0):
        return CountdownStatus.EXPIRED
    if remaining <= DANGER_THRESHOLD:
        return CountdownStatus.DANGER
    if remaining <= WARNING_THRESHOLD:
        return CountdownStatus.WARNING
    return CountdownStatus.NORMAL


def payment_countdown(
        created_at: datetime,
        now: Optional[datetime] = None,
        window: timedelta = PAYMENT_WINDOW,
) -> PaymentCountdown:
    """
    Derives the payment deadline and countdown for an order.

    Args:
        created_at (datetime): When the order was created. Naive values are read as UTC.
        now (datetime, optional): Reference instant, defaults to the current UTC time.
        window (timedelta): Time allowed for payment, 24 hours unless overridden.

    Returns:
        PaymentCountdown: Deadline, remaining time (zero once expired) and status bucket.
    """
    now = as_utc(now) if now is not None else datetime.now(timezone.utc)
    deadline = payment_deadline(created_at, window)
    remaining = deadline - now
    status = countdown_status(remaining)

    if status is CountdownStatus.EXPIRED:
        remaining = timedelta(0)

    return PaymentCountdown(
        deadline=deadline,
        remaining=RemainingTime.from_timedelta(remaining),
        status=status,
    )


def countdown_applies(order_status: str, payment_status: Optional[str], proof_url: Optional[str]) -> bool:
    """
    The countdown is only relevant while the customer still owes the payment:
    the order is PENDING, its payment is PENDING and no proof has been uploaded.
    """
    return order_status == "PENDING" and payment_status == "PENDING" and not proof_url
