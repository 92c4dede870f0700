"""Tests for the payment deadline and countdown buckets."""

from datetime import datetime, timedelta, timezone

import pytest

from preorder_service.countdown import (
    CountdownStatus,
    countdown_applies,
    payment_countdown,
    payment_deadline,
)

CREATED = datetime(2025, 10, 1, 8, 0, tzinfo=timezone.utc)


def _at(**delta):
    return payment_countdown(CREATED, now=CREATED + timedelta(**delta))


class TestPaymentCountdown:
    def test_deadline_is_24_hours_after_creation(self):
        assert payment_deadline(CREATED) == datetime(2025, 10, 2, 8, 0, tzinfo=timezone.utc)

    def test_fresh_order(self):
        countdown = _at()
        assert countdown.status is CountdownStatus.NORMAL
        assert countdown.remaining.total_seconds == 24 * 3600
        assert (countdown.remaining.days, countdown.remaining.hours) == (1, 0)

    def test_expired_exactly_at_deadline(self):
        countdown = _at(hours=24)
        assert countdown.status is CountdownStatus.EXPIRED
        assert countdown.is_expired
        assert countdown.remaining.total_seconds == 0

    def test_long_past_deadline_reports_zero(self):
        countdown = _at(days=3)
        assert countdown.status is CountdownStatus.EXPIRED
        remaining = countdown.remaining
        assert (remaining.days, remaining.hours, remaining.minutes, remaining.seconds) == (0, 0, 0, 0)

    @pytest.mark.parametrize("elapsed, expected", [
        (timedelta(hours=22, minutes=59), CountdownStatus.NORMAL),
        (timedelta(hours=23), CountdownStatus.WARNING),  # exactly 60 minutes left
        (timedelta(hours=23, minutes=15), CountdownStatus.WARNING),
        (timedelta(hours=23, minutes=30), CountdownStatus.DANGER),  # exactly 30 minutes left
        (timedelta(hours=23, minutes=31), CountdownStatus.DANGER),
        (timedelta(hours=23, minutes=45), CountdownStatus.DANGER),
        (timedelta(hours=23, minutes=59, seconds=59), CountdownStatus.DANGER),
    ])
    def test_status_buckets(self, elapsed, expected):
        assert payment_countdown(CREATED, now=CREATED + elapsed).status is expected

    def test_remaining_decomposition(self):
        remaining = _at(hours=1, minutes=2, seconds=3).remaining
        assert (remaining.days, remaining.hours, remaining.minutes, remaining.seconds) == (0, 22, 57, 57)
        assert remaining.total_seconds == 22 * 3600 + 57 * 60 + 57

    def test_naive_timestamps_are_utc(self):
        naive_created = CREATED.replace(tzinfo=None)
        countdown = payment_countdown(naive_created, now=naive_created + timedelta(hours=23, minutes=45))
        assert countdown.status is CountdownStatus.DANGER
        assert countdown.deadline == payment_deadline(CREATED)

    def test_custom_window(self):
        countdown = payment_countdown(CREATED, now=CREATED + timedelta(hours=1, minutes=10), window=timedelta(hours=2))
        assert countdown.deadline == CREATED + timedelta(hours=2)
        assert countdown.status is CountdownStatus.WARNING
        assert countdown.remaining.total_seconds == 50 * 60

    def test_defaults_to_current_time(self):
        countdown = payment_countdown(datetime.now(timezone.utc) - timedelta(hours=25))
        assert countdown.is_expired

    def test_to_dict(self):
        data = _at(minutes=30).to_dict()
        assert data["status"] == "normal"
        assert data["deadline"] == "2025-10-02T08:00:00+00:00"
        assert data["remaining"] == {"days": 0, "hours": 23, "minutes": 30, "seconds": 0, "total": 84600}


class TestCountdownApplies:
    def test_pending_order_without_proof(self):
        assert countdown_applies("PENDING", "PENDING", None)

    @pytest.mark.parametrize("order_status, payment_status, proof_url", [
        ("CONFIRMED", "PENDING", None),
        ("CANCELLED", "PENDING", None),
        ("PENDING", "PAID", None),
        ("PENDING", None, None),
        ("PENDING", "PENDING", "https://cdn.example.com/proof.jpg"),
    ])
    def test_not_applicable(self, order_status, payment_status, proof_url):
        assert not countdown_applies(order_status, payment_status, proof_url)
