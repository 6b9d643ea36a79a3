"""Mid-cycle proration arithmetic."""
from __future__ import annotations

import calendar
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Union

from .models import BillingPeriod, ProrationResult

Amount = Union[Decimal, int, str]

_CENT = Decimal("0.01")


def _round2(value: Decimal) -> Decimal:
    return value.quantize(_CENT, rounding=ROUND_HALF_UP)


def _to_decimal(value: Amount, name: str) -> Decimal:
    if isinstance(value, float):
        value = str(value)
    amount = Decimal(value)
    if not amount.is_finite() or amount < 0:
        raise ValueError(f"{name} must be a non-negative amount")
    return amount


def prorate(days_remaining: int, total_days: int, old_price: Amount, new_price: Amount) -> ProrationResult:
    """Credit the unused share of ``old_price`` and charge the same share of ``new_price``.

    Each amount is rounded half-up to cents on its own, and ``net`` is the
    rounded difference of the rounded amounts.
    """

    if total_days <= 0:
        raise ValueError("total_days must be > 0")
    if days_remaining < 0 or days_remaining > total_days:
        raise ValueError("days_remaining must be within [0, total_days]")
    old = _to_decimal(old_price, "old_price")
    new = _to_decimal(new_price, "new_price")

    credit = _round2(old * days_remaining / total_days)
    charge = _round2(new * days_remaining / total_days)
    return ProrationResult(credit=credit, charge=charge, net=_round2(charge - credit))


def _anchored(year: int, month: int, day: int) -> date:
    return date(year, month, min(day, calendar.monthrange(year, month)[1]))


def _shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def billing_period(anchor: date, today: date) -> BillingPeriod:
    """Return the monthly cycle anchored on ``anchor`` that contains ``today``.

    Anchors past the end of a shorter month fall on that month's last day.
    """

    if today < anchor:
        raise ValueError("today must not precede the billing anchor")
    start = _anchored(today.year, today.month, anchor.day)
    if start > today:
        year, month = _shift_month(today.year, today.month, -1)
        start = _anchored(year, month, anchor.day)
    year, month = _shift_month(start.year, start.month, 1)
    return BillingPeriod(start=start, end=_anchored(year, month, anchor.day))


def days_remaining_in_period(anchor: date, today: date) -> int:
    """Days left in the current cycle, counting ``today``."""

    period = billing_period(anchor, today)
    return (period.end - today).days


__all__ = ["billing_period", "days_remaining_in_period", "prorate"]
