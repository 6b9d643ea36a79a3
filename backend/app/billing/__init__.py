"""Billing domain package providing proration and plan change services."""

from .models import (
    BillingAuditEvent,
    BillingAuditEventType,
    BillingPeriod,
    PlanChangeDirection,
    PlanChangeQuote,
    PlanChangeResult,
    ProrationResult,
)
from .proration import billing_period, days_remaining_in_period, prorate
from .service import BillingEventLogger, BillingNotifier, PlanChangeService

__all__ = [
    "BillingAuditEvent",
    "BillingAuditEventType",
    "BillingEventLogger",
    "BillingNotifier",
    "BillingPeriod",
    "PlanChangeDirection",
    "PlanChangeQuote",
    "PlanChangeResult",
    "PlanChangeService",
    "ProrationResult",
    "billing_period",
    "days_remaining_in_period",
    "prorate",
]
