"""Billable Hours Calculator.

Turns the actual hours of one resolved record into billable hours under the
run's BillingConfig. Pure: no I/O, never raises for record contents.

Calendar day-types (weekday, Saturday, Sunday, public holiday):
- disabled               -> 0
- PER_HOUR               -> actual x multiplier
- MINIMUM_BILLING        -> max(actual, minHours) x multiplier

The multiplier scales the post-minimum hours, not only the excess over the
minimum.

Rain day:
- disabled               -> actual
- actual > threshold     -> max(actual, minHours)
- otherwise              -> actual

Breakdown: actual when enabled, 0 when disabled.
Strike day: always actual.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Iterable, Optional

from eph_billing.engine.day_classifier import classify_day_type
from eph_billing.models import (
    ZERO,
    BillableResult,
    BillingConfig,
    BillingMethod,
    DayType,
    TimesheetRecord,
)

logger = logging.getLogger(__name__)


def _calendar_day(actual: Decimal, day_type: DayType, config: BillingConfig) -> BillableResult:
    day_config = config.for_day_type(day_type)
    name = day_type.value

    if not day_config.enabled:
        return BillableResult(actual, ZERO, f"{name}_disabled", day_type)

    if day_config.billing_method == BillingMethod.MINIMUM_BILLING:
        floored = max(actual, day_config.min_hours)
        return BillableResult(
            actual,
            floored * day_config.rate_multiplier,
            f"{name}_minimum_billing",
            day_type,
            minimum_applied=day_config.min_hours,
        )

    return BillableResult(
        actual,
        actual * day_config.rate_multiplier,
        f"{name}_per_hour",
        day_type,
    )


def _rain_day(actual: Decimal, config: BillingConfig) -> BillableResult:
    rain = config.rain_day
    if not rain.enabled:
        return BillableResult(actual, actual, "rain_day_disabled", DayType.RAIN_DAY)
    if actual > rain.threshold_hours:
        return BillableResult(
            actual,
            max(actual, rain.min_hours),
            "rain_day_minimum",
            DayType.RAIN_DAY,
            minimum_applied=rain.min_hours,
        )
    return BillableResult(actual, actual, "rain_day_below_threshold", DayType.RAIN_DAY)


def calculate_billable_hours(
    record: TimesheetRecord,
    config: BillingConfig,
    day_type: Optional[DayType] = None,
) -> BillableResult:
    """Billable hours for one resolved record.

    ``day_type`` may be passed when the caller has already classified the
    record, so classification happens once per record.
    """
    if day_type is None:
        day_type = classify_day_type(record)

    actual = record.total_hours if record.total_hours > 0 else ZERO

    if day_type == DayType.BREAKDOWN:
        if config.breakdown.enabled:
            result = BillableResult(actual, actual, "breakdown_actual", day_type)
        else:
            result = BillableResult(actual, ZERO, "breakdown_no_charge", day_type)
    elif day_type == DayType.RAIN_DAY:
        result = _rain_day(actual, config)
    elif day_type == DayType.STRIKE_DAY:
        result = BillableResult(actual, actual, "strike_day_actual", day_type)
    else:
        result = _calendar_day(actual, day_type, config)

    logger.debug(
        "%s %s on %s: actual=%s billable=%s rule=%s",
        record.entity_id, record.id, record.date, result.actual_hours,
        result.billable_hours, result.applied_rule,
    )
    return result


def calculate_for_records(
    records: Iterable[TimesheetRecord],
    config: BillingConfig,
) -> list[BillableResult]:
    return [calculate_billable_hours(record, config) for record in records]


def total_hours(results: Iterable[BillableResult]) -> tuple[Decimal, Decimal]:
    """(total actual hours, total billable hours) across results."""
    total_actual = ZERO
    total_billable = ZERO
    for result in results:
        total_actual += result.actual_hours
        total_billable += result.billable_hours
    return total_actual, total_billable
