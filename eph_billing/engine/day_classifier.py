"""Day-type classification.

Event flags win over the calendar, checked in this order:
- Breakdown
- Rain day
- Strike day
- Public holiday
- Saturday / Sunday by calendar weekday
- Anything else is a weekday

Records carrying several flags land in the first matching bucket; the
calculator and the EPH aggregator both classify through this one function.
"""

from __future__ import annotations

from eph_billing.models import DayType, TimesheetRecord

SATURDAY = 5  # date.weekday(): Monday=0, Sunday=6
SUNDAY = 6


def classify_day_type(record: TimesheetRecord) -> DayType:
    if record.is_breakdown:
        return DayType.BREAKDOWN
    if record.is_rain_day:
        return DayType.RAIN_DAY
    if record.is_strike_day:
        return DayType.STRIKE_DAY
    if record.is_public_holiday:
        return DayType.PUBLIC_HOLIDAY

    if record.date is None:
        return DayType.WEEKDAY

    day_of_week = record.date.weekday()
    if day_of_week == SATURDAY:
        return DayType.SATURDAY
    if day_of_week == SUNDAY:
        return DayType.SUNDAY
    return DayType.WEEKDAY
