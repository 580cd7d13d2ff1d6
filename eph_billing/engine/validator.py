"""Timesheet data-quality checks.

The engine itself coerces bad data instead of failing; this module reports
what was coerced so the CLI and API can surface it, and in strict mode stop.
"""

from __future__ import annotations

import logging
from collections import Counter
from decimal import Decimal

from eph_billing.models import StrictValidationError, TimesheetRecord

logger = logging.getLogger(__name__)

MAX_HOURS_PER_DAY = Decimal("24")


def _label(record: TimesheetRecord) -> str:
    day = record.date.isoformat() if record.date else "no date"
    who = record.entity_id or "no entity"
    source = f" (source: {record.source})" if record.source else ""
    return f"{who} on {day} [{record.id or 'no id'}]{source}"


def validate_records(records: list[TimesheetRecord], strict: bool = False) -> list[str]:
    """Return data-quality problems found in normalized records.

    With ``strict=True`` any problem raises StrictValidationError instead.
    """
    errors: list[str] = []

    if not records:
        errors.append("No timesheet records to process")

    for record in records:
        if record.date is None:
            errors.append(f"{_label(record)}: missing or unparseable date")
        if not record.entity_id:
            errors.append(f"{_label(record)}: missing asset/operator id")
        if record.total_hours < 0:
            errors.append(f"{_label(record)}: negative total hours={record.total_hours}")
        if record.total_hours > MAX_HOURS_PER_DAY:
            errors.append(f"{_label(record)}: total hours={record.total_hours} > 24")
        if record.flag_count > 1:
            errors.append(
                f"{_label(record)}: {record.flag_count} day-type flags set, "
                f"only the highest-priority one is billed"
            )

    ids = Counter(r.id for r in records if r.id)
    for record_id, count in sorted(ids.items()):
        if count > 1:
            errors.append(f"Record id {record_id} appears {count} times")

    for error in errors:
        logger.warning("Validation: %s", error)

    if strict and errors:
        raise StrictValidationError(errors)

    return errors
