"""EPH audit output.

Stable JSON shape of EPHRecord values for the report generator and UI
summary views, with per-date drill-down and the original-vs-adjusted chain.
"""

from __future__ import annotations

import json
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path
from typing import Iterable, Optional

from eph_billing.models import (
    BillableResult,
    BillingConfig,
    DayType,
    EPHRecord,
    TimesheetRecord,
)
from eph_billing.parsers.config_parser import billing_config_to_dict

# Report column name for each bucket
BUCKET_KEYS: dict[DayType, str] = {
    DayType.WEEKDAY: "normal",
    DayType.SATURDAY: "saturday",
    DayType.SUNDAY: "sunday",
    DayType.PUBLIC_HOLIDAY: "publicHoliday",
    DayType.BREAKDOWN: "breakdown",
    DayType.RAIN_DAY: "rainDay",
    DayType.STRIKE_DAY: "strikeDay",
}


class DecimalEncoder(json.JSONEncoder):
    """JSON encoder that handles Decimal and date values."""
    def default(self, obj):
        if isinstance(obj, Decimal):
            return float(obj)
        if isinstance(obj, (date, datetime)):
            return obj.isoformat()
        return super().default(obj)


def record_to_dict(record: TimesheetRecord) -> dict:
    return {
        "id": record.id,
        "date": record.date.isoformat() if record.date else None,
        "entityId": record.entity_id,
        "operatorName": record.operator_name,
        "openTime": record.open_label,
        "closeTime": record.close_label,
        "totalHours": float(record.total_hours),
        "isBreakdown": record.is_breakdown,
        "isRainDay": record.is_rain_day,
        "isStrikeDay": record.is_strike_day,
        "isPublicHoliday": record.is_public_holiday,
        "overriddenBy": None if not record.is_override else record.overridden_by.value,
        "originalRecordId": record.original_record_id,
        "originalRecord": record_to_dict(record.original_record) if record.original_record else None,
        "submittedAt": record.submitted_at.isoformat() if record.submitted_at else None,
        "notes": record.notes,
    }


def result_to_dict(result: BillableResult) -> dict:
    return {
        "actualHours": float(result.actual_hours),
        "billableHours": float(result.billable_hours),
        "appliedRule": result.applied_rule,
        "dayType": result.day_type.value,
        "minimumApplied": float(result.minimum_applied),
    }


def eph_to_dict(eph: EPHRecord) -> dict:
    return {
        "entityId": eph.entity_id,
        "dateRange": {
            "start": eph.date_range.start.isoformat(),
            "end": eph.date_range.end.isoformat(),
        },
        "rate": float(eph.rate),
        "rateType": eph.rate_type,
        "hours": {
            key: {
                "actual": float(eph.actual_hours_for(day_type)),
                "billable": float(eph.billable_hours_for(day_type)),
            }
            for day_type, key in BUCKET_KEYS.items()
        },
        "totalActualHours": float(eph.total_actual_hours),
        "totalBillableHours": float(eph.total_billable_hours),
        "estimatedCost": float(eph.estimated_cost),
        "unroundedCost": str(eph.unrounded_cost),
        "hasAdjustments": eph.has_adjustments,
        "missingDates": [d.isoformat() for d in eph.missing_dates],
        "resolvedEntries": [
            {
                "date": entry.record.date.isoformat() if entry.record.date else None,
                "record": record_to_dict(entry.record),
                "result": result_to_dict(entry.result),
            }
            for entry in eph.resolved_entries
        ],
    }


def generate_audit_dict(records: Iterable[EPHRecord], config: Optional[BillingConfig] = None) -> dict:
    """Build the audit dictionary for a set of EPH records (no file I/O)."""
    records = list(records)
    return {
        "billingConfig": billing_config_to_dict(config) if config is not None else None,
        "records": [eph_to_dict(eph) for eph in records],
        "summary": {
            "totalEntities": len(records),
            "totalActualHours": float(sum((e.total_actual_hours for e in records), Decimal("0"))),
            "totalBillableHours": float(sum((e.total_billable_hours for e in records), Decimal("0"))),
            "totalEstimatedCost": float(sum((e.estimated_cost for e in records), Decimal("0"))),
            "entitiesWithoutRate": sorted(e.entity_id for e in records if e.rate_type is None),
        },
    }


def generate_audit(
    records: Iterable[EPHRecord],
    output_path: str | Path,
    config: Optional[BillingConfig] = None,
) -> Path:
    """Write the audit JSON file for a set of EPH records."""
    output_path = Path(output_path)
    audit = generate_audit_dict(records, config)
    output_path.write_text(json.dumps(audit, indent=2, cls=DecimalEncoder), encoding='utf-8')
    return output_path
