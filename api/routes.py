"""API routes for the EPH Billing engine."""

from __future__ import annotations

import logging
from decimal import Decimal

from fastapi import APIRouter

from eph_billing.audit import eph_to_dict, generate_audit_dict, result_to_dict
from eph_billing.engine import (
    aggregate_many,
    calculate_billable_hours,
    dedupe,
    resolve,
    validate_records,
)
from eph_billing.models import (
    AssetRates,
    BillingMethod,
    DateRange,
    InvalidDateRangeError,
    StrictValidationError,
)
from eph_billing.parsers import (
    apply_method_to_all_day_types,
    billing_config_to_dict,
    normalize_record,
    normalize_records,
    parse_billing_config,
)

from api.schemas import (
    BillableHoursRequest,
    BillableHoursResponse,
    BillableResultOut,
    BillingMethodRequest,
    BillingMethodResponse,
    EPHRequest,
    EPHResponse,
    EPHSummary,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1")


def _to_rates(request: EPHRequest) -> dict[str, AssetRates]:
    def dec(value: float | None) -> Decimal | None:
        return Decimal(str(value)) if value is not None else None

    return {
        entity_id: AssetRates(dry_rate=dec(r.dryRate), wet_rate=dec(r.wetRate), daily_rate=dec(r.dailyRate))
        for entity_id, r in request.rates.items()
    }


@router.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "ok"}


@router.post("/eph", response_model=EPHResponse)
async def generate_eph(request: EPHRequest):
    """Resolve, calculate and aggregate EPH totals for a billing period.

    Returns per-entity summaries plus the full audit structure with
    per-date drill-down.
    """
    try:
        date_range = DateRange(request.start, request.end)
    except InvalidDateRangeError as e:
        return EPHResponse(success=False, error_type="validation_error", errors=[str(e)])

    try:
        config = parse_billing_config(request.billing_config)
        records = normalize_records(request.records, source="api")
        warnings = validate_records(records, strict=request.strict)

        if request.dedupe:
            records = dedupe(records)
        resolved = resolve(records)
        eph_records = aggregate_many(request.entity_ids, date_range, resolved, config, _to_rates(request))

        summaries = []
        for eph in eph_records:
            data = eph_to_dict(eph)
            summaries.append(EPHSummary(
                entityId=data["entityId"],
                rate=data["rate"],
                rateType=data["rateType"],
                hours=data["hours"],
                totalActualHours=data["totalActualHours"],
                totalBillableHours=data["totalBillableHours"],
                estimatedCost=data["estimatedCost"],
                unroundedCost=data["unroundedCost"],
                daysWithEntries=len(eph.resolved_entries),
                missingDates=data["missingDates"],
            ))

        return EPHResponse(
            success=True,
            records=summaries,
            audit=generate_audit_dict(eph_records, config),
            warnings=warnings,
        )

    except StrictValidationError as e:
        return EPHResponse(success=False, error_type="validation_error", errors=e.errors)
    except Exception as e:
        logger.exception("EPH generation failed")
        return EPHResponse(success=False, error_type="processing_error", errors=[str(e)])


@router.post("/billable-hours", response_model=BillableHoursResponse)
async def billable_hours(request: BillableHoursRequest):
    """Billable hours for a single raw timesheet document."""
    try:
        config = parse_billing_config(request.billing_config)
        record = normalize_record(request.record, source="api")
        result = calculate_billable_hours(record, config)
        return BillableHoursResponse(success=True, result=BillableResultOut(**result_to_dict(result)))
    except Exception as e:
        logger.exception("Billable hours calculation failed")
        return BillableHoursResponse(success=False, error_type="processing_error", errors=[str(e)])


@router.post("/billing-config/method", response_model=BillingMethodResponse)
async def apply_billing_method(request: BillingMethodRequest):
    """Set one billing method on weekday, Saturday, Sunday and public holiday at once."""
    config = parse_billing_config(request.billing_config)
    updated = apply_method_to_all_day_types(config, BillingMethod(request.method))
    return BillingMethodResponse(billing_config=billing_config_to_dict(updated))
