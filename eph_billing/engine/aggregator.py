"""EPH (Equipment Plant Hours) builder.

Buckets each resolved record of one entity into one of seven day-types and
sums actual vs billable hours. Dates without a resolved record are absent
from the result, never counted as zero-hour days.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Iterable, Mapping, Optional, Union

from eph_billing.engine.calculator import calculate_billable_hours
from eph_billing.engine.day_classifier import classify_day_type
from eph_billing.engine.resolver import ResolutionKey, resolve
from eph_billing.models import (
    AssetRates,
    BillingConfig,
    DateRange,
    EPHRecord,
    ResolvedEntry,
    TimesheetRecord,
)

logger = logging.getLogger(__name__)

ResolvedRecords = Union[Mapping[ResolutionKey, TimesheetRecord], Iterable[TimesheetRecord]]


def _as_resolved(records: ResolvedRecords) -> Mapping[ResolutionKey, TimesheetRecord]:
    if isinstance(records, Mapping):
        return records
    # resolve() is idempotent, so already-resolved lists pass through unchanged
    return resolve(records)


def aggregate(
    entity_id: str,
    date_range: DateRange,
    resolved_records: ResolvedRecords,
    config: BillingConfig,
    rates: Optional[AssetRates] = None,
) -> EPHRecord:
    """Build the EPHRecord of one entity over ``date_range``.

    ``resolved_records`` is the output of ``resolve`` (or any iterable of
    records, which is resolved first). Records of other entities or outside
    the range are ignored.
    """
    if not isinstance(date_range, DateRange):
        raise TypeError(f"date_range must be a DateRange, got {type(date_range).__name__}")

    resolved = _as_resolved(resolved_records)
    rate, rate_type = (rates or AssetRates()).resolve()

    entries: list[ResolvedEntry] = []
    for day in date_range.days():
        record = resolved.get((day, entity_id))
        if record is None:
            continue
        day_type = classify_day_type(record)
        result = calculate_billable_hours(record, config, day_type=day_type)
        entries.append(ResolvedEntry(record=record, result=result))

    eph = EPHRecord(
        entity_id=entity_id,
        date_range=date_range,
        rate=rate,
        rate_type=rate_type,
        resolved_entries=entries,
    )
    if rate_type is None:
        logger.warning("No rate configured for %s, estimated cost is 0", entity_id)
    logger.info(
        "EPH %s %s..%s: %d day(s), actual=%s billable=%s cost=%s",
        entity_id, date_range.start.isoformat(), date_range.end.isoformat(),
        len(entries), eph.total_actual_hours, eph.total_billable_hours, eph.estimated_cost,
    )
    return eph


def entity_ids_in(resolved_records: ResolvedRecords) -> list[str]:
    """Sorted distinct entity ids present in the records."""
    resolved = _as_resolved(resolved_records)
    return sorted({entity for _, entity in resolved})


def aggregate_many(
    entity_ids: Optional[Iterable[str]],
    date_range: DateRange,
    resolved_records: ResolvedRecords,
    config: BillingConfig,
    rates: Optional[Mapping[str, AssetRates]] = None,
    max_workers: Optional[int] = None,
) -> list[EPHRecord]:
    """EPHRecords for many entities, computed in parallel.

    Every worker shares the same frozen ``config`` and the same resolved
    mapping; neither is written to. Results come back in ``entity_ids``
    order (sorted ids when None).
    """
    resolved = _as_resolved(resolved_records)
    ids = list(entity_ids) if entity_ids is not None else entity_ids_in(resolved)
    rates = rates or {}

    if len(ids) <= 1:
        return [aggregate(e, date_range, resolved, config, rates.get(e)) for e in ids]

    with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="eph") as pool:
        futures = [
            pool.submit(aggregate, e, date_range, resolved, config, rates.get(e))
            for e in ids
        ]
        return [future.result() for future in futures]
