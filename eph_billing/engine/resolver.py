"""Entry Resolver.

Several records can claim the same (date, entity): the operator's original
entry, a plant manager's adjustment and an administrator's edit. Exactly one
of them is billed. Priority, highest first:

1. admin override that is still active (superseded admin edits are ignored)
2. plant-manager adjustment
3. original operator entry

Within one tier the latest ``submitted_at`` wins; a record with a timestamp
beats one without; a full tie goes to the earliest record in input order.
An entry that another record of its tier names through ``original_record_id``
(a subcontractor edit of an operator entry, say) never wins over that record.

``resolve`` keeps the audit trail by linking each winner to the record it
superseded through ``original_record``. ``effective_only`` returns the same
winners without the chain. Neither raises; a group with no usable record has
no entry at all.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import replace
from datetime import date, datetime
from typing import Iterable, Optional, Sequence

from eph_billing.models import OverrideRole, TimesheetRecord

logger = logging.getLogger(__name__)

ResolutionKey = tuple[date, str]


def _group_usable(records: Iterable[TimesheetRecord]) -> dict[ResolutionKey, list[tuple[int, TimesheetRecord]]]:
    """Group usable records by (date, entity), remembering input position."""
    groups: dict[ResolutionKey, list[tuple[int, TimesheetRecord]]] = defaultdict(list)
    skipped = 0
    for index, record in enumerate(records):
        if not record.is_usable:
            skipped += 1
            continue
        groups[record.key].append((index, record))
    if skipped:
        logger.debug("Ignored %d unusable record(s) during resolution", skipped)
    return groups


def _recency(candidate: tuple[int, TimesheetRecord]) -> tuple:
    index, record = candidate
    stamp: Optional[datetime] = record.submitted_at
    # max() picks the latest stamp; -index makes the earliest input win a tie
    return (stamp is not None, stamp.timestamp() if stamp else 0.0, -index)


def _latest(candidates: Sequence[tuple[int, TimesheetRecord]]) -> tuple[int, TimesheetRecord]:
    return max(candidates, key=_recency)


def _tiers(candidates: Sequence[tuple[int, TimesheetRecord]]) -> list[list[tuple[int, TimesheetRecord]]]:
    """Candidates split by override tier, highest tier first."""
    by_tier: dict[OverrideRole, list[tuple[int, TimesheetRecord]]] = defaultdict(list)
    for candidate in candidates:
        by_tier[candidate[1].overridden_by].append(candidate)
    return [by_tier[tier] for tier in sorted(by_tier, key=lambda role: role.priority, reverse=True)]


def _replaced_ids(records: Iterable[TimesheetRecord]) -> set[str]:
    """Ids that another record names as the entry it replaces."""
    return {
        record.original_record_id
        for record in records
        if record.original_record_id and record.original_record_id != record.id
    }


def _pick(tier: Sequence[tuple[int, TimesheetRecord]]) -> TimesheetRecord:
    """Latest record of one tier; an entry replaced by another record in the tier never wins."""
    replaced = _replaced_ids(record for _, record in tier)
    live = [candidate for candidate in tier if candidate[1].id not in replaced] or tier
    return _latest(live)[1]


def _link_replaced(winner: TimesheetRecord, tier: Sequence[tuple[int, TimesheetRecord]]) -> TimesheetRecord:
    """Attach the in-tier entry the winner names through ``original_record_id``."""
    if winner.original_record is not None or not winner.original_record_id:
        return winner
    for _, record in tier:
        if record.id == winner.original_record_id and record.id != winner.id:
            return replace(winner, original_record=record)
    return winner


def _tier_winners(candidates: Sequence[tuple[int, TimesheetRecord]]) -> list[TimesheetRecord]:
    """Winner of each override tier present, highest tier first."""
    return [_pick(tier) for tier in _tiers(candidates)]


def _link_chain(winners: list[TimesheetRecord]) -> TimesheetRecord:
    """Link each tier winner to the next lower tier's winner."""
    linked = winners[-1]
    for record in reversed(winners[:-1]):
        linked = replace(record, original_record=linked, original_record_id=linked.id or record.original_record_id)
    return linked


def resolve(records: Iterable[TimesheetRecord]) -> dict[ResolutionKey, TimesheetRecord]:
    """One authoritative record per (date, entity), ordered by key.

    Idempotent: resolving the resolved values again gives the same mapping.
    """
    resolved: dict[ResolutionKey, TimesheetRecord] = {}
    groups = _group_usable(records)
    for key in sorted(groups):
        winners = [_link_replaced(_pick(tier), tier) for tier in _tiers(groups[key])]
        winner = _link_chain(winners)
        if len(groups[key]) > 1:
            logger.debug(
                "Resolved %s/%s to %s (%s) out of %d candidate(s)",
                key[1], key[0].isoformat(), winner.id, winner.overridden_by.value, len(groups[key]),
            )
        resolved[key] = winner
    return resolved


def effective_only(records: Iterable[TimesheetRecord]) -> list[TimesheetRecord]:
    """Only the billing-relevant record per (date, entity), superseded copies dropped."""
    groups = _group_usable(records)
    return [_tier_winners(groups[key])[0] for key in sorted(groups)]


def dedupe(records: Iterable[TimesheetRecord]) -> list[TimesheetRecord]:
    """Collapse resubmissions of the same entry, keeping deliberate overrides.

    Repeats of one record id collapse to the latest submission. Original
    (un-overridden) entries for the same (date, entity) are resubmissions of
    one logical entry and collapse to the latest too. Override records are
    kept, as are edits naming the entry they replace and the entries they
    name. Survivors keep their input order.
    """
    indexed = list(enumerate(records))

    by_id: dict[str, list[tuple[int, TimesheetRecord]]] = defaultdict(list)
    for candidate in indexed:
        if candidate[1].id:
            by_id[candidate[1].id].append(candidate)
    dropped = {
        index
        for candidates in by_id.values() if len(candidates) > 1
        for index, _ in candidates if index != _latest(candidates)[0]
    }

    replaced = _replaced_ids(record for _, record in indexed)
    originals: dict[tuple, list[tuple[int, TimesheetRecord]]] = defaultdict(list)
    for index, record in indexed:
        if index in dropped or record.is_override or not record.is_usable:
            continue
        if record.original_record_id or record.id in replaced:
            continue
        originals[record.key].append((index, record))
    for candidates in originals.values():
        if len(candidates) > 1:
            keep = _latest(candidates)[0]
            dropped.update(index for index, _ in candidates if index != keep)

    if dropped:
        logger.info("Dropped %d duplicate timesheet submission(s)", len(dropped))
    return [record for index, record in indexed if index not in dropped]
