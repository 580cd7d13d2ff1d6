"""Tests for entry resolution and deduplication."""

import pytest
from decimal import Decimal
from datetime import date, datetime, timezone

from eph_billing.engine.resolver import dedupe, effective_only, resolve
from eph_billing.models import EditStatus, OverrideRole, TimesheetRecord
from eph_billing.parsers.timesheet_parser import normalize_records

DAY = date(2025, 1, 13)


def _stamp(hour: int) -> datetime:
    return datetime(2025, 1, 13, hour, tzinfo=timezone.utc)


def _make_record(record_id, role=OverrideRole.NONE, hours="8", day=DAY, entity="EXC-01", **kwargs) -> TimesheetRecord:
    return TimesheetRecord(
        id=record_id,
        date=day,
        entity_id=entity,
        total_hours=Decimal(hours),
        overridden_by=role,
        **kwargs,
    )


def _make_three_tiers() -> list[TimesheetRecord]:
    return [
        _make_record("op", hours="8", submitted_at=_stamp(18)),
        _make_record("pm", OverrideRole.PLANT_MANAGER, hours="9", submitted_at=_stamp(19)),
        _make_record("admin", OverrideRole.ADMIN, hours="7", submitted_at=_stamp(20)),
    ]


class TestPriority:
    def test_admin_wins_with_chain(self):
        resolved = resolve(_make_three_tiers())
        winner = resolved[(DAY, "EXC-01")]
        assert winner.id == "admin"
        assert winner.original_record.id == "pm"
        assert winner.original_record.original_record.id == "op"
        assert winner.original_record_id == "pm"

    def test_priority_ignores_timestamps(self):
        records = [
            _make_record("admin", OverrideRole.ADMIN, submitted_at=_stamp(8)),
            _make_record("op", submitted_at=_stamp(22)),
        ]
        assert resolve(records)[(DAY, "EXC-01")].id == "admin"

    def test_plant_manager_over_operator(self):
        records = [_make_record("op"), _make_record("pm", OverrideRole.PLANT_MANAGER)]
        winner = resolve(records)[(DAY, "EXC-01")]
        assert winner.id == "pm"
        assert winner.original_record.id == "op"

    def test_superseded_admin_ignored(self):
        records = _make_three_tiers()
        records[2] = _make_record("admin", OverrideRole.ADMIN, status=EditStatus.SUPERSEDED)
        assert resolve(records)[(DAY, "EXC-01")].id == "pm"

    def test_single_record_unchanged(self):
        record = _make_record("op")
        assert resolve([record])[(DAY, "EXC-01")] == record

    def test_embedded_original_kept_without_lower_tier(self):
        original = _make_record("op", hours="8")
        pm = _make_record("pm", OverrideRole.PLANT_MANAGER, hours="9", original_record=original)
        assert resolve([pm])[(DAY, "EXC-01")].original_record == original


class TestTieBreak:
    def test_latest_submission_wins(self):
        records = [
            _make_record("early", OverrideRole.ADMIN, submitted_at=_stamp(9)),
            _make_record("late", OverrideRole.ADMIN, submitted_at=_stamp(17)),
        ]
        assert resolve(records)[(DAY, "EXC-01")].id == "late"

    def test_timestamp_beats_missing(self):
        records = [
            _make_record("stamped", OverrideRole.ADMIN, submitted_at=_stamp(9)),
            _make_record("unstamped", OverrideRole.ADMIN),
        ]
        assert resolve(records)[(DAY, "EXC-01")].id == "stamped"

    def test_full_tie_earliest_input(self):
        records = [_make_record("first"), _make_record("second")]
        assert resolve(records)[(DAY, "EXC-01")].id == "first"


class TestGrouping:
    def test_groups_by_date_and_entity(self):
        records = [
            _make_record("a", day=date(2025, 1, 14)),
            _make_record("b", entity="EXC-02"),
            _make_record("c"),
        ]
        resolved = resolve(records)
        assert list(resolved) == [
            (DAY, "EXC-01"),
            (DAY, "EXC-02"),
            (date(2025, 1, 14), "EXC-01"),
        ]

    def test_unusable_records_absent(self):
        records = [_make_record("no-date", day=None), _make_record("no-entity", entity="")]
        assert resolve(records) == {}

    def test_empty_input(self):
        assert resolve([]) == {}
        assert effective_only([]) == []


class TestDeterminism:
    def test_input_order_independent(self):
        records = _make_three_tiers() + [_make_record("other", day=date(2025, 1, 14), submitted_at=_stamp(7))]
        assert resolve(records) == resolve(list(reversed(records)))

    def test_idempotent(self):
        once = resolve(_make_three_tiers())
        assert resolve(once.values()) == once


class TestEffectiveOnly:
    def test_no_chain_linking(self):
        effective = effective_only(_make_three_tiers())
        assert len(effective) == 1
        assert effective[0].id == "admin"
        assert effective[0].original_record is None


class TestDedupe:
    def test_repeated_id_keeps_latest(self):
        records = [
            _make_record("ts-1", hours="8", submitted_at=_stamp(9)),
            _make_record("ts-1", hours="9", submitted_at=_stamp(10)),
        ]
        result = dedupe(records)
        assert len(result) == 1
        assert result[0].total_hours == Decimal("9")

    def test_resubmitted_originals_collapse(self):
        records = [
            _make_record("ts-1", submitted_at=_stamp(9)),
            _make_record("ts-2", submitted_at=_stamp(10)),
            _make_record("ts-3", day=date(2025, 1, 14)),
        ]
        assert [r.id for r in dedupe(records)] == ["ts-2", "ts-3"]

    def test_overrides_kept(self):
        records = _make_three_tiers()
        assert dedupe(records) == records

    def test_idempotent(self):
        records = [
            _make_record("ts-1", submitted_at=_stamp(9)),
            _make_record("ts-1", submitted_at=_stamp(11)),
            _make_record("ts-2", submitted_at=_stamp(10)),
            _make_record("pm", OverrideRole.PLANT_MANAGER),
            _make_record("pm-2", OverrideRole.PLANT_MANAGER),
        ]
        once = dedupe(records)
        assert dedupe(once) == once

    @pytest.mark.parametrize("records", [[], [_make_record("only")]])
    def test_trivial(self, records):
        assert dedupe(records) == records


class TestReplacedEntries:
    def _make_edit_pair(self, **edit_kwargs) -> list[TimesheetRecord]:
        return [
            _make_record("ts-1", hours="8"),
            _make_record("edit-2", hours="6", original_record_id="ts-1", **edit_kwargs),
        ]

    def test_dedupe_keeps_edit_and_entry(self):
        assert [r.id for r in dedupe(self._make_edit_pair())] == ["ts-1", "edit-2"]

    def test_edit_wins_and_links_entry(self):
        winner = resolve(dedupe(self._make_edit_pair()))[(DAY, "EXC-01")]
        assert winner.id == "edit-2"
        assert winner.total_hours == Decimal("6")
        assert winner.original_record.id == "ts-1"
        assert winner.original_record_id == "ts-1"

    def test_edit_wins_regardless_of_order_and_stamps(self):
        records = list(reversed(self._make_edit_pair()))
        assert resolve(records)[(DAY, "EXC-01")].id == "edit-2"
        records = [
            _make_record("ts-1", submitted_at=_stamp(20)),
            _make_record("edit-2", original_record_id="ts-1", submitted_at=_stamp(9)),
        ]
        assert resolve(records)[(DAY, "EXC-01")].id == "edit-2"

    def test_effective_only_picks_edit(self):
        assert [r.id for r in effective_only(self._make_edit_pair())] == ["edit-2"]

    def test_idempotent(self):
        once = resolve(self._make_edit_pair())
        assert resolve(once.values()) == once

    def test_admin_still_outranks_edit(self):
        records = self._make_edit_pair() + [_make_record("admin", OverrideRole.ADMIN, hours="5")]
        winner = resolve(records)[(DAY, "EXC-01")]
        assert winner.id == "admin"
        assert winner.original_record.id == "edit-2"
        assert winner.original_record.original_record.id == "ts-1"

    def test_subcontractor_documents(self):
        docs = [
            {"id": "ts-1", "date": "2025-01-13", "assetId": "EXC-01", "totalHours": 8},
            {
                "id": "edit-2",
                "date": "2025-01-13",
                "assetId": "EXC-01",
                "editedBy": "subcontractor",
                "totalHours": 6,
                "originalTimesheetId": "ts-1",
            },
        ]
        records = normalize_records(docs)
        assert records[1].overridden_by == OverrideRole.NONE
        kept = dedupe(records)
        assert [r.id for r in kept] == ["ts-1", "edit-2"]
        winner = resolve(kept)[(DAY, "EXC-01")]
        assert winner.id == "edit-2"
        assert winner.original_record.id == "ts-1"
        assert winner.original_record.total_hours == Decimal("8")
