"""Tests for billing config and rate parsing."""

import json
import pytest
from decimal import Decimal

from eph_billing.models import AssetRates, BillingMethod, DayTypeConfig
from eph_billing.parsers.config_parser import (
    apply_method_to_all_day_types,
    billing_config_to_dict,
    default_billing_config,
    load_billing_config,
    load_rate_table,
    parse_billing_config,
    parse_billing_method,
    parse_rate_table,
)


def _make_stored_config() -> dict:
    return {
        "weekdays": {"enabled": True, "billingMethod": "PER_HOUR", "minHours": 0, "rateMultiplier": 1.0},
        "saturday": {"enabled": True, "billingMethod": "MINIMUM_BILLING", "minHours": 8, "rateMultiplier": 1.5},
        "sunday": {"enabled": False, "billingMethod": "MINIMUM_BILLING", "minHours": 8, "rateMultiplier": 1.5},
        "publicHolidays": {"enabled": True, "billingMethod": "MINIMUM_BILLING", "minHours": 8, "rateMultiplier": 2.0},
        "rainDays": {"enabled": True, "minHours": 4.5, "thresholdHours": 1},
        "breakdown": {"enabled": False},
    }


class TestDefaults:
    def test_factory_defaults(self):
        config = default_billing_config()
        assert config.weekday.billing_method == BillingMethod.PER_HOUR
        assert config.saturday.billing_method == BillingMethod.MINIMUM_BILLING
        assert config.saturday.min_hours == Decimal("8")
        assert config.saturday.rate_multiplier == Decimal("1.5")
        assert config.public_holiday.rate_multiplier == Decimal("2.0")
        assert config.rain_day.min_hours == Decimal("4.5")
        assert config.rain_day.threshold_hours == Decimal("1")
        assert config.breakdown.enabled

    def test_empty_document_gives_defaults(self):
        assert parse_billing_config({}) == default_billing_config()
        assert parse_billing_config(None) == default_billing_config()


class TestParseBillingConfig:
    def test_full_document(self):
        config = parse_billing_config(_make_stored_config())
        assert config.saturday.min_hours == Decimal("8")
        assert config.saturday.rate_multiplier == Decimal("1.5")
        assert not config.sunday.enabled
        assert config.rain_day.threshold_hours == Decimal("1")
        assert not config.breakdown.enabled

    def test_legacy_missing_breakdown(self):
        data = _make_stored_config()
        del data["breakdown"]
        assert parse_billing_config(data).breakdown.enabled

    def test_legacy_missing_rain_section_bills_actual(self):
        data = _make_stored_config()
        del data["rainDays"]
        rain = parse_billing_config(data).rain_day
        assert rain.enabled
        assert rain.min_hours == Decimal("0")
        assert rain.threshold_hours == Decimal("0")

    def test_missing_day_type_section(self):
        data = _make_stored_config()
        del data["publicHolidays"]
        assert parse_billing_config(data).public_holiday == DayTypeConfig()

    def test_alias_sections(self):
        data = _make_stored_config()
        data["publicHoliday"] = data.pop("publicHolidays")
        data["rainDay"] = data.pop("rainDays")
        config = parse_billing_config(data)
        assert config.public_holiday.rate_multiplier == Decimal("2.0")
        assert config.rain_day.min_hours == Decimal("4.5")

    def test_negative_values_clamped(self):
        data = _make_stored_config()
        data["saturday"]["minHours"] = -4
        assert parse_billing_config(data).saturday.min_hours == Decimal("0")

    @pytest.mark.parametrize("multiplier", ["", "  ", "abc", None])
    def test_blank_or_garbage_multiplier_is_one(self, multiplier):
        data = _make_stored_config()
        data["saturday"]["rateMultiplier"] = multiplier
        assert parse_billing_config(data).saturday.rate_multiplier == Decimal("1")

    def test_string_numbers(self):
        data = _make_stored_config()
        data["saturday"]["rateMultiplier"] = "1.75"
        data["saturday"]["minHours"] = ""
        config = parse_billing_config(data)
        assert config.saturday.rate_multiplier == Decimal("1.75")
        assert config.saturday.min_hours == Decimal("0")

    def test_null_enabled_counts_as_enabled(self):
        data = _make_stored_config()
        data["sunday"]["enabled"] = None
        data["rainDays"]["enabled"] = None
        data["breakdown"]["enabled"] = None
        config = parse_billing_config(data)
        assert config.sunday.enabled
        assert config.rain_day.enabled
        assert config.breakdown.enabled

    def test_explicit_false_still_disables(self):
        config = parse_billing_config(_make_stored_config())
        assert not config.sunday.enabled
        assert not config.breakdown.enabled

    def test_unknown_method_falls_back(self):
        assert parse_billing_method("HALF_DAY") == BillingMethod.PER_HOUR
        assert parse_billing_method("minimum-billing") == BillingMethod.MINIMUM_BILLING


class TestBulkMethod:
    def test_sets_all_four_day_types(self):
        config = apply_method_to_all_day_types(default_billing_config(), BillingMethod.PER_HOUR)
        for day in (config.weekday, config.saturday, config.sunday, config.public_holiday):
            assert day.billing_method == BillingMethod.PER_HOUR

    def test_leaves_other_fields(self):
        original = default_billing_config()
        config = apply_method_to_all_day_types(original, BillingMethod.MINIMUM_BILLING)
        assert config.saturday.min_hours == Decimal("8")
        assert config.rain_day == original.rain_day
        assert config.breakdown == original.breakdown

    def test_original_unchanged(self):
        original = default_billing_config()
        apply_method_to_all_day_types(original, BillingMethod.PER_HOUR)
        assert original.saturday.billing_method == BillingMethod.MINIMUM_BILLING


class TestStoredShape:
    def test_round_trip(self):
        config = parse_billing_config(_make_stored_config())
        assert parse_billing_config(billing_config_to_dict(config)) == config

    def test_keys(self):
        data = billing_config_to_dict(default_billing_config())
        assert set(data) == {"weekdays", "saturday", "sunday", "publicHolidays", "rainDays", "breakdown"}
        assert data["saturday"]["billingMethod"] == "MINIMUM_BILLING"


class TestRates:
    def test_parse_rate_table(self):
        table = parse_rate_table({
            "EXC-01": {"dryRate": 120, "wetRate": "180.50"},
            "OP-7": {"dailyRate": 950},
            "DOZ-3": {},
        })
        assert table["EXC-01"] == AssetRates(dry_rate=Decimal("120"), wet_rate=Decimal("180.50"))
        assert table["OP-7"].resolve() == (Decimal("950"), "daily")
        assert table["DOZ-3"].resolve() == (Decimal("0"), None)


class TestLoaders:
    def test_load_billing_config(self, tmp_path):
        path = tmp_path / "billing_config.json"
        path.write_text(json.dumps(_make_stored_config()), encoding="utf-8")
        assert not load_billing_config(path).breakdown.enabled

    def test_load_billing_config_none(self):
        assert load_billing_config(None) == default_billing_config()

    def test_load_billing_config_rejects_list(self, tmp_path):
        path = tmp_path / "billing_config.json"
        path.write_text("[]", encoding="utf-8")
        with pytest.raises(ValueError):
            load_billing_config(path)

    def test_load_rate_table(self, tmp_path):
        path = tmp_path / "rates.json"
        path.write_text(json.dumps({"EXC-01": {"dryRate": 120}}), encoding="utf-8")
        assert load_rate_table(path)["EXC-01"].dry_rate == Decimal("120")
        assert load_rate_table(None) == {}
