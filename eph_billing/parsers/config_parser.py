"""Billing configuration and asset rate parsing.

Stored billing configs predate several sections (breakdown was added late,
some accounts never saved a rain-day block). A missing section never raises;
it falls back to enabled, actual-hours billing.
"""

from __future__ import annotations

import json
import logging
from dataclasses import replace
from decimal import Decimal
from pathlib import Path
from typing import Any, Mapping, Optional

from eph_billing.models import (
    ZERO,
    AssetRates,
    BillingConfig,
    BillingMethod,
    BreakdownConfig,
    DayTypeConfig,
    RainDayConfig,
)
from eph_billing.parsers.timesheet_parser import to_bool, to_decimal

logger = logging.getLogger(__name__)

# Stored key for each section, then the accepted aliases
DAY_TYPE_SECTIONS: dict[str, tuple[str, ...]] = {
    "weekday": ("weekdays", "weekday"),
    "saturday": ("saturday",),
    "sunday": ("sunday",),
    "public_holiday": ("publicHolidays", "publicHoliday"),
}
RAIN_DAY_SECTION = ("rainDays", "rainDay")
BREAKDOWN_SECTION = ("breakdown",)


def default_billing_config() -> BillingConfig:
    """Factory defaults used when an account has never saved a config."""
    return BillingConfig(
        weekday=DayTypeConfig(
            enabled=True,
            billing_method=BillingMethod.PER_HOUR,
            min_hours=ZERO,
            rate_multiplier=Decimal("1.0"),
        ),
        saturday=DayTypeConfig(
            enabled=True,
            billing_method=BillingMethod.MINIMUM_BILLING,
            min_hours=Decimal("8"),
            rate_multiplier=Decimal("1.5"),
        ),
        sunday=DayTypeConfig(
            enabled=True,
            billing_method=BillingMethod.MINIMUM_BILLING,
            min_hours=Decimal("8"),
            rate_multiplier=Decimal("1.5"),
        ),
        public_holiday=DayTypeConfig(
            enabled=True,
            billing_method=BillingMethod.MINIMUM_BILLING,
            min_hours=Decimal("8"),
            rate_multiplier=Decimal("2.0"),
        ),
        rain_day=RainDayConfig(enabled=True, min_hours=Decimal("4.5"), threshold_hours=Decimal("1")),
        breakdown=BreakdownConfig(enabled=True),
    )


def _section(data: Mapping[str, Any], names: tuple[str, ...]) -> Optional[Mapping[str, Any]]:
    for name in names:
        value = data.get(name)
        if isinstance(value, Mapping):
            return value
    return None


def parse_billing_method(value: Any) -> BillingMethod:
    if isinstance(value, BillingMethod):
        return value
    text = str(value or "").strip().upper().replace("-", "_").replace(" ", "_")
    try:
        return BillingMethod(text)
    except ValueError:
        logger.warning("Unknown billing method %r, falling back to PER_HOUR", value)
        return BillingMethod.PER_HOUR


def _non_negative(value: Any, default: Decimal) -> Decimal:
    """Stored number, ``default`` when blank or unparseable, negatives clamped to 0."""
    parsed = to_decimal(value, default=None)
    if parsed is None:
        if value is not None and str(value).strip():
            logger.warning("Unparseable billing config number %r, using %s", value, default)
        return default
    return parsed if parsed >= 0 else ZERO


def _enabled(value: Any) -> bool:
    return True if value is None else to_bool(value)


def _parse_day_type(section: Optional[Mapping[str, Any]], label: str) -> DayTypeConfig:
    if section is None:
        logger.warning("Billing config has no %s section, billing actual hours", label)
        return DayTypeConfig()
    return DayTypeConfig(
        enabled=_enabled(section.get("enabled")),
        billing_method=parse_billing_method(section.get("billingMethod")),
        min_hours=_non_negative(section.get("minHours"), ZERO),
        rate_multiplier=_non_negative(section.get("rateMultiplier"), Decimal("1")),
    )


def parse_billing_config(data: Optional[Mapping[str, Any]]) -> BillingConfig:
    """Build a BillingConfig from its stored document shape."""
    if not data:
        logger.info("No stored billing config, using defaults")
        return default_billing_config()

    day_types = {
        attr: _parse_day_type(_section(data, names), names[0])
        for attr, names in DAY_TYPE_SECTIONS.items()
    }

    rain = _section(data, RAIN_DAY_SECTION)
    if rain is None:
        logger.warning("Billing config has no rainDays section, billing actual hours")
        rain_day = RainDayConfig(enabled=True, min_hours=ZERO, threshold_hours=ZERO)
    else:
        rain_day = RainDayConfig(
            enabled=_enabled(rain.get("enabled")),
            min_hours=_non_negative(rain.get("minHours"), ZERO),
            threshold_hours=_non_negative(rain.get("thresholdHours"), ZERO),
        )

    breakdown = _section(data, BREAKDOWN_SECTION)
    if breakdown is None:
        logger.debug("Billing config has no breakdown section, breakdown billing enabled")
        breakdown_config = BreakdownConfig(enabled=True)
    else:
        breakdown_config = BreakdownConfig(enabled=_enabled(breakdown.get("enabled")))

    return BillingConfig(rain_day=rain_day, breakdown=breakdown_config, **day_types)


def _day_type_to_dict(config: DayTypeConfig) -> dict:
    return {
        "enabled": config.enabled,
        "billingMethod": config.billing_method.value,
        "minHours": float(config.min_hours),
        "rateMultiplier": float(config.rate_multiplier),
    }


def billing_config_to_dict(config: BillingConfig) -> dict:
    """Render a BillingConfig in its stored document shape."""
    return {
        "weekdays": _day_type_to_dict(config.weekday),
        "saturday": _day_type_to_dict(config.saturday),
        "sunday": _day_type_to_dict(config.sunday),
        "publicHolidays": _day_type_to_dict(config.public_holiday),
        "rainDays": {
            "enabled": config.rain_day.enabled,
            "minHours": float(config.rain_day.min_hours),
            "thresholdHours": float(config.rain_day.threshold_hours),
        },
        "breakdown": {"enabled": config.breakdown.enabled},
    }


def apply_method_to_all_day_types(config: BillingConfig, method: BillingMethod) -> BillingConfig:
    """Return a copy of ``config`` with ``method`` set on all four calendar day-types."""
    return replace(
        config,
        weekday=replace(config.weekday, billing_method=method),
        saturday=replace(config.saturday, billing_method=method),
        sunday=replace(config.sunday, billing_method=method),
        public_holiday=replace(config.public_holiday, billing_method=method),
    )


def _optional_rate(value: Any) -> Optional[Decimal]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return to_decimal(value)


def parse_asset_rates(data: Optional[Mapping[str, Any]]) -> AssetRates:
    if not data:
        return AssetRates()
    return AssetRates(
        dry_rate=_optional_rate(data.get("dryRate")),
        wet_rate=_optional_rate(data.get("wetRate")),
        daily_rate=_optional_rate(data.get("dailyRate")),
    )


def parse_rate_table(data: Optional[Mapping[str, Any]]) -> dict[str, AssetRates]:
    """``{entityId: {dryRate, wetRate, dailyRate}}`` -> ``{entityId: AssetRates}``."""
    if not data:
        return {}
    return {
        str(entity_id): parse_asset_rates(rates if isinstance(rates, Mapping) else None)
        for entity_id, rates in data.items()
    }


def _read_json(path: str | Path) -> Any:
    return json.loads(Path(path).read_text(encoding="utf-8"))


def load_billing_config(path: str | Path | None) -> BillingConfig:
    if path is None:
        return default_billing_config()
    data = _read_json(path)
    if not isinstance(data, Mapping):
        raise ValueError(f"Billing config file {path} must contain a JSON object")
    return parse_billing_config(data)


def load_rate_table(path: str | Path | None) -> dict[str, AssetRates]:
    if path is None:
        return {}
    data = _read_json(path)
    if not isinstance(data, Mapping):
        raise ValueError(f"Rates file {path} must contain a JSON object keyed by entity id")
    return parse_rate_table(data)
