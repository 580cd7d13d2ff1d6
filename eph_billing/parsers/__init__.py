"""Parsing layer: raw stored documents to typed values."""
from eph_billing.parsers.config_parser import (
    apply_method_to_all_day_types,
    billing_config_to_dict,
    default_billing_config,
    load_billing_config,
    load_rate_table,
    parse_billing_config,
    parse_rate_table,
)
from eph_billing.parsers.timesheet_parser import normalize_record, normalize_records

__all__ = [
    "apply_method_to_all_day_types",
    "billing_config_to_dict",
    "default_billing_config",
    "load_billing_config",
    "load_rate_table",
    "normalize_record",
    "normalize_records",
    "parse_billing_config",
    "parse_rate_table",
]
