"""Resolution, calculation and aggregation engines."""
from eph_billing.engine.aggregator import aggregate, aggregate_many
from eph_billing.engine.calculator import calculate_billable_hours
from eph_billing.engine.day_classifier import classify_day_type
from eph_billing.engine.resolver import dedupe, effective_only, resolve
from eph_billing.engine.validator import validate_records

__all__ = [
    "aggregate",
    "aggregate_many",
    "calculate_billable_hours",
    "classify_day_type",
    "dedupe",
    "effective_only",
    "resolve",
    "validate_records",
]
