"""Canonical Data Model for EPH (Equipment Plant Hours) billing."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Iterator, Optional

ZERO = Decimal("0")


class OverrideRole(Enum):
    NONE = "none"
    PLANT_MANAGER = "plant_manager"
    ADMIN = "admin"

    @property
    def priority(self) -> int:
        return _OVERRIDE_PRIORITY[self]


_OVERRIDE_PRIORITY = {
    OverrideRole.NONE: 1,
    OverrideRole.PLANT_MANAGER: 2,
    OverrideRole.ADMIN: 3,
}


class EditStatus(Enum):
    ACTIVE = ""
    PENDING_REVIEW = "pending_review"
    REVIEWED = "reviewed"
    SUPERSEDED = "superseded"


class BillingMethod(Enum):
    PER_HOUR = "PER_HOUR"
    MINIMUM_BILLING = "MINIMUM_BILLING"


class DayType(Enum):
    """Billing bucket for one resolved record.

    Declaration order is the classification priority.
    """
    BREAKDOWN = "breakdown"
    RAIN_DAY = "rain_day"
    STRIKE_DAY = "strike_day"
    PUBLIC_HOLIDAY = "public_holiday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"
    WEEKDAY = "weekday"

    @property
    def is_calendar(self) -> bool:
        return self in CALENDAR_DAY_TYPES


CALENDAR_DAY_TYPES = frozenset({
    DayType.WEEKDAY,
    DayType.SATURDAY,
    DayType.SUNDAY,
    DayType.PUBLIC_HOLIDAY,
})


@dataclass(frozen=True)
class DayTypeConfig:
    """Billing policy shared by weekday, Saturday, Sunday and public holiday."""
    enabled: bool = True
    billing_method: BillingMethod = BillingMethod.PER_HOUR
    min_hours: Decimal = ZERO
    rate_multiplier: Decimal = Decimal("1")

    def __post_init__(self) -> None:
        if self.min_hours < 0:
            raise ValueError(f"min_hours must not be negative, got {self.min_hours}")
        if self.rate_multiplier < 0:
            raise ValueError(f"rate_multiplier must not be negative, got {self.rate_multiplier}")


@dataclass(frozen=True)
class RainDayConfig:
    enabled: bool = True
    min_hours: Decimal = ZERO
    threshold_hours: Decimal = ZERO


@dataclass(frozen=True)
class BreakdownConfig:
    enabled: bool = True


@dataclass(frozen=True)
class BillingConfig:
    """Immutable billing policy for one calculation run."""
    weekday: DayTypeConfig = field(default_factory=DayTypeConfig)
    saturday: DayTypeConfig = field(default_factory=DayTypeConfig)
    sunday: DayTypeConfig = field(default_factory=DayTypeConfig)
    public_holiday: DayTypeConfig = field(default_factory=DayTypeConfig)
    rain_day: RainDayConfig = field(default_factory=RainDayConfig)
    breakdown: BreakdownConfig = field(default_factory=BreakdownConfig)

    def for_day_type(self, day_type: DayType) -> DayTypeConfig:
        if day_type == DayType.WEEKDAY:
            return self.weekday
        if day_type == DayType.SATURDAY:
            return self.saturday
        if day_type == DayType.SUNDAY:
            return self.sunday
        if day_type == DayType.PUBLIC_HOLIDAY:
            return self.public_holiday
        raise KeyError(f"{day_type.value} has no day-type billing config")


@dataclass(frozen=True)
class TimesheetRecord:
    """One submitted work record for one entity on one calendar date (canonical form)."""
    id: str
    date: Optional[date]
    entity_id: str
    operator_name: str = "Unknown"
    open_time: Decimal = ZERO
    close_time: Decimal = ZERO
    open_label: str = "00:00"
    close_label: str = "00:00"
    total_hours: Decimal = ZERO
    is_breakdown: bool = False
    is_rain_day: bool = False
    is_strike_day: bool = False
    is_public_holiday: bool = False
    overridden_by: OverrideRole = OverrideRole.NONE
    original_record: Optional[TimesheetRecord] = None
    original_record_id: Optional[str] = None
    submitted_at: Optional[datetime] = None
    status: EditStatus = EditStatus.ACTIVE
    notes: str = ""
    source: str = ""

    @property
    def key(self) -> tuple[Optional[date], str]:
        return (self.date, self.entity_id)

    @property
    def is_override(self) -> bool:
        return self.overridden_by != OverrideRole.NONE

    @property
    def is_usable(self) -> bool:
        return (
            self.date is not None
            and bool(self.entity_id)
            and self.status != EditStatus.SUPERSEDED
        )

    @property
    def flag_count(self) -> int:
        return sum((self.is_breakdown, self.is_rain_day, self.is_strike_day, self.is_public_holiday))

    def override_chain(self) -> list[TimesheetRecord]:
        """This record followed by every record it superseded, newest first."""
        chain = [self]
        current = self.original_record
        while current is not None:
            chain.append(current)
            current = current.original_record
        return chain


@dataclass(frozen=True)
class BillableResult:
    actual_hours: Decimal
    billable_hours: Decimal
    applied_rule: str
    day_type: DayType
    minimum_applied: Decimal = ZERO


@dataclass(frozen=True)
class ResolvedEntry:
    record: TimesheetRecord
    result: BillableResult

    @property
    def date(self) -> Optional[date]:
        return self.record.date


class InvalidDateRangeError(ValueError):
    """Raised when a date range starts after it ends."""


@dataclass(frozen=True)
class DateRange:
    start: date
    end: date

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise InvalidDateRangeError(
                f"Date range start {self.start.isoformat()} is after end {self.end.isoformat()}"
            )

    def __contains__(self, day: object) -> bool:
        return isinstance(day, date) and self.start <= day <= self.end

    def days(self) -> Iterator[date]:
        current = self.start
        while current <= self.end:
            yield current
            current += timedelta(days=1)

    @property
    def day_count(self) -> int:
        return (self.end - self.start).days + 1


@dataclass(frozen=True)
class AssetRates:
    """Hourly rates configured on a plant asset or operator."""
    dry_rate: Optional[Decimal] = None
    wet_rate: Optional[Decimal] = None
    daily_rate: Optional[Decimal] = None

    def resolve(self) -> tuple[Decimal, Optional[str]]:
        """First non-null rate in the order dry, wet, daily."""
        for rate_type, rate in (("dry", self.dry_rate), ("wet", self.wet_rate), ("daily", self.daily_rate)):
            if rate is not None:
                return rate, rate_type
        return ZERO, None


@dataclass
class EPHRecord:
    """Actual vs billable hours for one entity over one date range."""
    entity_id: str
    date_range: DateRange
    rate: Decimal = ZERO
    rate_type: Optional[str] = None
    resolved_entries: list[ResolvedEntry] = field(default_factory=list)

    def actual_hours_for(self, day_type: DayType) -> Decimal:
        return sum(
            (e.result.actual_hours for e in self.resolved_entries if e.result.day_type == day_type),
            ZERO,
        )

    def billable_hours_for(self, day_type: DayType) -> Decimal:
        return sum(
            (e.result.billable_hours for e in self.resolved_entries if e.result.day_type == day_type),
            ZERO,
        )

    @property
    def normal_hours(self) -> Decimal:
        return self.actual_hours_for(DayType.WEEKDAY)

    @property
    def saturday_hours(self) -> Decimal:
        return self.actual_hours_for(DayType.SATURDAY)

    @property
    def sunday_hours(self) -> Decimal:
        return self.actual_hours_for(DayType.SUNDAY)

    @property
    def public_holiday_hours(self) -> Decimal:
        return self.actual_hours_for(DayType.PUBLIC_HOLIDAY)

    @property
    def breakdown_hours(self) -> Decimal:
        return self.actual_hours_for(DayType.BREAKDOWN)

    @property
    def rain_day_hours(self) -> Decimal:
        return self.actual_hours_for(DayType.RAIN_DAY)

    @property
    def strike_day_hours(self) -> Decimal:
        return self.actual_hours_for(DayType.STRIKE_DAY)

    @property
    def total_actual_hours(self) -> Decimal:
        return sum((e.result.actual_hours for e in self.resolved_entries), ZERO)

    @property
    def total_billable_hours(self) -> Decimal:
        return sum((e.result.billable_hours for e in self.resolved_entries), ZERO)

    @property
    def unrounded_cost(self) -> Decimal:
        return self.total_billable_hours * self.rate

    @property
    def estimated_cost(self) -> Decimal:
        """Unrounded cost quantized to cents."""
        return self.unrounded_cost.quantize(Decimal("0.01"), ROUND_HALF_UP)

    @property
    def missing_dates(self) -> list[date]:
        present = {e.date for e in self.resolved_entries}
        return [d for d in self.date_range.days() if d not in present]

    @property
    def has_adjustments(self) -> bool:
        return any(e.record.original_record is not None for e in self.resolved_entries)


class StrictValidationError(Exception):
    """Raised when strict validation fails."""
    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__(f"Strict validation failed with {len(errors)} error(s):\n" +
                         "\n".join(f"  - {e}" for e in errors))
