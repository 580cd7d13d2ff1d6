"""Pydantic request/response models for the EPH Billing API."""

from __future__ import annotations

from datetime import date
from typing import Any, Literal

from pydantic import BaseModel, Field


class RateInput(BaseModel):
    dryRate: float | None = None
    wetRate: float | None = None
    dailyRate: float | None = None


class EPHRequest(BaseModel):
    records: list[dict[str, Any]] = Field(..., description="Raw timesheet documents")
    start: date
    end: date
    billing_config: dict[str, Any] | None = Field(None, description="Stored billing config; defaults when omitted")
    rates: dict[str, RateInput] = Field(default_factory=dict, description="Rates keyed by entity id")
    entity_ids: list[str] | None = Field(None, description="Entities to report; all found when omitted")
    dedupe: bool = True
    strict: bool = False


class BucketHours(BaseModel):
    actual: float
    billable: float


class BillableResultOut(BaseModel):
    actualHours: float
    billableHours: float
    appliedRule: str
    dayType: str
    minimumApplied: float


class EPHSummary(BaseModel):
    entityId: str
    rate: float
    rateType: str | None = None
    hours: dict[str, BucketHours]
    totalActualHours: float
    totalBillableHours: float
    estimatedCost: float
    unroundedCost: str
    daysWithEntries: int
    missingDates: list[str]


class EPHResponse(BaseModel):
    success: bool
    records: list[EPHSummary] | None = None
    audit: dict | None = None
    warnings: list[str] | None = None
    error_type: str | None = None
    errors: list[str] | None = None


class BillableHoursRequest(BaseModel):
    record: dict[str, Any]
    billing_config: dict[str, Any] | None = None


class BillableHoursResponse(BaseModel):
    success: bool
    result: BillableResultOut | None = None
    error_type: str | None = None
    errors: list[str] | None = None


class BillingMethodRequest(BaseModel):
    billing_config: dict[str, Any] | None = None
    method: Literal["PER_HOUR", "MINIMUM_BILLING"]


class BillingMethodResponse(BaseModel):
    billing_config: dict[str, Any]
