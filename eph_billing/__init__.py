"""Timesheet reconciliation and billable-hours engine for plant EPH billing."""

__version__ = "1.0.0"
