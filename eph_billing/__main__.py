"""CLI entry point.

Usage:
    python -m eph_billing \
        --timesheets "verified_timesheets.json" \
        --config "billing_config.json" \
        --rates "asset_rates.json" \
        --start 2025-01-01 --end 2025-01-31 \
        --out "EPH_Audit.json" \
        --excel-out "EPH_Report.xlsx"
"""

from __future__ import annotations

import json
import logging
from datetime import date
from pathlib import Path
from typing import List, Optional

import typer

from eph_billing.models import DateRange, InvalidDateRangeError, StrictValidationError

logger = logging.getLogger("eph_billing.cli")


def _parse_iso_date(value: str, option: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        typer.echo(f"ERROR: {option} must be an ISO date (YYYY-MM-DD), got '{value}'", err=True)
        raise typer.Exit(1)


def generate(
    timesheets: str = typer.Option(..., "--timesheets", help="JSON file with a list of raw timesheet documents"),
    start: str = typer.Option(..., "--start", help="First date of the billing period (YYYY-MM-DD)"),
    end: str = typer.Option(..., "--end", help="Last date of the billing period (YYYY-MM-DD)"),
    config: Optional[str] = typer.Option(None, "--config", help="Billing config JSON (factory defaults when omitted)"),
    rates: Optional[str] = typer.Option(None, "--rates", help="JSON mapping entity id to {dryRate, wetRate, dailyRate}"),
    entity: Optional[List[str]] = typer.Option(None, "--entity", help="Asset/operator id to report (repeatable; default: all)"),
    out: str = typer.Option("EPH_Audit.json", "--out", help="Output audit JSON file path"),
    excel_out: Optional[str] = typer.Option(None, "--excel-out", help="Optional EPH Excel workbook path"),
    strict: bool = typer.Option(False, "--strict/--no-strict", help="Stop on any data-quality problem"),
    log_level: str = typer.Option("WARNING", "--log-level", help="Logging level"),
) -> None:
    """Generate EPH billing totals from raw timesheet documents."""
    from eph_billing.audit import generate_audit
    from eph_billing.engine import aggregate_many, dedupe, resolve, validate_records
    from eph_billing.excel import generate_excel_report
    from eph_billing.logging_config import configure_logging
    from eph_billing.parsers import load_billing_config, load_rate_table, normalize_records

    configure_logging(log_level)

    try:
        date_range = DateRange(_parse_iso_date(start, "--start"), _parse_iso_date(end, "--end"))
    except InvalidDateRangeError as e:
        typer.echo(f"ERROR: {e}", err=True)
        raise typer.Exit(1)

    ts_path = Path(timesheets)
    out_path = Path(out)

    typer.echo(f"Timesheets: {ts_path}")
    typer.echo(f"Billing config: {config or 'factory defaults'}")
    typer.echo(f"Period: {date_range.start.isoformat()} to {date_range.end.isoformat()}")
    typer.echo(f"Strict mode: {strict}")
    typer.echo("")

    try:
        # Step 1: Load inputs
        docs = json.loads(ts_path.read_text(encoding='utf-8'))
        if not isinstance(docs, list):
            typer.echo(f"ERROR: {ts_path} must contain a JSON list of timesheet documents", err=True)
            raise typer.Exit(1)
        billing_config = load_billing_config(config)
        rate_table = load_rate_table(rates)

        # Step 2: Normalize
        typer.echo("Normalizing timesheet documents...")
        records = normalize_records(docs, source=ts_path.name)
        typer.echo(f"  -> {len(records)} records")

        # Step 3: Validate
        typer.echo("\nChecking data quality...")
        problems = validate_records(records, strict=strict)
        if problems:
            typer.echo(f"  {len(problems)} problem(s) found (coerced, see log)")
        else:
            typer.echo("  No problems found")

        # Step 4: Dedupe and resolve
        typer.echo("\nResolving overrides...")
        unique = dedupe(records)
        resolved = resolve(unique)
        typer.echo(f"  {len(records) - len(unique)} duplicate submission(s) dropped")
        typer.echo(f"  {len(resolved)} resolved (date, entity) entries")

        # Step 5: Aggregate
        typer.echo("\nCalculating billable hours...")
        eph_records = aggregate_many(entity or None, date_range, resolved, billing_config, rate_table)

        for eph in eph_records:
            typer.echo(f"  {eph.entity_id}:")
            typer.echo(f"    Actual:   {eph.total_actual_hours}h over {len(eph.resolved_entries)} day(s)")
            typer.echo(f"    Billable: {eph.total_billable_hours}h x {eph.rate} ({eph.rate_type or 'no rate'})")
            typer.echo(f"    Estimated cost: {eph.estimated_cost}")

        # Step 6: Audit JSON
        typer.echo(f"\nWriting audit file: {out_path}...")
        generate_audit(eph_records, out_path, billing_config)

        # Step 7: Optional Excel
        if excel_out:
            typer.echo(f"Writing Excel report: {excel_out}...")
            generate_excel_report(eph_records, excel_out)

        typer.echo("\nSUCCESS: EPH report generated.")

    except StrictValidationError as e:
        typer.echo("\nSTRICT VALIDATION FAILED:", err=True)
        for error in e.errors:
            typer.echo(f"  ERROR: {error}", err=True)
        typer.echo("\nReport NOT generated (strict mode).", err=True)
        raise typer.Exit(1)

    except (OSError, ValueError) as e:
        logger.exception("EPH generation failed")
        typer.echo(f"\nFATAL ERROR: {e}", err=True)
        raise typer.Exit(1)


def main() -> None:
    typer.run(generate)


if __name__ == "__main__":
    main()
