"""Record Normalizer.

Stored timesheet documents come from several screens and app versions, so the
same logical value can live under different keys, and numbers may arrive as
strings. ``normalize_record`` maps any such document onto ``TimesheetRecord``
and never raises: missing numbers become 0, missing flags False, missing
clock strings "00:00".

Candidate keys are checked first-non-empty in the order listed below.
"""

from __future__ import annotations

import logging
import math
import re
from datetime import date, datetime, timezone, tzinfo
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Mapping, Optional

from eph_billing.models import (
    ZERO,
    EditStatus,
    OverrideRole,
    TimesheetRecord,
)

logger = logging.getLogger(__name__)

ID_FIELDS = ("id", "timesheetId", "_id")
ENTITY_FIELDS = ("entityId", "assetId", "plantAssetId", "operatorId")
OPERATOR_NAME_FIELDS = ("operatorName", "operator", "submittedByName")
OPEN_TIME_FIELDS = ("openTime", "openHours", "startTime")
CLOSE_TIME_FIELDS = ("closeTime", "closeHours", "closingHours", "stopTime", "endTime")
TOTAL_HOURS_FIELDS = ("totalHours", "hours", "totalManHours")
NOTES_FIELDS = ("notes", "adminNotes", "plantManagerNotes", "operatorNotes")
ORIGINAL_RECORD_FIELDS = ("originalRecord", "originalEntryData")
ORIGINAL_ID_FIELDS = ("originalRecordId", "originalEntryId", "originalTimesheetId")
# Edit documents carry the entry they replace as flat fields
FLAT_ORIGINAL_FIELDS = {
    "originalTotalHours": "totalHours",
    "originalOpenHours": "openHours",
    "originalCloseHours": "closeHours",
}
SUBMITTED_AT_FIELDS = ("submittedAt", "updatedAt")

BREAKDOWN_FLAGS = ("isBreakdown",)
RAIN_DAY_FLAGS = ("isRainDay", "inclementWeather", "isInclementWeather")
STRIKE_DAY_FLAGS = ("isStrikeDay", "strikeDay")
PUBLIC_HOLIDAY_FLAGS = ("isPublicHoliday",)
PLANT_MANAGER_MARKERS = ("adjustedBy", "isAdjustment", "hasOriginalEntry")

TIME_SENTINEL = "00:00"

# A note that is only an hour quantity, e.g. "8h", "7.5 hrs", "9,5".
_HOURS_ONLY_NOTE = re.compile(r"^\d+(\.\d+)?(h|hr|hrs|hour|hours)?$", re.IGNORECASE)
_HHMM = re.compile(r"^(\d{1,2}):(\d{2})(?::\d{2})?$")

_TRUE_STRINGS = {"true", "yes", "y", "1"}

_ROLE_ALIASES = {
    "admin": OverrideRole.ADMIN,
    "administrator": OverrideRole.ADMIN,
    "plant_manager": OverrideRole.PLANT_MANAGER,
    "plant manager": OverrideRole.PLANT_MANAGER,
    "plantmanager": OverrideRole.PLANT_MANAGER,
    "pm": OverrideRole.PLANT_MANAGER,
    "none": OverrideRole.NONE,
    "": OverrideRole.NONE,
}


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str) and not value.strip():
        return True
    if isinstance(value, (dict, list)) and not value:
        return True
    return False


def _first(doc: Mapping[str, Any], names: Iterable[str]) -> Any:
    """First non-empty value among the candidate keys."""
    for name in names:
        value = doc.get(name)
        if not _is_empty(value):
            return value
    return None


def to_decimal(value: Any, default: Optional[Decimal] = ZERO) -> Optional[Decimal]:
    """Convert a number or numeric string to Decimal, returning ``default`` for anything else."""
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, Decimal):
        return value if value.is_finite() else default
    if isinstance(value, (int, float)):
        if isinstance(value, float) and not math.isfinite(value):
            return default
        return Decimal(str(value))
    text = str(value).strip().replace(",", ".")
    if not text:
        return default
    try:
        result = Decimal(text)
    except InvalidOperation:
        return default
    return result if result.is_finite() else default


def to_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    return bool(value)


def _any_flag(doc: Mapping[str, Any], names: Iterable[str]) -> bool:
    return any(to_bool(doc.get(name)) for name in names)


def parse_time_to_hours(value: Any) -> Decimal:
    """Convert a clock marker to numeric hours.

    Numbers are taken as hour offsets; "HH:MM" strings become hours plus
    minutes/60; plain numeric strings are hour offsets. Anything else is 0.
    """
    if value is None or isinstance(value, bool):
        return ZERO
    if isinstance(value, (int, float, Decimal)):
        return to_decimal(value)

    text = str(value).strip()
    if not text or text == TIME_SENTINEL:
        return ZERO

    match = _HHMM.match(text)
    if match:
        hours, minutes = int(match.group(1)), int(match.group(2))
        return Decimal(hours) + Decimal(minutes) / Decimal(60)

    return to_decimal(text)


def _time_label(value: Any) -> str:
    if _is_empty(value):
        return TIME_SENTINEL
    return str(value).strip()


def parse_date(value: Any, tz: tzinfo = timezone.utc) -> Optional[date]:
    """Calendar date from an ISO string, date/datetime or {"seconds": ...} mapping.

    Timestamp mappings are instants; ``tz`` picks the calendar they are read in.
    Strings and datetimes keep the date as written.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, Mapping):
        stamp = parse_timestamp(value)
        return stamp.astimezone(tz).date() if stamp else None

    text = str(value).strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Timezone-aware submission timestamp, or None when absent or unparseable."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, Mapping):
        seconds = value.get("seconds", value.get("_seconds"))
        if seconds is None:
            return None
        nanos = value.get("nanoseconds", value.get("_nanoseconds")) or 0
        try:
            return datetime.fromtimestamp(float(seconds) + float(nanos) / 1e9, tz=timezone.utc)
        except (TypeError, ValueError, OverflowError, OSError):
            return None
    if isinstance(value, (int, float)):
        seconds = float(value)
        if not math.isfinite(seconds):
            return None
        if seconds > 1e11:
            seconds /= 1000
        try:
            return datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (ValueError, OverflowError, OSError):
            return None

    text = str(value).strip()
    if not text:
        return None
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def is_hours_only_note(text: str) -> bool:
    """True when a note is just an hour quantity such as "8h" or "7,5 hrs"."""
    compact = re.sub(r"\s+", "", text).replace(",", ".")
    return bool(_HOURS_ONLY_NOTE.match(compact))


def sanitize_note(value: Any) -> str:
    if _is_empty(value):
        return ""
    text = str(value).strip()
    if is_hours_only_note(text):
        return ""
    return text


def extract_notes(doc: Mapping[str, Any]) -> str:
    for name in NOTES_FIELDS:
        note = sanitize_note(doc.get(name))
        if note:
            return note
    return ""


def _override_role(doc: Mapping[str, Any]) -> OverrideRole:
    explicit = doc.get("overriddenBy")
    if isinstance(explicit, str):
        role = _ROLE_ALIASES.get(explicit.strip().lower())
        if role is not None:
            return role
        logger.warning("Unknown overriddenBy value %r, treating record as an original entry", explicit)
        return OverrideRole.NONE

    edited_by = doc.get("editedBy")
    if isinstance(edited_by, str) and edited_by.strip().lower() == "admin":
        return OverrideRole.ADMIN

    if any(not _is_empty(doc.get(m)) and doc.get(m) is not False for m in PLANT_MANAGER_MARKERS):
        return OverrideRole.PLANT_MANAGER

    return OverrideRole.NONE


def _edit_status(value: Any) -> EditStatus:
    if not isinstance(value, str):
        return EditStatus.ACTIVE
    try:
        return EditStatus(value.strip().lower())
    except ValueError:
        # Workflow statuses such as "approved_for_billing" are active records
        return EditStatus.ACTIVE


def _total_hours(doc: Mapping[str, Any], open_time: Decimal, close_time: Decimal) -> Decimal:
    total = to_decimal(_first(doc, TOTAL_HOURS_FIELDS))
    if total > 0:
        return total
    if open_time == 0 and close_time == 0:
        return ZERO
    derived = close_time - open_time
    return derived if derived > 0 else ZERO


def _flat_original(doc: Mapping[str, Any], original_id: Any) -> Optional[dict]:
    """Original entry carried as flat ``original*Hours`` fields on an edit document."""
    values = {name: doc.get(field) for field, name in FLAT_ORIGINAL_FIELDS.items()}
    if all(_is_empty(value) for value in values.values()):
        return None
    if original_id is not None:
        values["id"] = original_id
    return values


def normalize_record(
    doc: Mapping[str, Any],
    source: str = "",
    parent: Optional[Mapping[str, Any]] = None,
    tz: tzinfo = timezone.utc,
) -> TimesheetRecord:
    """Map one raw stored document onto a TimesheetRecord.

    ``parent`` is the enclosing document when ``doc`` is an embedded original
    entry; date and entity fall back to the parent's. ``tz`` is the calendar
    used for dates stored as timestamps.
    """
    raw_date = doc.get("date")
    raw_entity = _first(doc, ENTITY_FIELDS)
    if parent is not None:
        if _is_empty(raw_date):
            raw_date = parent.get("date")
        if raw_entity is None:
            raw_entity = _first(parent, ENTITY_FIELDS)

    record_date = parse_date(raw_date, tz)
    if record_date is None and not _is_empty(raw_date):
        logger.warning("Unparseable timesheet date %r in %s", raw_date, source or "document")

    raw_open = _first(doc, OPEN_TIME_FIELDS)
    raw_close = _first(doc, CLOSE_TIME_FIELDS)
    open_time = parse_time_to_hours(raw_open)
    close_time = parse_time_to_hours(raw_close)

    original_id = _first(doc, ORIGINAL_ID_FIELDS)
    original_doc = _first(doc, ORIGINAL_RECORD_FIELDS)
    if not isinstance(original_doc, Mapping):
        original_doc = _flat_original(doc, original_id)
    original_record = None
    if original_doc is not None:
        original_record = normalize_record(original_doc, source=source, parent=doc, tz=tz)

    if original_id is None and original_record is not None and original_record.id:
        original_id = original_record.id

    record_id = _first(doc, ID_FIELDS)

    return TimesheetRecord(
        id=str(record_id) if record_id is not None else "",
        date=record_date,
        entity_id=str(raw_entity).strip() if raw_entity is not None else "",
        operator_name=str(_first(doc, OPERATOR_NAME_FIELDS) or "Unknown").strip(),
        open_time=open_time,
        close_time=close_time,
        open_label=_time_label(raw_open),
        close_label=_time_label(raw_close),
        total_hours=_total_hours(doc, open_time, close_time),
        is_breakdown=_any_flag(doc, BREAKDOWN_FLAGS),
        is_rain_day=_any_flag(doc, RAIN_DAY_FLAGS),
        is_strike_day=_any_flag(doc, STRIKE_DAY_FLAGS),
        is_public_holiday=_any_flag(doc, PUBLIC_HOLIDAY_FLAGS),
        overridden_by=_override_role(doc),
        original_record=original_record,
        original_record_id=str(original_id) if original_id is not None else None,
        submitted_at=parse_timestamp(_first(doc, SUBMITTED_AT_FIELDS)),
        status=_edit_status(doc.get("status")),
        notes=extract_notes(doc),
        source=source,
    )


def normalize_records(
    docs: Iterable[Mapping[str, Any]],
    source: str = "",
    tz: tzinfo = timezone.utc,
) -> list[TimesheetRecord]:
    """Normalize every document, skipping values that are not mappings at all."""
    records: list[TimesheetRecord] = []
    for index, doc in enumerate(docs):
        if not isinstance(doc, Mapping):
            logger.warning("Skipping non-document timesheet entry #%d in %s", index, source or "input")
            continue
        records.append(normalize_record(doc, source=source, tz=tz))
    logger.debug("Normalized %d timesheet document(s) from %s", len(records), source or "input")
    return records
