import math
import re
import warnings
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Any, Dict, Iterable, List, Optional, Tuple

import pandas as pd
from django.utils import dateparse

from exam_seating.constants import (
    DEFAULT_START_TIME,
    REQUIRED_IMPORT_COLUMNS,
    SPREADSHEET_SERIAL_EPOCH,
)
from exam_seating.exceptions import ImportValidationError, RowSkipped
from exam_seating.utils.column_mapper import canonicalize_row, collect_columns

_SERIAL_EPOCH_DATE = datetime(1970, 1, 1)
_INTEGER_TEXT = re.compile(r"^\d+$")
_NUMERIC_TEXT = re.compile(r"^\d+(?:\.\d+)?$")
_CLOCK_TEXT = re.compile(r"^(\d{1,2}):(\d{2})")
_DATE_DELIMITERS = re.compile(r"[/.\-]")


@dataclass(frozen=True)
class NormalizedRow:
    student_id: str
    full_name: str
    subject_code: str
    room_number: str
    exam_date: date
    start_time: str
    subject_name: Optional[str] = None
    room_capacity: Optional[int] = None
    duration_minutes: Optional[int] = None


@dataclass(frozen=True)
class SkippedRow:
    row_number: int
    reason: str


def _maybe_to_datetime(value: Any) -> Any:
    if hasattr(value, "to_pydatetime"):
        try:
            return value.to_pydatetime()
        except (TypeError, ValueError):
            return None
    return value


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    try:
        return value != value  # catches NaN / NaT
    except (TypeError, ValueError):
        return False


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _clean_string(value: Any) -> str:
    if _is_missing(value):
        return ""
    if isinstance(value, float) and value.is_integer():
        # Numeric cells such as student numbers come back as floats from some sheets.
        value = int(value)
    return str(value).strip()


def _positive_int(value: Any) -> Optional[int]:
    if _is_missing(value) or isinstance(value, bool):
        return None
    try:
        number = float(str(value).strip()) if isinstance(value, str) else float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    number = int(round(number))
    return number if number > 0 else None


# ---------- DATES ----------

def _date_from_serial(number: float) -> Optional[date]:
    try:
        return (_SERIAL_EPOCH_DATE + timedelta(days=number - SPREADSHEET_SERIAL_EPOCH)).date()
    except (OverflowError, ValueError):
        return None


def _date_from_text(text: str) -> Optional[date]:
    if not any(char.isdigit() for char in text):
        # pandas reads words like "today" or "now" as the current date.
        return None
    try:
        parsed = dateparse.parse_date(text)
        if parsed:
            return parsed
        parsed_dt = dateparse.parse_datetime(text)
        if parsed_dt:
            return parsed_dt.date()
    except ValueError:
        # Well formatted but impossible, e.g. 2024-02-30.
        return None

    with warnings.catch_warnings():
        warnings.simplefilter("ignore")
        try:
            parsed_ts = pd.to_datetime(text, errors="coerce")
        except (TypeError, ValueError, OverflowError):
            parsed_ts = None
    if parsed_ts is not None and not pd.isna(parsed_ts):
        return parsed_ts.date()
    return None


def _date_from_parts(text: str) -> Optional[date]:
    parts = [part.strip() for part in _DATE_DELIMITERS.split(text)]
    if len(parts) != 3:
        return None
    first, second, third = parts
    if len(first) == 4:
        iso = f"{first}-{second.zfill(2)}-{third.zfill(2)}"
    else:
        iso = f"{third.zfill(4)}-{second.zfill(2)}-{first.zfill(2)}"
    try:
        return date.fromisoformat(iso)
    except ValueError:
        return None


def parse_exam_date(value: Any) -> Optional[date]:
    """
    Resolve a spreadsheet date cell, trying in order: a native date, a day
    serial, general date parsing, then a delimited day/month/year string.
    """
    if _is_missing(value):
        return None
    value = _maybe_to_datetime(value)
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if _is_number(value):
        if isinstance(value, float) and (math.isnan(value) or math.isinf(value)):
            return None
        return _date_from_serial(value)

    text = str(value).strip()
    if _INTEGER_TEXT.match(text):
        return _date_from_serial(int(text))
    return _date_from_text(text) or _date_from_parts(text)


# ---------- TIMES ----------

def _format_clock(hours: int, minutes: int) -> Optional[str]:
    if 0 <= hours < 24 and 0 <= minutes < 60:
        return f"{hours:02d}:{minutes:02d}"
    return None


def _time_from_number(number: float) -> Optional[str]:
    if 0 < number < 1:
        total_minutes = int(round(number * 24 * 60)) % (24 * 60)
        return _format_clock(*divmod(total_minutes, 60))
    if not float(number).is_integer():
        return None
    digits = str(int(number))
    if len(digits) <= 2:
        return _format_clock(int(digits), 0)
    return _format_clock(int(digits[:-2]), int(digits[-2:]))


def parse_start_time(value: Any) -> Optional[str]:
    """Return ``HH:MM`` for a spreadsheet time cell, or None when it cannot be read."""
    if _is_missing(value):
        return None
    value = _maybe_to_datetime(value)
    if isinstance(value, datetime):
        return _format_clock(value.hour, value.minute)
    if isinstance(value, time):
        return _format_clock(value.hour, value.minute)
    if _is_number(value):
        if isinstance(value, float) and (math.isnan(value) or math.isinf(value)):
            return None
        return _time_from_number(value)

    text = str(value).strip()
    if _NUMERIC_TEXT.match(text):
        return _time_from_number(float(text))
    match = _CLOCK_TEXT.match(text)
    if match:
        return _format_clock(int(match.group(1)), int(match.group(2)))
    return None


# ---------- ROWS ----------

def missing_required_columns(raw_rows: Iterable[Dict[str, Any]]) -> List[str]:
    present = collect_columns(raw_rows)
    return [column for column in REQUIRED_IMPORT_COLUMNS if column not in present]


def validate_headers(raw_rows: List[Dict[str, Any]]) -> None:
    if not raw_rows:
        raise ImportValidationError("Spreadsheet is empty or could not be parsed.")
    missing = missing_required_columns(raw_rows)
    if missing:
        raise ImportValidationError(f"Missing required columns: {', '.join(missing)}")


def normalize_row(raw_row: Dict[str, Any]) -> NormalizedRow:
    """
    Turn one raw spreadsheet row into a NormalizedRow.

    Raises RowSkipped when the exam date cannot be resolved or an identifying
    field is blank. An unreadable start time falls back to 09:00 instead.
    """
    row = canonicalize_row(raw_row)

    exam_date = parse_exam_date(row.get("exam_date"))
    if exam_date is None:
        raise RowSkipped(f"invalid exam_date {row.get('exam_date')!r}")

    start_time = parse_start_time(row.get("start_time")) or DEFAULT_START_TIME

    student_id = _clean_string(row.get("student_id"))
    subject_code = _clean_string(row.get("subject_code"))
    room_number = _clean_string(row.get("room_number"))
    for field, text in (
        ("student_id", student_id),
        ("subject_code", subject_code),
        ("room_number", room_number),
    ):
        if not text:
            raise RowSkipped(f"missing {field}")

    return NormalizedRow(
        student_id=student_id,
        full_name=_clean_string(row.get("full_name")),
        subject_code=subject_code,
        room_number=room_number,
        exam_date=exam_date,
        start_time=start_time,
        subject_name=_clean_string(row.get("subject_name")) or None,
        room_capacity=_positive_int(row.get("room_capacity")),
        duration_minutes=_positive_int(row.get("duration_minutes")),
    )


def normalize_rows(
    raw_rows: Iterable[Dict[str, Any]],
) -> Tuple[List[NormalizedRow], List[SkippedRow]]:
    normalized: List[NormalizedRow] = []
    skipped: List[SkippedRow] = []
    # Row 1 is the header, so data rows start at 2 like the sheet itself.
    for row_number, raw in enumerate(raw_rows, start=2):
        try:
            normalized.append(normalize_row(raw))
        except RowSkipped as exc:
            skipped.append(SkippedRow(row_number=row_number, reason=str(exc)))
    return normalized, skipped
