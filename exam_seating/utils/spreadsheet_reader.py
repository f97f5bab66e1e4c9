# exam_seating/utils/spreadsheet_reader.py

from datetime import date
from io import BytesIO
from typing import Any, Dict, List

import pandas as pd

from exam_seating.constants import TEMPLATE_COLUMNS

CSV_EXTENSIONS = (".csv", ".txt")


# --------------------------------------------------------------------------
# Decode uploads using pandas
# --------------------------------------------------------------------------

def _sanitize_dataframe(df):
    """Drop unnamed/empty columns and replace NaN/NaT with None."""
    keep = [
        col for col in df.columns
        if str(col).strip() != "" and not str(col).strip().lower().startswith("unnamed")
    ]
    df = df.loc[:, keep]
    df = df.dropna(how="all")
    return df.astype(object).where(pd.notna(df), None)


def _row_to_record(row: Dict[Any, Any]) -> Dict[str, Any]:
    # Empty cells are dropped so a row only carries the headers it has values for.
    return {
        str(header).strip(): value
        for header, value in row.items()
        if value is not None and not (isinstance(value, str) and value.strip() == "")
    }


def read_spreadsheet_rows(file) -> List[Dict[str, Any]]:
    """
    Decode an uploaded workbook (first worksheet) or CSV file into raw rows.

    The header row is consumed as column names, so every returned mapping is a
    data row keyed by the header text exactly as written in the file.
    """
    filename = str(getattr(file, "name", "") or "").lower()
    if hasattr(file, "seek"):
        file.seek(0)

    try:
        if filename.endswith(CSV_EXTENSIONS):
            # Keep CSV cells as text; date/time/number parsing happens in the normalizer.
            df = pd.read_csv(file, dtype=str, keep_default_na=False)
        else:
            df = pd.read_excel(file, sheet_name=0)
    except pd.errors.EmptyDataError:
        return []

    df = _sanitize_dataframe(df)
    records = (_row_to_record(row) for row in df.to_dict(orient="records"))
    return [record for record in records if record]


# --------------------------------------------------------------------------
# Downloadable import template
# --------------------------------------------------------------------------

def build_import_template() -> bytes:
    """Return an .xlsx workbook with the import columns and one sample row."""
    sample = {
        "student_id": "S001",
        "full_name": "John Doe",
        "subject_code": "MATH101",
        "subject_name": "Calculus I",
        "room_number": "R101",
        "room_capacity": 50,
        "exam_date": date.today().isoformat(),
        "start_time": "09:00",
        "duration_minutes": 120,
    }
    df = pd.DataFrame([sample], columns=TEMPLATE_COLUMNS)
    buffer = BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        df.to_excel(writer, sheet_name="template", index=False)
    return buffer.getvalue()
