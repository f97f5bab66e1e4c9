import re
from typing import Any, Dict, Iterable

from .equivalents import EQUIVALENT_COLUMNS


def normalize(col: Any) -> str:
    """Normalize column names: lowercase, underscores, remove punctuation."""
    text = str(col).strip().lower()
    if text.startswith("unnamed") or text in ("", "nan"):
        return ""
    text = re.sub(r"\s+", "_", text)            # collapse all whitespace (incl. newlines)
    text = re.sub(r"[^a-z0-9_]", "", text)      # drop punctuation
    text = re.sub(r"_+", "_", text).strip("_")  # collapse duplicate underscores
    return text


_NORMALIZED_TO_CANONICAL = {
    normalize(equivalent): canonical
    for canonical, equivalents in EQUIVALENT_COLUMNS.items()
    for equivalent in equivalents
}
_NORMALIZED_TO_CANONICAL.update({canonical: canonical for canonical in EQUIVALENT_COLUMNS})


def canonical_column(col: Any) -> str:
    norm = normalize(col)
    return _NORMALIZED_TO_CANONICAL.get(norm, norm)


def canonicalize_row(row: Dict[Any, Any]) -> Dict[str, Any]:
    """
    Re-key one raw row by canonical column name. When two headers collapse to
    the same name the first non-empty value wins.
    """
    canonical: Dict[str, Any] = {}
    for key, value in row.items():
        name = canonical_column(key)
        if not name:
            continue
        if name in canonical and not _is_blank(canonical[name]):
            continue
        canonical[name] = value
    return canonical


def collect_columns(rows: Iterable[Dict[Any, Any]]) -> set:
    columns = set()
    for row in rows:
        columns.update(name for name in (canonical_column(key) for key in row) if name)
    return columns


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())
