from typing import Dict, Iterable, List

from exam_seating.services.row_normalizer import NormalizedRow

KEY_SEPARATOR = "||"


def session_key(row: NormalizedRow) -> str:
    """Composite key of the exam session a row belongs to."""
    return KEY_SEPARATOR.join(
        (row.subject_code, row.exam_date.isoformat(), row.start_time, row.room_number)
    )


def group_rows(rows: Iterable[NormalizedRow]) -> Dict[str, List[NormalizedRow]]:
    """
    Partition rows into exam-session batches, keeping groups in first-seen order
    and rows in input order within each group.

    The first row of a batch is the one the orchestrator reads session-level
    fields (subject name, room capacity, duration) from.
    """
    groups: Dict[str, List[NormalizedRow]] = {}
    for row in rows:
        groups.setdefault(session_key(row), []).append(row)
    return groups
