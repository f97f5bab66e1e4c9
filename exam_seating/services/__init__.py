from .import_pipeline import ImportResult, import_spreadsheet, run_import
from .reconciliation import reconcile_session
from .seat_generator import GridSeatGenerator, SeatGenerator, get_seat_generator
from .seat_resolver import SubjectChoice, resolve_subject
from .seating_view import get_seating_view, get_student_schedule

__all__ = [
    "GridSeatGenerator",
    "ImportResult",
    "SeatGenerator",
    "SubjectChoice",
    "get_seat_generator",
    "get_seating_view",
    "get_student_schedule",
    "import_spreadsheet",
    "reconcile_session",
    "resolve_subject",
    "run_import",
]
