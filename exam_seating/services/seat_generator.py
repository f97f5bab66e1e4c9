import logging
from typing import Any, Dict, List, Optional, Tuple

from django.conf import settings
from django.db import DatabaseError, transaction
from django.utils.module_loading import import_string

from exam_seating.exceptions import SeatGenerationError
from exam_seating.models import AntiCheatLevel, Enrollment, ExamSession, SeatAssignment

logger = logging.getLogger(__name__)


class SeatGenerator:
    """Places the students of one exam session into seats of its room."""

    def generate(self, exam_session_id: int, strictness: str) -> Dict[str, Any]:
        raise NotImplementedError


def seat_label(row: int, column: int) -> str:
    return f"R{row:02d}-C{column:02d}"


def seat_positions(capacity: int, columns: int, strictness: str) -> List[Tuple[int, int]]:
    """
    Usable (row, column) positions of a room laid out ``columns`` seats wide.

    ``strict`` leaves every other column empty, ``max`` also every other row.
    """
    columns = max(1, columns)
    positions = []
    for index in range(max(0, capacity)):
        row, column = divmod(index, columns)
        row, column = row + 1, column + 1
        if strictness in (AntiCheatLevel.STRICT, AntiCheatLevel.MAX) and column % 2 == 0:
            continue
        if strictness == AntiCheatLevel.MAX and row % 2 == 0:
            continue
        positions.append((row, column))
    return positions


class GridSeatGenerator(SeatGenerator):
    """
    Seats the students enrolled in the session's subject, ordered by student
    ID, row by row across the room. Students already seated in another room for
    the same subject, date and start time are left out. Existing seats of the
    session are replaced.
    """

    def __init__(self, columns: Optional[int] = None):
        self.columns = columns or settings.EXAM_SEAT_GRID_COLUMNS

    def generate(self, exam_session_id: int, strictness: str) -> Dict[str, Any]:
        if strictness not in AntiCheatLevel.values:
            raise SeatGenerationError(f"Unknown anti-cheat level: {strictness}")
        try:
            exam_session = ExamSession.objects.select_related("room", "subject").get(pk=exam_session_id)
        except ExamSession.DoesNotExist:
            raise SeatGenerationError(f"Exam session {exam_session_id} does not exist.")

        # Students already seated in a parallel session of the same exam keep that seat.
        seated_elsewhere = (
            SeatAssignment.objects.filter(
                exam_session__subject_id=exam_session.subject_id,
                exam_session__exam_date=exam_session.exam_date,
                exam_session__start_time=exam_session.start_time,
            )
            .exclude(exam_session=exam_session)
            .values("student_id")
        )
        students = list(
            Enrollment.objects.filter(subject_id=exam_session.subject_id)
            .exclude(student_id__in=seated_elsewhere)
            .order_by("student__student_profile__student_id", "student_id")
            .values_list("student_id", flat=True)
        )
        positions = seat_positions(exam_session.room.capacity, self.columns, strictness)
        if len(students) > len(positions):
            raise SeatGenerationError(
                f"{exam_session.room} has {len(positions)} usable seats at '{strictness}' level "
                f"but {len(students)} students are enrolled in {exam_session.subject.code}."
            )

        seats = [
            SeatAssignment(
                exam_session=exam_session,
                student_id=student_id,
                seat_number=seat_label(row, column),
                row_number=row,
                column_number=column,
            )
            for student_id, (row, column) in zip(students, positions)
        ]
        try:
            with transaction.atomic():
                SeatAssignment.objects.filter(exam_session=exam_session).delete()
                SeatAssignment.objects.bulk_create(seats)
        except DatabaseError as exc:
            raise SeatGenerationError(str(exc)) from exc

        logger.info(
            "Generated %d seats for exam_session=%s (%s)",
            len(seats),
            exam_session.pk,
            strictness,
        )
        return {
            "message": f"Seated {len(seats)} students in {exam_session.room} ({strictness}).",
            "seated": len(seats),
            "exam_session": exam_session.pk,
        }


def get_seat_generator() -> SeatGenerator:
    return import_string(settings.EXAM_SEAT_GENERATOR)()
