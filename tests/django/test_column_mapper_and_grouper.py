from datetime import date

from django.test import SimpleTestCase

from exam_seating.services.row_normalizer import NormalizedRow
from exam_seating.services.session_grouper import group_rows, session_key
from exam_seating.utils.column_mapper import (
    canonical_column,
    canonicalize_row,
    collect_columns,
    normalize,
)


class ColumnMapperTests(SimpleTestCase):
    def test_normalize_collapses_whitespace_and_punctuation(self):
        self.assertEqual(normalize("  Student\nID  "), "student_id")
        self.assertEqual(normalize("Room No."), "room_no")
        self.assertEqual(normalize("Unnamed: 3"), "")

    def test_canonical_column_uses_equivalents(self):
        self.assertEqual(canonical_column("Student Number"), "student_id")
        self.assertEqual(canonical_column("Course Code"), "subject_code")
        self.assertEqual(canonical_column("Venue"), "room_number")
        self.assertEqual(canonical_column("Date"), "exam_date")
        self.assertEqual(canonical_column("Favourite Colour"), "favourite_colour")

    def test_canonicalize_row_first_non_blank_wins(self):
        row = canonicalize_row({"Room": "", "Venue": "Hall 2", "Room Number": "Hall 9"})
        self.assertEqual(row["room_number"], "Hall 2")

    def test_collect_columns_ignores_unnamed(self):
        columns = collect_columns([{"Name": "A", "Unnamed: 0": 1}, {"Date": "2024-01-01"}])
        self.assertEqual(columns, {"full_name", "exam_date"})


def _row(student_id, code="MATH101", day=1, start="09:00", room="R1"):
    return NormalizedRow(
        student_id=student_id,
        full_name=student_id,
        subject_code=code,
        room_number=room,
        exam_date=date(2024, 6, day),
        start_time=start,
    )


class SessionGrouperTests(SimpleTestCase):
    def test_session_key_layout(self):
        self.assertEqual(session_key(_row("S1")), "MATH101||2024-06-01||09:00||R1")

    def test_groups_keep_first_seen_order_and_row_order(self):
        rows = [
            _row("S1"),
            _row("S2", code="PHYS101"),
            _row("S3"),
            _row("S4", start="13:00"),
            _row("S5", code="PHYS101"),
        ]
        groups = group_rows(rows)

        self.assertEqual(
            list(groups),
            [
                "MATH101||2024-06-01||09:00||R1",
                "PHYS101||2024-06-01||09:00||R1",
                "MATH101||2024-06-01||13:00||R1",
            ],
        )
        self.assertEqual([r.student_id for r in groups["MATH101||2024-06-01||09:00||R1"]], ["S1", "S3"])
        self.assertEqual([r.student_id for r in groups["PHYS101||2024-06-01||09:00||R1"]], ["S2", "S5"])

    def test_grouping_is_deterministic(self):
        rows = [_row("S1"), _row("S2", room="R2"), _row("S3", day=2)]
        self.assertEqual(list(group_rows(rows)), list(group_rows(list(rows))))
        self.assertEqual(group_rows([]), {})
