from unittest import mock

from django.contrib.auth import get_user_model
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase, override_settings

from exam_seating.exceptions import (
    ImportAborted,
    ImportValidationError,
    StoreError,
    UnresolvedIdentity,
)
from exam_seating.models import (
    Enrollment,
    ExamSession,
    ImportLog,
    ImportStatus,
    SeatAssignment,
    StudentProfile,
)
from exam_seating.services import import_pipeline as pipeline


def make_student(student_id, full_name=""):
    user = get_user_model().objects.create_user(
        username=student_id.lower(),
        email=f"{student_id.lower()}@example.com",
        password="secret",
    )
    StudentProfile.objects.create(user=user, student_id=student_id, full_name=full_name)
    return user


def raw_row(student_id, code="MATH101", date="2024-06-01", **extra):
    row = {
        "Student ID": student_id,
        "Name": f"Student {student_id}",
        "Subject Code": code,
        "Room": "R101",
        "Exam Date": date,
        "Start Time": "09:00",
    }
    row.update(extra)
    return row


class ImportSpreadsheetTests(TestCase):
    def setUp(self):
        for student_id in ("S001", "S002", "S003"):
            make_student(student_id)

    def test_imports_each_session_in_order(self):
        rows = [
            raw_row("S001"),
            raw_row("S002", code="PHYS101"),
            raw_row("S003"),
            raw_row("S003", date="someday"),
        ]

        result = pipeline.import_spreadsheet(rows)

        sessions = list(ExamSession.objects.order_by("pk"))
        self.assertEqual(result.imported_sessions, 2)
        self.assertEqual(result.sessions, tuple(session.pk for session in sessions))
        self.assertEqual(result.last_session, sessions[-1].pk)
        self.assertEqual(sessions[0].subject.code, "MATH101")
        self.assertEqual(result.skipped_rows, 1)
        self.assertEqual(result.skipped[0].row_number, 5)
        self.assertTrue(any("1 row(s) were skipped" in warning for warning in result.warnings))
        self.assertEqual(Enrollment.objects.count(), 3)

    def test_result_serializes(self):
        result = pipeline.import_spreadsheet([raw_row("S001")])
        payload = result.to_dict()

        self.assertEqual(payload["imported_sessions"], 1)
        self.assertEqual(payload["skipped_rows"], 0)
        self.assertEqual(payload["last_session"], ExamSession.objects.get().pk)
        self.assertEqual(payload["warnings"], [])

    def test_failure_reports_completed_sessions(self):
        rows = [
            raw_row("S001"),
            raw_row("S999", code="PHYS101"),
            raw_row("S002", code="CHEM101"),
            raw_row("S002", date="bad"),
        ]

        with self.assertRaises(UnresolvedIdentity) as ctx:
            pipeline.import_spreadsheet(rows)

        first = ExamSession.objects.get(subject__code="MATH101")
        self.assertEqual(ctx.exception.completed_sessions, [first.pk])
        self.assertEqual(ctx.exception.last_session, first.pk)
        self.assertEqual(ctx.exception.skipped_rows, 1)
        self.assertEqual(ctx.exception.missing_ids, ["S999"])
        # The first session stays imported; the third was never reached.
        self.assertEqual(Enrollment.objects.filter(subject__code="MATH101").count(), 1)
        self.assertFalse(ExamSession.objects.filter(subject__code="CHEM101").exists())

    def test_store_failure_stops_the_import(self):
        original = pipeline.reconcile_session
        calls = []

        def flaky(rows, **kwargs):
            calls.append(rows[0].subject_code)
            if len(calls) == 2:
                raise ImportAborted("Failed to import exam session: boom")
            return original(rows, **kwargs)

        with mock.patch.object(pipeline, "reconcile_session", side_effect=flaky):
            with self.assertRaises(ImportAborted) as ctx:
                pipeline.import_spreadsheet([raw_row("S001"), raw_row("S002", code="PHYS101")])

        self.assertEqual(calls, ["MATH101", "PHYS101"])
        self.assertEqual(len(ctx.exception.completed_sessions), 1)
        self.assertIn("boom", ctx.exception.reason)

    def test_store_error_inside_reconcile_is_wrapped(self):
        with mock.patch(
            "exam_seating.services.reconciliation.upsert_room",
            side_effect=StoreError("connection lost"),
        ):
            with self.assertRaises(ImportAborted) as ctx:
                pipeline.import_spreadsheet([raw_row("S001")])
        self.assertNotIsInstance(ctx.exception, UnresolvedIdentity)
        self.assertIn("connection lost", ctx.exception.reason)

    def test_validation_failures(self):
        with self.assertRaises(ImportValidationError):
            pipeline.import_spreadsheet([])
        with self.assertRaises(ImportValidationError):
            pipeline.import_spreadsheet([{"Student ID": "S001"}])
        with self.assertRaises(ImportValidationError):
            pipeline.import_spreadsheet([raw_row("S001")], anti_cheat_level="extreme")
        self.assertEqual(ExamSession.objects.count(), 0)

    @override_settings(EXAM_IMPORT_MAX_UPLOAD_ROWS=1)
    def test_row_cap(self):
        with self.assertRaises(ImportValidationError) as ctx:
            pipeline.import_spreadsheet([raw_row("S001"), raw_row("S002")])
        self.assertIn("at most 1", ctx.exception.reason)

    def test_auto_generate_uses_configured_generator(self):
        generator = mock.Mock()
        generator.generate.return_value = {"message": "Seated 1 students"}

        with mock.patch.object(pipeline, "get_seat_generator", return_value=generator) as factory:
            result = pipeline.import_spreadsheet([raw_row("S001")], auto_generate=True, anti_cheat_level="max")

        factory.assert_called_once_with()
        generator.generate.assert_called_once_with(result.last_session, "max")
        self.assertEqual(result.seat_messages, ("Seated 1 students",))


class RunImportTests(TestCase):
    def setUp(self):
        make_student("S001")
        self.admin = get_user_model().objects.create_user(
            username="admin", password="secret", is_staff=True
        )

    def _csv(self, body, name="seating.csv"):
        header = "student_id,full_name,subject_code,room_number,exam_date,start_time\n"
        return SimpleUploadedFile(name, (header + body).encode("utf-8"), content_type="text/csv")

    def test_success_is_logged(self):
        result = pipeline.run_import(
            self._csv("S001,Alice,MATH101,R101,2024-06-01,930\n"),
            uploaded_by=self.admin,
        )

        log = ImportLog.objects.get()
        self.assertEqual(log.status, ImportStatus.SUCCESS)
        self.assertEqual(log.file_name, "seating.csv")
        self.assertEqual(log.uploaded_by, self.admin)
        self.assertEqual(log.sessions_imported, 1)
        self.assertEqual(log.last_session_id, result.last_session)
        self.assertEqual(ExamSession.objects.get().start_time.strftime("%H:%M"), "09:30")

    def test_abort_is_logged(self):
        with self.assertRaises(UnresolvedIdentity):
            pipeline.run_import(self._csv("S404,Nobody,MATH101,R101,2024-06-01,09:00\n"))

        log = ImportLog.objects.get()
        self.assertEqual(log.status, ImportStatus.ABORTED)
        self.assertIsNone(log.uploaded_by)
        self.assertIn("S404", log.message)

    def test_validation_failure_is_not_logged(self):
        upload = SimpleUploadedFile("bad.csv", b"student_id,full_name\nS001,Alice\n", content_type="text/csv")
        with self.assertRaises(ImportValidationError):
            pipeline.run_import(upload)
        self.assertFalse(ImportLog.objects.exists())


class SplitRoomSeatingTests(TestCase):
    def setUp(self):
        for student_id in ("S001", "S002", "S003", "S004"):
            make_student(student_id)

    def test_students_are_seated_once_across_rooms(self):
        rows = [
            raw_row("S001", Room="R101"),
            raw_row("S002", Room="R101"),
            raw_row("S003", Room="R102"),
            raw_row("S004", Room="R102"),
        ]

        result = pipeline.import_spreadsheet(rows, auto_generate=True)

        self.assertEqual(result.imported_sessions, 2)
        seated = {
            room: sorted(
                SeatAssignment.objects.filter(exam_session__room__room_number=room).values_list(
                    "student__student_profile__student_id", flat=True
                )
            )
            for room in ("R101", "R102")
        }
        self.assertEqual(seated, {"R101": ["S001", "S002"], "R102": ["S003", "S004"]})
        self.assertEqual(SeatAssignment.objects.count(), 4)
