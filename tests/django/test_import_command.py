import os
import tempfile
from io import StringIO

from django.contrib.auth import get_user_model
from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import TestCase

from exam_seating.models import Enrollment, ExamSession, ImportLog, SeatAssignment, StudentProfile


class ImportExamSpreadsheetCommandTests(TestCase):
    def setUp(self):
        user = get_user_model().objects.create_user(username="s001", password="secret")
        StudentProfile.objects.create(user=user, student_id="S001", full_name="Alice")

    def _write_csv(self, body):
        handle = tempfile.NamedTemporaryFile("w", suffix=".csv", delete=False)
        handle.write("student_id,full_name,subject_code,room_number,exam_date,start_time\n" + body)
        handle.close()
        self.addCleanup(os.unlink, handle.name)
        return handle.name

    def test_imports_file(self):
        path = self._write_csv("S001,Alice,MATH101,R101,2024-06-01,09:00\nS001,Alice,MATH101,R101,bad,09:00\n")
        out = StringIO()

        call_command("import_exam_spreadsheet", path, stdout=out)

        self.assertIn("Imported 1 exam session(s); 1 row(s) skipped.", out.getvalue())
        self.assertEqual(ExamSession.objects.count(), 1)
        self.assertEqual(ImportLog.objects.get().file_name, os.path.basename(path))

    def test_auto_generate(self):
        path = self._write_csv("S001,Alice,MATH101,R101,2024-06-01,09:00\n")
        out = StringIO()

        call_command(
            "import_exam_spreadsheet", path, "--auto-generate", "--anti-cheat-level", "max", stdout=out
        )

        self.assertEqual(SeatAssignment.objects.count(), 1)
        self.assertIn("Seated 1 students", out.getvalue())

    def test_unknown_student_raises_command_error(self):
        path = self._write_csv("S404,Nobody,MATH101,R101,2024-06-01,09:00\n")
        with self.assertRaises(CommandError) as ctx:
            call_command("import_exam_spreadsheet", path, stdout=StringIO(), stderr=StringIO())
        self.assertIn("S404", str(ctx.exception))

    def test_missing_file(self):
        with self.assertRaises(CommandError):
            call_command("import_exam_spreadsheet", "/nonexistent/seating.csv")

    def test_completed_sessions_reported_on_abort(self):
        path = self._write_csv(
            "S001,Alice,MATH101,R101,2024-06-01,09:00\nS404,Nobody,PHYS101,R101,2024-06-01,13:00\n"
        )
        err = StringIO()
        with self.assertRaises(CommandError):
            call_command("import_exam_spreadsheet", path, stdout=StringIO(), stderr=err)
        math = ExamSession.objects.get(subject__code="MATH101")
        self.assertTrue(ExamSession.objects.filter(subject__code="PHYS101").exists())
        self.assertEqual(
            err.getvalue().strip(),
            f"Exam sessions imported before the failure: {math.pk}",
        )
        self.assertFalse(Enrollment.objects.filter(subject__code="PHYS101").exists())
