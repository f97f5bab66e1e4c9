from django.conf import settings
from django.db import models


class AntiCheatLevel(models.TextChoices):
    BASIC = "basic", "Basic"
    STRICT = "strict", "Strict"
    MAX = "max", "Maximum"


class ImportStatus(models.TextChoices):
    SUCCESS = "success", "Success"
    ABORTED = "aborted", "Aborted"


# ---------- MAIN TABLES ----------


class Department(models.Model):
    code = models.CharField(max_length=30, unique=True)
    name = models.CharField(max_length=255)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return f"{self.name} ({self.code})"


class Subject(models.Model):
    code = models.CharField(max_length=50, unique=True)
    name = models.CharField(max_length=255)
    department = models.ForeignKey(
        Department,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="subjects",
    )

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return f"{self.name} ({self.code})"


class Room(models.Model):
    room_number = models.CharField(max_length=50, unique=True)
    building = models.CharField(max_length=255, blank=True)
    capacity = models.PositiveIntegerField(default=50)

    class Meta:
        ordering = ["room_number"]

    def __str__(self):
        return f"Room {self.room_number}"


class ExamSession(models.Model):
    subject = models.ForeignKey(Subject, on_delete=models.CASCADE, related_name="exam_sessions")
    room = models.ForeignKey(Room, on_delete=models.CASCADE, related_name="exam_sessions")
    exam_date = models.DateField()
    start_time = models.TimeField()
    end_time = models.TimeField()
    duration_minutes = models.PositiveIntegerField(default=120)

    class Meta:
        ordering = ["exam_date", "start_time"]
        constraints = [
            models.UniqueConstraint(
                fields=["subject", "exam_date", "start_time", "room"],
                name="unique_exam_session_slot",
            ),
        ]

    def __str__(self):
        return f"{self.subject} on {self.exam_date} at {self.start_time:%H:%M} in {self.room}"


class StudentProfile(models.Model):
    # The account's primary key doubles as the profile key, so a profile can
    # only exist once an account has been provisioned.
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        primary_key=True,
        related_name="student_profile",
    )
    student_id = models.CharField(max_length=100, unique=True)
    full_name = models.CharField(max_length=255, blank=True)
    email = models.EmailField(blank=True, null=True)

    class Meta:
        ordering = ["full_name"]

    def __str__(self):
        return f"{self.full_name or self.student_id} ({self.student_id})"


class Enrollment(models.Model):
    student = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="enrollments",
    )
    subject = models.ForeignKey(Subject, on_delete=models.CASCADE, related_name="enrollments")

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["student", "subject"], name="unique_student_subject"),
        ]

    def __str__(self):
        return f"{self.student} - {self.subject}"


class SeatAssignment(models.Model):
    exam_session = models.ForeignKey(
        ExamSession,
        on_delete=models.CASCADE,
        related_name="seat_assignments",
    )
    student = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="seat_assignments",
    )
    seat_number = models.CharField(max_length=20)
    row_number = models.PositiveIntegerField()
    column_number = models.PositiveIntegerField()

    class Meta:
        ordering = ["seat_number"]
        constraints = [
            models.UniqueConstraint(fields=["exam_session", "student"], name="unique_seat_per_student"),
            models.UniqueConstraint(fields=["exam_session", "seat_number"], name="unique_seat_number"),
        ]

    def __str__(self):
        return f"{self.student} at seat {self.seat_number} ({self.exam_session_id})"


class ImportLog(models.Model):  # Upload history for spreadsheet imports
    file_name = models.CharField(max_length=255)
    uploaded_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        related_name="exam_import_logs",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
    )
    uploaded_at = models.DateTimeField(auto_now_add=True)
    status = models.CharField(max_length=20, choices=ImportStatus.choices)
    sessions_imported = models.IntegerField(default=0)
    rows_skipped = models.IntegerField(default=0)
    message = models.TextField(blank=True)
    last_session = models.ForeignKey(
        ExamSession,
        related_name="+",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
    )

    class Meta:
        ordering = ["-uploaded_at"]

    def __str__(self):
        return f"{self.file_name} by {self.uploaded_by} on {self.uploaded_at:%Y-%m-%d %H:%M}"
