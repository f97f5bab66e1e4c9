from django.contrib import admin

from .models import (
    Department,
    Enrollment,
    ExamSession,
    ImportLog,
    Room,
    SeatAssignment,
    StudentProfile,
    Subject,
)


@admin.register(Department)
class DepartmentAdmin(admin.ModelAdmin):
    list_display = ("code", "name")
    search_fields = ("code", "name")


@admin.register(Subject)
class SubjectAdmin(admin.ModelAdmin):
    list_display = ("code", "name", "department")
    search_fields = ("code", "name")
    list_filter = ("department",)
    ordering = ("code",)


@admin.register(Room)
class RoomAdmin(admin.ModelAdmin):
    list_display = ("room_number", "building", "capacity")
    search_fields = ("room_number", "building")


class SeatAssignmentInline(admin.TabularInline):
    model = SeatAssignment
    extra = 0
    raw_id_fields = ("student",)


@admin.register(ExamSession)
class ExamSessionAdmin(admin.ModelAdmin):
    list_display = ("subject", "room", "exam_date", "start_time", "end_time", "duration_minutes")
    list_filter = ("exam_date", "room")
    search_fields = ("subject__code", "subject__name", "room__room_number")
    inlines = [SeatAssignmentInline]


@admin.register(StudentProfile)
class StudentProfileAdmin(admin.ModelAdmin):
    list_display = ("student_id", "full_name", "email", "user")
    search_fields = ("student_id", "full_name", "email")
    raw_id_fields = ("user",)


@admin.register(Enrollment)
class EnrollmentAdmin(admin.ModelAdmin):
    list_display = ("student", "subject")
    list_filter = ("subject",)
    raw_id_fields = ("student",)


@admin.register(SeatAssignment)
class SeatAssignmentAdmin(admin.ModelAdmin):
    list_display = ("exam_session", "seat_number", "row_number", "column_number", "student")
    list_filter = ("exam_session__exam_date",)
    raw_id_fields = ("student", "exam_session")


@admin.register(ImportLog)
class ImportLogAdmin(admin.ModelAdmin):
    list_display = ("file_name", "uploaded_by", "uploaded_at", "status", "sessions_imported", "rows_skipped")
    list_filter = ("status",)
    ordering = ("-uploaded_at",)
