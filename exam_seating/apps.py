from django.apps import AppConfig


class ExamSeatingConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "exam_seating"
    verbose_name = "Exam seating"
