from django.urls import path

from .views import (
    GenerateSeatingView,
    ImportLogListView,
    ImportTemplateView,
    SeatingView,
    SpreadsheetImportView,
    StudentScheduleView,
)

urlpatterns = [
    path("seating/import/", SpreadsheetImportView.as_view(), name="api-seating-import"),
    path("seating/import/template/", ImportTemplateView.as_view(), name="api-seating-import-template"),
    path("seating/import/logs/", ImportLogListView.as_view(), name="api-seating-import-logs"),
    path("seating/sessions/<int:pk>/", SeatingView.as_view(), name="api-seating-session"),
    path("seating/sessions/<int:pk>/generate/", GenerateSeatingView.as_view(), name="api-seating-generate"),
    path("seating/my-exams/", StudentScheduleView.as_view(), name="api-seating-my-exams"),
]
