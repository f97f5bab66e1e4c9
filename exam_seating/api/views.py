import logging
import zipfile

from django.http import HttpResponse
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from exam_seating.exceptions import ImportAborted, SeatGenerationError
from exam_seating.models import ExamSession, ImportLog
from exam_seating.services import (
    get_seat_generator,
    get_seating_view,
    get_student_schedule,
    run_import,
)
from exam_seating.utils.spreadsheet_reader import build_import_template
from .permissions import IsExamAdmin
from .serializers import (
    ExamSessionSerializer,
    GenerateSeatingSerializer,
    ImportLogSerializer,
    ImportOptionsSerializer,
)

logger = logging.getLogger(__name__)

XLSX_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _aborted_payload(exc: ImportAborted) -> dict:
    return {
        "status": "error",
        "message": exc.reason,
        "reason": exc.reason,
        "completed_sessions": exc.completed_sessions,
        "last_session": exc.last_session,
        "skipped_rows": exc.skipped_rows,
        "warnings": exc.warnings,
        "missing_ids": getattr(exc, "missing_ids", []),
    }


class SpreadsheetImportView(APIView):
    """Accepts an uploaded seating spreadsheet and imports it exam session by exam session."""
    parser_classes = (MultiPartParser, FormParser)
    permission_classes = [IsExamAdmin]

    def post(self, request, *args, **kwargs):
        upload = request.FILES.get("file")
        if not upload:
            return Response(
                {"status": "error", "message": "No file uploaded."},
                status=status.HTTP_400_BAD_REQUEST,
            )

        options = ImportOptionsSerializer(data=request.data)
        options.is_valid(raise_exception=True)

        try:
            result = run_import(
                upload,
                file_name=getattr(upload, "name", "uploaded_file"),
                uploaded_by=request.user,
                auto_generate=options.validated_data["auto_generate"],
                anti_cheat_level=options.validated_data["anti_cheat_level"],
            )
        except ImportAborted as exc:
            return Response(_aborted_payload(exc), status=status.HTTP_400_BAD_REQUEST)
        except (ValueError, OSError, zipfile.BadZipFile) as exc:
            # pandas/openpyxl raise these for files that are not readable spreadsheets.
            logger.warning("Failed to decode upload %s: %s", getattr(upload, "name", ""), exc)
            return Response(
                {
                    "status": "error",
                    "message": "Failed to parse uploaded file.",
                    "details": str(exc),
                },
                status=status.HTTP_400_BAD_REQUEST,
            )

        return Response({"status": "ok", **result.to_dict()}, status=status.HTTP_200_OK)


class ImportTemplateView(APIView):
    permission_classes = [IsExamAdmin]

    def get(self, request, *args, **kwargs):
        response = HttpResponse(build_import_template(), content_type=XLSX_CONTENT_TYPE)
        response["Content-Disposition"] = 'attachment; filename="seating_template.xlsx"'
        return response


class ImportLogListView(APIView):
    permission_classes = [IsExamAdmin]

    def get(self, request, *args, **kwargs):
        logs = ImportLog.objects.select_related("uploaded_by")[:50]
        return Response(ImportLogSerializer(logs, many=True).data)


class SeatingView(APIView):
    permission_classes = [IsExamAdmin]

    def get(self, request, pk, *args, **kwargs):
        exam_session = get_object_or_404(ExamSession.objects.select_related("subject", "room"), pk=pk)
        return Response(
            {
                "exam_session": ExamSessionSerializer(exam_session).data,
                "seats": get_seating_view(exam_session.pk),
            }
        )


class GenerateSeatingView(APIView):
    """Runs the configured seat generator for one exam session."""
    parser_classes = (JSONParser, FormParser, MultiPartParser)
    permission_classes = [IsExamAdmin]

    def post(self, request, pk, *args, **kwargs):
        exam_session = get_object_or_404(ExamSession.objects.select_related("subject", "room"), pk=pk)
        serializer = GenerateSeatingSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        level = serializer.validated_data["anti_cheat_level"]

        try:
            generated = get_seat_generator().generate(exam_session.pk, level) or {}
        except SeatGenerationError as exc:
            return Response(
                {"status": "error", "message": str(exc)},
                status=status.HTTP_400_BAD_REQUEST,
            )

        return Response(
            {
                "status": "ok",
                "message": generated.get("message", ""),
                "exam_session": ExamSessionSerializer(exam_session).data,
                "seats": get_seating_view(exam_session.pk),
            }
        )


class StudentScheduleView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, *args, **kwargs):
        profile = getattr(request.user, "student_profile", None)
        return Response(
            {
                "student_id": profile.student_id if profile else None,
                "full_name": profile.full_name if profile else None,
                "exams": get_student_schedule(request.user),
            }
        )
