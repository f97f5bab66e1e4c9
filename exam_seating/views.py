from django.db import DatabaseError, connection
from django.http import JsonResponse

from exam_seating.models import ImportLog


def healthz_view(_request):
    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
        last_import = ImportLog.objects.order_by("-uploaded_at").first()
    except DatabaseError as exc:
        return JsonResponse(
            {
                "status": "error",
                "services": {
                    "database": {"status": "error", "error": str(exc)},
                },
            },
            status=503,
        )

    return JsonResponse(
        {
            "status": "ok",
            "services": {
                "database": {"status": "ok"},
                "imports": {
                    "last_status": last_import.status if last_import else None,
                    "last_uploaded_at": last_import.uploaded_at.isoformat() if last_import else None,
                },
            },
        }
    )
