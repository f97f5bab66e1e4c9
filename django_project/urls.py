from django.contrib import admin
from django.urls import include, path

from exam_seating.views import healthz_view

urlpatterns = [
    path("admin/", admin.site.urls),
    path("api/", include("exam_seating.api.urls")),
    path("healthz/", healthz_view, name="healthz"),
]
