from django.urls import include, path

from rest_framework.routers import DefaultRouter

from .views import AttendanceViewSet, serve_upload

router = DefaultRouter()
router.register(r"attendance", AttendanceViewSet, basename="attendance")

urlpatterns = [
    path("uploads/<str:filename>", serve_upload, name="attendance-upload"),
    path("", include(router.urls)),
]
