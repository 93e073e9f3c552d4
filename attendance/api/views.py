import logging
from functools import wraps

from django.conf import settings
from django.http import FileResponse, JsonResponse
from django.views.decorators.http import require_GET

from django_ratelimit.core import is_ratelimited
from rest_framework import permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from attendance.api.serializers import (
    AttendanceRecordSerializer,
    AttendanceRequestSerializer,
    HistoryQuerySerializer,
    SessionSerializer,
    StatsSerializer,
    VerifyRequestSerializer,
)
from attendance.imaging import ImageProcessingError
from attendance.models import AttendanceEvent
from attendance.services import get_attendance_service, get_image_store

logger = logging.getLogger(__name__)

RATE_LIMIT_GROUP = "attendance.record"


def attendance_rate_limited(view_method):
    """Apply django-ratelimit protection to attendance submissions."""

    @wraps(view_method)
    def _wrapped(self, request, *args, **kwargs):
        rate = getattr(settings, "ATTENDANCE_RATE_LIMIT", "30/m")
        if not rate:
            return view_method(self, request, *args, **kwargs)

        was_limited = is_ratelimited(
            request=request,
            group=RATE_LIMIT_GROUP,
            key="user_or_ip",
            rate=rate,
            method="POST",
            increment=True,
        )
        if was_limited:
            logger.warning(
                "Attendance rate limit triggered for %s",
                request.META.get("REMOTE_ADDR", "unknown"),
            )
            return Response(
                {"message": "Too many attendance attempts. Please wait."},
                status=status.HTTP_429_TOO_MANY_REQUESTS,
            )

        return view_method(self, request, *args, **kwargs)

    return _wrapped


class AttendanceViewSet(viewsets.ViewSet):
    """
    Check-in/check-out submission, identity checks and admin reporting.
    """

    def get_permissions(self):
        if self.action in ("create", "verify"):
            return [permissions.AllowAny()]
        return [permissions.IsAdminUser()]

    @attendance_rate_limited
    def create(self, request):
        """
        Record a check-in or check-out.

        Check-outs must first pass the photo comparison against the subject's
        most recent check-in.
        """
        serializer = AttendanceRequestSerializer(data=request.data)
        if not serializer.is_valid():
            if "type" in serializer.errors and len(serializer.errors) == 1:
                message = "Type must be either ENTRY or EXIT"
            else:
                message = "Name, email, and image are required"
            return Response({"message": message}, status=status.HTTP_400_BAD_REQUEST)

        payload = serializer.validated_data
        kind = payload["type"]
        service = get_attendance_service()

        try:
            if kind == AttendanceEvent.Kind.EXIT:
                verification = service.verify_identity(payload["email"], payload["image"])
                if not verification.verified:
                    logger.info("Rejected check-out for %s", payload["email"])
                    return Response(
                        {
                            "message": "Identity verification failed. Similarity: "
                            f"{round(verification.similarity * 100)}%"
                        },
                        status=status.HTTP_400_BAD_REQUEST,
                    )

            record = service.record_attendance(
                payload["name"], payload["email"], payload["image"], kind
            )
        except ImageProcessingError:
            logger.exception("Failed to record attendance for %s", payload["email"])
            return Response(
                {"message": "Error processing attendance"},
                status=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )

        label = "check-in" if kind == AttendanceEvent.Kind.ENTRY else "check-out"
        return Response(
            {
                "message": f"Successfully recorded {label}",
                "type": kind,
                "record": AttendanceRecordSerializer(record).data,
            },
            status=status.HTTP_201_CREATED,
        )

    @action(detail=False, methods=["post"])
    def verify(self, request):
        serializer = VerifyRequestSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(
                {"message": "Email and image are required"},
                status=status.HTTP_400_BAD_REQUEST,
            )

        verification = get_attendance_service().verify_identity(
            serializer.validated_data["email"], serializer.validated_data["image"]
        )
        return Response(verification.as_dict())

    @action(detail=False, methods=["get"])
    def history(self, request):
        """
        List recent events, optionally filtered by subject, kind and time window.
        """
        query = HistoryQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        filters = query.validated_data

        records = get_attendance_service().history(
            email=filters.get("email"),
            kind=filters.get("type"),
            start=filters.get("startDate"),
            end=filters.get("endDate"),
        )
        return Response(AttendanceRecordSerializer(records, many=True).data)

    @action(detail=False, methods=["get"])
    def sessions(self, request):
        email = request.query_params.get("email") or None
        sessions = get_attendance_service().sessions(email)
        return Response(SessionSerializer(sessions, many=True).data)

    @action(detail=False, methods=["get"])
    def stats(self, request):
        statistics = get_attendance_service().statistics()
        return Response(StatsSerializer(statistics).data)


@require_GET
def serve_upload(request, filename):
    """Stream a stored photo rendition."""

    store = get_image_store()
    try:
        path = store.get_image_path(filename)
    except ValueError:
        return JsonResponse({"message": "Image not found"}, status=404)

    if not path.is_file():
        return JsonResponse({"message": "Image not found"}, status=404)

    return FileResponse(path.open("rb"), content_type="image/jpeg")
