"""Attendance workflows wiring the event log, photo storage and verification gate."""

from __future__ import annotations

import datetime
import logging
from typing import List, Optional

from django.conf import settings
from django.db.models import QuerySet
from django.utils import timezone

from . import imaging
from .imaging import ImageStore, Verification
from .models import AttendanceEvent, normalize_subject_email
from .sessions import (
    Session,
    Statistics,
    compute_statistics,
    exit_duration_seconds,
    reconstruct_sessions,
)

logger = logging.getLogger(__name__)


class EventRepository:
    """ORM-backed access to the append-only attendance log."""

    def _for_subject(self, queryset: QuerySet, email: Optional[str]) -> QuerySet:
        if email:
            return queryset.filter(subject_email=normalize_subject_email(email))
        return queryset

    def find_last_entry(self, email: str) -> Optional[AttendanceEvent]:
        """Return the subject's most recent check-in, if any."""

        return (
            self._for_subject(AttendanceEvent.objects.all(), email)
            .filter(kind=AttendanceEvent.Kind.ENTRY)
            .order_by("-occurred_at")
            .first()
        )

    def find_all(
        self,
        *,
        email: Optional[str] = None,
        kind: Optional[str] = None,
        start: Optional[datetime.datetime] = None,
        end: Optional[datetime.datetime] = None,
        limit: Optional[int] = None,
    ) -> List[AttendanceEvent]:
        """Return matching events, newest first."""

        queryset = self._for_subject(AttendanceEvent.objects.all(), email)
        if kind:
            queryset = queryset.filter(kind=kind)
        if start is not None:
            queryset = queryset.filter(occurred_at__gte=start)
        if end is not None:
            queryset = queryset.filter(occurred_at__lte=end)
        queryset = queryset.order_by("-occurred_at")
        if limit is not None:
            queryset = queryset[:limit]
        return list(queryset)

    def append(self, **fields) -> AttendanceEvent:
        """Persist a new event; ids and bookkeeping timestamps are assigned here."""

        return AttendanceEvent.objects.create(**fields)


class AttendanceService:
    """Check-in/check-out recording, identity verification and reporting."""

    def __init__(
        self,
        repository: EventRepository,
        image_store: ImageStore,
        *,
        threshold: float = imaging.DEFAULT_THRESHOLD,
        history_limit: int = 100,
    ) -> None:
        self.repository = repository
        self.image_store = image_store
        self.threshold = threshold
        self.history_limit = history_limit

    def record_attendance(self, name: str, email: str, image: str, kind: str) -> AttendanceEvent:
        """Store the photo rendition and append an ENTRY or EXIT event.

        Check-outs carry the seconds elapsed since the subject's latest
        check-in, when there is one.

        Raises:
            ImageProcessingError: If the photo cannot be processed or stored.
        """

        email = normalize_subject_email(email)
        occurred_at = timezone.now()
        rendition = self.image_store.store_rendition(image, email, kind, occurred_at)

        duration = None
        if kind == AttendanceEvent.Kind.EXIT:
            duration = exit_duration_seconds(self.repository.find_last_entry(email), occurred_at)

        event = self.repository.append(
            subject_name=name,
            subject_email=email,
            kind=kind,
            captured_image=rendition.encoded_image,
            stored_image_ref=rendition.storage_ref,
            occurred_at=occurred_at,
            duration_seconds=duration,
        )
        logger.info("Recorded %s for %s (duration=%s)", kind, email, duration)
        return event

    def verify_identity(self, email: str, image: str) -> Verification:
        """Compare ``image`` with the photo of the subject's latest check-in."""

        last_entry = self.repository.find_last_entry(email)
        reference = last_entry.captured_image if last_entry is not None else None
        result = imaging.verify(reference, image, self.threshold)
        logger.info(
            "Identity check for %s: verified=%s similarity=%.3f",
            normalize_subject_email(email),
            result.verified,
            result.similarity,
        )
        return result

    def history(
        self,
        *,
        email: Optional[str] = None,
        kind: Optional[str] = None,
        start: Optional[datetime.datetime] = None,
        end: Optional[datetime.datetime] = None,
    ) -> List[AttendanceEvent]:
        """Return recent events matching the filters.

        The time window only applies when both ``start`` and ``end`` are given.
        """

        if start is None or end is None:
            start = end = None
        return self.repository.find_all(
            email=email, kind=kind, start=start, end=end, limit=self.history_limit
        )

    def sessions(self, email: Optional[str] = None) -> List[Session]:
        return reconstruct_sessions(self.repository.find_all(email=email), email)

    def statistics(self) -> Statistics:
        return compute_statistics(self.repository.find_all())


def get_image_store() -> ImageStore:
    return ImageStore(settings.ATTENDANCE_UPLOAD_DIR)


def get_attendance_service() -> AttendanceService:
    """Build the service with the collaborators configured in settings."""

    return AttendanceService(
        EventRepository(),
        get_image_store(),
        threshold=settings.ATTENDANCE_VERIFICATION_THRESHOLD,
        history_limit=settings.ATTENDANCE_HISTORY_LIMIT,
    )
