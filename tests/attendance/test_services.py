"""Tests for the attendance service against the ORM-backed event log."""

from __future__ import annotations

import datetime as dt
from unittest import mock

import pytest

from attendance.imaging import ImageProcessingError, ImageStore
from attendance.models import AttendanceEvent
from attendance.services import AttendanceService, EventRepository, get_attendance_service

pytestmark = pytest.mark.django_db

START = dt.datetime(2024, 3, 1, 9, 0, tzinfo=dt.timezone.utc)


@pytest.fixture
def service(upload_dir):
    return AttendanceService(EventRepository(), ImageStore(upload_dir), threshold=0.7)


def _record_at(service, when, *args):
    with mock.patch("attendance.services.timezone.now", return_value=when):
        return service.record_attendance(*args)


def _event(email, kind, when, duration=None):
    return AttendanceEvent.objects.create(
        subject_email=email,
        subject_name="Someone",
        kind=kind,
        captured_image="",
        stored_image_ref="",
        occurred_at=when,
        duration_seconds=duration,
    )


class TestRecordAttendance:
    def test_entry_is_persisted_with_rendition(self, service, upload_dir, make_image):
        record = _record_at(service, START, "Jane", "Jane@Example.com", make_image(), "ENTRY")

        assert record.pk is not None
        assert record.subject_email == "jane@example.com"
        assert record.subject_name == "Jane"
        assert record.kind == "ENTRY"
        assert record.occurred_at == START
        assert record.duration_seconds is None
        assert record.captured_image.startswith("data:image/jpeg;base64,")
        assert (upload_dir / record.stored_image_ref).is_file()
        assert record.stored_image_ref.startswith("jane@example.com_ENTRY_2024-03-01_")

    def test_exit_duration_counts_from_latest_entry(self, service, make_image):
        image = make_image()
        _record_at(service, START, "Jane", "jane@example.com", image, "ENTRY")
        _record_at(service, START + dt.timedelta(hours=1), "Jane", "jane@example.com", image, "ENTRY")

        record = _record_at(
            service,
            START + dt.timedelta(hours=1, minutes=30, milliseconds=600),
            "Jane",
            "JANE@example.com",
            image,
            "EXIT",
        )

        assert record.duration_seconds == 1801

    def test_exit_without_entry_has_no_duration(self, service, make_image):
        record = _record_at(service, START, "Jane", "jane@example.com", make_image(), "EXIT")
        assert record.duration_seconds is None

    def test_entries_of_other_subjects_are_ignored(self, service, make_image):
        _record_at(service, START, "John", "john@example.com", make_image(), "ENTRY")
        record = _record_at(
            service, START + dt.timedelta(minutes=5), "Jane", "jane@example.com", make_image(), "EXIT"
        )
        assert record.duration_seconds is None

    def test_unprocessable_photo_stores_nothing(self, service):
        with pytest.raises(ImageProcessingError):
            service.record_attendance("Jane", "jane@example.com", "not-a-photo", "ENTRY")
        assert AttendanceEvent.objects.count() == 0


class TestVerifyIdentity:
    def test_without_entry_is_unverified(self, service, make_image):
        result = service.verify_identity("jane@example.com", make_image())
        assert result.verified is False
        assert result.similarity == 0.0

    def test_compares_with_latest_entry_photo(self, service, make_image):
        black = make_image(color=(0, 0, 0))
        white = make_image(color=(255, 255, 255))
        _record_at(service, START, "Jane", "jane@example.com", black, "ENTRY")
        _record_at(service, START + dt.timedelta(minutes=1), "Jane", "jane@example.com", white, "ENTRY")

        assert service.verify_identity("jane@example.com", white).verified is True
        assert service.verify_identity("jane@example.com", black).verified is False

    def test_lookup_is_case_insensitive(self, service, make_image):
        image = make_image(color=(100, 150, 200))
        _record_at(service, START, "Jane", "jane@example.com", image, "ENTRY")

        result = service.verify_identity("  JANE@EXAMPLE.COM ", image)

        assert result.verified is True
        assert result.similarity > 0.95

    def test_uses_configured_threshold(self, upload_dir, make_image):
        strict = AttendanceService(EventRepository(), ImageStore(upload_dir), threshold=1.0)
        image = make_image()
        _record_at(strict, START, "Jane", "jane@example.com", image, "ENTRY")

        assert strict.verify_identity("jane@example.com", image).verified is False


class TestHistory:
    def test_filters_and_ordering(self, service):
        _event("jane@example.com", "ENTRY", START)
        _event("john@example.com", "ENTRY", START + dt.timedelta(minutes=1))
        _event("jane@example.com", "EXIT", START + dt.timedelta(minutes=2), 120)

        everything = service.history()
        assert [e.occurred_at for e in everything] == [
            START + dt.timedelta(minutes=2),
            START + dt.timedelta(minutes=1),
            START,
        ]

        jane = service.history(email="JANE@example.com")
        assert {e.subject_email for e in jane} == {"jane@example.com"}

        exits = service.history(kind="EXIT")
        assert [e.kind for e in exits] == ["EXIT"]

    def test_time_window_requires_both_bounds(self, service):
        for minutes in (0, 60, 120):
            _event("jane@example.com", "ENTRY", START + dt.timedelta(minutes=minutes))

        window = service.history(
            start=START + dt.timedelta(minutes=30), end=START + dt.timedelta(minutes=90)
        )
        assert [e.occurred_at for e in window] == [START + dt.timedelta(minutes=60)]

        only_start = service.history(start=START + dt.timedelta(minutes=30))
        assert len(only_start) == 3

        only_end = service.history(end=START + dt.timedelta(minutes=30))
        assert len(only_end) == 3

    def test_result_is_capped(self, upload_dir):
        service = AttendanceService(EventRepository(), ImageStore(upload_dir), history_limit=2)
        for minutes in range(4):
            _event("jane@example.com", "ENTRY", START + dt.timedelta(minutes=minutes))

        history = service.history()

        assert [e.occurred_at for e in history] == [
            START + dt.timedelta(minutes=3),
            START + dt.timedelta(minutes=2),
        ]


class TestReporting:
    def test_sessions_from_stored_events(self, service):
        jane_in = _event("jane@example.com", "ENTRY", START)
        jane_out = _event("jane@example.com", "EXIT", START + dt.timedelta(minutes=10), 600)
        john_in = _event("john@example.com", "ENTRY", START + dt.timedelta(minutes=20))

        sessions = service.sessions()

        assert [(s.entry.pk, s.exit.pk if s.exit else None) for s in sessions] == [
            (john_in.pk, None),
            (jane_in.pk, jane_out.pk),
        ]
        assert sessions[1].duration == 600
        assert [s.entry.pk for s in service.sessions("jane@example.com")] == [jane_in.pk]

    def test_statistics(self, service):
        _event("jane@example.com", "ENTRY", START)
        _event("jane@example.com", "EXIT", START + dt.timedelta(minutes=10), 600)
        _event("john@example.com", "ENTRY", START)
        _event("john@example.com", "EXIT", START + dt.timedelta(minutes=5), 301)

        stats = service.statistics()

        assert stats.total_entries == 2
        assert stats.total_exits == 2
        assert stats.distinct_subjects == 2
        assert stats.average_duration_seconds == pytest.approx(450.5)


def test_factory_reads_settings(settings, upload_dir):
    settings.ATTENDANCE_VERIFICATION_THRESHOLD = 0.9
    settings.ATTENDANCE_HISTORY_LIMIT = 5

    service = get_attendance_service()

    assert service.threshold == 0.9
    assert service.history_limit == 5
    assert service.image_store.upload_dir == upload_dir
