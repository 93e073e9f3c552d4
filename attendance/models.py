"""
Database models for the attendance app.

The attendance log is a flat, append-only sequence of ENTRY and EXIT events.
Sessions and statistics are derived from it at read time and never stored.
"""

from django.db import models
from django.utils import timezone


def normalize_subject_email(email: str) -> str:
    """Return the canonical lookup key for a subject's email address."""

    return (email or "").strip().lower()


class AttendanceEvent(models.Model):
    """A single check-in or check-out captured with a photo."""

    class Kind(models.TextChoices):
        """Supported attendance event kinds."""

        ENTRY = "ENTRY", "Check-in"
        EXIT = "EXIT", "Check-out"

    subject_email = models.EmailField(
        max_length=254,
        db_index=True,
        help_text="Lower-cased email identifying the person.",
    )
    subject_name = models.CharField(
        max_length=255,
        help_text="Display name supplied with the event.",
    )
    kind = models.CharField(
        max_length=5,
        choices=Kind.choices,
        help_text="Whether the event is a check-in or a check-out.",
    )
    captured_image = models.TextField(
        help_text="Data URL of the compressed rendition of the captured photo.",
    )
    stored_image_ref = models.CharField(
        max_length=512,
        help_text="Filename of the rendition persisted in the upload directory.",
    )
    occurred_at = models.DateTimeField(
        default=timezone.now,
        db_index=True,
        help_text="Server time at which the event was recorded.",
    )
    duration_seconds = models.PositiveIntegerField(
        null=True,
        blank=True,
        help_text="Seconds since the latest check-in; only set on check-outs.",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-occurred_at"]
        indexes = [
            models.Index(
                fields=["subject_email", "-occurred_at"],
                name="attendance_email_time_idx",
            ),
            models.Index(
                fields=["kind", "-occurred_at"],
                name="attendance_kind_time_idx",
            ),
            models.Index(
                fields=["subject_email", "kind", "-occurred_at"],
                name="attendance_email_kind_idx",
            ),
        ]

    def __str__(self) -> str:
        """Return a human readable representation for the event."""

        return f"{self.subject_email} - {self.get_kind_display()} - {self.occurred_at:%Y-%m-%d %H:%M:%S}"
