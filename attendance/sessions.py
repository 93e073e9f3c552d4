"""Session reconstruction and statistics over the attendance event log."""

from __future__ import annotations

import datetime
from dataclasses import dataclass
from typing import Iterable, List, Optional, Protocol

ENTRY = "ENTRY"
EXIT = "EXIT"


class Event(Protocol):
    """The attributes the reconstructor reads from an attendance event."""

    subject_email: str
    kind: str
    occurred_at: datetime.datetime
    duration_seconds: Optional[int]


@dataclass(slots=True)
class Session:
    """One check-in paired with at most one later check-out.

    ``exit`` is ``None`` while the session is still open; ``duration`` mirrors
    the check-out's ``duration_seconds``.
    """

    entry: Event
    exit: Optional[Event] = None
    duration: Optional[int] = None

    @property
    def is_open(self) -> bool:
        return self.exit is None


@dataclass(slots=True)
class Statistics:
    """Aggregate counts derived from the attendance log."""

    total_entries: int
    total_exits: int
    distinct_subjects: int
    average_duration_seconds: float


def _subject_key(email: str) -> str:
    return (email or "").strip().lower()


def reconstruct_sessions(
    events: Iterable[Event], subject_email: Optional[str] = None
) -> List[Session]:
    """Pair check-ins with check-outs for each subject.

    The events are walked newest first. A check-out becomes the pending exit of
    its subject, replacing any earlier pending one, and the next older
    check-in of that subject consumes it into a completed session. Check-ins
    with nothing pending become open sessions. A check-out that no older
    check-in consumes is dropped without producing a session.

    Args:
        events: A consistent snapshot of the log, in any order.
        subject_email: Optional case-insensitive subject filter.

    Returns:
        Sessions ordered by check-in time, most recent first.
    """

    wanted = _subject_key(subject_email) if subject_email else None
    snapshot = [
        event
        for event in events
        if wanted is None or _subject_key(event.subject_email) == wanted
    ]
    snapshot.sort(key=lambda event: event.occurred_at, reverse=True)

    pending_exits: dict[str, Event] = {}
    sessions: List[Session] = []

    for event in snapshot:
        subject = _subject_key(event.subject_email)
        if event.kind == EXIT:
            pending_exits[subject] = event
        elif event.kind == ENTRY:
            exit_event = pending_exits.pop(subject, None)
            if exit_event is None:
                sessions.append(Session(entry=event))
            else:
                sessions.append(
                    Session(entry=event, exit=exit_event, duration=exit_event.duration_seconds)
                )

    sessions.sort(key=lambda session: session.entry.occurred_at, reverse=True)
    return sessions


def compute_statistics(events: Iterable[Event]) -> Statistics:
    """Summarise the log.

    ``distinct_subjects`` counts stored email values exactly as persisted. The
    average covers every check-out carrying a duration and is ``0`` when there
    are none.
    """

    total_entries = 0
    total_exits = 0
    subjects: set[str] = set()
    durations: List[int] = []

    for event in events:
        subjects.add(event.subject_email)
        if event.kind == ENTRY:
            total_entries += 1
        elif event.kind == EXIT:
            total_exits += 1
            if event.duration_seconds is not None:
                durations.append(event.duration_seconds)

    average = sum(durations) / len(durations) if durations else 0
    return Statistics(
        total_entries=total_entries,
        total_exits=total_exits,
        distinct_subjects=len(subjects),
        average_duration_seconds=average,
    )


def exit_duration_seconds(
    last_entry: Optional[Event], exit_time: datetime.datetime
) -> Optional[int]:
    """Return whole seconds between the latest check-in and a check-out.

    ``None`` when the subject has no check-in yet.
    """

    if last_entry is None:
        return None
    elapsed = (exit_time - last_entry.occurred_at).total_seconds()
    return max(0, round(elapsed))
