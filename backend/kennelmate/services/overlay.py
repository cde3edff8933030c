"""
KennelMate Backend - Status Overlay & Sorting

Purpose: Join durable reminder statuses onto freshly merged candidates and
order the result for display.
"""

from typing import Dict, Iterable, List

from kennelmate.models.reminder import (
    FinalReminder,
    ReminderCandidate,
    ReminderPriority,
    ReminderSource,
    ReminderStatus,
)

PRIORITY_ORDER = {
    ReminderPriority.HIGH: 0,
    ReminderPriority.MEDIUM: 1,
    ReminderPriority.LOW: 2,
}


def apply_status_overlay(
    candidates: Iterable[ReminderCandidate],
    statuses: Dict[str, ReminderStatus]
) -> List[FinalReminder]:
    """
    Left-join statuses onto candidates

    Deleted system reminders are dropped. Custom reminders are hard-deleted
    from their own store, so a deletion flag on one is ignored; completion is
    honored for both.
    """
    final: List[FinalReminder] = []

    for candidate in candidates:
        status = statuses.get(candidate.id)

        if status and status.is_deleted and candidate.source != ReminderSource.CUSTOM:
            continue

        final.append(FinalReminder.from_candidate(
            candidate,
            is_completed=bool(status and status.is_completed),
        ))

    return final


def sort_reminders(reminders: Iterable[FinalReminder]) -> List[FinalReminder]:
    """Incomplete first, then high/medium/low, then earliest due date"""
    return sorted(
        reminders,
        key=lambda r: (r.is_completed, PRIORITY_ORDER[r.priority], r.due_date, r.id),
    )
