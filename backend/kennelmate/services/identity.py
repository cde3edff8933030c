"""
KennelMate Backend - Reminder Identity

Purpose: Stable ids for system reminders so that a status recorded against a
reminder (completed, deleted) reattaches to it on every later regeneration.

    id = "<type>-" + sha1("<type>|<related_id>|<bucket>")[:16]

The bucket discretizes the due date to the event the reminder is about (one
heat cycle, one vaccination due date, one birthday year), so running the rules
again tomorrow yields the same id as today.
"""

import hashlib
from datetime import date
from typing import Optional

from kennelmate.models.reminder import ReminderType

# Reminder types whose event repeats yearly and is bucketed by year
_YEARLY_TYPES = {ReminderType.BIRTHDAY, ReminderType.GENERAL}


def due_period_bucket(
    reminder_type: ReminderType,
    due_date: date,
    qualifier: Optional[str] = None
) -> str:
    """
    Discretize a due date into the period that owns it

    Args:
        reminder_type: Reminder type
        due_date: Computed event date
        qualifier: Distinguishes several events of one type for the same
            entity (litter milestone key, general rule name)

    Returns:
        Bucket string
    """
    if reminder_type in _YEARLY_TYPES:
        bucket = str(due_date.year)
    else:
        bucket = due_date.isoformat()

    if qualifier:
        bucket = f"{qualifier}:{bucket}"

    return bucket


def make_reminder_id(
    reminder_type: ReminderType,
    related_id: Optional[str],
    bucket: str
) -> str:
    """Hash (type, related_id, bucket) into a deterministic reminder id"""
    raw = f"{reminder_type.value}|{related_id or ''}|{bucket}"
    digest = hashlib.sha1(raw.encode("utf-8")).hexdigest()[:16]
    return f"{reminder_type.value}-{digest}"


def reminder_id_for(
    reminder_type: ReminderType,
    related_id: Optional[str],
    due_date: date,
    qualifier: Optional[str] = None
) -> str:
    return make_reminder_id(
        reminder_type,
        related_id,
        due_period_bucket(reminder_type, due_date, qualifier),
    )
