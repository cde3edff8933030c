"""
KennelMate Backend - Migration Models

Purpose: Legacy client-side reminder data and the migration state carried
through a session.
"""

from typing import List, Optional, Set
from datetime import date
from pydantic import BaseModel, Field, validator
from enum import Enum

from kennelmate.models.reminder import CustomReminder, ReminderPriority, ReminderType


class MigrationState(str, Enum):
    """Migration state for one session"""
    NOT_ATTEMPTED = "not_attempted"
    IN_PROGRESS = "in_progress"
    COMPLETE = "complete"


class LegacyCustomReminder(BaseModel):
    """Custom reminder as it was kept in client-side storage"""

    id: str
    title: str
    description: str = ""
    due_date: date = Field(..., alias="dueDate")
    priority: ReminderPriority = ReminderPriority.MEDIUM
    type: ReminderType = ReminderType.CUSTOM
    related_id: Optional[str] = Field(None, alias="relatedId")

    model_config = {"populate_by_name": True}

    @validator("due_date", pre=True)
    def parse_due_date(cls, v):
        # Legacy clients stored full ISO timestamps
        if isinstance(v, str):
            return v[:10]
        return v

    @validator("type", pre=True)
    def parse_type(cls, v):
        # Older clients used ad-hoc types (deworming, vet-visit, ...)
        try:
            return ReminderType(v)
        except ValueError:
            return ReminderType.CUSTOM

    def to_custom_reminder(self) -> CustomReminder:
        return CustomReminder(
            id=self.id,
            title=self.title,
            description=self.description,
            due_date=self.due_date,
            priority=self.priority,
            type=self.type,
            related_id=self.related_id,
        )


class LegacyReminderData(BaseModel):
    """The three legacy collections awaiting migration"""

    custom_reminders: List[LegacyCustomReminder] = Field(default_factory=list)
    completed_ids: Set[str] = Field(default_factory=set)
    deleted_ids: Set[str] = Field(default_factory=set)

    @property
    def is_empty(self) -> bool:
        return not (self.custom_reminders or self.completed_ids or self.deleted_ids)


class MigrationResult(BaseModel):
    """Outcome of one migration attempt"""

    state: MigrationState
    attempted: bool = False
    migrated_reminders: int = 0
    migrated_statuses: int = 0
    skipped_deleted_reminders: int = 0
    orphaned_status_ids: List[str] = Field(default_factory=list)
    won_flag: bool = False
    failed_attempts: int = 0
    error: Optional[str] = None
    warning: Optional[str] = None
