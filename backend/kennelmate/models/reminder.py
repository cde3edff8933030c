"""
KennelMate Backend - Reminder Models

Purpose: Ephemeral reminder candidates, durable custom reminders and
reminder statuses, and the final (status-overlaid) reminder shown to users.
"""

from typing import Optional, Dict, Any
from datetime import date, datetime, timezone
from pydantic import BaseModel, Field
from enum import Enum


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ReminderPriority(str, Enum):
    """Reminder priority"""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class ReminderType(str, Enum):
    """What a reminder is about"""
    HEAT = "heat"
    VACCINATION = "vaccination"
    LITTER_MILESTONE = "litter-milestone"
    GENERAL = "general"
    PLANNED_HEAT = "planned-heat"
    BIRTHDAY = "birthday"
    CUSTOM = "custom"


class ReminderSource(str, Enum):
    """Who produced the reminder"""
    SYSTEM = "system"
    CUSTOM = "custom"


class ReminderCandidate(BaseModel):
    """Reminder computed fresh on each pipeline run"""

    id: str = Field(..., description="Deterministic for system reminders, store-assigned for custom")
    title: str
    description: str = ""
    due_date: date
    priority: ReminderPriority
    type: ReminderType
    related_id: Optional[str] = Field(None, description="Originating dog/litter/breeding/pregnancy")
    source: ReminderSource = ReminderSource.SYSTEM

    @property
    def dedup_key(self) -> Optional[tuple]:
        """(type, related_id) composite key; None when there is no related entity"""
        if self.related_id is None:
            return None
        return (self.type, self.related_id)


class ReminderStatus(BaseModel):
    """Durable user action on a reminder, keyed independently of its content"""

    reminder_id: str
    is_completed: bool = False
    is_deleted: bool = False
    updated_at: datetime = Field(default_factory=utc_now)

    def to_dynamodb_item(self, user_id: str) -> Dict[str, Any]:
        """Convert to DynamoDB item"""
        return {
            'user_id': user_id,
            'reminder_id': self.reminder_id,
            'is_completed': self.is_completed,
            'is_deleted': self.is_deleted,
            'updated_at': self.updated_at.isoformat(),
        }

    @classmethod
    def from_dynamodb_item(cls, item: Dict[str, Any]) -> 'ReminderStatus':
        """Create from DynamoDB item"""
        return cls(
            reminder_id=item['reminder_id'],
            is_completed=bool(item.get('is_completed', False)),
            is_deleted=bool(item.get('is_deleted', False)),
            updated_at=datetime.fromisoformat(item['updated_at']) if item.get('updated_at') else utc_now(),
        )


class CustomReminder(BaseModel):
    """User-authored reminder persisted in the Reminder Store"""

    # Assigned by the store on first insert
    id: Optional[str] = None

    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(default="", max_length=1000)
    due_date: date
    priority: ReminderPriority = ReminderPriority.MEDIUM
    type: ReminderType = ReminderType.CUSTOM
    related_id: Optional[str] = None

    created_at: datetime = Field(default_factory=utc_now)

    def to_candidate(self) -> ReminderCandidate:
        return ReminderCandidate(
            id=self.id,
            title=self.title,
            description=self.description,
            due_date=self.due_date,
            priority=self.priority,
            type=self.type,
            related_id=self.related_id,
            source=ReminderSource.CUSTOM,
        )

    def to_dynamodb_item(self, user_id: str) -> Dict[str, Any]:
        """Convert to DynamoDB item"""
        item = {
            'user_id': user_id,
            'reminder_id': self.id,
            'title': self.title,
            'description': self.description,
            'due_date': self.due_date.isoformat(),
            'priority': self.priority.value,
            'type': self.type.value,
            'created_at': self.created_at.isoformat(),
        }

        if self.related_id:
            item['related_id'] = self.related_id

        return item

    @classmethod
    def from_dynamodb_item(cls, item: Dict[str, Any]) -> 'CustomReminder':
        """Create from DynamoDB item"""
        return cls(
            id=item['reminder_id'],
            title=item['title'],
            description=item.get('description', ''),
            due_date=date.fromisoformat(item['due_date']),
            priority=item.get('priority', ReminderPriority.MEDIUM),
            type=item.get('type', ReminderType.CUSTOM),
            related_id=item.get('related_id'),
            created_at=datetime.fromisoformat(item['created_at']),
        )


class FinalReminder(ReminderCandidate):
    """Candidate joined with its status, ready for display"""

    is_completed: bool = False

    @classmethod
    def from_candidate(cls, candidate: ReminderCandidate, is_completed: bool = False) -> 'FinalReminder':
        return cls(**candidate.model_dump(), is_completed=is_completed)
