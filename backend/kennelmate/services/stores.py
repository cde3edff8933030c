"""
KennelMate Backend - Reminder Stores

Purpose: Per-user storage interfaces used by the reminder pipeline and the
migration runner, plus their DynamoDB implementations.

Each store instance is bound to one authenticated user; callers never pass a
user id per call, so one user cannot read or write another user's rows.

Testing:
    db = DatabaseService()
    stores = DynamoStoreFactory(db).for_user("user_123")
    reminder_id = await stores.reminders.upsert_custom_reminder(reminder)

    # In-memory variants live in services/memory_store.py
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, List, Optional

import shortuuid

from kennelmate.models.domain import DomainSnapshot
from kennelmate.models.reminder import CustomReminder, ReminderStatus
from kennelmate.services.db import DatabaseService

logger = logging.getLogger(__name__)


def new_custom_reminder_id() -> str:
    return f"custom-{shortuuid.uuid()}"


# =============================================================================
# INTERFACES
# =============================================================================

class ReminderStore(ABC):
    """Durable user-authored reminders"""

    @abstractmethod
    async def get_custom_reminders(self) -> List[CustomReminder]:
        ...

    @abstractmethod
    async def get_custom_reminder(self, reminder_id: str) -> Optional[CustomReminder]:
        ...

    @abstractmethod
    async def upsert_custom_reminder(self, reminder: CustomReminder, overwrite: bool = True) -> str:
        """
        Insert or update a custom reminder

        Assigns an id when the reminder has none. With overwrite off, an
        existing row with the same id is left untouched and the call still
        succeeds.

        Returns:
            The reminder id
        """

    @abstractmethod
    async def delete_custom_reminder(self, reminder_id: str) -> None:
        ...


class StatusStore(ABC):
    """Durable completed/deleted flags keyed by reminder id"""

    @abstractmethod
    async def get_statuses(self) -> Dict[str, ReminderStatus]:
        ...

    @abstractmethod
    async def upsert_status(
        self,
        reminder_id: str,
        is_completed: bool = False,
        is_deleted: bool = False,
        overwrite: bool = True
    ) -> bool:
        """Returns False when overwrite is off and a status already existed"""

    @abstractmethod
    async def delete_status(self, reminder_id: str) -> None:
        ...


class MigrationFlagStore(ABC):
    """Per-user 'legacy data migrated' flag and failed attempt counter"""

    @abstractmethod
    async def is_migrated(self) -> bool:
        ...

    @abstractmethod
    async def set_migrated(self) -> bool:
        """Compare-and-set; True only for the caller that flipped the flag"""

    @abstractmethod
    async def record_failed_attempt(self) -> int:
        ...

    @abstractmethod
    async def get_failed_attempts(self) -> int:
        ...


class SnapshotProvider(ABC):
    """Read-only view of a user's breeding data"""

    @abstractmethod
    async def load_snapshot(self) -> DomainSnapshot:
        ...


@dataclass
class UserStores:
    """All stores bound to one user"""
    user_id: str
    reminders: ReminderStore
    statuses: StatusStore
    migration_flags: MigrationFlagStore
    snapshot: SnapshotProvider


# =============================================================================
# DYNAMODB IMPLEMENTATIONS
# =============================================================================

class DynamoReminderStore(ReminderStore):

    def __init__(self, db: DatabaseService, user_id: str):
        self.db = db
        self.user_id = user_id

    async def get_custom_reminders(self) -> List[CustomReminder]:
        return await self.db.query_custom_reminders(self.user_id)

    async def get_custom_reminder(self, reminder_id: str) -> Optional[CustomReminder]:
        return await self.db.get_custom_reminder(self.user_id, reminder_id)

    async def upsert_custom_reminder(self, reminder: CustomReminder, overwrite: bool = True) -> str:
        if reminder.id is None:
            reminder = reminder.model_copy(update={'id': new_custom_reminder_id()})

        await self.db.put_custom_reminder(self.user_id, reminder, overwrite=overwrite)
        return reminder.id

    async def delete_custom_reminder(self, reminder_id: str) -> None:
        await self.db.delete_custom_reminder(self.user_id, reminder_id)


class DynamoStatusStore(StatusStore):

    def __init__(self, db: DatabaseService, user_id: str):
        self.db = db
        self.user_id = user_id

    async def get_statuses(self) -> Dict[str, ReminderStatus]:
        statuses = await self.db.query_statuses(self.user_id)
        return {status.reminder_id: status for status in statuses}

    async def upsert_status(
        self,
        reminder_id: str,
        is_completed: bool = False,
        is_deleted: bool = False,
        overwrite: bool = True
    ) -> bool:
        status = ReminderStatus(
            reminder_id=reminder_id,
            is_completed=is_completed,
            is_deleted=is_deleted,
        )
        return await self.db.put_status(self.user_id, status, overwrite=overwrite)

    async def delete_status(self, reminder_id: str) -> None:
        await self.db.delete_status(self.user_id, reminder_id)


class DynamoMigrationFlagStore(MigrationFlagStore):

    def __init__(self, db: DatabaseService, user_id: str):
        self.db = db
        self.user_id = user_id

    async def is_migrated(self) -> bool:
        record = await self.db.get_migration_record(self.user_id)
        return bool(record and record.get('migrated'))

    async def set_migrated(self) -> bool:
        return await self.db.set_migrated(self.user_id)

    async def record_failed_attempt(self) -> int:
        return await self.db.increment_failed_attempts(self.user_id)

    async def get_failed_attempts(self) -> int:
        record = await self.db.get_migration_record(self.user_id)
        return int(record.get('failed_attempts', 0)) if record else 0


class DynamoSnapshotProvider(SnapshotProvider):

    def __init__(self, db: DatabaseService, user_id: str):
        self.db = db
        self.user_id = user_id

    async def load_snapshot(self) -> DomainSnapshot:
        snapshot = DomainSnapshot(
            dogs=await self.db.query_dogs(self.user_id),
            litters=await self.db.query_litters(self.user_id),
            planned_breedings=await self.db.query_planned_breedings(self.user_id),
            pregnancies=await self.db.query_pregnancies(self.user_id),
        )
        logger.debug(
            f"Loaded snapshot for {self.user_id}: {len(snapshot.dogs)} dogs, "
            f"{len(snapshot.litters)} litters"
        )
        return snapshot


class DynamoStoreFactory:
    """Builds user-bound DynamoDB stores over one shared DatabaseService"""

    def __init__(self, db: Optional[DatabaseService] = None):
        self.db = db or DatabaseService()

    def for_user(self, user_id: str) -> UserStores:
        return UserStores(
            user_id=user_id,
            reminders=DynamoReminderStore(self.db, user_id),
            statuses=DynamoStatusStore(self.db, user_id),
            migration_flags=DynamoMigrationFlagStore(self.db, user_id),
            snapshot=DynamoSnapshotProvider(self.db, user_id),
        )
