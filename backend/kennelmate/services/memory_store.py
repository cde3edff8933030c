"""
KennelMate Backend - In-Memory Stores

Purpose: Process-local implementations of the reminder stores for local
development (STORE_BACKEND=memory) and tests. Data lives as long as the
factory does.

Testing:
    factory = MemoryStoreFactory()
    factory.seed_snapshot("user_123", DomainSnapshot(dogs=[...]))
    stores = factory.for_user("user_123")
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from kennelmate.models.domain import DomainSnapshot
from kennelmate.models.reminder import CustomReminder, ReminderStatus, utc_now
from kennelmate.services.stores import (
    MigrationFlagStore,
    ReminderStore,
    SnapshotProvider,
    StatusStore,
    UserStores,
    new_custom_reminder_id,
)

logger = logging.getLogger(__name__)


@dataclass
class _UserData:
    reminders: Dict[str, CustomReminder] = field(default_factory=dict)
    statuses: Dict[str, ReminderStatus] = field(default_factory=dict)
    migrated: bool = False
    failed_attempts: int = 0
    snapshot: DomainSnapshot = field(default_factory=DomainSnapshot)


class MemoryReminderStore(ReminderStore):

    def __init__(self, data: _UserData):
        self._data = data

    async def get_custom_reminders(self) -> List[CustomReminder]:
        return list(self._data.reminders.values())

    async def get_custom_reminder(self, reminder_id: str) -> Optional[CustomReminder]:
        return self._data.reminders.get(reminder_id)

    async def upsert_custom_reminder(self, reminder: CustomReminder, overwrite: bool = True) -> str:
        if reminder.id is None:
            reminder = reminder.model_copy(update={'id': new_custom_reminder_id()})

        if overwrite or reminder.id not in self._data.reminders:
            self._data.reminders[reminder.id] = reminder

        return reminder.id

    async def delete_custom_reminder(self, reminder_id: str) -> None:
        self._data.reminders.pop(reminder_id, None)


class MemoryStatusStore(StatusStore):

    def __init__(self, data: _UserData):
        self._data = data

    async def get_statuses(self) -> Dict[str, ReminderStatus]:
        return dict(self._data.statuses)

    async def upsert_status(
        self,
        reminder_id: str,
        is_completed: bool = False,
        is_deleted: bool = False,
        overwrite: bool = True
    ) -> bool:
        if not overwrite and reminder_id in self._data.statuses:
            return False

        self._data.statuses[reminder_id] = ReminderStatus(
            reminder_id=reminder_id,
            is_completed=is_completed,
            is_deleted=is_deleted,
            updated_at=utc_now(),
        )
        return True

    async def delete_status(self, reminder_id: str) -> None:
        self._data.statuses.pop(reminder_id, None)


class MemoryMigrationFlagStore(MigrationFlagStore):

    def __init__(self, data: _UserData):
        self._data = data

    async def is_migrated(self) -> bool:
        return self._data.migrated

    async def set_migrated(self) -> bool:
        if self._data.migrated:
            return False
        self._data.migrated = True
        return True

    async def record_failed_attempt(self) -> int:
        self._data.failed_attempts += 1
        return self._data.failed_attempts

    async def get_failed_attempts(self) -> int:
        return self._data.failed_attempts


class MemorySnapshotProvider(SnapshotProvider):

    def __init__(self, data: _UserData):
        self._data = data

    async def load_snapshot(self) -> DomainSnapshot:
        return self._data.snapshot


class MemoryStoreFactory:
    """Builds user-bound in-memory stores"""

    def __init__(self):
        self._users: Dict[str, _UserData] = {}
        logger.info("Stores: Using in-memory backend")

    def _data_for(self, user_id: str) -> _UserData:
        return self._users.setdefault(user_id, _UserData())

    def seed_snapshot(self, user_id: str, snapshot: DomainSnapshot):
        """Replace the breeding data the rules will see for a user"""
        self._data_for(user_id).snapshot = snapshot

    def for_user(self, user_id: str) -> UserStores:
        data = self._data_for(user_id)
        return UserStores(
            user_id=user_id,
            reminders=MemoryReminderStore(data),
            statuses=MemoryStatusStore(data),
            migration_flags=MemoryMigrationFlagStore(data),
            snapshot=MemorySnapshotProvider(data),
        )
