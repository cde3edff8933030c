"""
KennelMate Backend - Legacy Reminder Source

Purpose: Read (and finally clear) the reminder data older clients kept
locally, so the migration runner can move it into the durable stores.

Legacy layout, one JSON document per user:
    {
        "customReminders": [{"id": ..., "title": ..., "dueDate": ..., ...}],
        "completedReminders": ["heat-dog1-1718000000000", ...],
        "deletedReminderIds": ["custom-1717000000000", ...]
    }

Testing:
    source = FileLegacyReminderSource("user_123")
    data = await source.load()
    await source.clear()
"""

import os
import json
import logging
from abc import ABC, abstractmethod
from typing import Optional

import aiofiles

from kennelmate.config import settings
from kennelmate.models.migration import LegacyCustomReminder, LegacyReminderData

logger = logging.getLogger(__name__)

CUSTOM_REMINDERS_KEY = "customReminders"
COMPLETED_KEY = "completedReminders"
DELETED_KEY = "deletedReminderIds"


def parse_legacy_document(document: dict) -> LegacyReminderData:
    """Build LegacyReminderData from the raw legacy JSON document"""
    return LegacyReminderData(
        custom_reminders=[
            LegacyCustomReminder.model_validate(raw)
            for raw in document.get(CUSTOM_REMINDERS_KEY) or []
        ],
        completed_ids=set(document.get(COMPLETED_KEY) or []),
        deleted_ids=set(document.get(DELETED_KEY) or []),
    )


class LegacyReminderSource(ABC):
    """Legacy client-held reminder collections for one user"""

    @abstractmethod
    async def load(self) -> LegacyReminderData:
        ...

    @abstractmethod
    async def clear(self) -> None:
        ...


class FileLegacyReminderSource(LegacyReminderSource):
    """Legacy data stored as {LEGACY_STORAGE_PATH}/{user_id}.json"""

    def __init__(self, user_id: str, base_path: Optional[str] = None):
        self.user_id = user_id
        self.base_path = base_path or settings.LEGACY_STORAGE_PATH
        self.path = os.path.join(self.base_path, f"{user_id}.json")

    async def load(self) -> LegacyReminderData:
        if not os.path.exists(self.path):
            return LegacyReminderData()

        async with aiofiles.open(self.path, 'r', encoding='utf-8') as f:
            content = await f.read()

        if not content.strip():
            return LegacyReminderData()

        data = parse_legacy_document(json.loads(content))
        logger.info(
            f"Legacy data for {self.user_id}: {len(data.custom_reminders)} reminders, "
            f"{len(data.completed_ids)} completed, {len(data.deleted_ids)} deleted"
        )
        return data

    async def clear(self) -> None:
        if os.path.exists(self.path):
            os.remove(self.path)
            logger.info(f"Cleared legacy data: {self.path}")


class MemoryLegacyReminderSource(LegacyReminderSource):
    """Legacy data held in memory (tests, local development)"""

    def __init__(self, document: Optional[dict] = None):
        self.document = document

    async def load(self) -> LegacyReminderData:
        if not self.document:
            return LegacyReminderData()
        return parse_legacy_document(self.document)

    async def clear(self) -> None:
        self.document = None
