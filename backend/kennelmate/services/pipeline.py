"""
KennelMate Backend - Reminder Service

Purpose: Orchestrates one user's reminder pipeline and user actions.

    Snapshot -> Generators (parallel) -> Merge -> Status Overlay -> Sorter

The migration gate runs first when a session context is supplied. Nothing is
cached between runs: system reminders are rebuilt from the snapshot on every
load, and only user actions (custom reminders, statuses) are persisted.

Testing:
    service = ReminderService(MemoryStoreFactory().for_user("user_123"))
    result = await service.load_reminders(now=datetime.now(timezone.utc))
    await service.set_completed(result.reminders[0].id, True)
"""

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import date, datetime
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, Field

from kennelmate.config import settings, ReminderRules
from kennelmate.models.domain import DomainSnapshot
from kennelmate.models.reminder import (
    CustomReminder,
    FinalReminder,
    ReminderCandidate,
    ReminderStatus,
    utc_now,
)
from kennelmate.services.generators import SYSTEM_SOURCES
from kennelmate.services.merge import merge_candidates
from kennelmate.services.migration import MigrationContext, MigrationRunner
from kennelmate.services.overlay import apply_status_overlay, sort_reminders
from kennelmate.services.stores import UserStores

logger = logging.getLogger(__name__)

_generator_executor = ThreadPoolExecutor(
    max_workers=settings.GENERATOR_MAX_WORKERS,
    thread_name_prefix="reminder-rules",
)


class RemindersResult(BaseModel):
    """Sorted reminders for one pipeline run"""

    reminders: List[FinalReminder] = Field(default_factory=list)
    is_stale: bool = Field(False, description="A store read failed; statuses or custom reminders may be missing")
    generated_at: datetime = Field(default_factory=utc_now)
    migration_warning: Optional[str] = None


class ReminderService:
    """
    Reminder pipeline and user actions for one user
    """

    def __init__(
        self,
        stores: UserStores,
        runner: Optional[MigrationRunner] = None,
        rules: Optional[ReminderRules] = None,
    ):
        self.stores = stores
        self.runner = runner or MigrationRunner()
        self.rules = rules or settings.reminder_rules

    # =========================================================================
    # PIPELINE
    # =========================================================================

    async def load_reminders(
        self,
        snapshot: Optional[DomainSnapshot] = None,
        now: Optional[datetime] = None,
        migration: Optional[MigrationContext] = None
    ) -> RemindersResult:
        """
        Build the user's reminder list

        Args:
            snapshot: Breeding data; loaded from the snapshot provider if omitted
            now: Evaluation time; only its calendar date matters
            migration: Session migration context, run before the pipeline

        Returns:
            RemindersResult with sorted final reminders
        """
        now = now or utc_now()
        today = now.date()
        is_stale = False
        migration_warning = None

        if migration is not None and settings.ENABLE_MIGRATION:
            migration_result = await self.runner.run(migration)
            migration_warning = migration_result.warning

        if snapshot is None:
            snapshot = await self.stores.snapshot.load_snapshot()

        try:
            custom_reminders = await self.stores.reminders.get_custom_reminders()
        except Exception:
            logger.exception(f"Failed to load custom reminders for {self.stores.user_id}")
            custom_reminders = []
            is_stale = True

        statuses: Optional[Dict[str, ReminderStatus]]
        try:
            statuses = await self.stores.statuses.get_statuses()
        except Exception:
            logger.exception(f"Failed to load reminder statuses for {self.stores.user_id}")
            statuses = None
            is_stale = True

        system_sources = await self._run_generators(snapshot, today)

        merged = merge_candidates(
            [("custom", [reminder.to_candidate() for reminder in custom_reminders])]
            + system_sources
        )

        if statuses is None:
            final = [FinalReminder.from_candidate(candidate) for candidate in merged]
        else:
            final = apply_status_overlay(merged, statuses)

        reminders = sort_reminders(final)

        logger.info(
            f"Reminders for {self.stores.user_id} on {today}: {len(reminders)} shown "
            f"({len(merged)} merged){' [stale]' if is_stale else ''}"
        )

        return RemindersResult(
            reminders=reminders,
            is_stale=is_stale,
            generated_at=now,
            migration_warning=migration_warning,
        )

    async def _run_generators(
        self,
        snapshot: DomainSnapshot,
        today: date
    ) -> List[Tuple[str, List[ReminderCandidate]]]:
        """Run every rule generator in worker threads and join them in source order"""
        loop = asyncio.get_running_loop()

        results = await asyncio.gather(
            *[
                loop.run_in_executor(_generator_executor, generator, snapshot, today, self.rules)
                for _, generator in SYSTEM_SOURCES
            ],
            return_exceptions=True,
        )

        sources = []
        for (name, _), result in zip(SYSTEM_SOURCES, results):
            if isinstance(result, Exception):
                logger.error(f"Generator {name} failed: {result}", exc_info=result)
                result = []
            sources.append((name, result))

        return sources

    # =========================================================================
    # USER ACTIONS
    # =========================================================================

    async def add_custom_reminder(self, reminder: CustomReminder) -> CustomReminder:
        """Persist a new custom reminder and return it with its assigned id"""
        reminder_id = await self.stores.reminders.upsert_custom_reminder(reminder)
        logger.info(f"Added custom reminder {reminder_id} for {self.stores.user_id}")
        return reminder.model_copy(update={'id': reminder_id})

    async def set_completed(self, reminder_id: str, is_completed: bool) -> ReminderStatus:
        """Mark a reminder complete (or reopen it), keeping any deletion flag"""
        statuses = await self.stores.statuses.get_statuses()
        existing = statuses.get(reminder_id)
        is_deleted = existing.is_deleted if existing else False

        await self.stores.statuses.upsert_status(
            reminder_id,
            is_completed=is_completed,
            is_deleted=is_deleted,
        )

        return ReminderStatus(
            reminder_id=reminder_id,
            is_completed=is_completed,
            is_deleted=is_deleted,
        )

    async def delete_reminder(self, reminder_id: str) -> bool:
        """
        Delete a reminder

        Custom reminders are removed together with their status row. System
        reminders would just be regenerated, so they are soft-deleted through
        the status store instead.

        Returns:
            True if a custom reminder was hard-deleted
        """
        custom = await self.stores.reminders.get_custom_reminder(reminder_id)

        if custom is not None:
            await self.stores.reminders.delete_custom_reminder(reminder_id)
            await self.stores.statuses.delete_status(reminder_id)
            logger.info(f"Deleted custom reminder {reminder_id}")
            return True

        statuses = await self.stores.statuses.get_statuses()
        existing = statuses.get(reminder_id)

        await self.stores.statuses.upsert_status(
            reminder_id,
            is_completed=existing.is_completed if existing else False,
            is_deleted=True,
        )
        logger.info(f"Soft-deleted reminder {reminder_id}")
        return False
