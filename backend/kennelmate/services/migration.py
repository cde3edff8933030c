"""
KennelMate Backend - Legacy Reminder Migration

Purpose: One-time, replay-safe transfer of legacy client-held reminders and
completed/deleted flags into the durable stores.

Flow (at most once per MigrationContext, i.e. per session):
    1. No user id -> nothing to do
    2. Flag already set -> clear any leftover legacy data, done
    3. Insert custom reminders under their legacy ids (conflict = success)
    4. Insert statuses for completed and deleted ids (conflict = success)
    5. Compare-and-set the migrated flag
    6. Clear legacy data

Every write in steps 3-4 is a conditional insert, so a crash anywhere before
step 5 can simply be replayed by the next session. Failures never propagate:
they are logged, counted, and surfaced as a warning once the count reaches
MIGRATION_MAX_ATTEMPTS.

Testing:
    context = MigrationContext(user_id="user_123", stores=stores, legacy=legacy)
    result = await MigrationRunner().run(context)
"""

import re
import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Set

from kennelmate.config import settings
from kennelmate.models.migration import LegacyReminderData, MigrationResult, MigrationState
from kennelmate.services.legacy import LegacyReminderSource
from kennelmate.services.stores import UserStores

logger = logging.getLogger(__name__)

# Legacy clients built system ids as "<type>-<relatedId>-<epoch millis>"
TIMESTAMP_SUFFIX = re.compile(r"-\d{13}$")


@dataclass
class MigrationContext:
    """Session-scoped migration state"""
    user_id: Optional[str]
    stores: UserStores
    legacy: LegacyReminderSource
    state: MigrationState = MigrationState.NOT_ATTEMPTED
    attempted: bool = False
    last_result: Optional[MigrationResult] = None


def find_orphaned_status_ids(status_ids: Set[str], known_ids: Iterable[str] = ()) -> List[str]:
    """
    Legacy status ids that no regenerated reminder will ever carry

    Custom reminders keep their legacy ids, so their statuses still match and
    are passed in as known_ids.
    """
    known = set(known_ids)
    return sorted(
        rid for rid in status_ids
        if rid not in known and TIMESTAMP_SUFFIX.search(rid)
    )


class MigrationRunner:
    """Runs the legacy migration against one context"""

    def __init__(self, max_attempts: Optional[int] = None):
        self.max_attempts = max_attempts or settings.MIGRATION_MAX_ATTEMPTS

    async def run(self, context: MigrationContext, retry: bool = False) -> MigrationResult:
        """
        Run the migration for this context

        Args:
            context: Session migration context
            retry: Allow another attempt in the same session after a failure

        Returns:
            MigrationResult (never raises)
        """
        if not context.user_id:
            return MigrationResult(state=context.state)

        if context.attempted and not (retry and context.state == MigrationState.NOT_ATTEMPTED):
            return context.last_result or MigrationResult(state=context.state, attempted=True)

        context.attempted = True

        try:
            result = await self._migrate(context)

        except Exception as e:
            logger.exception(f"Reminder migration failed for user {context.user_id}")
            context.state = MigrationState.NOT_ATTEMPTED
            result = await self._failure_result(context, e)

        context.last_result = result
        return result

    async def _migrate(self, context: MigrationContext) -> MigrationResult:
        stores = context.stores

        if await stores.migration_flags.is_migrated():
            leftover = await context.legacy.load()
            if not leftover.is_empty:
                logger.warning(f"Clearing leftover legacy data for migrated user {context.user_id}")
                await context.legacy.clear()
            context.state = MigrationState.COMPLETE
            return MigrationResult(state=context.state, attempted=True)

        context.state = MigrationState.IN_PROGRESS
        data = await context.legacy.load()

        result = MigrationResult(state=context.state, attempted=True)

        if not data.is_empty:
            await self._copy_legacy_data(stores, data, result)

        result.won_flag = await stores.migration_flags.set_migrated()
        if not result.won_flag:
            logger.info(f"Migration flag already set by another session for {context.user_id}")

        await context.legacy.clear()

        context.state = MigrationState.COMPLETE
        result.state = context.state

        logger.info(
            f"Migration complete for {context.user_id}: "
            f"{result.migrated_reminders} reminders, {result.migrated_statuses} statuses, "
            f"{len(result.orphaned_status_ids)} orphaned"
        )
        return result

    async def _copy_legacy_data(
        self,
        stores: UserStores,
        data: LegacyReminderData,
        result: MigrationResult
    ):
        skipped_ids: Set[str] = set()
        migrated_ids: Set[str] = set()

        for legacy_reminder in data.custom_reminders:
            # Deleted custom reminders are simply not carried over
            if legacy_reminder.id in data.deleted_ids:
                skipped_ids.add(legacy_reminder.id)
                continue

            await stores.reminders.upsert_custom_reminder(
                legacy_reminder.to_custom_reminder(),
                overwrite=False,
            )
            result.migrated_reminders += 1
            migrated_ids.add(legacy_reminder.id)

        status_ids = (data.completed_ids | data.deleted_ids) - skipped_ids

        for reminder_id in sorted(status_ids):
            await stores.statuses.upsert_status(
                reminder_id,
                is_completed=reminder_id in data.completed_ids,
                is_deleted=reminder_id in data.deleted_ids,
                overwrite=False,
            )
            result.migrated_statuses += 1

        result.skipped_deleted_reminders = len(skipped_ids)
        result.orphaned_status_ids = find_orphaned_status_ids(status_ids, migrated_ids)

        if result.orphaned_status_ids:
            logger.warning(
                f"{len(result.orphaned_status_ids)} legacy status ids carry a timestamp "
                f"suffix and will not match regenerated reminders"
            )

    async def _failure_result(self, context: MigrationContext, error: Exception) -> MigrationResult:
        try:
            attempts = await context.stores.migration_flags.record_failed_attempt()
        except Exception:
            logger.exception("Failed to record migration attempt")
            attempts = 0

        warning = None
        if attempts >= self.max_attempts:
            warning = (
                f"Reminder migration has failed {attempts} times; "
                f"some older reminders may be missing"
            )
            logger.warning(f"{warning} (user {context.user_id})")

        return MigrationResult(
            state=context.state,
            attempted=True,
            failed_attempts=attempts,
            error=str(error),
            warning=warning,
        )
