"""
Test legacy reminder migration
"""

import pytest
import asyncio
import dataclasses
import json

from kennelmate.models.migration import LegacyCustomReminder, MigrationState
from kennelmate.models.reminder import ReminderPriority, ReminderType
from kennelmate.services.legacy import FileLegacyReminderSource, MemoryLegacyReminderSource
from kennelmate.services.memory_store import MemoryReminderStore
from kennelmate.services.migration import MigrationContext, MigrationRunner, find_orphaned_status_ids


class FailingReminderStore(MemoryReminderStore):
    async def upsert_custom_reminder(self, reminder, overwrite=True):
        raise ConnectionError("write timed out")


def make_context(stores, document=None, user_id="user_test"):
    return MigrationContext(
        user_id=user_id,
        stores=stores,
        legacy=MemoryLegacyReminderSource(document),
    )


def test_migrates_reminders_and_statuses(stores, legacy_document):
    context = make_context(stores, legacy_document)

    async def scenario():
        result = await MigrationRunner().run(context)
        return (
            result,
            await stores.reminders.get_custom_reminders(),
            await stores.statuses.get_statuses(),
            await stores.migration_flags.is_migrated(),
        )

    result, reminders, statuses, migrated = asyncio.run(scenario())

    assert result.state == MigrationState.COMPLETE
    assert context.state == MigrationState.COMPLETE
    assert result.won_flag is True
    assert migrated is True

    # The deleted custom reminder is not carried over
    assert sorted(r.id for r in reminders) == ["custom-1717000000000", "custom-1717000000001"]
    assert result.skipped_deleted_reminders == 1

    assert set(statuses) == {"custom-1717000000001", "heat-dog_luna-1718000000000", "vaccination-abc123"}
    assert statuses["custom-1717000000001"].is_completed is True
    assert statuses["vaccination-abc123"].is_deleted is True
    assert result.migrated_statuses == 3

    assert result.orphaned_status_ids == ["heat-dog_luna-1718000000000"]
    assert context.legacy.document is None, "Legacy data is cleared after the flag is set"


def test_legacy_fields_are_normalized(stores, legacy_document):
    asyncio.run(MigrationRunner().run(make_context(stores, legacy_document)))

    first = asyncio.run(stores.reminders.get_custom_reminder("custom-1717000000000"))
    second = asyncio.run(stores.reminders.get_custom_reminder("custom-1717000000001"))

    assert first.due_date.isoformat() == "2024-06-20"
    assert first.priority == ReminderPriority.HIGH
    assert second.type == ReminderType.CUSTOM, "Unknown legacy types become custom"


def test_replay_after_partial_run_is_idempotent(stores, legacy_document):
    """A crash before the flag was written is replayed without duplicates or overwrites"""
    async def scenario():
        # Previous attempt wrote one reminder, then the user completed it
        partial = LegacyCustomReminder.model_validate(legacy_document["customReminders"][0])
        await stores.reminders.upsert_custom_reminder(partial.to_custom_reminder(), overwrite=False)
        await stores.statuses.upsert_status("custom-1717000000000", is_completed=True)

        result = await MigrationRunner().run(make_context(stores, legacy_document))
        return result, await stores.reminders.get_custom_reminders(), await stores.statuses.get_statuses()

    result, reminders, statuses = asyncio.run(scenario())

    assert result.state == MigrationState.COMPLETE
    assert len(reminders) == 2
    assert statuses["custom-1717000000000"].is_completed is True


def test_already_migrated_clears_leftover_data(stores, legacy_document):
    async def scenario():
        await stores.migration_flags.set_migrated()
        context = make_context(stores, legacy_document)
        result = await MigrationRunner().run(context)
        return context, result, await stores.reminders.get_custom_reminders()

    context, result, reminders = asyncio.run(scenario())

    assert result.state == MigrationState.COMPLETE
    assert reminders == []
    assert context.legacy.document is None


def test_no_user_id_is_not_attempted(stores, legacy_document):
    context = make_context(stores, legacy_document, user_id=None)

    result = asyncio.run(MigrationRunner().run(context))

    assert result.attempted is False
    assert context.state == MigrationState.NOT_ATTEMPTED
    assert context.legacy.document is not None


def test_runs_once_per_context(stores, legacy_document):
    context = make_context(stores, legacy_document)
    runner = MigrationRunner()

    first = asyncio.run(runner.run(context))
    context.legacy.document = legacy_document
    second = asyncio.run(runner.run(context))

    assert second is first
    assert context.legacy.document is not None, "Second run in the same session does nothing"


def test_failure_leaves_flag_unset_and_counts_attempt(stores, legacy_document):
    broken = dataclasses.replace(stores, reminders=FailingReminderStore(stores.reminders._data))
    context = make_context(broken, legacy_document)

    result = asyncio.run(MigrationRunner().run(context))

    assert result.state == MigrationState.NOT_ATTEMPTED
    assert result.failed_attempts == 1
    assert result.error == "write timed out"
    assert result.warning is None
    assert asyncio.run(stores.migration_flags.is_migrated()) is False
    assert context.legacy.document is not None, "Legacy data is kept for the retry"


def test_warning_after_repeated_failures(stores, legacy_document):
    broken = dataclasses.replace(stores, reminders=FailingReminderStore(stores.reminders._data))
    runner = MigrationRunner(max_attempts=3)

    results = [asyncio.run(runner.run(make_context(broken, legacy_document))) for _ in range(3)]

    assert [r.failed_attempts for r in results] == [1, 2, 3]
    assert results[1].warning is None
    assert "failed 3 times" in results[2].warning


def test_retry_in_same_session_after_failure(stores, legacy_document):
    broken = dataclasses.replace(stores, reminders=FailingReminderStore(stores.reminders._data))
    context = make_context(broken, legacy_document)
    runner = MigrationRunner()

    asyncio.run(runner.run(context))
    context.stores = stores
    result = asyncio.run(runner.run(context, retry=True))

    assert result.state == MigrationState.COMPLETE


def test_concurrent_sessions_only_one_wins_flag(stores, legacy_document):
    async def scenario():
        runner = MigrationRunner()
        return await asyncio.gather(
            runner.run(make_context(stores, legacy_document)),
            runner.run(make_context(stores, legacy_document)),
        )

    results = asyncio.run(scenario())

    assert all(r.state == MigrationState.COMPLETE for r in results)
    assert sorted(r.won_flag for r in results) == [False, True]
    assert len(asyncio.run(stores.reminders.get_custom_reminders())) == 2


def test_set_migrated_is_compare_and_set(stores):
    async def scenario():
        return await stores.migration_flags.set_migrated(), await stores.migration_flags.set_migrated()

    assert asyncio.run(scenario()) == (True, False)


def test_orphan_detection():
    ids = {"heat-dog1-1718000000000", "custom-abc", "heat-0123456789abcdef", "birthday-dog2-1718000000001"}

    assert find_orphaned_status_ids(ids) == ["birthday-dog2-1718000000001", "heat-dog1-1718000000000"]


# =============================================================================
# FILE LEGACY SOURCE
# =============================================================================

def test_file_legacy_source_load_and_clear(tmp_path, legacy_document):
    (tmp_path / "user_test.json").write_text(json.dumps(legacy_document))
    source = FileLegacyReminderSource("user_test", base_path=str(tmp_path))

    data = asyncio.run(source.load())
    assert len(data.custom_reminders) == 3
    assert data.completed_ids == {"custom-1717000000001", "heat-dog_luna-1718000000000"}

    asyncio.run(source.clear())
    assert not (tmp_path / "user_test.json").exists()
    assert asyncio.run(source.load()).is_empty


def test_file_legacy_source_missing_file(tmp_path):
    source = FileLegacyReminderSource("nobody", base_path=str(tmp_path))

    assert asyncio.run(source.load()).is_empty
    asyncio.run(source.clear())


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
