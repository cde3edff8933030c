"""
Test the reminder service pipeline and user actions
"""

import pytest
import asyncio
import dataclasses
from datetime import date, datetime, time, timedelta, timezone

from conftest import TODAY, make_female
from kennelmate.models.domain import DomainSnapshot
from kennelmate.models.migration import MigrationState
from kennelmate.models.reminder import CustomReminder, ReminderPriority, ReminderSource, ReminderType
from kennelmate.services.legacy import MemoryLegacyReminderSource
from kennelmate.services.memory_store import MemoryReminderStore, MemoryStatusStore
from kennelmate.services.migration import MigrationContext
from kennelmate.services.pipeline import ReminderService


def at(day: date) -> datetime:
    return datetime.combine(day, time(9, 30), tzinfo=timezone.utc)


NOW = at(TODAY)


class BrokenStatusStore(MemoryStatusStore):
    async def get_statuses(self):
        raise ConnectionError("status store unavailable")


class BrokenReminderStore(MemoryReminderStore):
    async def get_custom_reminders(self):
        raise ConnectionError("reminder store unavailable")


@pytest.fixture
def service(store_factory, stores, kennel_snapshot):
    store_factory.seed_snapshot(stores.user_id, kennel_snapshot)
    return ReminderService(stores)


def test_full_pipeline_order(service):
    """Every rule contributes and the result is sorted for display"""
    result = asyncio.run(service.load_reminders(now=NOW))

    assert result.is_stale is False
    assert [(r.type, r.priority) for r in result.reminders] == [
        (ReminderType.HEAT, ReminderPriority.HIGH),
        (ReminderType.PLANNED_HEAT, ReminderPriority.HIGH),
        (ReminderType.LITTER_MILESTONE, ReminderPriority.MEDIUM),
        (ReminderType.BIRTHDAY, ReminderPriority.MEDIUM),
        (ReminderType.VACCINATION, ReminderPriority.MEDIUM),
        (ReminderType.GENERAL, ReminderPriority.LOW),
    ]


def test_explicit_snapshot_overrides_provider(service):
    snapshot = DomainSnapshot(dogs=[make_female(last_heat_days_ago=175)])

    result = asyncio.run(service.load_reminders(snapshot=snapshot, now=NOW))

    # No litters logged this year for a kennel with a female
    assert [r.type for r in result.reminders] == [ReminderType.HEAT, ReminderType.GENERAL]


def test_completed_status_survives_regeneration(service):
    async def scenario():
        first = await service.load_reminders(now=NOW)
        heat = next(r for r in first.reminders if r.type == ReminderType.HEAT)
        await service.set_completed(heat.id, True)

        # Two days later the heat reminder is rebuilt from scratch
        later = await service.load_reminders(now=at(TODAY + timedelta(days=2)))
        return heat.id, later

    heat_id, later = asyncio.run(scenario())

    rebuilt = next(r for r in later.reminders if r.id == heat_id)
    assert rebuilt.is_completed is True
    assert later.reminders[-1].id == heat_id, "Completed reminders sort last"


def test_reopen_reminder(service):
    async def scenario():
        result = await service.load_reminders(now=NOW)
        reminder_id = result.reminders[0].id
        await service.set_completed(reminder_id, True)
        await service.set_completed(reminder_id, False)
        return reminder_id, await service.load_reminders(now=NOW)

    reminder_id, result = asyncio.run(scenario())

    assert next(r for r in result.reminders if r.id == reminder_id).is_completed is False


def test_soft_deleted_system_reminder_stays_hidden(service, stores):
    async def scenario():
        result = await service.load_reminders(now=NOW)
        vaccination = next(r for r in result.reminders if r.type == ReminderType.VACCINATION)
        hard = await service.delete_reminder(vaccination.id)
        later = await service.load_reminders(now=at(TODAY + timedelta(days=1)))
        return vaccination.id, hard, later, await stores.statuses.get_statuses()

    reminder_id, hard, later, statuses = asyncio.run(scenario())

    assert hard is False
    assert statuses[reminder_id].is_deleted is True
    assert reminder_id not in [r.id for r in later.reminders]


def test_set_completed_keeps_deleted_flag(service, stores):
    async def scenario():
        await service.delete_reminder("heat-0123456789abcdef")
        return await service.set_completed("heat-0123456789abcdef", True)

    status = asyncio.run(scenario())

    assert status.is_deleted is True
    assert status.is_completed is True


def test_custom_reminder_lifecycle(service, stores):
    async def scenario():
        created = await service.add_custom_reminder(CustomReminder(
            title="Order puppy food",
            due_date=TODAY + timedelta(days=2),
            priority=ReminderPriority.HIGH,
        ))
        listed = await service.load_reminders(now=NOW)

        await service.set_completed(created.id, True)
        hard = await service.delete_reminder(created.id)

        after = await service.load_reminders(now=NOW)
        return created, listed, hard, after, await stores.statuses.get_statuses()

    created, listed, hard, after, statuses = asyncio.run(scenario())

    assert created.id.startswith("custom-")
    custom = next(r for r in listed.reminders if r.id == created.id)
    assert custom.source == ReminderSource.CUSTOM
    assert hard is True
    assert created.id not in [r.id for r in after.reminders]
    assert created.id not in statuses, "Status row is removed with the custom reminder"


def test_custom_heat_reminder_replaces_system_heat(service):
    async def scenario():
        await service.add_custom_reminder(CustomReminder(
            title="Luna: call stud owner",
            due_date=TODAY + timedelta(days=4),
            type=ReminderType.HEAT,
            related_id="dog_luna",
        ))
        return await service.load_reminders(now=NOW)

    result = asyncio.run(scenario())

    heat = [r for r in result.reminders if r.type == ReminderType.HEAT]
    assert len(heat) == 1
    assert heat[0].source == ReminderSource.CUSTOM


def test_status_store_failure_returns_stale_result(service, stores):
    service.stores = dataclasses.replace(stores, statuses=BrokenStatusStore(stores.statuses._data))

    result = asyncio.run(service.load_reminders(now=NOW))

    assert result.is_stale is True
    assert len(result.reminders) == 6
    assert not any(r.is_completed for r in result.reminders)


def test_custom_store_failure_returns_stale_result(service, stores):
    service.stores = dataclasses.replace(stores, reminders=BrokenReminderStore(stores.reminders._data))

    result = asyncio.run(service.load_reminders(now=NOW))

    assert result.is_stale is True
    assert len(result.reminders) == 6


def test_migration_runs_before_pipeline(service, stores, legacy_document):
    context = MigrationContext(
        user_id=stores.user_id,
        stores=stores,
        legacy=MemoryLegacyReminderSource(legacy_document),
    )

    result = asyncio.run(service.load_reminders(now=NOW, migration=context))

    assert context.state == MigrationState.COMPLETE
    assert result.migration_warning is None
    ids = [r.id for r in result.reminders]
    assert "custom-1717000000000" in ids
    assert "custom-1717000000002" not in ids


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
