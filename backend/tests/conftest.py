"""
Pytest configuration and fixtures
"""

import pytest
import os
import sys
from datetime import date, timedelta

# Add kennelmate to path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

# Tests never talk to DynamoDB
os.environ.setdefault("STORE_BACKEND", "memory")
os.environ.setdefault("LOG_FORMAT", "text")

from fastapi.testclient import TestClient
from kennelmate.main import app
from kennelmate.dependencies import get_legacy_source, get_store_factory, reset_migration_contexts
from kennelmate.models.domain import (
    DomainSnapshot,
    Dog,
    Gender,
    HeatRecord,
    Litter,
    PlannedBreeding,
    Pregnancy,
)
from kennelmate.services.legacy import MemoryLegacyReminderSource
from kennelmate.services.memory_store import MemoryStoreFactory

TODAY = date(2024, 6, 15)


def make_female(dog_id="dog_luna", name="Luna", last_heat_days_ago=None, **kwargs) -> Dog:
    """Female dog, optionally with one heat recorded N days before TODAY"""
    history = []
    if last_heat_days_ago is not None:
        history.append(HeatRecord(start_date=TODAY - timedelta(days=last_heat_days_ago)))
    return Dog(id=dog_id, name=name, gender=Gender.FEMALE, heat_history=history, **kwargs)


def make_male(dog_id="dog_rex", name="Rex", **kwargs) -> Dog:
    return Dog(id=dog_id, name=name, gender=Gender.MALE, **kwargs)


@pytest.fixture
def today():
    """Fixed evaluation day"""
    return TODAY


@pytest.fixture
def kennel_snapshot():
    """A small kennel with something due in every rule"""
    return DomainSnapshot(
        dogs=[
            # Heat due in 5 days
            make_female(last_heat_days_ago=175, date_of_birth=date(2020, 6, 18)),
            # Vaccination due in 5 days
            make_male(vaccination_date=TODAY - timedelta(days=360)),
        ],
        litters=[
            Litter(id="litter_a", name="A-Litter", date_of_birth=TODAY - timedelta(days=20), dam_id="dog_luna"),
        ],
        planned_breedings=[
            PlannedBreeding(
                id="breeding_1",
                female_id="dog_luna",
                female_name="Luna",
                male_name="Rex",
                expected_heat_date=TODAY + timedelta(days=10),
            ),
        ],
        pregnancies=[
            Pregnancy(
                id="pregnancy_1",
                female_id="dog_bella",
                female_name="Bella",
                expected_due_date=TODAY + timedelta(days=3),
            ),
        ],
    )


@pytest.fixture
def store_factory():
    """Fresh in-memory store factory"""
    return MemoryStoreFactory()


@pytest.fixture
def stores(store_factory):
    """Stores bound to a test user"""
    return store_factory.for_user("user_test")


@pytest.fixture
def legacy_source():
    """Empty in-memory legacy data"""
    return MemoryLegacyReminderSource()


@pytest.fixture
def legacy_document():
    """Legacy client data as older app versions stored it"""
    return {
        "customReminders": [
            {
                "id": "custom-1717000000000",
                "title": "Buy whelping box",
                "description": "Before Luna's due date",
                "dueDate": "2024-06-20T00:00:00.000Z",
                "priority": "high",
                "type": "custom",
            },
            {
                "id": "custom-1717000000001",
                "title": "Old note",
                "dueDate": "2024-05-01",
                "type": "deworming",
            },
            {
                "id": "custom-1717000000002",
                "title": "Deleted note",
                "dueDate": "2024-05-02",
            },
        ],
        "completedReminders": ["custom-1717000000001", "heat-dog_luna-1718000000000"],
        "deletedReminderIds": ["custom-1717000000002", "vaccination-abc123"],
    }


@pytest.fixture
def client(store_factory, legacy_source):
    """FastAPI test client backed by in-memory stores"""
    reset_migration_contexts()
    app.dependency_overrides[get_store_factory] = lambda: store_factory
    app.dependency_overrides[get_legacy_source] = lambda: legacy_source

    yield TestClient(app)

    app.dependency_overrides.clear()
    reset_migration_contexts()
