#tests\conftest.py

"""Pytest configuration and fixtures."""

import pytest

from deployment_engine.core.ownership import OwnershipTable
from deployment_engine.core.resources import NamespacedKey, Resource, ResourceKind
from deployment_engine.orchestrator.reconciler import Orchestrator
from deployment_engine.status.reporter import StatusReporter

from tests.helpers import APP_NAME, DB_SECRET, NAMESPACE, FakeClock, RecordingStore


# ============================================
# Fixtures
# ============================================

@pytest.fixture
def store():
    return RecordingStore()


@pytest.fixture
def ownership():
    return OwnershipTable()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def reporter(store, clock):
    return StatusReporter(store, clock=clock)


@pytest.fixture
def orchestrator(store, ownership, reporter):
    return Orchestrator(store=store, ownership=ownership, reporter=reporter)


@pytest.fixture
def db_secret(store):
    """Database credentials secret referenced by the default spec."""
    return store.create(
        Resource(
            kind=ResourceKind.SECRET,
            name=DB_SECRET,
            namespace=NAMESPACE,
            data={"password": "s3cret", "port": "5433", "ssl": "true", "host": "db.internal"},
        )
    )


@pytest.fixture
def app_key():
    return NamespacedKey(NAMESPACE, APP_NAME)
