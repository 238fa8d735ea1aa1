#tests\test_memory_store.py

"""Test the in-memory store."""

import pytest

from deployment_engine.core.errors import ResourceAlreadyExists, ResourceConflict, ResourceNotFound
from deployment_engine.core.resources import EventType, OwnerReference, Resource, ResourceKind
from deployment_engine.infrastructure.memory.store import InMemoryResourceStore


@pytest.fixture
def memory_store():
    return InMemoryResourceStore()


class TestInMemoryResourceStore:

    def test_returns_copies(self, memory_store):
        stored = memory_store.create(Resource(ResourceKind.SECRET, "s", "tenant-a", data={"k": "v"}))
        stored.data["k"] = "changed"

        assert memory_store.get(ResourceKind.SECRET, "tenant-a", "s").data == {"k": "v"}

    def test_duplicate_create(self, memory_store):
        memory_store.create(Resource(ResourceKind.SECRET, "s", "tenant-a"))

        with pytest.raises(ResourceAlreadyExists):
            memory_store.create(Resource(ResourceKind.SECRET, "s", "tenant-a"))

    def test_service_addresses_assigned(self, memory_store):
        first = memory_store.create(Resource(ResourceKind.SERVICE, "a", "tenant-a"))
        second = memory_store.create(Resource(ResourceKind.SERVICE, "b", "tenant-a"))

        assert first.spec["clusterIP"] != second.spec["clusterIP"]
        assert first.spec["clusterIPs"] == [first.spec["clusterIP"]]
        assert first.spec["ipFamilyPolicy"] == "SingleStack"

    def test_explicit_address_kept(self, memory_store):
        service = memory_store.create(
            Resource(ResourceKind.SERVICE, "a", "tenant-a", spec={"clusterIP": "None"})
        )

        assert service.spec["clusterIP"] == "None"

    def test_stale_update(self, memory_store):
        stored = memory_store.create(Resource(ResourceKind.SECRET, "s", "tenant-a"))
        memory_store.update(stored)

        with pytest.raises(ResourceConflict):
            memory_store.update(stored)

    def test_generation_tracks_content(self, memory_store):
        stored = memory_store.create(Resource(ResourceKind.DEPLOYMENT, "d", "tenant-a", spec={"replicas": 1}))

        stored.labels["x"] = "y"
        stored = memory_store.update(stored)
        assert stored.generation == 1

        stored.spec["replicas"] = 2
        stored = memory_store.update(stored)
        assert stored.generation == 2

    def test_delete_cascades(self, memory_store):
        app = memory_store.create(Resource(ResourceKind.APP_DEPLOYMENT, "shop", "tenant-a"))
        owner = OwnerReference(ResourceKind.APP_DEPLOYMENT, "shop", app.uid)
        memory_store.create(Resource(ResourceKind.SERVICE, "shop-http", "tenant-a", owner_references=[owner]))
        events = []
        memory_store.subscribe(events.append)

        memory_store.delete(ResourceKind.APP_DEPLOYMENT, "tenant-a", "shop")

        assert memory_store.get(ResourceKind.SERVICE, "tenant-a", "shop-http") is None
        assert [(e.type, e.kind) for e in events] == [
            (EventType.DELETED, ResourceKind.APP_DEPLOYMENT),
            (EventType.DELETED, ResourceKind.SERVICE),
        ]

    def test_delete_missing(self, memory_store):
        with pytest.raises(ResourceNotFound):
            memory_store.delete(ResourceKind.SECRET, "tenant-a", "absent")

    def test_listener_may_read_store(self, memory_store):
        """Listeners run outside the store lock."""
        seen = []
        memory_store.subscribe(
            lambda event: seen.append(memory_store.get(event.kind, event.obj.namespace, event.obj.name))
        )

        memory_store.create(Resource(ResourceKind.SECRET, "s", "tenant-a"))

        assert seen[0].name == "s"
