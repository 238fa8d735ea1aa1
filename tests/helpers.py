#tests\helpers.py

"""Shared test doubles and helpers."""

from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Tuple

from deployment_engine.core.documents import app_deployment_from_resource
from deployment_engine.core.errors import StoreError
from deployment_engine.core.resources import NamespacedKey, Resource, ResourceKind
from deployment_engine.infrastructure.memory.store import InMemoryResourceStore


NAMESPACE = "tenant-a"
APP_NAME = "shop"
DB_SECRET = "db-credentials"


class RecordingStore(InMemoryResourceStore):
    """
    In-memory store that records writes and can be told to fail.

    `writes` holds (operation, kind, name) tuples; `fail(op, kind)`
    makes matching calls raise StoreError, optionally only for one name.
    """

    def __init__(self):
        super().__init__()
        self.writes: List[Tuple[str, ResourceKind, str]] = []
        self._failures: Dict[Tuple[str, ResourceKind, Optional[str]], Exception] = {}

    def fail(
        self,
        operation: str,
        kind: ResourceKind,
        error: Optional[Exception] = None,
        name: Optional[str] = None,
    ):
        self._failures[(operation, kind, name)] = error or StoreError(f"injected {operation} failure")

    def heal(self):
        self._failures.clear()

    def _check(self, operation: str, kind: ResourceKind, name: Optional[str] = None):
        error = self._failures.get((operation, kind, None))
        if error is None and name is not None:
            error = self._failures.get((operation, kind, name))
        if error is not None:
            raise error

    def get(self, kind, namespace, name):
        self._check("get", kind, name)
        return super().get(kind, namespace, name)

    def list(self, kind, namespace=None, labels=None):
        self._check("list", kind)
        return super().list(kind, namespace, labels)

    def create(self, resource):
        self._check("create", resource.kind, resource.name)
        stored = super().create(resource)
        self.writes.append(("create", resource.kind, resource.name))
        return stored

    def update(self, resource):
        self._check("update", resource.kind, resource.name)
        stored = super().update(resource)
        self.writes.append(("update", resource.kind, resource.name))
        return stored

    def update_status(self, resource):
        self._check("update_status", resource.kind, resource.name)
        stored = super().update_status(resource)
        self.writes.append(("update_status", resource.kind, resource.name))
        return stored

    def delete(self, kind, namespace, name):
        self._check("delete", kind, name)
        super().delete(kind, namespace, name)
        self.writes.append(("delete", kind, name))

    def writes_of(self, kind: ResourceKind, operation: Optional[str] = None):
        return [
            w for w in self.writes
            if w[1] == kind and (operation is None or w[0] == operation)
        ]


class FakeClock:
    def __init__(self):
        self.now = datetime(2026, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now = self.now + timedelta(seconds=seconds)


# ============================================
# Helpers
# ============================================

def spec_doc(**overrides) -> Dict:
    doc = {
        "replicas": 1,
        "image": "odoo:18",
        "modules": ["base"],
        "database": {
            "passwordFromSecret": {"name": DB_SECRET, "key": "password"},
        },
    }
    doc.update(overrides)
    return doc


def create_app(store, name: str = APP_NAME, namespace: str = NAMESPACE, **overrides) -> Resource:
    return store.create(
        Resource(
            kind=ResourceKind.APP_DEPLOYMENT,
            name=name,
            namespace=namespace,
            spec=spec_doc(**overrides),
        )
    )


def load_app(store, name: str = APP_NAME, namespace: str = NAMESPACE):
    return app_deployment_from_resource(
        store.get(ResourceKind.APP_DEPLOYMENT, namespace, name)
    )


def set_job_counters(store, name: str, namespace: str = NAMESPACE, **counters) -> Resource:
    job = store.get(ResourceKind.JOB, namespace, name)
    job.status.update(counters)
    return store.update_status(job)


def run_until_converged(orchestrator, store, key: NamespacedKey, max_passes: int = 6):
    """Reconcile, completing the init job whenever one is in flight."""
    result = None
    for _ in range(max_passes):
        result = orchestrator.reconcile(key)
        app = load_app(store, key.name, key.namespace)
        job = app.status.current_init_job
        if not job.is_idle():
            set_job_counters(store, job.name, job.namespace, succeeded=1)
            continue
        if result.requeue_after is None and result.error is None:
            return result
    return result


