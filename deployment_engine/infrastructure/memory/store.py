# deployment_engine/infrastructure/memory/store.py

import copy
import ipaddress
import itertools
from threading import Lock
from typing import Dict, List, Optional, Tuple
from uuid import uuid4

from deployment_engine.core.errors import (
    ResourceAlreadyExists,
    ResourceConflict,
    ResourceNotFound,
)
from deployment_engine.core.resources import (
    EventType,
    Resource,
    ResourceKind,
    WatchEvent,
)
from deployment_engine.core.store import Listener, ResourceStore, notify


_Key = Tuple[ResourceKind, str, str]

SERVICE_NETWORK = ipaddress.ip_network("10.96.0.0/16")


class InMemoryResourceStore(ResourceStore):
    """
    Cluster-API-like store kept in process memory.

    Assigns uids, versions and service addresses, seeds job counters,
    garbage-collects controlled objects on delete and notifies
    listeners after every write.
    """

    def __init__(self):
        self._objects: Dict[_Key, Resource] = {}
        self._listeners: List[Listener] = []
        self._lock = Lock()
        self._version = itertools.count(1)
        self._addresses = SERVICE_NETWORK.hosts()
        next(self._addresses)

    def subscribe(self, listener: Listener) -> None:
        with self._lock:
            self._listeners.append(listener)

    # -------------------------
    # READ
    # -------------------------

    def get(self, kind: ResourceKind, namespace: str, name: str) -> Optional[Resource]:
        with self._lock:
            obj = self._objects.get((kind, namespace, name))
            return copy.deepcopy(obj) if obj else None

    def list(
        self,
        kind: ResourceKind,
        namespace: Optional[str] = None,
        labels: Optional[Dict[str, str]] = None,
    ) -> List[Resource]:
        with self._lock:
            results = [
                copy.deepcopy(obj)
                for (k, ns, _), obj in self._objects.items()
                if k == kind
                and (namespace is None or ns == namespace)
                and obj.matches_labels(labels)
            ]
        return sorted(results, key=lambda r: (r.namespace, r.name))

    # -------------------------
    # WRITE
    # -------------------------

    def create(self, resource: Resource) -> Resource:
        key = (resource.kind, resource.namespace, resource.name)
        with self._lock:
            if key in self._objects:
                raise ResourceAlreadyExists(
                    f"{resource.kind.value} {resource.namespace}/{resource.name} already exists"
                )
            obj = copy.deepcopy(resource)
            obj.uid = str(uuid4())
            obj.resource_version = next(self._version)
            obj.generation = 1
            self._apply_defaults(obj)
            self._objects[key] = obj
            stored = copy.deepcopy(obj)
            listeners = list(self._listeners)

        notify(listeners, WatchEvent(EventType.CREATED, copy.deepcopy(stored)))
        return stored

    def update(self, resource: Resource) -> Resource:
        with self._lock:
            current = self._current_locked(resource)
            old = copy.deepcopy(current)

            obj = copy.deepcopy(current)
            obj.labels = dict(resource.labels)
            obj.owner_references = list(resource.owner_references)
            obj.data = dict(resource.data)
            obj.spec = copy.deepcopy(resource.spec)
            if obj.spec != current.spec or obj.data != current.data:
                obj.generation += 1
            obj.resource_version = next(self._version)

            self._objects[(obj.kind, obj.namespace, obj.name)] = obj
            stored = copy.deepcopy(obj)
            listeners = list(self._listeners)

        notify(listeners, WatchEvent(EventType.UPDATED, copy.deepcopy(stored), old))
        return stored

    def update_status(self, resource: Resource) -> Resource:
        with self._lock:
            current = self._current_locked(resource)
            old = copy.deepcopy(current)

            obj = copy.deepcopy(current)
            obj.status = copy.deepcopy(resource.status)
            obj.resource_version = next(self._version)

            self._objects[(obj.kind, obj.namespace, obj.name)] = obj
            stored = copy.deepcopy(obj)
            listeners = list(self._listeners)

        notify(listeners, WatchEvent(EventType.UPDATED, copy.deepcopy(stored), old))
        return stored

    def delete(self, kind: ResourceKind, namespace: str, name: str) -> None:
        with self._lock:
            obj = self._objects.pop((kind, namespace, name), None)
            if obj is None:
                raise ResourceNotFound(f"{kind.value} {namespace}/{name} not found")
            removed = [obj] + self._collect_dependents_locked(obj)
            for dependent in removed[1:]:
                self._objects.pop((dependent.kind, dependent.namespace, dependent.name), None)
            listeners = list(self._listeners)

        for removed_obj in removed:
            notify(listeners, WatchEvent(EventType.DELETED, copy.deepcopy(removed_obj)))

    # -------------------------
    # HELPERS
    # -------------------------

    def _current_locked(self, resource: Resource) -> Resource:
        current = self._objects.get((resource.kind, resource.namespace, resource.name))
        if current is None:
            raise ResourceNotFound(
                f"{resource.kind.value} {resource.namespace}/{resource.name} not found"
            )
        if resource.resource_version != current.resource_version:
            raise ResourceConflict(
                f"{resource.kind.value} {resource.namespace}/{resource.name}: "
                f"version {resource.resource_version} is stale (current {current.resource_version})"
            )
        return current

    def _collect_dependents_locked(self, owner: Resource) -> List[Resource]:
        dependents = []
        seen = {owner.uid}
        pending = [owner.uid]
        while pending:
            uid = pending.pop()
            for obj in self._objects.values():
                if obj.uid in seen:
                    continue
                if any(ref.uid == uid for ref in obj.owner_references):
                    seen.add(obj.uid)
                    dependents.append(obj)
                    pending.append(obj.uid)
        return dependents

    def _apply_defaults(self, obj: Resource) -> None:
        if obj.kind == ResourceKind.SERVICE and "clusterIP" not in obj.spec:
            address = str(next(self._addresses))
            obj.spec["clusterIP"] = address
            obj.spec["clusterIPs"] = [address]
            obj.spec["ipFamilies"] = ["IPv4"]
            obj.spec["ipFamilyPolicy"] = "SingleStack"
        elif obj.kind == ResourceKind.JOB:
            obj.status.setdefault("active", 0)
            obj.status.setdefault("succeeded", 0)
            obj.status.setdefault("failed", 0)
