# deployment_engine/events/router.py
"""Maps change notifications to the App Deployment keys they affect."""

import logging
from typing import List, Optional

from deployment_engine.core.documents import app_deployment_from_resource
from deployment_engine.core.errors import StoreError
from deployment_engine.core.ownership import OwnershipTable
from deployment_engine.core.resources import NamespacedKey, Resource, ResourceKind, WatchEvent
from deployment_engine.core.store import ResourceStore
from deployment_engine.events.filter import ChangeFilter

logger = logging.getLogger(__name__)


class EventRouter:
    """
    Routes one event to zero or more App Deployment keys.

    Owned objects map to their owner, taken from the ownership table
    first and the controlling owner reference second. Secrets also map
    to every App Deployment in the namespace that references them.
    """

    def __init__(
        self,
        store: ResourceStore,
        ownership: OwnershipTable,
        change_filter: Optional[ChangeFilter] = None,
    ):
        self._store = store
        self._ownership = ownership
        self._filter = change_filter or ChangeFilter()

    def route(self, event: WatchEvent) -> List[NamespacedKey]:
        if not self._filter.is_relevant(event):
            return []

        obj = event.obj
        if event.kind == ResourceKind.APP_DEPLOYMENT:
            return [obj.key]

        keys: List[NamespacedKey] = []
        owner = self.owner_key(obj)
        if owner is not None:
            keys.append(owner)

        if event.kind == ResourceKind.SECRET:
            for key in self._referencing_apps(obj):
                if key not in keys:
                    keys.append(key)

        if keys:
            logger.debug(f"[router] {event.type.value} {event.kind.value} {obj.key} -> {[str(k) for k in keys]}")
        return keys

    def owner_key(self, obj: Resource) -> Optional[NamespacedKey]:
        owner = self._ownership.owner_of(obj.ref)
        if owner is not None:
            return owner

        reference = obj.controller_owner()
        if reference is not None and reference.kind == ResourceKind.APP_DEPLOYMENT:
            return NamespacedKey(obj.namespace, reference.name)
        return None

    def _referencing_apps(self, secret: Resource) -> List[NamespacedKey]:
        try:
            candidates = self._store.list(ResourceKind.APP_DEPLOYMENT, namespace=secret.namespace)
        except StoreError as e:
            logger.error(f"[router] failed to list App Deployments in {secret.namespace}: {e}")
            return []

        keys = []
        for resource in candidates:
            app = app_deployment_from_resource(resource)
            if app.uses_secret(secret.name):
                keys.append(app.key)
        return keys
