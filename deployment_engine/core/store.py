# deployment_engine/core/store.py

from abc import ABC, abstractmethod
from typing import Callable, Dict, Iterable, List, Optional

from deployment_engine.core.resources import Resource, ResourceKind, WatchEvent


Listener = Callable[[WatchEvent], None]


class ResourceStore(ABC):
    """
    Persistence contract for cluster objects.
    """

    @abstractmethod
    def get(self, kind: ResourceKind, namespace: str, name: str) -> Optional[Resource]:
        """
        Fetch object by kind and name.
        Returns None if not found.
        """
        raise NotImplementedError

    @abstractmethod
    def create(self, resource: Resource) -> Resource:
        """
        Persist a new object and return it as stored.
        Must fail with ResourceAlreadyExists if the name is taken.
        """
        raise NotImplementedError

    @abstractmethod
    def update(self, resource: Resource) -> Resource:
        """
        Replace labels, owner references, data and spec.
        Must enforce optimistic concurrency on resource_version.
        """
        raise NotImplementedError

    @abstractmethod
    def update_status(self, resource: Resource) -> Resource:
        """
        Replace only the status section.
        Must enforce optimistic concurrency on resource_version.
        """
        raise NotImplementedError

    @abstractmethod
    def delete(self, kind: ResourceKind, namespace: str, name: str) -> None:
        """
        Delete object and everything it controls.
        Must fail with ResourceNotFound if absent.
        """
        raise NotImplementedError

    @abstractmethod
    def list(
        self,
        kind: ResourceKind,
        namespace: Optional[str] = None,
        labels: Optional[Dict[str, str]] = None,
    ) -> List[Resource]:
        """
        List objects of a kind, optionally scoped to a namespace and
        filtered by an exact label selector.
        """
        raise NotImplementedError

    def subscribe(self, listener: Listener) -> None:
        """
        Register a change listener.
        Stores without change notifications rely on periodic resync.
        """
        return None


def notify(listeners: Iterable[Listener], event: WatchEvent) -> None:
    for listener in listeners:
        listener(event)
