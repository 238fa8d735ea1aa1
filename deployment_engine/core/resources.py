"""Generic resource store objects and change notifications."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class ResourceKind(Enum):
    """Object kinds known to the engine."""

    APP_DEPLOYMENT = "AppDeployment"
    SECRET = "Secret"
    PERSISTENT_VOLUME_CLAIM = "PersistentVolumeClaim"
    JOB = "Job"
    POD = "Pod"
    DEPLOYMENT = "Deployment"
    SERVICE = "Service"


class EventType(Enum):
    """Change notification type."""

    CREATED = "CREATED"
    UPDATED = "UPDATED"
    DELETED = "DELETED"
    GENERIC = "GENERIC"


@dataclass(frozen=True)
class NamespacedKey:
    """Identity of one object inside a namespace."""

    namespace: str
    name: str

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"


@dataclass(frozen=True)
class ObjectRef:
    """Kind-qualified reference to a stored object."""

    kind: ResourceKind
    namespace: str
    name: str


@dataclass(frozen=True)
class OwnerReference:
    kind: ResourceKind
    name: str
    uid: str
    controller: bool = True


@dataclass
class Resource:
    """
    A stored object.

    `data` holds secret payloads, `spec` the desired fields and `status`
    the observed fields (job counters, App Deployment status document).
    `uid`, `resource_version` and `generation` are assigned by the store.
    """

    kind: ResourceKind
    name: str
    namespace: str
    labels: Dict[str, str] = field(default_factory=dict)
    owner_references: List[OwnerReference] = field(default_factory=list)
    data: Dict[str, str] = field(default_factory=dict)
    spec: Dict[str, Any] = field(default_factory=dict)
    status: Dict[str, Any] = field(default_factory=dict)
    uid: str = ""
    resource_version: int = 0
    generation: int = 0

    @property
    def key(self) -> NamespacedKey:
        return NamespacedKey(self.namespace, self.name)

    @property
    def ref(self) -> ObjectRef:
        return ObjectRef(self.kind, self.namespace, self.name)

    def controller_owner(self) -> Optional[OwnerReference]:
        """Return the controlling owner reference, if any."""
        for owner in self.owner_references:
            if owner.controller:
                return owner
        return None

    def set_controller_owner(self, owner: OwnerReference) -> None:
        """Replace any controlling owner reference with `owner`."""
        self.owner_references = [
            o for o in self.owner_references if not o.controller
        ]
        self.owner_references.append(owner)

    def matches_labels(self, selector: Optional[Dict[str, str]]) -> bool:
        if not selector:
            return True
        return all(self.labels.get(k) == v for k, v in selector.items())


@dataclass(frozen=True)
class WatchEvent:
    """
    Change notification for one object.

    `old` is only set for UPDATED events.
    """

    type: EventType
    obj: Resource
    old: Optional[Resource] = None

    @property
    def kind(self) -> ResourceKind:
        return self.obj.kind
