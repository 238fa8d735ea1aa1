# deployment_engine/core/ownership.py

"""Explicit record of which App Deployment owns which objects."""

from threading import Lock
from typing import Dict, Optional, Set

from deployment_engine.core.resources import NamespacedKey, ObjectRef


class OwnershipTable:
    """
    Owner key -> owned object refs, with the reverse index.

    Populated by the convergence steps whenever they create or update a
    dependent object, consulted first by the event router.
    """

    def __init__(self):
        self._owned: Dict[NamespacedKey, Set[ObjectRef]] = {}
        self._owners: Dict[ObjectRef, NamespacedKey] = {}
        self._lock = Lock()

    def record(self, owner: NamespacedKey, ref: ObjectRef) -> None:
        with self._lock:
            previous = self._owners.get(ref)
            if previous is not None and previous != owner:
                self._owned.get(previous, set()).discard(ref)
            self._owners[ref] = owner
            self._owned.setdefault(owner, set()).add(ref)

    def owner_of(self, ref: ObjectRef) -> Optional[NamespacedKey]:
        with self._lock:
            return self._owners.get(ref)

    def owned_by(self, owner: NamespacedKey) -> Set[ObjectRef]:
        with self._lock:
            return set(self._owned.get(owner, set()))

    def discard(self, ref: ObjectRef) -> None:
        """Drop one object, e.g. after it was deleted."""
        with self._lock:
            owner = self._owners.pop(ref, None)
            if owner is not None:
                self._owned.get(owner, set()).discard(ref)

    def forget(self, owner: NamespacedKey) -> None:
        """Drop an owner and everything recorded for it."""
        with self._lock:
            for ref in self._owned.pop(owner, set()):
                self._owners.pop(ref, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._owners)
