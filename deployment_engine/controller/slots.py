#deployment_engine\controller\slots.py

"""Slot manager bounding concurrent reconciles."""

from threading import Lock
from typing import Hashable, List, Optional


class Slot:
    """Represents a single worker slot."""

    def __init__(self, slot_id: int):
        self.slot_id = slot_id
        self.key: Optional[Hashable] = None

    def is_free(self) -> bool:
        return self.key is None

    def bind(self, key: Hashable) -> None:
        """Bind a reconcile key to this slot."""
        if not self.is_free():
            raise ValueError(f"Slot {self.slot_id} already occupied")
        self.key = key

    def release(self) -> None:
        self.key = None

    def __repr__(self) -> str:
        status = "free" if self.is_free() else f"occupied({self.key})"
        return f"<Slot(id={self.slot_id}, {status})>"


class SlotManager:
    """Manages worker slots for the controller."""

    def __init__(self, max_slots: int):
        if max_slots < 1:
            raise ValueError("max_slots must be at least 1")

        self._slots = [Slot(i) for i in range(max_slots)]
        self._lock = Lock()

    def acquire(self, key: Hashable) -> Optional[Slot]:
        """Bind key to a free slot, if any."""
        with self._lock:
            for slot in self._slots:
                if slot.is_free():
                    slot.bind(key)
                    return slot
        return None

    def release(self, key: Hashable) -> None:
        with self._lock:
            for slot in self._slots:
                if slot.key == key:
                    slot.release()
                    return

    def find_slot_by_key(self, key: Hashable) -> Optional[Slot]:
        with self._lock:
            for slot in self._slots:
                if slot.key == key:
                    return slot
        return None

    def active_slots(self) -> List[Slot]:
        with self._lock:
            return [s for s in self._slots if not s.is_free()]

    def total_slots(self) -> int:
        return len(self._slots)

    def free_slots(self) -> int:
        with self._lock:
            return sum(1 for s in self._slots if s.is_free())

    def __repr__(self) -> str:
        return (
            f"<SlotManager(total={self.total_slots()}, "
            f"free={self.free_slots()}, "
            f"active={len(self.active_slots())})>"
        )
