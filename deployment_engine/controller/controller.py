# deployment_engine/controller/controller.py
"""Controller - turns change notifications into serialized reconciles."""

import logging
import threading
import time
from typing import Dict, Optional

from deployment_engine.controller.slots import SlotManager
from deployment_engine.controller.work_queue import WorkQueue
from deployment_engine.core.errors import ReconcileCancelled, StoreError
from deployment_engine.core.resources import NamespacedKey, ResourceKind, WatchEvent
from deployment_engine.core.store import ResourceStore
from deployment_engine.events.router import EventRouter
from deployment_engine.orchestrator.reconciler import Orchestrator

logger = logging.getLogger(__name__)


class Controller:
    """
    Controller - feeds App Deployment keys to the orchestrator.

    Different keys reconcile concurrently up to the slot count; the work
    queue never hands out a key that is still being reconciled.
    """

    def __init__(
        self,
        *,
        controller_id: str,
        store: ResourceStore,
        orchestrator: Orchestrator,
        router: EventRouter,
        queue: Optional[WorkQueue] = None,
        max_slots: int = 2,
        poll_interval: float = 1.0,
        resync_period: float = 300.0,
        requeue_after_error: float = 15.0,
    ):
        self.controller_id = controller_id
        self.store = store
        self.orchestrator = orchestrator
        self.router = router
        self.queue = queue or WorkQueue()
        self.poll_interval = poll_interval
        self.resync_period = resync_period
        self.requeue_after_error = requeue_after_error

        self.slots = SlotManager(max_slots)
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._resync_thread: Optional[threading.Thread] = None

        # Track running reconciles: {key: thread}
        self._running: Dict[NamespacedKey, threading.Thread] = {}
        self._running_lock = threading.Lock()

    def start(self):
        """Start dispatcher and resync loops."""
        logger.info(f"[controller {self.controller_id}] Starting controller")
        logger.info(f"[controller] Max slots: {self.slots.total_slots()}")
        logger.info(f"[controller] Resync period: {self.resync_period}s")

        self.store.subscribe(self.handle_event)
        self.enqueue_all()

        self._thread = threading.Thread(target=self._run_loop, daemon=True)
        self._thread.start()

        self._resync_thread = threading.Thread(target=self._resync_loop, daemon=True)
        self._resync_thread.start()

    def stop(self, timeout: Optional[float] = None):
        """Stop controller; running reconciles are cancelled between steps."""
        logger.info(f"[controller {self.controller_id}] Stopping controller")
        self._stop_event.set()
        self.queue.shut_down()
        for thread in (self._thread, self._resync_thread):
            if thread:
                thread.join(timeout)
        for thread in self.running_threads():
            thread.join(timeout)

    def running_threads(self):
        with self._running_lock:
            return list(self._running.values())

    # -------------------------
    # TRIGGERS
    # -------------------------

    def handle_event(self, event: WatchEvent) -> None:
        """Store listener: enqueue every key the event affects."""
        for key in self.router.route(event):
            self.queue.add(key)

    def enqueue_all(self) -> int:
        try:
            apps = self.store.list(ResourceKind.APP_DEPLOYMENT)
        except StoreError as e:
            logger.error(f"[controller] Resync failed: {e}")
            return 0

        for app in apps:
            self.queue.add(app.key)
        logger.debug(f"[controller] Enqueued {len(apps)} App Deployments")
        return len(apps)

    def _resync_loop(self):
        while not self._stop_event.wait(self.resync_period):
            self.enqueue_all()

    # -------------------------
    # DISPATCH
    # -------------------------

    def _run_loop(self):
        """Main dispatch loop."""
        while not self._stop_event.is_set():
            try:
                self._dispatch_one()
            except Exception as e:
                logger.error(f"[controller] Error in main loop: {e}", exc_info=True)
                time.sleep(self.poll_interval)

    def _dispatch_one(self):
        if self.slots.free_slots() == 0:
            time.sleep(min(self.poll_interval, 0.05))
            return

        key = self.queue.get(timeout=self.poll_interval)
        if key is None:
            return

        slot = self.slots.acquire(key)
        if slot is None:
            # Only this loop acquires slots
            self.queue.done(key)
            self.queue.add(key)
            return

        thread = threading.Thread(
            target=self._reconcile_in_thread,
            args=(key,),
            daemon=True,
        )
        with self._running_lock:
            self._running[key] = thread
        thread.start()

        logger.debug(f"[controller] Started reconcile of {key} in slot {slot.slot_id}")

    def _reconcile_in_thread(self, key: NamespacedKey):
        requeue_after = None
        try:
            result = self.orchestrator.reconcile(key, self._stop_event)
            requeue_after = result.requeue_after
            if result.error is not None:
                logger.warning(f"[controller] [{key}] Reconcile failed: {result.error}")

        except ReconcileCancelled as e:
            logger.info(f"[controller] [{key}] {e}")

        except Exception as e:
            logger.error(f"[controller] [{key}] Reconcile crashed: {e}", exc_info=True)
            requeue_after = self.requeue_after_error

        finally:
            self.slots.release(key)
            with self._running_lock:
                self._running.pop(key, None)
            self.queue.done(key)

        if requeue_after is not None and not self._stop_event.is_set():
            self.queue.add_after(key, requeue_after)
