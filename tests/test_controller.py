#tests\test_controller.py

"""Test the controller dispatch loop."""

import threading
import time

import pytest

from deployment_engine.controller.controller import Controller
from deployment_engine.core.resources import NamespacedKey
from deployment_engine.events.router import EventRouter
from deployment_engine.orchestrator.reconciler import ReconcileResult

from tests.helpers import NAMESPACE, create_app


class RecordingOrchestrator:
    """Records reconciled keys and tracks concurrency per key."""

    def __init__(self, hold: float = 0.0, result: ReconcileResult = ReconcileResult()):
        self.calls = []
        self.hold = hold
        self.result = result
        self.max_concurrent_same_key = 0
        self._active = {}
        self._lock = threading.Lock()
        self.called = threading.Event()

    def reconcile(self, key, stop_event=None):
        with self._lock:
            self.calls.append(key)
            self._active[key] = self._active.get(key, 0) + 1
            self.max_concurrent_same_key = max(self.max_concurrent_same_key, self._active[key])
        self.called.set()
        time.sleep(self.hold)
        with self._lock:
            self._active[key] -= 1
        return self.result


def wait_for(predicate, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return False


@pytest.fixture
def make_controller(store, ownership):
    controllers = []

    def _make(orchestrator, **kwargs):
        controller = Controller(
            controller_id="test-controller",
            store=store,
            orchestrator=orchestrator,
            router=EventRouter(store, ownership),
            poll_interval=0.02,
            resync_period=3600,
            **kwargs,
        )
        controllers.append(controller)
        return controller

    yield _make

    for controller in controllers:
        controller.stop(timeout=2)


class TestController:

    def test_existing_apps_enqueued_on_start(self, store, make_controller, app_key):
        create_app(store)
        orchestrator = RecordingOrchestrator()
        controller = make_controller(orchestrator)

        controller.start()

        assert orchestrator.called.wait(timeout=5)
        assert orchestrator.calls[0] == app_key

    def test_store_events_trigger_reconcile(self, store, make_controller, app_key):
        orchestrator = RecordingOrchestrator()
        controller = make_controller(orchestrator)
        controller.start()

        create_app(store)

        assert orchestrator.called.wait(timeout=5)
        assert app_key in orchestrator.calls

    def test_same_key_never_concurrent(self, store, make_controller, app_key):
        create_app(store)
        orchestrator = RecordingOrchestrator(hold=0.1)
        controller = make_controller(orchestrator, max_slots=4)
        controller.start()

        for _ in range(5):
            controller.queue.add(app_key)
            time.sleep(0.02)

        assert wait_for(lambda: len(orchestrator.calls) >= 2)
        assert orchestrator.max_concurrent_same_key == 1

    def test_different_keys_run_concurrently(self, store, make_controller):
        create_app(store)
        create_app(store, name="blog")
        orchestrator = RecordingOrchestrator(hold=0.3)
        controller = make_controller(orchestrator, max_slots=2)

        controller.start()

        assert wait_for(lambda: len(orchestrator.calls) == 2)
        assert len(controller.running_threads()) == 2
        assert set(orchestrator.calls) == {
            NamespacedKey(NAMESPACE, "shop"),
            NamespacedKey(NAMESPACE, "blog"),
        }

    def test_requeue_after_scheduled(self, store, make_controller, app_key):
        create_app(store)
        orchestrator = RecordingOrchestrator(result=ReconcileResult(requeue_after=60))
        controller = make_controller(orchestrator)

        controller.start()

        assert wait_for(lambda: controller.queue.pending_delayed() == 1)

    def test_irrelevant_events_ignored(self, store, make_controller, app_key):
        resource = create_app(store)
        orchestrator = RecordingOrchestrator()
        controller = make_controller(orchestrator)
        controller.start()
        assert wait_for(lambda: len(orchestrator.calls) == 1)
        assert wait_for(lambda: not controller.running_threads())

        resource.status = {"configSecretName": "shop-config"}
        store.update_status(resource)
        time.sleep(0.2)

        assert len(orchestrator.calls) == 1
