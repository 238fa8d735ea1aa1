#tests\test_orchestrator.py

"""Test full convergence passes."""

import threading

import pytest

from deployment_engine.core.errors import ReconcileCancelled, StepFailed, StoreError
from deployment_engine.core.models import ConditionStatus
from deployment_engine.core.resources import Resource, ResourceKind

from tests.helpers import (
    DB_SECRET,
    NAMESPACE,
    create_app,
    load_app,
    run_until_converged,
    set_job_counters,
)


def condition(app, condition_type):
    found = app.status.get_condition(condition_type)
    assert found is not None, f"missing condition {condition_type}"
    return found


class TestFirstPass:
    """Test a pass over a freshly created App Deployment."""

    def test_dependents_created_in_order(self, store, orchestrator, db_secret, app_key):
        create_app(store)
        store.writes.clear()

        result = orchestrator.reconcile(app_key)

        creates = [(kind, name) for op, kind, name in store.writes if op == "create"]
        assert creates == [
            (ResourceKind.SECRET, "shop-admin-password"),
            (ResourceKind.SECRET, "shop-config"),
            (ResourceKind.PERSISTENT_VOLUME_CLAIM, "shop-filestore"),
            (ResourceKind.JOB, "shop-init"),
        ]
        assert result.requeue_after == 30.0
        assert result.error is None

    def test_workload_gated_on_init_job(self, store, orchestrator, db_secret, app_key):
        create_app(store)

        orchestrator.reconcile(app_key)

        assert store.get(ResourceKind.DEPLOYMENT, NAMESPACE, "shop") is None
        app = load_app(store)
        assert app.status.current_init_job.name == "shop-init"
        assert app.status.config_secret_name == "shop-config"
        assert app.status.data_claim_name == "shop-filestore"
        assert app.status.admin_secret_name == "shop-admin-password"
        initialized = condition(app, "DatabaseInitialized")
        assert initialized.status == ConditionStatus.FALSE
        assert initialized.reason == "InitJobCreated"

    def test_pending_job_requeues_without_writes(self, store, orchestrator, db_secret, app_key):
        create_app(store)
        orchestrator.reconcile(app_key)
        store.writes.clear()

        result = orchestrator.reconcile(app_key)

        assert result.requeue_after == 30.0
        assert store.writes == []


class TestConvergence:
    """Test passes that run to completion."""

    def test_converges(self, store, orchestrator, db_secret, app_key):
        create_app(store, modules=["base", "web"])

        result = run_until_converged(orchestrator, store, app_key)

        assert result.requeue_after is None
        assert result.error is None
        app = load_app(store)
        assert app.status.init_modules_installed == ("base", "web")
        assert app.status.current_init_job.is_idle()
        assert condition(app, "OperatorSucceeded").status == ConditionStatus.TRUE
        assert condition(app, "OperatorSucceeded").reason == "ReconcileSucceeded"
        assert condition(app, "OperatorDegraded").status == ConditionStatus.FALSE
        assert condition(app, "DatabaseInitialized").reason == "InitJobSucceeded"
        assert store.get(ResourceKind.JOB, NAMESPACE, "shop-init") is None
        for kind, name in [
            (ResourceKind.DEPLOYMENT, "shop"),
            (ResourceKind.SERVICE, "shop-http"),
            (ResourceKind.SERVICE, "shop-poll"),
        ]:
            assert store.get(kind, NAMESPACE, name).controller_owner().uid == app.uid

    def test_second_pass_writes_nothing(self, store, orchestrator, db_secret, app_key):
        create_app(store)
        run_until_converged(orchestrator, store, app_key)
        store.writes.clear()

        result = orchestrator.reconcile(app_key)

        assert result.requeue_after is None
        assert result.error is None
        assert store.writes == []

    def test_scale_updates_workload_once(self, store, orchestrator, db_secret, app_key):
        create_app(store)
        run_until_converged(orchestrator, store, app_key)
        resource = store.get(ResourceKind.APP_DEPLOYMENT, NAMESPACE, "shop")
        resource.spec["replicas"] = 3
        store.update(resource)
        store.writes.clear()

        orchestrator.reconcile(app_key)
        orchestrator.reconcile(app_key)

        assert store.writes == [("update", ResourceKind.DEPLOYMENT, "shop")]
        assert store.get(ResourceKind.DEPLOYMENT, NAMESPACE, "shop").spec["replicas"] == 3

    def test_credential_rotation_rewrites_config(self, store, orchestrator, db_secret, app_key):
        create_app(store)
        run_until_converged(orchestrator, store, app_key)
        secret = store.get(ResourceKind.SECRET, NAMESPACE, DB_SECRET)
        secret.data["password"] = "rotated"
        store.update(secret)
        store.writes.clear()

        orchestrator.reconcile(app_key)

        assert store.writes == [("update", ResourceKind.SECRET, "shop-config")]

    def test_deleted_dependent_recreated(self, store, orchestrator, db_secret, app_key):
        create_app(store)
        run_until_converged(orchestrator, store, app_key)
        store.delete(ResourceKind.SERVICE, NAMESPACE, "shop-poll")

        orchestrator.reconcile(app_key)

        assert store.get(ResourceKind.SERVICE, NAMESPACE, "shop-poll") is not None

    def test_new_module_triggers_init_job(self, store, orchestrator, db_secret, app_key):
        create_app(store)
        run_until_converged(orchestrator, store, app_key)
        resource = store.get(ResourceKind.APP_DEPLOYMENT, NAMESPACE, "shop")
        resource.spec["modules"] = ["base", "sale"]
        store.update(resource)

        result = orchestrator.reconcile(app_key)

        assert result.requeue_after == 30.0
        job = store.get(ResourceKind.JOB, NAMESPACE, "shop-init")
        assert job.spec["template"]["spec"]["containers"][0]["command"][-1] == "base,sale"


class TestFailures:
    """Test failure reporting and short-circuiting."""

    def test_missing_credentials_degrades(self, store, orchestrator, app_key):
        create_app(store)

        result = orchestrator.reconcile(app_key)

        assert result.requeue_after == 15.0
        assert isinstance(result.error, StepFailed)
        app = load_app(store)
        degraded = condition(app, "OperatorDegraded")
        assert degraded.status == ConditionStatus.TRUE
        assert degraded.reason == "DbConnectionDetailsFailed"
        assert condition(app, "OperatorSucceeded").status == ConditionStatus.FALSE
        assert store.get(ResourceKind.SECRET, NAMESPACE, "shop-config") is None
        assert store.get(ResourceKind.PERSISTENT_VOLUME_CLAIM, NAMESPACE, "shop-filestore") is None
        assert app.status.admin_secret_name == "shop-admin-password"

    def test_credential_read_failure_degrades(self, store, orchestrator, db_secret, app_key):
        create_app(store)
        store.fail("get", ResourceKind.SECRET, StoreError("timeout reading secret"), name=DB_SECRET)

        result = orchestrator.reconcile(app_key)

        assert result.requeue_after == 15.0
        assert isinstance(result.error, StepFailed)
        app = load_app(store)
        degraded = condition(app, "OperatorDegraded")
        assert degraded.status == ConditionStatus.TRUE
        assert degraded.reason == "DbConnectionDetailsFailed"
        assert "password" in degraded.message
        assert store.get(ResourceKind.SECRET, NAMESPACE, "shop-config") is None

    def test_recovery_clears_degraded(self, store, orchestrator, app_key):
        create_app(store)
        orchestrator.reconcile(app_key)
        store.create(Resource(ResourceKind.SECRET, DB_SECRET, NAMESPACE, data={"password": "pw"}))

        run_until_converged(orchestrator, store, app_key)

        app = load_app(store)
        assert condition(app, "OperatorDegraded").status == ConditionStatus.FALSE
        assert condition(app, "OperatorSucceeded").status == ConditionStatus.TRUE

    def test_failed_init_job_recreated(self, store, orchestrator, db_secret, app_key):
        create_app(store)
        orchestrator.reconcile(app_key)
        set_job_counters(store, "shop-init", failed=3)

        result = orchestrator.reconcile(app_key)

        assert result.requeue_after == 30.0
        app = load_app(store)
        assert condition(app, "DatabaseInitialized").reason == "InitJobFailed"
        assert app.status.current_init_job.is_idle()
        assert store.get(ResourceKind.JOB, NAMESPACE, "shop-init") is None

        orchestrator.reconcile(app_key)

        assert store.get(ResourceKind.JOB, NAMESPACE, "shop-init") is not None
        assert condition(load_app(store), "DatabaseInitialized").reason == "InitJobCreated"

    def test_cleanup_failure_leaves_status(self, store, orchestrator, db_secret, app_key):
        create_app(store)
        orchestrator.reconcile(app_key)
        set_job_counters(store, "shop-init", succeeded=1)
        store.fail("delete", ResourceKind.JOB)

        result = orchestrator.reconcile(app_key)

        assert result.requeue_after == 30.0
        app = load_app(store)
        assert app.status.current_init_job.name == "shop-init"
        assert app.status.init_modules_installed == ()
        assert condition(app, "OperatorDegraded").reason == "FailedToDeleteInitJob"

    def test_store_read_failure(self, store, orchestrator, app_key):
        store.fail("get", ResourceKind.APP_DEPLOYMENT)

        result = orchestrator.reconcile(app_key)

        assert result.requeue_after == 15.0
        assert isinstance(result.error, StoreError)


class TestLifecycle:

    def test_missing_app_deployment_is_noop(self, store, orchestrator, ownership, db_secret, app_key):
        create_app(store)
        run_until_converged(orchestrator, store, app_key)
        store.delete(ResourceKind.APP_DEPLOYMENT, NAMESPACE, "shop")

        result = orchestrator.reconcile(app_key)

        assert result.requeue_after is None
        assert result.error is None
        assert ownership.owned_by(app_key) == set()
        assert store.get(ResourceKind.DEPLOYMENT, NAMESPACE, "shop") is None

    def test_cancelled_pass(self, store, orchestrator, db_secret, app_key):
        create_app(store)
        stop_event = threading.Event()
        stop_event.set()

        with pytest.raises(ReconcileCancelled):
            orchestrator.reconcile(app_key, stop_event=stop_event)

        assert store.get(ResourceKind.SECRET, NAMESPACE, "shop-admin-password") is None
