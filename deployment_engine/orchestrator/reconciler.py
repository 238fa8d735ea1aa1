# deployment_engine/orchestrator/reconciler.py
"""Orchestrator - runs one convergence pass for an App Deployment."""

import logging
import threading
from dataclasses import dataclass, replace
from typing import List, Optional

from deployment_engine.core import conditions
from deployment_engine.core.documents import app_deployment_from_resource
from deployment_engine.core.errors import ReconcileCancelled, StepFailed, StoreError
from deployment_engine.core.models import AppDeploymentStatus, ConditionStatus
from deployment_engine.core.ownership import OwnershipTable
from deployment_engine.core.resources import NamespacedKey, ResourceKind
from deployment_engine.core.store import ResourceStore
from deployment_engine.init_job.tracker import InitJobTracker
from deployment_engine.status.reporter import ConditionUpdate, StatusReporter
from deployment_engine.steps.admin_secret import AdminSecretStep
from deployment_engine.steps.base import ConvergenceContext, StepOutcome
from deployment_engine.steps.config_secret import ConfigSecretStep
from deployment_engine.steps.filestore import FilestoreStep
from deployment_engine.steps.init_job import InitJobStep
from deployment_engine.steps.services import HttpServiceStep, PollServiceStep
from deployment_engine.steps.workload import WorkloadStep
from deployment_engine.templates.init_job import BACKOFF_LIMIT

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReconcileResult:
    """Requeue signal of one pass; both fields empty means converged."""

    requeue_after: Optional[float] = None
    error: Optional[Exception] = None


def build_steps(
    store: ResourceStore,
    ownership: OwnershipTable,
    *,
    requeue_after_error: float = 15.0,
    init_job_poll_seconds: float = 30.0,
    init_job_backoff_limit: int = BACKOFF_LIMIT,
) -> List:
    """Steps in pipeline order."""
    tracker = InitJobTracker(
        store,
        ownership,
        poll_interval=init_job_poll_seconds,
        requeue_after_error=requeue_after_error,
        backoff_limit=init_job_backoff_limit,
    )
    return [
        AdminSecretStep(store, ownership, requeue_after_error=requeue_after_error),
        ConfigSecretStep(store, ownership, requeue_after_error=requeue_after_error),
        FilestoreStep(store, ownership, requeue_after_error=requeue_after_error),
        InitJobStep(tracker),
        WorkloadStep(store, ownership, requeue_after_error=requeue_after_error),
        HttpServiceStep(store, ownership, requeue_after_error=requeue_after_error),
        PollServiceStep(store, ownership, requeue_after_error=requeue_after_error),
    ]


class Orchestrator:
    """
    Runs the steps for one App Deployment in their fixed order.

    Flow:
    1. Load the App Deployment; gone means nothing to do
    2. For each step:
       a. Converge it against the status accumulated so far
       b. Fold its status changes and conditions into a new status
       c. Persist status
       d. Stop on failure or when the step asks for a re-check
    3. Report success
    """

    def __init__(
        self,
        store: ResourceStore,
        ownership: OwnershipTable,
        reporter: StatusReporter,
        steps: Optional[List] = None,
        *,
        requeue_after_error: float = 15.0,
        init_job_poll_seconds: float = 30.0,
        init_job_backoff_limit: int = BACKOFF_LIMIT,
    ):
        self._store = store
        self._ownership = ownership
        self._reporter = reporter
        self._requeue_after_error = requeue_after_error
        self._steps = steps if steps is not None else build_steps(
            store,
            ownership,
            requeue_after_error=requeue_after_error,
            init_job_poll_seconds=init_job_poll_seconds,
            init_job_backoff_limit=init_job_backoff_limit,
        )

    def reconcile(
        self,
        key: NamespacedKey,
        stop_event: Optional[threading.Event] = None,
    ) -> ReconcileResult:
        try:
            resource = self._store.get(ResourceKind.APP_DEPLOYMENT, key.namespace, key.name)
        except StoreError as e:
            logger.error(f"[orchestrator] {key}: failed to get App Deployment: {e}")
            return ReconcileResult(requeue_after=self._requeue_after_error, error=e)

        if resource is None:
            logger.info(f"[orchestrator] {key}: App Deployment not found, assuming deleted")
            self._ownership.forget(key)
            return ReconcileResult()

        app = app_deployment_from_resource(resource)
        status = app.status
        outputs = {}

        logger.info(f"[orchestrator] {key}: reconciling (generation {app.generation})")

        for step in self._steps:
            if stop_event is not None and stop_event.is_set():
                raise ReconcileCancelled(f"reconcile of {key} cancelled before {step.label}")

            context = ConvergenceContext(app=replace(app, status=status), outputs=outputs)

            try:
                outcome = step.converge(context)
            except StepFailed as failure:
                status = self._reporter.set_conditions(
                    status,
                    ConditionUpdate(
                        conditions.OPERATOR_DEGRADED,
                        ConditionStatus.TRUE,
                        failure.reason,
                        failure.message,
                    ),
                    ConditionUpdate(
                        conditions.OPERATOR_SUCCEEDED,
                        ConditionStatus.FALSE,
                        failure.reason,
                        failure.message,
                    ),
                )
                app, error = self._reporter.persist(app, status, failure)
                return ReconcileResult(
                    requeue_after=failure.requeue_after or self._requeue_after_error,
                    error=error,
                )

            status = self.fold(status, outcome)
            if outcome.resource is not None:
                outputs[step.label] = outcome.resource

            app, error = self._reporter.persist(app, status)
            if error is not None:
                return ReconcileResult(requeue_after=self._requeue_after_error, error=error)

            if outcome.requeue_after is not None:
                logger.info(
                    f"[orchestrator] {key}: {step.label} requested re-check in {outcome.requeue_after}s"
                )
                return ReconcileResult(requeue_after=outcome.requeue_after)

        status = self._reporter.set_conditions(
            status,
            ConditionUpdate(
                conditions.OPERATOR_SUCCEEDED,
                ConditionStatus.TRUE,
                conditions.RECONCILE_SUCCEEDED,
                "Reconcile succeeded",
            ),
            ConditionUpdate(
                conditions.OPERATOR_DEGRADED,
                ConditionStatus.FALSE,
                conditions.RECONCILE_SUCCEEDED,
                "Reconcile succeeded",
            ),
        )
        app, error = self._reporter.persist(app, status)
        if error is not None:
            return ReconcileResult(requeue_after=self._requeue_after_error, error=error)

        logger.info(f"[orchestrator] {key}: reconcile succeeded")
        return ReconcileResult()

    def fold(self, status: AppDeploymentStatus, outcome: StepOutcome) -> AppDeploymentStatus:
        """Apply one step's changes to the status accumulator."""
        if outcome.status_changes:
            status = replace(status, **outcome.status_changes)
        if outcome.conditions:
            status = self._reporter.set_conditions(status, *outcome.conditions)
        return status
