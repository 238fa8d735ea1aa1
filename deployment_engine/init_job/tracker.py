# deployment_engine/init_job/tracker.py
"""Lifecycle of the one-shot database initialization job."""

import logging
from dataclasses import replace
from enum import Enum
from typing import Any, Dict

from deployment_engine.core import conditions
from deployment_engine.core.errors import (
    ResourceAlreadyExists,
    ResourceNotFound,
    StepFailed,
    StoreError,
)
from deployment_engine.core.models import AppDeployment, ConditionStatus, CurrentInitJob
from deployment_engine.core.ownership import OwnershipTable
from deployment_engine.core.resources import Resource, ResourceKind
from deployment_engine.core.store import ResourceStore
from deployment_engine.status.reporter import ConditionUpdate
from deployment_engine.steps.base import StepOutcome
from deployment_engine.templates.init_job import BACKOFF_LIMIT, build_init_job, init_job_modules

logger = logging.getLogger(__name__)


JOB_NAME_LABEL = "job-name"


class InitJobState(Enum):
    IDLE = "IDLE"
    PENDING = "PENDING"
    RUNNING = "RUNNING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"


ALLOWED_TRANSITIONS = {
    InitJobState.IDLE: {
        InitJobState.PENDING,
    },
    InitJobState.PENDING: {
        InitJobState.RUNNING,
        InitJobState.SUCCEEDED,
        InitJobState.FAILED,
        InitJobState.IDLE,
    },
    InitJobState.RUNNING: {
        InitJobState.PENDING,
        InitJobState.SUCCEEDED,
        InitJobState.FAILED,
        InitJobState.IDLE,
    },
    InitJobState.SUCCEEDED: {
        InitJobState.IDLE,
    },
    InitJobState.FAILED: {
        InitJobState.IDLE,
    },
}


class InvalidInitJobTransition(Exception):
    pass


def check_transition(current: InitJobState, new_state: InitJobState) -> InitJobState:
    if current == new_state:
        return new_state
    if new_state not in ALLOWED_TRANSITIONS.get(current, set()):
        raise InvalidInitJobTransition(
            f"Cannot transition from {current} to {new_state}"
        )
    return new_state


def observe(job: Resource) -> InitJobState:
    """Classify a live job from its counters."""
    counters = job.status or {}
    active = int(counters.get("active", 0) or 0)
    succeeded = int(counters.get("succeeded", 0) or 0)
    failed = int(counters.get("failed", 0) or 0)
    backoff_limit = int(job.spec.get("backoffLimit", BACKOFF_LIMIT))

    if succeeded > 0:
        return InitJobState.SUCCEEDED
    if active > 0:
        return InitJobState.RUNNING
    if failed > backoff_limit:
        return InitJobState.FAILED
    return InitJobState.PENDING


class InitJobTracker:
    """
    Drives the init job for one App Deployment per pass.

    At most one job is in flight and all modules are installed as a
    single batch. Status changes after a finished job are returned only
    once its pods and the job itself are gone, so a failed cleanup is
    retried on the next pass.
    """

    def __init__(
        self,
        store: ResourceStore,
        ownership: OwnershipTable,
        *,
        poll_interval: float = 30.0,
        requeue_after_error: float = 15.0,
        backoff_limit: int = BACKOFF_LIMIT,
    ):
        self._store = store
        self._ownership = ownership
        self._poll_interval = poll_interval
        self._requeue_after_error = requeue_after_error
        self._backoff_limit = backoff_limit

    def track(self, app: AppDeployment) -> StepOutcome:
        status_changes: Dict[str, Any] = {}
        current = app.status.current_init_job

        if not current.is_idle():
            try:
                job = self._store.get(ResourceKind.JOB, current.namespace, current.name)
            except StoreError as e:
                raise self._failure(
                    conditions.FAILED_TO_GET_INIT_JOB,
                    f"Failed to get current InitJob: {e}",
                    e,
                    self._requeue_after_error,
                ) from e

            if job is None:
                logger.info(f"[init-job] {app.key}: job {current.name} not found, clearing")
                status_changes["current_init_job"] = CurrentInitJob()
                app = replace(app, status=replace(app.status, current_init_job=CurrentInitJob()))
            else:
                return self._follow(app, job)

        return self._evaluate_idle(app, status_changes)

    # -------------------------
    # IN FLIGHT
    # -------------------------

    def _follow(self, app: AppDeployment, job: Resource) -> StepOutcome:
        current = app.status.current_init_job
        state = check_transition(InitJobState.PENDING, observe(job))

        if state in (InitJobState.PENDING, InitJobState.RUNNING):
            logger.info(f"[init-job] {app.key}: job {job.name} {state.value.lower()}, requeueing")
            return StepOutcome(resource=job, requeue_after=self._poll_interval)

        self._cleanup(job)
        check_transition(state, InitJobState.IDLE)

        if state == InitJobState.SUCCEEDED:
            logger.info(f"[init-job] {app.key}: job {job.name} succeeded, modules {list(current.modules)}")
            return StepOutcome(
                resource=job,
                status_changes={
                    "current_init_job": CurrentInitJob(),
                    "init_modules_installed": tuple(current.modules),
                },
                conditions=(
                    ConditionUpdate(
                        type=conditions.DATABASE_INITIALIZED,
                        status=ConditionStatus.TRUE,
                        reason=conditions.INIT_JOB_SUCCEEDED,
                        message="InitJob succeeded, clearing",
                    ),
                ),
                requeue_after=self._poll_interval,
            )

        logger.warning(f"[init-job] {app.key}: job {job.name} failed, it will be re-created")
        return StepOutcome(
            resource=job,
            status_changes={"current_init_job": CurrentInitJob()},
            conditions=(
                ConditionUpdate(
                    type=conditions.DATABASE_INITIALIZED,
                    status=ConditionStatus.FALSE,
                    reason=conditions.INIT_JOB_FAILED,
                    message=f"InitJob {job.name} failed after exhausting its retries",
                ),
            ),
            requeue_after=self._poll_interval,
        )

    def _cleanup(self, job: Resource) -> None:
        """Delete the job's pods, then the job."""
        try:
            pods = self._store.list(
                ResourceKind.POD,
                namespace=job.namespace,
                labels={JOB_NAME_LABEL: job.name},
            )
        except StoreError as e:
            raise self._failure(
                conditions.FAILED_TO_LIST_PODS, f"Failed to list pods: {e}", e, self._poll_interval
            ) from e

        for pod in pods:
            logger.info(f"[init-job] deleting pod {pod.name} from job {job.name}")
            try:
                self._store.delete(ResourceKind.POD, pod.namespace, pod.name)
            except ResourceNotFound:
                continue
            except StoreError as e:
                raise self._failure(
                    conditions.FAILED_TO_DELETE_POD, f"Failed to delete pod: {e}", e, self._poll_interval
                ) from e

        logger.info(f"[init-job] deleting job {job.name}")
        try:
            self._store.delete(ResourceKind.JOB, job.namespace, job.name)
        except ResourceNotFound:
            pass
        except StoreError as e:
            raise self._failure(
                conditions.FAILED_TO_DELETE_INIT_JOB,
                f"Failed to delete current InitJob: {e}",
                e,
                self._poll_interval,
            ) from e

        self._ownership.discard(job.ref)

    # -------------------------
    # IDLE
    # -------------------------

    def _evaluate_idle(self, app: AppDeployment, status_changes: Dict[str, Any]) -> StepOutcome:
        modules = app.spec.modules
        installed = app.status.init_modules_installed

        if not modules:
            return StepOutcome(status_changes=status_changes)

        if installed and len(installed) == len(modules):
            logger.debug(f"[init-job] {app.key}: {len(installed)} modules installed")
            return StepOutcome(status_changes=status_changes)

        job, modules_to_install = build_init_job(app, self._backoff_limit)
        job.set_controller_owner(app.owner_reference())

        logger.info(f"[init-job] {app.key}: creating job {job.name} for {list(modules_to_install)}")
        try:
            created = self._store.create(job)
        except ResourceAlreadyExists:
            created = self._adopt(app, job)
            modules_to_install = init_job_modules(created)
        except StoreError as e:
            raise self._failure(
                conditions.INIT_JOB_CREATION_FAILED,
                f"error creating {job.name} init job: {e}",
                e,
                self._requeue_after_error,
            ) from e

        check_transition(InitJobState.IDLE, InitJobState.PENDING)
        self._ownership.record(app.key, created.ref)

        status_changes["current_init_job"] = CurrentInitJob(
            name=created.name,
            namespace=app.namespace,
            modules=tuple(modules_to_install),
        )
        return StepOutcome(
            resource=created,
            status_changes=status_changes,
            conditions=(
                ConditionUpdate(
                    type=conditions.DATABASE_INITIALIZED,
                    status=ConditionStatus.FALSE,
                    reason=conditions.INIT_JOB_CREATED,
                    message=f"InitJob {created.name} created",
                ),
            ),
            requeue_after=self._poll_interval,
        )

    def _adopt(self, app: AppDeployment, job: Resource) -> Resource:
        """Take over a job that already exists under the deterministic name."""
        try:
            existing = self._store.get(ResourceKind.JOB, job.namespace, job.name)
        except StoreError as e:
            raise self._failure(
                conditions.FAILED_TO_GET_INIT_JOB,
                f"Failed to get existing InitJob: {e}",
                e,
                self._requeue_after_error,
            ) from e

        if existing is None:
            raise self._failure(
                conditions.INIT_JOB_CREATION_FAILED,
                f"init job {job.name} vanished while being created",
                None,
                self._requeue_after_error,
            )

        logger.info(
            f"[init-job] {app.key}: adopting existing job {existing.name} "
            f"for {list(init_job_modules(existing))}"
        )
        return existing

    def _failure(self, reason: str, message: str, cause, requeue_after: float) -> StepFailed:
        logger.error(f"[init-job] {reason}: {message}")
        return StepFailed(reason, message, requeue_after=requeue_after, cause=cause)
