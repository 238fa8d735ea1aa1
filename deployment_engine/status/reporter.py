# deployment_engine/status/reporter.py
"""Condition bookkeeping and status write-back for App Deployments."""

import logging
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Callable, Optional, Tuple

from deployment_engine.core.documents import (
    app_deployment_from_resource,
    app_deployment_to_resource,
    status_to_doc,
)
from deployment_engine.core.errors import DeploymentEngineError, merge_errors
from deployment_engine.core.models import (
    AppDeployment,
    AppDeploymentStatus,
    Condition,
    ConditionStatus,
)
from deployment_engine.core.store import ResourceStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConditionUpdate:
    type: str
    status: ConditionStatus
    reason: str
    message: str


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(microsecond=0)


class StatusReporter:
    """
    Maintains the ordered condition list and persists status.

    Conditions are last-write-wins per type. The transition time only
    moves when a condition is new or its status flips.
    """

    def __init__(
        self,
        store: ResourceStore,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._store = store
        self._clock = clock or _utcnow

    def set_condition(
        self,
        status: AppDeploymentStatus,
        update: ConditionUpdate,
    ) -> AppDeploymentStatus:
        conditions = list(status.conditions)

        for index, existing in enumerate(conditions):
            if existing.type != update.type:
                continue

            transition_time = existing.last_transition_time
            if existing.status != update.status:
                transition_time = self._clock()

            conditions[index] = Condition(
                type=update.type,
                status=update.status,
                reason=update.reason,
                message=update.message,
                last_transition_time=transition_time,
            )
            return replace(status, conditions=tuple(conditions))

        conditions.append(
            Condition(
                type=update.type,
                status=update.status,
                reason=update.reason,
                message=update.message,
                last_transition_time=self._clock(),
            )
        )
        return replace(status, conditions=tuple(conditions))

    def set_conditions(
        self,
        status: AppDeploymentStatus,
        *updates: ConditionUpdate,
    ) -> AppDeploymentStatus:
        for update in updates:
            status = self.set_condition(status, update)
        return status

    def persist(
        self,
        app: AppDeployment,
        status: AppDeploymentStatus,
        error: Optional[Exception] = None,
    ) -> Tuple[AppDeployment, Optional[Exception]]:
        """
        Write status back when it differs from the stored one.

        Returns the App Deployment as now stored and `error` merged with
        any write-back failure.
        """
        if status_to_doc(status) == status_to_doc(app.status):
            return app, error

        try:
            stored = self._store.update_status(
                app_deployment_to_resource(replace(app, status=status))
            )
        except DeploymentEngineError as write_error:
            logger.error(f"[status] {app.key}: status write-back failed: {write_error}")
            return app, merge_errors(error, write_error)

        logger.debug(f"[status] {app.key}: status persisted (version {stored.resource_version})")
        return app_deployment_from_resource(stored), error
