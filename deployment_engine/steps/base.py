# deployment_engine/steps/base.py
"""Generic read-build-diff-write convergence step."""

import copy
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from deployment_engine.core import conditions
from deployment_engine.core.errors import StepFailed, StoreError
from deployment_engine.core.models import AppDeployment
from deployment_engine.core.ownership import OwnershipTable
from deployment_engine.core.resources import Resource, ResourceKind
from deployment_engine.core.store import ResourceStore
from deployment_engine.status.reporter import ConditionUpdate

logger = logging.getLogger(__name__)


DEFAULT_ERROR_REQUEUE_SECONDS = 15.0


@dataclass(frozen=True)
class ConvergenceContext:
    """
    Input of one step.

    `app.status` is the status accumulated by the steps that ran before
    in the same pass; `outputs` maps step labels to their resources.
    """

    app: AppDeployment
    outputs: Dict[str, Resource] = field(default_factory=dict)


@dataclass(frozen=True)
class StepOutcome:
    resource: Optional[Resource] = None
    status_changes: Dict[str, Any] = field(default_factory=dict)
    conditions: Tuple[ConditionUpdate, ...] = ()
    requeue_after: Optional[float] = None


def diff_paths(live: Any, desired: Any, prefix: str = "") -> List[str]:
    """List the paths at which `desired` differs from `live`."""
    if isinstance(live, dict) and isinstance(desired, dict):
        paths = []
        for key in sorted(set(live) | set(desired), key=str):
            path = f"{prefix}.{key}" if prefix else str(key)
            if key not in live or key not in desired:
                paths.append(path)
            else:
                paths.extend(diff_paths(live[key], desired[key], path))
        return paths

    if isinstance(live, list) and isinstance(desired, list) and len(live) == len(desired):
        paths = []
        for index, (a, b) in enumerate(zip(live, desired)):
            paths.extend(diff_paths(a, b, f"{prefix}[{index}]"))
        return paths

    return [] if live == desired else [prefix or "<root>"]


class ConvergenceStep(ABC):
    """
    Brings one dependent object to its desired state.

    1. Read the live object by its deterministic name.
    2. Build the desired object from its template.
    3. Create it when absent, owner reference set.
    4. Otherwise diff only the fields this step owns and update when
       anything differs, owner reference re-asserted.

    Store failures raise StepFailed with `<label>NotAvailable`,
    `<label>CreationFailed` or `<label>UpdateFailed`.
    """

    label: str = ""
    kind: ResourceKind
    # "spec": top-level keys of the desired spec; "data": whole payload
    section: str = "spec"
    create_only: bool = False

    def __init__(
        self,
        store: ResourceStore,
        ownership: OwnershipTable,
        *,
        requeue_after_error: float = DEFAULT_ERROR_REQUEUE_SECONDS,
    ):
        self._store = store
        self._ownership = ownership
        self._requeue_after_error = requeue_after_error

    # -------------------------
    # HOOKS
    # -------------------------

    @abstractmethod
    def resource_name(self, app: AppDeployment) -> str:
        raise NotImplementedError

    @abstractmethod
    def build_desired(self, context: ConvergenceContext) -> Resource:
        raise NotImplementedError

    def should_own(self, app: AppDeployment) -> bool:
        return True

    def prepare_update(self, live: Resource, desired: Resource) -> Optional[Resource]:
        """Adjust desired against live before diffing; None skips the update."""
        return desired

    def outcome(self, context: ConvergenceContext, resource: Resource) -> StepOutcome:
        return StepOutcome(resource=resource)

    # -------------------------
    # ALGORITHM
    # -------------------------

    def converge(self, context: ConvergenceContext) -> StepOutcome:
        app = context.app
        name = self.resource_name(app)

        try:
            live = self._store.get(self.kind, app.namespace, name)
        except StoreError as e:
            raise self.failure(
                conditions.not_available(self.label),
                f"error reading {self.kind.value} {name}: {e}",
                e,
            ) from e

        desired = self.build_desired(context)

        if live is None:
            return self._create(context, desired)

        if self.create_only:
            self._record(app, live)
            return self.outcome(context, live)

        return self._update(context, live, desired)

    def _create(self, context: ConvergenceContext, desired: Resource) -> StepOutcome:
        app = context.app
        if self.should_own(app):
            desired.set_controller_owner(app.owner_reference())

        logger.info(f"[step] {app.key}: creating {self.kind.value} {desired.name}")
        try:
            created = self._store.create(desired)
        except StoreError as e:
            raise self.failure(
                conditions.creation_failed(self.label),
                f"error creating {self.kind.value} {desired.name}: {e}",
                e,
            ) from e

        self._record(app, created)
        return self.outcome(context, created)

    def _update(
        self,
        context: ConvergenceContext,
        live: Resource,
        desired: Resource,
    ) -> StepOutcome:
        app = context.app
        desired = self.prepare_update(live, desired)
        if desired is None:
            self._record(app, live)
            return self.outcome(context, live)

        changed = self.changed_fields(app, live, desired)
        if not changed:
            self._record(app, live)
            return self.outcome(context, live)

        logger.info(f"[step] {app.key}: updating {self.kind.value} {live.name}")
        logger.debug(f"[step] {app.key}: {self.kind.value} {live.name} changed at {changed}")

        updated = copy.deepcopy(live)
        updated.labels.update(desired.labels)
        if self.section == "data":
            updated.data = dict(desired.data)
        else:
            updated.spec.update(copy.deepcopy(desired.spec))
        if self.should_own(app):
            updated.set_controller_owner(app.owner_reference())

        try:
            stored = self._store.update(updated)
        except StoreError as e:
            raise self.failure(
                conditions.update_failed(self.label),
                f"error updating {self.kind.value} {live.name}: {e}",
                e,
            ) from e

        self._record(app, stored)
        return self.outcome(context, stored)

    def changed_fields(self, app: AppDeployment, live: Resource, desired: Resource) -> List[str]:
        """Paths of owned fields that differ; secret payloads report keys only."""
        changed: List[str] = []

        for key, value in desired.labels.items():
            if live.labels.get(key) != value:
                changed.append(f"labels.{key}")

        if self.section == "data":
            if live.data != desired.data:
                changed.extend(
                    f"data.{key}"
                    for key in sorted(set(live.data) | set(desired.data))
                    if live.data.get(key) != desired.data.get(key)
                )
        else:
            for key, value in desired.spec.items():
                changed.extend(diff_paths(live.spec.get(key), value, f"spec.{key}"))

        if self.should_own(app):
            owner = live.controller_owner()
            if owner is None or owner.uid != app.uid:
                changed.append("ownerReferences")

        return changed

    # -------------------------
    # HELPERS
    # -------------------------

    def failure(self, reason: str, message: str, cause: Optional[Exception] = None) -> StepFailed:
        logger.error(f"[step] {reason}: {message}")
        return StepFailed(
            reason,
            message,
            requeue_after=self._requeue_after_error,
            cause=cause,
        )

    def _record(self, app: AppDeployment, resource: Resource) -> None:
        if self.should_own(app):
            self._ownership.record(app.key, resource.ref)
