#deployment_engine\infrastructure\postgres\store.py

"""PostgreSQL object store implementation using SQLAlchemy."""

import logging
from threading import Lock
from typing import Dict, List, Optional
from uuid import uuid4

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from deployment_engine.core.errors import (
    ResourceAlreadyExists,
    ResourceConflict,
    ResourceNotFound,
    StoreError,
)
from deployment_engine.core.resources import (
    EventType,
    OwnerReference,
    Resource,
    ResourceKind,
    WatchEvent,
)
from deployment_engine.core.store import Listener, ResourceStore, notify
from deployment_engine.infrastructure.postgres.database import get_session_factory
from deployment_engine.infrastructure.postgres.models import ResourceORM

logger = logging.getLogger(__name__)


# ============================================
# Mapping Functions
# ============================================

def owner_to_doc(owner: OwnerReference) -> Dict:
    return {
        "kind": owner.kind.value,
        "name": owner.name,
        "uid": owner.uid,
        "controller": owner.controller,
    }


def owner_from_doc(doc: Dict) -> OwnerReference:
    return OwnerReference(
        kind=ResourceKind(doc["kind"]),
        name=doc["name"],
        uid=doc["uid"],
        controller=doc.get("controller", True),
    )


def orm_to_domain(orm: ResourceORM) -> Resource:
    """Convert ORM model to domain model."""
    return Resource(
        kind=orm.kind,
        name=orm.name,
        namespace=orm.namespace,
        labels=dict(orm.labels or {}),
        owner_references=[owner_from_doc(o) for o in orm.owner_references or []],
        data=dict(orm.data or {}),
        spec=dict(orm.spec or {}),
        status=dict(orm.status or {}),
        uid=orm.uid,
        resource_version=orm.resource_version,
        generation=orm.generation,
    )


def domain_to_orm(resource: Resource) -> ResourceORM:
    """Convert domain model to ORM model."""
    return ResourceORM(
        uid=resource.uid,
        kind=resource.kind,
        namespace=resource.namespace,
        name=resource.name,
        labels=dict(resource.labels),
        owner_references=[owner_to_doc(o) for o in resource.owner_references],
        data=dict(resource.data),
        spec=dict(resource.spec),
        status=dict(resource.status),
        resource_version=resource.resource_version,
        generation=resource.generation,
    )


# ============================================
# Store Implementation
# ============================================

class SqlResourceStore(ResourceStore):
    """SQLAlchemy implementation with dependency injection."""

    def __init__(self, session_factory: Optional[sessionmaker] = None):
        """
        Initialize store with optional session factory.

        Args:
            session_factory: SQLAlchemy session factory. If None, uses default production factory.
        """
        self._session_factory = session_factory
        self._listeners: List[Listener] = []
        self._listeners_lock = Lock()

    def _get_session(self) -> Session:
        """Get new session from the injected factory."""
        factory = self._session_factory or get_session_factory()
        return factory()

    def subscribe(self, listener: Listener) -> None:
        with self._listeners_lock:
            self._listeners.append(listener)

    def _notify(self, event: WatchEvent) -> None:
        with self._listeners_lock:
            listeners = list(self._listeners)
        notify(listeners, event)

    @staticmethod
    def _query_one(session: Session, kind: ResourceKind, namespace: str, name: str):
        return (
            session.query(ResourceORM)
            .filter(
                ResourceORM.kind == kind,
                ResourceORM.namespace == namespace,
                ResourceORM.name == name,
            )
            .one_or_none()
        )

    # -------------------------
    # READ
    # -------------------------

    def get(self, kind: ResourceKind, namespace: str, name: str) -> Optional[Resource]:
        session = self._get_session()
        try:
            orm = self._query_one(session, kind, namespace, name)
            if orm is None:
                return None
            return orm_to_domain(orm)
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to get {kind.value} {namespace}/{name}: {e}") from e
        finally:
            session.close()

    def list(
        self,
        kind: ResourceKind,
        namespace: Optional[str] = None,
        labels: Optional[Dict[str, str]] = None,
    ) -> List[Resource]:
        session = self._get_session()
        try:
            query = session.query(ResourceORM).filter(ResourceORM.kind == kind)
            if namespace is not None:
                query = query.filter(ResourceORM.namespace == namespace)
            query = query.order_by(ResourceORM.namespace, ResourceORM.name)

            # Label selectors are matched in Python
            resources = [orm_to_domain(orm) for orm in query.all()]
            return [r for r in resources if r.matches_labels(labels)]
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to list {kind.value}: {e}") from e
        finally:
            session.close()

    # -------------------------
    # CREATE
    # -------------------------

    def create(self, resource: Resource) -> Resource:
        stored = Resource(
            kind=resource.kind,
            name=resource.name,
            namespace=resource.namespace,
            labels=dict(resource.labels),
            owner_references=list(resource.owner_references),
            data=dict(resource.data),
            spec=dict(resource.spec),
            status=dict(resource.status),
            uid=str(uuid4()),
            resource_version=1,
            generation=1,
        )
        if stored.kind == ResourceKind.JOB:
            for counter in ("active", "succeeded", "failed"):
                stored.status.setdefault(counter, 0)

        session = self._get_session()
        try:
            session.add(domain_to_orm(stored))
            session.commit()
            logger.debug(f"[sql-store] create {stored.kind.value} {stored.key} -> done")
        except IntegrityError as e:
            session.rollback()
            raise ResourceAlreadyExists(
                f"{resource.kind.value} {resource.namespace}/{resource.name} already exists"
            ) from e
        except SQLAlchemyError as e:
            session.rollback()
            raise StoreError(f"Failed to create {resource.kind.value}: {e}") from e
        finally:
            session.close()

        self._notify(WatchEvent(EventType.CREATED, stored))
        return stored

    # -------------------------
    # UPDATE
    # -------------------------

    def update(self, resource: Resource) -> Resource:
        return self._write(resource, status_only=False)

    def update_status(self, resource: Resource) -> Resource:
        return self._write(resource, status_only=True)

    def _write(self, resource: Resource, *, status_only: bool) -> Resource:
        session = self._get_session()
        try:
            orm = self._query_one(session, resource.kind, resource.namespace, resource.name)
            if orm is None:
                raise ResourceNotFound(
                    f"{resource.kind.value} {resource.namespace}/{resource.name} not found"
                )
            old = orm_to_domain(orm)

            values = {"resource_version": old.resource_version + 1}
            if status_only:
                values["status"] = dict(resource.status)
            else:
                values["labels"] = dict(resource.labels)
                values["owner_references"] = [owner_to_doc(o) for o in resource.owner_references]
                values["data"] = dict(resource.data)
                values["spec"] = dict(resource.spec)
                if resource.spec != old.spec or resource.data != old.data:
                    values["generation"] = old.generation + 1

            # Version check and write in one statement
            updated = (
                session.query(ResourceORM)
                .filter(
                    ResourceORM.uid == old.uid,
                    ResourceORM.resource_version == resource.resource_version,
                )
                .update(values, synchronize_session=False)
            )
            if updated == 0:
                session.rollback()
                raise ResourceConflict(
                    f"{resource.kind.value} {resource.namespace}/{resource.name}: "
                    f"version {resource.resource_version} is stale"
                )
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            raise StoreError(f"Failed to update {resource.kind.value}: {e}") from e
        finally:
            session.close()

        stored = Resource(
            kind=old.kind,
            name=old.name,
            namespace=old.namespace,
            labels=values.get("labels", old.labels),
            owner_references=(
                [owner_from_doc(o) for o in values["owner_references"]]
                if "owner_references" in values else old.owner_references
            ),
            data=values.get("data", old.data),
            spec=values.get("spec", old.spec),
            status=values.get("status", old.status),
            uid=old.uid,
            resource_version=values["resource_version"],
            generation=values.get("generation", old.generation),
        )
        self._notify(WatchEvent(EventType.UPDATED, stored, old))
        return stored

    # -------------------------
    # DELETE
    # -------------------------

    def delete(self, kind: ResourceKind, namespace: str, name: str) -> None:
        session = self._get_session()
        try:
            orm = self._query_one(session, kind, namespace, name)
            if orm is None:
                raise ResourceNotFound(f"{kind.value} {namespace}/{name} not found")

            removed = [orm_to_domain(orm)]
            candidates = session.query(ResourceORM).filter(ResourceORM.namespace == namespace).all()
            removed_uids = {orm.uid}
            pending = [orm.uid]
            while pending:
                uid = pending.pop()
                for candidate in candidates:
                    if candidate.uid in removed_uids:
                        continue
                    if any(o.get("uid") == uid for o in candidate.owner_references or []):
                        removed_uids.add(candidate.uid)
                        removed.append(orm_to_domain(candidate))
                        pending.append(candidate.uid)

            session.query(ResourceORM).filter(
                ResourceORM.uid.in_(removed_uids)
            ).delete(synchronize_session=False)
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            raise StoreError(f"Failed to delete {kind.value} {namespace}/{name}: {e}") from e
        finally:
            session.close()

        for obj in removed:
            self._notify(WatchEvent(EventType.DELETED, obj))
