#deployment_engine\infrastructure\postgres\models.py
"""SQLAlchemy ORM models for database tables."""

from datetime import datetime

from sqlalchemy import Column, DateTime, Enum as SQLEnum, Index, Integer, JSON, String, UniqueConstraint

from deployment_engine.core.resources import ResourceKind
from deployment_engine.infrastructure.postgres.database import Base


class ResourceORM(Base):
    """
    Resource table - one row per stored object.

    Indexes:
    - Primary key on uid
    - Unique (kind, namespace, name) identity
    - Composite index on (kind, namespace) for listing
    """

    __tablename__ = "resources"

    # Primary key
    uid = Column(String(36), primary_key=True, nullable=False)

    # Identity
    kind = Column(SQLEnum(ResourceKind, name="resource_kind"), nullable=False)
    namespace = Column(String(253), nullable=False)
    name = Column(String(253), nullable=False)

    # Metadata
    labels = Column(JSON, nullable=False, default=dict)
    owner_references = Column(JSON, nullable=False, default=list)

    # Content
    data = Column(JSON, nullable=False, default=dict)
    spec = Column(JSON, nullable=False, default=dict)
    status = Column(JSON, nullable=False, default=dict)

    # Optimistic concurrency
    resource_version = Column(Integer, nullable=False, default=1)
    generation = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint('kind', 'namespace', 'name', name='uq_resources_identity'),
        Index('ix_resources_kind_namespace', 'kind', 'namespace'),
    )

    def __repr__(self) -> str:
        return (
            f"<ResourceORM(kind={self.kind.value}, "
            f"key={self.namespace}/{self.name}, "
            f"version={self.resource_version})>"
        )
