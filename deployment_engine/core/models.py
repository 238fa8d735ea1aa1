"""Core domain models for App Deployments."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, Optional, Tuple

from deployment_engine.core.resources import NamespacedKey, OwnerReference, ResourceKind


HTTP_PORT = 8069
POLL_PORT = 8072
CONFIG_FILE_KEY = "odoo.conf"
ADMIN_PASSWORD_KEY = "password"


class ConditionStatus(Enum):
    TRUE = "True"
    FALSE = "False"
    UNKNOWN = "Unknown"


# ============================================
# DESIRED STATE
# ============================================

@dataclass(frozen=True)
class SecretKeyRef:
    """Pointer to one key of a secret in the App Deployment's namespace."""

    name: str = ""
    key: str = ""

    def is_set(self) -> bool:
        return bool(self.name and self.key)


@dataclass(frozen=True)
class DatabaseConfig:
    """Database connection settings; every field is a literal or a secret reference."""

    host: str = "postgresql"
    host_from_secret: SecretKeyRef = SecretKeyRef()

    port: int = 5432
    port_from_secret: SecretKeyRef = SecretKeyRef()

    user: str = "odoo"
    user_from_secret: SecretKeyRef = SecretKeyRef()

    # No default: the password must come from a secret or be set explicitly
    password: str = ""
    password_from_secret: SecretKeyRef = SecretKeyRef()

    name: str = "odoo"
    name_from_secret: SecretKeyRef = SecretKeyRef()

    ssl: bool = False
    ssl_from_secret: SecretKeyRef = SecretKeyRef()

    max_conn: int = 20
    max_conn_from_secret: SecretKeyRef = SecretKeyRef()

    def secret_references(self) -> Tuple[SecretKeyRef, ...]:
        return (
            self.host_from_secret,
            self.port_from_secret,
            self.user_from_secret,
            self.password_from_secret,
            self.name_from_secret,
            self.ssl_from_secret,
            self.max_conn_from_secret,
        )


@dataclass(frozen=True)
class RuntimeConfig:
    admin_password_secret_name: str = ""
    debug_mode: bool = False
    data_dir: str = "/var/lib/odoo"
    without_demo: bool = True
    proxy_mode: bool = True
    workers: int = 2
    limit_request: int = 8192
    limit_time_real: int = 120
    limit_time_cpu: int = 60
    limit_memory_soft: int = 2147483648
    limit_memory_hard: int = 2684354560


@dataclass(frozen=True)
class FilestoreSpec:
    name: str = ""
    size: str = "10Gi"
    storage_class_name: str = ""
    access_modes: Tuple[str, ...] = ("ReadWriteOnce",)


@dataclass(frozen=True)
class AppDeploymentSpec:
    name: str = ""
    replicas: int = 1
    image: str = "odoo:18"
    image_pull_policy: str = "IfNotPresent"
    database: DatabaseConfig = DatabaseConfig()
    config: RuntimeConfig = RuntimeConfig()
    modules: Tuple[str, ...] = ("base",)
    filestore: FilestoreSpec = FilestoreSpec()


# ============================================
# OBSERVED STATE
# ============================================

@dataclass(frozen=True)
class CurrentInitJob:
    """The init job in flight; all fields empty when idle."""

    name: str = ""
    namespace: str = ""
    modules: Tuple[str, ...] = ()

    def is_idle(self) -> bool:
        return not (self.name and self.namespace)


@dataclass(frozen=True)
class Condition:
    type: str
    status: ConditionStatus
    reason: str
    message: str
    last_transition_time: datetime


@dataclass(frozen=True)
class AppDeploymentStatus:
    config_secret_name: str = ""
    data_claim_name: str = ""
    admin_secret_name: str = ""
    current_init_job: CurrentInitJob = CurrentInitJob()
    init_modules_installed: Tuple[str, ...] = ()
    conditions: Tuple[Condition, ...] = ()

    def get_condition(self, condition_type: str) -> Optional[Condition]:
        for condition in self.conditions:
            if condition.type == condition_type:
                return condition
        return None


@dataclass(frozen=True)
class ConnectionDescriptor:
    """Resolved database connection; computed every pass and never persisted."""

    host: str
    port: int
    user: str
    password: str = field(repr=False)
    name: str
    ssl: bool
    max_conn: int


# ============================================
# APP DEPLOYMENT
# ============================================

@dataclass(frozen=True)
class AppDeployment:
    """
    One App Deployment as loaded from the store.

    Naming of every dependent object is deterministic and derived here.
    """

    name: str
    namespace: str
    spec: AppDeploymentSpec = AppDeploymentSpec()
    status: AppDeploymentStatus = AppDeploymentStatus()
    uid: str = ""
    resource_version: int = 0
    generation: int = 0

    @property
    def key(self) -> NamespacedKey:
        return NamespacedKey(self.namespace, self.name)

    def owner_reference(self) -> OwnerReference:
        return OwnerReference(
            kind=ResourceKind.APP_DEPLOYMENT,
            name=self.name,
            uid=self.uid,
            controller=True,
        )

    # -------------------------
    # NAMING
    # -------------------------

    def config_secret_name(self) -> str:
        return f"{self.name}-config"

    def admin_secret_name(self) -> str:
        if self.spec.config.admin_password_secret_name:
            return self.spec.config.admin_password_secret_name
        return f"{self.name}-admin-password"

    def admin_secret_is_user_supplied(self) -> bool:
        return bool(self.spec.config.admin_password_secret_name)

    def filestore_claim_name(self) -> str:
        if self.spec.filestore.name:
            return self.spec.filestore.name
        return f"{self.name}-filestore"

    def init_job_name(self) -> str:
        return f"{self.name}-init"

    def workload_name(self) -> str:
        return self.name

    def http_service_name(self) -> str:
        return f"{self.name}-http"

    def poll_service_name(self) -> str:
        return f"{self.name}-poll"

    def selector_labels(self) -> Dict[str, str]:
        return {"app": self.name}

    def uses_secret(self, secret_name: str) -> bool:
        """Check whether a secret is referenced by name from this App Deployment."""
        if not secret_name:
            return False
        for ref in self.spec.database.secret_references():
            if ref.name == secret_name:
                return True
        return self.spec.config.admin_password_secret_name == secret_name
