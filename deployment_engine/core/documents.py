# deployment_engine/core/documents.py

"""Mapping between camelCase documents and App Deployment domain models."""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from deployment_engine.core.models import (
    AppDeployment,
    AppDeploymentSpec,
    AppDeploymentStatus,
    Condition,
    ConditionStatus,
    CurrentInitJob,
    DatabaseConfig,
    FilestoreSpec,
    RuntimeConfig,
    SecretKeyRef,
)
from deployment_engine.core.resources import Resource, ResourceKind


# ============================================
# Helpers
# ============================================

def _ref_from_doc(doc: Optional[Dict[str, Any]]) -> SecretKeyRef:
    if not doc:
        return SecretKeyRef()
    return SecretKeyRef(name=doc.get("name", ""), key=doc.get("key", ""))


def _ref_to_doc(ref: SecretKeyRef) -> Optional[Dict[str, str]]:
    if not ref.name and not ref.key:
        return None
    return {"name": ref.name, "key": ref.key}


def _parse_time(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if not value:
        return datetime.fromtimestamp(0, tz=timezone.utc)
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


def _format_time(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


# Database fields that accept a secret reference, in resolution order
_DATABASE_FIELDS = (
    ("host", "host"),
    ("port", "port"),
    ("user", "user"),
    ("password", "password"),
    ("name", "name"),
    ("ssl", "ssl"),
    ("max_conn", "maxConn"),
)


# ============================================
# Desired state
# ============================================

def database_from_doc(doc: Optional[Dict[str, Any]]) -> DatabaseConfig:
    doc = doc or {}
    defaults = DatabaseConfig()
    values = {}
    for attr, key in _DATABASE_FIELDS:
        values[attr] = doc.get(key, getattr(defaults, attr))
        values[f"{attr}_from_secret"] = _ref_from_doc(doc.get(f"{key}FromSecret"))
    return DatabaseConfig(**values)


def database_to_doc(database: DatabaseConfig) -> Dict[str, Any]:
    doc: Dict[str, Any] = {}
    for attr, key in _DATABASE_FIELDS:
        doc[key] = getattr(database, attr)
        ref = _ref_to_doc(getattr(database, f"{attr}_from_secret"))
        if ref is not None:
            doc[f"{key}FromSecret"] = ref
    return doc


def spec_from_doc(doc: Optional[Dict[str, Any]]) -> AppDeploymentSpec:
    """Build a spec from a desired-state document, applying defaults."""
    doc = doc or {}
    defaults = AppDeploymentSpec()
    config_doc = doc.get("config") or {}
    filestore_doc = doc.get("filestore") or {}
    runtime_defaults = RuntimeConfig()
    filestore_defaults = FilestoreSpec()

    runtime = RuntimeConfig(
        admin_password_secret_name=config_doc.get("adminPasswordSecretName", ""),
        debug_mode=config_doc.get("debugMode", runtime_defaults.debug_mode),
        data_dir=config_doc.get("dataDir", runtime_defaults.data_dir),
        without_demo=config_doc.get("withoutDemo", runtime_defaults.without_demo),
        proxy_mode=config_doc.get("proxyMode", runtime_defaults.proxy_mode),
        workers=config_doc.get("workers", runtime_defaults.workers),
        limit_request=config_doc.get("limitRequest", runtime_defaults.limit_request),
        limit_time_real=config_doc.get("limitTimeReal", runtime_defaults.limit_time_real),
        limit_time_cpu=config_doc.get("limitTimeCpu", runtime_defaults.limit_time_cpu),
        limit_memory_soft=config_doc.get("limitMemorySoft", runtime_defaults.limit_memory_soft),
        limit_memory_hard=config_doc.get("limitMemoryHard", runtime_defaults.limit_memory_hard),
    )

    filestore = FilestoreSpec(
        name=filestore_doc.get("name", ""),
        size=filestore_doc.get("size", filestore_defaults.size),
        storage_class_name=filestore_doc.get("storageClassName", ""),
        access_modes=tuple(filestore_doc.get("accessModes") or filestore_defaults.access_modes),
    )

    return AppDeploymentSpec(
        name=doc.get("name", ""),
        replicas=doc.get("replicas", defaults.replicas),
        image=doc.get("image", defaults.image),
        image_pull_policy=doc.get("imagePullPolicy", defaults.image_pull_policy),
        database=database_from_doc(doc.get("database")),
        config=runtime,
        modules=tuple(doc.get("modules") or defaults.modules),
        filestore=filestore,
    )


def spec_to_doc(spec: AppDeploymentSpec) -> Dict[str, Any]:
    filestore: Dict[str, Any] = {
        "size": spec.filestore.size,
        "accessModes": list(spec.filestore.access_modes),
    }
    if spec.filestore.name:
        filestore["name"] = spec.filestore.name
    if spec.filestore.storage_class_name:
        filestore["storageClassName"] = spec.filestore.storage_class_name

    config: Dict[str, Any] = {
        "debugMode": spec.config.debug_mode,
        "dataDir": spec.config.data_dir,
        "withoutDemo": spec.config.without_demo,
        "proxyMode": spec.config.proxy_mode,
        "workers": spec.config.workers,
        "limitRequest": spec.config.limit_request,
        "limitTimeReal": spec.config.limit_time_real,
        "limitTimeCpu": spec.config.limit_time_cpu,
        "limitMemorySoft": spec.config.limit_memory_soft,
        "limitMemoryHard": spec.config.limit_memory_hard,
    }
    if spec.config.admin_password_secret_name:
        config["adminPasswordSecretName"] = spec.config.admin_password_secret_name

    doc: Dict[str, Any] = {
        "replicas": spec.replicas,
        "image": spec.image,
        "imagePullPolicy": spec.image_pull_policy,
        "database": database_to_doc(spec.database),
        "config": config,
        "modules": list(spec.modules),
        "filestore": filestore,
    }
    if spec.name:
        doc["name"] = spec.name
    return doc


# ============================================
# Observed state
# ============================================

def status_from_doc(doc: Optional[Dict[str, Any]]) -> AppDeploymentStatus:
    doc = doc or {}
    job_doc = doc.get("currentInitJob") or {}
    conditions = tuple(
        Condition(
            type=c["type"],
            status=ConditionStatus(c.get("status", ConditionStatus.UNKNOWN.value)),
            reason=c.get("reason", ""),
            message=c.get("message", ""),
            last_transition_time=_parse_time(c.get("lastTransitionTime")),
        )
        for c in doc.get("conditions") or []
    )
    return AppDeploymentStatus(
        config_secret_name=doc.get("configSecretName", ""),
        data_claim_name=doc.get("dataClaimName", ""),
        admin_secret_name=doc.get("adminSecretName", ""),
        current_init_job=CurrentInitJob(
            name=job_doc.get("name", ""),
            namespace=job_doc.get("namespace", ""),
            modules=tuple(job_doc.get("modules") or ()),
        ),
        init_modules_installed=tuple(doc.get("initModulesInstalled") or ()),
        conditions=conditions,
    )


def status_to_doc(status: AppDeploymentStatus) -> Dict[str, Any]:
    return {
        "configSecretName": status.config_secret_name,
        "dataClaimName": status.data_claim_name,
        "adminSecretName": status.admin_secret_name,
        "currentInitJob": {
            "name": status.current_init_job.name,
            "namespace": status.current_init_job.namespace,
            "modules": list(status.current_init_job.modules),
        },
        "initModulesInstalled": list(status.init_modules_installed),
        "conditions": [
            {
                "type": c.type,
                "status": c.status.value,
                "reason": c.reason,
                "message": c.message,
                "lastTransitionTime": _format_time(c.last_transition_time),
            }
            for c in status.conditions
        ],
    }


# ============================================
# Resource mapping
# ============================================

def app_deployment_from_resource(resource: Resource) -> AppDeployment:
    """Convert a stored AppDeployment object to the domain model."""
    if resource.kind != ResourceKind.APP_DEPLOYMENT:
        raise ValueError(f"Expected AppDeployment, got {resource.kind.value}")
    return AppDeployment(
        name=resource.name,
        namespace=resource.namespace,
        spec=spec_from_doc(resource.spec),
        status=status_from_doc(resource.status),
        uid=resource.uid,
        resource_version=resource.resource_version,
        generation=resource.generation,
    )


def app_deployment_to_resource(app: AppDeployment) -> Resource:
    """Convert the domain model to a storable object."""
    return Resource(
        kind=ResourceKind.APP_DEPLOYMENT,
        name=app.name,
        namespace=app.namespace,
        spec=spec_to_doc(app.spec),
        status=status_to_doc(app.status),
        uid=app.uid,
        resource_version=app.resource_version,
        generation=app.generation,
    )
