from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SecretKeyRefModel(CamelModel):
    name: str
    key: str


class DatabaseConfigModel(CamelModel):
    host: str = "postgresql"
    host_from_secret: Optional[SecretKeyRefModel] = None
    port: int = 5432
    port_from_secret: Optional[SecretKeyRefModel] = None
    user: str = "odoo"
    user_from_secret: Optional[SecretKeyRefModel] = None
    password: str = ""
    password_from_secret: Optional[SecretKeyRefModel] = None
    name: str = "odoo"
    name_from_secret: Optional[SecretKeyRefModel] = None
    ssl: bool = False
    ssl_from_secret: Optional[SecretKeyRefModel] = None
    max_conn: int = 20
    max_conn_from_secret: Optional[SecretKeyRefModel] = None


class RuntimeConfigModel(CamelModel):
    admin_password_secret_name: Optional[str] = None
    debug_mode: bool = False
    data_dir: str = "/var/lib/odoo"
    without_demo: bool = True
    proxy_mode: bool = True
    workers: int = Field(2, ge=0)
    limit_request: int = 8192
    limit_time_real: int = 120
    limit_time_cpu: int = 60
    limit_memory_soft: int = 2147483648
    limit_memory_hard: int = 2684354560


class FilestoreModel(CamelModel):
    name: Optional[str] = None
    size: str = "10Gi"
    storage_class_name: Optional[str] = None
    access_modes: List[str] = Field(default_factory=lambda: ["ReadWriteOnce"], min_length=1)


class AppDeploymentSpecModel(CamelModel):
    name: Optional[str] = None
    replicas: int = Field(1, ge=1)
    image: str = "odoo:18"
    image_pull_policy: str = "IfNotPresent"
    database: DatabaseConfigModel = Field(default_factory=DatabaseConfigModel)
    config: RuntimeConfigModel = Field(default_factory=RuntimeConfigModel)
    modules: List[str] = Field(default_factory=lambda: ["base"], min_length=1)
    filestore: FilestoreModel = Field(default_factory=FilestoreModel)

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class AppDeploymentCreateRequest(CamelModel):
    namespace: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    spec: AppDeploymentSpecModel = Field(default_factory=AppDeploymentSpecModel)


class AppDeploymentResponse(CamelModel):
    namespace: str
    name: str
    uid: str
    resource_version: int
    generation: int
    spec: Dict[str, Any]
    status: Dict[str, Any]


class ReconcileResponse(CamelModel):
    requeue_after: Optional[float] = None
    error: Optional[str] = None
