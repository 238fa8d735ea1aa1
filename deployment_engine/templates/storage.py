# deployment_engine/templates/storage.py
"""Filestore claim template."""

from deployment_engine.core.models import AppDeployment
from deployment_engine.core.resources import Resource, ResourceKind


def build_filestore_claim(app: AppDeployment) -> Resource:
    filestore = app.spec.filestore
    spec = {
        "accessModes": list(filestore.access_modes),
        "resources": {"requests": {"storage": filestore.size}},
    }
    if filestore.storage_class_name:
        spec["storageClassName"] = filestore.storage_class_name

    return Resource(
        kind=ResourceKind.PERSISTENT_VOLUME_CLAIM,
        name=app.filestore_claim_name(),
        namespace=app.namespace,
        spec=spec,
    )
