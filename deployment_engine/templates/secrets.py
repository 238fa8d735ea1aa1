# deployment_engine/templates/secrets.py
"""Admin password and configuration secret templates."""

import secrets

from deployment_engine.core.models import ADMIN_PASSWORD_KEY, AppDeployment, CONFIG_FILE_KEY
from deployment_engine.core.resources import Resource, ResourceKind


PASSWORD_BYTES = 24


def generate_secure_password() -> str:
    return secrets.token_urlsafe(PASSWORD_BYTES)


def build_admin_secret(app: AppDeployment) -> Resource:
    return Resource(
        kind=ResourceKind.SECRET,
        name=app.admin_secret_name(),
        namespace=app.namespace,
        data={ADMIN_PASSWORD_KEY: generate_secure_password()},
    )


def build_config_secret(app: AppDeployment, rendered_config: str) -> Resource:
    return Resource(
        kind=ResourceKind.SECRET,
        name=app.config_secret_name(),
        namespace=app.namespace,
        data={CONFIG_FILE_KEY: rendered_config},
    )
