# deployment_engine/steps/config_secret.py

import logging

from deployment_engine.core import conditions
from deployment_engine.core.errors import ConnectionFieldError
from deployment_engine.core.models import ADMIN_PASSWORD_KEY, AppDeployment
from deployment_engine.core.resources import Resource, ResourceKind
from deployment_engine.rendering.config_renderer import render_config
from deployment_engine.resolver.secret_resolver import SecretResolver
from deployment_engine.steps.admin_secret import AdminSecretStep
from deployment_engine.steps.base import ConvergenceContext, ConvergenceStep, StepOutcome
from deployment_engine.templates.secrets import build_config_secret

logger = logging.getLogger(__name__)


class ConfigSecretStep(ConvergenceStep):
    """Renders the configuration file into the config secret."""

    label = "OdooConfigSecret"
    kind = ResourceKind.SECRET
    section = "data"

    def resource_name(self, app: AppDeployment) -> str:
        return app.config_secret_name()

    def build_desired(self, context: ConvergenceContext) -> Resource:
        app = context.app

        admin_secret = context.outputs.get(AdminSecretStep.label)
        if admin_secret is None or ADMIN_PASSWORD_KEY not in admin_secret.data:
            raise self.failure(
                conditions.ODOO_ADMIN_PASSWORD_FAILED,
                f"admin secret {app.admin_secret_name()} has no {ADMIN_PASSWORD_KEY!r} key",
            )

        resolver = SecretResolver(self._store, app.namespace)
        try:
            connection = resolver.resolve_connection(app.spec.database)
        except ConnectionFieldError as e:
            raise self.failure(
                conditions.DB_CONNECTION_DETAILS_FAILED,
                f"failed to get database connection details: {e}",
                e,
            ) from e

        rendered = render_config(
            connection,
            app.spec.config,
            admin_secret.data[ADMIN_PASSWORD_KEY],
        )
        return build_config_secret(app, rendered)

    def outcome(self, context: ConvergenceContext, resource: Resource) -> StepOutcome:
        return StepOutcome(
            resource=resource,
            status_changes={"config_secret_name": resource.name},
        )
