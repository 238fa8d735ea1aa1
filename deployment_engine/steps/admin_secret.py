# deployment_engine/steps/admin_secret.py

from typing import Optional

from deployment_engine.core.models import ADMIN_PASSWORD_KEY, AppDeployment
from deployment_engine.core.resources import Resource, ResourceKind
from deployment_engine.steps.base import ConvergenceContext, ConvergenceStep, StepOutcome
from deployment_engine.templates.secrets import build_admin_secret


class AdminSecretStep(ConvergenceStep):
    """
    Ensures the admin password secret exists and holds a password.

    An existing password is never rotated. A secret whose name was
    supplied by the user is not owned by the App Deployment.
    """

    label = "OdooAdminSecret"
    kind = ResourceKind.SECRET
    section = "data"

    def resource_name(self, app: AppDeployment) -> str:
        return app.admin_secret_name()

    def build_desired(self, context: ConvergenceContext) -> Resource:
        return build_admin_secret(context.app)

    def should_own(self, app: AppDeployment) -> bool:
        return not app.admin_secret_is_user_supplied()

    def prepare_update(self, live: Resource, desired: Resource) -> Optional[Resource]:
        if ADMIN_PASSWORD_KEY in live.data:
            return None
        desired.data = {**live.data, **desired.data}
        return desired

    def outcome(self, context: ConvergenceContext, resource: Resource) -> StepOutcome:
        return StepOutcome(
            resource=resource,
            status_changes={"admin_secret_name": resource.name},
        )
