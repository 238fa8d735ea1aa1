# deployment_engine/steps/filestore.py

from deployment_engine.core.models import AppDeployment
from deployment_engine.core.resources import Resource, ResourceKind
from deployment_engine.steps.base import ConvergenceContext, ConvergenceStep, StepOutcome
from deployment_engine.templates.storage import build_filestore_claim


class FilestoreStep(ConvergenceStep):
    """Creates the filestore claim; an existing claim is left untouched."""

    label = "Pvc"
    kind = ResourceKind.PERSISTENT_VOLUME_CLAIM
    create_only = True

    def resource_name(self, app: AppDeployment) -> str:
        return app.filestore_claim_name()

    def build_desired(self, context: ConvergenceContext) -> Resource:
        return build_filestore_claim(context.app)

    def outcome(self, context: ConvergenceContext, resource: Resource) -> StepOutcome:
        return StepOutcome(
            resource=resource,
            status_changes={"data_claim_name": resource.name},
        )
