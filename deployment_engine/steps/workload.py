# deployment_engine/steps/workload.py

from deployment_engine.core.models import AppDeployment
from deployment_engine.core.resources import Resource, ResourceKind
from deployment_engine.steps.base import ConvergenceContext, ConvergenceStep
from deployment_engine.templates.workload import build_workload


class WorkloadStep(ConvergenceStep):
    label = "Deployment"
    kind = ResourceKind.DEPLOYMENT

    def resource_name(self, app: AppDeployment) -> str:
        return app.workload_name()

    def build_desired(self, context: ConvergenceContext) -> Resource:
        return build_workload(context.app)
