# deployment_engine/steps/services.py

from typing import Optional

from deployment_engine.core.models import AppDeployment
from deployment_engine.core.resources import Resource, ResourceKind
from deployment_engine.steps.base import ConvergenceContext, ConvergenceStep
from deployment_engine.templates.services import build_http_service, build_poll_service


# Assigned by the store on creation
STORE_ASSIGNED_FIELDS = ("clusterIP", "clusterIPs", "ipFamilies", "ipFamilyPolicy")


class ServiceStep(ConvergenceStep):
    kind = ResourceKind.SERVICE

    def prepare_update(self, live: Resource, desired: Resource) -> Optional[Resource]:
        for key in STORE_ASSIGNED_FIELDS:
            if key in live.spec:
                desired.spec[key] = live.spec[key]
        return desired


class HttpServiceStep(ServiceStep):
    label = "HttpService"

    def resource_name(self, app: AppDeployment) -> str:
        return app.http_service_name()

    def build_desired(self, context: ConvergenceContext) -> Resource:
        return build_http_service(context.app)


class PollServiceStep(ServiceStep):
    label = "PollService"

    def resource_name(self, app: AppDeployment) -> str:
        return app.poll_service_name()

    def build_desired(self, context: ConvergenceContext) -> Resource:
        return build_poll_service(context.app)
