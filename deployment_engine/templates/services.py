# deployment_engine/templates/services.py
"""Network service templates."""

from deployment_engine.core.models import AppDeployment, HTTP_PORT, POLL_PORT
from deployment_engine.core.resources import Resource, ResourceKind


def _service_template(app: AppDeployment, name: str, port_name: str, port: int) -> Resource:
    return Resource(
        kind=ResourceKind.SERVICE,
        name=name,
        namespace=app.namespace,
        spec={
            "selector": app.selector_labels(),
            "ports": [
                {
                    "name": port_name,
                    "port": port,
                    "targetPort": port,
                    "protocol": "TCP",
                }
            ],
            "type": "ClusterIP",
            "sessionAffinity": "None",
            "internalTrafficPolicy": "Cluster",
        },
    )


def build_http_service(app: AppDeployment) -> Resource:
    return _service_template(app, app.http_service_name(), "http", HTTP_PORT)


def build_poll_service(app: AppDeployment) -> Resource:
    return _service_template(app, app.poll_service_name(), "poll", POLL_PORT)
