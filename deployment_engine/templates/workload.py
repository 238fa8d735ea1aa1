# deployment_engine/templates/workload.py
"""Workload (replica set) template."""

from deployment_engine.core.models import AppDeployment
from deployment_engine.core.resources import Resource, ResourceKind
from deployment_engine.templates.pod import build_pod_spec


def build_workload(app: AppDeployment) -> Resource:
    labels = app.selector_labels()
    return Resource(
        kind=ResourceKind.DEPLOYMENT,
        name=app.workload_name(),
        namespace=app.namespace,
        labels=dict(labels),
        spec={
            "replicas": app.spec.replicas,
            "selector": {"matchLabels": dict(labels)},
            "template": {
                "metadata": {"labels": dict(labels)},
                "spec": build_pod_spec(app),
            },
            "strategy": {
                "type": "RollingUpdate",
                "rollingUpdate": {"maxUnavailable": "25%", "maxSurge": "25%"},
            },
            "revisionHistoryLimit": 10,
            "progressDeadlineSeconds": 600,
        },
    )
