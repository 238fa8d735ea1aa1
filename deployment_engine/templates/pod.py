# deployment_engine/templates/pod.py
"""Pod template shared by the workload and the init job."""

from typing import Any, Dict

from deployment_engine.core.models import AppDeployment, CONFIG_FILE_KEY, HTTP_PORT, POLL_PORT


CONTAINER_NAME = "odoo"
DATA_VOLUME = "odoo-data"
CONFIG_VOLUME = "config"
CONFIG_MOUNT_PATH = "/opt/odoo"

RUN_AS_USER = 100
RUN_AS_GROUP = 101


def container_command() -> list:
    return ["/entrypoint.sh", "-c", f"{CONFIG_MOUNT_PATH}/{CONFIG_FILE_KEY}"]


def build_pod_spec(app: AppDeployment) -> Dict[str, Any]:
    """
    Build the pod spec for an App Deployment.

    Volumes point at the claim and config secret recorded in status, so
    the filestore and config secret steps must have run first.
    """
    data_dir = app.spec.config.data_dir

    return {
        "containers": [
            {
                "name": CONTAINER_NAME,
                "image": app.spec.image,
                "imagePullPolicy": app.spec.image_pull_policy,
                "command": container_command(),
                "ports": [
                    {"name": "http", "containerPort": HTTP_PORT, "protocol": "TCP"},
                    {"name": "poll", "containerPort": POLL_PORT, "protocol": "TCP"},
                ],
                "volumeMounts": [
                    {
                        "name": DATA_VOLUME,
                        "mountPath": f"{data_dir}/filestore",
                        "subPath": "filestore",
                        "readOnly": False,
                    },
                    {
                        "name": DATA_VOLUME,
                        "mountPath": f"{data_dir}/sessions",
                        "subPath": "sessions",
                        "readOnly": False,
                    },
                    {
                        "name": CONFIG_VOLUME,
                        "mountPath": CONFIG_MOUNT_PATH,
                        "readOnly": True,
                    },
                ],
                "terminationMessagePath": "/dev/termination-log",
                "terminationMessagePolicy": "File",
            }
        ],
        "volumes": [
            {
                "name": DATA_VOLUME,
                "persistentVolumeClaim": {"claimName": app.status.data_claim_name},
            },
            {
                "name": CONFIG_VOLUME,
                "secret": {
                    "secretName": app.status.config_secret_name,
                    "items": [{"key": CONFIG_FILE_KEY, "path": CONFIG_FILE_KEY}],
                    "defaultMode": 0o444,
                },
            },
        ],
        "securityContext": {
            "runAsUser": RUN_AS_USER,
            "runAsGroup": RUN_AS_GROUP,
            "runAsNonRoot": True,
            "fsGroup": RUN_AS_GROUP,
        },
        "restartPolicy": "Always",
        "dnsPolicy": "ClusterFirst",
        "terminationGracePeriodSeconds": 30,
        "schedulerName": "default-scheduler",
    }
