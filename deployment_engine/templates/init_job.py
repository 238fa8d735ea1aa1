# deployment_engine/templates/init_job.py
"""Database initialization job template."""

from typing import Tuple

from deployment_engine.core.models import AppDeployment
from deployment_engine.core.resources import Resource, ResourceKind
from deployment_engine.templates.pod import build_pod_spec, container_command


BACKOFF_LIMIT = 2
PARALLELISM = 1


def build_init_job(
    app: AppDeployment,
    backoff_limit: int = BACKOFF_LIMIT,
) -> Tuple[Resource, Tuple[str, ...]]:
    """
    Build the one-shot job that installs every requested module at once.

    Returns the job together with the modules it installs.
    """
    modules = tuple(app.spec.modules)

    pod_spec = build_pod_spec(app)
    container = pod_spec["containers"][0]
    container["command"] = container_command() + [
        "--stop-after-init",
        "--no-http",
        "--init",
        ",".join(modules),
    ]
    container["ports"] = []
    pod_spec["restartPolicy"] = "Never"

    job = Resource(
        kind=ResourceKind.JOB,
        name=app.init_job_name(),
        namespace=app.namespace,
        spec={
            "template": {"spec": pod_spec},
            "parallelism": PARALLELISM,
            "backoffLimit": backoff_limit,
        },
    )
    return job, modules


def init_job_modules(job: Resource) -> Tuple[str, ...]:
    """Modules a job installs, read back from its `--init` argument."""
    containers = job.spec.get("template", {}).get("spec", {}).get("containers") or []
    if not containers:
        return ()
    command = containers[0].get("command") or []
    for index, arg in enumerate(command[:-1]):
        if arg == "--init":
            return tuple(m for m in command[index + 1].split(",") if m)
    return ()
