"""Fixed-shape templates for every object an App Deployment owns."""

from .secrets import build_admin_secret, build_config_secret
from .storage import build_filestore_claim
from .init_job import build_init_job
from .workload import build_workload
from .services import build_http_service, build_poll_service


__all__ = [
    "build_admin_secret",
    "build_config_secret",
    "build_filestore_claim",
    "build_init_job",
    "build_workload",
    "build_http_service",
    "build_poll_service",
]
