# deployment_engine/core/conditions.py

"""Condition types and reasons reported on App Deployment status."""

# -----------------------------
# Condition Types
# -----------------------------

OPERATOR_DEGRADED = "OperatorDegraded"
OPERATOR_SUCCEEDED = "OperatorSucceeded"
DATABASE_INITIALIZED = "DatabaseInitialized"


# -----------------------------
# Reasons
# -----------------------------

RECONCILE_SUCCEEDED = "ReconcileSucceeded"

# Config secret
DB_CONNECTION_DETAILS_FAILED = "DbConnectionDetailsFailed"
ODOO_ADMIN_PASSWORD_FAILED = "OdooAdminPasswordFailed"

# Init job
INIT_JOB_CREATED = "InitJobCreated"
INIT_JOB_SUCCEEDED = "InitJobSucceeded"
INIT_JOB_FAILED = "InitJobFailed"
FAILED_TO_GET_INIT_JOB = "FailedToGetInitJob"
INIT_JOB_CREATION_FAILED = "InitJobCreationFailed"
FAILED_TO_LIST_PODS = "FailedToListPods"
FAILED_TO_DELETE_POD = "FailedToDeletePod"
FAILED_TO_DELETE_INIT_JOB = "FailedToDeleteInitJob"


def not_available(label: str) -> str:
    return f"{label}NotAvailable"


def creation_failed(label: str) -> str:
    return f"{label}CreationFailed"


def update_failed(label: str) -> str:
    return f"{label}UpdateFailed"
