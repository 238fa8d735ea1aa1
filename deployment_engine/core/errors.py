# deployment_engine/core/errors.py

from typing import Iterable, List, Optional

# -----------------------------
# Base Errors
# -----------------------------

class DeploymentEngineError(Exception):
    """Base class for all deployment engine errors."""
    pass


# -----------------------------
# Resolution Errors
# -----------------------------

class ResolutionError(DeploymentEngineError):
    """A literal-or-secret-reference value could not be resolved."""
    pass


class SecretNotFound(ResolutionError):
    def __init__(self, namespace: str, secret_name: str):
        self.namespace = namespace
        self.secret_name = secret_name
        super().__init__(f"secret {namespace}/{secret_name} not found")


class KeyNotFound(ResolutionError):
    def __init__(self, namespace: str, secret_name: str, key: str):
        self.namespace = namespace
        self.secret_name = secret_name
        self.key = key
        super().__init__(f"key {key!r} not found in secret {namespace}/{secret_name}")


class SecretValueParseError(ResolutionError):
    """Secret value exists but cannot be converted to the requested type."""
    pass


class CredentialMissing(ResolutionError):
    """Required credential has neither a secret reference nor a literal."""
    pass


class ConnectionFieldError(ResolutionError):
    """Resolution of one database connection field failed."""

    def __init__(self, field: str, cause: Exception):
        self.field = field
        self.cause = cause
        super().__init__(f"failed to resolve database {field}: {cause}")


# -----------------------------
# Store Errors
# -----------------------------

class StoreError(DeploymentEngineError):
    """Resource store I/O failure."""
    pass


class ResourceNotFound(StoreError):
    pass


class ResourceAlreadyExists(StoreError):
    pass


class ResourceConflict(StoreError):
    """Version token did not match the stored object."""
    pass


# -----------------------------
# Convergence Errors
# -----------------------------

class StepFailed(DeploymentEngineError):
    """
    A convergence step could not bring its resource to the desired state.

    Carries the condition reason reported on the App Deployment and the
    delay after which the whole pass should be retried.
    """

    def __init__(
        self,
        reason: str,
        message: str,
        *,
        requeue_after: Optional[float] = None,
        cause: Optional[Exception] = None,
    ):
        self.reason = reason
        self.message = message
        self.requeue_after = requeue_after
        self.cause = cause
        super().__init__(f"{reason}: {message}")


class ReconcileCancelled(DeploymentEngineError):
    pass


class AggregateError(DeploymentEngineError):
    """Several errors reported together; none of them masks the others."""

    def __init__(self, errors: Iterable[Exception]):
        self.errors: List[Exception] = list(errors)
        super().__init__("; ".join(str(e) for e in self.errors))


def merge_errors(*errors: Optional[Exception]) -> Optional[Exception]:
    """
    Combine errors, dropping None.

    Returns None when nothing failed, the error itself when exactly one
    failed, and an AggregateError otherwise.
    """
    present = [e for e in errors if e is not None]
    if not present:
        return None
    if len(present) == 1:
        return present[0]
    return AggregateError(present)
