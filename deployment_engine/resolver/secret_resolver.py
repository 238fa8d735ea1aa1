# deployment_engine/resolver/secret_resolver.py

"""Resolution of literal-or-secret-reference values."""

import logging

from deployment_engine.core.errors import (
    ConnectionFieldError,
    CredentialMissing,
    KeyNotFound,
    ResolutionError,
    SecretNotFound,
    SecretValueParseError,
    StoreError,
)
from deployment_engine.core.models import ConnectionDescriptor, DatabaseConfig, SecretKeyRef
from deployment_engine.core.resources import ResourceKind
from deployment_engine.core.store import ResourceStore

logger = logging.getLogger(__name__)


INT32_MIN = -(2 ** 31)
INT32_MAX = 2 ** 31 - 1

_TRUE_VALUES = {"1", "t", "T", "TRUE", "true", "True"}
_FALSE_VALUES = {"0", "f", "F", "FALSE", "false", "False"}


def parse_bool(value: str) -> bool:
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise SecretValueParseError(f"invalid boolean value {value!r}")


def parse_int32(value: str) -> int:
    try:
        parsed = int(value, 10)
    except ValueError as e:
        raise SecretValueParseError(f"invalid integer value {value!r}") from e
    if parsed < INT32_MIN or parsed > INT32_MAX:
        raise SecretValueParseError(f"integer value {value!r} out of 32-bit range")
    return parsed


class SecretResolver:
    """
    Resolves values against secrets in one namespace.

    A reference counts as set only when both its name and key are set;
    otherwise the literal is returned unchanged.
    """

    def __init__(self, store: ResourceStore, namespace: str):
        self._store = store
        self._namespace = namespace

    def lookup(self, ref: SecretKeyRef) -> str:
        secret = self._store.get(ResourceKind.SECRET, self._namespace, ref.name)
        if secret is None:
            raise SecretNotFound(self._namespace, ref.name)
        if ref.key not in secret.data:
            raise KeyNotFound(self._namespace, ref.name, ref.key)
        return secret.data[ref.key]

    def resolve_str(self, literal: str, ref: SecretKeyRef) -> str:
        if not ref.is_set():
            return literal
        return self.lookup(ref)

    def resolve_int(self, literal: int, ref: SecretKeyRef) -> int:
        if not ref.is_set():
            return literal
        return parse_int32(self.lookup(ref))

    def resolve_bool(self, literal: bool, ref: SecretKeyRef) -> bool:
        if not ref.is_set():
            return literal
        return parse_bool(self.lookup(ref))

    def resolve_credential(self, literal: str, ref: SecretKeyRef) -> str:
        """Resolve a value that has no default literal."""
        if ref.is_set():
            return self.lookup(ref)
        if not literal:
            raise CredentialMissing("no secret reference and no literal value provided")
        return literal

    def resolve_connection(self, database: DatabaseConfig) -> ConnectionDescriptor:
        """
        Resolve every connection field in a fixed order.

        The first failure aborts the whole descriptor; the raised
        ConnectionFieldError names the field. Store read failures are
        reported the same way.
        """
        resolvers = (
            ("host", lambda: self.resolve_str(database.host, database.host_from_secret)),
            ("port", lambda: self.resolve_int(database.port, database.port_from_secret)),
            ("user", lambda: self.resolve_str(database.user, database.user_from_secret)),
            ("password", lambda: self.resolve_credential(
                database.password, database.password_from_secret)),
            ("name", lambda: self.resolve_str(database.name, database.name_from_secret)),
            ("ssl", lambda: self.resolve_bool(database.ssl, database.ssl_from_secret)),
            ("max_conn", lambda: self.resolve_int(
                database.max_conn, database.max_conn_from_secret)),
        )

        values = {}
        for field_name, resolve in resolvers:
            try:
                values[field_name] = resolve()
            except (ResolutionError, StoreError) as e:
                logger.info(f"[resolver] {self._namespace}: database {field_name} unresolved: {e}")
                raise ConnectionFieldError(field_name, e) from e

        return ConnectionDescriptor(**values)
