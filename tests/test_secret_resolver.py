#tests\test_secret_resolver.py

"""Test literal-or-secret value resolution."""

import pytest

from deployment_engine.core.errors import (
    ConnectionFieldError,
    CredentialMissing,
    KeyNotFound,
    SecretNotFound,
    SecretValueParseError,
    StoreError,
)
from deployment_engine.core.models import DatabaseConfig, SecretKeyRef
from deployment_engine.core.resources import Resource, ResourceKind
from deployment_engine.resolver.secret_resolver import SecretResolver, parse_bool, parse_int32

from tests.helpers import DB_SECRET, NAMESPACE


@pytest.fixture
def resolver(store):
    return SecretResolver(store, NAMESPACE)


class TestScalarResolution:
    """Test str/int/bool resolution."""

    def test_literal_returned_without_reference(self, resolver):
        assert resolver.resolve_str("postgresql", SecretKeyRef()) == "postgresql"
        assert resolver.resolve_int(5432, SecretKeyRef()) == 5432
        assert resolver.resolve_bool(False, SecretKeyRef()) is False

    def test_half_set_reference_counts_as_unset(self, resolver):
        """A reference needs both a secret name and a key."""
        assert resolver.resolve_str("literal", SecretKeyRef(name=DB_SECRET)) == "literal"
        assert resolver.resolve_str("literal", SecretKeyRef(key="host")) == "literal"

    def test_reference_takes_precedence(self, resolver, db_secret):
        assert resolver.resolve_str("postgresql", SecretKeyRef(DB_SECRET, "host")) == "db.internal"
        assert resolver.resolve_int(5432, SecretKeyRef(DB_SECRET, "port")) == 5433
        assert resolver.resolve_bool(False, SecretKeyRef(DB_SECRET, "ssl")) is True

    def test_missing_secret(self, resolver):
        with pytest.raises(SecretNotFound):
            resolver.resolve_str("", SecretKeyRef("absent", "host"))

    def test_missing_key(self, resolver, db_secret):
        with pytest.raises(KeyNotFound):
            resolver.resolve_str("", SecretKeyRef(DB_SECRET, "absent"))

    def test_secret_in_other_namespace_is_invisible(self, store):
        store.create(Resource(ResourceKind.SECRET, "other", "tenant-b", data={"k": "v"}))
        resolver = SecretResolver(store, NAMESPACE)

        with pytest.raises(SecretNotFound):
            resolver.resolve_str("", SecretKeyRef("other", "k"))


class TestParsing:
    """Test value conversions."""

    @pytest.mark.parametrize("value", ["1", "t", "T", "TRUE", "true", "True"])
    def test_true_values(self, value):
        assert parse_bool(value) is True

    @pytest.mark.parametrize("value", ["0", "f", "F", "FALSE", "false", "False"])
    def test_false_values(self, value):
        assert parse_bool(value) is False

    @pytest.mark.parametrize("value", ["yes", "", "tRuE"])
    def test_invalid_bool(self, value):
        with pytest.raises(SecretValueParseError):
            parse_bool(value)

    def test_int32_bounds(self):
        assert parse_int32("2147483647") == 2147483647
        assert parse_int32("-2147483648") == -2147483648

    @pytest.mark.parametrize("value", ["2147483648", "-2147483649", "12a", ""])
    def test_invalid_int32(self, value):
        with pytest.raises(SecretValueParseError):
            parse_int32(value)


class TestCredential:
    """Test the database password, which has no default."""

    def test_literal_credential(self, resolver):
        assert resolver.resolve_credential("pw", SecretKeyRef()) == "pw"

    def test_missing_credential(self, resolver):
        with pytest.raises(CredentialMissing):
            resolver.resolve_credential("", SecretKeyRef())


class TestConnection:
    """Test full connection descriptor resolution."""

    def test_resolves_all_fields(self, resolver, db_secret):
        database = DatabaseConfig(
            host_from_secret=SecretKeyRef(DB_SECRET, "host"),
            port_from_secret=SecretKeyRef(DB_SECRET, "port"),
            password_from_secret=SecretKeyRef(DB_SECRET, "password"),
        )

        connection = resolver.resolve_connection(database)

        assert connection.host == "db.internal"
        assert connection.port == 5433
        assert connection.user == "odoo"
        assert connection.password == "s3cret"
        assert connection.name == "odoo"
        assert connection.ssl is False
        assert connection.max_conn == 20

    def test_password_not_in_repr(self, resolver):
        connection = resolver.resolve_connection(DatabaseConfig(password="hunter2"))
        assert "hunter2" not in repr(connection)

    def test_failure_names_field(self, resolver, db_secret):
        database = DatabaseConfig(
            password_from_secret=SecretKeyRef(DB_SECRET, "password"),
            ssl_from_secret=SecretKeyRef(DB_SECRET, "host"),
        )

        with pytest.raises(ConnectionFieldError) as exc_info:
            resolver.resolve_connection(database)

        assert exc_info.value.field == "ssl"
        assert isinstance(exc_info.value.cause, SecretValueParseError)

    def test_first_failure_wins(self, resolver):
        """Port fails before the missing password is looked at."""
        database = DatabaseConfig(port_from_secret=SecretKeyRef("absent", "port"))

        with pytest.raises(ConnectionFieldError) as exc_info:
            resolver.resolve_connection(database)

        assert exc_info.value.field == "port"
        assert isinstance(exc_info.value.cause, SecretNotFound)

    def test_store_failure_names_field(self, store, resolver, db_secret):
        store.fail("get", ResourceKind.SECRET, name=DB_SECRET)
        database = DatabaseConfig(password_from_secret=SecretKeyRef(DB_SECRET, "password"))

        with pytest.raises(ConnectionFieldError) as exc_info:
            resolver.resolve_connection(database)

        assert exc_info.value.field == "password"
        assert isinstance(exc_info.value.cause, StoreError)

    def test_missing_password_fails(self, resolver):
        with pytest.raises(ConnectionFieldError) as exc_info:
            resolver.resolve_connection(DatabaseConfig())

        assert exc_info.value.field == "password"
