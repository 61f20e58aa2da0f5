"""Tests for database provider selection and the persistence context."""
import pytest
from sqlalchemy import create_engine

from product_api.database import (
    Database,
    DatabaseConfig,
    DatabaseProvider,
    resolve_connection_string,
    resolve_database_config,
    resolve_provider,
)
from product_api.exceptions import ConfigurationError
from product_api.main import create_app


@pytest.mark.parametrize(
    "value,expected",
    [
        ("PostgreSQL", DatabaseProvider.POSTGRESQL),
        ("postgresql", DatabaseProvider.POSTGRESQL),
        (" POSTGRESQL ", DatabaseProvider.POSTGRESQL),
        ("MSSQL", DatabaseProvider.MSSQL),
        ("mssql", DatabaseProvider.MSSQL),
    ],
)
def test_resolve_provider_is_case_insensitive(value, expected):
    assert resolve_provider(value) is expected


@pytest.mark.parametrize("value", ["Oracle", "sqlite", "", None])
def test_resolve_provider_rejects_unsupported(value):
    with pytest.raises(ConfigurationError) as exc_info:
        resolve_provider(value)

    assert "Unsupported database provider" in str(exc_info.value)


def test_unsupported_provider_error_names_value():
    with pytest.raises(ConfigurationError, match="MySQL"):
        resolve_provider("MySQL")


def test_resolve_connection_string_per_provider(settings_factory):
    settings = settings_factory(
        POSTGRESQL_CONNECTION_STRING="postgresql://pg/db",
        MSSQL_CONNECTION_STRING="mssql+pymssql://sa@ms/db",
    )

    assert resolve_connection_string(settings, DatabaseProvider.POSTGRESQL) == "postgresql+psycopg2://pg/db"
    assert resolve_connection_string(settings, DatabaseProvider.MSSQL) == "mssql+pymssql://sa@ms/db"


@pytest.mark.parametrize("value", [None, "", "   "])
def test_missing_connection_string_is_configuration_error(value, settings_factory):
    settings = settings_factory(DATABASE_PROVIDER="MSSQL", MSSQL_CONNECTION_STRING=value)

    with pytest.raises(ConfigurationError, match="Connection string for MSSQL is not configured"):
        resolve_database_config(settings)


def test_postgres_scheme_is_normalized(settings_factory):
    settings = settings_factory(POSTGRESQL_CONNECTION_STRING="postgres://u:p@host/db")

    config = resolve_database_config(settings)

    assert config.provider is DatabaseProvider.POSTGRESQL
    assert config.url == "postgresql+psycopg2://u:p@host/db"


@pytest.mark.parametrize(
    "url",
    ["postgresql+psycopg2://u:p@host/db", "postgresql+pg8000://u:p@host/db"],
)
def test_explicit_postgres_driver_is_kept(url, settings_factory):
    settings = settings_factory(POSTGRESQL_CONNECTION_STRING=url)

    assert resolve_database_config(settings).url == url


def test_bare_postgres_url_builds_psycopg2_engine(settings_factory):
    """Test a bare URL loads the declared psycopg2 driver without connecting."""
    settings = settings_factory(POSTGRESQL_CONNECTION_STRING="postgresql://u:p@host/db")

    database = Database(resolve_database_config(settings))

    assert database.engine.dialect.driver == "psycopg2"
    database.dispose()


def test_provider_override(settings_factory):
    settings = settings_factory(
        DATABASE_PROVIDER="PostgreSQL", MSSQL_CONNECTION_STRING="mssql+pymssql://sa@ms/db"
    )

    config = resolve_database_config(settings, provider_override="mssql")

    assert config.provider is DatabaseProvider.MSSQL


def test_database_config_is_immutable(settings_factory):
    config = resolve_database_config(settings_factory())

    with pytest.raises(AttributeError):
        config.provider = DatabaseProvider.MSSQL


def test_create_app_fails_fast_on_unsupported_provider(settings_factory):
    """Test the app factory refuses to build before anything can listen."""
    with pytest.raises(ConfigurationError, match="Unsupported database provider: Oracle"):
        create_app(settings_factory(DATABASE_PROVIDER="Oracle"))


def test_create_app_fails_fast_on_missing_connection_string(settings_factory):
    with pytest.raises(ConfigurationError):
        create_app(settings_factory(DATABASE_PROVIDER="MSSQL", MSSQL_CONNECTION_STRING=None))


def test_check_connectivity(database):
    assert database.check_connectivity() is True


def test_check_connectivity_never_raises():
    config = DatabaseConfig(
        provider=DatabaseProvider.POSTGRESQL,
        url="sqlite:////nonexistent-dir/missing/products.db",
    )
    database = Database(config, engine=create_engine(config.url))

    assert database.check_connectivity() is False
