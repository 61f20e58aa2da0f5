import enum
import logging
from dataclasses import dataclass
from typing import List, Optional

from fastapi import Request
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from product_api.config import Settings
from product_api.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

# Base class for models
Base = declarative_base()


class DatabaseProvider(str, enum.Enum):
    """Supported database backends."""
    POSTGRESQL = "PostgreSQL"
    MSSQL = "MSSQL"


# Connection pool settings per backend
_ENGINE_OPTIONS = {
    DatabaseProvider.POSTGRESQL: {
        "pool_size": 10,
        "max_overflow": 20,
        "pool_pre_ping": True,
    },
    DatabaseProvider.MSSQL: {
        "pool_size": 10,
        "max_overflow": 20,
        "pool_pre_ping": True,
        "pool_recycle": 3600,
    },
}


@dataclass(frozen=True)
class DatabaseConfig:
    """Backend selection resolved once at startup."""
    provider: DatabaseProvider
    url: str
    echo: bool = False


def resolve_provider(value: Optional[str]) -> DatabaseProvider:
    """
    Map a configuration value to a supported provider (case-insensitive).

    Raises:
        ConfigurationError: if the value names no supported provider
    """
    normalized = (value or "").strip().upper()
    for provider in DatabaseProvider:
        if provider.value.upper() == normalized:
            return provider
    raise ConfigurationError(f"Unsupported database provider: {value}")


def resolve_connection_string(settings: Settings, provider: DatabaseProvider) -> str:
    """
    Look up the connection string configured for a provider.

    Raises:
        ConfigurationError: if no connection string is configured
    """
    if provider is DatabaseProvider.POSTGRESQL:
        url = settings.POSTGRESQL_CONNECTION_STRING
    else:
        url = settings.MSSQL_CONNECTION_STRING

    if not url or not url.strip():
        raise ConfigurationError(
            f"Connection string for {provider.value} is not configured"
        )

    url = url.strip()
    # Pin the installed driver; a bare scheme resolves differently across SQLAlchemy releases
    for scheme in ("postgres://", "postgresql://"):
        if url.startswith(scheme):
            url = url.replace(scheme, "postgresql+psycopg2://", 1)
            break
    return url


def resolve_database_config(
    settings: Settings, provider_override: Optional[str] = None
) -> DatabaseConfig:
    """Resolve the backend and its connection string from settings."""
    provider = resolve_provider(provider_override or settings.DATABASE_PROVIDER)
    url = resolve_connection_string(settings, provider)
    return DatabaseConfig(provider=provider, url=url, echo=settings.is_development)


class Database:
    """
    Persistence context for the selected backend.

    Owns the engine and session factory and exposes the health and
    migration operations used at startup.
    """

    def __init__(self, config: DatabaseConfig, engine: Optional[Engine] = None):
        self.config = config
        if engine is None:
            engine = create_engine(
                config.url,
                echo=config.echo,
                **_ENGINE_OPTIONS[config.provider],
            )
        self.engine = engine
        self.SessionLocal = sessionmaker(
            autocommit=False, autoflush=False, bind=self.engine
        )

    @property
    def provider(self) -> DatabaseProvider:
        return self.config.provider

    def session(self) -> Session:
        return self.SessionLocal()

    def check_connectivity(self) -> bool:
        """Return True if the database answers a trivial query. Never raises."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except Exception:
            logger.warning(
                "Database connectivity check failed for %s",
                self.provider.value,
                exc_info=True,
            )
            return False

    def pending_migrations(self) -> List[str]:
        from product_api import migrations

        return migrations.pending_migrations(self.engine)

    def apply_pending_migrations(self) -> List[str]:
        """
        Apply every migration not yet recorded in the history table.

        Returns:
            Ids of the migrations applied by this call (empty if up to date)

        Raises:
            MigrationError: if a migration fails
        """
        from product_api import migrations

        return migrations.apply_migrations(self.engine)

    def dispose(self) -> None:
        self.engine.dispose()


def get_db(request: Request):
    """
    Dependency to get database session.
    Yields a database session and closes it after use.
    """
    db = request.app.state.database.session()
    try:
        yield db
    finally:
        db.close()
