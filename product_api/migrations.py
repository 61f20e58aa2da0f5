"""
Versioned schema migrations.

Each migration runs in its own transaction and is recorded in the
``migrations_history`` table, so applying the list repeatedly only runs
what is missing. Usable from the command line:

    python -m product_api.migrations upgrade [--provider PostgreSQL]
    python -m product_api.migrations pending
"""
import argparse
import logging
import sys
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable, List, Optional, Set

from sqlalchemy import Column, DateTime, MetaData, String, Table, inspect, select, text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from product_api.config import get_settings
from product_api.database import Database, resolve_database_config
from product_api.exceptions import MigrationError, ProductApiError
from product_api.models.product import Product

logger = logging.getLogger(__name__)

HISTORY_TABLE = "migrations_history"

history_metadata = MetaData()

migrations_history = Table(
    HISTORY_TABLE,
    history_metadata,
    Column("migration_id", String(150), primary_key=True),
    Column("applied_at", DateTime(timezone=True), nullable=False),
)

SEED_PRODUCTS = (
    {
        "id": 1,
        "name": "Sample Product 1",
        "description": "This is a sample product",
        "price": Decimal("29.99"),
        "stock": 100,
    },
    {
        "id": 2,
        "name": "Sample Product 2",
        "description": "Another sample product",
        "price": Decimal("49.99"),
        "stock": 50,
    },
)


@dataclass(frozen=True)
class Migration:
    migration_id: str
    description: str
    upgrade: Callable[[Connection], None]


def _create_products(conn: Connection) -> None:
    Product.__table__.create(conn, checkfirst=True)


def _seed_products(conn: Connection) -> None:
    products = Product.__table__
    seed_ids = [row["id"] for row in SEED_PRODUCTS]
    existing = set(
        conn.execute(select(products.c.id).where(products.c.id.in_(seed_ids))).scalars()
    )

    now = datetime.now(timezone.utc)
    rows = [dict(row, created_at=now) for row in SEED_PRODUCTS if row["id"] not in existing]
    if rows:
        conn.execute(products.insert(), rows)

    # Explicit ids do not advance the serial sequence on PostgreSQL
    if conn.dialect.name == "postgresql":
        conn.execute(text(
            "SELECT setval(pg_get_serial_sequence('products', 'id'), "
            "(SELECT MAX(id) FROM products))"
        ))


MIGRATIONS = (
    Migration("0001_create_products", "Create products table", _create_products),
    Migration("0002_seed_products", "Seed sample products", _seed_products),
)


def _applied_ids(conn: Connection) -> Set[str]:
    if not inspect(conn).has_table(HISTORY_TABLE):
        return set()
    return set(conn.execute(select(migrations_history.c.migration_id)).scalars())


def pending_migrations(engine: Engine) -> List[str]:
    """Return the ids of migrations not yet applied, in order."""
    with engine.connect() as conn:
        applied = _applied_ids(conn)
    return [m.migration_id for m in MIGRATIONS if m.migration_id not in applied]


def apply_migrations(engine: Engine) -> List[str]:
    """
    Apply pending migrations in order.

    Returns:
        Ids of the migrations applied by this call

    Raises:
        MigrationError: on the first migration that fails; earlier ones
            stay applied
    """
    try:
        with engine.begin() as conn:
            migrations_history.create(conn, checkfirst=True)
            applied = _applied_ids(conn)
    except SQLAlchemyError as e:
        raise MigrationError(HISTORY_TABLE, str(e)) from e

    newly_applied = []
    for migration in MIGRATIONS:
        if migration.migration_id in applied:
            continue

        logger.info("Applying migration %s: %s", migration.migration_id, migration.description)
        try:
            with engine.begin() as conn:
                migration.upgrade(conn)
                conn.execute(
                    migrations_history.insert().values(
                        migration_id=migration.migration_id,
                        applied_at=datetime.now(timezone.utc),
                    )
                )
        except SQLAlchemyError as e:
            raise MigrationError(migration.migration_id, str(e)) from e
        newly_applied.append(migration.migration_id)

    if newly_applied:
        logger.info("Applied %d migration(s)", len(newly_applied))
    else:
        logger.info("Database schema is up to date")
    return newly_applied


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Product API database migrations")
    parser.add_argument(
        "command",
        nargs="?",
        default="upgrade",
        choices=["upgrade", "pending"],
        help="apply pending migrations (default) or list them",
    )
    parser.add_argument("--provider", help="override DATABASE_PROVIDER (PostgreSQL or MSSQL)")
    args = parser.parse_args(argv)

    settings = get_settings()
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    try:
        database = Database(resolve_database_config(settings, args.provider))
    except ProductApiError as e:
        logger.error("%s", e)
        return 2

    try:
        if args.command == "pending":
            for migration_id in database.pending_migrations():
                print(migration_id)
        else:
            database.apply_pending_migrations()
    except MigrationError:
        logger.exception("An error occurred while applying migrations")
        return 1
    except SQLAlchemyError:
        logger.exception("Could not read migration history")
        return 1
    finally:
        database.dispose()
    return 0


if __name__ == "__main__":
    sys.exit(main())
