from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from contextlib import asynccontextmanager
from typing import Optional
import logging

from product_api.config import Settings, get_settings
from product_api.database import Database, resolve_database_config
from product_api.exceptions import InternalError, MigrationError
from product_api.api import products, health

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

DESCRIPTION = """
A CRUD API for products, backed by PostgreSQL or Microsoft SQL Server.

- **Product Management**: create, read, update and delete products
- **Pluggable storage**: the backend is chosen with `DATABASE_PROVIDER`
- **Migrations**: applied automatically at startup in development
"""


def _field_errors(exc: RequestValidationError) -> dict:
    """Group validation messages by field name."""
    errors: dict = {}
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ())]
        if len(loc) > 1 and loc[0] in ("body", "path", "query", "header"):
            loc = loc[1:]
        field = ".".join(loc) or "request"
        errors.setdefault(field, []).append(error.get("msg", "Invalid value"))
    return errors


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "message": "One or more validation errors occurred.",
            "errors": _field_errors(exc),
        },
    )


async def internal_error_handler(request: Request, exc: InternalError):
    # Already logged with context by the service layer
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"message": "An error occurred while processing the request"},
    )


def create_app(
    settings: Optional[Settings] = None,
    database: Optional[Database] = None,
) -> FastAPI:
    """
    Build the application.

    Resolves the database backend before anything else; an unsupported
    provider or missing connection string raises ConfigurationError here,
    so the server never starts listening.
    """
    settings = settings or get_settings()

    logging.basicConfig(level=settings.LOG_LEVEL, format=LOG_FORMAT)

    if database is None:
        database = Database(resolve_database_config(settings))

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Lifespan context manager for startup and shutdown events.
        """
        logger.info(
            "Starting up application on %s (%s)...",
            database.provider.value,
            settings.ENVIRONMENT,
        )

        if settings.should_auto_migrate:
            try:
                logger.info("Applying migrations for %s...", database.provider.value)
                database.apply_pending_migrations()
                logger.info("Migrations applied successfully")
            except MigrationError:
                # Serving continues; the schema may be behind
                logger.exception("An error occurred while applying migrations")

        yield

        logger.info("Shutting down application...")
        database.dispose()

    docs_enabled = settings.is_development

    app = FastAPI(
        title=settings.APP_NAME,
        description=DESCRIPTION,
        version=settings.APP_VERSION,
        docs_url="/docs" if docs_enabled else None,
        redoc_url="/redoc" if docs_enabled else None,
        openapi_url="/openapi.json" if docs_enabled else None,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.database = database

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(InternalError, internal_error_handler)

    app.include_router(health.router)
    app.include_router(products.router, prefix="/api")

    @app.get("/", tags=["Root"])
    def root():
        """Root endpoint with API information."""
        return {
            "name": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "database": database.provider.value,
            "docs": "/docs" if docs_enabled else None,
            "health": "/health",
        }

    return app


app = create_app()
