from typing import Optional


class ProductApiError(Exception):
    """Base class for errors raised by the product API."""


class ConfigurationError(ProductApiError):
    """Invalid or missing startup configuration. Fatal."""


class InternalError(ProductApiError):
    """
    Unexpected storage failure.

    Carries the operation name and product id for logging; the message is
    never shown to API clients.
    """

    def __init__(self, operation: str, product_id: Optional[int] = None):
        self.operation = operation
        self.product_id = product_id
        if product_id is None:
            message = f"Storage error during '{operation}'"
        else:
            message = f"Storage error during '{operation}' for product {product_id}"
        super().__init__(message)


class MigrationError(ProductApiError):
    """A schema migration could not be applied."""

    def __init__(self, migration_id: str, reason: str):
        self.migration_id = migration_id
        super().__init__(f"Migration {migration_id} failed: {reason}")
