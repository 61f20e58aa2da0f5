import logging
from datetime import datetime, timezone
from typing import List, NoReturn, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from product_api.exceptions import InternalError
from product_api.models.product import Product
from product_api.schemas.product import ProductCreate, ProductUpdate

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ProductService:
    """
    Service class for Product CRUD operations.

    "Not found" is returned as ``None`` (or ``False`` for delete), never
    raised. Storage failures are logged and re-raised as ``InternalError``.
    """

    def __init__(self, db: Session):
        self.db = db

    def get_all(self) -> List[Product]:
        """
        Get all products ordered by name.

        Products with equal names keep insertion (id) order.
        """
        try:
            query = select(Product).order_by(Product.name.asc(), Product.id.asc())
            return list(self.db.scalars(query).all())
        except SQLAlchemyError as e:
            self._fail("list", None, e)

    def get_by_id(self, product_id: int) -> Optional[Product]:
        try:
            return self.db.get(Product, product_id)
        except SQLAlchemyError as e:
            self._fail("get", product_id, e)

    def create(self, product_data: ProductCreate) -> Product:
        """
        Create a new product.

        Args:
            product_data: Product creation data

        Returns:
            Created product instance with its generated id
        """
        product = Product(
            name=product_data.name,
            description=product_data.description,
            price=product_data.price,
            stock=product_data.stock,
            created_at=utcnow(),
            updated_at=None,
        )
        try:
            self.db.add(product)
            self.db.commit()
            self.db.refresh(product)
        except SQLAlchemyError as e:
            self._fail("create", None, e)

        logger.info("Created product with ID %s", product.id)
        return product

    def update(self, product_id: int, product_data: ProductUpdate) -> Optional[Product]:
        """
        Update an existing product.

        Args:
            product_id: ID of product to update
            product_data: Update data (only fields present in the request are applied)

        Returns:
            Updated product or None if not found
        """
        try:
            product = self.db.get(Product, product_id)
            if product is None:
                return None

            for field, value in product_data.changes().items():
                setattr(product, field, value)
            product.updated_at = utcnow()

            self.db.commit()
            self.db.refresh(product)
        except SQLAlchemyError as e:
            self._fail("update", product_id, e)

        logger.info("Updated product with ID %s", product_id)
        return product

    def delete(self, product_id: int) -> bool:
        """
        Delete a product.

        Returns:
            True if deleted, False if not found
        """
        try:
            product = self.db.get(Product, product_id)
            if product is None:
                return False

            self.db.delete(product)
            self.db.commit()
        except SQLAlchemyError as e:
            self._fail("delete", product_id, e)

        logger.info("Deleted product with ID %s", product_id)
        return True

    def _fail(
        self, operation: str, product_id: Optional[int], error: SQLAlchemyError
    ) -> NoReturn:
        """Roll back, log and re-raise a storage error as InternalError."""
        self.db.rollback()
        if product_id is None:
            logger.error("Error during product %s", operation, exc_info=error)
        else:
            logger.error(
                "Error during product %s for ID %s", operation, product_id, exc_info=error
            )
        raise InternalError(operation, product_id) from error
