import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Path, Response, status
from sqlalchemy.orm import Session

from product_api.database import get_db
from product_api.exceptions import InternalError
from product_api.services.product_service import ProductService
from product_api.schemas.product import (
    INT32_MAX,
    INT32_MIN,
    ProductCreate,
    ProductUpdate,
    ProductResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/products", tags=["Products"])

# Ids outside the Integer column range cannot exist
ProductId = Annotated[int, Path(ge=INT32_MIN, le=INT32_MAX, description="Product ID")]


def _not_found(product_id: int) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"Product with ID {product_id} not found"
    )


def _server_error(action: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"An error occurred while {action} the product"
    )


@router.get(
    "",
    response_model=list[ProductResponse],
    summary="List all products",
    description="Get all products ordered by name."
)
def list_products(db: Session = Depends(get_db)):
    """Get all products."""
    service = ProductService(db)
    return service.get_all()


@router.get(
    "/{product_id}",
    response_model=ProductResponse,
    summary="Get product by ID",
    description="Get detailed information about a specific product."
)
def get_product(
    product_id: ProductId,
    db: Session = Depends(get_db)
):
    """Get a product by ID."""
    service = ProductService(db)
    product = service.get_by_id(product_id)

    if not product:
        logger.warning("Product with ID %s not found", product_id)
        raise _not_found(product_id)

    return product


@router.post(
    "",
    response_model=ProductResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a new product",
    description="Create a new product. The Location header points at the new resource."
)
def create_product(
    product_data: ProductCreate,
    response: Response,
    db: Session = Depends(get_db)
):
    """
    Create a new product.

    - **name**: Product name (required)
    - **description**: Free-text description (optional)
    - **price**: Product price, defaults to 0 (optional)
    - **stock**: Initial stock quantity, defaults to 0 (optional)
    """
    service = ProductService(db)

    try:
        product = service.create(product_data)
    except InternalError:
        raise _server_error("creating")

    response.headers["Location"] = f"/api/products/{product.id}"
    return product


@router.put(
    "/{product_id}",
    response_model=ProductResponse,
    summary="Update a product",
    description="Update product details. Only provided fields will be updated."
)
def update_product(
    product_id: ProductId,
    product_data: ProductUpdate,
    db: Session = Depends(get_db)
):
    """
    Update a product.

    Partial updates are supported - only include fields you want to change.
    """
    service = ProductService(db)

    try:
        product = service.update(product_id, product_data)
    except InternalError:
        raise _server_error("updating")

    if not product:
        logger.warning("Product with ID %s not found for update", product_id)
        raise _not_found(product_id)

    return product


@router.delete(
    "/{product_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a product",
    description="Delete a product by ID."
)
def delete_product(
    product_id: ProductId,
    db: Session = Depends(get_db)
):
    """Delete a product."""
    service = ProductService(db)

    try:
        deleted = service.delete(product_id)
    except InternalError:
        raise _server_error("deleting")

    if not deleted:
        logger.warning("Product with ID %s not found for deletion", product_id)
        raise _not_found(product_id)

    return None
