from datetime import datetime, timezone
from decimal import Decimal
from typing import Annotated, Optional

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    Field,
    PlainSerializer,
    field_validator,
)
from pydantic.alias_generators import to_camel

# Range of the 32-bit Integer columns (id, stock)
INT32_MIN = -2_147_483_648
INT32_MAX = 2_147_483_647

# Numeric(18, 2) in the database; rendered as a JSON number
Price = Annotated[
    Decimal,
    Field(ge=0, max_digits=18, decimal_places=2),
    PlainSerializer(float, return_type=float, when_used="json"),
]

Stock = Annotated[int, Field(ge=0, le=INT32_MAX)]


def _as_utc(value: datetime) -> datetime:
    # Some backends (SQLite) hand back naive values; they are stored as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


UtcDatetime = Annotated[datetime, AfterValidator(_as_utc)]


def _check_name(value: Optional[str]) -> Optional[str]:
    if value is not None and not value.strip():
        raise ValueError("Name must not be blank")
    return value


class CamelModel(BaseModel):
    """Base schema using camelCase JSON keys; snake_case is accepted on input."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ProductCreate(CamelModel):
    """Schema for creating a new product."""
    name: str = Field(..., min_length=1, max_length=200, description="Product name")
    description: Optional[str] = Field(None, max_length=1000, description="Product description")
    price: Price = Field(Decimal("0"), description="Product price")
    stock: Stock = Field(0, description="Available stock")

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v):
        return _check_name(v)


class ProductUpdate(CamelModel):
    """
    Schema for updating an existing product.

    Only fields present in the request body are applied (see
    ``model_fields_set``); an explicit ``null`` clears the description
    and is rejected for the other fields.
    """
    name: Optional[str] = Field(None, min_length=1, max_length=200, description="Product name")
    description: Optional[str] = Field(None, max_length=1000, description="Product description")
    price: Optional[Price] = Field(None, description="Product price")
    stock: Optional[Stock] = Field(None, description="Available stock")

    @field_validator("name", "price", "stock")
    @classmethod
    def reject_null(cls, v):
        if v is None:
            raise ValueError("Field may not be null")
        return v

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v):
        return _check_name(v)

    def changes(self) -> dict:
        """Fields explicitly set in the request, keyed by attribute name."""
        return {field: getattr(self, field) for field in self.model_fields_set}


class ProductResponse(CamelModel):
    """Schema for product response including all fields."""
    id: int
    name: str
    description: Optional[str] = None
    price: Price
    stock: int
    created_at: UtcDatetime
    updated_at: Optional[UtcDatetime] = None

    model_config = ConfigDict(from_attributes=True)
