from sqlalchemy import Column, DateTime, Integer, Numeric, String

from product_api.database import Base


class Product(Base):
    """
    Product model, the only persisted entity.

    Attributes:
        id: Unique identifier for the product
        name: Product name (indexed)
        description: Optional free-text description
        price: Product price, 18 digits with 2 decimals
        stock: Available quantity
        created_at: UTC timestamp set once when the product is created
        updated_at: UTC timestamp of the last update, NULL until then
    """
    __tablename__ = "products"

    id = Column(Integer, primary_key=True)
    name = Column(String(200), nullable=False, index=True)
    description = Column(String(1000), nullable=True)
    price = Column(Numeric(18, 2), nullable=False, default=0)
    stock = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self):
        return f"<Product(id={self.id}, name='{self.name}', stock={self.stock})>"
