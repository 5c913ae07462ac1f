from sqlalchemy import Column, ForeignKey, Integer, String, Index, func
from sqlalchemy.orm import relationship
from inventory_api.database import Base

IN_STOCK = "In Stock"
OUT_OF_STOCK = "Out of Stock"


def derive_status(stock: int) -> str:
    return IN_STOCK if stock > 0 else OUT_OF_STOCK


class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, unique=True, nullable=False)
    unit = Column(String, nullable=True)
    category = Column(String, index=True, nullable=True)
    brand = Column(String, nullable=True)
    stock = Column(Integer, nullable=False, default=0)
    status = Column(String, nullable=True)
    image = Column(String, nullable=True)

    logs = relationship("InventoryLog", back_populates="product")

    __table_args__ = (
        Index("idx_products_name_lower", func.lower(name)),
    )


class InventoryLog(Base):
    __tablename__ = "inventory_logs"

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), index=True, nullable=False)
    old_stock = Column(Integer, nullable=False)
    new_stock = Column(Integer, nullable=False)
    changed_by = Column(String, nullable=True)
    timestamp = Column(String, nullable=False)

    product = relationship("Product", back_populates="logs")
