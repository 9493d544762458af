# backend/models/product.py
from sqlalchemy import (
    Column, Integer, String, Float, Text, Boolean, DateTime, ForeignKey, JSON,
    CheckConstraint, func,
)
from sqlalchemy.orm import relationship
from database import Base

# Catalog entry. stock_quantity is a cache of the number of available
# inventory units and is only ever written by the inventory ledger.
class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False, index=True)
    slug = Column(String(255), unique=True, nullable=False, index=True)
    sku = Column(String(100), unique=True, nullable=True, index=True)
    description = Column(Text, nullable=True)

    price = Column(Float, CheckConstraint("price >= 0"), nullable=False)
    sale_price = Column(Float, nullable=True)

    image_url = Column(String, nullable=True)
    image_urls = Column(JSON, nullable=True)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=True, index=True)
    brand = Column(String(100), nullable=True)
    model = Column(String(100), nullable=True)
    specifications = Column(JSON, nullable=True)

    stock_quantity = Column(Integer, CheckConstraint("stock_quantity >= 0"), nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    category = relationship("Category", back_populates="products")
    units = relationship("InventoryUnit", back_populates="product")

    @property
    def effective_price(self) -> float:
        # Sale price wins whenever one is set
        return self.sale_price if self.sale_price is not None else self.price
