"""
Database models for the storefront catalog read by the search service
"""
from datetime import datetime

from sqlalchemy import JSON, Boolean, Column, DateTime, Float, ForeignKey, Index, Integer, String
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


class Category(Base):
    """Product categories; the slug is the category label used by search filters"""

    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, index=True)
    slug = Column(String(255), unique=True, nullable=False, index=True)

    products = relationship("Product", back_populates="category")

    def __repr__(self):
        return f"<Category(id={self.id}, slug='{self.slug}')>"


class Product(Base):
    """Searchable product fields"""

    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)

    # Localized text: {"en": "Product Name", "ar": "اسم المنتج"}
    name = Column(JSON, nullable=False)
    description = Column(JSON, nullable=True)

    price = Column(Float, nullable=False, index=True)
    inventory_quantity = Column(Integer, default=0)
    tags = Column(JSON, nullable=True)

    # Only active products are searchable
    status = Column(String(20), default="active", index=True)  # active, draft, archived
    is_featured = Column(Boolean, default=False, index=True)

    category_id = Column(Integer, ForeignKey("categories.id"), nullable=True, index=True)
    category = relationship("Category", back_populates="products")

    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    __table_args__ = (
        Index("idx_product_status_category", "status", "category_id"),
        Index("idx_product_price_category", "price", "category_id"),
    )

    def __repr__(self):
        return f"<Product(id={self.id}, price={self.price})>"
