from sqlalchemy import (
    JSON, Column, Integer, String, Float, Boolean, ForeignKey, DateTime, Text, Enum, Index, UniqueConstraint,
)
from sqlalchemy.orm import relationship
from datetime import datetime
import enum
from product_genius.db.base_class import Base


class MediaType(str, enum.Enum):
    IMAGE = "IMAGE"
    VIDEO = "VIDEO"


class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    sku = Column(String(100), unique=True, nullable=True, index=True)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=True)

    # Pricing
    suggested_price = Column(Float, nullable=True)
    currency = Column(String(3), nullable=True)

    # Engagement
    popularity_score = Column(Float, default=0.0, nullable=False)
    views = Column(Integer, default=0, nullable=False)
    likes = Column(Integer, default=0, nullable=False)

    is_active = Column(Boolean, default=True, nullable=False)
    extra_metadata = Column("metadata", JSON, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    category = relationship("Category", back_populates="products")
    translations = relationship(
        "ProductTranslation",
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="ProductTranslation.locale",
    )
    media = relationship(
        "Media",
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="Media.sort_order",
    )
    suppliers = relationship("ProductSupplier", back_populates="product", cascade="all, delete-orphan")
    order_items = relationship("OrderItem", back_populates="product")

# Composite indexes for performance
Index("ix_products_category_id", Product.category_id)
Index("idx_product_active_created", Product.is_active, Product.created_at)


class ProductTranslation(Base):
    __tablename__ = "product_translations"
    __table_args__ = (
        UniqueConstraint("product_id", "locale", name="uq_product_translation_locale"),
    )

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    locale = Column(String(10), nullable=False)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    slug = Column(String(300), nullable=True, index=True)

    # Relationships
    product = relationship("Product", back_populates="translations")


class Media(Base):
    """Ordered image/video attachment of a product."""
    __tablename__ = "media"

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=True, index=True)
    url = Column(String(1000), nullable=False)
    provider = Column(String(50), nullable=True)  # local, external
    type = Column(Enum(MediaType), default=MediaType.IMAGE, nullable=False)
    alt = Column(String(255), nullable=True)
    sort_order = Column(Integer, default=0, nullable=False)
    extra_metadata = Column("metadata", JSON, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    product = relationship("Product", back_populates="media")

    @property
    def is_external(self) -> bool:
        return self.url.startswith(("http://", "https://"))
