from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects import mysql
from sqlalchemy.orm import relationship

from .db import Base

# MySQL DATETIME drops microseconds unless fsp is set
PreciseDateTime = DateTime().with_variant(mysql.DATETIME(fsp=6), "mysql", "mariadb")


def utcnow() -> datetime:
    # Naive UTC so comparisons behave the same on every backend
    return datetime.now(timezone.utc).replace(tzinfo=None)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    is_admin = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    cart_items = relationship("CartItem", back_populates="user", cascade="all, delete-orphan")


class Category(Base):
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False, unique=True)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)


class Product(Base):
    __tablename__ = "products"
    __table_args__ = (
        CheckConstraint("rating >= 1 AND rating <= 5", name="ck_products_rating"),
        CheckConstraint("price >= 0", name="ck_products_price"),
    )

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    license = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    rating = Column(Integer, nullable=True, index=True)
    price = Column(Numeric(10, 2), nullable=False, default=0, index=True)
    # Free text; categories table is reference data only
    category = Column(String(255), nullable=False, index=True)
    main_image_url = Column(Text, nullable=True)
    gallery_images = Column(JSON, nullable=True)
    feature_1 = Column(String(255), nullable=True)
    feature_2 = Column(String(255), nullable=True)
    feature_3 = Column(String(255), nullable=True)
    feature_4 = Column(String(255), nullable=True)
    feature_5 = Column(String(255), nullable=True)
    requirements = Column(Text, nullable=True)
    version = Column(String(50), nullable=True)
    file_size = Column(String(50), nullable=True)
    download_count = Column(Integer, nullable=False, default=0)
    is_featured = Column(Boolean, nullable=False, default=False, index=True)
    demo_url = Column(String(500), nullable=True)
    documentation_url = Column(String(500), nullable=True)
    support_email = Column(String(255), nullable=True)
    tags = Column(String(500), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    cart_items = relationship("CartItem", back_populates="product", cascade="all, delete-orphan")


class CartItem(Base):
    __tablename__ = "cart"
    __table_args__ = (
        UniqueConstraint("user_id", "product_id", name="unique_user_product"),
        CheckConstraint("quantity >= 1", name="ck_cart_quantity"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    quantity = Column(Integer, nullable=False, default=1)
    created_at = Column(PreciseDateTime, nullable=False, default=utcnow)
    updated_at = Column(PreciseDateTime, nullable=False, default=utcnow, onupdate=utcnow)

    user = relationship("User", back_populates="cart_items")
    product = relationship("Product", back_populates="cart_items")


class SessionRecord(Base):
    """Server-side session row, used when SESSION_BACKEND=database."""

    __tablename__ = "sessions"

    token = Column(String(128), primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    email = Column(String(255), nullable=False)
    is_admin = Column(Boolean, nullable=False, default=False)
    # epoch seconds
    expires_at = Column(Float, nullable=False, index=True)
