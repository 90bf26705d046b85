from sqlalchemy import (
    Table, Column, String, Integer, Boolean, Float, Numeric, Enum, DateTime, JSON, MetaData,
    ForeignKey, UniqueConstraint, CheckConstraint,
)
from sqlalchemy.sql import func

from storefront.domain.models import OrderStatus, PaymentStatus, PaymentMethod

metadata = MetaData()


def _enum(enum_cls, name):
    # храним значения ("pending"), а не имена членов
    return Enum(enum_cls, name=name, values_callable=lambda e: [m.value for m in e])


products_tbl = Table(
    "products",
    metadata,
    Column("id", String, primary_key=True),
    Column("name", String, nullable=False),
    Column("images", JSON, nullable=False, default=list),
    Column("price", Numeric(12, 2), nullable=False),
    Column("discount", Integer, nullable=False, default=0),
    Column("stock", Integer, nullable=False, default=0),
    Column("sold", Integer, nullable=False, default=0),
    Column("rating", Float, nullable=False, default=0.0),
    Column("num_reviews", Integer, nullable=False, default=0),
    Column("is_active", Boolean, nullable=False, default=True),
    Column("created_at", DateTime(timezone=True), server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), server_default=func.now(), onupdate=func.now()),
    CheckConstraint("stock >= 0", name="ck_products_stock_non_negative"),
)


carts_tbl = Table(
    "carts",
    metadata,
    Column("id", String, primary_key=True),
    Column("user_id", String, nullable=False, unique=True, index=True),
    Column("created_at", DateTime(timezone=True), server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), server_default=func.now(), onupdate=func.now()),
)


cart_items_tbl = Table(
    "cart_items",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("cart_id", String, ForeignKey("carts.id", ondelete="CASCADE"), nullable=False, index=True),
    Column("position", Integer, nullable=False),
    Column("product_id", String, ForeignKey("products.id"), nullable=False),
    Column("quantity", Integer, nullable=False),
    Column("unit_price", Numeric(12, 2), nullable=False),
    UniqueConstraint("cart_id", "product_id", name="uq_cart_items_cart_product"),
)


orders_tbl = Table(
    "orders",
    metadata,
    Column("id", String, primary_key=True),
    Column("order_number", String, nullable=False, unique=True, index=True),
    Column("user_id", String, nullable=False, index=True),
    Column("shipping_address", JSON, nullable=False),
    Column("payment_method", _enum(PaymentMethod, "payment_method"), nullable=False),
    Column("payment_status", _enum(PaymentStatus, "payment_status"), nullable=False,
           default=PaymentStatus.PENDING),
    Column("items_price", Numeric(12, 2), nullable=False),
    Column("shipping_price", Numeric(12, 2), nullable=False),
    Column("total_price", Numeric(12, 2), nullable=False),
    Column("status", _enum(OrderStatus, "order_status"), nullable=False, default=OrderStatus.PENDING),
    Column("note", String, nullable=True),
    Column("paid_at", DateTime(timezone=True), nullable=True),
    Column("delivered_at", DateTime(timezone=True), nullable=True),
    Column("cancelled_at", DateTime(timezone=True), nullable=True),
    Column("created_at", DateTime(timezone=True), server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), server_default=func.now(), onupdate=func.now()),
)


order_items_tbl = Table(
    "order_items",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("order_id", String, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True),
    Column("position", Integer, nullable=False),
    Column("product_id", String, nullable=False, index=True),
    Column("name", String, nullable=False),
    Column("image", String, nullable=False, default=""),
    Column("unit_price", Numeric(12, 2), nullable=False),
    Column("quantity", Integer, nullable=False),
)


reviews_tbl = Table(
    "reviews",
    metadata,
    Column("id", String, primary_key=True),
    Column("user_id", String, nullable=False, index=True),
    Column("product_id", String, ForeignKey("products.id"), nullable=False, index=True),
    Column("rating", Integer, nullable=False),
    Column("comment", String, nullable=False),
    Column("is_verified_purchase", Boolean, nullable=False, default=False),
    Column("created_at", DateTime(timezone=True), server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), server_default=func.now(), onupdate=func.now()),
    UniqueConstraint("user_id", "product_id", name="uq_reviews_user_product"),
    CheckConstraint("rating >= 1 AND rating <= 5", name="ck_reviews_rating_range"),
)
