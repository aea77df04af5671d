"""
Cardapio Database Models

Tables:
- companies: tenants (restaurants), routed by slug
- users: admin, company owner and customer accounts
- categories: menu sections, tenant-owned
- products: menu items, tenant-owned
- orders: placed orders, tenant-owned
- coupons: discount codes, tenant-owned, unique per tenant
- promotions: time-boxed product prices, tenant-owned

All tenant-owned rows carry company_id; mutations must match it against the
caller's tenant.
"""

from decimal import Decimal
from typing import Any
from uuid import uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import declarative_base, relationship

from appcore.clock import local_now
from cardapio.contracts.types import CouponType, OrderStatus, UserRole

CardapioBase = declarative_base()


def _money(value: Decimal | float | None) -> float:
    return float(value) if value is not None else 0.0


def _iso(value) -> str | None:
    return value.isoformat() if value is not None else None


class TimestampMixin:
    """created_at / updated_at on the configured local clock."""

    created_at = Column(DateTime, nullable=False, default=local_now)
    updated_at = Column(DateTime, nullable=False, default=local_now, onupdate=local_now)


class Company(CardapioBase, TimestampMixin):
    """
    A tenant: one restaurant with its storefront.

    Created by an administrative action together with its owner user;
    never hard-deleted.
    """

    __tablename__ = "companies"

    id = Column(Uuid, primary_key=True, default=uuid4)
    name = Column(String(255), nullable=False)
    slug = Column(String(63), unique=True, nullable=False, index=True)
    description = Column(Text, nullable=False, default="")
    profile_image = Column(String(500), nullable=False, default="/placeholder-logo.png")
    banner_image = Column(String(500), nullable=False, default="/placeholder.jpg")
    phone = Column(JSON, nullable=False, default=list)  # list of numbers
    whatsapp = Column(String(20), nullable=False, default="")
    minimum_order = Column(Numeric(10, 2), nullable=False, default=0)
    address = Column(JSON, nullable=False, default=dict)
    business_hours = Column(JSON, nullable=False, default=dict)
    payment_methods = Column(JSON, nullable=False, default=list)
    is_open = Column(Boolean, nullable=False, default=True)
    allows_delivery = Column(Boolean, nullable=False, default=True)
    allows_pickup = Column(Boolean, nullable=False, default=True)

    users = relationship("User", back_populates="company")

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "name": self.name,
            "slug": self.slug,
            "description": self.description,
            "profile_image": self.profile_image,
            "banner_image": self.banner_image,
            "phone": list(self.phone or []),
            "whatsapp": self.whatsapp,
            "minimum_order": _money(self.minimum_order),
            "address": self.address or {},
            "business_hours": self.business_hours or {},
            "payment_methods": list(self.payment_methods or []),
            "is_open": self.is_open,
            "allows_delivery": self.allows_delivery,
            "allows_pickup": self.allows_pickup,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


class User(CardapioBase, TimestampMixin):
    """
    An account.

    Admins and company owners log in by e-mail, customers by CPF (digits only).
    Both login keys are globally unique across tenants.
    """

    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid4)
    company_id = Column(
        Uuid, ForeignKey("companies.id", ondelete="CASCADE"), nullable=True, index=True
    )
    name = Column(String(255), nullable=True)
    email = Column(String(255), unique=True, nullable=True)
    cpf = Column(String(11), unique=True, nullable=True)
    password_hash = Column(String(255), nullable=True)
    role = Column(String(20), nullable=False, default=UserRole.CUSTOMER.value)
    phone = Column(String(20), nullable=True)
    address = Column(JSON, nullable=True)
    image = Column(String(500), nullable=True)

    company = relationship("Company", back_populates="users")

    @property
    def public_role(self) -> str:
        return UserRole(self.role).public_label

    def to_dict(self, public_role: bool = False) -> dict[str, Any]:
        """Serialize without the password hash."""
        return {
            "id": str(self.id),
            "company_id": str(self.company_id) if self.company_id else None,
            "name": self.name,
            "email": self.email,
            "cpf": self.cpf,
            "role": self.public_role if public_role else self.role,
            "phone": self.phone,
            "address": self.address,
            "image": self.image,
            "created_at": _iso(self.created_at),
        }


class Category(CardapioBase, TimestampMixin):
    """Menu section. `order` defines the display sequence."""

    __tablename__ = "categories"

    id = Column(Uuid, primary_key=True, default=uuid4)
    company_id = Column(
        Uuid, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = Column(String(100), nullable=False)
    order = Column(Integer, nullable=False, default=0)

    __table_args__ = (Index("idx_categories_company_order", "company_id", "order"),)

    def to_dict(self, product_count: int | None = None) -> dict[str, Any]:
        data = {
            "id": str(self.id),
            "company_id": str(self.company_id),
            "name": self.name,
            "order": self.order,
        }
        if product_count is not None:
            data["product_count"] = product_count
        return data


class Product(CardapioBase, TimestampMixin):
    """Menu item. Deleting its category leaves it uncategorized."""

    __tablename__ = "products"

    id = Column(Uuid, primary_key=True, default=uuid4)
    company_id = Column(
        Uuid, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True
    )
    category_id = Column(
        Uuid, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True, index=True
    )
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    image = Column(Text, nullable=False, default="")
    price = Column(Numeric(10, 2), nullable=False)
    product_type = Column(String(20), nullable=False, default="simple")
    is_available = Column(Boolean, nullable=False, default=True)
    ingredients = Column(JSON, nullable=True)
    flavors = Column(JSON, nullable=True)
    complements = Column(JSON, nullable=True)
    combo_config = Column(JSON, nullable=True)
    wholesale_min_quantity = Column(Integer, nullable=True)
    wholesale_price = Column(Numeric(10, 2), nullable=True)
    preparation_time = Column(Integer, nullable=True)
    preparation_time_unit = Column(String(10), nullable=True)  # hours, days

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "company_id": str(self.company_id),
            "category_id": str(self.category_id) if self.category_id else None,
            "name": self.name,
            "description": self.description,
            "image": self.image,
            "price": _money(self.price),
            "product_type": self.product_type,
            "is_available": self.is_available,
            "ingredients": self.ingredients,
            "flavors": self.flavors,
            "complements": self.complements,
            "combo_config": self.combo_config,
            "wholesale_min_quantity": self.wholesale_min_quantity,
            "wholesale_price": (
                _money(self.wholesale_price) if self.wholesale_price is not None else None
            ),
            "preparation_time": self.preparation_time,
            "preparation_time_unit": self.preparation_time_unit,
        }


class Order(CardapioBase, TimestampMixin):
    """
    A placed order.

    The id is a short human-readable code (e.g. ABCD1234). user_id is null
    for guest orders.
    """

    __tablename__ = "orders"

    id = Column(String(12), primary_key=True)
    company_id = Column(
        Uuid, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    customer_name = Column(String(255), nullable=False)
    customer_phone = Column(String(20), nullable=False)
    customer_cpf = Column(String(11), nullable=True)
    delivery_address = Column(JSON, nullable=True)
    items = Column(JSON, nullable=False, default=list)
    total = Column(Numeric(10, 2), nullable=False)
    status = Column(String(20), nullable=False, default=OrderStatus.PENDING.value)
    payment_method = Column(String(20), nullable=False)
    notes = Column(Text, nullable=False, default="")
    discount = Column(Numeric(10, 2), nullable=False, default=0)
    coupon_id = Column(Uuid, ForeignKey("coupons.id", ondelete="SET NULL"), nullable=True)
    scheduled_pickup_time = Column(DateTime, nullable=True)

    company = relationship("Company")

    __table_args__ = (
        Index("idx_orders_company_status", "company_id", "status"),
        Index("idx_orders_company_created", "company_id", "created_at"),
    )

    def to_dict(self, include_company: bool = False) -> dict[str, Any]:
        data = {
            "id": self.id,
            "company_id": str(self.company_id),
            "user_id": str(self.user_id) if self.user_id else None,
            "customer_name": self.customer_name,
            "customer_phone": self.customer_phone,
            "customer_cpf": self.customer_cpf,
            "delivery_address": self.delivery_address,
            "items": self.items or [],
            "total": _money(self.total),
            "status": self.status,
            "payment_method": self.payment_method,
            "notes": self.notes,
            "discount": _money(self.discount),
            "coupon_id": str(self.coupon_id) if self.coupon_id else None,
            "scheduled_pickup_time": _iso(self.scheduled_pickup_time),
            "created_at": _iso(self.created_at),
        }
        if include_company and self.company is not None:
            data["company"] = {
                "id": str(self.company.id),
                "name": self.company.name,
                "slug": self.company.slug,
                "profile_image": self.company.profile_image,
            }
        return data


class Coupon(CardapioBase, TimestampMixin):
    """
    A discount code of one tenant.

    Codes are stored upper-case and matched case-insensitively. Null limits
    (dates, minimum order, max discount, usage) mean "no limit".
    """

    __tablename__ = "coupons"

    id = Column(Uuid, primary_key=True, default=uuid4)
    company_id = Column(
        Uuid, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True
    )
    code = Column(String(50), nullable=False)
    type = Column(String(20), nullable=False, default=CouponType.PERCENTAGE.value)
    value = Column(Numeric(10, 2), nullable=False)
    min_order_value = Column(Numeric(10, 2), nullable=True)
    max_discount = Column(Numeric(10, 2), nullable=True)
    start_date = Column(DateTime, nullable=True)
    expiration_date = Column(DateTime, nullable=True)
    usage_limit = Column(Integer, nullable=True)
    usage_count = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)

    __table_args__ = (UniqueConstraint("company_id", "code", name="uq_coupons_company_code"),)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "company_id": str(self.company_id),
            "code": self.code,
            "type": self.type,
            "value": _money(self.value),
            "min_order_value": (
                _money(self.min_order_value) if self.min_order_value is not None else None
            ),
            "max_discount": _money(self.max_discount) if self.max_discount is not None else None,
            "start_date": _iso(self.start_date),
            "expiration_date": _iso(self.expiration_date),
            "usage_limit": self.usage_limit,
            "usage_count": self.usage_count,
            "is_active": self.is_active,
            "created_at": _iso(self.created_at),
        }


class Promotion(CardapioBase, TimestampMixin):
    """A promotional price for one product, valid between two dates."""

    __tablename__ = "promotions"

    id = Column(Uuid, primary_key=True, default=uuid4)
    company_id = Column(
        Uuid, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True
    )
    product_id = Column(
        Uuid, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True
    )
    promotional_price = Column(Numeric(10, 2), nullable=False)
    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)

    product = relationship("Product")

    def to_dict(self) -> dict[str, Any]:
        data = {
            "id": str(self.id),
            "company_id": str(self.company_id),
            "product_id": str(self.product_id),
            "promotional_price": _money(self.promotional_price),
            "start_date": _iso(self.start_date),
            "end_date": _iso(self.end_date),
            "is_active": self.is_active,
            "created_at": _iso(self.created_at),
        }
        if self.product is not None:
            data["original_price"] = _money(self.product.price)
            data["product"] = {
                "name": self.product.name,
                "price": _money(self.product.price),
                "image": self.product.image,
                "description": self.product.description,
            }
        return data
