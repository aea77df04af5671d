"""
Input Payload Models

Pydantic models validating the input of mutating operations.
Update models are sparse: only fields explicitly set are written.
"""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from cardapio.contracts.types import CouponType, PaymentMethod, ProductType

SLUG_PATTERN = r"^[a-z0-9]+(?:-[a-z0-9]+)*$"


class Address(BaseModel):
    """Postal address (Brazilian format)."""

    cep: str = ""
    street: str = ""
    number: str = ""
    complement: str | None = None
    neighborhood: str = ""
    city: str = ""
    state: str = ""


class CompanyCreate(BaseModel):
    """
    Payload for provisioning a company together with its owner account.

    Defaults mirror a blank storefront: no phones, no payment methods,
    zero minimum order and placeholder images.
    """

    name: str = Field(..., min_length=1, description="Display name")
    slug: str = Field(..., min_length=1, max_length=63, pattern=SLUG_PATTERN)
    email: str = Field(..., min_length=3, description="Owner login e-mail")
    password: str = Field(..., min_length=1, description="Owner password (hashed before storage)")
    description: str | None = None
    profile_image: str = "/placeholder-logo.png"
    banner_image: str = "/placeholder.jpg"
    phone: list[str] = Field(default_factory=list)
    whatsapp: str = ""
    minimum_order: float = Field(0, ge=0)
    address: dict[str, Any] = Field(default_factory=dict)
    business_hours: dict[str, Any] | list[dict[str, Any]] = Field(default_factory=dict)
    payment_methods: list[PaymentMethod] = Field(default_factory=list)
    allows_delivery: bool = True
    allows_pickup: bool = True


class CompanyUpdate(BaseModel):
    """Sparse patch for company fields. Unknown keys are rejected."""

    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(None, min_length=1)
    description: str | None = None
    whatsapp: str | None = None
    minimum_order: float | None = Field(None, ge=0)
    profile_image: str | None = None
    banner_image: str | None = None
    phone: list[str] | None = None
    address: dict[str, Any] | None = None
    business_hours: dict[str, Any] | list[dict[str, Any]] | None = None
    payment_methods: list[PaymentMethod] | None = None
    is_open: bool | None = None
    allows_delivery: bool | None = None
    allows_pickup: bool | None = None


class ProfileUpdate(BaseModel):
    """Customer profile fields editable by the owning user."""

    name: str = Field(..., min_length=1)
    phone: str = ""
    cpf: str = ""
    address: Address | None = None


class ProductCreate(BaseModel):
    """Payload for creating a product in a tenant's catalog."""

    category_id: UUID
    name: str = Field(..., min_length=1)
    description: str = ""
    image: str = ""
    price: float = Field(..., ge=0)
    product_type: ProductType = ProductType.SIMPLE
    is_available: bool = True
    ingredients: list[str] | None = None
    flavors: list[dict[str, Any]] | dict[str, Any] | None = None
    complements: list[dict[str, Any]] | None = None
    combo_config: dict[str, Any] | None = None
    wholesale_min_quantity: int | None = Field(None, ge=1)
    wholesale_price: float | None = Field(None, ge=0)
    preparation_time: int | None = Field(None, ge=0)
    preparation_time_unit: str | None = Field(None, pattern=r"^(hours|days)$")


class ProductUpdate(BaseModel):
    """Sparse patch for product fields."""

    model_config = ConfigDict(extra="forbid")

    category_id: UUID | None = None
    name: str | None = Field(None, min_length=1)
    description: str | None = None
    image: str | None = None
    price: float | None = Field(None, ge=0)
    product_type: ProductType | None = None
    is_available: bool | None = None
    ingredients: list[str] | None = None
    flavors: list[dict[str, Any]] | dict[str, Any] | None = None
    complements: list[dict[str, Any]] | None = None
    combo_config: dict[str, Any] | None = None
    wholesale_min_quantity: int | None = Field(None, ge=1)
    wholesale_price: float | None = Field(None, ge=0)
    preparation_time: int | None = Field(None, ge=0)
    preparation_time_unit: str | None = Field(None, pattern=r"^(hours|days)$")


class OrderItem(BaseModel):
    """A line of an order. Extra selection keys (flavors, complements) are kept."""

    model_config = ConfigDict(extra="allow")

    product_id: str
    product_name: str
    quantity: int = Field(..., ge=1)
    unit_price: float = Field(..., ge=0)
    subtotal: float = Field(..., ge=0)


class OrderCreate(BaseModel):
    """Payload for placing an order at a storefront."""

    company_id: UUID
    customer_name: str = Field(..., min_length=1)
    customer_phone: str = Field(..., min_length=1)
    customer_cpf: str | None = None
    delivery_address: Address | None = None
    items: list[OrderItem] = Field(..., min_length=1)
    total: float = Field(..., ge=0, description="Items total before any coupon discount")
    payment_method: PaymentMethod
    notes: str = ""
    user_id: UUID | None = None
    coupon_code: str | None = Field(
        None, description="Discount code; the discount is computed on placement"
    )
    scheduled_pickup_time: datetime | None = None


class CouponCreate(BaseModel):
    """
    Payload for creating a discount coupon.

    The code is trimmed and upper-cased. Percentage coupons take a value
    up to 100; optional limits left as None do not apply.
    """

    code: str = Field(..., min_length=1, max_length=50)
    type: CouponType = CouponType.PERCENTAGE
    value: float = Field(..., gt=0)
    min_order_value: float | None = Field(None, ge=0)
    max_discount: float | None = Field(None, gt=0)
    start_date: datetime | None = None
    expiration_date: datetime | None = None
    usage_limit: int | None = Field(None, ge=1)

    @field_validator("code")
    @classmethod
    def normalize_code(cls, v: str) -> str:
        v = v.strip().upper()
        if not v:
            raise ValueError("Código do cupom é obrigatório")
        return v

    @model_validator(mode="after")
    def check_limits(self) -> "CouponCreate":
        if self.type == CouponType.PERCENTAGE and self.value > 100:
            raise ValueError("Percentual de desconto deve ser no máximo 100")
        if self.start_date and self.expiration_date and self.expiration_date < self.start_date:
            raise ValueError("Data de expiração anterior à data de início")
        return self


class PromotionCreate(BaseModel):
    """Payload for a promotional price on one of the tenant's products."""

    product_id: UUID
    promotional_price: float = Field(..., ge=0)
    start_date: datetime
    end_date: datetime
    is_active: bool = True

    @model_validator(mode="after")
    def check_dates(self) -> "PromotionCreate":
        if self.end_date < self.start_date:
            raise ValueError("Data final anterior à data inicial")
        return self


class PromotionUpdate(PromotionCreate):
    """Full replacement of a promotion's fields."""

    model_config = ConfigDict(extra="forbid")
