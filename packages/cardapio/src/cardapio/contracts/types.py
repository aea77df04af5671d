"""
Enumerations shared across the service.
"""

from enum import Enum


class UserRole(str, Enum):
    """Stored user roles."""

    ADMIN = "admin"
    COMPANY_OWNER = "company_owner"
    CUSTOMER = "customer"

    @property
    def public_label(self) -> str:
        """
        Role label exposed by the authentication surface.

        company_owner is presented as "company"; the others are unchanged.
        """
        if self is UserRole.COMPANY_OWNER:
            return "company"
        return self.value

    def __str__(self) -> str:
        return self.value


class OrderStatus(str, Enum):
    """Order lifecycle states."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY = "ready"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"

    def __str__(self) -> str:
        return self.value


class PaymentMethod(str, Enum):
    CASH = "cash"
    CREDIT = "credit"
    DEBIT = "debit"
    PIX = "pix"
    MEAL_VOUCHER = "meal_voucher"


class ProductType(str, Enum):
    SIMPLE = "simple"
    FLAVORS = "flavors"
    COMBO = "combo"
    WHOLESALE = "wholesale"
    COMPLEMENTS = "complements"


class CouponType(str, Enum):
    """How a coupon value is applied to an order total."""

    PERCENTAGE = "percentage"
    FIXED = "fixed"
