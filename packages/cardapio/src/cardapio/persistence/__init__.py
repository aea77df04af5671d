"""
Cardapio Persistence

SQLAlchemy models and repository for the tenant data tables.
"""

from cardapio.persistence.models import (
    CardapioBase,
    Category,
    Company,
    Coupon,
    Order,
    Product,
    Promotion,
    User,
)
from cardapio.persistence.repo import CardapioRepository

__all__ = [
    "CardapioBase",
    "Company",
    "User",
    "Category",
    "Product",
    "Order",
    "Coupon",
    "Promotion",
    "CardapioRepository",
]
