"""
Cardapio Services

Business logic behind the tenant-facing operations:
- CredentialStore: accounts, login and passwords
- TenantRegistry: company provisioning, lookup and settings
- MenuCatalog: categories and products
- OrderLedger: dashboard aggregates, order history and placement
- OfferBook: discount coupons and product promotions
"""

from cardapio.service.catalog import MenuCatalog
from cardapio.service.credentials import CredentialStore
from cardapio.service.identity import Identity, require_admin, require_identity
from cardapio.service.ledger import DashboardStats, OrderLedger, generate_order_code
from cardapio.service.offers import OfferBook, apply_coupon
from cardapio.service.tenants import TenantRegistry

__all__ = [
    "CredentialStore",
    "TenantRegistry",
    "MenuCatalog",
    "OrderLedger",
    "OfferBook",
    "apply_coupon",
    "DashboardStats",
    "Identity",
    "require_admin",
    "require_identity",
    "generate_order_code",
]
