"""
Pytest fixtures for cardapio tests.
"""

from datetime import datetime

import pytest

from appcore.db import Store
from appcore.security import PasswordHasher
from cardapio.cache import InMemoryCache
from cardapio.persistence import CardapioBase
from cardapio.service import (
    CredentialStore,
    Identity,
    MenuCatalog,
    OfferBook,
    OrderLedger,
    TenantRegistry,
)

FIXED_NOW = datetime(2024, 5, 10, 15, 30)


@pytest.fixture
def store(tmp_path):
    """Isolated file-backed SQLite store with all tables created."""
    store = Store.from_url(f"sqlite:///{tmp_path / 'cardapio.db'}")
    store.create_all(CardapioBase.metadata)
    yield store
    store.dispose()


@pytest.fixture
def cache():
    return InMemoryCache()


@pytest.fixture
def hasher():
    """Cheap bcrypt cost for fast tests."""
    return PasswordHasher(rounds=4)


@pytest.fixture
def clock():
    return lambda: FIXED_NOW


@pytest.fixture
def credentials(store, cache, hasher):
    return CredentialStore(store, cache, hasher)


@pytest.fixture
def tenants(store, cache, hasher):
    return TenantRegistry(store, cache, hasher)


@pytest.fixture
def catalog(store, cache, clock):
    return MenuCatalog(store, cache, clock=clock)


@pytest.fixture
def ledger(store, cache, clock):
    return OrderLedger(store, cache, clock=clock)


@pytest.fixture
def offers(store, cache, clock):
    return OfferBook(store, cache, clock=clock)


@pytest.fixture
def admin(credentials):
    """Bootstrapped admin identity."""
    result = credentials.create_admin("admin@cardapio.com", "admin-pass")
    assert result.success
    return Identity.from_user_data(result.data)


@pytest.fixture
def company(tenants, admin):
    """A provisioned restaurant (owner: dono@pizzaria.com / senha123)."""
    result = tenants.create_company(
        admin,
        "Pizzaria do Zé",
        "pizzaria-do-ze",
        "dono@pizzaria.com",
        "senha123",
        whatsapp="11999998888",
    )
    assert result.success
    return result.data


@pytest.fixture
def other_company(tenants, admin):
    result = tenants.create_company(
        admin, "Burger House", "burger-house", "dono@burger.com", "senha456"
    )
    assert result.success
    return result.data
