"""
Tests for the order ledger.
"""

import random
import re
from datetime import datetime, timedelta
from uuid import UUID, uuid4

import pytest

from appcore.db import Store
from cardapio.cache.keys import COUPONS_PATH, DASHBOARD_PATH, HISTORY_PATH, ORDERS_PATH
from cardapio.persistence import CardapioRepository
from cardapio.service import Identity, OrderLedger, generate_order_code

FIXED_NOW = datetime(2024, 5, 10, 15, 30)

TODAY = datetime(2024, 5, 10)


def add_order(store, company_id, order_id, total, status="pending", created_at=FIXED_NOW, user_id=None):
    """Insert an order row directly with a controlled timestamp."""
    with store.session() as db:
        CardapioRepository(db).create_order(
            order_id,
            UUID(company_id),
            {
                "user_id": user_id,
                "customer_name": "Cliente",
                "customer_phone": "11999990000",
                "items": [],
                "total": total,
                "status": status,
                "payment_method": "pix",
                "created_at": created_at,
            },
        )


def order_payload(company_id, **overrides):
    payload = {
        "company_id": company_id,
        "customer_name": "Maria",
        "customer_phone": "11988887777",
        "items": [
            {
                "product_id": "p1",
                "product_name": "Margherita",
                "quantity": 2,
                "unit_price": 45.0,
                "subtotal": 90.0,
            }
        ],
        "total": 90.0,
        "payment_method": "pix",
    }
    payload.update(overrides)
    return payload


class TestDashboardStats:
    """Tests for dashboard aggregates."""

    def test_revenue_excludes_cancelled(self, ledger, store, company):
        """Test a cancelled order counts as an order but not as revenue."""
        add_order(store, company["id"], "AAAA0001", 100)
        add_order(store, company["id"], "AAAA0002", 50, status="cancelled")

        stats = ledger.get_dashboard_stats(company["id"])

        assert stats.today_orders == 2
        assert stats.today_revenue == 100.0
        assert stats.total_revenue == 100.0

    def test_today_starts_at_local_midnight(self, ledger, store, company):
        """Test orders before midnight only count toward totals."""
        add_order(store, company["id"], "AAAA0001", 100, created_at=TODAY)
        add_order(store, company["id"], "AAAA0002", 30, status="delivered",
                  created_at=TODAY - timedelta(seconds=1))

        stats = ledger.get_dashboard_stats(company["id"])

        assert stats.today_orders == 1
        assert stats.today_revenue == 100.0
        assert stats.total_revenue == 130.0

    def test_pending_counts_all_days(self, ledger, store, company):
        add_order(store, company["id"], "AAAA0001", 10, created_at=TODAY - timedelta(days=3))
        add_order(store, company["id"], "AAAA0002", 10)
        add_order(store, company["id"], "AAAA0003", 10, status="ready")

        assert ledger.get_dashboard_stats(company["id"]).pending_orders == 2

    def test_recent_orders_newest_first(self, ledger, store, company):
        """Test only the five most recent orders are returned."""
        for i in range(7):
            add_order(store, company["id"], f"AAAA000{i}", 10,
                      created_at=FIXED_NOW - timedelta(minutes=i))

        stats = ledger.get_dashboard_stats(company["id"])

        assert [o["id"] for o in stats.recent_orders] == [f"AAAA000{i}" for i in range(5)]

    def test_no_activity_is_zero_not_none(self, ledger, company):
        stats = ledger.get_dashboard_stats(company["id"])

        assert stats is not None
        assert stats.to_dict() == {
            "today_orders": 0,
            "pending_orders": 0,
            "today_revenue": 0.0,
            "total_revenue": 0.0,
            "recent_orders": [],
        }

    def test_tenant_scoped(self, ledger, store, company, other_company):
        add_order(store, company["id"], "AAAA0001", 100)

        stats = ledger.get_dashboard_stats(other_company["id"])

        assert stats.today_orders == 0
        assert stats.total_revenue == 0.0

    def test_store_failure_returns_none(self, tmp_path, cache, clock):
        """Test a failed read yields None rather than zeros."""
        empty = Store.from_url(f"sqlite:///{tmp_path / 'empty.db'}")
        ledger = OrderLedger(empty, cache, clock=clock)

        assert ledger.get_dashboard_stats(uuid4()) is None
        empty.dispose()

    def test_malformed_id_returns_none(self, ledger):
        assert ledger.get_dashboard_stats("not-a-uuid") is None


class TestPlaceOrder:
    """Tests for order placement."""

    def test_place_order(self, ledger, company, cache):
        result = ledger.place_order(order_payload(company["id"]))

        assert result.success is True
        assert re.fullmatch(r"[A-Z]{4}\d{4}", result.data["order_id"])

        orders = ledger.list_company_orders(company["id"])
        assert len(orders) == 1
        assert orders[0]["status"] == "pending"
        assert orders[0]["items"][0]["product_name"] == "Margherita"

        assert ORDERS_PATH in cache.invalidated_paths
        assert DASHBOARD_PATH in cache.invalidated_paths
        assert HISTORY_PATH in cache.invalidated_paths
        assert "/pizzaria-do-ze" in cache.invalidated_paths

    def test_closed_restaurant(self, ledger, tenants, company):
        tenants.set_open(company["id"], False)

        result = ledger.place_order(order_payload(company["id"]))

        assert result.success is False
        assert result.code == "VALIDATION_ERROR"
        assert result.error == "O restaurante está fechado no momento."

    def test_unknown_company(self, ledger):
        result = ledger.place_order(order_payload(str(uuid4())))

        assert result.success is False
        assert result.code == "NOT_FOUND"

    def test_unknown_user_becomes_guest(self, ledger, company):
        result = ledger.place_order(order_payload(company["id"], user_id=str(uuid4())))

        assert result.success is True
        assert ledger.list_company_orders(company["id"])[0]["user_id"] is None

    def test_empty_items_rejected(self, ledger, company):
        result = ledger.place_order(order_payload(company["id"], items=[]))

        assert result.success is False
        assert result.code == "VALIDATION_ERROR"

    def test_code_collision_exhausts_attempts(self, store, cache, company):
        """Test a generator that keeps colliding gives up with a conflict."""
        ledger = OrderLedger(store, cache, code_generator=lambda: "ABCD1234")

        assert ledger.place_order(order_payload(company["id"])).success is True
        result = ledger.place_order(order_payload(company["id"]))

        assert result.success is False
        assert result.code == "CONFLICT"
        assert result.error == "Failed to generate unique Order ID"

    def test_generate_order_code_format(self):
        code = generate_order_code(random.Random(42))
        assert re.fullmatch(r"[A-Z]{4}\d{4}", code)


class TestCustomerOrders:
    """Tests for customer order history."""

    @pytest.fixture
    def customer(self, credentials):
        result = credentials.register_customer("Maria", "12345678900", "segredo")
        return Identity.from_user_data(result.data)

    def test_no_identity_is_unauthorized(self, ledger):
        result = ledger.get_customer_orders(None)

        assert result.success is False
        assert result.code == "UNAUTHORIZED"

    def test_orders_include_company(self, ledger, company, customer):
        ledger.place_order(order_payload(company["id"], user_id=str(customer.user_id)))

        result = ledger.get_customer_orders(customer)

        assert result.success is True
        assert len(result.data) == 1
        assert result.data[0]["company"]["slug"] == "pizzaria-do-ze"
        assert result.data[0]["user_id"] == str(customer.user_id)

    def test_other_customers_orders_hidden(self, ledger, store, company, customer):
        add_order(store, company["id"], "AAAA0001", 10)

        result = ledger.get_customer_orders(customer)

        assert result.success is True
        assert result.data == []

    def test_store_failure_degrades_to_empty(self, tmp_path, cache, customer):
        empty = Store.from_url(f"sqlite:///{tmp_path / 'empty.db'}")

        result = OrderLedger(empty, cache).get_customer_orders(customer)

        assert result.success is True
        assert result.data == []
        empty.dispose()


class TestOrderCoupons:
    """Tests for coupon redemption on placement."""

    @pytest.fixture
    def coupon(self, offers, company):
        result = offers.create_coupon(
            company["id"], {"code": "bemvindo", "type": "percentage", "value": 10, "usage_limit": 1}
        )
        assert result.success
        return result.data

    def test_discount_applied_to_stored_total(self, ledger, offers, company, coupon, cache):
        result = ledger.place_order(order_payload(company["id"], coupon_code="BemVindo"))

        assert result.success is True
        order = ledger.list_company_orders(company["id"])[0]
        assert order["discount"] == 9.0
        assert order["total"] == 81.0
        assert order["coupon_id"] == coupon["id"]
        assert offers.list_coupons(company["id"])[0]["usage_count"] == 1
        assert COUPONS_PATH in cache.invalidated_paths

    def test_exhausted_coupon_rejects_order(self, ledger, company, coupon):
        """Test the last use of a coupon goes to one order only."""
        assert ledger.place_order(order_payload(company["id"], coupon_code="BEMVINDO")).success

        result = ledger.place_order(order_payload(company["id"], coupon_code="BEMVINDO"))

        assert result.success is False
        assert result.code == "VALIDATION_ERROR"
        assert result.error == "Limite de uso do cupom excedido."
        assert len(ledger.list_company_orders(company["id"])) == 1

    def test_unknown_coupon_rejects_order(self, ledger, company):
        result = ledger.place_order(order_payload(company["id"], coupon_code="NAOEXISTE"))

        assert result.success is False
        assert result.error == "Cupom inválido ou não encontrado."
        assert ledger.list_company_orders(company["id"]) == []

    def test_client_discount_is_ignored(self, ledger, company):
        """Test a discount sent without a coupon does not lower the total."""
        result = ledger.place_order(order_payload(company["id"], discount=50))

        assert result.success is True
        order = ledger.list_company_orders(company["id"])[0]
        assert order["discount"] == 0.0
        assert order["total"] == 90.0
        assert order["coupon_id"] is None

    def test_deleted_coupon_keeps_order_discount(self, ledger, offers, company, coupon):
        ledger.place_order(order_payload(company["id"], coupon_code="BEMVINDO"))

        assert offers.delete_coupon(coupon["id"], company["id"]).success is True

        order = ledger.list_company_orders(company["id"])[0]
        assert order["discount"] == 9.0
        assert order["coupon_id"] is None
