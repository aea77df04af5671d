"""
Tests for coupons and promotions.
"""

from datetime import datetime
from decimal import Decimal
from uuid import uuid4

import pytest

from cardapio.cache.keys import COUPONS_PATH, PROMOTIONS_PATH
from cardapio.contracts.errors import ValidationError
from cardapio.persistence import Coupon
from cardapio.service import apply_coupon
from cardapio.service.offers import (
    COUPON_ACCESS_DENIED,
    PRODUCT_NOT_OWNED,
    PROMOTION_ACCESS_DENIED,
)

NOW = datetime(2024, 5, 10, 15, 30)


def make_coupon(**overrides):
    fields = {
        "code": "BEMVINDO",
        "type": "percentage",
        "value": Decimal("10"),
        "min_order_value": None,
        "max_discount": None,
        "start_date": None,
        "expiration_date": None,
        "usage_limit": None,
        "usage_count": 0,
        "is_active": True,
    }
    fields.update(overrides)
    return Coupon(**fields)


@pytest.fixture
def coupon(offers, company):
    result = offers.create_coupon(company["id"], {"code": " bemvindo ", "value": 10})
    assert result.success
    return result.data


@pytest.fixture
def product(catalog, company):
    category = catalog.create_category(company["id"], "Pizzas").data
    result = catalog.create_product(
        company["id"], {"category_id": category["id"], "name": "Margherita", "price": 45.9}
    )
    assert result.success
    return result.data


@pytest.fixture
def foreign_product(catalog, other_company):
    category = catalog.create_category(other_company["id"], "Lanches").data
    return catalog.create_product(
        other_company["id"], {"category_id": category["id"], "name": "X-Burger", "price": 30}
    ).data


def promotion_payload(product_id, **overrides):
    payload = {
        "product_id": product_id,
        "promotional_price": 39.9,
        "start_date": "2024-05-01T00:00:00",
        "end_date": "2024-05-31T23:59:59",
    }
    payload.update(overrides)
    return payload


class TestApplyCoupon:
    """Tests for the discount rules of a coupon."""

    def test_percentage(self):
        assert apply_coupon(make_coupon(), Decimal("90"), NOW) == Decimal("9.00")

    def test_percentage_capped_by_max_discount(self):
        coupon = make_coupon(value=Decimal("50"), max_discount=Decimal("20"))
        assert apply_coupon(coupon, 90, NOW) == Decimal("20.00")

    def test_fixed_value(self):
        coupon = make_coupon(type="fixed", value=Decimal("15"))
        assert apply_coupon(coupon, 90, NOW) == Decimal("15.00")

    def test_discount_never_exceeds_total(self):
        coupon = make_coupon(type="fixed", value=Decimal("100"))
        assert apply_coupon(coupon, 90, NOW) == Decimal("90.00")

    def test_rounded_to_cents(self):
        coupon = make_coupon(value=Decimal("15"))
        assert apply_coupon(coupon, Decimal("33.33"), NOW) == Decimal("5.00")

    def test_not_started(self):
        coupon = make_coupon(start_date=datetime(2024, 5, 11))

        with pytest.raises(ValidationError, match="Cupom ainda não está ativo."):
            apply_coupon(coupon, 90, NOW)

    def test_expired(self):
        coupon = make_coupon(expiration_date=datetime(2024, 5, 10, 15, 29))

        with pytest.raises(ValidationError, match="Cupom expirado."):
            apply_coupon(coupon, 90, NOW)

    def test_usage_limit_reached(self):
        coupon = make_coupon(usage_limit=3, usage_count=3)

        with pytest.raises(ValidationError, match="Limite de uso do cupom excedido."):
            apply_coupon(coupon, 90, NOW)

    def test_minimum_order(self):
        """Test the minimum is reported in Brazilian currency format."""
        coupon = make_coupon(min_order_value=Decimal("100"))

        with pytest.raises(ValidationError) as excinfo:
            apply_coupon(coupon, 90, NOW)
        assert excinfo.value.message == "Valor mínimo para este cupom é R$ 100,00."

    def test_window_bounds_are_inclusive(self):
        coupon = make_coupon(start_date=NOW, expiration_date=NOW, min_order_value=Decimal("90"))
        assert apply_coupon(coupon, 90, NOW) == Decimal("9.00")


class TestCoupons:
    """Tests for coupon management."""

    def test_create_normalizes_code(self, coupon, cache):
        assert coupon["code"] == "BEMVINDO"
        assert coupon["type"] == "percentage"
        assert coupon["usage_count"] == 0
        assert coupon["is_active"] is True
        assert COUPONS_PATH in cache.invalidated_paths

    def test_duplicate_code_ignores_case(self, offers, company, coupon):
        result = offers.create_coupon(company["id"], {"code": "BemVindo", "value": 5})

        assert result.success is False
        assert result.code == "CONFLICT"
        assert result.error == "Já existe um cupom com este código."

    def test_same_code_in_other_company(self, offers, coupon, other_company):
        result = offers.create_coupon(other_company["id"], {"code": "BEMVINDO", "value": 5})
        assert result.success is True

    def test_percentage_over_100_rejected(self, offers, company):
        result = offers.create_coupon(company["id"], {"code": "TUDO", "value": 150})

        assert result.success is False
        assert result.code == "VALIDATION_ERROR"

    def test_expiration_before_start_rejected(self, offers, company):
        result = offers.create_coupon(
            company["id"],
            {
                "code": "X",
                "value": 5,
                "start_date": "2024-06-01T00:00:00",
                "expiration_date": "2024-05-01T00:00:00",
            },
        )

        assert result.success is False
        assert result.code == "VALIDATION_ERROR"

    def test_list_is_tenant_scoped(self, offers, coupon, company, other_company):
        assert [c["code"] for c in offers.list_coupons(company["id"])] == ["BEMVINDO"]
        assert offers.list_coupons(other_company["id"]) == []
        assert offers.list_coupons("not-a-uuid") == []

    def test_toggle(self, offers, company, coupon):
        result = offers.toggle_coupon(coupon["id"], company["id"])

        assert result.success is True
        assert result.data["is_active"] is False
        assert offers.toggle_coupon(coupon["id"], company["id"]).data["is_active"] is True

    def test_cross_tenant_toggle_matches_missing_id(self, offers, coupon, other_company):
        foreign = offers.toggle_coupon(coupon["id"], other_company["id"])
        missing = offers.toggle_coupon(uuid4(), other_company["id"])

        assert foreign.code == "FORBIDDEN"
        assert foreign.error == COUPON_ACCESS_DENIED
        assert (missing.code, missing.error) == (foreign.code, foreign.error)

    def test_delete(self, offers, company, coupon):
        assert offers.delete_coupon(coupon["id"], company["id"]).success is True
        assert offers.list_coupons(company["id"]) == []

    def test_cross_tenant_delete_denied(self, offers, company, coupon, other_company):
        result = offers.delete_coupon(coupon["id"], other_company["id"])

        assert result.success is False
        assert result.error == COUPON_ACCESS_DENIED
        assert len(offers.list_coupons(company["id"])) == 1


class TestValidateCoupon:
    """Tests for checking a coupon against an order total."""

    def test_valid_coupon(self, offers, company, coupon):
        result = offers.validate_coupon("bemvindo", company["id"], 90)

        assert result.success is True
        assert result.data["discount"] == 9.0
        assert result.data["coupon"]["id"] == coupon["id"]

    def test_validation_does_not_count_a_use(self, offers, company, coupon):
        offers.validate_coupon("BEMVINDO", company["id"], 90)
        assert offers.list_coupons(company["id"])[0]["usage_count"] == 0

    def test_unknown_code(self, offers, company):
        result = offers.validate_coupon("NAOEXISTE", company["id"], 90)

        assert result.success is False
        assert result.code == "VALIDATION_ERROR"
        assert result.error == "Cupom inválido ou não encontrado."

    def test_inactive_coupon_is_unknown(self, offers, company, coupon):
        offers.toggle_coupon(coupon["id"], company["id"])

        result = offers.validate_coupon("BEMVINDO", company["id"], 90)

        assert result.error == "Cupom inválido ou não encontrado."

    def test_other_company_coupon_is_unknown(self, offers, coupon, other_company):
        result = offers.validate_coupon("BEMVINDO", other_company["id"], 90)
        assert result.error == "Cupom inválido ou não encontrado."

    def test_not_started(self, offers, company):
        offers.create_coupon(
            company["id"], {"code": "FUTURO", "value": 10, "start_date": "2024-06-01T00:00:00"}
        )

        result = offers.validate_coupon("FUTURO", company["id"], 90)

        assert result.error == "Cupom ainda não está ativo."

    def test_expired(self, offers, company):
        offers.create_coupon(
            company["id"], {"code": "VELHO", "value": 10, "expiration_date": "2024-05-01T00:00:00"}
        )

        result = offers.validate_coupon("VELHO", company["id"], 90)

        assert result.error == "Cupom expirado."

    def test_minimum_order(self, offers, company):
        offers.create_coupon(company["id"], {"code": "MINIMO", "value": 10, "min_order_value": 50})

        result = offers.validate_coupon("MINIMO", company["id"], 49.9)

        assert result.error == "Valor mínimo para este cupom é R$ 50,00."

    def test_fixed_coupon_capped_at_total(self, offers, company):
        offers.create_coupon(company["id"], {"code": "DEZ", "type": "fixed", "value": 10})

        assert offers.validate_coupon("DEZ", company["id"], 8.5).data["discount"] == 8.5


class TestPromotions:
    """Tests for product promotions."""

    @pytest.fixture
    def promotion(self, offers, company, product):
        result = offers.create_promotion(company["id"], promotion_payload(product["id"]))
        assert result.success
        return result.data

    def test_create_includes_product(self, promotion, product, cache):
        assert promotion["promotional_price"] == 39.9
        assert promotion["original_price"] == 45.9
        assert promotion["product"]["name"] == "Margherita"
        assert promotion["is_active"] is True
        assert PROMOTIONS_PATH in cache.invalidated_paths
        assert "/pizzaria-do-ze" in cache.invalidated_paths

    def test_create_on_foreign_product(self, offers, company, foreign_product):
        result = offers.create_promotion(company["id"], promotion_payload(foreign_product["id"]))

        assert result.success is False
        assert result.code == "FORBIDDEN"
        assert result.error == PRODUCT_NOT_OWNED

    def test_end_before_start_rejected(self, offers, company, product):
        result = offers.create_promotion(
            company["id"],
            promotion_payload(product["id"], start_date="2024-06-01T00:00:00"),
        )

        assert result.success is False
        assert result.code == "VALIDATION_ERROR"

    def test_list_latest_start_first(self, offers, company, product, promotion):
        offers.create_promotion(
            company["id"],
            promotion_payload(
                product["id"], start_date="2024-06-01T00:00:00", end_date="2024-06-30T00:00:00"
            ),
        )

        promotions = offers.list_promotions(company["id"])

        assert [p["start_date"] for p in promotions] == [
            "2024-06-01T00:00:00",
            "2024-05-01T00:00:00",
        ]

    def test_update(self, offers, company, product, promotion):
        result = offers.update_promotion(
            promotion["id"], company["id"], promotion_payload(product["id"], promotional_price=35)
        )

        assert result.success is True
        assert result.data["promotional_price"] == 35.0

    def test_cross_tenant_update_denied(self, offers, promotion, other_company, foreign_product):
        result = offers.update_promotion(
            promotion["id"], other_company["id"], promotion_payload(foreign_product["id"])
        )

        assert result.success is False
        assert result.error == PROMOTION_ACCESS_DENIED

    def test_toggle(self, offers, company, promotion):
        result = offers.toggle_promotion(promotion["id"], company["id"])

        assert result.success is True
        assert result.data["is_active"] is False

    def test_delete(self, offers, company, promotion, other_company):
        denied = offers.delete_promotion(promotion["id"], other_company["id"])
        assert denied.error == PROMOTION_ACCESS_DENIED

        assert offers.delete_promotion(promotion["id"], company["id"]).success is True
        assert offers.list_promotions(company["id"]) == []

    def test_deleting_product_removes_promotions(
        self, offers, catalog, company, product, promotion
    ):
        assert catalog.delete_product(product["id"], company["id"]).success is True
        assert offers.list_promotions(company["id"]) == []


class TestStoreProducts:
    """Tests for promotional prices on the storefront."""

    def test_active_promotion_flagged(self, offers, catalog, company, product):
        offers.create_promotion(company["id"], promotion_payload(product["id"]))

        products = catalog.list_store_products(company["id"])

        assert products[0]["is_promotion"] is True
        assert products[0]["promotional_price"] == 39.9
        assert products[0]["price"] == 45.9

    def test_expired_promotion_ignored(self, offers, catalog, company, product):
        offers.create_promotion(
            company["id"],
            promotion_payload(
                product["id"], start_date="2024-04-01T00:00:00", end_date="2024-04-30T00:00:00"
            ),
        )

        assert "is_promotion" not in catalog.list_store_products(company["id"])[0]

    def test_inactive_promotion_ignored(self, offers, catalog, company, product):
        offers.create_promotion(company["id"], promotion_payload(product["id"], is_active=False))

        assert "is_promotion" not in catalog.list_store_products(company["id"])[0]
