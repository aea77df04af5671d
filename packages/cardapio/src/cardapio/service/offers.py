"""
Offer Book

Discount coupons and product promotions of one tenant.

Coupons are validated against an order total and redeemed when an order is
placed; promotions set a time-boxed price on a product shown by the
storefront. Mutations follow the catalog ownership rule: a missing row and
a row owned by another tenant produce the same error.
"""

import logging
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError

from appcore.clock import Clock, as_local, local_now
from appcore.db import Store
from cardapio.cache.base import CacheBackend
from cardapio.cache.keys import COUPONS_PATH, PROMOTIONS_PATH, storefront_path
from cardapio.contracts.errors import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ServiceError,
    ValidationError,
)
from cardapio.contracts.payloads import CouponCreate, PromotionCreate, PromotionUpdate
from cardapio.contracts.types import CouponType
from cardapio.persistence.models import Coupon
from cardapio.persistence.repo import CardapioRepository
from cardapio.service.base import PendingInvalidation, as_uuid, service_action, write_session

logger = logging.getLogger(__name__)

COUPON_ACCESS_DENIED = "Coupon not found or access denied"
PROMOTION_ACCESS_DENIED = "Promotion not found or access denied"
PRODUCT_NOT_OWNED = "Produto não encontrado ou não pertence a esta empresa"

INVALID_COUPON = "Cupom inválido ou não encontrado."
COUPON_NOT_STARTED = "Cupom ainda não está ativo."
COUPON_EXPIRED = "Cupom expirado."
COUPON_EXHAUSTED = "Limite de uso do cupom excedido."

CENT = Decimal("0.01")


def _brl(value: Decimal) -> str:
    return f"{value:.2f}".replace(".", ",")


def _decimal(value: Decimal | float | int) -> Decimal:
    return value if isinstance(value, Decimal) else Decimal(str(value))


def apply_coupon(coupon: Coupon, order_total: Decimal | float, now: datetime) -> Decimal:
    """
    Discount a coupon grants on an order total at `now`.

    Checks run in order: start date, expiration, usage limit, minimum order.
    Percentage discounts are capped by max_discount; no discount exceeds the
    order total.

    Raises:
        ValidationError: the coupon cannot be used for this order
    """
    total = _decimal(order_total)

    if coupon.start_date and now < coupon.start_date:
        raise ValidationError(COUPON_NOT_STARTED)
    if coupon.expiration_date and now > coupon.expiration_date:
        raise ValidationError(COUPON_EXPIRED)
    if coupon.usage_limit is not None and coupon.usage_count >= coupon.usage_limit:
        raise ValidationError(COUPON_EXHAUSTED)
    if coupon.min_order_value is not None and total < _decimal(coupon.min_order_value):
        raise ValidationError(
            f"Valor mínimo para este cupom é R$ {_brl(_decimal(coupon.min_order_value))}."
        )

    value = _decimal(coupon.value)
    if coupon.type == CouponType.PERCENTAGE.value:
        discount = total * value / 100
        if coupon.max_discount is not None:
            discount = min(discount, _decimal(coupon.max_discount))
    else:
        discount = value

    return min(discount, total).quantize(CENT, rounding=ROUND_HALF_UP)


def redeem_coupon(
    repo: CardapioRepository,
    company_id: UUID,
    code: str,
    order_total: Decimal | float,
    now: datetime,
) -> tuple[Coupon, Decimal]:
    """
    Validate a coupon and count one use of it, in the caller's transaction.

    The usage increment is conditional on the limit, so two orders racing
    for the last use cannot both get it.
    """
    coupon = repo.get_active_coupon(company_id, code)
    if not coupon:
        raise ValidationError(INVALID_COUPON)

    discount = apply_coupon(coupon, order_total, now)
    if not repo.increment_coupon_usage(coupon.id):
        raise ValidationError(COUPON_EXHAUSTED)
    return coupon, discount


class OfferBook:
    """Tenant-scoped coupons and promotions."""

    def __init__(self, store: Store, cache: CacheBackend, clock: Clock = local_now):
        self.store = store
        self.cache = cache
        self.clock = clock

    # =========================================================================
    # Coupons
    # =========================================================================

    def list_coupons(self, company_id: str | UUID) -> list[dict[str, Any]]:
        """Coupons of a company, newest first. Failures return []."""
        try:
            company_uuid = as_uuid(company_id, NotFoundError())
            with self.store.session() as db:
                return [c.to_dict() for c in CardapioRepository(db).list_coupons(company_uuid)]
        except ServiceError:
            return []
        except SQLAlchemyError as e:
            logger.error(f"Error fetching coupons: {e}", exc_info=True)
            return []

    @service_action("Erro ao criar cupom")
    def create_coupon(
        self,
        company_id: str | UUID,
        payload: CouponCreate | dict[str, Any],
    ) -> dict[str, Any]:
        """Create an active coupon. Codes are unique per company, ignoring case."""
        company_uuid = as_uuid(company_id, NotFoundError("Company not found"))
        if not isinstance(payload, CouponCreate):
            payload = CouponCreate.model_validate(payload)

        fields = payload.model_dump()
        fields["type"] = payload.type.value
        for key in ("start_date", "expiration_date"):
            if fields[key] is not None:
                fields[key] = as_local(fields[key])

        with write_session(self.store, self.cache) as (db, invalidation):
            repo = CardapioRepository(db)
            if not repo.get_company_by_id(company_uuid):
                raise NotFoundError("Company not found")
            if repo.coupon_code_exists(company_uuid, payload.code):
                raise ConflictError("Já existe um cupom com este código.")

            data = repo.create_coupon(company_uuid, {**fields, "is_active": True}).to_dict()
            invalidation.paths(COUPONS_PATH)

        logger.info("Created coupon", extra={"tenant_id": str(company_uuid), "code": data["code"]})
        return data

    @service_action("Erro ao atualizar status do cupom")
    def toggle_coupon(self, coupon_id: str | UUID, company_id: str | UUID) -> dict[str, Any]:
        coupon_uuid = as_uuid(coupon_id, ForbiddenError(COUPON_ACCESS_DENIED))
        company_uuid = as_uuid(company_id, ForbiddenError(COUPON_ACCESS_DENIED))

        with write_session(self.store, self.cache) as (db, invalidation):
            repo = CardapioRepository(db)
            if not repo.toggle_coupon_owned(coupon_uuid, company_uuid):
                raise ForbiddenError(COUPON_ACCESS_DENIED)

            data = db.get(Coupon, coupon_uuid).to_dict()
            invalidation.paths(COUPONS_PATH)

        return data

    @service_action("Erro ao excluir cupom")
    def delete_coupon(self, coupon_id: str | UUID, company_id: str | UUID) -> None:
        """Delete a coupon. Orders that used it keep their discount."""
        coupon_uuid = as_uuid(coupon_id, ForbiddenError(COUPON_ACCESS_DENIED))
        company_uuid = as_uuid(company_id, ForbiddenError(COUPON_ACCESS_DENIED))

        with write_session(self.store, self.cache) as (db, invalidation):
            if not CardapioRepository(db).delete_coupon_owned(coupon_uuid, company_uuid):
                raise ForbiddenError(COUPON_ACCESS_DENIED)
            invalidation.paths(COUPONS_PATH)

    @service_action("Erro ao validar cupom.")
    def validate_coupon(
        self,
        code: str,
        company_id: str | UUID,
        order_total: float,
    ) -> dict[str, Any]:
        """
        Check a coupon against an order total without using it.

        Returns:
            {"discount": <amount>, "coupon": <coupon>}
        """
        company_uuid = as_uuid(company_id, ValidationError(INVALID_COUPON))
        if not (code or "").strip():
            raise ValidationError(INVALID_COUPON)

        with self.store.session() as db:
            coupon = CardapioRepository(db).get_active_coupon(company_uuid, code)
            if not coupon:
                raise ValidationError(INVALID_COUPON)

            discount = apply_coupon(coupon, order_total, self.clock())
            return {"discount": float(discount), "coupon": coupon.to_dict()}

    # =========================================================================
    # Promotions
    # =========================================================================

    def list_promotions(self, company_id: str | UUID) -> list[dict[str, Any]]:
        """Promotions with their product, latest start first. Failures return []."""
        try:
            company_uuid = as_uuid(company_id, NotFoundError())
            with self.store.session() as db:
                return [p.to_dict() for p in CardapioRepository(db).list_promotions(company_uuid)]
        except ServiceError:
            return []
        except SQLAlchemyError as e:
            logger.error(f"Error fetching promotions: {e}", exc_info=True)
            return []

    @service_action("Failed to create promotion")
    def create_promotion(
        self,
        company_id: str | UUID,
        payload: PromotionCreate | dict[str, Any],
    ) -> dict[str, Any]:
        """Create a promotion on one of the company's own products."""
        company_uuid = as_uuid(company_id, NotFoundError("Company not found"))
        if not isinstance(payload, PromotionCreate):
            payload = PromotionCreate.model_validate(payload)

        with write_session(self.store, self.cache) as (db, invalidation):
            repo = CardapioRepository(db)
            company = repo.get_company_by_id(company_uuid)
            if not company:
                raise NotFoundError("Company not found")
            if not repo.get_product(payload.product_id, company_uuid):
                raise ForbiddenError(PRODUCT_NOT_OWNED)

            promotion = repo.create_promotion(company_uuid, _promotion_fields(payload))
            data = repo.get_promotion(promotion.id, company_uuid).to_dict()
            _invalidate_promotions(invalidation, company.slug)

        return data

    @service_action("Failed to update promotion")
    def update_promotion(
        self,
        promotion_id: str | UUID,
        company_id: str | UUID,
        payload: PromotionUpdate | dict[str, Any],
    ) -> dict[str, Any]:
        """Replace a promotion's product, price, dates and status."""
        promotion_uuid = as_uuid(promotion_id, ForbiddenError(PROMOTION_ACCESS_DENIED))
        company_uuid = as_uuid(company_id, ForbiddenError(PROMOTION_ACCESS_DENIED))
        if not isinstance(payload, PromotionUpdate):
            payload = PromotionUpdate.model_validate(payload)

        with write_session(self.store, self.cache) as (db, invalidation):
            repo = CardapioRepository(db)
            if not repo.get_product(payload.product_id, company_uuid):
                raise ForbiddenError(PRODUCT_NOT_OWNED)
            if not repo.update_promotion_owned(
                promotion_uuid, company_uuid, _promotion_fields(payload)
            ):
                raise ForbiddenError(PROMOTION_ACCESS_DENIED)

            data = repo.get_promotion(promotion_uuid, company_uuid).to_dict()
            _invalidate_promotions(invalidation, repo.get_company_by_id(company_uuid).slug)

        return data

    @service_action("Failed to toggle promotion status")
    def toggle_promotion(self, promotion_id: str | UUID, company_id: str | UUID) -> dict[str, Any]:
        promotion_uuid = as_uuid(promotion_id, ForbiddenError(PROMOTION_ACCESS_DENIED))
        company_uuid = as_uuid(company_id, ForbiddenError(PROMOTION_ACCESS_DENIED))

        with write_session(self.store, self.cache) as (db, invalidation):
            repo = CardapioRepository(db)
            if not repo.toggle_promotion_owned(promotion_uuid, company_uuid):
                raise ForbiddenError(PROMOTION_ACCESS_DENIED)

            data = repo.get_promotion(promotion_uuid, company_uuid).to_dict()
            _invalidate_promotions(invalidation, repo.get_company_by_id(company_uuid).slug)

        return data

    @service_action("Failed to delete promotion")
    def delete_promotion(self, promotion_id: str | UUID, company_id: str | UUID) -> None:
        promotion_uuid = as_uuid(promotion_id, ForbiddenError(PROMOTION_ACCESS_DENIED))
        company_uuid = as_uuid(company_id, ForbiddenError(PROMOTION_ACCESS_DENIED))

        with write_session(self.store, self.cache) as (db, invalidation):
            repo = CardapioRepository(db)
            if not repo.delete_promotion_owned(promotion_uuid, company_uuid):
                raise ForbiddenError(PROMOTION_ACCESS_DENIED)
            _invalidate_promotions(invalidation, repo.get_company_by_id(company_uuid).slug)


def _promotion_fields(payload: PromotionCreate) -> dict[str, Any]:
    return {
        "product_id": payload.product_id,
        "promotional_price": payload.promotional_price,
        "start_date": as_local(payload.start_date),
        "end_date": as_local(payload.end_date),
        "is_active": payload.is_active,
    }


def _invalidate_promotions(invalidation: PendingInvalidation, slug: str) -> None:
    invalidation.paths(PROMOTIONS_PATH, storefront_path(slug))
