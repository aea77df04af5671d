"""
Order Ledger

Read side of a tenant's orders:
- dashboard aggregates (today's orders, pending, revenue, recent orders)
- customer order history
- company order list

Also places new orders from a storefront, redeeming a coupon when one is
given.
"""

import logging
import random
import string
from concurrent.futures import ThreadPoolExecutor
from dataclasses import asdict, dataclass, field
from decimal import Decimal
from typing import Any, Callable
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError

from appcore.clock import Clock, local_midnight, local_now
from appcore.db import Store
from cardapio.cache.base import CacheBackend
from cardapio.cache.keys import (
    COUPONS_PATH,
    DASHBOARD_PATH,
    HISTORY_PATH,
    ORDERS_PATH,
    storefront_path,
)
from cardapio.contracts.errors import (
    ConflictError,
    NotFoundError,
    ServiceError,
    UnauthorizedError,
    ValidationError,
)
from cardapio.contracts.payloads import OrderCreate
from cardapio.contracts.result import ActionResult
from cardapio.contracts.types import OrderStatus
from cardapio.persistence.repo import CardapioRepository
from cardapio.service.base import as_uuid, service_action, write_session
from cardapio.service.identity import Identity
from cardapio.service.offers import redeem_coupon
from cardapio.utils.documents import only_digits

logger = logging.getLogger(__name__)

DEFAULT_RECENT_ORDERS = 5
MAX_ORDER_ID_ATTEMPTS = 3


def generate_order_code(rng: random.Random | None = None) -> str:
    """Short order code: 4 uppercase letters followed by 4 digits (e.g. ABCD1234)."""
    rng = rng or random.Random()
    letters = "".join(rng.choice(string.ascii_uppercase) for _ in range(4))
    digits = "".join(rng.choice(string.digits) for _ in range(4))
    return letters + digits


@dataclass
class DashboardStats:
    """Aggregates shown on a tenant's dashboard."""

    today_orders: int
    pending_orders: int
    today_revenue: float
    total_revenue: float
    recent_orders: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class OrderLedger:
    """
    Order aggregates and history for tenants and customers.

    Args:
        store: Database store
        cache: Read cache (invalidated when orders are placed)
        clock: Wall-clock source defining "today"
        recent_limit: Number of recent orders on the dashboard
        code_generator: Order code factory (tests inject a deterministic one)
    """

    def __init__(
        self,
        store: Store,
        cache: CacheBackend,
        clock: Clock = local_now,
        recent_limit: int = DEFAULT_RECENT_ORDERS,
        code_generator: Callable[[], str] = generate_order_code,
    ):
        self.store = store
        self.cache = cache
        self.clock = clock
        self.recent_limit = recent_limit
        self.code_generator = code_generator

    # =========================================================================
    # Dashboard
    # =========================================================================

    def get_dashboard_stats(self, company_id: str | UUID) -> DashboardStats | None:
        """
        Compute the dashboard aggregates for a company.

        The five reads run concurrently, each on its own session, with no
        snapshot shared between them. Revenue excludes cancelled orders;
        "today" starts at local midnight of self.clock().

        Returns:
            DashboardStats, or None if any read failed. None means "stats
            unavailable", not "no activity".
        """
        try:
            company_uuid = as_uuid(company_id, NotFoundError())
        except ServiceError:
            return None

        today = local_midnight(self.clock())

        reads: dict[str, Callable[[CardapioRepository], Any]] = {
            "today_orders": lambda repo: repo.count_orders_since(company_uuid, today),
            "pending_orders": lambda repo: repo.count_orders_with_status(
                company_uuid, OrderStatus.PENDING
            ),
            "today_revenue": lambda repo: float(repo.sum_revenue(company_uuid, since=today)),
            "total_revenue": lambda repo: float(repo.sum_revenue(company_uuid)),
            "recent_orders": lambda repo: [
                o.to_dict() for o in repo.recent_orders(company_uuid, self.recent_limit)
            ],
        }

        try:
            with ThreadPoolExecutor(max_workers=len(reads), thread_name_prefix="dashboard") as pool:
                futures = {name: pool.submit(self._read, fn) for name, fn in reads.items()}
                results = {name: future.result() for name, future in futures.items()}
        except SQLAlchemyError as e:
            logger.error(
                f"Error fetching dashboard stats: {e}",
                extra={"tenant_id": str(company_uuid)},
                exc_info=True,
            )
            return None

        return DashboardStats(**results)

    def _read(self, fn: Callable[[CardapioRepository], Any]) -> Any:
        with self.store.session() as db:
            return fn(CardapioRepository(db))

    # =========================================================================
    # Order lists
    # =========================================================================

    def get_customer_orders(self, identity: Identity | None) -> ActionResult[list[dict[str, Any]]]:
        """
        Order history of the authenticated customer, newest first.

        No identity is Unauthorized. Store failures degrade to an empty list.
        """
        if identity is None:
            return ActionResult.fail(UnauthorizedError())

        try:
            with self.store.session() as db:
                orders = CardapioRepository(db).list_user_orders(identity.user_id)
                data = [o.to_dict(include_company=True) for o in orders]
        except SQLAlchemyError as e:
            logger.error(
                f"Error fetching customer orders: {e}",
                extra={"user_id": str(identity.user_id)},
                exc_info=True,
            )
            return ActionResult.ok([])

        logger.debug(f"Found {len(data)} orders", extra={"user_id": str(identity.user_id)})
        return ActionResult.ok(data)

    def list_company_orders(self, company_id: str | UUID) -> list[dict[str, Any]]:
        """All orders of a company, newest first. Failures return []."""
        try:
            company_uuid = as_uuid(company_id, NotFoundError())
            with self.store.session() as db:
                return [o.to_dict() for o in CardapioRepository(db).list_company_orders(company_uuid)]
        except ServiceError:
            return []
        except SQLAlchemyError as e:
            logger.error(f"Error fetching orders: {e}", exc_info=True)
            return []

    # =========================================================================
    # Placement
    # =========================================================================

    @service_action("Failed to create order")
    def place_order(self, payload: OrderCreate | dict[str, Any]) -> dict[str, Any]:
        """
        Place an order at an open storefront.

        An unknown user_id (stale session) is demoted to a guest order.

        payload.total is the items total. A coupon_code is validated and
        redeemed in the same transaction; the stored total is net of the
        discount it grants, and a rejected coupon rejects the order.

        Returns:
            {"order_id": <code>}
        """
        if not isinstance(payload, OrderCreate):
            payload = OrderCreate.model_validate(payload)

        with write_session(self.store, self.cache) as (db, invalidation):
            repo = CardapioRepository(db)

            company = repo.get_company_by_id(payload.company_id)
            if not company:
                raise NotFoundError("Company not found")

            user_id = payload.user_id
            if user_id and not repo.get_user_by_id(user_id):
                logger.warning(f"User {user_id} not found, proceeding as guest order")
                user_id = None

            if not company.is_open:
                raise ValidationError("O restaurante está fechado no momento.")

            coupon_id = None
            discount = Decimal("0")
            if payload.coupon_code and payload.coupon_code.strip():
                coupon, discount = redeem_coupon(
                    repo, company.id, payload.coupon_code, payload.total, self.clock()
                )
                coupon_id = coupon.id
                invalidation.paths(COUPONS_PATH)

            order_id = self._unused_order_code(repo)
            repo.create_order(
                order_id,
                company.id,
                {
                    "user_id": user_id,
                    "customer_name": payload.customer_name,
                    "customer_phone": payload.customer_phone,
                    "customer_cpf": only_digits(payload.customer_cpf) or None,
                    "delivery_address": (
                        payload.delivery_address.model_dump() if payload.delivery_address else None
                    ),
                    "items": [item.model_dump(mode="json") for item in payload.items],
                    "total": Decimal(str(payload.total)) - discount,
                    "status": OrderStatus.PENDING.value,
                    "payment_method": payload.payment_method.value,
                    "notes": payload.notes,
                    "discount": discount,
                    "coupon_id": coupon_id,
                    "scheduled_pickup_time": payload.scheduled_pickup_time,
                },
            )
            invalidation.paths(
                ORDERS_PATH, DASHBOARD_PATH, storefront_path(company.slug), HISTORY_PATH
            )

        logger.info(
            "Order placed",
            extra={
                "tenant_id": str(payload.company_id),
                "order_id": order_id,
                "discount": float(discount),
            },
        )
        return {"order_id": order_id}

    def _unused_order_code(self, repo: CardapioRepository) -> str:
        for _ in range(MAX_ORDER_ID_ATTEMPTS):
            code = self.code_generator()
            if not repo.order_id_exists(code):
                return code
        raise ConflictError("Failed to generate unique Order ID")
