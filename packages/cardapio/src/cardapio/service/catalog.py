"""
Menu Catalog

Categories and products of one tenant.

Mutations carry the caller's company_id and only touch rows owned by it.
A missing row and a row owned by another tenant produce the same error.
"""

import logging
from typing import Any
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError

from appcore.clock import Clock, local_now
from appcore.db import Store
from cardapio.cache.base import CacheBackend
from cardapio.cache.keys import (
    CATEGORIES_PATH,
    PRODUCTS_PATH,
    PROMOTIONS_PATH,
    cache_key,
    categories_tag,
    storefront_path,
)
from cardapio.contracts.errors import ForbiddenError, NotFoundError, ServiceError, ValidationError
from cardapio.contracts.payloads import ProductCreate, ProductUpdate
from cardapio.persistence.repo import CardapioRepository
from cardapio.service.base import PendingInvalidation, as_uuid, service_action, write_session

logger = logging.getLogger(__name__)

DEFAULT_CACHE_TTL = 300

CATEGORY_ACCESS_DENIED = "Category not found or access denied"
PRODUCT_ACCESS_DENIED = "Product not found or access denied"

# Product columns that cannot be cleared by a patch
REQUIRED_PRODUCT_FIELDS = {"name", "price", "description", "image", "product_type", "is_available"}


def _category_denied() -> ForbiddenError:
    return ForbiddenError(CATEGORY_ACCESS_DENIED)


def _product_denied() -> ForbiddenError:
    return ForbiddenError(PRODUCT_ACCESS_DENIED)


def _invalidate_categories(invalidation: PendingInvalidation, company_id: UUID) -> None:
    invalidation.tags(categories_tag(company_id))
    invalidation.paths(CATEGORIES_PATH)


def _invalidate_products(invalidation: PendingInvalidation, company_id: UUID, slug: str) -> None:
    # Category listings carry product counts; promotions embed products
    invalidation.tags(categories_tag(company_id))
    invalidation.paths(PRODUCTS_PATH, PROMOTIONS_PATH, storefront_path(slug))


class MenuCatalog:
    """Tenant-scoped categories and products."""

    def __init__(
        self,
        store: Store,
        cache: CacheBackend,
        cache_ttl: int = DEFAULT_CACHE_TTL,
        clock: Clock = local_now,
    ):
        self.store = store
        self.cache = cache
        self.cache_ttl = cache_ttl
        self.clock = clock

    # =========================================================================
    # Categories
    # =========================================================================

    def list_categories(self, company_id: str | UUID) -> list[dict[str, Any]]:
        """
        Categories of a company ordered by `order`, each with `product_count`.

        Cached per company for cache_ttl seconds and invalidated by every
        category or product write of that company. Failures return [].
        """
        try:
            company_uuid = as_uuid(company_id, NotFoundError())
        except ServiceError:
            return []

        def load() -> list[dict[str, Any]]:
            with self.store.session() as db:
                rows = CardapioRepository(db).list_categories_with_counts(company_uuid)
                return [category.to_dict(product_count=count) for category, count in rows]

        try:
            return self.cache.remember(
                cache_key("categories", company_uuid),
                self.cache_ttl,
                [categories_tag(company_uuid)],
                load,
            )
        except SQLAlchemyError as e:
            logger.error(
                f"Error fetching categories: {e}",
                extra={"tenant_id": str(company_uuid)},
                exc_info=True,
            )
            return []

    @service_action("Failed to create category")
    def create_category(self, company_id: str | UUID, name: str, order: int = 0) -> dict[str, Any]:
        company_uuid = as_uuid(company_id, NotFoundError("Company not found"))
        name = (name or "").strip()
        if not name:
            raise ValidationError("Category name is required")

        with write_session(self.store, self.cache) as (db, invalidation):
            repo = CardapioRepository(db)
            if not repo.get_company_by_id(company_uuid):
                raise NotFoundError("Company not found")

            category = repo.create_category(company_uuid, name, int(order))
            data = category.to_dict(product_count=0)
            _invalidate_categories(invalidation, company_uuid)

        return data

    @service_action("Failed to update category")
    def update_category(
        self,
        category_id: str | UUID,
        company_id: str | UUID,
        name: str,
        order: int,
    ) -> dict[str, Any]:
        """Rename/reorder a category owned by the company."""
        category_uuid = as_uuid(category_id, _category_denied())
        company_uuid = as_uuid(company_id, _category_denied())
        name = (name or "").strip()
        if not name:
            raise ValidationError("Category name is required")

        with write_session(self.store, self.cache) as (db, invalidation):
            repo = CardapioRepository(db)
            if not repo.update_category_owned(category_uuid, company_uuid, name, int(order)):
                raise _category_denied()

            data = repo.get_category(category_uuid, company_uuid).to_dict()
            _invalidate_categories(invalidation, company_uuid)

        return data

    @service_action("Failed to delete category")
    def delete_category(self, category_id: str | UUID, company_id: str | UUID) -> None:
        """
        Delete a category owned by the company.

        Products of the category are kept and become uncategorized.
        """
        category_uuid = as_uuid(category_id, _category_denied())
        company_uuid = as_uuid(company_id, _category_denied())

        with write_session(self.store, self.cache) as (db, invalidation):
            if not CardapioRepository(db).delete_category_owned(category_uuid, company_uuid):
                raise _category_denied()
            _invalidate_categories(invalidation, company_uuid)

    # =========================================================================
    # Products
    # =========================================================================

    def list_products(self, company_id: str | UUID) -> list[dict[str, Any]]:
        """Products of a company ordered by name. Failures return []."""
        try:
            company_uuid = as_uuid(company_id, NotFoundError())
            with self.store.session() as db:
                return [p.to_dict() for p in CardapioRepository(db).list_products(company_uuid)]
        except ServiceError:
            return []
        except SQLAlchemyError as e:
            logger.error(f"Error fetching products: {e}", exc_info=True)
            return []

    def list_store_products(self, company_id: str | UUID) -> list[dict[str, Any]]:
        """
        Storefront view of the products, ordered by name.

        A product with a promotion in effect now is flagged `is_promotion`
        and carries its `promotional_price`. Failures return [].
        """
        try:
            company_uuid = as_uuid(company_id, NotFoundError())
            with self.store.session() as db:
                repo = CardapioRepository(db)
                promotions = repo.active_promotions(company_uuid, self.clock())
                products = []
                for product in repo.list_products(company_uuid):
                    data = product.to_dict()
                    promotion = promotions.get(product.id)
                    if promotion is not None:
                        data["is_promotion"] = True
                        data["promotional_price"] = float(promotion.promotional_price)
                    products.append(data)
                return products
        except ServiceError:
            return []
        except SQLAlchemyError as e:
            logger.error(f"Error fetching store products: {e}", exc_info=True)
            return []

    @service_action("Failed to create product")
    def create_product(
        self,
        company_id: str | UUID,
        payload: ProductCreate | dict[str, Any],
    ) -> dict[str, Any]:
        """Create a product in one of the company's own categories."""
        company_uuid = as_uuid(company_id, NotFoundError("Company not found"))
        if not isinstance(payload, ProductCreate):
            payload = ProductCreate.model_validate(payload)

        fields = payload.model_dump(mode="json")
        fields["category_id"] = payload.category_id

        with write_session(self.store, self.cache) as (db, invalidation):
            repo = CardapioRepository(db)
            company = repo.get_company_by_id(company_uuid)
            if not company:
                raise NotFoundError("Company not found")
            if not repo.get_category(payload.category_id, company_uuid):
                raise _category_denied()

            product = repo.create_product(company_uuid, fields)
            data = product.to_dict()
            _invalidate_products(invalidation, company_uuid, company.slug)

        logger.info("Created product", extra={"tenant_id": str(company_uuid), "product_id": data["id"]})
        return data

    @service_action("Failed to update product")
    def update_product(
        self,
        product_id: str | UUID,
        company_id: str | UUID,
        patch: ProductUpdate | dict[str, Any],
    ) -> dict[str, Any]:
        """
        Sparse patch of a product owned by the company.

        Fields present with None clear optional columns (flavors, complements,
        combo config...); required columns cannot be cleared.
        """
        product_uuid = as_uuid(product_id, _product_denied())
        company_uuid = as_uuid(company_id, _product_denied())
        if not isinstance(patch, ProductUpdate):
            patch = ProductUpdate.model_validate(patch)

        fields = patch.model_dump(exclude_unset=True, mode="json")
        cleared = sorted(k for k in REQUIRED_PRODUCT_FIELDS if k in fields and fields[k] is None)
        if cleared:
            raise ValidationError(f"{cleared[0]} cannot be empty")
        if "category_id" in fields:
            fields["category_id"] = patch.category_id

        with write_session(self.store, self.cache) as (db, invalidation):
            repo = CardapioRepository(db)
            if fields.get("category_id") and not repo.get_category(fields["category_id"], company_uuid):
                raise _category_denied()

            if not repo.update_product_owned(product_uuid, company_uuid, fields):
                raise _product_denied()

            data = repo.get_product(product_uuid, company_uuid).to_dict()
            slug = repo.get_company_by_id(company_uuid).slug
            _invalidate_products(invalidation, company_uuid, slug)

        return data

    @service_action("Failed to delete product")
    def delete_product(self, product_id: str | UUID, company_id: str | UUID) -> None:
        product_uuid = as_uuid(product_id, _product_denied())
        company_uuid = as_uuid(company_id, _product_denied())

        with write_session(self.store, self.cache) as (db, invalidation):
            repo = CardapioRepository(db)
            if not repo.delete_product_owned(product_uuid, company_uuid):
                raise _product_denied()
            slug = repo.get_company_by_id(company_uuid).slug
            _invalidate_products(invalidation, company_uuid, slug)
