"""
Tenant Registry

Provisions companies (tenants), resolves them by slug for storefront
routing, and applies sparse updates to their settings.
"""

import logging
from typing import Any
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError

from appcore.db import Store
from appcore.security import PasswordHasher
from cardapio.cache.base import CacheBackend
from cardapio.cache.keys import (
    ADMIN_PATH,
    COMPANY_INFO_PATH,
    DASHBOARD_PATH,
    cache_key,
    company_slug_tag,
    company_tag,
    path_tag,
    storefront_path,
)
from cardapio.contracts.errors import ConflictError, NotFoundError, ServiceError
from cardapio.contracts.payloads import CompanyCreate, CompanyUpdate
from cardapio.contracts.types import UserRole
from cardapio.persistence.models import Company
from cardapio.persistence.repo import CardapioRepository
from cardapio.service.base import PendingInvalidation, as_uuid, service_action, write_session
from cardapio.service.credentials import normalize_email
from cardapio.service.identity import Identity, require_admin

logger = logging.getLogger(__name__)

DEFAULT_CACHE_TTL = 300

# Fields exposed by the public storefront directory
STOREFRONT_FIELDS = (
    "id",
    "name",
    "slug",
    "description",
    "profile_image",
    "banner_image",
    "address",
    "phone",
    "is_open",
    "allows_delivery",
    "allows_pickup",
)


class TenantRegistry:
    """Company provisioning, lookup and settings updates."""

    def __init__(
        self,
        store: Store,
        cache: CacheBackend,
        hasher: PasswordHasher,
        cache_ttl: int = DEFAULT_CACHE_TTL,
    ):
        self.store = store
        self.cache = cache
        self.hasher = hasher
        self.cache_ttl = cache_ttl

    # =========================================================================
    # Provisioning
    # =========================================================================

    @service_action("Failed to create company")
    def create_company(
        self,
        actor: Identity | None,
        name: str,
        slug: str,
        email: str,
        password: str,
        **extra: Any,
    ) -> dict[str, Any]:
        """
        Create a company together with its owner account.

        Both rows are written in one transaction: a failure on either leaves
        neither behind.

        Args:
            actor: Administrative identity performing the call
            name: Display name
            slug: Unique storefront slug
            email: Owner login e-mail
            password: Owner password (hashed before storage)
            **extra: Optional CompanyCreate fields overriding the defaults
        """
        require_admin(actor)

        payload = CompanyCreate(name=name, slug=slug, email=email, password=password, **extra)
        owner_email = normalize_email(payload.email)
        password_hash = self.hasher.hash(payload.password)

        with write_session(self.store, self.cache) as (db, invalidation):
            repo = CardapioRepository(db)

            if repo.slug_exists(payload.slug):
                raise ConflictError("Slug already in use")
            if repo.email_exists(owner_email):
                raise ConflictError("Email already in use")

            company = repo.create_company(
                name=payload.name,
                slug=payload.slug,
                description=payload.description or f"Restaurante {payload.name}",
                profile_image=payload.profile_image,
                banner_image=payload.banner_image,
                phone=payload.phone,
                whatsapp=payload.whatsapp,
                minimum_order=payload.minimum_order,
                address=payload.address,
                business_hours=payload.business_hours,
                payment_methods=[m.value for m in payload.payment_methods],
                allows_delivery=payload.allows_delivery,
                allows_pickup=payload.allows_pickup,
            )
            repo.create_user(
                role=UserRole.COMPANY_OWNER,
                password_hash=password_hash,
                name=f"Admin {payload.name}",
                email=owner_email,
                company_id=company.id,
            )
            data = company.to_dict()
            invalidation.paths(ADMIN_PATH)

        logger.info(
            "Created company",
            extra={"tenant_id": data["id"], "slug": data["slug"], "admin_id": str(actor.user_id)},
        )
        return data

    # =========================================================================
    # Lookups
    # =========================================================================

    def get_company_by_slug(self, slug: str) -> dict[str, Any] | None:
        """
        Resolve a tenant by slug. Invoked on every storefront request.

        Cached per slug and registered under the storefront page path, so
        invalidating that page drops it too. Misses are not cached. Failures
        return None.
        """

        def load() -> dict[str, Any] | None:
            with self.store.session() as db:
                company = CardapioRepository(db).get_company_by_slug(slug)
                return company.to_dict() if company else None

        try:
            return self.cache.remember(
                cache_key("company_by_slug", slug),
                self.cache_ttl,
                [company_slug_tag(slug), path_tag(storefront_path(slug))],
                load,
            )
        except SQLAlchemyError as e:
            logger.error(f"Error fetching company by slug: {e}", extra={"slug": slug}, exc_info=True)
            return None

    def get_company_by_id(self, company_id: str | UUID) -> dict[str, Any] | None:
        """Admin lookup by id. Cached per id; failures return None."""
        try:
            company_uuid = as_uuid(company_id, NotFoundError())
        except ServiceError:
            return None

        def load() -> dict[str, Any] | None:
            with self.store.session() as db:
                company = CardapioRepository(db).get_company_by_id(company_uuid)
                return company.to_dict() if company else None

        try:
            return self.cache.remember(
                cache_key("company_by_id", company_uuid),
                self.cache_ttl,
                [company_tag(company_uuid)],
                load,
            )
        except SQLAlchemyError as e:
            logger.error(
                f"Error fetching company by id: {e}",
                extra={"tenant_id": str(company_uuid)},
                exc_info=True,
            )
            return None

    def list_companies(self, actor: Identity | None) -> list[dict[str, Any]]:
        """
        Administrative listing, newest first, each company with its users.

        Degrades to an empty list on any failure (including a non-admin
        actor) so the admin view always renders.
        """
        try:
            require_admin(actor)
            with self.store.session() as db:
                companies = CardapioRepository(db).list_companies_with_users()
                return [
                    {**company.to_dict(), "users": [u.to_dict() for u in company.users]}
                    for company in companies
                ]
        except ServiceError as e:
            logger.warning(f"Company listing refused: {e.code}")
            return []
        except SQLAlchemyError as e:
            logger.error(f"Failed to get companies: {e}", exc_info=True)
            return []

    def list_storefronts(self) -> list[dict[str, Any]]:
        """Public directory of storefronts ordered by name. Failures return []."""
        try:
            with self.store.session() as db:
                companies = CardapioRepository(db).list_companies_by_name()
                return [_storefront_view(c) for c in companies]
        except SQLAlchemyError as e:
            logger.error(f"Error fetching companies: {e}", exc_info=True)
            return []

    # =========================================================================
    # Updates
    # =========================================================================

    @service_action("Erro interno ao atualizar")
    def update_company(
        self,
        company_id: str | UUID,
        patch: CompanyUpdate | dict[str, Any],
    ) -> dict[str, Any]:
        """
        Sparse patch: only fields present in the request are written.

        Absent fields (and fields given as None) are left untouched.
        """
        company_uuid = as_uuid(company_id, NotFoundError("Empresa não encontrada."))
        if not isinstance(patch, CompanyUpdate):
            patch = CompanyUpdate.model_validate(patch)

        fields = patch.model_dump(exclude_unset=True, exclude_none=True, mode="json")

        with write_session(self.store, self.cache) as (db, invalidation):
            repo = CardapioRepository(db)
            company = repo.get_company_by_id(company_uuid)
            if not company:
                raise NotFoundError("Empresa não encontrada.")

            repo.update_company(company, fields)
            data = {"id": str(company.id), "name": company.name, "slug": company.slug}
            _invalidate_company(invalidation, company_uuid, company.slug, COMPANY_INFO_PATH)

        logger.info(
            "Updated company",
            extra={"tenant_id": data["id"], "fields": sorted(fields)},
        )
        return data

    @service_action("Failed to update restaurant status")
    def set_open(self, company_id: str | UUID, is_open: bool) -> dict[str, Any]:
        """Open or close a restaurant for orders."""
        company_uuid = as_uuid(company_id, NotFoundError("Company not found"))

        with write_session(self.store, self.cache) as (db, invalidation):
            repo = CardapioRepository(db)
            company = repo.get_company_by_id(company_uuid)
            if not company:
                raise NotFoundError("Company not found")

            repo.update_company(company, {"is_open": bool(is_open)})
            data = company.to_dict()
            _invalidate_company(invalidation, company_uuid, company.slug, DASHBOARD_PATH)

        return data


def _invalidate_company(
    invalidation: PendingInvalidation, company_id: UUID, slug: str, page_path: str
) -> None:
    invalidation.tags(company_slug_tag(slug), company_tag(company_id))
    invalidation.paths(page_path, storefront_path(slug))


def _storefront_view(company: Company) -> dict[str, Any]:
    data = company.to_dict()
    return {key: data[key] for key in STOREFRONT_FIELDS}
