"""
Tests for the tenant registry.
"""

from uuid import uuid4

from cardapio.cache.keys import (
    ADMIN_PATH,
    COMPANY_INFO_PATH,
    DASHBOARD_PATH,
    company_slug_tag,
    company_tag,
)
from cardapio.persistence import CardapioRepository
from cardapio.service import Identity


class TestCreateCompany:
    """Tests for company provisioning."""

    def test_create_applies_defaults(self, company, cache):
        """Test a new company gets the blank storefront defaults."""
        assert company["slug"] == "pizzaria-do-ze"
        assert company["description"] == "Restaurante Pizzaria do Zé"
        assert company["phone"] == []
        assert company["payment_methods"] == []
        assert company["minimum_order"] == 0.0
        assert company["profile_image"] == "/placeholder-logo.png"
        assert company["banner_image"] == "/placeholder.jpg"
        assert company["is_open"] is True
        assert ADMIN_PATH in cache.invalidated_paths

    def test_owner_created_with_company(self, company, store):
        """Test the owner account is linked to the new company."""
        with store.session() as db:
            owner = CardapioRepository(db).get_user_by_email("dono@pizzaria.com")
            assert owner.role == "company_owner"
            assert owner.name == "Admin Pizzaria do Zé"
            assert str(owner.company_id) == company["id"]

    def test_duplicate_slug(self, tenants, admin, company):
        result = tenants.create_company(admin, "Outra", "pizzaria-do-ze", "outro@x.com", "x")

        assert result.success is False
        assert result.code == "CONFLICT"
        assert result.error == "Slug already in use"

    def test_duplicate_email_leaves_no_company(self, tenants, admin, company):
        """Test a failed owner insert does not leave an orphan company."""
        result = tenants.create_company(
            admin, "Outra Pizzaria", "outra-pizzaria", "dono@pizzaria.com", "x"
        )

        assert result.success is False
        assert result.code == "CONFLICT"
        assert tenants.get_company_by_slug("outra-pizzaria") is None

    def test_owner_insert_failure_rolls_back_company(self, tenants, admin, company, monkeypatch):
        """Test a constraint hit on the owner row also discards the company row."""
        monkeypatch.setattr(CardapioRepository, "email_exists", lambda self, email: False)

        result = tenants.create_company(
            admin, "Outra Pizzaria", "outra-pizzaria", "dono@pizzaria.com", "x"
        )

        assert result.success is False
        assert result.code == "CONFLICT"
        assert tenants.get_company_by_slug("outra-pizzaria") is None

    def test_requires_admin(self, tenants, credentials, company):
        """Test a company owner cannot provision companies."""
        login = credentials.authenticate("dono@pizzaria.com", "senha123")
        owner = Identity.from_user_data(login.data["user"])

        result = tenants.create_company(owner, "X", "x", "x@x.com", "x")

        assert result.success is False
        assert result.code == "FORBIDDEN"

    def test_requires_identity(self, tenants):
        result = tenants.create_company(None, "X", "x", "x@x.com", "x")

        assert result.success is False
        assert result.code == "UNAUTHORIZED"

    def test_invalid_slug(self, tenants, admin):
        """Test slug format is validated."""
        result = tenants.create_company(admin, "X", "Not A Slug", "x@x.com", "x")

        assert result.success is False
        assert result.code == "VALIDATION_ERROR"


class TestGetCompany:
    """Tests for company lookups."""

    def test_get_by_slug(self, tenants, company):
        found = tenants.get_company_by_slug("pizzaria-do-ze")

        assert found["id"] == company["id"]
        assert found["name"] == "Pizzaria do Zé"

    def test_unknown_slug_is_none(self, tenants):
        """Test an unknown slug is a miss, not an error."""
        assert tenants.get_company_by_slug("nao-existe") is None

    def test_slug_lookup_is_cached(self, tenants, company, cache):
        tenants.get_company_by_slug("pizzaria-do-ze")
        assert "company_by_slug:pizzaria-do-ze" in cache

    def test_storefront_page_invalidation_drops_slug_read(self, tenants, company, cache):
        """Test the slug read is registered under its storefront page path."""
        tenants.get_company_by_slug("pizzaria-do-ze")

        cache.invalidate_path("/pizzaria-do-ze")

        assert "company_by_slug:pizzaria-do-ze" not in cache

    def test_miss_not_cached(self, tenants, cache):
        tenants.get_company_by_slug("nao-existe")
        assert "company_by_slug:nao-existe" not in cache

    def test_get_by_id(self, tenants, company):
        assert tenants.get_company_by_id(company["id"])["slug"] == "pizzaria-do-ze"
        assert tenants.get_company_by_id(uuid4()) is None
        assert tenants.get_company_by_id("not-a-uuid") is None


class TestListCompanies:
    """Tests for the administrative listing."""

    def test_list_newest_first_with_users(self, tenants, admin, company, other_company):
        companies = tenants.list_companies(admin)

        assert [c["slug"] for c in companies] == ["burger-house", "pizzaria-do-ze"]
        assert companies[1]["users"][0]["email"] == "dono@pizzaria.com"
        assert "password_hash" not in companies[1]["users"][0]

    def test_non_admin_gets_empty_list(self, tenants, company):
        assert tenants.list_companies(None) == []

    def test_storefronts_ordered_by_name(self, tenants, company, other_company):
        storefronts = tenants.list_storefronts()

        assert [s["name"] for s in storefronts] == ["Burger House", "Pizzaria do Zé"]
        assert "whatsapp" not in storefronts[0]


class TestUpdateCompany:
    """Tests for sparse company updates."""

    def test_sparse_patch_keeps_absent_fields(self, tenants, company):
        """Test a patch with only name leaves whatsapp untouched."""
        result = tenants.update_company(company["id"], {"name": "Pizzaria Nova"})

        assert result.success is True
        assert result.data == {
            "id": company["id"],
            "name": "Pizzaria Nova",
            "slug": "pizzaria-do-ze",
        }

        updated = tenants.get_company_by_slug("pizzaria-do-ze")
        assert updated["name"] == "Pizzaria Nova"
        assert updated["whatsapp"] == "11999998888"

    def test_null_fields_are_ignored(self, tenants, company):
        result = tenants.update_company(company["id"], {"whatsapp": None, "minimum_order": 25})

        assert result.success is True
        updated = tenants.get_company_by_id(company["id"])
        assert updated["whatsapp"] == "11999998888"
        assert updated["minimum_order"] == 25.0

    def test_update_invalidates_cached_reads(self, tenants, company, cache):
        """Test a cached slug read reflects the update afterwards."""
        assert tenants.get_company_by_slug("pizzaria-do-ze")["name"] == "Pizzaria do Zé"

        tenants.update_company(company["id"], {"name": "Pizzaria Nova"})

        assert company_slug_tag("pizzaria-do-ze") in cache.invalidated_tags
        assert company_tag(company["id"]) in cache.invalidated_tags
        assert COMPANY_INFO_PATH in cache.invalidated_paths
        assert "/pizzaria-do-ze" in cache.invalidated_paths
        assert tenants.get_company_by_slug("pizzaria-do-ze")["name"] == "Pizzaria Nova"

    def test_unknown_company(self, tenants):
        result = tenants.update_company(uuid4(), {"name": "X"})

        assert result.success is False
        assert result.code == "NOT_FOUND"
        assert result.error == "Empresa não encontrada."

    def test_unknown_field_rejected(self, tenants, company):
        result = tenants.update_company(company["id"], {"slug": "novo-slug"})

        assert result.success is False
        assert result.code == "VALIDATION_ERROR"


class TestSetOpen:
    """Tests for the open/closed toggle."""

    def test_close_restaurant(self, tenants, company, cache):
        result = tenants.set_open(company["id"], False)

        assert result.success is True
        assert result.data["is_open"] is False
        assert DASHBOARD_PATH in cache.invalidated_paths
        assert tenants.get_company_by_slug("pizzaria-do-ze")["is_open"] is False
