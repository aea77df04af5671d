"""
Cache keys, tags and page paths.

Reads are keyed by (operation, identifier). Writes invalidate by tag, and by
path for rendered pages.

A path is invalidated through the tag `path:<path>`. Any read that feeds a
rendered page registers under path_tag(<page path>) besides its data tags,
so invalidating the page drops it; the storefront company read is
registered under path_tag(storefront_path(slug)).
"""

from uuid import UUID

DASHBOARD_PATH = "/empresa/dashboard"
CATEGORIES_PATH = "/empresa/dashboard/categorias"
PRODUCTS_PATH = "/empresa/dashboard/produtos"
PROMOTIONS_PATH = "/empresa/dashboard/promocoes"
COUPONS_PATH = "/empresa/dashboard/cupons"
ORDERS_PATH = "/empresa/dashboard/pedidos"
COMPANY_INFO_PATH = "/empresa/dashboard/informacoes"
ADMIN_PATH = "/admin"
PROFILE_PATH = "/perfil"
HISTORY_PATH = "/historico"


def storefront_path(slug: str) -> str:
    return f"/{slug}"


def cache_key(operation: str, *parts: str | UUID) -> str:
    """Build a key such as `categories:<company_id>`."""
    return ":".join([operation, *(str(p) for p in parts)])


def company_tag(company_id: str | UUID) -> str:
    """Tag of the admin by-id read of one company."""
    return f"company:{company_id}"


def company_slug_tag(slug: str) -> str:
    """Tag of the storefront by-slug read of one company."""
    return f"company-slug:{slug}"


def categories_tag(company_id: str | UUID) -> str:
    return f"categories:{company_id}"


def path_tag(path: str) -> str:
    """Tag under which entries rendered into a page path are registered."""
    return f"path:{path}"
