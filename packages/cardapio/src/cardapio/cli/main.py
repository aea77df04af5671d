"""
Cardapio CLI

Command-line interface for platform administration.

Commands:
- init-db: Create the database tables
- create-admin: Create an administrator account
- create-company: Provision a restaurant and its owner account
- reset-password: Override a user's password
- list-companies: List restaurants with their users
- dashboard: Show a restaurant's dashboard numbers
- coupons: List a restaurant's discount coupons
"""

from dataclasses import dataclass
from typing import Optional

import typer
from rich import print as rprint
from rich.console import Console
from rich.table import Table

from appcore.db import Store
from appcore.logging import setup_logging
from appcore.redis import create_redis_client
from appcore.security import PasswordHasher
from appcore.settings import Settings, get_settings
from cardapio.cache import CacheBackend, InMemoryCache, RedisCache
from cardapio.persistence import CardapioBase
from cardapio.service import (
    CredentialStore,
    Identity,
    MenuCatalog,
    OfferBook,
    OrderLedger,
    TenantRegistry,
)

app = typer.Typer(
    name="cardapio-admin",
    help="Cardapio platform administration CLI",
)

console = Console()


@dataclass
class Services:
    store: Store
    cache: CacheBackend
    credentials: CredentialStore
    tenants: TenantRegistry
    catalog: MenuCatalog
    ledger: OrderLedger
    offers: OfferBook


def build_cache(settings: Settings) -> CacheBackend:
    """Cache backend selected by CACHE_BACKEND (redis or memory)."""
    if settings.CACHE_BACKEND == "memory":
        return InMemoryCache()
    return RedisCache(create_redis_client(settings.REDIS_URL), prefix=settings.CACHE_KEY_PREFIX)


def build_services(settings: Settings | None = None) -> Services:
    """Wire the store, cache and services from settings."""
    settings = settings or get_settings()

    store = Store.from_url(settings.DATABASE_URL)
    cache = build_cache(settings)
    hasher = PasswordHasher(rounds=settings.BCRYPT_ROUNDS)
    ttl = settings.CACHE_TTL_SECONDS

    return Services(
        store=store,
        cache=cache,
        credentials=CredentialStore(store, cache, hasher),
        tenants=TenantRegistry(store, cache, hasher, cache_ttl=ttl),
        catalog=MenuCatalog(store, cache, cache_ttl=ttl),
        ledger=OrderLedger(store, cache, recent_limit=settings.DASHBOARD_RECENT_ORDERS),
        offers=OfferBook(store, cache),
    )


def login_admin(services: Services, email: str, password: str) -> Identity:
    """Authenticate the operator, exiting on failure."""
    result = services.credentials.authenticate(email, password)
    if not result.success:
        rprint(f"[red]Login failed: {result.error}[/red]")
        raise typer.Exit(1)
    return Identity.from_user_data(result.data["user"])


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(None, help="Log level (defaults to LOG_LEVEL)"),
):
    """Cardapio platform administration CLI."""
    setup_logging(log_level)


@app.command()
def init_db():
    """
    Create all tables.

    Intended for development databases; existing tables are left untouched.
    """
    services = build_services()
    try:
        services.store.create_all(CardapioBase.metadata)
        rprint("[green]Database tables created[/green]")
    finally:
        services.store.dispose()


@app.command()
def create_admin(
    email: str = typer.Argument(..., help="Admin login e-mail"),
    password: str = typer.Option(..., prompt=True, hide_input=True, help="Admin password"),
    name: str = typer.Option("Administrador", help="Display name"),
    admin_email: Optional[str] = typer.Option(None, help="Existing admin e-mail (after bootstrap)"),
    admin_password: Optional[str] = typer.Option(None, help="Existing admin password"),
):
    """
    Create an administrator.

    The first admin needs no credentials; later ones must be created by an
    existing admin.
    """
    services = build_services()
    try:
        actor = None
        if admin_email:
            actor = login_admin(services, admin_email, admin_password or "")

        result = services.credentials.create_admin(email, password, name=name, actor=actor)
        if not result.success:
            rprint(f"[red]{result.error}[/red]")
            raise typer.Exit(1)

        rprint("[green]Admin created:[/green]")
        rprint(f"  ID: {result.data['id']}")
        rprint(f"  Email: {result.data['email']}")
    finally:
        services.store.dispose()


@app.command()
def create_company(
    name: str = typer.Argument(..., help="Restaurant name"),
    slug: str = typer.Argument(..., help="Storefront slug (e.g. pizzaria-do-ze)"),
    email: str = typer.Argument(..., help="Owner login e-mail"),
    password: str = typer.Option(..., prompt=True, hide_input=True, help="Owner password"),
    whatsapp: str = typer.Option("", help="WhatsApp number"),
    admin_email: str = typer.Option(..., help="Admin e-mail"),
    admin_password: str = typer.Option(..., prompt=True, hide_input=True, help="Admin password"),
):
    """Provision a restaurant together with its owner account."""
    services = build_services()
    try:
        actor = login_admin(services, admin_email, admin_password)
        result = services.tenants.create_company(
            actor, name, slug, email, password, whatsapp=whatsapp
        )
        if not result.success:
            rprint(f"[red]{result.error}[/red]")
            raise typer.Exit(1)

        rprint("[green]Company created:[/green]")
        rprint(f"  ID: {result.data['id']}")
        rprint(f"  Slug: {result.data['slug']}")
        rprint(f"  Owner: {email}")
    finally:
        services.store.dispose()


@app.command()
def reset_password(
    user_id: str = typer.Argument(..., help="User UUID"),
    new_password: str = typer.Option(..., prompt=True, hide_input=True, help="New password"),
    admin_email: str = typer.Option(..., help="Admin e-mail"),
    admin_password: str = typer.Option(..., prompt=True, hide_input=True, help="Admin password"),
):
    """Override a user's password."""
    services = build_services()
    try:
        actor = login_admin(services, admin_email, admin_password)
        result = services.credentials.reset_password(actor, user_id, new_password)
        if not result.success:
            rprint(f"[red]{result.error}[/red]")
            raise typer.Exit(1)

        rprint("[green]Password updated[/green]")
    finally:
        services.store.dispose()


@app.command()
def list_companies(
    admin_email: str = typer.Option(..., help="Admin e-mail"),
    admin_password: str = typer.Option(..., prompt=True, hide_input=True, help="Admin password"),
):
    """List restaurants, newest first, with their users."""
    services = build_services()
    try:
        actor = login_admin(services, admin_email, admin_password)
        companies = services.tenants.list_companies(actor)

        if not companies:
            rprint("[yellow]No companies found[/yellow]")
            return

        table = Table(title="Companies")
        table.add_column("ID", style="dim")
        table.add_column("Name")
        table.add_column("Slug")
        table.add_column("Open")
        table.add_column("Users")

        for company in companies:
            table.add_row(
                company["id"][:8] + "...",
                company["name"],
                company["slug"],
                "yes" if company["is_open"] else "no",
                ", ".join(u["email"] or u["name"] or "-" for u in company["users"]),
            )

        console.print(table)
    finally:
        services.store.dispose()


@app.command()
def dashboard(
    slug: str = typer.Argument(..., help="Storefront slug"),
):
    """Show today's orders, pending orders, revenue and recent orders."""
    services = build_services()
    try:
        company = services.tenants.get_company_by_slug(slug)
        if not company:
            rprint(f"[red]No company found for slug: {slug}[/red]")
            raise typer.Exit(1)

        stats = services.ledger.get_dashboard_stats(company["id"])
        if stats is None:
            rprint("[red]Dashboard stats unavailable[/red]")
            raise typer.Exit(1)

        rprint(f"\n[cyan]{company['name']}[/cyan]")
        rprint(f"  Today's orders: {stats.today_orders}")
        rprint(f"  Pending orders: {stats.pending_orders}")
        rprint(f"  Today's revenue: R$ {stats.today_revenue:.2f}")
        rprint(f"  Total revenue: R$ {stats.total_revenue:.2f}")

        if stats.recent_orders:
            table = Table(title="Recent orders")
            table.add_column("Order")
            table.add_column("Customer")
            table.add_column("Status")
            table.add_column("Total")
            table.add_column("Created")

            for order in stats.recent_orders:
                table.add_row(
                    order["id"],
                    order["customer_name"],
                    order["status"],
                    f"{order['total']:.2f}",
                    order["created_at"] or "-",
                )

            console.print(table)
    finally:
        services.store.dispose()


@app.command()
def coupons(
    slug: str = typer.Argument(..., help="Storefront slug"),
):
    """List a restaurant's coupons, newest first, with their usage."""
    services = build_services()
    try:
        company = services.tenants.get_company_by_slug(slug)
        if not company:
            rprint(f"[red]No company found for slug: {slug}[/red]")
            raise typer.Exit(1)

        rows = services.offers.list_coupons(company["id"])
        if not rows:
            rprint("[yellow]No coupons found[/yellow]")
            return

        table = Table(title=f"Coupons of {company['name']}")
        table.add_column("Code")
        table.add_column("Type")
        table.add_column("Value")
        table.add_column("Used")
        table.add_column("Active")

        for coupon in rows:
            limit = coupon["usage_limit"]
            table.add_row(
                coupon["code"],
                coupon["type"],
                f"{coupon['value']:.2f}",
                f"{coupon['usage_count']}/{limit}" if limit else str(coupon["usage_count"]),
                "yes" if coupon["is_active"] else "no",
            )

        console.print(table)
    finally:
        services.store.dispose()


if __name__ == "__main__":
    app()
