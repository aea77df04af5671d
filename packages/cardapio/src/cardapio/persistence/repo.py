"""
Cardapio Repository

Repository pattern for the tenant data tables.
Tenant-owned mutations take the caller's company_id and fold it into the
statement filter, so the ownership check and the write are one statement.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import func, not_, or_
from sqlalchemy.orm import Session, joinedload, selectinload

from cardapio.contracts.types import OrderStatus, UserRole
from cardapio.persistence.models import (
    Category,
    Company,
    Coupon,
    Order,
    Product,
    Promotion,
    User,
)


class CardapioRepository:
    """Repository for tenant data operations. Does not commit."""

    def __init__(self, db: Session):
        self.db = db

    # =========================================================================
    # Companies
    # =========================================================================

    def get_company_by_slug(self, slug: str) -> Company | None:
        """Get company by its storefront slug."""
        return self.db.query(Company).filter(Company.slug == slug).first()

    def get_company_by_id(self, company_id: UUID) -> Company | None:
        return self.db.query(Company).filter(Company.id == company_id).first()

    def slug_exists(self, slug: str) -> bool:
        return self.db.query(Company.id).filter(Company.slug == slug).first() is not None

    def create_company(self, **fields: Any) -> Company:
        """Create a company row (flushed, not committed)."""
        company = Company(**fields)
        self.db.add(company)
        self.db.flush()
        return company

    def list_companies_with_users(self) -> list[Company]:
        """All companies with their users, newest first."""
        return (
            self.db.query(Company)
            .options(selectinload(Company.users))
            .order_by(Company.created_at.desc())
            .all()
        )

    def list_companies_by_name(self) -> list[Company]:
        return self.db.query(Company).order_by(Company.name.asc()).all()

    def update_company(self, company: Company, fields: dict[str, Any]) -> Company:
        """Copy the given fields onto the company. Absent fields are untouched."""
        for key, value in fields.items():
            setattr(company, key, value)
        self.db.flush()
        return company

    # =========================================================================
    # Users
    # =========================================================================

    def get_user_by_id(self, user_id: UUID) -> User | None:
        return self.db.query(User).filter(User.id == user_id).first()

    def get_user_by_email(self, email: str) -> User | None:
        """Get user by login e-mail, with the owned company loaded."""
        return (
            self.db.query(User)
            .options(joinedload(User.company))
            .filter(User.email == email)
            .first()
        )

    def get_user_by_cpf(self, cpf: str) -> User | None:
        """Get user by digits-only CPF."""
        return self.db.query(User).filter(User.cpf == cpf).first()

    def email_exists(self, email: str) -> bool:
        return self.db.query(User.id).filter(User.email == email).first() is not None

    def cpf_taken_by_other(self, cpf: str, user_id: UUID) -> bool:
        return (
            self.db.query(User.id).filter(User.cpf == cpf, User.id != user_id).first()
            is not None
        )

    def admin_exists(self) -> bool:
        return (
            self.db.query(User.id).filter(User.role == UserRole.ADMIN.value).first()
            is not None
        )

    def create_user(
        self,
        role: UserRole,
        password_hash: str,
        name: str | None = None,
        email: str | None = None,
        cpf: str | None = None,
        company_id: UUID | None = None,
    ) -> User:
        """Create a user row (flushed, not committed)."""
        user = User(
            role=role.value,
            password_hash=password_hash,
            name=name,
            email=email,
            cpf=cpf,
            company_id=company_id,
        )
        self.db.add(user)
        self.db.flush()
        return user

    def set_password_hash(self, user_id: UUID, password_hash: str) -> bool:
        """Overwrite the stored hash. Returns False if the user does not exist."""
        updated = (
            self.db.query(User)
            .filter(User.id == user_id)
            .update({User.password_hash: password_hash}, synchronize_session=False)
        )
        return updated > 0

    def update_user_profile(self, user_id: UUID, fields: dict[str, Any]) -> bool:
        updated = (
            self.db.query(User)
            .filter(User.id == user_id)
            .update(fields, synchronize_session=False)
        )
        self.db.flush()
        return updated > 0

    # =========================================================================
    # Categories
    # =========================================================================

    def list_categories_with_counts(self, company_id: UUID) -> list[tuple[Category, int]]:
        """Categories of a company ordered by `order`, each with its product count."""
        return (
            self.db.query(Category, func.count(Product.id))
            .outerjoin(Product, Product.category_id == Category.id)
            .filter(Category.company_id == company_id)
            .group_by(Category.id)
            .order_by(Category.order.asc(), Category.created_at.asc(), Category.id.asc())
            .all()
        )

    def get_category(self, category_id: UUID, company_id: UUID) -> Category | None:
        """Get a category only if it belongs to the company."""
        return (
            self.db.query(Category)
            .filter(Category.id == category_id, Category.company_id == company_id)
            .first()
        )

    def create_category(self, company_id: UUID, name: str, order: int) -> Category:
        category = Category(company_id=company_id, name=name, order=order)
        self.db.add(category)
        self.db.flush()
        return category

    def update_category_owned(
        self, category_id: UUID, company_id: UUID, name: str, order: int
    ) -> int:
        """Conditional update; returns affected row count (0 = missing or not owned)."""
        return (
            self.db.query(Category)
            .filter(Category.id == category_id, Category.company_id == company_id)
            .update({Category.name: name, Category.order: order}, synchronize_session=False)
        )

    def delete_category_owned(self, category_id: UUID, company_id: UUID) -> int:
        """Conditional delete; returns affected row count (0 = missing or not owned)."""
        return (
            self.db.query(Category)
            .filter(Category.id == category_id, Category.company_id == company_id)
            .delete(synchronize_session=False)
        )

    # =========================================================================
    # Products
    # =========================================================================

    def list_products(self, company_id: UUID) -> list[Product]:
        return (
            self.db.query(Product)
            .filter(Product.company_id == company_id)
            .order_by(Product.name.asc())
            .all()
        )

    def get_product(self, product_id: UUID, company_id: UUID) -> Product | None:
        """Get a product only if it belongs to the company."""
        return (
            self.db.query(Product)
            .filter(Product.id == product_id, Product.company_id == company_id)
            .first()
        )

    def create_product(self, company_id: UUID, fields: dict[str, Any]) -> Product:
        product = Product(company_id=company_id, **fields)
        self.db.add(product)
        self.db.flush()
        return product

    def update_product_owned(
        self, product_id: UUID, company_id: UUID, fields: dict[str, Any]
    ) -> int:
        if not fields:
            # Nothing to write; still report whether the row is owned
            return 1 if self.get_product(product_id, company_id) else 0
        return (
            self.db.query(Product)
            .filter(Product.id == product_id, Product.company_id == company_id)
            .update(fields, synchronize_session=False)
        )

    def delete_product_owned(self, product_id: UUID, company_id: UUID) -> int:
        return (
            self.db.query(Product)
            .filter(Product.id == product_id, Product.company_id == company_id)
            .delete(synchronize_session=False)
        )

    # =========================================================================
    # Orders
    # =========================================================================

    def count_orders_since(self, company_id: UUID, since: datetime) -> int:
        """Orders created at or after `since`, any status."""
        return (
            self.db.query(func.count(Order.id))
            .filter(Order.company_id == company_id, Order.created_at >= since)
            .scalar()
        ) or 0

    def count_orders_with_status(self, company_id: UUID, status: OrderStatus) -> int:
        return (
            self.db.query(func.count(Order.id))
            .filter(Order.company_id == company_id, Order.status == status.value)
            .scalar()
        ) or 0

    def sum_revenue(self, company_id: UUID, since: datetime | None = None) -> Decimal:
        """Sum of order totals excluding cancelled orders, optionally since a time."""
        query = self.db.query(func.sum(Order.total)).filter(
            Order.company_id == company_id,
            Order.status != OrderStatus.CANCELLED.value,
        )
        if since is not None:
            query = query.filter(Order.created_at >= since)

        total = query.scalar()
        return Decimal(str(total)) if total is not None else Decimal("0")

    def recent_orders(self, company_id: UUID, limit: int = 5) -> list[Order]:
        """Most recently created orders, any status."""
        return (
            self.db.query(Order)
            .filter(Order.company_id == company_id)
            .order_by(Order.created_at.desc())
            .limit(limit)
            .all()
        )

    def list_company_orders(self, company_id: UUID) -> list[Order]:
        return (
            self.db.query(Order)
            .filter(Order.company_id == company_id)
            .order_by(Order.created_at.desc())
            .all()
        )

    def list_user_orders(self, user_id: UUID) -> list[Order]:
        """Orders placed by a user, newest first, with their company loaded."""
        return (
            self.db.query(Order)
            .options(joinedload(Order.company))
            .filter(Order.user_id == user_id)
            .order_by(Order.created_at.desc())
            .all()
        )

    def order_id_exists(self, order_id: str) -> bool:
        return self.db.query(Order.id).filter(Order.id == order_id).first() is not None

    def create_order(self, order_id: str, company_id: UUID, fields: dict[str, Any]) -> Order:
        order = Order(id=order_id, company_id=company_id, **fields)
        self.db.add(order)
        self.db.flush()
        return order

    # =========================================================================
    # Coupons
    # =========================================================================

    def list_coupons(self, company_id: UUID) -> list[Coupon]:
        return (
            self.db.query(Coupon)
            .filter(Coupon.company_id == company_id)
            .order_by(Coupon.created_at.desc())
            .all()
        )

    def coupon_code_exists(self, company_id: UUID, code: str) -> bool:
        return (
            self.db.query(Coupon.id)
            .filter(Coupon.company_id == company_id, func.upper(Coupon.code) == code.upper())
            .first()
            is not None
        )

    def get_active_coupon(self, company_id: UUID, code: str) -> Coupon | None:
        """Active coupon of the company matching `code` case-insensitively."""
        return (
            self.db.query(Coupon)
            .filter(
                Coupon.company_id == company_id,
                func.upper(Coupon.code) == code.strip().upper(),
                Coupon.is_active.is_(True),
            )
            .first()
        )

    def create_coupon(self, company_id: UUID, fields: dict[str, Any]) -> Coupon:
        coupon = Coupon(company_id=company_id, **fields)
        self.db.add(coupon)
        self.db.flush()
        return coupon

    def toggle_coupon_owned(self, coupon_id: UUID, company_id: UUID) -> int:
        """Flip is_active; returns affected row count (0 = missing or not owned)."""
        return (
            self.db.query(Coupon)
            .filter(Coupon.id == coupon_id, Coupon.company_id == company_id)
            .update({Coupon.is_active: not_(Coupon.is_active)}, synchronize_session=False)
        )

    def delete_coupon_owned(self, coupon_id: UUID, company_id: UUID) -> int:
        return (
            self.db.query(Coupon)
            .filter(Coupon.id == coupon_id, Coupon.company_id == company_id)
            .delete(synchronize_session=False)
        )

    def increment_coupon_usage(self, coupon_id: UUID) -> int:
        """
        Count one use of a coupon, only while it is under its usage limit.

        Returns affected row count; 0 means the limit was reached by a
        concurrent order.
        """
        return (
            self.db.query(Coupon)
            .filter(
                Coupon.id == coupon_id,
                or_(Coupon.usage_limit.is_(None), Coupon.usage_count < Coupon.usage_limit),
            )
            .update({Coupon.usage_count: Coupon.usage_count + 1}, synchronize_session=False)
        )

    # =========================================================================
    # Promotions
    # =========================================================================

    def list_promotions(self, company_id: UUID) -> list[Promotion]:
        """Promotions of a company with their product, latest start first."""
        return (
            self.db.query(Promotion)
            .options(joinedload(Promotion.product))
            .filter(Promotion.company_id == company_id)
            .order_by(Promotion.start_date.desc())
            .all()
        )

    def get_promotion(self, promotion_id: UUID, company_id: UUID) -> Promotion | None:
        return (
            self.db.query(Promotion)
            .options(joinedload(Promotion.product))
            .filter(Promotion.id == promotion_id, Promotion.company_id == company_id)
            .first()
        )

    def create_promotion(self, company_id: UUID, fields: dict[str, Any]) -> Promotion:
        promotion = Promotion(company_id=company_id, **fields)
        self.db.add(promotion)
        self.db.flush()
        return promotion

    def update_promotion_owned(
        self, promotion_id: UUID, company_id: UUID, fields: dict[str, Any]
    ) -> int:
        return (
            self.db.query(Promotion)
            .filter(Promotion.id == promotion_id, Promotion.company_id == company_id)
            .update(fields, synchronize_session=False)
        )

    def toggle_promotion_owned(self, promotion_id: UUID, company_id: UUID) -> int:
        return (
            self.db.query(Promotion)
            .filter(Promotion.id == promotion_id, Promotion.company_id == company_id)
            .update({Promotion.is_active: not_(Promotion.is_active)}, synchronize_session=False)
        )

    def delete_promotion_owned(self, promotion_id: UUID, company_id: UUID) -> int:
        return (
            self.db.query(Promotion)
            .filter(Promotion.id == promotion_id, Promotion.company_id == company_id)
            .delete(synchronize_session=False)
        )

    def active_promotions(self, company_id: UUID, now: datetime) -> dict[UUID, Promotion]:
        """
        Promotion in effect at `now` for each product of the company.

        When several overlap, the most recently created wins.
        """
        rows = (
            self.db.query(Promotion)
            .filter(
                Promotion.company_id == company_id,
                Promotion.is_active.is_(True),
                Promotion.start_date <= now,
                Promotion.end_date >= now,
            )
            .order_by(Promotion.created_at.asc())
            .all()
        )
        return {p.product_id: p for p in rows}
