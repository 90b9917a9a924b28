"""
services/catalog_service.py — Categories, products and inventory.

Layer rules:
  - No flask.request / flask.g. Inputs are plain values already validated
    by the schemas in schemas/catalog_schema.py.
  - Ids in and out are public ids; rows are resolved through
    services/lookup.py.
  - flush(), never commit(). The route commits.

Cross-entity rules enforced here (need the DB):
  - slug and SKU uniqueness                         (DUPLICATE_SLUG / DUPLICATE_SKU, 409)
  - category_id / parent_id must reference a row    (CATEGORY_NOT_FOUND, 404)
  - a category cannot be its own ancestor           (INVALID_FIELD, 400)
  - a category with products cannot be deleted      (CATEGORY_HAS_PRODUCTS, 422)
  - stock never goes below zero                     (INSUFFICIENT_STOCK, 422)
"""

from __future__ import annotations

import logging
import random
import re
from datetime import datetime, timezone

from sqlalchemy import func, or_, select, update
from sqlalchemy.orm import Session

from stockserver.app.errors import AppError, ErrorCode
from stockserver.app.models.category import Category
from stockserver.app.models.product import Product, ProductStatus
from stockserver.app.presenters import present_category, present_product, present_stock_level
from stockserver.app.services.lookup import get_or_404, paginate

logger = logging.getLogger(__name__)

_PRODUCT_FIELDS = (
    "name", "description", "price", "stock_quantity", "status", "images",
    "weight", "dimensions", "meta_title", "meta_description",
)
_CATEGORY_FIELDS = (
    "name", "description", "status", "sort_order", "image_url",
    "meta_title", "meta_description",
)


# ── Private helpers ────────────────────────────────────────────────────────

def slugify(value: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", value.lower()).strip("-")
    return slug or "item"


def _unique_slug(session: Session, model, base: str, exclude_id: str | None = None) -> str:
    """base, base-2, base-3 … — first one not taken by another row."""
    candidate, counter = base, 2
    while True:
        stmt = select(model.id).where(model.slug == candidate)
        if exclude_id is not None:
            stmt = stmt.where(model.id != exclude_id)
        if session.execute(stmt).first() is None:
            return candidate
        candidate = f"{base}-{counter}"
        counter += 1


def _claim_slug(session: Session, model, slug: str, exclude_id: str | None = None) -> str:
    """An explicitly requested slug must be free."""
    stmt = select(model.id).where(model.slug == slug)
    if exclude_id is not None:
        stmt = stmt.where(model.id != exclude_id)
    if session.execute(stmt).first() is not None:
        raise AppError(
            ErrorCode.DUPLICATE_SLUG,
            f"The slug '{slug}' is already in use.",
            409,
            field="slug",
        )
    return slug


def generate_sku(session: Session, name: str, meta_title: str | None = None) -> str:
    """
    NAME[:6] + META[:4] (alphanumerics, upper-cased) + MMDD + 3 random
    digits. Falls back to "PROD" when the names give fewer than 3 chars.
    A two-digit counter is appended until the SKU is unused.
    """
    def _alnum(value: str | None) -> str:
        return re.sub(r"[^A-Za-z0-9]", "", value or "")

    base = (_alnum(name)[:6] + _alnum(meta_title)[:4]).upper()
    if len(base) < 3:
        base = "PROD"

    stamp = datetime.now(timezone.utc).strftime("%m%d")
    sku = original = f"{base}{stamp}{random.randint(0, 999):03d}"

    counter = 1
    while session.execute(select(Product.id).where(Product.sku == sku)).first() is not None:
        sku = f"{original}{counter:02d}"
        counter += 1
    return sku


def _ensure_sku_free(session: Session, sku: str, exclude_id: str | None = None) -> None:
    stmt = select(Product.id).where(Product.sku == sku)
    if exclude_id is not None:
        stmt = stmt.where(Product.id != exclude_id)
    if session.execute(stmt).first() is not None:
        raise AppError(
            ErrorCode.DUPLICATE_SKU,
            f"The SKU '{sku}' is already in use.",
            409,
            field="sku",
        )


def _resolve_category(session: Session, public_id: str | None) -> Category | None:
    if public_id is None:
        return None
    return get_or_404(session, Category, public_id, ErrorCode.CATEGORY_NOT_FOUND, "Category")


def _is_ancestor_or_self(category: Category, candidate: Category) -> bool:
    """True when `category` is `candidate` or one of its ancestors."""
    seen: set[str] = set()
    node = candidate
    while node is not None and node.id not in seen:
        if node.id == category.id:
            return True
        seen.add(node.id)
        node = node.parent
    return False


# ── Categories ─────────────────────────────────────────────────────────────

def list_categories(session: Session, include_inactive: bool = False) -> list[dict]:
    stmt = select(Category).order_by(Category.sort_order, Category.name)
    if not include_inactive:
        stmt = stmt.where(Category.status == "active")
    return [present_category(c) for c in session.execute(stmt).scalars().all()]


def get_category(session: Session, public_id: str) -> dict:
    category = get_or_404(session, Category, public_id, ErrorCode.CATEGORY_NOT_FOUND, "Category")
    return present_category(category)


def create_category(session: Session, data: dict) -> dict:
    category = Category(
        name=data["name"],
        slug=(
            _claim_slug(session, Category, data["slug"])
            if data.get("slug")
            else _unique_slug(session, Category, slugify(data["name"]))
        ),
    )
    for field in _CATEGORY_FIELDS:
        if field in data and field != "name":
            setattr(category, field, data[field])

    parent = _resolve_category(session, data.get("parent_id"))
    category.parent_id = parent.id if parent is not None else None

    session.add(category)
    session.flush()
    return present_category(category)


def update_category(session: Session, public_id: str, data: dict) -> dict:
    category = get_or_404(session, Category, public_id, ErrorCode.CATEGORY_NOT_FOUND, "Category")

    for field in _CATEGORY_FIELDS:
        if field in data:
            setattr(category, field, data[field])

    if data.get("slug"):
        category.slug = _claim_slug(session, Category, data["slug"], exclude_id=category.id)

    if "parent_id" in data:
        parent = _resolve_category(session, data["parent_id"])
        if parent is not None and _is_ancestor_or_self(category, parent):
            raise AppError(
                ErrorCode.INVALID_FIELD,
                "A category cannot be its own parent or the parent of one of its ancestors.",
                400,
                field="parent_id",
            )
        category.parent_id = parent.id if parent is not None else None

    session.flush()
    return present_category(category)


def delete_category(session: Session, public_id: str) -> None:
    category = get_or_404(session, Category, public_id, ErrorCode.CATEGORY_NOT_FOUND, "Category")

    in_use = session.execute(
        select(func.count(Product.id)).where(Product.category_id == category.id)
    ).scalar_one()
    if in_use:
        raise AppError(
            ErrorCode.CATEGORY_HAS_PRODUCTS,
            f"The category still has {in_use} product(s). Move or delete them first.",
            422,
        )

    # Children move up to the top level.
    session.execute(
        update(Category)
        .where(Category.parent_id == category.id)
        .values(parent_id=None)
        .execution_options(synchronize_session="fetch")
    )
    session.delete(category)
    session.flush()


# ── Products ───────────────────────────────────────────────────────────────

def list_products(
        session: Session,
        search: str | None = None,
        category_id: str | None = None,
        page: int = 1,
        per_page: int = 20,
        include_inactive: bool = False,
        low_stock_threshold: int = 10,
        max_per_page: int = 100,
) -> dict:
    """
    One page of products. `search` must already be sanitized
    (security.sanitize.sanitize_search).
    """
    stmt = select(Product).order_by(Product.created_at.desc(), Product.id)

    if not include_inactive:
        stmt = stmt.where(Product.status == ProductStatus.ACTIVE.value)

    if search:
        pattern = f"%{search}%"
        stmt = stmt.where(or_(
            Product.name.ilike(pattern),
            Product.description.ilike(pattern),
            Product.sku.ilike(pattern),
        ))

    if category_id:
        category = _resolve_category(session, category_id)
        stmt = stmt.where(Product.category_id == category.id)

    rows, meta = paginate(session, stmt, page, per_page, max_per_page)
    return {
        "items": [present_product(p, low_stock_threshold) for p in rows],
        "pagination": meta,
    }


def get_product(
        session: Session,
        public_id: str,
        include_inactive: bool = False,
        low_stock_threshold: int = 10,
) -> dict:
    product = get_or_404(session, Product, public_id, ErrorCode.PRODUCT_NOT_FOUND, "Product")
    if not include_inactive and product.status != ProductStatus.ACTIVE.value:
        raise AppError(
            ErrorCode.PRODUCT_NOT_FOUND,
            f"Product '{public_id}' not found.",
            404,
        )
    return present_product(product, low_stock_threshold)


def create_product(session: Session, data: dict, low_stock_threshold: int = 10) -> dict:
    if data.get("sku"):
        _ensure_sku_free(session, data["sku"])
        sku = data["sku"]
    else:
        sku = generate_sku(session, data["name"], data.get("meta_title"))

    product = Product(
        name=data["name"],
        price=data["price"],
        sku=sku,
        slug=(
            _claim_slug(session, Product, data["slug"])
            if data.get("slug")
            else _unique_slug(session, Product, slugify(data["name"]))
        ),
        stock_quantity=data.get("stock_quantity", 0),
        images=data.get("images", []),
    )
    for field in _PRODUCT_FIELDS:
        if field in data and field not in ("name", "price", "stock_quantity", "images"):
            setattr(product, field, data[field])

    product.category = _resolve_category(session, data.get("category_id"))

    session.add(product)
    session.flush()

    logger.info("Product created: %s (%s)", product.public_id, product.sku)
    return present_product(product, low_stock_threshold)


def update_product(
        session: Session,
        public_id: str,
        data: dict,
        low_stock_threshold: int = 10,
) -> dict:
    product = get_or_404(session, Product, public_id, ErrorCode.PRODUCT_NOT_FOUND, "Product")

    for field in _PRODUCT_FIELDS:
        if field in data:
            setattr(product, field, data[field])

    if data.get("sku") and data["sku"] != product.sku:
        _ensure_sku_free(session, data["sku"], exclude_id=product.id)
        product.sku = data["sku"]

    if data.get("slug"):
        product.slug = _claim_slug(session, Product, data["slug"], exclude_id=product.id)

    if "category_id" in data:
        product.category = _resolve_category(session, data["category_id"])

    session.flush()
    return present_product(product, low_stock_threshold)


def delete_product(session: Session, public_id: str) -> None:
    product = get_or_404(session, Product, public_id, ErrorCode.PRODUCT_NOT_FOUND, "Product")
    session.delete(product)
    session.flush()
    logger.info("Product deleted: %s", public_id)


# ── Inventory ──────────────────────────────────────────────────────────────

def stock_levels(session: Session, low_stock_threshold: int = 10) -> dict:
    products = session.execute(
        select(Product).order_by(Product.stock_quantity, Product.name)
    ).scalars().all()

    return {
        "items": [present_stock_level(p, low_stock_threshold) for p in products],
        "summary": {
            "total_products": len(products),
            "out_of_stock":   sum(1 for p in products if p.stock_quantity <= 0),
            "low_stock":      sum(1 for p in products if 0 < p.stock_quantity <= low_stock_threshold),
            "total_units":    sum(p.stock_quantity for p in products),
        },
    }


def low_stock(session: Session, low_stock_threshold: int = 10) -> list[dict]:
    """Products at or below the threshold, out-of-stock ones included."""
    products = session.execute(
        select(Product)
        .where(Product.stock_quantity <= low_stock_threshold)
        .order_by(Product.stock_quantity, Product.name)
    ).scalars().all()
    return [present_stock_level(p, low_stock_threshold) for p in products]


def update_stock(
        session: Session,
        public_id: str,
        stock_quantity: int | None = None,
        adjustment: int | None = None,
        low_stock_threshold: int = 10,
) -> dict:
    """
    Sets the stock level (`stock_quantity`) or applies a signed delta
    (`adjustment`). Exactly one is given; the schema enforces that.

    Raises:
      AppError(INSUFFICIENT_STOCK, 422) — adjustment would go below zero
    """
    product = get_or_404(session, Product, public_id, ErrorCode.PRODUCT_NOT_FOUND, "Product")
    previous = product.stock_quantity

    if adjustment is not None:
        new_level = previous + adjustment
        if new_level < 0:
            raise AppError(
                ErrorCode.INSUFFICIENT_STOCK,
                f"Cannot remove {-adjustment} unit(s); only {previous} in stock.",
                422,
                field="adjustment",
            )
    else:
        new_level = stock_quantity

    product.stock_quantity = new_level
    session.flush()

    logger.info("Stock for %s changed %d -> %d", public_id, previous, new_level)
    return present_stock_level(product, low_stock_threshold)
