"""
presenters.py — External shape of every entity the API returns.

Each present_* function is an explicit allow-list. Rules that hold for all:
  - the internal id is never emitted under any key; `id` is the public id
  - references to other rows (parent category, order customer, line-item
    product) are emitted as public ids too
  - email / phone go through security.masking unless the caller is looking
    at their own profile (present_user)
  - stock flags, image summaries and counts are computed here, not stored
  - pure: entities are read, never modified

Money is returned as Decimal; the app's JSON provider renders it as a string.
"""

from __future__ import annotations

from decimal import Decimal

from stockserver.app.models.order import OrderStatus
from stockserver.app.security.masking import mask_email, mask_phone
from stockserver.app.security.public_id import optional_public_id, public_id_for

_CENTS = Decimal("0.01")
DEFAULT_LOW_STOCK_THRESHOLD = 10


# ── Private helpers ────────────────────────────────────────────────────────

def _datetime(value) -> str | None:
    return value.strftime("%Y-%m-%d %H:%M:%S") if value is not None else None


def _date(value) -> str | None:
    return value.strftime("%Y-%m-%d") if value is not None else None


def _money(value) -> Decimal:
    if value is None:
        return Decimal("0.00")
    return Decimal(str(value)).quantize(_CENTS)


def _image_url(image) -> str | None:
    if isinstance(image, dict):
        return image.get("url")
    return image


def _primary_image(images: list) -> str | None:
    for image in images:
        if isinstance(image, dict) and image.get("is_primary"):
            return image.get("url")
    return _image_url(images[0]) if images else None


# ── Presenters ─────────────────────────────────────────────────────────────

def present_user(user) -> dict:
    """The caller's own profile. Email is shown in full to its owner."""
    return {
        "id":     public_id_for("users", user.id),
        "name":   user.name,
        "email":  user.email,
        "role":   user.role,
        "status": user.status,
        "avatar": user.avatar,
    }


def present_category(category) -> dict:
    return {
        "id":               public_id_for("categories", category.id),
        "name":             category.name,
        "description":      category.description,
        "slug":             category.slug,
        "status":           category.status,
        "sort_order":       int(category.sort_order or 0),
        "parent_id":        optional_public_id("categories", category.parent_id),
        "image_url":        category.image_url,
        "meta_title":       category.meta_title,
        "meta_description": category.meta_description,
        "products_count":   len(category.products or []),
        "created_at":       _datetime(category.created_at),
        "updated_at":       _datetime(category.updated_at),
    }


def present_product(product, low_stock_threshold: int = DEFAULT_LOW_STOCK_THRESHOLD) -> dict:
    images = list(product.images or [])
    quantity = int(product.stock_quantity or 0)
    category = product.category

    return {
        "id":               public_id_for("products", product.id),
        "name":             product.name,
        "slug":             product.slug,
        "description":      product.description,
        "price":            _money(product.price),
        "sku":              product.sku,
        "category_id":      optional_public_id("categories", product.category_id),
        "category":         category.name if category is not None else None,
        "stock_quantity":   quantity,
        "status":           product.status,
        "images":           images,
        "weight":           _money(product.weight) if product.weight is not None else None,
        "dimensions":       product.dimensions,
        "meta_title":       product.meta_title,
        "meta_description": product.meta_description,
        "primary_image":    _primary_image(images),
        "image_count":      len(images),
        "is_in_stock":      quantity > 0,
        "is_low_stock":     0 < quantity <= low_stock_threshold,
        "created_at":       _datetime(product.created_at),
        "updated_at":       _datetime(product.updated_at),
    }


def present_stock_level(product, low_stock_threshold: int = DEFAULT_LOW_STOCK_THRESHOLD) -> dict:
    """Compact inventory row used by the stock-level endpoints."""
    quantity = int(product.stock_quantity or 0)
    return {
        "id":             public_id_for("products", product.id),
        "name":           product.name,
        "sku":            product.sku,
        "stock_quantity": quantity,
        "is_in_stock":    quantity > 0,
        "is_low_stock":   0 < quantity <= low_stock_threshold,
    }


def present_customer(customer) -> dict:
    user = customer.user
    orders = list(customer.orders or [])
    counted = [o for o in orders if o.status != OrderStatus.CANCELLED.value]
    last_order = max((o.created_at for o in orders), default=None)

    return {
        "id":              public_id_for("customers", customer.id),
        "name":            customer.full_name or (user.name if user is not None else "Unknown"),
        "email_masked":    mask_email(user.email if user is not None else None),
        "phone_masked":    mask_phone(customer.phone),
        "orders_count":    len(orders),
        "total_spent":     _money(sum((_money(o.total_amount) for o in counted), Decimal("0"))),
        "status":          user.status if user is not None else "unknown",
        "joined_date":     _date(customer.created_at),
        "last_order_date": _date(last_order),
    }


def _present_order_item(item: dict) -> dict:
    product_id = item.get("product_id")
    return {
        "product_id":   optional_public_id("products", product_id) if product_id else None,
        "product_name": item.get("product_name", ""),
        "quantity":     int(item.get("quantity", 0)),
        "price":        _money(item.get("price")),
        "subtotal":     _money(item.get("subtotal")),
    }


def present_order(order, include_items: bool = False) -> dict:
    """
    List view by default. `include_items=True` adds the line items
    (detail view).
    """
    customer = order.customer
    user = customer.user if customer is not None else None
    items = list(order.items or [])

    view = {
        "id":           public_id_for("orders", order.id),
        "order_number": order.order_number,
        "customer": {
            "id":           optional_public_id("customers", order.customer_id),
            "name":         customer.full_name if customer is not None else "Unknown",
            "email_masked": mask_email(user.email if user is not None else None),
        },
        "status":           order.status,
        "payment_status":   order.payment_status or "pending",
        "payment_method":   order.payment_method,
        "total_amount":     _money(order.total_amount),
        "subtotal":         _money(order.subtotal),
        "tax_amount":       _money(order.tax_amount),
        "shipping_amount":  _money(order.shipping_amount),
        "discount_amount":  _money(order.discount_amount),
        "items_count":      len(items),
        "shipping_address": order.shipping_address,
        "billing_address":  order.billing_address,
        "notes":            order.notes,
        "created_at":       _datetime(order.created_at),
        "updated_at":       _datetime(order.updated_at),
    }
    if include_items:
        view["items"] = [_present_order_item(item) for item in items]
    return view
