"""
schemas/catalog_schema.py — Category, product and inventory payloads.

Create schemas mark required fields; update schemas are the same shapes
loaded with partial=True by the routes, so any subset may be sent.
References to other rows are public ids (e.g. "cat_0123456789abcdef").
"""

from __future__ import annotations

from decimal import Decimal

from marshmallow import Schema, ValidationError, fields, validate, validates, validates_schema

CATEGORY_ID = validate.Regexp(
    r"^cat_[0-9a-f]{16}$",
    error="Must be a category id (cat_ followed by 16 hex characters).",
)
PRODUCT_ID = validate.Regexp(
    r"^prod_[0-9a-f]{16}$",
    error="Must be a product id (prod_ followed by 16 hex characters).",
)
SLUG = validate.Regexp(
    r"^[a-z0-9]+(?:-[a-z0-9]+)*$",
    error="Slug may only contain lowercase letters, digits and single hyphens.",
)


class CategorySchema(Schema):

    name = fields.Str(required=True, validate=validate.Length(min=1, max=120))
    slug = fields.Str(validate=[validate.Length(max=140), SLUG])
    description = fields.Str(allow_none=True)
    status = fields.Str(validate=validate.OneOf(["active", "inactive"]))
    sort_order = fields.Int(validate=validate.Range(min=0))
    parent_id = fields.Str(allow_none=True, validate=CATEGORY_ID)
    image_url = fields.Url(allow_none=True)
    meta_title = fields.Str(allow_none=True, validate=validate.Length(max=255))
    meta_description = fields.Str(allow_none=True)


class ImageSchema(Schema):

    url = fields.Url(required=True)
    is_primary = fields.Bool(load_default=False)


class ProductSchema(Schema):

    name = fields.Str(required=True, validate=validate.Length(min=1, max=200))
    slug = fields.Str(validate=[validate.Length(max=220), SLUG])
    description = fields.Str(allow_none=True)
    price = fields.Decimal(required=True)
    category_id = fields.Str(allow_none=True, validate=CATEGORY_ID)
    sku = fields.Str(validate=validate.Regexp(
        r"^[A-Z0-9-]{3,64}$",
        error="SKU must be 3–64 uppercase letters, digits or hyphens.",
    ))
    stock_quantity = fields.Int(validate=validate.Range(min=0))
    status = fields.Str(validate=validate.OneOf(["active", "inactive", "draft"]))
    images = fields.List(fields.Nested(ImageSchema))
    weight = fields.Decimal(allow_none=True)
    dimensions = fields.Dict(allow_none=True)
    meta_title = fields.Str(allow_none=True, validate=validate.Length(max=255))
    meta_description = fields.Str(allow_none=True)

    @validates("price")
    def validate_price(self, value: Decimal, **kwargs) -> None:
        if value < 0:
            raise ValidationError("Price must not be negative.")
        if value.as_tuple().exponent < -2:
            raise ValidationError("Price must have at most 2 decimal places.")

    @validates("images")
    def validate_single_primary(self, value: list, **kwargs) -> None:
        if sum(1 for image in value if image.get("is_primary")) > 1:
            raise ValidationError("At most one image may be marked primary.")


class StockUpdateSchema(Schema):
    """
    PUT /admin/inventory/<product_id>

    Exactly one of:
      stock_quantity : absolute new level (>= 0)
      adjustment     : signed delta applied to the current level
    """

    stock_quantity = fields.Int(validate=validate.Range(min=0))
    adjustment = fields.Int()

    @validates_schema
    def validate_exactly_one(self, data: dict, **kwargs) -> None:
        given = [key for key in ("stock_quantity", "adjustment") if key in data]
        if len(given) != 1:
            raise ValidationError("Send exactly one of stock_quantity or adjustment.")
