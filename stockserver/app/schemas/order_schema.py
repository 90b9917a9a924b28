"""
schemas/order_schema.py — Order placement and status payloads.
"""

from __future__ import annotations

from marshmallow import Schema, ValidationError, fields, validate, validates, validates_schema

from stockserver.app.schemas.catalog_schema import PRODUCT_ID

ORDER_STATUSES = ["pending", "processing", "shipped", "delivered", "cancelled"]
PAYMENT_STATUSES = ["pending", "paid", "failed", "refunded"]


class OrderItemSchema(Schema):

    product_id = fields.Str(required=True, validate=PRODUCT_ID)
    quantity = fields.Int(required=True, validate=validate.Range(min=1, max=1000))


class CreateOrderSchema(Schema):
    """POST /orders"""

    items = fields.List(
        fields.Nested(OrderItemSchema),
        required=True,
        validate=validate.Length(min=1, max=100),
    )
    payment_method = fields.Str(
        load_default=None,
        validate=validate.OneOf(["stripe", "paypal", "payhere", "cash_on_delivery"]),
    )
    shipping_address = fields.Dict(load_default=None)
    billing_address = fields.Dict(load_default=None)
    notes = fields.Str(load_default=None, validate=validate.Length(max=1000))

    @validates("items")
    def validate_unique_products(self, value: list, **kwargs) -> None:
        product_ids = [item["product_id"] for item in value]
        if len(product_ids) != len(set(product_ids)):
            raise ValidationError("Each product may appear only once per order.")


class OrderStatusSchema(Schema):
    """PATCH /admin/orders/<order_id>"""

    status = fields.Str(validate=validate.OneOf(ORDER_STATUSES))
    payment_status = fields.Str(validate=validate.OneOf(PAYMENT_STATUSES))

    @validates_schema
    def validate_not_empty(self, data: dict, **kwargs) -> None:
        if not data:
            raise ValidationError("Send status and/or payment_status.")


class CustomerStatusSchema(Schema):
    """PATCH /admin/customers/<customer_id>"""

    status = fields.Str(required=True, validate=validate.OneOf(["active", "inactive"]))
