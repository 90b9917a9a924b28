"""
schemas/auth_schema.py — Marshmallow schemas for authentication endpoints.

Validation responsibility:
  - This file: field types, lengths, formats.
  - services/auth_service.py: DUPLICATE_EMAIL and credential checks
    (they need a DB lookup — not a schema concern).

All schemas inherit from marshmallow.Schema directly, never ma.Schema.
See extensions.py.
"""

from __future__ import annotations

from marshmallow import Schema, ValidationError, fields, validate, validates


class LoginSchema(Schema):
    """
    POST /auth/admin/login, POST /auth/customer/login

    Credential correctness is checked in auth_service.py
    (INVALID_CREDENTIALS, 401).
    """

    email = fields.Email(required=True)
    password = fields.Str(required=True, load_only=True)


class CustomerRegisterSchema(Schema):
    """
    POST /auth/customer/register

    Field rules:
      name     : 2–120 chars
      email    : valid email format
      password : min 8 chars, at least one letter and one digit
      phone    : optional, digits with an optional leading +, 7–20 chars
    """

    name = fields.Str(
        required=True,
        validate=validate.Length(
            min=2,
            max=120,
            error="Name must be between 2 and 120 characters.",
        ),
    )
    email = fields.Email(required=True, validate=validate.Length(max=255))
    password = fields.Str(required=True, load_only=True)
    phone = fields.Str(
        load_default=None,
        validate=validate.Regexp(
            r"^\+?[0-9]{7,20}$",
            error="Phone must contain 7 to 20 digits, optionally prefixed by +.",
        ),
    )
    marketing_consent = fields.Bool(load_default=False)

    @validates("password")
    def validate_password_strength(self, value: str, **kwargs) -> None:
        if len(value) < 8:
            raise ValidationError("Password must be at least 8 characters long.")
        if not any(c.isalpha() for c in value):
            raise ValidationError("Password must contain at least one letter.")
        if not any(c.isdigit() for c in value):
            raise ValidationError("Password must contain at least one digit.")


class RefreshTokenSchema(Schema):
    """
    POST /auth/refresh

    Validity (signature, expiry, revoked) is checked by token_service.
    """

    refresh_token = fields.Str(required=True)


class LogoutSchema(Schema):
    """POST /auth/logout — the refresh token is optional; when sent it is revoked too."""

    refresh_token = fields.Str(load_default=None)
