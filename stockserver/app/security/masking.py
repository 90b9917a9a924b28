"""
security/masking.py — One-way display masks for PII.

    mask_email("ab@example.com") -> "ab***@example.com"
    mask_phone("1234567890")     -> "123***90"

The original value can never be rebuilt from the mask.
"""

from __future__ import annotations

MASK = "***"


def mask_email(email: str | None) -> str:
    if not email:
        return ""

    local, sep, domain = email.partition("@")
    if not sep:
        # Not an email; never echo it back.
        return local[:2] + MASK

    return f"{local[:2]}{MASK}@{domain}"


def mask_phone(phone: str | None) -> str:
    if not phone:
        return ""

    # Too short to keep 3 + 2 characters without revealing the whole number.
    if len(phone) <= 5:
        return MASK

    return f"{phone[:3]}{MASK}{phone[-2:]}"
