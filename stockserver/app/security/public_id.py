"""
security/public_id.py — Public identifiers derived from internal document ids.

Internal ids are 24-char hex strings (ObjectId-shaped) and never leave the
server. Clients only ever see

    <prefix>_<first 16 hex chars of sha256(internal_id)>

The mapping is deterministic and one-way. Reverse lookup does NOT rehash
candidate rows: every identifiable table stores its public id in a unique,
indexed `public_id` column (see models/base.py), so resolving a public id is
one indexed equality query.

No Flask or SQLAlchemy imports here; these are pure functions.
"""

from __future__ import annotations

import hashlib
import os
import re
import time

from stockserver.app.errors import AppError, ErrorCode


# Keyed by table / resource type. Anything not listed falls back to "id".
PREFIXES: dict[str, str] = {
    "users":      "usr",
    "customers":  "cus",
    "products":   "prod",
    "categories": "cat",
    "orders":     "ord",
}
DEFAULT_PREFIX = "id"

PUBLIC_ID_PATTERN = re.compile(r"^(usr|cus|prod|cat|ord|id)_([0-9a-f]{16})$")
INTERNAL_ID_PATTERN = re.compile(r"^[0-9a-fA-F]{24}$")


def hash_id(internal_id: str, prefix: str) -> str:
    """prefix + "_" + first 16 hex chars of sha256(internal_id). Total over str."""
    digest = hashlib.sha256(str(internal_id).encode("utf-8")).hexdigest()
    return f"{prefix}_{digest[:16]}"


def prefix_for(resource_type: str) -> str:
    return PREFIXES.get(resource_type, DEFAULT_PREFIX)


def is_internal_id(value) -> bool:
    return isinstance(value, str) and INTERNAL_ID_PATTERN.match(value) is not None


def require_internal_id(value) -> str:
    """
    Boundary check for internal ids. Returns the id unchanged when it is
    24 hex chars, otherwise raises AppError(INVALID_IDENTIFIER, 400).
    """
    if not is_internal_id(value):
        raise AppError(
            ErrorCode.INVALID_IDENTIFIER,
            "The identifier is not a valid document id.",
            400,
        )
    return value


def public_id_for(resource_type: str, internal_id: str) -> str:
    """Public id of a row of `resource_type`. Rejects malformed internal ids."""
    return hash_id(require_internal_id(internal_id), prefix_for(resource_type))


def optional_public_id(resource_type: str, internal_id: str | None) -> str | None:
    """Same as public_id_for, but None in → None out (nullable references)."""
    if internal_id is None:
        return None
    return public_id_for(resource_type, internal_id)


def is_public_id(value) -> bool:
    return isinstance(value, str) and PUBLIC_ID_PATTERN.match(value) is not None


def split_public_id(value: str) -> tuple[str, str]:
    """
    Returns (prefix, hash) for a well-formed public id.

    Raises:
      AppError(INVALID_IDENTIFIER, 400) — value does not match the public format.
    """
    match = PUBLIC_ID_PATTERN.match(value) if isinstance(value, str) else None
    if match is None:
        raise AppError(
            ErrorCode.INVALID_IDENTIFIER,
            "The identifier is not a valid public id.",
            400,
        )
    return match.group(1), match.group(2)


def new_internal_id() -> str:
    """
    Generates an ObjectId-shaped id: 4-byte big-endian seconds timestamp
    followed by 8 random bytes, hex encoded (24 chars).
    """
    return int(time.time()).to_bytes(4, "big").hex() + os.urandom(8).hex()
