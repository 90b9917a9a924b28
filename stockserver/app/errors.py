"""
errors.py — AppError base class and error code registry.

Every error returned by the API uses a code defined here. Service,
middleware and route code raise AppError; the global handler in
app/__init__.py turns it into the envelope:

    {"success": false, "message": "...", "error_code": "..."}

Rules:
  - Error codes are a versioned contract. They do not change once published.
  - Messages are human-readable prose and may be improved at any time.
  - 401 = we do not know who you are. 403 = we know, but you may not.
    Never swap them.
"""

from __future__ import annotations


class AppError(Exception):

    def __init__(
            self,
            code: str,
            message: str,
            http_status: int,
            field: str | None = None,
    ) -> None:
        super().__init__(message)
        self.code        = code
        self.message     = message
        self.http_status = http_status
        self.field       = field  # which request field caused the error

    def to_dict(self) -> dict:
        payload = {
            "success":    False,
            "message":    self.message,
            "error_code": self.code,
        }
        if self.field is not None:
            payload["field"] = self.field
        return payload

    def __repr__(self) -> str:
        return (
            f"AppError(code={self.code!r}, "
            f"http_status={self.http_status}, "
            f"message={self.message!r})"
        )


# ── Error Code Registry ────────────────────────────────────────────────────
#
# Organised by category. HTTP status is indicated in the comment.
# These are the string values sent as `error_code` in the API response.
# ──────────────────────────────────────────────────────────────────────────

class ErrorCode:

    # ── Schema / Input Errors (400) ────────────────────────────────────────
    MISSING_FIELD              = "MISSING_FIELD"
    INVALID_FIELD              = "INVALID_FIELD"
    INVALID_IDENTIFIER         = "INVALID_IDENTIFIER"

    # ── Conflict Errors (409) ──────────────────────────────────────────────
    DUPLICATE_EMAIL            = "DUPLICATE_EMAIL"
    DUPLICATE_SKU              = "DUPLICATE_SKU"
    DUPLICATE_SLUG             = "DUPLICATE_SLUG"

    # ── Not Found Errors (404) ─────────────────────────────────────────────
    USER_NOT_FOUND             = "USER_NOT_FOUND"
    PRODUCT_NOT_FOUND          = "PRODUCT_NOT_FOUND"
    CATEGORY_NOT_FOUND         = "CATEGORY_NOT_FOUND"
    CUSTOMER_NOT_FOUND         = "CUSTOMER_NOT_FOUND"
    ORDER_NOT_FOUND            = "ORDER_NOT_FOUND"
    ROUTE_NOT_FOUND            = "ROUTE_NOT_FOUND"

    # ── Business Rule Violations (422) ────────────────────────────────────
    INSUFFICIENT_STOCK         = "INSUFFICIENT_STOCK"
    CATEGORY_HAS_PRODUCTS      = "CATEGORY_HAS_PRODUCTS"
    INVALID_STATUS_TRANSITION  = "INVALID_STATUS_TRANSITION"

    # ── Auth Errors ────────────────────────────────────────────────────────
    # 401: token problems and bad credentials. Client must re-authenticate.
    INVALID_CREDENTIALS        = "INVALID_CREDENTIALS"       # 401
    TOKEN_ABSENT               = "TOKEN_ABSENT"              # 401
    TOKEN_INVALID              = "TOKEN_INVALID"             # 401
    TOKEN_EXPIRED              = "TOKEN_EXPIRED"             # 401
    TOKEN_BLACKLISTED          = "TOKEN_BLACKLISTED"         # 401
    # 403: authenticated, but not allowed.
    ACCOUNT_INACTIVE           = "ACCOUNT_INACTIVE"          # 403
    ADMIN_ACCESS_REQUIRED      = "ADMIN_ACCESS_REQUIRED"     # 403
    CUSTOMER_ACCESS_REQUIRED   = "CUSTOMER_ACCESS_REQUIRED"  # 403

    # ── Rate Limiting (429) ────────────────────────────────────────────────
    RATE_LIMIT_EXCEEDED        = "RATE_LIMIT_EXCEEDED"

    # ── Method Errors (405) ────────────────────────────────────────────────
    METHOD_NOT_ALLOWED         = "METHOD_NOT_ALLOWED"

    # ── System Errors (5xx) ────────────────────────────────────────────────
    # SERVICE_UNAVAILABLE is an infrastructure failure (blacklist or user
    # store unreachable). It is never a security verdict.
    SERVICE_UNAVAILABLE        = "SERVICE_UNAVAILABLE"       # 503
    INTERNAL_ERROR             = "INTERNAL_ERROR"            # 500


# Maps a required role to the 403 code raised when the caller lacks it.
ROLE_REQUIRED_CODES: dict[str, str] = {
    "admin":    ErrorCode.ADMIN_ACCESS_REQUIRED,
    "customer": ErrorCode.CUSTOMER_ACCESS_REQUIRED,
}


def role_required_error(role: str) -> AppError:
    """Builds the 403 raised when the caller's role is not `role`."""
    return AppError(
        ROLE_REQUIRED_CODES.get(role, ErrorCode.ADMIN_ACCESS_REQUIRED),
        f"Unauthorized. {role.capitalize()} access required.",
        403,
    )


def service_unavailable(what: str) -> AppError:
    return AppError(
        ErrorCode.SERVICE_UNAVAILABLE,
        f"The {what} is temporarily unavailable. Please try again shortly.",
        503,
    )
