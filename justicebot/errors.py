"""
Error Taxonomy
==============
Typed failures raised by every component and mapped to HTTP status codes
by the server's exception handler.

Components never build HTTP responses themselves: they raise one of these
and let the request handler decide what the caller sees.
"""

from typing import Any, Optional


class JusticeBotError(Exception):
    """Base class for all typed failures"""

    status_code: int = 500
    code: str = "internal_error"

    def __init__(self, message: str = "", **context: Any):
        super().__init__(message or self.code)
        self.message = message or self.code
        self.context = context

    def to_body(self) -> dict:
        return {"error": self.code, "detail": self.message}


class Unauthorized(JusticeBotError):
    status_code = 401
    code = "unauthorized"


class BadRequest(JusticeBotError):
    status_code = 400
    code = "bad_request"


class UnknownProduct(BadRequest):
    code = "unknown_product"

    def __init__(self, product_id: str):
        super().__init__(f"unknown product: {product_id!r}", product_id=product_id)
        self.product_id = product_id


class PaymentNotVerified(JusticeBotError):
    """Capture came back but failed local verification.

    The raw processor order is kept so the handler can return it to the
    client for diagnostics.
    """

    status_code = 400
    code = "payment_not_verified"

    def __init__(self, reason: str, order: Optional[Any] = None):
        super().__init__(f"payment not verified: {reason}", reason=reason)
        self.reason = reason
        self.order = order

    def to_body(self) -> Any:
        if self.order is not None:
            return self.order
        return super().to_body()


class Forbidden(JusticeBotError):
    status_code = 403
    code = "forbidden"


class NotFound(JusticeBotError):
    status_code = 404
    code = "not_found"


class UpstreamError(JusticeBotError):
    """Payment processor failure (transport, timeout, non-2xx, bad body)"""

    status_code = 502
    code = "upstream_error"

    def __init__(self, message: str, status: Optional[int] = None, body: str = ""):
        super().__init__(message, status=status)
        self.status = status
        self.body = body


class StoreError(JusticeBotError):
    """Entitlement store failure"""

    status_code = 502
    code = "store_error"

    def __init__(self, message: str, status: Optional[int] = None, body: str = ""):
        super().__init__(message, status=status)
        self.status = status
        self.body = body


class ConfigurationError(JusticeBotError):
    """Deployment secrets or settings are missing"""

    status_code = 500
    code = "configuration_error"
