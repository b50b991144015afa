"""
Capture Verifier
================
Decides whether a capture response is worth an entitlement. Pure: no I/O,
so it is tested independently of the network call.

A capture is accepted only when:
1. the HTTP status was a success
2. the order status is exactly COMPLETED
3. the first purchase unit's first capture carries an amount
4. that amount's currency and value equal the catalog entry, character for character
5. the purchase unit, if it names a product, names the claimed one

The amount check is the only thing standing between a tampered client
request and a free guide, so it is string equality on canonical
fixed-point values. No numeric tolerance.
"""

from typing import Any, Optional

import structlog

from justicebot.errors import PaymentNotVerified
from justicebot.schemas import PriceEntry, VerifiedCapture


logger = structlog.get_logger().bind(component="capture_verifier")

COMPLETED = "COMPLETED"


def _first(items: Any) -> Optional[dict]:
    if isinstance(items, list) and items and isinstance(items[0], dict):
        return items[0]
    return None


def verify_capture(
    order: Any,
    product_id: str,
    expected: PriceEntry,
    http_status: int = 200,
) -> VerifiedCapture:
    """Raise PaymentNotVerified unless the capture settled the exact catalog price."""
    if http_status >= 300:
        raise PaymentNotVerified("http_error", order=order)

    if not isinstance(order, dict):
        raise PaymentNotVerified("malformed_order", order=order)

    status = order.get("status")
    if status != COMPLETED:
        logger.info("capture_not_completed", order_id=order.get("id"), status=status)
        raise PaymentNotVerified("status_not_completed", order=order)

    unit = _first(order.get("purchase_units"))
    if unit is None:
        raise PaymentNotVerified("missing_purchase_unit", order=order)

    reference_id = unit.get("reference_id")
    if reference_id is not None and reference_id != product_id:
        logger.warning("capture_product_mismatch", order_id=order.get("id"),
                       claimed=product_id, reference_id=reference_id)
        raise PaymentNotVerified("product_mismatch", order=order)

    payments = unit.get("payments")
    capture = _first(payments.get("captures")) if isinstance(payments, dict) else None
    if capture is None:
        raise PaymentNotVerified("missing_capture", order=order)

    amount = capture.get("amount")
    if not isinstance(amount, dict):
        raise PaymentNotVerified("missing_amount", order=order)

    currency = amount.get("currency_code")
    value = amount.get("value")
    if not isinstance(currency, str) or not isinstance(value, str):
        raise PaymentNotVerified("malformed_amount", order=order)

    if currency != expected.currency or value != expected.amount:
        logger.warning("capture_amount_mismatch", order_id=order.get("id"),
                       product_id=product_id,
                       expected=f"{expected.currency} {expected.amount}",
                       received=f"{currency} {value}")
        raise PaymentNotVerified("amount_mismatch", order=order)

    capture_id = capture.get("id")
    return VerifiedCapture(
        order_id=str(order.get("id", "")),
        product_id=product_id,
        currency=currency,
        amount=value,
        capture_id=capture_id if isinstance(capture_id, str) else None,
    )
