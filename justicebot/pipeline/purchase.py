"""
Purchase Flow
=============
Ties the orchestrator, verifier, entitlement store and audit trail into
the two request-level operations.

Lifecycle per order id:

    CREATED --capture--+--> VERIFIED_AND_GRANTED
                       +--> REJECTED

Verification runs strictly before the grant; a rejected capture never
reaches the store. There is no retry state: each capture request is one
synchronous attempt, and a client wanting to try again creates a new order.
"""

from typing import Any, Optional

import structlog

from justicebot.errors import JusticeBotError, PaymentNotVerified
from justicebot.pipeline.audit import AuditEventType, IAuditLog, InMemoryAuditLog, emit_audit
from justicebot.pipeline.capture_verifier import verify_capture
from justicebot.pipeline.catalog import PriceCatalog
from justicebot.pipeline.orchestrator import OrderOrchestrator
from justicebot.schemas import IdentityContext
from justicebot.storage import EntitlementStore


logger = structlog.get_logger().bind(component="purchase")


class PurchaseService:

    def __init__(
        self,
        catalog: PriceCatalog,
        orchestrator: OrderOrchestrator,
        store: EntitlementStore,
        audit: Optional[IAuditLog] = None,
    ):
        self.catalog = catalog
        self.orchestrator = orchestrator
        self.store = store
        self.audit = audit if audit is not None else InMemoryAuditLog()

    async def create(self, product_id: str, identity: IdentityContext) -> dict[str, Any]:
        order = await self.orchestrator.create_order(product_id, identity)
        await emit_audit(
            self.audit,
            AuditEventType.ORDER_CREATED,
            order_id=str(order.get("id", "")),
            user_id=identity.subject_id,
            product_id=product_id,
            metadata={"status": order.get("status")},
        )
        return order

    async def capture(self, order_id: str, product_id: str, identity: IdentityContext) -> dict[str, Any]:
        """Capture, verify, then grant. Returns the raw processor order."""
        log = logger.bind(order_id=order_id, product_id=product_id, user_id=identity.subject_id)

        # validates order id and product before any network call
        order = await self.orchestrator.capture_order(order_id, product_id)
        await emit_audit(
            self.audit,
            AuditEventType.CAPTURE_ATTEMPTED,
            order_id=order_id,
            user_id=identity.subject_id,
            product_id=product_id,
            metadata={"status": order.get("status")},
        )

        expected = self.catalog.lookup(product_id)
        try:
            verified = verify_capture(order, product_id, expected)
        except PaymentNotVerified as e:
            await emit_audit(
                self.audit,
                AuditEventType.PAYMENT_REJECTED,
                order_id=order_id,
                user_id=identity.subject_id,
                product_id=product_id,
                metadata={"reason": e.reason},
            )
            log.warning("capture_rejected", reason=e.reason)
            raise

        await emit_audit(
            self.audit,
            AuditEventType.PAYMENT_VERIFIED,
            order_id=order_id,
            user_id=identity.subject_id,
            product_id=product_id,
            metadata={"amount": f"{verified.currency} {verified.amount}",
                      "capture_id": verified.capture_id},
        )

        try:
            entitlement = await self.store.grant(identity.subject_id, product_id)
        except JusticeBotError as e:
            # paid but not granted: needs manual reconciliation from the audit trail
            await emit_audit(
                self.audit,
                AuditEventType.ENTITLEMENT_FAILED,
                order_id=order_id,
                user_id=identity.subject_id,
                product_id=product_id,
                metadata={"error": e.message},
            )
            log.error("entitlement_grant_failed", error=e.message)
            raise

        await emit_audit(
            self.audit,
            AuditEventType.ENTITLEMENT_GRANTED,
            order_id=order_id,
            user_id=identity.subject_id,
            product_id=product_id,
            metadata={"granted_at": entitlement.granted_at.isoformat()},
        )
        log.info("purchase_completed")
        return order
