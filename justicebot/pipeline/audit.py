# pipeline/audit.py
# ============================================================================
# JUSTICE-BOT BACKEND v1.0 - PAYMENT AUDIT TRAIL
# ============================================================================
# Append-only record of every purchase lifecycle step, keyed by order id.
# Entries are also emitted as structured log events.
# ============================================================================

import asyncio
import uuid
from abc import ABC, abstractmethod
from collections import defaultdict, deque
from datetime import datetime
from enum import Enum
from typing import Optional

import structlog
from pydantic import BaseModel, Field

from justicebot.schemas.commerce import utcnow


logger = structlog.get_logger().bind(component="audit")


class AuditEventType(str, Enum):
    ORDER_CREATED = "order.created"
    CAPTURE_ATTEMPTED = "capture.attempted"
    PAYMENT_VERIFIED = "payment.verified"
    PAYMENT_REJECTED = "payment.rejected"
    ENTITLEMENT_GRANTED = "entitlement.granted"
    ENTITLEMENT_FAILED = "entitlement.failed"


class AuditLogEntry(BaseModel):
    """Immutable audit log entry"""
    log_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    order_id: str
    event_type: AuditEventType
    user_id: str
    product_id: str
    metadata: dict = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=utcnow)


class IAuditLog(ABC):
    """Audit log interface"""

    @abstractmethod
    async def append(self, entry: AuditLogEntry) -> None:
        pass

    @abstractmethod
    async def get_by_order(self, order_id: str) -> list[AuditLogEntry]:
        pass


class InMemoryAuditLog(IAuditLog):
    """Bounded append-only audit log"""

    def __init__(self, max_entries: int = 10_000):
        self._logs: deque[AuditLogEntry] = deque(maxlen=max_entries)
        self._by_order: dict[str, list[AuditLogEntry]] = defaultdict(list)
        self._lock = asyncio.Lock()

    async def append(self, entry: AuditLogEntry) -> None:
        async with self._lock:
            if len(self._logs) == self._logs.maxlen:
                evicted = self._logs[0]
                bucket = self._by_order.get(evicted.order_id)
                if bucket:
                    bucket.pop(0)
                    if not bucket:
                        del self._by_order[evicted.order_id]
            self._logs.append(entry)
            self._by_order[entry.order_id].append(entry)

    async def get_by_order(self, order_id: str) -> list[AuditLogEntry]:
        async with self._lock:
            return list(self._by_order.get(order_id, []))


async def emit_audit(
    audit: IAuditLog,
    event_type: AuditEventType,
    order_id: str,
    user_id: str,
    product_id: str,
    metadata: Optional[dict] = None,
) -> AuditLogEntry:
    """Append an entry and mirror it to the log stream"""
    entry = AuditLogEntry(
        order_id=order_id,
        event_type=event_type,
        user_id=user_id,
        product_id=product_id,
        metadata=metadata or {},
    )
    await audit.append(entry)
    logger.info("audit_event",
                event_type=event_type.value,
                order_id=order_id,
                product_id=product_id)
    return entry
