import pytest

from justicebot.errors import PaymentNotVerified, StoreError, UnknownProduct
from justicebot.pipeline import (
    AuditEventType,
    InMemoryAuditLog,
    OrderOrchestrator,
    PurchaseService,
)
from justicebot.pipeline.audit import emit_audit
from justicebot.storage import InMemoryEntitlementStore

from conftest import completed_order


class CountingStore(InMemoryEntitlementStore):
    def __init__(self, fail: bool = False):
        super().__init__()
        self.grants = 0
        self.fail = fail

    async def grant(self, user_id, product_id):
        self.grants += 1
        if self.fail:
            raise StoreError("supabase upsert failed with status 503", status=503)
        return await super().grant(user_id, product_id)


@pytest.fixture
def store():
    return CountingStore()


@pytest.fixture
def audit():
    return InMemoryAuditLog()


@pytest.fixture
def purchases(paypal_config, catalog, fake_paypal, store, audit):
    orchestrator = OrderOrchestrator(paypal_config, catalog, client=fake_paypal.client())
    return PurchaseService(catalog, orchestrator, store, audit)


async def events(audit, order_id="ORDER-1"):
    return [entry.event_type for entry in await audit.get_by_order(order_id)]


async def test_create_is_audited(purchases, identity, audit):
    order = await purchases.create("doc_small", identity)

    assert order["status"] == "CREATED"
    assert await events(audit) == [AuditEventType.ORDER_CREATED]


async def test_verified_capture_grants(purchases, identity, store, audit):
    order = await purchases.capture("ORDER-1", "doc_small", identity)

    assert order["status"] == "COMPLETED"
    assert store.grants == 1
    assert await store.has("user-123", "doc_small")
    assert await events(audit) == [
        AuditEventType.CAPTURE_ATTEMPTED,
        AuditEventType.PAYMENT_VERIFIED,
        AuditEventType.ENTITLEMENT_GRANTED,
    ]


async def test_incomplete_capture_never_reaches_store(purchases, identity, store, audit, fake_paypal):
    fake_paypal.capture_body = completed_order(status="PENDING")

    with pytest.raises(PaymentNotVerified) as exc:
        await purchases.capture("ORDER-1", "doc_small", identity)

    assert exc.value.order == fake_paypal.capture_body
    assert store.grants == 0
    assert await events(audit) == [AuditEventType.CAPTURE_ATTEMPTED, AuditEventType.PAYMENT_REJECTED]


async def test_wrong_amount_never_reaches_store(purchases, identity, store, fake_paypal):
    fake_paypal.capture_body = completed_order(value="5.01")

    with pytest.raises(PaymentNotVerified, match="amount_mismatch"):
        await purchases.capture("ORDER-1", "doc_small", identity)

    assert store.grants == 0
    assert len(store) == 0


async def test_cheap_capture_cannot_claim_expensive_product(purchases, identity, store, fake_paypal):
    # doc_small paid, doc_pro claimed
    fake_paypal.capture_body = completed_order(value="5.00", reference_id=None)

    with pytest.raises(PaymentNotVerified):
        await purchases.capture("ORDER-1", "doc_pro", identity)

    assert store.grants == 0


async def test_unknown_product_makes_no_call(purchases, identity, store, fake_paypal):
    with pytest.raises(UnknownProduct):
        await purchases.capture("ORDER-1", "doc_free", identity)

    assert fake_paypal.requests == []
    assert store.grants == 0


async def test_store_failure_after_payment_is_audited(paypal_config, catalog, fake_paypal, identity, audit):
    store = CountingStore(fail=True)
    orchestrator = OrderOrchestrator(paypal_config, catalog, client=fake_paypal.client())
    purchases = PurchaseService(catalog, orchestrator, store, audit)

    with pytest.raises(StoreError):
        await purchases.capture("ORDER-1", "doc_small", identity)

    assert await events(audit) == [
        AuditEventType.CAPTURE_ATTEMPTED,
        AuditEventType.PAYMENT_VERIFIED,
        AuditEventType.ENTITLEMENT_FAILED,
    ]


async def test_repeat_capture_keeps_single_entitlement(purchases, identity, store):
    await purchases.capture("ORDER-1", "doc_small", identity)
    await purchases.capture("ORDER-1", "doc_small", identity)

    assert store.grants == 2
    assert len(store) == 1


async def test_audit_log_is_bounded():
    audit = InMemoryAuditLog(max_entries=2)

    for order_id in ("A", "B", "C"):
        await emit_audit(audit, AuditEventType.ORDER_CREATED, order_id, "user-1", "doc_small")

    assert await audit.get_by_order("A") == []
    assert len(await audit.get_by_order("C")) == 1
