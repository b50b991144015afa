"""
Service Wiring
==============
Builds every long-lived component once at start-up and hands them to the
HTTP layer as one object.

    settings = Settings.from_env()
    services = build_services(settings)
    await services.startup()
    ...
    await services.shutdown()
"""

from dataclasses import dataclass, field
from typing import Optional

import httpx
import structlog

from justicebot.auth import IdentityVerifier
from justicebot.config import Settings, StoreConfig
from justicebot.errors import ConfigurationError, StoreError
from justicebot.pipeline import (
    AssetBindings,
    AssetGate,
    IAuditLog,
    InMemoryAuditLog,
    OrderOrchestrator,
    PriceCatalog,
    PurchaseService,
)
from justicebot.services.journey_rules import Procedures, load_procedures
from justicebot.storage import (
    EntitlementStore,
    InMemoryEntitlementStore,
    PostgresEntitlementStore,
    SupabaseEntitlementStore,
)


logger = structlog.get_logger().bind(component="container")

STORE_BACKENDS = ("supabase", "postgres", "memory")


@dataclass
class Services:
    settings: Settings
    verifier: IdentityVerifier
    catalog: PriceCatalog
    bindings: AssetBindings
    orchestrator: OrderOrchestrator
    store: EntitlementStore
    audit: IAuditLog
    purchases: PurchaseService
    gate: AssetGate
    procedures: Procedures = field(default_factory=dict)

    async def startup(self) -> None:
        # postgres creates its pool and table here; the others are no-ops.
        # A store that cannot start yet is retried lazily on first use.
        try:
            await self.store.initialize()
        except (ConfigurationError, StoreError) as e:
            logger.error("store_init_deferred", store=type(self.store).__name__, error=e.message)
        logger.info("services_started",
                    store=type(self.store).__name__,
                    paypal_base_url=self.settings.paypal.base_url,
                    token_cache=self.settings.paypal.cache_token)

    async def shutdown(self) -> None:
        await self.orchestrator.close()
        await self.store.close()
        logger.info("services_stopped")


def build_store(config: StoreConfig, client: Optional[httpx.AsyncClient] = None) -> EntitlementStore:
    """Entitlement backend named by ENTITLEMENT_BACKEND"""
    if config.backend == "supabase":
        return SupabaseEntitlementStore(config, client=client)
    if config.backend == "postgres":
        return PostgresEntitlementStore(config)
    if config.backend == "memory":
        logger.warning("memory_store_selected", note="entitlements are lost on restart")
        return InMemoryEntitlementStore()
    raise ConfigurationError(
        f"unknown ENTITLEMENT_BACKEND {config.backend!r}, expected one of {', '.join(STORE_BACKENDS)}"
    )


def build_services(
    settings: Settings,
    paypal_client: Optional[httpx.AsyncClient] = None,
    store: Optional[EntitlementStore] = None,
    catalog: Optional[PriceCatalog] = None,
    bindings: Optional[AssetBindings] = None,
) -> Services:
    """Wire components from settings. Any argument given replaces the default."""
    if catalog is None:
        catalog = PriceCatalog()
    if bindings is None:
        bindings = AssetBindings.from_product_files(settings.assets.docs_dir)
    if store is None:
        store = build_store(settings.store)
    audit = InMemoryAuditLog()
    orchestrator = OrderOrchestrator(settings.paypal, catalog, client=paypal_client)

    return Services(
        settings=settings,
        verifier=IdentityVerifier(settings.auth),
        catalog=catalog,
        bindings=bindings,
        orchestrator=orchestrator,
        store=store,
        audit=audit,
        purchases=PurchaseService(catalog, orchestrator, store, audit),
        gate=AssetGate(bindings, store),
        procedures=load_procedures(settings.server.procedures_file),
    )
