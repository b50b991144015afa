# Pipeline - entitlement authorization
# ====================================
# Catalog, processor orchestration, capture verification, purchase flow,
# audit trail and the download gate.

from .asset_gate import AssetGate, GatedAsset
from .audit import AuditEventType, AuditLogEntry, IAuditLog, InMemoryAuditLog
from .capture_verifier import verify_capture
from .catalog import AssetBindings, PriceCatalog
from .orchestrator import AccessTokenProvider, OrderOrchestrator
from .purchase import PurchaseService

__all__ = [
    # Catalog
    "AssetBindings",
    "PriceCatalog",
    # Processor
    "AccessTokenProvider",
    "OrderOrchestrator",
    "verify_capture",
    # Flow
    "PurchaseService",
    "AuditEventType",
    "AuditLogEntry",
    "IAuditLog",
    "InMemoryAuditLog",
    # Delivery
    "AssetGate",
    "GatedAsset",
]
