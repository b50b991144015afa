# storage/__init__.py
# ============================================================================
# JUSTICE-BOT BACKEND v1.0 - STORAGE MODULE
# ============================================================================
# Entitlement store interface and its backends
# ============================================================================

from justicebot.storage.entitlements import (
    EntitlementStore,
    InMemoryEntitlementStore,
)
from justicebot.storage.postgres_store import PostgresEntitlementStore
from justicebot.storage.supabase_store import SupabaseEntitlementStore

__all__ = [
    "EntitlementStore",
    "InMemoryEntitlementStore",
    "PostgresEntitlementStore",
    "SupabaseEntitlementStore",
]
