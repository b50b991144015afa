# storage/entitlements.py
# ============================================================================
# JUSTICE-BOT BACKEND v1.0 - ENTITLEMENT STORE INTERFACE
# ============================================================================
# One row per (user_id, product_id). Grants are idempotent upserts: a
# repeated grant refreshes granted_at and never creates a second row.
#
# Backends:
# - SupabaseEntitlementStore (PostgREST over HTTP)  storage/supabase_store.py
# - PostgresEntitlementStore (asyncpg)              storage/postgres_store.py
# - InMemoryEntitlementStore (local dev + tests)    this module
#
# has() must raise StoreError when it cannot answer. Returning False on
# error would make "no entitlement" and "store down" indistinguishable.
# ============================================================================

import asyncio
from abc import ABC, abstractmethod
from typing import Any

from justicebot.schemas import Entitlement


# Target table, matching the Supabase schema:
#   create table if not exists entitlements(
#     user_id uuid not null,
#     product_id text not null,
#     granted_at timestamptz not null default now(),
#     primary key (user_id, product_id)
#   );
ENTITLEMENTS_TABLE = "entitlements"


class EntitlementStore(ABC):
    """Entitlement store interface"""

    @abstractmethod
    async def grant(self, user_id: str, product_id: str) -> Entitlement:
        """Insert-or-refresh the (user, product) row."""
        pass

    @abstractmethod
    async def has(self, user_id: str, product_id: str) -> bool:
        pass

    @abstractmethod
    async def list_for_user(self, user_id: str) -> list[dict[str, Any]]:
        """Rows of {product_id, granted_at} for the user."""
        pass

    async def initialize(self) -> None:
        pass

    async def close(self) -> None:
        pass


class InMemoryEntitlementStore(EntitlementStore):
    """Process-local store. Not shared between service instances."""

    def __init__(self):
        self._rows: dict[tuple[str, str], Entitlement] = {}
        self._lock = asyncio.Lock()

    async def grant(self, user_id: str, product_id: str) -> Entitlement:
        async with self._lock:
            entitlement = Entitlement(user_id=user_id, product_id=product_id)
            self._rows[(user_id, product_id)] = entitlement
            return entitlement

    async def has(self, user_id: str, product_id: str) -> bool:
        async with self._lock:
            return (user_id, product_id) in self._rows

    async def list_for_user(self, user_id: str) -> list[dict[str, Any]]:
        async with self._lock:
            return [
                {"product_id": e.product_id, "granted_at": e.granted_at.isoformat()}
                for (uid, _), e in sorted(self._rows.items())
                if uid == user_id
            ]

    def __len__(self) -> int:
        return len(self._rows)
