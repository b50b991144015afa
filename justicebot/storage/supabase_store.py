"""
Supabase Entitlement Store
==========================
Entitlements kept in the Supabase `entitlements` table, reached through
its PostgREST endpoint with the service-role key.

- grant: POST with Prefer: resolution=merge-duplicates (true upsert on the
  primary key), granted_at sent explicitly so repeats refresh it
- has / list_for_user: GET with eq. filters passed as query params
- every call is bounded by STORE_TIMEOUT_SECONDS; timeouts, transport
  errors, non-2xx answers and undecodable bodies all raise StoreError
"""

from typing import Any, Optional

import httpx
import structlog

from justicebot.config import StoreConfig
from justicebot.errors import ConfigurationError, StoreError
from justicebot.schemas import Entitlement
from justicebot.storage.entitlements import ENTITLEMENTS_TABLE, EntitlementStore


logger = structlog.get_logger().bind(component="supabase_store")

REST_PATH = f"/rest/v1/{ENTITLEMENTS_TABLE}"
MAX_LOGGED_BODY = 500


class SupabaseEntitlementStore(EntitlementStore):

    def __init__(self, config: StoreConfig, client: Optional[httpx.AsyncClient] = None):
        self.config = config
        self._client = client or httpx.AsyncClient(
            base_url=config.supabase_url,
            timeout=config.timeout_seconds,
        )

    async def close(self) -> None:
        await self._client.aclose()

    def _headers(self) -> dict[str, str]:
        if not self.config.supabase_url or not self.config.service_role_key:
            raise ConfigurationError("entitlement store is not configured")
        return {
            "apikey": self.config.service_role_key,
            "Authorization": f"Bearer {self.config.service_role_key}",
        }

    async def _request(self, method: str, what: str, **kwargs) -> httpx.Response:
        headers = {**self._headers(), **kwargs.pop("headers", {})}
        try:
            response = await self._client.request(method, REST_PATH, headers=headers, **kwargs)
        except httpx.TimeoutException:
            logger.error("store_timeout", what=what)
            raise StoreError(f"{what} timed out")
        except httpx.HTTPError as e:
            logger.error("store_transport_error", what=what, error=str(e))
            raise StoreError(f"{what} unreachable")

        if response.status_code >= 300:
            body = response.text[:MAX_LOGGED_BODY]
            logger.warning("store_rejected", what=what, status=response.status_code, body=body)
            raise StoreError(f"{what} failed with status {response.status_code}",
                             status=response.status_code, body=body)
        return response

    def _rows(self, response: httpx.Response, what: str) -> list[dict[str, Any]]:
        try:
            rows = response.json()
        except ValueError:
            raise StoreError(f"{what}: undecodable response", status=response.status_code)
        if not isinstance(rows, list):
            raise StoreError(f"{what}: unexpected response shape", status=response.status_code)
        return rows

    async def grant(self, user_id: str, product_id: str) -> Entitlement:
        entitlement = Entitlement(user_id=user_id, product_id=product_id)
        await self._request(
            "POST",
            "supabase upsert",
            params={"on_conflict": "user_id,product_id"},
            json=[entitlement.to_row()],
            headers={
                "Content-Type": "application/json",
                "Prefer": "resolution=merge-duplicates,return=representation",
            },
        )
        logger.info("entitlement_upserted", user_id=user_id, product_id=product_id)
        return entitlement

    async def has(self, user_id: str, product_id: str) -> bool:
        response = await self._request(
            "GET",
            "supabase select",
            params={
                "user_id": f"eq.{user_id}",
                "product_id": f"eq.{product_id}",
                "select": "product_id",
                "limit": "1",
            },
        )
        return len(self._rows(response, "supabase select")) > 0

    async def list_for_user(self, user_id: str) -> list[dict[str, Any]]:
        response = await self._request(
            "GET",
            "supabase list",
            params={
                "user_id": f"eq.{user_id}",
                "select": "product_id,granted_at",
            },
        )
        return self._rows(response, "supabase list")
