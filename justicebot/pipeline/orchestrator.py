"""
Order Orchestrator
==================
Two-phase purchase against PayPal's Orders v2 API:

- create_order: server-priced order for a catalog product (intent=CAPTURE)
- capture_order: settle a previously created order by id

Every call authenticates with a client-credentials exchange. Caching the
access token is optional (PAYPAL_CACHE_TOKEN) and off by default; when it
is on, a 401 from the processor drops the cached token and the call is
re-authenticated once. Create and capture themselves are never retried.
"""

import asyncio
import time
from typing import Any, Optional
from urllib.parse import quote

import httpx
import structlog

from justicebot.config import PayPalConfig
from justicebot.errors import BadRequest, ConfigurationError, UpstreamError
from justicebot.pipeline.catalog import PriceCatalog
from justicebot.schemas import IdentityContext


logger = structlog.get_logger().bind(component="orchestrator")

TOKEN_PATH = "/v1/oauth2/token"
ORDERS_PATH = "/v2/checkout/orders"

# refresh a cached token this many seconds before PayPal says it expires
TOKEN_EXPIRY_SKEW_SECONDS = 60
MAX_LOGGED_BODY = 500


def _decode_json(response: httpx.Response, what: str) -> dict[str, Any]:
    try:
        data = response.json()
    except ValueError:
        logger.error("upstream_undecodable", what=what, status=response.status_code)
        raise UpstreamError(f"{what}: undecodable response", status=response.status_code,
                            body=response.text[:MAX_LOGGED_BODY])
    if not isinstance(data, dict):
        raise UpstreamError(f"{what}: unexpected response shape", status=response.status_code)
    return data


def _raise_for_status(response: httpx.Response, what: str) -> None:
    if response.status_code >= 300:
        body = response.text[:MAX_LOGGED_BODY]
        logger.warning("upstream_rejected", what=what, status=response.status_code, body=body)
        raise UpstreamError(f"{what} failed with status {response.status_code}",
                            status=response.status_code, body=body)


# =============================================================================
# ACCESS TOKEN PROVIDER
# =============================================================================

class AccessTokenProvider:
    """
    Client-credentials exchange with an optional in-process cache.

    With caching off every get() hits the processor.
    """

    def __init__(self, config: PayPalConfig, client: httpx.AsyncClient):
        self.config = config
        self._client = client
        self._token: Optional[str] = None
        self._expires_at: float = 0.0
        self._lock = asyncio.Lock()

    @property
    def caching(self) -> bool:
        return self.config.cache_token

    async def get(self) -> str:
        if not self.caching:
            token, _ = await self._fetch()
            return token

        async with self._lock:
            if self._token and time.monotonic() < self._expires_at:
                return self._token
            token, expires_in = await self._fetch()
            self._token = token
            self._expires_at = time.monotonic() + max(0, expires_in - TOKEN_EXPIRY_SKEW_SECONDS)
            return token

    def invalidate(self, token: Optional[str] = None) -> None:
        """Drop the cached token (only if it is the one that was rejected)."""
        if token is None or token == self._token:
            self._token = None
            self._expires_at = 0.0

    async def _fetch(self) -> tuple[str, int]:
        if not self.config.has_credentials:
            raise ConfigurationError("payment processor credentials are not configured")

        try:
            response = await self._client.post(
                TOKEN_PATH,
                data={"grant_type": "client_credentials"},
                auth=(self.config.client_id, self.config.client_secret),
                headers={"Accept": "application/json"},
            )
        except httpx.TimeoutException:
            logger.error("oauth_timeout")
            raise UpstreamError("payment processor oauth timed out")
        except httpx.HTTPError as e:
            logger.error("oauth_transport_error", error=str(e))
            raise UpstreamError("payment processor oauth unreachable")

        _raise_for_status(response, "paypal oauth")
        data = _decode_json(response, "paypal oauth")

        token = data.get("access_token")
        if not isinstance(token, str) or not token:
            raise UpstreamError("paypal oauth: no access token in response", status=response.status_code)

        expires_in = data.get("expires_in", 0)
        if not isinstance(expires_in, int):
            expires_in = 0
        logger.debug("access_token_obtained", expires_in=expires_in)
        return token, expires_in


# =============================================================================
# ORDER ORCHESTRATOR
# =============================================================================

class OrderOrchestrator:
    """
    Creates and captures processor orders for catalog products.

    Example:
        orchestrator = OrderOrchestrator(PayPalConfig.from_env(), PriceCatalog())
        order = await orchestrator.create_order("doc_small", identity)
        # client approves order["id"] in the PayPal checkout UI
        captured = await orchestrator.capture_order(order["id"], "doc_small")
    """

    def __init__(
        self,
        config: PayPalConfig,
        catalog: PriceCatalog,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.config = config
        self.catalog = catalog
        self._client = client or httpx.AsyncClient(
            base_url=config.base_url,
            timeout=config.timeout_seconds,
        )
        self.tokens = AccessTokenProvider(config, self._client)

    async def close(self):
        await self._client.aclose()

    def build_order_payload(self, product_id: str, identity: IdentityContext) -> dict[str, Any]:
        price = self.catalog.lookup(product_id)
        return {
            "intent": "CAPTURE",
            "purchase_units": [{
                "reference_id": product_id,
                "custom_id": identity.subject_id,
                "amount": {
                    "currency_code": price.currency,
                    "value": price.amount,
                },
            }],
            "application_context": {
                "shipping_preference": "NO_SHIPPING",
                "brand_name": self.config.brand_name,
                "user_action": "PAY_NOW",
            },
        }

    async def create_order(self, product_id: str, identity: IdentityContext) -> dict[str, Any]:
        """Create an order priced from the catalog. Returns the processor payload verbatim."""
        payload = self.build_order_payload(product_id, identity)

        response = await self._authorized_post(ORDERS_PATH, json=payload, what="paypal create")
        _raise_for_status(response, "paypal create")
        order = _decode_json(response, "paypal create")

        logger.info("order_created", order_id=order.get("id"), product_id=product_id,
                    status=order.get("status"))
        return order

    async def capture_order(self, order_id: str, product_id: str) -> dict[str, Any]:
        """Capture a previously created order. Returns the raw processor response."""
        if not order_id:
            raise BadRequest("orderId is required")
        # raises UnknownProduct (a BadRequest) before any network call
        self.catalog.lookup(product_id)

        path = f"{ORDERS_PATH}/{quote(order_id, safe='')}/capture"
        response = await self._authorized_post(path, json=None, what="paypal capture")
        _raise_for_status(response, "paypal capture")
        captured = _decode_json(response, "paypal capture")

        logger.info("order_captured", order_id=order_id, product_id=product_id,
                    status=captured.get("status"))
        return captured

    # -------------------------------------------------------------------------

    async def _authorized_post(self, path: str, json: Optional[dict], what: str) -> httpx.Response:
        token = await self.tokens.get()
        response = await self._post(path, token, json, what)

        if response.status_code == 401 and self.tokens.caching:
            logger.info("access_token_rejected", what=what)
            self.tokens.invalidate(token)
            token = await self.tokens.get()
            response = await self._post(path, token, json, what)

        return response

    async def _post(self, path: str, token: str, json: Optional[dict], what: str) -> httpx.Response:
        headers = {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
        }
        try:
            if json is None:
                return await self._client.post(path, headers=headers)
            return await self._client.post(path, headers=headers, json=json)
        except httpx.TimeoutException:
            logger.error("upstream_timeout", what=what)
            raise UpstreamError(f"{what} timed out")
        except httpx.HTTPError as e:
            logger.error("upstream_transport_error", what=what, error=str(e))
            raise UpstreamError(f"{what} unreachable")
