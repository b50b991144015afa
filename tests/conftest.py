"""Shared fixtures: token minting and a fake PayPal behind httpx.MockTransport."""

import json
import time
from typing import Optional

import httpx
import jwt
import pytest

from justicebot.config import AuthConfig, PayPalConfig
from justicebot.pipeline import PriceCatalog
from justicebot.schemas import IdentityContext


SECRET = "test-signing-key-0123456789-abcdefghijklmnopqrstuvwxyz-0123456789"
PAYPAL_BASE_URL = "https://paypal.test"


def make_token(
    sub: Optional[str] = "user-123",
    email: str = "tenant@example.com",
    expires_in: int = 300,
    secret: str = SECRET,
    algorithm: str = "HS256",
    **claims,
) -> str:
    payload = {"email": email, "exp": int(time.time()) + expires_in, **claims}
    if sub is not None:
        payload["sub"] = sub
    return jwt.encode(payload, secret, algorithm=algorithm)


def completed_order(
    order_id: str = "ORDER-1",
    currency: str = "CAD",
    value: str = "5.00",
    reference_id: Optional[str] = "doc_small",
    status: str = "COMPLETED",
) -> dict:
    unit = {
        "payments": {
            "captures": [{
                "id": "CAPTURE-1",
                "status": "COMPLETED",
                "amount": {"currency_code": currency, "value": value},
            }],
        },
    }
    if reference_id is not None:
        unit["reference_id"] = reference_id
    return {"id": order_id, "status": status, "purchase_units": [unit]}


class FakePayPal:
    """Records every request; responses are set per test."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.tokens_issued = 0
        self.token_status = 200
        self.create_status = 201
        self.capture_status = 201
        self.capture_body = completed_order()
        self.rejected_tokens: set[str] = set()
        self.raise_error: Optional[Exception] = None

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.raise_error is not None:
            raise self.raise_error

        path = request.url.path
        if path == "/v1/oauth2/token":
            self.tokens_issued += 1
            return httpx.Response(
                self.token_status,
                json={"access_token": f"token-{self.tokens_issued}", "expires_in": 32400},
            )

        token = request.headers.get("Authorization", "")[len("Bearer "):]
        if token in self.rejected_tokens:
            return httpx.Response(401, json={"error": "invalid_token"})

        if path == "/v2/checkout/orders":
            body = json.loads(request.content)
            return httpx.Response(self.create_status, json={
                "id": "ORDER-1",
                "status": "CREATED",
                "purchase_units": body["purchase_units"],
            })
        if path.endswith("/capture"):
            return httpx.Response(self.capture_status, json=self.capture_body)
        return httpx.Response(404, json={"name": "RESOURCE_NOT_FOUND"})

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=PAYPAL_BASE_URL, transport=httpx.MockTransport(self.handler))

    @property
    def paths(self) -> list[str]:
        return [r.url.path for r in self.requests]

    @property
    def token_requests(self) -> int:
        return self.paths.count("/v1/oauth2/token")


@pytest.fixture
def auth_config():
    return AuthConfig(jwt_secret=SECRET)


@pytest.fixture
def paypal_config():
    return PayPalConfig(
        client_id="client-id",
        client_secret="client-secret",
        base_url_override=PAYPAL_BASE_URL,
    )


@pytest.fixture
def catalog():
    return PriceCatalog()


@pytest.fixture
def identity():
    return IdentityContext(subject_id="user-123", email="tenant@example.com")


@pytest.fixture
def fake_paypal():
    return FakePayPal()
