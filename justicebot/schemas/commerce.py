# schemas/commerce.py
# ============================================================================
# JUSTICE-BOT BACKEND v1.0 - COMMERCE SCHEMAS
# ============================================================================
# Catalog prices, identities, entitlements, asset bindings and the
# request/response bodies of the payment endpoints.
# ============================================================================

import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


AMOUNT_PATTERN = re.compile(r"^\d+\.\d{2}$")
CURRENCY_PATTERN = re.compile(r"^[A-Z]{3}$")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ============================================================================
# SECTION 1: DOMAIN MODELS
# ============================================================================

class PriceEntry(BaseModel):
    """Server-held price for one product. Amount is a canonical fixed-point string."""
    model_config = ConfigDict(frozen=True)

    currency: str
    amount: str

    @field_validator("currency")
    @classmethod
    def _currency_code(cls, v: str) -> str:
        if not CURRENCY_PATTERN.match(v):
            raise ValueError(f"currency must be a 3-letter ISO code, got {v!r}")
        return v

    @field_validator("amount")
    @classmethod
    def _canonical_amount(cls, v: str) -> str:
        if not AMOUNT_PATTERN.match(v):
            raise ValueError(f"amount must look like '5.00', got {v!r}")
        return v


class IdentityContext(BaseModel):
    """Verified caller identity. Lives for one request."""
    model_config = ConfigDict(frozen=True)

    subject_id: str = Field(min_length=1)
    email: str = ""


class Entitlement(BaseModel):
    """Durable record that a user holds a product"""
    user_id: str
    product_id: str
    granted_at: datetime = Field(default_factory=utcnow)

    def to_row(self) -> dict:
        return {
            "user_id": self.user_id,
            "product_id": self.product_id,
            "granted_at": self.granted_at.isoformat(),
        }


class AssetBinding(BaseModel):
    """Public download slug bound to the product that unlocks it"""
    model_config = ConfigDict(frozen=True)

    slug: str
    product_id: str
    file_path: Path

    @property
    def filename(self) -> str:
        return self.file_path.name


class VerifiedCapture(BaseModel):
    """A capture that passed local verification"""
    order_id: str
    product_id: str
    currency: str
    amount: str
    capture_id: Optional[str] = None


# ============================================================================
# SECTION 2: REQUEST / RESPONSE BODIES
# ============================================================================

class CreateOrderRequest(BaseModel):
    """Missing fields default to empty so they surface as 400, not 422."""
    model_config = ConfigDict(populate_by_name=True)

    product_id: str = Field(default="", alias="productId")


class CaptureOrderRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    order_id: str = Field(default="", alias="orderId")
    product_id: str = Field(default="", alias="productId")


class CaptureOrderResponse(BaseModel):
    ok: bool = True
    order: dict[str, Any]


class ProductListing(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    product_id: str = Field(serialization_alias="productId")
    currency: str
    amount: str


class ProductsResponse(BaseModel):
    products: list[ProductListing]


class WhoAmIResponse(BaseModel):
    sub: str
    email: str


class HealthResponse(BaseModel):
    status: str
    version: str
    uptime_seconds: float
