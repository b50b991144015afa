# schemas/__init__.py
from justicebot.schemas.commerce import (
    AssetBinding,
    CaptureOrderRequest,
    CaptureOrderResponse,
    CreateOrderRequest,
    Entitlement,
    HealthResponse,
    IdentityContext,
    PriceEntry,
    ProductListing,
    ProductsResponse,
    VerifiedCapture,
    WhoAmIResponse,
)
from justicebot.schemas.journey import (
    FormRef,
    JourneyResult,
    JourneyStep,
    LegalJourney,
)

__all__ = [
    # Commerce
    "AssetBinding",
    "CaptureOrderRequest",
    "CaptureOrderResponse",
    "CreateOrderRequest",
    "Entitlement",
    "HealthResponse",
    "IdentityContext",
    "PriceEntry",
    "ProductListing",
    "ProductsResponse",
    "VerifiedCapture",
    "WhoAmIResponse",
    # Journeys
    "FormRef",
    "JourneyResult",
    "JourneyStep",
    "LegalJourney",
]
