# api/server.py
# ============================================================================
# JUSTICE-BOT BACKEND v1.0 - FASTAPI SERVER
# ============================================================================
# HTTP surface: health, identity echo, product listing, the two-phase
# purchase, entitlement listing, gated downloads and journey lookup.
#
# Handlers stay thin: components raise JusticeBotError subclasses and the
# exception handler below turns them into status codes.
# ============================================================================

import time
import uuid
from contextlib import asynccontextmanager
from typing import Any, Optional

import structlog
import uvicorn
from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse

from justicebot import __version__
from justicebot.api.dependencies import get_services, require_identity
from justicebot.config import Settings
from justicebot.errors import BadRequest, JusticeBotError
from justicebot.schemas import (
    CaptureOrderRequest,
    CaptureOrderResponse,
    CreateOrderRequest,
    HealthResponse,
    IdentityContext,
    JourneyResult,
    ProductListing,
    ProductsResponse,
    WhoAmIResponse,
)
from justicebot.services import Services, build_journey, build_services


logger = structlog.get_logger().bind(component="server")

REQUEST_ID_HEADER = "X-Request-ID"

router = APIRouter(prefix="/api")


# ============================================================================
# LIFESPAN MANAGEMENT
# ============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown logic."""
    services: Services = app.state.services
    logger.info("server_starting", version=__version__, env=services.settings.server.env)
    await services.startup()
    app.state.started_at = time.monotonic()

    yield

    await services.shutdown()
    logger.info("server_stopped")


# ============================================================================
# MIDDLEWARE
# ============================================================================

async def request_context(request: Request, call_next):
    """Request id into the log context, plus timing and id response headers"""
    request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:12]
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(request_id=request_id)

    start = time.perf_counter()
    response = await call_next(request)
    duration = (time.perf_counter() - start) * 1000

    response.headers["X-Response-Time-Ms"] = f"{duration:.2f}"
    response.headers[REQUEST_ID_HEADER] = request_id
    logger.info("request_completed",
                method=request.method,
                path=request.url.path,
                status=response.status_code,
                duration_ms=round(duration, 2))
    return response


# ============================================================================
# ERROR HANDLERS
# ============================================================================

async def handle_justicebot_error(request: Request, exc: JusticeBotError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("request_failed", path=request.url.path, error=exc.code, detail=exc.message)
    else:
        logger.info("request_rejected", path=request.url.path, error=exc.code,
                    status=exc.status_code)
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    # undecodable or wrongly typed bodies are a plain 400, like missing fields
    logger.info("request_rejected", path=request.url.path, error="bad_request",
                errors=len(exc.errors()))
    return JSONResponse(status_code=400, content=BadRequest("malformed request").to_body())


# ============================================================================
# ENDPOINTS
# ============================================================================

@router.get("/health", response_model=HealthResponse)
async def health(request: Request):
    started_at = getattr(request.app.state, "started_at", time.monotonic())
    return HealthResponse(
        status="ok",
        version=__version__,
        uptime_seconds=round(time.monotonic() - started_at, 3),
    )


@router.get("/whoami", response_model=WhoAmIResponse)
async def whoami(identity: IdentityContext = Depends(require_identity)):
    return WhoAmIResponse(sub=identity.subject_id, email=identity.email)


@router.get("/products", response_model=ProductsResponse)
async def list_products(services: Services = Depends(get_services)):
    return ProductsResponse(products=[
        ProductListing(product_id=product_id, currency=price.currency, amount=price.amount)
        for product_id, price in services.catalog.products()
    ])


@router.post("/payments/create-order")
async def create_order(
    body: CreateOrderRequest,
    identity: IdentityContext = Depends(require_identity),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    """Create a server-priced order. Returns the processor's order verbatim."""
    if not body.product_id:
        raise BadRequest("productId is required")
    return await services.purchases.create(body.product_id, identity)


@router.post("/payments/capture-order", response_model=CaptureOrderResponse)
async def capture_order(
    body: CaptureOrderRequest,
    identity: IdentityContext = Depends(require_identity),
    services: Services = Depends(get_services),
):
    """
    Capture, verify against the catalog, then grant.

    A capture that does not verify answers 400 with the raw processor order.
    """
    if not body.order_id or not body.product_id:
        raise BadRequest("orderId and productId are required")
    order = await services.purchases.capture(body.order_id, body.product_id, identity)
    return CaptureOrderResponse(ok=True, order=order)


@router.get("/entitlements")
async def list_entitlements(
    identity: IdentityContext = Depends(require_identity),
    services: Services = Depends(get_services),
) -> list[dict[str, Any]]:
    return await services.store.list_for_user(identity.subject_id)


@router.get("/docs/{slug}/download")
async def download(
    slug: str,
    identity: IdentityContext = Depends(require_identity),
    services: Services = Depends(get_services),
):
    asset = await services.gate.resolve(slug, identity)
    return FileResponse(asset.path, media_type=asset.media_type, filename=asset.filename)


@router.get("/journey", response_model=JourneyResult, response_model_exclude_none=True)
async def journey(
    province: str = "",
    venue: str = "",
    issue: str = "",
    services: Services = Depends(get_services),
):
    return build_journey(province, venue, issue, services.procedures)


# ============================================================================
# APP FACTORY
# ============================================================================

def create_app(settings: Optional[Settings] = None, services: Optional[Services] = None) -> FastAPI:
    """
    Build the application.

    Tests pass a ready Services object (fake processor, memory store);
    production builds everything from the environment.
    """
    if services is None:
        services = build_services(settings or Settings.from_env())
    settings = services.settings

    app = FastAPI(
        title="Justice-Bot Backend",
        description="Legal journeys and gated guide purchases",
        version=__version__,
        docs_url="/api/openapi" if settings.server.debug else None,
        redoc_url=None,
        lifespan=lifespan,
    )
    app.state.services = services

    if settings.server.cors_allowed:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.server.cors_allowed,
            allow_credentials=True,
            allow_methods=["GET", "POST", "OPTIONS"],
            allow_headers=["Authorization", "Content-Type", REQUEST_ID_HEADER],
        )
    app.middleware("http")(request_context)

    app.add_exception_handler(JusticeBotError, handle_justicebot_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)

    app.include_router(router)
    return app


app = create_app()


# ============================================================================
# MAIN
# ============================================================================

def main():
    server = Settings.from_env().server
    uvicorn.run(
        "justicebot.api.server:app",
        host=server.host,
        port=server.port,
        reload=server.debug,
        log_level="info",
    )


if __name__ == "__main__":
    main()
