"""FastAPI dependencies shared by the route handlers."""

from typing import Optional

from fastapi import Header, Request

from justicebot.schemas import IdentityContext
from justicebot.services import Services


def get_services(request: Request) -> Services:
    return request.app.state.services


def require_identity(
    request: Request,
    authorization: Optional[str] = Header(default=None),
) -> IdentityContext:
    """Verified caller identity, or Unauthorized (401) via the error handler."""
    services: Services = request.app.state.services
    return services.verifier.verify(authorization)
