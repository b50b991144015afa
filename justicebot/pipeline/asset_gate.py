"""
Asset Gate
==========
Last check before a paid guide leaves the server.

Flow:
1. slug -> (product_id, local file) from the static bindings   (unknown: NotFound)
2. entitlement check for (identity.subject_id, product_id)     (no / unknown: Forbidden)
3. file must exist on disk                                      (missing: NotFound)

Fails closed: if the store cannot answer, access is denied. A missing file
is a server misconfiguration but is reported as plain not-found so callers
learn nothing about catalog internals.
"""

import mimetypes
from pathlib import Path

import structlog
from pydantic import BaseModel

from justicebot.errors import ConfigurationError, Forbidden, NotFound, StoreError
from justicebot.pipeline.catalog import AssetBindings
from justicebot.schemas import IdentityContext
from justicebot.storage import EntitlementStore


logger = structlog.get_logger().bind(component="asset_gate")

DEFAULT_MEDIA_TYPE = "application/octet-stream"


class GatedAsset(BaseModel):
    """File cleared for delivery"""
    path: Path
    filename: str
    media_type: str
    product_id: str


class AssetGate:

    def __init__(self, bindings: AssetBindings, store: EntitlementStore):
        self.bindings = bindings
        self.store = store

    async def resolve(self, slug: str, identity: IdentityContext) -> GatedAsset:
        binding = self.bindings.resolve(slug)
        log = logger.bind(slug=slug, product_id=binding.product_id, user_id=identity.subject_id)

        try:
            entitled = await self.store.has(identity.subject_id, binding.product_id)
        except (StoreError, ConfigurationError) as e:
            log.error("download_denied", reason="entitlement_check_failed", error=e.message)
            raise Forbidden("no entitlement")

        if not entitled:
            log.info("download_denied", reason="no_entitlement")
            raise Forbidden("no entitlement")

        if not binding.file_path.is_file():
            log.error("download_file_missing", path=str(binding.file_path))
            raise NotFound("document not found")

        media_type, _ = mimetypes.guess_type(binding.filename)
        log.info("download_granted")
        return GatedAsset(
            path=binding.file_path,
            filename=binding.filename,
            media_type=media_type or DEFAULT_MEDIA_TYPE,
            product_id=binding.product_id,
        )
