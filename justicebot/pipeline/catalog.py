# pipeline/catalog.py
# ============================================================================
# JUSTICE-BOT BACKEND v1.0 - PRICE CATALOG + ASSET BINDINGS
# ============================================================================
# Static, server-only tables loaded at start. Read-only afterwards, so they
# are shared between requests without locking.
# ============================================================================

from pathlib import Path
from types import MappingProxyType
from typing import Iterable, Mapping, Optional, Union

import structlog

from justicebot.errors import NotFound, UnknownProduct
from justicebot.schemas import AssetBinding, PriceEntry


logger = structlog.get_logger().bind(component="catalog")


DEFAULT_PRICES: dict[str, dict[str, str]] = {
    "doc_small": {"currency": "CAD", "amount": "5.00"},
    "doc_pro": {"currency": "CAD", "amount": "19.00"},
}

# product -> file name under the docs directory
DEFAULT_PRODUCT_FILES: dict[str, str] = {
    "doc_small": "small-guide.pdf",
    "doc_pro": "pro-pack.pdf",
}


class PriceCatalog:
    """Source of truth for what a product should have cost"""

    def __init__(self, prices: Optional[Mapping[str, PriceEntry]] = None):
        if prices is None:
            prices = {pid: PriceEntry(**entry) for pid, entry in DEFAULT_PRICES.items()}
        self._prices: Mapping[str, PriceEntry] = MappingProxyType(dict(prices))

    def lookup(self, product_id: str) -> PriceEntry:
        entry = self._prices.get(product_id)
        if entry is None:
            raise UnknownProduct(product_id)
        return entry

    def __contains__(self, product_id: object) -> bool:
        return product_id in self._prices

    def products(self) -> list[tuple[str, PriceEntry]]:
        return sorted(self._prices.items())


class AssetBindings:
    """Download slug -> (product, local file)"""

    def __init__(self, bindings: Iterable[AssetBinding]):
        table: dict[str, AssetBinding] = {}
        for binding in bindings:
            if binding.slug in table:
                raise ValueError(f"duplicate asset slug: {binding.slug}")
            table[binding.slug] = binding
        self._bindings: Mapping[str, AssetBinding] = MappingProxyType(table)

    @classmethod
    def from_product_files(
        cls,
        docs_dir: Union[str, Path],
        product_files: Optional[Mapping[str, str]] = None,
    ) -> "AssetBindings":
        """The slug is the file name without its extension."""
        docs_dir = Path(docs_dir)
        files = DEFAULT_PRODUCT_FILES if product_files is None else product_files
        bindings = [
            AssetBinding(slug=Path(name).stem, product_id=product_id, file_path=docs_dir / name)
            for product_id, name in files.items()
        ]
        logger.info("asset_bindings_loaded", docs_dir=str(docs_dir), count=len(bindings))
        return cls(bindings)

    def resolve(self, slug: str) -> AssetBinding:
        binding = self._bindings.get(slug)
        if binding is None:
            raise NotFound("document not found")
        return binding

    def __len__(self) -> int:
        return len(self._bindings)
