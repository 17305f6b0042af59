"""
catalog/loader.py
-----------------
Loads the product catalog (JSON) and exposes helper functions
for retrieving items by ID or listing the active snapshot.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional, Protocol

from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

CATALOG_PATH = Path(__file__).parent / "catalog.json"


class Product(BaseModel):
    id: str
    name: str
    brand: Optional[str] = None
    category: Optional[str] = None
    description: Optional[str] = None
    price: float = Field(0.0, ge=0)
    rating: float = Field(0.0, ge=0, le=5)
    review_count: int = Field(0, ge=0)
    image: Optional[str] = None
    is_active: bool = True

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, v):
        # catalog exports mix integer and string keys
        return str(v) if v is not None else v


class CatalogSource(Protocol):
    """Anything that can hand out the current product snapshot."""

    def list_products(self) -> list[Product]: ...


def parse_catalog(raw: list[dict]) -> list[Product]:
    return [Product.model_validate(item) for item in raw]


class JsonCatalog:
    """Catalog snapshot backed by a JSON array on disk, re-read on every call."""

    def __init__(self, path: Path | str = CATALOG_PATH):
        self.path = Path(path)

    def load_raw(self) -> list[dict]:
        if not self.path.exists():
            logger.warning("Catalog file not found: %s", self.path)
            return []
        with open(self.path, "r", encoding="utf-8") as f:
            return json.load(f)

    def list_products(self, include_inactive: bool = False) -> list[Product]:
        """Return the parsed catalog, active items only by default."""
        products = parse_catalog(self.load_raw())
        return products if include_inactive else [p for p in products if p.is_active]

    def get_item_by_id(self, item_id: str) -> Product | None:
        """Fetch an item from the catalog by its ID."""
        return next((p for p in self.list_products() if p.id == str(item_id)), None)

    def list_all_items(self, limit: int | None = None) -> list[Product]:
        """Return all active items, optionally limited to N."""
        items = self.list_products()
        return items if limit is None else items[:limit]
