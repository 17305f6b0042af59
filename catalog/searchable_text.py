"""
catalog/searchable_text.py
--------------------------
Canonical text representation of a product, used as the embedding input.

The output must be a pure function of the product fields: cached vectors are
matched against it to detect drift, so any change here invalidates caches.
"""

from __future__ import annotations

from dataclasses import dataclass

from catalog.loader import Product

SEPARATOR = ". "
ELLIPSIS = "..."
DEFAULT_MAX_DESCRIPTION = 200


def truncate(text: str, max_chars: int) -> str:
    return text if len(text) <= max_chars else text[:max_chars] + ELLIPSIS


def format_price(price: float) -> str:
    return f"Price: ${price:,.2f}"


def build_searchable_text(product: Product, max_description_chars: int = DEFAULT_MAX_DESCRIPTION) -> str:
    """Name, brand, category, truncated description and price joined by '. '."""
    parts = []
    if product.name:
        parts.append(product.name)
    if product.brand:
        parts.append(f"Brand: {product.brand}")
    if product.category:
        parts.append(f"Category: {product.category}")
    if product.description:
        parts.append(truncate(product.description, max_description_chars))
    parts.append(format_price(product.price))
    return SEPARATOR.join(parts)


@dataclass(frozen=True)
class SearchableTextBuilder:
    max_description_chars: int = DEFAULT_MAX_DESCRIPTION

    def __call__(self, product: Product) -> str:
        return build_searchable_text(product, self.max_description_chars)
