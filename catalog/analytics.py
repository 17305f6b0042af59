"""
catalog/analytics.py
--------------------
Catalog-wide summary figures shown on the assistant health/analytics page.
"""

from __future__ import annotations

from collections import Counter

from catalog.loader import Product


def catalog_analytics(products: list[Product], top_n: int = 5) -> dict:
    counts = Counter(p.category for p in products if p.category)
    n = len(products)
    return {
        "total_products": n,
        "total_categories": len(counts),
        "avg_rating": round(sum(p.rating for p in products) / n, 3) if n else 0.0,
        "avg_price": round(sum(p.price for p in products) / n, 2) if n else 0.0,
        "top_categories": [
            {"name": name, "product_count": count} for name, count in counts.most_common(top_n)
        ],
    }
