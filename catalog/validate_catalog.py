"""
catalog/validate_catalog.py
---------------------------
Ensures catalog.json is well-formed and schema-consistent.
"""

import argparse
import json
from pathlib import Path

from pydantic import ValidationError

from catalog.loader import CATALOG_PATH, Product


def validate_catalog(path: Path = CATALOG_PATH) -> list[Product]:
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)

    if not isinstance(data, list):
        raise TypeError(f"Catalog must be a JSON array, got {type(data).__name__}")

    products, seen = [], set()
    for idx, item in enumerate(data):
        try:
            product = Product.model_validate(item)
        except ValidationError as e:
            raise ValueError(f"Invalid item {idx}: {e.errors()[0]['loc']} {e.errors()[0]['msg']}") from e
        if product.id in seen:
            raise ValueError(f"Duplicate id '{product.id}' in item {idx}")
        seen.add(product.id)
        products.append(product)
    print(f"✅ Catalog validated successfully: {len(products)} items")
    return products


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Validate the product catalog file")
    parser.add_argument("path", nargs="?", default=str(CATALOG_PATH))
    args = parser.parse_args()
    validate_catalog(Path(args.path))
