"""
recommender/diagnostics.py
--------------------------
Integrity report comparing the vector index with the current catalog.

Stale entries are products whose stored searchable text no longer matches
what the text builder produces today (name, price, etc. changed since they
were embedded).
"""

from __future__ import annotations

from typing import List, Optional

import numpy as np
from pydantic import BaseModel, computed_field

from catalog.loader import Product
from recommender.vector_index import VectorIndex


class IndexDiagnostics(BaseModel):
    ready: bool
    total_indexed: int
    catalog_size: int
    coverage: float
    embedding_dimension: int
    mean_norm: float
    missing_ids: List[str] = []
    orphaned_ids: List[str] = []
    stale_ids: List[str] = []
    cache_checksum: Optional[str] = None

    @computed_field
    @property
    def needs_rebuild(self) -> bool:
        return bool(self.missing_ids or self.stale_ids)


def diagnose_index(index: VectorIndex, products: list[Product]) -> IndexDiagnostics:
    entries = {e.product_id: e for e in index.entries()}
    catalog_ids = [p.id for p in products]

    missing = [pid for pid in catalog_ids if pid not in entries]
    orphaned = sorted(set(entries) - set(catalog_ids))
    stale = [
        p.id for p in products
        if p.id in entries and entries[p.id].searchable_text != index.text_builder(p)
    ]

    if entries:
        norms = np.linalg.norm(np.asarray([e.embedding for e in entries.values()], dtype=np.float32), axis=1)
        mean_norm = round(float(norms.mean()), 4)
    else:
        mean_norm = 0.0

    covered = len(catalog_ids) - len(missing)
    return IndexDiagnostics(
        ready=index.ready,
        total_indexed=len(entries),
        catalog_size=len(catalog_ids),
        coverage=round(covered / len(catalog_ids), 4) if catalog_ids else 1.0,
        embedding_dimension=index.dimension,
        mean_norm=mean_norm,
        missing_ids=missing,
        orphaned_ids=orphaned,
        stale_ids=stale,
        cache_checksum=index.cache.checksum() if index.cache else None,
    )
