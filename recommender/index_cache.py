"""
recommender/index_cache.py
--------------------------
Durable snapshot of the vector index: one JSON array of ProductVector records.

Every save rewrites the whole file atomically. A missing, unreadable or
malformed file loads as "no cache" so callers fall back to a cold build;
only an index with mixed embedding dimensions is reported as an error.
"""

from __future__ import annotations

import hashlib
import logging
from pathlib import Path
from typing import Iterable, List, Optional

from pydantic import TypeAdapter, ValidationError

from agent_core.exceptions import DimensionMismatchError
from recommender.index_types import ProductVector
from recommender.vector_utils import atomic_write_text

logger = logging.getLogger(__name__)

_entries_adapter = TypeAdapter(List[ProductVector])


def check_dimensions(entries: Iterable[ProductVector]) -> int:
    """Return the shared embedding dimension (0 for no entries) or raise on a mismatch."""
    dim = None
    for e in entries:
        if dim is None:
            dim = e.dimension
        elif e.dimension != dim:
            raise DimensionMismatchError(dim, e.dimension, e.product_id)
    return dim or 0


class IndexCache:
    def __init__(self, path: Path | str):
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.is_file()

    def save(self, entries: Iterable[ProductVector]) -> bool:
        entries = list(entries)
        try:
            payload = _entries_adapter.dump_json(entries, indent=2).decode("utf-8")
            atomic_write_text(self.path, payload)
        except OSError as e:
            logger.error("Failed to write embedding cache %s: %s", self.path, e)
            return False
        logger.debug("💾 Cache saved: %d embeddings", len(entries))
        return True

    def load(self) -> Optional[List[ProductVector]]:
        if not self.exists():
            logger.info("No embedding cache found at %s", self.path)
            return None
        try:
            raw = self.path.read_bytes()
            entries = _entries_adapter.validate_json(raw)
        except (OSError, ValidationError, ValueError) as e:
            logger.warning("Ignoring unreadable embedding cache %s: %s", self.path, e)
            return None
        if not entries:
            return None
        check_dimensions(entries)
        logger.info("📦 Cache loaded: %d embeddings", len(entries))
        return entries

    def checksum(self) -> Optional[str]:
        """SHA256 of the cache file, or None when it does not exist."""
        if not self.exists():
            return None
        h = hashlib.sha256()
        with open(self.path, "rb") as f:
            for chunk in iter(lambda: f.read(8192), b""):
                h.update(chunk)
        return h.hexdigest()

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)
