"""
recommender/vector_index.py
---------------------------
In-memory semantic index over product embeddings.

Implements:
 - Full builds with cache warm-start (adopted when it covers the catalog
   and matches the dimension the provider produces now)
 - Per-product failure tolerance (one bad embedding never aborts a build)
 - Incremental add/update/remove with cache persistence
 - Cosine-similarity search with a relevance floor

Build, add and remove are serialized by one asyncio lock. Readers never take
the lock: every mutation publishes a new immutable snapshot, so a search sees
the index either before or after a mutation, never halfway.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from types import MappingProxyType
from typing import Iterable, Mapping, Optional

import numpy as np
from tqdm import tqdm

from agent_core.exceptions import DimensionMismatchError
from agent_core.logger import log_event
from catalog.loader import Product
from catalog.searchable_text import SearchableTextBuilder
from embeddings.pacing import RequestPacer
from embeddings.text_embed import EmbeddingProvider
from recommender.index_cache import IndexCache
from recommender.index_types import BuildReport, IndexState, ProductVector, ScoredProduct
from recommender.vector_utils import cosine_similarity_matrix

logger = logging.getLogger(__name__)

MIN_SIMILARITY = 0.30
DEFAULT_TOP_K = 10
DEFAULT_EMBED_DELAY = 0.15
PROGRESS_EVERY = 10


# -------------------------------------------------------
# Snapshots & per-item outcomes
# -------------------------------------------------------
@dataclass(frozen=True)
class _Snapshot:
    entries: Mapping[str, ProductVector]
    ids: tuple
    matrix: np.ndarray
    dimension: int

    @classmethod
    def of(cls, entries: dict[str, ProductVector]) -> "_Snapshot":
        ids = tuple(entries)
        if ids:
            matrix = np.asarray([entries[i].embedding for i in ids], dtype=np.float32)
            dim = matrix.shape[1]
        else:
            matrix, dim = np.zeros((0, 0), dtype=np.float32), 0
        return cls(MappingProxyType(dict(entries)), ids, matrix, dim)

    def __len__(self) -> int:
        return len(self.ids)


@dataclass(frozen=True)
class EmbedOutcome:
    product_id: str
    vector: Optional[np.ndarray] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.vector is not None


# -------------------------------------------------------
# Index
# -------------------------------------------------------
class VectorIndex:
    def __init__(
        self,
        provider: EmbeddingProvider,
        cache: IndexCache | None = None,
        text_builder: SearchableTextBuilder | None = None,
        pacer: RequestPacer | None = None,
        min_similarity: float = MIN_SIMILARITY,
        default_top_k: int = DEFAULT_TOP_K,
    ):
        self.provider = provider
        self.cache = cache
        self.text_builder = text_builder or SearchableTextBuilder()
        self.pacer = pacer or RequestPacer(DEFAULT_EMBED_DELAY)
        self.min_similarity = min_similarity
        self.default_top_k = default_top_k
        self.last_build: BuildReport | None = None

        self._snapshot = _Snapshot.of({})
        self._state = IndexState.EMPTY
        self._lock = asyncio.Lock()

    # ─────────────────────────────
    # Read-only views
    # ─────────────────────────────
    @property
    def state(self) -> IndexState:
        return self._state

    @property
    def ready(self) -> bool:
        return self._state is IndexState.READY

    @property
    def dimension(self) -> int:
        return self._snapshot.dimension

    def __len__(self) -> int:
        return len(self._snapshot)

    def __contains__(self, product_id) -> bool:
        return str(product_id) in self._snapshot.entries

    def get(self, product_id) -> ProductVector | None:
        return self._snapshot.entries.get(str(product_id))

    def entries(self) -> list[ProductVector]:
        return list(self._snapshot.entries.values())

    def stats(self) -> dict:
        return {
            "ready": self.ready,
            "state": self._state.value,
            "total_products": len(self._snapshot),
            "embedding_dimension": self._snapshot.dimension,
            "cache_exists": self.cache.exists() if self.cache else False,
            "cache_path": str(self.cache.path) if self.cache else None,
            "last_build": self.last_build.model_dump(mode="json") if self.last_build else None,
        }

    # ─────────────────────────────
    # Embedding
    # ─────────────────────────────
    async def _embed(self, product_id: str, text: str) -> EmbedOutcome:
        try:
            vec = await self.provider.embed(text)
        except Exception as e:
            return EmbedOutcome(product_id, error=f"{type(e).__name__}: {e}")
        if vec is None:
            return EmbedOutcome(product_id, error="provider returned no embedding")
        vec = np.asarray(vec, dtype=np.float32).ravel()
        if vec.size == 0:
            return EmbedOutcome(product_id, error="provider returned an empty embedding")
        return EmbedOutcome(product_id, vector=vec)

    def _to_record(self, product: Product, text: str, vec: np.ndarray) -> ProductVector:
        return ProductVector(
            product_id=product.id,
            product_name=product.name,
            embedding=vec.tolist(),
            searchable_text=text,
        )

    def _persist(self) -> None:
        if self.cache is None:
            return
        if self._state is IndexState.EMPTY and self.cache.exists():
            # never built or loaded: the file on disk is the better snapshot
            logger.info("Index not built yet, leaving %s untouched", self.cache.path)
            return
        self.cache.save(self._snapshot.entries.values())

    # ─────────────────────────────
    # Build
    # ─────────────────────────────
    async def build(
        self,
        products: Iterable[Product],
        force: bool = False,
        cancel_event: asyncio.Event | None = None,
        progress: bool = False,
    ) -> BuildReport:
        """
        Build (or warm-start) the index for the given catalog snapshot.

        Blocks while another build/add/remove holds the lock. Returns a report;
        only a DimensionMismatchError or task cancellation escapes.
        """
        products = list(products)
        report = BuildReport(forced=force)
        t0 = time.perf_counter()

        async with self._lock:
            previous_state = self._state
            self._state = IndexState.BUILDING
            logger.info("🚀 Building vector index for %d products (force=%s)", len(products), force)
            try:
                if not force and await self._adopt_cache_if_complete(products):
                    report.from_cache = True
                    report.succeeded = len(self._snapshot)
                    self._state = IndexState.READY
                    logger.info("✅ Index loaded from cache (%d products)", len(self._snapshot))
                    return report

                new_entries = await self._embed_catalog(products, report, cancel_event, progress)

                if report.cancelled:
                    self._state = previous_state
                elif not new_entries:
                    self._state = IndexState.EMPTY
                    report.error = "no embeddings produced"
                    logger.error("❌ Vector index build produced no embeddings (%d failures)", report.failed)
                else:
                    self._snapshot = _Snapshot.of(new_entries)
                    self._state = IndexState.READY
                    logger.info(
                        "✅ Vector index built: %d succeeded, %d failed", report.succeeded, report.failed
                    )
                    self._persist()
                return report
            except (DimensionMismatchError, asyncio.CancelledError) as e:
                self._state = previous_state
                report.cancelled = isinstance(e, asyncio.CancelledError)
                report.error = str(e) or type(e).__name__
                raise
            finally:
                report.duration_sec = round(time.perf_counter() - t0, 3)
                self.last_build = report
                log_event("index_built", report.model_dump(mode="json", exclude={"failed_ids"}))

    async def _adopt_cache_if_complete(self, products: list[Product]) -> bool:
        if self.cache is None:
            return False
        try:
            cached = self.cache.load()
        except DimensionMismatchError as e:
            logger.error("Cached index is invalid (%s); rebuilding", e)
            return False
        if cached is None:
            return False

        cached_map = {e.product_id: e for e in cached}
        missing = {p.id for p in products} - cached_map.keys()
        if missing:
            logger.info("⚠️ Cache incomplete (%d products missing), rebuilding", len(missing))
            return False

        cached_dim = cached[0].dimension
        provider_dim = await self._provider_dimension(cached[0].searchable_text)
        if provider_dim is not None and provider_dim != cached_dim:
            logger.error(
                "Cached embeddings have %d dims, provider returns %d; rebuilding", cached_dim, provider_dim
            )
            return False
        self._snapshot = _Snapshot.of(cached_map)
        return True

    async def _provider_dimension(self, sample_text: str) -> int | None:
        """Dimension the provider produces now, or None when it cannot tell."""
        dim = getattr(self.provider, "dimension", None)
        if isinstance(dim, int):
            return dim
        await self.pacer.wait()
        outcome = await self._embed("<dimension-check>", sample_text)
        if not outcome.ok:
            logger.warning("Could not check provider dimension (%s); trusting the cache", outcome.error)
            return None
        return outcome.vector.size

    async def _embed_catalog(
        self,
        products: list[Product],
        report: BuildReport,
        cancel_event: asyncio.Event | None,
        progress: bool,
    ) -> dict[str, ProductVector]:
        entries: dict[str, ProductVector] = {}
        dim: int | None = None
        total = len(products)

        for product in tqdm(products, desc="Embedding catalog", unit="product", disable=not progress):
            if cancel_event is not None and cancel_event.is_set():
                report.cancelled = True
                logger.warning("Index build cancelled after %d/%d products", report.processed, total)
                break

            text = self.text_builder(product)
            await self.pacer.wait()
            outcome = await self._embed(product.id, text)
            report.processed += 1

            if outcome.ok:
                if dim is None:
                    dim = outcome.vector.size
                elif outcome.vector.size != dim:
                    raise DimensionMismatchError(dim, outcome.vector.size, product.id)
                entries[product.id] = self._to_record(product, text, outcome.vector)
                report.succeeded += 1
            else:
                report.failed += 1
                report.failed_ids.append(product.id)
                logger.warning("❌ Embedding failed for product %s: %s", product.id, outcome.error)

            if report.processed % PROGRESS_EVERY == 0:
                logger.info("Progress: %d/%d products", report.processed, total)

        return entries

    async def load_from_cache(self) -> bool:
        """Adopt the cache file as-is. Mixed dimensions raise DimensionMismatchError."""
        if self.cache is None:
            return False
        async with self._lock:
            cached = self.cache.load()
            if not cached:
                return False
            self._snapshot = _Snapshot.of({e.product_id: e for e in cached})
            self._state = IndexState.READY
            return True

    # ─────────────────────────────
    # Incremental mutation
    # ─────────────────────────────
    async def add_or_update(self, product: Product) -> bool:
        """Embed one product and upsert it. On provider failure the existing entry stays."""
        async with self._lock:
            text = self.text_builder(product)
            outcome = await self._embed(product.id, text)
            if not outcome.ok:
                logger.warning("Could not index product %s: %s", product.id, outcome.error)
                return False

            dim = self._snapshot.dimension
            if dim and outcome.vector.size != dim:
                raise DimensionMismatchError(dim, outcome.vector.size, product.id)

            entries = dict(self._snapshot.entries)
            entries[product.id] = self._to_record(product, text, outcome.vector)
            self._snapshot = _Snapshot.of(entries)
            self._persist()
            logger.info("✅ Product %s added to the index", product.id)
            return True

    async def remove(self, product_id) -> bool:
        """Drop a product from the index. Unknown ids are a no-op."""
        product_id = str(product_id)
        async with self._lock:
            if product_id not in self._snapshot.entries:
                return False
            entries = dict(self._snapshot.entries)
            del entries[product_id]
            self._snapshot = _Snapshot.of(entries)
            self._persist()
            logger.info("✅ Product %s removed from the index", product_id)
            return True

    # ─────────────────────────────
    # Search
    # ─────────────────────────────
    async def search(self, query_text: str, top_k: int | None = None) -> list[ScoredProduct]:
        """
        Rank indexed products by cosine similarity to the query.

        Returns [] when the index is not ready, the query is blank, or the
        provider cannot embed the query. Results below min_similarity are dropped.
        """
        if not self.ready:
            logger.warning("Vector index not ready")
            return []
        if not query_text or not query_text.strip():
            return []
        top_k = self.default_top_k if top_k is None else top_k
        if top_k <= 0:
            return []

        outcome = await self._embed("<query>", query_text)
        if not outcome.ok:
            logger.warning("Could not embed query %r: %s", query_text, outcome.error)
            return []

        snapshot = self._snapshot
        if not len(snapshot):
            return []
        if outcome.vector.size != snapshot.dimension:
            logger.error(
                "Query embedding has %d dims, index has %d", outcome.vector.size, snapshot.dimension
            )
            return []

        sims = cosine_similarity_matrix(outcome.vector, snapshot.matrix)
        keep = np.flatnonzero(sims >= self.min_similarity)
        order = keep[np.argsort(-sims[keep], kind="stable")][:top_k]

        results = []
        for i in order:
            entry = snapshot.entries[snapshot.ids[i]]
            results.append(
                ScoredProduct(
                    product_id=entry.product_id,
                    product_name=entry.product_name,
                    semantic_score=float(sims[i]),
                    searchable_text=entry.searchable_text,
                )
            )

        if results:
            best = results[0]
            logger.info(
                "🔍 Search %r: best match %s (score %.3f), %d results",
                query_text, best.product_name, best.semantic_score, len(results),
            )
        else:
            logger.info("⚠️ No product with similarity >= %.2f for %r", self.min_similarity, query_text)
        return results
