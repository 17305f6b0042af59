"""
embeddings/text_embed.py
------------------------
Embedding provider interface used by the vector index and the recommender.

Core API:
    - EmbeddingProvider.embed(text) -> np.ndarray | None   (async)
    - build_embedding_provider(settings)

Behavior:
    • Providers return None on failure instead of raising
    • Vectors are L2-normalized float32 with a fixed dimension per provider
    • Latency and backend are logged at DEBUG level
    • A provider may expose `dimension` so cache warm starts need no extra embedding call
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
import re
import time
from typing import Optional, Protocol

import numpy as np

from recommender.vector_utils import normalize

logger = logging.getLogger(__name__)

TOKEN_RE = re.compile(r"[a-z0-9]+")


class EmbeddingProvider(Protocol):
    async def embed(self, text: str) -> Optional[np.ndarray]: ...


# ===== PROVIDERS =====
class SentenceTransformerProvider:
    """Local transformer encoder; the model loads lazily on first use."""

    def __init__(self, model_name: str):
        self.model_name = model_name

    def _encode(self, text: str) -> np.ndarray:
        from models.text_encoder import embed_text

        return embed_text(text, self.model_name)

    async def embed(self, text: str) -> Optional[np.ndarray]:
        t0 = time.perf_counter()
        try:
            vec = await asyncio.to_thread(self._encode, text)
        except Exception as e:
            logger.warning("Embedding failed with %s: %s", self.model_name, e)
            return None
        logger.debug("model=%s latency_ms=%.2f", self.model_name, (time.perf_counter() - t0) * 1000)
        return vec


class HashingEmbeddingProvider:
    """
    Deterministic hashed bag-of-words embedding (no network, no model).

    Each lowercase token is hashed with sha256 into one of `dim` buckets.
    Texts sharing tokens land close together in cosine space, so lexical
    relevance survives when no model is available.
    """

    def __init__(self, dim: int = 512):
        self.dim = dim

    @property
    def dimension(self) -> int:
        return self.dim

    def encode(self, text: str) -> np.ndarray:
        tokens = TOKEN_RE.findall(str(text).lower()) or [str(text)]
        v = np.zeros(self.dim, dtype=np.float32)
        for tok in tokens:
            h = int(hashlib.sha256(tok.encode("utf-8")).hexdigest()[:8], 16)
            v[h % self.dim] += 1.0
        return normalize(v)

    async def embed(self, text: str) -> Optional[np.ndarray]:
        return self.encode(text)


# ===== FACTORY =====
def build_embedding_provider(settings) -> EmbeddingProvider:
    backend = settings.embedding_backend
    if backend == "sentence-transformers":
        return SentenceTransformerProvider(settings.embedding_model)
    if backend == "hashing":
        return HashingEmbeddingProvider(settings.hashing_dim)
    raise ValueError(f"Unknown embedding backend: {backend}")
