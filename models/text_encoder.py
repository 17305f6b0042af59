"""
models/text_encoder.py
----------------------
Wrapper around a local text embedding model.
Default: sentence-transformers/all-MiniLM-L6-v2 (≈90 MB, 384 dims).
Swap freely for smaller or quantized variants.
"""

from functools import lru_cache

import numpy as np
from sentence_transformers import SentenceTransformer

DEFAULT_MODEL = "sentence-transformers/all-MiniLM-L6-v2"


@lru_cache(maxsize=2)
def load_model(model_name: str = DEFAULT_MODEL) -> SentenceTransformer:
    # Cached load for performance
    return SentenceTransformer(model_name)


def embed_text(text: str, model_name: str = DEFAULT_MODEL) -> np.ndarray:
    """Return a normalized float32 embedding vector for the given text."""
    model = load_model(model_name)
    vec = np.asarray(model.encode(text, normalize_embeddings=True), dtype=np.float32)
    return vec
