"""
recommender/vector_utils.py
---------------------------
Atomic math utilities for vector operations, similarity search, and cache I/O.
Used by the vector index, the embedding providers and the diagnostics.
"""

import os
import tempfile
from pathlib import Path

import numpy as np


# === CORE MATH ===
def normalize(vec: np.ndarray) -> np.ndarray:
    """L2-normalize a vector (safe for zero-length)."""
    vec = np.asarray(vec, dtype=np.float32)
    norm = np.linalg.norm(vec)
    return vec / norm if norm > 0 else vec


def cosine_similarity(a, b) -> float:
    """
    dot(a, b) / (|a| * |b|), defined as 0.0 when either vector has zero magnitude.
    Raises ValueError when the lengths differ.
    """
    a = np.asarray(a, dtype=np.float64)
    b = np.asarray(b, dtype=np.float64)
    if a.shape != b.shape:
        raise ValueError(f"Vectors must have the same dimension: {a.shape} vs {b.shape}")
    na, nb = np.linalg.norm(a), np.linalg.norm(b)
    if na == 0 or nb == 0:
        return 0.0
    return float(np.dot(a, b) / (na * nb))


def cosine_similarity_matrix(query: np.ndarray, matrix: np.ndarray) -> np.ndarray:
    """
    Cosine similarity between `query` (D,) and every row of `matrix` (N, D).
    Rows with zero magnitude, or a zero query, score 0.
    """
    matrix = np.asarray(matrix, dtype=np.float32)
    if matrix.shape[0] == 0:
        return np.zeros(0, dtype=np.float32)
    query = np.asarray(query, dtype=np.float32)
    q_norm = np.linalg.norm(query)
    row_norms = np.linalg.norm(matrix, axis=1)
    denom = row_norms * q_norm
    dots = matrix @ query
    sims = np.zeros_like(dots)
    np.divide(dots, denom, out=sims, where=denom > 0)
    return sims


# === I/O ===
def atomic_write_text(dst: Path, text: str) -> None:
    """Write to a temp file in the target directory, then replace the target."""
    dst = Path(dst)
    dst.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=dst.parent, prefix=f".{dst.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
        os.replace(tmp, dst)
    except BaseException:
        Path(tmp).unlink(missing_ok=True)
        raise
