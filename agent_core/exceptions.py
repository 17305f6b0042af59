"""
agent_core/exceptions.py
------------------------
Error taxonomy for the retrieval core.

Provider outages, rate limits and unreadable cache files are NOT exceptions
here: they are converted to "no result" where they happen. Only invariant
violations propagate.
"""


class RetrievalError(Exception):
    """Base class for retrieval-core failures."""


class DimensionMismatchError(RetrievalError, ValueError):
    """Embeddings of different lengths ended up in one index."""

    def __init__(self, expected: int, actual: int, product_id: str | None = None):
        self.expected = expected
        self.actual = actual
        self.product_id = product_id
        where = f" (product {product_id})" if product_id is not None else ""
        super().__init__(
            f"Embedding dimension mismatch{where}: expected {expected}, got {actual}"
        )
