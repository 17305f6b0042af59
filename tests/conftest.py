"""
Shared pytest fixtures and configuration.
"""
import re

import numpy as np
import pytest

from agent_core.logger import set_event_dir
from catalog.loader import Product
from embeddings.pacing import RequestPacer
from recommender.index_cache import IndexCache
from recommender.vector_index import VectorIndex

VOCAB = ["phone", "laptop", "headphones", "camera"]
WORD_RE = re.compile(r"[a-z]+")


class VocabProvider:
    """Deterministic stub: one dimension per vocabulary word, value = occurrences."""

    def __init__(self, vocab=VOCAB, fail_on=()):
        self.vocab = list(vocab)
        self.fail_on = set(fail_on)
        self.calls = []

    @property
    def dimension(self):
        return len(self.vocab)

    async def embed(self, text):
        self.calls.append(text)
        if any(marker in text for marker in self.fail_on):
            raise RuntimeError("provider unavailable")
        words = WORD_RE.findall(text.lower())
        return np.array([float(words.count(w)) for w in self.vocab], dtype=np.float32)


class FnProvider:
    """Wraps a plain function text -> vector (or raises)."""

    def __init__(self, fn):
        self.fn = fn
        self.calls = []

    async def embed(self, text):
        self.calls.append(text)
        return self.fn(text)


@pytest.fixture(autouse=True)
def event_log_dir(tmp_path):
    """Keep event logs out of the working tree."""
    set_event_dir(tmp_path / "events")
    return tmp_path / "events"


@pytest.fixture
def sample_products():
    return [
        Product(id="p1", name="Galaxy Phone", brand="Samsung", category="Smartphones",
                description="android phone with great camera", price=699, rating=4.5, review_count=100),
        Product(id="p2", name="Pixel Phone", brand="Google", category="Smartphones",
                description="phone camera", price=599, rating=4.2, review_count=50),
        Product(id="p3", name="ZenBook Laptop", brand="Asus", category="Laptops",
                description="light laptop for work", price=1099, rating=4.8, review_count=30),
        Product(id="p4", name="Studio Headphones", brand="Sony", category="Audio",
                description="noise cancelling headphones", price=249, rating=3.9, review_count=200),
    ]


@pytest.fixture
def provider():
    return VocabProvider()


@pytest.fixture
def cache(tmp_path):
    return IndexCache(tmp_path / "cache" / "product_embeddings.json")


@pytest.fixture
def make_index(cache):
    """Index factory with pacing disabled."""
    def _make(provider, with_cache=True, **kwargs):
        return VectorIndex(provider, cache=cache if with_cache else None, pacer=RequestPacer(0), **kwargs)
    return _make


@pytest.fixture
def index(make_index, provider):
    return make_index(provider)
