"""
query/keywords.py
-----------------
Turns a shopper's free-text question into lowercase search keywords.

Two backends:
- SimpleKeywordExtractor: local tokenizer + stop words, no model needed
- LLMKeywordExtractor: asks the local LLM, caches per query, falls back
  to the simple extractor when the model fails or answers nothing usable
"""

from __future__ import annotations

import asyncio
import logging
import re
from functools import lru_cache
from typing import Callable, Protocol

logger = logging.getLogger(__name__)

TOKEN_RE = re.compile(r"[a-z0-9]+(?:['\-][a-z0-9]+)*")
STOP_WORDS = {
    "a", "an", "the", "and", "or", "of", "for", "to", "in", "on", "with", "is", "are",
    "it", "this", "that", "me", "my", "i", "you", "your", "we", "do", "does", "have",
    "has", "can", "could", "would", "should", "want", "need", "looking", "find", "show",
    "some", "any", "what", "which", "who", "how", "please", "under", "about", "good",
    "best", "recommend", "buy", "get", "from", "there", "their", "our",
}

KEYWORD_PROMPT = (
    "Extract ONLY the important keywords for an e-commerce product search.\n"
    "Return the keywords separated by commas.\n\n"
    "KEEP: brands, categories, features, important adjectives\n"
    "DROP: articles, prepositions, generic verbs\n\n"
    'Example: "I want a cheap Samsung smartphone" -> "smartphone, samsung, cheap"'
)


class KeywordExtractor(Protocol):
    async def extract(self, query: str) -> list[str]: ...


def _dedupe(words, min_len: int, limit: int) -> list[str]:
    out: list[str] = []
    for w in words:
        w = w.strip().lower()
        if len(w) >= min_len and w not in out:
            out.append(w)
        if len(out) == limit:
            break
    return out


class SimpleKeywordExtractor:
    def __init__(self, max_keywords: int = 5):
        self.max_keywords = max_keywords

    def tokenize(self, query: str) -> list[str]:
        return [t for t in TOKEN_RE.findall(query.lower()) if t not in STOP_WORDS]

    def extract_sync(self, query: str) -> list[str]:
        return _dedupe(self.tokenize(query or ""), min_len=3, limit=self.max_keywords)

    async def extract(self, query: str) -> list[str]:
        return self.extract_sync(query)


def parse_keyword_list(response: str, max_keywords: int = 7) -> list[str]:
    """Split an LLM answer like 'smartphone, Samsung, cheap' into clean keywords."""
    first_line = response.strip().splitlines()[0] if response.strip() else ""
    parts = (p.strip().strip("\"'.") for p in first_line.split(","))
    return _dedupe(parts, min_len=3, limit=max_keywords)


class LLMKeywordExtractor:
    def __init__(
        self,
        generate: Callable[[dict], str],
        fallback: SimpleKeywordExtractor | None = None,
        max_keywords: int = 7,
        cache_size: int = 256,
    ):
        self.generate = generate
        self.fallback = fallback or SimpleKeywordExtractor()
        self.max_keywords = max_keywords
        self._cached = lru_cache(maxsize=cache_size)(self._ask)

    def _ask(self, normalized_query: str) -> tuple[str, ...]:
        response = self.generate(
            {"system": KEYWORD_PROMPT, "user": f'Extract the keywords from: "{normalized_query}"'}
        )
        return tuple(parse_keyword_list(response, self.max_keywords))

    async def extract(self, query: str) -> list[str]:
        if not query or not query.strip():
            return []
        try:
            keywords = await asyncio.to_thread(self._cached, query.strip().lower())
        except Exception as e:
            logger.warning("LLM keyword extraction failed, using simple extraction: %s", e)
            return self.fallback.extract_sync(query)
        return list(keywords) or self.fallback.extract_sync(query)


def build_keyword_extractor(settings) -> KeywordExtractor:
    if settings.keyword_backend == "simple":
        return SimpleKeywordExtractor()
    if settings.keyword_backend == "llm":
        from models.llm_core import LLMConfig, generate_response

        config = LLMConfig(model_name=settings.llm_model_name)
        return LLMKeywordExtractor(
            lambda prompt: generate_response(prompt, config),
            max_keywords=settings.max_keywords,
            cache_size=settings.keyword_cache_size,
        )
    raise ValueError(f"Unknown keyword backend: {settings.keyword_backend}")
