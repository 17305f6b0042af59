"""
recommender/recommend.py
------------------------
Generates ranked product recommendations from user text queries by blending
vector search with keyword matching and ratings.

The caller always gets a list back: when nothing qualifies, the most popular
products are returned instead.
"""

from __future__ import annotations

import logging
from typing import List, Literal, Optional

from pydantic import BaseModel

from agent_core.logger import log_event
from catalog.loader import CatalogSource, Product
from query.keywords import KeywordExtractor
from recommender.hybrid import HybridScorer, ScoredCandidate
from recommender.vector_index import VectorIndex

logger = logging.getLogger(__name__)

Source = Literal["hybrid", "keyword", "popular"]


class ProductRef(BaseModel):
    id: str
    name: str
    brand: Optional[str] = None
    category: Optional[str] = None
    price: float
    rating: float
    review_count: int
    image: Optional[str] = None
    score: Optional[float] = None
    semantic_score: Optional[float] = None
    keyword_score: Optional[float] = None
    source: Source

    @classmethod
    def from_candidate(cls, c: ScoredCandidate, source: Source) -> "ProductRef":
        return cls(
            **_product_fields(c.product),
            score=round(c.score.total, 4),
            semantic_score=round(c.score.semantic, 4),
            keyword_score=round(c.score.keyword, 4),
            source=source,
        )

    @classmethod
    def popular(cls, p: Product) -> "ProductRef":
        return cls(**_product_fields(p), source="popular")


def _product_fields(p: Product) -> dict:
    return p.model_dump(include={"id", "name", "brand", "category", "price", "rating", "review_count", "image"})


class Recommendation(BaseModel):
    query: str
    keywords: List[str] = []
    strategy: Source
    products: List[ProductRef] = []


# ---------------------------------------------------------------------------
# Core Recommender
# ---------------------------------------------------------------------------
class RecommendationService:
    def __init__(
        self,
        catalog: CatalogSource,
        index: VectorIndex,
        keywords: KeywordExtractor,
        scorer: HybridScorer | None = None,
        semantic_candidates: int = 20,
        default_limit: int = 6,
        popular_limit: int = 3,
    ):
        self.catalog = catalog
        self.index = index
        self.keywords = keywords
        self.scorer = scorer or HybridScorer()
        self.semantic_candidates = semantic_candidates
        self.default_limit = default_limit
        self.popular_limit = popular_limit

    async def recommend(self, query: str, exclude_id: str | None = None, limit: int | None = None) -> list[ProductRef]:
        return (await self.recommend_with_details(query, exclude_id, limit)).products

    async def recommend_with_details(
        self, query: str, exclude_id: str | None = None, limit: int | None = None
    ) -> Recommendation:
        limit = self.default_limit if limit is None else limit
        try:
            products = self.catalog.list_products()
        except Exception:
            logger.exception("Catalog unavailable, no recommendations for %r", query)
            return Recommendation(query=query, strategy="popular")
        if exclude_id is not None:
            products = [p for p in products if p.id != str(exclude_id)]

        keywords: list[str] = []
        try:
            keywords = await self.extract_keywords(query)
            ranked, strategy = await self._rank(query, products, keywords, limit)
        except Exception:
            logger.exception("Ranking failed for %r, falling back to popular products", query)
            ranked, strategy = [], "popular"

        if ranked:
            refs = [ProductRef.from_candidate(c, strategy) for c in ranked]
        else:
            logger.info("No relevant result for %r, showing popular products", query)
            strategy = "popular"
            refs = [ProductRef.popular(p) for p in self.most_popular(products, min(limit, self.popular_limit))]

        log_event(
            "recommendation_served",
            {"query": query, "keywords": keywords, "strategy": strategy, "ids": [r.id for r in refs]},
        )
        return Recommendation(query=query, keywords=keywords, strategy=strategy, products=refs)

    async def _rank(self, query: str, products: list[Product], keywords: list[str], limit: int):
        if self.index.ready:
            hits = await self.index.search(query, top_k=self.semantic_candidates)
            semantic = {h.product_id: h.semantic_score for h in hits}
            strategy = "hybrid"
        else:
            logger.warning("Vector index not ready, using keyword-only ranking")
            semantic, strategy = {}, "keyword"

        ranked = self.scorer.rank(products, keywords, semantic, limit=limit)
        for c in ranked[:3]:
            logger.debug(
                "🎯 %s: semantic=%.3f keyword=%.3f rating=%.3f total=%.3f",
                c.product.name, c.score.semantic, c.score.keyword, c.score.rating_bonus, c.score.total,
            )
        logger.info("🔍 %s search: %d results for %r", strategy, len(ranked), query)
        return ranked, strategy

    @staticmethod
    def most_popular(products: list[Product], limit: int) -> list[Product]:
        """Highest rating first, then most reviews."""
        return sorted(products, key=lambda p: (p.rating, p.review_count), reverse=True)[:limit]

    async def extract_keywords(self, query: str) -> list[str]:
        return await self.keywords.extract(query)

    def index_stats(self) -> dict:
        return self.index.stats()
