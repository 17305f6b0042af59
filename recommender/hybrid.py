# recommender/hybrid.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Sequence

from catalog.loader import Product


@dataclass(frozen=True)
class HybridWeights:
    semantic: float = 0.70
    keyword: float = 0.25
    rating: float = 0.05          # max share of the rating bonus
    rating_scale: float = 5.0
    semantic_threshold: float = 0.25
    keyword_threshold: float = 0.30
    name_points: float = 3.0
    brand_points: float = 2.0
    category_points: float = 2.0
    description_points: float = 1.0


@dataclass(frozen=True)
class HybridScore:
    semantic: float
    keyword: float
    rating_bonus: float
    total: float


@dataclass(frozen=True)
class ScoredCandidate:
    product: Product
    score: HybridScore


class HybridScorer:
    """Blend semantic similarity, keyword match strength and rating into one ranking score."""

    def __init__(self, weights: HybridWeights | None = None):
        self.weights = weights or HybridWeights()

    def keyword_score(self, product: Product, keywords: Sequence[str]) -> float:
        """
        Per keyword, award points for the first field containing it
        (name > brand > category > description), normalized to [0, 1]
        by the best case of every keyword hitting the name.
        """
        if not keywords:
            return 0.0
        w = self.weights
        fields = (
            ((product.name or "").lower(), w.name_points),
            ((product.brand or "").lower(), w.brand_points),
            ((product.category or "").lower(), w.category_points),
            ((product.description or "").lower(), w.description_points),
        )
        points = 0.0
        for kw in keywords:
            kw = kw.lower()
            points += next((pts for text, pts in fields if kw and kw in text), 0.0)
        return points / (w.name_points * len(keywords))

    def rating_bonus(self, rating: float) -> float:
        w = self.weights
        rating = min(max(rating, 0.0), w.rating_scale)
        return rating / w.rating_scale * w.rating

    def score(self, product: Product, semantic: float, keywords: Sequence[str]) -> HybridScore:
        w = self.weights
        kw = self.keyword_score(product, keywords)
        bonus = self.rating_bonus(product.rating)
        return HybridScore(
            semantic=semantic,
            keyword=kw,
            rating_bonus=bonus,
            total=semantic * w.semantic + kw * w.keyword + bonus,
        )

    def qualifies(self, score: HybridScore) -> bool:
        # either signal alone is enough
        w = self.weights
        return score.semantic > w.semantic_threshold or score.keyword > w.keyword_threshold

    def rank(
        self,
        products: Sequence[Product],
        keywords: Sequence[str],
        semantic_scores: Mapping[str, float] | None = None,
        limit: int | None = None,
    ) -> list[ScoredCandidate]:
        """Score every product, keep the qualifying ones, best first (stable for ties)."""
        semantic_scores = semantic_scores or {}
        kept = []
        for p in products:
            s = self.score(p, semantic_scores.get(p.id, 0.0), keywords)
            if self.qualifies(s):
                kept.append(ScoredCandidate(p, s))
        kept.sort(key=lambda c: c.score.total, reverse=True)
        return kept if limit is None else kept[:limit]
