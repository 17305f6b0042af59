"""
agent_core/container.py
-----------------------
Wires the retrieval components together from Settings. The API and the CLI
each own one container; nothing here is a module-level singleton.
"""

from __future__ import annotations

from dataclasses import dataclass

from agent_core.config import Settings
from catalog.loader import CatalogSource, JsonCatalog
from catalog.searchable_text import SearchableTextBuilder
from embeddings.pacing import RequestPacer
from embeddings.text_embed import EmbeddingProvider, build_embedding_provider
from query.keywords import KeywordExtractor, build_keyword_extractor
from recommender.hybrid import HybridScorer
from recommender.index_cache import IndexCache
from recommender.recommend import RecommendationService
from recommender.vector_index import VectorIndex


@dataclass
class ServiceContainer:
    settings: Settings
    catalog: CatalogSource
    provider: EmbeddingProvider
    index: VectorIndex
    scorer: HybridScorer
    keywords: KeywordExtractor
    recommender: RecommendationService


def build_container(
    settings: Settings,
    provider: EmbeddingProvider | None = None,
    keyword_extractor: KeywordExtractor | None = None,
    catalog: CatalogSource | None = None,
) -> ServiceContainer:
    catalog = catalog or JsonCatalog(settings.catalog_path)
    provider = provider or build_embedding_provider(settings)
    keyword_extractor = keyword_extractor or build_keyword_extractor(settings)

    index = VectorIndex(
        provider,
        cache=IndexCache(settings.cache_path),
        text_builder=SearchableTextBuilder(settings.description_max_chars),
        pacer=RequestPacer(settings.embed_delay_seconds),
        min_similarity=settings.min_similarity,
        default_top_k=settings.search_top_k,
    )
    scorer = HybridScorer(settings.hybrid_weights())
    recommender = RecommendationService(
        catalog,
        index,
        keyword_extractor,
        scorer,
        semantic_candidates=settings.semantic_candidates,
        default_limit=settings.recommend_limit,
        popular_limit=settings.popular_limit,
    )
    return ServiceContainer(settings, catalog, provider, index, scorer, keyword_extractor, recommender)
