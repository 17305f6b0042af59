"""
agent_core/config.py
--------------------
Runtime configuration for the retrieval service.

Values resolve in this order (first wins):
    1. keyword arguments passed to Settings(...)
    2. environment variables prefixed with COMMERCE_ (e.g. COMMERCE_MIN_SIMILARITY)
    3. config/retrieval.yaml (or the file named by COMMERCE_CONFIG_FILE)
    4. the defaults below
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

from recommender.hybrid import HybridWeights

ROOT = Path(__file__).resolve().parents[1]
CONFIG_FILE = Path(os.getenv("COMMERCE_CONFIG_FILE", ROOT / "config" / "retrieval.yaml"))


# ─────────────────────────────────────────────────────────────────────────────
# ⚙️ Settings
# ─────────────────────────────────────────────────────────────────────────────
class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="COMMERCE_",
        yaml_file=CONFIG_FILE,
        extra="ignore",
    )

    # Paths
    catalog_path: Path = ROOT / "catalog" / "catalog.json"
    cache_path: Path = ROOT / "data" / "cache" / "product_embeddings.json"
    log_dir: Path = ROOT / "logs"
    log_level: str = "INFO"

    # Embedding provider
    embedding_backend: Literal["sentence-transformers", "hashing"] = "sentence-transformers"
    embedding_model: str = "sentence-transformers/all-MiniLM-L6-v2"
    hashing_dim: int = Field(512, gt=0)
    embed_delay_seconds: float = Field(0.15, ge=0)   # courtesy pause between provider calls

    # Vector search
    search_top_k: int = Field(10, gt=0)
    min_similarity: float = 0.30
    semantic_candidates: int = Field(20, gt=0)
    description_max_chars: int = Field(200, gt=0)

    # Hybrid scoring
    semantic_weight: float = 0.70
    keyword_weight: float = 0.25
    rating_weight: float = 0.05
    semantic_threshold: float = 0.25
    keyword_threshold: float = 0.30

    # Recommendation
    recommend_limit: int = Field(6, gt=0)
    popular_limit: int = Field(3, gt=0)

    # Keyword extraction
    keyword_backend: Literal["simple", "llm"] = "simple"
    llm_model_name: str = "TinyLlama/TinyLlama-1.1B-Chat-v1.0"
    max_keywords: int = Field(7, gt=0)
    keyword_cache_size: int = Field(256, ge=0)

    # Lifecycle
    build_on_startup: bool = True

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (init_settings, env_settings, YamlConfigSettingsSource(settings_cls))

    def hybrid_weights(self) -> HybridWeights:
        return HybridWeights(
            semantic=self.semantic_weight,
            keyword=self.keyword_weight,
            rating=self.rating_weight,
            semantic_threshold=self.semantic_threshold,
            keyword_threshold=self.keyword_threshold,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Process-wide settings, read once."""
    return Settings()
