"""
api/main.py
-----------
Commerce Assistant: Retrieval API Layer
----------------------------------------
Exposes recommendations, keyword extraction and vector index maintenance.
The index builds in the background at startup; until it is ready,
recommendations run keyword-only.
"""

import asyncio
import logging
from contextlib import asynccontextmanager, suppress
from typing import Optional

from fastapi import FastAPI, HTTPException, Request
from pydantic import BaseModel, Field

from agent_core.config import get_settings
from agent_core.container import ServiceContainer, build_container
from agent_core.exceptions import DimensionMismatchError
from agent_core.logger import log_event, setup_logging
from catalog.analytics import catalog_analytics
from catalog.loader import Product
from recommender.diagnostics import IndexDiagnostics, diagnose_index
from recommender.index_types import BuildReport
from recommender.recommend import Recommendation

logger = logging.getLogger(__name__)

SHUTDOWN_GRACE_SECONDS = 5.0


# ─────────────────────────────────────────────────────────────────────────────
# 🔁 1. Background index build
# ─────────────────────────────────────────────────────────────────────────────

async def _background_build(container: ServiceContainer, cancel: asyncio.Event) -> None:
    try:
        products = container.catalog.list_products()
        await container.index.build(products, cancel_event=cancel)
    except DimensionMismatchError as e:
        logger.error("Vector index rejected: %s", e)
    except Exception:
        logger.exception("Background index build failed")


def _lifespan_for(container: Optional[ServiceContainer]):
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        c = container or build_container(get_settings())
        setup_logging(c.settings.log_level, c.settings.log_dir)
        app.state.container = c

        cancel = asyncio.Event()
        task = None
        if c.settings.build_on_startup:
            logger.info("🚀 Building vector index in the background...")
            task = asyncio.create_task(_background_build(c, cancel))
        yield  # application now serving
        if task is not None and not task.done():
            cancel.set()
            done, _ = await asyncio.wait({task}, timeout=SHUTDOWN_GRACE_SECONDS)
            if not done:
                task.cancel()
                with suppress(asyncio.CancelledError):
                    await task
        logger.info("🧩 Retrieval service shutting down...")

    return lifespan


# ─────────────────────────────────────────────────────────────────────────────
# 📥 2. Request / Response Schemas
# ─────────────────────────────────────────────────────────────────────────────

class RecommendRequest(BaseModel):
    query: str = Field(..., description="Shopper question or search text")
    exclude_id: Optional[str] = Field(None, description="Product to leave out (e.g. the one being viewed)")
    limit: Optional[int] = Field(None, gt=0, le=50)


class KeywordsRequest(BaseModel):
    query: str


class KeywordsResponse(BaseModel):
    query: str
    keywords: list[str]
    count: int


# ─────────────────────────────────────────────────────────────────────────────
# ⚙️ 3. App factory
# ─────────────────────────────────────────────────────────────────────────────

def _container(request: Request) -> ServiceContainer:
    return request.app.state.container


def create_app(container: Optional[ServiceContainer] = None) -> FastAPI:
    app = FastAPI(
        title="Commerce Retrieval API",
        version="1.0.0",
        description="Semantic product retrieval for the shopping assistant.",
        lifespan=_lifespan_for(container),
    )

    @app.get("/")
    def root():
        return {
            "message": "Commerce retrieval service running.",
            "endpoints": [
                "/recommend", "/keywords", "/index/stats", "/index/diagnostics",
                "/rebuild_embeddings", "/index/products", "/analytics", "/health", "/config",
            ],
        }

    @app.get("/health")
    def health_check(request: Request):
        c = _container(request)
        stats = c.index.stats()
        return {
            "status": "healthy" if stats["ready"] else "degraded",
            "index_ready": stats["ready"],
            "embedding_backend": c.settings.embedding_backend,
            "keyword_backend": c.settings.keyword_backend,
        }

    @app.get("/config")
    def get_current_config(request: Request):
        return _container(request).settings.model_dump(mode="json")

    # ── Recommendations ──────────────────────────────────────────────────────
    @app.post("/recommend", response_model=Recommendation)
    async def recommend(req: RecommendRequest, request: Request):
        if not req.query.strip():
            raise HTTPException(status_code=400, detail="'query' must not be empty.")
        return await _container(request).recommender.recommend_with_details(
            req.query, exclude_id=req.exclude_id, limit=req.limit
        )

    @app.post("/keywords", response_model=KeywordsResponse)
    async def extract_keywords(req: KeywordsRequest, request: Request):
        if not req.query.strip():
            raise HTTPException(status_code=400, detail="'query' must not be empty.")
        keywords = await _container(request).recommender.extract_keywords(req.query)
        return KeywordsResponse(query=req.query, keywords=keywords, count=len(keywords))

    @app.get("/analytics")
    def analytics(request: Request):
        return catalog_analytics(_container(request).catalog.list_products())

    # ── Index maintenance ────────────────────────────────────────────────────
    @app.get("/index/stats")
    def index_stats(request: Request):
        return _container(request).recommender.index_stats()

    @app.get("/index/diagnostics", response_model=IndexDiagnostics)
    def index_diagnostics(request: Request):
        c = _container(request)
        return diagnose_index(c.index, c.catalog.list_products())

    @app.post("/rebuild_embeddings", response_model=BuildReport)
    async def rebuild_embeddings(request: Request, force: bool = False):
        c = _container(request)
        log_event("rebuild_requested", {"force": force})
        try:
            return await c.index.build(c.catalog.list_products(), force=force)
        except DimensionMismatchError as e:
            raise HTTPException(status_code=409, detail=str(e))

    @app.post("/index/products")
    async def upsert_product(product: Product, request: Request):
        try:
            indexed = await _container(request).index.add_or_update(product)
        except DimensionMismatchError as e:
            raise HTTPException(status_code=409, detail=str(e))
        return {"product_id": product.id, "indexed": indexed}

    @app.delete("/index/products/{product_id}")
    async def remove_product(product_id: str, request: Request):
        removed = await _container(request).index.remove(product_id)
        return {"product_id": product_id, "removed": removed}

    return app


app = create_app()
