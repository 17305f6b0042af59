from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class IndexState(str, Enum):
    EMPTY = "empty"
    BUILDING = "building"
    READY = "ready"


class ProductVector(BaseModel):
    product_id: str
    product_name: str = ""
    embedding: List[float]
    searchable_text: str
    created_at: datetime = Field(default_factory=utcnow)

    @property
    def dimension(self) -> int:
        return len(self.embedding)


class ScoredProduct(BaseModel):
    product_id: str
    product_name: str
    semantic_score: float
    searchable_text: str


class BuildReport(BaseModel):
    processed: int = 0
    succeeded: int = 0
    failed: int = 0
    failed_ids: List[str] = []
    from_cache: bool = False
    cancelled: bool = False
    forced: bool = False
    duration_sec: float = 0.0
    started_at: datetime = Field(default_factory=utcnow)
    error: Optional[str] = None
