"""Generation and cache contracts."""

from pydantic import BaseModel, Field
from typing import Optional
from enum import Enum


class FailureKind(str, Enum):
    """Classification of a backend failure, decides retry vs. fall-through."""
    RATE_LIMITED = "rate_limited"
    TRANSIENT_OVERLOAD = "transient_overload"
    NETWORK = "network"
    PERMANENT = "permanent"
    UNKNOWN = "unknown"

    @property
    def retryable(self) -> bool:
        return self in (FailureKind.TRANSIENT_OVERLOAD, FailureKind.NETWORK)


class GenerationResult(BaseModel):
    """Standardized result from any generation backend."""
    content: str
    provider: str = Field(..., description="Tag of the backend that produced the content")
    model: Optional[str] = None
    token_count: Optional[int] = None


class CacheEntry(BaseModel):
    """A generated section as stored in the content cache."""
    section_id: str
    content: str
    explanation: str = ""
    provider: str
