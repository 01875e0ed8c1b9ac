"""
Pydantic models for conversation context and cache entries.
"""
from pydantic import BaseModel, Field
from typing import Any, List, Optional
from pyq_retrieval.models.schemas import SearchIntent


class ConversationContext(BaseModel):
    """Last PYQ search of a conversation, used to resume pagination."""

    conversation_key: str = Field(..., description="Conversation identifier")
    intent: SearchIntent = Field(..., description="Intent to run for the next page")
    shown_question_ids: List[str] = Field(default_factory=list, description="Questions shown on the last page")
    last_updated: float = Field(default=0.0, description="Unix timestamp in seconds")


class CacheEntry(BaseModel):
    """Single cached value with its insertion time and TTL."""

    key: str = Field(..., description="Cache key")
    value: Any = Field(default=None, description="Cached value")
    inserted_at: float = Field(..., description="Unix timestamp in seconds")
    ttl: Optional[float] = Field(default=None, description="TTL in seconds (None for durable-only reads)")

    def is_expired(self, now: float) -> bool:
        if self.ttl is None:
            return False
        return now - self.inserted_at > self.ttl
