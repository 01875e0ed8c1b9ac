"""
Pydantic models for search intents, archived questions and API payloads.
"""
import json
from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any
from datetime import datetime
from enum import Enum


class SearchOutcome(str, Enum):
    """Terminal state of a single retrieval call."""
    CACHE_HIT = "cache_hit"
    CURATED = "curated"
    EMPTY = "empty"
    FAILED = "failed"


class FollowUpKind(str, Enum):
    """How a chat message relates to the previous PYQ search."""
    NEW = "new"
    MORE = "more"
    SOLVE = "solve"


class SearchIntent(BaseModel):
    """Structured search parsed from a user request. Immutable once built."""
    topic: str = Field(default="", description="Topic phrase, empty when nothing was recognised")
    from_year: Optional[int] = Field(default=None, description="Lower year bound (inclusive)")
    to_year: Optional[int] = Field(default=None, description="Upper year bound (inclusive)")
    exam_code: str = Field(default="UPSC", description="Exam code filter")
    offset: int = Field(default=0, ge=0, description="Number of archive rows to skip")
    limit: int = Field(default=50, ge=1, description="Page size")
    original_query: str = Field(default="", description="Raw text the intent was parsed from")

    class Config:
        frozen = True
        json_schema_extra = {
            "example": {
                "topic": "Geography",
                "from_year": 2020,
                "to_year": 2024,
                "exam_code": "UPSC",
                "offset": 0,
                "limit": 50,
                "original_query": "PYQ on Geography from 2020 to 2024"
            }
        }

    def cache_key(self) -> str:
        """
        Deterministic serialization of the normalized intent.

        Two intents that differ only in topic casing/spacing or in the
        original query text produce the same key.
        """
        payload = {
            "topic": " ".join(self.topic.lower().split()),
            "from_year": self.from_year,
            "to_year": self.to_year,
            "exam_code": self.exam_code.strip().upper(),
            "offset": self.offset,
            "limit": self.limit,
        }
        return json.dumps(payload, sort_keys=True, separators=(",", ":"))

    def next_page(self, count: int) -> "SearchIntent":
        """Return a copy whose offset is advanced past `count` rows."""
        return self.model_copy(update={"offset": self.offset + max(0, count)})


class ArchivedQuestion(BaseModel):
    """A previous-year question as stored in the archive (read-only)."""
    id: str
    exam_code: str = Field(default="", alias="exam")
    level: str = ""
    paper: str = ""
    year: int
    question_text: str = Field(default="", alias="question")
    topic_tags: List[str] = Field(default_factory=list, alias="topicTags")
    source_link: Optional[str] = Field(default=None, alias="sourceLink")
    verified: bool = False
    theme: str = ""
    analysis: str = ""
    lang: str = "en"

    class Config:
        populate_by_name = True

    @property
    def is_verified(self) -> bool:
        """Verified flag set, or the source is an official government domain."""
        return self.verified or bool(self.source_link and ".gov.in" in self.source_link)

    @property
    def has_analysis(self) -> bool:
        return bool(self.analysis and self.analysis.strip())


class SearchResult(BaseModel):
    """Payload returned to the chat-handling caller."""
    content: str = Field(..., description="Formatted transcript")
    context: SearchIntent = Field(..., description="Intent to pass back for the next page")
    count: int = Field(..., description="Archive rows consumed by this page")
    question_ids: List[str] = Field(default_factory=list, description="Ids of the questions shown")


class PyqSearchRequest(BaseModel):
    """Request model for the PYQ search endpoint."""
    message: str = Field(..., description="User message", min_length=1)
    conversation_id: Optional[str] = Field(default=None, description="Conversation key for follow-ups")
    language: str = Field(default="en", description="Language hint (ISO code)")

    class Config:
        json_schema_extra = {
            "example": {
                "message": "PYQ on Geography from 2020 to 2024",
                "conversation_id": "chat-42",
                "language": "en"
            }
        }


class PyqSearchResponse(BaseModel):
    """Response model for the PYQ search endpoint."""
    status: str = Field(..., description="success | empty | error")
    message: str = Field(..., description="User-facing text")
    count: int = Field(default=0, description="Archive rows consumed by this page")
    follow_up: FollowUpKind = Field(default=FollowUpKind.NEW, description="Detected follow-up kind")
    context: Optional[SearchIntent] = Field(default=None, description="Intent for the next page")


class HealthCheckResponse(BaseModel):
    """Response model for health check endpoint."""
    status: str = Field(..., description="Service status")
    version: str = Field(..., description="API version")
    durable_cache: bool = Field(default=False, description="Whether a durable cache tier is configured")
    timestamp: datetime = Field(default_factory=datetime.utcnow, description="Health check timestamp")


class ErrorResponse(BaseModel):
    """Response model for errors."""
    error: str = Field(..., description="Error type")
    message: str = Field(..., description="Error message")
    detail: Optional[str] = Field(default=None, description="Detailed error information")
    timestamp: datetime = Field(default_factory=datetime.utcnow, description="Error timestamp")


def question_from_record(record: Dict[str, Any]) -> ArchivedQuestion:
    """Build an ArchivedQuestion from an archive document, tolerating missing fields."""
    tags = record.get("topicTags")
    if tags is None:
        tags = []
    return ArchivedQuestion(
        id=str(record.get("id") or record.get("_id") or ""),
        exam=str(record.get("exam") or ""),
        level=str(record.get("level") or ""),
        paper=str(record.get("paper") or ""),
        year=int(record.get("year") or 0),
        question=str(record.get("question") or ""),
        topicTags=[str(tag) for tag in tags if str(tag).strip()],
        sourceLink=record.get("sourceLink") or None,
        verified=bool(record.get("verified") or False),
        theme=str(record.get("theme") or ""),
        analysis=str(record.get("analysis") or ""),
        lang=str(record.get("lang") or "en"),
    )
