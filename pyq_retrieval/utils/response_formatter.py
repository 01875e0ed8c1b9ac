"""
Response formatting utilities to transform engine results to the simple
{status, message} format the chat client expects.
"""
from typing import Any, Dict, Optional
from pyq_retrieval.core.logging_config import logger
from pyq_retrieval.models.schemas import FollowUpKind, SearchOutcome, SearchResult


NO_RESULTS_MESSAGE = (
    "I couldn't find previous year questions for that request. "
    "Try a broader topic or a different year range, e.g. \"PYQ on Polity from 2015 to 2024\"."
)

NO_MORE_RESULTS_MESSAGE = "That's all the previous year questions I have for this search. Ask about another topic!"

FAILURE_MESSAGE = "Previous year questions are unavailable right now. Please try again in a moment."


def empty_message(outcome: SearchOutcome, follow_up: FollowUpKind) -> str:
    """User-facing text for a search that produced no result."""
    if outcome == SearchOutcome.FAILED:
        return FAILURE_MESSAGE
    if follow_up == FollowUpKind.MORE:
        return NO_MORE_RESULTS_MESSAGE
    return NO_RESULTS_MESSAGE


def transform_to_simple_format(
    outcome: SearchOutcome,
    result: Optional[SearchResult],
    follow_up: FollowUpKind = FollowUpKind.NEW
) -> Dict[str, Any]:
    """
    Transform an engine outcome to the {status, message, count, follow_up, context} format.

    Args:
        outcome: Terminal state reported by the engine
        result: SearchResult, or None
        follow_up: Follow-up kind detected for the message

    Returns:
        Dict ready to be returned as JSON
    """
    if result is None:
        status = "error" if outcome == SearchOutcome.FAILED else "empty"
        logger.info(f"[ResponseFormatter] No result ({outcome.value}), returning {status}")
        return {
            "status": status,
            "message": empty_message(outcome, follow_up),
            "count": 0,
            "follow_up": follow_up.value,
            "context": None
        }

    logger.info(f"[ResponseFormatter] Message length: {len(result.content)} chars")
    return {
        "status": "success",
        "message": result.content,
        "count": result.count,
        "follow_up": follow_up.value,
        "context": result.context.model_dump()
    }
