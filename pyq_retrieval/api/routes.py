"""
API routes for the PYQ retrieval service.
"""
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from pyq_retrieval.models.schemas import (
    FollowUpKind,
    HealthCheckResponse,
    PyqSearchRequest,
    PyqSearchResponse,
    ErrorResponse
)
from pyq_retrieval.core.config import settings
from pyq_retrieval.core.logging_config import logger
from pyq_retrieval.services.followup_detector import followup_detector
from pyq_retrieval.services.retrieval_engine import RetrievalEngine
from pyq_retrieval.utils.exceptions import InvalidInputError
from pyq_retrieval.utils.response_formatter import transform_to_simple_format


router = APIRouter()


def get_engine(request: Request) -> RetrievalEngine:
    """Engine built at startup (see main.startup_event)."""
    engine = getattr(request.app.state, "engine", None)
    if engine is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Retrieval engine is not initialised"
        )
    return engine


@router.get("/", response_model=dict)
async def root():
    """
    Root endpoint - API information.
    """
    return {
        "name": settings.api_title,
        "version": settings.api_version,
        "description": settings.api_description,
        "endpoints": {
            "search": "/pyq/search",
            "context": "/pyq/context/{conversation_id}",
            "cache": "/pyq/cache/entries",
            "health": "/health",
            "docs": "/docs"
        }
    }


@router.get("/ping")
async def ping():
    """Liveness check for load balancers; does not touch the engine."""
    return {"status": "ok"}


@router.get("/health", response_model=HealthCheckResponse)
async def health_check(request: Request):
    """
    Health check endpoint to verify service status.
    """
    engine = getattr(request.app.state, "engine", None)
    return HealthCheckResponse(
        status="healthy" if engine is not None else "starting",
        version=settings.api_version,
        durable_cache=bool(engine is not None and engine.cache.durable is not None)
    )


@router.post(
    "/pyq/search",
    response_model=PyqSearchResponse,
    status_code=status.HTTP_200_OK,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid input"},
        500: {"model": ErrorResponse, "description": "Search failed"}
    }
)
async def search_pyqs(request: PyqSearchRequest, engine: RetrievalEngine = Depends(get_engine)):
    """
    Search previous year questions for a chat message.

    Follow-ups are resolved against the stored conversation context:
    1. "more" / "next" continues the previous search at the next offset
    2. "solve these" returns the questions shown last, as a solve block
    3. Anything else starts a new search

    Args:
        request: PyqSearchRequest with message, conversation id and language hint

    Returns:
        Simple {status, message} format plus count, follow_up and context

    Raises:
        HTTPException: If the message is empty
    """
    try:
        message = request.message.strip() if request.message else ""
        if not message:
            raise InvalidInputError("Message cannot be empty")

        conversation_id = request.conversation_id
        logger.info(f"[API] PYQ search request: {message[:100]}")

        context = engine.get_context(conversation_id) if conversation_id else None
        follow_up = followup_detector.detect(message, context)
        logger.info(f"[API] Follow-up kind: {follow_up.value}")

        if follow_up == FollowUpKind.SOLVE:
            solve_context = await engine.build_solve_context(conversation_id)
            if solve_context:
                return {
                    "status": "success",
                    "message": solve_context,
                    "count": len(context.shown_question_ids),
                    "follow_up": follow_up.value,
                    "context": context.intent.model_dump()
                }
            logger.info("[API] Nothing to solve, running a new search")
            follow_up = FollowUpKind.NEW

        previous_intent = context.intent if follow_up == FollowUpKind.MORE else None
        outcome, result = await engine.search_with_outcome(
            message,
            previous_context=previous_intent,
            language_hint=request.language,
            conversation_key=conversation_id
        )

        simple_response = transform_to_simple_format(outcome, result, follow_up)
        logger.info(f"[API] Outcome: {outcome.value}, status: {simple_response['status']}")
        return simple_response

    except InvalidInputError as e:
        logger.error(f"[API] Validation error: {e}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )


@router.get("/pyq/context/{conversation_id}", response_model=dict)
async def get_context(conversation_id: str, engine: RetrievalEngine = Depends(get_engine)):
    """Stored PYQ context of a conversation."""
    context = engine.get_context(conversation_id)
    if context is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No PYQ context for conversation {conversation_id}"
        )
    return context.model_dump()


@router.delete("/pyq/context/{conversation_id}", response_model=dict)
async def clear_context(conversation_id: str, engine: RetrievalEngine = Depends(get_engine)):
    engine.clear_context(conversation_id)
    return {"status": "cleared", "conversation_id": conversation_id}


@router.get("/pyq/context/{conversation_id}/questions", response_model=dict)
async def shown_questions(conversation_id: str, engine: RetrievalEngine = Depends(get_engine)):
    """Questions shown on the last page of a conversation plus their solve block."""
    questions = await engine.get_shown_questions(conversation_id)
    return {
        "conversation_id": conversation_id,
        "count": len(questions),
        "questions": [q.model_dump(by_alias=True) for q in questions],
        "solve_context": engine.curator.render_solve_context(questions)
    }


@router.get("/pyq/cache/entries", response_model=list)
async def cache_entries(
    limit: int = Query(default=50, ge=1, le=500),
    engine: RetrievalEngine = Depends(get_engine)
):
    """Most recent cache entries, newest first."""
    entries = await engine.cache_entries(limit)
    return [entry.model_dump() for entry in entries]
