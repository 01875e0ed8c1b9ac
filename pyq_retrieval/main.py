"""
FastAPI application for the PYQ retrieval service.
The retrieval engine is built once at startup and lives on app.state.engine.
"""
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pyq_retrieval.core.config import settings
from pyq_retrieval.core.logging_config import logger
from pyq_retrieval.api.routes import router
from pyq_retrieval.services.retrieval_engine import create_engine
from pyq_retrieval.utils.exceptions import RetrievalException


def error_body(error: str, message: str, detail=None) -> dict:
    return {"error": error, "message": message, "detail": detail}


def register_exception_handlers(app: FastAPI) -> None:
    """Map retrieval errors and unexpected failures to JSON 500 responses."""

    @app.exception_handler(RetrievalException)
    async def retrieval_exception_handler(request: Request, exc: RetrievalException):
        logger.error(f"[API] {type(exc).__name__} on {request.url.path}: {exc}")
        return JSONResponse(
            status_code=500,
            content=error_body("RetrievalError", str(exc), "An error occurred during PYQ retrieval")
        )

    @app.exception_handler(Exception)
    async def unexpected_exception_handler(request: Request, exc: Exception):
        logger.error(f"[API] Unexpected error on {request.url.path}: {exc}", exc_info=True)
        detail = str(exc) if settings.environment == "development" else None
        return JSONResponse(
            status_code=500,
            content=error_body("InternalServerError", "An unexpected error occurred", detail)
        )


app = FastAPI(
    title=settings.api_title,
    version=settings.api_version,
    description=settings.api_description
)

# Chat front-ends call this service from other origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST", "DELETE"],
    allow_headers=["*"],
)

register_exception_handlers(app)
app.include_router(router, tags=["PYQ"])


@app.on_event("startup")
async def startup_event():
    """Build the retrieval engine once per process."""
    logger.info(f"Starting {settings.api_title} v{settings.api_version} ({settings.environment})")
    logger.info(f"Archive: {settings.archive_parquet_path or 'not configured'}, "
                f"durable cache: {'redis' if settings.redis_url else 'none'}")
    app.state.engine = create_engine(settings)


@app.on_event("shutdown")
async def shutdown_event():
    """Drain pending cache writes and close the durable cache."""
    engine = getattr(app.state, "engine", None)
    if engine is not None:
        await engine.close()
    logger.info(f"Stopped {settings.api_title}")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "pyq_retrieval.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.environment == "development"
    )
