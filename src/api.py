"""FastAPI application for image-to-story generation.

Endpoints:
- POST /api/stories/generate - Generate a story from an image
- GET /health - Health check
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from src.stories.router import get_story_config
from src.stories.router import router as stories_router
from src.stories.schemas import ErrorDetail, ErrorResponse
from src.tools.story.config import StoryConfig
from src.tools.story.errors import ErrorKind, PipelineError
from src.tracing import setup_structured_logging

logger = logging.getLogger(__name__)


# ============================================================================
# FastAPI Application
# ============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - configure logging on startup."""
    setup_structured_logging()
    logger.info("[API] Story service started")
    yield


app = FastAPI(
    title="Image Story Generator API",
    description="Generate short stories from images with Gemini vision",
    version="0.1.0",
    lifespan=lifespan,
)

# Include routers
app.include_router(stories_router)


# ============================================================================
# Exception Handlers
# ============================================================================


@app.exception_handler(PipelineError)
async def pipeline_error_handler(request: Request, exc: PipelineError) -> JSONResponse:
    """Render a classified pipeline failure as the error envelope."""
    logger.warning(f"[API] {request.url.path} failed: {exc.code} -> {exc.http_status_hint}")
    body = ErrorResponse(error=ErrorDetail(**exc.to_dict()))
    return JSONResponse(
        status_code=exc.http_status_hint,
        content=body.model_dump(exclude_none=True),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Map request body shape errors to 400 VALIDATION_ERROR."""
    error = PipelineError(ErrorKind.INVALID_REQUEST_SHAPE, "Invalid request data")
    details = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ()) if part != "body"),
            "message": err.get("msg", ""),
        }
        for err in exc.errors()
    ]
    logger.info(f"[API] Validation error on {request.url.path}: {len(details)} issue(s)")
    body = ErrorResponse(error=ErrorDetail(**error.to_dict(), details=details))
    return JSONResponse(
        status_code=error.http_status_hint,
        content=body.model_dump(exclude_none=True),
    )


# ============================================================================
# Response Models
# ============================================================================


class HealthResponse(BaseModel):
    """Response from GET /health."""
    status: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    model: str
    api_key_configured: bool


# ============================================================================
# Endpoints
# ============================================================================


@app.get(
    "/health",
    response_model=HealthResponse,
)
async def health_check(config: StoryConfig = Depends(get_story_config)) -> HealthResponse:
    """
    Health check endpoint.

    Reports the configured model and whether an API key is present.
    """
    return HealthResponse(
        status="healthy",
        model=config.model,
        api_key_configured=bool(config.api_key),
    )
