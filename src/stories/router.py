"""
FastAPI router for the Story Generation API.

Endpoints:
- POST /api/stories/generate - Generate a story from an image

Failures surface as PipelineError and are rendered by the app-level
exception handlers in src/api.py.
"""

from __future__ import annotations

import logging
from functools import lru_cache

from fastapi import APIRouter, Depends

from src.stories.schemas import (
    ErrorResponse,
    StoryGenerateRequest,
    StoryGenerateResponse,
    StoryMetadata,
    StoryResponseData,
)
from src.tools.story.config import StoryConfig
from src.tools.story.errors import ErrorKind, PipelineError
from src.tools.story.gemini_client import GeminiStoryClient
from src.tools.story.pipeline import StoryPipeline
from src.tracing import clear_request_id, new_request_id

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/stories", tags=["stories"])


# ============================================================================
# Dependencies
# ============================================================================


@lru_cache()
def get_story_config() -> StoryConfig:
    """Dependency to get the environment-driven StoryConfig."""
    return StoryConfig()


@lru_cache()
def get_story_pipeline() -> StoryPipeline:
    """Dependency to get the singleton StoryPipeline instance."""
    config = get_story_config()
    if not config.api_key:
        logger.error("[STORY] GEMINI_API_KEY not found in environment variables")
        raise PipelineError(ErrorKind.AUTHENTICATION_FAILED, "Story model API key is not configured")
    return StoryPipeline(GeminiStoryClient(config), config)


# ============================================================================
# Endpoints
# ============================================================================


@router.post(
    "/generate",
    response_model=StoryGenerateResponse,
    responses={
        400: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        408: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
)
async def generate_story(
    request: StoryGenerateRequest,
    pipeline: StoryPipeline = Depends(get_story_pipeline),
) -> StoryGenerateResponse:
    """
    Generate a story from an uploaded image.

    Blocks until the story is ready or the generation times out.
    """
    request_id = new_request_id()
    genre_ids = [genre.value for genre in request.genres]
    logger.info(
        f"[STORY] Request {request_id}: genres={','.join(genre_ids)}, "
        f"length={request.length.value}, language={request.language}, "
        f"fileName={request.file_name}"
    )

    try:
        result = await pipeline.generate_detailed(
            image=request.image_data,
            genres=genre_ids,
            length=request.length,
            language=request.language,
        )
    finally:
        clear_request_id()

    return StoryGenerateResponse(
        data=StoryResponseData(
            story=result.story,
            metadata=StoryMetadata(
                genres=genre_ids,
                length=request.length.value,
                language=result.request.language,
                file_name=request.file_name or "uploaded_image",
                generation_time=result.execution_time_ms,
                parse_tier=result.tier,
            ),
        )
    )
