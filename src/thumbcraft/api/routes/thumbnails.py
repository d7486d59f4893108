"""Thumbnail generation API endpoints.

This module implements REST endpoints for thumbnail generation:
- POST /api/thumbnails/generate - Accept a generation request (202, runs in background)
- GET /api/thumbnails/generations - List the caller's jobs, newest first
- GET /api/thumbnails/generations/{job_id} - Poll one job
- DELETE /api/thumbnails/generations/{job_id} - Delete one of the caller's jobs
- GET /api/thumbnails/options - Styles, color schemes and aspect ratios
- GET /api/thumbnails/providers - Configured provider chain in priority order

Every endpoint except /options requires the X-User-Id header. Jobs owned by
someone else are reported as not found.
"""

from datetime import UTC, datetime
from typing import Optional
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field, field_validator

from thumbcraft.api.dependencies import (
    get_owner_id,
    get_rate_limiter,
    get_runner,
    get_settings,
    get_uow_factory,
)
from thumbcraft.models.generation_job import (
    AspectRatio,
    ColorScheme,
    GenerationJob,
    ThumbnailStyle,
)
from thumbcraft.services.exceptions import RateLimitExceeded, ValidationError
from thumbcraft.services.generation_service import submit_generation
from thumbcraft.services.image_generation.provider_table import describe_chain

logger = structlog.get_logger()
router = APIRouter(prefix="/api/thumbnails", tags=["thumbnails"])


# Request/Response Models


class GenerateRequest(BaseModel):
    """Request model for a thumbnail generation.

    Enum fields stay plain strings here; they are checked by the service so
    unknown values produce a single consistent 400 message. The free-text
    addendum arrives as `prompt` on the wire.
    """

    model_config = ConfigDict(populate_by_name=True)

    title: Optional[str] = Field(default=None, description="Video title the thumbnail is for")
    style: Optional[str] = Field(default=None, description="One of the thumbnail styles")
    color_scheme: Optional[str] = Field(default=None, description="Optional color scheme")
    aspect_ratio: Optional[str] = Field(default=None, description="Defaults to 16:9")
    user_prompt: Optional[str] = Field(
        default=None, alias="prompt", description="Extra details for the image"
    )
    text_overlay: bool = Field(default=False, description="Render the title as a headline")


class GenerationJobDTO(BaseModel):
    """Data Transfer Object for generation jobs in API responses."""

    id: UUID
    title: str
    style: str
    color_scheme: Optional[str] = None
    aspect_ratio: str
    user_prompt: Optional[str] = None
    text_overlay: bool
    prompt: str = Field(..., description="Prompt actually sent to the winning provider")
    status: str = Field(..., description="pending, generating, completed or failed")
    image_url: Optional[str] = None
    provider: Optional[str] = None
    failure_kind: Optional[str] = None
    error_message: Optional[str] = None
    created_at: datetime
    completed_at: Optional[datetime] = None

    @field_validator("created_at", "completed_at")
    @classmethod
    def _assume_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        # SQLite hands timestamps back without an offset
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value

    @classmethod
    def from_job(cls, job: GenerationJob) -> "GenerationJobDTO":
        return cls(
            id=job.id,
            title=job.title,
            style=job.style.value,
            color_scheme=job.color_scheme.value if job.color_scheme else None,
            aspect_ratio=job.aspect_ratio.value,
            user_prompt=job.user_prompt,
            text_overlay=job.text_overlay,
            prompt=job.composed_prompt,
            status=job.status.value,
            image_url=job.image_url,
            provider=job.provider,
            failure_kind=job.failure_kind.value if job.failure_kind else None,
            error_message=job.error_message,
            created_at=job.created_at,
            completed_at=job.completed_at,
        )


class GenerateResponse(BaseModel):
    message: str
    thumbnail: GenerationJobDTO


class GenerationListResponse(BaseModel):
    thumbnails: list[GenerationJobDTO]
    count: int


class DeleteResponse(BaseModel):
    deleted: bool


class OptionsResponse(BaseModel):
    styles: list[str]
    color_schemes: list[str]
    aspect_ratios: list[str]


class ProviderDTO(BaseModel):
    id: str
    label: str
    priority: int
    requires_credential: bool
    configured: bool


class ProvidersResponse(BaseModel):
    providers: list[ProviderDTO]


# API Endpoints


@router.post(
    "/generate",
    response_model=GenerateResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def generate_thumbnail(
    request: GenerateRequest,
    owner_id: str = Depends(get_owner_id),
    uow_factory=Depends(get_uow_factory),
    rate_limiter=Depends(get_rate_limiter),
    runner=Depends(get_runner),
):
    """Accept a thumbnail generation request.

    The job is returned in `generating` state; poll
    GET /generations/{id} until it is `completed` or `failed`.

    Returns:
        202 with the created job

    Raises:
        HTTPException 400: Missing title/style or unknown enum value
        429: Rate limit exceeded (body carries resetTime)
    """
    try:
        job = await submit_generation(
            owner_id=owner_id,
            fields=request.model_dump(),
            uow_factory=uow_factory,
            rate_limiter=rate_limiter,
            runner=runner,
        )
    except RateLimitExceeded as e:
        return JSONResponse(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            content={
                "detail": "Too many generation requests. Please try again later.",
                "limit": e.limit,
                "resetTime": e.reset_time.isoformat(),
            },
        )
    except ValidationError as e:
        logger.info("thumbnail.request_invalid", owner_id=owner_id, error=str(e))
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return GenerateResponse(
        message="Thumbnail generation started",
        thumbnail=GenerationJobDTO.from_job(job),
    )


@router.get("/generations", response_model=GenerationListResponse)
async def list_generations(
    owner_id: str = Depends(get_owner_id),
    uow_factory=Depends(get_uow_factory),
) -> GenerationListResponse:
    """List the caller's jobs, newest first."""
    async with await uow_factory() as uow:
        jobs = await uow.generation_jobs.list_by_owner(owner_id)

    thumbnails = [GenerationJobDTO.from_job(job) for job in jobs]
    return GenerationListResponse(thumbnails=thumbnails, count=len(thumbnails))


@router.get("/generations/{job_id}", response_model=GenerationJobDTO)
async def get_generation(
    job_id: UUID,
    owner_id: str = Depends(get_owner_id),
    uow_factory=Depends(get_uow_factory),
) -> GenerationJobDTO:
    """Get one job owned by the caller.

    Raises:
        HTTPException 404: Job does not exist or belongs to another owner
    """
    async with await uow_factory() as uow:
        job = await uow.generation_jobs.get_for_owner(job_id, owner_id)

    if job is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Thumbnail not found")
    return GenerationJobDTO.from_job(job)


@router.delete("/generations/{job_id}", response_model=DeleteResponse)
async def delete_generation(
    job_id: UUID,
    owner_id: str = Depends(get_owner_id),
    uow_factory=Depends(get_uow_factory),
) -> DeleteResponse:
    """Delete one of the caller's jobs.

    Raises:
        HTTPException 404: Job does not exist or belongs to another owner
    """
    async with await uow_factory() as uow:
        deleted = await uow.generation_jobs.delete_for_owner(job_id, owner_id)

    if not deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Thumbnail not found")

    logger.info("thumbnail.deleted", job_id=str(job_id), owner_id=owner_id)
    return DeleteResponse(deleted=True)


@router.get("/options", response_model=OptionsResponse)
async def get_options() -> OptionsResponse:
    """Return the values accepted by POST /generate."""
    return OptionsResponse(
        styles=[s.value for s in ThumbnailStyle],
        color_schemes=[c.value for c in ColorScheme],
        aspect_ratios=[a.value for a in AspectRatio],
    )


@router.get("/providers", response_model=ProvidersResponse)
async def get_providers(
    owner_id: str = Depends(get_owner_id),
    settings=Depends(get_settings),
) -> ProvidersResponse:
    """Describe the provider chain in the order adapters are tried."""
    return ProvidersResponse(
        providers=[
            ProviderDTO(
                id=d.provider_id,
                label=d.label,
                priority=d.priority,
                requires_credential=d.requires_credential,
                configured=d.configured,
            )
            for d in describe_chain(settings)
        ]
    )
