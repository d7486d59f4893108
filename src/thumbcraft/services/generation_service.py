"""Accepts thumbnail generation requests and hands them to the runner."""

from typing import Awaitable, Callable, Optional

import structlog

from thumbcraft.models.generation_job import GenerationJob
from thumbcraft.services.image_generation.prompt_builder import compose_prompt, validate_request
from thumbcraft.services.rate_limit import RateLimiter
from thumbcraft.uow import UnitOfWork
from thumbcraft.workers.generation_worker import GenerationRunner

logger = structlog.get_logger(__name__)


async def submit_generation(
    owner_id: str,
    fields: dict,
    uow_factory: Callable[[], Awaitable[UnitOfWork]],
    rate_limiter: RateLimiter,
    runner: Optional[GenerationRunner],
) -> GenerationJob:
    """Validate a request, persist the job as `generating`, and schedule it.

    The job is committed in `generating` before the background task starts,
    so a client polling right after the 202 never sees it earlier in its
    lifecycle.

    Args:
        owner_id: Authenticated caller
        fields: Raw request fields (title, style, color_scheme, aspect_ratio,
            user_prompt, text_overlay)
        uow_factory: UnitOfWork factory
        rate_limiter: Per-owner limiter; checked before the body is validated
        runner: Background runner (None only in tests that drive jobs manually)

    Returns:
        The persisted job

    Raises:
        RateLimitExceeded: Owner is over the limit; no job is created
        ValidationError: Fields are missing or invalid; no job is created
    """
    await rate_limiter.check(owner_id)
    request = validate_request(
        title=fields.get("title"),
        style=fields.get("style"),
        color_scheme=fields.get("color_scheme"),
        aspect_ratio=fields.get("aspect_ratio"),
        user_prompt=fields.get("user_prompt"),
        text_overlay=fields.get("text_overlay"),
    )

    job = GenerationJob(
        owner_id=owner_id,
        title=request.title,
        style=request.style,
        color_scheme=request.color_scheme,
        aspect_ratio=request.aspect_ratio,
        user_prompt=request.user_prompt,
        text_overlay=request.text_overlay,
        composed_prompt=compose_prompt(request),
    )

    async with await uow_factory() as uow:
        await uow.generation_jobs.add(job)
        job.mark_generating()
        await uow.generation_jobs.save(job)

    logger.info(
        "job.submitted",
        job_id=str(job.id),
        owner_id=owner_id,
        style=job.style.value,
        aspect_ratio=job.aspect_ratio.value,
    )

    if runner is not None:
        runner.submit(job.id)
    return job
