"""Fallback orchestrator for thumbnail generation jobs.

Tries provider adapters strictly in priority order until one produces an image,
publishes the bytes, and commits exactly one terminal job status.

Job lifecycle handled here:

    generating → completed   (an adapter succeeded and the asset was published)
    generating → failed      (all adapters failed, publish failed, internal error,
                              or the task was cancelled)

The terminal transition is written from a `finally` block, so a job is never
left in `generating` unless the process itself dies. Those leftovers are
cleaned up at startup by `recover_orphaned_jobs`.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Sequence
from uuid import UUID

import structlog

from thumbcraft.models.generation_job import AspectRatio, FailureKind, GenerationJob, JobStatus
from thumbcraft.services.assets.base import AssetPublisher
from thumbcraft.services.exceptions import (
    AllProvidersFailed,
    ProviderFailure,
    ProviderFailureKind,
    PublishFailure,
)
from thumbcraft.services.image_generation.base import ProviderAdapter, ProviderImage
from thumbcraft.uow import UnitOfWork

logger = structlog.get_logger(__name__)


@dataclass
class _Outcome:
    """Terminal result computed by `run`, committed in its finally block."""

    status: JobStatus
    image_url: Optional[str] = None
    provider: Optional[str] = None
    prompt: Optional[str] = None
    failure_kind: Optional[FailureKind] = None
    message: Optional[str] = None
    failures: Optional[list[dict]] = None


class GenerationOrchestrator:
    """Sequences provider adapters with fallback-on-failure semantics."""

    def __init__(
        self,
        adapters: Sequence[ProviderAdapter],
        publisher: AssetPublisher,
        uow_factory: Callable[[], Awaitable[UnitOfWork]],
    ):
        """Initialize orchestrator.

        Args:
            adapters: Provider adapters in priority order (highest first)
            publisher: Asset store receiving the winning image bytes
            uow_factory: Factory producing UnitOfWork instances for job updates
        """
        self.adapters = list(adapters)
        self.publisher = publisher
        self.uow_factory = uow_factory

    async def generate(self, prompt: str, aspect_ratio: AspectRatio) -> ProviderImage:
        """Try each adapter once, in order, until one returns an image.

        Each attempt is bounded by the adapter's own deadline; a hung provider
        counts as a timeout failure and the next adapter is tried.

        Raises:
            AllProvidersFailed: With one failure entry per adapter tried
        """
        failures: list[ProviderFailure] = []

        for adapter in self.adapters:
            start = time.monotonic()
            try:
                image = await asyncio.wait_for(
                    adapter.generate(prompt, aspect_ratio), timeout=adapter.timeout_seconds
                )
            except asyncio.TimeoutError:
                failure = ProviderFailure(
                    adapter.provider_id,
                    ProviderFailureKind.TIMEOUT,
                    f"No response within {adapter.timeout_seconds}s",
                )
            except ProviderFailure as e:
                failure = e
            except Exception as e:
                # Adapter bug rather than a provider response
                logger.error(
                    "provider.adapter_error",
                    provider=adapter.provider_id,
                    error_type=type(e).__name__,
                    exc_info=True,
                )
                failure = ProviderFailure(
                    adapter.provider_id,
                    ProviderFailureKind.INTERNAL,
                    f"Unexpected {type(e).__name__}: {e}",
                )
            else:
                logger.info(
                    "provider.succeeded",
                    provider=adapter.provider_id,
                    bytes=len(image.data),
                    duration_seconds=round(time.monotonic() - start, 3),
                    previous_failures=len(failures),
                )
                return image

            failures.append(failure)
            logger.warning(
                "provider.failed",
                provider=failure.provider_id,
                kind=failure.kind.value,
                http_status=failure.http_status,
                reason=failure.reason,
                duration_seconds=round(time.monotonic() - start, 3),
            )

        raise AllProvidersFailed(failures)

    async def run(self, job_id: UUID) -> Optional[GenerationJob]:
        """Process one job from `generating` to a terminal status.

        Args:
            job_id: Job already persisted in `generating` state

        Returns:
            The job in its terminal state, or None if the owner deleted it
            while it was generating

        Raises:
            LookupError: If the job does not exist
        """
        async with await self.uow_factory() as uow:
            job = await uow.generation_jobs.get_by_id(job_id)
            if job is None:
                raise LookupError(f"Generation job {job_id} not found")
            prompt = job.composed_prompt
            aspect_ratio = job.aspect_ratio

        start = time.monotonic()
        log = logger.bind(job_id=str(job_id))
        log.info("job.generation.started", providers=[a.provider_id for a in self.adapters])

        outcome: Optional[_Outcome] = None
        try:
            image = await self.generate(prompt, aspect_ratio)
            image_url = await self.publisher.publish(image.data, image.content_type, job_id)
            if not image_url:
                raise PublishFailure("Asset store returned an empty URL")
            outcome = _Outcome(
                status=JobStatus.COMPLETED,
                image_url=image_url,
                provider=image.provider_id,
                prompt=image.prompt,
            )

        except AllProvidersFailed as e:
            outcome = _Outcome(
                status=JobStatus.FAILED,
                failure_kind=FailureKind.ALL_PROVIDERS_FAILED,
                message=str(e),
                failures=[f.to_dict() for f in e.failures],
            )

        except PublishFailure as e:
            outcome = _Outcome(
                status=JobStatus.FAILED,
                failure_kind=FailureKind.PUBLISH_FAILED,
                message=f"Image was generated but could not be stored: {e}",
                failures=[e.to_dict()],
            )

        except Exception as e:
            log.error(
                "job.generation.internal_error",
                error_type=type(e).__name__,
                error_message=str(e),
                exc_info=True,
            )
            outcome = _Outcome(
                status=JobStatus.FAILED,
                failure_kind=FailureKind.INTERNAL_ERROR,
                message=f"Internal error: {e}",
            )

        finally:
            if outcome is None:
                # Cancelled (shutdown) before a result was computed
                outcome = _Outcome(
                    status=JobStatus.FAILED,
                    failure_kind=FailureKind.INTERRUPTED,
                    message="Generation was interrupted before completion",
                )
            job = await self._finalize(job_id, outcome)

        if job is None:
            log.warning("job.generation.discarded", reason="job_deleted")
            return None

        duration = round(time.monotonic() - start, 3)
        if job.status == JobStatus.COMPLETED:
            log.info(
                "job.generation.completed",
                provider=job.provider,
                image_url=job.image_url,
                duration_seconds=duration,
            )
        else:
            log.warning(
                "job.generation.failed",
                failure_kind=job.failure_kind.value if job.failure_kind else None,
                error_message=job.error_message,
                duration_seconds=duration,
            )
        return job

    async def _finalize(self, job_id: UUID, outcome: _Outcome) -> Optional[GenerationJob]:
        """Commit the single terminal transition for a job."""
        async with await self.uow_factory() as uow:
            job = await uow.generation_jobs.get_by_id(job_id)
            if job is None:
                return None

            if outcome.status == JobStatus.COMPLETED:
                job.mark_completed(
                    image_url=outcome.image_url or "",
                    provider=outcome.provider or "",
                    composed_prompt=outcome.prompt,
                )
            else:
                job.mark_failed(
                    kind=outcome.failure_kind or FailureKind.INTERNAL_ERROR,
                    message=outcome.message or "Generation failed",
                    failures=outcome.failures,
                )
            await uow.generation_jobs.save(job)
            return job
