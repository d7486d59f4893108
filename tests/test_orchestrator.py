"""Fallback orchestrator tests.

Tests focus on the generation contract:
- Adapters are tried strictly in order; the first success wins
- A hung adapter is cut off by its deadline and the next one is tried
- When every adapter fails, the job fails with one entry per adapter
- Exactly one terminal status is written, even on cancellation
"""

import asyncio
from typing import Optional
from uuid import uuid4

import httpx
import pytest

from thumbcraft.models.generation_job import (
    AspectRatio,
    FailureKind,
    GenerationJob,
    JobStatus,
    ThumbnailStyle,
)
from thumbcraft.services.exceptions import (
    AllProvidersFailed,
    ProviderFailure,
    ProviderFailureKind,
    PublishFailure,
)
from thumbcraft.services.image_generation.base import ProviderImage
from thumbcraft.services.image_generation.http_adapter import (
    ExtractionRule,
    HttpImageAdapter,
    ProviderConfig,
    RequestVariant,
)
from thumbcraft.services.image_generation.orchestrator import GenerationOrchestrator


class StubAdapter:
    """Adapter returning canned bytes, raising, or hanging."""

    def __init__(
        self,
        provider_id: str,
        data: Optional[bytes] = None,
        error: Optional[Exception] = None,
        delay: float = 0.0,
        timeout_seconds: float = 5.0,
    ):
        self.provider_id = provider_id
        self.data = data
        self.error = error
        self.delay = delay
        self.timeout_seconds = timeout_seconds
        self.calls = 0

    async def generate(self, prompt: str, aspect_ratio: AspectRatio) -> ProviderImage:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return ProviderImage(
            data=self.data, provider_id=self.provider_id, content_type="image/png", prompt=prompt
        )


class MemoryPublisher:
    def __init__(self, error: Optional[Exception] = None):
        self.error = error
        self.published: list[bytes] = []

    async def publish(self, data, content_type, job_id) -> str:
        if self.error:
            raise self.error
        self.published.append(data)
        return f"https://assets.test/{job_id}.png"


def failing(provider_id: str) -> StubAdapter:
    return StubAdapter(
        provider_id,
        error=ProviderFailure(provider_id, ProviderFailureKind.HTTP_STATUS, "HTTP 500", 500),
    )


async def create_generating_job(uow_factory) -> GenerationJob:
    async with await uow_factory() as uow:
        job = await uow.generation_jobs.add(
            GenerationJob(
                owner_id="user-1",
                title="Weekly news",
                style=ThumbnailStyle.BOLD_GRAPHIC,
                composed_prompt="a newsroom",
            )
        )
        job.mark_generating()
        await uow.generation_jobs.save(job)
    return job


class TestGenerate:
    @pytest.mark.asyncio
    async def test_first_success_wins(self, png_bytes):
        first = StubAdapter("a1", data=png_bytes)
        second = StubAdapter("a2", data=png_bytes)
        orchestrator = GenerationOrchestrator([first, second], MemoryPublisher(), None)

        image = await orchestrator.generate("prompt", AspectRatio.WIDESCREEN)

        assert image.provider_id == "a1"
        assert first.calls == 1
        assert second.calls == 0

    @pytest.mark.asyncio
    async def test_falls_back_after_failure(self, png_bytes):
        first = failing("a1")
        second = StubAdapter("a2", data=png_bytes)
        orchestrator = GenerationOrchestrator([first, second], MemoryPublisher(), None)

        image = await orchestrator.generate("prompt", AspectRatio.WIDESCREEN)

        assert image.provider_id == "a2"
        assert first.calls == 1

    @pytest.mark.asyncio
    async def test_hung_adapter_times_out(self, png_bytes):
        slow = StubAdapter("slow", data=png_bytes, delay=10, timeout_seconds=0.05)
        fast = StubAdapter("fast", data=png_bytes)
        orchestrator = GenerationOrchestrator([slow, fast], MemoryPublisher(), None)

        image = await orchestrator.generate("prompt", AspectRatio.WIDESCREEN)

        assert image.provider_id == "fast"

    @pytest.mark.asyncio
    async def test_all_fail_lists_every_adapter(self):
        adapters = [failing("a1"), failing("a2"), failing("a3")]
        orchestrator = GenerationOrchestrator(adapters, MemoryPublisher(), None)

        with pytest.raises(AllProvidersFailed) as exc_info:
            await orchestrator.generate("prompt", AspectRatio.WIDESCREEN)

        assert exc_info.value.provider_ids == ["a1", "a2", "a3"]
        for provider_id in ("a1", "a2", "a3"):
            assert provider_id in str(exc_info.value)
        assert all(a.calls == 1 for a in adapters)

    @pytest.mark.asyncio
    async def test_unexpected_adapter_exception_is_normalized(self, png_bytes):
        broken = StubAdapter("broken", error=KeyError("data"))
        orchestrator = GenerationOrchestrator([broken], MemoryPublisher(), None)

        with pytest.raises(AllProvidersFailed) as exc_info:
            await orchestrator.generate("prompt", AspectRatio.WIDESCREEN)

        assert exc_info.value.failures[0].kind == ProviderFailureKind.INTERNAL

    @pytest.mark.asyncio
    async def test_empty_chain(self):
        orchestrator = GenerationOrchestrator([], MemoryPublisher(), None)

        with pytest.raises(AllProvidersFailed) as exc_info:
            await orchestrator.generate("prompt", AspectRatio.WIDESCREEN)

        assert exc_info.value.failures == []


class TestRun:
    @pytest.mark.asyncio
    async def test_timeout_then_png_completes_with_second_adapter(self, uow_factory, png_bytes):
        """Adapter 1 hangs past its deadline, adapter 2 returns a 512-byte PNG."""
        job = await create_generating_job(uow_factory)
        slow = StubAdapter("adapter-1", data=png_bytes, delay=10, timeout_seconds=0.05)
        fast = StubAdapter("adapter-2", data=png_bytes)
        publisher = MemoryPublisher()
        orchestrator = GenerationOrchestrator([slow, fast], publisher, uow_factory)

        result = await orchestrator.run(job.id)

        assert result.status == JobStatus.COMPLETED
        assert result.provider == "adapter-2"
        assert result.image_url == f"https://assets.test/{job.id}.png"
        assert publisher.published == [png_bytes]

        async with await uow_factory() as uow:
            stored = await uow.generation_jobs.get_by_id(job.id)
        assert stored.status == JobStatus.COMPLETED
        assert stored.provider == "adapter-2"
        assert stored.completed_at is not None

    @pytest.mark.asyncio
    async def test_two_http_500_providers_fail_the_job(self, uow_factory):
        """Both adapters answer HTTP 500: failed, both ids named in the message."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, text="internal error")

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        adapters = [
            HttpImageAdapter(
                ProviderConfig(
                    provider_id=provider_id,
                    label=provider_id,
                    variants=(RequestVariant(url=f"https://{provider_id}.test/generate"),),
                    dimensions={ratio: (1024, 576) for ratio in AspectRatio},
                    extraction_rules=(ExtractionRule("url"),),
                ),
                api_key="key",
                client=client,
            )
            for provider_id in ("first", "second")
        ]
        job = await create_generating_job(uow_factory)
        orchestrator = GenerationOrchestrator(adapters, MemoryPublisher(), uow_factory)

        result = await orchestrator.run(job.id)

        assert result.status == JobStatus.FAILED
        assert result.failure_kind == FailureKind.ALL_PROVIDERS_FAILED
        assert result.image_url is None
        assert "first" in result.error_message
        assert "second" in result.error_message
        assert [f["provider"] for f in result.error_data] == ["first", "second"]
        assert all(f["http_status"] == 500 for f in result.error_data)

    @pytest.mark.asyncio
    async def test_prompt_rewritten_by_adapter_is_stored(self, uow_factory, png_bytes):
        class EnhancingAdapter(StubAdapter):
            async def generate(self, prompt, aspect_ratio):
                return await super().generate(prompt + ", masterpiece", aspect_ratio)

        job = await create_generating_job(uow_factory)
        orchestrator = GenerationOrchestrator(
            [EnhancingAdapter("enh", data=png_bytes)], MemoryPublisher(), uow_factory
        )

        result = await orchestrator.run(job.id)

        assert result.composed_prompt == "a newsroom, masterpiece"

    @pytest.mark.asyncio
    async def test_publish_failure_is_distinct(self, uow_factory, png_bytes):
        job = await create_generating_job(uow_factory)
        orchestrator = GenerationOrchestrator(
            [StubAdapter("a1", data=png_bytes)],
            MemoryPublisher(error=PublishFailure("Pinata returned 401")),
            uow_factory,
        )

        result = await orchestrator.run(job.id)

        assert result.status == JobStatus.FAILED
        assert result.failure_kind == FailureKind.PUBLISH_FAILED
        assert "Pinata returned 401" in result.error_message
        assert result.error_data == [
            {"stage": "publish", "reason": "Pinata returned 401", "retryable": False}
        ]

    @pytest.mark.asyncio
    async def test_retryable_publish_failure_is_recorded(self, uow_factory, png_bytes):
        job = await create_generating_job(uow_factory)
        orchestrator = GenerationOrchestrator(
            [StubAdapter("a1", data=png_bytes)],
            MemoryPublisher(error=PublishFailure("Service unavailable (503)", retryable=True)),
            uow_factory,
        )

        result = await orchestrator.run(job.id)

        assert result.failure_kind == FailureKind.PUBLISH_FAILED
        assert result.error_data[0]["retryable"] is True

    @pytest.mark.asyncio
    async def test_unexpected_error_is_internal(self, uow_factory, png_bytes):
        job = await create_generating_job(uow_factory)
        orchestrator = GenerationOrchestrator(
            [StubAdapter("a1", data=png_bytes)],
            MemoryPublisher(error=RuntimeError("disk on fire")),
            uow_factory,
        )

        result = await orchestrator.run(job.id)

        assert result.status == JobStatus.FAILED
        assert result.failure_kind == FailureKind.INTERNAL_ERROR

    @pytest.mark.asyncio
    async def test_cancellation_still_writes_terminal_status(self, uow_factory, png_bytes):
        job = await create_generating_job(uow_factory)
        hanging = StubAdapter("hang", data=png_bytes, delay=30, timeout_seconds=60)
        orchestrator = GenerationOrchestrator([hanging], MemoryPublisher(), uow_factory)

        task = asyncio.create_task(orchestrator.run(job.id))
        await asyncio.sleep(0.05)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        async with await uow_factory() as uow:
            stored = await uow.generation_jobs.get_by_id(job.id)
        assert stored.status == JobStatus.FAILED
        assert stored.failure_kind == FailureKind.INTERRUPTED

    @pytest.mark.asyncio
    async def test_job_deleted_mid_flight_is_discarded(self, uow_factory, png_bytes):
        job = await create_generating_job(uow_factory)

        class DeletingAdapter(StubAdapter):
            async def generate(self, prompt, aspect_ratio):
                async with await uow_factory() as uow:
                    await uow.generation_jobs.delete_for_owner(job.id, "user-1")
                return await super().generate(prompt, aspect_ratio)

        orchestrator = GenerationOrchestrator(
            [DeletingAdapter("a1", data=png_bytes)], MemoryPublisher(), uow_factory
        )

        assert await orchestrator.run(job.id) is None

    @pytest.mark.asyncio
    async def test_missing_job_raises(self, uow_factory):
        orchestrator = GenerationOrchestrator([], MemoryPublisher(), uow_factory)

        with pytest.raises(LookupError):
            await orchestrator.run(uuid4())
