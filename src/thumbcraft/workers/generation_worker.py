"""Background execution of generation jobs.

Each accepted job runs as its own asyncio task so the HTTP request returns
immediately. The orchestrator owns the terminal transition; the runner only
tracks tasks, logs crashes, and cancels what is still running at shutdown.
"""

import asyncio
from typing import Awaitable, Callable
from uuid import UUID

import structlog

from thumbcraft.services.image_generation.orchestrator import GenerationOrchestrator
from thumbcraft.uow import UnitOfWork

logger = structlog.get_logger(__name__)

ORPHANED_JOB_MESSAGE = "Generation was interrupted by a server restart"


class GenerationRunner:
    """Schedules one orchestrator run per job and tracks in-flight tasks."""

    def __init__(self, orchestrator: GenerationOrchestrator):
        self.orchestrator = orchestrator
        self._tasks: dict[UUID, asyncio.Task] = {}

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    def submit(self, job_id: UUID) -> asyncio.Task:
        """Start processing a job in the background.

        Args:
            job_id: Job already committed in `generating` state

        Returns:
            The scheduled task
        """
        task = asyncio.create_task(self.orchestrator.run(job_id), name=f"generation-{job_id}")
        self._tasks[job_id] = task

        def on_done(done: asyncio.Task) -> None:
            self._tasks.pop(job_id, None)
            if done.cancelled():
                logger.info("worker.job_cancelled", job_id=str(job_id))
                return
            exc = done.exception()
            if exc:
                logger.error(
                    "worker.job_crashed",
                    job_id=str(job_id),
                    error=str(exc),
                    error_type=type(exc).__name__,
                    exc_info=exc,
                )

        task.add_done_callback(on_done)
        logger.debug("worker.job_scheduled", job_id=str(job_id), in_flight=len(self._tasks))
        return task

    async def drain(self) -> None:
        """Wait for every in-flight job to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks.values()), return_exceptions=True)

    async def shutdown(self) -> None:
        """Cancel in-flight jobs and wait for their terminal writes."""
        tasks = list(self._tasks.values())
        if not tasks:
            return
        logger.info("worker.shutdown", in_flight=len(tasks))
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)


async def recover_orphaned_jobs(uow_factory: Callable[[], Awaitable[UnitOfWork]]) -> int:
    """Fail jobs left pending/generating by a previous process.

    Must run before the runner accepts new work, otherwise live jobs would be
    marked as interrupted.

    Returns:
        Number of jobs marked failed/interrupted
    """
    async with await uow_factory() as uow:
        recovered = await uow.generation_jobs.fail_orphaned(ORPHANED_JOB_MESSAGE)

    if recovered:
        logger.warning("recovery.orphaned_jobs_failed", count=recovered)
    else:
        logger.debug("recovery.no_orphaned_jobs")
    return recovered
