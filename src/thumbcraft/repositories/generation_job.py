"""GenerationJob repository (the job store).

Owner-scoped lookups fail closed: a job owned by someone else is reported
exactly like a job that does not exist.
"""

from typing import Any
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from thumbcraft.models.generation_job import FailureKind, GenerationJob, JobStatus

# Fields the orchestrator may change after creation
UPDATABLE_FIELDS = frozenset(
    {
        "status",
        "composed_prompt",
        "image_url",
        "provider",
        "failure_kind",
        "error_message",
        "error_data",
        "completed_at",
    }
)


class GenerationJobRepository:
    """Repository for GenerationJob entities."""

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session.

        Args:
            session: SQLAlchemy async session for database operations
        """
        self.session = session

    async def add(self, job: GenerationJob) -> GenerationJob:
        """Persist new generation job.

        Args:
            job: GenerationJob entity to persist

        Returns:
            Persisted job
        """
        self.session.add(job)
        await self.session.flush()
        return job

    async def save(self, job: GenerationJob) -> GenerationJob:
        """Flush changes made to an attached job (e.g. a state transition)."""
        self.session.add(job)
        await self.session.flush()
        await self.session.refresh(job)
        return job

    async def get_by_id(self, job_id: UUID) -> GenerationJob | None:
        """Retrieve a job by id regardless of owner (internal use only).

        Args:
            job_id: Job's unique identifier

        Returns:
            GenerationJob if found, None otherwise
        """
        result = await self.session.execute(
            select(GenerationJob).where(GenerationJob.id == job_id)  # type: ignore[arg-type]
        )
        return result.scalar_one_or_none()

    async def update(self, job_id: UUID, **fields: Any) -> GenerationJob | None:
        """Apply a partial update to a job.

        Args:
            job_id: Job's unique identifier
            **fields: Result/status fields to set

        Returns:
            Updated job, or None if it does not exist

        Raises:
            ValueError: If a request parameter or identity field is passed
        """
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields cannot be updated: {sorted(unknown)}")

        job = await self.get_by_id(job_id)
        if job is None:
            return None
        for name, value in fields.items():
            setattr(job, name, value)
        return await self.save(job)

    async def get_for_owner(self, job_id: UUID, owner_id: str) -> GenerationJob | None:
        """Retrieve a job only if it belongs to the owner.

        Args:
            job_id: Job's unique identifier
            owner_id: Caller's user id

        Returns:
            GenerationJob if found and owned, None otherwise
        """
        result = await self.session.execute(
            select(GenerationJob).where(
                GenerationJob.id == job_id,  # type: ignore[arg-type]
                GenerationJob.owner_id == owner_id,  # type: ignore[arg-type]
            )
        )
        return result.scalar_one_or_none()

    async def list_by_owner(self, owner_id: str) -> list[GenerationJob]:
        """Retrieve all jobs for an owner, newest first.

        Args:
            owner_id: Caller's user id

        Returns:
            List of jobs ordered by creation time (newest first)
        """
        result = await self.session.execute(
            select(GenerationJob)
            .where(GenerationJob.owner_id == owner_id)  # type: ignore[arg-type]
            .order_by(
                GenerationJob.created_at.desc(),  # type: ignore[attr-defined]
                GenerationJob.id.desc(),  # type: ignore[attr-defined]
            )
        )
        return list(result.scalars().all())

    async def delete_for_owner(self, job_id: UUID, owner_id: str) -> bool:
        """Delete a job owned by the caller (idempotent per id).

        Args:
            job_id: Job's unique identifier
            owner_id: Caller's user id

        Returns:
            True if a job was deleted, False if none matched
        """
        result = await self.session.execute(
            delete(GenerationJob).where(
                GenerationJob.id == job_id,  # type: ignore[arg-type]
                GenerationJob.owner_id == owner_id,  # type: ignore[arg-type]
            )
        )
        await self.session.flush()
        return result.rowcount > 0  # type: ignore[attr-defined]

    async def list_unfinished(self) -> list[GenerationJob]:
        """Retrieve every job still in pending/generating, oldest first."""
        result = await self.session.execute(
            select(GenerationJob)
            .where(
                GenerationJob.status.in_([JobStatus.PENDING, JobStatus.GENERATING])  # type: ignore[attr-defined]
            )
            .order_by(GenerationJob.created_at.asc())  # type: ignore[attr-defined]
        )
        return list(result.scalars().all())

    async def fail_orphaned(self, message: str) -> int:
        """Mark jobs stuck in pending/generating as failed (startup recovery).

        Args:
            message: Reason stored on each recovered job

        Returns:
            Number of jobs recovered
        """
        jobs = await self.list_unfinished()
        for job in jobs:
            job.mark_failed(FailureKind.INTERRUPTED, message)
            self.session.add(job)
        await self.session.flush()
        return len(jobs)
