"""Background workers for async processing tasks."""

from thumbcraft.workers.generation_worker import GenerationRunner, recover_orphaned_jobs

__all__ = [
    "GenerationRunner",
    "recover_orphaned_jobs",
]
