"""SQLModel database entities.

All models are imported here to ensure they're registered with SQLModel metadata
for Alembic autogenerate support.
"""

from thumbcraft.models.generation_job import (
    AspectRatio,
    ColorScheme,
    FailureKind,
    GenerationJob,
    InvalidStateTransition,
    JobStatus,
    ThumbnailStyle,
)

__all__ = [
    "GenerationJob",
    "JobStatus",
    "FailureKind",
    "ThumbnailStyle",
    "ColorScheme",
    "AspectRatio",
    "InvalidStateTransition",
]
