"""GenerationJob entity - one thumbnail request with lifecycle status tracking."""

from datetime import UTC, datetime
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import JSON, Column, DateTime
from sqlmodel import Field, SQLModel


class JobStatus(str, Enum):
    """Generation job lifecycle status."""

    PENDING = "pending"
    GENERATING = "generating"
    COMPLETED = "completed"
    FAILED = "failed"


class FailureKind(str, Enum):
    """Why a job ended in the failed state."""

    ALL_PROVIDERS_FAILED = "all_providers_failed"
    PUBLISH_FAILED = "publish_failed"
    INTERRUPTED = "interrupted"
    INTERNAL_ERROR = "internal_error"


class ThumbnailStyle(str, Enum):
    BOLD_GRAPHIC = "Bold & Graphic"
    TECH_FUTURISTIC = "Tech/Futuristic"
    MINIMALIST = "Minimalist"
    PHOTOREALISTIC = "Photorealistic"
    ILLUSTRATED = "Illustrated"


class ColorScheme(str, Enum):
    VIBRANT = "vibrant"
    SUNSET = "sunset"
    FOREST = "forest"
    NEON = "neon"
    PURPLE = "purple"
    MONOCHROME = "monochrome"
    OCEAN = "ocean"
    PASTEL = "pastel"


class AspectRatio(str, Enum):
    WIDESCREEN = "16:9"
    SQUARE = "1:1"
    PORTRAIT = "9:16"
    STANDARD = "4:3"


TERMINAL_STATUSES = (JobStatus.COMPLETED, JobStatus.FAILED)


def utc_now() -> datetime:
    return datetime.now(UTC)


class InvalidStateTransition(Exception):
    """Raised when attempting an invalid job state transition."""

    pass


class GenerationJob(SQLModel, table=True):
    """GenerationJob is one owner-initiated request for a thumbnail image."""

    __tablename__ = "generation_jobs"  # type: ignore[assignment]

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    owner_id: str = Field(max_length=255, index=True)

    # Request parameters
    title: str = Field(max_length=200)
    style: ThumbnailStyle
    color_scheme: Optional[ColorScheme] = Field(default=None)
    aspect_ratio: AspectRatio = Field(default=AspectRatio.WIDESCREEN)
    user_prompt: Optional[str] = Field(default=None, max_length=1000)
    text_overlay: bool = Field(default=False)

    # Prompt actually sent to the provider (rewritten on prompt enhancement)
    composed_prompt: str = Field(default="")

    status: JobStatus = Field(default=JobStatus.PENDING, index=True)
    image_url: Optional[str] = Field(default=None)
    provider: Optional[str] = Field(default=None, max_length=50)

    failure_kind: Optional[FailureKind] = Field(default=None)
    error_message: Optional[str] = Field(default=None)
    error_data: Optional[list] = Field(default=None, sa_column=Column(JSON))

    created_at: datetime = Field(
        default_factory=utc_now, sa_type=DateTime(timezone=True), index=True
    )
    completed_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def mark_generating(self) -> None:
        """Transition from pending to generating.

        Raises:
            InvalidStateTransition: If current status is not pending
        """
        if self.status != JobStatus.PENDING:
            raise InvalidStateTransition(
                f"Cannot mark generating from {self.status.value}. Job must be in pending state."
            )
        self.status = JobStatus.GENERATING

    def mark_completed(
        self, image_url: str, provider: str, composed_prompt: Optional[str] = None
    ) -> None:
        """Transition from generating to completed.

        Args:
            image_url: Public URL of the published asset
            provider: Id of the adapter that produced the image
            composed_prompt: Prompt actually sent, when the adapter enhanced it

        Raises:
            InvalidStateTransition: If current status is not generating
            ValueError: If image_url or provider is empty
        """
        if self.status != JobStatus.GENERATING:
            raise InvalidStateTransition(
                f"Cannot mark completed from {self.status.value}. "
                "Job must be in generating state."
            )
        if not image_url:
            raise ValueError("image_url is required")
        if not provider:
            raise ValueError("provider is required")

        self.image_url = image_url
        self.provider = provider
        if composed_prompt:
            self.composed_prompt = composed_prompt
        self.status = JobStatus.COMPLETED
        self.completed_at = utc_now()

    def mark_failed(
        self, kind: FailureKind, message: str, failures: Optional[list[dict]] = None
    ) -> None:
        """Transition from any non-terminal state to failed.

        Args:
            kind: Failure category (generation vs publish vs interruption)
            message: Human-readable reason shown to the owner
            failures: Per-adapter failure details

        Raises:
            InvalidStateTransition: If current status is already terminal
        """
        if self.is_terminal:
            raise InvalidStateTransition(
                f"Cannot mark failed from terminal state {self.status.value}."
            )
        self.failure_kind = kind
        self.error_message = message
        self.error_data = failures
        self.image_url = None
        self.status = JobStatus.FAILED
        self.completed_at = utc_now()
