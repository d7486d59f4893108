"""create_generation_jobs

Revision ID: 3f1c9a2d7b60
Revises:
Create Date: 2025-11-03 10:12:41.208311

"""

from typing import Sequence, Union

import sqlalchemy as sa
import sqlmodel

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3f1c9a2d7b60"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# SQLModel stores enum member names, not values
JOB_STATUS = sa.Enum("PENDING", "GENERATING", "COMPLETED", "FAILED", name="jobstatus")
FAILURE_KIND = sa.Enum(
    "ALL_PROVIDERS_FAILED", "PUBLISH_FAILED", "INTERRUPTED", "INTERNAL_ERROR", name="failurekind"
)
THUMBNAIL_STYLE = sa.Enum(
    "BOLD_GRAPHIC",
    "TECH_FUTURISTIC",
    "MINIMALIST",
    "PHOTOREALISTIC",
    "ILLUSTRATED",
    name="thumbnailstyle",
)
COLOR_SCHEME = sa.Enum(
    "VIBRANT",
    "SUNSET",
    "FOREST",
    "NEON",
    "PURPLE",
    "MONOCHROME",
    "OCEAN",
    "PASTEL",
    name="colorscheme",
)
ASPECT_RATIO = sa.Enum("WIDESCREEN", "SQUARE", "PORTRAIT", "STANDARD", name="aspectratio")


def upgrade() -> None:
    """Create generation_jobs table."""
    op.create_table(
        "generation_jobs",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("owner_id", sqlmodel.sql.sqltypes.AutoString(length=255), nullable=False),
        sa.Column("title", sqlmodel.sql.sqltypes.AutoString(length=200), nullable=False),
        sa.Column("style", THUMBNAIL_STYLE, nullable=False),
        sa.Column("color_scheme", COLOR_SCHEME, nullable=True),
        sa.Column("aspect_ratio", ASPECT_RATIO, nullable=False),
        sa.Column("user_prompt", sqlmodel.sql.sqltypes.AutoString(length=1000), nullable=True),
        sa.Column("text_overlay", sa.Boolean(), nullable=False),
        sa.Column("composed_prompt", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column("status", JOB_STATUS, nullable=False),
        sa.Column("image_url", sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column("provider", sqlmodel.sql.sqltypes.AutoString(length=50), nullable=True),
        sa.Column("failure_kind", FAILURE_KIND, nullable=True),
        sa.Column("error_message", sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column("error_data", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_generation_jobs_owner_id", "generation_jobs", ["owner_id"])
    op.create_index("ix_generation_jobs_status", "generation_jobs", ["status"])
    op.create_index("ix_generation_jobs_created_at", "generation_jobs", ["created_at"])


def downgrade() -> None:
    """Drop generation_jobs table and its enum types."""
    op.drop_index("ix_generation_jobs_created_at", table_name="generation_jobs")
    op.drop_index("ix_generation_jobs_status", table_name="generation_jobs")
    op.drop_index("ix_generation_jobs_owner_id", table_name="generation_jobs")
    op.drop_table("generation_jobs")

    bind = op.get_bind()
    for enum_type in (JOB_STATUS, FAILURE_KIND, THUMBNAIL_STYLE, COLOR_SCHEME, ASPECT_RATIO):
        enum_type.drop(bind, checkfirst=True)
