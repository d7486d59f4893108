"""Filesystem asset publisher served by the app's static route."""

import asyncio
import hashlib
from pathlib import Path
from uuid import UUID

import structlog

from thumbcraft.services.exceptions import PublishFailure
from thumbcraft.services.image_generation.base import CONTENT_TYPE_EXTENSIONS

logger = structlog.get_logger(__name__)


class LocalAssetPublisher:
    """Writes images to a directory under a content-addressed filename."""

    def __init__(self, directory: str | Path, base_url: str):
        self.directory = Path(directory)
        self.base_url = base_url.rstrip("/")

    def _write(self, path: Path, data: bytes) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        if not path.exists():
            tmp = path.with_suffix(path.suffix + ".tmp")
            tmp.write_bytes(data)
            tmp.replace(path)

    async def publish(self, data: bytes, content_type: str, job_id: UUID) -> str:
        """Store bytes as `<sha256>.<ext>` and return its public URL.

        Raises:
            PublishFailure: If the file cannot be written
        """
        extension = CONTENT_TYPE_EXTENSIONS.get(content_type, "png")
        filename = f"{hashlib.sha256(data).hexdigest()}.{extension}"
        path = self.directory / filename

        try:
            await asyncio.to_thread(self._write, path, data)
        except OSError as e:
            raise PublishFailure(f"Could not write asset {filename}: {e}")

        logger.info("asset.published", store="local", job_id=str(job_id), filename=filename)
        return f"{self.base_url}/{filename}"
