"""Asset store contract: turns finished image bytes into a durable URL."""

from typing import Optional, Protocol
from uuid import UUID

import httpx

from thumbcraft.core.config import Settings


class AssetPublisher(Protocol):
    """Stores image bytes and returns the URL clients should display."""

    async def publish(self, data: bytes, content_type: str, job_id: UUID) -> str: ...


def build_publisher(settings: Settings, client: Optional[httpx.AsyncClient] = None) -> AssetPublisher:
    """Create the asset publisher selected by ASSET_PUBLISHER.

    Args:
        settings: Application settings
        client: Shared HTTP client for remote stores

    Raises:
        ValueError: If the publisher name is unknown
    """
    if settings.asset_publisher == "pinata":
        from thumbcraft.services.assets.pinata_publisher import PinataPublisher

        return PinataPublisher(
            jwt_token=settings.pinata_jwt,
            gateway_domain=settings.pinata_gateway,
            client=client,
        )

    if settings.asset_publisher == "local":
        from thumbcraft.services.assets.local_publisher import LocalAssetPublisher

        return LocalAssetPublisher(directory=settings.asset_dir, base_url=settings.asset_base_url)

    raise ValueError(f"Unknown asset publisher: {settings.asset_publisher!r}")
