"""Pinata IPFS publisher for generated thumbnails."""

import json
from typing import Optional
from uuid import UUID

import httpx
import structlog

from thumbcraft.services.exceptions import PublishFailure
from thumbcraft.services.image_generation.base import CONTENT_TYPE_EXTENSIONS

logger = structlog.get_logger(__name__)


class PinataPublisher:
    """Asset publisher using the Pinata pinning service."""

    def __init__(
        self,
        jwt_token: str,
        gateway_domain: str = "gateway.pinata.cloud",
        client: Optional[httpx.AsyncClient] = None,
        timeout_seconds: float = 30.0,
    ):
        """Initialize Pinata publisher.

        Args:
            jwt_token: Pinata API JWT token (from PINATA_JWT env var)
            gateway_domain: Gateway domain for URL generation (default: public gateway)
            client: Shared HTTP client (a private one is created per call if None)
            timeout_seconds: Upload timeout
        """
        self.jwt_token = jwt_token
        self.gateway_domain = gateway_domain
        self.base_url = "https://api.pinata.cloud"
        self.timeout_seconds = timeout_seconds
        self._client = client

    async def publish(self, data: bytes, content_type: str, job_id: UUID) -> str:
        """Upload image bytes to IPFS and return the gateway URL.

        Args:
            data: Image bytes
            content_type: MIME type of the image
            job_id: Job id used for the semantic filename

        Returns:
            Gateway URL (https://<gateway>/ipfs/<CID>)

        Raises:
            PublishFailure: Upload rejected or unreachable (retryable set for 429/5xx/network)
        """
        extension = CONTENT_TYPE_EXTENSIONS.get(content_type, "png")
        filename = f"thumbnail-{job_id}.{extension}"
        pinata_metadata = {"name": filename, "keyvalues": {"job_id": str(job_id)}}

        client = self._client or httpx.AsyncClient(timeout=self.timeout_seconds)
        try:
            response = await client.post(
                f"{self.base_url}/pinning/pinFileToIPFS",
                headers={"Authorization": f"Bearer {self.jwt_token}"},
                files={"file": (filename, data, content_type)},
                data={
                    "pinataOptions": '{"cidVersion": 1}',
                    "pinataMetadata": json.dumps(pinata_metadata),
                },
                timeout=self.timeout_seconds,
            )
        except httpx.TimeoutException as e:
            raise PublishFailure(
                f"Request timeout after {self.timeout_seconds}s: {e}", retryable=True
            )
        except httpx.HTTPError as e:
            raise PublishFailure(f"Network error: {e}", retryable=True)
        finally:
            if self._client is None:
                await client.aclose()

        # Error classification
        if response.status_code == 429:
            raise PublishFailure(f"Rate limit exceeded: {response.text}", retryable=True)
        elif response.status_code >= 500:
            raise PublishFailure(
                f"Service unavailable ({response.status_code}): {response.text}", retryable=True
            )
        elif response.status_code == 401:
            raise PublishFailure("Unauthorized: Invalid API key. Check PINATA_JWT configuration.")
        elif response.status_code == 403:
            raise PublishFailure(
                "Forbidden: Access denied. Check PINATA_JWT permissions "
                "(requires pinFileToIPFS access)."
            )
        elif response.status_code != 200:
            raise PublishFailure(f"Bad request ({response.status_code}): {response.text}")

        try:
            cid = response.json()["IpfsHash"]
        except (ValueError, KeyError, TypeError) as e:
            raise PublishFailure(f"Unexpected Pinata response: {e!r}")

        url = f"https://{self.gateway_domain}/ipfs/{cid}"
        logger.info("asset.published", store="pinata", job_id=str(job_id), cid=cid, bytes=len(data))
        return url
