"""Provider adapter contract shared by every image generation backend."""

import base64
import binascii
from dataclasses import dataclass
from typing import Optional, Protocol, runtime_checkable

import httpx

from thumbcraft.models.generation_job import AspectRatio
from thumbcraft.services.exceptions import ProviderFailure, ProviderFailureKind

USER_AGENT = "Thumbcraft/1.0"

# (signature, offset, content type)
_IMAGE_SIGNATURES: list[tuple[bytes, int, str]] = [
    (b"\x89PNG\r\n\x1a\n", 0, "image/png"),
    (b"\xff\xd8\xff", 0, "image/jpeg"),
    (b"GIF87a", 0, "image/gif"),
    (b"GIF89a", 0, "image/gif"),
    (b"WEBP", 8, "image/webp"),
]

CONTENT_TYPE_EXTENSIONS = {
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/gif": "gif",
    "image/webp": "webp",
}


@dataclass(frozen=True)
class ProviderImage:
    """Raw image bytes produced by one adapter."""

    data: bytes
    provider_id: str
    content_type: str
    prompt: str


@runtime_checkable
class ProviderAdapter(Protocol):
    """Turns a (prompt, aspect ratio) pair into image bytes or raises ProviderFailure."""

    provider_id: str
    timeout_seconds: float

    async def generate(self, prompt: str, aspect_ratio: AspectRatio) -> ProviderImage: ...


def sniff_image_type(data: bytes) -> Optional[str]:
    """Return the image content type from magic bytes, or None if unrecognized."""
    for signature, offset, content_type in _IMAGE_SIGNATURES:
        if data[offset : offset + len(signature)] == signature:
            if content_type == "image/webp" and not data.startswith(b"RIFF"):
                continue
            return content_type
    return None


def image_from_bytes(provider_id: str, data: bytes, prompt: str) -> ProviderImage:
    """Wrap bytes in a ProviderImage after checking they are a real image.

    Raises:
        ProviderFailure: If the payload is empty or not a recognized image format
    """
    if not data:
        raise ProviderFailure(provider_id, ProviderFailureKind.NO_IMAGE, "Empty image payload")

    content_type = sniff_image_type(data)
    if content_type is None:
        raise ProviderFailure(
            provider_id,
            ProviderFailureKind.MALFORMED_RESPONSE,
            f"Payload is not a recognized image ({len(data)} bytes)",
        )
    return ProviderImage(data=data, provider_id=provider_id, content_type=content_type, prompt=prompt)


def decode_base64_image(provider_id: str, payload: str) -> bytes:
    """Decode inline base64 image data, accepting data: URLs.

    Raises:
        ProviderFailure: If the payload is not valid base64
    """
    if payload.startswith("data:"):
        _, _, payload = payload.partition(",")
    payload = "".join(payload.split())
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ProviderFailure(
            provider_id,
            ProviderFailureKind.MALFORMED_RESPONSE,
            f"Invalid base64 image data: {e}",
        )


async def download_image(
    client: httpx.AsyncClient, provider_id: str, url: str, timeout: float
) -> bytes:
    """Fetch hosted image bytes (second round trip for URL-style responses).

    Raises:
        ProviderFailure: On timeout, network error, or non-2xx status
    """
    if url.startswith("data:"):
        return decode_base64_image(provider_id, url)

    try:
        response = await client.get(url, timeout=timeout, headers={"User-Agent": USER_AGENT})
    except httpx.TimeoutException as e:
        raise ProviderFailure(
            provider_id, ProviderFailureKind.TIMEOUT, f"Image download timed out: {e}"
        )
    except httpx.HTTPError as e:
        raise ProviderFailure(
            provider_id, ProviderFailureKind.NETWORK, f"Image download failed: {e}"
        )

    if response.status_code != 200:
        raise ProviderFailure(
            provider_id,
            ProviderFailureKind.HTTP_STATUS,
            f"Image download returned {response.status_code}",
            http_status=response.status_code,
        )
    return response.content
