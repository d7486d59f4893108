"""Replicate adapter for image generation with error classification."""

import asyncio
from typing import Any, Optional

import httpx
import replicate
from replicate.exceptions import ReplicateError as ReplicateAPIError

from thumbcraft.models.generation_job import AspectRatio
from thumbcraft.services.exceptions import ProviderFailure, ProviderFailureKind
from thumbcraft.services.image_generation.base import (
    ProviderImage,
    download_image,
    image_from_bytes,
)

PROVIDER_ID = "replicate"
DEFAULT_MODEL = "black-forest-labs/flux-schnell"


def classify_error(exception: Exception) -> ProviderFailure:
    """Classify a Replicate SDK or network exception into a ProviderFailure.

    Classification rules:
        - Timeout errors → timeout
        - Connection errors → network
        - 4xx/5xx status in message → http_status
        - Everything else → malformed_response
    """
    error_message = str(exception)
    error_message_lower = error_message.lower()

    if isinstance(exception, (TimeoutError, httpx.TimeoutException)) or (
        "timeout" in error_message_lower
    ):
        return ProviderFailure(
            PROVIDER_ID, ProviderFailureKind.TIMEOUT, f"Network timeout: {error_message}"
        )

    status = getattr(exception, "status", None)
    if not isinstance(status, int):
        for candidate in (429, 503, 500, 401, 403, 422, 400, 404):
            if str(candidate) in error_message:
                status = candidate
                break

    if isinstance(status, int):
        if status == 429 or "rate limit" in error_message_lower:
            reason = f"Rate limit exceeded: {error_message}"
        elif status in (401, 403):
            reason = f"Authentication failed: {error_message}"
        else:
            reason = f"Replicate API error: {error_message}"
        return ProviderFailure(
            PROVIDER_ID, ProviderFailureKind.HTTP_STATUS, reason, http_status=status
        )

    if isinstance(exception, (ConnectionError, OSError, httpx.HTTPError)):
        return ProviderFailure(
            PROVIDER_ID, ProviderFailureKind.NETWORK, f"Connection error: {error_message}"
        )

    return ProviderFailure(
        PROVIDER_ID, ProviderFailureKind.MALFORMED_RESPONSE, f"Replicate error: {error_message}"
    )


def extract_output_url(output: Any) -> str:
    """Extract the image URL from model output (format varies by model).

    Raises:
        ProviderFailure: If no URL can be found in the output
    """
    if isinstance(output, list) and len(output) > 0:
        output = output[0]
    url = getattr(output, "url", None) or (output if isinstance(output, str) else None)
    if not url:
        raise ProviderFailure(
            PROVIDER_ID,
            ProviderFailureKind.NO_IMAGE,
            f"Unexpected output format from Replicate: {type(output).__name__}",
        )
    return str(url)


class ReplicateAdapter:
    """Provider adapter backed by the Replicate SDK."""

    provider_id = PROVIDER_ID

    def __init__(
        self,
        api_token: str,
        model_version: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout_seconds: float = 120.0,
        download_timeout_seconds: float = 60.0,
    ):
        """Initialize adapter.

        Args:
            api_token: Replicate API authentication token
            model_version: Model identifier (default: "black-forest-labs/flux-schnell")
            client: Shared HTTP client for downloading the output image
            timeout_seconds: Per-attempt ceiling enforced by the orchestrator
            download_timeout_seconds: Timeout for fetching the output file
        """
        self.api_token = api_token
        self.model_version = model_version or DEFAULT_MODEL
        self.timeout_seconds = timeout_seconds
        self.download_timeout_seconds = download_timeout_seconds
        self._client = client

    def _run_model(self, prompt: str, aspect_ratio: AspectRatio) -> Any:
        # SDK is synchronous; runs in a worker thread
        sdk = replicate.Client(api_token=self.api_token)
        return sdk.run(
            self.model_version,
            input={
                "prompt": prompt,
                "aspect_ratio": aspect_ratio.value,
                "output_format": "png",
            },
        )

    async def generate(self, prompt: str, aspect_ratio: AspectRatio) -> ProviderImage:
        """Generate image using Replicate and download the output file.

        Raises:
            ProviderFailure: For every failure mode (never an unstructured error)
        """
        if not self.api_token:
            raise ProviderFailure(
                PROVIDER_ID, ProviderFailureKind.CONFIGURATION, "REPLICATE_API_TOKEN not configured"
            )

        try:
            output = await asyncio.to_thread(self._run_model, prompt, aspect_ratio)
        except ReplicateAPIError as e:
            raise classify_error(e) from e
        except (ConnectionError, OSError, TimeoutError, httpx.HTTPError) as e:
            raise classify_error(e) from e
        except Exception as e:
            raise ProviderFailure(
                PROVIDER_ID, ProviderFailureKind.MALFORMED_RESPONSE, f"Unexpected error: {e}"
            ) from e

        image_url = extract_output_url(output)

        client = self._client or httpx.AsyncClient(timeout=self.download_timeout_seconds)
        try:
            data = await download_image(
                client, PROVIDER_ID, image_url, self.download_timeout_seconds
            )
        finally:
            if self._client is None:
                await client.aclose()

        return image_from_bytes(PROVIDER_ID, data, prompt)
