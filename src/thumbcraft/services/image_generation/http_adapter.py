"""Generic HTTP image provider adapter driven by a configuration table entry.

One `ProviderConfig` describes a provider completely: request variants to
probe, dimensions per aspect ratio, auth header, and the ordered response paths
where an image URL or inline base64 payload may be found. Adding a provider
means adding a table entry, not a new adapter class.
"""

import re
import time
from dataclasses import dataclass, field
from typing import Any, Literal, Optional
from urllib.parse import quote

import httpx
import structlog

from thumbcraft.models.generation_job import AspectRatio
from thumbcraft.services.exceptions import ProviderFailure, ProviderFailureKind
from thumbcraft.services.image_generation.base import (
    USER_AGENT,
    ProviderImage,
    decode_base64_image,
    download_image,
    image_from_bytes,
)

logger = structlog.get_logger(__name__)

_PLACEHOLDER = re.compile(r"^\{(\w+)\}$")


@dataclass(frozen=True)
class ExtractionRule:
    """Where to look for an image in a JSON response.

    `path` is dot-separated; integer segments index into lists
    (e.g. "data.0.b64_json").
    """

    path: str
    kind: Literal["url", "base64"] = "url"


@dataclass(frozen=True)
class RequestVariant:
    """One endpoint/body shape to try within a single adapter attempt."""

    url: str
    method: str = "POST"
    body: Optional[dict[str, Any]] = None
    headers: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class ProviderConfig:
    """Declarative description of one external image generation API."""

    provider_id: str
    label: str
    variants: tuple[RequestVariant, ...]
    dimensions: dict[AspectRatio, tuple[int, int]]
    extraction_rules: tuple[ExtractionRule, ...] = ()
    auth_header: Optional[str] = "Bearer {api_key}"
    requires_credential: bool = True
    prompt_suffix: str = ""
    timeout_seconds: float = 120.0
    params: dict[str, Any] = field(default_factory=dict)


def render_template(template: Any, context: dict[str, Any]) -> Any:
    """Fill placeholders in a URL/body template.

    A string that is exactly one placeholder (e.g. "{width}") is replaced by
    the raw context value so numbers stay numbers in JSON bodies.
    """
    if isinstance(template, str):
        match = _PLACEHOLDER.match(template)
        if match:
            return context[match.group(1)]
        return template.format(**context)
    if isinstance(template, dict):
        return {key: render_template(value, context) for key, value in template.items()}
    if isinstance(template, (list, tuple)):
        return [render_template(value, context) for value in template]
    return template


def lookup_path(payload: Any, path: str) -> Any:
    """Walk a dot-separated path through nested dicts/lists, None if absent."""
    current = payload
    for segment in path.split("."):
        if isinstance(current, dict):
            current = current.get(segment)
        elif isinstance(current, list) and segment.isdigit():
            index = int(segment)
            current = current[index] if index < len(current) else None
        else:
            return None
        if current is None:
            return None
    return current


class HttpImageAdapter:
    """Provider adapter for HTTP JSON/binary image generation APIs."""

    def __init__(
        self,
        config: ProviderConfig,
        api_key: str = "",
        client: Optional[httpx.AsyncClient] = None,
        timeout_seconds: Optional[float] = None,
        download_timeout_seconds: float = 60.0,
    ):
        """Initialize adapter.

        Args:
            config: Provider table entry
            api_key: Credential drawn from process configuration
            client: Shared HTTP client (a private one is created per call if None)
            timeout_seconds: Per-attempt ceiling, overrides the table default
            download_timeout_seconds: Timeout for the image download round trip
        """
        self.config = config
        self.provider_id = config.provider_id
        self.api_key = api_key
        self.timeout_seconds = timeout_seconds or config.timeout_seconds
        self.download_timeout_seconds = download_timeout_seconds
        self._client = client

    def _context(self, prompt: str, aspect_ratio: AspectRatio) -> dict[str, Any]:
        width, height = self.config.dimensions[aspect_ratio]
        return {
            **self.config.params,
            "prompt": prompt,
            "prompt_encoded": quote(prompt, safe=""),
            "width": width,
            "height": height,
            "size": f"{width}x{height}",
            "aspect_ratio": aspect_ratio.value,
            "seed": int(time.time() * 1000) % 2_147_483_647,
        }

    def _headers(self, variant: RequestVariant) -> dict[str, str]:
        headers = {"User-Agent": USER_AGENT}
        if self.config.auth_header and self.api_key:
            headers["Authorization"] = self.config.auth_header.format(api_key=self.api_key)
        headers.update(variant.headers)
        return headers

    async def generate(self, prompt: str, aspect_ratio: AspectRatio) -> ProviderImage:
        """Generate one image, probing request variants in order.

        Raises:
            ProviderFailure: If every variant fails
        """
        if self.config.requires_credential and not self.api_key:
            raise ProviderFailure(
                self.provider_id,
                ProviderFailureKind.CONFIGURATION,
                "API credential not configured",
            )

        full_prompt = f"{prompt}{self.config.prompt_suffix}"
        context = self._context(full_prompt, aspect_ratio)

        client = self._client or httpx.AsyncClient(timeout=self.timeout_seconds)
        last_failure: Optional[ProviderFailure] = None
        try:
            for index, variant in enumerate(self.config.variants, start=1):
                try:
                    data = await self._attempt(client, variant, context)
                    return image_from_bytes(self.provider_id, data, full_prompt)
                except ProviderFailure as e:
                    last_failure = e
                    logger.info(
                        "provider.variant_failed",
                        provider=self.provider_id,
                        variant=index,
                        kind=e.kind.value,
                        http_status=e.http_status,
                        reason=e.reason,
                    )
        finally:
            if self._client is None:
                await client.aclose()

        if last_failure is None:
            raise ProviderFailure(
                self.provider_id,
                ProviderFailureKind.CONFIGURATION,
                "No request variants configured",
            )
        if len(self.config.variants) > 1:
            raise ProviderFailure(
                self.provider_id,
                last_failure.kind,
                f"All {len(self.config.variants)} endpoint variants failed "
                f"(last: {last_failure.reason})",
                http_status=last_failure.http_status,
            )
        raise last_failure

    async def _attempt(
        self, client: httpx.AsyncClient, variant: RequestVariant, context: dict[str, Any]
    ) -> bytes:
        try:
            url = render_template(variant.url, context)
            body = render_template(variant.body, context) if variant.body is not None else None
        except (KeyError, IndexError, ValueError) as e:
            raise ProviderFailure(
                self.provider_id,
                ProviderFailureKind.CONFIGURATION,
                f"Invalid request template: {e!r}",
            )

        try:
            response = await client.request(
                variant.method,
                url,
                json=body,
                headers=self._headers(variant),
                timeout=self.timeout_seconds,
            )
        except httpx.TimeoutException as e:
            raise ProviderFailure(
                self.provider_id,
                ProviderFailureKind.TIMEOUT,
                f"Request timeout after {self.timeout_seconds}s: {e}",
            )
        except httpx.HTTPError as e:
            raise ProviderFailure(
                self.provider_id, ProviderFailureKind.NETWORK, f"Network error: {e}"
            )

        if response.status_code not in (200, 201):
            raise ProviderFailure(
                self.provider_id,
                ProviderFailureKind.HTTP_STATUS,
                f"HTTP {response.status_code}: {response.text[:200]}",
                http_status=response.status_code,
            )

        content_type = response.headers.get("content-type", "")
        if content_type.startswith("image/"):
            return response.content

        try:
            payload = response.json()
        except ValueError:
            raise ProviderFailure(
                self.provider_id,
                ProviderFailureKind.MALFORMED_RESPONSE,
                f"Response is neither an image nor JSON (content-type: {content_type or 'none'})",
            )

        return await self._extract(client, payload)

    async def _extract(self, client: httpx.AsyncClient, payload: Any) -> bytes:
        for rule in self.config.extraction_rules:
            value = lookup_path(payload, rule.path)
            if not isinstance(value, str) or not value:
                continue
            if rule.kind == "base64":
                return decode_base64_image(self.provider_id, value)
            return await download_image(
                client, self.provider_id, value, self.download_timeout_seconds
            )

        keys = sorted(payload.keys()) if isinstance(payload, dict) else type(payload).__name__
        raise ProviderFailure(
            self.provider_id,
            ProviderFailureKind.NO_IMAGE,
            f"No recognizable image field in response (keys: {keys})",
        )
