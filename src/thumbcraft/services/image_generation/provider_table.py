"""Provider configuration table and adapter chain builder.

Each entry describes one external API declaratively. The chain is built from
PROVIDER_PRIORITY; providers without a configured credential are skipped.
"""

from dataclasses import dataclass, replace
from typing import Optional

import httpx
import structlog

from thumbcraft.core.config import Settings
from thumbcraft.models.generation_job import AspectRatio
from thumbcraft.services.image_generation.base import ProviderAdapter
from thumbcraft.services.image_generation.http_adapter import (
    ExtractionRule,
    HttpImageAdapter,
    ProviderConfig,
    RequestVariant,
)
from thumbcraft.services.image_generation.replicate_client import ReplicateAdapter

logger = structlog.get_logger(__name__)

WIDE_DIMENSIONS = {
    AspectRatio.WIDESCREEN: (1792, 1024),
    AspectRatio.SQUARE: (1024, 1024),
    AspectRatio.PORTRAIT: (1024, 1792),
    AspectRatio.STANDARD: (1152, 896),
}

# Common response shapes seen across OpenAI-compatible image APIs
OPENAI_STYLE_RULES = (
    ExtractionRule("data.0.url"),
    ExtractionRule("data.0.b64_json", "base64"),
)
LOOSE_RULES = OPENAI_STYLE_RULES + (
    ExtractionRule("url"),
    ExtractionRule("image_url"),
    ExtractionRule("images.0.url"),
    ExtractionRule("result.url"),
    ExtractionRule("results.0.image"),
    ExtractionRule("output.url"),
    ExtractionRule("image"),
    ExtractionRule("image_base64", "base64"),
    ExtractionRule("base64", "base64"),
    ExtractionRule("output.image_base64", "base64"),
    ExtractionRule("b64_json", "base64"),
)

OPENAI = ProviderConfig(
    provider_id="openai",
    label="OpenAI DALL-E 3",
    variants=(
        RequestVariant(
            url="https://api.openai.com/v1/images/generations",
            body={
                "model": "dall-e-3",
                "prompt": "{prompt}",
                "n": 1,
                "size": "{size}",
                "quality": "standard",
                "response_format": "b64_json",
            },
        ),
    ),
    # DALL-E 3 only supports these three sizes; 4:3 falls back to square
    dimensions={
        AspectRatio.WIDESCREEN: (1792, 1024),
        AspectRatio.SQUARE: (1024, 1024),
        AspectRatio.PORTRAIT: (1024, 1792),
        AspectRatio.STANDARD: (1024, 1024),
    },
    extraction_rules=OPENAI_STYLE_RULES,
)

INFIP = ProviderConfig(
    provider_id="infip",
    label="Infip",
    variants=(
        RequestVariant(
            url="https://api.infip.pro/v1/images/generations",
            body={
                "model": "nbpro",
                "prompt": "{prompt}",
                "n": 1,
                "size": "{size}",
                "response_format": "url",
            },
        ),
        RequestVariant(
            url="https://api.infip.pro/v1/images/generate",
            body={
                "model": "nbpro",
                "prompt": "{prompt}",
                "width": "{width}",
                "height": "{height}",
                "quality": "premium",
                "response_format": "url",
            },
        ),
        RequestVariant(
            url="https://api.infip.pro/v1/images/generations",
            body={
                "model": "nbpro",
                "prompt": "{prompt}",
                "n": 1,
                "size": "{size}",
                "response_format": "b64_json",
            },
        ),
    ),
    dimensions=WIDE_DIMENSIONS,
    extraction_rules=LOOSE_RULES,
    prompt_suffix=(
        ". Ultra-high quality, professional digital art, masterpiece, best quality, "
        "highly detailed, sharp focus, vibrant colors, perfect composition."
    ),
)

HUGGINGFACE = ProviderConfig(
    provider_id="huggingface",
    label="Hugging Face Inference",
    variants=(
        RequestVariant(
            url="https://router.huggingface.co/hf-inference/models/{model}",
            body={
                "inputs": "{prompt}",
                "parameters": {"width": "{width}", "height": "{height}"},
            },
            headers={"Accept": "image/png"},
        ),
    ),
    dimensions={
        AspectRatio.WIDESCREEN: (1024, 576),
        AspectRatio.SQUARE: (1024, 1024),
        AspectRatio.PORTRAIT: (576, 1024),
        AspectRatio.STANDARD: (1024, 768),
    },
    extraction_rules=LOOSE_RULES,
    prompt_suffix=", high quality, professional, 8k resolution",
    timeout_seconds=60.0,
    params={"model": "black-forest-labs/FLUX.1-schnell"},
)

POLLINATIONS = ProviderConfig(
    provider_id="pollinations",
    label="Pollinations (free)",
    variants=(
        RequestVariant(
            method="GET",
            url=(
                "https://image.pollinations.ai/prompt/{prompt_encoded}"
                "?width={width}&height={height}&model=flux&nologo=true&seed={seed}"
            ),
        ),
    ),
    dimensions=WIDE_DIMENSIONS,
    auth_header=None,
    requires_credential=False,
    prompt_suffix=", masterpiece, best quality, ultra detailed, professional, award winning",
    timeout_seconds=60.0,
)

PROVIDER_CONFIGS: dict[str, ProviderConfig] = {
    config.provider_id: config for config in (OPENAI, INFIP, HUGGINGFACE, POLLINATIONS)
}

KNOWN_PROVIDERS = (*PROVIDER_CONFIGS.keys(), "replicate")


@dataclass(frozen=True)
class ProviderDescriptor:
    """Public description of one chain slot."""

    provider_id: str
    label: str
    priority: int
    requires_credential: bool
    configured: bool


def describe_chain(settings: Settings) -> list[ProviderDescriptor]:
    """Describe every provider named in PROVIDER_PRIORITY, usable or not."""
    descriptors = []
    for priority, provider_id in enumerate(settings.provider_priority_list, start=1):
        if provider_id == "replicate":
            label, requires_credential = "Replicate", True
        elif provider_id in PROVIDER_CONFIGS:
            config = PROVIDER_CONFIGS[provider_id]
            label, requires_credential = config.label, config.requires_credential
        else:
            continue
        descriptors.append(
            ProviderDescriptor(
                provider_id=provider_id,
                label=label,
                priority=priority,
                requires_credential=requires_credential,
                configured=not requires_credential
                or bool(settings.provider_credential(provider_id)),
            )
        )
    return descriptors


def build_adapter_chain(
    settings: Settings, client: Optional[httpx.AsyncClient] = None
) -> list[ProviderAdapter]:
    """Instantiate adapters in configured priority order.

    Args:
        settings: Application settings (priority list, credentials, timeouts)
        client: Shared HTTP client reused by every adapter

    Returns:
        Ordered list of adapters ready to be tried
    """
    chain: list[ProviderAdapter] = []
    for provider_id in settings.provider_priority_list:
        credential = settings.provider_credential(provider_id)

        if provider_id == "replicate":
            if not credential:
                logger.warning("provider.skipped", provider=provider_id, reason="no_credential")
                continue
            chain.append(
                ReplicateAdapter(
                    api_token=credential,
                    model_version=settings.replicate_model_version,
                    client=client,
                    timeout_seconds=settings.provider_timeout_seconds,
                    download_timeout_seconds=settings.download_timeout_seconds,
                )
            )
            continue

        config = PROVIDER_CONFIGS.get(provider_id)
        if config is None:
            logger.warning("provider.unknown", provider=provider_id, known=list(KNOWN_PROVIDERS))
            continue
        if config.requires_credential and not credential:
            logger.warning("provider.skipped", provider=provider_id, reason="no_credential")
            continue
        if provider_id == "huggingface":
            config = replace(config, params={"model": settings.huggingface_model})

        chain.append(
            HttpImageAdapter(
                config,
                api_key=credential,
                client=client,
                timeout_seconds=min(config.timeout_seconds, settings.provider_timeout_seconds),
                download_timeout_seconds=settings.download_timeout_seconds,
            )
        )

    logger.info("provider.chain_built", providers=[a.provider_id for a in chain])
    return chain
