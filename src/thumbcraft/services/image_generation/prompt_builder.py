"""Prompt composition for thumbnail generation.

Builds the natural-language prompt sent to image providers from the request
parameters. Composition is deterministic: the same request always yields the
same prompt.
"""

from dataclasses import dataclass
from typing import Optional

from thumbcraft.models.generation_job import AspectRatio, ColorScheme, ThumbnailStyle
from thumbcraft.services.exceptions import ValidationError

MAX_TITLE_LENGTH = 200
MAX_USER_PROMPT_LENGTH = 1000

STYLE_DESCRIPTIONS: dict[ThumbnailStyle, str] = {
    ThumbnailStyle.BOLD_GRAPHIC: (
        "eye-catching thumbnail, bold typography, vibrant colors, expressive facial reaction, "
        "dramatic lighting, high contrast, click-worthy composition, professional style"
    ),
    ThumbnailStyle.TECH_FUTURISTIC: (
        "futuristic thumbnail, sleek modern design, digital UI elements, glowing accents, "
        "holographic effects, cyber-tech aesthetic, sharp lighting, high-tech atmosphere"
    ),
    ThumbnailStyle.MINIMALIST: (
        "minimalist thumbnail, clean layout, simple shapes, limited color palette, "
        "plenty of negative space, modern flat design, clear focal point"
    ),
    ThumbnailStyle.PHOTOREALISTIC: (
        "photorealistic thumbnail, ultra-realistic lighting, natural skin tones, candid moment, "
        "DSLR-style photography, lifestyle realism, shallow depth of field"
    ),
    ThumbnailStyle.ILLUSTRATED: (
        "illustrated thumbnail, custom digital illustration, stylized characters, "
        "bold outlines, vibrant colors, creative cartoon or vector art style"
    ),
}

COLOR_SCHEME_DESCRIPTIONS: dict[ColorScheme, str] = {
    ColorScheme.VIBRANT: (
        "vibrant and energetic colors, high saturation, bold contrasts, eye-catching palette"
    ),
    ColorScheme.SUNSET: (
        "warm sunset tones, orange pink and purple hues, soft gradients, cinematic glow"
    ),
    ColorScheme.FOREST: (
        "natural green tones, earthy colors, calm and organic palette, fresh atmosphere"
    ),
    ColorScheme.NEON: (
        "neon glow effects, electric blues and pinks, cyberpunk lighting, high contrast glow"
    ),
    ColorScheme.PURPLE: (
        "purple-dominant color palette, magenta and violet tones, modern and stylish mood"
    ),
    ColorScheme.MONOCHROME: (
        "black and white color scheme, high contrast, dramatic lighting, timeless aesthetic"
    ),
    ColorScheme.OCEAN: (
        "cool blue and teal tones, aquatic color palette, fresh and clean atmosphere"
    ),
    ColorScheme.PASTEL: (
        "soft pastel colors, low saturation, gentle tones, calm and friendly aesthetic"
    ),
}

QUALITY_SUFFIX = (
    "visually stunning, and designed to maximize click-through rate. "
    "Make it bold, professional, and impossible to ignore."
)


@dataclass(frozen=True)
class ThumbnailRequest:
    """Validated generation parameters."""

    title: str
    style: ThumbnailStyle
    color_scheme: Optional[ColorScheme] = None
    aspect_ratio: AspectRatio = AspectRatio.WIDESCREEN
    user_prompt: Optional[str] = None
    text_overlay: bool = False


def validate_request(
    title: Optional[str],
    style: Optional[str],
    color_scheme: Optional[str] = None,
    aspect_ratio: Optional[str] = None,
    user_prompt: Optional[str] = None,
    text_overlay: Optional[bool] = None,
) -> ThumbnailRequest:
    """Validate raw request fields and coerce them into a ThumbnailRequest.

    Raises:
        ValidationError: If title/style are missing or any enum value is unknown
    """
    if not title or not title.strip():
        raise ValidationError("Title and style are required fields")
    if not style:
        raise ValidationError("Title and style are required fields")

    title = title.strip()
    if len(title) > MAX_TITLE_LENGTH:
        raise ValidationError(
            f"Title exceeds maximum length of {MAX_TITLE_LENGTH} characters (got {len(title)})"
        )

    try:
        style_value = ThumbnailStyle(style)
    except ValueError:
        raise ValidationError(f"Unknown style: {style!r}")

    scheme_value = None
    if color_scheme:
        try:
            scheme_value = ColorScheme(color_scheme)
        except ValueError:
            raise ValidationError(f"Unknown color scheme: {color_scheme!r}")

    try:
        ratio_value = AspectRatio(aspect_ratio) if aspect_ratio else AspectRatio.WIDESCREEN
    except ValueError:
        raise ValidationError(f"Unsupported aspect ratio: {aspect_ratio!r}")

    if user_prompt is not None:
        user_prompt = user_prompt.strip() or None
    if user_prompt and len(user_prompt) > MAX_USER_PROMPT_LENGTH:
        raise ValidationError(
            f"Prompt exceeds maximum length of {MAX_USER_PROMPT_LENGTH} characters "
            f"(got {len(user_prompt)})"
        )

    return ThumbnailRequest(
        title=title,
        style=style_value,
        color_scheme=scheme_value,
        aspect_ratio=ratio_value,
        user_prompt=user_prompt,
        text_overlay=bool(text_overlay),
    )


def compose_prompt(request: ThumbnailRequest) -> str:
    """Build the provider prompt for a validated request.

    Order: style description, color scheme, user addendum, text overlay
    directive, then the aspect ratio and quality suffix.
    """
    prompt = f'Create a {STYLE_DESCRIPTIONS[request.style]} for: "{request.title}".'

    if request.color_scheme:
        prompt += f" Use a {COLOR_SCHEME_DESCRIPTIONS[request.color_scheme]} color scheme."

    if request.user_prompt:
        prompt += f" Additional details: {request.user_prompt}."

    if request.text_overlay:
        prompt += f' Include the text "{request.title}" as a large, legible headline overlay.'
    else:
        prompt += " Do not render any text or lettering in the image."

    prompt += f" The thumbnail should be {request.aspect_ratio.value}, {QUALITY_SUFFIX}"
    return prompt
