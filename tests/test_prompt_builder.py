"""Prompt composition and request validation tests."""

import pytest

from thumbcraft.models.generation_job import AspectRatio, ColorScheme, ThumbnailStyle
from thumbcraft.services.exceptions import ValidationError
from thumbcraft.services.image_generation.prompt_builder import (
    COLOR_SCHEME_DESCRIPTIONS,
    QUALITY_SUFFIX,
    STYLE_DESCRIPTIONS,
    ThumbnailRequest,
    compose_prompt,
    validate_request,
)


class TestValidateRequest:
    def test_minimal_request_uses_defaults(self):
        request = validate_request(title="  My video  ", style="Minimalist")

        assert request.title == "My video"
        assert request.style == ThumbnailStyle.MINIMALIST
        assert request.color_scheme is None
        assert request.aspect_ratio == AspectRatio.WIDESCREEN
        assert request.user_prompt is None
        assert request.text_overlay is False

    def test_all_fields(self):
        request = validate_request(
            title="Cyber week",
            style="Tech/Futuristic",
            color_scheme="neon",
            aspect_ratio="9:16",
            user_prompt="  a robot holding a shopping bag ",
            text_overlay=True,
        )

        assert request.color_scheme == ColorScheme.NEON
        assert request.aspect_ratio == AspectRatio.PORTRAIT
        assert request.user_prompt == "a robot holding a shopping bag"
        assert request.text_overlay is True

    @pytest.mark.parametrize(
        "title,style",
        [(None, "Minimalist"), ("", "Minimalist"), ("   ", "Minimalist"), ("Video", None)],
    )
    def test_title_and_style_required(self, title, style):
        with pytest.raises(ValidationError, match="Title and style are required"):
            validate_request(title=title, style=style)

    def test_unknown_style(self):
        with pytest.raises(ValidationError, match="Unknown style"):
            validate_request(title="Video", style="Watercolor")

    def test_unknown_color_scheme(self):
        with pytest.raises(ValidationError, match="Unknown color scheme"):
            validate_request(title="Video", style="Minimalist", color_scheme="rainbow")

    def test_unsupported_aspect_ratio(self):
        with pytest.raises(ValidationError, match="Unsupported aspect ratio"):
            validate_request(title="Video", style="Minimalist", aspect_ratio="21:9")

    def test_title_too_long(self):
        with pytest.raises(ValidationError, match="Title exceeds"):
            validate_request(title="x" * 201, style="Minimalist")

    def test_user_prompt_too_long(self):
        with pytest.raises(ValidationError, match="Prompt exceeds"):
            validate_request(title="Video", style="Minimalist", user_prompt="x" * 1001)

    def test_blank_user_prompt_is_dropped(self):
        request = validate_request(title="Video", style="Minimalist", user_prompt="   ")
        assert request.user_prompt is None


class TestComposePrompt:
    def test_parts_in_order(self):
        request = ThumbnailRequest(
            title="Learn Rust",
            style=ThumbnailStyle.ILLUSTRATED,
            color_scheme=ColorScheme.SUNSET,
            aspect_ratio=AspectRatio.SQUARE,
            user_prompt="a crab mascot",
        )

        prompt = compose_prompt(request)

        style = prompt.index(STYLE_DESCRIPTIONS[ThumbnailStyle.ILLUSTRATED])
        scheme = prompt.index(COLOR_SCHEME_DESCRIPTIONS[ColorScheme.SUNSET])
        addendum = prompt.index("Additional details: a crab mascot.")
        overlay = prompt.index("Do not render any text")
        suffix = prompt.index("The thumbnail should be 1:1")
        assert style < scheme < addendum < overlay < suffix
        assert '"Learn Rust"' in prompt
        assert prompt.endswith(QUALITY_SUFFIX)

    def test_is_deterministic(self):
        request = ThumbnailRequest(title="Same", style=ThumbnailStyle.BOLD_GRAPHIC)
        assert compose_prompt(request) == compose_prompt(request)

    def test_optional_parts_omitted(self):
        prompt = compose_prompt(
            ThumbnailRequest(title="Plain", style=ThumbnailStyle.MINIMALIST)
        )

        assert "color scheme" not in prompt
        assert "Additional details" not in prompt
        assert "The thumbnail should be 16:9" in prompt

    def test_text_overlay_includes_title_headline(self):
        prompt = compose_prompt(
            ThumbnailRequest(title="Big News", style=ThumbnailStyle.BOLD_GRAPHIC, text_overlay=True)
        )

        assert 'Include the text "Big News"' in prompt
        assert "Do not render any text" not in prompt
