"""Settings validation tests."""

import pytest
from pydantic import ValidationError

from thumbcraft.core.config import Settings


def test_production_requires_a_usable_provider():
    with pytest.raises(ValidationError, match="PROVIDER_PRIORITY"):
        Settings(
            DATABASE_URL="postgresql+psycopg://db/thumbcraft",
            APP_ENV="production",
            PROVIDER_PRIORITY="openai",
            OPENAI_API_KEY="",
        )


def test_pinata_requires_jwt():
    with pytest.raises(ValidationError, match="PINATA_JWT"):
        Settings(
            DATABASE_URL="postgresql+psycopg://db/thumbcraft",
            APP_ENV="development",
            PROVIDER_PRIORITY="pollinations",
            ASSET_PUBLISHER="pinata",
            PINATA_JWT="",
        )


def test_valid_configuration():
    settings = Settings(
        DATABASE_URL="postgresql+psycopg://db/thumbcraft",
        APP_ENV="development",
        PROVIDER_PRIORITY=" OpenAI , pollinations ,",
        CORS_ORIGINS="http://a.test, http://b.test",
    )

    assert settings.provider_priority_list == ["openai", "pollinations"]
    assert settings.cors_origins_list == ["http://a.test", "http://b.test"]


def test_validation_skipped_in_tests():
    settings = Settings(DATABASE_URL="sqlite+aiosqlite://", PROVIDER_PRIORITY="")
    assert settings.provider_priority_list == []
