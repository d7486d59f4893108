"""Provider chain construction tests."""

from thumbcraft.core.config import Settings
from thumbcraft.services.image_generation.http_adapter import HttpImageAdapter
from thumbcraft.services.image_generation.provider_table import (
    build_adapter_chain,
    describe_chain,
)
from thumbcraft.services.image_generation.replicate_client import ReplicateAdapter


def make_settings(**overrides) -> Settings:
    fields = {
        "DATABASE_URL": "sqlite+aiosqlite://",
        "OPENAI_API_KEY": "",
        "INFIP_API_KEY": "",
        "HUGGINGFACE_API_TOKEN": "",
        "REPLICATE_API_TOKEN": "",
    }
    fields.update(overrides)
    return Settings(**fields)


def test_chain_follows_priority_and_skips_unconfigured():
    settings = make_settings(
        PROVIDER_PRIORITY="replicate, openai, infip, pollinations",
        OPENAI_API_KEY="sk-test",
        REPLICATE_API_TOKEN="r8-test",
    )

    chain = build_adapter_chain(settings)

    assert [a.provider_id for a in chain] == ["replicate", "openai", "pollinations"]
    assert isinstance(chain[0], ReplicateAdapter)
    assert isinstance(chain[1], HttpImageAdapter)


def test_unknown_provider_is_ignored():
    chain = build_adapter_chain(make_settings(PROVIDER_PRIORITY="dalle-9000,pollinations"))
    assert [a.provider_id for a in chain] == ["pollinations"]


def test_huggingface_model_is_configurable():
    settings = make_settings(
        PROVIDER_PRIORITY="huggingface",
        HUGGINGFACE_API_TOKEN="hf_test",
        HUGGINGFACE_MODEL="stabilityai/sdxl",
    )

    (adapter,) = build_adapter_chain(settings)

    assert adapter.config.params == {"model": "stabilityai/sdxl"}


def test_timeout_is_capped_by_settings():
    settings = make_settings(PROVIDER_PRIORITY="pollinations", PROVIDER_TIMEOUT_SECONDS=15)

    (adapter,) = build_adapter_chain(settings)

    assert adapter.timeout_seconds == 15


def test_describe_chain_reports_configuration():
    descriptors = describe_chain(
        make_settings(PROVIDER_PRIORITY="openai,huggingface,pollinations", OPENAI_API_KEY="sk")
    )

    assert [(d.provider_id, d.priority, d.configured) for d in descriptors] == [
        ("openai", 1, True),
        ("huggingface", 2, False),
        ("pollinations", 3, True),
    ]
