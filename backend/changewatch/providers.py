"""Static table of OpenAI-compatible LLM providers.

Each provider names one model for diffing (large context matters) and one
for classifying (a smaller model is enough). The active provider is picked
once at startup from ``Settings.llm_provider`` and passed explicitly through
the pipeline.
"""

import logging
from dataclasses import dataclass

from changewatch.config import Settings
from changewatch.errors import ProviderConfigurationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ModelConfig:
    """A model name and its context window size in tokens."""
    model: str
    context_tokens: int


@dataclass(frozen=True)
class ProviderConfig:
    """Endpoint and model choices for one provider."""
    name: str
    base_url: str
    api_key_setting: str  # Attribute of Settings holding the API key
    differ: ModelConfig
    classifier: ModelConfig


@dataclass(frozen=True)
class ResolvedProvider:
    """Provider config paired with its API key."""
    config: ProviderConfig
    api_key: str

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def base_url(self) -> str:
        return self.config.base_url

    @property
    def differ(self) -> ModelConfig:
        return self.config.differ

    @property
    def classifier(self) -> ModelConfig:
        return self.config.classifier


PROVIDERS: dict[str, ProviderConfig] = {
    "scaleway": ProviderConfig(
        name="scaleway",
        base_url="https://api.scaleway.ai/v1",
        api_key_setting="scaleway_api_key",
        differ=ModelConfig("llama-3.3-70b-instruct", 131000),
        classifier=ModelConfig("llama-3.3-70b-instruct", 131000),
    ),
    "gemini": ProviderConfig(
        name="gemini",
        base_url="https://generativelanguage.googleapis.com/v1beta/openai/",
        api_key_setting="google_api_key",
        differ=ModelConfig("gemini-2.0-flash", 1000000),
        classifier=ModelConfig("gemini-2.0-flash-lite", 1000000),
    ),
    "together": ProviderConfig(
        name="together",
        base_url="https://api.together.xyz/v1/",
        api_key_setting="together_api_key",
        differ=ModelConfig("meta-llama/Llama-3.3-70B-Instruct-Turbo-Free", 131000),
        classifier=ModelConfig("meta-llama/Llama-3.3-70B-Instruct-Turbo-Free", 131000),
    ),
}


def resolve_provider(settings: Settings) -> ResolvedProvider:
    """Select the configured provider and attach its API key.

    Raises:
        ProviderConfigurationError: if the provider is unknown or has no key
    """
    config = PROVIDERS.get(settings.llm_provider)
    if config is None:
        raise ProviderConfigurationError(f"Unknown LLM provider: {settings.llm_provider}")

    api_key = getattr(settings, config.api_key_setting, None)
    if not api_key:
        raise ProviderConfigurationError(
            f"Missing API key for provider {config.name} "
            f"(set {config.api_key_setting.upper()})"
        )

    logger.info(
        f"Using provider {config.name}: differ={config.differ.model}, "
        f"classifier={config.classifier.model}"
    )
    return ResolvedProvider(config=config, api_key=api_key)
