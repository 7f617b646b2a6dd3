"""Schema-constrained chat completions against OpenAI-compatible providers."""

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from changewatch.providers import ResolvedProvider
from changewatch.services.rate_governor import RateGovernor

logger = logging.getLogger(__name__)


@dataclass
class Completion:
    """Raw model output and why generation stopped."""
    content: str | None
    finish_reason: str | None
    model: str

    @property
    def truncated(self) -> bool:
        return self.finish_reason == "length"


class LLMClient:
    """Rate-governed structured-output client for one provider."""

    def __init__(
        self,
        provider: ResolvedProvider,
        governor: RateGovernor,
        timeout: float = 300.0,
    ):
        self.provider = provider
        self.governor = governor
        self.timeout = timeout
        self._openai_client = None

    def _get_openai_client(self):
        """Lazy load OpenAI client."""
        if self._openai_client is None:
            from openai import OpenAI
            self._openai_client = OpenAI(
                api_key=self.provider.api_key,
                base_url=self.provider.base_url,
                http_client=httpx.Client(timeout=self.timeout),
                max_retries=0,  # The daily schedule is the retry mechanism
            )
        return self._openai_client

    def complete(
        self,
        model: str,
        messages: list[dict[str, str]],
        schema_name: str,
        schema: dict[str, Any],
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> Completion:
        """Request a completion constrained to a JSON schema.

        Blocks in the rate governor before the request. Provider errors
        (including timeouts) propagate to the caller.
        """
        params: dict[str, Any] = {
            "model": model,
            "messages": messages,
            "response_format": {
                "type": "json_schema",
                "json_schema": {"name": schema_name, "schema": schema},
            },
        }
        if temperature is not None:
            params["temperature"] = temperature
        if max_tokens is not None:
            params["max_tokens"] = max_tokens

        client = self._get_openai_client()
        self.governor.wait(model)

        logger.info(f"Calling {self.provider.name} {model} ({schema_name})...")
        response = client.chat.completions.create(**params)

        choice = response.choices[0]
        return Completion(
            content=choice.message.content,
            finish_reason=choice.finish_reason,
            model=model,
        )
