"""
LLM client - one chat-completions wrapper over OpenAI-compatible SDKs.
"""

import json
import logging
import re
from functools import partial
from typing import Callable, Optional

from .base import ProviderAuthError, ProviderError, ProviderResponseError

logger = logging.getLogger(__name__)


def extract_json(text: str) -> Optional[str]:
    """
    Extract the first balanced JSON object from text by counting braces.

    Tolerates prose or code fences around the object and trailing commas.
    """
    start = text.find("{")
    if start == -1:
        return None

    depth = 0
    end = None
    for i, c in enumerate(text[start:], start):
        if c == "{":
            depth += 1
        elif c == "}":
            depth -= 1
            if depth == 0:
                end = i + 1
                break
    if end is None:
        return None

    json_str = text[start:end]
    json_str = re.sub(r",\s*([}\]])", r"\1", json_str)  # Trailing commas
    return json_str


def make_sdk_client(provider: str, api_key: str = None, base_url: str = None):
    """Instantiate the SDK client for a provider."""
    if provider == "groq":
        from groq import Groq
        return Groq(api_key=api_key) if api_key else Groq()
    if provider == "openai":
        from openai import OpenAI
        kwargs = {}
        if api_key:
            kwargs["api_key"] = api_key
        if base_url:
            kwargs["base_url"] = base_url
        return OpenAI(**kwargs)
    raise ValueError(f"Unknown provider: {provider}")


class LLMClient:
    """Thin wrapper: system + user prompt in, text or JSON out."""

    def __init__(self, client, model: str, temperature: float = 0.2, max_tokens: int = 2000,
                 factory: Optional[Callable[[], object]] = None):
        self._client = client
        self._factory = factory
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens

    @classmethod
    def from_settings(cls, settings) -> "LLMClient":
        """SDK client is built on first call so a missing key fails the call, not startup."""
        factory = partial(make_sdk_client, settings.llm_provider, settings.llm_api_key, settings.llm_base_url)
        return cls(None, settings.llm_model, factory=factory)

    @property
    def client(self):
        if self._client is None:
            try:
                self._client = self._factory()
            except Exception as e:
                # SDKs raise their own error types when no key is configured
                raise ProviderAuthError(f"Cannot create LLM client: {e}") from e
        return self._client

    def complete(self, system: str, prompt: str, json_mode: bool = False) -> str:
        kwargs = dict(
            model=self.model,
            messages=[
                {"role": "system", "content": system},
                {"role": "user", "content": prompt},
            ],
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        client = self.client
        try:
            response = client.chat.completions.create(**kwargs)
        except Exception as e:
            raise ProviderError(f"LLM call failed: {e}") from e

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise ProviderResponseError("llm", None, "empty completion")
        return content

    def complete_json(self, system: str, prompt: str) -> dict:
        text = self.complete(system, prompt, json_mode=True)
        json_str = extract_json(text)
        if json_str is None:
            raise ProviderResponseError("llm", None, "no JSON object in completion")
        try:
            data = json.loads(json_str)
        except json.JSONDecodeError as e:
            logger.warning("Malformed JSON from LLM: %s", text[:200])
            raise ProviderResponseError("llm", None, f"malformed JSON: {e}") from e
        return data
