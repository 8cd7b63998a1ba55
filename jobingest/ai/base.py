"""Abstract base class for LLM providers and shared response parsing."""

import json
import re
from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel, PydanticUserError

from jobingest.core.errors import SchemaError

DEFAULT_MAX_TOKENS = 4096


def parse_json_response(raw_text: str | None) -> Any:
    """Parse an LLM response as JSON.

    Handles markdown-wrapped JSON (```json ... ```) and plain JSON.

    Raises:
        SchemaError: PARSE_ERROR if the text is empty or not JSON.
    """
    if not raw_text or not raw_text.strip():
        raise SchemaError.parse("LLM returned an empty response")

    cleaned = re.sub(r"^```(?:json)?\s*\n?", "", raw_text.strip())
    cleaned = re.sub(r"\n?```\s*$", "", cleaned)

    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as e:
        msg = f"Failed to parse LLM response as JSON: {e}"
        raise SchemaError.parse(msg, e) from e


def schema_prompt(instructions: str, model_cls: type[BaseModel]) -> str:
    """System prompt: instructions followed by the target JSON schema (camelCase keys)."""
    try:
        schema = model_cls.model_json_schema(by_alias=True)
    except PydanticUserError as e:
        msg = f"Cannot build JSON schema for {model_cls.__name__}: {e}"
        raise SchemaError.schema_conversion(msg, e) from e
    return f"{instructions}\n\nJSON schema of the object to return:\n{json.dumps(schema)}"


class LLMProvider(ABC):
    """Base class that every LLM provider must implement.

    ``complete`` raises ValueError for a missing API key, ImportError for a
    missing SDK, and SchemaError (NETWORK_ERROR, API_ERROR,
    MODEL_NOT_SUPPORTED) when the call itself fails.
    """

    @property
    @abstractmethod
    def provider_id(self) -> str:
        """Unique identifier for this provider (e.g. 'anthropic')."""

    @abstractmethod
    def complete(
        self,
        prompt: str,
        model: str | None = None,
        *,
        system: str | None = None,
        max_tokens: int = DEFAULT_MAX_TOKENS,
    ) -> str:
        """Send a prompt to the LLM and return the raw response text.

        Args:
            prompt: User message (document text plus context).
            model: Override the provider's default model. None uses default.
            system: System prompt, if any.
            max_tokens: Upper bound on the response length.

        Returns:
            Raw text response from the LLM (expected to be JSON).
        """

    @property
    @abstractmethod
    def default_model(self) -> str:
        """The default model ID used when no override is specified."""

    @property
    @abstractmethod
    def env_var(self) -> str | None:
        """Environment variable name for the API key, or None if not needed."""


def run_completion(
    provider: LLMProvider,
    prompt: str,
    model: str | None,
    system: str,
    max_tokens: int = DEFAULT_MAX_TOKENS,
) -> Any:
    """One provider call, parsed as JSON. Every failure surfaces as SchemaError."""
    try:
        raw = provider.complete(prompt, model, system=system, max_tokens=max_tokens)
    except (ImportError, ValueError) as e:
        raise SchemaError.configuration(str(e), e) from e
    except (ConnectionError, TimeoutError) as e:
        raise SchemaError.network(f"{provider.provider_id}: {e}", e) from e
    return parse_json_response(raw)
