"""Anthropic Claude LLM provider."""

import logging
import os

from jobingest.ai.base import DEFAULT_MAX_TOKENS, LLMProvider
from jobingest.core.errors import SchemaError

logger = logging.getLogger(__name__)


class AnthropicProvider(LLMProvider):
    """LLM provider using the Anthropic Claude API."""

    @property
    def provider_id(self) -> str:
        return "anthropic"

    @property
    def default_model(self) -> str:
        return "claude-sonnet-4-20250514"

    @property
    def env_var(self) -> str:
        return "ANTHROPIC_API_KEY"

    def complete(
        self,
        prompt: str,
        model: str | None = None,
        *,
        system: str | None = None,
        max_tokens: int = DEFAULT_MAX_TOKENS,
    ) -> str:
        api_key = os.environ.get("ANTHROPIC_API_KEY")
        if not api_key:
            msg = "ANTHROPIC_API_KEY environment variable is required"
            raise ValueError(msg)

        try:
            import anthropic
        except ImportError:
            msg = (
                "anthropic is required for AI extraction. "
                "Install with: pip install 'jobingest[anthropic]'"
            )
            raise ImportError(msg) from None

        client = anthropic.Anthropic(api_key=api_key)
        use_model = model or self.default_model

        logger.info("Sending %d chars to Anthropic API (%s)...", len(prompt), use_model)
        kwargs = {"system": system} if system is not None else {}
        try:
            message = client.messages.create(
                model=use_model,
                max_tokens=max_tokens,
                messages=[{"role": "user", "content": prompt}],
                **kwargs,
            )
        except anthropic.NotFoundError as e:
            msg = f"Model '{use_model}' is not available: {e}"
            raise SchemaError.model_not_supported(msg, e) from e
        except anthropic.APIConnectionError as e:
            raise SchemaError.network(f"Anthropic API unreachable: {e}", e) from e
        except anthropic.APIError as e:
            raise SchemaError.api(f"Anthropic API error: {e}", e) from e

        return message.content[0].text  # type: ignore[union-attr]
