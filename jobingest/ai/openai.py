"""OpenAI LLM provider."""

import logging
import os

from jobingest.ai.base import DEFAULT_MAX_TOKENS, LLMProvider
from jobingest.core.errors import SchemaError

logger = logging.getLogger(__name__)


def chat_complete(
    client,
    label: str,
    prompt: str,
    model: str,
    system: str | None,
    max_tokens: int,
) -> str:
    """Run a chat completion on an ``openai.OpenAI`` client, mapping SDK errors."""
    import openai

    messages = [{"role": "user", "content": prompt}]
    if system is not None:
        messages.insert(0, {"role": "system", "content": system})

    try:
        response = client.chat.completions.create(
            model=model,
            messages=messages,
            max_tokens=max_tokens,
        )
    except openai.NotFoundError as e:
        msg = f"Model '{model}' is not available: {e}"
        raise SchemaError.model_not_supported(msg, e) from e
    except openai.APIConnectionError as e:
        raise SchemaError.network(f"{label} unreachable: {e}", e) from e
    except openai.APIError as e:
        raise SchemaError.api(f"{label} error: {e}", e) from e

    return response.choices[0].message.content  # type: ignore[no-any-return]


class OpenAIProvider(LLMProvider):
    """LLM provider using the OpenAI API."""

    @property
    def provider_id(self) -> str:
        return "openai"

    @property
    def default_model(self) -> str:
        return "gpt-4o-mini"

    @property
    def env_var(self) -> str:
        return "OPENAI_API_KEY"

    def complete(
        self,
        prompt: str,
        model: str | None = None,
        *,
        system: str | None = None,
        max_tokens: int = DEFAULT_MAX_TOKENS,
    ) -> str:
        api_key = os.environ.get("OPENAI_API_KEY")
        if not api_key:
            msg = "OPENAI_API_KEY environment variable is required"
            raise ValueError(msg)

        try:
            import openai
        except ImportError:
            msg = (
                "openai is required for AI extraction. "
                "Install with: pip install 'jobingest[openai]'"
            )
            raise ImportError(msg) from None

        client = openai.OpenAI(api_key=api_key)
        use_model = model or self.default_model

        logger.info("Sending %d chars to OpenAI API (%s)...", len(prompt), use_model)
        return chat_complete(client, "OpenAI API", prompt, use_model, system, max_tokens)
