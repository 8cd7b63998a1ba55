"""Ollama local LLM provider (OpenAI-compatible API)."""

import logging
import os

from jobingest.ai.base import DEFAULT_MAX_TOKENS, LLMProvider
from jobingest.ai.openai import chat_complete

logger = logging.getLogger(__name__)

_OLLAMA_BASE_URL = "http://localhost:11434/v1"


class OllamaProvider(LLMProvider):
    """LLM provider using a local Ollama instance via OpenAI-compatible API."""

    @property
    def provider_id(self) -> str:
        return "ollama"

    @property
    def default_model(self) -> str:
        return "llama3"

    @property
    def env_var(self) -> None:
        return None

    def complete(
        self,
        prompt: str,
        model: str | None = None,
        *,
        system: str | None = None,
        max_tokens: int = DEFAULT_MAX_TOKENS,
    ) -> str:
        try:
            import openai
        except ImportError:
            msg = (
                "openai is required for Ollama (OpenAI-compatible API). "
                "Install with: pip install 'jobingest[openai]'"
            )
            raise ImportError(msg) from None

        base_url = os.environ.get("OLLAMA_BASE_URL", _OLLAMA_BASE_URL)
        client = openai.OpenAI(base_url=base_url, api_key="ollama")
        use_model = model or self.default_model

        logger.info("Sending %d chars to Ollama (%s)...", len(prompt), use_model)
        return chat_complete(client, "Ollama", prompt, use_model, system, max_tokens)
