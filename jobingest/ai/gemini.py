"""Google Gemini LLM provider (google-genai SDK)."""

import logging
import os

from jobingest.ai.base import DEFAULT_MAX_TOKENS, LLMProvider
from jobingest.core.errors import SchemaError

logger = logging.getLogger(__name__)


class GeminiProvider(LLMProvider):
    """LLM provider using the Google Gemini API (google-genai SDK)."""

    @property
    def provider_id(self) -> str:
        return "gemini"

    @property
    def default_model(self) -> str:
        return "gemini-2.5-flash"

    @property
    def env_var(self) -> str:
        return "GOOGLE_API_KEY"

    def complete(
        self,
        prompt: str,
        model: str | None = None,
        *,
        system: str | None = None,
        max_tokens: int = DEFAULT_MAX_TOKENS,
    ) -> str:
        api_key = os.environ.get("GOOGLE_API_KEY")
        if not api_key:
            msg = "GOOGLE_API_KEY environment variable is required"
            raise ValueError(msg)

        try:
            from google import genai
            from google.genai import errors as genai_errors
            from google.genai import types as genai_types
        except ImportError:
            msg = (
                "google-genai is required for AI extraction. "
                "Install with: pip install 'jobingest[gemini]'"
            )
            raise ImportError(msg) from None

        use_model = model or self.default_model

        logger.info("Sending %d chars to Gemini API (%s)...", len(prompt), use_model)
        client = genai.Client(api_key=api_key)
        try:
            response = client.models.generate_content(
                model=use_model,
                contents=prompt,
                config=genai_types.GenerateContentConfig(
                    system_instruction=system,
                    max_output_tokens=max_tokens,
                ),
            )
        except genai_errors.APIError as e:
            if e.code == 404:
                msg = f"Model '{use_model}' is not available: {e}"
                raise SchemaError.model_not_supported(msg, e) from e
            raise SchemaError.api(f"Gemini API error: {e}", e) from e

        return response.text  # type: ignore[no-any-return]
