"""LLM-backed structured extraction of resumes."""

import logging

from pydantic import ValidationError

from jobingest.ai import get_provider
from jobingest.ai.base import DEFAULT_MAX_TOKENS, LLMProvider, run_completion, schema_prompt
from jobingest.core.config import AIConfig
from jobingest.core.errors import SchemaError
from jobingest.resume.schema import ExtractedResumeData

logger = logging.getLogger(__name__)

RESUME_INSTRUCTIONS = (
    "You are a resume parser. Extract structured data from the resume text "
    "provided.\n\n"
    "Return ONLY a JSON object (no markdown, no explanation) using the camelCase "
    "keys of the schema below.\n"
    "- Keep dates as written (e.g. \"Jul 2021\", \"2019\", \"Present\").\n"
    "- Group skills into named categories.\n"
    "- Do not invent ids or the 'current' flag; leave them out.\n"
    "- Omit sections the resume does not contain."
)


class LLMResumeExtractor:
    """AI resume extraction over any registered LLMProvider."""

    def __init__(
        self,
        provider: LLMProvider,
        model: str | None = None,
        max_tokens: int = DEFAULT_MAX_TOKENS,
    ) -> None:
        self._provider = provider
        self._model = model
        self._max_tokens = max_tokens
        self._system = schema_prompt(RESUME_INSTRUCTIONS, ExtractedResumeData)

    @classmethod
    def from_config(cls, config: AIConfig) -> "LLMResumeExtractor":
        try:
            provider = get_provider(config.provider)
        except ValueError as e:
            raise SchemaError.configuration(str(e), e) from e
        return cls(provider, model=config.model, max_tokens=config.max_tokens)

    def extract_structured(self, document_text: str) -> ExtractedResumeData:
        """Extract a resume record from plain text.

        Raises:
            SchemaError: On provider, parse or schema-conversion failure.
        """
        payload = run_completion(
            self._provider, document_text, self._model, self._system, self._max_tokens,
        )
        if not isinstance(payload, dict):
            msg = f"Expected a JSON object, got {type(payload).__name__}"
            raise SchemaError.schema_conversion(msg)
        try:
            data = ExtractedResumeData.model_validate(payload)
        except ValidationError as e:
            msg = f"AI response does not match the resume schema: {e.error_count()} error(s)"
            raise SchemaError.schema_conversion(msg, e) from e
        logger.info(
            "AI extracted resume: %d experience, %d education entries",
            len(data.experience or []), len(data.education or []),
        )
        return data
