"""LLM-backed structured extraction of job postings."""

import logging
import re
from typing import Any

from pydantic import ValidationError

from jobingest.ai import get_provider
from jobingest.ai.base import DEFAULT_MAX_TOKENS, LLMProvider, run_completion, schema_prompt
from jobingest.core.config import AIConfig
from jobingest.core.errors import SchemaError
from jobingest.core.schemas import ExtractedJobData
from jobingest.extraction.extractor import INT_FIELDS, LIST_FIELDS, parse_int, split_list

logger = logging.getLogger(__name__)

JOB_INSTRUCTIONS = (
    "You extract structured data from job posting pages.\n\n"
    "Return ONLY a JSON object (no markdown, no explanation) using the camelCase "
    "keys of the schema below. Copy values verbatim from the page wherever "
    "possible; do not paraphrase titles, company names or locations.\n"
    "- title, companyName and description are required.\n"
    "- salaryMin/salaryMax are integers in the posting's currency "
    "(salaryCurrency as an ISO code, e.g. USD).\n"
    "- qualifications, preferredQualifications, responsibilities and benefits "
    "are lists of short strings.\n"
    "- isRemote is true only if the posting says the role is remote.\n"
    "Omit any field the page does not state."
)


def _coerce_payload(payload: dict[str, Any]) -> dict[str, Any]:
    """Loosen common LLM shape slips: "$120,000" salaries, comma-joined lists, nulls."""
    cleaned = {k: v for k, v in payload.items() if v is not None}
    for name in INT_FIELDS:
        value = cleaned.get(name)
        if isinstance(value, str):
            parsed = parse_int(re.sub(r"[^0-9.]", "", value) or None)
            if parsed is None:
                cleaned.pop(name)
            else:
                cleaned[name] = parsed
    for name in LIST_FIELDS:
        value = cleaned.get(name)
        if isinstance(value, str):
            cleaned[name] = split_list(value)
    return cleaned


class LLMJobExtractor:
    """AI job extraction over any registered LLMProvider."""

    def __init__(
        self,
        provider: LLMProvider,
        model: str | None = None,
        max_tokens: int = DEFAULT_MAX_TOKENS,
    ) -> None:
        self._provider = provider
        self._model = model
        self._max_tokens = max_tokens
        self._system = schema_prompt(JOB_INSTRUCTIONS, ExtractedJobData)

    @classmethod
    def from_config(cls, config: AIConfig) -> "LLMJobExtractor":
        try:
            provider = get_provider(config.provider)
        except ValueError as e:
            raise SchemaError.configuration(str(e), e) from e
        return cls(provider, model=config.model, max_tokens=config.max_tokens)

    def extract_structured(self, document_text: str, url: str) -> ExtractedJobData:
        """Extract a job record from page text.

        Raises:
            SchemaError: On provider, parse or schema-conversion failure.
        """
        prompt = f"Job posting URL: {url}\n\n{document_text}"
        payload = run_completion(
            self._provider, prompt, self._model, self._system, self._max_tokens,
        )
        if not isinstance(payload, dict):
            msg = f"Expected a JSON object, got {type(payload).__name__}"
            raise SchemaError.schema_conversion(msg)
        try:
            data = ExtractedJobData.model_validate(_coerce_payload(payload))
        except ValidationError as e:
            msg = f"AI response does not match the job schema: {e.error_count()} error(s)"
            raise SchemaError.schema_conversion(msg, e) from e
        logger.info("AI extracted job '%s' from %s", data.title, url)
        return data
