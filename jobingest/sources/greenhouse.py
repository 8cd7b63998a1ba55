"""Greenhouse job board API payloads mapped straight to job records.

Greenhouse publishes structured JSON for every posting, so no extraction
config or AI call is needed. The payload parsed here is the detail endpoint:

    GET boards-api.greenhouse.io/v1/boards/{board}/jobs/{id}?pay_transparency=true

Fields the API does not carry (job type, qualifications, dates, ...) stay unset.
"""

import html
import json
import logging
from typing import Any

from pydantic import BaseModel, ConfigDict

from jobingest.core.errors import StepError, StepErrorKind
from jobingest.core.schemas import CompletionState, ExtractedJobData, ScoringResult
from jobingest.extraction import jsonpath
from jobingest.extraction.html import fragment_text
from jobingest.extraction.scorer import score_extracted_data
from jobingest.normalize import normalize_job
from jobingest.pipeline.framework import PipelineContext

logger = logging.getLogger(__name__)

PARSE_STEP = "GreenhouseJobParser"


def _cents_to_units(cents: int | None) -> int | None:
    return cents // 100 if cents is not None else None


def job_from_payload(payload: Any, company_name: str | None = None) -> ExtractedJobData:
    """Map a detail-endpoint response to a normalized job record.

    ``content`` arrives entity-escaped (``&lt;p&gt;``); it is unescaped and
    reduced to text. Salaries come from the first pay range, in whole units.
    Remote is inferred from the location name.

    Raises:
        ValueError: the payload has no title.
    """
    title = jsonpath.get_string(payload, "$.title")
    if not title or not title.strip():
        msg = "Greenhouse job has no title"
        raise ValueError(msg)

    content = jsonpath.get_string(payload, "$.content")
    location = jsonpath.get_string(payload, "$.location.name")
    pay_ranges = jsonpath.get_array(payload, "$.pay_input_ranges") or []
    pay = pay_ranges[0] if pay_ranges else {}

    data = ExtractedJobData(
        title=title,
        company_name=company_name,
        description=fragment_text(html.unescape(content)) if content else None,
        location=location,
        salary_min=_cents_to_units(jsonpath.get_int(pay, "$.min_cents")),
        salary_max=_cents_to_units(jsonpath.get_int(pay, "$.max_cents")),
        salary_currency=jsonpath.get_string(pay, "$.currency_type"),
        application_url=jsonpath.get_string(payload, "$.absolute_url"),
        is_remote="remote" in location.lower() if location else None,
    )
    return normalize_job(data)


class GreenhouseJob(BaseModel):
    """A parsed Greenhouse posting with its completion scoring."""

    model_config = ConfigDict(frozen=True)

    source_url: str
    data: ExtractedJobData
    scoring: ScoringResult

    @property
    def completion_state(self) -> CompletionState:
        return self.scoring.state


def parse_greenhouse_job(
    raw_json: str,
    source_url: str | None,
    ctx: PipelineContext,
    company_name: str | None = None,
) -> GreenhouseJob:
    """Parse a detail-endpoint body as a pipeline step.

    ``source_url`` defaults to the posting's ``absolute_url``.

    Raises:
        StepError: EXTRACTION for a body that is not a Greenhouse job.
    """
    logger.info("[%s] Parsing Greenhouse job JSON", ctx.run_id)
    try:
        payload = json.loads(raw_json)
        data = job_from_payload(payload, company_name)
    except ValueError as e:
        msg = f"Failed to parse Greenhouse JSON: {e}"
        raise StepError(StepErrorKind.EXTRACTION, msg, PARSE_STEP, e) from e

    scoring = score_extracted_data(data)
    logger.info("[%s] Parsed Greenhouse job: %s (%s)", ctx.run_id, data.title, scoring.summary)
    return GreenhouseJob(source_url=source_url or data.application_url or "", data=data, scoring=scoring)
