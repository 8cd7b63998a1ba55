"""Weighted-field completion scoring for extracted job data.

Score range: 0.0-1.0, discretized into a CompletionState. Missing any
required field is FAILED regardless of the numeric score.
"""

import logging
from collections.abc import Mapping
from types import MappingProxyType

from pydantic.alias_generators import to_snake

from jobingest.core.schemas import CompletionState, ExtractedJobData, ScoringResult

logger = logging.getLogger(__name__)

FIELD_WEIGHTS: Mapping[str, int] = MappingProxyType(
    {
        "title": 20,
        "companyName": 15,
        "description": 25,
        "location": 10,
        "salaryMin": 5,
        "salaryMax": 5,
        "qualifications": 5,
        "responsibilities": 5,
        "benefits": 5,
        "jobType": 3,
        "experienceLevel": 2,
    }
)

REQUIRED_FIELDS: frozenset[str] = frozenset({"title", "companyName", "description"})

MIN_FIELD_LENGTH = 5

MAX_SCORE = sum(FIELD_WEIGHTS.values())

# (minimum score, state), checked top-down once required fields are present.
_THRESHOLDS: tuple[tuple[float, CompletionState], ...] = (
    (0.90, CompletionState.COMPLETE),
    (0.70, CompletionState.SUFFICIENT),
    (0.50, CompletionState.PARTIAL),
)


def is_present(value: str | None) -> bool:
    return value is not None and len(value.strip()) >= MIN_FIELD_LENGTH


def score(fields: Mapping[str, str | None]) -> ScoringResult:
    """Score a field map (camelCase field name -> raw string value).

    Unknown field names are ignored.
    """
    present = {
        name for name, value in fields.items() if name in FIELD_WEIGHTS and is_present(value)
    }
    earned = sum(FIELD_WEIGHTS[name] for name in present)
    ratio = earned / MAX_SCORE

    missing_required = sorted(REQUIRED_FIELDS - present)
    missing_optional = sorted(set(FIELD_WEIGHTS) - REQUIRED_FIELDS - present)

    if missing_required:
        state = CompletionState.FAILED
    else:
        state = CompletionState.MINIMAL
        for threshold, tier in _THRESHOLDS:
            if ratio >= threshold:
                state = tier
                break

    return ScoringResult(
        state=state,
        score=ratio,
        earned_points=earned,
        max_points=MAX_SCORE,
        present_fields=sorted(present),
        missing_required=missing_required,
        missing_optional=missing_optional,
    )


def _as_text(value: object) -> str | None:
    if value is None:
        return None
    if isinstance(value, list):
        return ", ".join(str(v) for v in value) if value else None
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def score_extracted_data(data: ExtractedJobData) -> ScoringResult:
    """Score a job record: lists joined with ", ", salaries as integers."""
    fields = {name: _as_text(getattr(data, to_snake(name))) for name in FIELD_WEIGHTS}
    return score(fields)
