"""Core data models for job extraction results."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Frozen model serialized with camelCase keys; accepts either spelling on input."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    def to_json_dict(self) -> dict:
        """Dump with camelCase keys and without unset optional fields."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class CompletionState(str, Enum):
    """Discrete quality tier of an extraction, ordered FAILED < ... < COMPLETE."""

    FAILED = "failed"
    MINIMAL = "minimal"
    PARTIAL = "partial"
    SUFFICIENT = "sufficient"
    COMPLETE = "complete"

    @property
    def rank(self) -> int:
        return _STATE_ORDER.index(self)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, CompletionState):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, CompletionState):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, CompletionState):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, CompletionState):
            return NotImplemented
        return self.rank >= other.rank

    @classmethod
    def parse(cls, text: str | None) -> "CompletionState | None":
        """Parse a stored state string; unknown or legacy values give None."""
        if not text:
            return None
        try:
            return cls(text.strip().lower())
        except ValueError:
            return None


_STATE_ORDER: tuple[CompletionState, ...] = (
    CompletionState.FAILED,
    CompletionState.MINIMAL,
    CompletionState.PARTIAL,
    CompletionState.SUFFICIENT,
    CompletionState.COMPLETE,
)


class ExtractedJobData(CamelModel):
    """Canonical job record. Only ``title`` is required."""

    title: str
    company_name: str | None = None
    description: str | None = None
    location: str | None = None
    job_type: str | None = None
    experience_level: str | None = None
    education_level: str | None = None
    salary_min: int | None = None
    salary_max: int | None = None
    salary_currency: str | None = None
    qualifications: list[str] | None = None
    preferred_qualifications: list[str] | None = None
    responsibilities: list[str] | None = None
    benefits: list[str] | None = None
    category: str | None = None
    application_url: str | None = None
    is_remote: bool | None = None
    posted_date: str | None = None
    closing_date: str | None = None


class ScoringResult(BaseModel):
    """Output of the completion scorer. Derived, never persisted."""

    model_config = ConfigDict(frozen=True)

    state: CompletionState
    score: float = Field(ge=0.0, le=1.0)
    earned_points: int
    max_points: int
    present_fields: list[str] = Field(default_factory=list)
    missing_required: list[str] = Field(default_factory=list)
    missing_optional: list[str] = Field(default_factory=list)

    @property
    def score_percent(self) -> str:
        return f"{self.score * 100:.1f}%"

    @property
    def summary(self) -> str:
        return f"{self.state.value} ({self.score_percent}, {self.earned_points}/{self.max_points} points)"

    @property
    def has_required_fields(self) -> bool:
        return not self.missing_required


class ExtractionResult(BaseModel):
    """Extracted job data paired with its scoring.

    ``failed_rules`` maps field name to the reasons each rule yielded nothing;
    it is diagnostic only.
    """

    model_config = ConfigDict(frozen=True)

    data: ExtractedJobData
    scoring: ScoringResult
    failed_rules: dict[str, list[str]] = Field(default_factory=dict)

    @property
    def completion_state(self) -> CompletionState:
        return self.scoring.state
