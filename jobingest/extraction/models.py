"""Extraction config models: match patterns, extraction rules, and the config itself.

Patterns and rules are closed tagged unions (pydantic discriminated unions on
``patternType`` / ``source``). Configs are immutable; a rule change produces a
new config with an incremented version.
"""

import hashlib
import json
from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import Field, TypeAdapter

from jobingest.core.schemas import CamelModel

# --- Match patterns ---


class CssExists(CamelModel):
    """At least one element matches ``selector``; optionally one whose inner HTML
    contains ``content_contains``."""

    pattern_type: Literal["css_exists"] = "css_exists"
    selector: str
    content_contains: str | None = None


class UrlPattern(CamelModel):
    """The page URL matches the regex ``pattern`` (searched, not anchored)."""

    pattern_type: Literal["url_pattern"] = "url_pattern"
    pattern: str


class ContentContains(CamelModel):
    """The raw HTML contains the literal ``content_contains``."""

    pattern_type: Literal["content_contains"] = "content_contains"
    content_contains: str


MatchPattern = Annotated[
    CssExists | UrlPattern | ContentContains,
    Field(discriminator="pattern_type"),
]


# --- Extraction rules ---


class Transform(str, Enum):
    """Post-extraction transforms, applied in order."""

    HTML_DECODE = "html_decode"
    INNER_TEXT = "inner_text"
    PARSE_NUMBER = "parse_number"


class JsonLdRule(CamelModel):
    """Value at a JSONPath-like ``path`` inside the page's JobPosting JSON-LD."""

    source: Literal["jsonld"] = "jsonld"
    path: str
    transforms: list[Transform] = Field(default_factory=list)


class CssRule(CamelModel):
    """Text (or ``attribute``) of the first element matching ``selector``."""

    source: Literal["css"] = "css"
    selector: str
    attribute: str | None = None
    transforms: list[Transform] = Field(default_factory=list)


class MetaRule(CamelModel):
    """``content`` of ``<meta name=...>`` or ``<meta property=...>``."""

    source: Literal["meta"] = "meta"
    name: str
    transforms: list[Transform] = Field(default_factory=list)


class RegexRule(CamelModel):
    """First capture group of ``pattern`` over an element's text (or the page text)."""

    source: Literal["regex"] = "regex"
    pattern: str
    selector: str | None = None
    transforms: list[Transform] = Field(default_factory=list)


ExtractionRule = Annotated[
    JsonLdRule | CssRule | MetaRule | RegexRule,
    Field(discriminator="source"),
]

_PATTERNS_ADAPTER: TypeAdapter[list[MatchPattern]] = TypeAdapter(list[MatchPattern])
_RULES_ADAPTER: TypeAdapter[dict[str, list[ExtractionRule]]] = TypeAdapter(
    dict[str, list[ExtractionRule]]
)


def compute_match_hash(patterns: list[MatchPattern]) -> str:
    """SHA-256 of the canonical pattern list. Input order does not matter."""
    canonical = sorted(
        (p.to_json_dict() for p in patterns),
        key=lambda d: (
            d.get("patternType", ""),
            d.get("selector", ""),
            d.get("pattern", ""),
            d.get("contentContains", ""),
        ),
    )
    payload = json.dumps(canonical, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


class ExtractionConfig(CamelModel):
    """A reusable strategy for extracting job data from a class of pages.

    Frozen. A rule change builds the next version via ``with_rules``.
    """

    id: str | None = None
    name: str
    version: int = Field(default=1, ge=1)
    match_patterns: list[MatchPattern]
    match_hash: str
    extract_rules: dict[str, list[ExtractionRule]] = Field(default_factory=dict)
    created_at: str | None = None
    updated_at: str | None = None

    @classmethod
    def create(
        cls,
        name: str,
        match_patterns: list[MatchPattern],
        extract_rules: dict[str, list[ExtractionRule]],
    ) -> "ExtractionConfig":
        """Build a fresh, unpersisted config with its match hash computed."""
        return cls(
            name=name,
            match_patterns=list(match_patterns),
            match_hash=compute_match_hash(match_patterns),
            extract_rules=dict(extract_rules),
        )

    def with_rules(self, extract_rules: dict[str, list[ExtractionRule]]) -> "ExtractionConfig":
        """Return the next version of this config carrying new rules."""
        return self.model_copy(
            update={
                "id": None,
                "version": self.version + 1,
                "extract_rules": dict(extract_rules),
                "created_at": None,
                "updated_at": None,
            }
        )

    def to_record(self) -> dict[str, Any]:
        """Storage shape: snake_case columns, patterns and rules as JSON-ready trees."""
        record: dict[str, Any] = {
            "name": self.name,
            "version": self.version,
            "match_patterns": _PATTERNS_ADAPTER.dump_python(
                self.match_patterns, mode="json", by_alias=True, exclude_none=True
            ),
            "match_hash": self.match_hash,
            "extract_rules": _RULES_ADAPTER.dump_python(
                self.extract_rules, mode="json", by_alias=True, exclude_none=True
            ),
        }
        if self.id is not None:
            record["id"] = self.id
        if self.created_at is not None:
            record["created_at"] = self.created_at
        if self.updated_at is not None:
            record["updated_at"] = self.updated_at
        return record

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "ExtractionConfig":
        """Inverse of ``to_record``. Raises pydantic ValidationError on bad shapes."""
        return cls(
            id=record.get("id"),
            name=record["name"],
            version=record.get("version") or 1,
            match_patterns=_PATTERNS_ADAPTER.validate_python(record["match_patterns"]),
            match_hash=record["match_hash"],
            extract_rules=_RULES_ADAPTER.validate_python(record.get("extract_rules") or {}),
            created_at=record.get("created_at"),
            updated_at=record.get("updated_at"),
        )
