"""Config generator: AI extraction plus a reverse-engineered reusable config.

One AI call per ``generate``. The AI's answer is scored directly, then each
returned value is traced back to where it lives in the page (JSON-LD path,
meta tag, CSS selector) to build deterministic rules for the next visit.
Values with no traceable source get no rule.
"""

import logging
import re
from collections.abc import Callable, Iterator
from typing import Any, Protocol
from urllib.parse import urlparse

from bs4 import Tag
from pydantic import BaseModel, ConfigDict

from jobingest.core.errors import InputValidationError
from jobingest.core.schemas import (
    CompletionState,
    ExtractedJobData,
    ExtractionResult,
    ScoringResult,
)
from jobingest.extraction import jsonpath
from jobingest.extraction.extractor import (
    INT_FIELDS,
    LIST_FIELDS,
    TEXT_FIELDS,
    RuleFailure,
    apply_transforms,
    extract,
    json_value_to_text,
    parse_int,
    split_list,
)
from jobingest.extraction.html import (
    JSON_LD_SELECTOR,
    JOB_POSTING_TYPE,
    Page,
    document_text,
    element_text,
    select_one,
)
from jobingest.extraction.models import (
    CssExists,
    CssRule,
    ExtractionConfig,
    ExtractionRule,
    JsonLdRule,
    MatchPattern,
    MetaRule,
    Transform,
    UrlPattern,
)
from jobingest.extraction.scorer import score_extracted_data

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONTENT_CHARS = 60_000

# Transform chains tried, in order, when comparing page text to an AI value.
_TEXT_TRANSFORMS: tuple[list[Transform], ...] = (
    [],
    [Transform.INNER_TEXT],
    [Transform.HTML_DECODE, Transform.INNER_TEXT],
)
_NUMBER_TRANSFORMS: tuple[list[Transform], ...] = ([], [Transform.PARSE_NUMBER])

_CSS_SKIP_TAGS = frozenset({"html", "head", "body", "script", "style", "noscript", "template", "meta", "title"})
_CSS_IDENT = re.compile(r"^-?[A-Za-z_][A-Za-z0-9_-]*$")

# (candidate page text) -> transforms that make it equal the AI value, or None.
Comparator = Callable[[str], list[Transform] | None]


class AIJobExtractor(Protocol):
    """Black-box structured extraction: page text in, job record or SchemaError out."""

    def extract_structured(self, document_text: str, url: str) -> ExtractedJobData: ...


class GenerationResult(BaseModel):
    """Output of one ``ConfigGenerator.generate`` call.

    ``extraction_result`` holds the AI's data and its scoring; ``replay`` is
    the scoring of ``config`` re-applied to the same page, for diagnostics.
    ``attempts`` is currently always 1: there is no self-correction loop.
    """

    model_config = ConfigDict(frozen=True)

    config: ExtractionConfig
    extraction_result: ExtractionResult
    replay: ScoringResult
    attempts: int = 1

    @property
    def completion_state(self) -> CompletionState:
        return self.extraction_result.completion_state

    @property
    def is_successful(self) -> bool:
        return self.completion_state >= CompletionState.SUFFICIENT


def _normalize(text: str) -> str:
    return " ".join(text.split()).casefold()


def _text_comparator(expected: str) -> Comparator:
    target = _normalize(expected)

    def compare(candidate: str) -> list[Transform] | None:
        for chain in _TEXT_TRANSFORMS:
            if chain and "<" not in candidate and "&" not in candidate:
                break
            try:
                if _normalize(apply_transforms(candidate, chain)) == target:
                    return list(chain)
            except RuleFailure:
                continue
        return None

    return compare


def _number_comparator(expected: int) -> Comparator:
    def compare(candidate: str) -> list[Transform] | None:
        for chain in _NUMBER_TRANSFORMS:
            try:
                if parse_int(apply_transforms(candidate, chain)) == expected:
                    return list(chain)
            except RuleFailure:
                continue
        return None

    return compare


def _list_comparator(expected: list[str]) -> Comparator:
    target = [_normalize(item) for item in expected]

    def compare(candidate: str) -> list[Transform] | None:
        for chain in _TEXT_TRANSFORMS[:2]:
            if chain and "<" not in candidate:
                break
            try:
                items = split_list(apply_transforms(candidate, chain)) or []
            except RuleFailure:
                continue
            if [_normalize(item) for item in items] == target:
                return list(chain)
        return None

    return compare


def _comparators(data: ExtractedJobData) -> Iterator[tuple[str, Comparator]]:
    """(camelCase field, comparator) for each value the AI returned."""
    values = data.model_dump(by_alias=True)
    if values.get("title", "").strip():
        yield "title", _text_comparator(values["title"])
    for name in TEXT_FIELDS:
        value = values.get(name)
        if isinstance(value, str) and value.strip():
            yield name, _text_comparator(value)
    for name in INT_FIELDS:
        value = values.get(name)
        if isinstance(value, int):
            yield name, _number_comparator(value)
    for name in LIST_FIELDS:
        value = values.get(name)
        if value:
            yield name, _list_comparator(value)


def _json_ld_rule(posting: dict[str, Any] | None, compare: Comparator) -> JsonLdRule | None:
    if posting is None:
        return None

    def transforms_for(node: Any) -> list[Transform] | None:
        if isinstance(node, dict):
            return None
        try:
            return compare(json_value_to_text(node))
        except RuleFailure:
            return None

    for path in jsonpath.find_paths(posting, lambda node: transforms_for(node) is not None):
        transforms = transforms_for(jsonpath.get(posting, path))
        return JsonLdRule(path=path, transforms=transforms or [])
    return None


def _meta_rule(page: Page, compare: Comparator) -> MetaRule | None:
    for tag in page.soup.find_all("meta"):
        content = tag.get("content")
        key = tag.get("name") or tag.get("property")
        if not isinstance(content, str) or not isinstance(key, str):
            continue
        transforms = compare(content)
        if transforms is not None:
            return MetaRule(name=key, transforms=transforms)
    return None


def _selector_candidates(element: Tag) -> Iterator[str]:
    name = element.name
    element_id = element.get("id")
    if isinstance(element_id, str) and _CSS_IDENT.match(element_id):
        yield f"{name}#{element_id}"
    classes = element.get("class") or []
    if classes and all(_CSS_IDENT.match(c) for c in classes):
        yield name + "".join(f".{c}" for c in classes)
    yield name


def _css_rule(page: Page, compare: Comparator) -> CssRule | None:
    matches: list[tuple[Tag, list[Transform]]] = []
    for element in page.soup.find_all(True):
        if element.name in _CSS_SKIP_TAGS:
            continue
        transforms = compare(element_text(element))
        if transforms is not None:
            matches.append((element, transforms))

    matched_ids = {id(el) for el, _ in matches}
    for element, transforms in matches:
        # Prefer the innermost element carrying the text.
        if any(id(d) in matched_ids for d in element.descendants if isinstance(d, Tag)):
            continue
        for selector in _selector_candidates(element):
            first = select_one(page.soup, selector)
            if first is not None and compare(element_text(first)) is not None:
                return CssRule(selector=selector, transforms=transforms)
    return None


def derive_match_patterns(page: Page, host: str) -> list[MatchPattern]:
    """URL host pattern, plus a JobPosting JSON-LD marker when the page has one."""
    bare_host = host[4:] if host.startswith("www.") else host
    patterns: list[MatchPattern] = [
        UrlPattern(pattern=rf"^https?://(?:www\.)?{re.escape(bare_host)}(?:[:/?#]|$)")
    ]
    if page.has_job_posting:
        patterns.append(CssExists(selector=JSON_LD_SELECTOR, content_contains=JOB_POSTING_TYPE))
    return patterns


def derive_rules(page: Page, data: ExtractedJobData) -> dict[str, list[ExtractionRule]]:
    """Trace each AI value to JSON-LD, meta and CSS sources, in that order of preference."""
    posting = page.job_posting if page.has_job_posting else None
    rules: dict[str, list[ExtractionRule]] = {}
    for field_name, compare in _comparators(data):
        candidates = (
            _json_ld_rule(posting, compare),
            _meta_rule(page, compare),
            _css_rule(page, compare),
        )
        field_rules = [rule for rule in candidates if rule is not None]
        if field_rules:
            rules[field_name] = field_rules
        else:
            logger.debug("No traceable source for field '%s'", field_name)
    return rules


def url_host(url: str) -> str:
    """Lower-cased host of ``url``; InputValidationError if it has none."""
    try:
        host = urlparse(url.strip()).hostname
    except ValueError as e:
        msg = f"Invalid URL: {url!r}"
        raise InputValidationError(msg) from e
    if not host:
        msg = f"URL has no host, cannot derive a match pattern: {url!r}"
        raise InputValidationError(msg)
    return host


class ConfigGenerator:
    """Produce AI-extracted job data and a reusable config for the page.

    Does not persist; the caller inserts the config if it wants it reused.
    """

    def __init__(
        self,
        ai_extractor: AIJobExtractor,
        max_content_chars: int = DEFAULT_MAX_CONTENT_CHARS,
    ) -> None:
        self._ai = ai_extractor
        self._max_content_chars = max_content_chars

    def generate(self, html: str, url: str) -> GenerationResult:
        """Run one AI extraction and derive a config from it.

        Raises:
            InputValidationError: ``url`` has no host.
            SchemaError: the AI extraction failed (propagated, never retried).
        """
        host = url_host(url)
        page = Page(html, url)

        text = document_text(html, self._max_content_chars)
        logger.info("Generating config for %s (%d chars of page text)", url, len(text))
        data = self._ai.extract_structured(text, url)

        scoring = score_extracted_data(data)
        rules = derive_rules(page, data)
        suffix = "JSON-LD" if page.has_job_posting else "HTML"
        config = ExtractionConfig.create(
            name=f"{host} - {suffix}",
            match_patterns=derive_match_patterns(page, host),
            extract_rules=rules,
        )
        replay = extract(html, url, config).scoring

        logger.info(
            "Generated config '%s': %d field rules, AI %s, replay %s",
            config.name, len(rules), scoring.summary, replay.summary,
        )
        return GenerationResult(
            config=config,
            extraction_result=ExtractionResult(data=data, scoring=scoring),
            replay=replay,
        )
