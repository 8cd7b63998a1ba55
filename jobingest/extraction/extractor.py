"""Deterministic extractor: apply a config's rules to a page, no AI involved.

Per field, rules are tried in order and the first non-blank value wins.
Rule failures (missing element, bad selector, bad regex, unresolvable path)
are recorded in ``ExtractionResult.failed_rules`` and the field is left
absent; ``extract`` itself never raises.
"""

import html as html_lib
import json
import logging
import re
from collections.abc import Mapping
from typing import Any, assert_never

from jobingest.core.schemas import ExtractedJobData, ExtractionResult
from jobingest.extraction import jsonpath
from jobingest.extraction.html import (
    Page,
    element_text,
    fragment_text,
    meta_content,
    select_one,
)
from jobingest.extraction.models import (
    CssRule,
    ExtractionConfig,
    ExtractionRule,
    JsonLdRule,
    MetaRule,
    RegexRule,
    Transform,
)
from jobingest.extraction.scorer import FIELD_WEIGHTS, score

logger = logging.getLogger(__name__)

UNKNOWN_TITLE = "Unknown Title"

TEXT_FIELDS = (
    "companyName",
    "description",
    "location",
    "jobType",
    "experienceLevel",
    "educationLevel",
    "salaryCurrency",
    "category",
    "applicationUrl",
    "postedDate",
    "closingDate",
)
INT_FIELDS = ("salaryMin", "salaryMax")
LIST_FIELDS = ("qualifications", "preferredQualifications", "responsibilities", "benefits")


class RuleFailure(Exception):
    """A single extraction rule produced no value."""


def json_value_to_text(value: Any) -> str:
    """Render a JSON value as rule output text. ``null`` is a failure."""
    if value is None:
        msg = "value is null"
        raise RuleFailure(msg)
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return str(int(value)) if value.is_integer() else str(value)
    if isinstance(value, list):
        return ", ".join(
            json_value_to_text(item) for item in value if item is not None
        )
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"))


def apply_transforms(value: str, transforms: list[Transform]) -> str:
    for transform in transforms:
        if transform is Transform.HTML_DECODE:
            value = html_lib.unescape(value)
        elif transform is Transform.INNER_TEXT:
            value = fragment_text(value)
        elif transform is Transform.PARSE_NUMBER:
            value = re.sub(r"[^0-9.]", "", value)
            if not value:
                msg = "no number in value"
                raise RuleFailure(msg)
        else:
            assert_never(transform)
    return value


def _raw_rule_value(page: Page, rule: ExtractionRule) -> str:
    if isinstance(rule, JsonLdRule):
        block = page.job_posting
        if block is None:
            msg = "no JSON-LD block on page"
            raise RuleFailure(msg)
        value = jsonpath.get(block, rule.path)
        if value is None:
            msg = f"path {rule.path!r} not found"
            raise RuleFailure(msg)
        return json_value_to_text(value)

    if isinstance(rule, CssRule):
        element = select_one(page.soup, rule.selector)
        if element is None:
            msg = f"no element matches {rule.selector!r}"
            raise RuleFailure(msg)
        if rule.attribute is None:
            return element_text(element)
        attr = element.get(rule.attribute)
        if attr is None:
            msg = f"element has no attribute {rule.attribute!r}"
            raise RuleFailure(msg)
        return " ".join(attr) if isinstance(attr, list) else str(attr)

    if isinstance(rule, MetaRule):
        content = meta_content(page.soup, rule.name)
        if content is None:
            msg = f"no meta tag {rule.name!r}"
            raise RuleFailure(msg)
        return content

    if isinstance(rule, RegexRule):
        try:
            regex = re.compile(rule.pattern)
        except re.error as e:
            msg = f"invalid regex {rule.pattern!r}: {e}"
            raise RuleFailure(msg) from e
        if rule.selector is not None:
            element = select_one(page.soup, rule.selector)
            if element is None:
                msg = f"no element matches {rule.selector!r}"
                raise RuleFailure(msg)
            text = element_text(element)
        else:
            text = page.text
        match = regex.search(text)
        if match is None:
            msg = f"pattern {rule.pattern!r} not found"
            raise RuleFailure(msg)
        found = match.group(1) if regex.groups else match.group(0)
        if found is None:
            msg = f"pattern {rule.pattern!r} capture group did not participate"
            raise RuleFailure(msg)
        return found

    assert_never(rule)


def apply_rule(page: Page, rule: ExtractionRule) -> str:
    """Apply one rule, returning a trimmed non-empty value or raising RuleFailure."""
    value = apply_transforms(_raw_rule_value(page, rule), rule.transforms).strip()
    if not value:
        msg = "empty value"
        raise RuleFailure(msg)
    return value


def extract_fields(
    page: Page,
    rules: Mapping[str, list[ExtractionRule]],
) -> tuple[dict[str, str], dict[str, list[str]]]:
    """Run every field's rules; return (field values, per-field failure reasons)."""
    values: dict[str, str] = {}
    failed: dict[str, list[str]] = {}
    for field_name, field_rules in rules.items():
        reasons: list[str] = []
        for rule in field_rules:
            try:
                values[field_name] = apply_rule(page, rule)
                break
            except RuleFailure as e:
                reasons.append(f"{rule.source}: {e}")
        else:
            if reasons:
                logger.debug("Field '%s' not extracted: %s", field_name, "; ".join(reasons))
        if reasons:
            failed[field_name] = reasons
    return values, failed


def parse_int(value: str | None) -> int | None:
    """``"100000"`` and ``"100000.0"`` both give 100000; anything else None."""
    if value is None:
        return None
    text = value.strip()
    try:
        return int(text)
    except ValueError:
        pass
    try:
        return int(float(text))
    except (ValueError, OverflowError):
        return None


def split_list(value: str | None) -> list[str] | None:
    if value is None:
        return None
    items = [item.strip() for item in value.split(",")]
    items = [item for item in items if item]
    return items or None


def parse_remote(value: str | None) -> bool | None:
    if value is None:
        return None
    lowered = value.strip().lower()
    return lowered in ("true", "telecommute") or "remote" in lowered


def build_job_data(fields: Mapping[str, str]) -> ExtractedJobData:
    """Assemble a job record from extracted field text (camelCase keys)."""
    record: dict[str, Any] = {"title": fields.get("title") or UNKNOWN_TITLE}
    for name in TEXT_FIELDS:
        record[name] = fields.get(name)
    for name in INT_FIELDS:
        record[name] = parse_int(fields.get(name))
    for name in LIST_FIELDS:
        record[name] = split_list(fields.get(name))
    record["isRemote"] = parse_remote(fields.get("isRemote"))
    return ExtractedJobData.model_validate(record)


def extract(html: str, url: str, config: ExtractionConfig) -> ExtractionResult:
    """Apply ``config`` to the page and score the result.

    Scoring looks at the raw extracted text, so a placeholder title still
    counts as missing.
    """
    page = Page(html, url)
    fields, failed = extract_fields(page, config.extract_rules)
    scoring = score({name: fields.get(name) for name in FIELD_WEIGHTS})
    logger.debug(
        "Config '%s' v%d on %s: %s", config.name, config.version, url, scoring.summary,
    )
    return ExtractionResult(data=build_job_data(fields), scoring=scoring, failed_rules=failed)
