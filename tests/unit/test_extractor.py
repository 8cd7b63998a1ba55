"""Tests for the deterministic extractor: rule sources, transforms, fallbacks."""

from pathlib import Path

import pytest

from jobingest.core.schemas import CompletionState
from jobingest.extraction.extractor import (
    UNKNOWN_TITLE,
    RuleFailure,
    apply_rule,
    apply_transforms,
    build_job_data,
    extract,
    json_value_to_text,
    parse_int,
    parse_remote,
    split_list,
)
from jobingest.extraction.html import Page
from jobingest.extraction.models import (
    CssRule,
    ExtractionConfig,
    ExtractionRule,
    JsonLdRule,
    MetaRule,
    RegexRule,
    Transform,
    UrlPattern,
)

FIXTURES_DIR = Path(__file__).parent.parent / "fixtures"
URL = "https://jobs.acme.com/postings/123"


@pytest.fixture()
def html() -> str:
    return (FIXTURES_DIR / "job_jsonld.html").read_text()


@pytest.fixture()
def page(html: str) -> Page:
    return Page(html, URL)


def _config(rules: dict[str, list[ExtractionRule]]) -> ExtractionConfig:
    return ExtractionConfig.create(
        name="acme", match_patterns=[UrlPattern(pattern="acme")], extract_rules=rules,
    )


# ---------------------------------------------------------------------------
# Value helpers
# ---------------------------------------------------------------------------


class TestJsonValueToText:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("text", "text"),
            (True, "true"),
            (False, "false"),
            (70000, "70000"),
            (70000.0, "70000"),
            (12.5, "12.5"),
            (["a", None, 3], "a, 3"),
            ({"name": "Acme"}, '{"name":"Acme"}'),
        ],
    )
    def test_render(self, value: object, expected: str) -> None:
        assert json_value_to_text(value) == expected

    def test_null_is_failure(self) -> None:
        with pytest.raises(RuleFailure):
            json_value_to_text(None)


class TestTransforms:
    def test_html_decode(self) -> None:
        assert apply_transforms("Tom &amp; Jerry", [Transform.HTML_DECODE]) == "Tom & Jerry"

    def test_inner_text(self) -> None:
        assert apply_transforms("<p>Build <b>things</b></p>", [Transform.INNER_TEXT]) == "Build things"

    def test_chain_order(self) -> None:
        raw = "&lt;p&gt;Hello&lt;/p&gt;"
        assert apply_transforms(raw, [Transform.HTML_DECODE, Transform.INNER_TEXT]) == "Hello"

    def test_parse_number(self) -> None:
        assert apply_transforms("$120,000/yr", [Transform.PARSE_NUMBER]) == "120000"

    def test_parse_number_without_digits_fails(self) -> None:
        with pytest.raises(RuleFailure):
            apply_transforms("competitive", [Transform.PARSE_NUMBER])


class TestParsers:
    def test_parse_int(self) -> None:
        assert parse_int("100000") == 100000
        assert parse_int(" 100000.0 ") == 100000
        assert parse_int("abc") is None
        assert parse_int(None) is None

    def test_split_list(self) -> None:
        assert split_list("Python, SQL , ,Go") == ["Python", "SQL", "Go"]
        assert split_list(" , ") is None
        assert split_list(None) is None

    @pytest.mark.parametrize(
        ("value", "expected"),
        [("true", True), ("TELECOMMUTE", True), ("Fully remote", True), ("On-site", False), (None, None)],
    )
    def test_parse_remote(self, value: str | None, expected: bool | None) -> None:
        assert parse_remote(value) is expected

    def test_build_job_data_defaults_title(self) -> None:
        data = build_job_data({"salaryMin": "70000", "benefits": "Gym, Pension"})
        assert data.title == UNKNOWN_TITLE
        assert data.salary_min == 70000
        assert data.benefits == ["Gym", "Pension"]


# ---------------------------------------------------------------------------
# Rule sources
# ---------------------------------------------------------------------------


class TestApplyRule:
    def test_json_ld_path(self, page: Page) -> None:
        assert apply_rule(page, JsonLdRule(path="$.hiringOrganization.name")) == "Acme Corp"

    def test_json_ld_number(self, page: Page) -> None:
        assert apply_rule(page, JsonLdRule(path="$.baseSalary.value.minValue")) == "70000"

    def test_json_ld_missing_path(self, page: Page) -> None:
        with pytest.raises(RuleFailure, match="not found"):
            apply_rule(page, JsonLdRule(path="$.validThrough"))

    def test_json_ld_without_block(self) -> None:
        with pytest.raises(RuleFailure, match="no JSON-LD"):
            apply_rule(Page("<h1>x</h1>", URL), JsonLdRule(path="$.title"))

    def test_css_text(self, page: Page) -> None:
        assert apply_rule(page, CssRule(selector="#location")) == "Berlin, Germany"

    def test_css_attribute(self, page: Page) -> None:
        assert apply_rule(page, CssRule(selector="h1", attribute="class")) == "job-title"

    def test_css_missing_attribute(self, page: Page) -> None:
        with pytest.raises(RuleFailure):
            apply_rule(page, CssRule(selector="h1", attribute="data-id"))

    def test_meta_property(self, page: Page) -> None:
        assert apply_rule(page, MetaRule(name="og:title")) == "Senior Python Engineer"

    def test_regex_over_element(self, page: Page) -> None:
        rule = RegexRule(pattern=r"Berlin, (\w+)", selector="#location")
        assert apply_rule(page, rule) == "Germany"

    def test_regex_over_page_text_without_group(self, page: Page) -> None:
        assert apply_rule(page, RegexRule(pattern=r"EUR [\d,]+")) == "EUR 70,000"

    def test_regex_with_transform(self, page: Page) -> None:
        rule = RegexRule(pattern=r"- ([\d,]+)", transforms=[Transform.PARSE_NUMBER])
        assert apply_rule(page, rule) == "90000"

    def test_invalid_regex(self, page: Page) -> None:
        with pytest.raises(RuleFailure, match="invalid regex"):
            apply_rule(page, RegexRule(pattern="(unclosed"))

    def test_blank_value_is_failure(self) -> None:
        with pytest.raises(RuleFailure, match="empty"):
            apply_rule(Page("<h1>   </h1>", URL), CssRule(selector="h1"))


# ---------------------------------------------------------------------------
# extract()
# ---------------------------------------------------------------------------


class TestExtract:
    def test_full_config(self, html: str) -> None:
        config = _config(
            {
                "title": [JsonLdRule(path="$.title")],
                "companyName": [JsonLdRule(path="$.hiringOrganization.name")],
                "description": [
                    JsonLdRule(
                        path="$.description",
                        transforms=[Transform.HTML_DECODE, Transform.INNER_TEXT],
                    )
                ],
                "location": [CssRule(selector="#location")],
                "salaryMin": [JsonLdRule(path="$.baseSalary.value.minValue")],
                "salaryMax": [JsonLdRule(path="$.baseSalary.value.maxValue")],
                "salaryCurrency": [JsonLdRule(path="$.baseSalary.currency")],
                "jobType": [JsonLdRule(path="$.employmentType")],
            }
        )
        result = extract(html, URL, config)
        assert result.data.title == "Senior Python Engineer"
        assert result.data.company_name == "Acme Corp"
        assert result.data.description == "Build data pipelines and APIs in Python."
        assert result.data.location == "Berlin, Germany"
        assert result.data.salary_min == 70000
        assert result.data.salary_max == 90000
        assert result.data.salary_currency == "EUR"
        # 20 + 15 + 25 + 10 + 5 + 5 + 3
        assert result.scoring.earned_points == 83
        assert result.completion_state is CompletionState.SUFFICIENT
        assert result.failed_rules == {}

    def test_first_non_empty_rule_wins(self, html: str) -> None:
        config = _config(
            {"title": [CssRule(selector=".missing"), JsonLdRule(path="$.title"), CssRule(selector="h1")]}
        )
        result = extract(html, URL, config)
        assert result.data.title == "Senior Python Engineer"
        assert len(result.failed_rules["title"]) == 1

    def test_failing_rules_leave_field_absent(self, html: str) -> None:
        config = _config(
            {
                "title": [JsonLdRule(path="$.title")],
                "location": [CssRule(selector="div[["), RegexRule(pattern="(bad")],
            }
        )
        result = extract(html, URL, config)
        assert result.data.location is None
        assert len(result.failed_rules["location"]) == 2

    def test_placeholder_title_scored_as_missing(self) -> None:
        config = _config({"companyName": [CssRule(selector="p")]})
        result = extract("<p>Acme Corp</p>", URL, config)
        assert result.data.title == UNKNOWN_TITLE
        assert "title" in result.scoring.missing_required
        assert result.completion_state is CompletionState.FAILED

    def test_whitespace_collapsed(self) -> None:
        config = _config({"title": [CssRule(selector="h1")]})
        result = extract("<h1>\n  Data \n   Engineer  </h1>", URL, config)
        assert result.data.title == "Data Engineer"

    def test_empty_config(self, html: str) -> None:
        result = extract(html, URL, _config({}))
        assert result.completion_state is CompletionState.FAILED
        assert result.scoring.earned_points == 0
