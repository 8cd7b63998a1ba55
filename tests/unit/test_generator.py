"""Tests for the config generator (AI extraction mocked)."""

import json
from pathlib import Path

import pytest

from jobingest.core.errors import InputValidationError, SchemaError, SchemaErrorKind
from jobingest.core.schemas import CompletionState, ExtractedJobData
from jobingest.extraction.extractor import extract
from jobingest.extraction.generator import (
    ConfigGenerator,
    derive_match_patterns,
    derive_rules,
    url_host,
)
from jobingest.extraction.html import Page
from jobingest.extraction.matcher import find_match
from jobingest.extraction.models import (
    CssExists,
    CssRule,
    ExtractionConfig,
    JsonLdRule,
    MetaRule,
    Transform,
    UrlPattern,
)

FIXTURES_DIR = Path(__file__).parent.parent / "fixtures"
JSONLD_URL = "https://jobs.acme.com/postings/123"
PLAIN_URL = "https://careers.acme.io/jobs/1"


class FakeAIExtractor:
    """Returns a canned record (or raises) and records each call."""

    def __init__(self, data: ExtractedJobData | None = None, error: Exception | None = None) -> None:
        self.data = data
        self.error = error
        self.calls: list[tuple[str, str]] = []

    def extract_structured(self, document_text: str, url: str) -> ExtractedJobData:
        self.calls.append((document_text, url))
        if self.error is not None:
            raise self.error
        assert self.data is not None
        return self.data


def _fixture(name: str) -> str:
    return (FIXTURES_DIR / name).read_text()


def _ai_job() -> ExtractedJobData:
    return ExtractedJobData.model_validate(json.loads(_fixture("sample_job_response.json")))


def _config_with(pattern: UrlPattern) -> ExtractionConfig:
    return ExtractionConfig.create(name="t", match_patterns=[pattern], extract_rules={})


# ---------------------------------------------------------------------------
# Match patterns
# ---------------------------------------------------------------------------


class TestDeriveMatchPatterns:
    def test_json_ld_page(self) -> None:
        page = Page(_fixture("job_jsonld.html"), JSONLD_URL)
        patterns = derive_match_patterns(page, "jobs.acme.com")
        assert isinstance(patterns[0], UrlPattern)
        assert patterns[1] == CssExists(
            selector='script[type="application/ld+json"]', content_contains="JobPosting"
        )

    def test_host_pattern_matches_same_host_only(self) -> None:
        page = Page("<p>x</p>", "https://www.acme.com/jobs/1")
        [pattern] = derive_match_patterns(page, "www.acme.com")
        assert isinstance(pattern, UrlPattern)
        for url in ("https://acme.com/jobs/2", "http://www.acme.com/x", "https://acme.com"):
            assert find_match("<p>x</p>", url, [_config_with(pattern)]) is not None
        for url in ("https://acme.com.evil.test/", "https://notacme.com/"):
            assert find_match("<p>x</p>", url, [_config_with(pattern)]) is None


class TestUrlHost:
    def test_lowercases(self) -> None:
        assert url_host("https://Jobs.Acme.COM/x") == "jobs.acme.com"

    @pytest.mark.parametrize("url", ["", "not a url", "/relative/path", "mailto:x@y.z"])
    def test_no_host(self, url: str) -> None:
        with pytest.raises(InputValidationError):
            url_host(url)


# ---------------------------------------------------------------------------
# Rule derivation
# ---------------------------------------------------------------------------


class TestDeriveRules:
    def test_json_ld_preferred_then_meta_then_css(self) -> None:
        page = Page(_fixture("job_jsonld.html"), JSONLD_URL)
        rules = derive_rules(page, _ai_job())
        assert rules["title"] == [
            JsonLdRule(path="$.title"),
            MetaRule(name="og:title"),
            CssRule(selector="h1.job-title"),
        ]

    def test_nested_json_ld_path(self) -> None:
        page = Page(_fixture("job_jsonld.html"), JSONLD_URL)
        rules = derive_rules(page, _ai_job())
        assert rules["companyName"][0] == JsonLdRule(path="$.hiringOrganization.name")
        assert rules["salaryMin"][0] == JsonLdRule(path="$.baseSalary.value.minValue")
        assert rules["salaryCurrency"][0] == JsonLdRule(path="$.baseSalary.currency")

    def test_encoded_description_gets_transforms(self) -> None:
        page = Page(_fixture("job_jsonld.html"), JSONLD_URL)
        rules = derive_rules(page, _ai_job())
        assert rules["description"][0] == JsonLdRule(
            path="$.description", transforms=[Transform.HTML_DECODE, Transform.INNER_TEXT]
        )

    def test_css_id_selector(self) -> None:
        page = Page(_fixture("job_jsonld.html"), JSONLD_URL)
        rules = derive_rules(page, _ai_job())
        assert rules["location"] == [CssRule(selector="div#location")]

    def test_untraceable_value_gets_no_rule(self) -> None:
        page = Page(_fixture("job_plain.html"), PLAIN_URL)
        data = ExtractedJobData(
            title="Engineer",
            company_name="Acme Corp",
            description="A role description long enough",
            location="Inferred from context",
        )
        rules = derive_rules(page, data)
        assert "location" not in rules
        assert rules["title"] == [CssRule(selector="h1")]
        assert rules["companyName"] == [CssRule(selector="p.company")]
        assert rules["description"] == [CssRule(selector="div.desc")]


# ---------------------------------------------------------------------------
# ConfigGenerator.generate
# ---------------------------------------------------------------------------


class TestGenerate:
    def test_single_ai_call_and_scoring(self) -> None:
        ai = FakeAIExtractor(_ai_job())
        result = ConfigGenerator(ai).generate(_fixture("job_jsonld.html"), JSONLD_URL)
        assert len(ai.calls) == 1
        assert ai.calls[0][1] == JSONLD_URL
        assert result.attempts == 1
        assert result.extraction_result.data == _ai_job()
        assert result.completion_state is CompletionState.SUFFICIENT
        assert result.is_successful

    def test_config_shape(self) -> None:
        ai = FakeAIExtractor(_ai_job())
        config = ConfigGenerator(ai).generate(_fixture("job_jsonld.html"), JSONLD_URL).config
        assert config.name == "jobs.acme.com - JSON-LD"
        assert config.version == 1
        assert config.id is None
        assert len(config.match_patterns) == 2

    def test_generated_config_reproduces_extraction(self) -> None:
        html = _fixture("job_jsonld.html")
        result = ConfigGenerator(FakeAIExtractor(_ai_job())).generate(html, JSONLD_URL)
        assert result.replay.state is CompletionState.SUFFICIENT

        other_url = "https://jobs.acme.com/postings/456"
        assert find_match(html, other_url, [result.config]) == result.config
        replayed = extract(html, other_url, result.config)
        assert replayed.data.title == "Senior Python Engineer"
        assert replayed.data.salary_max == 90000

    def test_plain_page_end_to_end_partial(self) -> None:
        data = ExtractedJobData(
            title="Engineer", company_name="Acme Corp", description="A role description long enough",
        )
        result = ConfigGenerator(FakeAIExtractor(data)).generate(_fixture("job_plain.html"), PLAIN_URL)
        assert result.completion_state is CompletionState.PARTIAL
        assert result.extraction_result.scoring.score == pytest.approx(0.60)
        assert result.config.name == "careers.acme.io - HTML"
        assert not result.is_successful

    def test_schema_error_propagates(self) -> None:
        ai = FakeAIExtractor(error=SchemaError.network("timeout"))
        with pytest.raises(SchemaError) as exc_info:
            ConfigGenerator(ai).generate(_fixture("job_plain.html"), PLAIN_URL)
        assert exc_info.value.kind is SchemaErrorKind.NETWORK_ERROR
        assert len(ai.calls) == 1

    def test_url_without_host_fails_before_ai(self) -> None:
        ai = FakeAIExtractor(_ai_job())
        with pytest.raises(InputValidationError):
            ConfigGenerator(ai).generate(_fixture("job_plain.html"), "/jobs/1")
        assert ai.calls == []

    def test_document_text_capped(self) -> None:
        ai = FakeAIExtractor(_ai_job())
        ConfigGenerator(ai, max_content_chars=1000).generate(_fixture("job_jsonld.html"), JSONLD_URL)
        assert len(ai.calls[0][0]) <= 1000
