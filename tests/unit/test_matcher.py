"""Tests for the pattern matcher: AND semantics, input order, bad patterns."""

from pathlib import Path

import pytest

from jobingest.extraction.html import Page
from jobingest.extraction.matcher import find_all_matches, find_match, match_pattern
from jobingest.extraction.models import (
    ContentContains,
    CssExists,
    ExtractionConfig,
    MatchPattern,
    UrlPattern,
)

FIXTURES_DIR = Path(__file__).parent.parent / "fixtures"
URL = "https://jobs.acme.com/postings/123?ref=board"


@pytest.fixture()
def html() -> str:
    return (FIXTURES_DIR / "job_jsonld.html").read_text()


def _config(name: str, *patterns: MatchPattern) -> ExtractionConfig:
    return ExtractionConfig.create(name=name, match_patterns=list(patterns), extract_rules={})


# ---------------------------------------------------------------------------
# Single patterns
# ---------------------------------------------------------------------------


class TestMatchPattern:
    def test_css_exists(self, html: str) -> None:
        page = Page(html, URL)
        assert match_pattern(page, CssExists(selector="h1.job-title"))
        assert not match_pattern(page, CssExists(selector=".apply-button"))

    def test_css_exists_with_content(self, html: str) -> None:
        page = Page(html, URL)
        selector = 'script[type="application/ld+json"]'
        assert match_pattern(page, CssExists(selector=selector, content_contains="JobPosting"))
        assert not match_pattern(page, CssExists(selector=selector, content_contains="Recipe"))

    def test_url_pattern_is_searched(self, html: str) -> None:
        page = Page(html, URL)
        assert match_pattern(page, UrlPattern(pattern="acme"))
        assert match_pattern(page, UrlPattern(pattern=r"/postings/\d+"))
        assert not match_pattern(page, UrlPattern(pattern="^acme"))

    def test_content_contains(self, html: str) -> None:
        page = Page(html, URL)
        assert match_pattern(page, ContentContains(content_contains="data platform team"))
        assert not match_pattern(page, ContentContains(content_contains="Globex"))

    def test_invalid_regex_does_not_match(self, html: str) -> None:
        assert not match_pattern(Page(html, URL), UrlPattern(pattern="(unclosed"))

    def test_invalid_selector_does_not_match(self, html: str) -> None:
        assert not match_pattern(Page(html, URL), CssExists(selector="div[[["))


# ---------------------------------------------------------------------------
# find_match
# ---------------------------------------------------------------------------


class TestFindMatch:
    def test_missing_selector_loses_to_url_match(self, html: str) -> None:
        config_a = _config("A", CssExists(selector=".apply-button"))
        config_b = _config("B", UrlPattern(pattern="acme.com"))
        assert find_match(html, URL, [config_a, config_b]) == config_b

    def test_all_patterns_must_match(self, html: str) -> None:
        config = _config(
            "both",
            UrlPattern(pattern="acme"),
            CssExists(selector=".apply-button"),
        )
        assert find_match(html, URL, [config]) is None

    def test_first_in_input_order(self, html: str) -> None:
        broad = _config("broad", UrlPattern(pattern="acme"))
        narrow = _config("narrow", UrlPattern(pattern="acme"), CssExists(selector="h1"))
        assert find_match(html, URL, [broad, narrow]) == broad
        assert find_match(html, URL, [narrow, broad]) == narrow

    def test_bad_pattern_does_not_stop_scan(self, html: str) -> None:
        broken = _config("broken", UrlPattern(pattern="[oops"))
        good = _config("good", ContentContains(content_contains="Acme Corp"))
        assert find_match(html, URL, [broken, good]) == good

    def test_config_without_patterns_never_matches(self, html: str) -> None:
        assert find_match(html, URL, [_config("empty")]) is None

    def test_no_configs(self, html: str) -> None:
        assert find_match(html, URL, []) is None


class TestFindAllMatches:
    def test_most_specific_first(self, html: str) -> None:
        broad = _config("broad", UrlPattern(pattern="acme"))
        narrow = _config("narrow", UrlPattern(pattern="acme"), CssExists(selector="h1"))
        miss = _config("miss", UrlPattern(pattern="globex"))
        results = find_all_matches(html, URL, [broad, miss, narrow])
        assert [r.config.name for r in results] == ["narrow", "broad"]
        assert [r.matched_patterns for r in results] == [2, 1]
