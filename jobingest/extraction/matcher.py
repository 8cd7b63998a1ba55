"""Pattern matcher: pick the stored extraction config that applies to a page.

A config applies iff it has at least one pattern and every pattern matches
(AND semantics). Pattern evaluation never raises: an invalid selector or
regex simply does not match.
"""

import logging
import re
from typing import assert_never

from pydantic import BaseModel, ConfigDict

from jobingest.extraction.html import Page, inner_html, select
from jobingest.extraction.models import (
    ContentContains,
    CssExists,
    ExtractionConfig,
    MatchPattern,
    UrlPattern,
)

logger = logging.getLogger(__name__)


class MatchResult(BaseModel):
    """A config whose full pattern set matched, with how many patterns it has."""

    model_config = ConfigDict(frozen=True)

    config: ExtractionConfig
    matched_patterns: int


def match_pattern(page: Page, pattern: MatchPattern) -> bool:
    """Evaluate a single pattern against a page."""
    if isinstance(pattern, CssExists):
        elements = select(page.soup, pattern.selector)
        if pattern.content_contains is None:
            return bool(elements)
        return any(pattern.content_contains in inner_html(el) for el in elements)
    if isinstance(pattern, UrlPattern):
        try:
            return re.search(pattern.pattern, page.url) is not None
        except re.error:
            logger.debug("Invalid URL pattern %r", pattern.pattern, exc_info=True)
            return False
    if isinstance(pattern, ContentContains):
        return pattern.content_contains in page.html
    assert_never(pattern)


def _config_matches(page: Page, config: ExtractionConfig) -> bool:
    if not config.match_patterns:
        return False
    return all(match_pattern(page, p) for p in config.match_patterns)


def find_match(
    html: str,
    url: str,
    configs: list[ExtractionConfig],
) -> ExtractionConfig | None:
    """Return the first config, in input order, whose patterns all match."""
    if not configs:
        return None
    page = Page(html, url)
    for config in configs:
        if _config_matches(page, config):
            logger.debug("Config '%s' v%d matches %s", config.name, config.version, url)
            return config
    return None


def find_all_matches(
    html: str,
    url: str,
    configs: list[ExtractionConfig],
) -> list[MatchResult]:
    """Every matching config, most specific (most patterns) first.

    Ties keep input order. Diagnostic companion to ``find_match``.
    """
    page = Page(html, url)
    results = [
        MatchResult(config=c, matched_patterns=len(c.match_patterns))
        for c in configs
        if _config_matches(page, c)
    ]
    results.sort(key=lambda r: r.matched_patterns, reverse=True)
    return results
