"""HTML helpers over BeautifulSoup: safe CSS selection, element text, JSON-LD."""

import json
import logging
from functools import cached_property
from typing import Any

from bs4 import BeautifulSoup, Tag
from soupsieve import SelectorSyntaxError

logger = logging.getLogger(__name__)

JSON_LD_SELECTOR = 'script[type="application/ld+json"]'
JOB_POSTING_TYPE = "JobPosting"

# Removed before handing page text to the AI extractor.
_NON_CONTENT_TAGS = ("script", "style", "noscript", "svg", "template", "iframe", "nav", "footer")


def parse_document(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "html.parser")


def select(soup: BeautifulSoup | Tag, selector: str) -> list[Tag]:
    """CSS select that treats an invalid selector as matching nothing."""
    try:
        return list(soup.select(selector))
    except (SelectorSyntaxError, ValueError, NotImplementedError):
        logger.debug("Invalid CSS selector %r", selector, exc_info=True)
        return []


def select_one(soup: BeautifulSoup | Tag, selector: str) -> Tag | None:
    found = select(soup, selector)
    return found[0] if found else None


def element_text(element: Tag) -> str:
    """Visible text of an element with whitespace runs collapsed to single spaces."""
    return " ".join(element.get_text(" ").split())


def fragment_text(html: str) -> str:
    """Text content of an HTML fragment, whitespace collapsed."""
    return " ".join(parse_document(html).get_text(" ").split())


def inner_html(element: Tag) -> str:
    return element.decode_contents()


def meta_content(soup: BeautifulSoup, name: str) -> str | None:
    """``content`` of ``<meta name=...>`` or, failing that, ``<meta property=...>``."""
    for attr in ("name", "property"):
        tag = soup.find("meta", attrs={attr: name})
        if isinstance(tag, Tag):
            content = tag.get("content")
            if isinstance(content, str):
                return content
    return None


def is_job_posting(block: Any) -> bool:
    if not isinstance(block, dict):
        return False
    kind = block.get("@type")
    if isinstance(kind, list):
        return JOB_POSTING_TYPE in kind
    return kind == JOB_POSTING_TYPE


def _flatten_json_ld(parsed: Any) -> list[dict[str, Any]]:
    if isinstance(parsed, list):
        blocks: list[dict[str, Any]] = []
        for item in parsed:
            blocks.extend(_flatten_json_ld(item))
        return blocks
    if not isinstance(parsed, dict):
        return []
    graph = parsed.get("@graph")
    if isinstance(graph, list):
        nested = [item for item in graph if isinstance(item, dict)]
        return ([parsed] if "@type" in parsed else []) + nested
    return [parsed]


def extract_json_ld_blocks(soup: BeautifulSoup) -> list[dict[str, Any]]:
    """Every JSON-LD object on the page, arrays and ``@graph`` flattened.

    Scripts holding invalid JSON are skipped.
    """
    blocks: list[dict[str, Any]] = []
    for script in select(soup, JSON_LD_SELECTOR):
        raw = script.string if script.string is not None else script.get_text()
        if not raw or not raw.strip():
            continue
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError:
            logger.debug("Skipping invalid JSON-LD block", exc_info=True)
            continue
        blocks.extend(_flatten_json_ld(parsed))
    return blocks


def find_job_posting(blocks: list[dict[str, Any]]) -> dict[str, Any] | None:
    """The first JobPosting block, else the first block, else None."""
    for block in blocks:
        if is_job_posting(block):
            return block
    return blocks[0] if blocks else None


class Page:
    """An HTML document plus its URL, parsed lazily and at most once."""

    def __init__(self, html: str, url: str) -> None:
        self.html = html
        self.url = url

    @cached_property
    def soup(self) -> BeautifulSoup:
        return parse_document(self.html)

    @cached_property
    def json_ld_blocks(self) -> list[dict[str, Any]]:
        return extract_json_ld_blocks(self.soup)

    @cached_property
    def job_posting(self) -> dict[str, Any] | None:
        return find_job_posting(self.json_ld_blocks)

    @cached_property
    def has_job_posting(self) -> bool:
        return any(is_job_posting(block) for block in self.json_ld_blocks)

    @cached_property
    def text(self) -> str:
        body = self.soup.body or self.soup
        return element_text(body)


def document_text(html: str, max_chars: int) -> str:
    """Page text for the AI extractor.

    Visible text with scripts, styles and navigation chrome removed, one line
    per text run, followed by any JobPosting JSON-LD blocks verbatim. The
    result is cut at ``max_chars``.
    """
    soup = parse_document(html)
    postings = [b for b in extract_json_ld_blocks(soup) if is_job_posting(b)]
    for tag in soup.find_all(_NON_CONTENT_TAGS):
        tag.decompose()

    lines = [" ".join(line.split()) for line in soup.get_text("\n").splitlines()]
    parts = ["\n".join(line for line in lines if line)]
    for posting in postings:
        parts.append("JSON-LD JobPosting:\n" + json.dumps(posting, ensure_ascii=False))

    text = "\n\n".join(part for part in parts if part)
    if len(text) > max_chars:
        logger.debug("Truncating document text from %d to %d chars", len(text), max_chars)
        text = text[:max_chars]
    return text
