"""Bookmark card extraction from page metadata (OpenGraph, Twitter cards, HTML)."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from urllib.parse import urljoin, urlsplit

import structlog
from bs4 import BeautifulSoup

from oembed_service.core.constants import LOG_URL_MAX_CHARS
from oembed_service.core.errors import ValidationError
from oembed_service.models.schemas import BookmarkMetadata, BookmarkPayload

logger = structlog.get_logger(__name__)

Extractor = Callable[[BeautifulSoup, str], str | None]


def _clean(value: object) -> str | None:
    """Collapse whitespace; empty strings become None."""
    if value is None:
        return None
    text = " ".join(str(value).split())
    return text or None


def _absolute(value: str | None, base_url: str) -> str | None:
    if not value:
        return None
    resolved = urljoin(base_url, value)
    if urlsplit(resolved).scheme.lower() not in {"http", "https"}:
        return None
    return resolved


def _looks_like_url(value: str | None) -> bool:
    return bool(value) and value.lower().startswith(("http://", "https://", "//"))


# ---------------------------------------------------------------------------
# Extractor factories
# ---------------------------------------------------------------------------


def meta(*keys: str) -> Extractor:
    """Content of the first ``<meta>`` whose property/name/itemprop matches a key."""

    def extract(soup: BeautifulSoup, url: str) -> str | None:
        for key in keys:
            for attr in ("property", "name", "itemprop"):
                tag = soup.find("meta", attrs={attr: key})
                if tag is not None:
                    value = _clean(tag.get("content"))
                    if value:
                        return value
        return None

    return extract


def link_href(*rels: str) -> Extractor:
    """Href of the first ``<link>`` whose rel list contains one of rels."""

    def extract(soup: BeautifulSoup, url: str) -> str | None:
        for rel in rels:
            for tag in soup.find_all("link", href=True):
                tag_rels = [r.lower() for r in (tag.get("rel") or [])]
                if rel in tag_rels or rel == " ".join(tag_rels):
                    value = _clean(tag.get("href"))
                    if value:
                        return value
        return None

    return extract


def element_text(*selectors: str) -> Extractor:
    """Text of the first element matching a CSS selector."""

    def extract(soup: BeautifulSoup, url: str) -> str | None:
        for selector in selectors:
            tag = soup.select_one(selector)
            if tag is not None:
                value = _clean(tag.get_text(" "))
                if value:
                    return value
        return None

    return extract


def as_url(extractor: Extractor) -> Extractor:
    """Resolve the extracted value against the page URL, dropping non-http results."""

    def extract(soup: BeautifulSoup, url: str) -> str | None:
        return _absolute(extractor(soup, url), url)

    return extract


def not_url(extractor: Extractor) -> Extractor:
    """Reject values that are links (e.g. ``article:author`` profile URLs)."""

    def extract(soup: BeautifulSoup, url: str) -> str | None:
        value = extractor(soup, url)
        return None if _looks_like_url(value) else value

    return extract


def page_url(soup: BeautifulSoup, url: str) -> str | None:
    return _absolute(url, url)


def default_favicon(soup: BeautifulSoup, url: str) -> str | None:
    parsed = urlsplit(url)
    if not parsed.scheme or not parsed.netloc:
        return None
    return f"{parsed.scheme}://{parsed.netloc}/favicon.ico"


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FieldRule:
    field: str
    extractors: tuple[Extractor, ...]

    def apply(self, soup: BeautifulSoup, url: str) -> str | None:
        for extractor in self.extractors:
            value = extractor(soup, url)
            if value:
                return value
        return None


BOOKMARK_RULES: tuple[FieldRule, ...] = (
    FieldRule(
        "url",
        (
            as_url(meta("og:url", "twitter:url")),
            as_url(link_href("canonical")),
            page_url,
        ),
    ),
    FieldRule(
        "title",
        (
            meta("og:title", "twitter:title"),
            element_text("title"),
            element_text(".post-title", ".entry-title", "h1"),
        ),
    ),
    FieldRule(
        "description",
        (
            meta("og:description", "twitter:description", "description"),
        ),
    ),
    FieldRule(
        "author",
        (
            not_url(meta("author", "article:author", "sailthru.author", "parsely-author")),
            not_url(element_text('[itemprop="author"] [itemprop="name"]', '[itemprop="author"]')),
            not_url(element_text('a[rel="author"]', ".author")),
        ),
    ),
    FieldRule(
        "publisher",
        (
            meta("og:site_name", "application-name", "apple-mobile-web-app-title", "publisher"),
            not_url(meta("twitter:site")),
        ),
    ),
    FieldRule(
        "image",
        (
            as_url(meta("og:image:secure_url", "og:image:url", "og:image")),
            as_url(meta("twitter:image", "twitter:image:src")),
            as_url(link_href("image_src")),
            as_url(meta("image")),
        ),
    ),
    FieldRule(
        "logo",
        (
            as_url(link_href("apple-touch-icon", "apple-touch-icon-precomposed")),
            as_url(link_href("icon", "shortcut icon")),
            as_url(meta("og:logo", "logo")),
            default_favicon,
        ),
    ),
)


def scrape_metadata(
    html: str, url: str, rules: tuple[FieldRule, ...] = BOOKMARK_RULES
) -> dict[str, str | None]:
    """Run every field rule over the parsed page, first non-empty value per field wins."""
    soup = BeautifulSoup(html or "", "html.parser")
    return {rule.field: rule.apply(soup, url) for rule in rules}


def extract_bookmark(url: str, html: str) -> BookmarkPayload:
    """Build a bookmark card for url; raises ValidationError when no title is found."""
    try:
        scraped = scrape_metadata(html, url)
    except Exception:
        logger.error("oembed.bookmark.scrape_failed", url=url[:LOG_URL_MAX_CHARS], exc_info=True)
        raise ValidationError.unknown_provider(url)

    metadata = dict(scraped)
    # Standard naming for image and logo
    metadata["thumbnail"] = metadata.pop("image", None)
    metadata["icon"] = metadata.pop("logo", None)

    if not metadata.get("title"):
        raise ValidationError.insufficient_metadata(url)

    return BookmarkPayload(url=url, metadata=BookmarkMetadata(**metadata))
