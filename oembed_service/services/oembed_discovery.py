"""Discover and validate an oEmbed endpoint advertised by a fetched page."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal
from urllib.parse import urljoin

import structlog
from bs4 import BeautifulSoup

from oembed_service.core.constants import LOG_URL_MAX_CHARS, OEmbedFields
from oembed_service.models.schemas import LinkEmbed, PhotoEmbed, RichEmbed, VideoEmbed, parse_oembed
from oembed_service.services.fetcher import PageFetcher

logger = structlog.get_logger(__name__)


@dataclass
class DiscoveryResult:
    status: Literal["found", "none", "defer"]
    payload: PhotoEmbed | VideoEmbed | LinkEmbed | RichEmbed | None = None
    oembed_url: str = ""


def find_oembed_link(html: str) -> str | None:
    """Return the href of the page's ``application/json+oembed`` link, if any."""
    soup = BeautifulSoup(html or "", "html.parser")
    tag = soup.find("link", attrs={"type": OEmbedFields.LINK_TYPE})
    if tag is None:
        return None
    href = str(tag.get("href") or "").strip()
    return href or None


async def discover_oembed(
    url: str,
    html: str,
    card_type: str | None,
    fetcher: PageFetcher,
    *,
    base_url: str | None = None,
) -> DiscoveryResult:
    """Fetch the advertised oEmbed document and keep it only if it is well formed.

    Generic WordPress endpoints are deferred to bookmark scraping unless the
    caller explicitly asked for a card type. Relative hrefs are joined onto
    base_url, the final URL of the fetched page, falling back to url. Errors
    fetching the endpoint propagate to the caller.
    """
    try:
        oembed_url = find_oembed_link(html)
    except Exception:
        logger.warning("oembed.discovery.parse_failed", url=url[:LOG_URL_MAX_CHARS], exc_info=True)
        return DiscoveryResult(status="none")

    if not oembed_url:
        return DiscoveryResult(status="none")

    if not card_type and OEmbedFields.WORDPRESS_ENDPOINT in oembed_url:
        return DiscoveryResult(status="defer", oembed_url=oembed_url)

    oembed_url = urljoin(base_url or url, oembed_url)
    response = await fetcher.fetch_json(oembed_url)

    payload = parse_oembed(response.data)
    if payload is None:
        logger.info(
            "oembed.discovery.rejected",
            url=url[:LOG_URL_MAX_CHARS],
            oembed_url=oembed_url[:LOG_URL_MAX_CHARS],
        )
        return DiscoveryResult(status="none", oembed_url=oembed_url)

    return DiscoveryResult(status="found", payload=payload, oembed_url=oembed_url)
