"""Static directory of publishers with published oEmbed endpoints."""

from __future__ import annotations

import re
from dataclasses import dataclass, field

import httpx
import structlog

from oembed_service.core.constants import LOG_URL_MAX_CHARS
from oembed_service.core.errors import EmbedError, InternalServerError
from oembed_service.models.schemas import (
    LinkEmbed,
    PhotoEmbed,
    RichEmbed,
    VideoEmbed,
    parse_oembed,
)
from oembed_service.services.fetcher import PageFetcher

logger = structlog.get_logger(__name__)

_SCHEME_PREFIX = re.compile(r"^//|^https?://(?:www\.)?")


def _compile_scheme(scheme: str) -> re.Pattern[str]:
    """Turn an oEmbed URL scheme with ``*`` wildcards into an anchored regex."""
    return re.compile(
        "^" + ".*".join(re.escape(part) for part in scheme.split("*")) + "$",
        re.IGNORECASE,
    )


@dataclass(frozen=True)
class KnownProvider:
    name: str
    endpoint: str
    schemes: tuple[str, ...]
    patterns: tuple[re.Pattern[str], ...] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "patterns", tuple(_compile_scheme(s) for s in self.schemes))

    def matches(self, url: str) -> bool:
        return any(pattern.match(url) for pattern in self.patterns)


@dataclass(frozen=True)
class KnownProviderMatch:
    url: str
    provider: KnownProvider | None = None

    @property
    def found(self) -> bool:
        return self.provider is not None


KNOWN_PROVIDERS: tuple[KnownProvider, ...] = (
    KnownProvider(
        name="YouTube",
        endpoint="https://www.youtube.com/oembed",
        schemes=(
            "https://*.youtube.com/watch*",
            "https://*.youtube.com/v/*",
            "https://youtu.be/*",
            "https://*.youtube.com/playlist?list=*",
            "https://youtube.com/playlist?list=*",
            "https://*.youtube.com/shorts*",
            "https://youtube.com/shorts*",
            "https://*.youtube.com/embed/*",
            "https://*.youtube.com/live*",
        ),
    ),
    KnownProvider(
        name="Vimeo",
        endpoint="https://vimeo.com/api/oembed.json",
        schemes=(
            "https://vimeo.com/*",
            "https://vimeo.com/album/*/video/*",
            "https://vimeo.com/channels/*/*",
            "https://vimeo.com/groups/*/videos/*",
            "https://vimeo.com/ondemand/*/*",
            "https://player.vimeo.com/video/*",
        ),
    ),
    KnownProvider(
        name="Twitter",
        endpoint="https://publish.twitter.com/oembed",
        schemes=(
            "https://twitter.com/*/status/*",
            "https://*.twitter.com/*/status/*",
            "https://twitter.com/*/moments/*",
            "https://x.com/*/status/*",
        ),
    ),
    KnownProvider(
        name="Flickr",
        endpoint="https://www.flickr.com/services/oembed/",
        schemes=(
            "http://*.flickr.com/photos/*",
            "http://flic.kr/p/*",
            "https://*.flickr.com/photos/*",
            "https://flic.kr/p/*",
        ),
    ),
    KnownProvider(
        name="SoundCloud",
        endpoint="https://soundcloud.com/oembed",
        schemes=(
            "http://soundcloud.com/*",
            "https://soundcloud.com/*",
            "https://on.soundcloud.com/*",
        ),
    ),
    KnownProvider(
        name="Spotify",
        endpoint="https://open.spotify.com/oembed",
        schemes=("https://open.spotify.com/*",),
    ),
    KnownProvider(
        name="Reddit",
        endpoint="https://www.reddit.com/oembed",
        schemes=(
            "https://reddit.com/r/*/comments/*/*",
            "https://www.reddit.com/r/*/comments/*/*",
        ),
    ),
    KnownProvider(
        name="TikTok",
        endpoint="https://www.tiktok.com/oembed",
        schemes=("https://www.tiktok.com/*/video/*",),
    ),
    KnownProvider(
        name="GIPHY",
        endpoint="https://giphy.com/services/oembed",
        schemes=(
            "https://giphy.com/gifs/*",
            "https://giphy.com/clips/*",
            "http://gph.is/*",
            "https://media.giphy.com/media/*/giphy.gif",
        ),
    ),
    KnownProvider(
        name="CodePen",
        endpoint="https://codepen.io/api/oembed",
        schemes=("http://codepen.io/*", "https://codepen.io/*"),
    ),
    KnownProvider(
        name="Kickstarter",
        endpoint="https://www.kickstarter.com/services/oembed",
        schemes=(
            "http://www.kickstarter.com/projects/*",
            "https://www.kickstarter.com/projects/*",
        ),
    ),
    KnownProvider(
        name="SlideShare",
        endpoint="https://www.slideshare.net/api/oembed/2",
        schemes=("http://www.slideshare.net/*/*", "https://www.slideshare.net/*/*"),
    ),
    KnownProvider(
        name="Dailymotion",
        endpoint="https://www.dailymotion.com/services/oembed",
        schemes=("https://www.dailymotion.com/video/*",),
    ),
    KnownProvider(
        name="Mixcloud",
        endpoint="https://app.mixcloud.com/oembed/",
        schemes=("http://www.mixcloud.com/*/*/", "https://www.mixcloud.com/*/*/"),
    ),
    KnownProvider(
        name="Speaker Deck",
        endpoint="https://speakerdeck.com/oembed.json",
        schemes=("http://speakerdeck.com/*/*", "https://speakerdeck.com/*/*"),
    ),
    KnownProvider(
        name="TED",
        endpoint="https://www.ted.com/services/v1/oembed.json",
        schemes=(
            "http://ted.com/talks/*",
            "https://ted.com/talks/*",
            "https://www.ted.com/talks/*",
        ),
    ),
)


def find_provider(
    url: str, providers: tuple[KnownProvider, ...] = KNOWN_PROVIDERS
) -> KnownProvider | None:
    """Return the first directory entry whose schemes match url exactly."""
    for provider in providers:
        if provider.matches(url):
            return provider
    return None


def find_url_with_provider(
    url: str, providers: tuple[KnownProvider, ...] = KNOWN_PROVIDERS
) -> KnownProviderMatch:
    """Match url against the directory trying scheme and www variants.

    Provider directories are often stale about http vs https and www vs bare
    hosts, so the first of four variants that matches is returned.
    """
    base_url = _SCHEME_PREFIX.sub("", url, count=1)
    candidates = (
        f"http://{base_url}",
        f"https://{base_url}",
        f"http://www.{base_url}",
        f"https://www.{base_url}",
    )
    for candidate in candidates:
        provider = find_provider(candidate, providers)
        if provider is not None:
            return KnownProviderMatch(url=candidate, provider=provider)
    return KnownProviderMatch(url=url)


async def extract_known(
    url: str, provider: KnownProvider, fetcher: PageFetcher
) -> PhotoEmbed | VideoEmbed | LinkEmbed | RichEmbed:
    """Query the provider's oEmbed endpoint for url and validate the response."""
    endpoint = httpx.URL(provider.endpoint).copy_merge_params({"url": url, "format": "json"})
    try:
        page = await fetcher.fetch_json(str(endpoint))
    except EmbedError:
        raise
    except Exception as exc:
        raise InternalServerError(str(exc) or type(exc).__name__, context=url, err=exc) from exc

    payload = parse_oembed(page.data)
    if payload is None:
        logger.warning(
            "oembed.known_provider.invalid_response",
            provider=provider.name,
            url=url[:LOG_URL_MAX_CHARS],
        )
        raise InternalServerError("invalid oEmbed response from known provider", context=url)
    return payload
