"""Resolve a URL into an oEmbed or bookmark payload.

Resolution order, stopping at the first success:

1. registered custom providers, in registration order
2. the static known-provider directory (skipped for bookmark requests)
3. fetch the page HTML through the SSRF-guarded fetcher
4. bookmark requests go straight to metadata scraping
5. redirected pages are re-checked against the known-provider directory
6. in-page oEmbed discovery
7. bookmark scraping as the fallback when no card type was requested

Every failure other than "insufficient metadata" surfaces as the
"unknown provider" validation error so callers learn nothing about internal
errors or network topology.
"""

from __future__ import annotations

import httpx
import structlog

from oembed_service.core.config import Settings, settings
from oembed_service.core.constants import LOG_URL_MAX_CHARS, CardType, ErrorKind, Messages
from oembed_service.core.errors import InternalServerError, ValidationError
from oembed_service.core.logging_setup import configure_logging
from oembed_service.models.schemas import EmbedRequest, EmbedResult
from oembed_service.services.bookmark import extract_bookmark
from oembed_service.services.fetcher import PageFetcher
from oembed_service.services.known_providers import (
    KNOWN_PROVIDERS,
    KnownProvider,
    extract_known,
    find_url_with_provider,
)
from oembed_service.services.oembed_discovery import discover_oembed
from oembed_service.services.providers import Provider, ProviderRegistry

logger = structlog.get_logger(__name__)

# Raised to the caller verbatim; everything else is normalized
_PASSTHROUGH_KINDS = frozenset({ErrorKind.INSUFFICIENT_METADATA, ErrorKind.NO_URL})


class OEmbedService:
    """Resolves embed requests; one instance is shared for the process lifetime.

    The provider registry is configured at startup and frozen on the first
    resolution. Each resolution is otherwise independent: fetches use their
    own HTTP client and cookie jar and nothing is cached between calls.
    """

    def __init__(
        self,
        *,
        config: Settings | None = None,
        registry: ProviderRegistry | None = None,
        fetcher: PageFetcher | None = None,
        known_providers: tuple[KnownProvider, ...] = KNOWN_PROVIDERS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config or settings
        self.registry = registry or ProviderRegistry()
        self.fetcher = fetcher or PageFetcher(config=self.config, transport=transport)
        self.known_providers = known_providers

    def register_provider(self, provider: Provider) -> None:
        self.registry.register(provider)

    async def resolve(self, request: EmbedRequest) -> EmbedResult:
        return await self.fetch_oembed_data_from_url(request.url, request.type)

    async def fetch_oembed_data_from_url(
        self, url: str, card_type: str | None = None
    ) -> EmbedResult:
        """Resolve url (optionally as an explicit ``bookmark`` card) into an embed result.

        Raises:
            ValidationError: no usable embed (``unknown_provider``), a bookmark
                without a title (``insufficient_metadata``) or an empty url.
        """
        if not str(url or "").strip():
            raise ValidationError.no_url()

        self.registry.freeze()
        # Trimming aligns URL validation with the metadata scrapers
        url = str(url).strip()
        try:
            return await self._resolve(url, card_type)
        except ValidationError as err:
            if err.kind in _PASSTHROUGH_KINDS:
                raise
            raise ValidationError.unknown_provider(url) from err
        except Exception as exc:
            # Log the real error because callers only see "unknown provider"
            wrapped = InternalServerError(Messages.FETCH_FAILED, context=url, err=exc)
            logger.error(
                "oembed.resolve.failed",
                url=url[:LOG_URL_MAX_CHARS],
                card_type=card_type,
                error=str(exc),
                error_type=type(exc).__name__,
                exc_info=True,
            )
            raise ValidationError.unknown_provider(url) from wrapped

    async def _resolve(self, url: str, card_type: str | None) -> EmbedResult:
        parsed = httpx.URL(url)
        if not parsed.is_absolute_url:
            raise ValidationError.unknown_provider(url)

        resolution = await self.registry.resolve(url, self.fetcher.guarded_request)
        if resolution.status == "success" and resolution.payload is not None:
            return resolution.payload
        if resolution.status == "failed":
            # Custom providers are trusted integrations; a crash ends the resolution
            raise InternalServerError(
                f"provider {resolution.provider} failed",
                context=url,
                err=resolution.error,
            )

        if card_type != CardType.BOOKMARK:
            match = find_url_with_provider(url, self.known_providers)
            if match.found:
                return await extract_known(match.url, match.provider, self.fetcher)

        page = await self.fetcher.fetch_html(url)

        if card_type == CardType.BOOKMARK:
            return extract_bookmark(url, page.html)

        if page.url != url:
            match = find_url_with_provider(page.url, self.known_providers)
            if match.found:
                return await extract_known(match.url, match.provider, self.fetcher)

        discovery = await discover_oembed(
            url, page.html, card_type, self.fetcher, base_url=page.url
        )
        if discovery.status == "found" and discovery.payload is not None:
            return discovery.payload

        if not card_type:
            return extract_bookmark(url, page.html)

        raise ValidationError.unknown_provider(url)


_default_service: OEmbedService | None = None


def get_oembed_service() -> OEmbedService:
    """Return the process-wide service, creating it (and logging) on first use."""
    global _default_service
    if _default_service is None:
        configure_logging(settings.LOG_LEVEL, settings.ENVIRONMENT)
        _default_service = OEmbedService()
    return _default_service


async def resolve_embed(url: str, card_type: str | None = None) -> EmbedResult:
    """Resolve url with the process-wide service."""
    return await get_oembed_service().fetch_oembed_data_from_url(url, card_type)
