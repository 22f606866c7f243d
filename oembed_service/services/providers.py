"""Custom provider plugins and the ordered registry that consults them."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Literal, Protocol, runtime_checkable

import structlog

from oembed_service.core.constants import LOG_URL_MAX_CHARS
from oembed_service.models.schemas import EmbedResult, FetchResult, coerce_embed_result

logger = structlog.get_logger(__name__)

GuardedFetch = Callable[..., Awaitable[FetchResult]]


@runtime_checkable
class Provider(Protocol):
    """A trusted integration that may produce an embed for some URLs.

    ``fetch`` returns None to decline, letting later stages run. Any network
    access must go through the supplied guarded fetch callable.
    """

    async def can_handle(self, url: str) -> bool: ...

    async def fetch(self, url: str, fetch_page: GuardedFetch) -> EmbedResult | None: ...


@dataclass
class ProviderResolution:
    status: Literal["success", "declined", "failed"]
    payload: EmbedResult | None = None
    provider: str = ""
    error: BaseException | None = None


def _provider_name(provider: Provider) -> str:
    return getattr(provider, "name", None) or type(provider).__name__


class ProviderRegistry:
    """Ordered provider list; registration order is priority order."""

    def __init__(self) -> None:
        self._providers: list[Provider] = []
        self._frozen = False

    def register(self, provider: Provider) -> None:
        if self._frozen:
            raise RuntimeError("provider registry is read-only once resolution has started")
        if not isinstance(provider, Provider):
            raise TypeError(f"{type(provider).__name__} does not implement can_handle/fetch")
        self._providers.append(provider)

    def freeze(self) -> None:
        self._frozen = True

    @property
    def providers(self) -> tuple[Provider, ...]:
        return tuple(self._providers)

    async def resolve(self, url: str, fetch_page: GuardedFetch) -> ProviderResolution:
        """Try providers in order; first non-null payload wins, any exception fails the chain."""
        for provider in self._providers:
            name = _provider_name(provider)
            try:
                if not await provider.can_handle(url):
                    continue
                result = await provider.fetch(url, fetch_page)
                if result is None:
                    continue
                payload = coerce_embed_result(result)
            except Exception as exc:
                logger.error(
                    "oembed.provider.failed",
                    provider=name,
                    url=url[:LOG_URL_MAX_CHARS],
                    error=str(exc),
                    exc_info=True,
                )
                return ProviderResolution(status="failed", provider=name, error=exc)
            return ProviderResolution(status="success", payload=payload, provider=name)

        return ProviderResolution(status="declined")
