"""Resolve third-party URLs into safe oEmbed or bookmark card payloads."""

from oembed_service.core.errors import EmbedError, InternalServerError, ValidationError
from oembed_service.models.schemas import (
    BookmarkMetadata,
    BookmarkPayload,
    EmbedRequest,
    EmbedResult,
    LinkEmbed,
    PhotoEmbed,
    RichEmbed,
    VideoEmbed,
)
from oembed_service.services.providers import Provider, ProviderRegistry
from oembed_service.services.resolver import OEmbedService, get_oembed_service, resolve_embed

__all__ = [
    "BookmarkMetadata",
    "BookmarkPayload",
    "EmbedError",
    "EmbedRequest",
    "EmbedResult",
    "InternalServerError",
    "LinkEmbed",
    "OEmbedService",
    "PhotoEmbed",
    "Provider",
    "ProviderRegistry",
    "RichEmbed",
    "ValidationError",
    "VideoEmbed",
    "get_oembed_service",
    "resolve_embed",
]
