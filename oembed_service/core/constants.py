from enum import Enum


class OEmbedFields:
    # Fields retained from any upstream oEmbed response; everything else is dropped
    KNOWN: tuple[str, ...] = (
        "type",
        "version",
        "html",
        "url",
        "title",
        "width",
        "height",
        "author_name",
        "author_url",
        "provider_name",
        "provider_url",
        "thumbnail_url",
        "thumbnail_width",
        "thumbnail_height",
    )
    VALID_TYPES: frozenset[str] = frozenset({"photo", "video", "link", "rich"})
    LINK_TYPE = "application/json+oembed"
    # Generic WordPress oEmbed endpoints render poorly, bookmark cards are preferred
    WORDPRESS_ENDPOINT = "wp-json/oembed"


class CardType:
    BOOKMARK = "bookmark"


class BookmarkDefaults:
    VERSION = "1.0"
    TYPE = "bookmark"


class Messages:
    NO_URL_PROVIDED = "No url provided."
    INSUFFICIENT_METADATA = "URL contains insufficient metadata."
    UNKNOWN_PROVIDER = "No provider found for supplied URL."
    FETCH_FAILED = "Encountered error when fetching oembed"


class ErrorKind(Enum):
    NO_URL = "no_url"
    INSUFFICIENT_METADATA = "insufficient_metadata"
    UNKNOWN_PROVIDER = "unknown_provider"


class HttpHeaders:
    ACCEPT_HTML = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"
    ACCEPT_JSON = "application/json"


REDIRECT_STATUSES: frozenset[int] = frozenset({301, 302, 303, 307, 308})
LOG_URL_MAX_CHARS = 200
