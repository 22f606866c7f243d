"""Pydantic schemas and typed contracts for the embed resolver.

Centralised here so that services and custom providers share one definition of
what an embed result looks like. ``EmbedResult`` is the only shape that may be
returned by ``OEmbedService``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationInfo, field_validator
from pydantic import ValidationError as PydanticValidationError

from oembed_service.core.constants import BookmarkDefaults, OEmbedFields

Dimension = int | float | str


# ---------------------------------------------------------------------------
# Request / fetch contracts
# ---------------------------------------------------------------------------


class EmbedRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    url: str
    type: Literal["bookmark"] | None = None


@dataclass(frozen=True)
class FetchResult:
    url: str
    body: bytes
    headers: dict[str, str] = field(default_factory=dict)
    status_code: int = 200
    charset: str | None = None  # from the Content-Type header only


@dataclass(frozen=True)
class HtmlPage:
    url: str
    html: str


@dataclass(frozen=True)
class JsonPage:
    url: str
    data: Any


# ---------------------------------------------------------------------------
# oEmbed payloads
# ---------------------------------------------------------------------------


class _OEmbedBase(BaseModel):
    # Unknown upstream fields are dropped on validation
    model_config = ConfigDict(extra="ignore", frozen=True, coerce_numbers_to_str=True)

    version: str = Field(..., min_length=1)
    html: str | None = None
    url: str | None = None
    title: str | None = None
    width: Dimension | None = None
    height: Dimension | None = None
    author_name: str | None = None
    author_url: str | None = None
    provider_name: str | None = None
    provider_url: str | None = None
    thumbnail_url: str | None = None
    thumbnail_width: Dimension | None = None
    thumbnail_height: Dimension | None = None

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


def _require_truthy(value: Any, field_name: str) -> Any:
    if not value:
        raise ValueError(f"{field_name} is required for this oEmbed type")
    return value


class PhotoEmbed(_OEmbedBase):
    type: Literal["photo"]
    url: str = Field(..., min_length=1)


class VideoEmbed(_OEmbedBase):
    type: Literal["video"]
    html: str = Field(..., min_length=1)
    width: Dimension
    height: Dimension

    @field_validator("width", "height")
    @classmethod
    def validate_dimensions(cls, v: Dimension, info: ValidationInfo) -> Dimension:
        return _require_truthy(v, info.field_name)


class LinkEmbed(_OEmbedBase):
    type: Literal["link"]


class RichEmbed(_OEmbedBase):
    type: Literal["rich"]
    html: str = Field(..., min_length=1)
    width: Dimension
    height: Dimension

    @field_validator("width", "height")
    @classmethod
    def validate_dimensions(cls, v: Dimension, info: ValidationInfo) -> Dimension:
        return _require_truthy(v, info.field_name)


OEmbedPayload = Annotated[
    Union[PhotoEmbed, VideoEmbed, LinkEmbed, RichEmbed],
    Field(discriminator="type"),
]

_OEMBED_ADAPTER: TypeAdapter = TypeAdapter(OEmbedPayload)


def pick_known_fields(data: dict[str, Any]) -> dict[str, Any]:
    """Keep only whitelisted oEmbed fields from an upstream response body."""
    return {key: data[key] for key in OEmbedFields.KNOWN if key in data}


def parse_oembed(data: Any) -> PhotoEmbed | VideoEmbed | LinkEmbed | RichEmbed | None:
    """Validate an upstream oEmbed JSON object, returning None when it is unusable.

    Requires non-empty ``type`` and ``version``, a type from the oEmbed spec and
    the per-type fields (``url`` for photo; ``html``/``width``/``height`` for
    video and rich).
    """
    if not isinstance(data, dict):
        return None
    picked = pick_known_fields(data)
    if picked.get("type") not in OEmbedFields.VALID_TYPES:
        return None
    try:
        return _OEMBED_ADAPTER.validate_python(picked)
    except PydanticValidationError:
        return None


# ---------------------------------------------------------------------------
# Bookmark payload
# ---------------------------------------------------------------------------


class BookmarkMetadata(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    url: str | None = None
    title: str = Field(..., min_length=1)
    description: str | None = None
    author: str | None = None
    publisher: str | None = None
    thumbnail: str | None = None
    icon: str | None = None


class BookmarkPayload(BaseModel):
    model_config = ConfigDict(frozen=True)

    version: Literal["1.0"] = BookmarkDefaults.VERSION
    type: Literal["bookmark"] = BookmarkDefaults.TYPE
    url: str
    metadata: BookmarkMetadata

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


EmbedResult = Union[PhotoEmbed, VideoEmbed, LinkEmbed, RichEmbed, BookmarkPayload]

_EMBED_RESULT_ADAPTER: TypeAdapter = TypeAdapter(
    Annotated[
        Union[PhotoEmbed, VideoEmbed, LinkEmbed, RichEmbed, BookmarkPayload],
        Field(discriminator="type"),
    ]
)

EMBED_RESULT_TYPES = (PhotoEmbed, VideoEmbed, LinkEmbed, RichEmbed, BookmarkPayload)


def coerce_embed_result(value: Any) -> EmbedResult:
    """Return value as an EmbedResult model; dicts are validated, other shapes rejected.

    Raises ``pydantic.ValidationError`` or ``TypeError`` when the value is not
    an embed result.
    """
    if isinstance(value, EMBED_RESULT_TYPES):
        return value
    if isinstance(value, dict):
        return _EMBED_RESULT_ADAPTER.validate_python(value)
    raise TypeError(f"unsupported embed result type: {type(value).__name__}")
