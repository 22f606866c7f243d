"""Error types raised by the embed resolver.

Only ``ValidationError`` ever leaves ``OEmbedService``. The other types are
raised internally and normalized to the "unknown provider" validation error
at the orchestrator boundary.
"""

from __future__ import annotations

from oembed_service.core.constants import ErrorKind, Messages


class EmbedError(Exception):
    """Base error carrying a message, the requested URL and an optional cause."""

    def __init__(
        self,
        message: str,
        *,
        context: str | None = None,
        err: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.context = context
        self.err = err

    def __str__(self) -> str:
        if self.context:
            return f"{self.message} ({self.context})"
        return self.message


class ValidationError(EmbedError):
    """Externally visible failure: unknown provider, insufficient metadata or no url."""

    def __init__(
        self,
        message: str,
        *,
        kind: ErrorKind,
        context: str | None = None,
        err: BaseException | None = None,
    ) -> None:
        super().__init__(message, context=context, err=err)
        self.kind = kind

    @classmethod
    def unknown_provider(cls, url: str | None) -> ValidationError:
        return cls(Messages.UNKNOWN_PROVIDER, kind=ErrorKind.UNKNOWN_PROVIDER, context=url)

    @classmethod
    def insufficient_metadata(cls, url: str | None) -> ValidationError:
        return cls(
            Messages.INSUFFICIENT_METADATA,
            kind=ErrorKind.INSUFFICIENT_METADATA,
            context=url,
        )

    @classmethod
    def no_url(cls) -> ValidationError:
        return cls(Messages.NO_URL_PROVIDED, kind=ErrorKind.NO_URL)


class InternalServerError(EmbedError):
    """Unexpected failure inside scraping, extraction or JSON parsing."""


class UnsafeUrlError(EmbedError):
    """A fetch hop was rejected by the SSRF guard."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"unsafe_url:{reason}", context=url)
        self.reason = reason
