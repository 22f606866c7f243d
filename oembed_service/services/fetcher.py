"""Guarded page fetcher: SSRF-vetted GET with charset detection and JSON parsing."""

from __future__ import annotations

import asyncio
import codecs
import json
from collections.abc import Awaitable, Callable

import httpx
import structlog
from bs4.dammit import EncodingDetector

from oembed_service.core.config import Settings, settings
from oembed_service.core.constants import LOG_URL_MAX_CHARS, REDIRECT_STATUSES, HttpHeaders
from oembed_service.core.errors import InternalServerError, UnsafeUrlError
from oembed_service.core.url_safety import check_url
from oembed_service.models.schemas import FetchResult, HtmlPage, JsonPage

logger = structlog.get_logger(__name__)


def _raw_decode(body: bytes) -> str:
    return body.decode("utf-8", errors="replace")


def detect_charset(header_charset: str | None, body: bytes) -> str | None:
    """Return the declared charset from the HTTP header, a BOM, or the document itself."""
    if header_charset:
        return header_charset.strip().lower() or None
    _, bom_encoding = EncodingDetector.strip_byte_order_mark(body)
    if bom_encoding:
        return bom_encoding
    declared = EncodingDetector.find_declared_encoding(body, is_html=True)
    return declared.lower() if declared else None


def decode_html(result: FetchResult) -> str:
    """Decode fetched HTML bytes, degrading to a raw UTF-8 decode on any charset problem."""
    try:
        encoding = detect_charset(result.charset, result.body)
        if encoding is None:
            return _raw_decode(result.body)
        codecs.lookup(encoding)
        body, _ = EncodingDetector.strip_byte_order_mark(result.body)
        return body.decode(encoding)
    except (LookupError, UnicodeDecodeError, ValueError) as exc:
        logger.warning(
            "oembed.fetch.charset_decode_failed",
            url=result.url[:LOG_URL_MAX_CHARS],
            error=str(exc),
        )
        return _raw_decode(result.body)


class PageFetcher:
    """Performs bounded, SSRF-guarded GET requests.

    Each call opens its own client so cookies never leak between unrelated
    requests. Redirects are followed manually so that every hop, including the
    final URL, is vetted before a request is dispatched. Nothing is retried.
    """

    def __init__(
        self,
        *,
        site_url: str | None = None,
        timeout: float | None = None,
        max_redirects: int | None = None,
        max_body_bytes: int | None = None,
        user_agent: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        config: Settings | None = None,
    ) -> None:
        cfg = config or settings
        self.site_url = site_url if site_url is not None else cfg.SITE_URL
        self.timeout = timeout if timeout is not None else cfg.EMBED_FETCH_TIMEOUT_SECONDS
        self.max_redirects = (
            max_redirects if max_redirects is not None else cfg.EMBED_MAX_REDIRECTS
        )
        self.max_body_bytes = (
            max_body_bytes if max_body_bytes is not None else cfg.EMBED_MAX_BODY_BYTES
        )
        self.user_agent = user_agent or cfg.EMBED_USER_AGENT
        self._transport = transport

    def _guard(self, url: str) -> None:
        safe, reason = check_url(url, site_url=self.site_url)
        if not safe:
            logger.info("oembed.fetch.blocked", reason=reason, url=url[:LOG_URL_MAX_CHARS])
            raise UnsafeUrlError(url, reason)

    @property
    def guarded_request(self) -> Callable[..., Awaitable[FetchResult]]:
        """The bound guarded GET handed to custom providers."""
        return self.fetch_page

    async def fetch_page(self, url: str, *, headers: dict[str, str] | None = None) -> FetchResult:
        """GET url following redirects; every hop passes the SSRF guard first.

        The timeout bounds the whole call, redirect hops and body read included.
        """
        try:
            return await asyncio.wait_for(self._fetch(url, headers), timeout=self.timeout)
        except TimeoutError as exc:
            logger.warning(
                "oembed.fetch.timeout",
                url=str(url)[:LOG_URL_MAX_CHARS],
                timeout_seconds=self.timeout,
            )
            raise InternalServerError("fetch_timeout", context=url, err=exc) from exc

    async def _fetch(self, url: str, headers: dict[str, str] | None) -> FetchResult:
        request_headers = {"User-Agent": self.user_agent, "Accept": HttpHeaders.ACCEPT_HTML}
        request_headers.update(headers or {})
        current_url = str(url).strip()

        async with httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout),
            follow_redirects=False,
            cookies=httpx.Cookies(),
            transport=self._transport,
        ) as client:
            for _ in range(max(0, int(self.max_redirects)) + 1):
                self._guard(current_url)

                async with client.stream("GET", current_url, headers=request_headers) as resp:
                    if resp.status_code in REDIRECT_STATUSES:
                        location = str(resp.headers.get("location") or "").strip()
                        if not location:
                            raise InternalServerError("redirect_missing_location", context=url)
                        current_url = str(resp.url.join(location))
                        continue

                    resp.raise_for_status()
                    chunks: list[bytes] = []
                    seen = 0
                    async for part in resp.aiter_bytes():
                        seen += len(part)
                        if seen > self.max_body_bytes:
                            raise InternalServerError("source_too_large", context=url)
                        chunks.append(part)

                    final_url = str(resp.url)
                    # Post-fetch check on the resolved URL
                    self._guard(final_url)
                    return FetchResult(
                        url=final_url,
                        body=b"".join(chunks),
                        headers=dict(resp.headers),
                        status_code=resp.status_code,
                        charset=resp.charset_encoding,
                    )

        raise InternalServerError("too_many_redirects", context=url)

    async def fetch_html(self, url: str) -> HtmlPage:
        """Fetch url and decode the body using the detected page charset."""
        result = await self.fetch_page(url)
        return HtmlPage(url=result.url, html=decode_html(result))

    async def fetch_json(self, url: str) -> JsonPage:
        """Fetch url negotiating JSON; malformed JSON is a fetch-level failure."""
        result = await self.fetch_page(url, headers={"Accept": HttpHeaders.ACCEPT_JSON})
        try:
            data = json.loads(result.body)
        except ValueError as exc:
            raise InternalServerError("malformed_json", context=url, err=exc) from exc
        return JsonPage(url=result.url, data=data)
