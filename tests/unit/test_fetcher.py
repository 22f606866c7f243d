"""Unit tests for the guarded page fetcher."""

import asyncio

import httpx
import pytest

from oembed_service.core.errors import InternalServerError, UnsafeUrlError
from oembed_service.models.schemas import FetchResult
from oembed_service.services.fetcher import PageFetcher, decode_html, detect_charset


@pytest.mark.asyncio
async def test_fetch_html_returns_final_url_after_redirect(router, fetcher: PageFetcher) -> None:
    """Redirects are followed and the resolved URL is reported."""
    router.redirect("https://short.example/abc", "https://example.com/article")
    router.html("https://example.com/article", "<html><title>Hi</title></html>")

    page = await fetcher.fetch_html("https://short.example/abc")

    assert page.url == "https://example.com/article"
    assert "<title>Hi</title>" in page.html
    assert router.requested_urls == ["https://short.example/abc", "https://example.com/article"]


@pytest.mark.asyncio
async def test_relative_redirect_location_is_resolved(router, fetcher: PageFetcher) -> None:
    """Relative Location headers are joined onto the current URL."""
    router.redirect("https://example.com/old", "/new")
    router.html("https://example.com/new", "<p>moved</p>")

    page = await fetcher.fetch_html("https://example.com/old")

    assert page.url == "https://example.com/new"


@pytest.mark.asyncio
async def test_unsafe_url_is_never_requested(router, fetcher: PageFetcher) -> None:
    """The guard rejects loopback targets before any request is dispatched."""
    with pytest.raises(UnsafeUrlError) as excinfo:
        await fetcher.fetch_html("http://127.0.0.1:8080/admin")

    assert excinfo.value.reason == "ipv4_literal"
    assert router.requests == []


@pytest.mark.asyncio
async def test_redirect_to_private_host_is_blocked(router, fetcher: PageFetcher) -> None:
    """A public page redirecting to an internal address is rejected at the hop."""
    router.redirect("https://evil.example/go", "http://localhost/secret")
    router.html("http://localhost/secret", "<p>secret</p>")

    with pytest.raises(UnsafeUrlError):
        await fetcher.fetch_html("https://evil.example/go")

    assert router.requested_urls == ["https://evil.example/go"]


@pytest.mark.asyncio
async def test_too_many_redirects(router, fetcher: PageFetcher) -> None:
    """Redirect loops stop after the configured hop limit."""
    router.redirect("https://loop.example/a", "https://loop.example/b")
    router.redirect("https://loop.example/b", "https://loop.example/a")

    with pytest.raises(InternalServerError, match="too_many_redirects"):
        await fetcher.fetch_page("https://loop.example/a")

    # EMBED_MAX_REDIRECTS=3 in the fixture config: first request plus three hops
    assert len(router.requests) == 4


@pytest.mark.asyncio
async def test_error_status_raises(router, fetcher: PageFetcher) -> None:
    """4xx/5xx responses fail the fetch."""
    router.add("https://example.com/gone", status=410, body=b"gone")

    with pytest.raises(httpx.HTTPStatusError):
        await fetcher.fetch_page("https://example.com/gone")


@pytest.mark.asyncio
async def test_body_size_limit(router, config) -> None:
    """Bodies over the configured cap are refused."""
    router.add("https://example.com/huge", body=b"x" * 4096)
    fetcher = PageFetcher(config=config, max_body_bytes=1024, transport=router.transport)

    with pytest.raises(InternalServerError, match="source_too_large"):
        await fetcher.fetch_page("https://example.com/huge")


@pytest.mark.asyncio
async def test_cookies_do_not_leak_between_fetches(router, fetcher: PageFetcher) -> None:
    """Each fetch uses a fresh cookie jar."""
    router.add(
        "https://example.com/login",
        body="<p>hi</p>",
        headers={"set-cookie": "session=abc123; Path=/"},
    )
    router.html("https://example.com/page", "<p>page</p>")

    await fetcher.fetch_page("https://example.com/login")
    await fetcher.fetch_page("https://example.com/page")

    assert "cookie" not in router.requests[1].headers


@pytest.mark.asyncio
async def test_cookies_persist_across_redirects_within_one_fetch(
    router, fetcher: PageFetcher
) -> None:
    """Cookies set during a redirect chain are sent on the next hop of the same fetch."""
    router.add(
        "https://example.com/start",
        status=302,
        headers={"location": "https://example.com/landing", "set-cookie": "consent=1; Path=/"},
    )
    router.html("https://example.com/landing", "<p>landing</p>")

    await fetcher.fetch_page("https://example.com/start")

    assert router.requests[1].headers.get("cookie") == "consent=1"


@pytest.mark.asyncio
async def test_fetch_html_decodes_header_charset(router, fetcher: PageFetcher) -> None:
    """The Content-Type charset drives decoding."""
    router.add(
        "https://example.fr/page",
        body="<title>Café crème</title>".encode("iso-8859-1"),
        headers={"content-type": "text/html; charset=iso-8859-1"},
    )

    page = await fetcher.fetch_html("https://example.fr/page")

    assert "Café crème" in page.html


@pytest.mark.asyncio
async def test_fetch_html_decodes_meta_charset(router, fetcher: PageFetcher) -> None:
    """Without a header charset the in-document declaration is used."""
    body = '<html><head><meta charset="windows-1252"><title>Naïve “quotes”</title>'.encode(
        "windows-1252"
    )
    router.add("https://example.com/legacy", body=body, headers={"content-type": "text/html"})

    page = await fetcher.fetch_html("https://example.com/legacy")

    assert "Naïve “quotes”" in page.html


@pytest.mark.asyncio
async def test_unknown_charset_degrades_to_raw_decode(router, fetcher: PageFetcher) -> None:
    """An unknown codec is logged and the body decoded as UTF-8 anyway."""
    router.add(
        "https://example.com/odd",
        body="<title>Zürich</title>".encode("utf-8"),
        headers={"content-type": "text/html; charset=x-made-up"},
    )

    page = await fetcher.fetch_html("https://example.com/odd")

    assert "Zürich" in page.html


def test_decode_failure_falls_back_to_raw_decode() -> None:
    """Bytes invalid for the declared charset do not fail the request."""
    result = FetchResult(url="https://example.com/", body=b"<p>\xff\xfe ok</p>", charset="ascii")

    html = decode_html(result)

    assert "ok" in html


def test_detect_charset_prefers_header() -> None:
    body = b'<meta charset="utf-8">'
    assert detect_charset("ISO-8859-1", body) == "iso-8859-1"
    assert detect_charset(None, body) == "utf-8"
    assert detect_charset(None, b"<p>no declaration</p>") is None


@pytest.mark.asyncio
async def test_fetch_json_parses_body_and_negotiates(router, fetcher: PageFetcher) -> None:
    """JSON requests send an Accept header and parse the response."""
    router.add("https://example.com/oembed", json_body={"type": "link", "version": "1.0"})

    page = await fetcher.fetch_json("https://example.com/oembed")

    assert page.data == {"type": "link", "version": "1.0"}
    assert router.requests[0].headers["accept"] == "application/json"


@pytest.mark.asyncio
async def test_fetch_json_malformed_body(router, fetcher: PageFetcher) -> None:
    """Malformed JSON is a fetch-level failure."""
    router.add(
        "https://example.com/broken",
        body=b"{not json",
        headers={"content-type": "application/json"},
    )

    with pytest.raises(InternalServerError, match="malformed_json"):
        await fetcher.fetch_json("https://example.com/broken")


@pytest.mark.asyncio
async def test_timeout_bounds_the_whole_fetch(config) -> None:
    """A server dripping bytes under the per-read timeout is still cut off."""

    async def drip():
        for _ in range(10):
            await asyncio.sleep(0.1)
            yield b"<p>slow</p>"

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, headers={"content-type": "text/html"}, content=drip())

    fetcher = PageFetcher(config=config, timeout=0.3, transport=httpx.MockTransport(handler))
    loop = asyncio.get_running_loop()
    started = loop.time()

    with pytest.raises(InternalServerError, match="fetch_timeout"):
        await fetcher.fetch_html("https://slow.example/page")

    assert loop.time() - started < 0.9


@pytest.mark.asyncio
async def test_guarded_request_is_the_guarded_fetch(router, fetcher: PageFetcher) -> None:
    router.html("https://example.com/a", "<p>a</p>")

    result = await fetcher.guarded_request("https://example.com/a")

    assert result.body == b"<p>a</p>"
    with pytest.raises(UnsafeUrlError):
        await fetcher.guarded_request("http://10.0.0.1/")
    assert router.requested_urls == ["https://example.com/a"]
