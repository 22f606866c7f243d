"""Shared fixtures: a stub HTTP router backed by httpx.MockTransport."""

from __future__ import annotations

import json
from typing import Any

import httpx
import pytest

from oembed_service.core.config import Settings
from oembed_service.services.fetcher import PageFetcher
from oembed_service.services.resolver import OEmbedService

SITE_URL = "https://myblog.example"


class StubRouter:
    """Maps URLs to canned responses and records every request that reaches the wire."""

    def __init__(self) -> None:
        self.routes: dict[str, tuple[int, bytes, dict[str, str]]] = {}
        self.requests: list[httpx.Request] = []

    def add(
        self,
        url: str,
        *,
        status: int = 200,
        body: bytes | str = b"",
        headers: dict[str, str] | None = None,
        json_body: Any = None,
    ) -> None:
        response_headers = dict(headers or {})
        if json_body is not None:
            body = json.dumps(json_body)
            response_headers.setdefault("content-type", "application/json")
        if isinstance(body, str):
            body = body.encode("utf-8")
            response_headers.setdefault("content-type", "text/html; charset=utf-8")
        self.routes[url] = (status, body, response_headers)

    def html(self, url: str, html: str) -> None:
        self.add(url, body=html)

    def redirect(self, url: str, location: str, status: int = 302) -> None:
        self.add(url, status=status, headers={"location": location})

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get(str(request.url))
        if route is None:
            route = self.routes.get(str(request.url).split("?", 1)[0])
        if route is None:
            return httpx.Response(404, content=b"not found")
        status, body, headers = route
        return httpx.Response(status, content=body, headers=headers)

    @property
    def requested_urls(self) -> list[str]:
        return [str(request.url) for request in self.requests]

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def router() -> StubRouter:
    return StubRouter()


@pytest.fixture
def config() -> Settings:
    return Settings(SITE_URL=SITE_URL, EMBED_FETCH_TIMEOUT_SECONDS=2.0, EMBED_MAX_REDIRECTS=3)


@pytest.fixture
def fetcher(router: StubRouter, config: Settings) -> PageFetcher:
    return PageFetcher(config=config, transport=router.transport)


@pytest.fixture
def service(fetcher: PageFetcher, config: Settings) -> OEmbedService:
    return OEmbedService(config=config, fetcher=fetcher)
