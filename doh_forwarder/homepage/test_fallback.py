import logging

import pytest

from doh_forwarder.errors import AssetUnavailable
from doh_forwarder.homepage.fallback import EMBEDDED_HOMEPAGE, serve_homepage
from doh_forwarder.homepage.sources import (
    Asset,
    AssetSource,
    KeyValueAssetSource,
    MemoryAssetStore,
)


class StaticSource(AssetSource):
    def __init__(self, name, asset=None, error=None):
        self.name = name
        self.asset = asset
        self.error = error
        self.calls = 0

    async def try_fetch(self, asset_name):
        self.calls += 1
        if self.error is not None:
            raise self.error
        if self.asset is None:
            raise AssetUnavailable(self.name, asset_name)
        return self.asset


@pytest.mark.asyncio
async def test_no_sources_serves_embedded_page():
    response = await serve_homepage([])

    assert response.status_code == 200
    assert response.headers["content-type"] == "text/html; charset=utf-8"
    assert response.body == EMBEDDED_HOMEPAGE.encode("utf-8")


@pytest.mark.asyncio
async def test_first_available_source_wins():
    first = StaticSource("first")
    second = StaticSource("second", asset=Asset(content=b"<h1>second</h1>"))
    third = StaticSource("third", asset=Asset(content=b"<h1>third</h1>"))

    response = await serve_homepage([first, second, third])

    assert response.body == b"<h1>second</h1>"
    assert response.headers["content-type"] == "text/html; charset=utf-8"
    assert (first.calls, second.calls, third.calls) == (1, 1, 0)


@pytest.mark.asyncio
async def test_source_errors_are_skipped():
    broken = StaticSource("broken", error=RuntimeError("store offline"))
    working = KeyValueAssetSource(MemoryAssetStore({"index.html": "<h1>ok</h1>"}))

    response = await serve_homepage([broken, working])

    assert response.status_code == 200
    assert response.body == b"<h1>ok</h1>"


@pytest.mark.asyncio
async def test_fetched_media_type_is_kept():
    source = StaticSource(
        "assets", asset=Asset(content=b"<h1>x</h1>", media_type="text/html")
    )

    response = await serve_homepage([source])

    assert response.headers["content-type"].startswith("text/html")


@pytest.mark.asyncio
async def test_asset_headers_are_served():
    source = StaticSource(
        "assets",
        asset=Asset(
            content=b"<h1>x</h1>",
            headers=(("cache-control", "max-age=600"), ("etag", '"v1"')),
        ),
    )

    response = await serve_homepage([source])

    assert response.headers["cache-control"] == "max-age=600"
    assert response.headers["etag"] == '"v1"'
    assert response.headers["content-type"] == "text/html; charset=utf-8"


@pytest.mark.asyncio
async def test_exhaustion_logs_and_serves_embedded_page(caplog):
    sources = [
        StaticSource("static-content"),
        StaticSource("assets", error=ConnectionError("refused")),
    ]

    with caplog.at_level(logging.WARNING, logger="uvicorn.error"):
        response = await serve_homepage(sources)

    assert response.status_code == 200
    assert b"DoH Forwarding Proxy" in response.body
    assert any(
        "Could not fetch index.html" in record.getMessage() for record in caplog.records
    )
