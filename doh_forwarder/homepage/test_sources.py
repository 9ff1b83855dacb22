import httpx
import pytest

from doh_forwarder.errors import AssetUnavailable
from doh_forwarder.homepage.sources import (
    HTML_MEDIA_TYPE,
    DirectoryAssetStore,
    FetchAssetSource,
    HttpAssetFetcher,
    KeyValueAssetSource,
    MemoryAssetStore,
    OriginAssetSource,
)


def static_transport(routes: dict) -> httpx.MockTransport:
    """Serve ``routes`` (path -> response) and 404 for anything else."""

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path in routes:
            return routes[request.url.path]
        return httpx.Response(404)

    return httpx.MockTransport(handler)


class TestMemoryAssetStore:
    @pytest.mark.asyncio
    async def test_text_is_encoded(self):
        store = MemoryAssetStore({"index.html": "<h1>hi</h1>"})

        assert await store.get("index.html") == b"<h1>hi</h1>"

    @pytest.mark.asyncio
    async def test_missing_asset(self):
        assert await MemoryAssetStore({}).get("index.html") is None


class TestDirectoryAssetStore:
    @pytest.mark.asyncio
    async def test_reads_file(self, tmp_path):
        (tmp_path / "index.html").write_bytes(b"<h1>from disk</h1>")

        store = DirectoryAssetStore(tmp_path)

        assert await store.get("index.html") == b"<h1>from disk</h1>"

    @pytest.mark.asyncio
    async def test_missing_file(self, tmp_path):
        assert await DirectoryAssetStore(tmp_path).get("index.html") is None

    @pytest.mark.asyncio
    async def test_directory_is_not_an_asset(self, tmp_path):
        (tmp_path / "index.html").mkdir()

        assert await DirectoryAssetStore(tmp_path).get("index.html") is None

    @pytest.mark.asyncio
    async def test_refuses_names_outside_root(self, tmp_path):
        root = tmp_path / "site"
        root.mkdir()
        (tmp_path / "secret.txt").write_text("secret")

        assert await DirectoryAssetStore(root).get("../secret.txt") is None


class TestKeyValueAssetSource:
    @pytest.mark.asyncio
    async def test_hit_is_served_as_html(self):
        source = KeyValueAssetSource(MemoryAssetStore({"index.html": b"<p>x</p>"}))

        asset = await source.try_fetch("index.html")

        assert asset.content == b"<p>x</p>"
        assert asset.media_type == HTML_MEDIA_TYPE

    @pytest.mark.asyncio
    async def test_miss_raises(self):
        source = KeyValueAssetSource(MemoryAssetStore({}), name="legacy-static-content")

        with pytest.raises(AssetUnavailable) as exc_info:
            await source.try_fetch("index.html")

        assert exc_info.value.source == "legacy-static-content"

    @pytest.mark.asyncio
    async def test_empty_content_counts_as_miss(self):
        source = KeyValueAssetSource(MemoryAssetStore({"index.html": b""}))

        with pytest.raises(AssetUnavailable):
            await source.try_fetch("index.html")


class TestFetchAssetSource:
    @pytest.mark.asyncio
    async def test_accepts_status_200(self):
        transport = static_transport(
            {
                "/index.html": httpx.Response(
                    200, content=b"<h1>assets</h1>", headers={"content-type": "text/html"}
                )
            }
        )
        source = FetchAssetSource(
            HttpAssetFetcher("https://assets.internal", transport=transport)
        )

        asset = await source.try_fetch("index.html")

        assert asset.content == b"<h1>assets</h1>"
        assert asset.media_type == "text/html"

    @pytest.mark.asyncio
    async def test_cache_headers_carried_with_asset(self):
        transport = static_transport(
            {
                "/index.html": httpx.Response(
                    200,
                    content=b"<h1>assets</h1>",
                    headers={
                        "content-type": "text/html",
                        "cache-control": "public, max-age=600",
                        "etag": '"v1"',
                    },
                )
            }
        )
        source = FetchAssetSource(
            HttpAssetFetcher("https://assets.internal", transport=transport)
        )

        asset = await source.try_fetch("index.html")
        headers = dict(asset.headers)

        assert headers["cache-control"] == "public, max-age=600"
        assert headers["etag"] == '"v1"'
        assert "content-type" not in headers
        assert "content-length" not in headers

    @pytest.mark.asyncio
    async def test_non_200_raises(self):
        source = FetchAssetSource(
            HttpAssetFetcher("https://assets.internal", transport=static_transport({}))
        )

        with pytest.raises(AssetUnavailable) as exc_info:
            await source.try_fetch("index.html")

        assert "404" in exc_info.value.reason

    @pytest.mark.asyncio
    async def test_transport_errors_propagate(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        source = FetchAssetSource(
            HttpAssetFetcher(
                "https://assets.internal", transport=httpx.MockTransport(handler)
            )
        )

        with pytest.raises(httpx.ConnectError):
            await source.try_fetch("index.html")


def test_http_asset_fetcher_url():
    fetcher = HttpAssetFetcher("https://assets.internal/site/")

    assert fetcher.url_for("index.html") == "https://assets.internal/site/index.html"
    assert fetcher.url_for("/index.html") == "https://assets.internal/site/index.html"


@pytest.mark.asyncio
async def test_origin_source_fetches_index_from_origin():
    seen = []

    def handler(request):
        seen.append(str(request.url))
        return httpx.Response(200, content=b"<h1>origin</h1>")

    source = OriginAssetSource(
        "https://www.example.com", transport=httpx.MockTransport(handler)
    )

    asset = await source.try_fetch("index.html")

    assert source.name == "origin"
    assert seen == ["https://www.example.com/index.html"]
    assert asset.content == b"<h1>origin</h1>"
