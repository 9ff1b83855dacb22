import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional, Tuple, Union

import httpx

from doh_forwarder.errors import AssetUnavailable

logger = logging.getLogger("uvicorn.error")

HTML_MEDIA_TYPE = "text/html; charset=utf-8"
INDEX_ASSET = "index.html"

# Fetched asset headers that describe the upstream encoding of the body, not
# the decoded bytes served back
UNCARRIED_ASSET_HEADERS = {
    "connection",
    "content-encoding",
    "content-length",
    "content-type",
    "keep-alive",
    "transfer-encoding",
}


@dataclass(frozen=True)
class Asset:
    content: bytes
    media_type: str = HTML_MEDIA_TYPE
    headers: Tuple[Tuple[str, str], ...] = ()


class AssetStore(ABC):
    """Key-value asset store: asset name in, bytes (or nothing) out."""

    @abstractmethod
    async def get(self, name: str) -> Optional[bytes]:
        """Return the stored bytes for ``name`` or None when absent."""


class MemoryAssetStore(AssetStore):
    def __init__(self, assets: Mapping[str, Union[str, bytes]]):
        self._assets = dict(assets)

    async def get(self, name: str) -> Optional[bytes]:
        value = self._assets.get(name)
        if isinstance(value, str):
            return value.encode("utf-8")
        return value


class DirectoryAssetStore(AssetStore):
    """Assets stored as files under a root directory."""

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root)

    def _resolve(self, name: str) -> Optional[Path]:
        root = self.root.resolve()
        candidate = (root / name).resolve()
        if candidate != root and root not in candidate.parents:
            logger.warning(f"[Homepage] Refusing asset outside {root}: {name}")
            return None
        return candidate

    async def get(self, name: str) -> Optional[bytes]:
        path = self._resolve(name)
        if path is None or not path.is_file():
            return None
        return await asyncio.to_thread(path.read_bytes)

    def __repr__(self) -> str:
        return f"DirectoryAssetStore({str(self.root)!r})"


class AssetFetcher(ABC):
    """Asset-fetch capability: performs an HTTP-style fetch for a named asset."""

    @abstractmethod
    async def fetch(self, name: str) -> httpx.Response:
        """Fetch ``name`` and return the full response."""


class HttpAssetFetcher(AssetFetcher):
    def __init__(
        self, base_url: str, transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.base_url = base_url.rstrip("/")
        self._transport = transport

    def url_for(self, name: str) -> str:
        return f"{self.base_url}/{name.lstrip('/')}"

    async def fetch(self, name: str) -> httpx.Response:
        async with httpx.AsyncClient(
            transport=self._transport, follow_redirects=True
        ) as client:
            response = await client.get(self.url_for(name))
            await response.aread()
            return response


class AssetSource(ABC):
    """One link of the homepage chain."""

    name = "asset-source"

    @abstractmethod
    async def try_fetch(self, asset_name: str) -> Asset:
        """Return the asset or raise AssetUnavailable."""


class KeyValueAssetSource(AssetSource):
    def __init__(self, store: AssetStore, name: str = "static-content"):
        self.store = store
        self.name = name

    async def try_fetch(self, asset_name: str) -> Asset:
        content = await self.store.get(asset_name)
        if not content:
            raise AssetUnavailable(self.name, asset_name)
        return Asset(content=content)


class FetchAssetSource(AssetSource):
    """Accepts the fetched asset only when it comes back with status 200."""

    def __init__(self, fetcher: AssetFetcher, name: str = "assets"):
        self.fetcher = fetcher
        self.name = name

    async def try_fetch(self, asset_name: str) -> Asset:
        response = await self.fetcher.fetch(asset_name)
        if response.status_code != 200:
            raise AssetUnavailable(
                self.name, asset_name, f"returned status {response.status_code}"
            )
        return Asset(
            content=response.content,
            media_type=response.headers.get("content-type", HTML_MEDIA_TYPE),
            headers=tuple(
                (name, value)
                for name, value in response.headers.multi_items()
                if name.lower() not in UNCARRIED_ASSET_HEADERS
            ),
        )


class OriginAssetSource(FetchAssetSource):
    """Fetches ``/<asset>`` from the configured site origin."""

    def __init__(
        self, origin_url: str, transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        super().__init__(HttpAssetFetcher(origin_url, transport=transport), name="origin")
