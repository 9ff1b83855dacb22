from .fallback import EMBEDDED_HOMEPAGE, serve_homepage
from .sources import (
    Asset,
    AssetSource,
    DirectoryAssetStore,
    FetchAssetSource,
    HttpAssetFetcher,
    KeyValueAssetSource,
    MemoryAssetStore,
    OriginAssetSource,
)

__all__ = [
    "EMBEDDED_HOMEPAGE",
    "serve_homepage",
    "Asset",
    "AssetSource",
    "DirectoryAssetStore",
    "FetchAssetSource",
    "HttpAssetFetcher",
    "KeyValueAssetSource",
    "MemoryAssetStore",
    "OriginAssetSource",
]
