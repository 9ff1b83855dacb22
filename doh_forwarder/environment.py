from dataclasses import dataclass
from typing import Any, List, Optional

from doh_forwarder.homepage.sources import (
    AssetFetcher,
    AssetSource,
    AssetStore,
    DirectoryAssetStore,
    FetchAssetSource,
    HttpAssetFetcher,
    KeyValueAssetSource,
    OriginAssetSource,
)
from doh_forwarder.vars import (
    ASSETS_URL,
    DOMAIN_MAPPINGS,
    HOMEPAGE_ORIGIN_URL,
    LEGACY_STATIC_CONTENT_DIR,
    STATIC_CONTENT_DIR,
)


@dataclass
class HostEnvironment:
    """Per-deployment configuration handed to the dispatcher with every request."""

    domain_mappings: Any = None
    static_content: Optional[AssetStore] = None
    assets: Optional[AssetFetcher] = None
    legacy_static_content: Optional[AssetStore] = None
    origin_url: Optional[str] = None

    @classmethod
    def from_env(cls) -> "HostEnvironment":
        return cls(
            domain_mappings=DOMAIN_MAPPINGS,
            static_content=(
                DirectoryAssetStore(STATIC_CONTENT_DIR) if STATIC_CONTENT_DIR else None
            ),
            assets=HttpAssetFetcher(ASSETS_URL) if ASSETS_URL else None,
            legacy_static_content=(
                DirectoryAssetStore(LEGACY_STATIC_CONTENT_DIR)
                if LEGACY_STATIC_CONTENT_DIR
                else None
            ),
            origin_url=HOMEPAGE_ORIGIN_URL or None,
        )

    def homepage_sources(self) -> List[AssetSource]:
        """Configured homepage sources in the order they are tried."""
        sources: List[AssetSource] = []
        if self.static_content is not None:
            sources.append(KeyValueAssetSource(self.static_content, name="static-content"))
        if self.assets is not None:
            sources.append(FetchAssetSource(self.assets, name="assets"))
        if self.legacy_static_content is not None:
            sources.append(
                KeyValueAssetSource(self.legacy_static_content, name="legacy-static-content")
            )
        if self.origin_url:
            sources.append(OriginAssetSource(self.origin_url))
        return sources
