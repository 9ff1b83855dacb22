class ConfigParseError(ValueError):
    """The DOMAIN_MAPPINGS override could not be read as a route table."""


class AssetUnavailable(Exception):
    """An asset source has no usable copy of the requested asset."""

    def __init__(self, source: str, name: str, reason: str = "not found"):
        super().__init__(f"{source}: {name} {reason}")
        self.source = source
        self.name = name
        self.reason = reason


class InvalidRouteError(Exception):
    """A matched route entry cannot be forwarded (e.g. no target domain)."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"No usable route for {path!r}: {reason}")
        self.path = path
        self.reason = reason
