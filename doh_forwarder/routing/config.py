"""
Route table model and resolution of the DOMAIN_MAPPINGS override.

A route table maps a path prefix to an upstream host plus a secondary
sub-path substitution table. Both levels keep their configuration order,
lookups are first-match-wins.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Iterator, Mapping, Optional, Tuple

from doh_forwarder.errors import ConfigParseError
from doh_forwarder.utils.exception_logging import log_exception_with_details

logger = logging.getLogger("uvicorn.error")


@dataclass(frozen=True)
class RouteEntry:
    prefix: str
    target_domain: Optional[str]
    path_mapping: Tuple[Tuple[str, str], ...] = ()

    @classmethod
    def from_config(cls, prefix: str, raw: Any) -> "RouteEntry":
        """
        Build an entry from one DOMAIN_MAPPINGS value.

        Values are taken as-is; a missing or malformed targetDomain only
        surfaces when the entry is forwarded.
        """
        if not isinstance(raw, Mapping):
            return cls(prefix=prefix, target_domain=None)

        path_mapping = raw.get("pathMapping") or {}
        if isinstance(path_mapping, Mapping):
            pairs = tuple(path_mapping.items())
        else:
            pairs = ()

        return cls(
            prefix=prefix,
            target_domain=raw.get("targetDomain"),
            path_mapping=pairs,
        )


@dataclass(frozen=True)
class RouteTable:
    entries: Tuple[RouteEntry, ...]

    @classmethod
    def from_mapping(cls, mappings: Mapping[str, Any]) -> "RouteTable":
        return cls(
            entries=tuple(
                RouteEntry.from_config(prefix, raw) for prefix, raw in mappings.items()
            )
        )

    def __iter__(self) -> Iterator[RouteEntry]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def prefixes(self) -> list[str]:
        return [entry.prefix for entry in self.entries]


DEFAULT_ROUTE_TABLE = RouteTable.from_mapping(
    {
        "/google": {
            "targetDomain": "dns.google",
            "pathMapping": {"/query-dns": "/dns-query"},
        },
        "/cloudflare": {
            "targetDomain": "one.one.one.one",
            "pathMapping": {"/query-dns": "/dns-query"},
        },
    }
)

EMPTY_ROUTE_TABLE = RouteTable(entries=())


def parse_domain_mappings(raw: str) -> Any:
    """Decode a JSON DOMAIN_MAPPINGS value. Only invalid JSON is an error."""
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        raise ConfigParseError(f"DOMAIN_MAPPINGS is not valid JSON: {e}") from e


def resolve_route_table(domain_mappings: Any = None) -> RouteTable:
    """
    Resolve the route table for a request.

    ``domain_mappings`` is the host's DOMAIN_MAPPINGS value: JSON text, an
    already structured mapping, or nothing. Text that cannot be decoded is
    logged and replaced by DEFAULT_ROUTE_TABLE. A decoded or structured value
    that is not a mapping has no prefixes, so it yields an empty table and
    every non-root path gets the homepage.
    """
    if domain_mappings is None or domain_mappings == "":
        return DEFAULT_ROUTE_TABLE

    try:
        if isinstance(domain_mappings, (str, bytes)):
            if isinstance(domain_mappings, bytes):
                domain_mappings = domain_mappings.decode("utf-8")
            mappings = parse_domain_mappings(domain_mappings)
        else:
            mappings = domain_mappings
    except (ConfigParseError, UnicodeDecodeError) as e:
        log_exception_with_details(
            logger, "[Config] Error reading DOMAIN_MAPPINGS, using defaults.", e
        )
        return DEFAULT_ROUTE_TABLE

    if not isinstance(mappings, Mapping):
        logger.warning(
            f"[Config] DOMAIN_MAPPINGS is a {type(mappings).__name__}, not an object;"
            " no prefix routes configured"
        )
        return EMPTY_ROUTE_TABLE

    return RouteTable.from_mapping(mappings)
