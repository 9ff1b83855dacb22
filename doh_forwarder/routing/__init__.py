from .config import (
    DEFAULT_ROUTE_TABLE,
    RouteEntry,
    RouteTable,
    resolve_route_table,
)
from .rewrite import ResolvedTarget, resolve_target, rewrite_path
from .router import match_route

__all__ = [
    "DEFAULT_ROUTE_TABLE",
    "RouteEntry",
    "RouteTable",
    "ResolvedTarget",
    "match_route",
    "resolve_route_table",
    "resolve_target",
    "rewrite_path",
]
