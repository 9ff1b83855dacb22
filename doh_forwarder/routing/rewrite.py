from dataclasses import dataclass

from doh_forwarder.routing.config import RouteEntry


@dataclass(frozen=True)
class ResolvedTarget:
    target_domain: str
    target_path: str


def strip_prefix(entry: RouteEntry, path: str) -> str:
    return path[len(entry.prefix):]


def rewrite_path(entry: RouteEntry, remaining_path: str) -> str:
    """
    Apply the first sub-mapping whose source starts ``remaining_path``.

    The first textual occurrence of the source is replaced. Paths no
    sub-mapping applies to pass through unchanged.
    """
    for source, destination in entry.path_mapping:
        if remaining_path.startswith(source):
            return remaining_path.replace(source, destination, 1)
    return remaining_path


def resolve_target(entry: RouteEntry, path: str) -> ResolvedTarget:
    return ResolvedTarget(
        target_domain=entry.target_domain,
        target_path=rewrite_path(entry, strip_prefix(entry, path)),
    )
