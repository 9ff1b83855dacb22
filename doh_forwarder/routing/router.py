from typing import Optional

from doh_forwarder.routing.config import RouteEntry, RouteTable


def match_route(table: RouteTable, path: str) -> Optional[RouteEntry]:
    """
    Return the first entry whose prefix starts ``path``, in table order.

    Matching is a plain string prefix test, so ``/googleX`` matches ``/google``.
    """
    for entry in table:
        if path.startswith(entry.prefix):
            return entry
    return None
