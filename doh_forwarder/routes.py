import logging

from fastapi import APIRouter, Request
from fastapi.responses import Response

from doh_forwarder.environment import HostEnvironment
from doh_forwarder.forwarding.forwarder import forward_request
from doh_forwarder.homepage.fallback import serve_homepage
from doh_forwarder.routing.config import resolve_route_table
from doh_forwarder.routing.rewrite import resolve_target
from doh_forwarder.routing.router import match_route

router = APIRouter()
logger = logging.getLogger("uvicorn.error")

HOMEPAGE_PATHS = {"/", "/index.html"}


def get_environment(request: Request) -> HostEnvironment:
    environment = getattr(request.app.state, "environment", None)
    if environment is None:
        environment = HostEnvironment.from_env()
        request.app.state.environment = environment
    return environment


def request_path(request: Request) -> str:
    """The request path as sent on the wire, percent-escapes intact."""
    raw_path = request.scope.get("raw_path")
    if raw_path:
        return raw_path.split(b"?", 1)[0].decode("latin-1")
    return request.url.path


def request_query_string(request: Request) -> str:
    """The raw query string with its leading ``?``, or "" when there is none."""
    query = request.scope.get("query_string", b"").decode("latin-1")
    return f"?{query}" if query else ""


async def dispatch(request: Request) -> Response:
    environment = get_environment(request)
    path = request_path(request)
    query_string = request_query_string(request)

    if path in HOMEPAGE_PATHS:
        return await serve_homepage(environment.homepage_sources())

    table = resolve_route_table(environment.domain_mappings)
    entry = match_route(table, path)
    if entry is None:
        logger.debug(f"[Dispatch] No route for {path}, serving homepage")
        return await serve_homepage(environment.homepage_sources())

    target = resolve_target(entry, path)
    return await forward_request(request, target, query_string)


async def route_all(request: Request) -> Response:
    """Catch-all route: forward by path prefix or serve the homepage."""
    return await dispatch(request)


# No method filter: every HTTP method reaches dispatch
router.add_route("/{path:path}", route_all, include_in_schema=False)
