import logging
from typing import AsyncIterator, List, Optional, Tuple

import httpx
from fastapi import Request
from fastapi.responses import StreamingResponse
from opentelemetry import trace

from doh_forwarder.errors import InvalidRouteError
from doh_forwarder.routing.rewrite import ResolvedTarget
from doh_forwarder.vars import FORWARD_TIMEOUT

tracer = trace.get_tracer(__name__)
logger = logging.getLogger("uvicorn.error")

# Hop-by-hop headers that should NOT be forwarded (RFC 7230 section 6.1)
HOP_BY_HOP_HEADERS = {
    "connection",
    "keep-alive",
    "proxy-authenticate",
    "proxy-authorization",
    "te",
    "trailer",
    "trailers",
    "transfer-encoding",
    "upgrade",
}

# Request headers the HTTP client derives from the outbound request itself
CLIENT_MANAGED_HEADERS = {"host", "content-length"}


def build_target_url(target: ResolvedTarget, query_string: str) -> str:
    """Build ``https://{domain}{path}{query}``; the query keeps its leading ``?``."""
    return f"https://{target.target_domain}{target.target_path}{query_string}"


def prepare_headers(request: Request) -> List[Tuple[str, str]]:
    """
    Copy the inbound headers for the upstream request.

    Repeated headers are kept in order. Hop-by-hop headers and the headers
    the client sets on its own are left out.
    """
    headers = []
    for name, value in request.headers.items():
        name_lower = name.lower()
        if name_lower in HOP_BY_HOP_HEADERS or name_lower in CLIENT_MANAGED_HEADERS:
            continue
        headers.append((name, value))
    return headers


def response_headers(response: httpx.Response) -> List[Tuple[bytes, bytes]]:
    """Upstream response headers as raw ASGI pairs, minus hop-by-hop headers."""
    return [
        (name.encode("latin-1"), value.encode("latin-1"))
        for name, value in response.headers.multi_items()
        if name.lower() not in HOP_BY_HOP_HEADERS
    ]


def build_client(transport: Optional[httpx.AsyncBaseTransport] = None) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        timeout=httpx.Timeout(FORWARD_TIMEOUT),
        follow_redirects=True,
        transport=transport,
    )


async def stream_upstream(
    response: httpx.Response, client: httpx.AsyncClient
) -> AsyncIterator[bytes]:
    """Yield the raw upstream body, closing response and client however it ends."""
    try:
        async for chunk in response.aiter_raw():
            yield chunk
    finally:
        await response.aclose()
        await client.aclose()


async def forward_request(
    request: Request, target: ResolvedTarget, query_string: str
) -> StreamingResponse:
    """
    Send the inbound request to its upstream and stream the answer back.

    Method, headers and body are passed through and redirects are followed.
    Transport failures (``httpx.TransportError``) are not handled here; they
    propagate to the exception handlers installed by the server.
    """
    if not target.target_domain or not isinstance(target.target_domain, str):
        raise InvalidRouteError(request.url.path, "route has no targetDomain")

    with tracer.start_as_current_span("forward_request") as span:
        target_url = build_target_url(target, query_string)
        span.set_attribute("forward.target_url", target_url)
        span.set_attribute("forward.method", request.method)

        logger.debug(f"[Forward] {request.method} {request.url.path} -> {target_url}")

        body = await request.body()
        client = build_client()
        upstream_request = client.build_request(
            method=request.method,
            url=target_url,
            headers=prepare_headers(request),
            content=body,
        )

        try:
            upstream = await client.send(upstream_request, stream=True)
        except BaseException:
            await client.aclose()
            raise

        span.set_attribute("forward.status_code", upstream.status_code)

        response = StreamingResponse(
            stream_upstream(upstream, client),
            status_code=upstream.status_code,
        )
        # Replace the defaults so the upstream headers pass through verbatim
        response.raw_headers = response_headers(upstream)
        return response
