import logging
from typing import Iterable

from fastapi.responses import HTMLResponse, Response
from opentelemetry import trace

from doh_forwarder.errors import AssetUnavailable
from doh_forwarder.homepage.sources import INDEX_ASSET, AssetSource
from doh_forwarder.utils.exception_logging import log_exception_with_details

tracer = trace.get_tracer(__name__)
logger = logging.getLogger("uvicorn.error")

EMBEDDED_HOMEPAGE = """<!DOCTYPE html>
<html>
  <head>
    <title>DoH Forwarding Proxy</title>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
  </head>
  <body>
    <h1>DoH Forwarding Proxy</h1>
    <p>This is a DNS over HTTPS forwarding proxy. Requests are routed to an
    upstream resolver by their path prefix, for example
    <code>/google/query-dns</code> is forwarded to
    <code>https://dns.google/dns-query</code>.</p>
    <p>See the project README for the available prefixes and for how to
    configure your own with <code>DOMAIN_MAPPINGS</code>.</p>
  </body>
</html>
"""


async def serve_homepage(sources: Iterable[AssetSource]) -> Response:
    """
    Serve index.html from the first source that has it, else the embedded page.

    Source failures are logged and skipped; this never raises.
    """
    with tracer.start_as_current_span("serve_homepage") as span:
        for source in sources:
            try:
                asset = await source.try_fetch(INDEX_ASSET)
            except AssetUnavailable as e:
                logger.debug(f"[Homepage] {e}")
                continue
            except Exception as e:
                log_exception_with_details(
                    logger,
                    f"[Homepage] Asset source {source.name} failed.",
                    e,
                    level=logging.DEBUG,
                )
                continue

            span.set_attribute("homepage.source", source.name)
            return Response(
                content=asset.content,
                status_code=200,
                headers=dict(asset.headers),
                media_type=asset.media_type,
            )

        logger.warning(
            f"[Homepage] Could not fetch {INDEX_ASSET}, serving embedded homepage"
        )
        span.set_attribute("homepage.source", "embedded")
        return HTMLResponse(content=EMBEDDED_HOMEPAGE, status_code=200)
