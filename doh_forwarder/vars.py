import os
from typing import Optional

SERVICE_NAME = os.getenv("SERVICE_NAME", "doh-forwarder")

# Route table override, a JSON object keyed by path prefix
DOMAIN_MAPPINGS = os.getenv("DOMAIN_MAPPINGS")

# Homepage asset sources, tried in this order
STATIC_CONTENT_DIR = os.getenv("STATIC_CONTENT_DIR", "")
ASSETS_URL = os.getenv("ASSETS_URL", "").rstrip("/")
LEGACY_STATIC_CONTENT_DIR = os.getenv("LEGACY_STATIC_CONTENT_DIR", "")
HOMEPAGE_ORIGIN_URL = os.getenv("HOMEPAGE_ORIGIN_URL", "").rstrip("/")


def _parse_timeout(raw: str) -> Optional[float]:
    if not raw or not raw.strip():
        return None
    value = float(raw)
    return value if value > 0 else None


FORWARD_TIMEOUT = _parse_timeout(os.getenv("FORWARD_TIMEOUT", ""))

METRICS_PATH = os.getenv("METRICS_PATH", "/metrics")

OTLP_ENDPOINT = os.getenv("OTLP_ENDPOINT")
OTLP_HEADERS = os.getenv("OTLP_HEADERS", "")

HOST = os.environ.get("HOSTNAME", "0.0.0.0")
PORT = int(os.environ.get("PORT", "8080"))
