from typing import Callable, List

import httpx
import pytest

from doh_forwarder.forwarding import forwarder


class RecordingUpstream:
    """Fake upstream resolver that records every request the forwarder sends."""

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.clients: List[httpx.AsyncClient] = []
        self.handler: Callable[[httpx.Request], httpx.Response] = (
            lambda request: httpx.Response(
                200,
                content=b"upstream-answer",
                headers={"content-type": "application/dns-message"},
            )
        )

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self.handler(request)
        # A response built from ``content=`` is already read; hand the
        # forwarder an unread stream so it can iterate the raw body
        return httpx.Response(
            response.status_code,
            headers=response.headers,
            stream=httpx.ByteStream(response.content),
        )

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]


@pytest.fixture
def upstream(monkeypatch):
    """Route every forwarded request to an in-process fake upstream."""
    recorder = RecordingUpstream()
    transport = httpx.MockTransport(recorder)
    build_client = forwarder.build_client

    def recording_build_client():
        client = build_client(transport)
        recorder.clients.append(client)
        return client

    monkeypatch.setattr(forwarder, "build_client", recording_build_client)
    return recorder
