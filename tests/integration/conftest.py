"""Integration test fixtures (scripted httpx transports).

Requests go through real httpx clients, but the transport is an
``httpx.MockTransport`` replaying a script, so no network access is needed.
"""

import httpx
import pytest


class ScriptedTransport:
    """Request handler replaying responses or transport errors in order.

    Each script entry is either a status code, an ``httpx.Response`` or an
    exception class from httpx (raised with the current request). The last
    entry repeats once the script runs out.
    """

    def __init__(self, *script):
        self.script = list(script)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        entry = self.script[min(len(self.requests), len(self.script) - 1)]
        self.requests.append(request)
        if isinstance(entry, type) and issubclass(entry, httpx.TransportError):
            raise entry("scripted failure", request=request)
        if isinstance(entry, httpx.Response):
            return entry
        return httpx.Response(entry, json={"attempt": len(self.requests)})


@pytest.fixture
def scripted_client():
    """Factory fixture returning (client, transport) for a script.

    Usage:
        def test_something(scripted_client):
            client, transport = scripted_client(503, 200)
    """
    clients = []

    def _create(*script):
        transport = ScriptedTransport(*script)
        client = httpx.Client(transport=httpx.MockTransport(transport), base_url="https://api.example.com")
        clients.append(client)
        return client, transport

    yield _create

    for client in clients:
        client.close()


@pytest.fixture
def scripted_async_client():
    """Factory fixture returning (async client, transport) for a script."""

    def _create(*script):
        transport = ScriptedTransport(*script)
        client = httpx.AsyncClient(transport=httpx.MockTransport(transport), base_url="https://api.example.com")
        return client, transport

    return _create
