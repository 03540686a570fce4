import asyncio
import copy
import pathlib
import sys

import pytest

# Ensure repo root on sys.path for direct module imports when running tests locally.
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from hal_cache.errors import HttpStatusError
from hal_cache.hal_client import HalCache
from hal_cache.models import TransportResponse


class StubTransport:
    """In-memory transport answering from canned responses."""

    def __init__(self):
        self._replies = {}
        self._queued = {}
        self.history = []

    def reply(self, uri, data=None, *, method="GET", status=200):
        """Answer every following request for (method, uri) with this response."""
        self._replies[(method, uri)] = (status, data)

    def once(self, uri, data=None, *, method="GET", status=200):
        """Answer only the next request for (method, uri) with this response."""
        self._queued.setdefault((method, uri), []).append((status, data))

    def fail(self, uri, exc, *, method="GET"):
        self._queued.setdefault((method, uri), []).append(exc)

    def calls(self, method="GET", uri=None):
        return len([1 for m, u, _ in self.history if m == method and (uri is None or u == uri)])

    async def _handle(self, method, uri, body=None):
        self.history.append((method, uri, body))
        # Let other tasks run, like a real network round trip would
        await asyncio.sleep(0)
        queued = self._queued.get((method, uri))
        if queued:
            response = queued.pop(0)
        elif (method, uri) in self._replies:
            response = self._replies[(method, uri)]
        else:
            response = (404, {"detail": f"{method} {uri} not stubbed"})

        if isinstance(response, Exception):
            raise response
        status, data = response
        if status >= 400:
            raise HttpStatusError(status, data)
        return TransportResponse(status=status, data=copy.deepcopy(data))

    async def get(self, uri):
        return await self._handle("GET", uri)

    async def post(self, uri, body):
        return await self._handle("POST", uri, body)

    async def patch(self, uri, body):
        return await self._handle("PATCH", uri, body)

    async def delete(self, uri):
        return await self._handle("DELETE", uri)


async def settle(rounds=50):
    """Give pending cache tasks a chance to finish."""
    for _ in range(rounds):
        await asyncio.sleep(0)


def link(href, **extra):
    return {"href": href, **extra}


def entity(uri, links=None, embedded=None, **fields):
    """Build a HAL payload with a self link."""
    payload = dict(fields)
    payload["_links"] = {"self": link(uri), **(links or {})}
    if embedded is not None:
        payload["_embedded"] = embedded
    return payload


@pytest.fixture
def transport():
    return StubTransport()


@pytest.fixture
def cache(transport):
    return HalCache(transport, base_url="", item_fetch_strategy="avoid_n_plus_one", force_requested_self_link=False)


@pytest.fixture
def per_item_cache(transport):
    return HalCache(transport, base_url="", item_fetch_strategy="per_item_fetch", force_requested_self_link=False)
