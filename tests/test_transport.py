import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from hal_cache.errors import HttpStatusError, TransportError
from hal_cache.hal_client import HalCache
from hal_cache.transport import AiohttpTransport


@pytest.mark.parametrize(
    "base_url, uri, expected",
    [
        ("http://localhost:3000/api", "/camps/1", "http://localhost:3000/api/camps/1"),
        ("http://localhost:3000/api/", "/camps/1", "http://localhost:3000/api/camps/1"),
        ("http://localhost:3000/api", "", "http://localhost:3000/api"),
        ("http://localhost:3000/api", "http://localhost:3000/print/1", "http://localhost:3000/print/1"),
        ("", "/camps/1", "/camps/1"),
        ("", "", "/"),
    ],
)
def test_build_url(base_url, uri, expected):
    assert AiohttpTransport(base_url).build_url(uri) == expected


def test_headers_are_merged():
    transport = AiohttpTransport("http://localhost", headers={"Authorization": "Bearer token"})

    assert transport.headers["Authorization"] == "Bearer token"
    assert "hal+json" in transport.headers["Accept"]


def _hal_app():
    async def camp(request):
        return web.json_response({"name": "Camp", "_links": {"self": {"href": "/camps/1"}}})

    async def rename(request):
        body = await request.json()
        return web.json_response({**body, "_links": {"self": {"href": "/camps/1"}}})

    async def remove(request):
        return web.Response(status=204)

    async def missing(request):
        return web.json_response({"detail": "not found"}, status=404)

    async def crashed(request):
        return web.Response(text="Internal Server Error", status=500)

    async def garbled(request):
        return web.Response(text="<html>not json</html>", content_type="text/html")

    app = web.Application()
    app.router.add_get("/camps/1", camp)
    app.router.add_patch("/camps/1", rename)
    app.router.add_delete("/camps/1", remove)
    app.router.add_get("/camps/2", missing)
    app.router.add_get("/camps/3", crashed)
    app.router.add_get("/camps/4", garbled)
    return app


@pytest.mark.asyncio
async def test_transport_against_local_server():
    async with TestServer(_hal_app()) as server:
        transport = AiohttpTransport(f"http://{server.host}:{server.port}", timeout=5)

        response = await transport.get("/camps/1")
        assert response.status == 200
        assert response.data["name"] == "Camp"

        patched = await transport.patch("/camps/1", {"name": "Renamed"})
        assert patched.data["name"] == "Renamed"

        deleted = await transport.delete("/camps/1")
        assert deleted.status == 204
        assert deleted.data is None

        with pytest.raises(HttpStatusError) as exc:
            await transport.get("/camps/2")
        assert exc.value.status == 404
        assert exc.value.body == {"detail": "not found"}


@pytest.mark.asyncio
async def test_cache_over_aiohttp_transport():
    async with TestServer(_hal_app()) as server:
        base_url = f"http://{server.host}:{server.port}"
        cache = HalCache(AiohttpTransport(base_url, timeout=5), base_url=base_url)

        camp = await cache.get(f"{base_url}/camps/1").meta.load

        assert camp.name == "Camp"
        assert camp.meta.uri == "/camps/1"


@pytest.mark.asyncio
async def test_unreachable_server_raises_transport_error(unused_tcp_port):
    transport = AiohttpTransport(f"http://127.0.0.1:{unused_tcp_port}", timeout=5)

    with pytest.raises(TransportError):
        await transport.get("/camps/1")


@pytest.mark.asyncio
async def test_plain_text_error_body_is_kept():
    async with TestServer(_hal_app()) as server:
        transport = AiohttpTransport(f"http://{server.host}:{server.port}", timeout=5)

        with pytest.raises(HttpStatusError) as exc:
            await transport.get("/camps/3")

    assert exc.value.status == 500
    assert exc.value.body == "Internal Server Error"


@pytest.mark.asyncio
async def test_invalid_json_raises_transport_error():
    async with TestServer(_hal_app()) as server:
        transport = AiohttpTransport(f"http://{server.host}:{server.port}", timeout=5)

        with pytest.raises(TransportError) as exc:
            await transport.get("/camps/4")

    assert "invalid JSON" in str(exc.value)
