import pytest

from hal_cache.errors import PermissionDeniedError, ResourceDeletedError, ServerError, TransportError
from hal_cache.hal_client import HalCache
from hal_cache.placeholders import Placeholder
from hal_cache.resources import Resource

from conftest import entity, settle


@pytest.mark.asyncio
async def test_concurrent_gets_share_one_request(cache, transport):
    transport.reply("/camps/1", entity("/camps/1", name="Summer camp"))

    first = cache.get("/camps/1")
    second = cache.get("/camps/1")

    assert isinstance(first, Placeholder)
    assert str(first) == ""
    camp = await second.meta.load
    assert camp.name == "Summer camp"
    assert (await first.meta.load).name == "Summer camp"
    assert transport.calls("GET", "/camps/1") == 1


@pytest.mark.asyncio
async def test_known_entity_is_served_from_store(cache, transport):
    transport.reply("/camps/1", entity("/camps/1", name="Summer camp"))
    await cache.get("/camps/1").meta.load

    camp = cache.get("/camps/1?")

    assert isinstance(camp, Resource)
    assert camp.name == "Summer camp"
    assert transport.calls("GET") == 1


@pytest.mark.asyncio
async def test_get_without_argument_loads_api_root(cache, transport):
    transport.reply("", {"title": "API root"})

    root = await cache.get().meta.load

    assert root.title == "API root"
    assert root.meta.uri == ""


@pytest.mark.asyncio
async def test_reload_keeps_serving_old_data(cache, transport):
    transport.reply("/camps/1", entity("/camps/1", name="Old"))
    await cache.get("/camps/1").meta.load
    transport.reply("/camps/1", entity("/camps/1", name="New"))

    reloading = cache.reload("/camps/1")
    stale = cache.get("/camps/1")

    assert stale.name == "Old"
    assert stale.meta.reloading is True
    fresh = await stale.meta.load
    assert fresh.name == "New"
    assert (await reloading).name == "New"
    assert cache.get("/camps/1").meta.reloading is False


@pytest.mark.asyncio
async def test_concurrent_reloads_share_one_request(cache, transport):
    transport.reply("/camps/1", entity("/camps/1", name="Camp"))
    await cache.get("/camps/1").meta.load

    cache.reload("/camps/1")
    cache.reload("/camps/1")
    cache.get("/camps/1", force_reload=True)
    await settle()

    assert transport.calls("GET", "/camps/1") == 2


@pytest.mark.asyncio
async def test_failed_reload_keeps_old_data(cache, transport):
    transport.reply("/camps/1", entity("/camps/1", name="Old"))
    await cache.get("/camps/1").meta.load
    transport.once("/camps/1", {"detail": "boom"}, status=500)

    reloading = cache.reload("/camps/1")
    stale = cache.get("/camps/1")

    with pytest.raises(ServerError) as exc:
        await reloading
    assert str(exc.value) == 'Error trying to reload "/camps/1" (status 500): Request failed with status code 500'
    assert exc.value.status == 500
    assert (await stale.meta.load).name == "Old"
    assert cache.get("/camps/1").meta.reloading is False


@pytest.mark.asyncio
async def test_failed_first_fetch_removes_placeholder(cache, transport):
    transport.reply("/camps/1", {"detail": "boom"}, status=500)

    camp = cache.get("/camps/1")
    assert not cache.is_unknown("/camps/1")

    with pytest.raises(ServerError) as exc:
        await camp.meta.load
    assert str(exc.value) == 'Error trying to fetch "/camps/1" (status 500): Request failed with status code 500'
    assert cache.is_unknown("/camps/1")


@pytest.mark.asyncio
async def test_forbidden_fetch_raises_permission_error(cache, transport):
    transport.reply("/camps/1", {"detail": "forbidden"}, status=403)

    with pytest.raises(PermissionDeniedError) as exc:
        await cache.get("/camps/1").meta.load
    assert str(exc.value).startswith('No permission to fetch "/camps/1" (status 403)')
    assert exc.value.body == {"detail": "forbidden"}


@pytest.mark.asyncio
async def test_missing_resource_raises_deleted_error(cache, transport):
    with pytest.raises(ResourceDeletedError) as exc:
        await cache.get("/camps/404").meta.load
    assert str(exc.value).startswith('Could not fetch "/camps/404" (status 404)')
    assert cache.is_unknown("/camps/404")


@pytest.mark.asyncio
async def test_network_failure_raises_transport_error(cache, transport):
    transport.fail("/camps/1", TransportError("connection refused"))

    with pytest.raises(TransportError) as exc:
        await cache.get("/camps/1").meta.load
    assert str(exc.value) == 'Error trying to fetch "/camps/1": connection refused'


@pytest.mark.asyncio
async def test_payload_without_self_link_is_stored_under_requested_uri(cache, transport):
    transport.reply("/stats", {"visitors": 12})

    stats = await cache.get("/stats").meta.load

    assert stats.visitors == 12
    assert stats.meta.uri == "/stats"


@pytest.mark.asyncio
async def test_mismatching_self_link_stores_under_announced_uri(cache, transport):
    transport.reply("/camps/current", entity("/camps/1", name="Camp"))

    camp = await cache.get("/camps/current").meta.load

    assert camp.meta.uri == "/camps/1"
    assert cache.is_unknown("/camps/current")
    assert not cache.is_unknown("/camps/1")


@pytest.mark.asyncio
async def test_force_requested_self_link(transport):
    cache = HalCache(transport, base_url="", force_requested_self_link=True)
    transport.reply("/camps/current", entity("/camps/1", name="Camp"))

    camp = await cache.get("/camps/current").meta.load

    assert camp.meta.uri == "/camps/current"
    assert cache.is_unknown("/camps/1")


@pytest.mark.asyncio
async def test_base_url_is_stripped_from_links(transport):
    cache = HalCache(transport, base_url="http://localhost:3000/api")
    transport.reply(
        "/camps/1",
        entity("http://localhost:3000/api/camps/1", links={"owner": {"href": "http://localhost:3000/api/users/1"}}),
    )

    camp = await cache.get("http://localhost:3000/api/camps/1").meta.load

    assert camp.meta.uri == "/camps/1"
    assert camp.meta.self_url == "http://localhost:3000/api/camps/1"
    assert camp.to_dict()["owner"] == {"href": "/users/1"}


@pytest.mark.asyncio
async def test_unexpected_reload_error_clears_reloading(cache, transport):
    transport.reply("/books/1", entity("/books/1", title="Old"))
    await cache.get("/books/1").meta.load
    transport.fail("/books/1", RuntimeError("connection reset mid-body"))

    with pytest.raises(RuntimeError):
        await cache.reload("/books/1")

    book = cache.get("/books/1")
    assert book.meta.reloading is False
    assert book.title == "Old"
