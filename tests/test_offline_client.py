import httpx
import pytest
import pytest_asyncio

from app.offline import NetworkStatus, OfflineClient, SyncEngine
from app.offline.errors import TransientSyncError


@pytest_asyncio.fixture
async def offline(api, store, queue):
    network = NetworkStatus(is_online=False)
    http_client = httpx.AsyncClient(transport=httpx.ASGITransport(app=api), base_url="http://testserver")
    engine = SyncEngine(store, queue, network, http_client=http_client)
    yield OfflineClient(store, queue, network, engine)
    await http_client.aclose()


@pytest.mark.asyncio
async def test_offline_graph_is_replayed_with_server_ids(offline, client):
    owner = await offline.create("clients", {"name": "Carlos Lima", "phone": "11 99999-0000"})
    car = await offline.create(
        "vehicles", {"client_id": owner["id"], "make": "Honda", "model": "Civic", "year": 2019}
    )
    job = await offline.create(
        "services",
        {"client_id": owner["id"], "vehicle_id": car["id"], "service_type": "Martelinho", "price": 300.0},
    )
    await offline.update("services", job["id"], {"status": "in_progress"})

    assert (owner["id"], car["id"], job["id"]) == (-1, -2, -3)
    assert offline.network.pending_count == 4

    offline.network.set_online(True)
    result = await offline.engine.drain()

    assert result.sent == 4
    assert offline.network.pending_count == 0
    server_services = client.get("/api/services").json()
    assert len(server_services) == 1
    server_job = server_services[0]
    assert server_job["status"] == "in_progress"
    assert server_job["total"] == 300.0

    local_client = offline.list("clients")[0]
    local_vehicle = offline.list("vehicles")[0]
    local_job = offline.get("services", server_job["id"])
    assert local_client["id"] == server_job["client_id"]
    assert local_vehicle["client_id"] == local_client["id"]
    assert local_job["vehicle_id"] == local_vehicle["id"]
    assert local_job["_pendingSync"] is False
    assert local_job["_isOffline"] is False


@pytest.mark.asyncio
async def test_online_write_is_sent_immediately(offline, client):
    offline.network.set_online(True)

    created = await offline.create("clients", {"name": "Ana"})

    assert created["id"] > 0
    assert created["_pendingSync"] is False
    assert client.get(f"/api/clients/{created['id']}").json()["name"] == "Ana"
    assert offline.submission.is_submitting is False


@pytest.mark.asyncio
async def test_delete_of_unsynced_record_follows_reconciliation(offline, client):
    temp = await offline.create("clients", {"name": "Temporário"})
    removed = await offline.delete("clients", temp["id"])
    assert removed["name"] == "Temporário"

    offline.network.set_online(True)
    await offline.engine.drain()

    assert client.get("/api/clients").json() == []
    assert offline.queue.count() == 0


@pytest.mark.asyncio
async def test_rejected_create_stays_visible_as_conflict(offline):
    await offline.create("clients", {"name": "   "})
    offline.network.set_online(True)

    result = await offline.engine.drain()

    assert result.failed == 1
    failed = offline.queue.failed()
    assert failed[0].table_name == "clients"
    assert "422" in failed[0].last_error
    assert offline.list("clients")[0]["_pendingSync"] is True


@pytest.mark.asyncio
async def test_fetch_uses_cache_and_local_fallback(offline, client):
    client.post("/api/clients", json={"name": "Servidor"})
    offline.network.set_online(True)

    first = await offline.fetch("/api/clients")
    client.post("/api/clients", json={"name": "Outro"})
    cached = await offline.fetch("/api/clients")
    assert cached == first

    offline.cache.invalidate("/api/clients")
    assert len(await offline.fetch("/api/clients")) == 2

    offline.network.set_online(False)
    offline.cache.invalidate_all()
    assert await offline.fetch("/api/clients") == []
    with pytest.raises(TransientSyncError):
        await offline.fetch("/api/dashboard/stats")


@pytest.mark.asyncio
async def test_refresh_pulls_server_rows(offline, client):
    client.post("/api/clients", json={"name": "Servidor"})
    offline.network.set_online(True)

    assert await offline.refresh("clients") == 1
    assert [r["name"] for r in offline.list("clients")] == ["Servidor"]


@pytest.mark.asyncio
async def test_local_write_invalidates_cached_reads(offline):
    offline.network.set_online(True)
    assert await offline.fetch("/api/clients") == []
    offline.cache.set("/api/clients/7/vehicles", [])

    offline.network.set_online(False)
    created = await offline.create("clients", {"name": "Ana"})

    listed = await offline.fetch("/api/clients")
    assert [r["id"] for r in listed] == [created["id"]]

    car = await offline.create("vehicles", {"client_id": 7, "make": "Fiat"})
    assert "/api/clients/7/vehicles" not in offline.cache
    assert await offline.fetch(f"/api/vehicles/{car['id']}") == car
