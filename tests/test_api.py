import json
import uuid

from tests.conftest import FakeWebSocket


def make_client(client, **overrides):
    payload = {"name": "Maria Souza", "phone": "+55 (11) 98765-4321", "email": "Maria@Example.com"}
    payload.update(overrides)
    response = client.post("/api/clients", json=payload)
    assert response.status_code in (200, 201), response.text
    return response.json()


def make_vehicle(client, client_id, **overrides):
    payload = {"client_id": client_id, "make": "Fiat", "model": "Argo", "year": 2021, "license_plate": "abc1d23"}
    payload.update(overrides)
    response = client.post("/api/vehicles", json=payload)
    assert response.status_code in (200, 201), response.text
    return response.json()


def make_service(client, client_id, vehicle_id, **overrides):
    payload = {
        "client_id": client_id,
        "vehicle_id": vehicle_id,
        "service_type": "Martelinho de ouro",
        "price": 350.0,
        "displacement_fee": 50.0,
    }
    payload.update(overrides)
    response = client.post("/api/services", json=payload)
    assert response.status_code in (200, 201), response.text
    return response.json()


def test_health(client):
    assert client.get("/api/health").json() == {"status": "healthy"}


def test_create_client_normalizes_fields(client):
    created = make_client(client)
    assert created["id"] > 0
    assert created["email"] == "maria@example.com"
    assert created["phone"] == "+5511987654321"


def test_create_is_idempotent_on_sync_id(client):
    sync_id = str(uuid.uuid4())
    first = client.post("/api/clients", json={"name": "João", "sync_id": sync_id})
    replay = client.post("/api/clients", json={"name": "João", "sync_id": sync_id})

    assert first.status_code == 201
    assert replay.status_code == 200
    assert replay.json()["id"] == first.json()["id"]
    assert len(client.get("/api/clients").json()) == 1


def test_invalid_sync_id_is_rejected(client):
    response = client.post("/api/clients", json={"name": "João", "sync_id": "not-a-uuid"})
    assert response.status_code == 422


def test_update_and_delete_client(client):
    created = make_client(client)

    updated = client.put(f"/api/clients/{created['id']}", json={"city": "Campinas"})
    assert updated.status_code == 200
    assert updated.json()["city"] == "Campinas"
    assert updated.json()["name"] == "Maria Souza"

    assert client.delete(f"/api/clients/{created['id']}").status_code == 204
    assert client.get(f"/api/clients/{created['id']}").status_code == 404
    assert client.delete(f"/api/clients/{created['id']}").status_code == 404


def test_vehicle_requires_existing_client(client):
    response = client.post("/api/vehicles", json={"client_id": 999, "make": "VW", "model": "Gol", "year": 2015})
    assert response.status_code == 400


def test_vehicle_plate_is_uppercased(client):
    owner = make_client(client)
    vehicle = make_vehicle(client, owner["id"])
    assert vehicle["license_plate"] == "ABC1D23"
    assert [v["id"] for v in client.get(f"/api/clients/{owner['id']}/vehicles").json()] == [vehicle["id"]]


def test_service_total_includes_displacement_fee(client):
    owner = make_client(client)
    vehicle = make_vehicle(client, owner["id"])
    service = make_service(client, owner["id"], vehicle["id"])
    assert service["total"] == 400.0
    assert service["status"] == "pending"

    updated = client.patch(f"/api/services/{service['id']}", json={"price": 500.0})
    assert updated.json()["total"] == 550.0


def test_service_vehicle_must_belong_to_client(client):
    owner = make_client(client)
    other = make_client(client, name="Pedro")
    vehicle = make_vehicle(client, other["id"])
    response = client.post(
        "/api/services",
        json={"client_id": owner["id"], "vehicle_id": vehicle["id"], "service_type": "Polimento"},
    )
    assert response.status_code == 400


def test_service_rejects_unknown_status(client):
    owner = make_client(client)
    vehicle = make_vehicle(client, owner["id"])
    response = client.post(
        "/api/services",
        json={"client_id": owner["id"], "vehicle_id": vehicle["id"], "service_type": "X", "status": "lost"},
    )
    assert response.status_code == 422


def test_vehicle_with_services_cannot_be_deleted(client):
    owner = make_client(client)
    vehicle = make_vehicle(client, owner["id"])
    make_service(client, owner["id"], vehicle["id"])
    assert client.delete(f"/api/vehicles/{vehicle['id']}").status_code == 409


def test_services_filter_by_status(client):
    owner = make_client(client)
    vehicle = make_vehicle(client, owner["id"])
    make_service(client, owner["id"], vehicle["id"])
    done = make_service(client, owner["id"], vehicle["id"], status="completed")

    listed = client.get("/api/services", params={"status": "completed"}).json()
    assert [s["id"] for s in listed] == [done["id"]]


def test_budget_damage_map(client):
    owner = make_client(client)
    damaged_parts = json.dumps({"capo": {"size20": 3, "isAluminum": True}})
    response = client.post(
        "/api/budgets",
        json={"client_id": owner["id"], "vehicle_info": "Fiat Argo", "damaged_parts": damaged_parts, "total_value": 900},
    )
    assert response.status_code == 201, response.text
    assert response.json()["damaged_parts"]["capo"]["size20"] == 3
    assert response.json()["damaged_parts"]["capo"]["isAluminum"] is True


def test_budget_rejects_unknown_part(client):
    owner = make_client(client)
    response = client.post(
        "/api/budgets", json={"client_id": owner["id"], "damaged_parts": {"spoiler": {"size20": 1}}}
    )
    assert response.status_code == 422


def test_dashboard_stats(client):
    owner = make_client(client)
    vehicle = make_vehicle(client, owner["id"])
    make_service(client, owner["id"], vehicle["id"])
    make_service(client, owner["id"], vehicle["id"], status="pago", price=200.0, displacement_fee=0)

    stats = client.get("/api/dashboard/stats").json()
    assert stats["total_services"] == 2
    assert stats["services_by_status"] == {"pending": 1, "pago": 1}
    assert stats["total_revenue"] == 200.0
    assert stats["total_clients"] == 1


def test_mutations_are_broadcast(client, manager):
    socket = FakeWebSocket()
    manager.active_connections[1] = socket

    owner = make_client(client)
    vehicle = make_vehicle(client, owner["id"])
    service = make_service(client, owner["id"], vehicle["id"])
    client.delete(f"/api/services/{service['id']}")

    messages = [json.loads(text) for text in socket.sent]
    assert [m["type"] for m in messages] == ["CLIENT_CREATED", "VEHICLE_CREATED", "SERVICE_CREATED", "SERVICE_DELETED"]
    assert messages[2]["data"]["service"]["client_id"] == owner["id"]
    assert messages[3]["data"] == {"serviceId": service["id"]}


def test_replayed_create_is_not_broadcast(client, manager):
    socket = FakeWebSocket()
    manager.active_connections[1] = socket
    sync_id = str(uuid.uuid4())

    client.post("/api/clients", json={"name": "Ana", "sync_id": sync_id})
    client.post("/api/clients", json={"name": "Ana", "sync_id": sync_id})

    assert len(socket.sent) == 1


def test_failing_socket_is_dropped(client, manager):
    manager.active_connections[1] = FakeWebSocket(fail=True)
    manager.active_connections[2] = FakeWebSocket()

    make_client(client)

    assert list(manager.active_connections) == [2]
