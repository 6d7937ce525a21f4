import pytest

from app.offline import LocalStore, PendingOperationQueue
from app.offline.errors import (
    LocalSchemaOutdatedError,
    RecordNotFoundError,
    UnknownTableError,
    UnsyncedDataError,
)
from app.offline.models import STATUS_IN_FLIGHT, PendingRequest, StoreMeta


def test_add_assigns_decreasing_temporary_ids(store):
    services = store.get_table_by_name("services")
    first = services.add({"service_type": "Polimento"})
    second = services.add({"service_type": "Pintura"})

    assert (first, second) == (-1, -2)
    record = services.get(first)
    assert record["service_type"] == "Polimento"
    assert record["_isOffline"] is True
    assert record["_pendingSync"] is True


def test_temporary_ids_are_never_reused(tmp_path):
    url = f"sqlite:///{tmp_path / 'offline.db'}"
    store = LocalStore(url)
    clients = store.get_table_by_name("clients")
    temp_id = clients.add({"name": "Ana"})
    clients.delete(temp_id)
    store.close()

    reopened = LocalStore(url)
    assert reopened.get_table_by_name("clients").add({"name": "Bia"}) == temp_id - 1
    reopened.close()


def test_entity_type_alias(store):
    assert store.get_table_by_name("vehicle").name == "vehicles"


def test_unknown_table(store):
    with pytest.raises(UnknownTableError):
        store.get_table_by_name("invoices")


def test_update_merges_patch(store):
    clients = store.get_table_by_name("clients")
    record_id = clients.add({"name": "Ana", "city": "Santos"}, record_id=5, pending=False)

    updated = clients.update(record_id, {"city": "Campinas", "_pendingSync": False})

    assert updated["name"] == "Ana"
    assert updated["city"] == "Campinas"
    assert updated["_pendingSync"] is True


def test_update_missing_record(store):
    with pytest.raises(RecordNotFoundError):
        store.get_table_by_name("clients").update(404, {"name": "x"})


def test_put_confirmed_keeps_records_with_pending_changes(store):
    clients = store.get_table_by_name("clients")
    clients.add({"name": "Local edit"}, record_id=1, pending=True)

    store.put_confirmed("clients", [{"id": 1, "name": "Server"}, {"id": 2, "name": "Novo"}])

    assert clients.get(1)["name"] == "Local edit"
    assert clients.get(2)["name"] == "Novo"
    assert clients.get(2)["_pendingSync"] is False


def test_put_confirmed_prune_removes_deleted_rows(store):
    clients = store.get_table_by_name("clients")
    store.put_confirmed("clients", [{"id": 1, "name": "A"}, {"id": 2, "name": "B"}])
    temp_id = clients.add({"name": "Offline"})

    store.put_confirmed("clients", [{"id": 2, "name": "B"}], prune=True)

    assert [r["id"] for r in clients.all()] == [temp_id, 2]


def test_reconcile_rewrites_record_queue_and_foreign_keys(store):
    queue = PendingOperationQueue(store)
    clients = store.get_table_by_name("clients")
    vehicles = store.get_table_by_name("vehicles")

    client_id = clients.add({"name": "Ana"}, sync_id="11111111-1111-1111-1111-111111111111")
    vehicle_id = vehicles.add({"client_id": client_id, "make": "Fiat"})
    create = queue.enqueue("/api/clients", "POST", "create", "clients", client_id, body={"name": "Ana"})
    queue.enqueue("/api/clients/-1", "PUT", "update", "clients", client_id, body={"id": -1, "city": "Rio"})
    queue.enqueue("/api/vehicles", "POST", "create", "vehicles", vehicle_id, body={"client_id": client_id})

    store.reconcile_id(
        "clients", client_id, 42, {"id": 42, "name": "Ana", "created_at": "2024-01-01"}, operation_id=create.id
    )

    assert clients.get(client_id) is None
    record = clients.get(42)
    assert record["_isOffline"] is False
    assert record["_pendingSync"] is True
    # The queued update is still the newest local state
    assert "created_at" not in record
    assert vehicles.get(vehicle_id)["client_id"] == 42

    ops = queue.all()
    assert ops[0].id == create.id and ops[0].resource_id == 42
    assert ops[1].url == "/api/clients/42"
    assert ops[1].body == {"id": 42, "city": "Rio"}
    assert ops[2].body == {"client_id": 42}


def test_reconcile_replaces_cached_server_copy(store):
    clients = store.get_table_by_name("clients")
    temp_id = clients.add({"name": "Ana"})
    store.put_confirmed("clients", [{"id": 42, "name": "Ana (pulled)"}])

    store.reconcile_id("clients", temp_id, 42, {"id": 42, "name": "Ana"})

    assert [r["id"] for r in clients.all()] == [42]
    assert clients.get(42)["name"] == "Ana"


def test_reconcile_clears_pending_flag_when_nothing_is_queued(store):
    services = store.get_table_by_name("services")
    temp_id = services.add({"service_type": "Polimento"})

    store.reconcile_id("services", temp_id, 7, {"id": 7})

    assert services.get(7)["_pendingSync"] is False


def test_open_resets_in_flight_operations(tmp_path):
    url = f"sqlite:///{tmp_path / 'offline.db'}"
    store = LocalStore(url)
    queue = PendingOperationQueue(store)
    op = queue.enqueue("/api/clients", "POST", "create", "clients", -1, body={})
    with store.transaction() as db:
        db.get(PendingRequest, op.id).status = STATUS_IN_FLIGHT
    store.close()

    reopened = LocalStore(url)
    assert PendingOperationQueue(reopened).all()[0].status == "pending"
    reopened.close()


def test_outdated_schema_requires_rebuild(tmp_path):
    url = f"sqlite:///{tmp_path / 'offline.db'}"
    store = LocalStore(url)
    with store.transaction() as db:
        db.get(StoreMeta, "schema_version").value = "0"
    store.close()

    with pytest.raises(LocalSchemaOutdatedError) as exc_info:
        LocalStore(url)
    assert exc_info.value.found == 0

    outdated = LocalStore(url, verify_schema=False)
    outdated.rebuild()
    outdated.close()
    LocalStore(url).close()


def test_rebuild_and_clear_refuse_to_drop_unsynced_operations(store):
    queue = PendingOperationQueue(store)
    queue.enqueue("/api/clients", "POST", "create", "clients", -1, body={"name": "Ana"})

    with pytest.raises(UnsyncedDataError) as exc_info:
        store.rebuild()
    assert exc_info.value.pending == 1
    with pytest.raises(UnsyncedDataError):
        store.clear()

    store.clear(confirm_data_loss=True)
    assert queue.count() == 0


def test_rebuild_keeps_temporary_id_counter(store):
    clients = store.get_table_by_name("clients")
    temp_id = clients.add({"name": "Ana"})

    store.rebuild()

    assert clients.get(temp_id) is None
    assert clients.add({"name": "Bia"}) == temp_id - 1
