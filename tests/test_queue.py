import pytest

from app.offline.errors import PermanentSyncError, TransientSyncError


def enqueue_create_update_update(queue):
    return [
        queue.enqueue("/api/services", "POST", "create", "services", -1, body={"service_type": "Polimento"}),
        queue.enqueue("/api/services/-1", "PUT", "update", "services", -1, body={"status": "in_progress"}),
        queue.enqueue("/api/services/-1", "PUT", "update", "services", -1, body={"status": "completed"}),
    ]


@pytest.mark.asyncio
async def test_drain_replays_in_enqueue_order(queue):
    ops = enqueue_create_update_update(queue)
    seen = []

    async def handler(op):
        seen.append(op.id)

    result = await queue.drain(handler)

    assert seen == [op.id for op in ops]
    assert result.sent == 3
    assert result.remaining == 0
    assert queue.count() == 0


@pytest.mark.asyncio
async def test_failure_keeps_failed_and_later_operations(queue):
    ops = [queue.enqueue(f"/api/clients/{i}", "PUT", "update", "clients", i, body={"n": i}) for i in range(1, 6)]
    calls = []

    async def flaky(op):
        calls.append(op.id)
        if op.id == ops[2].id:
            raise TransientSyncError("HTTP 503")

    result = await queue.drain(flaky)

    assert result.aborted is True
    assert result.sent == 2
    remaining = queue.all()
    assert [op.id for op in remaining] == [op.id for op in ops[2:]]
    assert remaining[0].attempts == 1
    assert remaining[0].last_error == "HTTP 503"
    assert all(op.status == "pending" for op in remaining)

    resumed = []

    async def ok(op):
        resumed.append(op.id)

    await queue.drain(ok)
    assert resumed == [op.id for op in ops[2:]]
    assert queue.count() == 0


@pytest.mark.asyncio
async def test_permanent_rejection_is_dead_lettered_with_dependents(queue):
    create = queue.enqueue("/api/clients", "POST", "create", "clients", -1, body={"name": ""})
    update = queue.enqueue("/api/clients/-1", "PUT", "update", "clients", -1, body={"city": "Rio"})
    vehicle = queue.enqueue("/api/vehicles", "POST", "create", "vehicles", -2, body={"client_id": -1})
    service = queue.enqueue("/api/services", "POST", "create", "services", -3, body={"vehicle_id": -2, "client_id": 9})
    unrelated = queue.enqueue("/api/clients/9", "PUT", "update", "clients", 9, body={"city": "Rio"})
    sent = []

    async def handler(op):
        if op.id == create.id:
            raise PermanentSyncError("HTTP 422: name is required", status_code=422)
        sent.append(op.id)

    result = await queue.drain(handler)

    assert sent == [unrelated.id]
    assert result.failed == 4
    assert result.aborted is False
    failed = queue.failed()
    assert [op.id for op in failed] == [create.id, update.id, vehicle.id, service.id]
    assert failed[0].last_error == "HTTP 422: name is required"
    assert failed[1].last_error.startswith(f"Depends on failed operation {create.id}")
    assert queue.count() == 0


@pytest.mark.asyncio
async def test_rejected_update_does_not_fail_later_operations(queue):
    first = queue.enqueue("/api/clients/3", "PUT", "update", "clients", 3, body={"email": "bad"})
    second = queue.enqueue("/api/clients/3", "PUT", "update", "clients", 3, body={"city": "Rio"})
    sent = []

    async def handler(op):
        if op.id == first.id:
            raise PermanentSyncError("HTTP 422")
        sent.append(op.id)

    await queue.drain(handler)

    assert sent == [second.id]
    assert [op.id for op in queue.failed()] == [first.id]


@pytest.mark.asyncio
async def test_retry_returns_operation_to_its_slot(queue):
    first = queue.enqueue("/api/clients/3", "PUT", "update", "clients", 3, body={})

    async def reject(op):
        raise PermanentSyncError("HTTP 409")

    await queue.drain(reject)
    later = queue.enqueue("/api/clients/4", "PUT", "update", "clients", 4, body={})
    queue.retry(first.id)
    order = []

    async def handler(op):
        order.append(op.id)

    await queue.drain(handler)
    assert order == [first.id, later.id]


def test_retry_requires_failed_operation(queue):
    op = queue.enqueue("/api/clients/3", "PUT", "update", "clients", 3, body={})
    with pytest.raises(ValueError):
        queue.retry(op.id)


def test_discard_and_subscribe(queue):
    counts = []
    unsubscribe = queue.subscribe(counts.append)
    op = queue.enqueue("/api/clients/3", "DELETE", "delete", "clients", 3)
    queue.discard(op.id)
    unsubscribe()
    queue.enqueue("/api/clients/4", "DELETE", "delete", "clients", 4)

    assert counts == [1, 0]


def test_enqueue_validates_method(queue):
    with pytest.raises(ValueError):
        queue.enqueue("/api/clients", "GET", "create", "clients", -1)
