from app.services.realtime_service import build_change_message


def test_welcome_message_carries_client_id(client):
    with client.websocket_connect("/ws") as ws:
        welcome = ws.receive_json()
        assert welcome["type"] == "CONNECTION_ESTABLISHED"
        assert welcome["clientId"] == 1


def test_test_frame_broadcasts_notification(client):
    with client.websocket_connect("/ws") as ws:
        ws.receive_json()
        ws.send_json({"type": "test"})
        message = ws.receive_json()
        assert message["type"] == "notification"
        assert message["title"] == "Test notification"


def test_broadcast_notification_is_relayed_without_flag(client):
    with client.websocket_connect("/ws") as ws:
        ws.receive_json()
        ws.send_json({"type": "notification", "broadcast": True, "message": "Carro pronto"})
        message = ws.receive_json()
        assert message == {"type": "notification", "message": "Carro pronto"}


def test_other_frames_are_echoed(client):
    with client.websocket_connect("/ws") as ws:
        ws.receive_json()
        ws.send_json({"type": "REQUEST_REFRESH"})
        message = ws.receive_json()
        assert message["type"] == "response"
        assert message["received"] == {"type": "REQUEST_REFRESH"}


def test_invalid_json_gets_error_frame(client):
    with client.websocket_connect("/ws") as ws:
        ws.receive_json()
        ws.send_text("{not json")
        assert ws.receive_json()["type"] == "error"


def test_disconnect_removes_connection(client, manager):
    with client.websocket_connect("/ws") as ws:
        ws.receive_json()
        assert len(manager.active_connections) == 1
    # the endpoint's finally block runs once the close frame is processed
    with client.websocket_connect("/ws") as ws:
        ws.receive_json()
        assert list(manager.active_connections) == [2]


def test_change_message_shapes():
    created = build_change_message("services", "CREATED", record={"id": 7, "client_id": 3})
    assert created["type"] == "SERVICE_CREATED"
    assert created["data"] == {"service": {"id": 7, "client_id": 3}}

    deleted = build_change_message("budgets", "DELETED", record_id=4)
    assert deleted["type"] == "BUDGET_DELETED"
    assert deleted["data"] == {"budgetId": 4}
