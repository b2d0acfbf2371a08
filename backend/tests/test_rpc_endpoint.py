from __future__ import annotations

from starlette.testclient import WebSocketTestSession

RPC_PATH = "/openvidu"


def _admin(admin_secret: str) -> dict[str, str]:
    return {"X-Admin-Secret": admin_secret}


def _create_token(client, admin_secret, room="R1", role="PUBLISHER") -> str:
    response = client.post(
        "/api/sessions", json={"customSessionId": room}, headers=_admin(admin_secret)
    )
    assert response.status_code == 200, response.text
    assert response.json() == {"id": room}

    response = client.post(
        "/api/tokens", json={"session": room, "role": role}, headers=_admin(admin_secret)
    )
    assert response.status_code == 200, response.text
    return response.json()["token"]


def _join(connection: WebSocketTestSession, token: str, room="R1", request_id=1) -> dict:
    connection.send_json(
        {
            "jsonrpc": "2.0",
            "id": request_id,
            "method": "joinRoom",
            "params": {
                "room": room,
                "token": token,
                "secret": "",
                "metadata": '{"clientData":"Bob"}',
                "dataChannels": True,
            },
        }
    )
    return connection.receive_json()


def test_admin_endpoints_require_secret(client, admin_secret):
    assert client.post("/api/sessions", json={}).status_code == 401
    assert (
        client.post("/api/sessions", json={}, headers=_admin("wrong")).status_code == 401
    )

    response = client.post("/api/sessions", json={}, auth=("OPENVIDUAPP", admin_secret))

    assert response.status_code == 200
    assert response.json()["id"]


def test_token_for_unknown_session_is_404(client, admin_secret):
    response = client.post(
        "/api/tokens", json={"session": "missing"}, headers=_admin(admin_secret)
    )

    assert response.status_code == 404


def test_join_room_over_websocket(client, admin_secret):
    token = _create_token(client, admin_secret)

    with client.websocket_connect(RPC_PATH) as connection:
        response = _join(connection, token)

        assert response["id"] == 1
        assert response["result"]["sessionId"] == "R1"
        assert response["result"]["value"] == []

        detail = client.get("/api/sessions/R1", headers=_admin(admin_secret)).json()
        assert [p["id"] for p in detail["participants"]] == [response["result"]["id"]]
        assert detail["participants"][0]["metadata"] == '{"clientData":"Bob"}'


def test_join_with_invalid_token_is_unauthorized(client, admin_secret):
    _create_token(client, admin_secret)

    with client.websocket_connect(RPC_PATH) as connection:
        response = _join(connection, "forged-token")

    assert response["error"]["code"] == 401
    assert response["error"]["message"] == "Unable to join room. The user is not authorized"


def test_admin_secret_joins_without_token(client, admin_secret):
    with client.websocket_connect(RPC_PATH) as connection:
        connection.send_json(
            {
                "jsonrpc": "2.0",
                "id": 1,
                "method": "joinRoom",
                "params": {
                    "room": "adhoc",
                    "token": "none",
                    "secret": admin_secret,
                    "metadata": "{}",
                },
            }
        )
        response = connection.receive_json()

    assert response["result"]["sessionId"] == "adhoc"


def test_second_participant_sees_first_and_socket_close_notifies(client, admin_secret):
    token = _create_token(client, admin_secret)

    with client.websocket_connect(RPC_PATH) as first:
        first_name = _join(first, token)["result"]["id"]

        with client.websocket_connect(RPC_PATH) as second:
            joined = _join(second, token)
            second_name = joined["result"]["id"]
            assert joined["result"]["value"] == [{"id": first_name, "streams": False}]

            notification = first.receive_json()
            assert notification["method"] == "participantJoined"
            assert notification["params"]["id"] == second_name

        left = first.receive_json()
        assert left == {
            "jsonrpc": "2.0",
            "method": "participantLeft",
            "params": {"name": second_name},
        }


def test_leave_room_then_close_is_idempotent(client, admin_secret):
    token = _create_token(client, admin_secret)

    with client.websocket_connect(RPC_PATH) as connection:
        _join(connection, token)
        connection.send_json({"jsonrpc": "2.0", "id": 2, "method": "leaveRoom", "params": {}})
        assert connection.receive_json() == {"jsonrpc": "2.0", "id": 2, "result": {}}

    detail = client.get("/api/sessions/R1", headers=_admin(admin_secret))
    assert detail.status_code == 200
    assert detail.json()["participants"] == []


def test_admin_can_evict_a_connection(client, admin_secret):
    token = _create_token(client, admin_secret)

    with client.websocket_connect(RPC_PATH) as connection:
        name = _join(connection, token)["result"]["id"]
        detail = client.get("/api/sessions/R1", headers=_admin(admin_secret)).json()
        connection_id = detail["participants"][0]["connectionId"]

        response = client.delete(
            f"/api/sessions/R1/connection/{connection_id}", headers=_admin(admin_secret)
        )
        assert response.status_code == 204

        evicted = connection.receive_json()
        assert evicted["method"] == "participantEvicted"
        assert evicted["params"] == {"name": name}

    missing = client.delete("/api/sessions/R1/connection/nope", headers=_admin(admin_secret))
    assert missing.status_code == 404


def test_publish_and_subscribe_over_websocket(client, admin_secret, media_client):
    token = _create_token(client, admin_secret)

    with client.websocket_connect(RPC_PATH) as first:
        first_name = _join(first, token)["result"]["id"]
        first.send_json(
            {
                "jsonrpc": "2.0",
                "id": 2,
                "method": "publishVideo",
                "params": {"sdpOffer": "v=0", "audioOnly": False, "doLoopback": False},
            }
        )
        assert first.receive_json()["result"] == {"sdpAnswer": f"answer-for-{first_name}_webcam"}

        with client.websocket_connect(RPC_PATH) as second:
            _join(second, token)
            first.receive_json()  # participantJoined
            second.send_json(
                {
                    "jsonrpc": "2.0",
                    "id": 2,
                    "method": "receiveVideoFrom",
                    "params": {"sender": f"{first_name}_webcam", "sdpOffer": "v=0"},
                }
            )
            response = second.receive_json()

    assert response["result"]["sdpAnswer"].startswith("answer-for-")
    assert [name for name, _ in media_client.calls][:2] == ["publish", "subscribe"]


def test_subscriber_token_cannot_publish(client, admin_secret):
    token = _create_token(client, admin_secret, role="SUBSCRIBER")

    with client.websocket_connect(RPC_PATH) as connection:
        _join(connection, token)
        connection.send_json(
            {
                "jsonrpc": "2.0",
                "id": 2,
                "method": "publishVideo",
                "params": {"sdpOffer": "v=0", "audioOnly": True, "doLoopback": False},
            }
        )
        response = connection.receive_json()

    assert response["error"]["code"] == 401


def test_ping_and_parse_errors(client):
    with client.websocket_connect(RPC_PATH) as connection:
        connection.send_json({"jsonrpc": "2.0", "id": 1, "method": "ping"})
        assert connection.receive_json()["result"] == {"value": "pong"}

        connection.send_text("{broken")
        assert connection.receive_json()["error"]["code"] == -32700


def test_close_session_evicts_everyone(client, admin_secret):
    token = _create_token(client, admin_secret)

    with client.websocket_connect(RPC_PATH) as connection:
        _join(connection, token)
        response = client.delete("/api/sessions/R1", headers=_admin(admin_secret))
        assert response.status_code == 204
        assert connection.receive_json()["method"] == "participantEvicted"

    assert client.get("/api/sessions/R1", headers=_admin(admin_secret)).status_code == 404


def test_health_and_metrics(client):
    assert client.get("/health").json()["status"] == "ok"

    with client.websocket_connect(RPC_PATH) as connection:
        connection.send_json({"jsonrpc": "2.0", "id": 1, "method": "ping"})
        connection.receive_json()

    body = client.get("/metrics").text
    assert 'signaling_rpc_requests_total{method="ping"}' in body
    assert "# TYPE signaling_active_connections gauge" in body
