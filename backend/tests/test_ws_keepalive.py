from __future__ import annotations

import time

from starlette.testclient import WebSocketTestSession

from app.services import SignalingServices, reset_signaling_services


def test_signaling_connection_survives_keepalive_timeout(client, test_settings, media_client) -> None:
    """Ensure that the server side keepalive pings keep the socket open."""

    settings = test_settings.model_copy(
        update={
            "websocket_keepalive_timeout_seconds": 0.1,
            "websocket_keepalive_ping_interval_seconds": 0.05,
        }
    )
    reset_signaling_services(SignalingServices(settings, media=media_client))

    with client.websocket_connect("/openvidu") as connection:
        _assert_keepalive_sequence(connection)


def _assert_keepalive_sequence(connection: WebSocketTestSession) -> None:
    """Observe two keepalive pings and answer a client ping in between."""

    time.sleep(0.15)
    ping = connection.receive_json()
    assert ping == {"jsonrpc": "2.0", "method": "ping", "params": {}}

    time.sleep(0.12)
    ping_again = connection.receive_json()
    assert ping_again["method"] == "ping"
    assert "id" not in ping_again

    connection.send_json({"jsonrpc": "2.0", "id": 5, "method": "ping"})
    response = connection.receive_json()
    while response.get("method") == "ping":
        response = connection.receive_json()
    assert response == {"jsonrpc": "2.0", "id": 5, "result": {"value": "pong"}}
