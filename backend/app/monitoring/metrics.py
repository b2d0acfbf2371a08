"""Metric definitions for the signaling service."""

from __future__ import annotations

from .registry import registry


rpc_requests_total = registry.counter(
    "signaling_rpc_requests_total",
    "Number of JSON-RPC requests received, by method.",
    label_names=("method",),
)

rpc_errors_total = registry.counter(
    "signaling_rpc_errors_total",
    "Number of JSON-RPC requests answered with an error.",
    label_names=("method", "code"),
)

rpc_connections = registry.gauge(
    "signaling_active_connections",
    "Number of open signaling websocket connections.",
)

room_participants = registry.gauge(
    "signaling_room_participants",
    "Participants currently admitted per room.",
    label_names=("room",),
)

room_departures_total = registry.counter(
    "signaling_room_departures_total",
    "Room departures by outcome (left, evicted, failed).",
    label_names=("outcome",),
)
