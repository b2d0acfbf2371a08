"""Prometheus style metrics exported by the signaling service."""

from .metrics import (
    room_departures_total,
    room_participants,
    rpc_connections,
    rpc_errors_total,
    rpc_requests_total,
)
from .registry import registry

__all__ = [
    "registry",
    "room_departures_total",
    "room_participants",
    "rpc_connections",
    "rpc_errors_total",
    "rpc_requests_total",
]
