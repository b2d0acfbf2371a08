"""Application service helpers."""

from .signaling import (
    SignalingServices,
    get_signaling_services,
    reset_signaling_services,
)

__all__ = [
    "SignalingServices",
    "get_signaling_services",
    "reset_signaling_services",
]
