"""Signaling core for multi-party conferencing rooms."""
