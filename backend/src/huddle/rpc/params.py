"""Typed access to the flat parameter object of a JSON-RPC request."""

from __future__ import annotations

import logging
from typing import Any, Mapping, TypeVar

from pydantic import TypeAdapter, ValidationError

from .errors import MalformedParameter, MissingParameter

logger = logging.getLogger(__name__)

T = TypeVar("T")

_STRING = TypeAdapter(str)
_INT = TypeAdapter(int)
_BOOL = TypeAdapter(bool)


def has_param(params: Mapping[str, Any] | None, key: str) -> bool:
    return params is not None and params.get(key) is not None


def _require(params: Mapping[str, Any] | None, key: str) -> Any:
    if not has_param(params, key):
        raise MissingParameter(key)
    return params[key]  # type: ignore[index]


def _coerce(adapter: TypeAdapter[T], key: str, value: Any) -> T:
    try:
        return adapter.validate_python(value)
    except ValidationError as exc:
        errors = exc.errors()
        reason = errors[0]["msg"] if errors else None
        raise MalformedParameter(key, reason) from None


def get_string_param(params: Mapping[str, Any] | None, key: str) -> str:
    value = _coerce(_STRING, key, _require(params, key))
    logger.debug("Request element %s=%r", key, value)
    return value


def get_int_param(params: Mapping[str, Any] | None, key: str) -> int:
    return _coerce(_INT, key, _require(params, key))


def get_bool_param(params: Mapping[str, Any] | None, key: str) -> bool:
    return _coerce(_BOOL, key, _require(params, key))


def get_optional_bool_param(
    params: Mapping[str, Any] | None, key: str, default: bool = False
) -> bool:
    """Return *default* when the flag is absent, otherwise coerce it strictly."""

    if not has_param(params, key):
        return default
    return get_bool_param(params, key)


__all__ = [
    "has_param",
    "get_string_param",
    "get_int_param",
    "get_bool_param",
    "get_optional_bool_param",
]
