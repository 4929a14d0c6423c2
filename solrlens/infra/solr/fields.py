"""Typed reads over the loosely-typed ``zkStatus`` payload.

Each field of an upstream detail row reads as exactly one of:

* ``Present``   - key exists and the value has the expected type
* ``WrongType`` - key exists but holds something else
* ``Absent``    - key missing or null

Normalization code picks defaults from these variants in one place instead
of chaining ``a or b or "unknown"`` across the renderers.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, Mapping, TypeVar, Union

T = TypeVar("T")


@dataclass(frozen=True)
class Present(Generic[T]):
    value: T

    def or_default(self, default: T) -> T:
        return self.value


@dataclass(frozen=True)
class WrongType:
    raw: Any

    def or_default(self, default: T) -> T:
        return default


@dataclass(frozen=True)
class Absent:
    def or_default(self, default: T) -> T:
        return default


RawField = Union[Present[T], WrongType, Absent]

ABSENT = Absent()


def read_str(data: Mapping[str, Any], key: str) -> RawField[str]:
    value = data.get(key)
    if value is None or value == "":
        return ABSENT
    if isinstance(value, str):
        return Present(value)
    return WrongType(value)


def read_bool(data: Mapping[str, Any], key: str) -> RawField[bool]:
    value = data.get(key)
    if value is None:
        return ABSENT
    if isinstance(value, bool):
        return Present(value)
    return WrongType(value)


def read_int(data: Mapping[str, Any], key: str) -> RawField[int]:
    """Integers, integral floats and numeric strings all count as present."""
    value = data.get(key)
    if value is None:
        return ABSENT
    if isinstance(value, bool):
        return WrongType(value)
    if isinstance(value, int):
        return Present(value)
    if isinstance(value, float) and value.is_integer():
        return Present(int(value))
    if isinstance(value, str):
        try:
            return Present(int(value.strip()))
        except ValueError:
            return WrongType(value)
    return WrongType(value)


def read_float(data: Mapping[str, Any], key: str) -> RawField[float]:
    value = data.get(key)
    if value is None:
        return ABSENT
    if isinstance(value, bool):
        return WrongType(value)
    if isinstance(value, (int, float)):
        return Present(float(value))
    if isinstance(value, str):
        try:
            return Present(float(value.strip()))
        except ValueError:
            return WrongType(value)
    return WrongType(value)


def read_scalar_str(data: Mapping[str, Any], key: str) -> RawField[str]:
    """Like ``read_str`` but renders numeric ids (``serverId: 3``) as text."""
    field = read_str(data, key)
    if isinstance(field, WrongType) and isinstance(field.raw, (int, float)) and not isinstance(field.raw, bool):
        return Present(str(field.raw))
    return field


def split_host_port(address: str, default_port: int) -> tuple[str, int]:
    """Split ``"host:port"``; a missing or bad port falls back to *default_port*."""
    host, sep, port = address.rpartition(":")
    if not sep:
        return address, default_port
    try:
        return host, int(port)
    except ValueError:
        return host, default_port
