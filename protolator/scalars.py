"""Default JSON rendering of scalar field values and map keys."""

from __future__ import annotations

import base64
import math
from typing import Any, Callable, Dict

from google.protobuf.descriptor import FieldDescriptor as FD

from protolator.errors import JSONTypeError
from protolator.json_values import (
    JSONNumber,
    JSONValue,
    expect_bool,
    expect_number,
    expect_string,
)

_INT_TYPES = (FD.CPPTYPE_INT32, FD.CPPTYPE_INT64, FD.CPPTYPE_UINT32, FD.CPPTYPE_UINT64)

_NON_FINITE = {"NaN": math.nan, "Infinity": math.inf, "-Infinity": -math.inf}


def _float_to_json(value: float) -> JSONValue:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    return float(value)


def _int_from_json(value: Any) -> int:
    if isinstance(value, str):
        return int(JSONNumber(value.strip()))
    return int(expect_number(value))


def _float_from_json(value: Any) -> float:
    if isinstance(value, str):
        if value in _NON_FINITE:
            return _NON_FINITE[value]
        return float(value)
    return float(expect_number(value))


def _bytes_from_json(value: Any) -> bytes:
    text = expect_string(value).replace("-", "+").replace("_", "/")
    text += "=" * (-len(text) % 4)
    return base64.b64decode(text, validate=True)


_TO_JSON: Dict[int, Callable[[Any], JSONValue]] = {
    FD.CPPTYPE_INT32:  int,
    FD.CPPTYPE_INT64:  int,
    FD.CPPTYPE_UINT32: int,
    FD.CPPTYPE_UINT64: int,
    FD.CPPTYPE_DOUBLE: _float_to_json,
    FD.CPPTYPE_FLOAT:  _float_to_json,
    FD.CPPTYPE_BOOL:   bool,
    FD.CPPTYPE_STRING: str,
    # bytes and enums handled specially
}

_FROM_JSON: Dict[int, Callable[[Any], Any]] = {
    FD.CPPTYPE_INT32:  _int_from_json,
    FD.CPPTYPE_INT64:  _int_from_json,
    FD.CPPTYPE_UINT32: _int_from_json,
    FD.CPPTYPE_UINT64: _int_from_json,
    FD.CPPTYPE_DOUBLE: _float_from_json,
    FD.CPPTYPE_FLOAT:  _float_from_json,
    FD.CPPTYPE_BOOL:   expect_bool,
    FD.CPPTYPE_STRING: expect_string,
}


def scalar_to_json(field: FD, value: Any) -> JSONValue:
    if field.type == FD.TYPE_BYTES:
        return base64.b64encode(value).decode("ascii")
    if field.cpp_type == FD.CPPTYPE_ENUM:
        known = field.enum_type.values_by_number.get(value)
        return known.name if known is not None else int(value)
    try:
        convert = _TO_JSON[field.cpp_type]
    except KeyError:
        raise TypeError(f"field {field.full_name} of type {field.type} is not a scalar") from None
    return convert(value)


def scalar_from_json(field: FD, value: Any) -> Any:
    if field.type == FD.TYPE_BYTES:
        return _bytes_from_json(value)
    if field.cpp_type == FD.CPPTYPE_ENUM:
        if isinstance(value, str):
            known = field.enum_type.values_by_name.get(value)
            if known is None:
                raise ValueError(f"unknown value {value!r} for enum {field.enum_type.full_name}")
            return known.number
        return _int_from_json(value)
    try:
        convert = _FROM_JSON[field.cpp_type]
    except KeyError:
        raise TypeError(f"field {field.full_name} of type {field.type} is not a scalar") from None
    return convert(value)


# ───────────────────────────────── map keys ─────────────────────────────────
def map_key_to_json(key_field: FD, key: Any) -> str:
    if key_field.cpp_type == FD.CPPTYPE_BOOL:
        return "true" if key else "false"
    return str(key)


def map_key_from_json(key_field: FD, key: str) -> Any:
    if key_field.cpp_type == FD.CPPTYPE_BOOL:
        if key not in ("true", "false"):
            raise JSONTypeError(f"invalid bool map key {key!r}")
        return key == "true"
    if key_field.cpp_type in _INT_TYPES:
        return int(JSONNumber(key))
    return key
