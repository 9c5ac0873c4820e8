"""
Tagged JSON value model.

Decoded documents are made of ``None``, ``bool``, :class:`JSONNumber`,
``str``, ``list`` and ``dict``.  Numbers keep their literal text so that
64-bit integers survive until the destination field's width is known.
Converters use the ``expect_*`` helpers instead of casting blindly.
"""

from __future__ import annotations

import json as _std_json
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Union

import orjson

from protolator.errors import JSONTypeError


# widest protobuf integer (uint64) has 20 digits
_MAX_INT_DIGITS = 20


class JSONNumber:
    """A JSON numeric literal, kept as its exact source text."""

    __slots__ = ("text",)

    def __init__(self, text: str):
        self.text = text

    def is_integer(self) -> bool:
        return not any(c in self.text for c in ".eE")

    def __int__(self) -> int:
        if self.is_integer():
            return int(self.text)
        try:
            exact = Decimal(self.text)
        except InvalidOperation as exc:
            raise ValueError(f"invalid number {self.text!r}") from exc
        if exact.adjusted() > _MAX_INT_DIGITS:
            raise ValueError(f"number {self.text} is out of integer range")
        if exact != exact.to_integral_value():
            raise ValueError(f"number {self.text} is not an integer")
        return int(exact)

    def __float__(self) -> float:
        return float(self.text)

    def to_decimal(self) -> Decimal:
        return Decimal(self.text)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, JSONNumber):
            return self.to_decimal() == other.to_decimal()
        if isinstance(other, (int, float)) and not isinstance(other, bool):
            return self.to_decimal() == Decimal(other)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.to_decimal())

    def __str__(self) -> str:
        return self.text

    def __repr__(self) -> str:
        return f"JSONNumber({self.text!r})"


JSONValue = Union[None, bool, JSONNumber, int, float, str, List[Any], Dict[str, Any]]


def _type_label(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "bool"
    if isinstance(value, (JSONNumber, int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__


def _reject_constant(name: str):
    raise ValueError(f"invalid JSON literal {name}")


# ───────────────────────────── decode / encode ──────────────────────────────
def decode_to_mapping(data: Union[bytes, bytearray, str]) -> Dict[str, Any]:
    """
    Decode a JSON object, keeping every number as a :class:`JSONNumber`.

    orjson has no hook for numeric literals, so decoding goes through the
    stdlib parser with ``parse_int``/``parse_float`` overridden.
    """
    if isinstance(data, (bytes, bytearray)):
        data = bytes(data).decode("utf-8")
    tree = _std_json.loads(
        data,
        parse_int=JSONNumber,
        parse_float=JSONNumber,
        parse_constant=_reject_constant,
    )
    return expect_object(tree)


def _encode_default(obj: Any):
    if isinstance(obj, JSONNumber):
        return int(obj) if obj.is_integer() else float(obj)
    raise TypeError(f"Type is not JSON serializable: {type(obj).__name__}")


def encode_json(tree: Any, *, indent: bool = True) -> bytes:
    option = orjson.OPT_APPEND_NEWLINE
    if indent:
        option |= orjson.OPT_INDENT_2
    return orjson.dumps(tree, default=_encode_default, option=option)


def unwrap_numbers(value: Any) -> Any:
    """Replace JSONNumber leaves with int/float for libraries that need them."""
    if isinstance(value, JSONNumber):
        return int(value) if value.is_integer() else float(value)
    if isinstance(value, dict):
        return {k: unwrap_numbers(v) for k, v in value.items()}
    if isinstance(value, list):
        return [unwrap_numbers(x) for x in value]
    return value


# ───────────────────────────── pattern helpers ──────────────────────────────
def expect_object(value: Any) -> Dict[str, Any]:
    if not isinstance(value, dict):
        raise JSONTypeError(f"expected object, got {_type_label(value)}")
    return value


def expect_array(value: Any) -> List[Any]:
    if not isinstance(value, list):
        raise JSONTypeError(f"expected array, got {_type_label(value)}")
    return value


def expect_string(value: Any) -> str:
    if not isinstance(value, str):
        raise JSONTypeError(f"expected string, got {_type_label(value)}")
    return value


def expect_bool(value: Any) -> bool:
    if not isinstance(value, bool):
        raise JSONTypeError(f"expected bool, got {_type_label(value)}")
    return value


def expect_number(value: Any) -> JSONNumber:
    if isinstance(value, JSONNumber):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return JSONNumber(repr(value))
    raise JSONTypeError(f"expected number, got {_type_label(value)}")
