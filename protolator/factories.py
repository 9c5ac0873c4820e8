"""
Ready-made field factories.

Opaque fields are ``bytes`` fields that carry another serialized message.
The statically opaque factory always knows the embedded type; the
variably opaque one asks a resolver, which may inspect sibling fields of
the containing message, so its fields are populated last on unmarshal.
"""

from __future__ import annotations

import abc
from typing import Any, Callable, Type, Union

from google.protobuf.descriptor import FieldDescriptor
from google.protobuf.message import Message

from protolator.deterministic import mostly_deterministic_marshal
from protolator.errors import ProtolatorError
from protolator.fields import FieldKind, MapField, ProtoField, ScalarField, SliceField, classify
from protolator.json_values import JSONValue, expect_object, expect_string
from protolator.registry import FieldFactory, Registry
from protolator.tree import message_to_tree, tree_to_message

Position = Union[None, str, int]


def _element_field(field: FieldDescriptor) -> FieldDescriptor:
    if classify(field) is FieldKind.MAP:
        return field.message_type.fields_by_name["value"]
    return field


def _is_bytes_field(field: FieldDescriptor) -> bool:
    return _element_field(field).type == FieldDescriptor.TYPE_BYTES


class _BytesFieldFactory(FieldFactory):
    """Builds the right variant for a bytes field from per-element converters."""

    deferred = False

    @abc.abstractmethod
    def _to_json(self, registry: Registry, msg: Message, position: Position, raw: bytes) -> JSONValue: ...

    @abc.abstractmethod
    def _from_json(self, registry: Registry, msg: Message, position: Position, value: JSONValue) -> bytes: ...

    def new_proto_field(
        self,
        registry: Registry,
        msg: Message,
        field: FieldDescriptor,
        value: Any,
    ) -> ProtoField:
        if not _is_bytes_field(field):
            raise ProtolatorError(
                f"{type(self).__name__} cannot handle non-bytes field {field.full_name}"
            )

        kind = classify(field)
        if kind is FieldKind.MAP:
            return MapField(
                registry, msg, field,
                from_json=lambda key, v: self._from_json(registry, msg, key, v),
                to_json=lambda key, raw: self._to_json(registry, msg, key, raw),
                deferred=self.deferred,
            )
        if kind is FieldKind.SLICE:
            return SliceField(
                registry, msg, field,
                from_json=lambda index, v: self._from_json(registry, msg, index, v),
                to_json=lambda index, raw: self._to_json(registry, msg, index, raw),
                deferred=self.deferred,
            )
        return ScalarField(
            registry, msg, field,
            from_json=lambda v: self._from_json(registry, msg, None, v),
            to_json=lambda raw: self._to_json(registry, msg, None, raw),
            deferred=self.deferred,
        )


class _OpaqueFieldFactory(_BytesFieldFactory):
    def __init__(self, message_name: str, field_name: str):
        self.message_name = message_name
        self.field_name = field_name

    def handles(self, msg: Message, field: FieldDescriptor, value: Any) -> bool:
        return msg.DESCRIPTOR.full_name == self.message_name and field.name == self.field_name

    @abc.abstractmethod
    def opaque_message(self, msg: Message, position: Position) -> Message:
        """Return an empty message of the type embedded at *position*."""

    def _to_json(self, registry: Registry, msg: Message, position: Position, raw: bytes) -> JSONValue:
        opaque = self.opaque_message(msg, position)
        opaque.ParseFromString(raw)
        return message_to_tree(opaque, registry)

    def _from_json(self, registry: Registry, msg: Message, position: Position, value: JSONValue) -> bytes:
        opaque = self.opaque_message(msg, position)
        tree_to_message(expect_object(value), opaque, registry)
        return mostly_deterministic_marshal(opaque)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message_name}.{self.field_name})"


class StaticallyOpaqueFieldFactory(_OpaqueFieldFactory):
    def __init__(self, message_name: str, field_name: str, opaque_type: Type[Message]):
        super().__init__(message_name, field_name)
        self.opaque_type = opaque_type

    def opaque_message(self, msg: Message, position: Position) -> Message:
        return self.opaque_type()


class VariablyOpaqueFieldFactory(_OpaqueFieldFactory):
    """
    *resolver* is called as ``resolver(msg, position)`` with the containing
    message and ``None``, the map key, or the slice index, and returns an
    empty message of the embedded type.
    """

    deferred = True

    def __init__(
        self,
        message_name: str,
        field_name: str,
        resolver: Callable[[Message, Position], Message],
    ):
        super().__init__(message_name, field_name)
        self.resolver = resolver

    def opaque_message(self, msg: Message, position: Position) -> Message:
        opaque = self.resolver(msg, position)
        if not isinstance(opaque, Message):
            raise ProtolatorError(
                f"resolver for {self.message_name}.{self.field_name} returned "
                f"{type(opaque).__name__}, not a message"
            )
        return opaque


class HexBytesFieldFactory(_BytesFieldFactory):
    """Render bytes fields as lowercase hex instead of base64."""

    def __init__(self, *field_names: str):
        self.field_names = frozenset(field_names)

    def handles(self, msg: Message, field: FieldDescriptor, value: Any) -> bool:
        if self.field_names and field.full_name not in self.field_names:
            return False
        return _is_bytes_field(field)

    def _to_json(self, registry: Registry, msg: Message, position: Position, raw: bytes) -> JSONValue:
        return raw.hex()

    def _from_json(self, registry: Registry, msg: Message, position: Position, value: JSONValue) -> bytes:
        return bytes.fromhex(expect_string(value))
