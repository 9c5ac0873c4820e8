"""
Recursive message <-> JSON tree walk.

Every level prefixes failures with the concrete message type, so a deep
failure reads ``Outer: error in ... for message Outer: Inner: ...``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Tuple

from google.protobuf import json_format, message_factory
from google.protobuf.descriptor import Descriptor, FieldDescriptor
from google.protobuf.message import Message

from protolator.errors import ProtolatorError
from protolator.json_values import JSONValue, expect_object, unwrap_numbers
from protolator.scalars import scalar_from_json, scalar_to_json
from protolator_shared.logging_setup import get_logger

if TYPE_CHECKING:
    from protolator.fields import ProtoField
    from protolator.registry import Registry

_LOG = get_logger(__name__)

_WELL_KNOWN_PREFIX = "google.protobuf."


def message_type_name(msg: Message) -> str:
    return msg.DESCRIPTOR.full_name


def is_well_known(descriptor: Descriptor) -> bool:
    return descriptor.full_name.startswith(_WELL_KNOWN_PREFIX)


def new_message(descriptor: Descriptor) -> Message:
    return message_factory.GetMessageClass(descriptor)()


# ─────────────────────────── element converters ─────────────────────────────
def element_to_json(registry: "Registry", field: FieldDescriptor, value: Any) -> JSONValue:
    """Default rendering of one value (or one map/slice entry) of *field*."""
    if field.message_type is None:
        return scalar_to_json(field, value)
    if is_well_known(field.message_type):
        return json_format.MessageToDict(value, preserving_proto_field_name=True)
    return message_to_tree(value, registry)


def element_from_json(registry: "Registry", field: FieldDescriptor, value: JSONValue) -> Any:
    if field.message_type is None:
        return scalar_from_json(field, value)
    msg = new_message(field.message_type)
    if is_well_known(field.message_type):
        json_format.ParseDict(unwrap_numbers(value), msg)
        return msg
    return tree_to_message(expect_object(value), msg, registry)


# ──────────────────────────────── the walk ──────────────────────────────────
def message_to_tree(msg: Message, registry: "Registry") -> Dict[str, JSONValue]:
    """
    Build the JSON object for *msg*.

    Every declared field is resolved (so a factory sees each one), but only
    populated fields are rendered.  Keys follow declaration order.
    """
    type_name = message_type_name(msg)
    populated = {field.name for field, _ in msg.ListFields()}
    tree: Dict[str, JSONValue] = {}
    for field in msg.DESCRIPTOR.fields:
        try:
            proto_field = registry.resolve(msg, field)
        except Exception as exc:
            raise ProtolatorError(f"{type_name}: {exc}") from exc
        if field.name not in populated:
            continue
        try:
            tree[field.name] = proto_field.populate_to()
        except Exception as exc:
            raise ProtolatorError(f"{type_name}: {exc}") from exc
    return tree


def tree_to_message(tree: Dict[str, JSONValue], msg: Message, registry: "Registry") -> Message:
    """
    Populate *msg* in place from a decoded JSON object and return it.

    Keys with no matching field are ignored.  Deferred fields are populated
    after the rest of the message.
    """
    type_name = message_type_name(msg)
    fields = msg.DESCRIPTOR.fields_by_name
    deferred: List[Tuple["ProtoField", JSONValue]] = []
    oneofs: Dict[str, str] = {}

    for field in msg.DESCRIPTOR.fields:
        if field.name not in tree:
            continue
        value = tree[field.name]
        oneof = field.containing_oneof
        if oneof is not None and value is not None:
            if oneof.name in oneofs:
                raise ProtolatorError(
                    f"{type_name}: multiple values for oneof {oneof.name}: "
                    f"{oneofs[oneof.name]} and {field.name}"
                )
            oneofs[oneof.name] = field.name
        try:
            proto_field = registry.resolve(msg, field)
        except Exception as exc:
            raise ProtolatorError(f"{type_name}: {exc}") from exc
        if proto_field.deferred:
            deferred.append((proto_field, value))
            continue
        _populate_from(type_name, proto_field, value)

    for proto_field, value in deferred:
        _populate_from(type_name, proto_field, value)

    unknown = [key for key in tree if key not in fields]
    if unknown:
        _LOG.debug("%s: ignoring unknown JSON keys %s", type_name, unknown)
    return msg


def _populate_from(type_name: str, proto_field: "ProtoField", value: JSONValue) -> None:
    try:
        proto_field.populate_from(value)
    except Exception as exc:
        raise ProtolatorError(f"{type_name}: {exc}") from exc
