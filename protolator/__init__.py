"""
Deep, field-level conversion between protobuf messages and JSON.

    from protolator import Registry, deep_marshal_json, deep_unmarshal_json

Fields are converted by ProtoField variants chosen per field; a
:class:`Registry` of :class:`FieldFactory` objects overrides the choice
for the fields it claims.
"""

from protolator.deterministic import mostly_deterministic_marshal
from protolator.engine import deep_marshal_json, deep_unmarshal_json
from protolator.errors import FieldConversionError, JSONTypeError, ProtolatorError
from protolator.factories import (
    HexBytesFieldFactory,
    StaticallyOpaqueFieldFactory,
    VariablyOpaqueFieldFactory,
)
from protolator.fields import (
    FieldKind,
    MapField,
    MessageField,
    ProtoField,
    ScalarField,
    SliceField,
    classify,
)
from protolator.json_values import JSONNumber, decode_to_mapping
from protolator.registry import FieldFactory, Registry
from protolator.tree import message_to_tree, tree_to_message

__all__ = [
    "FieldConversionError",
    "FieldFactory",
    "FieldKind",
    "HexBytesFieldFactory",
    "JSONNumber",
    "JSONTypeError",
    "MapField",
    "MessageField",
    "ProtoField",
    "ProtolatorError",
    "Registry",
    "ScalarField",
    "SliceField",
    "StaticallyOpaqueFieldFactory",
    "VariablyOpaqueFieldFactory",
    "classify",
    "decode_to_mapping",
    "deep_marshal_json",
    "deep_unmarshal_json",
    "message_to_tree",
    "mostly_deterministic_marshal",
    "tree_to_message",
]
