from __future__ import annotations

from typing import BinaryIO, Optional

import orjson
from google.protobuf.message import Message

from protolator.errors import ProtolatorError
from protolator.json_values import decode_to_mapping, encode_json
from protolator.registry import Registry
from protolator.tree import message_to_tree, message_type_name, tree_to_message


def deep_marshal_json(
    sink: BinaryIO,
    msg: Message,
    registry: Optional[Registry] = None,
    *,
    indent: bool = True,
) -> None:
    """
    Write *msg* to *sink* as a JSON document, applying *registry*'s
    factories at every level of nesting.

    Nothing is written if any field fails to convert.
    """
    if registry is None:
        registry = Registry()
    tree = message_to_tree(msg, registry)
    try:
        data = encode_json(tree, indent=indent)
    except orjson.JSONEncodeError as exc:
        raise ProtolatorError(f"{message_type_name(msg)}: {exc}") from exc
    sink.write(data)


def deep_unmarshal_json(
    source: BinaryIO,
    msg: Message,
    registry: Optional[Registry] = None,
) -> None:
    """
    Read one JSON document from *source* and populate *msg* in place.

    Numbers are decoded exactly; JSON keys that match no field are ignored.
    """
    if registry is None:
        registry = Registry()
    raw = source.read()
    try:
        tree = decode_to_mapping(raw)
    except (ValueError, TypeError, RecursionError) as exc:  # syntax, encoding, nesting, non-object root
        raise ProtolatorError(f"{message_type_name(msg)}: {exc}") from exc
    tree_to_message(tree, msg, registry)
