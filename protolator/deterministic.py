from __future__ import annotations

from google.protobuf.message import EncodeError, Message

from protolator.errors import ProtolatorError
from protolator.fields import is_map_field


def _copy(msg: Message) -> Message:
    clone = type(msg)()
    clone.CopyFrom(msg)
    return clone


def _canonicalize_maps(msg: Message) -> None:
    """Rebuild every map in *msg* (recursively) in sorted key order."""
    for field, value in msg.ListFields():
        if field.message_type is None:
            continue
        if is_map_field(field):
            value_is_message = field.message_type.fields_by_name["value"].message_type is not None
            entries = [
                (key, _copy(value[key]) if value_is_message else value[key])
                for key in sorted(value)
            ]
            value.clear()
            for key, item in entries:
                if value_is_message:
                    _canonicalize_maps(item)
                    value[key].CopyFrom(item)
                else:
                    value[key] = item
        elif field.is_repeated:
            for item in value:
                _canonicalize_maps(item)
        else:
            _canonicalize_maps(value)


def mostly_deterministic_marshal(msg: Message) -> bytes:
    """
    Binary-encode *msg* so that repeated calls on equal content give
    identical bytes within one process and library version.

    Map entries are re-inserted in key order on a copy of the message
    before encoding with the library's deterministic mode.  Nothing is
    promised across library versions or other encoders.
    """
    canonical = _copy(msg)
    _canonicalize_maps(canonical)
    try:
        return canonical.SerializeToString(deterministic=True)
    except EncodeError as exc:
        raise ProtolatorError(f"{msg.DESCRIPTOR.full_name}: {exc}") from exc
