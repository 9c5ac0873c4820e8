import io

from protolator import deep_marshal_json, deep_unmarshal_json


def marshal(msg, registry=None, **kwargs) -> bytes:
    buf = io.BytesIO()
    deep_marshal_json(buf, msg, registry, **kwargs)
    return buf.getvalue()


def unmarshal(data: bytes, msg, registry=None):
    deep_unmarshal_json(io.BytesIO(data), msg, registry)
    return msg


def round_trip(msg, registry=None):
    return unmarshal(marshal(msg, registry), type(msg)(), registry)
