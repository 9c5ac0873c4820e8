from __future__ import annotations

import abc
from typing import Any, Iterable, List

from google.protobuf.descriptor import FieldDescriptor
from google.protobuf.message import Message

from protolator.fields import DEFAULT_VARIANTS, ProtoField, classify
from protolator_shared.logging_setup import get_logger

_LOG = get_logger(__name__)


class FieldFactory(abc.ABC):
    """
    Pluggable rule supplying custom conversion for the fields it claims.

    ``handles`` must be cheap and side-effect free; it is asked once per
    field per conversion.  ``new_proto_field`` builds a single-use
    ProtoField for that field occurrence and may raise to reject it.
    """

    @abc.abstractmethod
    def handles(self, msg: Message, field: FieldDescriptor, value: Any) -> bool: ...

    @abc.abstractmethod
    def new_proto_field(
        self,
        registry: "Registry",
        msg: Message,
        field: FieldDescriptor,
        value: Any,
    ) -> ProtoField: ...


def default_proto_field(registry: "Registry", msg: Message, field: FieldDescriptor) -> ProtoField:
    return DEFAULT_VARIANTS[classify(field)](registry, msg, field)


class Registry:
    """
    Ordered list of field factories; the first one that handles a field
    wins, and fields nobody claims get the structural default.

    Configure it before converting.  Changing ``factories`` while a
    conversion that uses this registry is running is not supported.
    """

    def __init__(self, factories: Iterable[FieldFactory] = ()):
        self.factories: List[FieldFactory] = list(factories)

    def register(self, factory: FieldFactory) -> "Registry":
        self.factories.append(factory)
        return self

    def resolve(self, msg: Message, field: FieldDescriptor) -> ProtoField:
        value = getattr(msg, field.name)
        for factory in self.factories:
            if factory.handles(msg, field, value):
                _LOG.debug(
                    "%s.%s claimed by %s",
                    msg.DESCRIPTOR.full_name, field.name, type(factory).__name__,
                )
                return factory.new_proto_field(self, msg, field, value)
        return default_proto_field(self, msg, field)

    def __repr__(self) -> str:
        names = ", ".join(type(f).__name__ for f in self.factories)
        return f"Registry([{names}])"
