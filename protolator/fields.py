"""
ProtoField variants.

A ProtoField is bound to one field of one message instance and converts
it in both directions.  The variant set is closed: :func:`classify` picks
one of ``ScalarField``, ``MessageField``, ``MapField`` or ``SliceField``
from the field descriptor.  Factories customise a variant by passing
``from_json``/``to_json`` callbacks; map callbacks also receive the
entry key, slice callbacks the element index.
"""

from __future__ import annotations

import abc
import enum
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional

from google.protobuf.descriptor import FieldDescriptor
from google.protobuf.message import Message

from protolator.errors import FieldConversionError
from protolator.json_values import JSONValue, expect_array, expect_object
from protolator.scalars import map_key_from_json, map_key_to_json
from protolator.tree import element_from_json, element_to_json, message_type_name

if TYPE_CHECKING:
    from protolator.registry import Registry

POPULATE_FROM = "PopulateFrom"
POPULATE_TO = "PopulateTo"


class FieldKind(enum.Enum):
    SCALAR = "scalar"
    MESSAGE = "message"
    MAP = "map"
    SLICE = "slice"


def is_map_field(field: FieldDescriptor) -> bool:
    return (
        field.is_repeated
        and field.message_type is not None
        and field.message_type.GetOptions().map_entry
    )


def classify(field: FieldDescriptor) -> FieldKind:
    if field.is_repeated:
        return FieldKind.MAP if is_map_field(field) else FieldKind.SLICE
    if field.message_type is not None:
        return FieldKind.MESSAGE
    return FieldKind.SCALAR


class ProtoField(abc.ABC):
    kind: FieldKind
    label = "field"

    def __init__(
        self,
        registry: "Registry",
        msg: Message,
        field: FieldDescriptor,
        *,
        deferred: bool = False,
    ):
        self.registry = registry
        self.msg = msg
        self.field = field
        self.deferred = deferred

    @property
    def name(self) -> str:
        return self.field.name

    @property
    def message_type(self) -> str:
        return message_type_name(self.msg)

    @property
    def value(self) -> Any:
        return getattr(self.msg, self.field.name)

    def _swap_in(self, staged: Message) -> None:
        """Replace this field with its value in *staged*, a scratch message holding only that field."""
        self.msg.ClearField(self.name)
        self.msg.MergeFrom(staged)

    def _error(self, direction: str, exc: BaseException, **where) -> FieldConversionError:
        return FieldConversionError(
            direction, self.label, self.name, self.message_type, exc, **where
        )

    @abc.abstractmethod
    def populate_to(self) -> JSONValue:
        """Render the field's current value as JSON."""

    @abc.abstractmethod
    def populate_from(self, value: JSONValue) -> None:
        """Overwrite the field from a decoded JSON value."""


# ───────────────────────────── singular fields ──────────────────────────────
class _SingularField(ProtoField):
    def __init__(
        self,
        registry: "Registry",
        msg: Message,
        field: FieldDescriptor,
        *,
        from_json: Optional[Callable[[JSONValue], Any]] = None,
        to_json: Optional[Callable[[Any], JSONValue]] = None,
        deferred: bool = False,
    ):
        super().__init__(registry, msg, field, deferred=deferred)
        self._from_json = from_json or self._default_from_json
        self._to_json = to_json or self._default_to_json

    def _default_from_json(self, value: JSONValue) -> Any:
        return element_from_json(self.registry, self.field, value)

    def _default_to_json(self, native: Any) -> JSONValue:
        return element_to_json(self.registry, self.field, native)

    @abc.abstractmethod
    def _assign(self, native: Any) -> None: ...

    def populate_to(self) -> JSONValue:
        try:
            return self._to_json(self.value)
        except Exception as exc:
            raise self._error(POPULATE_TO, exc) from exc

    def populate_from(self, value: JSONValue) -> None:
        try:
            if value is None:
                self.msg.ClearField(self.name)
                return
            self._assign(self._from_json(value))
        except Exception as exc:
            raise self._error(POPULATE_FROM, exc) from exc


class ScalarField(_SingularField):
    kind = FieldKind.SCALAR

    def _assign(self, native: Any) -> None:
        setattr(self.msg, self.name, native)


class MessageField(_SingularField):
    kind = FieldKind.MESSAGE

    def _assign(self, native: Message) -> None:
        getattr(self.msg, self.name).CopyFrom(native)


# ──────────────────────────────── map fields ────────────────────────────────
class MapField(ProtoField):
    kind = FieldKind.MAP
    label = "map field"

    def __init__(
        self,
        registry: "Registry",
        msg: Message,
        field: FieldDescriptor,
        *,
        from_json: Optional[Callable[[str, JSONValue], Any]] = None,
        to_json: Optional[Callable[[str, Any], JSONValue]] = None,
        deferred: bool = False,
    ):
        super().__init__(registry, msg, field, deferred=deferred)
        self.key_field = field.message_type.fields_by_name["key"]
        self.value_field = field.message_type.fields_by_name["value"]
        self._from_json = from_json or self._default_from_json
        self._to_json = to_json or self._default_to_json

    def _default_from_json(self, key: str, value: JSONValue) -> Any:
        return element_from_json(self.registry, self.value_field, value)

    def _default_to_json(self, key: str, native: Any) -> JSONValue:
        return element_to_json(self.registry, self.value_field, native)

    def populate_to(self) -> Dict[str, JSONValue]:
        container = self.value
        result: Dict[str, JSONValue] = {}
        for key in sorted(container):
            json_key = map_key_to_json(self.key_field, key)
            try:
                result[json_key] = self._to_json(json_key, container[key])
            except Exception as exc:
                raise self._error(POPULATE_TO, exc, key=json_key) from exc
        return result

    def populate_from(self, value: JSONValue) -> None:
        if value is None:
            self.msg.ClearField(self.name)
            return
        try:
            entries = expect_object(value)
        except Exception as exc:
            raise self._error(POPULATE_FROM, exc) from exc

        staged = type(self.msg)()
        container = getattr(staged, self.name)
        for json_key, item in entries.items():
            try:
                key = map_key_from_json(self.key_field, json_key)
                native = self._from_json(json_key, item)
                if self.value_field.message_type is not None:
                    container[key].CopyFrom(native)
                else:
                    container[key] = native
            except Exception as exc:
                raise self._error(POPULATE_FROM, exc, key=json_key) from exc

        self._swap_in(staged)


# ─────────────────────────────── slice fields ───────────────────────────────
class SliceField(ProtoField):
    kind = FieldKind.SLICE
    label = "slice field"

    def __init__(
        self,
        registry: "Registry",
        msg: Message,
        field: FieldDescriptor,
        *,
        from_json: Optional[Callable[[int, JSONValue], Any]] = None,
        to_json: Optional[Callable[[int, Any], JSONValue]] = None,
        deferred: bool = False,
    ):
        super().__init__(registry, msg, field, deferred=deferred)
        self._from_json = from_json or self._default_from_json
        self._to_json = to_json or self._default_to_json

    def _default_from_json(self, index: int, value: JSONValue) -> Any:
        return element_from_json(self.registry, self.field, value)

    def _default_to_json(self, index: int, native: Any) -> JSONValue:
        return element_to_json(self.registry, self.field, native)

    def populate_to(self) -> List[JSONValue]:
        result: List[JSONValue] = []
        for index, item in enumerate(self.value):
            try:
                result.append(self._to_json(index, item))
            except Exception as exc:
                raise self._error(POPULATE_TO, exc, index=index) from exc
        return result

    def populate_from(self, value: JSONValue) -> None:
        if value is None:
            self.msg.ClearField(self.name)
            return
        try:
            items = expect_array(value)
        except Exception as exc:
            raise self._error(POPULATE_FROM, exc) from exc

        staged = type(self.msg)()
        container = getattr(staged, self.name)
        for index, item in enumerate(items):
            try:
                native = self._from_json(index, item)
                if self.field.message_type is not None:
                    container.add().CopyFrom(native)
                else:
                    container.append(native)
            except Exception as exc:
                raise self._error(POPULATE_FROM, exc, index=index) from exc

        self._swap_in(staged)


DEFAULT_VARIANTS = {
    FieldKind.SCALAR: ScalarField,
    FieldKind.MESSAGE: MessageField,
    FieldKind.MAP: MapField,
    FieldKind.SLICE: SliceField,
}
