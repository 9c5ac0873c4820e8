"""Deep marshal/unmarshal with custom field factories."""

import pytest

from protolator import (
    FieldFactory,
    MapField,
    ProtolatorError,
    Registry,
    ScalarField,
    SliceField,
    JSONNumber,
    decode_to_mapping,
    mostly_deterministic_marshal,
)
from protolator.json_values import expect_string
from tests.helpers import marshal, unmarshal
from tests.testprotos import NestedMsg, SimpleMsg


class PlainFieldFactory(FieldFactory):
    def __init__(self, from_prefix, to_prefix):
        self.from_prefix = from_prefix
        self.to_prefix = to_prefix
        self.from_error = None
        self.to_error = None

    def handles(self, msg, field, value):
        return field.name == "plain_field"

    def new_proto_field(self, registry, msg, field, value):
        def from_json(source):
            if self.from_error:
                raise self.from_error
            return self.from_prefix + expect_string(source)

        def to_json(native):
            if self.to_error:
                raise self.to_error
            return self.to_prefix + native

        return ScalarField(registry, msg, field, from_json=from_json, to_json=to_json)


class MapFieldFactory(PlainFieldFactory):
    def handles(self, msg, field, value):
        return field.name == "map_field"

    def new_proto_field(self, registry, msg, field, value):
        def from_json(key, source):
            if self.from_error:
                raise self.from_error
            return self.from_prefix + key + expect_string(source)

        def to_json(key, native):
            if self.to_error:
                raise self.to_error
            return self.to_prefix + key + native

        return MapField(registry, msg, field, from_json=from_json, to_json=to_json)


class SliceFieldFactory(PlainFieldFactory):
    def handles(self, msg, field, value):
        return field.name == "slice_field"

    def new_proto_field(self, registry, msg, field, value):
        def from_json(index, source):
            if self.from_error:
                raise self.from_error
            return f"{self.from_prefix}{index}{expect_string(source)}"

        def to_json(index, native):
            if self.to_error:
                raise self.to_error
            return f"{self.to_prefix}{index}{native}"

        return SliceField(registry, msg, field, from_json=from_json, to_json=to_json)


class FailFactory(FieldFactory):
    def handles(self, msg, field, value):
        return True

    def new_proto_field(self, registry, msg, field, value):
        raise RuntimeError("Intentionally failing")


def test_simple_msg_plain_field():
    factory = PlainFieldFactory("from", "to")
    registry = Registry([factory])
    start = SimpleMsg(plain_field="foo", map_field={"1": "2"}, slice_field=["a", "b"])

    data = marshal(start, registry)
    new = unmarshal(data, SimpleMsg(), registry)

    assert dict(new.map_field) == dict(start.map_field)
    assert list(new.slice_field) == list(start.slice_field)
    assert new.plain_field == "from" + "to" + start.plain_field

    factory.from_error = ValueError("Failing from intentionally")
    with pytest.raises(ProtolatorError) as excinfo:
        unmarshal(data, new, registry)
    assert str(excinfo.value) == (
        "testprotos.SimpleMsg: error in PopulateFrom for field plain_field "
        "for message testprotos.SimpleMsg: Failing from intentionally"
    )

    factory.to_error = ValueError("Failing to intentionally")
    with pytest.raises(ProtolatorError) as excinfo:
        marshal(start, registry)
    assert str(excinfo.value) == (
        "testprotos.SimpleMsg: error in PopulateTo for field plain_field "
        "for message testprotos.SimpleMsg: Failing to intentionally"
    )


def test_simple_msg_map_field():
    factory = MapFieldFactory("from", "to")
    registry = Registry([factory])
    start = SimpleMsg(plain_field="1", map_field={"foo": "bar"}, slice_field=["a", "b"])

    data = marshal(start, registry)
    new = unmarshal(data, SimpleMsg(), registry)

    assert new.plain_field == start.plain_field
    assert list(new.slice_field) == list(start.slice_field)
    assert new.map_field["foo"] == "from" + "foo" + "to" + "foo" + "bar"

    factory.from_error = ValueError("Failing from intentionally")
    with pytest.raises(ProtolatorError) as excinfo:
        unmarshal(data, new, registry)
    assert str(excinfo.value) == (
        "testprotos.SimpleMsg: error in PopulateFrom for map field map_field with key foo "
        "for message testprotos.SimpleMsg: Failing from intentionally"
    )

    factory.to_error = ValueError("Failing to intentionally")
    with pytest.raises(ProtolatorError) as excinfo:
        marshal(start, registry)
    assert str(excinfo.value) == (
        "testprotos.SimpleMsg: error in PopulateTo for map field map_field and key foo "
        "for message testprotos.SimpleMsg: Failing to intentionally"
    )


def test_simple_msg_slice_field():
    factory = SliceFieldFactory("from", "to")
    registry = Registry([factory])
    start = SimpleMsg(plain_field="1", map_field={"a": "b"}, slice_field=["foo"])

    data = marshal(start, registry)
    new = unmarshal(data, SimpleMsg(), registry)

    assert new.plain_field == start.plain_field
    assert dict(new.map_field) == dict(start.map_field)
    assert new.slice_field[0] == "from" + "0" + "to" + "0" + "foo"

    factory.from_error = ValueError("Failing from intentionally")
    with pytest.raises(ProtolatorError) as excinfo:
        unmarshal(data, new, registry)
    assert str(excinfo.value) == (
        "testprotos.SimpleMsg: error in PopulateFrom for slice field slice_field at index 0 "
        "for message testprotos.SimpleMsg: Failing from intentionally"
    )

    factory.to_error = ValueError("Failing to intentionally")
    with pytest.raises(ProtolatorError) as excinfo:
        marshal(start, registry)
    assert str(excinfo.value) == (
        "testprotos.SimpleMsg: error in PopulateTo for slice field slice_field at index 0 "
        "for message testprotos.SimpleMsg: Failing to intentionally"
    )


def test_fail_factory():
    with pytest.raises(ProtolatorError) as excinfo:
        marshal(SimpleMsg(), Registry([FailFactory()]))
    assert str(excinfo.value) == "testprotos.SimpleMsg: Intentionally failing"


def test_failing_factory_does_not_fall_back():
    registry = Registry([FailFactory(), PlainFieldFactory("from", "to")])
    with pytest.raises(ProtolatorError, match="Intentionally failing"):
        unmarshal(b'{"plain_field": "x"}', SimpleMsg(), registry)


def test_first_matching_factory_wins():
    registry = Registry([PlainFieldFactory("a", "b"), PlainFieldFactory("x", "y")])
    new = unmarshal(marshal(SimpleMsg(plain_field="foo"), registry), SimpleMsg(), registry)
    assert new.plain_field == "abfoo"


def test_register_appends_in_order():
    registry = Registry()
    assert registry.register(PlainFieldFactory("a", "b")).register(FailFactory()) is registry
    assert [type(f) for f in registry.factories] == [PlainFieldFactory, FailFactory]
    new = unmarshal(b'{"plain_field": "foo"}', SimpleMsg(), registry)
    assert new.plain_field == "afoo"


def test_factories_apply_inside_nested_messages():
    factory = PlainFieldFactory("from", "to")
    registry = Registry([factory])
    start = NestedMsg(
        plain_nested_field=SimpleMsg(plain_field="p"),
        map_nested_field={"k": SimpleMsg(plain_field="m")},
        slice_nested_field=[SimpleMsg(plain_field="s")],
    )

    new = unmarshal(marshal(start, registry), NestedMsg(), registry)

    assert new.plain_nested_field.plain_field == "fromtop"
    assert new.map_nested_field["k"].plain_field == "fromtom"
    assert new.slice_nested_field[0].plain_field == "fromtos"


def test_nested_error_names_every_level():
    factory = PlainFieldFactory("from", "to")
    factory.to_error = ValueError("boom")
    start = NestedMsg(plain_nested_field=SimpleMsg(plain_field="p"))

    with pytest.raises(ProtolatorError) as excinfo:
        marshal(start, Registry([factory]))
    assert str(excinfo.value) == (
        "testprotos.NestedMsg: error in PopulateTo for field plain_nested_field "
        "for message testprotos.NestedMsg: testprotos.SimpleMsg: error in PopulateTo "
        "for field plain_field for message testprotos.SimpleMsg: boom"
    )


def test_json_unmarshal_max_uint32():
    m = decode_to_mapping(('{"numField":%d}' % (2**32 - 1)).encode())
    assert isinstance(m["numField"], JSONNumber)
    assert m["numField"].text == "4294967295"
    assert int(m["numField"]) == 4294967295


def test_mostly_deterministic_marshal():
    multi_key_map = SimpleMsg(
        map_field={
            "a": "b", "c": "d", "e": "f", "g": "h", "i": "j", "k": "l", "m": "n",
            "o": "p", "q": "r", "s": "t", "u": "v", "w": "x", "y": "z",
        }
    )

    result = mostly_deterministic_marshal(multi_key_map)
    assert result

    for _ in range(10):
        assert mostly_deterministic_marshal(multi_key_map) == result

    assert SimpleMsg.FromString(result) == multi_key_map
