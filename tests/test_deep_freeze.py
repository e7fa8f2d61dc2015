"""Tests for the immutability helpers."""

from dataclasses import FrozenInstanceError, dataclass, field
from types import MappingProxyType
from typing import Any, Dict

import pytest

from crew_common.freeze import FrozenList, deep_freeze, freeze_mapping, is_frozen


@dataclass(frozen=True)
class Frozen:
    name: str
    data: Dict[str, Any] = field(default_factory=dict)


@dataclass
class Mutable:
    name: str


class TestFreezeMapping:

    def test_copy_is_read_only(self):
        view = freeze_mapping({"a": 1})

        with pytest.raises(TypeError):
            view["a"] = 2
        with pytest.raises(TypeError):
            view["b"] = 3

    def test_copy_is_detached_from_source(self):
        source = {"a": 1}
        view = freeze_mapping(source)
        source["a"] = 99
        source["b"] = 2

        assert dict(view) == {"a": 1}

    def test_values_are_not_frozen(self):
        service = {"calls": []}
        view = freeze_mapping({"service": service})

        view["service"]["calls"].append(1)

        assert service["calls"] == [1]

    def test_none_gives_empty_view(self):
        assert dict(freeze_mapping(None)) == {}


class TestDeepFreeze:

    def test_scalars_unchanged(self):
        for value in (1, 1.5, "s", b"b", None, True):
            assert deep_freeze(value) is value

    def test_nested_dict(self):
        frozen = deep_freeze({"a": {"b": [1, {"c": 2}]}})

        assert isinstance(frozen, MappingProxyType)
        assert isinstance(frozen["a"], MappingProxyType)
        assert isinstance(frozen["a"]["b"], FrozenList)
        assert isinstance(frozen["a"]["b"][1], MappingProxyType)

        with pytest.raises(TypeError):
            frozen["a"]["new"] = 1
        with pytest.raises(TypeError):
            frozen["a"]["b"][1]["c"] = 3

    def test_input_is_not_modified(self):
        source = {"items": [1, 2]}
        deep_freeze(source)

        source["items"].append(3)
        assert source == {"items": [1, 2, 3]}

    def test_frozen_copy_does_not_track_source(self):
        source = {"items": [1, 2]}
        frozen = deep_freeze(source)

        source["items"].append(3)
        assert frozen["items"] == [1, 2]

    def test_list_and_tuple_become_frozen_lists(self):
        assert deep_freeze([1, 2]) == [1, 2]
        assert deep_freeze((1, 2)) == (1, 2)
        assert isinstance(deep_freeze((1, [2])), FrozenList)

    def test_set_becomes_frozenset(self):
        assert deep_freeze({1, 2}) == frozenset({1, 2})

    def test_callables_pass_through(self):
        def handler():
            pass

        frozen = deep_freeze({"handler": handler, "cls": Mutable})
        assert frozen["handler"] is handler
        assert frozen["cls"] is Mutable

    def test_frozen_dataclass_fields_are_frozen(self):
        frozen = deep_freeze(Frozen(name="x", data={"k": [1]}))

        assert isinstance(frozen, Frozen)
        assert isinstance(frozen.data, MappingProxyType)
        assert isinstance(frozen.data["k"], FrozenList)
        with pytest.raises(FrozenInstanceError):
            frozen.name = "y"

    def test_mutable_dataclass_untouched(self):
        value = Mutable(name="x")
        assert deep_freeze(value) is value

    def test_self_referential_dict(self):
        source = {"name": "root"}
        source["self"] = source

        frozen = deep_freeze(source)

        assert frozen["self"] is frozen
        assert frozen["self"]["self"]["name"] == "root"

    def test_mutual_cycle(self):
        a = {"name": "a"}
        b = {"name": "b", "peer": a}
        a["peer"] = b

        frozen = deep_freeze(a)

        assert frozen["peer"]["name"] == "b"
        assert frozen["peer"]["peer"] is frozen

    def test_list_cycle(self):
        items = [1]
        items.append(items)

        frozen = deep_freeze(items)

        assert frozen[1] is frozen

    def test_shared_reference_frozen_once(self):
        shared = {"v": 1}
        frozen = deep_freeze({"a": shared, "b": shared})

        assert frozen["a"] is frozen["b"]


class TestFrozenList:

    def test_sequence_protocol(self):
        items = FrozenList([1, 2, 3])

        assert len(items) == 3
        assert items[0] == 1
        assert items[-1] == 3
        assert list(items) == [1, 2, 3]
        assert 2 in items
        assert items.index(3) == 2

    def test_slice_returns_frozen_list(self):
        items = FrozenList([1, 2, 3])
        assert isinstance(items[1:], FrozenList)
        assert items[1:] == [2, 3]

    def test_no_mutators(self):
        items = FrozenList([1])

        assert not hasattr(items, "append")
        with pytest.raises(TypeError):
            items[0] = 5
        with pytest.raises(AttributeError):
            items.new_attr = 1

    def test_unhashable(self):
        with pytest.raises(TypeError):
            hash(FrozenList([1]))


class TestIsFrozen:

    @pytest.mark.parametrize("value", [
        1, "s", None, (1, 2), frozenset(), MappingProxyType({}), FrozenList(), Frozen(name="x"),
    ])
    def test_frozen_values(self, value):
        assert is_frozen(value)

    @pytest.mark.parametrize("value", [{}, [], set(), Mutable(name="x")])
    def test_mutable_values(self, value):
        assert not is_frozen(value)
