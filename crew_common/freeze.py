"""
Immutability helpers.

Two freezing policies are used by the runtime and they must not be
conflated:

- ``freeze_mapping`` makes a shallow read-only view. Host context goes
  through this: top-level keys cannot change, but the services stored under
  them stay fully usable (a ``{"db": client}`` entry keeps a live client).
- ``deep_freeze`` rebuilds a whole structure out of read-only containers.
  Introspection metadata goes through this so nothing reachable from a
  returned value can be used to alter registered state.

``deep_freeze`` never modifies its input; it returns new containers. Values
it cannot make read-only (callables, classes, arbitrary objects) are passed
through untouched.
"""

import dataclasses
from collections.abc import Mapping, Sequence, Set
from types import MappingProxyType
from typing import Any, Dict, Iterator, Optional

_IMMUTABLE_SCALARS = (str, bytes, int, float, complex, bool, type(None))


class FrozenList(Sequence):
    """Read-only list. Supports indexing, slicing, iteration and equality."""

    __slots__ = ("_items",)

    def __init__(self, items=()):
        self._items = list(items)

    def __getitem__(self, index):
        if isinstance(index, slice):
            return FrozenList(self._items[index])
        return self._items[index]

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Any]:
        return iter(self._items)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, (FrozenList, list, tuple)):
            return len(self) == len(other) and all(a == b for a, b in zip(self, other))
        return NotImplemented

    __hash__ = None

    def __repr__(self) -> str:
        return f"FrozenList({self._items!r})"


def freeze_mapping(mapping: Optional[Mapping]) -> Mapping:
    """Return a shallow read-only copy of ``mapping``."""
    return MappingProxyType(dict(mapping or {}))


def deep_freeze(value: Any, _memo: Optional[Dict[int, Any]] = None,
                _active: Optional[set] = None) -> Any:
    """
    Recursively convert ``value`` into read-only containers.

    - dict/Mapping -> MappingProxyType over a new dict
    - list/tuple -> FrozenList
    - set -> frozenset
    - frozen dataclass instance -> copy with frozen field values
    - values already read-only are returned as-is

    Cycles are handled by memoizing each container before its contents are
    frozen, so a self-referential input produces a self-referential output.
    """
    if _memo is None:
        _memo = {}
    if _active is None:
        _active = set()

    if isinstance(value, _IMMUTABLE_SCALARS):
        return value
    if isinstance(value, (MappingProxyType, FrozenList, frozenset)):
        return value
    if callable(value) and not isinstance(value, (Mapping, Sequence, Set)):
        # Functions, bound methods and classes stay callable
        return value

    key = id(value)
    if key in _memo:
        return _memo[key]
    if key in _active:
        # Cycle through a container that cannot be pre-registered
        return value

    if isinstance(value, Mapping):
        inner: Dict[Any, Any] = {}
        frozen = MappingProxyType(inner)
        _memo[key] = frozen
        for k, v in value.items():
            inner[k] = deep_freeze(v, _memo, _active)
        return frozen

    if isinstance(value, (list, tuple)):
        frozen_list = FrozenList()
        _memo[key] = frozen_list
        frozen_list._items.extend(deep_freeze(v, _memo, _active) for v in value)
        return frozen_list

    if isinstance(value, Set):
        _active.add(key)
        try:
            result = frozenset(deep_freeze(v, _memo, _active) for v in value)
        finally:
            _active.discard(key)
        _memo[key] = result
        return result

    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        if not type(value).__dataclass_params__.frozen:
            return value
        _active.add(key)
        try:
            changes = {
                f.name: deep_freeze(getattr(value, f.name), _memo, _active)
                for f in dataclasses.fields(value) if f.init
            }
            result = dataclasses.replace(value, **changes)
        finally:
            _active.discard(key)
        _memo[key] = result
        return result

    return value


def is_frozen(value: Any) -> bool:
    """Shallow check: can ``value`` be mutated through its own interface?"""
    if isinstance(value, _IMMUTABLE_SCALARS):
        return True
    if isinstance(value, (MappingProxyType, FrozenList, frozenset, tuple)):
        return True
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return type(value).__dataclass_params__.frozen
    return False
