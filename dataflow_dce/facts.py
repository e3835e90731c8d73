"""
dataflow_dce.facts
==================

Dataflow facts: the per-program-point values the solver stores.

    MapFact   - finite map key → value, with a default for absent keys
    CPFact    - MapFact from trackable variables to :class:`Value`;
                absent means UNDEF
    SetFact   - finite set (used by liveness)

Facts are mutable; the solver owns them for the duration of one run and
analyses update them in place through ``update`` / ``union_with`` /
``copy_from``.
"""

from __future__ import annotations

from typing import (
    Dict,
    Generic,
    Hashable,
    Iterable,
    Iterator,
    Optional,
    Set,
    Tuple,
    TypeVar,
)

from dataflow_dce.abstract_domains import Value
from dataflow_dce.ir import Var

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")
E = TypeVar("E", bound=Hashable)


class MapFact(Generic[K, V]):
    """A map-valued fact.  Keys bound to the default are not stored."""

    def __init__(self, default: Optional[V] = None,
                 mapping: Optional[Dict[K, V]] = None) -> None:
        self._default = default
        self._map: Dict[K, V] = {}
        if mapping:
            for k, v in mapping.items():
                self.update(k, v)

    def get(self, key: K) -> Optional[V]:
        return self._map.get(key, self._default)

    def update(self, key: K, value: V) -> bool:
        """Bind *key* to *value*; return whether the fact changed."""
        if value == self._default:
            return self.remove(key)
        old = self._map.get(key)
        self._map[key] = value
        return old != value

    def remove(self, key: K) -> bool:
        return self._map.pop(key, None) is not None

    def keys(self) -> Iterable[K]:
        return self._map.keys()

    def items(self) -> Iterable[Tuple[K, V]]:
        return self._map.items()

    def copy(self) -> "MapFact[K, V]":
        c = self.__class__.__new__(self.__class__)
        c._default = self._default
        c._map = dict(self._map)
        return c

    def copy_from(self, other: "MapFact[K, V]") -> bool:
        """Replace this fact's content with *other*'s; return whether it changed."""
        changed = self._map != other._map
        self._map = dict(other._map)
        return changed

    def clear(self) -> None:
        self._map.clear()

    def __contains__(self, key) -> bool:
        return key in self._map

    def __len__(self) -> int:
        return len(self._map)

    def __iter__(self) -> Iterator[K]:
        return iter(self._map)

    def __eq__(self, other) -> bool:
        if not isinstance(other, MapFact):
            return NotImplemented
        return self._default == other._default and self._map == other._map

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        body = ", ".join(f"{k}={v}" for k, v in self._map.items())
        return f"{{{body}}}"


class CPFact(MapFact[Var, Value]):
    """Constant-propagation fact: variable → :class:`Value`, absent = UNDEF."""

    def __init__(self, mapping: Optional[Dict[Var, Value]] = None) -> None:
        super().__init__(Value.get_undef(), mapping)

    def get(self, key: Var) -> Value:
        return self._map.get(key, self._default)  # type: ignore[return-value]

    def copy(self) -> "CPFact":
        return super().copy()  # type: ignore[return-value]


class SetFact(Generic[E]):
    """A set-valued fact."""

    def __init__(self, elements: Optional[Iterable[E]] = None) -> None:
        self._set: Set[E] = set(elements) if elements is not None else set()

    def contains(self, e: E) -> bool:
        return e in self._set

    def add(self, e: E) -> bool:
        if e in self._set:
            return False
        self._set.add(e)
        return True

    def remove(self, e: E) -> bool:
        if e in self._set:
            self._set.discard(e)
            return True
        return False

    def union_with(self, other: "SetFact[E]") -> bool:
        before = len(self._set)
        self._set |= other._set
        return len(self._set) != before

    def copy(self) -> "SetFact[E]":
        return SetFact(self._set)

    def copy_from(self, other: "SetFact[E]") -> bool:
        changed = self._set != other._set
        self._set = set(other._set)
        return changed

    def clear(self) -> None:
        self._set.clear()

    def __contains__(self, e) -> bool:
        return e in self._set

    def __iter__(self) -> Iterator[E]:
        return iter(self._set)

    def __len__(self) -> int:
        return len(self._set)

    def __eq__(self, other) -> bool:
        if not isinstance(other, SetFact):
            return NotImplemented
        return self._set == other._set

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return "{" + ", ".join(sorted(str(e) for e in self._set)) + "}"
