""" Facts: named float values describing world or agent state.

Every fact is a 32-bit float. Booleans are stored as 1.0 and read back as 0.0
once removed, strings are stored as their fact_str_hash. This keeps every
comparison the rule engine makes a simple inclusive range test.
"""

from collections.abc import Iterator, Iterable
from typing import Any, Optional

import numpy as np

FX_SEED32 = 0x9e3779b9
FX_ROTATE = 5
MASK32 = 0xffffffff

def _fx_word(h:int, word:int) -> int:
    h = ((h << FX_ROTATE) | (h >> (32 - FX_ROTATE))) & MASK32
    return ((h ^ word) * FX_SEED32) & MASK32

def fx_hash32(data:bytes) -> int:
    """ 32-bit FxHash of data, hashed the way rust hashes a str.

    Words are read 4 bytes at a time little endian, trailing bytes one at a
    time, and the str terminator 0xff is hashed as a final word. """

    h = 0
    n = len(data) - len(data) % 4
    for i in range(0, n, 4):
        h = _fx_word(h, int.from_bytes(data[i:i+4], "little"))
    for b in data[n:]:
        h = _fx_word(h, b)
    return _fx_word(h, 0xff)

def fact_str_hash(text:Any) -> float:
    """ Maps text to a fact value.

    Case and whitespace are ignored, so " Foo " and "foo" hash the same.
    Distinct strings may collide and some strings hash to NaN (which never
    satisfies a criterion). Rule files depend on these exact values, so this
    must stay stable across runs and versions.
    """
    s = "".join(str(text).lower().split())
    h = fx_hash32(s.encode("utf-8"))
    return float(np.array([h], dtype=np.uint32).view(np.float32)[0])

def fact_value(value:float) -> float:
    """ rounds value to the 32-bit precision facts are stored with """
    return float(np.float32(value))


class FactStore:
    """ A flat mapping from fact key to fact value.

    Absent keys read as 0.0, which is indistinguishable from an explicit
    zero for the purposes of rule evaluation. """

    def __init__(self, facts:Optional[dict[str, float]]=None) -> None:
        self._facts:dict[str, float] = {}
        if facts:
            for key, value in facts.items():
                self.add(key, value)

    def add(self, key:Any, value:float) -> None:
        self._facts[str(key)] = fact_value(value)

    def add_str(self, key:Any, text:Any) -> None:
        self._facts[str(key)] = fact_str_hash(text)

    def remove(self, key:Any) -> None:
        self._facts.pop(str(key), None)

    def remove_with_prefix(self, prefix:str) -> None:
        # linear in the number of facts, fine at simulation scale
        for key in [k for k in self._facts if k.startswith(prefix)]:
            del self._facts[key]

    def get(self, key:str) -> float:
        return self._facts.get(key, 0.)

    def lookup(self, key:str) -> Optional[float]:
        """ the value for key, or None if the key was never added """
        return self._facts.get(key)

    def clear(self) -> None:
        self._facts.clear()

    def items(self) -> Iterable[tuple[str, float]]:
        return self._facts.items()

    def __contains__(self, key:object) -> bool:
        return key in self._facts

    def __len__(self) -> int:
        return len(self._facts)

    def __iter__(self) -> Iterator[str]:
        return iter(self._facts)

    def __eq__(self, other:object) -> bool:
        if not isinstance(other, FactStore):
            return NotImplemented
        return self._facts == other._facts

    def __str__(self) -> str:
        return ", ".join(f'{k}: {v}' for k, v in self._facts.items())

    def __repr__(self) -> str:
        return f'FactStore({self._facts!r})'


class FactStoreChain:
    """ An ordered list of borrowed fact stores.

    A key resolves to its value in the first store that defines it, falling
    back to 0.0. The chain never owns or mutates its stores. """

    def __init__(self, stores:Iterable[FactStore]=()) -> None:
        self.stores:list[FactStore] = list(stores)

    def add(self, store:FactStore) -> None:
        self.stores.append(store)

    def get(self, key:str) -> float:
        for store in self.stores:
            value = store.lookup(key)
            if value is not None:
                return value
        return 0.

    def copy(self) -> "FactStoreChain":
        return FactStoreChain(self.stores)

    def __len__(self) -> int:
        return len(self.stores)

    def __str__(self) -> str:
        return f'FactStoreChain: {len(self.stores)} ' + " ".join(f'[{s}]' for s in self.stores)
