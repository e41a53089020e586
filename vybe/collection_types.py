"""Collection values for Vybe.

`KeyedCollection` is the classic VB `Collection`: an ordered sequence of
items, each optionally reachable through a case-insensitive string key.
The other classes back the generic .NET collections programs create with
`New List(Of T)`, `New Dictionary(Of K, V)` and friends. Positions are
0-based everywhere.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .errors import raise_exception
from .types import ArrayVal, TypeSpec, NOTHING, to_string, coerce_value


def _normalize_key(key: Any) -> Any:
    if isinstance(key, str):
        return key.lower()
    if isinstance(key, bool):
        return ('bool', key)
    if isinstance(key, float) and key == int(key):
        return int(key)
    return key


def _check_position(position: int, count: int, allow_end: bool = False):
    upper = count if allow_end else count - 1
    if not isinstance(position, int) or position < 0 or position > upper:
        raise_exception('ArgumentOutOfRangeException',
                        'Index was out of range. Must be non-negative and less than the size of the collection.')


@dataclass
class KeyValuePair:
    key: Any
    value: Any

    type_label = 'KeyValuePair'

    @property
    def display_name(self) -> str:
        return f"[{to_string(self.key)}, {to_string(self.value)}]"


class _Entry:
    __slots__ = ('key', 'value')

    def __init__(self, key: Optional[str], value: Any):
        self.key = key
        self.value = value


class KeyedCollection:
    """Ordered items with optional unique, case-insensitive string keys."""
    type_label = 'Collection'
    display_name = 'Microsoft.VisualBasic.Collection'

    def __init__(self):
        self._entries: List[_Entry] = []
        self._keys: Dict[str, _Entry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def add(self, value: Any, key: Any = NOTHING, before: Any = NOTHING, after: Any = NOTHING):
        key_text = None if key is NOTHING or key is None else to_string(key)
        if key_text is not None and key_text.lower() in self._keys:
            raise_exception('ArgumentException', 'Add failed. Duplicate key value supplied.')
        entry = _Entry(key_text, value)
        if before is not NOTHING and after is not NOTHING:
            raise_exception('ArgumentException', "'Before' and 'After' arguments cannot be combined.")
        if before is not NOTHING:
            position = self._position(before)
        elif after is not NOTHING:
            position = self._position(after) + 1
        else:
            position = len(self._entries)
        self._entries.insert(position, entry)
        if key_text is not None:
            self._keys[key_text.lower()] = entry

    def _position(self, index_or_key: Any) -> int:
        if isinstance(index_or_key, str):
            entry = self._keys.get(index_or_key.lower())
            if entry is None:
                raise_exception('ArgumentException', 'Argument \'Index\' is not a valid value.')
            return self._entries.index(entry)
        position = int(index_or_key)
        _check_position(position, len(self._entries))
        return position

    def item(self, index_or_key: Any) -> Any:
        return self._entries[self._position(index_or_key)].value

    def set_item(self, index_or_key: Any, value: Any):
        self._entries[self._position(index_or_key)].value = value

    def remove(self, index_or_key: Any):
        position = self._position(index_or_key)
        entry = self._entries.pop(position)
        if entry.key is not None:
            del self._keys[entry.key.lower()]

    def contains(self, key: Any) -> bool:
        return isinstance(key, str) and key.lower() in self._keys

    def key_at(self, position: int) -> Optional[str]:
        _check_position(position, len(self._entries))
        return self._entries[position].key

    def clear(self):
        self._entries = []
        self._keys = {}

    def values(self) -> List[Any]:
        return [entry.value for entry in self._entries]


class ListVal:
    """`List(Of T)` and `ArrayList`."""
    def __init__(self, items: Optional[List[Any]] = None, elem_type: Optional[TypeSpec] = None,
                 label: str = 'List'):
        self.elem_type = elem_type
        self.items: List[Any] = [coerce_value(v, elem_type) for v in items] if items else []
        self.type_label = label

    @property
    def display_name(self) -> str:
        if self.type_label == 'ArrayList':
            return 'System.Collections.ArrayList'
        elem = self.elem_type.kind if self.elem_type else 'Object'
        return f"System.Collections.Generic.List`1[{elem}]"

    def __len__(self) -> int:
        return len(self.items)

    def add(self, value: Any):
        self.items.append(coerce_value(value, self.elem_type))

    def insert(self, position: int, value: Any):
        _check_position(position, len(self.items), allow_end=True)
        self.items.insert(position, coerce_value(value, self.elem_type))

    def get(self, position: Any) -> Any:
        _check_position(position, len(self.items))
        return self.items[position]

    def set(self, position: Any, value: Any):
        _check_position(position, len(self.items))
        self.items[position] = coerce_value(value, self.elem_type)

    def remove_at(self, position: int):
        _check_position(position, len(self.items))
        del self.items[position]


class DictionaryVal:
    """Insertion-ordered dictionary; string keys compare case-insensitively."""
    type_label = 'Dictionary'

    def __init__(self, key_type: Optional[TypeSpec] = None, value_type: Optional[TypeSpec] = None):
        self.key_type = key_type
        self.value_type = value_type
        self._data: Dict[Any, KeyValuePair] = {}

    @property
    def display_name(self) -> str:
        key = self.key_type.kind if self.key_type else 'Object'
        value = self.value_type.kind if self.value_type else 'Object'
        return f"System.Collections.Generic.Dictionary`2[{key},{value}]"

    def __len__(self) -> int:
        return len(self._data)

    def add(self, key: Any, value: Any):
        if key is NOTHING:
            raise_exception('ArgumentNullException', 'Key cannot be null.')
        norm = _normalize_key(key)
        if norm in self._data:
            raise_exception('ArgumentException', 'An item with the same key has already been added.')
        self._data[norm] = KeyValuePair(key, coerce_value(value, self.value_type))

    def get(self, key: Any) -> Any:
        pair = self._data.get(_normalize_key(key))
        if pair is None:
            raise_exception('KeyNotFoundException', 'The given key was not present in the dictionary.')
        return pair.value

    def try_get(self, key: Any):
        pair = self._data.get(_normalize_key(key))
        return (True, pair.value) if pair is not None else (False, NOTHING)

    def set(self, key: Any, value: Any):
        norm = _normalize_key(key)
        value = coerce_value(value, self.value_type)
        pair = self._data.get(norm)
        if pair is None:
            self._data[norm] = KeyValuePair(key, value)
        else:
            pair.value = value

    def contains_key(self, key: Any) -> bool:
        return _normalize_key(key) in self._data

    def contains_value(self, value: Any) -> bool:
        from .operators import values_equal
        return any(values_equal(pair.value, value) for pair in self._data.values())

    def remove(self, key: Any) -> bool:
        return self._data.pop(_normalize_key(key), None) is not None

    def clear(self):
        self._data = {}

    def keys(self) -> List[Any]:
        return [pair.key for pair in self._data.values()]

    def values(self) -> List[Any]:
        return [pair.value for pair in self._data.values()]

    def pairs(self) -> List[KeyValuePair]:
        return [KeyValuePair(pair.key, pair.value) for pair in self._data.values()]


class QueueVal:
    type_label = 'Queue'
    display_name = 'System.Collections.Generic.Queue'

    def __init__(self, items: Optional[List[Any]] = None):
        self.items = deque(items or [])

    def __len__(self) -> int:
        return len(self.items)

    def dequeue(self) -> Any:
        if not self.items:
            raise_exception('InvalidOperationException', 'Queue empty.')
        return self.items.popleft()

    def peek(self) -> Any:
        if not self.items:
            raise_exception('InvalidOperationException', 'Queue empty.')
        return self.items[0]


class StackVal:
    type_label = 'Stack'
    display_name = 'System.Collections.Generic.Stack'

    def __init__(self, items: Optional[List[Any]] = None):
        self.items: List[Any] = list(items or [])

    def __len__(self) -> int:
        return len(self.items)

    def pop(self) -> Any:
        if not self.items:
            raise_exception('InvalidOperationException', 'Stack empty.')
        return self.items.pop()

    def peek(self) -> Any:
        if not self.items:
            raise_exception('InvalidOperationException', 'Stack empty.')
        return self.items[-1]

    def top_first(self) -> List[Any]:
        return list(reversed(self.items))


class HashSetVal:
    type_label = 'HashSet'
    display_name = 'System.Collections.Generic.HashSet'

    def __init__(self, items: Optional[List[Any]] = None):
        self._data: Dict[Any, Any] = {}
        for item in items or []:
            self.add(item)

    def __len__(self) -> int:
        return len(self._data)

    @staticmethod
    def _key(value: Any) -> Any:
        if isinstance(value, bool):
            return ('bool', value)
        if isinstance(value, (int, float, str)):
            return value
        return ('ref', id(value))

    def add(self, value: Any) -> bool:
        key = self._key(value)
        if key in self._data:
            return False
        self._data[key] = value
        return True

    def remove(self, value: Any) -> bool:
        return self._data.pop(self._key(value), None) is not None

    def contains(self, value: Any) -> bool:
        return self._key(value) in self._data

    def clear(self):
        self._data = {}

    def values(self) -> List[Any]:
        return list(self._data.values())


class StringBuilderVal:
    type_label = 'StringBuilder'
    display_name = 'System.Text.StringBuilder'

    def __init__(self, text: str = ''):
        self.text = text


@dataclass
class Grouping:
    """One group produced by `GroupBy`."""
    key: Any
    items: List[Any]

    type_label = 'Grouping'
    display_name = 'System.Linq.Grouping'


def iterate_values(value: Any) -> List[Any]:
    """Snapshot the elements a `For Each` loop or query operator visits."""
    if isinstance(value, ArrayVal):
        return list(value.items)
    if isinstance(value, ListVal):
        return list(value.items)
    if isinstance(value, str):
        return list(value)
    if isinstance(value, KeyedCollection):
        return value.values()
    if isinstance(value, DictionaryVal):
        return value.pairs()
    if isinstance(value, QueueVal):
        return list(value.items)
    if isinstance(value, StackVal):
        return value.top_first()
    if isinstance(value, HashSetVal):
        return value.values()
    if isinstance(value, Grouping):
        return list(value.items)
    if value is NOTHING:
        raise_exception('NullReferenceException', 'Object reference not set to an instance of an object.')
    raise_exception('InvalidCastException', f"Value of type '{getattr(value, 'type_label', type(value).__name__)}' is not enumerable.")


def is_sequence(value: Any) -> bool:
    return isinstance(value, (ArrayVal, ListVal, KeyedCollection, DictionaryVal, QueueVal,
                              StackVal, HashSetVal, Grouping))
