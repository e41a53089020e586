"""Collection constructors and members for the Vybe language.

The values themselves live in `vybe.collection_types`; this module only
exposes them to programs (`New List(Of T)`, `list.Add`, `dict.TryGetValue`,
...). Positions are 0-based for every collection, including the classic
`Collection`.
"""

from typing import Any, List

from vybe.collection_types import (
    DictionaryVal, HashSetVal, KeyValuePair, KeyedCollection, ListVal, QueueVal, StackVal,
    is_sequence,
)
from vybe.errors import raise_exception
from vybe.operators import values_equal
from vybe.types import NOTHING, ArrayVal, default_value, to_boolean, to_integer
from vybe.std.support import arg, int_arg, sort_values, values_of


def _generic(type_spec, index: int):
    return type_spec.args[index] if len(type_spec.args) > index else None


def _initial_items(args: List[Any]) -> List[Any]:
    """Items copied from a sequence argument; a capacity argument is ignored."""
    if args and is_sequence(args[0]):
        return values_of(args[0])
    return []


def count_of(interp, items: List[Any], args: List[Any]) -> int:
    """`Count` property, or `Count(predicate)` query when a predicate is given."""
    if args:
        return sum(1 for item in items if to_boolean(interp.call_function(args[0], [item])))
    return len(items)


def _index_of(items: List[Any], value: Any, start: int = 0) -> int:
    for i in range(start, len(items)):
        if values_equal(items[i], value):
            return i
    return -1


def populate_collections(registry):
    # ------------------------------------------------------------------
    # Constructors
    # ------------------------------------------------------------------
    def new_list(interp, type_spec, args):
        label = 'ArrayList' if type_spec.key == 'arraylist' else 'List'
        return ListVal(_initial_items(args), _generic(type_spec, 0), label)

    def new_dictionary(interp, type_spec, args):
        result = DictionaryVal(_generic(type_spec, 0), _generic(type_spec, 1))
        if args and isinstance(args[0], DictionaryVal):
            for pair in args[0].pairs():
                result.add(pair.key, pair.value)
        return result

    def new_collection(interp, type_spec, args):
        return KeyedCollection()

    def new_queue(interp, type_spec, args):
        return QueueVal(_initial_items(args))

    def new_stack(interp, type_spec, args):
        return StackVal(_initial_items(args))

    def new_hash_set(interp, type_spec, args):
        return HashSetVal(_initial_items(args))

    def new_pair(interp, type_spec, args):
        return KeyValuePair(arg(args, 0), arg(args, 1))

    registry.constructor(('List', 'ArrayList'), new_list)
    registry.constructor(('Dictionary', 'Hashtable'), new_dictionary)
    registry.constructor('Collection', new_collection)
    registry.constructor('Queue', new_queue)
    registry.constructor('Stack', new_stack)
    registry.constructor('HashSet', new_hash_set)
    registry.constructor('KeyValuePair', new_pair)

    # ------------------------------------------------------------------
    # List(Of T) / ArrayList
    # ------------------------------------------------------------------
    def l_count(interp, lst, args):
        return count_of(interp, lst.items, args)

    def l_add(interp, lst, args):
        lst.add(args[0])
        if lst.type_label == 'ArrayList':
            return len(lst.items) - 1

    def l_add_range(interp, lst, args):
        for value in values_of(args[0]):
            lst.add(value)

    def l_insert(interp, lst, args):
        lst.insert(to_integer(args[0]), args[1])

    def l_insert_range(interp, lst, args):
        position = to_integer(args[0])
        for offset, value in enumerate(values_of(args[1])):
            lst.insert(position + offset, value)

    def l_item(interp, lst, args):
        return lst.get(to_integer(args[0]))

    def l_remove(interp, lst, args):
        position = _index_of(lst.items, args[0])
        if position < 0:
            return False
        del lst.items[position]
        return True

    def l_remove_at(interp, lst, args):
        lst.remove_at(to_integer(args[0]))

    def l_remove_all(interp, lst, args):
        keep = [v for v in lst.items if not to_boolean(interp.call_function(args[0], [v]))]
        removed = len(lst.items) - len(keep)
        lst.items[:] = keep
        return removed

    def l_remove_range(interp, lst, args):
        start, count = to_integer(args[0]), to_integer(args[1])
        if start < 0 or count < 0 or start + count > len(lst.items):
            raise_exception('ArgumentException', 'Offset and length were out of bounds for the array.')
        del lst.items[start:start + count]

    def l_contains(interp, lst, args):
        return _index_of(lst.items, args[0]) >= 0

    def l_index_of(interp, lst, args):
        return _index_of(lst.items, args[0], int_arg(args, 1, 0))

    def l_last_index_of(interp, lst, args):
        for i in range(len(lst.items) - 1, -1, -1):
            if values_equal(lst.items[i], args[0]):
                return i
        return -1

    def l_clear(interp, lst, args):
        lst.items.clear()

    def l_sort(interp, lst, args):
        lst.items[:] = sort_values(interp, lst.items, arg(args, 0, None))

    def l_reverse(interp, lst, args):
        lst.items.reverse()

    def l_to_array(interp, lst, args):
        return ArrayVal(lst.elem_type, [len(lst.items)], list(lst.items))

    def l_get_range(interp, lst, args):
        start, count = to_integer(args[0]), to_integer(args[1])
        if start < 0 or count < 0 or start + count > len(lst.items):
            raise_exception('ArgumentException', 'Offset and length were out of bounds for the array.')
        return ListVal(lst.items[start:start + count], lst.elem_type)

    def l_find(kind: str):
        def find(interp, lst, args):
            hits = [(i, v) for i, v in enumerate(lst.items) if to_boolean(interp.call_function(args[0], [v]))]
            if kind == 'find':
                return hits[0][1] if hits else default_value(lst.elem_type)
            if kind == 'findlast':
                return hits[-1][1] if hits else default_value(lst.elem_type)
            if kind == 'findindex':
                return hits[0][0] if hits else -1
            if kind == 'findlastindex':
                return hits[-1][0] if hits else -1
            if kind == 'exists':
                return bool(hits)
            if kind == 'trueforall':
                return len(hits) == len(lst.items)
            return ListVal([v for _, v in hits], lst.elem_type)
        return find

    def l_for_each(interp, lst, args):
        for value in list(lst.items):
            interp.call_function(args[0], [value])

    def l_convert_all(interp, lst, args):
        return ListVal([interp.call_function(args[0], [v]) for v in lst.items])

    def l_copy_to(interp, lst, args):
        target = args[0]
        start = int_arg(args, 1, 0)
        if not isinstance(target, ArrayVal) or start + len(lst.items) > len(target.items):
            raise_exception('ArgumentException', 'Destination array was not long enough.')
        for offset, value in enumerate(lst.items):
            target.items[start + offset] = value

    registry.method('list', 'Count', l_count, 0, 1, category='collections')
    registry.method('list', 'Capacity', lambda interp, lst, args: len(lst.items), 0, 0, category='collections')
    registry.method('list', 'Add', l_add, 1, 1, category='collections')
    registry.method('list', 'AddRange', l_add_range, 1, 1, category='collections')
    registry.method('list', 'Insert', l_insert, 2, 2, category='collections')
    registry.method('list', 'InsertRange', l_insert_range, 2, 2, category='collections')
    registry.method('list', 'Item', l_item, 1, 1, category='collections')
    registry.method('list', 'Remove', l_remove, 1, 1, category='collections')
    registry.method('list', 'RemoveAt', l_remove_at, 1, 1, category='collections')
    registry.method('list', 'RemoveAll', l_remove_all, 1, 1, category='collections')
    registry.method('list', 'RemoveRange', l_remove_range, 2, 2, category='collections')
    registry.method('list', 'Contains', l_contains, 1, 1, category='collections')
    registry.method('list', 'IndexOf', l_index_of, 1, 2, category='collections')
    registry.method('list', 'LastIndexOf', l_last_index_of, 1, 1, category='collections')
    registry.method('list', 'Clear', l_clear, 0, 0, category='collections')
    registry.method('list', 'Sort', l_sort, 0, 1, category='collections')
    registry.method('list', 'Reverse', l_reverse, 0, 0, category='collections')
    registry.method('list', 'ToArray', l_to_array, 0, 0, category='collections')
    registry.method('list', 'GetRange', l_get_range, 2, 2, category='collections')
    registry.method('list', 'Find', l_find('find'), 1, 1, category='collections')
    registry.method('list', 'FindLast', l_find('findlast'), 1, 1, category='collections')
    registry.method('list', 'FindIndex', l_find('findindex'), 1, 1, category='collections')
    registry.method('list', 'FindLastIndex', l_find('findlastindex'), 1, 1, category='collections')
    registry.method('list', 'FindAll', l_find('findall'), 1, 1, category='collections')
    registry.method('list', 'Exists', l_find('exists'), 1, 1, category='collections')
    registry.method('list', 'TrueForAll', l_find('trueforall'), 1, 1, category='collections')
    registry.method('list', 'ForEach', l_for_each, 1, 1, category='collections')
    registry.method('list', 'ConvertAll', l_convert_all, 1, 1, category='collections')
    registry.method('list', 'CopyTo', l_copy_to, 1, 2, category='collections')

    # ------------------------------------------------------------------
    # Dictionary(Of K, V)
    # ------------------------------------------------------------------
    def d_count(interp, d, args):
        return count_of(interp, d.pairs(), args)

    def d_add(interp, d, args):
        d.add(args[0], args[1])

    def d_try_add(interp, d, args):
        if d.contains_key(args[0]):
            return False
        d.add(args[0], args[1])
        return True

    def d_item(interp, d, args):
        return d.get(args[0])

    def d_remove(interp, d, args):
        return d.remove(args[0])

    def d_try_get_value(interp, d, args):
        found, value = d.try_get(args[0])
        args[1].assign(value if found else default_value(d.value_type))
        return found

    def d_get_value_or_default(interp, d, args):
        found, value = d.try_get(args[0])
        if found:
            return value
        return arg(args, 1, default_value(d.value_type))

    def d_keys(interp, d, args):
        return ListVal(d.keys(), d.key_type)

    def d_values(interp, d, args):
        return ListVal(d.values(), d.value_type)

    registry.method('dictionary', 'Count', d_count, 0, 1, category='collections')
    registry.method('dictionary', 'Add', d_add, 2, 2, category='collections')
    registry.method('dictionary', 'TryAdd', d_try_add, 2, 2, category='collections')
    registry.method('dictionary', 'Item', d_item, 1, 1, category='collections')
    registry.method('dictionary', 'Remove', d_remove, 1, 1, category='collections')
    registry.method('dictionary', ('ContainsKey', 'Contains'), lambda interp, d, args: d.contains_key(args[0]),
                    1, 1, category='collections')
    registry.method('dictionary', 'ContainsValue', lambda interp, d, args: d.contains_value(args[0]), 1, 1,
                    category='collections')
    registry.method('dictionary', 'TryGetValue', d_try_get_value, 2, 2, byref=(1,), category='collections')
    registry.method('dictionary', 'GetValueOrDefault', d_get_value_or_default, 1, 2, category='collections')
    registry.method('dictionary', 'Keys', d_keys, 0, 0, category='collections')
    registry.method('dictionary', 'Values', d_values, 0, 0, category='collections')
    registry.method('dictionary', 'Clear', lambda interp, d, args: d.clear(), 0, 0, category='collections')

    # ------------------------------------------------------------------
    # Collection
    # ------------------------------------------------------------------
    def c_add(interp, c, args):
        c.add(args[0], arg(args, 1), arg(args, 2), arg(args, 3))

    def c_remove_at(interp, c, args):
        c.remove(to_integer(args[0]))

    def c_contains(interp, c, args):
        return c.contains(args[0])

    registry.method('collection', 'Count', lambda interp, c, args: count_of(interp, c.values(), args), 0, 1,
                    category='collections')
    registry.method('collection', 'Add', c_add, 1, 4, category='collections')
    registry.method('collection', 'Item', lambda interp, c, args: c.item(args[0]), 1, 1, category='collections')
    registry.method('collection', 'Remove', lambda interp, c, args: c.remove(args[0]), 1, 1, category='collections')
    registry.method('collection', 'RemoveAt', c_remove_at, 1, 1, category='collections')
    registry.method('collection', ('Contains', 'ContainsKey'), c_contains, 1, 1, category='collections')
    registry.method('collection', 'Clear', lambda interp, c, args: c.clear(), 0, 0, category='collections')

    # ------------------------------------------------------------------
    # Queue(Of T) / Stack(Of T)
    # ------------------------------------------------------------------
    def q_try_dequeue(interp, q, args):
        if not q.items:
            args[0].assign(NOTHING)
            return False
        args[0].assign(q.dequeue())
        return True

    def s_try_pop(interp, s, args):
        if not s.items:
            args[0].assign(NOTHING)
            return False
        args[0].assign(s.pop())
        return True

    registry.method(('queue', 'stack'), 'Count', lambda interp, c, args: count_of(interp, values_of(c), args), 0, 1,
                    category='collections')
    registry.method(('queue', 'stack'), 'Clear', lambda interp, c, args: c.items.clear(), 0, 0,
                    category='collections')
    registry.method(('queue', 'stack'), 'Contains',
                    lambda interp, c, args: _index_of(list(c.items), args[0]) >= 0, 1, 1, category='collections')
    registry.method(('queue', 'stack'), 'ToArray', lambda interp, c, args: ArrayVal.from_list(values_of(c)), 0, 0,
                    category='collections')
    registry.method('queue', 'Enqueue', lambda interp, q, args: q.items.append(args[0]), 1, 1,
                    category='collections')
    registry.method('queue', 'Dequeue', lambda interp, q, args: q.dequeue(), 0, 0, category='collections')
    registry.method('queue', 'Peek', lambda interp, q, args: q.peek(), 0, 0, category='collections')
    registry.method('queue', 'TryDequeue', q_try_dequeue, 1, 1, byref=(0,), category='collections')
    registry.method('stack', 'Push', lambda interp, s, args: s.items.append(args[0]), 1, 1, category='collections')
    registry.method('stack', 'Pop', lambda interp, s, args: s.pop(), 0, 0, category='collections')
    registry.method('stack', 'Peek', lambda interp, s, args: s.peek(), 0, 0, category='collections')
    registry.method('stack', 'TryPop', s_try_pop, 1, 1, byref=(0,), category='collections')

    # ------------------------------------------------------------------
    # HashSet(Of T)
    # ------------------------------------------------------------------
    def h_union_with(interp, h, args):
        for value in values_of(args[0]):
            h.add(value)

    def h_intersect_with(interp, h, args):
        other = HashSetVal(values_of(args[0]))
        for value in h.values():
            if not other.contains(value):
                h.remove(value)

    def h_except_with(interp, h, args):
        for value in values_of(args[0]):
            h.remove(value)

    def h_is_subset_of(interp, h, args):
        other = HashSetVal(values_of(args[0]))
        return all(other.contains(v) for v in h.values())

    def h_is_superset_of(interp, h, args):
        return all(h.contains(v) for v in values_of(args[0]))

    def h_overlaps(interp, h, args):
        return any(h.contains(v) for v in values_of(args[0]))

    def h_set_equals(interp, h, args):
        other = HashSetVal(values_of(args[0]))
        return len(other) == len(h) and all(h.contains(v) for v in other.values())

    registry.method('hashset', 'Count', lambda interp, h, args: count_of(interp, h.values(), args), 0, 1,
                    category='collections')
    registry.method('hashset', 'Add', lambda interp, h, args: h.add(args[0]), 1, 1, category='collections')
    registry.method('hashset', 'Remove', lambda interp, h, args: h.remove(args[0]), 1, 1, category='collections')
    registry.method('hashset', 'Contains', lambda interp, h, args: h.contains(args[0]), 1, 1, category='collections')
    registry.method('hashset', 'Clear', lambda interp, h, args: h.clear(), 0, 0, category='collections')
    registry.method('hashset', 'UnionWith', h_union_with, 1, 1, category='collections')
    registry.method('hashset', 'IntersectWith', h_intersect_with, 1, 1, category='collections')
    registry.method('hashset', 'ExceptWith', h_except_with, 1, 1, category='collections')
    registry.method('hashset', 'IsSubsetOf', h_is_subset_of, 1, 1, category='collections')
    registry.method('hashset', 'IsSupersetOf', h_is_superset_of, 1, 1, category='collections')
    registry.method('hashset', 'Overlaps', h_overlaps, 1, 1, category='collections')
    registry.method('hashset', 'SetEquals', h_set_equals, 1, 1, category='collections')

    # ------------------------------------------------------------------
    # Grouping and KeyValuePair
    # ------------------------------------------------------------------
    registry.method('grouping', 'Key', lambda interp, g, args: g.key, 0, 0, category='collections')
    registry.method('keyvaluepair', 'Key', lambda interp, p, args: p.key, 0, 0, category='collections')
    registry.method('keyvaluepair', 'Value', lambda interp, p, args: p.value, 0, 0, category='collections')
    registry.method('keyvaluepair', 'ToString',
                    lambda interp, p, args: f"[{interp.stringify(p.key)}, {interp.stringify(p.value)}]", 0, 0,
                    category='collections')

