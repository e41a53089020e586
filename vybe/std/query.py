"""LINQ-style query operators for the Vybe language.

Every operator is registered once for the "sequence" receiver kind, so it
serves arrays, lists, dictionaries (as key/value pairs), strings (as
characters) and the other collections alike. Operators are eager: each
call materializes its result as an array.
"""

from functools import cmp_to_key
from typing import Any, List

from vybe.collection_types import DictionaryVal, Grouping, HashSetVal, ListVal
from vybe.errors import raise_exception
from vybe.operators import values_equal
from vybe.types import NOTHING, ArrayVal, Long, default_value, to_boolean, to_double, to_integer
from vybe.std.support import arg, compare_items, values_of


class OrderedArray(ArrayVal):
    """Result of `OrderBy`; remembers its keys so `ThenBy` can refine the order."""

    def __init__(self, source: List[Any], orderings: List[tuple], items: List[Any], elem_type=None):
        super().__init__(elem_type, [len(items)], items)
        self.source = source
        self.orderings = orderings


def _elem_type(sequence: Any):
    return getattr(sequence, 'elem_type', None)


def _result(items: List[Any], elem_type=None) -> ArrayVal:
    return ArrayVal(elem_type, [len(items)], items)


def _call(interp, fn: Any, item: Any, index: int) -> Any:
    """Invoke a selector or predicate, passing the index when it takes two parameters."""
    count = interp.param_count(fn)
    if count is not None and count >= 2:
        return interp.call_function(fn, [item, index])
    return interp.call_function(fn, [item])


def _test(interp, fn: Any, item: Any, index: int) -> bool:
    return to_boolean(_call(interp, fn, item, index))


def _no_elements():
    raise_exception('InvalidOperationException', 'Sequence contains no elements.')


def _no_match():
    raise_exception('InvalidOperationException', 'Sequence contains no matching element.')


def _filtered(interp, items: List[Any], args: List[Any]) -> List[Any]:
    if args:
        return [v for i, v in enumerate(items) if _test(interp, args[0], v, i)]
    return items


def _projected(interp, items: List[Any], args: List[Any]) -> List[Any]:
    if args:
        return [_call(interp, args[0], v, i) for i, v in enumerate(items)]
    return items


def _distinct(items: List[Any]) -> List[Any]:
    seen = HashSetVal()
    return [v for v in items if seen.add(v)]


def order_items(interp, items: List[Any], orderings: List[tuple]) -> List[Any]:
    """Stable multi-key sort; `orderings` holds (key selector, descending) pairs."""
    keyed = [([interp.call_function(key, [item]) for key, _ in orderings], item) for item in items]

    def compare(a, b):
        for position, (_, descending) in enumerate(orderings):
            order = compare_items(interp, a[0][position], b[0][position])
            if order:
                return -order if descending else order
        return 0

    keyed.sort(key=cmp_to_key(compare))
    return [item for _, item in keyed]


def populate_query(registry):
    def q_select(interp, seq, args):
        return _result(_projected(interp, values_of(seq), args))

    def q_where(interp, seq, args):
        return _result(_filtered(interp, values_of(seq), args), _elem_type(seq))

    def ordering(descending: bool):
        def order_by(interp, seq, args):
            source = values_of(seq)
            orderings = [(args[0], descending)]
            return OrderedArray(source, orderings, order_items(interp, source, orderings), _elem_type(seq))
        return order_by

    def then_by(descending: bool):
        def refine(interp, seq, args):
            if not isinstance(seq, OrderedArray):
                return ordering(descending)(interp, seq, args)
            orderings = seq.orderings + [(args[0], descending)]
            return OrderedArray(seq.source, orderings, order_items(interp, seq.source, orderings), seq.elem_type)
        return refine

    def q_group_by(interp, seq, args):
        groups: List[Grouping] = []
        for i, item in enumerate(values_of(seq)):
            key = _call(interp, args[0], item, i)
            element = interp.call_function(args[1], [item]) if len(args) > 1 else item
            for group in groups:
                if values_equal(group.key, key):
                    group.items.append(element)
                    break
            else:
                groups.append(Grouping(key, [element]))
        return _result(groups)

    def q_aggregate(interp, seq, args):
        items = values_of(seq)
        if len(args) == 1:
            if not items:
                _no_elements()
            total = items[0]
            for item in items[1:]:
                total = interp.call_function(args[0], [total, item])
            return total
        total = args[0]
        for item in items:
            total = interp.call_function(args[1], [total, item])
        if len(args) > 2:
            return interp.call_function(args[2], [total])
        return total

    def q_sum(interp, seq, args):
        values = _projected(interp, values_of(seq), args)
        if all(isinstance(v, int) and not isinstance(v, bool) for v in values):
            total = sum(int(v) for v in values)
            if any(type(v) is Long for v in values):
                return Long(total)
            if -2 ** 31 <= total < 2 ** 31:
                return total
            raise_exception('OverflowException', 'Arithmetic operation resulted in an overflow.')
        return sum(to_double(v) for v in values)

    def extreme(pick_max: bool):
        def compute(interp, seq, args):
            values = _projected(interp, values_of(seq), args)
            values = [v for v in values if v is not NOTHING]
            if not values:
                _no_elements()
            best = values[0]
            for value in values[1:]:
                order = compare_items(interp, value, best)
                if (order > 0) if pick_max else (order < 0):
                    best = value
            return best
        return compute

    def q_average(interp, seq, args):
        values = _projected(interp, values_of(seq), args)
        if not values:
            _no_elements()
        return sum(to_double(v) for v in values) / len(values)

    def q_count(interp, seq, args):
        return len(_filtered(interp, values_of(seq), args))

    def q_long_count(interp, seq, args):
        return Long(q_count(interp, seq, args))

    def q_any(interp, seq, args):
        items = values_of(seq)
        if not args:
            return bool(items)
        return any(_test(interp, args[0], v, i) for i, v in enumerate(items))

    def q_all(interp, seq, args):
        return all(_test(interp, args[0], v, i) for i, v in enumerate(values_of(seq)))

    def pick(which: str, or_default: bool):
        def compute(interp, seq, args):
            items = values_of(seq)
            matches = _filtered(interp, items, args)
            if which == 'single' and len(matches) > 1:
                message = 'more than one matching element' if args else 'more than one element'
                raise_exception('InvalidOperationException', f"Sequence contains {message}.")
            if matches:
                return matches[-1] if which == 'last' else matches[0]
            if or_default:
                return default_value(_elem_type(seq))
            if args and items:
                _no_match()
            _no_elements()
        return compute

    def element_at(or_default: bool):
        def compute(interp, seq, args):
            items = values_of(seq)
            index = to_integer(args[0])
            if 0 <= index < len(items):
                return items[index]
            if or_default:
                return default_value(_elem_type(seq))
            raise_exception('ArgumentOutOfRangeException',
                            'Index was out of range. Must be non-negative and less than the size of the collection.')
        return compute

    def q_skip(interp, seq, args):
        return _result(values_of(seq)[max(to_integer(args[0]), 0):], _elem_type(seq))

    def q_take(interp, seq, args):
        return _result(values_of(seq)[:max(to_integer(args[0]), 0)], _elem_type(seq))

    def q_skip_last(interp, seq, args):
        items = values_of(seq)
        count = max(to_integer(args[0]), 0)
        return _result(items[:len(items) - count] if count else items, _elem_type(seq))

    def q_take_last(interp, seq, args):
        items = values_of(seq)
        count = max(to_integer(args[0]), 0)
        return _result(items[len(items) - count:] if count else [], _elem_type(seq))

    def q_skip_while(interp, seq, args):
        items = values_of(seq)
        position = 0
        while position < len(items) and _test(interp, args[0], items[position], position):
            position += 1
        return _result(items[position:], _elem_type(seq))

    def q_take_while(interp, seq, args):
        items = values_of(seq)
        position = 0
        while position < len(items) and _test(interp, args[0], items[position], position):
            position += 1
        return _result(items[:position], _elem_type(seq))

    def q_distinct(interp, seq, args):
        return _result(_distinct(values_of(seq)), _elem_type(seq))

    def q_union(interp, seq, args):
        return _result(_distinct(values_of(seq) + values_of(args[0])), _elem_type(seq))

    def q_intersect(interp, seq, args):
        other = HashSetVal(values_of(args[0]))
        return _result([v for v in _distinct(values_of(seq)) if other.contains(v)], _elem_type(seq))

    def q_except(interp, seq, args):
        other = HashSetVal(values_of(args[0]))
        return _result([v for v in _distinct(values_of(seq)) if not other.contains(v)], _elem_type(seq))

    def q_concat(interp, seq, args):
        return _result(values_of(seq) + values_of(args[0]), _elem_type(seq))

    def q_reverse(interp, seq, args):
        return _result(values_of(seq)[::-1], _elem_type(seq))

    def q_contains(interp, seq, args):
        return any(values_equal(v, args[0]) for v in values_of(seq))

    def q_sequence_equal(interp, seq, args):
        a, b = values_of(seq), values_of(args[0])
        return len(a) == len(b) and all(values_equal(x, y) for x, y in zip(a, b))

    def q_zip(interp, seq, args):
        pairs = zip(values_of(seq), values_of(args[0]))
        if len(args) > 1:
            return _result([interp.call_function(args[1], [a, b]) for a, b in pairs])
        return _result([_result([a, b]) for a, b in pairs])

    def q_select_many(interp, seq, args):
        flattened: List[Any] = []
        for i, item in enumerate(values_of(seq)):
            flattened.extend(values_of(_call(interp, args[0], item, i)))
        return _result(flattened)

    def q_to_list(interp, seq, args):
        return ListVal(values_of(seq), _elem_type(seq))

    def q_to_array(interp, seq, args):
        return _result(values_of(seq), _elem_type(seq))

    def q_to_dictionary(interp, seq, args):
        result = DictionaryVal()
        for item in values_of(seq):
            key = interp.call_function(args[0], [item])
            value = interp.call_function(args[1], [item]) if len(args) > 1 else item
            result.add(key, value)
        return result

    def q_to_hash_set(interp, seq, args):
        return HashSetVal(values_of(seq))

    def q_default_if_empty(interp, seq, args):
        items = values_of(seq)
        return _result(items if items else [arg(args, 0, default_value(_elem_type(seq)))], _elem_type(seq))

    operators = {
        'Select': (q_select, 1, 1),
        'Where': (q_where, 1, 1),
        'OrderBy': (ordering(False), 1, 1),
        'OrderByDescending': (ordering(True), 1, 1),
        'ThenBy': (then_by(False), 1, 1),
        'ThenByDescending': (then_by(True), 1, 1),
        'GroupBy': (q_group_by, 1, 2),
        'Aggregate': (q_aggregate, 1, 3),
        'Sum': (q_sum, 0, 1),
        'Min': (extreme(False), 0, 1),
        'Max': (extreme(True), 0, 1),
        'Average': (q_average, 0, 1),
        'Count': (q_count, 0, 1),
        'LongCount': (q_long_count, 0, 1),
        'Any': (q_any, 0, 1),
        'All': (q_all, 1, 1),
        'First': (pick('first', False), 0, 1),
        'FirstOrDefault': (pick('first', True), 0, 1),
        'Last': (pick('last', False), 0, 1),
        'LastOrDefault': (pick('last', True), 0, 1),
        'Single': (pick('single', False), 0, 1),
        'SingleOrDefault': (pick('single', True), 0, 1),
        'ElementAt': (element_at(False), 1, 1),
        'ElementAtOrDefault': (element_at(True), 1, 1),
        'Skip': (q_skip, 1, 1),
        'Take': (q_take, 1, 1),
        'SkipLast': (q_skip_last, 1, 1),
        'TakeLast': (q_take_last, 1, 1),
        'SkipWhile': (q_skip_while, 1, 1),
        'TakeWhile': (q_take_while, 1, 1),
        'Distinct': (q_distinct, 0, 0),
        'Union': (q_union, 1, 1),
        'Intersect': (q_intersect, 1, 1),
        'Except': (q_except, 1, 1),
        'Concat': (q_concat, 1, 1),
        'Reverse': (q_reverse, 0, 0),
        'Contains': (q_contains, 1, 1),
        'SequenceEqual': (q_sequence_equal, 1, 1),
        'Zip': (q_zip, 1, 2),
        'SelectMany': (q_select_many, 1, 1),
        'ToList': (q_to_list, 0, 0),
        'ToArray': (q_to_array, 0, 0),
        'ToDictionary': (q_to_dictionary, 1, 2),
        'ToHashSet': (q_to_hash_set, 0, 0),
        'DefaultIfEmpty': (q_default_if_empty, 0, 1),
        'AsEnumerable': (q_to_array, 0, 0),
    }
    for name, (fn, low, high) in operators.items():
        registry.method('sequence', name, fn, low, high, category='query')

    def enumerable_range(interp, args):
        start, count = to_integer(args[0]), to_integer(args[1])
        if count < 0:
            raise_exception('ArgumentOutOfRangeException', "Specified argument was out of the range of valid values. (Parameter 'count')")
        return _result(list(range(start, start + count)))

    def enumerable_repeat(interp, args):
        return _result([args[0]] * max(to_integer(args[1]), 0))

    def enumerable_empty(interp, args):
        return _result([])

    registry.function('Enumerable.Range', enumerable_range, 2, 2, category='query')
    registry.function('Enumerable.Repeat', enumerable_repeat, 2, 2, category='query')
    registry.function('Enumerable.Empty', enumerable_empty, 0, 0, category='query')
