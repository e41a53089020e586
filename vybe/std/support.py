"""Argument helpers shared by the standard library natives."""

from functools import cmp_to_key
from typing import Any, List

from vybe.collection_types import iterate_values
from vybe.errors import raise_exception
from vybe.objects import ObjectVal
from vybe.operators import compare_values
from vybe.types import NOTHING, ArrayVal, TypeSpec, to_integer, to_string


def arg(args: List[Any], index: int, default: Any = NOTHING) -> Any:
    """The argument at `index`, or `default` when omitted or Nothing."""
    if index < len(args) and args[index] is not NOTHING:
        return args[index]
    return default


def text_arg(args: List[Any], index: int, default: str = '') -> str:
    value = arg(args, index, None)
    return default if value is None else to_string(value)


def int_arg(args: List[Any], index: int, default: int = 0) -> int:
    value = arg(args, index, None)
    return default if value is None else to_integer(value)


def values_of(value: Any) -> List[Any]:
    """Elements of an array, collection or other sequence argument."""
    return iterate_values(value)


def rest_values(args: List[Any], start: int) -> List[Any]:
    """ParamArray-style trailing arguments; a single array is spread."""
    rest = args[start:]
    if len(rest) == 1 and isinstance(rest[0], ArrayVal):
        return list(rest[0].items)
    return list(rest)


def string_array(items: List[str]) -> ArrayVal:
    return ArrayVal(TypeSpec.string(), [len(items)], list(items))


def require(condition: bool, message: str, category: str = 'ArgumentException'):
    if not condition:
        raise_exception(category, message)


def compare_items(interp, a: Any, b: Any) -> int:
    """Default ordering: `CompareTo` for user objects, VB comparison otherwise."""
    if isinstance(a, ObjectVal):
        return to_integer(interp.call_method(a, 'CompareTo', [b]))
    return compare_values(a, b, '<')


def sort_values(interp, items: List[Any], comparer: Any = None, key: Any = None,
                descending: bool = False) -> List[Any]:
    """Stable sort by an optional key selector and/or comparison delegate."""
    if comparer is not None and comparer is not NOTHING:
        def compare(a, b):
            return to_integer(interp.call_function(comparer, [a, b]))
    else:
        def compare(a, b):
            return compare_items(interp, a, b)
    if key is not None:
        keyed = [(interp.call_function(key, [item]), item) for item in items]
        keyed.sort(key=cmp_to_key(lambda x, y: compare(x[0], y[0])), reverse=descending)
        return [item for _, item in keyed]
    return sorted(items, key=cmp_to_key(compare), reverse=descending)
