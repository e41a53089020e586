"""Operator semantics for the Vybe language.

Arithmetic follows the widening rules of the classic VB numeric tower:
Integer op Integer stays Integer (widening to Long when the result no
longer fits), anything involving Long is Long, and anything involving a
Double is Double. `/` and `^` always produce a Double. Booleans take part
in arithmetic as -1 and 0, and strings are converted to numbers when
paired with a number.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any
import math
import re

from .errors import VybeError, raise_exception
from .types import (
    INT32_MAX, INT32_MIN, INT64_MAX, INT64_MIN, NOTHING, Long, TimeSpanVal, TypeSpec,
    date_to_oa, is_numeric_value, to_double, to_integer, to_long, to_string,
    type_name, parse_number,
)


def _overflow():
    raise_exception('OverflowException', 'Arithmetic operation resulted in an overflow.')


def _divide_by_zero():
    raise_exception('DivideByZeroException', 'Attempted to divide by zero.')


def _integral(value: int, long_mode: bool) -> int:
    if not long_mode and INT32_MIN <= value <= INT32_MAX:
        return value
    if INT64_MIN <= value <= INT64_MAX:
        return Long(value)
    _overflow()


def _operand(value: Any, op: str, other: Any) -> Any:
    """Reduce an operand to int or float for arithmetic."""
    if isinstance(value, bool):
        return -1 if value else 0
    if isinstance(value, (int, float)):
        return value
    if value is NOTHING:
        return 0
    if isinstance(value, str):
        parsed = parse_number(value)
        if parsed is None:
            raise_exception('InvalidCastException',
                            f'Conversion from string "{value}" to type \'Double\' is not valid.')
        return float(parsed)
    raise_exception('InvalidCastException',
                    f"Operator '{op}' is not defined for type '{type_name(value)}' and type '{type_name(other)}'.")


def _is_long(value: Any) -> bool:
    return type(value) is Long


def _arith(op: str, left: Any, right: Any) -> Any:
    a = _operand(left, op, right)
    b = _operand(right, op, left)
    if isinstance(a, float) or isinstance(b, float):
        x, y = float(a), float(b)
        if op == '+':
            return x + y
        if op == '-':
            return x - y
        if op == '*':
            return x * y
        if op == 'mod':
            if y == 0:
                return math.nan
            return math.fmod(x, y)
    long_mode = _is_long(a) or _is_long(b)
    a, b = int(a), int(b)
    if op == '+':
        return _integral(a + b, long_mode)
    if op == '-':
        return _integral(a - b, long_mode)
    if op == '*':
        return _integral(a * b, long_mode)
    if op == 'mod':
        if b == 0:
            _divide_by_zero()
        return _integral(a - b * _trunc_div(a, b), long_mode)
    raise ValueError(op)


def _trunc_div(a: int, b: int) -> int:
    q = abs(a) // abs(b)
    return q if (a >= 0) == (b >= 0) else -q


def _divide(left: Any, right: Any) -> float:
    x = float(_operand(left, '/', right))
    y = float(_operand(right, '/', left))
    if y == 0:
        _divide_by_zero()
    return x / y


def _int_divide(left: Any, right: Any) -> int:
    long_mode = _is_long(left) or _is_long(right) or isinstance(left, float) or isinstance(right, float)
    a = to_long(left) if long_mode else to_integer(_operand(left, '\\', right))
    b = to_long(right) if long_mode else to_integer(_operand(right, '\\', left))
    if b == 0:
        _divide_by_zero()
    return _integral(_trunc_div(int(a), int(b)), long_mode)


def _power(left: Any, right: Any) -> float:
    x = float(_operand(left, '^', right))
    y = float(_operand(right, '^', left))
    try:
        return math.pow(x, y)
    except OverflowError:
        return math.inf
    except (ValueError, ZeroDivisionError):
        if x == 0 and y < 0:
            return math.inf
        return math.nan


def _bitwise(op: str, left: Any, right: Any) -> Any:
    if isinstance(left, bool) and isinstance(right, bool):
        if op == 'and':
            return left and right
        if op == 'or':
            return left or right
        return left != right
    long_mode = _is_long(left) or _is_long(right)
    a = to_long(_operand(left, op, right)) if long_mode else to_integer(_operand(left, op, right))
    b = to_long(_operand(right, op, left)) if long_mode else to_integer(_operand(right, op, left))
    if op == 'and':
        result = int(a) & int(b)
    elif op == 'or':
        result = int(a) | int(b)
    else:
        result = int(a) ^ int(b)
    return Long(result) if long_mode else result


def _wrap32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - (1 << 32) if value > INT32_MAX else value


def _wrap64(value: int) -> int:
    value &= 0xFFFFFFFFFFFFFFFF
    return value - (1 << 64) if value > INT64_MAX else value


def _shift(op: str, left: Any, right: Any) -> int:
    count = to_integer(right)
    if _is_long(left):
        value = int(left)
        count &= 63
        result = value << count if op == '<<' else value >> count
        return Long(_wrap64(result))
    value = to_integer(_operand(left, op, right))
    count &= 31
    result = value << count if op == '<<' else value >> count
    return _wrap32(result)


def _concat(left: Any, right: Any) -> str:
    return to_string(left) + to_string(right)


def _date_arith(op: str, left: Any, right: Any) -> Any:
    if op == '-' and isinstance(left, datetime) and isinstance(right, datetime):
        return TimeSpanVal(left - right)
    if isinstance(left, datetime) and isinstance(right, TimeSpanVal):
        return left + right.delta if op == '+' else left - right.delta
    if isinstance(left, TimeSpanVal) and isinstance(right, TimeSpanVal):
        return TimeSpanVal(left.delta + right.delta if op == '+' else left.delta - right.delta)
    if isinstance(left, datetime) and is_numeric_value(right):
        days = float(right) if op == '+' else -float(right)
        return left + timedelta(days=days)
    if op == '+' and isinstance(right, datetime) and is_numeric_value(left):
        return right + timedelta(days=float(left))
    raise_exception('InvalidCastException',
                    f"Operator '{op}' is not defined for type '{type_name(left)}' and type '{type_name(right)}'.")


def identical(left: Any, right: Any) -> bool:
    """`Is`: reference identity; `Nothing Is Nothing` holds."""
    if left is NOTHING or right is NOTHING:
        return left is right
    if isinstance(left, (str, int, float)) or isinstance(right, (str, int, float)):
        return left is right or (type(left) is type(right) and left == right)
    return left is right


def compare_values(left: Any, right: Any, op: str = '=') -> int:
    """Three-way comparison with VB conversion rules; returns -1, 0 or 1."""
    if left is NOTHING and right is NOTHING:
        return 0
    if left is NOTHING:
        left = _nothing_like(right)
    elif right is NOTHING:
        right = _nothing_like(left)
    if isinstance(left, str) and isinstance(right, str):
        return (left > right) - (left < right)
    if isinstance(left, datetime) and isinstance(right, datetime):
        return (left > right) - (left < right)
    if isinstance(left, TimeSpanVal) and isinstance(right, TimeSpanVal):
        return (left.delta > right.delta) - (left.delta < right.delta)
    if isinstance(left, bool) and isinstance(right, bool):
        # True is -1, so True < False.
        return (int(right) > int(left)) - (int(right) < int(left))
    if _scalar(left) and _scalar(right):
        if isinstance(left, datetime):
            left = date_to_oa(left)
        if isinstance(right, datetime):
            right = date_to_oa(right)
        a = _operand(left, op, right)
        b = _operand(right, op, left)
        return (a > b) - (a < b)
    if op in ('=', '<>'):
        return 0 if identical(left, right) else 1
    raise_exception('InvalidCastException',
                    f"Operator '{op}' is not defined for type '{type_name(left)}' and type '{type_name(right)}'.")


def _scalar(value: Any) -> bool:
    return isinstance(value, (int, float, str, datetime))


def _nothing_like(other: Any) -> Any:
    if isinstance(other, str):
        return ''
    if isinstance(other, bool):
        return False
    if isinstance(other, (int, float)):
        return 0
    if isinstance(other, datetime):
        return datetime(1, 1, 1)
    return NOTHING


def values_equal(left: Any, right: Any) -> bool:
    """Equality used by `Contains`, `IndexOf` and friends; never raises."""
    if left is NOTHING or right is NOTHING:
        return left is right
    if isinstance(left, str) != isinstance(right, str):
        return False
    if _scalar(left) and _scalar(right):
        try:
            return compare_values(left, right) == 0
        except VybeError:
            return False
    return identical(left, right)


_LIKE_CACHE = {}


def like_regex(pattern: str):
    regex = _LIKE_CACHE.get(pattern)
    if regex is not None:
        return regex
    out = []
    i = 0
    while i < len(pattern):
        c = pattern[i]
        if c == '?':
            out.append('.')
        elif c == '*':
            out.append('.*')
        elif c == '#':
            out.append('[0-9]')
        elif c == '[':
            end = pattern.find(']', i + 1)
            if end < 0:
                raise_exception('ArgumentException', 'Invalid pattern string.')
            body = pattern[i + 1:end]
            if body.startswith('!'):
                out.append('[^' + re.escape(body[1:]).replace('\\-', '-') + ']')
            elif body:
                out.append('[' + re.escape(body).replace('\\-', '-') + ']')
            i = end
        else:
            out.append(re.escape(c))
        i += 1
    regex = re.compile(''.join(out), re.DOTALL)
    _LIKE_CACHE[pattern] = regex
    return regex


def like_match(text: Any, pattern: Any) -> bool:
    return like_regex(to_string(pattern)).fullmatch(to_string(text)) is not None


def binary_op(op: str, left: Any, right: Any) -> Any:
    """Apply a (non short-circuit) binary operator to two evaluated operands."""
    if op == '&':
        return _concat(left, right)
    if op in ('=', '<>', '<', '>', '<=', '>='):
        result = compare_values(left, right, op)
        if op == '=':
            return result == 0
        if op == '<>':
            return result != 0
        if op == '<':
            return result < 0
        if op == '>':
            return result > 0
        if op == '<=':
            return result <= 0
        return result >= 0
    if op == 'is':
        return identical(left, right)
    if op == 'isnot':
        return not identical(left, right)
    if op == 'like':
        return like_match(left, right)
    if op in ('and', 'or', 'xor'):
        return _bitwise(op, left, right)
    if op == 'andalso':
        return _truth(left) and _truth(right)
    if op == 'orelse':
        return _truth(left) or _truth(right)
    if op in ('<<', '>>'):
        return _shift(op, left, right)
    if op == '+':
        if isinstance(left, str) and isinstance(right, str):
            return left + right
        if isinstance(left, str) and right is NOTHING:
            return left
        if isinstance(right, str) and left is NOTHING:
            return right
    if op in ('+', '-') and (isinstance(left, (datetime, TimeSpanVal)) or isinstance(right, (datetime, TimeSpanVal))):
        return _date_arith(op, left, right)
    if op in ('+', '-', '*', 'mod'):
        return _arith(op, left, right)
    if op == '/':
        return _divide(left, right)
    if op == '\\':
        return _int_divide(left, right)
    if op == '^':
        return _power(left, right)
    raise_exception('InvalidOperationException', f"Unknown operator '{op}'.")


def _truth(value: Any) -> bool:
    from .types import to_boolean
    return to_boolean(value)


def unary_op(op: str, operand: Any) -> Any:
    if op == 'not':
        if isinstance(operand, bool):
            return not operand
        if _is_long(operand):
            return Long(~int(operand))
        return ~to_integer(_operand(operand, 'Not', operand))
    value = _operand(operand, op, operand)
    if op == '-':
        if isinstance(value, float):
            return -value
        return _integral(-int(value), _is_long(value))
    if op == '+':
        return value
    raise_exception('InvalidOperationException', f"Unknown operator '{op}'.")


def type_matches(value: Any, type_spec: TypeSpec) -> bool:
    """Whether a primitive value fits `type_spec` without conversion."""
    from .types import (INTEGER_KINDS, LONG_KINDS, DOUBLE_KINDS, STRING_KINDS, BOOLEAN_KINDS,
                        DATE_KINDS, CHAR_KINDS, OBJECT_KINDS)
    key = type_spec.key
    if key in OBJECT_KINDS:
        return True
    if key in BOOLEAN_KINDS:
        return isinstance(value, bool)
    if isinstance(value, bool):
        return False
    if key in INTEGER_KINDS:
        return type(value) is int
    if key in LONG_KINDS:
        return isinstance(value, int)
    if key in DOUBLE_KINDS:
        return isinstance(value, (int, float))
    if key in STRING_KINDS:
        return isinstance(value, str)
    if key in CHAR_KINDS:
        return isinstance(value, str) and len(value) == 1
    if key in DATE_KINDS:
        return isinstance(value, datetime)
    return False
